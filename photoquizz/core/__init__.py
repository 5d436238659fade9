"""Core game logic for PhotoQuizz."""

from photoquizz.core.models import (
    AuthorizationStatus,
    CollectionKind,
    Coordinate,
    PhotoAsset,
    AssetCollection,
    PhotoItem,
    PhotoAlbum,
    PlaceDescriptor,
    LocationReveal,
    RevealCause,
    SessionStats,
    LoadingObserver,
    ProgressCallback,
)

from photoquizz.core.errors import (
    PhotoLibraryError,
    NotAuthorized,
    AccessDenied,
    AccessRevoked,
    NoGeotaggedPhotos,
    LoadFailed,
    ProviderError,
)

from photoquizz.core.utils import (
    exists,
    normalize_path,
    format_display_date,
    format_coordinate,
    format_coordinate_dms,
)

from photoquizz.core.settings import (
    RevealSpeed,
    SessionLength,
    UserSettings,
    SettingsStore,
    SettingsService,
)

from photoquizz.core.session import (
    GamePhase,
    GameSession,
    Progress,
    SessionSnapshot,
)

from photoquizz.core.geocoding import (
    GeocodingCache,
    GeocodingGateway,
    GeocodingProvider,
    NominatimProvider,
    shared_cache,
)

from photoquizz.core.library import (
    PhotoCatalog,
    PhotoLibraryService,
    DEFAULT_TARGET_SIZE,
)

from photoquizz.core.catalog import TakeoutCatalog

from photoquizz.core.scheduler import (
    Scheduler,
    TimerHandle,
    ManualScheduler,
    LoopScheduler,
)

from photoquizz.core.logger import (
    BufferedLogger,
    NullLogger,
    SessionSummaryLogger,
    create_logger,
)

from photoquizz.core.orchestrator import (
    SessionOrchestrator,
    MIN_RECOMMENDED_PHOTOS,
)

__all__ = [
    # Models
    "AuthorizationStatus",
    "CollectionKind",
    "Coordinate",
    "PhotoAsset",
    "AssetCollection",
    "PhotoItem",
    "PhotoAlbum",
    "PlaceDescriptor",
    "LocationReveal",
    "RevealCause",
    "SessionStats",
    "LoadingObserver",
    "ProgressCallback",
    # Errors
    "PhotoLibraryError",
    "NotAuthorized",
    "AccessDenied",
    "AccessRevoked",
    "NoGeotaggedPhotos",
    "LoadFailed",
    "ProviderError",
    # Utils
    "exists",
    "normalize_path",
    "format_display_date",
    "format_coordinate",
    "format_coordinate_dms",
    # Settings
    "RevealSpeed",
    "SessionLength",
    "UserSettings",
    "SettingsStore",
    "SettingsService",
    # Session
    "GamePhase",
    "GameSession",
    "Progress",
    "SessionSnapshot",
    # Geocoding
    "GeocodingCache",
    "GeocodingGateway",
    "GeocodingProvider",
    "NominatimProvider",
    "shared_cache",
    # Library
    "PhotoCatalog",
    "PhotoLibraryService",
    "DEFAULT_TARGET_SIZE",
    "TakeoutCatalog",
    # Scheduler
    "Scheduler",
    "TimerHandle",
    "ManualScheduler",
    "LoopScheduler",
    # Logger
    "BufferedLogger",
    "NullLogger",
    "SessionSummaryLogger",
    "create_logger",
    # Orchestrator
    "SessionOrchestrator",
    "MIN_RECOMMENDED_PHOTOS",
]
