"""PhotoQuizz - Guess where your geotagged photos were taken.

High-level API:
    from photoquizz import (
        GeocodingGateway, NominatimProvider, PhotoLibraryService,
        SessionOrchestrator, TakeoutCatalog, UserSettings, LoopScheduler,
    )

    library = PhotoLibraryService(TakeoutCatalog("/path/to/takeout"))
    photos = library.fetch_geotagged_photos(limit=10)

    orchestrator = SessionOrchestrator(
        library, GeocodingGateway(NominatimProvider()), LoopScheduler()
    )
    session = orchestrator.start_session(photos, UserSettings.DEFAULTS)
    print(session.progress)
"""

__version__ = "1.0.0"

# Public API exports
from photoquizz.core.session import GameSession, GamePhase
from photoquizz.core.settings import UserSettings, RevealSpeed, SessionLength
from photoquizz.core.models import PhotoItem, LocationReveal, Coordinate
from photoquizz.core.geocoding import GeocodingGateway, NominatimProvider
from photoquizz.core.library import PhotoLibraryService
from photoquizz.core.catalog import TakeoutCatalog
from photoquizz.core.scheduler import LoopScheduler, ManualScheduler
from photoquizz.core.orchestrator import SessionOrchestrator

__all__ = [
    "GameSession",
    "GamePhase",
    "UserSettings",
    "RevealSpeed",
    "SessionLength",
    "PhotoItem",
    "LocationReveal",
    "Coordinate",
    "GeocodingGateway",
    "NominatimProvider",
    "PhotoLibraryService",
    "TakeoutCatalog",
    "LoopScheduler",
    "ManualScheduler",
    "SessionOrchestrator",
    "__version__",
]
