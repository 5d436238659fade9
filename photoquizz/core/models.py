"""Data models for PhotoQuizz."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, FrozenSet, Optional, Protocol, Tuple

from photoquizz.core.utils import (
    format_coordinate,
    format_coordinate_dms,
    format_display_date,
)


class AuthorizationStatus(str, Enum):
    """Photo library authorization states reported by a catalog."""
    AUTHORIZED = "authorized"
    LIMITED = "limited"
    DENIED = "denied"
    RESTRICTED = "restricted"
    NOT_DETERMINED = "not_determined"

    @property
    def grants_access(self) -> bool:
        """Limited access still lets the game read the photos it can see."""
        return self in (AuthorizationStatus.AUTHORIZED, AuthorizationStatus.LIMITED)


class CollectionKind(str, Enum):
    USER = "album"
    SMART = "smart_album"


@dataclass(frozen=True, slots=True)
class Coordinate:
    """A latitude/longitude pair in decimal degrees."""
    latitude: float
    longitude: float

    def is_valid(self) -> bool:
        """Check the coordinate is in range and not the (0,0) sentinel.

        Unlike raw GPS tags, (0,0) is treated as "no location": photo
        libraries commonly write it as a placeholder for missing data.
        """
        in_range = -90 <= self.latitude <= 90 and -180 <= self.longitude <= 180
        return in_range and not (self.latitude == 0 and self.longitude == 0)

    def cache_key(self) -> str:
        """Key rounded to 4 decimal places (about 11m of precision)."""
        return f"{self.latitude:.4f},{self.longitude:.4f}"

    @property
    def formatted_string(self) -> str:
        """Example: '48.8566° N, 2.3522° E'"""
        return format_coordinate(self.latitude, self.longitude, precision=4)

    @property
    def compact_string(self) -> str:
        """Example: '48.86° N, 2.35° E'"""
        return format_coordinate(self.latitude, self.longitude, precision=2)

    @property
    def dms_string(self) -> str:
        """Degrees, minutes, seconds form."""
        return format_coordinate_dms(self.latitude, self.longitude)

    def as_tuple(self) -> Tuple[float, float]:
        return (self.latitude, self.longitude)


@dataclass(frozen=True, slots=True)
class PhotoAsset:
    """Raw asset handle as supplied by a photo catalog.

    The coordinate is whatever the catalog found and may be missing or
    invalid; PhotoItem.from_asset() decides whether the asset is playable.
    """
    id: str
    path: Optional[str] = None
    coordinate: Optional[Coordinate] = None
    creation_date: Optional[datetime] = None
    album_ids: FrozenSet[str] = frozenset()


@dataclass(frozen=True, slots=True)
class AssetCollection:
    """An album or smart album exposed by a catalog."""
    id: str
    title: Optional[str]
    kind: CollectionKind = CollectionKind.USER


@dataclass(frozen=True)
class PhotoItem:
    """A photo selected for gameplay. Two items are equal when their ids match."""
    id: str
    asset: PhotoAsset = field(compare=False)
    coordinate: Coordinate = field(compare=False)
    capture_date: Optional[datetime] = field(default=None, compare=False)
    album_id: Optional[str] = field(default=None, compare=False)

    @classmethod
    def from_asset(
        cls, asset: PhotoAsset, album_id: Optional[str] = None
    ) -> Optional["PhotoItem"]:
        """Create from a catalog asset, or None if it has no valid location."""
        coordinate = asset.coordinate
        if coordinate is None or not coordinate.is_valid():
            return None
        return cls(
            id=asset.id,
            asset=asset,
            coordinate=coordinate,
            capture_date=asset.creation_date,
            album_id=album_id,
        )

    @property
    def formatted_date(self) -> str:
        return format_display_date(self.capture_date)


@dataclass(frozen=True)
class PhotoAlbum:
    """A selectable album with its geotagged photo count."""
    id: str
    title: str = field(compare=False)
    geotagged_count: int = field(compare=False)
    thumbnail_asset: Optional[PhotoAsset] = field(default=None, compare=False)

    UNTITLED = "Untitled Album"

    @classmethod
    def from_collection(
        cls,
        collection: AssetCollection,
        geotagged_count: int,
        thumbnail_asset: Optional[PhotoAsset] = None,
    ) -> "PhotoAlbum":
        return cls(
            id=collection.id,
            title=collection.title or cls.UNTITLED,
            geotagged_count=geotagged_count,
            thumbnail_asset=thumbnail_asset,
        )

    @property
    def subtitle(self) -> str:
        plural = "" if self.geotagged_count == 1 else "s"
        return f"{self.geotagged_count} geotagged photo{plural}"

    @property
    def is_selectable(self) -> bool:
        """Only albums with geotagged photos can be played."""
        return self.geotagged_count > 0


@dataclass(frozen=True, slots=True)
class PlaceDescriptor:
    """A reverse-geocoded place as returned by a geocoding provider."""
    locality: Optional[str] = None
    country: Optional[str] = None


@dataclass(frozen=True)
class LocationReveal:
    """Everything shown when the answer for a photo is revealed.

    is_offline is True when the lookup did not resolve to a place name;
    only the coordinates and date are available in that case.
    """
    coordinate: Coordinate
    city: Optional[str]
    country: Optional[str]
    display_date: str
    is_offline: bool

    @classmethod
    def from_place(
        cls,
        coordinate: Coordinate,
        place: Optional[PlaceDescriptor],
        capture_date: Optional[datetime],
    ) -> "LocationReveal":
        if place is None:
            return cls.offline(coordinate, capture_date)
        return cls(
            coordinate=coordinate,
            city=place.locality,
            country=place.country,
            display_date=format_display_date(capture_date),
            is_offline=False,
        )

    @classmethod
    def offline(
        cls, coordinate: Coordinate, capture_date: Optional[datetime]
    ) -> "LocationReveal":
        """Fallback reveal carrying coordinates and date only."""
        return cls(
            coordinate=coordinate,
            city=None,
            country=None,
            display_date=format_display_date(capture_date),
            is_offline=True,
        )

    @property
    def location_text(self) -> str:
        """'City, Country', whichever half is known, or the coordinates."""
        if self.city and self.country:
            return f"{self.city}, {self.country}"
        if self.city:
            return self.city
        if self.country:
            return self.country
        return self.coordinate_text

    @property
    def coordinate_text(self) -> str:
        return self.coordinate.formatted_string


class RevealCause(str, Enum):
    """What ended the revealing phase of a round."""
    TIMER = "timer"
    TILES = "tiles"
    MANUAL = "manual"


@dataclass
class SessionStats:
    """Statistics for one play-through."""
    rounds_started: int = 0
    rounds_revealed: int = 0
    revealed_by_timer: int = 0
    revealed_by_tiles: int = 0
    revealed_manually: int = 0
    offline_reveals: int = 0
    load_failures: int = 0
    photos_available: int = 0
    ended_early: bool = False
    access_revoked: bool = False

    def record_reveal(self, cause: RevealCause) -> None:
        self.rounds_revealed += 1
        if cause is RevealCause.TIMER:
            self.revealed_by_timer += 1
        elif cause is RevealCause.TILES:
            self.revealed_by_tiles += 1
        else:
            self.revealed_manually += 1


class LoadingObserver(Protocol):
    """Receives loading lifecycle notifications. Not owned by the loader."""

    def on_load_start(self) -> None:
        ...

    def on_load_end(self) -> None:
        ...


# Type aliases for callbacks
# (current_item, total_items, message) -> None
ProgressCallback = Callable[[int, int, str], None]
