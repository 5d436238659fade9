"""Reverse geocoding with caching and offline fallback.

The gateway never fails outward: provider errors and empty results degrade
to an offline LocationReveal that carries coordinates and date only, so the
game stays playable without connectivity.
"""

import logging
import threading
from datetime import datetime
from typing import Dict, Optional, Protocol

from geopy.exc import GeopyError
from geopy.geocoders import Nominatim

from photoquizz import __version__
from photoquizz.core.errors import ProviderError
from photoquizz.core.models import Coordinate, LocationReveal, PlaceDescriptor

logger = logging.getLogger(__name__)


class GeocodingProvider(Protocol):
    """Turns a coordinate into zero or one place.

    May raise ProviderError (or anything else) on transient failures.
    """

    def reverse_geocode(self, coordinate: Coordinate) -> Optional[PlaceDescriptor]:
        ...


class NominatimProvider:
    """OpenStreetMap Nominatim lookups via geopy."""

    USER_AGENT = f"PhotoQuizz/{__version__}"

    def __init__(
        self,
        user_agent: Optional[str] = None,
        timeout: float = 10,
        language: str = "en",
        geolocator: Optional[Nominatim] = None,
    ):
        """Initialize provider.

        Args:
            user_agent: HTTP user agent (Nominatim requires one per application).
            timeout: Request timeout in seconds.
            language: Preferred language for place names.
            geolocator: Pre-built geopy geocoder (mainly for tests).
        """
        self.language = language
        self._geolocator = geolocator or Nominatim(
            user_agent=user_agent or self.USER_AGENT, timeout=timeout
        )

    def reverse_geocode(self, coordinate: Coordinate) -> Optional[PlaceDescriptor]:
        try:
            result = self._geolocator.reverse(
                coordinate.as_tuple(), exactly_one=True, language=self.language
            )
        except GeopyError as e:
            raise ProviderError(str(e)) from e

        if not result:
            return None
        address = (result.raw or {}).get("address", {})
        locality = (
            address.get("city")
            or address.get("town")
            or address.get("village")
            or address.get("municipality")
            or address.get("county")
        )
        # Nameless matches are still an online answer
        return PlaceDescriptor(locality=locality, country=address.get("country"))


class GeocodingCache:
    """Place names memoized by rounded coordinate.

    Unbounded and without expiry: the place for a coordinate does not change
    for the purposes of the game. Safe to share between threads.
    """

    def __init__(self):
        self._entries: Dict[str, PlaceDescriptor] = {}
        self._lock = threading.Lock()

    @staticmethod
    def key_for(coordinate: Coordinate) -> str:
        """Cache key rounded to 4 decimal places.

        Coordinates within roughly 11m of each other share a key.
        """
        return coordinate.cache_key()

    def get(self, coordinate: Coordinate) -> Optional[PlaceDescriptor]:
        with self._lock:
            return self._entries.get(self.key_for(coordinate))

    def put(self, coordinate: Coordinate, place: PlaceDescriptor) -> None:
        with self._lock:
            self._entries[self.key_for(coordinate)] = place

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, coordinate: Coordinate) -> bool:
        with self._lock:
            return self.key_for(coordinate) in self._entries


# Shared by every gateway that is not given its own cache
_shared_cache = GeocodingCache()


def shared_cache() -> GeocodingCache:
    """The process-wide geocoding cache."""
    return _shared_cache


class GeocodingGateway:
    """Resolves photo coordinates into LocationReveal payloads.

    Usage:
        gateway = GeocodingGateway(NominatimProvider())
        reveal = gateway.resolve(photo.coordinate, photo.capture_date)
        print(reveal.location_text, reveal.display_date)

    A gateway without a provider always answers offline.
    """

    def __init__(
        self,
        provider: Optional[GeocodingProvider] = None,
        cache: Optional[GeocodingCache] = None,
    ):
        self.provider = provider
        self.cache = cache if cache is not None else shared_cache()

    def resolve(
        self, coordinate: Coordinate, capture_date: Optional[datetime] = None
    ) -> LocationReveal:
        """Resolve a coordinate, falling back to an offline reveal.

        Successful lookups are cached. Failures and empty results are not,
        so the same coordinate can succeed once connectivity returns.
        """
        cached = self.cache.get(coordinate)
        if cached is not None:
            logger.debug(f"Geocoding cache hit for {coordinate.cache_key()}")
            return LocationReveal.from_place(coordinate, cached, capture_date)

        if self.provider is None:
            return LocationReveal.offline(coordinate, capture_date)

        try:
            place = self.provider.reverse_geocode(coordinate)
        except Exception as e:
            logger.warning(f"Geocoding failed for {coordinate.cache_key()}: {e}")
            return LocationReveal.offline(coordinate, capture_date)

        if place is None:
            logger.info(f"No place found for {coordinate.cache_key()}")
            return LocationReveal.offline(coordinate, capture_date)

        self.cache.put(coordinate, place)
        return LocationReveal.from_place(coordinate, place, capture_date)

    def clear_cache(self) -> None:
        self.cache.clear()
