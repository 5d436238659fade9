"""Pytest configuration and fixtures."""

import os
import json
import random
import tempfile
import shutil
from concurrent.futures import Executor, Future
from datetime import datetime, timezone
from typing import Generator, Iterator, List, Optional

import pytest
from PIL import Image

from photoquizz.core.errors import LoadFailed
from photoquizz.core.geocoding import GeocodingCache, GeocodingGateway
from photoquizz.core.library import PhotoLibraryService
from photoquizz.core.models import (
    AssetCollection,
    AuthorizationStatus,
    Coordinate,
    PhotoAsset,
    PhotoItem,
    PlaceDescriptor,
)
from photoquizz.core.scheduler import ManualScheduler
from photoquizz.core.settings import SettingsStore


@pytest.fixture
def temp_dir() -> Generator[str, None, None]:
    """Create a temporary directory for tests."""
    tmpdir = tempfile.mkdtemp()
    yield tmpdir
    shutil.rmtree(tmpdir)


def _write_jpeg(path: str, size=(64, 48), color=(200, 40, 40)) -> None:
    Image.new("RGB", size, color).save(path, "JPEG")


def _write_sidecar(path: str, data: dict) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f)


@pytest.fixture
def sample_takeout(temp_dir: str) -> str:
    """Create a sample Google Takeout structure for testing.

    Structure:
        temp_dir/
        ├── Italy Trip/
        │   ├── metadata.json                          {"title": "Italy 2021"}
        │   ├── duomo.jpg
        │   ├── duomo.jpg.json                         Milan
        │   ├── beach.jpg
        │   ├── beach.jpg.supplemental-metadata.json   (0,0) geoData, Rome in geoDataExif
        │   ├── null.jpg
        │   └── null.jpg.json                          (0,0) only
        ├── Photos from 2021/
        │   ├── paris.jpg
        │   ├── paris.jpg.json                         Paris
        │   └── orphan.jpg.json                        no media file
        └── Screenshots/
            ├── shot.png
            └── shot.png.json                          no geoData
    """
    italy = os.path.join(temp_dir, "Italy Trip")
    os.makedirs(italy)
    _write_sidecar(os.path.join(italy, "metadata.json"), {"title": "Italy 2021"})

    _write_jpeg(os.path.join(italy, "duomo.jpg"))
    _write_sidecar(os.path.join(italy, "duomo.jpg.json"), {
        "title": "duomo.jpg",
        "photoTakenTime": {"timestamp": "1625140800"},  # 2021-07-01
        "geoData": {"latitude": 45.4642, "longitude": 9.19, "altitude": 120.0},
    })

    _write_jpeg(os.path.join(italy, "beach.jpg"))
    _write_sidecar(os.path.join(italy, "beach.jpg.supplemental-metadata.json"), {
        "title": "beach.jpg",
        "photoTakenTime": {"timestamp": "1625745600"},  # 2021-07-08
        "geoData": {"latitude": 0.0, "longitude": 0.0, "altitude": 0.0},
        "geoDataExif": {"latitude": 41.9028, "longitude": 12.4964, "altitude": 21.0},
    })

    _write_jpeg(os.path.join(italy, "null.jpg"))
    _write_sidecar(os.path.join(italy, "null.jpg.json"), {
        "title": "null.jpg",
        "geoData": {"latitude": 0.0, "longitude": 0.0, "altitude": 0.0},
    })

    year = os.path.join(temp_dir, "Photos from 2021")
    os.makedirs(year)
    _write_jpeg(os.path.join(year, "paris.jpg"), size=(80, 60), color=(10, 90, 200))
    _write_sidecar(os.path.join(year, "paris.jpg.json"), {
        "title": "paris.jpg",
        "photoTakenTime": {"timestamp": "1609459200"},  # 2021-01-01
        "geoData": {"latitude": 48.8566, "longitude": 2.3522, "altitude": 35.0},
    })
    _write_sidecar(os.path.join(year, "orphan.jpg.json"), {
        "title": "orphan.jpg",
        "geoData": {"latitude": 51.5074, "longitude": -0.1278, "altitude": 0.0},
    })

    shots = os.path.join(temp_dir, "Screenshots")
    os.makedirs(shots)
    with open(os.path.join(shots, "shot.png"), "wb") as f:
        f.write(b"not really a png")
    _write_sidecar(os.path.join(shots, "shot.png.json"), {
        "title": "shot.png",
        "photoTakenTime": {"timestamp": "1612137600"},
    })

    return temp_dir


@pytest.fixture
def settings_store(temp_dir: str) -> SettingsStore:
    return SettingsStore(os.path.join(temp_dir, "config", "settings.json"))


# Photos

def make_asset(
    asset_id: str,
    latitude: float = 48.8566,
    longitude: float = 2.3522,
    album_ids=frozenset(),
    creation_date: Optional[datetime] = datetime(2021, 1, 1, tzinfo=timezone.utc),
) -> PhotoAsset:
    return PhotoAsset(
        id=asset_id,
        path=f"/photos/{asset_id}.jpg",
        coordinate=Coordinate(latitude, longitude),
        creation_date=creation_date,
        album_ids=frozenset(album_ids),
    )


@pytest.fixture
def make_photo():
    """Factory for geotagged PhotoItems."""
    def factory(asset_id: str, latitude: float = 48.8566, longitude: float = 2.3522) -> PhotoItem:
        return PhotoItem.from_asset(make_asset(asset_id, latitude, longitude))
    return factory


@pytest.fixture
def photos(make_photo) -> List[PhotoItem]:
    return [
        make_photo("paris", 48.8566, 2.3522),
        make_photo("tokyo", 35.6762, 139.6503),
        make_photo("nyc", 40.7128, -74.0060),
        make_photo("sydney", -33.8688, 151.2093),
        make_photo("rio", -22.9068, -43.1729),
    ]


# Collaborators

class FakeCatalog:
    """In-memory PhotoCatalog."""

    def __init__(self, assets=(), collections=(), status=AuthorizationStatus.AUTHORIZED):
        self.assets = list(assets)
        self.collections = list(collections)
        self.status = status
        self.failing = set()
        self.loaded: List[str] = []
        self.requests = 0

    def check_authorization(self) -> AuthorizationStatus:
        return self.status

    def request_authorization(self) -> AuthorizationStatus:
        self.requests += 1
        return self.status

    def fetch_assets(self, album_filter=None, max_count=None) -> Iterator[PhotoAsset]:
        count = 0
        for asset in self.assets:
            if album_filter is not None and not (asset.album_ids & album_filter):
                continue
            yield asset
            count += 1
            if max_count is not None and count >= max_count:
                return

    def fetch_collections(self) -> List[AssetCollection]:
        return list(self.collections)

    def fetch_assets_in(self, collection_id: str) -> Iterator[PhotoAsset]:
        return iter([a for a in self.assets if collection_id in a.album_ids])

    def load_image(self, asset: PhotoAsset, target_size) -> bytes:
        self.loaded.append(asset.id)
        if asset.id in self.failing:
            raise LoadFailed(asset, "corrupt")
        return f"image:{asset.id}".encode()


class FakeProvider:
    """GeocodingProvider answering from a dict keyed by cache key."""

    def __init__(self, places=None, error: Optional[Exception] = None):
        self.places = places or {}
        self.error = error
        self.calls: List[Coordinate] = []

    def reverse_geocode(self, coordinate: Coordinate) -> Optional[PlaceDescriptor]:
        self.calls.append(coordinate)
        if self.error is not None:
            raise self.error
        return self.places.get(coordinate.cache_key())


class InlineExecutor(Executor):
    """Runs submitted work immediately on the calling thread."""

    def submit(self, fn, /, *args, **kwargs) -> Future:
        future = Future()
        try:
            result = fn(*args, **kwargs)
        except Exception as e:
            future.set_exception(e)
        else:
            future.set_result(result)
        return future


class DeferredExecutor(Executor):
    """Holds submitted work until run_all() is called."""

    def __init__(self):
        self.pending = []

    def submit(self, fn, /, *args, **kwargs) -> Future:
        future = Future()
        self.pending.append((future, fn, args, kwargs))
        return future

    def run_all(self) -> None:
        pending, self.pending = self.pending, []
        for future, fn, args, kwargs in pending:
            try:
                future.set_result(fn(*args, **kwargs))
            except Exception as e:
                future.set_exception(e)


@pytest.fixture
def fake_catalog(photos) -> FakeCatalog:
    return FakeCatalog(assets=[p.asset for p in photos])


@pytest.fixture
def library(fake_catalog) -> PhotoLibraryService:
    return PhotoLibraryService(fake_catalog, rng=random.Random(1))


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider({
        "48.8566,2.3522": PlaceDescriptor("Paris", "France"),
        "35.6762,139.6503": PlaceDescriptor("Tokyo", "Japan"),
    })


@pytest.fixture
def gateway(provider) -> GeocodingGateway:
    return GeocodingGateway(provider, cache=GeocodingCache())


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def inline_executor() -> InlineExecutor:
    return InlineExecutor()


@pytest.fixture
def deferred_executor() -> DeferredExecutor:
    return DeferredExecutor()
