"""Photo catalog backed by a Google Takeout export on disk.

Takeout stores each photo next to a JSON sidecar carrying its metadata:

    Takeout/Google Photos/
    ├── Photos from 2021/
    │   ├── IMG_0001.jpg
    │   └── IMG_0001.jpg.json      {"title", "photoTakenTime", "geoData", ...}
    └── Italy Trip/
        ├── metadata.json          {"title": "Italy Trip"}
        ├── duomo.jpg
        └── duomo.jpg.supplemental-metadata.json

Every folder is an album. "Photos from YYYY" folders are generated by Google
and are exposed as smart albums.
"""

import io
import logging
import os
import re
from datetime import datetime, timezone
from typing import AbstractSet, Any, Dict, Iterator, List, Optional, Tuple

import orjson
from PIL import Image, ImageOps

from photoquizz.core.errors import LoadFailed
from photoquizz.core.models import (
    AssetCollection,
    AuthorizationStatus,
    CollectionKind,
    Coordinate,
    PhotoAsset,
    ProgressCallback,
)
from photoquizz.core.utils import normalize_filename

logger = logging.getLogger(__name__)

ALBUM_METADATA_FILE = "metadata.json"
SMART_ALBUM_PATTERN = re.compile(r"^Photos from \d{4}$")
GEO_KEYS = ("geoData", "geoDataExif")


def _fast_walk(path: str) -> Iterator[Tuple[str, List[str], List[str]]]:
    """Directory walker using os.scandir, in sorted name order.

    Yields:
        Tuples of (dirpath, dirnames, filenames) like os.walk().
    """
    try:
        with os.scandir(path) as entries:
            dirs = []
            files = []
            for entry in entries:
                try:
                    if entry.is_dir(follow_symlinks=False):
                        dirs.append(entry.name)
                    else:
                        files.append(entry.name)
                except OSError as e:
                    logger.debug(f"Cannot access entry {entry.path}: {e}")
                    continue
    except OSError as e:
        logger.debug(f"Cannot access directory {path}: {e}")
        return

    dirs.sort()
    files.sort()
    yield path, dirs, files
    for d in dirs:
        yield from _fast_walk(os.path.join(path, d))


def _read_json(path: str) -> Optional[Dict[str, Any]]:
    try:
        with open(path, "rb") as f:
            data = orjson.loads(f.read())
    except (OSError, orjson.JSONDecodeError) as e:
        logger.debug(f"Skipping unreadable sidecar {path}: {e}")
        return None
    return data if isinstance(data, dict) else None


def parse_coordinate(data: Dict[str, Any]) -> Optional[Coordinate]:
    """Extract a coordinate from sidecar data.

    geoData is preferred; geoDataExif is used when geoData is missing or
    holds the (0,0) placeholder. If neither is valid the first coordinate
    found is returned so the caller can decide.
    """
    first: Optional[Coordinate] = None
    for key in GEO_KEYS:
        geo = data.get(key)
        if not isinstance(geo, dict) or "latitude" not in geo or "longitude" not in geo:
            continue
        try:
            coordinate = Coordinate(float(geo["latitude"]), float(geo["longitude"]))
        except (TypeError, ValueError):
            continue
        if coordinate.is_valid():
            return coordinate
        if first is None:
            first = coordinate
    return first


def parse_taken_time(data: Dict[str, Any]) -> Optional[datetime]:
    """Capture time from photoTakenTime (or creationTime), in UTC."""
    for key in ("photoTakenTime", "creationTime"):
        value = data.get(key)
        if not isinstance(value, dict):
            continue
        try:
            return datetime.fromtimestamp(int(value["timestamp"]), tz=timezone.utc)
        except (KeyError, TypeError, ValueError, OverflowError, OSError):
            continue
    return None


def _media_name_for(json_name: str, title: Optional[str], names: Dict[str, str]) -> Optional[str]:
    """Find the media file a sidecar describes.

    Args:
        json_name: Sidecar filename.
        title: Title from the sidecar, if any.
        names: NFC-normalized filename -> filename on disk, for the folder.
    """
    candidates = []
    stem = json_name[:-len(".json")]
    candidates.append(stem)
    # name.jpg.supplemental-metadata.json, possibly truncated to name.jpg.supp.json
    base, _, suffix = stem.rpartition(".")
    if base and suffix.startswith("supp"):
        candidates.append(base)
    if title:
        candidates.append(title)

    for candidate in candidates:
        found = names.get(normalize_filename(candidate))
        if found and not found.endswith(".json"):
            return found
    return None


class TakeoutCatalog:
    """PhotoCatalog over an unpacked Google Takeout directory.

    Usage:
        catalog = TakeoutCatalog("/path/to/Takeout/Google Photos")
        for asset in catalog.fetch_assets():
            print(asset.id, asset.coordinate)
    """

    def __init__(self, root: str):
        """Initialize catalog.

        Args:
            root: Directory containing the album folders.
        """
        self.root = root

    # Authorization

    def check_authorization(self) -> AuthorizationStatus:
        """Map directory access onto authorization states."""
        if not os.path.exists(self.root):
            return AuthorizationStatus.NOT_DETERMINED
        if not os.path.isdir(self.root):
            return AuthorizationStatus.RESTRICTED
        if not os.access(self.root, os.R_OK | os.X_OK):
            return AuthorizationStatus.DENIED
        return AuthorizationStatus.AUTHORIZED

    def request_authorization(self) -> AuthorizationStatus:
        """Nothing to prompt for on a filesystem; re-checks access."""
        return self.check_authorization()

    # Assets

    def _album_id(self, dirpath: str) -> Optional[str]:
        rel = os.path.relpath(dirpath, self.root)
        if rel == os.curdir:
            return None
        return rel.replace(os.sep, "/")

    def _assets_in_dir(self, dirpath: str, filenames: List[str]) -> Iterator[PhotoAsset]:
        album_id = self._album_id(dirpath)
        album_ids = frozenset([album_id]) if album_id else frozenset()
        names = {normalize_filename(n): n for n in filenames}
        claimed = set()

        for json_name in filenames:
            if not json_name.endswith(".json") or json_name == ALBUM_METADATA_FILE:
                continue
            data = _read_json(os.path.join(dirpath, json_name))
            if data is None:
                continue

            media_name = _media_name_for(json_name, data.get("title"), names)
            if media_name is None or media_name in claimed:
                logger.debug(f"No media file for sidecar {json_name} in {dirpath}")
                continue
            claimed.add(media_name)

            asset_id = media_name if album_id is None else f"{album_id}/{media_name}"
            yield PhotoAsset(
                id=asset_id,
                path=os.path.join(dirpath, media_name),
                coordinate=parse_coordinate(data),
                creation_date=parse_taken_time(data),
                album_ids=album_ids,
            )

    def fetch_assets(
        self,
        album_filter: Optional[AbstractSet[str]] = None,
        max_count: Optional[int] = None,
    ) -> Iterator[PhotoAsset]:
        """Lazily yield assets in folder order.

        Args:
            album_filter: Only yield assets from these album ids (None for all).
            max_count: Stop after this many assets.
        """
        yielded = 0
        for dirpath, _dirnames, filenames in _fast_walk(self.root):
            if album_filter is not None and self._album_id(dirpath) not in album_filter:
                continue
            for asset in self._assets_in_dir(dirpath, filenames):
                yield asset
                yielded += 1
                if max_count is not None and yielded >= max_count:
                    return

    def fetch_assets_in(self, collection_id: str) -> Iterator[PhotoAsset]:
        dirpath = os.path.join(self.root, *collection_id.split("/"))
        try:
            filenames = sorted(
                entry.name for entry in os.scandir(dirpath) if entry.is_file()
            )
        except OSError as e:
            logger.debug(f"Cannot read album {collection_id}: {e}")
            return
        yield from self._assets_in_dir(dirpath, filenames)

    # Collections

    def fetch_collections(self) -> List[AssetCollection]:
        """Every sub-folder holding files is a collection."""
        collections = []
        for dirpath, _dirnames, filenames in _fast_walk(self.root):
            album_id = self._album_id(dirpath)
            if album_id is None or not filenames:
                continue
            collections.append(self._collection_for(dirpath, album_id, filenames))
        return collections

    def _collection_for(self, dirpath: str, album_id: str, filenames: List[str]) -> AssetCollection:
        folder = os.path.basename(dirpath)
        title = folder
        if ALBUM_METADATA_FILE in filenames:
            metadata = _read_json(os.path.join(dirpath, ALBUM_METADATA_FILE)) or {}
            title = metadata.get("title") or folder
        kind = CollectionKind.SMART if SMART_ALBUM_PATTERN.match(folder) else CollectionKind.USER
        return AssetCollection(id=album_id, title=title, kind=kind)

    def get_stats(self, on_progress: Optional[ProgressCallback] = None) -> Dict[str, int]:
        """Count assets, geotagged assets and albums.

        Returns:
            Dict with asset_count, geotagged_count, album_count keys.
        """
        asset_count = 0
        geotagged = 0
        albums = set()
        for asset in self.fetch_assets():
            asset_count += 1
            albums.update(asset.album_ids)
            if asset.coordinate is not None and asset.coordinate.is_valid():
                geotagged += 1
            if on_progress and asset_count % 100 == 0:
                on_progress(asset_count, asset_count, f"Found {asset_count} photos...")

        if on_progress:
            on_progress(asset_count, asset_count, "Scan complete")
        return {
            "asset_count": asset_count,
            "geotagged_count": geotagged,
            "album_count": len(albums),
        }

    # Images

    def load_image(self, asset: PhotoAsset, target_size: Tuple[int, int]) -> bytes:
        """Load an image cropped to fill target_size, as JPEG bytes.

        Raises:
            LoadFailed: The file is missing or is not a readable image.
        """
        if not asset.path:
            raise LoadFailed(asset, "asset has no file")
        try:
            with Image.open(asset.path) as img:
                img = ImageOps.exif_transpose(img)
                if img.mode not in ("RGB", "L"):
                    img = img.convert("RGB")
                fitted = ImageOps.fit(img, target_size, Image.Resampling.LANCZOS)
                buffer = io.BytesIO()
                fitted.save(buffer, "JPEG", quality=90)
                return buffer.getvalue()
        except (OSError, ValueError) as e:
            raise LoadFailed(asset, str(e)) from e
