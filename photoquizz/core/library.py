"""Photo library access: authorization, photo selection and album listing.

The catalog itself (where assets come from) is a collaborator behind the
PhotoCatalog protocol; TakeoutCatalog in photoquizz.core.catalog is the
bundled implementation.
"""

import logging
import random
from typing import AbstractSet, Iterator, List, Optional, Protocol, Tuple, Union

from photoquizz.core.errors import AccessDenied, LoadFailed, NotAuthorized
from photoquizz.core.models import (
    AssetCollection,
    AuthorizationStatus,
    LoadingObserver,
    PhotoAlbum,
    PhotoAsset,
    PhotoItem,
    ProgressCallback,
)

logger = logging.getLogger(__name__)

# Full HD, the size a game round is displayed at
DEFAULT_TARGET_SIZE = (1920, 1080)


class PhotoCatalog(Protocol):
    """Source of photo assets, albums and image data."""

    def check_authorization(self) -> AuthorizationStatus:
        ...

    def request_authorization(self) -> AuthorizationStatus:
        ...

    def fetch_assets(
        self,
        album_filter: Optional[AbstractSet[str]] = None,
        max_count: Optional[int] = None,
    ) -> Iterator[PhotoAsset]:
        ...

    def fetch_collections(self) -> List[AssetCollection]:
        ...

    def fetch_assets_in(self, collection_id: str) -> Iterator[PhotoAsset]:
        ...

    def load_image(self, asset: PhotoAsset, target_size: Tuple[int, int]) -> bytes:
        ...


class PhotoLibraryService:
    """Selects playable photos from a catalog.

    Usage:
        library = PhotoLibraryService(TakeoutCatalog("/path/to/takeout"))
        if not library.is_authorized:
            library.request_authorization()

        photos = library.fetch_geotagged_photos({"Trips"}, limit=10)
        albums = library.fetch_albums()
        image = library.load_image(photos[0], observer=spinner)
    """

    def __init__(self, catalog: PhotoCatalog, rng: Optional[random.Random] = None):
        """Initialize service.

        Args:
            catalog: Photo catalog to read from.
            rng: Random source for shuffling results (default: random.Random()).
        """
        self.catalog = catalog
        self._rng = rng or random.Random()

    # Authorization

    def check_authorization(self) -> AuthorizationStatus:
        """Current authorization state, without prompting."""
        return self.catalog.check_authorization()

    @property
    def authorization_status(self) -> AuthorizationStatus:
        return self.check_authorization()

    @property
    def is_authorized(self) -> bool:
        return self.authorization_status.grants_access

    def request_authorization(self) -> AuthorizationStatus:
        """Ask the catalog for access. Safe to call repeatedly."""
        status = self.catalog.request_authorization()
        logger.info(f"Photo library authorization: {status.value}")
        return status

    def _require_access(self) -> None:
        status = self.authorization_status
        if status.grants_access:
            return
        if status in (AuthorizationStatus.DENIED, AuthorizationStatus.RESTRICTED):
            raise AccessDenied()
        raise NotAuthorized()

    # Photos

    def fetch_geotagged_photos(
        self,
        album_ids: AbstractSet[str] = frozenset(),
        limit: Optional[int] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[PhotoItem]:
        """Fetch photos with a usable location, shuffled.

        Args:
            album_ids: Restrict to assets in at least one of these albums
                (empty means the whole library).
            limit: Stop collecting once this many photos were found. Which
                photos are kept depends on catalog order; the shuffle comes after.
            on_progress: Optional callback for progress updates.

        Returns:
            Shuffled list of playable photos (possibly empty).

        Raises:
            NotAuthorized: Library access was not granted (AccessDenied when
                it was refused).
        """
        self._require_access()

        selected = frozenset(album_ids)
        photos: List[PhotoItem] = []
        seen = 0

        for asset in self.catalog.fetch_assets(album_filter=selected or None):
            seen += 1
            album_id = None
            if selected:
                matching = selected & asset.album_ids
                if not matching:
                    continue
                album_id = min(matching)

            photo = PhotoItem.from_asset(asset, album_id=album_id)
            if photo is None:
                continue
            photos.append(photo)

            if on_progress:
                on_progress(len(photos), limit or len(photos), f"Found {len(photos)} photos...")
            if limit is not None and len(photos) >= limit:
                break

        logger.info(f"Selected {len(photos)} geotagged photos ({seen} assets examined)")
        self._rng.shuffle(photos)
        return photos

    # Albums

    def fetch_albums(self) -> List[PhotoAlbum]:
        """List user and smart albums that contain geotagged photos.

        Returns:
            Albums sorted case-insensitively by title.

        Raises:
            NotAuthorized: Library access was not granted.
        """
        self._require_access()

        albums: List[PhotoAlbum] = []
        for collection in self.catalog.fetch_collections():
            album = self._create_album(collection)
            if album is not None:
                albums.append(album)

        albums.sort(key=lambda a: a.title.casefold())
        return albums

    def _create_album(self, collection: AssetCollection) -> Optional[PhotoAlbum]:
        count = 0
        thumbnail: Optional[PhotoAsset] = None
        for asset in self.catalog.fetch_assets_in(collection.id):
            if PhotoItem.from_asset(asset) is None:
                continue
            if thumbnail is None:
                thumbnail = asset
            count += 1

        if count == 0:
            return None
        return PhotoAlbum.from_collection(collection, count, thumbnail)

    # Images

    def load_image(
        self,
        photo: Union[PhotoItem, PhotoAsset],
        target_size: Tuple[int, int] = DEFAULT_TARGET_SIZE,
        observer: Optional[LoadingObserver] = None,
    ) -> bytes:
        """Load display-ready image bytes for a photo.

        Args:
            photo: Photo (or raw asset) to load.
            target_size: (width, height) to fill.
            observer: Notified when loading starts and ends, success or not.
                Called on the thread running load_image().

        Returns:
            Encoded image bytes.

        Raises:
            LoadFailed: The catalog could not provide the image. Not retried.
        """
        asset = photo.asset if isinstance(photo, PhotoItem) else photo
        if observer:
            observer.on_load_start()
        try:
            return self.catalog.load_image(asset, target_size)
        except LoadFailed:
            logger.warning(f"Failed to load image for {asset.id}")
            raise
        except Exception as e:
            logger.warning(f"Failed to load image for {asset.id}: {e}")
            raise LoadFailed(asset, str(e)) from e
        finally:
            if observer:
                observer.on_load_end()
