"""Exception types for PhotoQuizz.

Authorization and load failures propagate to the caller. Geocoding failures
never leave the gateway, so ProviderError is only seen by provider code.
"""

from typing import Any


class PhotoLibraryError(Exception):
    """Base class for photo library failures."""

    message = "Photo library error."

    def __init__(self, message: str = ""):
        super().__init__(message or self.message)


class NotAuthorized(PhotoLibraryError):
    """Photo library access has not been granted."""

    message = "Photo library access has not been granted."


class AccessDenied(NotAuthorized):
    """Photo library access was explicitly denied or restricted."""

    message = "Photo library access was denied. Please enable it in Settings."


class AccessRevoked(PhotoLibraryError):
    """Access disappeared while a session was running."""

    message = (
        "Photo library access has been revoked. Please re-enable access "
        "in Settings to continue playing."
    )


class NoGeotaggedPhotos(PhotoLibraryError):
    """The library contains no photo with usable location data."""

    message = "No photos with location data were found."


class LoadFailed(PhotoLibraryError):
    """An image could not be loaded for an asset."""

    def __init__(self, asset: Any, reason: str = ""):
        self.asset = asset
        asset_id = getattr(asset, "id", asset)
        text = f"Failed to load photo: {asset_id}"
        if reason:
            text = f"{text} ({reason})"
        super().__init__(text)


class ProviderError(Exception):
    """Transient reverse-geocoding failure (network, rate limit, bad reply)."""
