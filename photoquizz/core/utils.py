"""Utility functions for paths and display formatting."""

import os
import unicodedata
from datetime import datetime
from typing import Optional

DATE_UNKNOWN = "Date unknown"


def normalize_filename(filename: str) -> str:
    """Normalize a filename to NFC form for consistent matching.

    macOS filesystems use NFD (decomposed) Unicode normalization, while
    Windows, Linux, and Takeout JSON titles use NFC (composed). Normalizing
    keeps "Café.jpg" from the sidecar title equal to the name on disk.

    Args:
        filename: Original filename (may be NFC or NFD).

    Returns:
        NFC-normalized filename.
    """
    return unicodedata.normalize("NFC", filename)


def exists(path: Optional[str]) -> bool:
    """Check if a path exists.

    Args:
        path: Path to check, or None.

    Returns:
        True if path exists, False if path is None or doesn't exist.
    """
    if path:
        return os.path.exists(path)
    return False


def normalize_path(path: str) -> str:
    """Normalize a path for consistent handling.

    Handles trailing slashes, mixed separators, ~ and surrounding whitespace.
    """
    return os.path.normpath(os.path.expanduser(path.strip()))


def format_display_date(value: Optional[datetime]) -> str:
    """Format a capture date in medium style, e.g. 'Jan 1, 2021'.

    Args:
        value: Capture date, or None.

    Returns:
        Formatted date, or 'Date unknown' when there is no date.
    """
    if value is None:
        return DATE_UNKNOWN
    return f"{value:%b} {value.day}, {value.year}"


def _hemispheres(latitude: float, longitude: float):
    return ("N" if latitude >= 0 else "S", "E" if longitude >= 0 else "W")


def format_coordinate(latitude: float, longitude: float, precision: int = 4) -> str:
    """Format a coordinate with hemisphere letters.

    Example:
        >>> format_coordinate(48.8566, 2.3522)
        '48.8566° N, 2.3522° E'
    """
    lat_dir, lon_dir = _hemispheres(latitude, longitude)
    return (
        f"{abs(latitude):.{precision}f}° {lat_dir}, "
        f"{abs(longitude):.{precision}f}° {lon_dir}"
    )


def _to_dms(value: float):
    absolute = abs(value)
    degrees = int(absolute)
    minutes_decimal = (absolute - degrees) * 60
    minutes = int(minutes_decimal)
    seconds = int((minutes_decimal - minutes) * 60)
    return degrees, minutes, seconds


def format_coordinate_dms(latitude: float, longitude: float) -> str:
    """Format a coordinate as truncated degrees, minutes and seconds.

    Paris (48.8566, 2.3522) becomes: 48° 51' 23" N, 2° 21' 7" E
    """
    lat_dir, lon_dir = _hemispheres(latitude, longitude)
    lat_d, lat_m, lat_s = _to_dms(latitude)
    lon_d, lon_m, lon_s = _to_dms(longitude)
    return (
        f"{lat_d}° {lat_m}' {lat_s}\" {lat_dir}, "
        f"{lon_d}° {lon_m}' {lon_s}\" {lon_dir}"
    )
