"""Tests for photoquizz.core.utils module."""

import os
import unicodedata
from datetime import datetime

from photoquizz.core.utils import (
    DATE_UNKNOWN,
    exists,
    format_coordinate,
    format_coordinate_dms,
    format_display_date,
    normalize_filename,
    normalize_path,
)


class TestExists:
    """Tests for exists() function."""

    def test_none_returns_false(self):
        assert exists(None) is False

    def test_empty_string_returns_false(self):
        assert exists("") is False

    def test_nonexistent_path_returns_false(self):
        assert exists("/this/path/does/not/exist/12345") is False

    def test_existing_directory(self, temp_dir):
        assert exists(temp_dir) is True


class TestNormalizeFilename:
    def test_nfd_becomes_nfc(self):
        nfd = unicodedata.normalize("NFD", "Café.jpg")
        assert normalize_filename(nfd) == unicodedata.normalize("NFC", "Café.jpg")

    def test_ascii_unchanged(self):
        assert normalize_filename("photo.jpg") == "photo.jpg"


class TestNormalizePath:
    """Tests for normalize_path() function."""

    def test_strips_whitespace(self):
        result = normalize_path("  /path/to/file  ")
        assert result.strip() == result

    def test_expands_home(self):
        result = normalize_path("~/photos")
        assert "~" not in result

    def test_removes_trailing_separator(self):
        assert normalize_path(os.path.join("photos", "album") + os.sep) == os.path.join("photos", "album")


class TestFormatDisplayDate:
    def test_medium_style(self):
        assert format_display_date(datetime(2021, 1, 1)) == "Jan 1, 2021"

    def test_two_digit_day(self):
        assert format_display_date(datetime(2019, 12, 25, 18, 30)) == "Dec 25, 2019"

    def test_none_is_unknown(self):
        assert format_display_date(None) == DATE_UNKNOWN


class TestFormatCoordinate:
    def test_north_east(self):
        assert format_coordinate(48.8566, 2.3522) == "48.8566° N, 2.3522° E"

    def test_south_west(self):
        assert format_coordinate(-22.9068, -43.1729) == "22.9068° S, 43.1729° W"

    def test_precision(self):
        assert format_coordinate(35.6762, 139.6503, precision=1) == "35.7° N, 139.7° E"

    def test_equator_counts_as_north(self):
        assert format_coordinate(0.0, 10.0).startswith("0.0000° N")


class TestFormatCoordinateDms:
    def test_paris(self):
        assert format_coordinate_dms(48.8566, 2.3522) == "48° 51' 23\" N, 2° 21' 7\" E"

    def test_southern_hemisphere(self):
        assert format_coordinate_dms(-33.5, -70.25) == "33° 30' 0\" S, 70° 15' 0\" W"
