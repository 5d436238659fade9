"""User settings and their persistence.

Settings are stored as a single JSON record under a fixed application key
in a per-user config file. Writes are atomic so an interrupted save never
leaves a truncated file behind.
"""

import logging
import os
import tempfile
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, ClassVar, Dict, FrozenSet, Iterable, Optional

import orjson

logger = logging.getLogger(__name__)

SETTINGS_KEY = "com.photoquizz.settings"
CONFIG_DIR_ENV = "PHOTOQUIZZ_CONFIG_DIR"

MIN_TIMER_DURATION = 10
MAX_TIMER_DURATION = 120


class RevealSpeed(str, Enum):
    """How long the full tile reveal takes."""
    SLOW = "slow"
    MEDIUM = "medium"
    FAST = "fast"

    @property
    def duration(self) -> float:
        """Total reveal duration in seconds."""
        return _REVEAL_DURATIONS[self]

    @property
    def display_name(self) -> str:
        return f"{self.value.capitalize()} ({int(self.duration)}s)"


_REVEAL_DURATIONS = {
    RevealSpeed.SLOW: 15.0,
    RevealSpeed.MEDIUM: 10.0,
    RevealSpeed.FAST: 5.0,
}


class SessionLength(str, Enum):
    """Number of photos in a session. ENDLESS has no cap."""
    FIVE = "5"
    TEN = "10"
    TWENTY = "20"
    ENDLESS = "endless"

    @property
    def count(self) -> Optional[int]:
        if self is SessionLength.ENDLESS:
            return None
        return int(self.value)

    @property
    def display_name(self) -> str:
        if self.count is None:
            return "Endless"
        return f"{self.count} Photos"


def clamp_timer_duration(seconds: int) -> int:
    """Clamp a timer duration into the supported range."""
    return max(MIN_TIMER_DURATION, min(MAX_TIMER_DURATION, int(seconds)))


@dataclass(frozen=True)
class UserSettings:
    """Persisted game configuration. Immutable; use dataclasses.replace()."""
    reveal_speed: RevealSpeed = RevealSpeed.MEDIUM
    timer_duration: int = 30
    session_length: SessionLength = SessionLength.TEN
    selected_album_ids: FrozenSet[str] = frozenset()

    DEFAULTS: ClassVar["UserSettings"]

    def __post_init__(self):
        # Frozen, so assign through object.__setattr__
        object.__setattr__(self, "timer_duration", clamp_timer_duration(self.timer_duration))

    @property
    def is_timer_duration_valid(self) -> bool:
        return MIN_TIMER_DURATION <= self.timer_duration <= MAX_TIMER_DURATION

    def to_dict(self) -> Dict[str, Any]:
        """Serialize using the stored record schema."""
        return {
            "revealSpeed": self.reveal_speed.value,
            "timerDuration": self.timer_duration,
            "sessionLength": self.session_length.value,
            "selectedAlbumIds": sorted(self.selected_album_ids),
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["UserSettings"]:
        """Create from a stored record, or None if the record is unusable.

        Unknown enum values fall back to the default for that field, and the
        timer duration is clamped into range.
        """
        if not isinstance(data, dict):
            return None

        defaults = cls.DEFAULTS
        try:
            reveal_speed = RevealSpeed(data.get("revealSpeed", defaults.reveal_speed.value))
        except ValueError:
            reveal_speed = defaults.reveal_speed
        try:
            session_length = SessionLength(
                str(data.get("sessionLength", defaults.session_length.value))
            )
        except ValueError:
            session_length = defaults.session_length

        timer = data.get("timerDuration", defaults.timer_duration)
        if isinstance(timer, bool) or not isinstance(timer, (int, float)):
            timer = defaults.timer_duration

        album_ids = data.get("selectedAlbumIds") or []
        if not isinstance(album_ids, list):
            album_ids = []

        return cls(
            reveal_speed=reveal_speed,
            timer_duration=clamp_timer_duration(timer),
            session_length=session_length,
            selected_album_ids=frozenset(str(a) for a in album_ids),
        )


UserSettings.DEFAULTS = UserSettings()


def default_config_dir() -> str:
    """Get the per-user config directory for PhotoQuizz."""
    override = os.environ.get(CONFIG_DIR_ENV)
    if override:
        return override
    if os.name == "nt":  # Windows
        base = os.environ.get("APPDATA", os.path.expanduser("~"))
    else:  # macOS/Linux
        base = os.environ.get("XDG_CONFIG_HOME", os.path.expanduser("~/.config"))
    return os.path.join(base, "photoquizz")


class SettingsStore:
    """Reads and writes the settings record.

    Usage:
        store = SettingsStore()
        settings = store.load() or UserSettings.DEFAULTS
        store.save(replace(settings, timer_duration=45))
        store.clear()
    """

    FILENAME = "settings.json"

    def __init__(self, config_path: Optional[str] = None):
        """Initialize store.

        Args:
            config_path: Settings file path (default: settings.json in the
                per-user config directory).
        """
        self.config_path = config_path or os.path.join(default_config_dir(), self.FILENAME)

    def load(self) -> Optional[UserSettings]:
        """Load saved settings.

        Returns:
            Saved settings, or None if nothing usable is stored.
        """
        document = self._read()
        return UserSettings.from_dict(document.get(SETTINGS_KEY))

    def save(self, settings: UserSettings) -> None:
        """Persist settings. Failures are logged, not raised."""
        document = self._read()
        document[SETTINGS_KEY] = settings.to_dict()
        self._write(document)

    def clear(self) -> None:
        """Remove the stored settings record."""
        document = self._read()
        if document.pop(SETTINGS_KEY, None) is None:
            return
        if document:
            self._write(document)
            return
        try:
            os.unlink(self.config_path)
        except OSError as e:
            logger.warning(f"Failed to remove settings file {self.config_path}: {e}")

    def _read(self) -> Dict[str, Any]:
        if not os.path.exists(self.config_path):
            return {}
        try:
            with open(self.config_path, "rb") as f:
                document = orjson.loads(f.read())
        except (OSError, orjson.JSONDecodeError) as e:
            logger.warning(f"Failed to read settings file {self.config_path}: {e}")
            return {}
        if not isinstance(document, dict):
            logger.warning(f"Ignoring malformed settings file {self.config_path}")
            return {}
        return document

    def _write(self, document: Dict[str, Any]) -> None:
        """Write the settings document atomically.

        Writes to a temporary file in the same directory, then replaces the
        target via os.replace().
        """
        config_dir = os.path.dirname(self.config_path) or "."
        try:
            os.makedirs(config_dir, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=config_dir, suffix=".tmp", prefix=".settings_")
            try:
                with open(fd, "wb") as f:
                    f.write(orjson.dumps(document, option=orjson.OPT_INDENT_2))
                os.replace(tmp_path, self.config_path)
            except BaseException:
                try:
                    os.unlink(tmp_path)
                except OSError:
                    pass
                raise
        except OSError as e:
            logger.warning(f"Failed to save settings to {self.config_path}: {e}")


class SettingsService:
    """Holds the current settings and persists every change.

    Usage:
        service = SettingsService(SettingsStore())
        service.set_timer_duration(200)   # stored as 120
        service.toggle_album("Trips/Italy")
    """

    def __init__(self, store: Optional[SettingsStore] = None):
        self.store = store or SettingsStore()
        self._settings = self.store.load() or UserSettings.DEFAULTS

    @property
    def settings(self) -> UserSettings:
        """Current settings snapshot."""
        return self._settings

    def _update(self, **changes: Any) -> None:
        self._settings = replace(self._settings, **changes)
        self.store.save(self._settings)

    def set_reveal_speed(self, speed: RevealSpeed) -> None:
        self._update(reveal_speed=RevealSpeed(speed))

    def set_timer_duration(self, seconds: int) -> None:
        """Update timer duration, clamped to 10-120 seconds."""
        self._update(timer_duration=clamp_timer_duration(seconds))

    def set_session_length(self, length: SessionLength) -> None:
        self._update(session_length=SessionLength(length))

    def set_selected_albums(self, album_ids: Iterable[str]) -> None:
        self._update(selected_album_ids=frozenset(album_ids))

    def add_album(self, album_id: str) -> None:
        self._update(selected_album_ids=self._settings.selected_album_ids | {album_id})

    def remove_album(self, album_id: str) -> None:
        self._update(selected_album_ids=self._settings.selected_album_ids - {album_id})

    def toggle_album(self, album_id: str) -> None:
        if album_id in self._settings.selected_album_ids:
            self.remove_album(album_id)
        else:
            self.add_album(album_id)

    def reset_to_defaults(self) -> None:
        """Restore defaults and drop the stored record."""
        self._settings = UserSettings.DEFAULTS
        self.store.clear()
