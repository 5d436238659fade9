"""File logs for PhotoQuizz sessions.

Two outputs, both optional:
- session_log.txt: timestamped event log (rounds, reveals, failures)
- summary.txt: short report written when a session finishes
"""

import os
import time
from typing import Optional, TextIO, Union

from photoquizz.core.models import SessionStats
from photoquizz.core.settings import UserSettings


class BufferedLogger:
    """Appending event log with context manager support.

    Usage:
        with BufferedLogger("/path/to/logs") as log:
            log.log("Session started")
            log.log("Photo 1 revealed (timer)")
    """

    def __init__(self, output_dir: str, filename: str = "session_log.txt"):
        """Initialize logger.

        Args:
            output_dir: Directory to write log file.
            filename: Name of log file (default: session_log.txt).
        """
        self.output_dir = output_dir
        self.filename = filename
        self.filepath = os.path.join(output_dir, filename)
        self._handle: Optional[TextIO] = None

    def _open(self) -> None:
        """Open the log file lazily, on first message."""
        if self._handle is None:
            os.makedirs(self.output_dir, exist_ok=True)
            self._handle = open(self.filepath, "a", encoding="utf-8")

    def log(self, message: str) -> None:
        """Write a timestamped line."""
        self._open()
        timestamp = time.strftime("%Y-%m-%d %H:%M:%S")
        self._handle.write(f"{timestamp} - {message}\n")

    def flush(self) -> None:
        if self._handle:
            self._handle.flush()

    def close(self) -> None:
        if self._handle:
            self._handle.close()
            self._handle = None

    def __enter__(self) -> "BufferedLogger":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @property
    def is_open(self) -> bool:
        return self._handle is not None


class NullLogger:
    """A logger that does nothing - used when file logging is disabled."""

    def log(self, message: str) -> None:
        pass

    def flush(self) -> None:
        pass

    def close(self) -> None:
        pass

    def __enter__(self) -> "NullLogger":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        pass

    @property
    def is_open(self) -> bool:
        return True


EventLogger = Union[BufferedLogger, NullLogger]


def create_logger(output_dir: Optional[str], enabled: bool = True) -> EventLogger:
    """Create an event logger.

    Args:
        output_dir: Directory for the log file.
        enabled: If False (or no directory is given), returns a NullLogger.
    """
    if enabled and output_dir:
        return BufferedLogger(output_dir)
    return NullLogger()


def _format_duration(elapsed_time: float) -> str:
    if elapsed_time >= 60:
        minutes = int(elapsed_time // 60)
        seconds = int(elapsed_time % 60)
        return f"{minutes}m {seconds}s"
    return f"{elapsed_time:.1f}s"


class SessionSummaryLogger:
    """Writes summary.txt for a finished session."""

    def __init__(self, output_dir: str, filename: str = "summary.txt"):
        self.output_dir = output_dir
        self.filepath = os.path.join(output_dir, filename)

    def write_summary(
        self,
        session_id: str,
        stats: SessionStats,
        settings: UserSettings,
        elapsed_time: float,
        start_time: str,
        end_time: str,
    ) -> str:
        """Write the session summary.

        Returns:
            Path to summary file.
        """
        os.makedirs(self.output_dir, exist_ok=True)

        with open(self.filepath, "w", encoding="utf-8") as f:
            f.write("PhotoQuizz - Session Summary\n")
            f.write("=" * 40 + "\n\n")
            f.write(f"Session:   {session_id}\n")
            f.write(f"Started:   {start_time}\n")
            f.write(f"Ended:     {end_time}\n")
            f.write(f"Duration:  {_format_duration(elapsed_time)}\n\n")

            f.write(f"Reveal speed:    {settings.reveal_speed.display_name}\n")
            f.write(f"Timer:           {settings.timer_duration}s\n")
            f.write(f"Session length:  {settings.session_length.display_name}\n\n")

            f.write(f"Photos available:    {stats.photos_available:,}\n")
            f.write(f"Photos played:       {stats.rounds_started:,}\n")
            f.write(f"  Answered by timer: {stats.revealed_by_timer:,}\n")
            f.write(f"  Fully revealed:    {stats.revealed_by_tiles:,}\n")
            f.write(f"  Revealed early:    {stats.revealed_manually:,}\n")

            if stats.offline_reveals > 0:
                f.write(f"Offline reveals:     {stats.offline_reveals:,}  (coordinates only)\n")
            if stats.load_failures > 0:
                f.write(f"Load failures:       {stats.load_failures:,}\n")
            if stats.access_revoked:
                f.write("\nSession stopped: photo library access was revoked.\n")
            elif stats.ended_early:
                f.write("\nSession ended early.\n")

        return self.filepath
