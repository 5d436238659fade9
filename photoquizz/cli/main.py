"""Command-line interface for PhotoQuizz."""

import argparse
import logging
import shutil
import sys
import threading
from dataclasses import replace
from functools import partial
from typing import List, Optional

from tqdm import tqdm

from photoquizz import __version__
from photoquizz.cli.wizard import run_wizard
from photoquizz.core.catalog import TakeoutCatalog
from photoquizz.core.errors import NoGeotaggedPhotos, NotAuthorized
from photoquizz.core.geocoding import GeocodingGateway, NominatimProvider
from photoquizz.core.library import PhotoLibraryService
from photoquizz.core.logger import SessionSummaryLogger, create_logger
from photoquizz.core.models import LocationReveal, PhotoItem
from photoquizz.core.orchestrator import MIN_RECOMMENDED_PHOTOS, SessionOrchestrator
from photoquizz.core.scheduler import LoopScheduler
from photoquizz.core.session import GamePhase, GameSession, SessionSnapshot
from photoquizz.core.settings import (
    RevealSpeed,
    SessionLength,
    SettingsService,
    SettingsStore,
    UserSettings,
    clamp_timer_duration,
)
from photoquizz.core.utils import exists, normalize_path


DESCRIPTION = """PhotoQuizz

Guess where your own photos were taken. Photos with location data are
revealed tile by tile; when the timer runs out (or you press Enter) the
place and date are shown.

Photos are read from an unpacked Google Photos Takeout export: every folder
is an album, and each photo's JSON sidecar supplies its location and date.
"""

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_NO_PHOTOS = 2
EXIT_INTERRUPTED = 130


def create_progress_callback(desc: str = "Scanning"):
    """Create a tqdm-based progress callback.

    Returns:
        Tuple of (callback function, tqdm instance).
    """
    pbar = tqdm(total=100, desc=desc)

    terminal_width = shutil.get_terminal_size().columns
    max_desc_width = max(20, min(80, terminal_width - 40))

    def callback(current: int, total: int, message: str):
        pbar.total = total
        pbar.n = current
        if len(message) > max_desc_width:
            message = message[:max_desc_width - 3] + "..."
        pbar.set_description(message)
        pbar.refresh()

    return callback, pbar


class TerminalDisplay:
    """Renders session snapshots as terminal text and a countdown bar."""

    def __init__(self, scheduler: LoopScheduler):
        self.scheduler = scheduler
        self.snapshot: Optional[SessionSnapshot] = None
        self._pbar: Optional[tqdm] = None
        self._shown_index = -1
        self._revealed_index = -1

    def _close_bar(self) -> None:
        if self._pbar is not None:
            self._pbar.close()
            self._pbar = None

    def on_change(self, snapshot: SessionSnapshot) -> None:
        self.snapshot = snapshot

        if snapshot.phase is GamePhase.REVEALING:
            if snapshot.current_index != self._shown_index:
                self._start_round(snapshot)
            self._pbar.n = self._pbar.total - snapshot.timer_remaining
            self._pbar.set_postfix_str(
                f"tiles {snapshot.revealed_count}/{GameSession.TOTAL_TILES}"
            )
            self._pbar.refresh()

        elif snapshot.phase is GamePhase.REVEALED:
            if snapshot.current_index != self._revealed_index:
                self._revealed_index = snapshot.current_index
                self._close_bar()
                tqdm.write("\nAnswer revealed. Looking up location...")

        else:
            self._close_bar()
            tqdm.write(f"\nSession complete! You viewed {snapshot.progress.current} of "
                       f"{snapshot.progress.total} photos.")
            self.scheduler.stop()

    def _start_round(self, snapshot: SessionSnapshot) -> None:
        self._close_bar()
        self._shown_index = snapshot.current_index
        photo = snapshot.current_photo
        current, total = snapshot.progress
        tqdm.write(f"\nPhoto {current} of {total}")
        if photo is not None and photo.asset.path:
            tqdm.write(f"  {photo.asset.path}")
        tqdm.write("Where was this photo taken?  [Enter] reveal answer, [q] quit")
        self._pbar = tqdm(
            total=snapshot.timer_remaining,
            desc="Time",
            bar_format="{desc}: {bar} {n_fmt}/{total_fmt}s {postfix}",
            leave=False,
        )

    def on_image(self, photo: PhotoItem, image: Optional[bytes]) -> None:
        if image is None:
            tqdm.write("  (image could not be loaded)")

    def on_reveal(self, reveal: LocationReveal) -> None:
        tqdm.write(f"  Location: {reveal.location_text}")
        if not reveal.is_offline:
            tqdm.write(f"            {reveal.coordinate_text}")
        else:
            tqdm.write("            (offline - place name unavailable)")
        tqdm.write(f"  Taken:    {reveal.display_date}")

        if self.snapshot is not None and self.snapshot.has_more_photos:
            tqdm.write("[Enter] next photo, [q] end session")
        else:
            tqdm.write("[Enter] finish")

    def close(self) -> None:
        self._close_bar()


def _read_commands(scheduler: LoopScheduler, orchestrator: SessionOrchestrator) -> None:
    """Forward keyboard commands onto the scheduler's context."""

    def handle(command: str) -> None:
        session = orchestrator.session
        if session is None:
            return
        if command in ("q", "quit", "exit"):
            orchestrator.end_session()
        elif session.phase is GamePhase.REVEALING:
            orchestrator.show_answer()
        elif session.phase is GamePhase.REVEALED:
            orchestrator.next_photo()

    def post(command: str) -> bool:
        try:
            scheduler.call_soon(partial(handle, command))
        except RuntimeError:
            # Event loop already closed
            return False
        return True

    for line in sys.stdin:
        if not post(line.strip().lower()):
            return
    post("quit")


def apply_overrides(settings: UserSettings, parsed: argparse.Namespace) -> UserSettings:
    """Layer command-line options over the saved settings."""
    overrides = {}
    if parsed.speed:
        overrides["reveal_speed"] = RevealSpeed(parsed.speed)
    if parsed.timer is not None:
        overrides["timer_duration"] = clamp_timer_duration(parsed.timer)
    if parsed.length:
        overrides["session_length"] = SessionLength(parsed.length)
    if parsed.album:
        overrides["selected_album_ids"] = frozenset(parsed.album)
    if not overrides:
        return settings
    return replace(settings, **overrides)


def save_overrides(service: SettingsService, settings: UserSettings) -> None:
    service.set_reveal_speed(settings.reveal_speed)
    service.set_timer_duration(settings.timer_duration)
    service.set_session_length(settings.session_length)
    service.set_selected_albums(settings.selected_album_ids)


def run_list_albums(library: PhotoLibraryService) -> int:
    """Print albums that contain geotagged photos."""
    albums = library.fetch_albums()
    if not albums:
        print("No albums with geotagged photos found.")
        return EXIT_NO_PHOTOS

    print(f"\n{len(albums)} album{'' if len(albums) == 1 else 's'} with geotagged photos:\n")
    for album in albums:
        print(f"  {album.title}  ({album.subtitle})")
        print(f"      id: {album.id}")
    return EXIT_OK


def run_dry_run(catalog: TakeoutCatalog, library: PhotoLibraryService, settings: UserSettings) -> int:
    """Report what a session would be played with."""
    print("\n=== DRY RUN MODE ===")
    print(f"Library: {catalog.root}\n")

    callback, pbar = create_progress_callback("Scanning")
    try:
        stats = catalog.get_stats(on_progress=callback)
        photos = library.fetch_geotagged_photos(settings.selected_album_ids)
    finally:
        pbar.close()

    print("\nFound:")
    print(f"  {stats['asset_count']} photos")
    print(f"  {stats['geotagged_count']} with location data")
    print(f"  {stats['album_count']} albums")

    if settings.selected_album_ids:
        print(f"\nSelected albums: {', '.join(sorted(settings.selected_album_ids))}")
    print(f"Playable photos: {len(photos)}")
    print(f"Session length:  {settings.session_length.display_name}")
    print(f"Reveal speed:    {settings.reveal_speed.display_name}")
    print(f"Timer:           {settings.timer_duration}s")

    if not photos:
        print("\nNo geotagged photos found. Add photos with location data to play.")
        return EXIT_NO_PHOTOS
    if len(photos) < MIN_RECOMMENDED_PHOTOS:
        print(f"\nOnly {len(photos)} geotagged photo{'' if len(photos) == 1 else 's'} found. "
              "Add more photos with location data for a better experience.")

    print("\n=== END DRY RUN ===")
    return EXIT_OK


def run_play(
    library: PhotoLibraryService,
    settings: UserSettings,
    offline: bool = False,
    log_dir: Optional[str] = None,
) -> int:
    """Play a session in the terminal."""
    callback, pbar = create_progress_callback("Loading photos")
    try:
        photos = library.fetch_geotagged_photos(
            settings.selected_album_ids,
            limit=settings.session_length.count,
            on_progress=callback,
        )
    finally:
        pbar.close()

    if not photos:
        print("No geotagged photos found. Add photos with location data to play.")
        return EXIT_NO_PHOTOS
    if len(photos) < MIN_RECOMMENDED_PHOTOS:
        print(f"Only {len(photos)} geotagged photo{'' if len(photos) == 1 else 's'} found. "
              "Add more photos with location data for a better experience.")

    scheduler = LoopScheduler()
    display = TerminalDisplay(scheduler)
    gateway = GeocodingGateway(None if offline else NominatimProvider())
    session_log = create_logger(log_dir, enabled=bool(log_dir))
    orchestrator = SessionOrchestrator(
        library,
        gateway,
        scheduler,
        session_log=session_log,
        summary_logger=SessionSummaryLogger(log_dir) if log_dir else None,
        on_change=display.on_change,
        on_reveal=display.on_reveal,
        on_image=display.on_image,
    )

    def start() -> None:
        try:
            display.on_change(orchestrator.start_session(photos, settings).snapshot())
        except NoGeotaggedPhotos as e:
            tqdm.write(str(e))
            scheduler.stop()

    reader = threading.Thread(target=_read_commands, args=(scheduler, orchestrator), daemon=True)
    scheduler.call_soon(start)
    reader.start()

    try:
        scheduler.run_forever()
    except KeyboardInterrupt:
        print("\n\nInterrupted!")
        return EXIT_INTERRUPTED
    finally:
        orchestrator.close()
        display.close()
        session_log.close()
        scheduler.close()

    if orchestrator.access_revoked:
        print("Photo library access was revoked.")
        return EXIT_ERROR
    if log_dir:
        print(f"\nLogs:\n  {log_dir}")
    return EXIT_OK


def parse_args(args: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        args: Arguments to parse (default: sys.argv[1:]).
    """
    parser = argparse.ArgumentParser(
        description=DESCRIPTION,
        formatter_class=argparse.RawTextHelpFormatter
    )

    parser.add_argument(
        "-V", "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    parser.add_argument(
        "-p", "--path",
        help="Directory containing the Google Photos takeout albums",
        type=str,
        default=None
    )

    parser.add_argument(
        "-a", "--album",
        action="append",
        help="Only play photos from this album id (repeatable; see --list-albums)",
        type=str,
        default=None
    )

    parser.add_argument(
        "--list-albums",
        help="List albums that contain geotagged photos",
        action="store_true"
    )

    parser.add_argument(
        "--dry-run",
        help="Show what would be played without starting a session",
        action="store_true"
    )

    parser.add_argument(
        "--speed",
        help="Tile reveal speed",
        choices=[s.value for s in RevealSpeed],
        default=None
    )

    parser.add_argument(
        "--timer",
        help="Seconds to guess each photo (10-120)",
        type=int,
        default=None
    )

    parser.add_argument(
        "--length",
        help="Photos per session",
        choices=[s.value for s in SessionLength],
        default=None
    )

    parser.add_argument(
        "--save-settings",
        help="Remember --speed/--timer/--length/--album for future sessions",
        action="store_true"
    )

    parser.add_argument(
        "--reset-settings",
        help="Forget saved settings and use the defaults",
        action="store_true"
    )

    parser.add_argument(
        "--config",
        help="Settings file to use instead of the per-user default",
        type=str,
        default=None
    )

    parser.add_argument(
        "--offline",
        help="Do not look up place names (coordinates only)",
        action="store_true"
    )

    parser.add_argument(
        "--log-dir",
        help="Write a session log and summary to this directory",
        type=str,
        default=None
    )

    parser.add_argument(
        "-v", "--verbose",
        help="Show debug logging",
        action="store_true"
    )

    return parser.parse_args(args)


def main(args: Optional[List[str]] = None) -> int:
    """Main entry point for CLI.

    Returns:
        Exit code (0 for success, non-zero for error).
    """
    parsed = parse_args(args)

    logging.basicConfig(
        level=logging.DEBUG if parsed.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    path = parsed.path
    if not path:
        path = run_wizard()
        if not path:
            return EXIT_ERROR
    path = normalize_path(path)

    if not exists(path):
        print(f"Error: Path does not exist: {path}")
        return EXIT_ERROR

    service = SettingsService(SettingsStore(normalize_path(parsed.config) if parsed.config else None))
    if parsed.reset_settings:
        service.reset_to_defaults()
    settings = apply_overrides(service.settings, parsed)
    if parsed.save_settings:
        save_overrides(service, settings)

    catalog = TakeoutCatalog(path)
    library = PhotoLibraryService(catalog)
    status = library.request_authorization()
    if not status.grants_access:
        print(f"Error: Cannot read photo library at {path} ({status.value})")
        return EXIT_ERROR

    log_dir = normalize_path(parsed.log_dir) if parsed.log_dir else None

    try:
        if parsed.list_albums:
            return run_list_albums(library)
        if parsed.dry_run:
            return run_dry_run(catalog, library, settings)
        return run_play(library, settings, offline=parsed.offline, log_dir=log_dir)
    except NotAuthorized as e:
        print(f"Error: {e}")
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
