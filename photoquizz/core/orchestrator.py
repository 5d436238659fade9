"""High-level orchestrator for PhotoQuizz sessions.

Connects a GameSession to its two clocks (a one-second countdown tick and
a schedule of tile reveals) and to the slow calls that feed it (image
loading, reverse geocoding). All session mutation happens on the
scheduler's context; slow calls run on an executor and hand their results
back through Scheduler.call_soon().
"""

import logging
import random
import time
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Callable, List, Optional, Sequence, Tuple

from photoquizz.core.errors import AccessRevoked, NoGeotaggedPhotos
from photoquizz.core.geocoding import GeocodingGateway
from photoquizz.core.library import DEFAULT_TARGET_SIZE, PhotoLibraryService
from photoquizz.core.logger import EventLogger, NullLogger, SessionSummaryLogger
from photoquizz.core.models import (
    LoadingObserver,
    LocationReveal,
    PhotoItem,
    RevealCause,
    SessionStats,
)
from photoquizz.core.scheduler import Scheduler, TimerHandle
from photoquizz.core.session import GamePhase, GameSession, SessionSnapshot
from photoquizz.core.settings import UserSettings

logger = logging.getLogger(__name__)

# Below this many photos the game still runs, but the player is warned
MIN_RECOMMENDED_PHOTOS = 5
TICK_INTERVAL = 1.0


class SessionOrchestrator:
    """Drives one GameSession at a time.

    Usage:
        orchestrator = SessionOrchestrator(
            library=PhotoLibraryService(catalog),
            geocoder=GeocodingGateway(NominatimProvider()),
            scheduler=LoopScheduler(),
            on_change=render,
        )
        orchestrator.start_session(photos, settings)
        ...
        orchestrator.show_answer()
        orchestrator.next_photo()

        # App backgrounded / foregrounded
        orchestrator.suspend()
        orchestrator.resume()

        orchestrator.close()

    Results of image loads and lookups that finish after the photo (or the
    whole session) they were started for has moved on are discarded.
    """

    def __init__(
        self,
        library: PhotoLibraryService,
        geocoder: GeocodingGateway,
        scheduler: Scheduler,
        executor: Optional[Executor] = None,
        session_log: Optional[EventLogger] = None,
        summary_logger: Optional[SessionSummaryLogger] = None,
        rng: Optional[random.Random] = None,
        loading_observer: Optional[LoadingObserver] = None,
        target_size: Tuple[int, int] = DEFAULT_TARGET_SIZE,
        on_change: Optional[Callable[[SessionSnapshot], None]] = None,
        on_reveal: Optional[Callable[[LocationReveal], None]] = None,
        on_image: Optional[Callable[[PhotoItem, Optional[bytes]], None]] = None,
        on_access_revoked: Optional[Callable[[AccessRevoked], None]] = None,
    ):
        """Initialize orchestrator.

        Args:
            library: Photo library used to load images and recheck access.
            geocoder: Gateway resolving the answer location.
            scheduler: Serialized context all callbacks run on.
            executor: Runs image loads and lookups (default: a private
                two-thread pool, shut down by close()).
            session_log: Event log (default: disabled).
            summary_logger: Writes summary.txt when a session finishes.
            rng: Random source for photo shuffle and tile order.
            loading_observer: Told when each image load starts and ends. Both
                calls run in the scheduler's context, never on the executor.
            target_size: Image size requested from the library.
            on_change: Called with a snapshot after every session change.
            on_reveal: Called when the location for the current photo arrives.
            on_image: Called when the current photo's image arrives (None on
                failure).
            on_access_revoked: Called when a recheck finds access gone.
        """
        self.library = library
        self.geocoder = geocoder
        self.scheduler = scheduler
        self._owns_executor = executor is None
        self.executor = executor or ThreadPoolExecutor(
            max_workers=2, thread_name_prefix="photoquizz"
        )
        self.session_log = session_log or NullLogger()
        self.summary_logger = summary_logger
        self._rng = rng
        self.loading_observer = loading_observer
        self.target_size = target_size
        self.on_change = on_change
        self.on_reveal = on_reveal
        self.on_image = on_image
        self.on_access_revoked = on_access_revoked

        self._session: Optional[GameSession] = None
        self._generation = 0
        self._tick_handle: Optional[TimerHandle] = None
        self._tile_handles: List[TimerHandle] = []
        self._last_phase: Optional[GamePhase] = None
        self._pending_cause: Optional[RevealCause] = None
        self._paused = False
        self._access_revoked = False
        self._summary_written = False
        self._started_at = 0.0
        self._start_date = ""

        self.location_reveal: Optional[LocationReveal] = None
        self.current_image: Optional[bytes] = None
        self.is_loading_image = False
        self.reduced_content = False
        self.stats = SessionStats()

    # Read-only state

    @property
    def session(self) -> Optional[GameSession]:
        return self._session

    @property
    def is_paused(self) -> bool:
        return self._paused

    @property
    def access_revoked(self) -> bool:
        return self._access_revoked

    def snapshot(self) -> Optional[SessionSnapshot]:
        return self._session.snapshot() if self._session else None

    # Session lifecycle

    def start_session(self, photos: Sequence[PhotoItem], settings: UserSettings) -> GameSession:
        """Create a session and start revealing its first photo.

        Any previous session is torn down first.

        Raises:
            NoGeotaggedPhotos: photos is empty.
        """
        self.teardown()
        if not photos:
            raise NoGeotaggedPhotos()

        self.reduced_content = len(photos) < MIN_RECOMMENDED_PHOTOS
        if self.reduced_content:
            logger.warning(
                f"Only {len(photos)} geotagged photo{'' if len(photos) == 1 else 's'} found; "
                "add more photos with location data for a better experience"
            )

        session = GameSession(photos, settings, rng=self._rng)
        self._session = session
        self._paused = False
        self._access_revoked = False
        self._summary_written = False
        self._last_phase = session.phase
        self.stats = SessionStats(photos_available=len(session.photos))
        self._started_at = time.time()
        self._start_date = time.strftime("%Y-%m-%d %H:%M:%S")

        session.add_listener(self._on_session_change)
        logger.info(f"Session {session.id} started ({session.progress.total} photos)")
        self.session_log.log(f"Session {session.id} started with {len(session.photos)} photos")

        self._begin_photo()
        return session

    def show_answer(self) -> bool:
        if self._session is None:
            return False
        self._pending_cause = RevealCause.MANUAL
        try:
            return self._session.show_answer()
        finally:
            self._pending_cause = None

    def next_photo(self) -> bool:
        if self._session is None:
            return False
        return self._session.next_photo()

    def end_session(self) -> bool:
        if self._session is None:
            return False
        return self._session.end_session()

    def teardown(self) -> None:
        """Stop all triggers and drop the current session.

        Work still in flight for it is ignored when it completes.
        """
        session = self._session
        if session is None:
            return
        self._cancel_triggers()
        self._generation += 1
        session.remove_listener(self._on_session_change)
        if not session.is_complete:
            self.stats.ended_early = True
        self._finish(session)

        self._session = None
        self._last_phase = None
        self._paused = False
        self.location_reveal = None
        self.current_image = None
        self.is_loading_image = False

    def close(self) -> None:
        """Tear down and release the executor if this orchestrator created it."""
        self.teardown()
        if self._owns_executor:
            self.executor.shutdown(wait=False, cancel_futures=True)

    # Suspension and access

    def suspend(self) -> None:
        """Pause all triggers, e.g. while the app is in the background."""
        if self._session is None or self._paused:
            return
        self._paused = True
        self._cancel_triggers()
        logger.debug("Session suspended")
        self.session_log.log("Session suspended")

    def resume(self) -> bool:
        """Restart triggers after suspend().

        The countdown restarts a full second after resuming, so time spent
        suspended is not deducted. Access is rechecked first.

        Returns:
            True if the session resumed, False if it was not suspended or
            access has been revoked.
        """
        if self._session is None or not self._paused:
            return False
        self._paused = False
        if not self.check_access():
            return False

        session = self._session
        if session.phase is GamePhase.REVEALING:
            hidden = GameSession.TOTAL_TILES - len(session.revealed_tiles)
            self._start_triggers(hidden, resumed=True)
        self.session_log.log("Session resumed")
        return True

    def check_access(self) -> bool:
        """Recheck library access; end the session if it is gone.

        Returns:
            True if access is still granted.
        """
        if self._session is None or self.library.is_authorized:
            return True
        self._revoke_access()
        return False

    def _revoke_access(self) -> None:
        logger.warning("Photo library access revoked; ending session")
        self._cancel_triggers()
        self._access_revoked = True
        self.stats.access_revoked = True
        self.session_log.log("Photo library access revoked")
        self._session.end_session()
        if self.on_access_revoked:
            self.on_access_revoked(AccessRevoked())

    # Triggers

    def _is_live(self, generation: int) -> bool:
        return self._session is not None and generation == self._generation

    def _cancel_triggers(self) -> None:
        for handle in self._tile_handles:
            handle.cancel()
        self._tile_handles = []
        if self._tick_handle is not None:
            self._tick_handle.cancel()
            self._tick_handle = None

    def _start_triggers(self, tiles: int, resumed: bool = False) -> None:
        """Schedule the countdown and the tile reveals for the current photo.

        A fresh photo reveals its first tile immediately; after a resume the
        next tile waits one interval.
        """
        self._cancel_triggers()
        generation = self._generation
        interval = self._session.settings.reveal_speed.duration / GameSession.TOTAL_TILES
        offset = interval if resumed else 0.0

        self._tile_handles = [
            self.scheduler.call_later(offset + interval * i, lambda: self._on_tile(generation))
            for i in range(tiles)
        ]
        self._schedule_tick(generation)

    def _schedule_tick(self, generation: int) -> None:
        self._tick_handle = self.scheduler.call_later(
            TICK_INTERVAL, lambda: self._on_tick(generation)
        )

    def _on_tick(self, generation: int) -> None:
        if not self._is_live(generation) or self._paused:
            return
        self._tick_handle = None
        self._pending_cause = RevealCause.TIMER
        try:
            self._session.tick()
        finally:
            self._pending_cause = None
        if self._is_live(generation) and self._session.phase is GamePhase.REVEALING:
            self._schedule_tick(generation)

    def _on_tile(self, generation: int) -> None:
        if not self._is_live(generation) or self._paused:
            return
        self._pending_cause = RevealCause.TILES
        try:
            self._session.reveal_next_tile()
        finally:
            self._pending_cause = None

    # Session events

    def _on_session_change(self, snapshot: SessionSnapshot) -> None:
        previous = self._last_phase
        self._last_phase = snapshot.phase

        if previous is GamePhase.REVEALING and snapshot.phase is not GamePhase.REVEALING:
            self._cancel_triggers()
            if snapshot.phase is GamePhase.REVEALED:
                cause = self._pending_cause or RevealCause.MANUAL
                self.stats.record_reveal(cause)
                self.session_log.log(
                    f"Photo {snapshot.progress.current} revealed ({cause.value})"
                )
                self._resolve_location(snapshot.current_photo)
        elif previous is GamePhase.REVEALED and snapshot.phase is GamePhase.REVEALING:
            self._begin_photo()

        if snapshot.phase is GamePhase.COMPLETE and previous is not GamePhase.COMPLETE:
            self._generation += 1
            if previous is GamePhase.REVEALING or snapshot.has_more_photos:
                self.stats.ended_early = True
            self._finish(self._session)

        if self.on_change:
            self.on_change(snapshot)

    def _begin_photo(self) -> None:
        session = self._session
        self._generation += 1
        self.location_reveal = None
        self.current_image = None
        self.stats.rounds_started += 1

        photo = session.current_photo
        progress = session.progress
        logger.debug(f"Photo {progress.current}/{progress.total}: {photo.id}")
        self.session_log.log(f"Photo {progress.current}/{progress.total}: {photo.id}")

        self._start_triggers(GameSession.TOTAL_TILES)
        self._load_image(photo)

    def _finish(self, session: GameSession) -> None:
        if self._summary_written:
            return
        self._summary_written = True
        self.session_log.log(
            f"Session {session.id} finished after {self.stats.rounds_started} photos"
        )
        self.session_log.flush()
        if self.summary_logger:
            path = self.summary_logger.write_summary(
                session_id=session.id,
                stats=self.stats,
                settings=session.settings,
                elapsed_time=round(time.time() - self._started_at, 1),
                start_time=self._start_date,
                end_time=time.strftime("%Y-%m-%d %H:%M:%S"),
            )
            logger.info(f"Session summary written to {path}")

    # Background work

    def _deliver(self, future: Future, apply: Callable[[Future], None]) -> None:
        """Hand a finished future back to the scheduler's context."""
        try:
            self.scheduler.call_soon(lambda: apply(future))
        except RuntimeError as e:
            # Scheduler already closed, nobody is left to show the result
            logger.debug(f"Dropping background result: {e}")

    def _load_image(self, photo: PhotoItem) -> None:
        generation = self._generation
        self.is_loading_image = True
        if self.loading_observer:
            self.loading_observer.on_load_start()
        future = self.executor.submit(self.library.load_image, photo, self.target_size)
        future.add_done_callback(
            lambda f: self._deliver(f, lambda done: self._apply_image(generation, photo, done))
        )

    def _apply_image(self, generation: int, photo: PhotoItem, future: Future) -> None:
        if self.loading_observer:
            self.loading_observer.on_load_end()
        if not self._is_live(generation) or future.cancelled():
            logger.debug(f"Discarding stale image for {photo.id}")
            return

        self.is_loading_image = False
        error = future.exception()
        if error is not None:
            self.stats.load_failures += 1
            logger.warning(f"Image unavailable for {photo.id}: {error}")
            self.session_log.log(f"Load failed: {photo.id}")
            image = None
        else:
            image = future.result()

        self.current_image = image
        if self.on_image:
            self.on_image(photo, image)

    def _resolve_location(self, photo: Optional[PhotoItem]) -> None:
        if photo is None:
            return
        generation = self._generation
        future = self.executor.submit(self.geocoder.resolve, photo.coordinate, photo.capture_date)
        future.add_done_callback(
            lambda f: self._deliver(f, lambda done: self._apply_location(generation, photo, done))
        )

    def _apply_location(self, generation: int, photo: PhotoItem, future: Future) -> None:
        if not self._is_live(generation) or future.cancelled():
            logger.debug(f"Discarding stale location for {photo.id}")
            return

        error = future.exception()
        if error is not None:
            logger.warning(f"Location lookup failed for {photo.id}: {error}")
            reveal = LocationReveal.offline(photo.coordinate, photo.capture_date)
        else:
            reveal = future.result()

        self.location_reveal = reveal
        if reveal.is_offline:
            self.stats.offline_reveals += 1
        self.session_log.log(f"Location: {reveal.location_text} ({reveal.display_date})")
        if self.on_reveal:
            self.on_reveal(reveal)
