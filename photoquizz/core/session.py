"""Game session state machine.

A session walks through its photos in three phases:

    revealing -> revealed -> revealing (next photo)
                          -> complete

Every mutator is a no-op outside the phase it applies to. UI timers race
with user input, so a late tick or tile reveal arriving after a transition
must be harmless rather than an error.
"""

import logging
import random
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Callable, FrozenSet, List, NamedTuple, Optional, Sequence, Set, Tuple

from photoquizz.core.models import PhotoItem
from photoquizz.core.settings import UserSettings

logger = logging.getLogger(__name__)


class GamePhase(str, Enum):
    REVEALING = "revealing"  # Tiles revealing, timer running
    REVEALED = "revealed"    # Answer shown
    COMPLETE = "complete"    # Session finished


class Progress(NamedTuple):
    current: int
    total: int


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view of a session, for rendering."""
    session_id: str
    phase: GamePhase
    current_index: int
    progress: Progress
    timer_remaining: int
    revealed_tiles: FrozenSet[int]
    current_photo: Optional[PhotoItem]
    has_more_photos: bool

    @property
    def revealed_count(self) -> int:
        return len(self.revealed_tiles)


# Called with a fresh snapshot after every state change
SessionListener = Callable[[SessionSnapshot], None]


class GameSession:
    """Mutable state for one play-through.

    Usage:
        session = GameSession(photos, settings)
        session.add_listener(render)

        session.reveal_next_tile()   # scheduled tile reveals
        session.tick()               # once per second
        session.show_answer()        # player asks for the answer
        session.next_photo()         # continue, or complete

    Mutators return True when they changed state and False when they were
    ignored because the session was in the wrong phase.
    """

    GRID_SIZE = 6
    TOTAL_TILES = GRID_SIZE * GRID_SIZE

    def __init__(
        self,
        photos: Sequence[PhotoItem],
        settings: UserSettings,
        rng: Optional[random.Random] = None,
        session_id: Optional[str] = None,
    ):
        """Initialize session.

        Args:
            photos: Photos to play. Shuffled once here and never again.
            settings: Settings snapshot for the whole session.
            rng: Random source for the shuffle and tile order (default: a
                fresh random.Random).
            session_id: Explicit id (default: a new UUID).
        """
        self.id = session_id or str(uuid.uuid4())
        self._rng = rng or random.Random()

        shuffled = list(photos)
        self._rng.shuffle(shuffled)
        self.photos: Tuple[PhotoItem, ...] = tuple(shuffled)
        self.settings = settings

        self._current_index = 0
        self._phase = GamePhase.REVEALING
        self._revealed_tiles: Set[int] = set()
        self._timer_remaining = settings.timer_duration
        self._listeners: List[SessionListener] = []

    # Read-only state

    @property
    def current_index(self) -> int:
        return self._current_index

    @property
    def phase(self) -> GamePhase:
        return self._phase

    @property
    def revealed_tiles(self) -> FrozenSet[int]:
        return frozenset(self._revealed_tiles)

    @property
    def timer_remaining(self) -> int:
        return self._timer_remaining

    @property
    def is_complete(self) -> bool:
        return self._phase is GamePhase.COMPLETE

    @property
    def current_photo(self) -> Optional[PhotoItem]:
        if 0 <= self._current_index < len(self.photos):
            return self.photos[self._current_index]
        return None

    @property
    def progress(self) -> Progress:
        """(current, total) where total honours the session-length cap."""
        cap = self.settings.session_length.count
        total = len(self.photos) if cap is None else min(cap, len(self.photos))
        return Progress(self._current_index + 1, total)

    @property
    def has_more_photos(self) -> bool:
        next_index = self._current_index + 1
        cap = self.settings.session_length.count
        if cap is not None and next_index >= cap:
            return False
        return next_index < len(self.photos)

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            session_id=self.id,
            phase=self._phase,
            current_index=self._current_index,
            progress=self.progress,
            timer_remaining=self._timer_remaining,
            revealed_tiles=frozenset(self._revealed_tiles),
            current_photo=self.current_photo,
            has_more_photos=self.has_more_photos,
        )

    # Notifications

    def add_listener(self, listener: SessionListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: SessionListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            listener(snapshot)

    # Game actions

    def reveal_next_tile(self) -> bool:
        """Reveal one random hidden tile.

        Revealing the last tile shows the answer, even if the countdown
        still has time left.
        """
        if self._phase is not GamePhase.REVEALING:
            return False

        hidden = sorted(set(range(self.TOTAL_TILES)) - self._revealed_tiles)
        if hidden:
            self._revealed_tiles.add(self._rng.choice(hidden))

        if len(self._revealed_tiles) >= self.TOTAL_TILES:
            logger.debug(f"All tiles revealed for photo {self._current_index + 1}")
            self._reveal_answer()

        self._notify()
        return True

    def show_answer(self) -> bool:
        """Skip the rest of the reveal and show the answer."""
        if self._phase is not GamePhase.REVEALING:
            return False
        self._reveal_answer()
        self._notify()
        return True

    def tick(self) -> bool:
        """Count down one second; reaching zero shows the answer."""
        if self._phase is not GamePhase.REVEALING or self._timer_remaining <= 0:
            return False

        self._timer_remaining -= 1
        if self._timer_remaining <= 0:
            logger.debug(f"Timer expired for photo {self._current_index + 1}")
            self._reveal_answer()

        self._notify()
        return True

    def next_photo(self) -> bool:
        """Advance to the next photo, or complete the session."""
        if self._phase is not GamePhase.REVEALED:
            return False

        if self.has_more_photos:
            self._current_index += 1
            self._phase = GamePhase.REVEALING
            self._revealed_tiles = set()
            self._timer_remaining = self.settings.timer_duration
        else:
            self._phase = GamePhase.COMPLETE
            logger.info(f"Session {self.id} complete")

        self._notify()
        return True

    def end_session(self) -> bool:
        """End the session early from any phase."""
        if self._phase is GamePhase.COMPLETE:
            return False
        self._phase = GamePhase.COMPLETE
        logger.info(f"Session {self.id} ended at photo {self._current_index + 1}")
        self._notify()
        return True

    def _reveal_answer(self) -> None:
        self._phase = GamePhase.REVEALED
        self._revealed_tiles = set(range(self.TOTAL_TILES))
