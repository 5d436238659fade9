"""Tests for photoquizz.core.session module."""

import random

import pytest

from photoquizz.core.session import GamePhase, GameSession, Progress
from photoquizz.core.settings import SessionLength, UserSettings


def make_session(photos, length=SessionLength.TEN, timer=30, seed=7):
    settings = UserSettings(timer_duration=timer, session_length=length)
    return GameSession(photos, settings, rng=random.Random(seed))


def state(session):
    return (session.phase, session.current_index, session.revealed_tiles, session.timer_remaining)


class TestGameSessionInit:
    """Tests for a freshly created session."""

    def test_initial_state(self, photos):
        session = make_session(photos)

        assert session.phase is GamePhase.REVEALING
        assert session.current_index == 0
        assert session.revealed_tiles == frozenset()
        assert session.timer_remaining == 30
        assert not session.is_complete

    def test_photos_are_shuffled_copy(self, photos):
        session = make_session(photos)

        assert sorted(p.id for p in session.photos) == sorted(p.id for p in photos)
        assert isinstance(session.photos, tuple)

    def test_same_seed_same_order(self, photos):
        first = make_session(photos, seed=3)
        second = make_session(photos, seed=3)

        assert [p.id for p in first.photos] == [p.id for p in second.photos]

    def test_session_ids_are_unique(self, photos):
        assert make_session(photos).id != make_session(photos).id

    def test_explicit_session_id(self, photos):
        session = GameSession(photos, UserSettings.DEFAULTS, session_id="abc")
        assert session.id == "abc"

    def test_current_photo(self, photos):
        session = make_session(photos)
        assert session.current_photo == session.photos[0]


class TestProgress:
    """Tests for progress and has_more_photos."""

    @pytest.mark.parametrize("count,expected", [(3, 3), (5, 5), (8, 5)])
    def test_five_caps_total(self, make_photo, count, expected):
        photos = [make_photo(f"p{i}") for i in range(count)]
        session = make_session(photos, SessionLength.FIVE)

        assert session.progress == Progress(1, expected)

    def test_endless_uses_all_photos(self, make_photo):
        photos = [make_photo(f"p{i}") for i in range(25)]
        session = make_session(photos, SessionLength.ENDLESS)

        assert session.progress.total == 25

    def test_has_more_photos_respects_cap(self, make_photo):
        photos = [make_photo(f"p{i}") for i in range(8)]
        session = make_session(photos, SessionLength.FIVE)

        for _ in range(4):
            assert session.has_more_photos
            session.show_answer()
            session.next_photo()

        assert session.progress == Progress(5, 5)
        assert not session.has_more_photos

    def test_single_photo_has_no_more(self, make_photo):
        assert not make_session([make_photo("only")]).has_more_photos


class TestRevealNextTile:
    """Tests for reveal_next_tile()."""

    def test_reveals_one_new_tile(self, photos):
        session = make_session(photos)

        assert session.reveal_next_tile() is True
        assert len(session.revealed_tiles) == 1
        assert all(0 <= t < GameSession.TOTAL_TILES for t in session.revealed_tiles)

    def test_monotonic_and_bounded(self, photos):
        session = make_session(photos)
        sizes = []
        while session.phase is GamePhase.REVEALING:
            session.reveal_next_tile()
            sizes.append(len(session.revealed_tiles))

        assert sizes == sorted(sizes)
        assert max(sizes) == GameSession.TOTAL_TILES

    def test_thirty_six_reveals_show_answer(self, photos):
        session = make_session(photos)
        for i in range(GameSession.TOTAL_TILES):
            assert session.phase is GamePhase.REVEALING
            assert session.reveal_next_tile() is True
            assert len(session.revealed_tiles) == i + 1

        assert session.phase is GamePhase.REVEALED
        assert session.revealed_tiles == frozenset(range(36))
        assert session.timer_remaining == 30

    def test_ignored_after_reveal(self, photos):
        session = make_session(photos)
        session.show_answer()
        before = state(session)

        assert session.reveal_next_tile() is False
        assert state(session) == before

    def test_tile_order_follows_rng(self, photos):
        first = make_session(photos, seed=11)
        second = make_session(photos, seed=11)
        for _ in range(10):
            first.reveal_next_tile()
            second.reveal_next_tile()

        assert first.revealed_tiles == second.revealed_tiles


class TestTick:
    """Tests for tick()."""

    def test_decrements(self, photos):
        session = make_session(photos)

        assert session.tick() is True
        assert session.timer_remaining == 29
        assert session.phase is GamePhase.REVEALING

    def test_timer_duration_ticks_reveal(self, photos):
        session = make_session(photos, timer=10)
        for _ in range(4):
            session.reveal_next_tile()
        for _ in range(10):
            session.tick()

        assert session.timer_remaining == 0
        assert session.phase is GamePhase.REVEALED
        assert len(session.revealed_tiles) == 36

    def test_zero_timer_still_counts_down(self, photos):
        session = GameSession(photos, UserSettings(timer_duration=0), rng=random.Random(7))

        assert session.timer_remaining == 10
        for _ in range(10):
            assert session.tick() is True
        assert session.phase is GamePhase.REVEALED

    def test_ignored_when_revealed(self, photos):
        session = make_session(photos, timer=10)
        for _ in range(10):
            session.tick()
        before = state(session)

        assert session.tick() is False
        assert state(session) == before
        assert session.timer_remaining == 0


class TestShowAnswer:
    """Tests for show_answer()."""

    @pytest.mark.parametrize("partial", [0, 1, 17, 35])
    def test_always_reveals_all_tiles(self, photos, partial):
        session = make_session(photos)
        for _ in range(partial):
            session.reveal_next_tile()

        assert session.show_answer() is True
        assert session.phase is GamePhase.REVEALED
        assert len(session.revealed_tiles) == 36

    def test_keeps_remaining_time(self, photos):
        session = make_session(photos)
        session.tick()
        session.show_answer()

        assert session.timer_remaining == 29

    def test_ignored_when_not_revealing(self, photos):
        session = make_session(photos)
        session.show_answer()

        assert session.show_answer() is False


class TestNextPhoto:
    """Tests for next_photo()."""

    def test_advances_and_resets(self, photos):
        session = make_session(photos)
        for _ in range(5):
            session.tick()
        session.show_answer()

        assert session.next_photo() is True
        assert session.current_index == 1
        assert session.phase is GamePhase.REVEALING
        assert session.revealed_tiles == frozenset()
        assert session.timer_remaining == 30

    def test_ignored_while_revealing(self, photos):
        session = make_session(photos)
        before = state(session)

        assert session.next_photo() is False
        assert state(session) == before

    def test_last_photo_completes(self, make_photo):
        session = make_session([make_photo("only")])
        session.show_answer()

        assert session.next_photo() is True
        assert session.phase is GamePhase.COMPLETE
        assert session.is_complete

    def test_mutators_ignored_after_complete(self, make_photo):
        session = make_session([make_photo("only")])
        session.show_answer()
        session.next_photo()
        before = state(session)

        assert session.reveal_next_tile() is False
        assert session.tick() is False
        assert session.show_answer() is False
        assert session.next_photo() is False
        assert session.end_session() is False
        assert state(session) == before

    def test_three_photo_session_of_five(self, make_photo):
        session = make_session([make_photo("A"), make_photo("B"), make_photo("C")], SessionLength.FIVE)
        assert session.progress.total == 3

        session.show_answer()
        session.next_photo()
        session.show_answer()
        session.next_photo()
        assert session.phase is GamePhase.REVEALING
        assert session.current_index == 2
        assert not session.has_more_photos

        session.show_answer()
        session.next_photo()
        assert session.phase is GamePhase.COMPLETE


class TestEndSession:
    """Tests for end_session()."""

    @pytest.mark.parametrize("reveal", [False, True])
    def test_completes_from_any_phase(self, photos, reveal):
        session = make_session(photos)
        if reveal:
            session.show_answer()

        assert session.end_session() is True
        assert session.phase is GamePhase.COMPLETE


class TestListeners:
    """Tests for change notifications."""

    def test_listener_receives_snapshots(self, photos):
        session = make_session(photos)
        snapshots = []
        session.add_listener(snapshots.append)

        session.reveal_next_tile()
        session.tick()
        session.show_answer()

        assert [s.phase for s in snapshots] == [
            GamePhase.REVEALING, GamePhase.REVEALING, GamePhase.REVEALED
        ]
        assert snapshots[0].revealed_count == 1
        assert snapshots[1].timer_remaining == 29
        assert snapshots[2].revealed_count == 36
        assert snapshots[2].session_id == session.id

    def test_ignored_call_does_not_notify(self, photos):
        session = make_session(photos)
        snapshots = []
        session.add_listener(snapshots.append)

        session.next_photo()

        assert snapshots == []

    def test_remove_listener(self, photos):
        session = make_session(photos)
        snapshots = []
        session.add_listener(snapshots.append)
        session.remove_listener(snapshots.append)
        session.tick()

        assert snapshots == []

    def test_snapshot_is_immutable_view(self, photos):
        session = make_session(photos)
        snapshot = session.snapshot()
        session.reveal_next_tile()

        assert snapshot.revealed_tiles == frozenset()
        assert snapshot.current_photo == session.photos[0]
