"""Property-based tests for heardle.

Uses hypothesis to check the invariants of day anchoring, puzzle numbering,
song selection, guess normalization and the reveal state machine.
"""

from __future__ import annotations

import random
import string
from datetime import UTC, datetime, timedelta

from hypothesis import given, settings
from hypothesis import strategies as st

from heardle.dates import DateAnchor, canonical_day
from heardle.models import Song
from heardle.normalize import GuessNormalizer
from heardle.puzzle import puzzle_index
from heardle.reveal import MAX_TRIES, Outcome, RevealStateMachine
from heardle.selection import DeterministicSelector, ExclusionSampler

_normalizer = GuessNormalizer()


def _song(track_id: int, name: str = "Song") -> Song:
    return Song(
        id=f"itunes-{track_id}",
        name=name,
        artists=("Artist",),
        album="Album",
        preview_url="",
        duration=0,
        track_url="",
        artwork_url="",
        track_id=track_id,
    )


pools = st.lists(
    st.integers(min_value=1, max_value=10**10), min_size=1, max_size=50, unique=True
).map(lambda ids: [_song(i) for i in ids])

moments = st.datetimes(
    min_value=datetime(2000, 1, 1),
    max_value=datetime(2100, 1, 1),
    timezones=st.just(UTC),
)


# Day anchoring properties


@given(moments, st.one_of(st.none(), st.text(max_size=30)))
@settings(max_examples=200)
def test_anchor_never_far_from_server_day(now: datetime, raw: str | None):
    """Property: whatever the client sends, the day is within tolerance of the server day."""
    anchored = DateAnchor(tolerance_days=1).normalize(raw, now)
    delta = datetime.strptime(anchored.day, "%Y-%m-%d").date() - now.date()
    assert abs(delta.days) <= 1
    if anchored.fell_back:
        assert anchored.day == canonical_day(now)


# Puzzle numbering properties


@given(moments)
def test_next_day_is_next_puzzle(now: datetime):
    """Property: puzzle numbers increase by exactly one per UTC day."""
    assert puzzle_index(now + timedelta(days=1)) == puzzle_index(now) + 1


@given(moments, st.integers(min_value=0, max_value=86_399))
def test_puzzle_index_ignores_time_of_day(now: datetime, seconds: int):
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    assert puzzle_index(midnight + timedelta(seconds=seconds)) == puzzle_index(midnight)


# Selection properties


@given(pools, st.integers(min_value=1, max_value=100_000), st.randoms())
def test_daily_selection_ignores_pool_order(pool: list[Song], index: int, rnd: random.Random):
    """Property: select_daily depends on pool contents and index only."""
    shuffled = list(pool)
    rnd.shuffle(shuffled)
    selector = DeterministicSelector()
    assert selector.select_daily(pool, index).id == selector.select_daily(shuffled, index).id


@given(pools, st.data())
def test_practice_never_returns_excluded(pool: list[Song], data: st.DataObject):
    keep = data.draw(st.sampled_from(pool))
    excluded = {song.id for song in pool if song is not keep}
    assert ExclusionSampler().select_practice(pool, excluded) is keep


# Normalization properties


@given(st.text(max_size=100))
@settings(max_examples=200)
def test_normalize_guess_idempotent(text: str):
    """Property: normalizing twice equals normalizing once."""
    first = _normalizer.normalize_guess(text)
    assert _normalizer.normalize_guess(first) == first


@given(st.text(min_size=1, max_size=60))
def test_title_matches_itself(title: str):
    assert _normalizer.titles_match(title, title)


@given(st.text(alphabet=string.ascii_letters + string.digits + " 가나다사랑", min_size=1, max_size=40))
def test_case_insensitive(title: str):
    assert _normalizer.titles_match(f"  {title.upper()} ", title)
    assert _normalizer.titles_match(title.lower(), title)


# Reveal state machine properties


@given(st.lists(st.one_of(st.just(None), st.text(max_size=10)), max_size=12))
def test_reveal_invariants(moves: list[str | None]):
    """Property: guesses track attempts and the attempt index never decreases."""
    game = RevealStateMachine(_song(1, "Dynamite"))
    last_index = 0
    for move in moves:
        if game.state.is_over:
            break
        if move is None:
            game.skip()
        else:
            game.submit_guess(move)

        state = game.state
        assert state.attempt_index >= last_index
        assert state.attempt_index <= MAX_TRIES
        last_index = state.attempt_index
        if state.outcome == Outcome.SOLVED:
            assert len(state.guesses) == state.attempt_index + 1
        else:
            assert len(state.guesses) == state.attempt_index
        assert (state.outcome == Outcome.FAILED) == (state.attempt_index == MAX_TRIES)
