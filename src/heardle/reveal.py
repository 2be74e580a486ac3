"""Progressive-reveal game state for one puzzle instance.

Each wrong guess or skip unlocks the next, longer preview from the duration
ladder. Six misses end the game; a correct guess ends it immediately without
consuming an attempt.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from enum import StrEnum

from heardle.errors import AlreadyFinishedError
from heardle.models import Song
from heardle.normalize import GuessNormalizer
from heardle.safe_logging import sanitize_client_value

logger = logging.getLogger(__name__)

DURATION_LADDER_MS: tuple[int, ...] = (1000, 2000, 4000, 7000, 10000, 15000)
MAX_TRIES = len(DURATION_LADDER_MS)
SKIP_MARKER = "(Skipped)"


class Outcome(StrEnum):
    IN_PROGRESS = "in_progress"
    SOLVED = "solved"
    FAILED = "failed"


@dataclass(frozen=True)
class RevealState:
    """Immutable snapshot of a game."""

    song: Song
    attempt_index: int = 0
    guesses: tuple[str, ...] = ()
    outcome: Outcome = Outcome.IN_PROGRESS

    @property
    def is_over(self) -> bool:
        return self.outcome != Outcome.IN_PROGRESS

    @property
    def has_won(self) -> bool:
        return self.outcome == Outcome.SOLVED

    @property
    def remaining_tries(self) -> int:
        return MAX_TRIES - self.attempt_index


@dataclass(frozen=True)
class GuessResult:
    correct: bool
    state: RevealState


class RevealStateMachine:
    """
    Drives one game through guesses and skips.

    Transitions are serialized with a lock, so a machine shared between
    request handlers of the same session keeps ``guesses`` and
    ``attempt_index`` in step.
    """

    def __init__(self, song: Song, normalizer: GuessNormalizer | None = None):
        self.normalizer = normalizer or GuessNormalizer()
        self._state = RevealState(song=song)
        self._lock = threading.Lock()
        self.started_at = time.time()
        self.finished_at: float | None = None

    @property
    def state(self) -> RevealState:
        return self._state

    @property
    def song(self) -> Song:
        return self._state.song

    def current_duration_ms(self) -> int:
        """
        Longest preview the player may hear right now.

        Once solved, the duration of the winning attempt stays available; once
        failed, the whole ladder has been unlocked.
        """
        index = min(self._state.attempt_index, MAX_TRIES - 1)
        return DURATION_LADDER_MS[index]

    def submit_guess(self, text: str) -> GuessResult:
        """
        Judge a guess against the song title.

        A blank guess counts as a skip, as in the web client.
        """
        if not text.strip():
            return GuessResult(correct=False, state=self.skip())

        with self._lock:
            self._ensure_in_progress()
            current = self._state
            if self.normalizer.titles_match(text, current.song.name):
                self._state = RevealState(
                    song=current.song,
                    attempt_index=current.attempt_index,
                    guesses=(*current.guesses, text),
                    outcome=Outcome.SOLVED,
                )
                self.finished_at = time.time()
                logger.info(
                    f"Solved {current.song.id} on attempt {current.attempt_index + 1}/{MAX_TRIES}"
                )
                return GuessResult(correct=True, state=self._state)

            logger.debug(f"Wrong guess {sanitize_client_value(text)!r} for {current.song.id}")
            return GuessResult(correct=False, state=self._advance(text))

    def skip(self) -> RevealState:
        with self._lock:
            self._ensure_in_progress()
            return self._advance(SKIP_MARKER)

    def elapsed_seconds(self) -> float:
        end = self.finished_at if self.finished_at is not None else time.time()
        return end - self.started_at

    def _advance(self, entry: str) -> RevealState:
        """Record a miss and unlock the next rung (caller holds the lock)."""
        current = self._state
        attempt_index = current.attempt_index + 1
        outcome = Outcome.FAILED if attempt_index >= MAX_TRIES else Outcome.IN_PROGRESS
        self._state = RevealState(
            song=current.song,
            attempt_index=attempt_index,
            guesses=(*current.guesses, entry),
            outcome=outcome,
        )
        if outcome == Outcome.FAILED:
            self.finished_at = time.time()
            logger.info(f"Failed {current.song.id} after {MAX_TRIES} attempts")
        else:
            logger.debug(
                f"Attempt {attempt_index}/{MAX_TRIES} used, "
                f"next preview {DURATION_LADDER_MS[attempt_index]}ms"
            )
        return self._state

    def _ensure_in_progress(self) -> None:
        if self._state.is_over:
            raise AlreadyFinishedError(
                f"Game already {self._state.outcome}",
                song_id=self._state.song.id,
                outcome=str(self._state.outcome),
            )
