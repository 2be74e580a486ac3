"""Scores and shareable result text for finished games."""

from __future__ import annotations

from enum import StrEnum

from heardle.reveal import MAX_TRIES, SKIP_MARKER, Outcome, RevealState


class GameMode(StrEnum):
    DAILY = "daily"
    PRACTICE = "practice"


SKIP_SYMBOL = "\u23ed\ufe0f"  # next-track button
MISS_SYMBOL = "\u274c"  # cross mark
HIT_SYMBOL = "\U0001f3af"  # direct hit
UNUSED_SYMBOL = "\u2b1c"  # white square
SOLVED_SUFFIX = "\U0001f3b5"  # musical note
FAILED_SUFFIX = "\U0001f494"  # broken heart


def calculate_score(state: RevealState) -> int:
    """
    Points for a game: ``MAX_TRIES`` for a first-try solve, one less for each
    further typed guess. Skips are free; unsolved games score 0.
    """
    if not state.has_won:
        return 0
    typed = sum(1 for guess in state.guesses if guess != SKIP_MARKER)
    return max(0, MAX_TRIES - typed + 1)


def score_emoji(score: int, max_score: int = MAX_TRIES) -> str:
    ratio = score / max_score if max_score else 0
    if ratio == 1:
        return "\U0001f3c6"  # trophy
    if ratio >= 0.8:
        return "\U0001f947"  # gold
    if ratio >= 0.6:
        return "\U0001f948"  # silver
    if ratio >= 0.4:
        return "\U0001f949"  # bronze
    if ratio > 0:
        return HIT_SYMBOL
    return FAILED_SUFFIX


def time_bonus(state: RevealState, elapsed_seconds: float) -> int:
    """Extra points for a quick solve (under 30s: 3, 60s: 2, 120s: 1)."""
    if not state.has_won:
        return 0
    if elapsed_seconds < 30:
        return 3
    if elapsed_seconds < 60:
        return 2
    if elapsed_seconds < 120:
        return 1
    return 0


def share_grid(state: RevealState) -> str:
    """One symbol per attempt slot: skip, miss, hit or unused."""
    symbols = []
    for slot in range(MAX_TRIES):
        if slot >= len(state.guesses):
            symbols.append(UNUSED_SYMBOL)
        elif state.guesses[slot] == SKIP_MARKER:
            symbols.append(SKIP_SYMBOL)
        elif state.has_won and slot == len(state.guesses) - 1:
            symbols.append(HIT_SYMBOL)
        else:
            symbols.append(MISS_SYMBOL)
    return "".join(symbols)


def share_text(
    state: RevealState,
    artist_name: str,
    mode: GameMode | str = GameMode.DAILY,
    day: str | None = None,
    puzzle_index: int | None = None,
    site_url: str | None = None,
) -> str:
    """
    Spoiler-free result summary for a finished game.

    Daily games are labelled with the puzzle number and/or day; practice games
    with "Practice".
    """
    if state.outcome == Outcome.IN_PROGRESS:
        raise ValueError("Cannot share a game that is still in progress")

    emoji = score_emoji(calculate_score(state))
    if GameMode(mode) == GameMode.PRACTICE:
        label = "Practice"
    else:
        number = f"#{puzzle_index}" if puzzle_index is not None else ""
        label = " ".join(part for part in (number, day) if part) or "Daily"

    if state.has_won:
        result = f"{len(state.guesses)}/{MAX_TRIES} {SOLVED_SUFFIX}"
    else:
        result = f"X/{MAX_TRIES} {FAILED_SUFFIX}"

    lines = [f"{artist_name} Heardle {label} {emoji}", result, share_grid(state)]
    if site_url:
        lines.extend(["", f"Play at: {site_url}"])
    return "\n".join(lines)
