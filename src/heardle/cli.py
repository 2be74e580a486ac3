"""CLI for heardle using Typer and Rich.

Daily and practice song lookup, an interactive terminal game and catalog
cache maintenance.
"""

from __future__ import annotations

import json
import logging
from enum import StrEnum
from pathlib import Path
from typing import Annotated, Any, NoReturn

import typer

from heardle.catalog import StaticCatalog
from heardle.config import Config
from heardle.console import (
    print as cprint,
)
from heardle.console import (
    print_error,
    print_success,
    print_warning,
    set_console,
    status,
)
from heardle.dates import parse_canonical_day, seconds_until_next_day, utc_today
from heardle.errors import ErrorKind, HeardleError, describe_error
from heardle.http_cache import ResponseCache
from heardle.models import Song
from heardle.puzzle import require_puzzle_index
from heardle.reveal import MAX_TRIES, RevealStateMachine
from heardle.safe_logging import configure_rich_logging
from heardle.scoring import GameMode, calculate_score, share_text, time_bonus
from heardle.service import HeardleService


class OutputFormat(StrEnum):
    """Output format for CLI commands."""

    TEXT = "text"
    JSON = "json"


class ExitCode:
    """Standard exit codes for CLI commands."""

    SUCCESS = 0
    ERROR = 1
    NO_SONG = 2


SKIP_KEYWORD = "skip"

app = typer.Typer(
    name="heardle",
    help="Heardle: guess the song from ever longer previews",
    no_args_is_help=True,
    add_completion=False,
)

cache_app = typer.Typer(help="HTTP cache management commands")
app.add_typer(cache_app, name="cache")


# Global state (set by callback)
class AppState:
    """Global application state passed between commands."""

    config: Config
    output_format: OutputFormat
    verbose: int
    catalog_snapshot: Path | None = None


state = AppState()


@app.callback()
def main(
    config_path: Annotated[
        Path | None,
        typer.Option("--config", help="Path to configuration TOML file", exists=True),
    ] = None,
    offline: Annotated[
        bool, typer.Option(help="Run in offline mode (no network requests)")
    ] = False,
    catalog_snapshot: Annotated[
        Path | None,
        typer.Option("--catalog", help="Serve songs from a JSON catalog snapshot", exists=True),
    ] = None,
    output: Annotated[
        OutputFormat,
        typer.Option("--output", "-o", help="Output format"),
    ] = OutputFormat.TEXT,
    verbose: Annotated[
        int,
        typer.Option("--verbose", "-v", count=True, help="Increase verbosity"),
    ] = 0,
    epoch: Annotated[str | None, typer.Option(help="First puzzle day (YYYY-MM-DD)")] = None,
    # Cache options
    cache_dir: Annotated[Path | None, typer.Option(help="HTTP cache directory")] = None,
    cache_ttl: Annotated[int | None, typer.Option(help="Cache TTL in seconds")] = None,
    no_cache: Annotated[bool, typer.Option(help="Disable HTTP caching")] = False,
) -> None:
    """Heardle: guess the song from ever longer previews."""
    logger = logging.getLogger(__name__)

    # Load config (TOML + env vars)
    cfg = Config.load(config_path)
    if config_path:
        logger.info(f"Loaded config from {config_path}")

    # Apply CLI overrides (highest precedence: CLI > Env > Config File > Defaults)
    if offline:
        cfg.offline_mode = True
    if epoch:
        try:
            parse_canonical_day(epoch)
        except ValueError as e:
            raise typer.BadParameter(str(e), param_hint="--epoch") from e
        cfg.game.epoch = epoch

    # Cache overrides
    if cache_dir:
        cfg.http_cache.directory = cache_dir
    if cache_ttl is not None:
        cfg.http_cache.ttl_seconds = cache_ttl
    if no_cache:
        cfg.http_cache.enabled = False

    # Configure logging with CLI > Config precedence
    if verbose > 0:
        log_level = logging.DEBUG if verbose >= 2 else logging.INFO
    else:
        level_str = cfg.logging.level.upper()
        log_level = getattr(logging, level_str, logging.WARNING)

    console = configure_rich_logging(
        level=log_level, show_time=True, show_path=False, fmt=cfg.logging.format
    )
    set_console(console)

    # Suppress external library logging unless very verbose (-vvv)
    if verbose < 3:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)

    logger.debug(f"Logging configured: level={logging.getLevelName(log_level)}")

    state.config = cfg
    state.output_format = output
    state.verbose = verbose
    state.catalog_snapshot = catalog_snapshot


def _service() -> HeardleService:
    return HeardleService.from_config(state.config, state.catalog_snapshot)


def _emit_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, ensure_ascii=False))


def _fail(exc: HeardleError) -> NoReturn:
    """Report a failure and exit; no song available exits with NO_SONG."""
    descriptor = describe_error(exc)
    if state.output_format == OutputFormat.JSON:
        _emit_json(descriptor.to_dict())
    else:
        print_error(descriptor.message)

    if descriptor.kind in (ErrorKind.EMPTY_POOL, ErrorKind.POOL_EXHAUSTED):
        raise typer.Exit(code=ExitCode.NO_SONG)
    raise typer.Exit(code=ExitCode.ERROR)


def _print_song(song: Song) -> None:
    cprint(f"  [bold]{song.name}[/bold] - {', '.join(song.artists)}")
    cprint(f"  Album:   {song.album}")
    cprint(f"  Preview: {song.preview_url}")
    if song.track_url:
        cprint(f"  iTunes:  {song.track_url}")


def _artist_name(artist_id: str) -> str:
    artist = state.config.get_artist(artist_id)
    return artist.display_name if artist else artist_id


# ====================================================================
# MAIN COMMANDS
# ====================================================================


@app.command()
def daily(
    artist: Annotated[str, typer.Argument(help="Artist id (e.g. twice)")],
    date: Annotated[
        str | None, typer.Option("--date", "-d", help="Your local date (YYYY-MM-DD)")
    ] = None,
) -> None:
    """Show today's puzzle song for an artist.

    Examples:
        heardle daily twice
        heardle --output json daily le-sserafim --date 2025-08-19
    """
    try:
        with _service() as service, status(f"Fetching {_artist_name(artist)} songs..."):
            puzzle = service.daily_song(artist, raw_date=date)
    except HeardleError as e:
        _fail(e)

    if state.output_format == OutputFormat.JSON:
        _emit_json(puzzle.to_dict())
        return

    if puzzle.date_fell_back:
        print_warning(f"Date {date!r} not accepted, using the server day {puzzle.day}")
    cprint(f"[cyan]{_artist_name(artist)} Heardle #{puzzle.puzzle_index}[/cyan] ({puzzle.day})")
    _print_song(puzzle.song)


@app.command()
def practice(
    artist: Annotated[str, typer.Argument(help="Artist id (e.g. twice)")],
    exclude: Annotated[
        str | None,
        typer.Option("--exclude", "-x", help="Comma-separated song or track ids already played"),
    ] = None,
) -> None:
    """Pick a random practice song the player has not heard yet."""
    try:
        with _service() as service, status(f"Fetching {_artist_name(artist)} songs..."):
            song = service.practice_song(artist, exclude)
    except HeardleError as e:
        _fail(e)

    if state.output_format == OutputFormat.JSON:
        _emit_json(song.to_dict())
        return

    cprint(f"[cyan]{_artist_name(artist)} practice[/cyan]")
    _print_song(song)


@app.command("puzzle-number")
def puzzle_number(
    date: Annotated[
        str | None, typer.Option("--date", "-d", help="Day (YYYY-MM-DD), default today (UTC)")
    ] = None,
) -> None:
    """Show the daily puzzle number of a day."""
    day = date or utc_today()
    try:
        parse_canonical_day(day)
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="--date") from e

    try:
        index = require_puzzle_index(day, state.config.game.epoch)
    except HeardleError as e:
        _fail(e)

    if state.output_format == OutputFormat.JSON:
        _emit_json(
            {
                "day": day,
                "puzzleIndex": index,
                "epoch": state.config.game.epoch,
                "secondsUntilNext": seconds_until_next_day(),
            }
        )
        return

    cprint(f"Puzzle #{index} ({day})")
    if date is None:
        hours, rest = divmod(seconds_until_next_day(), 3600)
        cprint(f"Next puzzle in {hours}h {rest // 60:02d}m")


@app.command()
def suggest(
    artist: Annotated[str, typer.Argument(help="Artist id (e.g. twice)")],
    query: Annotated[str, typer.Argument(help="Part of a song title")],
    limit: Annotated[int, typer.Option(help="Maximum suggestions", min=1)] = 10,
) -> None:
    """Autocomplete song titles of an artist."""
    try:
        with _service() as service:
            songs = service.suggest_titles(artist, query, limit)
    except HeardleError as e:
        _fail(e)

    if state.output_format == OutputFormat.JSON:
        _emit_json([song.name for song in songs])
        return

    if not songs:
        print_warning(f"No titles matching {query!r}")
        raise typer.Exit(code=ExitCode.NO_SONG)
    for song in songs:
        cprint(f"  {song.name}")


@app.command()
def play(
    artist: Annotated[str, typer.Argument(help="Artist id (e.g. twice)")],
    practice_mode: Annotated[
        bool, typer.Option("--practice", help="Play a random song instead of the daily one")
    ] = False,
    exclude: Annotated[
        str | None,
        typer.Option("--exclude", "-x", help="Comma-separated ids to skip in practice mode"),
    ] = None,
    date: Annotated[
        str | None, typer.Option("--date", "-d", help="Your local date (YYYY-MM-DD)")
    ] = None,
) -> None:
    """Play a game in the terminal.

    Each round unlocks a longer preview. Type a title to guess, or "skip"
    (or nothing) to hear more.
    """
    name = _artist_name(artist)
    day: str | None = None
    index: int | None = None
    try:
        service = _service()
    except HeardleError as e:
        _fail(e)

    with service:
        try:
            with status(f"Fetching {name} songs..."):
                if practice_mode:
                    song = service.practice_song(artist, exclude)
                else:
                    puzzle = service.daily_song(artist, raw_date=date)
                    song, day, index = puzzle.song, puzzle.day, puzzle.puzzle_index
        except HeardleError as e:
            _fail(e)

        session_key = f"{artist}:{'practice' if practice_mode else day}"
        game = service.start_game(song, session_key=session_key)
        cprint(f"[cyan]{name} Heardle {'Practice' if practice_mode else f'#{index}'}[/cyan]")
        cprint(f"Preview: {song.preview_url}")

        while not game.state.is_over:
            _play_round(game)
        service.sessions.end(session_key)

    final = game.state
    bonus = time_bonus(final, game.elapsed_seconds())
    if final.has_won:
        print_success(f"Correct! {song.name} - {song.primary_artist}")
        if bonus:
            cprint(f"Solved in {game.elapsed_seconds():.0f}s: +{bonus} time bonus")
    else:
        cprint(f"[red]Out of tries.[/red] It was [bold]{song.name}[/bold] - {song.primary_artist}")

    text = share_text(
        final,
        name,
        GameMode.PRACTICE if practice_mode else GameMode.DAILY,
        day=day,
        puzzle_index=index,
    )
    if state.output_format == OutputFormat.JSON:
        _emit_json(
            {
                "song": song.to_dict(),
                "outcome": str(final.outcome),
                "guesses": list(final.guesses),
                "score": calculate_score(final),
                "timeBonus": bonus,
                "share": text,
            }
        )
    else:
        cprint()
        cprint(text, markup=False)


def _play_round(game: RevealStateMachine) -> None:
    seconds = game.current_duration_ms() / 1000
    attempt = game.state.attempt_index + 1
    cprint(f"\nAttempt {attempt}/{MAX_TRIES}: listen to the first {seconds:g}s")
    guess = typer.prompt("Your guess", default="", show_default=False)

    if guess.strip().lower() == SKIP_KEYWORD:
        game.skip()
        cprint("[dim]Skipped[/dim]")
        return

    result = game.submit_guess(guess)
    if not result.correct:
        cprint("[dim]Skipped[/dim]" if not guess.strip() else "[red]Wrong[/red]")


@app.command()
def snapshot(
    output_path: Annotated[Path, typer.Argument(help="JSON file to write")],
    artists: Annotated[
        list[str] | None,
        typer.Option("--artist", "-a", help="Artist id (repeatable, default all configured)"),
    ] = None,
) -> None:
    """Write artist pools to a JSON snapshot for offline play (--catalog)."""
    artist_ids = artists or [a.id for a in state.config.artists]
    static = StaticCatalog()
    try:
        with _service() as service:
            for artist_id in artist_ids:
                with status(f"Fetching {_artist_name(artist_id)} songs..."):
                    static.add(artist_id, service.get_pool(artist_id))
    except HeardleError as e:
        _fail(e)

    static.write_json(output_path)
    counts = {artist_id: len(static.get_pool(artist_id)) for artist_id in static.artist_ids()}
    if state.output_format == OutputFormat.JSON:
        _emit_json({"path": str(output_path), "songs": counts})
    else:
        print_success(f"Wrote {sum(counts.values())} songs to {output_path}")


# ====================================================================
# CACHE COMMANDS
# ====================================================================


def _response_cache() -> ResponseCache:
    cfg = state.config.http_cache
    return ResponseCache(cfg.directory, cfg.ttl_seconds)


@cache_app.command("purge")
def cache_purge() -> None:
    """Remove expired HTTP cache entries."""
    removed = _response_cache().purge_expired()
    if state.output_format == OutputFormat.JSON:
        _emit_json({"removed": removed})
    else:
        print_success(f"Purged {removed} expired cache entries")


@cache_app.command("clear")
def cache_clear(
    force: Annotated[bool, typer.Option(help="Skip confirmation prompt")] = False,
) -> None:
    """Remove every HTTP cache entry."""
    if not force and not typer.confirm("Remove all cached catalog responses?"):
        raise typer.Exit(code=ExitCode.SUCCESS)
    removed = _response_cache().clear()
    if state.output_format == OutputFormat.JSON:
        _emit_json({"removed": removed})
    else:
        print_success(f"Cleared {removed} cache entries")


# ====================================================================
# ENTRY POINT
# ====================================================================


def cli() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    cli()
