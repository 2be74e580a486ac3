"""Log-safe handling of client-supplied values.

Dates, exclusion lists and guesses come straight from players. Before they reach
a log line they are stripped of control characters (no forged log lines) and
truncated (no multi-kilobyte log entries).
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

DEFAULT_MAX_LENGTH = 64

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f-\x9f\u2028\u2029]")


def sanitize_client_value(value: object, max_length: int = DEFAULT_MAX_LENGTH) -> str:
    """Render an untrusted value for logging.

    Args:
        value: Value received from a client
        max_length: Longest rendering kept before truncating with an ellipsis

    Returns:
        Single-line string of at most ``max_length`` characters plus "..."
    """
    text = _CONTROL_CHARS.sub(" ", str(value))
    if len(text) > max_length:
        return f"{text[:max_length]}..."
    return text


class SafeLogFormatter(logging.Formatter):
    """Formatter that keeps every rendered record on one line.

    Record arguments are sanitized, so even a caller that forgot to sanitize a
    client value cannot inject line breaks.
    """

    def __init__(self, fmt: str | None = None, datefmt: str | None = None, max_length: int = 256):
        super().__init__(fmt, datefmt)
        self.max_length = max_length

    def format(self, record: logging.LogRecord) -> str:
        # Copy so other handlers see the untouched record
        record = logging.makeLogRecord(record.__dict__)
        if record.args:
            record.args = self._sanitize_args(record.args)
        return super().format(record)

    def _sanitize_args(self, args: tuple[Any, ...] | Mapping[str, Any]) -> Any:
        if isinstance(args, Mapping):
            return {k: self._sanitize_value(v) for k, v in args.items()}
        return tuple(self._sanitize_value(arg) for arg in args)

    def _sanitize_value(self, value: Any) -> Any:
        if isinstance(value, str):
            return sanitize_client_value(value, self.max_length)
        return value


def configure_rich_logging(
    level: int = logging.WARNING,
    show_time: bool = True,
    show_path: bool = False,
    console: Console | None = None,
    fmt: str = "%(message)s",
) -> Console:
    """Route the root logger through a Rich handler.

    Args:
        level: Root logging level
        show_time: Show timestamps in the log column
        show_path: Show the emitting module path
        console: Console to log to (a new stderr console by default)
        fmt: Record format; Rich renders time and level itself

    Returns:
        The console the handler writes to, for reuse as the CLI output console
    """
    console = console or Console(stderr=True)
    handler = RichHandler(
        console=console,
        show_time=show_time,
        show_path=show_path,
        rich_tracebacks=True,
        markup=False,
    )
    handler.setFormatter(SafeLogFormatter(fmt))

    root_logger = logging.getLogger()
    for existing in list(root_logger.handlers):
        if isinstance(existing, RichHandler):
            root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
    return console


## Tests


def test_sanitize_client_value_strips_newlines():
    assert sanitize_client_value("2025-01-01\nINFO forged") == "2025-01-01 INFO forged"


def test_sanitize_client_value_truncates():
    assert sanitize_client_value("x" * 100, max_length=10) == "xxxxxxxxxx..."
    assert sanitize_client_value("short") == "short"


def test_sanitize_client_value_non_string():
    assert sanitize_client_value(None) == "None"
    assert sanitize_client_value(42) == "42"


def test_safe_log_formatter_sanitizes_args():
    formatter = SafeLogFormatter(fmt="%(message)s")
    record = logging.LogRecord(
        name="test",
        level=logging.WARNING,
        pathname="",
        lineno=0,
        msg="Client date %s rejected",
        args=("2099-01-01\r\nfake entry",),
        exc_info=None,
    )

    formatted = formatter.format(record)
    assert "\n" not in formatted
    assert "\r" not in formatted
    assert formatted.startswith("Client date 2099-01-01")
    # Original record untouched
    assert record.args == ("2099-01-01\r\nfake entry",)
