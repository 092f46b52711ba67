"""Console status lines used by the command line driver."""

from __future__ import annotations

import os
import sys
from typing import TextIO

COLOR_RED = "\033[0;31m"
COLOR_GREEN = "\033[0;32m"
COLOR_YELLOW = "\033[1;33m"
COLOR_BLUE = "\033[0;34m"
COLOR_RESET = "\033[0m"


def use_color(stream: TextIO) -> bool:
    """Return ``True`` when ANSI colors should be written to ``stream``."""
    if os.environ.get("NO_COLOR"):
        return False
    isatty = getattr(stream, "isatty", None)
    try:
        return bool(isatty and isatty())
    except ValueError:
        # closed stream
        return False


def tag(label: str, color: str, stream: TextIO) -> str:
    if use_color(stream):
        return f"{color}[{label}]{COLOR_RESET}"
    return f"[{label}]"


def _emit(label: str, color: str, msg: str, stream: TextIO | None) -> None:
    out = stream if stream is not None else sys.stdout
    print(f"{tag(label, color, out)} {msg}", file=out)


def info(msg: str, stream: TextIO | None = None) -> None:
    _emit("INFO", COLOR_BLUE, msg, stream)


def success(msg: str, stream: TextIO | None = None) -> None:
    _emit("SUCCESS", COLOR_GREEN, msg, stream)


def warning(msg: str, stream: TextIO | None = None) -> None:
    _emit("WARNING", COLOR_YELLOW, msg, stream)


def error(msg: str, stream: TextIO | None = None) -> None:
    """Print an error line; defaults to ``stderr``."""
    _emit("ERROR", COLOR_RED, msg, stream if stream is not None else sys.stderr)
