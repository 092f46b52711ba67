"""
rime-filter – errors.py
=======================

Exception hierarchy shared by every stage of the pipeline.

Only :class:`CodePointError` is recovered locally (a malformed glyph record is
skipped); every other error aborts the current operation and is reported by
the command line driver with a non-zero exit status.
"""

from __future__ import annotations

from pathlib import Path


class RimeFilterError(Exception):
    """Base class for all errors raised by rime-filter."""


class NotFoundError(RimeFilterError, FileNotFoundError):
    """A required input path does not exist."""

    def __init__(self, what: str, path: Path | str) -> None:
        super().__init__(f"{what} not found: {path}")
        self.path = Path(path)


class EmptyResultError(RimeFilterError):
    """A stage produced zero usable items when at least one was required."""


class CodePointError(RimeFilterError, ValueError):
    """A glyph record does not hold a valid hexadecimal code point."""


class StreamError(RimeFilterError, OSError):
    """Reading or writing a file failed mid-stream."""

    def __init__(self, operation: str, target: str, cause: BaseException) -> None:
        super().__init__(f"cannot {operation} {target}: {cause}")
        self.operation = operation
        self.target = target


class ExtractionError(RimeFilterError):
    """A font face could not be opened or the extraction tool failed."""


class DependencyError(RimeFilterError):
    """An external tool required by the selected backend is missing."""


class ConfigError(RimeFilterError):
    """The configuration file cannot be read or holds invalid values."""
