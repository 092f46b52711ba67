"""
rime-filter – dict_filter.py
============================

Header-aware streaming filter over a Rime dictionary (``*.dict.yaml``).

A Rime dictionary is a YAML front matter followed by one entry per line::

    ---
    name: quick5
    version: "1.0"
    sort: original
    ...
    # comment
    字	zi	100
    漢	han

The file is processed as plain lines, never as a YAML document:

- the front matter (``---`` on line 1 up to ``...``) is copied verbatim;
- blank lines, ``#`` comments and in-body ``---``/``...`` separators are
  copied verbatim and not counted;
- every other line is an entry whose first whitespace-delimited field is the
  key. Entries whose key the font can render are kept, the others are removed
  and their key is appended to the missing report.

When the front matter is never closed, a ``...`` line is inserted exactly once
before the first entry (or at end of file if no entry follows).

Design principles
-----------------
- **Single pass, bounded memory**: output goes through :class:`BufferedSink`.
- **Explicit state**: the header state is a :class:`HeaderState` value owned
  by one call, never module state.
- **Deterministic**: same input and character set, byte-identical outputs.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from contextlib import ExitStack
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TextIO

from rimefilter.errors import NotFoundError, StreamError
from rimefilter.progress import ProgressReporter
from rimefilter.sink import BufferedSink

FRONT_MATTER_OPEN = "---"
FRONT_MATTER_CLOSE = "..."
COMMENT_PREFIX = "#"

# ``key:`` / ``"quoted key":`` mapping lines and ``- item`` sequence lines.
_YAML_LINE_RE = re.compile(r'(?:[^\s#"\'][^\s:]*|"[^"]*"|\'[^\']*\'):(?:\s|$)|-(?:\s|$)')


class HeaderState(Enum):
    BEFORE_HEADER = "before"
    IN_HEADER = "in"
    AFTER_HEADER = "after"


class LineKind(Enum):
    FRONT_MATTER_OPEN = "front_matter_open"
    FRONT_MATTER_BODY = "front_matter_body"
    FRONT_MATTER_CLOSE = "front_matter_close"
    BLANK_OR_COMMENT = "blank_or_comment"
    SECTION_DELIMITER = "section_delimiter"
    CONTENT_ENTRY = "content_entry"


@dataclass
class FilterResult:
    """Counters of one filter run.

    ``total_lines`` counts content entries only, so
    ``total_lines == valid_lines + missing_lines`` always holds.
    """

    total_lines: int = 0
    valid_lines: int = 0
    missing_lines: int = 0
    output_path: Path | None = None
    missing_path: Path | None = None


def is_front_matter_line(line: str) -> bool:
    """Return ``True`` if ``line`` can belong to a YAML front matter."""
    trimmed = line.strip()
    if not trimmed or trimmed.startswith(COMMENT_PREFIX):
        return True
    if trimmed in (FRONT_MATTER_OPEN, FRONT_MATTER_CLOSE):
        return True
    if line[:1].isspace():
        # nested mapping or continuation
        return True
    return _YAML_LINE_RE.match(trimmed) is not None


def front_matter_closed(lines: Iterable[str]) -> bool:
    """Return ``True`` if ``lines`` open a front matter later closed by ``...``."""
    for line_number, raw in enumerate(lines, start=1):
        trimmed = raw.strip()
        if line_number == 1 and trimmed != FRONT_MATTER_OPEN:
            return False
        if line_number > 1 and trimmed == FRONT_MATTER_CLOSE:
            return True
    return False


def scan_lines(handle: TextIO) -> tuple[int, bool]:
    """Count pass: line count and :func:`front_matter_closed` in one read."""
    total = 0
    closed = False
    opened = False
    for raw in handle:
        total += 1
        trimmed = raw.strip()
        if total == 1:
            opened = trimmed == FRONT_MATTER_OPEN
        elif opened and not closed and trimmed == FRONT_MATTER_CLOSE:
            closed = True
    return total, closed


def classify_line(
    line: str,
    state: HeaderState,
    line_number: int,
    header_closed: bool = False,
) -> LineKind:
    """Classify one line given the header state before it.

    ``line_number`` is 1-based; the front matter can only open on line 1.
    When ``header_closed`` is set the source closes its front matter with
    ``...`` and every ``IN_HEADER`` line belongs to it. Otherwise an
    ``IN_HEADER`` line that cannot belong to a front matter is classified as
    what it is in the body: the caller closes the header first.
    """
    trimmed = line.strip()

    if state is HeaderState.BEFORE_HEADER:
        if line_number == 1 and trimmed == FRONT_MATTER_OPEN:
            return LineKind.FRONT_MATTER_OPEN
    elif state is HeaderState.IN_HEADER and (
        header_closed or is_front_matter_line(line)
    ):
        if trimmed == FRONT_MATTER_CLOSE:
            return LineKind.FRONT_MATTER_CLOSE
        return LineKind.FRONT_MATTER_BODY

    if not trimmed or trimmed.startswith(COMMENT_PREFIX):
        return LineKind.BLANK_OR_COMMENT
    if trimmed in (FRONT_MATTER_OPEN, FRONT_MATTER_CLOSE):
        return LineKind.SECTION_DELIMITER
    return LineKind.CONTENT_ENTRY


def filter_lines(
    lines: Iterable[str],
    is_valid: Callable[[str], bool],
    filtered: BufferedSink,
    missing: BufferedSink,
    progress: ProgressReporter | None = None,
    header_closed: bool | None = None,
) -> FilterResult:
    """Route every line of a dictionary to ``filtered`` or ``missing``.

    Args:
        lines: Dictionary lines, with or without their line terminator.
        is_valid: Membership predicate for entry keys.
        filtered: Sink receiving the filtered dictionary.
        missing: Sink receiving the keys of rejected entries.
        progress: Optional reporter updated with the current line number.
        header_closed: Whether the front matter is closed by ``...`` later in
            ``lines``. ``None`` computes it for a list or tuple and assumes
            ``False`` for a one-shot iterable.

    Returns:
        The counters of the run. Both sinks are flushed but left open.
    """
    if header_closed is None:
        header_closed = isinstance(lines, (list, tuple)) and front_matter_closed(lines)

    result = FilterResult()
    state = HeaderState.BEFORE_HEADER
    line_number = 0

    for raw in lines:
        line_number += 1
        line = raw.rstrip("\r\n")
        kind = classify_line(line, state, line_number, header_closed)

        if kind is LineKind.FRONT_MATTER_OPEN:
            state = HeaderState.IN_HEADER
            filtered.append(line)
        elif kind is LineKind.FRONT_MATTER_BODY:
            filtered.append(line)
        elif kind is LineKind.FRONT_MATTER_CLOSE:
            state = HeaderState.AFTER_HEADER
            filtered.append(line)
        else:
            if state is HeaderState.IN_HEADER:
                filtered.append(FRONT_MATTER_CLOSE)
            state = HeaderState.AFTER_HEADER

            if kind is LineKind.CONTENT_ENTRY:
                _route_entry(line, is_valid, filtered, missing, result)
            else:
                filtered.append(line)

        if progress is not None:
            progress.update(line_number)

    if state is HeaderState.IN_HEADER:
        filtered.append(FRONT_MATTER_CLOSE)

    filtered.flush()
    missing.flush()
    if progress is not None:
        progress.complete()
    return result


def _route_entry(
    line: str,
    is_valid: Callable[[str], bool],
    filtered: BufferedSink,
    missing: BufferedSink,
    result: FilterResult,
) -> None:
    fields = line.split()
    if not fields:
        return
    key = fields[0]
    result.total_lines += 1
    if is_valid(key):
        filtered.append(line)
        result.valid_lines += 1
    else:
        missing.append(key)
        result.missing_lines += 1


def filter_dictionary(
    dict_path: Path,
    output_path: Path,
    missing_path: Path,
    is_valid: Callable[[str], bool],
    cache_size: int,
    *,
    progress_enabled: bool = True,
) -> FilterResult:
    """Filter a dictionary file into ``output_path`` and ``missing_path``.

    The input is read twice on the same handle: a count pass providing the
    progress denominator, then the processing pass.

    Raises:
        NotFoundError: if ``dict_path`` does not exist (no output is created).
        StreamError: if reading or writing fails mid-stream.
    """
    if not dict_path.exists():
        raise NotFoundError("dictionary file", dict_path)

    with ExitStack() as stack:
        try:
            handle = stack.enter_context(
                dict_path.open("r", encoding="utf-8", newline="")
            )
            total, header_closed = scan_lines(handle)
            handle.seek(0)
        except (OSError, UnicodeDecodeError) as e:
            raise StreamError("read", str(dict_path), e) from e

        filtered = stack.enter_context(BufferedSink.open(output_path, cache_size))
        missing = stack.enter_context(BufferedSink.open(missing_path, cache_size))
        progress = ProgressReporter(total, "lines", enabled=progress_enabled)

        try:
            result = filter_lines(
                handle, is_valid, filtered, missing, progress, header_closed
            )
        except UnicodeDecodeError as e:
            raise StreamError("read", str(dict_path), e) from e
        except OSError as e:
            if isinstance(e, StreamError):
                raise
            raise StreamError("read", str(dict_path), e) from e

    result.output_path = output_path
    result.missing_path = missing_path
    return result
