"""
rime-filter – glyphs.py
=======================

Turn glyph records extracted from a font into the character whitelist used to
filter the dictionary.

Data structures
---------------
- :class:`GlyphRecord`: one ``cmap`` entry as produced by a glyph source,
  ``("4E00", "uni4E00")``. Only the hexadecimal code is used.
- :class:`CharacterSet`: the characters in discovery order (duplicates kept,
  this is what the character file lists) plus a ``set`` for O(1) lookups.

Malformed records are skipped silently: a font dump routinely contains
entries that do not map to a Unicode scalar value.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import NamedTuple

from rimefilter.errors import CodePointError, EmptyResultError
from rimefilter.progress import ProgressReporter
from rimefilter.sink import BufferedSink

MAX_CODE_POINT = 0x10FFFF
SURROGATES = range(0xD800, 0xE000)

_HEX_RE = re.compile(r"(?:0[xX])?([0-9a-fA-F]+)")


class GlyphRecord(NamedTuple):
    code: str
    name: str


@dataclass
class CharacterSet:
    """Characters a font can render, in discovery order."""

    chars: list[str] = field(default_factory=list)
    members: set[str] = field(default_factory=set)

    def add(self, char: str) -> None:
        self.chars.append(char)
        self.members.add(char)

    def contains(self, char: str) -> bool:
        return char in self.members

    def __contains__(self, char: object) -> bool:
        return char in self.members

    def __len__(self) -> int:
        return len(self.chars)

    def __iter__(self) -> Iterator[str]:
        return iter(self.chars)


def parse_code_point(text: str) -> int:
    """Parse a hexadecimal code point (``"4e00"`` or ``"0x4E00"``).

    Raises:
        CodePointError: if ``text`` is not hexadecimal or is not a Unicode
            scalar value (above U+10FFFF or a surrogate).
    """
    m = _HEX_RE.fullmatch(text.strip())
    if not m:
        raise CodePointError(f"not a hexadecimal code point: {text!r}")
    cp = int(m.group(1), 16)
    if cp > MAX_CODE_POINT or cp in SURROGATES:
        raise CodePointError(f"not a Unicode scalar value: U+{cp:04X}")
    return cp


def build_character_set(
    records: Iterable[GlyphRecord],
    progress: ProgressReporter | None = None,
) -> CharacterSet:
    """Build the character whitelist from glyph records.

    Args:
        records: Glyph records in source order.
        progress: Optional reporter, updated once per record and completed
            at the end.

    Returns:
        The populated :class:`CharacterSet`.

    Raises:
        EmptyResultError: if no record held a usable code point.
    """
    records = list(records)
    if progress is not None:
        progress.update(0, len(records))

    charset = CharacterSet()
    for processed, record in enumerate(records, start=1):
        try:
            cp = parse_code_point(record.code)
        except CodePointError:
            continue
        finally:
            if progress is not None:
                progress.update(processed)
        charset.add(chr(cp))

    if progress is not None:
        progress.complete()

    if not charset:
        raise EmptyResultError("no usable glyph found in the font")
    return charset


def write_character_file(charset: CharacterSet, path: Path, cache_size: int) -> int:
    """Write one character per line to ``path``; returns the line count."""
    with BufferedSink.open(path, cache_size) as sink:
        for char in charset:
            sink.append(char)
    return sink.written
