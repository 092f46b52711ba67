"""
rime-filter – extract.py
========================

Glyph record sources: give me the ``cmap`` entries of face ``N`` of a font.

Two interchangeable backends implement the :class:`GlyphSource` interface:

- :class:`FontToolsSource` (default) reads the font in-process with
  ``fontTools.ttLib``.
- :class:`TtxSource` runs fontTools' ``ttx`` command line tool and scans its
  XML dump line by line, which keeps memory flat on very large CJK
  collections.

Both yield records in the order a ``ttx`` dump lists them: every Unicode
``cmap`` subtable in table order, codes ascending inside a subtable. A code
mapped by several subtables therefore appears several times.

TrueType Collections (``.ttc``/``.otc``) hold several faces; a face is
selected by its zero-based index.
"""

from __future__ import annotations

import re
import shutil
import subprocess
import tempfile
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Protocol

from fontTools.ttLib import TTCollection, TTFont  # type: ignore[import]

from rimefilter.errors import DependencyError, ExtractionError, StreamError
from rimefilter.glyphs import GlyphRecord

#: ``<map code="0x4e00" name="uni4E00"/>`` as written by ``ttx``.
TTX_MAP_RE = re.compile(r'<map code="0x([0-9a-fA-F]+)" name="([^"]+)"')

#: Faces probed by ``ttx -l`` when enumerating a collection.
TTX_MAX_FACES = 10


def run_command(argv: list[str]) -> subprocess.CompletedProcess[str]:
    return subprocess.run(
        argv,
        text=True,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        check=False,
    )


def detect_font_container(path: Path) -> str:
    """Detect font container by header and extension.

    Returns: "TTF", "OTF", "TTC", "WOFF", "WOFF2", or "UNKNOWN"
    """
    ext = path.suffix.lower()
    try:
        with path.open("rb") as f:
            head = f.read(4)
    except OSError:
        head = b""

    if head == b"ttcf":
        return "TTC"
    if head == b"wOFF" or ext == ".woff":
        return "WOFF"
    if head == b"wOF2" or ext == ".woff2":
        return "WOFF2"
    if head == b"OTTO" or ext == ".otf":
        return "OTF"
    if head in (b"\x00\x01\x00\x00", b"true", b"typ1") or ext == ".ttf":
        return "TTF"
    if ext in (".ttc", ".otc"):
        return "TTC"
    return "UNKNOWN"


def parse_ttx_records(lines: Iterable[str]) -> Iterator[GlyphRecord]:
    """Yield a record for every ``<map .../>`` line of a ``ttx`` dump."""
    for line in lines:
        m = TTX_MAP_RE.search(line)
        if m:
            yield GlyphRecord(m.group(1), m.group(2))


class GlyphSource(Protocol):
    name: str

    def faces(self, path: Path) -> list[int]: ...

    def records(self, path: Path, font_index: int) -> list[GlyphRecord]: ...


class FontToolsSource:
    """Read ``cmap`` subtables with ``fontTools.ttLib``."""

    name = "fonttools"

    def faces(self, path: Path) -> list[int]:
        if detect_font_container(path) != "TTC":
            return [0]
        try:
            col = TTCollection(path, lazy=True)
        except Exception as e:
            raise ExtractionError(f"cannot open font collection {path}: {e}") from e
        try:
            return list(range(len(col.fonts)))
        finally:
            col.close()

    def records(self, path: Path, font_index: int) -> list[GlyphRecord]:
        font_number = font_index if detect_font_container(path) == "TTC" else -1
        if font_number == -1 and font_index != 0:
            raise ExtractionError(f"{path} holds a single face, got index {font_index}")
        try:
            tt = TTFont(path, fontNumber=font_number, lazy=True)
        except Exception as e:
            raise ExtractionError(
                f"cannot open face {font_index} of {path}: {e}"
            ) from e

        try:
            if "cmap" not in tt:
                return []
            records: list[GlyphRecord] = []
            for sub in tt["cmap"].tables:  # type: ignore[attr-defined]
                if not sub.isUnicode():
                    continue
                for cp, glyph_name in sorted(sub.cmap.items()):  # type: ignore[attr-defined]
                    records.append(GlyphRecord(f"{cp:04X}", glyph_name))
            return records
        except Exception as e:
            raise ExtractionError(f"cannot read cmap of {path}: {e}") from e
        finally:
            tt.close()


def check_dependencies() -> None:
    """Raise :class:`DependencyError` when ``ttx`` is not installed."""
    if shutil.which("ttx") is None:
        raise DependencyError("ttx command not found, install it with: pip install fonttools")


class TtxSource:
    """Dump the ``cmap`` table with the ``ttx`` tool and scan the XML."""

    name = "ttx"

    def faces(self, path: Path) -> list[int]:
        # ttx ignores -y on single-face fonts
        if detect_font_container(path) != "TTC":
            return [0]
        available: list[int] = []
        for idx in range(TTX_MAX_FACES):
            proc = run_command(["ttx", "-l", "-y", str(idx), str(path)])
            if proc.returncode == 0:
                available.append(idx)
        return available

    def records(self, path: Path, font_index: int) -> list[GlyphRecord]:
        with tempfile.TemporaryDirectory(prefix="rimefilter-") as tmp:
            dump = Path(tmp) / "output.ttx"
            proc = run_command(
                [
                    "ttx",
                    "-q",
                    "-t",
                    "cmap",
                    "-o",
                    str(dump),
                    "-f",
                    "-y",
                    str(font_index),
                    str(path),
                ]
            )
            if proc.returncode != 0:
                raise ExtractionError(
                    f"ttx failed on face {font_index} of {path}:\n{proc.stdout}"
                )
            try:
                with dump.open(encoding="utf-8") as f:
                    return list(parse_ttx_records(f))
            except (OSError, UnicodeDecodeError) as e:
                raise StreamError("read", str(dump), e) from e


SOURCES: dict[str, type[FontToolsSource] | type[TtxSource]] = {
    FontToolsSource.name: FontToolsSource,
    TtxSource.name: TtxSource,
}


def get_source(name: str) -> GlyphSource:
    try:
        return SOURCES[name]()
    except KeyError:
        raise ExtractionError(
            f"unknown glyph source '{name}' (choose from: {', '.join(SOURCES)})"
        ) from None
