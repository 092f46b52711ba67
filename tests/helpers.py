import io
from pathlib import Path
from types import SimpleNamespace

from fontTools.fontBuilder import FontBuilder
from fontTools.pens.ttGlyphPen import TTGlyphPen
from fontTools.ttLib import TTCollection, TTFont


def make_test_font(path: Path, codepoints: list[int]) -> Path:
    """Build a minimal TrueType font mapping ``codepoints`` to empty glyphs."""
    cmap = {cp: f"uni{cp:04X}" for cp in codepoints}
    glyph_order = [".notdef"] + [cmap[cp] for cp in sorted(cmap)]

    fb = FontBuilder(1000, isTTF=True)
    fb.setupGlyphOrder(glyph_order)
    fb.setupCharacterMap(cmap)
    fb.setupGlyf({name: TTGlyphPen(None).glyph() for name in glyph_order})
    fb.setupHorizontalMetrics({name: (500, 0) for name in glyph_order})
    fb.setupHorizontalHeader(ascent=800, descent=-200)
    fb.setupNameTable({"familyName": "Rime Test", "styleName": "Regular"})
    fb.setupOS2()
    fb.setupPost()
    fb.save(str(path))
    return path


def make_test_collection(path: Path, faces: list[list[int]]) -> Path:
    """Build a TrueType Collection with one face per code point list."""
    col = TTCollection()
    for idx, codepoints in enumerate(faces):
        face_path = path.with_name(f"{path.stem}-face{idx}.ttf")
        make_test_font(face_path, codepoints)
        col.fonts.append(TTFont(face_path))
    col.save(path)
    return path


def make_ttx_dump(codes: list[str]) -> str:
    """Return a ``ttx`` cmap dump mapping every hex code of ``codes``."""
    lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<ttFont sfntVersion="\\x00\\x01\\x00\\x00" ttLibVersion="4.47">',
        "  <cmap>",
        '    <tableVersion version="0"/>',
        '    <cmap_format_4 platformID="3" platEncID="1" language="0">',
    ]
    for code in codes:
        lines.append(f'      <map code="0x{code}" name="uni{code.upper()}"/><!-- glyph -->')
    lines += ["    </cmap_format_4>", "  </cmap>", "</ttFont>"]
    return "\n".join(lines) + "\n"


def make_completed_process(returncode: int = 0, stdout: str = ""):
    """Object compatible with the result of run_command()."""
    return SimpleNamespace(returncode=returncode, stdout=stdout)


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FailingStream(io.StringIO):
    """Text stream whose writes fail after ``fail_after`` successful ones."""

    def __init__(self, fail_after: int) -> None:
        super().__init__()
        self.fail_after = fail_after
        self.writes = 0
        self.name = "failing-stream"

    def write(self, s: str) -> int:
        if self.writes >= self.fail_after:
            raise OSError(28, "No space left on device")
        self.writes += 1
        return super().write(s)


def write_lines(path: Path, lines: list[str]) -> Path:
    path.write_text("".join(line + "\n" for line in lines), encoding="utf-8")
    return path


def read_lines(path: Path) -> list[str]:
    return path.read_text(encoding="utf-8").splitlines()
