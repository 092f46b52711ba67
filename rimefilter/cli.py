#!/usr/bin/env python3
"""
rime-filter – cli.py
====================

Filter a Rime dictionary down to the characters a font can render.

Pipeline
--------
1. Enumerate the faces of the font and pick one (``--index``).
2. Extract the ``cmap`` glyph records of that face (fontTools or ``ttx``).
3. Build the character whitelist and write it to the character file.
4. Stream the dictionary through the header-aware filter, writing the
   filtered dictionary and the missing-character report.

Examples::

    rime-filter -f NotoSansCJK-Regular.ttc
    rime-filter -f font.ttc -d my_dict.yaml -o result.yaml
    rime-filter -f font.ttc -i 0 -c 2000 --backend ttx
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from rimefilter import config as cfg
from rimefilter import console
from rimefilter.dict_filter import filter_dictionary
from rimefilter.errors import ExtractionError, NotFoundError, RimeFilterError
from rimefilter.extract import SOURCES, GlyphSource, check_dependencies, get_source
from rimefilter.glyphs import build_character_set, write_character_file
from rimefilter.progress import ProgressReporter


def positive_int(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {text!r}") from None
    if value < 1:
        raise argparse.ArgumentTypeError(f"must be a positive integer: {value}")
    return value


def non_negative_int(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {text!r}") from None
    if value < 0:
        raise argparse.ArgumentTypeError(f"must be zero or greater: {value}")
    return value


def build_parser(defaults: dict) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rime-filter",
        description="Filter a Rime dictionary down to the characters a font can render.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "-f", "--font", type=Path, required=True, help="Font file (TTF, OTF or TTC)"
    )
    parser.add_argument(
        "-d", "--dict", type=Path, default=Path(defaults["dict"]), help="Rime dictionary file"
    )
    parser.add_argument(
        "-i",
        "--index",
        type=non_negative_int,
        default=defaults["font_index"],
        help="Face index inside a font collection (default: first available face)",
    )
    parser.add_argument(
        "-o", "--output", type=Path, default=Path(defaults["output"]), help="Filtered dictionary"
    )
    parser.add_argument(
        "-m",
        "--missing",
        type=Path,
        default=Path(defaults["missing"]),
        help="Report of dictionary keys without a glyph",
    )
    parser.add_argument(
        "--chars",
        type=Path,
        default=Path(defaults["chars"]),
        help="File receiving the characters extracted from the font",
    )
    parser.add_argument(
        "-c",
        "--cache",
        type=positive_int,
        default=defaults["cache_size"],
        help="Lines buffered before each write",
    )
    parser.add_argument(
        "--backend",
        choices=sorted(SOURCES),
        default=defaults["backend"],
        help="Glyph extraction backend",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help=f"JSON config file (default: ./{cfg.DEFAULT_CONFIG_NAME} if present)",
    )
    parser.add_argument(
        "-q", "--quiet", action="store_true", help="Do not print progress lines"
    )
    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    # --config changes the defaults of every other option
    pre = argparse.ArgumentParser(add_help=False, allow_abbrev=False)
    pre.add_argument("--config", type=Path, default=None)
    known, _ = pre.parse_known_args(argv)

    defaults = cfg.load(known.config)
    return build_parser(defaults).parse_args(argv)


def resolve_face(source: GlyphSource, font: Path, index: int | None) -> int:
    """Return the face to extract; ``None`` selects the first available."""
    faces = source.faces(font)
    if not faces:
        raise ExtractionError(f"no readable face in {font}")

    if index is None:
        if len(faces) > 1:
            console.info(f"Available faces: {', '.join(str(i) for i in faces)}")
            console.warning(f"No --index given, using face {faces[0]}")
        return faces[0]

    if index not in faces:
        raise ExtractionError(
            f"face {index} not available in {font} "
            f"(available: {', '.join(str(i) for i in faces)})"
        )
    return index


def run(args: argparse.Namespace) -> None:
    if not args.font.exists():
        raise NotFoundError("font file", args.font)

    source = get_source(args.backend)
    if source.name == "ttx":
        check_dependencies()

    console.info("Extracting glyphs from the font...")
    face = resolve_face(source, args.font, args.index)
    console.info(f"Reading face {face} with {source.name}...")
    records = source.records(args.font, face)
    console.info(f"Found {len(records)} glyph mappings")

    charset = build_character_set(
        records,
        ProgressReporter(len(records), "glyphs", enabled=not args.quiet),
    )
    written = write_character_file(charset, args.chars, args.cache)
    console.success(f"Extracted {written} characters to {args.chars}")

    console.info("Filtering the dictionary...")
    result = filter_dictionary(
        args.dict,
        args.output,
        args.missing,
        charset.contains,
        args.cache,
        progress_enabled=not args.quiet,
    )

    console.success("Filtering complete")
    console.info(f"Entries: {result.total_lines}")
    console.info(f"Kept: {result.valid_lines}")
    console.info(f"Missing: {result.missing_lines}")
    console.info(f"Filtered dictionary: {args.output}")
    console.info(f"Missing characters: {args.missing}")


def main(argv: list[str] | None = None) -> int:
    """CLI entry point; returns the process exit status."""
    try:
        args = parse_args(argv)
        run(args)
    except (RimeFilterError, OSError) as e:
        console.error(str(e))
        return 1

    console.success("All done")
    return 0


if __name__ == "__main__":
    sys.exit(main())
