import io

import pytest
from helpers import FailingStream, read_lines, write_lines

from rimefilter.dict_filter import (
    HeaderState,
    LineKind,
    classify_line,
    filter_dictionary,
    filter_lines,
    front_matter_closed,
    is_front_matter_line,
    scan_lines,
)
from rimefilter.errors import NotFoundError, StreamError
from rimefilter.sink import BufferedSink


def run_filter(lines, valid, cache_size=1000):
    out, miss = io.StringIO(), io.StringIO()
    result = filter_lines(
        lines,
        lambda key: key in valid,
        BufferedSink(out, cache_size),
        BufferedSink(miss, cache_size),
    )
    return result, out.getvalue().splitlines(), miss.getvalue().splitlines()


def test_front_matter_preserved():
    lines = ["---", "a: 1", "...", "字 code x"]

    result, out, missing = run_filter(lines, {"字"})

    assert out == lines
    assert missing == []
    assert result.total_lines == 1
    assert result.valid_lines == 1


def test_unclosed_front_matter_gets_close_token():
    result, out, _ = run_filter(["---", "a: 1", "字 x"], {"字"})

    assert out == ["---", "a: 1", "...", "字 x"]
    assert result.valid_lines == 1


def test_close_token_synthesized_once_before_missing_entry():
    result, out, missing = run_filter(["---", "name: t", "漢 han", "字 zi"], {"字"})

    assert out == ["---", "name: t", "...", "字 zi"]
    assert missing == ["漢"]
    assert out.count("...") == 1


def test_header_only_file_is_closed_at_end():
    result, out, missing = run_filter(["---", "name: x"], set())

    assert out == ["---", "name: x", "..."]
    assert missing == []
    assert result.total_lines == 0


def test_rime_header_with_nested_columns():
    lines = [
        "# Rime dictionary",
        "---",
    ]
    # '---' on line 2 is an ordinary separator, not a front matter
    result, out, _ = run_filter(lines, set())
    assert out == lines
    assert result.total_lines == 0

    header = [
        "---",
        "name: quick5",
        'version: "2024.01"',
        "sort: original",
        "columns:",
        "  - text",
        "  - code",
        "# trailing comment",
        "",
        "...",
    ]
    result, out, _ = run_filter(header + ["字\tzi\t100"], {"字"})
    assert out == header + ["字\tzi\t100"]
    assert result.valid_lines == 1


def test_comments_and_blank_lines_pass_through():
    lines = ["# comment", "", "   ", "字 zi", "  # indented comment"]

    result, out, missing = run_filter(lines, set())

    assert out == ["# comment", "", "   ", "  # indented comment"]
    assert missing == ["字"]
    assert result.total_lines == 1


def test_section_delimiters_in_body_pass_through():
    lines = ["字 zi", "---", "漢 han", "..."]

    result, out, missing = run_filter(lines, {"字", "漢"})

    assert out == lines
    assert result.total_lines == 2


def test_missing_key_routing():
    result, out, missing = run_filter(["漢 han 100", "字 zi"], {"字"})

    assert "漢 han 100" not in out
    assert missing == ["漢"]
    assert result.missing_lines == 1


def test_duplicate_keys_reported_every_time():
    result, _, missing = run_filter(["漢 a", "漢 b", "漢 c"], set())

    assert missing == ["漢", "漢", "漢"]
    assert result.missing_lines == 3


def test_counts_add_up():
    lines = ["---", "name: t", "...", "a 1", "b 2", "# c", "c 3", "", "d 4", "---", "e 5"]

    result, _, _ = run_filter(lines, {"a", "c", "e"})

    assert result.total_lines == 5
    assert result.total_lines == result.valid_lines + result.missing_lines
    assert (result.valid_lines, result.missing_lines) == (3, 2)


def test_idempotent_outputs():
    lines = ["---", "name: t", "字 zi", "漢 han", "# note", "一 yi"]
    valid = {"字", "一"}

    first = run_filter(lines, valid)
    second = run_filter(lines, valid)

    assert first[1] == second[1]
    assert first[2] == second[2]


def test_small_cache_keeps_order():
    lines = [f"{c} code" for c in "abcde"]

    result, out, _ = run_filter(lines, set("abcde"), cache_size=2)

    assert out == lines
    assert result.valid_lines == 5


def test_line_terminators_are_stripped():
    result, out, _ = run_filter(["---\r\n", "a: 1\n", "...\n", "字 zi\r\n"], {"字"})

    assert out == ["---", "a: 1", "...", "字 zi"]
    assert result.valid_lines == 1


def test_classify_line():
    before, inside, after = (
        HeaderState.BEFORE_HEADER,
        HeaderState.IN_HEADER,
        HeaderState.AFTER_HEADER,
    )

    assert classify_line("---", before, 1) is LineKind.FRONT_MATTER_OPEN
    assert classify_line("---", before, 2) is LineKind.SECTION_DELIMITER
    assert classify_line("name: x", inside, 2) is LineKind.FRONT_MATTER_BODY
    assert classify_line(" ... ", inside, 3) is LineKind.FRONT_MATTER_CLOSE
    assert classify_line("字 zi", inside, 3) is LineKind.CONTENT_ENTRY
    assert classify_line("# x", after, 4) is LineKind.BLANK_OR_COMMENT
    assert classify_line("...", after, 5) is LineKind.SECTION_DELIMITER
    assert classify_line("name: x", after, 6) is LineKind.CONTENT_ENTRY


def test_is_front_matter_line():
    assert is_front_matter_line("name: quick5")
    assert is_front_matter_line("columns:")
    assert is_front_matter_line("- text")
    assert is_front_matter_line("  - text")
    assert is_front_matter_line('"quoted key": 1')
    assert not is_front_matter_line("字\tzi")
    assert not is_front_matter_line("a b: c")


def test_filter_dictionary_files(tmp_path):
    dict_path = write_lines(
        tmp_path / "quick5.dict.yaml",
        ["---", "name: quick5", "...", "", "字\tzi", "漢\than", "𠀀\tx"],
    )
    output = tmp_path / "filtered.yaml"
    missing = tmp_path / "missing.txt"

    result = filter_dictionary(
        dict_path, output, missing, {"字", "𠀀"}.__contains__, 2, progress_enabled=False
    )

    assert read_lines(output) == ["---", "name: quick5", "...", "", "字\tzi", "𠀀\tx"]
    assert read_lines(missing) == ["漢"]
    assert result.output_path == output
    assert result.missing_path == missing
    assert (result.total_lines, result.valid_lines, result.missing_lines) == (3, 2, 1)


def test_filter_dictionary_empty_file(tmp_path):
    dict_path = tmp_path / "empty.dict.yaml"
    dict_path.write_text("", encoding="utf-8")

    result = filter_dictionary(
        dict_path, tmp_path / "out", tmp_path / "miss", lambda k: True, 10,
        progress_enabled=False,
    )

    assert result.total_lines == 0
    assert (tmp_path / "out").read_text(encoding="utf-8") == ""
    assert (tmp_path / "miss").read_text(encoding="utf-8") == ""


def test_filter_dictionary_missing_input(tmp_path):
    output = tmp_path / "filtered.yaml"

    with pytest.raises(NotFoundError):
        filter_dictionary(
            tmp_path / "nope.dict.yaml", output, tmp_path / "miss", lambda k: True, 10
        )

    assert not output.exists()


def test_filter_dictionary_invalid_utf8(tmp_path):
    dict_path = tmp_path / "bad.dict.yaml"
    dict_path.write_bytes(b"\xff\xfe\x00bad\n")

    with pytest.raises(StreamError) as exc:
        filter_dictionary(
            dict_path, tmp_path / "out", tmp_path / "miss", lambda k: True, 10,
            progress_enabled=False,
        )

    assert isinstance(exc.value, OSError)
    assert str(dict_path) in str(exc.value)


def test_filter_dictionary_reports_progress(tmp_path, capsys):
    dict_path = write_lines(tmp_path / "d.yaml", ["字 zi", "漢 han"])

    filter_dictionary(dict_path, tmp_path / "out", tmp_path / "miss", {"字"}.__contains__, 10)

    assert "2/2 (100.0%)" in capsys.readouterr().out


def test_closed_front_matter_copied_verbatim():
    lines = ["---", "my key: 1", "key:value", "...", "字 x"]

    result, out, missing = run_filter(lines, {"字"})

    assert out == lines
    assert missing == []
    assert result.total_lines == 1


def test_closed_front_matter_from_iterator_needs_hint():
    lines = ["---", "my key: 1", "...", "字 x"]
    out, miss = io.StringIO(), io.StringIO()

    result = filter_lines(
        iter(lines),
        {"字"}.__contains__,
        BufferedSink(out, 10),
        BufferedSink(miss, 10),
        header_closed=True,
    )

    assert out.getvalue().splitlines() == lines
    assert result.total_lines == 1


def test_filter_dictionary_closed_front_matter(tmp_path):
    lines = ["---", "name: quick5", "my key: 1", "...", "字\tzi", "漢\than"]
    dict_path = write_lines(tmp_path / "quick5.dict.yaml", lines)
    output = tmp_path / "filtered.yaml"

    result = filter_dictionary(
        dict_path, output, tmp_path / "miss", {"字"}.__contains__, 10,
        progress_enabled=False,
    )

    assert read_lines(output) == lines[:-1]
    assert read_lines(tmp_path / "miss") == ["漢"]
    assert result.total_lines == 2


def test_front_matter_closed():
    assert front_matter_closed(["---", "a: 1", "..."])
    assert front_matter_closed(["---", "my key: 1", " ... ", "字 x"])
    assert not front_matter_closed(["---", "a: 1", "字 x"])
    assert not front_matter_closed(["字 x", "---", "..."])
    assert not front_matter_closed([])


def test_scan_lines():
    assert scan_lines(io.StringIO("---\na: 1\n...\n字 x\n")) == (4, True)
    assert scan_lines(io.StringIO("---\na: 1\n字 x\n")) == (3, False)
    assert scan_lines(io.StringIO("字 x\n...\n")) == (2, False)
    assert scan_lines(io.StringIO("")) == (0, False)


def test_classify_line_with_closed_header():
    inside = HeaderState.IN_HEADER

    assert classify_line("my key: 1", inside, 2) is LineKind.CONTENT_ENTRY
    assert classify_line("my key: 1", inside, 2, True) is LineKind.FRONT_MATTER_BODY
    assert classify_line("...", inside, 3, True) is LineKind.FRONT_MATTER_CLOSE


def test_write_failure_mid_stream_propagates():
    stream = FailingStream(fail_after=1)
    filtered = BufferedSink(stream, 1)
    missing = BufferedSink(io.StringIO(), 1)

    with pytest.raises(StreamError) as exc:
        filter_lines(["字 a", "字 b", "字 c"], {"字"}.__contains__, filtered, missing)

    assert isinstance(exc.value, OSError)
    assert "failing-stream" in str(exc.value)
    assert stream.getvalue() == "字 a\n"
