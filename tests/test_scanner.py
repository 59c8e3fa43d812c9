"""Tests for :mod:`patternlab.scanner`."""

from pathlib import Path

from patternlab.provider import DataSource
from patternlab.scanner import (
    CandidateScript,
    MimeMatcher,
    find_compatible_scripts,
    matches_content_type,
    should_scan,
)


def _write(path: Path, text: str) -> Path:
    path.write_text(text, "utf-8")
    return path


def test_returns_only_matching_script(tmp_path: Path) -> None:
    png = _write(tmp_path / "png.hexpat", "#pragma MIME image/png\nu8 a @ 0;\n")
    _write(tmp_path / "elf.hexpat", "#pragma MIME application/x-executable\nu8 a @ 0;\n")

    assert find_compatible_scripts(tmp_path, "image/png") == [png]


def test_match_state_does_not_leak_between_files(tmp_path: Path) -> None:
    _write(tmp_path / "a.hexpat", "#pragma MIME image/png\n")
    _write(tmp_path / "b.hexpat", "u8 no_pragma @ 0;\n")
    _write(tmp_path / "c.hexpat", "#pragma MIME image/gif\n")

    assert [path.name for path in find_compatible_scripts(tmp_path, "image/png")] == ["a.hexpat"]


def test_multiple_matches_keep_enumeration_order(tmp_path: Path) -> None:
    for name in ("one.hexpat", "two.hexpat", "three.hexpat"):
        _write(tmp_path / name, "#pragma MIME application/zip\n")

    found = find_compatible_scripts(tmp_path, "application/zip")

    assert found == [entry for entry in tmp_path.iterdir() if entry.is_file()]


def test_empty_and_missing_directories_yield_nothing(tmp_path: Path) -> None:
    assert find_compatible_scripts(tmp_path, "image/png") == []
    assert find_compatible_scripts(tmp_path / "missing", "image/png") == []


def test_unreadable_entries_are_skipped(tmp_path: Path) -> None:
    (tmp_path / "nested").mkdir()
    _write(tmp_path / "nested" / "inner.hexpat", "#pragma MIME image/png\n")
    (tmp_path / "binary.hexpat").write_bytes(b"#pragma MIME image/png\n\xff\xfe\x00")
    (tmp_path / "dangling.hexpat").symlink_to(tmp_path / "does-not-exist")
    _write(tmp_path / "other.hexpat", "#pragma MIME text/plain\n")

    assert find_compatible_scripts(tmp_path, "image/png") == []


def test_script_with_unknown_pragma_is_skipped(tmp_path: Path) -> None:
    _write(tmp_path / "odd.hexpat", "#pragma custom_thing 1\n#pragma MIME image/png\n")

    assert find_compatible_scripts(tmp_path, "image/png") == []


def test_match_short_circuits_later_pragmas(tmp_path: Path) -> None:
    _write(tmp_path / "ok.hexpat", "#pragma MIME image/png\n#pragma endian sideways\n")

    assert [path.name for path in find_compatible_scripts(tmp_path, "image/png")] == ["ok.hexpat"]


def test_second_mime_pragma_can_match(tmp_path: Path) -> None:
    script = _write(tmp_path / "multi.hexpat", "#pragma MIME image/gif\n#pragma MIME image/png\n")

    assert find_compatible_scripts(tmp_path, "image/png") == [script]


def test_searches_directories_in_order(tmp_path: Path) -> None:
    first = tmp_path / "first"
    second = tmp_path / "second"
    first.mkdir()
    second.mkdir()
    b = _write(second / "b.hexpat", "#pragma MIME image/png\n")
    a = _write(first / "a.hexpat", "#pragma MIME image/png\n")

    assert find_compatible_scripts([first, second], "image/png") == [a, b]


def test_mime_matcher_rejects_malformed_values() -> None:
    matcher = MimeMatcher("image/png")

    assert matcher("image/gif") is True
    assert matcher("   ") is False
    assert matcher("image/gif\r") is False
    assert matcher.matched is False
    assert matcher("image/png") is False
    assert matcher.matched is True


def test_trailing_carriage_return_is_not_a_match(tmp_path: Path) -> None:
    (tmp_path / "crlf.hexpat").write_bytes(b"#pragma MIME image/png\r\n")

    assert find_compatible_scripts(tmp_path, "image/png") == []


def test_candidate_is_marked_preprocessed(tmp_path: Path) -> None:
    candidate = CandidateScript(_write(tmp_path / "x.hexpat", "#pragma MIME a/b\n"))

    assert matches_content_type(candidate, "a/b")
    assert candidate.preprocessed_once


def test_should_scan_requires_blank_buffer_and_data() -> None:
    source = DataSource.from_bytes(b"\x00")

    assert should_scan("", source)
    assert should_scan(" \n\t\r\v\f", source)
    assert not should_scan("u8 a @ 0;", source)
    assert not should_scan("", None)
