import pytest

from patternlab.magic import (
    EMPTY,
    OCTET_STREAM,
    TEXT_PLAIN,
    MagicDetector,
    MagicSignature,
    detect_content_type,
)
from patternlab.provider import DataSource


@pytest.mark.parametrize(
    "data,expected",
    [
        (b"\x89PNG\r\n\x1a\n" + b"\x00" * 16, "image/png"),
        (b"GIF89a\x01\x00", "image/gif"),
        (b"%PDF-1.7\n", "application/pdf"),
        (b"PK\x03\x04rest", "application/zip"),
        (b"\x1f\x8b\x08\x00", "application/gzip"),
        (b"\x7fELF\x02\x01\x01", "application/x-executable"),
        (b"\x00" * 257 + b"ustar\x0000", "application/x-tar"),
    ],
)
def test_detects_known_signatures(data, expected) -> None:
    assert detect_content_type(data) == expected


def test_fallbacks() -> None:
    assert detect_content_type(b"") == EMPTY
    assert detect_content_type(b"hello world\n") == TEXT_PLAIN
    assert detect_content_type(b"\x00\x01\x02\xff") == OCTET_STREAM


@pytest.mark.parametrize("data", [b"ab\xff", b"a\xff\xfe", b"text\xc3\x28"])
def test_invalid_utf8_near_the_end_is_binary(data) -> None:
    assert detect_content_type(data) == OCTET_STREAM


def test_multibyte_character_cut_by_probe_window_is_text() -> None:
    data = b"caf" + "\u00e9".encode("utf-8") * 300

    assert len(data) > 512
    assert detect_content_type(data) == TEXT_PLAIN


def test_accepts_data_source() -> None:
    source = DataSource.from_bytes(b"BZh91AY")

    assert detect_content_type(source) == "application/x-bzip2"


def test_custom_signature_table() -> None:
    detector = MagicDetector([MagicSignature("application/x-demo", b"DEMO", offset=2)])

    assert detector.detect(b"..DEMO") == "application/x-demo"
    assert detector.detect(b"\x89PNG\r\n\x1a\n") == OCTET_STREAM


def test_data_source_reads_are_bounds_checked() -> None:
    source = DataSource.from_bytes(b"\x01\x02\x03", name="three")

    assert source.read(1, 2) == b"\x02\x03"
    assert source.contains(0, 3)
    assert not source.contains(2, 2)
    with pytest.raises(ValueError, match="exceeds data size"):
        source.read(2, 2)
    assert source.describe() == {"name": "three", "path": None, "size": 3}
