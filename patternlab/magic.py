"""Content-type detection for loaded data sources.

Detection is a small signature engine: every :class:`MagicSignature` pairs a
byte prefix (optionally at an offset) with the MIME type it identifies.  The
table is ordered so that more specific signatures win over generic ones.
When no signature matches, the data is reported as ``text/plain`` if it is
printable and ``application/octet-stream`` otherwise.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Tuple, Union

from .provider import DataSource

OCTET_STREAM = "application/octet-stream"
EMPTY = "application/x-empty"
TEXT_PLAIN = "text/plain"

_PROBE_SIZE = 512


@dataclass(frozen=True)
class MagicSignature:
    """Byte prefix identifying a MIME type."""

    mime_type: str
    magic: bytes
    offset: int = 0
    description: str = ""

    def matches(self, head: bytes) -> bool:
        end = self.offset + len(self.magic)
        return len(head) >= end and head[self.offset : end] == self.magic


DEFAULT_SIGNATURES: Tuple[MagicSignature, ...] = (
    MagicSignature("image/png", b"\x89PNG\r\n\x1a\n", description="PNG image"),
    MagicSignature("image/gif", b"GIF87a", description="GIF image"),
    MagicSignature("image/gif", b"GIF89a", description="GIF image"),
    MagicSignature("image/jpeg", b"\xff\xd8\xff", description="JPEG image"),
    MagicSignature("image/bmp", b"BM", description="bitmap"),
    MagicSignature("application/pdf", b"%PDF-", description="PDF document"),
    MagicSignature("application/zip", b"PK\x03\x04", description="zip archive"),
    MagicSignature("application/zip", b"PK\x05\x06", description="empty zip archive"),
    MagicSignature("application/gzip", b"\x1f\x8b", description="gzip stream"),
    MagicSignature("application/x-bzip2", b"BZh", description="bzip2 stream"),
    MagicSignature("application/x-xz", b"\xfd7zXZ\x00", description="xz stream"),
    MagicSignature("application/x-7z-compressed", b"7z\xbc\xaf\x27\x1c", description="7-zip archive"),
    MagicSignature("application/x-tar", b"ustar", offset=257, description="tar archive"),
    MagicSignature("application/x-executable", b"\x7fELF", description="ELF binary"),
    MagicSignature("application/x-dosexec", b"MZ", description="DOS/PE executable"),
    MagicSignature("application/x-mach-binary", b"\xcf\xfa\xed\xfe", description="Mach-O 64-bit"),
    MagicSignature("application/x-mach-binary", b"\xce\xfa\xed\xfe", description="Mach-O 32-bit"),
    MagicSignature("application/x-java-applet", b"\xca\xfe\xba\xbe", description="Java class"),
    MagicSignature("application/wasm", b"\x00asm", description="WebAssembly module"),
    MagicSignature("application/x-sqlite3", b"SQLite format 3\x00", description="SQLite database"),
    MagicSignature("audio/x-wav", b"RIFF", description="RIFF container"),
    MagicSignature("audio/flac", b"fLaC", description="FLAC audio"),
    MagicSignature("audio/ogg", b"OggS", description="Ogg container"),
)


def _looks_like_text(head: bytes) -> bool:
    if b"\x00" in head:
        return False
    try:
        text = head.decode("utf-8")
    except UnicodeDecodeError as exc:
        # a multi-byte sequence cut off by the probe window is still text
        if exc.reason != "unexpected end of data":
            return False
        text = head[: exc.start].decode("utf-8")
    printable = sum(ch.isprintable() or ch in "\r\n\t\f" for ch in text)
    return printable / max(1, len(text)) > 0.95


class MagicDetector:
    """Resolve the MIME type of a data source from its leading bytes."""

    def __init__(self, signatures: Optional[Iterable[MagicSignature]] = None) -> None:
        self.signatures: Sequence[MagicSignature] = tuple(
            DEFAULT_SIGNATURES if signatures is None else signatures
        )

    def detect_bytes(self, data: bytes) -> str:
        head = data[:_PROBE_SIZE]
        if not head:
            return EMPTY
        for signature in self.signatures:
            if signature.matches(head):
                return signature.mime_type
        if _looks_like_text(head):
            return TEXT_PLAIN
        return OCTET_STREAM

    def detect(self, source: Union[DataSource, bytes]) -> str:
        if isinstance(source, DataSource):
            return self.detect_bytes(source.head(_PROBE_SIZE))
        return self.detect_bytes(bytes(source))


DEFAULT_DETECTOR = MagicDetector()


def detect_content_type(source: Union[DataSource, bytes]) -> str:
    """Return the MIME type of ``source`` using the default signature table."""

    return DEFAULT_DETECTOR.detect(source)
