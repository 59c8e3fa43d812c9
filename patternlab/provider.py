"""Read-only binary data sources evaluated by pattern scripts."""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class DataSource:
    """Immutable byte buffer with bounds checked reads."""

    def __init__(self, data: bytes, name: str = "memory", path: Optional[Path] = None) -> None:
        self._data = bytes(data)
        self.name = name
        self.path = path

    @classmethod
    def load(cls, path: Path) -> "DataSource":
        return cls(path.read_bytes(), name=path.name, path=path)

    @classmethod
    def from_bytes(cls, data: bytes, name: str = "memory") -> "DataSource":
        return cls(data, name=name)

    @property
    def size(self) -> int:
        return len(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def is_available(self) -> bool:
        return True

    def contains(self, offset: int, size: int) -> bool:
        return offset >= 0 and size >= 0 and offset + size <= len(self._data)

    def read(self, offset: int, size: int) -> bytes:
        if not self.contains(offset, size):
            raise ValueError(
                f"read of {size} byte(s) at 0x{offset:X} exceeds data size {len(self._data)}"
            )
        return self._data[offset : offset + size]

    def head(self, size: int) -> bytes:
        return self._data[:size]

    def describe(self) -> dict:
        return {
            "name": self.name,
            "path": str(self.path) if self.path is not None else None,
            "size": len(self._data),
        }


def is_loaded(source: Optional[DataSource]) -> bool:
    """Return ``True`` when ``source`` can be evaluated against."""

    return source is not None and source.is_available()
