"""Project state shared with the pattern editor."""

from __future__ import annotations

from typing import Optional


class ProjectFile:
    """Accessors for the pattern source stored with the current project."""

    def __init__(self, pattern: str = "", path: Optional[str] = None) -> None:
        self._pattern = pattern
        self.path = path
        self._dirty = False

    def get_pattern(self) -> str:
        return self._pattern

    def set_pattern(self, pattern: str) -> None:
        self._pattern = pattern

    def mark_dirty(self) -> None:
        self._dirty = True

    def mark_clean(self) -> None:
        self._dirty = False

    @property
    def is_dirty(self) -> bool:
        return self._dirty
