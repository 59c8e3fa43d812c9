"""Holder for the pattern tree of the last successful evaluation."""

from __future__ import annotations

from typing import Optional

from .patterns import PatternTree


class ResultStore:
    """Single owner of the current :class:`PatternTree`.

    The store is not synchronised.  Only the evaluation orchestrator writes
    to it, from the foreground, when a run is scheduled (``clear``) and when
    a finished run is collected (``replace``).
    """

    def __init__(self) -> None:
        self._tree: Optional[PatternTree] = None

    def replace(self, tree: PatternTree) -> None:
        self._tree = tree

    def clear(self) -> None:
        self._tree = None

    def current(self) -> Optional[PatternTree]:
        return self._tree

    @property
    def empty(self) -> bool:
        return self._tree is None
