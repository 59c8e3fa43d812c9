"""Editor settings resolved from defaults and the environment.

``PATTERNLAB_PATTERN_PATH``
    Pattern search roots separated by :data:`os.pathsep`.  Searched in order,
    before the built-in ``patterns`` directory of the working directory.
``PATTERNLAB_AUTO_RUN``
    ``1``/``true``/``yes`` to re-evaluate automatically after every edit.
``PATTERNLAB_THEME``
    Theme id forwarded to the editor (1 dark, 2 light, 3 retro blue).
``PATTERNLAB_LOG_LEVEL``
    Level name used by the command line front end.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Mapping, Optional, Sequence, Tuple

DEFAULT_PATTERN_DIRECTORY = Path("patterns")

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class EditorSettings:
    """Immutable settings for the pattern editor and CLI."""

    pattern_paths: Tuple[Path, ...] = field(default_factory=lambda: (DEFAULT_PATTERN_DIRECTORY,))
    auto_run: bool = False
    theme: int = 1
    log_level: str = "WARNING"

    @classmethod
    def from_environment(cls, environ: Optional[Mapping[str, str]] = None) -> "EditorSettings":
        env = os.environ if environ is None else environ
        paths = [Path(entry) for entry in env.get("PATTERNLAB_PATTERN_PATH", "").split(os.pathsep) if entry]
        paths.append(DEFAULT_PATTERN_DIRECTORY)

        theme_text = env.get("PATTERNLAB_THEME", "1")
        try:
            theme = int(theme_text)
        except ValueError:
            theme = 1

        return cls(
            pattern_paths=tuple(paths),
            auto_run=env.get("PATTERNLAB_AUTO_RUN", "").strip().lower() in _TRUE_VALUES,
            theme=theme,
            log_level=env.get("PATTERNLAB_LOG_LEVEL", "WARNING").upper(),
        )

    def with_pattern_paths(self, extra: Sequence[Path]) -> "EditorSettings":
        """Return a copy searching ``extra`` before the configured roots."""

        return replace(self, pattern_paths=tuple(extra) + self.pattern_paths)
