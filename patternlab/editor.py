"""Pattern editor controller.

:class:`PatternEditor` is everything the interactive pattern view does except
drawing: it keeps the script buffer, reacts to application events, offers
compatible pattern files when data is loaded and drives the evaluation
orchestrator once per frame through :meth:`PatternEditor.update`.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from .config import EditorSettings
from .events import DeferredQueue, Event, EventBus
from .magic import detect_content_type
from .orchestrator import EvaluationOrchestrator
from .patterns import PatternTree
from .project import ProjectFile
from .provider import DataSource
from .runtime import LogLevel, PatternRuntime
from .scanner import find_compatible_scripts, should_scan
from .store import ResultStore

logger = logging.getLogger(__name__)

THEME_PALETTES: Dict[int, str] = {1: "dark", 2: "light", 3: "retro_blue"}

CONSOLE_PALETTE: Dict[LogLevel, str] = {
    LogLevel.DEBUG: "comment",
    LogLevel.INFO: "default",
    LogLevel.WARNING: "preprocessor",
    LogLevel.ERROR: "error_marker",
}


class ScriptBuffer:
    """Text of the script being edited plus a pending-change flag."""

    def __init__(self, text: str = "") -> None:
        self._text = text
        self._changed = False

    @property
    def text(self) -> str:
        return self._text

    def set_text(self, text: str) -> None:
        """Replace the whole buffer without flagging a user edit."""

        self._text = text

    def edit(self, text: str) -> None:
        self._text = text
        self._changed = True

    def insert_text(self, text: str) -> None:
        self._text += text
        self._changed = True

    def consume_changed(self) -> bool:
        changed, self._changed = self._changed, False
        return changed


class PatternEditor:
    """Wire the script buffer, scanner and orchestrator to application events."""

    def __init__(
        self,
        bus: Optional[EventBus] = None,
        *,
        project: Optional[ProjectFile] = None,
        settings: Optional[EditorSettings] = None,
        runtime: Optional[PatternRuntime] = None,
        store: Optional[ResultStore] = None,
        detector: Callable[[DataSource], str] = detect_content_type,
        orchestrator: Optional[EvaluationOrchestrator] = None,
    ) -> None:
        self.bus = bus or EventBus()
        self.project = project or ProjectFile()
        self.settings = settings or EditorSettings()
        self.detector = detector
        self.buffer = ScriptBuffer()
        self.deferred = DeferredQueue()
        self.orchestrator = orchestrator or EvaluationOrchestrator(
            runtime,
            store=store,
            bus=self.bus,
            project=self.project,
        )
        self.orchestrator.state.auto_run = self.settings.auto_run

        self.possible_pattern_files: List[Path] = []
        self.selected_pattern_file = 0
        self.accept_prompt_open = False
        self.palette = THEME_PALETTES.get(self.settings.theme, "dark")

        self.bus.subscribe(Event.PROJECT_FILE_STORE, self, self._on_project_store)
        self.bus.subscribe(Event.PROJECT_FILE_LOAD, self, self._on_project_load)
        self.bus.subscribe(Event.APPEND_PATTERN_CODE, self, self._on_append_code)
        self.bus.subscribe(Event.FILE_LOADED, self, self._on_file_loaded)
        self.bus.subscribe(Event.CHANGE_THEME, self, self._on_change_theme)

    def close(self) -> None:
        for event in (
            Event.PROJECT_FILE_STORE,
            Event.PROJECT_FILE_LOAD,
            Event.APPEND_PATTERN_CODE,
            Event.FILE_LOADED,
            Event.CHANGE_THEME,
        ):
            self.bus.unsubscribe(event, self)
        self.orchestrator.shutdown()

    # ------------------------------------------------------------------
    # event handlers
    # ------------------------------------------------------------------
    def _on_project_store(self) -> None:
        self.project.set_pattern(self.buffer.text)
        self.project.mark_clean()

    def _on_project_load(self) -> None:
        self.buffer.set_text(self.project.get_pattern())
        self.evaluate()

    def _on_append_code(self, code: str) -> None:
        self.buffer.insert_text("\n")
        self.buffer.insert_text(code)

    def _on_change_theme(self, theme: int) -> None:
        self.palette = THEME_PALETTES.get(theme, "dark")

    def _on_file_loaded(self, path: str) -> None:
        source = self.orchestrator.data_source
        if not should_scan(self.buffer.text, source):
            return

        content_type = self.detector(source)
        logger.debug("scanning pattern paths for %s (%s)", content_type, path)

        self.possible_pattern_files = find_compatible_scripts(
            self.settings.pattern_paths, content_type
        )
        if self.possible_pattern_files:
            self.selected_pattern_file = 0
            self.deferred.post(self._open_accept_prompt)

    def _open_accept_prompt(self) -> None:
        self.accept_prompt_open = True

    # ------------------------------------------------------------------
    # commands
    # ------------------------------------------------------------------
    def load_data_source(self, source: DataSource) -> None:
        self.orchestrator.set_data_source(source)
        self.bus.publish(Event.FILE_LOADED, str(source.path or source.name))

    def load_pattern_file(self, path: Path) -> bool:
        try:
            text = Path(path).read_text("utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.debug("cannot open pattern %s: %s", path, exc)
            return False
        self.orchestrator.request(text)
        self.buffer.set_text(text)
        return True

    def accept_suggestion(self, index: Optional[int] = None) -> Optional[Path]:
        if index is not None:
            self.selected_pattern_file = index
        self.accept_prompt_open = False
        if not 0 <= self.selected_pattern_file < len(self.possible_pattern_files):
            return None
        chosen = self.possible_pattern_files[self.selected_pattern_file]
        if not self.load_pattern_file(chosen):
            return None
        return chosen

    def dismiss_suggestion(self) -> None:
        self.accept_prompt_open = False

    def suggestion_names(self) -> List[str]:
        return [path.name for path in self.possible_pattern_files]

    def evaluate(self) -> bool:
        return self.orchestrator.request(self.buffer.text)

    def set_auto_run(self, enabled: bool) -> None:
        self.orchestrator.set_auto_run(enabled)

    def update(self) -> bool:
        """Run one foreground frame; returns ``True`` if a result was collected."""

        self.deferred.run_pending()
        if self.buffer.consume_changed():
            self.orchestrator.notify_text_changed()
        return self.orchestrator.tick(lambda: self.buffer.text)

    # ------------------------------------------------------------------
    # views
    # ------------------------------------------------------------------
    @property
    def evaluate_enabled(self) -> bool:
        return not self.orchestrator.running

    @property
    def tree(self) -> Optional[PatternTree]:
        return self.orchestrator.store.current()

    @property
    def error_markers(self) -> Dict[int, str]:
        diagnostic = self.orchestrator.diagnostic
        if diagnostic is None:
            return {}
        return {diagnostic.line: diagnostic.message}

    def console_view(self) -> List[Tuple[str, str]]:
        return [
            (CONSOLE_PALETTE[entry.level], entry.message)
            for entry in self.orchestrator.console
            if entry.level in CONSOLE_PALETTE
        ]
