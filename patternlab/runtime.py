"""Evaluation runtime: preprocessing, interpretation and result capture.

:class:`PatternRuntime` is the service the orchestrator calls from its
background worker.  It never raises for a bad script; every failure is turned
into an :class:`EvaluationResult` carrying a :class:`Diagnostic` and an error
line in the console log.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional, Tuple

from .errors import PatternLanguageError, ScriptError
from .interpreter import EvaluationSettings, PatternInterpreter
from .patterns import PatternTree
from .preprocessor import ENDIAN_VALUES, Preprocessor, parse_pragma_integer
from .provider import DataSource, is_loaded

logger = logging.getLogger(__name__)


class LogLevel(Enum):
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class LogEntry:
    level: LogLevel
    message: str


@dataclass(frozen=True)
class Diagnostic:
    """Error reported for a script, anchored at a 1-based source line."""

    message: str
    line: int

    def describe(self) -> str:
        return f"line {self.line}: {self.message}"


@dataclass(frozen=True)
class EvaluationResult:
    """Outcome of one evaluation; exactly one of ``tree``/``diagnostic`` is set."""

    tree: Optional[PatternTree] = None
    diagnostic: Optional[Diagnostic] = None
    console: Tuple[LogEntry, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if (self.tree is None) == (self.diagnostic is None):
            raise ValueError("an evaluation result carries either a tree or a diagnostic")

    @property
    def ok(self) -> bool:
        return self.diagnostic is None

    @classmethod
    def failure(
        cls, message: str, line: int = 1, console: Tuple[LogEntry, ...] = ()
    ) -> "EvaluationResult":
        entries = tuple(console) + (LogEntry(LogLevel.ERROR, f"error: line {line}: {message}"),)
        return cls(diagnostic=Diagnostic(message, line), console=entries)


class LogConsole:
    """Ordered log collected during one evaluation."""

    def __init__(self) -> None:
        self._entries: List[LogEntry] = []

    def log(self, level: LogLevel, message: str) -> None:
        self._entries.append(LogEntry(level, message))

    @property
    def entries(self) -> Tuple[LogEntry, ...]:
        return tuple(self._entries)


class PatternRuntime:
    """Run pattern scripts against data sources."""

    def __init__(self, settings: Optional[EvaluationSettings] = None) -> None:
        self.settings = settings or EvaluationSettings()

    def execute(self, source: Optional[DataSource], code: str) -> EvaluationResult:
        console = LogConsole()
        settings = replace(self.settings)
        preprocessor = self._build_preprocessor(settings, console)

        if not is_loaded(source):
            return EvaluationResult.failure("no data source loaded", console=console.entries)

        try:
            processed = preprocessor.preprocess(code)
            rejected = preprocessor.stopped_at
            if rejected is not None:
                raise ScriptError(
                    f"invalid value provided to '{rejected.name}' #pragma: {rejected.value!r}",
                    rejected.line,
                )
            tree = PatternInterpreter(settings).run(processed, source)
        except PatternLanguageError as exc:
            logger.debug("evaluation of %s failed: %s", source.name, exc)
            return EvaluationResult.failure(exc.message, exc.line or 1, console.entries)

        console.log(
            LogLevel.INFO,
            f"evaluation finished: {tree.node_count()} pattern(s) placed on {source.name}",
        )
        return EvaluationResult(tree=tree, console=console.entries)

    @staticmethod
    def _build_preprocessor(settings: EvaluationSettings, console: LogConsole) -> Preprocessor:
        preprocessor = Preprocessor()

        def _endian(value: str) -> bool:
            endian = value.strip()
            if endian not in ENDIAN_VALUES:
                return False
            if endian == "native":
                endian = sys.byteorder
            settings.endian = endian
            console.log(LogLevel.DEBUG, f"pragma endian: {endian}")
            return True

        def _limit(name: str, minimum: int):
            def _handler(value: str) -> bool:
                number = parse_pragma_integer(value)
                if number is None or number < minimum:
                    return False
                setattr(settings, name, number)
                console.log(LogLevel.DEBUG, f"pragma {name}: {number}")
                return True

            return _handler

        def _mime(value: str) -> bool:
            if not value.strip():
                return False
            console.log(LogLevel.DEBUG, f"pragma MIME: {value.strip()}")
            return True

        preprocessor.add_pragma_handler("endian", _endian)
        preprocessor.add_pragma_handler("eval_depth", _limit("eval_depth", 1))
        preprocessor.add_pragma_handler("array_limit", _limit("array_limit", 1))
        preprocessor.add_pragma_handler("pattern_limit", _limit("pattern_limit", 1))
        preprocessor.add_pragma_handler("base_address", _limit("base_address", 0))
        preprocessor.add_pragma_handler("MIME", _mime)
        return preprocessor
