"""Public package exports for the pattern language evaluator."""

from .config import EditorSettings
from .editor import PatternEditor
from .errors import EvaluatorBusyError, PatternLanguageError, PreprocessorError, ScriptError
from .events import DeferredQueue, Event, EventBus
from .interpreter import EvaluationSettings, PatternInterpreter
from .lexer import PATTERN_LANGUAGE, Token, TokenCategory, classify, tokenize
from .magic import detect_content_type
from .orchestrator import EvaluationOrchestrator, Phase
from .patterns import PatternNode, PatternTree
from .preprocessor import Preprocessor
from .project import ProjectFile
from .provider import DataSource
from .runtime import Diagnostic, EvaluationResult, LogEntry, LogLevel, PatternRuntime
from .scanner import find_compatible_scripts, should_scan
from .store import ResultStore

__all__ = [
    "PATTERN_LANGUAGE",
    "DataSource",
    "DeferredQueue",
    "Diagnostic",
    "EditorSettings",
    "EvaluationOrchestrator",
    "EvaluationResult",
    "EvaluationSettings",
    "EvaluatorBusyError",
    "Event",
    "EventBus",
    "LogEntry",
    "LogLevel",
    "PatternEditor",
    "PatternInterpreter",
    "PatternLanguageError",
    "PatternNode",
    "PatternRuntime",
    "PatternTree",
    "Phase",
    "Preprocessor",
    "PreprocessorError",
    "ProjectFile",
    "ResultStore",
    "ScriptError",
    "Token",
    "TokenCategory",
    "classify",
    "detect_content_type",
    "find_compatible_scripts",
    "should_scan",
    "tokenize",
]
