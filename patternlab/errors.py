"""Exception types raised while preprocessing and evaluating patterns."""

from __future__ import annotations

from typing import Optional


class PatternLanguageError(ValueError):
    """Base class for errors that point at a line of pattern source."""

    def __init__(self, message: str, line: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.line = line

    def __str__(self) -> str:
        if self.line is None:
            return self.message
        return f"line {self.line}: {self.message}"


class PreprocessorError(PatternLanguageError):
    """Raised for malformed directives and pragmas without a handler."""


class ScriptError(PatternLanguageError):
    """Raised by the interpreter when it rejects a script."""


class EvaluatorBusyError(RuntimeError):
    """Raised when state owned by a running evaluation would be replaced."""
