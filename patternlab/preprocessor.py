"""Preprocessing pass for pattern language sources.

The preprocessor runs before any evaluation.  It removes comments, collects
``#pragma <name> <value>`` lines and dispatches each of them to the handler
registered under ``name``.  Every other directive is passed through unchanged
so callers that only care about pragmas (the format-match scanner) never have
to understand the full language.

A handler returns ``True`` to let the preprocessor continue with the next
pragma and ``False`` to stop dispatching for the current source.  The pragma
that stopped the pass is exposed as :attr:`Preprocessor.stopped_at`; the
runtime treats it as an invalid pragma value while the scanner uses it as a
short-circuit once a decisive answer is known.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from .errors import PreprocessorError

__all__ = [
    "Pragma",
    "PragmaHandler",
    "Preprocessor",
    "parse_pragma_integer",
]

PragmaHandler = Callable[[str], bool]

_PRAGMA_RE = re.compile(r"^[ \t]*#[ \t]*pragma\b(.*)$")
_PRAGMA_BODY_RE = re.compile(r"^[ \t]+([A-Za-z_][A-Za-z0-9_]*)(?:[ \t]+(.*))?$", re.DOTALL)

ENDIAN_VALUES = frozenset({"little", "big", "native"})


@dataclass(frozen=True)
class Pragma:
    name: str
    value: str
    line: int


def parse_pragma_integer(value: str) -> Optional[int]:
    """Return the integer spelled by ``value`` or ``None``."""

    text = value.strip()
    if not text:
        return None
    try:
        return int(text, 0)
    except ValueError:
        return None


def _validate_mime(value: str) -> bool:
    return bool(value.strip()) and not value.endswith(("\n", "\r"))


def _validate_endian(value: str) -> bool:
    return value.strip() in ENDIAN_VALUES


def _validate_positive(value: str) -> bool:
    number = parse_pragma_integer(value)
    return number is not None and number > 0


def _validate_address(value: str) -> bool:
    number = parse_pragma_integer(value)
    return number is not None and number >= 0


_DEFAULT_HANDLERS: Dict[str, PragmaHandler] = {
    "MIME": _validate_mime,
    "endian": _validate_endian,
    "eval_depth": _validate_positive,
    "array_limit": _validate_positive,
    "pattern_limit": _validate_positive,
    "base_address": _validate_address,
}


class Preprocessor:
    """Strip comments and dispatch ``#pragma`` lines to registered handlers."""

    def __init__(self) -> None:
        self._handlers: Dict[str, PragmaHandler] = {}
        self._pragmas: List[Pragma] = []
        self._stopped_at: Optional[Pragma] = None

    def add_pragma_handler(self, name: str, handler: PragmaHandler) -> None:
        self._handlers[name] = handler

    def add_default_pragma_handlers(self) -> None:
        """Register validating handlers for the built-in pragmas.

        Handlers that are already registered are kept, so a caller can
        install its own ``MIME`` predicate before or after this call.
        """

        for name, handler in _DEFAULT_HANDLERS.items():
            self._handlers.setdefault(name, handler)

    @property
    def pragmas(self) -> Tuple[Pragma, ...]:
        return tuple(self._pragmas)

    @property
    def stopped_at(self) -> Optional[Pragma]:
        return self._stopped_at

    def preprocess(self, code: str) -> str:
        """Return ``code`` with comments blanked and pragma lines removed.

        Line numbers are preserved: comments keep their newlines and pragma
        lines become empty lines.
        """

        self._pragmas = []
        self._stopped_at = None

        stripped = _strip_comments(code)
        output: List[str] = []
        for number, line in enumerate(stripped.split("\n"), start=1):
            match = _PRAGMA_RE.match(line)
            if match is None:
                output.append(line)
                continue
            body = _PRAGMA_BODY_RE.match(match.group(1))
            if body is None:
                raise PreprocessorError("expected pragma name after '#pragma'", number)
            self._pragmas.append(Pragma(body.group(1), body.group(2) or "", number))
            output.append("")

        self._dispatch()
        return "\n".join(output)

    def _dispatch(self) -> None:
        for pragma in self._pragmas:
            handler = self._handlers.get(pragma.name)
            if handler is None:
                raise PreprocessorError(
                    f"no handler registered for pragma '{pragma.name}'", pragma.line
                )
            if not handler(pragma.value):
                self._stopped_at = pragma
                return


def _strip_comments(code: str) -> str:
    """Blank out ``//`` and ``/* */`` comments outside of literals."""

    out: List[str] = []
    index = 0
    length = len(code)
    line = 1
    quote: Optional[str] = None
    while index < length:
        char = code[index]
        if quote is not None:
            out.append(char)
            if char == "\\" and index + 1 < length:
                out.append(code[index + 1])
                index += 2
                continue
            if char == quote or char == "\n":
                quote = None
            if char == "\n":
                line += 1
            index += 1
            continue

        if char in "\"'":
            quote = char
            out.append(char)
            index += 1
            continue

        if code.startswith("//", index):
            stop = code.find("\n", index)
            stop = length if stop == -1 else stop
            out.append(" " * (stop - index))
            index = stop
            continue

        if code.startswith("/*", index):
            stop = code.find("*/", index + 2)
            if stop == -1:
                raise PreprocessorError("unterminated comment", line)
            comment = code[index : stop + 2]
            line += comment.count("\n")
            out.append("".join("\n" if c == "\n" else " " for c in comment))
            index = stop + 2
            continue

        if char == "\n":
            line += 1
        out.append(char)
        index += 1
    return "".join(out)
