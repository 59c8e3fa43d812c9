"""Lexical classification of pattern language source text.

The classifier powers syntax highlighting.  It does not build a parse tree:
given a buffer and a position it returns the span and category of the next
token, which is exactly what a line based highlighter needs.  The keyword and
built-in type tables live in :data:`PATTERN_LANGUAGE`, an immutable definition
built once at import time and shared by every caller.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import FrozenSet, Iterator, Mapping, Optional

__all__ = [
    "BUILTIN_TYPE_DECLARATION",
    "LanguageDefinition",
    "PATTERN_LANGUAGE",
    "Token",
    "TokenCategory",
    "classify",
    "tokenize",
]


class TokenCategory(Enum):
    DEFAULT = "default"
    IDENTIFIER = "identifier"
    KEYWORD = "keyword"
    BUILTIN_TYPE = "builtin_type"
    NUMBER = "number"
    CHAR_LITERAL = "char_literal"
    STRING = "string"
    COMMENT = "comment"
    PREPROCESSOR = "preprocessor"


@dataclass(frozen=True)
class Token:
    """Half-open ``[start, end)`` span into the classified text."""

    start: int
    end: int
    category: TokenCategory
    declaration: Optional[str] = None

    @property
    def span(self) -> tuple[int, int]:
        return self.start, self.end

    def __len__(self) -> int:
        return self.end - self.start

    def text(self, source: str) -> str:
        return source[self.start : self.end]


BUILTIN_TYPE_DECLARATION = "Built-in type"


@dataclass(frozen=True)
class LanguageDefinition:
    """Static description of a highlighted language."""

    name: str
    keywords: FrozenSet[str]
    identifiers: Mapping[str, str] = field(default_factory=dict)
    comment_start: str = "/*"
    comment_end: str = "*/"
    single_line_comment: str = "//"
    preprocessor_char: str = "#"
    case_sensitive: bool = True
    auto_indentation: bool = True

    def declaration_for(self, word: str) -> Optional[str]:
        return self.identifiers.get(word)


_KEYWORDS = (
    "using",
    "struct",
    "union",
    "enum",
    "bitfield",
    "be",
    "le",
    "if",
    "else",
    "false",
    "true",
    "this",
    "parent",
    "addressof",
    "sizeof",
    "$",
    "while",
    "fn",
    "return",
    "namespace",
)

_BUILTIN_TYPES = (
    "u8",
    "u16",
    "u32",
    "u64",
    "u128",
    "s8",
    "s16",
    "s32",
    "s64",
    "s128",
    "float",
    "double",
    "char",
    "char16",
    "bool",
    "padding",
    "str",
)

PATTERN_LANGUAGE = LanguageDefinition(
    name="Pattern Language",
    keywords=frozenset(_KEYWORDS),
    identifiers=MappingProxyType(
        {name: BUILTIN_TYPE_DECLARATION for name in _BUILTIN_TYPES}
    ),
)


# ---------------------------------------------------------------------------
# C-style token shapes
# ---------------------------------------------------------------------------

_IDENTIFIER_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_NUMBER_RE = re.compile(
    r"""
    (?:
        0[xX][0-9A-Fa-f]+[uUlL]*
      | 0[bB][01]+[uUlL]*
      | (?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?[fFuUlL]*
    )
    (?![A-Za-z0-9_])
    """,
    re.VERBOSE,
)
_CHAR_RE = re.compile(r"'(?:\\(?:x[0-9A-Fa-f]+|.)|[^'\\\n])'")
_STRING_RE = re.compile(r'"(?:\\.|[^"\\\n])*"')

_BLANKS = " \t"


def classify(
    text: str, pos: int = 0, language: LanguageDefinition = PATTERN_LANGUAGE
) -> Optional[Token]:
    """Classify the token starting at ``pos`` after leading blanks.

    Returns a zero-length ``DEFAULT`` token at the end of the input and
    ``None`` when nothing matches; in that case the caller advances by one
    character and retries.
    """

    end = len(text)
    while pos < end and text[pos] in _BLANKS:
        pos += 1

    if pos >= end:
        return Token(end, end, TokenCategory.DEFAULT)

    match = _IDENTIFIER_RE.match(text, pos)
    if match:
        word = match.group(0)
        if not language.case_sensitive:
            word = word.lower()
        if word in language.keywords:
            return Token(pos, match.end(), TokenCategory.KEYWORD)
        declaration = language.declaration_for(word)
        if declaration is not None:
            return Token(pos, match.end(), TokenCategory.BUILTIN_TYPE, declaration)
        return Token(pos, match.end(), TokenCategory.IDENTIFIER)

    for pattern, category in (
        (_NUMBER_RE, TokenCategory.NUMBER),
        (_CHAR_RE, TokenCategory.CHAR_LITERAL),
        (_STRING_RE, TokenCategory.STRING),
    ):
        match = pattern.match(text, pos)
        if match:
            return Token(pos, match.end(), category)

    return None


def tokenize(
    text: str, language: LanguageDefinition = PATTERN_LANGUAGE
) -> Iterator[Token]:
    """Lazily yield the highlighted tokens of ``text``.

    Comments and preprocessor lines are recognised here, before the per-token
    classifier runs.  Characters that nothing classifies (operators,
    punctuation) are skipped one at a time.
    """

    pos = 0
    end = len(text)
    at_line_start = True
    while pos < end:
        char = text[pos]
        if char == "\n":
            at_line_start = True
            pos += 1
            continue
        if char in _BLANKS or char == "\r":
            pos += 1
            continue

        if text.startswith(language.single_line_comment, pos):
            stop = text.find("\n", pos)
            stop = end if stop == -1 else stop
            yield Token(pos, stop, TokenCategory.COMMENT)
            pos = stop
            continue

        if text.startswith(language.comment_start, pos):
            stop = text.find(language.comment_end, pos + len(language.comment_start))
            stop = end if stop == -1 else stop + len(language.comment_end)
            yield Token(pos, stop, TokenCategory.COMMENT)
            pos = stop
            at_line_start = False
            continue

        if at_line_start and char == language.preprocessor_char:
            stop = text.find("\n", pos)
            stop = end if stop == -1 else stop
            yield Token(pos, stop, TokenCategory.PREPROCESSOR)
            pos = stop
            continue

        at_line_start = False
        token = classify(text, pos, language)
        if token is None:
            pos += 1
            continue
        if not len(token):
            return
        yield token
        pos = token.end
