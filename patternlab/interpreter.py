"""Reference interpreter for a subset of the pattern language.

Scripts declare C-like types and place variables on the data source::

    #pragma endian big

    enum Kind : u8 { Empty, Header = 0x10 };

    struct Header {
        char magic[4];
        Kind kind;
        padding[3];
        u32 length;
    };

    Header header @ 0x00;
    u8 payload[16] @ sizeof(Header);

The interpreter works in two steps.  :class:`_Parser` turns the preprocessed
source into a list of top-level declarations, resolving type definitions as it
goes (types must be declared before use).  :class:`_Evaluator` then places the
declarations on the data source and builds the :class:`PatternTree`.  Syntax
errors are therefore reported before any byte is read.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Union

from .errors import ScriptError
from .lexer import TokenCategory, classify
from .patterns import ColorPalette, PatternNode, PatternTree, PatternValue
from .provider import DataSource

__all__ = [
    "BUILTIN_TYPES",
    "BuiltinType",
    "EvaluationSettings",
    "PatternInterpreter",
    "parse_integer_literal",
]


@dataclass
class EvaluationSettings:
    """Runtime limits and defaults, adjustable through pragmas."""

    endian: str = "little"
    eval_depth: int = 32
    array_limit: int = 0x1000
    pattern_limit: int = 0x2000
    base_address: int = 0


@dataclass(frozen=True)
class BuiltinType:
    name: str
    size: int
    kind: str


BUILTIN_TYPES: Dict[str, BuiltinType] = {
    builtin.name: builtin
    for builtin in (
        BuiltinType("u8", 1, "unsigned"),
        BuiltinType("u16", 2, "unsigned"),
        BuiltinType("u32", 4, "unsigned"),
        BuiltinType("u64", 8, "unsigned"),
        BuiltinType("u128", 16, "unsigned"),
        BuiltinType("s8", 1, "signed"),
        BuiltinType("s16", 2, "signed"),
        BuiltinType("s32", 4, "signed"),
        BuiltinType("s64", 8, "signed"),
        BuiltinType("s128", 16, "signed"),
        BuiltinType("float", 4, "float"),
        BuiltinType("double", 8, "float"),
        BuiltinType("char", 1, "char"),
        BuiltinType("char16", 2, "char16"),
        BuiltinType("bool", 1, "bool"),
        BuiltinType("padding", 1, "padding"),
        BuiltinType("str", 0, "str"),
    )
}


def parse_integer_literal(text: str) -> Union[int, float]:
    """Convert a C-style numeric literal into a Python number."""

    lowered = text.lower()
    if lowered.startswith(("0x", "0b")):
        return int(lowered.rstrip("ul"), 0)
    stripped = lowered.rstrip("ul")
    if any(ch in stripped for ch in ".e") or stripped.endswith("f"):
        return float(stripped.rstrip("f"))
    return int(stripped, 10)


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------

_OPERATORS = frozenset("{}[]();,@=:+-*/%$")

_ESCAPES = {"n": "\n", "r": "\r", "t": "\t", "0": "\0", "\\": "\\", "'": "'", '"': '"'}


@dataclass(frozen=True)
class _Tok:
    kind: str
    value: str
    line: int


def _scan(code: str) -> List[_Tok]:
    tokens: List[_Tok] = []
    pos = 0
    line = 1
    end = len(code)
    while pos < end:
        char = code[pos]
        if char == "\n":
            line += 1
            pos += 1
            continue
        if char.isspace():
            pos += 1
            continue
        if char == "#":
            raise ScriptError("unsupported preprocessor directive", line)
        if char in _OPERATORS:
            tokens.append(_Tok("op", char, line))
            pos += 1
            continue

        token = classify(code, pos)
        if token is None or not len(token):
            raise ScriptError(f"unexpected character '{char}'", line)
        text = token.text(code)
        if token.category is TokenCategory.KEYWORD:
            kind = "keyword"
        elif token.category in (TokenCategory.IDENTIFIER, TokenCategory.BUILTIN_TYPE):
            kind = "ident"
        elif token.category is TokenCategory.NUMBER:
            kind = "number"
        elif token.category is TokenCategory.CHAR_LITERAL:
            kind = "char"
        else:
            kind = "string"
        tokens.append(_Tok(kind, text, line))
        pos = token.end
    tokens.append(_Tok("eof", "", line))
    return tokens


def _char_value(literal: str, line: int) -> int:
    body = literal[1:-1]
    if body.startswith("\\x"):
        return int(body[2:], 16)
    if body.startswith("\\"):
        if body[1] not in _ESCAPES:
            raise ScriptError(f"unknown escape sequence '{body}'", line)
        return ord(_ESCAPES[body[1]])
    return ord(body)


# ---------------------------------------------------------------------------
# Program model
# ---------------------------------------------------------------------------


@dataclass
class _StructType:
    name: str
    members: List["_Declaration"]
    union: bool = False


@dataclass
class _EnumType:
    name: str
    base: "_TypeRef"
    entries: Dict[int, str]


_Type = Union[BuiltinType, _StructType, _EnumType]


@dataclass(frozen=True)
class _TypeRef:
    type: _Type
    endian: Optional[str] = None

    @property
    def name(self) -> str:
        return self.type.name


# Expression nodes are plain tuples: ("num", value), ("cursor",),
# ("sizeof", typeref), ("neg", expr) and ("bin", op, left, right).
_Expr = tuple


@dataclass
class _Declaration:
    type_ref: _TypeRef
    name: str
    line: int
    count: Optional[_Expr] = None
    placement: Optional[_Expr] = None


@dataclass
class _Program:
    declarations: List[_Declaration] = field(default_factory=list)
    types: Dict[str, _TypeRef] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


class _Parser:
    def __init__(self, tokens: Sequence[_Tok]) -> None:
        self.tokens = tokens
        self.index = 0
        self.program = _Program()

    # token helpers ------------------------------------------------------
    @property
    def current(self) -> _Tok:
        return self.tokens[self.index]

    def _advance(self) -> _Tok:
        token = self.tokens[self.index]
        if token.kind != "eof":
            self.index += 1
        return token

    def _check(self, value: str) -> bool:
        token = self.current
        return token.kind in ("op", "keyword") and token.value == value

    def _accept(self, value: str) -> bool:
        if self._check(value):
            self._advance()
            return True
        return False

    def _expect(self, value: str, context: str) -> _Tok:
        if not self._check(value):
            raise ScriptError(f"expected '{value}' {context}, got {self._describe()}", self.current.line)
        return self._advance()

    def _expect_identifier(self, what: str) -> _Tok:
        if self.current.kind != "ident":
            raise ScriptError(f"expected {what}, got {self._describe()}", self.current.line)
        return self._advance()

    def _describe(self) -> str:
        token = self.current
        if token.kind == "eof":
            return "end of input"
        return f"'{token.value}'"

    # grammar -------------------------------------------------------------
    def parse(self) -> _Program:
        while self.current.kind != "eof":
            line = self.current.line
            try:
                self._statement()
            except RecursionError:
                raise ScriptError("expression nested too deeply", line) from None
        return self.program

    def _statement(self) -> None:
        if self._accept(";"):
            return
        if self._accept("using"):
            self._using()
        elif self._check("struct") or self._check("union"):
            self._struct(union=self._advance().value == "union")
        elif self._accept("enum"):
            self._enum()
        else:
            declaration = self._declaration(allow_placement=True)
            self.program.declarations.append(declaration)

    def _define(self, name_token: _Tok, type_ref: _TypeRef) -> None:
        name = name_token.value
        if name in BUILTIN_TYPES or name in self.program.types:
            raise ScriptError(f"redefinition of type '{name}'", name_token.line)
        self.program.types[name] = type_ref

    def _using(self) -> None:
        name = self._expect_identifier("type name after 'using'")
        self._expect("=", "in type alias")
        target = self._type_ref()
        self._expect(";", "after type alias")
        self._define(name, target)

    def _struct(self, union: bool) -> None:
        keyword = "union" if union else "struct"
        name = self._expect_identifier(f"{keyword} name")
        struct_type = _StructType(name.value, [], union=union)
        self._expect("{", f"to open {keyword} '{name.value}'")
        seen: set = set()
        while not self._check("}"):
            if self.current.kind == "eof":
                raise ScriptError(
                    f"expected '}}' to close {keyword} '{name.value}', got end of input",
                    self.current.line,
                )
            if self._accept(";"):
                continue
            member = self._declaration(allow_placement=False)
            if member.name in seen and member.name != "padding":
                raise ScriptError(f"duplicate member '{member.name}'", member.line)
            seen.add(member.name)
            struct_type.members.append(member)
        self._advance()
        self._expect(";", f"after {keyword} '{name.value}'")
        self._define(name, _TypeRef(struct_type))

    def _enum(self) -> None:
        name = self._expect_identifier("enum name")
        self._expect(":", f"before underlying type of enum '{name.value}'")
        base = self._type_ref()
        if not isinstance(base.type, BuiltinType) or base.type.kind not in ("unsigned", "signed"):
            raise ScriptError(f"enum '{name.value}' needs an integral underlying type", name.line)
        self._expect("{", f"to open enum '{name.value}'")
        entries: Dict[int, str] = {}
        next_value = 0
        while not self._check("}"):
            entry = self._expect_identifier("enum entry name")
            if self._accept("="):
                value = _evaluate(self._expression(), self.program, cursor=0, line=entry.line)
            else:
                value = next_value
            entries.setdefault(value, entry.value)
            next_value = value + 1
            if not self._accept(","):
                break
        self._expect("}", f"to close enum '{name.value}'")
        self._expect(";", f"after enum '{name.value}'")
        self._define(name, _TypeRef(_EnumType(name.value, base, entries)))

    def _type_ref(self) -> _TypeRef:
        endian = None
        if self._check("be") or self._check("le"):
            endian = "big" if self._advance().value == "be" else "little"
        token = self._expect_identifier("type name")
        builtin = BUILTIN_TYPES.get(token.value)
        if builtin is not None:
            return _TypeRef(builtin, endian)
        alias = self.program.types.get(token.value)
        if alias is None:
            raise ScriptError(f"unknown type '{token.value}'", token.line)
        return _TypeRef(alias.type, endian or alias.endian)

    def _declaration(self, allow_placement: bool) -> _Declaration:
        line = self.current.line
        type_ref = self._type_ref()
        if isinstance(type_ref.type, BuiltinType) and type_ref.type.kind == "str":
            raise ScriptError("type 'str' has no fixed size", line)

        if isinstance(type_ref.type, BuiltinType) and type_ref.type.kind == "padding" and self._check("["):
            name = "padding"
        else:
            name = self._expect_identifier("variable name").value

        declaration = _Declaration(type_ref, name, line)
        if self._accept("["):
            declaration.count = self._expression()
            self._expect("]", "to close array size")
        if self._check("@"):
            if not allow_placement:
                raise ScriptError(f"placement of member '{name}' is not supported", self.current.line)
            self._advance()
            declaration.placement = self._expression()
        self._expect(";", f"after declaration of '{name}'")
        return declaration

    def _expression(self) -> _Expr:
        left = self._term()
        while self._check("+") or self._check("-"):
            op = self._advance().value
            left = ("bin", op, left, self._term())
        return left

    def _term(self) -> _Expr:
        left = self._factor()
        while self._check("*") or self._check("/") or self._check("%"):
            op = self._advance().value
            left = ("bin", op, left, self._factor())
        return left

    def _factor(self) -> _Expr:
        token = self.current
        if self._accept("-"):
            return ("neg", self._factor())
        if self._accept("("):
            inner = self._expression()
            self._expect(")", "to close expression")
            return inner
        if self._accept("$"):
            return ("cursor",)
        if self._accept("sizeof"):
            self._expect("(", "after 'sizeof'")
            type_ref = self._type_ref()
            self._expect(")", "to close 'sizeof'")
            return ("sizeof", type_ref)
        if token.kind == "number":
            self._advance()
            value = parse_integer_literal(token.value)
            if not isinstance(value, int):
                raise ScriptError(f"expected integer, got '{token.value}'", token.line)
            return ("num", value)
        if token.kind == "char":
            self._advance()
            return ("num", _char_value(token.value, token.line))
        if self._accept("true"):
            return ("num", 1)
        if self._accept("false"):
            return ("num", 0)
        raise ScriptError(f"expected expression, got {self._describe()}", token.line)


def _evaluate(expr: _Expr, program: _Program, cursor: int, line: int) -> int:
    kind = expr[0]
    if kind == "num":
        return expr[1]
    if kind == "cursor":
        return cursor
    if kind == "sizeof":
        return _static_size(expr[1], program, line)
    if kind == "neg":
        return -_evaluate(expr[1], program, cursor, line)
    op = expr[1]
    left = _evaluate(expr[2], program, cursor, line)
    right = _evaluate(expr[3], program, cursor, line)
    if op == "+":
        return left + right
    if op == "-":
        return left - right
    if op == "*":
        return left * right
    if right == 0:
        raise ScriptError("division by zero", line)
    if op == "/":
        return left // right
    return left % right


def _static_size(type_ref: _TypeRef, program: _Program, line: int) -> int:
    target = type_ref.type
    if isinstance(target, BuiltinType):
        return target.size
    if isinstance(target, _EnumType):
        return _static_size(target.base, program, line)
    sizes = []
    for member in target.members:
        size = _static_size(member.type_ref, program, member.line)
        if member.count is not None:
            size *= _evaluate(member.count, program, cursor=0, line=member.line)
        sizes.append(size)
    if not sizes:
        return 0
    return max(sizes) if target.union else sum(sizes)


# ---------------------------------------------------------------------------
# Evaluator
# ---------------------------------------------------------------------------


class _Evaluator:
    def __init__(
        self, program: _Program, source: DataSource, settings: EvaluationSettings
    ) -> None:
        self.program = program
        self.source = source
        self.settings = settings
        self.palette = ColorPalette()
        self.pattern_count = 0

    def run(self) -> PatternTree:
        roots: List[PatternNode] = []
        cursor = 0
        for declaration in self.program.declarations:
            try:
                node = self._place_root(declaration, cursor)
            except RecursionError:
                raise ScriptError("expression nested too deeply", declaration.line) from None
            roots.append(node)
            cursor = node.end
        return PatternTree(tuple(roots))

    def _place_root(self, declaration: _Declaration, cursor: int) -> PatternNode:
        offset = cursor
        if declaration.placement is not None:
            offset = _evaluate(declaration.placement, self.program, cursor, declaration.line)
        return self.place(declaration, offset, depth=1, endian=self.settings.endian)

    def _count_pattern(self, line: int) -> None:
        self.pattern_count += 1
        if self.pattern_count > self.settings.pattern_limit:
            raise ScriptError(
                f"exceeded maximum number of patterns: {self.settings.pattern_limit}", line
            )

    def place(self, declaration: _Declaration, offset: int, depth: int, endian: str) -> PatternNode:
        if depth > self.settings.eval_depth:
            raise ScriptError(
                f"evaluation depth exceeded set limit of {self.settings.eval_depth}",
                declaration.line,
            )
        type_ref = declaration.type_ref
        endian = type_ref.endian or endian
        if declaration.count is None:
            return self._place_single(type_ref, declaration.name, offset, depth, endian, declaration.line)

        count = _evaluate(declaration.count, self.program, offset, declaration.line)
        if count < 0:
            raise ScriptError(f"array '{declaration.name}' has negative size {count}", declaration.line)
        if count > self.settings.array_limit:
            raise ScriptError(
                f"array grew past set limit of {self.settings.array_limit}", declaration.line
            )
        return self._place_array(type_ref, declaration.name, count, offset, depth, endian, declaration.line)

    def _place_single(
        self, type_ref: _TypeRef, name: str, offset: int, depth: int, endian: str, line: int
    ) -> PatternNode:
        self._count_pattern(line)
        target = type_ref.type
        color = self.palette.next_color()
        if isinstance(target, BuiltinType):
            raw = self._read(name, offset, target.size, line)
            return PatternNode(
                name=name,
                type_name=_qualified(target.name, type_ref.endian),
                offset=offset,
                size=target.size,
                value=_decode(target, raw, endian),
                endian=endian,
                color=color,
            )
        if isinstance(target, _EnumType):
            base = target.base.type
            raw = self._read(name, offset, base.size, line)
            value = _decode(base, raw, target.base.endian or endian)
            entry = target.entries.get(value, "???")
            return PatternNode(
                name=name,
                type_name=target.name,
                offset=offset,
                size=base.size,
                value=value,
                display=f"{target.name}::{entry}",
                endian=endian,
                color=color,
            )

        children: List[PatternNode] = []
        cursor = offset
        for member in target.members:
            child = self.place(member, cursor, depth + 1, endian)
            children.append(child)
            if not target.union:
                cursor = child.end
        size = max((child.size for child in children), default=0) if target.union else cursor - offset
        return PatternNode(
            name=name,
            type_name=target.name,
            offset=offset,
            size=size,
            endian=endian,
            color=color,
            children=tuple(children),
        )

    def _place_array(
        self,
        type_ref: _TypeRef,
        name: str,
        count: int,
        offset: int,
        depth: int,
        endian: str,
        line: int,
    ) -> PatternNode:
        target = type_ref.type
        type_name = f"{_qualified(target.name, type_ref.endian)}[{count}]"
        if isinstance(target, BuiltinType) and target.kind in ("char", "char16", "padding"):
            self._count_pattern(line)
            size = target.size * count
            raw = self._read(name, offset, size, line)
            value: PatternValue = None
            if target.kind == "char":
                value = raw.decode("latin-1").rstrip("\0")
            elif target.kind == "char16":
                codec = "utf-16-be" if endian == "big" else "utf-16-le"
                value = raw.decode(codec, errors="replace").rstrip("\0")
            return PatternNode(
                name=name,
                type_name=type_name,
                offset=offset,
                size=size,
                value=value,
                endian=endian,
                color=self.palette.next_color(),
            )

        self._count_pattern(line)
        color = self.palette.next_color()
        entries: List[PatternNode] = []
        cursor = offset
        for index in range(count):
            entry = self._place_single(type_ref, f"[{index}]", cursor, depth + 1, endian, line)
            entries.append(entry)
            cursor = entry.end
        return PatternNode(
            name=name,
            type_name=type_name,
            offset=offset,
            size=cursor - offset,
            endian=endian,
            color=color,
            children=tuple(entries),
        )

    def _read(self, name: str, offset: int, size: int, line: int) -> bytes:
        if not self.source.contains(offset, size):
            raise ScriptError(
                f"pattern '{name}' at 0x{offset:X} ({size} byte(s)) exceeds data size 0x{self.source.size:X}",
                line,
            )
        return self.source.read(offset, size)


def _qualified(name: str, endian: Optional[str]) -> str:
    if endian is None:
        return name
    return ("be " if endian == "big" else "le ") + name


def _decode(target: BuiltinType, raw: bytes, endian: str) -> PatternValue:
    order = "big" if endian == "big" else "little"
    if target.kind == "unsigned":
        return int.from_bytes(raw, order)
    if target.kind == "signed":
        return int.from_bytes(raw, order, signed=True)
    if target.kind == "float":
        code = "f" if target.size == 4 else "d"
        return struct.unpack((">" if order == "big" else "<") + code, raw)[0]
    if target.kind == "char":
        return raw.decode("latin-1")
    if target.kind == "char16":
        return raw.decode("utf-16-be" if order == "big" else "utf-16-le", errors="replace")
    if target.kind == "bool":
        return raw[0] != 0
    return None


class PatternInterpreter:
    """Parse and evaluate pattern source against a :class:`DataSource`."""

    def __init__(self, settings: Optional[EvaluationSettings] = None) -> None:
        self.settings = settings or EvaluationSettings()

    def run(self, code: str, source: DataSource) -> PatternTree:
        program = _Parser(_scan(code)).parse()
        return _Evaluator(program, source, self.settings).run()
