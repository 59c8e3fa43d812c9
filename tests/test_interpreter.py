"""Tests for :mod:`patternlab.interpreter`."""

import struct

import pytest

from patternlab.errors import ScriptError
from patternlab.interpreter import EvaluationSettings, PatternInterpreter, parse_integer_literal
from patternlab.provider import DataSource


def _run(code: str, data: bytes, **settings):
    return PatternInterpreter(EvaluationSettings(**settings)).run(code, DataSource.from_bytes(data))


def test_single_byte_placement() -> None:
    tree = _run("u8 byte @ 0x00;", b"\xff")

    assert len(tree) == 1
    node = tree.roots[0]
    assert (node.name, node.type_name, node.offset, node.size, node.value) == ("byte", "u8", 0, 1, 0xFF)
    assert node.children == ()


def test_integer_widths_and_endianness() -> None:
    data = bytes.fromhex("3412 12345678 feff")
    tree = _run("u16 little @ 0; be u32 big @ 2; s16 negative @ 6;", data)

    assert [node.value for node in tree] == [0x1234, 0x12345678, -2]
    assert tree.roots[1].type_name == "be u32"
    assert tree.roots[1].endian == "big"


def test_floats_chars_and_bools() -> None:
    data = struct.pack("<f", 1.5) + struct.pack("<d", -2.25) + b"A\x01"
    tree = _run("float f @ 0; double d @ 4; char c @ 12; bool flag @ 13;", data)

    assert [node.value for node in tree] == [1.5, -2.25, "A", True]


def test_unplaced_declarations_follow_previous_one() -> None:
    tree = _run("u16 a @ 2; u8 b; u8 c;", b"\x00\x00\x01\x00\x07\x08")

    assert [(node.name, node.offset) for node in tree] == [("a", 2), ("b", 4), ("c", 5)]


def test_struct_members_are_laid_out_sequentially() -> None:
    code = """
    struct Header {
        char magic[4];
        u16 version;
        padding[2];
        u32 length;
    };

    Header header @ 0x00;
    """
    data = b"PLAB" + b"\x02\x00" + b"\xaa\xbb" + b"\x10\x00\x00\x00"
    tree = _run(code, data)

    header = tree.find("header")
    assert header.type_name == "Header"
    assert header.size == 12
    assert [child.name for child in header.children] == ["magic", "version", "padding", "length"]
    assert tree.find("header.magic").value == "PLAB"
    assert tree.find("header.padding").value is None
    assert tree.find("header.length").offset == 8
    assert tree.find("header.length").value == 16


def test_big_endian_struct_propagates_to_members() -> None:
    code = "struct Pair { u16 a; le u16 b; }; be Pair pair @ 0;"
    tree = _run(code, b"\x00\x01\x01\x00")

    assert tree.find("pair.a").value == 1
    assert tree.find("pair.b").value == 1


def test_union_members_share_offset() -> None:
    tree = _run("union Value { u8 low; u32 word; }; Value v @ 0;", b"\x01\x00\x00\x00")

    value = tree.find("v")
    assert value.size == 4
    assert [child.offset for child in value.children] == [0, 0]


def test_arrays_and_expressions() -> None:
    tree = _run("u8 items[2 * (1 + 1)] @ 0x10 - 0x0E;", bytes(range(8)))

    items = tree.find("items")
    assert items.type_name == "u8[4]"
    assert items.offset == 2
    assert [child.value for child in items.children] == [2, 3, 4, 5]
    assert [child.name for child in items.children] == ["[0]", "[1]", "[2]", "[3]"]


def test_sizeof_and_cursor() -> None:
    code = "struct Hdr { u32 a; u16 b; }; Hdr hdr @ 0; u8 after @ sizeof(Hdr); u8 next @ $;"
    tree = _run(code, bytes(range(8)))

    assert tree.find("after").offset == 6
    assert tree.find("next").offset == 7


def test_enum_values_are_resolved() -> None:
    code = "enum Kind : u8 { Empty, Data = 0x10, More }; Kind a @ 0; Kind b @ 1; Kind c @ 2;"
    tree = _run(code, b"\x10\x11\x05")

    assert [node.display for node in tree] == ["Kind::Data", "Kind::More", "Kind::???"]
    assert tree.roots[0].value == 0x10


def test_type_alias() -> None:
    tree = _run("using Word = be u16; Word w @ 0;", b"\x12\x34")

    assert tree.roots[0].value == 0x1234


def test_missing_closing_brace_is_reported_with_line() -> None:
    with pytest.raises(ScriptError) as excinfo:
        _run("struct { u8 a; u8 b", b"\x00\x00")

    assert excinfo.value.line == 1


def test_unterminated_struct_body_reports_end_of_input() -> None:
    with pytest.raises(ScriptError, match="end of input") as excinfo:
        _run("struct S {\n  u8 a;\n  u8 b", b"\x00\x00")

    assert excinfo.value.line >= 1


@pytest.mark.parametrize(
    "code,message",
    [
        ("u8 a @ 4;", "exceeds data size"),
        ("Missing m @ 0;", "unknown type 'Missing'"),
        ("str s @ 0;", "no fixed size"),
        ("u8 a[-1] @ 0;", "negative size"),
        ("u8 a @ 1 / 0;", "division by zero"),
        ("struct A { u8 x @ 0; };", "not supported"),
        ("struct A { u8 x; u8 x; };", "duplicate member"),
        ("using u8 = u16;", "redefinition"),
        ("u8 a @ 0", "expected ';'"),
        ("u8 ? @ 0;", "unexpected character"),
    ],
)
def test_script_errors(code, message) -> None:
    with pytest.raises(ScriptError, match=message):
        _run(code, b"\x00\x00")


def test_limits_are_enforced() -> None:
    with pytest.raises(ScriptError, match="array grew past"):
        _run("u8 a[8] @ 0;", bytes(8), array_limit=4)
    with pytest.raises(ScriptError, match="maximum number of patterns"):
        _run("u8 a @ 0; u8 b @ 1; u8 c @ 2;", bytes(3), pattern_limit=2)
    with pytest.raises(ScriptError, match="evaluation depth"):
        _run("struct In { u8 x; }; struct Out { In i; }; Out o @ 0;", bytes(1), eval_depth=2)


def test_error_lines_follow_source_lines() -> None:
    with pytest.raises(ScriptError) as excinfo:
        _run("u8 a @ 0;\n\nu8 b @ 9;\n", b"\x00")

    assert excinfo.value.line == 3


def test_evaluation_is_deterministic() -> None:
    code = "struct P { u8 a; be u16 b; }; P p[2] @ 0;"
    data = bytes(range(6))

    assert _run(code, data).shape() == _run(code, data).shape()


@pytest.mark.parametrize(
    "text,value",
    [("0x1F", 31), ("0b101", 5), ("42", 42), ("10u", 10), ("1.5f", 1.5)],
)
def test_parse_integer_literal(text, value) -> None:
    assert parse_integer_literal(text) == value


def test_deeply_nested_expressions_are_script_errors() -> None:
    long_sum = "u8 a @ 0;\nu8 b @ " + " + ".join(["0"] * 5000) + ";"
    with pytest.raises(ScriptError, match="nested too deeply") as excinfo:
        _run(long_sum, b"\x00")
    assert excinfo.value.line == 2

    parens = "u8 c @ " + "(" * 5000 + "0" + ")" * 5000 + ";"
    with pytest.raises(ScriptError, match="nested too deeply"):
        _run(parens, b"\x00")
