import pytest

from patternlab.errors import PreprocessorError
from patternlab.preprocessor import Preprocessor


def test_pragmas_are_collected_and_dispatched_in_order() -> None:
    seen = []
    preprocessor = Preprocessor()
    preprocessor.add_pragma_handler("endian", lambda value: seen.append(("endian", value)) or True)
    preprocessor.add_pragma_handler("MIME", lambda value: seen.append(("MIME", value)) or True)

    output = preprocessor.preprocess("#pragma endian big\n#pragma MIME image/png\nu8 x @ 0;\n")

    assert seen == [("endian", "big"), ("MIME", "image/png")]
    assert [pragma.line for pragma in preprocessor.pragmas] == [1, 2]
    assert output == "\n\nu8 x @ 0;\n"


def test_handler_returning_false_stops_dispatch() -> None:
    seen = []
    preprocessor = Preprocessor()

    def _stop(value: str) -> bool:
        seen.append(value)
        return False

    preprocessor.add_pragma_handler("MIME", _stop)

    preprocessor.preprocess("#pragma MIME a\n#pragma MIME b\n")

    assert seen == ["a"]
    assert preprocessor.stopped_at.value == "a"
    assert preprocessor.stopped_at.line == 1


def test_unrelated_directives_pass_through() -> None:
    preprocessor = Preprocessor()
    source = '#include "std/io.pat"\n#define SIZE 4\nu8 data[4] @ 0;'

    assert preprocessor.preprocess(source) == source
    assert preprocessor.pragmas == ()


def test_pragma_inside_comment_is_ignored() -> None:
    preprocessor = Preprocessor()

    output = preprocessor.preprocess("/*\n#pragma MIME text/plain\n*/\nu8 a; // #pragma x\n")

    assert preprocessor.pragmas == ()
    assert output.count("\n") == 4
    assert "u8 a;" in output


def test_comment_markers_inside_strings_are_kept() -> None:
    preprocessor = Preprocessor()

    output = preprocessor.preprocess('char c = \'/\'; str s = "// not a comment";')

    assert '"// not a comment"' in output


def test_unknown_pragma_without_handler_is_an_error() -> None:
    preprocessor = Preprocessor()

    with pytest.raises(PreprocessorError, match="no handler") as excinfo:
        preprocessor.preprocess("\n#pragma frobnicate yes\n")

    assert excinfo.value.line == 2


def test_unterminated_comment_is_an_error() -> None:
    with pytest.raises(PreprocessorError, match="unterminated comment"):
        Preprocessor().preprocess("u8 a;\n/* open")


def test_default_handlers_do_not_replace_existing_ones() -> None:
    calls = []
    preprocessor = Preprocessor()
    preprocessor.add_pragma_handler("MIME", lambda value: calls.append(value) or True)
    preprocessor.add_default_pragma_handlers()

    preprocessor.preprocess("#pragma MIME x/y\n#pragma endian little\n#pragma array_limit 0x100\n")

    assert calls == ["x/y"]
    assert preprocessor.stopped_at is None


def test_default_handlers_reject_malformed_values() -> None:
    preprocessor = Preprocessor()
    preprocessor.add_default_pragma_handlers()

    preprocessor.preprocess("#pragma endian middle\n")

    assert preprocessor.stopped_at.name == "endian"


def test_pragma_value_keeps_carriage_return() -> None:
    values = []
    preprocessor = Preprocessor()
    preprocessor.add_pragma_handler("MIME", lambda value: values.append(value) or True)

    preprocessor.preprocess("#pragma MIME image/png\r\nu8 a;\r\n")

    assert values == ["image/png\r"]
