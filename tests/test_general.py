import pytest

from quillparse import Incomplete, ParseError, Stream, parse
from quillparse.general import (
    crlf,
    digit1,
    hex_digit1,
    integer,
    line_ending,
    multispace1,
    newline,
    quoted_string,
    space0,
    tab,
    till_line_ending,
)


def test_digits() -> None:
    stream = Stream("123abc")
    assert digit1(stream).data == "123"
    assert not digit1(stream)


def test_hex_digits() -> None:
    stream = Stream("1a2b Hello")
    assert hex_digit1(stream).data == "1a2b"
    assert stream.src[stream.pos:] == " Hello"


def test_classes_work_on_bytes() -> None:
    assert digit1(Stream(b"42;")).data == b"42"
    assert hex_digit1(Stream(b"fF0g")).data == b"fF0"


def test_whitespace() -> None:
    assert space0(Stream("abc")).data == ""
    assert multispace1(Stream(" \r\n\tx")).data == " \r\n\t"


def test_line_endings() -> None:
    assert line_ending(Stream("\r\nx")).data == "\r\n"
    assert line_ending(Stream(b"\nx")).data == b"\n"
    assert crlf(Stream(b"\r\n")).data == b"\r\n"
    assert not crlf(Stream("\n"))
    assert newline(Stream("\n")).data == "\n"
    assert tab(Stream("\t")).data == "\t"
    assert till_line_ending(Stream("abc\r\nd")).data == "abc"


class TestInteger:
    @pytest.mark.parametrize(
        ("src", "value"),
        [
            ("42", 42),
            ("0", 0),
            ("-17", -17),
            ("0b101", 5),
            ("0o17", 15),
            ("-0x1f", -31),
            (b"123", 123),
        ],
    )
    def test_values(self, src: str | bytes, value: int) -> None:
        assert parse(integer, src) == value

    def test_not_an_integer(self) -> None:
        for src in ("abc", "-", ""):
            stream = Stream(src)
            assert not integer(stream)
            assert stream.pos == 0

    def test_prefix_without_digits_is_fatal(self) -> None:
        with pytest.raises(ParseError) as info:
            integer(Stream("0xZ"))
        assert info.value.pos == 2

    def test_partial_input(self) -> None:
        stream = Stream("12", partial=True)
        with pytest.raises(Incomplete):
            integer(stream)
        stream.feed("3 ")
        assert integer(stream).data == 123


class TestQuotedString:
    def test_escapes(self) -> None:
        assert parse(quoted_string, '"a\\nb"') == "a\nb"
        assert parse(quoted_string, '"\\u0041"') == "A"
        assert parse(quoted_string, '"\\q"') == "q"

    def test_single_quotes(self) -> None:
        assert parse(quoted_string, "'hi'") == "hi"

    def test_not_a_string(self) -> None:
        stream = Stream("abc")
        assert not quoted_string(stream)
        assert stream.pos == 0

    def test_unterminated(self) -> None:
        with pytest.raises(ParseError) as info:
            quoted_string(Stream('"abc'))
        assert any(note.startswith("Starting quote:") for note in info.value.__notes__)

    def test_bad_unicode_escape(self) -> None:
        with pytest.raises(ParseError):
            quoted_string(Stream('"\\u00G0"'))
