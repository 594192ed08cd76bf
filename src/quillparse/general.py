
from __future__ import annotations
from typing import Any, Final

from collections.abc import Sequence

import quillparse.const as const
from quillparse.main import (
    Parser,
    PosNote,
    ParseFailure,
    Result,
    Stream,
    tag,
    one_of,
    any_token,
    take_while,
    take_while0,
    take_while1,
    take_till,
    alt,
)


def _literal(text: str) -> Parser[Sequence[Any]]:
    """`tag(text)` for string sources, `tag(text.encode())` for byte sources."""
    as_str = tag(text)
    as_bytes = tag(text.encode("ascii"))
    def parse_literal(stream: Stream) -> Result[Sequence[Any]] | ParseFailure:
        if isinstance(stream.src, (bytes, bytearray)):
            return as_bytes(stream)
        return as_str(stream)
    parse_literal.__qualname__ = repr(text)
    return parse_literal

# character classes

digit0: Final = take_while0(const.DECIMAL)
digit1: Final = take_while1(const.DECIMAL)
hex_digit0: Final = take_while0(const.HEXADECIMAL)
hex_digit1: Final = take_while1(const.HEXADECIMAL)
oct_digit0: Final = take_while0(const.OCTAL)
oct_digit1: Final = take_while1(const.OCTAL)
bin_digit0: Final = take_while0(const.BINARY)
bin_digit1: Final = take_while1(const.BINARY)
alpha0: Final = take_while0(const.ALPHABETIC)
alpha1: Final = take_while1(const.ALPHABETIC)
alphanumeric0: Final = take_while0(const.ALNUM)
alphanumeric1: Final = take_while1(const.ALNUM)
space0: Final = take_while0(const.SPACE)
space1: Final = take_while1(const.SPACE)
multispace0: Final = take_while0(const.MULTISPACE)
multispace1: Final = take_while1(const.MULTISPACE)

# line endings

newline: Final = one_of(const.NEWLINE)
tab: Final = one_of(const.TAB)
crlf: Final = _literal("\r\n")
line_ending: Final = alt(_literal("\n"), _literal("\r\n"))
till_line_ending: Final = take_till(const.LINE_BREAKS)

# integers

_minus: Final = _literal("-")
_RADIX_PREFIXES: Final = (
    (_literal("0b"), bin_digit1, 2, "binary"),
    (_literal("0o"), oct_digit1, 8, "octal"),
    (_literal("0x"), hex_digit1, 16, "hexadecimal"),
)

def integer(stream: Stream) -> Result[int] | ParseFailure:
    """
    An optionally negative integer.

    The base is interpreted from the prefix.
    - `0b`: Binary
    - `0o`: Octal
    - `0x`: Hexadecimal

    A prefix with no digits after it is a `ParseError`.
    """
    with stream() as c:
        _minus(stream) # optional
        for prefix, digits, base, name in _RADIX_PREFIXES:
            if prefix(stream):
                if not digits(stream):
                    raise c.error(f"Expected a {name} digit after the prefix.")
                break
        else:
            if not digit1(stream):
                return c.fail("Expected an integer.")
            base = 10
        return c.result(int(c.get_slice(), base)) # type: ignore[call-overload]

# quoted string

GENERAL_ESCAPES: Final[dict[str, str]] = {
    'b': '\b',
    'f': '\f',
    'n': '\n',
    'r': '\r',
    't': '\t',
}

_u: Final = tag("u")
_hex4: Final = take_while(const.HEXADECIMAL, 4, 4)

def unicode_escape(stream: Stream) -> Result[str] | ParseFailure:
    """`uXXXX`, after the escape character."""
    with stream() as c:
        if not _u(stream):
            return c.fail("Expected `u`.")
        if not (code := _hex4(stream)):
            raise c.error("Expected 4 hexadecimal characters after unicode escape sequence.")
        return c.result(chr(int(code.data, base=16)))

def quoted_string(
    stream: Stream,
    *,
    quotes: Sequence[str] = ('"', "'"),
    escape: str = '\\',
    custom_escapes: dict[str, str] = GENERAL_ESCAPES,
    advanced_escapes: Sequence[Parser[str]] = (unicode_escape,),
) -> Result[str] | ParseFailure:
    """
    A quoted string, for string sources. Returns the unescaped contents.

    Unknown escapes keep the escaped character as-is.
    A missing closing quote is a `ParseError`.
    """
    with stream() as c:
        for quote in quotes:
            if tag(quote)(stream):
                break
        else:
            return c.fail("Expected a quote.")
        escape_parser = tag(escape)
        end_parser = tag(quote)
        data: list[str] = []
        while True:
            if escape_parser(stream):
                for sequence, replacement in custom_escapes.items():
                    if tag(sequence)(stream):
                        data.append(replacement)
                        break
                else:
                    for parser in advanced_escapes:
                        if r := parser(stream):
                            data.append(r.data)
                            break
                    else:
                        if not (char := any_token(stream)):
                            raise c.error(f"Expected a character to escape after `{escape}`.", [PosNote(c.pos, "Starting quote:")])
                        data.append(char.data)
            elif end_parser(stream):
                return c.result("".join(data))
            elif char := any_token(stream):
                data.append(char.data)
            else:
                raise c.error(f"Expected closing quote `{quote}`.", [PosNote(c.pos, "Starting quote:")])
