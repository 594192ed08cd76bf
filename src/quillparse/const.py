"""
General use token classes.

Each class holds both the characters and their byte values, so it works for `str` and `bytes` sources alike.
"""

from __future__ import annotations
from typing import Final


def _chars(chars: str) -> frozenset[str | int]:
    return frozenset(chars) | frozenset(chars.encode("ascii"))

SPACE: Final[frozenset[str | int]] = _chars(" \t")
NEWLINE: Final[frozenset[str | int]] = _chars("\n")
TAB: Final[frozenset[str | int]] = _chars("\t")
LINE_BREAKS: Final[frozenset[str | int]] = _chars("\r\n")
MULTISPACE: Final[frozenset[str | int]] = _chars(" \t\r\n")
BINARY: Final[frozenset[str | int]] = _chars("01")
OCTAL: Final[frozenset[str | int]] = _chars("01234567")
DECIMAL: Final[frozenset[str | int]] = _chars("0123456789")
HEXADECIMAL: Final[frozenset[str | int]] = DECIMAL | _chars("abcdefABCDEF")
ALPHABETIC: Final[frozenset[str | int]] = _chars("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ")
ALNUM: Final[frozenset[str | int]] = ALPHABETIC | DECIMAL
