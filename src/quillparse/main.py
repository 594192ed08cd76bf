"""
The implementations of the main classes, the token matchers and the combinators.
"""

from __future__ import annotations
from typing import overload, Any, Self, Literal, TypeVar, Generic, Final, Callable, Sequence, Protocol
from types import TracebackType

import logging

log = logging.getLogger("quillparse")


_T = TypeVar("_T")
_U = TypeVar("_U")
_DataT = TypeVar("_DataT")
_DataCovT = TypeVar("_DataCovT", covariant=True)



class PosNote:
    """
    Positioned note.

    For `ParseError`s and `ParseFailure`s.
    """
    def __init__(self, pos: int, msg: str | None = None) -> None:
        self.pos: int = pos
        self.msg: str | None = msg

    def __repr__(self) -> str:
        return f"PosNote({self.pos}, {self.msg!r})"


def line_column(src: str, pos: int) -> tuple[int, int]:
    """1-based line and column of `pos` in `src`."""
    pos = min(pos, len(src))
    # should still work with CRLF
    line = src.count("\n", 0, pos) + 1
    column = pos - src.rfind("\n", 0, pos) # magically works even when it returns -1
    return line, column

def describe_position(src: Sequence[Any], pos: int, msg: str | None = None) -> str:
    """
    Renders a position as a short note.

    For `str` sources, the line and column are included along with a snippet of the line.
    """
    note: list[str] = [] if msg is None else [msg]
    pos = min(pos, len(src))
    if not isinstance(src, str):
        note.append(f"At position {pos}")
        return "\n".join(note)

    line, column = line_column(src, pos)
    note.append(f"At position {pos} (line {line}, column {column})")

    lines = src.splitlines()
    if len(lines) > line-1:
        line_str = lines[line-1]
        if len(line_str) >= column:
            if column <= 20:
                note.append(f"{line_str[:40]}\n{' '*(column-1)}^")
            else:
                note.append(f"{line_str[(column-20):(column+20)]}\n{' '*19}^")
    return "\n".join(note)


class ParseFailure:
    """
    When returned from a parser, indicates that it has failed without consuming anything.
    Alternatives may still be tried. Can be converted into a `ParseError`.

    ```
    r = parser(stream)
    if r:
        ... # `r` is a `Result` object
    else:
        ... # `r` is a `ParseFailure` object
    ```
    """

    def __init__(self, src: Sequence[Any], pos: int, msg: str | None = None, notes: list[PosNote] | None = None) -> None:
        """
        `src`: The sequence that was being parsed.
        `pos`: The position of the failure.
        `msg`: The reason for the failure.
        `notes`: Positioned notes to add to the error. Should be in reverse order. That is, the note that's last in the list will be shown above the other notes.
        """
        self.src: Sequence[Any] = src
        self.pos: int = pos
        self.msg: str | None = msg
        self.notes: list[PosNote] = [] if notes is None else list(notes)
        """Should be in reverse order. That is, the note that's last in the list will be shown above the other notes."""

    def prepend_notes(self, notes: list[PosNote]) -> Self:
        """
        Appends notes to the top of the other notes.

        The given notes should be in reverse order. That is, the note that's last in the list will be shown above the other notes.
        """
        self.notes = notes + self.notes
        return self

    def error(self) -> ParseError:
        """Converts this to a ParseError."""
        return ParseError(self.src, self.pos, self.msg, self.notes)

    def __bool__(self) -> Literal[False]:
        return False

    def __repr__(self) -> str:
        return f"<ParseFailure at {self.pos}: {self.msg!r}>"

class ParseError(Exception):
    """
    The exception that's raised when a parser encounters an unrecoverable error.

    Alternatives are not tried once this is raised. It propagates up to the nearest `recover()` or to the caller of `parse()`.

    Usually used for syntax errors.
    """

    def __init__(self, src: Sequence[Any], pos: int, msg: str | None = None, notes: list[PosNote] | None = None) -> None:
        """
        `src`: The sequence that was being parsed.
        `pos`: The position of the error.
        `msg`: The reason for the error.
        `notes`: Positioned notes to add to the error. Should be in reverse order. That is, the note that's last in the list will be shown above the other notes.
        """
        if msg is None:
            super().__init__()
        else:
            super().__init__(msg)
        self.src: Sequence[Any] = src
        self.pos: int = pos
        self.msg: str | None = msg
        self.append_pos_note(pos)
        for note in reversed(notes or []):
            self.append_existing_note(note)

    def append_pos_note(self, pos: int, msg: str | None = None) -> Self:
        self.add_note(describe_position(self.src, pos, msg))
        return self

    def append_existing_note(self, note: PosNote) -> Self:
        return self.append_pos_note(note.pos, note.msg)

class Incomplete(Exception):
    """
    Raised when a partial stream ran out of tokens before a parser could decide.

    Not a syntax error: feed more input into the stream and run the parser again.
    The stream is left where it was when the outermost parser was invoked.
    """

    def __init__(self, pos: int, needed: int | None = None) -> None:
        """
        `pos`: The position where more input was required.
        `needed`: The minimum number of additional tokens that could let the parser succeed, or `None` if unknown.
        """
        if needed is None:
            super().__init__(f"More input needed at position {pos}.")
        else:
            super().__init__(f"{needed} more token(s) needed at position {pos}.")
        self.pos: int = pos
        self.needed: int | None = needed

class ParserContractError(RuntimeError):
    """Raised by `apply()` when a parser returned a `ParseFailure` after moving the stream."""


class Result(Generic[_DataCovT]):
    """
    When returned from a parser, indicates that it has succeeded. Contains the output of the parser.

    ```
    r = parser(stream)
    if r:
        output = r.data
    else:
        ... # failed
    ```

    Always truthy, even when `data` is falsy.

    When used for typing: `Result[DataType]`
    """
    def __init__(self, data: _DataCovT, pos: tuple[int, int]) -> None:
        self.data: _DataCovT = data
        self.pos: Final[tuple[int, int]] = pos
        """The consumed range."""

    def with_data(self, data: _DataT) -> Result[_DataT]:
        """Creates a copy of this result with the provided data."""
        return Result(data, self.pos)

    def __bool__(self) -> Literal[True]:
        return True

    def __repr__(self) -> str:
        return f"<Result {self.pos[0]}..{self.pos[1]} {{{self.data!r}}}>"



class Stream:
    """
    A cursor over a sequence of tokens.

    The source can be a `str` (tokens are characters), `bytes` (tokens are `int`s) or any other sequence.

    If `partial` is true, more input may still be fed into the stream, and parsers that run out of tokens raise `Incomplete` instead of failing.
    """
    def __init__(self, src: Sequence[Any], starting_pos: int = 0, *, partial: bool = False) -> None:
        if not 0 <= starting_pos <= len(src):
            raise ValueError(f"Starting position {starting_pos} is outside of the source.")
        self.src: Sequence[Any] = src
        """The tokens that are being parsed."""
        self.pos: int = starting_pos
        """The current position."""
        self.partial: bool = partial
        """Whether more input may still arrive."""

    def __len__(self) -> int:
        return len(self.src)

    def __getitem__(self, key: int | slice) -> Any:
        return self.src[key]

    def __bool__(self) -> bool:
        """Whether there are any tokens left in the buffer. The opposite of `at_end()`"""
        return self.pos < len(self.src)

    def __repr__(self) -> str:
        return f"<Stream at {self.pos}/{len(self.src)}{' partial' if self.partial else ''}>"

    def remaining(self) -> int:
        """The number of tokens left in the buffer."""
        return len(self.src) - self.pos

    def has_tokens(self, amount: int) -> bool:
        """Whether there are at least that many tokens left in the buffer."""
        return self.pos+amount <= len(self.src)

    def at_end(self) -> bool:
        """Whether the buffer has been used up. More input may still arrive if the stream is partial."""
        return self.pos >= len(self.src)

    def is_empty(self) -> bool:
        """Whether the buffer has been used up and no more input will arrive."""
        return self.at_end() and not self.partial

    def peek(self, amount: int) -> Sequence[Any]:
        """
        Retrieves up to the specified amount of tokens without consuming.

        Returns fewer tokens if there aren't enough left.
        """
        if amount < 0:
            raise ValueError("Cannot peek a negative amount of tokens.")
        return self.src[self.pos:self.pos+amount]

    def peek_token(self) -> Any | None:
        """Retrieves the next token without consuming. Returns `None` at the end of the buffer."""
        if self.at_end():
            return None
        return self.src[self.pos]

    def advance(self, amount: int) -> Sequence[Any]:
        """
        Consumes and retrieves the specified amount of tokens.

        Only advance by amounts that have already been checked. Advancing past the end of the buffer is a bug in the parser, and raises `IndexError`.
        """
        if amount < 0:
            raise ValueError("Cannot advance by a negative amount of tokens.")
        if not self.has_tokens(amount):
            raise IndexError(f"Cannot advance by {amount} tokens at position {self.pos}, only {self.remaining()} left.")
        start_pos = self.pos
        self.pos += amount
        return self.src[start_pos:self.pos]

    def slice(self, start: int, end: int) -> Sequence[Any]:
        return self.src[start:end]

    def feed(self, data: Sequence[Any]) -> None:
        """Appends tokens to the end of a partial stream."""
        if not self.partial:
            raise ValueError("Cannot feed a stream that has been closed.")
        if isinstance(self.src, (str, bytes, bytearray)):
            self.src = self.src + data # type: ignore[operator]
        else:
            # a tuple source fed a list stays a tuple
            self.src = self.src + type(self.src)(data) # type: ignore[operator, call-arg]

    def close(self) -> None:
        """Signals that no more input will arrive."""
        self.partial = False

    def location(self, pos: int | None = None) -> tuple[int, int]:
        """1-based line and column of the position. (The current position by default.) Only for `str` sources."""
        if not isinstance(self.src, str):
            raise TypeError("Line and column are only available for string sources.")
        return line_column(self.src, self.pos if pos is None else pos)

    def save(self) -> Savepoint:
        """Saves the current position as a `Savepoint` and returns it."""
        return Savepoint(self)

    def restore(self, savepoint: Savepoint | Checkpoint) -> None:
        """Moves back to a `Savepoint` (or the start of a `Checkpoint`) created from this stream."""
        if savepoint.stream is not self:
            raise ValueError("The savepoint belongs to another stream.")
        self.pos = savepoint.pos

    def checkpoint(self, *, note: str | None = None) -> Checkpoint:
        """
        Creates a `Checkpoint` at the current position.

        If you need another checkpoint within the checkpoint, call `Checkpoint.sub_checkpoint()` on the returned checkpoint.

        Same as `Stream.__call__()`
        """
        return Checkpoint(self, note=note)

    def __call__(self, *, note: str | None = None) -> Checkpoint:
        """
        Creates a `Checkpoint` at the current position.

        Same as `Stream.checkpoint()`
        """
        return Checkpoint(self, note=note)

    def fail(self, msg: str | None = None) -> ParseFailure:
        """Returns a `ParseFailure` at the current position."""
        return ParseFailure(self.src, self.pos, msg)

    def error(self, msg: str | None = None) -> ParseError:
        """Creates a `ParseError` at the current position."""
        return ParseError(self.src, self.pos, msg)

    def incomplete(self, needed: int | None = None) -> Incomplete:
        """Creates an `Incomplete` at the current position."""
        return Incomplete(self.pos, needed)


class Savepoint:
    """
    A saved position of a stream.

    Can only be reverted manually. (By calling the savepoint, or with `Stream.restore()`.)

    No concept of committing and automatic rollbacks.
    """
    def __init__(self, stream: Stream) -> None:
        self.pos: Final[int] = stream.pos
        self.stream: Final[Stream] = stream

    def __call__(self) -> None:
        """Same as `Savepoint.rollback()`."""
        self.stream.restore(self)

    def rollback(self) -> None:
        """Same as `Savepoint.__call__()`."""
        self.stream.restore(self)

    def get_slice(self) -> Sequence[Any]:
        return self.stream.slice(self.pos, self.stream.pos)

    def guard(self, value: _T) -> _T:
        """
        If the parameter is falsy, rolls back.

        Returns the parameter as-is.

        Common usage method:
        ```
        stream.save().guard(parser(stream))
        ```
        """
        if not value:
            self.rollback()
        return value

    def rollback_inline(self, value: _T) -> _T:
        """
        Always rolls back.

        Returns the parameter as-is.
        """
        self.rollback()
        return value

    def __repr__(self) -> str:
        return f"<Savepoint at {self.pos}>"


class Checkpoint:
    """
    Used as a context manager:
    ```
    with Checkpoint(stream) as c:
        ...
    ```

    Can be created by calling a `Stream`:
    ```
    with stream() as c:
        ...
    ```

    Failure and success:
    ```
    with stream() as c:
        return c.result(data)               # Successfully matched
        return c.fail("Failure reason.")    # Failed to match, rolls back
        raise c.error("Error reason.")      # Irrecoverable error
    ```

    Leaving the block without committing, or with any exception (including `Incomplete`), rolls the stream back.
    """
    def __init__(self, stream: Stream, *, parent_checkpoint: Checkpoint | None = None, note: str | None = None) -> None:
        """
        Create using `Stream.checkpoint()` or `Stream.__call__()` instead.
        """
        self.pos: Final[int] = stream.pos
        """The saved position."""
        self.stream: Final[Stream] = stream
        """The bound Stream."""
        self.parent_checkpoint: Final[Checkpoint | None] = parent_checkpoint

        self.notes: list[PosNote] = []
        """The notes to add to the resulting `ParseError` or `ParseFailure`."""
        self.committed: bool = False
        """Use `is_committed()` to check if it's committed."""

        if note is not None:
            self.note(note)

    def commit(self) -> None:
        """Commited checkpoints will not be rolled back automatically."""
        self.committed = True

    def is_committed(self) -> bool:
        """Checks if this is committed. Works with sub-checkpoints."""
        return self.committed or (self.parent_checkpoint is not None and self.parent_checkpoint.is_committed())

    def rollback(self) -> None:
        """Rolls back the stream to the starting position. (Regardless of the checkpoint being commited or not.)"""
        self.stream.pos = self.pos

    def rollback_if_uncommited(self) -> None:
        """Rolls back the stream to the starting position if the checkpoint isn't committed."""
        if not self.is_committed():
            self.stream.pos = self.pos

    def note(self, msg: str | None = None) -> None:
        """
        Adds a positioned note to the resulting failure.

        Uses the position of the `Stream`.
        """
        self.notes.append(PosNote(self.stream.pos, msg))

    def get_range(self) -> tuple[int, int]:
        return (self.pos, self.stream.pos)

    def get_slice(self) -> Sequence[Any]:
        return self.stream.slice(self.pos, self.stream.pos)

    def result(self, data: _DataT) -> Result[_DataT]:
        """
        Commits and returns a `Result` object.

        Uses the checkpoint's saved position as the start, and the current stream position as the end position of the result.
        """
        self.committed = True
        return Result(data, self.get_range())

    def error(self, msg: str | None = None, notes: list[PosNote] | None = None) -> ParseError:
        """Creates a `ParseError` at the current position of the stream."""
        self.committed = False
        return ParseError(self.stream.src, self.stream.pos, msg, notes)
        # do not prepend self.notes, as it's supposed to be prepended by __exit__().

    def fail(self, msg: str | None = None, notes: list[PosNote] | None = None) -> ParseFailure:
        """Uncommits and returns a `ParseFailure` positioned at the current position of the stream."""
        self.committed = False
        return ParseFailure(self.stream.src, self.stream.pos, msg, notes).prepend_notes(self.notes)

    def propagate(self, failure: ParseFailure) -> ParseFailure:
        """
        For failing using an existing `ParseFailure`.

        Uncommits, adds the current context's notes to the failure and returns it.

        Example:
        ```
        with stream() as c:
            if not (r := foo(stream)):
                return c.propagate(r)   # The foo parser failed, so fail too.
            if not (r := bar(stream)):
                raise r.error()         # The bar parser failed, so raise an error.

            ... # Going fine, parse other stuff.
        ```
        """
        self.committed = False
        return failure.prepend_notes(self.notes)

    def add_notes_to_error(self, error: ParseError) -> None:
        for note in reversed(self.notes):
            error.append_existing_note(note)

    def __enter__(self) -> Self:
        return self

    @overload
    def __exit__(self, exctype: None, exc: None, traceback: None) -> Literal[False]: ...
    @overload
    def __exit__(self, exctype: type[BaseException], exc: BaseException, traceback: TracebackType) -> Literal[False]: ...

    def __exit__(
        self,
        exctype: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        if exc is None:
            self.rollback_if_uncommited()
        else:
            if isinstance(exc, ParseError):
                self.add_notes_to_error(exc)
            self.rollback()
        return False

    def sub_checkpoint(self, *, note: str | None = None) -> Checkpoint:
        """
        Creates a `Checkpoint` at the current position.

        If the parent checkpoint is committed, the sub-checkpoint won't roll back, unlike `Stream.checkpoint()`, which would require both of the checkpoints to be committed.

        Same as `Checkpoint.__call__()`
        """
        return Checkpoint(self.stream, parent_checkpoint=self, note=note)

    def __call__(self, *, note: str | None = None) -> Checkpoint:
        """Same as `Checkpoint.sub_checkpoint()`"""
        return Checkpoint(self.stream, parent_checkpoint=self, note=note)



def _normalize_token(token: Any) -> Any:
    # b"a" stands for the byte token 97
    if isinstance(token, (bytes, bytearray)) and len(token) == 1:
        return token[0]
    return token

class TokenRange:
    """
    An inclusive range of tokens, compared by ordering.

    Tokens that can't be compared with the bounds are not in the range.
    A range with `start > end` contains nothing.
    """
    def __init__(self, start: Any, end: Any) -> None:
        self.start: Final[Any] = _normalize_token(start)
        self.end: Final[Any] = _normalize_token(end)

    def __contains__(self, token: object) -> bool:
        try:
            return bool(self.start <= token <= self.end)
        except TypeError:
            return False

    def __repr__(self) -> str:
        return f"{self.start!r}..={self.end!r}"

def token_range(start: Any, end: Any) -> TokenRange:
    """An inclusive range of tokens. `token_range("0", "9")`, `token_range(b"a", b"f")`"""
    return TokenRange(start, end)


class TokenSet:
    """
    A predicate over a single token.

    Construct with `token_set(...)` or `TokenSet.of(...)`. Accepted items:
    - `str` / `bytes`: any of its tokens (`"abc"`, `b"\\r\\n"`)
    - `set` / `frozenset`: any of its members
    - `TokenRange` / `range`: inclusive range / integer range
    - a callable: a predicate (`str.isdigit`)
    - a tuple or list: the union of its items
    - anything else: that single token

    Sets can be combined with `|` and inverted with `~`.
    """
    __slots__ = ("_contains", "description")

    def __init__(self, contains: Callable[[Any], object], description: str) -> None:
        self._contains: Final[Callable[[Any], object]] = contains
        self.description: Final[str] = description

    @classmethod
    def of(cls, item: Any) -> TokenSet:
        if isinstance(item, TokenSet):
            return item
        if isinstance(item, (str, bytes, bytearray)):
            members = frozenset(item)
            return cls(members.__contains__, repr(item))
        if isinstance(item, (set, frozenset)):
            members = frozenset(_normalize_token(token) for token in item)
            return cls(members.__contains__, "{" + ", ".join(sorted(repr(token) for token in members)) + "}")
        if isinstance(item, (TokenRange, range)):
            return cls(item.__contains__, repr(item))
        if isinstance(item, (tuple, list)):
            parts = tuple(cls.of(part) for part in item)
            return cls(lambda token: any(token in part for part in parts), "(" + ", ".join(part.description for part in parts) + ")")
        if callable(item):
            return cls(item, getattr(item, "__name__", repr(item)))
        return cls(lambda token: token == item, repr(item))

    def __contains__(self, token: object) -> bool:
        return bool(self._contains(token))

    def __call__(self, token: object) -> bool:
        return bool(self._contains(token))

    def __or__(self, other: Any) -> TokenSet:
        other_set = TokenSet.of(other)
        return TokenSet(lambda token: token in self or token in other_set, f"{self.description} | {other_set.description}")

    def __invert__(self) -> TokenSet:
        return TokenSet(lambda token: token not in self, f"~{self.description}")

    def __repr__(self) -> str:
        return f"TokenSet({self.description})"

def token_set(*items: Any) -> TokenSet:
    """
    Creates a `TokenSet` from the union of the items. See `TokenSet` for the accepted items.

    With no items, the set matches nothing.
    """
    if len(items) == 1:
        return TokenSet.of(items[0])
    return TokenSet.of(items)



class Parser(Protocol[_DataCovT]):
    """
    A protocol for parsers.

    Returns a `Result` on success, and a `ParseFailure` (without moving the stream) on failure.
    Raises `ParseError` on fatal errors, and `Incomplete` if a partial stream ran out of tokens.
    """
    def __call__(self, stream: Stream, /) -> Result[_DataCovT] | ParseFailure: ...

ParserParameter = Parser[Any] | str | bytes

def convert_parser_parameter(parser: ParserParameter) -> Parser[Any]:
    if isinstance(parser, (str, bytes)):
        return tag(parser)
    else:
        assert callable(parser)
        return parser

def convert_parser_parameters(parsers: tuple[ParserParameter, ...]) -> tuple[Parser[Any], ...]:
    return tuple(convert_parser_parameter(parser) for parser in parsers)

def _describe(parser: object) -> str:
    return getattr(parser, "__qualname__", None) or repr(parser)


def apply(parser: ParserParameter, stream: Stream) -> Result[Any] | ParseFailure:
    """
    Runs the parser once on the stream.

    `ParseError` and `Incomplete` propagate. Raises `ParserContractError` if the parser failed after moving the stream.
    """
    parser = convert_parser_parameter(parser)
    start = stream.pos
    if log.isEnabledFor(logging.DEBUG):
        log.debug("trying %s at %d", _describe(parser), start)
    r = parser(stream)
    if r:
        if log.isEnabledFor(logging.DEBUG):
            log.debug("matched %s at %d..%d: %r", _describe(parser), start, stream.pos, r.data)
    else:
        if stream.pos != start:
            raise ParserContractError(f"{_describe(parser)} failed after moving the stream from {start} to {stream.pos}.")
        if log.isEnabledFor(logging.DEBUG):
            log.debug("failed %s at %d: %s", _describe(parser), r.pos, r.msg)
    return r

def parse(parser: ParserParameter, src: Sequence[Any] | Stream, *, require_eof: bool = True) -> Any:
    """
    Parses a complete input and returns the output of the parser.

    Marks the stream as complete first, so a partial `Stream` is parsed as if no more input will come.
    Raises `ParseError` if the parser fails, if input is left over (unless `require_eof` is false), or if the parser asked for more input.
    """
    stream = src if isinstance(src, Stream) else Stream(src)
    stream.close()
    try:
        r = apply(parser, stream)
    except Incomplete as e:
        log.debug("incomplete input at %d", e.pos)
        raise ParseError(stream.src, e.pos, "Unexpected end of input.") from e
    if not r:
        raise r.error()
    if require_eof and not stream.at_end():
        raise stream.error("Expected end of input.")
    return r.data


def _same_tokens(left: Sequence[Any], right: Sequence[Any]) -> bool:
    if type(left) is type(right):
        return left == right
    return len(left) == len(right) and all(a == b for a, b in zip(left, right))

def _tag(value: Sequence[Any], same: Callable[[Sequence[Any], Sequence[Any]], bool], expected: str) -> Parser[Sequence[Any]]:
    length = len(value)
    def parse_tag(stream: Stream) -> Result[Sequence[Any]] | ParseFailure:
        available = stream.peek(length)
        if len(available) < length:
            if stream.partial:
                raise stream.incomplete(length - len(available))
            return stream.fail(expected)
        if not same(available, value):
            return stream.fail(expected)
        start = stream.pos
        return Result(stream.advance(length), (start, stream.pos))
    return parse_tag

def tag(value: Sequence[Any]) -> Parser[Sequence[Any]]:
    """
    Parser factory.

    Matches the literal sequence of tokens and returns the matched slice.
    """
    return _tag(value, _same_tokens, f"Expected {value!r}.")

def tag_anycase(value: str) -> Parser[str]:
    """
    Parser factory.

    Like `tag()`, but non case sensitive. For string sources.
    """
    lowered = value.lower()
    return _tag(value, lambda available, _: available.lower() == lowered, f"Expected {value!r} (any case).") # type: ignore[union-attr, return-value]

def one_of(*items: Any) -> Parser[Any]:
    """
    Parser factory.

    Matches a single token in the `TokenSet` built from the items, and returns the token.
    With no items, never matches.
    """
    tokens = token_set(*items)
    expected = f"Expected one of {tokens.description}."
    def parse_one_of(stream: Stream) -> Result[Any] | ParseFailure:
        if stream.at_end():
            if stream.partial:
                raise stream.incomplete(1)
            return stream.fail(expected)
        token = stream[stream.pos]
        if token not in tokens:
            return stream.fail(expected)
        stream.pos += 1
        return Result(token, (stream.pos-1, stream.pos))
    return parse_one_of

def none_of(*items: Any) -> Parser[Any]:
    """
    Parser factory.

    Matches a single token that is not in the `TokenSet` built from the items.
    """
    return one_of(~token_set(*items))

any_token: Final[Parser[Any]] = one_of(TokenSet(lambda token: True, "any token"))
"""Matches any single token."""

def take(amount: int) -> Parser[Sequence[Any]]:
    """
    Parser factory.

    Matches exactly `amount` tokens of any kind.
    """
    if amount < 0:
        raise ValueError("Cannot take a negative amount of tokens.")
    def parse_take(stream: Stream) -> Result[Sequence[Any]] | ParseFailure:
        if not stream.has_tokens(amount):
            if stream.partial:
                raise stream.incomplete(amount - stream.remaining())
            return stream.fail(f"Expected {amount} tokens.")
        start = stream.pos
        return Result(stream.advance(amount), (start, stream.pos))
    return parse_take

def take_while(tokens: Any, min: int = 0, max: int | None = None) -> Parser[Sequence[Any]]:
    """
    Parser factory.

    Greedily matches the longest run of tokens in the `TokenSet` built from `tokens`, up to `max` tokens. (Unbounded if `None`.)
    Never gives tokens back: fails if the run is shorter than `min`.

    On a partial stream, running out of tokens before the run ends raises `Incomplete`,
    unless exactly `max` tokens have been matched.
    """
    if min < 0:
        raise ValueError("The minimum can't be negative.")
    if max is not None and max < min:
        raise ValueError(f"The maximum ({max}) can't be less than the minimum ({min}).")
    token_class = TokenSet.of(tokens)
    expected = f"Expected at least {min} of {token_class.description}."
    def parse_take_while(stream: Stream) -> Result[Sequence[Any]] | ParseFailure:
        src = stream.src
        start = stream.pos
        end = len(src)
        limit = end if max is None or start+max > end else start+max
        i = start
        while i < limit and src[i] in token_class:
            i += 1
        count = i - start
        if i == end and (max is None or count < max) and stream.partial:
            raise stream.incomplete(min - count if count < min else 1)
        if count < min:
            return stream.fail(expected)
        return Result(stream.advance(count), (start, stream.pos))
    return parse_take_while

def take_while0(tokens: Any) -> Parser[Sequence[Any]]:
    """`take_while(tokens, 0)`. May match an empty run."""
    return take_while(tokens, 0)

def take_while1(tokens: Any) -> Parser[Sequence[Any]]:
    """`take_while(tokens, 1)`. Fails on an empty run."""
    return take_while(tokens, 1)

def take_till(tokens: Any, min: int = 0, max: int | None = None) -> Parser[Sequence[Any]]:
    """
    Parser factory.

    Like `take_while()`, but matches the tokens that are *not* in the set.
    """
    return take_while(~TokenSet.of(tokens), min, max)

def eof(stream: Stream) -> Result[Sequence[Any]] | ParseFailure:
    """
    A pre-defined parser (not a factory).

    Matches the end of the input. On a partial stream with an exhausted buffer, raises `Incomplete`.
    """
    if not stream.at_end():
        return stream.fail("Expected end of input.")
    if stream.partial:
        raise stream.incomplete(None)
    return Result(stream.peek(0), (stream.pos, stream.pos))

def rest(stream: Stream) -> Result[Sequence[Any]]:
    """A pre-defined parser (not a factory). Consumes whatever is left in the buffer."""
    start = stream.pos
    return Result(stream.advance(stream.remaining()), (start, stream.pos))

def success(value: _T) -> Parser[_T]:
    """Parser factory. Always matches without consuming, returning `value`."""
    return lambda stream: Result(value, (stream.pos, stream.pos))

def fail(msg: str | None = None) -> Parser[Any]:
    """Parser factory. Never matches."""
    return lambda stream: stream.fail(msg)



def seq(*parsers: ParserParameter) -> Parser[tuple[Any, ...]]:
    """
    Parser factory.

    All the given parsers must match in sequence for the parser to succeed. Returns a tuple of their outputs.
    If one fails, rolls back to the start and returns its failure.
    """
    if len(parsers) <= 0:
        raise ValueError("At least one parser required.")
    new_parsers = convert_parser_parameters(parsers)
    def parse_seq(stream: Stream) -> Result[tuple[Any, ...]] | ParseFailure:
        with stream() as c:
            outputs: list[Any] = []
            for parser in new_parsers:
                if not (r := parser(stream)):
                    return c.propagate(r)
                outputs.append(r.data)
            return c.result(tuple(outputs))
    return parse_seq

def alt(*parsers: ParserParameter) -> Parser[Any]:
    """
    Parser factory.

    Attempts to match any of the parsers, in order, until one matches. If none match, fails.

    Only `ParseFailure`s move on to the next parser. `ParseError` and `Incomplete` propagate immediately.
    When every parser fails, returns the failure that got furthest. (The last one on ties.)
    This is not necessarily the failure of the last parser.
    """
    if len(parsers) <= 0:
        raise ValueError("At least one parser required.")
    new_parsers = convert_parser_parameters(parsers)
    def parse_alt(stream: Stream) -> Result[Any] | ParseFailure:
        furthest: ParseFailure | None = None
        for parser in new_parsers:
            if r := parser(stream):
                return r
            if furthest is None or r.pos >= furthest.pos:
                furthest = r
        assert furthest is not None
        return furthest
    return parse_alt

def optional(parser: ParserParameter) -> Parser[Any]:
    """
    Parser factory.

    Returns the parser's result, or a `Result` of `None` that consumes nothing if the parser fails.
    """
    new_parser = convert_parser_parameter(parser)
    def parse_optional(stream: Stream) -> Result[Any]:
        if r := new_parser(stream):
            return r
        return Result(None, (stream.pos, stream.pos))
    return parse_optional

def repeat(parser: ParserParameter, min: int = 0, max: int | None = None) -> Parser[list[Any]]:
    """
    Parser factory.

    Repeatedly matches the given parser until it fails, or until it has matched `max` times. (Unbounded if `None`.)
    Returns a list of the outputs. Fails if it matched fewer than `min` times.

    Raises `ParseError` if the parser matches without consuming anything in an unbounded repetition, since that would loop forever.
    """
    if min < 0:
        raise ValueError("The minimum can't be negative.")
    if max is not None and max < min:
        raise ValueError(f"The maximum ({max}) can't be less than the minimum ({min}).")
    new_parser = convert_parser_parameter(parser)
    def parse_repeat(stream: Stream) -> Result[list[Any]] | ParseFailure:
        with stream() as c:
            outputs: list[Any] = []
            while max is None or len(outputs) < max:
                before = stream.pos
                if not (r := new_parser(stream)):
                    if len(outputs) < min:
                        return c.propagate(r)
                    break
                if max is None and stream.pos == before:
                    raise c.error(f"{_describe(new_parser)} matched without consuming anything inside an unbounded repetition.")
                outputs.append(r.data)
            return c.result(outputs)
    return parse_repeat

def repeat0(parser: ParserParameter) -> Parser[list[Any]]:
    """Zero or more times. `repeat(parser, 0)`"""
    return repeat(parser, 0)

def repeat1(parser: ParserParameter) -> Parser[list[Any]]:
    """One or more times. `repeat(parser, 1)`"""
    return repeat(parser, 1)

def separated(parser: ParserParameter, separator: ParserParameter, min: int = 0, max: int | None = None) -> Parser[list[Any]]:
    """
    Parser factory.

    Matches the parser repeatedly, with the separator in between. Returns a list of the parser's outputs.
    A trailing separator is not consumed.
    """
    if min < 0:
        raise ValueError("The minimum can't be negative.")
    if max is not None and max < min:
        raise ValueError(f"The maximum ({max}) can't be less than the minimum ({min}).")
    new_parser = convert_parser_parameter(parser)
    new_separator = convert_parser_parameter(separator)
    def parse_separated(stream: Stream) -> Result[list[Any]] | ParseFailure:
        with stream() as c:
            outputs: list[Any] = []
            if max == 0:
                return c.result(outputs)
            if not (r := new_parser(stream)):
                if min > 0:
                    return c.propagate(r)
                return c.result(outputs)
            outputs.append(r.data)
            while max is None or len(outputs) < max:
                save = stream.save()
                if not (s := new_separator(stream)):
                    if len(outputs) < min:
                        return c.propagate(s)
                    break
                if not (r := new_parser(stream)):
                    save.rollback()
                    if len(outputs) < min:
                        return c.propagate(r)
                    break
                if max is None and stream.pos == save.pos:
                    raise c.error("Separated items matched without consuming anything inside an unbounded repetition.")
                outputs.append(r.data)
            return c.result(outputs)
    return parse_separated

def preceded(prefix: ParserParameter, parser: ParserParameter) -> Parser[Any]:
    """Matches both, returns the output of the second."""
    return mapped(seq(prefix, parser), lambda outputs: outputs[1])

def terminated(parser: ParserParameter, suffix: ParserParameter) -> Parser[Any]:
    """Matches both, returns the output of the first."""
    return mapped(seq(parser, suffix), lambda outputs: outputs[0])

def delimited(prefix: ParserParameter, parser: ParserParameter, suffix: ParserParameter) -> Parser[Any]:
    """Matches all three, returns the output of the middle one."""
    return mapped(seq(prefix, parser, suffix), lambda outputs: outputs[1])

def mapped(parser: ParserParameter, func: Callable[[Any], _U]) -> Parser[_U]:
    """
    Parser factory.

    Transforms the output of the parser with the function.
    """
    new_parser = convert_parser_parameter(parser)
    def parse_mapped(stream: Stream) -> Result[_U] | ParseFailure:
        if not (r := new_parser(stream)):
            return r
        return r.with_data(func(r.data))
    return parse_mapped

def recognize(parser: ParserParameter) -> Parser[Sequence[Any]]:
    """
    Parser factory.

    Returns the slice of input consumed by the parser instead of its output.
    """
    new_parser = convert_parser_parameter(parser)
    def parse_recognize(stream: Stream) -> Result[Sequence[Any]] | ParseFailure:
        start = stream.pos
        if not (r := new_parser(stream)):
            return r
        return r.with_data(stream.slice(start, stream.pos))
    return parse_recognize

def named(parser: ParserParameter, description: str) -> Parser[Any]:
    """
    Parser factory.

    Replaces the failure message of the parser with `Expected <description>.`
    """
    new_parser = convert_parser_parameter(parser)
    msg = f"Expected {description}."
    def parse_named(stream: Stream) -> Result[Any] | ParseFailure:
        if r := new_parser(stream):
            return r
        return ParseFailure(r.src, r.pos, msg, r.notes)
    parse_named.__qualname__ = description
    return parse_named

def lookahead(parser: ParserParameter) -> Parser[Any]:
    """
    Parser factory.

    Matches without advancing.
    """
    new_parser = convert_parser_parameter(parser)
    def parse_lookahead(stream: Stream) -> Result[Any] | ParseFailure:
        save = stream.save()
        r = save.rollback_inline(new_parser(stream))
        if not r:
            return r
        return Result(r.data, (stream.pos, stream.pos))
    return parse_lookahead

def inverted(parser: ParserParameter) -> Parser[None]:
    """
    Parser factory.

    Matches (without advancing) only if the given parser fails.
    """
    new_parser = convert_parser_parameter(parser)
    def parse_inverted(stream: Stream) -> Result[None] | ParseFailure:
        save = stream.save()
        if save.rollback_inline(new_parser(stream)):
            return stream.fail(f"Unexpected {_describe(new_parser)}.")
        return Result(None, (stream.pos, stream.pos))
    return parse_inverted

def cut(parser: ParserParameter) -> Parser[Any]:
    """
    Parser factory.

    Turns a failure of the parser into a `ParseError`, so that no alternatives are tried.
    """
    new_parser = convert_parser_parameter(parser)
    def parse_cut(stream: Stream) -> Result[Any]:
        if not (r := new_parser(stream)):
            raise r.error()
        return r
    return parse_cut

def recover(parser: ParserParameter) -> Parser[Any]:
    """
    Parser factory.

    Catches a `ParseError` raised by the parser, rolls back, and returns it as a `ParseFailure`.
    """
    new_parser = convert_parser_parameter(parser)
    def parse_recover(stream: Stream) -> Result[Any] | ParseFailure:
        save = stream.save()
        try:
            return new_parser(stream)
        except ParseError as e:
            save.rollback()
            log.debug("recovered from fatal error at %d: %s", e.pos, e.msg)
            return ParseFailure(e.src, e.pos, e.msg)
    return parse_recover

def complete(parser: ParserParameter) -> Parser[Any]:
    """
    Parser factory.

    Turns `Incomplete` into a `ParseFailure`, for the parts of a grammar where the input is known to be complete.
    """
    new_parser = convert_parser_parameter(parser)
    def parse_complete(stream: Stream) -> Result[Any] | ParseFailure:
        save = stream.save()
        try:
            return new_parser(stream)
        except Incomplete as e:
            save.rollback()
            return ParseFailure(stream.src, e.pos, "Unexpected end of input.")
    return parse_complete
