"""
Parser combinators over a cursor-like token stream.

See the objects for more explanations.

See the `quillparse.general` module for named parsers built on top of the primitives.

Defining parsers:
```
def foo(stream: Stream) -> Result[int] | ParseFailure:
    with stream() as c:
        if not tag("abc")(stream):
            return c.fail("Expected `abc`.")    # fail, nothing consumed
        if not (digits := take_while1(const.DECIMAL)(stream)):
            raise c.error("Expected digits.")   # error, no alternatives are tried
        return c.result(int(digits.data))       # success
```

Or by combining factories:
```
hex_number = preceded("0x", take_while1(const.HEXADECIMAL))
```

Using parsers:
```
stream = Stream("0x1a2b Hello")

result = hex_number(stream)
if result:
    ... # `result` is a `Result` object
else:
    ... # `result` is a `ParseFailure` object

parse(hex_number, "0x1a2b")   # returns the output or raises `ParseError`
```

Partial input:
```
stream = Stream("0x1a", partial=True)
try:
    hex_number(stream)
except Incomplete:
    stream.feed("2b ")
    hex_number(stream)
```
"""

import quillparse.const as const
import quillparse.main
from quillparse.main import (
    PosNote,
    ParseFailure,
    ParseError,
    Incomplete,
    ParserContractError,
    Result,
    Stream,
    Savepoint,
    Checkpoint,
    TokenRange,
    TokenSet,
    Parser,
    token_range,
    token_set,
    apply,
    parse,
    tag,
    tag_anycase,
    one_of,
    none_of,
    any_token,
    take,
    take_while,
    take_while0,
    take_while1,
    take_till,
    eof,
    rest,
    success,
    fail,
    seq,
    alt,
    optional,
    repeat,
    repeat0,
    repeat1,
    separated,
    preceded,
    terminated,
    delimited,
    mapped,
    recognize,
    named,
    lookahead,
    inverted,
    cut,
    recover,
    complete,
)
import quillparse.general as general
