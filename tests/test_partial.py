import pytest

from quillparse import (
    Incomplete,
    ParseError,
    Stream,
    alt,
    complete,
    eof,
    one_of,
    optional,
    parse,
    repeat0,
    separated,
    seq,
    tag,
    take,
    take_while,
    take_while1,
)
from quillparse import const


def test_tag_on_short_input_asks_for_the_rest() -> None:
    stream = Stream("0", partial=True)
    with pytest.raises(Incomplete) as info:
        tag("0x")(stream)
    assert info.value.needed == 1
    assert info.value.pos == 0
    assert stream.pos == 0


def test_tag_on_short_input_asks_even_when_the_prefix_differs() -> None:
    with pytest.raises(Incomplete) as info:
        tag("0x")(Stream("1", partial=True))
    assert info.value.needed == 1


def test_tag_on_full_input_does_not_wait() -> None:
    stream = Stream("0x", partial=True)
    assert tag("0x")(stream).data == "0x"
    assert not tag("1a")(Stream("0x", partial=True))


def test_one_of_on_exhausted_input() -> None:
    with pytest.raises(Incomplete) as info:
        one_of("abc")(Stream("", partial=True))
    assert info.value.needed == 1


def test_take_on_short_input() -> None:
    with pytest.raises(Incomplete) as info:
        take(5)(Stream("ab", partial=True))
    assert info.value.needed == 3


class TestTakeWhileBoundaries:
    def test_unbounded_run_at_the_end_of_the_buffer(self) -> None:
        stream = Stream("1a2b", partial=True)
        with pytest.raises(Incomplete) as info:
            take_while(const.HEXADECIMAL, 1, None)(stream)
        assert info.value.needed == 1
        assert stream.pos == 0

    def test_run_ended_by_a_non_matching_token(self) -> None:
        stream = Stream("1a2b ", partial=True)
        assert take_while(const.HEXADECIMAL, 1, None)(stream).data == "1a2b"
        assert stream.pos == 4

    def test_finite_max_reached_as_the_buffer_runs_out(self) -> None:
        stream = Stream("abc", partial=True)
        r = take_while("abc", 0, 3)(stream)
        assert r.data == "abc"
        assert stream.pos == 3

    def test_finite_max_not_reached(self) -> None:
        with pytest.raises(Incomplete) as info:
            take_while("ab", 0, 3)(Stream("ab", partial=True))
        assert info.value.needed == 1

    def test_below_min_asks_for_the_missing_tokens(self) -> None:
        with pytest.raises(Incomplete) as info:
            take_while("a", 3, 5)(Stream("a", partial=True))
        assert info.value.needed == 2

    def test_closing_the_stream_settles_the_run(self) -> None:
        stream = Stream("1a", partial=True)
        stream.close()
        assert take_while1(const.HEXADECIMAL)(stream).data == "1a"


def test_feeding_and_retrying() -> None:
    stream = Stream("0x1a", partial=True)
    hex_number = seq("0x", take_while1(const.HEXADECIMAL))
    with pytest.raises(Incomplete):
        hex_number(stream)
    assert stream.pos == 0

    stream.feed("2b;")
    r = hex_number(stream)
    assert r.data == ("0x", "1a2b")
    assert stream.pos == 6


def test_sequence_rolls_back_on_incomplete() -> None:
    stream = Stream("abc", partial=True)
    with pytest.raises(Incomplete) as info:
        seq("ab", "cd")(stream)
    assert info.value.needed == 1
    assert stream.pos == 0


def test_alternation_does_not_skip_incomplete_branches() -> None:
    with pytest.raises(Incomplete):
        alt("xy", "ab")(Stream("x", partial=True))


class TestIncompletePropagation:
    def test_repetition_running_into_the_end_of_the_buffer(self) -> None:
        stream = Stream("123", partial=True)
        with pytest.raises(Incomplete) as info:
            repeat0(one_of(const.DECIMAL))(stream)
        assert info.value.needed == 1
        assert stream.pos == 0

    def test_optional_does_not_absorb_incomplete(self) -> None:
        stream = Stream("a", partial=True)
        with pytest.raises(Incomplete) as info:
            optional("ab")(stream)
        assert info.value.needed == 1
        assert info.value.pos == 0
        assert stream.pos == 0

    def test_separated_waits_for_the_next_separator(self) -> None:
        stream = Stream("1,2", partial=True)
        with pytest.raises(Incomplete):
            separated(one_of(const.DECIMAL), ",")(stream)
        assert stream.pos == 0

    def test_closed_repetition_stops_at_the_end(self) -> None:
        assert repeat0(one_of(const.DECIMAL))(Stream("123")).data == ["1", "2", "3"]


def test_complete_turns_incomplete_into_a_failure() -> None:
    stream = Stream("1a", partial=True)
    r = complete(take_while1(const.HEXADECIMAL))(stream)
    assert not r
    assert r.msg == "Unexpected end of input."
    assert stream.pos == 0


def test_parse_never_leaks_incomplete() -> None:
    with pytest.raises(ParseError):
        parse(tag("abc"), Stream("ab", partial=True))


def test_parse_closes_a_partial_stream() -> None:
    stream = Stream("1a", partial=True)
    assert parse(take_while1(const.HEXADECIMAL), stream) == "1a"
    assert not stream.partial


def test_eof() -> None:
    with pytest.raises(Incomplete) as info:
        eof(Stream("", partial=True))
    assert info.value.needed is None
    assert eof(Stream(""))
    assert not eof(Stream("a", partial=True))
