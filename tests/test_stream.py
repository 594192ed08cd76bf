import pytest

from quillparse import Stream, ParseError


def test_peek_does_not_advance() -> None:
    stream = Stream("abc")
    assert stream.peek(2) == "ab"
    assert stream.pos == 0


def test_peek_returns_fewer_tokens_near_the_end() -> None:
    stream = Stream("abc", 2)
    assert stream.peek(5) == "c"
    assert stream.peek_token() == "c"


def test_advance_returns_consumed_tokens() -> None:
    stream = Stream(b"abc")
    assert stream.advance(2) == b"ab"
    assert stream.pos == 2
    assert stream.peek_token() == ord("c")


def test_advance_past_the_end_is_a_bug() -> None:
    stream = Stream("ab")
    with pytest.raises(IndexError):
        stream.advance(3)
    assert stream.pos == 0


def test_negative_amounts_are_rejected() -> None:
    stream = Stream("ab")
    with pytest.raises(ValueError):
        stream.advance(-1)
    with pytest.raises(ValueError):
        stream.peek(-1)


def test_starting_pos_must_be_inside_the_source() -> None:
    with pytest.raises(ValueError):
        Stream("ab", 3)


def test_list_sources_yield_list_slices() -> None:
    stream = Stream([1, 2, 3])
    assert stream.advance(2) == [1, 2]
    assert stream.remaining() == 1


def test_save_and_restore_is_exact() -> None:
    stream = Stream("hello")
    stream.advance(1)
    savepoint = stream.save()
    stream.advance(3)
    assert savepoint.get_slice() == "ell"
    stream.restore(savepoint)
    assert stream.pos == 1
    stream.advance(2)
    savepoint()
    assert stream.pos == 1


def test_restoring_a_foreign_savepoint_is_rejected() -> None:
    savepoint = Stream("ab").save()
    with pytest.raises(ValueError):
        Stream("ab").restore(savepoint)


def test_savepoint_guard_rolls_back_on_falsy_values() -> None:
    stream = Stream("abc")
    savepoint = stream.save()
    stream.advance(2)
    assert savepoint.guard(None) is None
    assert stream.pos == 0


def test_is_empty_depends_on_partial() -> None:
    stream = Stream("", partial=True)
    assert stream.at_end()
    assert not stream.is_empty()
    stream.close()
    assert stream.is_empty()


def test_feed_appends_to_the_buffer() -> None:
    stream = Stream("ab", partial=True)
    stream.advance(2)
    stream.feed("cd")
    assert stream.peek(2) == "cd"
    assert stream.pos == 2


def test_feed_keeps_the_source_type() -> None:
    stream = Stream(("a", "b"), partial=True)
    stream.feed(["c"])
    assert stream.src == ("a", "b", "c")
    assert stream.advance(3) == ("a", "b", "c")


def test_feeding_a_closed_stream_is_rejected() -> None:
    with pytest.raises(ValueError):
        Stream("ab").feed("c")


def test_location_is_one_based() -> None:
    stream = Stream("ab\ncd", 4)
    assert stream.location() == (2, 2)
    assert stream.location(0) == (1, 1)


def test_location_needs_a_string_source() -> None:
    with pytest.raises(TypeError):
        Stream(b"ab").location()


class TestCheckpoint:
    def test_rolls_back_unless_committed(self) -> None:
        stream = Stream("abc")
        with stream():
            stream.advance(2)
        assert stream.pos == 0

        with stream() as c:
            stream.advance(2)
            r = c.result("x")
        assert stream.pos == 2
        assert r.pos == (0, 2)
        assert r.data == "x"

    def test_fail_rolls_back(self) -> None:
        stream = Stream("abc")
        with stream() as c:
            stream.advance(2)
            failure = c.fail("nope")
        assert not failure
        assert failure.pos == 2
        assert stream.pos == 0

    def test_rolls_back_on_exceptions(self) -> None:
        stream = Stream("abc")
        with pytest.raises(ParseError):
            with stream() as c:
                stream.advance(1)
                raise c.error("boom")
        assert stream.pos == 0

    def test_sub_checkpoint_follows_the_parent_commit(self) -> None:
        stream = Stream("abc")
        with stream() as c:
            with c():
                stream.advance(1)
                c.commit()
            assert stream.pos == 1
            c.result(None)
        assert stream.pos == 1

    def test_stream_can_restore_a_checkpoint(self) -> None:
        stream = Stream("abc")
        with stream() as c:
            stream.advance(2)
            stream.restore(c)
            assert stream.pos == 0
            c.result(None)

    def test_notes_are_added_to_errors(self) -> None:
        stream = Stream("{abc")
        with pytest.raises(ParseError) as info:
            with stream(note="In block:") as c:
                stream.advance(4)
                raise c.error("Expected `}`.")
        assert str(info.value) == "Expected `}`."
        assert any(note.startswith("In block:") for note in info.value.__notes__)
