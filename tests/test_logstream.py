import pytest

from tinyhttpd.logstream import LARGE_BUFFER, SMALL_BUFFER, FixedBuffer, LogStream


def test_buffer_append_and_avail():
    buf = FixedBuffer(16)
    buf.append(b"hello")
    assert buf.data() == b"hello"
    assert len(buf) == 5
    assert buf.avail() == 16 - len(buf)


def test_buffer_drops_data_that_does_not_fit():
    buf = FixedBuffer(8)
    buf.append(b"12345678")
    assert buf.data() == b""
    buf.append(b"1234567")
    assert buf.data() == b"1234567"
    buf.append(b"x")
    assert buf.data() == b"1234567"


def test_buffer_reset_and_bzero():
    buf = FixedBuffer(8)
    buf.append(b"abc")
    buf.bzero()
    assert buf.data() == bytes(3)
    buf.reset()
    assert buf.data() == b""
    assert buf.avail() == 8


def test_buffer_sizes():
    assert SMALL_BUFFER == 4000
    assert LARGE_BUFFER == 4000000
    assert FixedBuffer().avail() == SMALL_BUFFER


def test_stream_chain_as_in_main():
    stream = LogStream()
    stream << 654 << 3.2 << 0 << "fg" << True
    assert stream.buffer.data() == b"6543.20fg1"


def test_stream_strings_bytes_and_none():
    stream = LogStream()
    stream << "abc" << b"de" << None << False
    assert stream.buffer.data() == b"abcde(null)0"


def test_stream_negative_integer_round_trip():
    stream = LogStream()
    stream << -12345
    assert int(stream.buffer.data()) == -12345


def test_stream_float_round_trip():
    stream = LogStream()
    stream << 0.5
    assert float(stream.buffer.data()) == 0.5


def test_stream_skips_numbers_without_room():
    stream = LogStream()
    stream.append(b"x" * (SMALL_BUFFER - 20))
    before = stream.buffer.data()
    stream << 42
    assert stream.buffer.data() == before
    stream << "ok"
    assert stream.buffer.data() == before + b"ok"


def test_stream_reset_buffer():
    stream = LogStream()
    stream << "abc"
    stream.reset_buffer()
    assert stream.buffer.data() == b""


def test_stream_rejects_unknown_type():
    with pytest.raises(TypeError):
        LogStream() << object()