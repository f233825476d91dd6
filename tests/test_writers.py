import io

import pytest

from mcuweb.writers import CountingDecorator, DummyWriter, StaticStringWriter, StreamWriter


def test_dummy_writer_reports_lengths():
    writer = DummyWriter()
    assert writer.write(ord("a")) == 1
    assert writer.write(b"hello") == len(b"hello")
    assert writer.write("") == 0


def test_static_writer_stores_within_capacity():
    writer = StaticStringWriter(8)
    assert writer.write(b"abc") == 3
    assert writer.write(ord("d")) == 1
    assert writer.getvalue() == b"abcd"


def test_static_writer_truncates():
    writer = StaticStringWriter(4)
    assert writer.write(b"hello") == 4
    assert writer.getvalue() == b"hell"
    assert writer.write(ord("x")) == 0
    assert writer.getvalue() == b"hell"


def test_static_writer_rejects_bad_byte():
    writer = StaticStringWriter(4)
    with pytest.raises(ValueError):
        writer.write(256)


def test_static_writer_negative_size():
    with pytest.raises(ValueError):
        StaticStringWriter(-1)


def test_stream_writer_writes_everything():
    stream = io.BytesIO()
    writer = StreamWriter(stream)
    assert writer.write(b"{}") == 2
    assert writer.write(ord("\n")) == 1
    assert writer.write("é") == len("é".encode("utf-8"))
    assert stream.getvalue() == b"{}\n" + "é".encode("utf-8")


def test_counting_decorator_counts_accepted_bytes():
    inner = StaticStringWriter(5)
    counter = CountingDecorator(inner)
    counter.write(b"abc")
    counter.write(b"defg")
    counter.write(ord("h"))
    assert counter.count() == len(inner.getvalue())
    assert inner.getvalue() == b"abcde"


def test_counting_decorator_over_dummy():
    counter = CountingDecorator(DummyWriter())
    text = b'{"a":[1,2,3]}'
    counter.write(text)
    assert counter.count() == len(text)