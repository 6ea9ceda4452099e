import io
import os
import asyncio
import pytest
from asyrange.core.rangeparser import ByteRange, RangeParser
from asyrange.core.streamer import ByteStreamer, MIN_CHUNK_SIZE
from asyrange.errors import TruncatedSource, IoFailure

DATA = os.urandom(100 * 1024 + 17)


class RecordingSource(io.BytesIO):
    def __init__(self, data):
        super().__init__(data)
        self.bytes_read = 0
        self.read_sizes = []

    def read(self, n=-1):
        chunk = super().read(n)
        self.bytes_read += len(chunk)
        self.read_sizes.append(n)
        return chunk


class RecordingSink(io.BytesIO):
    def __init__(self):
        super().__init__()
        self.write_sizes = []

    def write(self, data):
        self.write_sizes.append(len(data))
        return super().write(data)


class BrokenSink:
    def __init__(self, fail_after):
        self.fail_after = fail_after
        self.writes = 0

    def write(self, data):
        if self.writes >= self.fail_after:
            raise BrokenPipeError('client went away')
        self.writes += 1


def test_streams_exactly_the_window():
    streamer = ByteStreamer(MIN_CHUNK_SIZE)
    source = RecordingSource(DATA)
    sink = RecordingSink()
    byte_range = ByteRange(1000, 50000, len(DATA))

    written, err = streamer.stream(source, byte_range, sink)

    assert err is None
    assert written == byte_range.length
    assert sink.getvalue() == DATA[1000:50001]
    # the offset is skipped by seeking, never read
    assert source.bytes_read == byte_range.length


def test_chunks_are_bounded():
    streamer = ByteStreamer(MIN_CHUNK_SIZE)
    source = RecordingSource(DATA)
    sink = RecordingSink()
    streamer.stream(source, ByteRange.whole(len(DATA)), sink)
    assert max(source.read_sizes) <= MIN_CHUNK_SIZE
    assert max(sink.write_sizes) <= MIN_CHUNK_SIZE


def test_consecutive_ranges_rebuild_the_file():
    streamer = ByteStreamer(MIN_CHUNK_SIZE)
    parts = []
    step = 7777
    for start in range(0, len(DATA), step):
        outcome = RangeParser.parse("bytes=%s-%s" % (start, start + step - 1), len(DATA))
        sink = io.BytesIO()
        written, err = streamer.stream(io.BytesIO(DATA), outcome.byte_range, sink)
        assert err is None
        assert written == outcome.byte_range.length
        parts.append(sink.getvalue())
    assert b''.join(parts) == DATA


def test_truncated_source_is_reported():
    streamer = ByteStreamer()
    # the file shrank after its size was taken
    byte_range = ByteRange(10, 999, 1000)
    sink = io.BytesIO()
    written, err = streamer.stream(io.BytesIO(b'x' * 500), byte_range, sink)
    assert written == 490
    assert isinstance(err, TruncatedSource)
    assert err.expected == 990
    assert err.written == 490


def test_sink_failure_stops_the_copy():
    streamer = ByteStreamer(MIN_CHUNK_SIZE)
    sink = BrokenSink(fail_after=2)
    written, err = streamer.stream(io.BytesIO(DATA), ByteRange.whole(len(DATA)), sink)
    assert isinstance(err, IoFailure)
    assert isinstance(err.innerexception, BrokenPipeError)
    assert written == 2 * MIN_CHUNK_SIZE
    assert sink.writes == 2


def test_empty_range_writes_nothing():
    sink = io.BytesIO()
    written, err = ByteStreamer().stream(io.BytesIO(b''), ByteRange.whole(0), sink)
    assert (written, err) == (0, None)
    assert sink.getvalue() == b''


@pytest.mark.parametrize("chunk_size", [0, 1, 1024, 64 * 1024 * 1024])
def test_chunk_size_must_be_bounded(chunk_size):
    with pytest.raises(ValueError):
        ByteStreamer(chunk_size)


def test_astream():
    received = []

    async def write(data):
        received.append(data)

    async def main():
        return await ByteStreamer(MIN_CHUNK_SIZE).astream(io.BytesIO(DATA), ByteRange(500, 20000, len(DATA)), write)

    written, err = asyncio.run(main())
    assert err is None
    assert written == 19501
    assert b''.join(received) == DATA[500:20001]


def test_astream_write_failure():
    async def write(data):
        raise ConnectionResetError('reset by peer')

    async def main():
        return await ByteStreamer().astream(io.BytesIO(DATA), ByteRange.whole(len(DATA)), write)

    written, err = asyncio.run(main())
    assert written == 0
    assert isinstance(err, IoFailure)
