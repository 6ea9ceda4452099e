import pytest
from asyrange.core.rangeparser import RangeParser, RangeOutcome, RangeOutcomeType, ByteRange


def test_no_header():
    outcome = RangeParser.parse(None, 1000)
    assert outcome.kind == RangeOutcomeType.NO_RANGE
    assert outcome.total == 1000
    assert outcome.byte_range is None


def test_open_ended_range():
    outcome = RangeParser.parse("bytes=500-", 1000)
    assert outcome == RangeOutcome.satisfiable(ByteRange(500, 999, 1000))
    assert outcome.byte_range.length == 500


def test_closed_range():
    outcome = RangeParser.parse("bytes=0-9", 1000)
    assert outcome.kind == RangeOutcomeType.SATISFIABLE
    assert (outcome.byte_range.start, outcome.byte_range.end) == (0, 9)


def test_end_is_clamped_to_last_byte():
    outcome = RangeParser.parse("bytes=900-5000", 1000)
    assert outcome.byte_range == ByteRange(900, 999, 1000)


def test_single_byte_at_the_end():
    outcome = RangeParser.parse("bytes=999-999", 1000)
    assert outcome.byte_range == ByteRange(999, 999, 1000)
    assert outcome.byte_range.length == 1


@pytest.mark.parametrize("start", [1000, 2000, 10**30])
def test_start_beyond_size_is_unsatisfiable(start):
    outcome = RangeParser.parse("bytes=%s-" % start, 1000)
    assert outcome == RangeOutcome.unsatisfiable(1000)


def test_any_range_of_an_empty_file_is_unsatisfiable():
    assert RangeParser.parse("bytes=0-", 0).kind == RangeOutcomeType.UNSATISFIABLE


@pytest.mark.parametrize("header", [
    "bytes=abc-10",
    "bytes=10-5",
    "items=0-10",
    "bytes=-500",
    "bytes=-",
    "bytes=0-10,20-30",
    "bytes 0-10",
    "bytes=1.5-3",
    "",
    "bytes=١-٢",
])
def test_malformed(header):
    assert RangeParser.parse(header, 1000).kind == RangeOutcomeType.MALFORMED


def test_whitespace_and_unit_case_are_tolerated():
    outcome = RangeParser.parse(" Bytes = 10 - 19 ", 1000)
    assert outcome.byte_range == ByteRange(10, 19, 1000)


@pytest.mark.parametrize("start,end,total", [
    (0, 0, 1),
    (0, 99, 100),
    (5, 5000, 100),
    (37, 41, 42),
    (99, None, 100),
])
def test_satisfiable_ranges_keep_their_bounds(start, end, total):
    header = "bytes=%s-%s" % (start, "" if end is None else end)
    r = RangeParser.parse(header, total).byte_range
    assert 0 <= r.start <= r.end < r.total
    assert r.length == r.end - r.start + 1


def test_byte_range_rejects_inverted_bounds():
    with pytest.raises(ValueError):
        ByteRange(10, 5, 100)
    with pytest.raises(ValueError):
        ByteRange(0, 100, 100)


def test_whole_range_of_empty_file():
    r = ByteRange.whole(0)
    assert r.length == 0
