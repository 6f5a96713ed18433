import struct

import pytest

from consolekit.histogram import DurationHistogram, HdrHistogram, Histogram

HEADER_LEN = 40


def _header(data):
    return struct.unpack(">IIIIQQd", data[:HEADER_LEN])


def test_header_fields():
    hist = HdrHistogram(1000, 2)
    data = hist.serialize()
    cookie, length, offset, sigfig, lowest, highest, ratio = _header(data)
    assert cookie == 0x1C849313
    assert length == len(data) - HEADER_LEN
    assert (offset, sigfig, lowest, highest, ratio) == (0, 2, 1, 1000, 1.0)


def test_empty_payload_is_single_zero():
    data = HdrHistogram(1000, 2).serialize()
    assert data[HEADER_LEN:] == b"\x00"


def test_single_value_payload():
    hist = HdrHistogram(1000, 2)
    hist.record(1)
    assert hist.serialize()[HEADER_LEN:] == b"\x00\x02"


def test_payload_length_matches_header():
    hist = HdrHistogram(1000, 2)
    for value in (3, 3, 700, 999):
        hist.record(value)
    data = hist.serialize()
    assert _header(data)[1] == len(data) - HEADER_LEN


def test_record_and_count():
    hist = HdrHistogram(1000, 2)
    hist.record(300)
    hist.record(300)
    assert hist.count_at(300) == 2
    assert hist.total_count == 2
    assert hist.max == 300


def test_record_too_large_raises():
    hist = HdrHistogram(1000, 2)
    with pytest.raises(ValueError):
        hist.record(10**6)


def test_record_negative_raises():
    with pytest.raises(ValueError):
        HdrHistogram(1000, 2).record(-1)


@pytest.mark.parametrize("highest, sigfig", [(1, 2), (1000, 6), (1000, -1)])
def test_invalid_construction(highest, sigfig):
    with pytest.raises(ValueError):
        HdrHistogram(highest, sigfig)


def test_duration_within_range_has_no_outliers():
    hist = Histogram(1000)
    hist.record_duration(500)
    proto = hist.to_proto()
    assert proto.high_outliers == 0
    assert proto.highest_outlier is None
    assert proto.max_value == 1000
    assert hist.histogram.count_at(500) == 1


def test_duration_outlier_is_clamped():
    hist = Histogram(1000)
    hist.record_duration(1500)
    proto = hist.to_proto()
    assert proto.high_outliers == 1
    assert proto.highest_outlier == 1500
    assert hist.histogram.count_at(1000) == 1


def test_highest_outlier_keeps_maximum():
    hist = Histogram(1000)
    hist.record_duration(2000)
    hist.record_duration(1500)
    proto = hist.to_proto()
    assert proto.high_outliers == 2
    assert proto.highest_outlier == 2000


def test_to_proto_raw_matches_serialize():
    hist = Histogram(1000)
    hist.record_duration(42)
    proto = hist.to_proto()
    assert proto == DurationHistogram(hist.histogram.serialize(), 1000, 0, None)