"""HDR histograms for recording poll and scheduling durations."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from itertools import groupby

V2_COOKIE = 0x1C849303 | 0x10
_HEADER = struct.Struct(">IIIIQQd")
_U64_MAX = (1 << 64) - 1


def _zig_zag(value: int) -> int:
    return value << 1 if value >= 0 else ((-value) << 1) - 1


def _varint(value: int) -> bytes:
    """Encode an unsigned value in at most nine bytes; the ninth carries eight bits."""
    out = bytearray()
    for _ in range(8):
        if value >> 7 == 0:
            out.append(value)
            return bytes(out)
        out.append((value & 0x7F) | 0x80)
        value >>= 7
    out.append(value & 0xFF)
    return bytes(out)


class HdrHistogram:
    """A high dynamic range histogram of non-negative integer values."""

    def __init__(self, highest_trackable_value: int, significant_figures: int) -> None:
        if not 0 <= significant_figures <= 5:
            raise ValueError("significant figures must be in the range 0..=5")
        if highest_trackable_value < 2 or highest_trackable_value > _U64_MAX:
            raise ValueError("highest trackable value must be at least 2")
        self.highest_trackable_value = highest_trackable_value
        self.significant_figures = significant_figures
        self.lowest_discernible_value = 1

        largest_single_unit = 2 * 10**significant_figures
        count_magnitude = (largest_single_unit - 1).bit_length()
        self._half_count_magnitude = max(count_magnitude - 1, 0)
        self._unit_magnitude = 0
        sub_bucket_count = 1 << (self._half_count_magnitude + 1)
        self._sub_bucket_half_count = sub_bucket_count // 2
        self._sub_bucket_mask = (sub_bucket_count - 1) << self._unit_magnitude
        self._leading_zero_base = 64 - self._unit_magnitude - self._half_count_magnitude - 1

        bucket_count = self._buckets_to_cover(highest_trackable_value, sub_bucket_count)
        self._counts = [0] * ((bucket_count + 1) * self._sub_bucket_half_count)
        self.max = 0
        self.total_count = 0

    def _buckets_to_cover(self, value: int, sub_bucket_count: int) -> int:
        smallest_untrackable = sub_bucket_count << self._unit_magnitude
        buckets = 1
        while smallest_untrackable <= value:
            if smallest_untrackable > _U64_MAX // 2:
                return buckets + 1
            smallest_untrackable <<= 1
            buckets += 1
        return buckets

    def _index_for(self, value: int) -> int:
        leading_zeros = 64 - (value | self._sub_bucket_mask).bit_length()
        bucket = self._leading_zero_base - leading_zeros
        sub_bucket = value >> (bucket + self._unit_magnitude)
        base = (bucket + 1) << self._half_count_magnitude
        return base + sub_bucket - self._sub_bucket_half_count

    def record(self, value: int) -> None:
        """Record one occurrence of ``value``."""
        if value < 0:
            raise ValueError("cannot record a negative value")
        index = self._index_for(value)
        if index >= len(self._counts):
            raise ValueError(f"value {value} is outside the trackable range")
        self._counts[index] += 1
        self.total_count += 1
        self.max = max(self.max, value)

    def count_at(self, value: int) -> int:
        """Return the count recorded for values equivalent to ``value``."""
        index = min(self._index_for(value), len(self._counts) - 1)
        return self._counts[index]

    def serialize(self) -> bytes:
        """Serialize in the uncompressed V2 HdrHistogram format."""
        end = self._index_for(self.max) + 1
        payload = bytearray()
        for count, group in groupby(self._counts[:end]):
            run = sum(1 for _ in group)
            if count == 0:
                payload += _varint(_zig_zag(-run if run > 1 else 0))
            else:
                payload += _varint(_zig_zag(count)) * run
        header = _HEADER.pack(
            V2_COOKIE,
            len(payload),
            0,
            self.significant_figures,
            self.lowest_discernible_value,
            self.highest_trackable_value,
            1.0,
        )
        return header + bytes(payload)


@dataclass(frozen=True)
class DurationHistogram:
    """A serialized duration histogram with its outlier statistics."""

    raw_histogram: bytes
    max_value: int
    high_outliers: int
    highest_outlier: int | None


class Histogram:
    """A duration histogram that clamps values above its maximum and counts them."""

    def __init__(self, max_value: int) -> None:
        self.max_value = max_value
        self.histogram = HdrHistogram(max_value, 2)
        self.outliers = 0
        self.max_outlier: int | None = None

    def record_duration(self, duration: int) -> None:
        """Record a duration given in nanoseconds."""
        if duration > self.max_value:
            self.outliers += 1
            self.max_outlier = duration if self.max_outlier is None else max(self.max_outlier, duration)
            duration = self.max_value
        self.histogram.record(duration)

    def to_proto(self) -> DurationHistogram:
        return DurationHistogram(
            raw_histogram=self.histogram.serialize(),
            max_value=self.max_value,
            high_outliers=self.outliers,
            highest_outlier=self.max_outlier,
        )