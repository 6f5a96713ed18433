"""Statistics for tasks, async operations and resources.

Instants are monotonic nanosecond counts and durations are nanoseconds.
"""

from __future__ import annotations

import enum
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any

from consolekit.histogram import DurationHistogram, Histogram

logger = logging.getLogger(__name__)

_NANOS_PER_SEC = 1_000_000_000


class WakeOpKind(enum.Enum):
    WAKE = "wake"
    WAKE_BY_REF = "wake_by_ref"
    CLONE = "clone"
    DROP = "drop"


@dataclass(frozen=True)
class WakeOp:
    """An operation performed on a task's waker."""

    kind: WakeOpKind
    self_wake: bool = False


@dataclass(frozen=True)
class TimeAnchor:
    """Pairs a monotonic instant with a wall-clock time (ns since the epoch)."""

    mono: int
    sys: int

    @classmethod
    def now(cls) -> TimeAnchor:
        return cls(time.monotonic_ns(), time.time_ns())

    def to_system_time(self, t: int) -> int:
        """Return the wall-clock time in ns since the epoch for instant ``t``."""
        return self.sys + max(t - self.mono, 0)

    def to_timestamp(self, t: int) -> tuple[int, int]:
        """Return ``(seconds, nanos)`` since the epoch for instant ``t``."""
        return divmod(self.to_system_time(t), _NANOS_PER_SEC)


def _stamp(base_time: TimeAnchor, t: int | None) -> tuple[int, int] | None:
    return None if t is None else base_time.to_timestamp(t)


@dataclass(frozen=True)
class PollStatsData:
    polls: int
    first_poll: tuple[int, int] | None
    last_poll_started: tuple[int, int] | None
    last_poll_ended: tuple[int, int] | None
    busy_time: int


@dataclass(frozen=True)
class TaskStatsData:
    poll_stats: PollStatsData
    created_at: tuple[int, int]
    dropped_at: tuple[int, int] | None
    wakes: int
    waker_clones: int
    waker_drops: int
    self_wakes: int
    last_wake: tuple[int, int] | None
    scheduled_time: int


@dataclass(frozen=True)
class AsyncOpStatsData:
    poll_stats: PollStatsData
    created_at: tuple[int, int]
    dropped_at: tuple[int, int] | None
    task_id: int | None
    attributes: list[Any] = field(default_factory=list)


@dataclass(frozen=True)
class ResourceStatsData:
    created_at: tuple[int, int]
    dropped_at: tuple[int, int] | None
    attributes: list[Any] = field(default_factory=list)


class PollStats:
    """Poll counts, timestamps and optional duration histograms."""

    def __init__(
        self,
        poll_histogram: Histogram | None = None,
        scheduled_histogram: Histogram | None = None,
    ) -> None:
        self._lock = threading.Lock()
        self.current_polls = 0
        self.polls = 0
        self.first_poll: int | None = None
        self.last_wake: int | None = None
        self.last_poll_started: int | None = None
        self.last_poll_ended: int | None = None
        self.busy_time = 0
        self.scheduled_time = 0
        self.poll_histogram = poll_histogram
        self.scheduled_histogram = scheduled_histogram

    def wake(self, at: int) -> None:
        with self._lock:
            self.last_wake = at if self.last_wake is None else max(self.last_wake, at)

    def start_poll(self, at: int) -> None:
        with self._lock:
            previous = self.current_polls
            self.current_polls += 1
            if previous > 0:
                return
            if self.first_poll is None:
                self.first_poll = at
            self.last_poll_started = at
            self.polls += 1

            # Measuring from the later of the last wake and the last poll end
            # keeps busy and scheduled time from overlapping on self-wakes.
            marks = [t for t in (self.last_wake, self.last_poll_ended) if t is not None]
            if not marks:
                return
            elapsed = max(at - max(marks), 0)
            if self.scheduled_histogram is not None:
                self.scheduled_histogram.record_duration(elapsed)
            self.scheduled_time += elapsed

    def end_poll(self, at: int) -> None:
        with self._lock:
            previous = self.current_polls
            self.current_polls = max(previous - 1, 0)
            if previous > 1:
                return
            started = self.last_poll_started
            if started is None:
                logger.warning("a poll ended, but no start timestamp was recorded")
                return
            self.last_poll_ended = at
            elapsed = at - started
            if elapsed < 0:
                logger.warning(
                    "possible clock skew detected: a poll's end timestamp was before "
                    "its start timestamp (start = %s, end = %s)",
                    started,
                    at,
                )
                return
            if self.poll_histogram is not None:
                self.poll_histogram.record_duration(elapsed)
            self.busy_time += elapsed

    def to_proto(self, base_time: TimeAnchor) -> PollStatsData:
        with self._lock:
            return PollStatsData(
                polls=self.polls,
                first_poll=_stamp(base_time, self.first_poll),
                last_poll_started=_stamp(base_time, self.last_poll_started),
                last_poll_ended=_stamp(base_time, self.last_poll_ended),
                busy_time=self.busy_time,
            )


class TaskStats:
    """Stats associated with a task."""

    def __init__(self, poll_duration_max: int, scheduled_duration_max: int, created_at: int) -> None:
        self._lock = threading.Lock()
        self._dirty = True
        self._dropped_at: int | None = None
        self.created_at = created_at
        self.wakes = 0
        self.waker_clones = 0
        self.waker_drops = 0
        self.self_wakes = 0
        self.poll_stats = PollStats(Histogram(poll_duration_max), Histogram(scheduled_duration_max))

    def _make_dirty(self) -> None:
        with self._lock:
            self._dirty = True

    def record_wake_op(self, op: WakeOp, at: int) -> None:
        if op.kind is WakeOpKind.CLONE:
            with self._lock:
                self.waker_clones += 1
        elif op.kind is WakeOpKind.DROP:
            with self._lock:
                self.waker_drops += 1
        elif op.kind is WakeOpKind.WAKE_BY_REF:
            self._wake(at, op.self_wake)
        else:
            # Waking by value consumes the waker without a separate drop event,
            # so count it as a drop to keep clones - drops accurate.
            with self._lock:
                self.waker_drops += 1
            self._wake(at, op.self_wake)
        self._make_dirty()

    def _wake(self, at: int, self_wake: bool) -> None:
        self.poll_stats.wake(at)
        with self._lock:
            self.wakes += 1
            if self_wake:
                self.self_wakes += 1
            self._dirty = True

    def start_poll(self, at: int) -> None:
        self.poll_stats.start_poll(at)
        self._make_dirty()

    def end_poll(self, at: int) -> None:
        self.poll_stats.end_poll(at)
        self._make_dirty()

    def drop_task(self, dropped_at: int) -> None:
        with self._lock:
            if self._dropped_at is not None:
                return
            self._dropped_at = dropped_at
            self._dirty = True

    def poll_duration_histogram(self) -> DurationHistogram:
        with self.poll_stats._lock:
            return self.poll_stats.poll_histogram.to_proto()

    def scheduled_duration_histogram(self) -> DurationHistogram:
        with self.poll_stats._lock:
            return self.poll_stats.scheduled_histogram.to_proto()

    def take_unsent(self) -> bool:
        with self._lock:
            unsent, self._dirty = self._dirty, False
            return unsent

    def is_unsent(self) -> bool:
        with self._lock:
            return self._dirty

    def dropped_at(self) -> int | None:
        with self._lock:
            return self._dropped_at

    def to_proto(self, base_time: TimeAnchor) -> TaskStatsData:
        poll_stats = self.poll_stats.to_proto(base_time)
        with self.poll_stats._lock:
            last_wake = self.poll_stats.last_wake
            scheduled_time = self.poll_stats.scheduled_time
        with self._lock:
            return TaskStatsData(
                poll_stats=poll_stats,
                created_at=base_time.to_timestamp(self.created_at),
                dropped_at=_stamp(base_time, self._dropped_at),
                wakes=self.wakes,
                waker_clones=self.waker_clones,
                waker_drops=self.waker_drops,
                self_wakes=self.self_wakes,
                last_wake=_stamp(base_time, last_wake),
                scheduled_time=scheduled_time,
            )


class ResourceStats:
    """Stats associated with a resource."""

    def __init__(
        self,
        created_at: int,
        inherit_child_attributes: bool = False,
        parent_id: int | None = None,
    ) -> None:
        self._lock = threading.Lock()
        self._dirty = True
        self._dropped_at: int | None = None
        self.created_at = created_at
        self.inherit_child_attributes = inherit_child_attributes
        self.parent_id = parent_id
        self.attributes: dict[str, Any] = {}

    def _make_dirty(self) -> None:
        with self._lock:
            self._dirty = True

    def drop_resource(self, dropped_at: int) -> None:
        with self._lock:
            if self._dropped_at is not None:
                return
            self._dropped_at = dropped_at
            self._dirty = True

    def take_unsent(self) -> bool:
        with self._lock:
            unsent, self._dirty = self._dirty, False
            return unsent

    def is_unsent(self) -> bool:
        with self._lock:
            return self._dirty

    def dropped_at(self) -> int | None:
        with self._lock:
            return self._dropped_at

    def to_proto(self, base_time: TimeAnchor) -> ResourceStatsData:
        with self._lock:
            return ResourceStatsData(
                created_at=base_time.to_timestamp(self.created_at),
                dropped_at=_stamp(base_time, self._dropped_at),
                attributes=list(self.attributes.values()),
            )


class AsyncOpStats:
    """Stats associated with an async operation."""

    def __init__(
        self,
        created_at: int,
        inherit_child_attributes: bool = False,
        parent_id: int | None = None,
    ) -> None:
        self._task_id = 0
        self.stats = ResourceStats(created_at, inherit_child_attributes, parent_id)
        self.poll_stats = PollStats()

    def task_id(self) -> int | None:
        """The ID of the last task to poll this operation, if any."""
        return self._task_id if self._task_id > 0 else None

    def set_task_id(self, task_id: int) -> None:
        self._task_id = task_id
        self.stats._make_dirty()

    def drop_async_op(self, dropped_at: int) -> None:
        self.stats.drop_resource(dropped_at)

    def start_poll(self, at: int) -> None:
        self.poll_stats.start_poll(at)
        self.stats._make_dirty()

    def end_poll(self, at: int) -> None:
        self.poll_stats.end_poll(at)
        self.stats._make_dirty()

    def take_unsent(self) -> bool:
        return self.stats.take_unsent()

    def is_unsent(self) -> bool:
        return self.stats.is_unsent()

    def dropped_at(self) -> int | None:
        return self.stats.dropped_at()

    def to_proto(self, base_time: TimeAnchor) -> AsyncOpStatsData:
        resource = self.stats.to_proto(base_time)
        return AsyncOpStatsData(
            poll_stats=self.poll_stats.to_proto(base_time),
            created_at=resource.created_at,
            dropped_at=resource.dropped_at,
            task_id=self.task_id(),
            attributes=resource.attributes,
        )