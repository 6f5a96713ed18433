import pytest

from consolekit.stats import (
    AsyncOpStats,
    PollStats,
    ResourceStats,
    TaskStats,
    TimeAnchor,
    WakeOp,
    WakeOpKind,
)

MONO = 1_000
SYS = 5_000_000_000
ANCHOR = TimeAnchor(mono=MONO, sys=SYS)
MAX = 10_000


def make_task(created=MONO):
    return TaskStats(MAX, MAX, created)


def test_time_anchor_before_mono_clamps():
    assert ANCHOR.to_system_time(MONO - 500) == SYS


def test_time_anchor_offsets():
    assert ANCHOR.to_system_time(MONO + 250) == SYS + 250


def test_to_timestamp_splits_seconds_and_nanos():
    seconds, nanos = ANCHOR.to_timestamp(MONO + 7)
    assert seconds * 1_000_000_000 + nanos == SYS + 7
    assert 0 <= nanos < 1_000_000_000


def test_time_anchor_now_is_consistent():
    anchor = TimeAnchor.now()
    assert anchor.to_system_time(anchor.mono) == anchor.sys


def test_task_dirty_flag():
    task = make_task()
    assert task.is_unsent() is True
    assert task.take_unsent() is True
    assert task.take_unsent() is False
    task.start_poll(MONO + 1)
    assert task.is_unsent() is True


def test_wake_op_counters():
    task = make_task()
    task.record_wake_op(WakeOp(WakeOpKind.CLONE), MONO)
    task.record_wake_op(WakeOp(WakeOpKind.CLONE), MONO)
    task.record_wake_op(WakeOp(WakeOpKind.DROP), MONO)
    task.record_wake_op(WakeOp(WakeOpKind.WAKE), MONO + 5)
    task.record_wake_op(WakeOp(WakeOpKind.WAKE_BY_REF, self_wake=True), MONO + 9)
    data = task.to_proto(ANCHOR)
    assert data.waker_clones == 2
    assert data.waker_drops == 2
    assert data.wakes == 2
    assert data.self_wakes == 1
    assert data.last_wake == ANCHOR.to_timestamp(MONO + 9)


def test_last_wake_keeps_latest():
    task = make_task()
    task.record_wake_op(WakeOp(WakeOpKind.WAKE_BY_REF), MONO + 20)
    task.record_wake_op(WakeOp(WakeOpKind.WAKE_BY_REF), MONO + 10)
    assert task.to_proto(ANCHOR).last_wake == ANCHOR.to_timestamp(MONO + 20)


def test_busy_time_from_poll():
    start, end = MONO + 100, MONO + 150
    task = make_task()
    task.start_poll(start)
    task.end_poll(end)
    data = task.to_proto(ANCHOR)
    assert data.poll_stats.polls == 1
    assert data.poll_stats.busy_time == end - start
    assert data.poll_stats.first_poll == ANCHOR.to_timestamp(start)
    assert data.poll_stats.last_poll_ended == ANCHOR.to_timestamp(end)
    assert task.poll_stats.poll_histogram.histogram.count_at(end - start) == 1


def test_nested_polls_count_once():
    task = make_task()
    task.start_poll(MONO + 10)
    task.start_poll(MONO + 20)
    task.end_poll(MONO + 30)
    task.end_poll(MONO + 40)
    data = task.to_proto(ANCHOR)
    assert data.poll_stats.polls == 1
    assert data.poll_stats.busy_time == (MONO + 40) - (MONO + 10)


def test_scheduled_time_measured_from_wake():
    wake, start = MONO + 10, MONO + 30
    task = make_task()
    task.record_wake_op(WakeOp(WakeOpKind.WAKE_BY_REF), wake)
    task.start_poll(start)
    assert task.to_proto(ANCHOR).scheduled_time == start - wake
    assert task.poll_stats.scheduled_histogram.histogram.count_at(start - wake) == 1


def test_first_poll_without_wake_has_no_scheduled_time():
    task = make_task()
    task.start_poll(MONO + 30)
    assert task.to_proto(ANCHOR).scheduled_time == 0
    assert task.scheduled_duration_histogram().raw_histogram == (
        task.poll_stats.scheduled_histogram.histogram.serialize()
    )
    assert task.poll_stats.scheduled_histogram.histogram.total_count == 0


def test_scheduled_outlier_is_reported():
    task = TaskStats(MAX, 100, MONO)
    task.record_wake_op(WakeOp(WakeOpKind.WAKE_BY_REF), MONO)
    task.start_poll(MONO + 500)
    hist = task.scheduled_duration_histogram()
    assert hist.high_outliers == 1
    assert hist.highest_outlier == 500
    assert hist.max_value == 100


def test_poll_duration_histogram_reports_max():
    task = make_task()
    assert task.poll_duration_histogram().max_value == MAX


def test_end_poll_without_start_records_nothing():
    stats = PollStats()
    stats.end_poll(MONO + 5)
    data = stats.to_proto(ANCHOR)
    assert data.busy_time == 0
    assert data.last_poll_ended is None


def test_clock_skew_skips_busy_time():
    stats = PollStats()
    stats.start_poll(MONO + 50)
    stats.end_poll(MONO + 10)
    data = stats.to_proto(ANCHOR)
    assert data.busy_time == 0
    assert data.last_poll_ended == ANCHOR.to_timestamp(MONO + 10)


def test_drop_task_keeps_first_timestamp():
    task = make_task()
    assert task.dropped_at() is None
    task.drop_task(MONO + 3)
    task.drop_task(MONO + 9)
    assert task.dropped_at() == MONO + 3
    assert task.to_proto(ANCHOR).dropped_at == ANCHOR.to_timestamp(MONO + 3)


def test_resource_stats_lifecycle():
    res = ResourceStats(MONO, True, 7)
    assert res.take_unsent() is True
    assert res.is_unsent() is False
    res.drop_resource(MONO + 4)
    res.drop_resource(MONO + 8)
    assert res.is_unsent() is True
    assert res.dropped_at() == MONO + 4
    data = res.to_proto(ANCHOR)
    assert data.created_at == ANCHOR.to_timestamp(MONO)
    assert data.attributes == []
    assert (res.inherit_child_attributes, res.parent_id) == (True, 7)


def test_async_op_task_id():
    op = AsyncOpStats(MONO, False, None)
    assert op.task_id() is None
    op.take_unsent()
    op.set_task_id(12)
    assert op.task_id() == 12
    assert op.is_unsent() is True
    assert op.to_proto(ANCHOR).task_id == 12


def test_async_op_polls_and_drop():
    op = AsyncOpStats(MONO)
    op.start_poll(MONO + 10)
    op.end_poll(MONO + 25)
    op.drop_async_op(MONO + 30)
    data = op.to_proto(ANCHOR)
    assert data.poll_stats.polls == 1
    assert data.poll_stats.busy_time == (MONO + 25) - (MONO + 10)
    assert op.dropped_at() == MONO + 30
    assert data.dropped_at == ANCHOR.to_timestamp(MONO + 30)


@pytest.mark.parametrize("kind", list(WakeOpKind))
def test_every_wake_op_marks_dirty(kind):
    task = make_task()
    task.take_unsent()
    task.record_wake_op(WakeOp(kind), MONO)
    assert task.take_unsent() is True