import pytest

from consolekit.retention import (
    DurationError,
    RetainFor,
    format_duration,
    parse_duration,
    parse_retain_for,
)


def test_combined_spans_add_up():
    combined = parse_duration("5days 2min 2s")
    parts = parse_duration("5d") + parse_duration("2m") + parse_duration("2s")
    assert combined == parts


@pytest.mark.parametrize(
    "left, right",
    [
        ("1h", "60min"),
        ("1hour", "60minutes"),
        ("1s", "1000ms"),
        ("1ms", "1000us"),
        ("1us", "1000ns"),
        ("1w", "7days"),
        ("2sec", "2seconds"),
        ("1msec", "1ms"),
        ("1nsec", "1ns"),
        ("1usec", "1us"),
    ],
)
def test_unit_synonyms_agree(left, right):
    assert parse_duration(left) == parse_duration(right)


def test_month_and_year_lengths_are_ordered():
    assert parse_duration("4w") < parse_duration("1M") < parse_duration("5w")
    assert parse_duration("365d") < parse_duration("1y") < parse_duration("366d")


def test_spans_need_no_separator():
    assert parse_duration("1h30m") == parse_duration("1h 30m")


@pytest.mark.parametrize("text", ["", "   ", "5", "5 parsecs", "abc", "5s!", "-5s"])
def test_invalid_durations_raise(text):
    with pytest.raises(DurationError):
        parse_duration(text)


def test_duration_error_is_value_error():
    with pytest.raises(ValueError):
        parse_duration("forever")


def test_format_default_retention():
    assert format_duration(parse_duration("6s")) == "6s"


def test_format_milliseconds():
    assert format_duration(parse_duration("500ms")) == "500ms"


def test_format_fractional_seconds():
    assert format_duration(parse_duration("1500ms")) == "1.5s"


def test_format_minutes_as_seconds():
    assert format_duration(parse_duration("2min")) == "120s"


@pytest.mark.parametrize("text", ["3s", "45ms", "7ns", "12us", "1h", "3d"])
def test_whole_units_round_trip(text):
    value = parse_duration(text)
    assert parse_duration(format_duration(value).replace("µs", "us")) == value


@pytest.mark.parametrize("text", ["none", "None", "NONE"])
def test_none_disables_retention(text):
    assert parse_retain_for(text).duration is None


def test_retain_for_parses_duration():
    assert parse_retain_for("10s").duration == parse_duration("10s")


def test_retain_for_default_is_six_seconds():
    assert RetainFor().duration == parse_duration("6s")
    assert str(RetainFor()) == "6s"


def test_retain_for_none_displays_empty():
    assert str(RetainFor(None)) == ""


def test_retain_for_invalid_raises():
    with pytest.raises(DurationError):
        parse_retain_for("soon")