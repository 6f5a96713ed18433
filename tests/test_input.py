import pytest

from consolekit.input import (
    KeyCode,
    KeyEvent,
    KeyModifiers,
    is_esc,
    is_help_toggle,
    is_space,
    should_quit,
)


@pytest.mark.parametrize(
    "event",
    [
        KeyEvent("q"),
        KeyEvent("q", KeyModifiers.CONTROL),
        KeyEvent("c", KeyModifiers.CONTROL),
        KeyEvent("d", KeyModifiers.CONTROL | KeyModifiers.SHIFT),
    ],
)
def test_quit_keys(event):
    assert should_quit(event) is True


@pytest.mark.parametrize(
    "event",
    [
        KeyEvent("c"),
        KeyEvent("d", KeyModifiers.ALT),
        KeyEvent("Q"),
        KeyEvent(KeyCode.ESC),
        "q",
        None,
    ],
)
def test_not_quit_keys(event):
    assert should_quit(event) is False


def test_is_space():
    assert is_space(KeyEvent(" ")) is True
    assert is_space(KeyEvent(" ", KeyModifiers.SHIFT)) is True
    assert is_space(KeyEvent("x")) is False
    assert is_space(object()) is False


def test_is_help_toggle():
    assert is_help_toggle(KeyEvent("?")) is True
    assert is_help_toggle(KeyEvent("/")) is False


def test_is_esc():
    assert is_esc(KeyEvent(KeyCode.ESC)) is True
    assert is_esc(KeyEvent(KeyCode.ENTER)) is False
    assert is_esc(KeyEvent("esc")) is False