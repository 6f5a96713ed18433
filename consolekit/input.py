"""Keyboard input events and the predicates the console uses on them."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any


class KeyCode(enum.Enum):
    """Non-character keys. Character keys are given as one-character strings."""

    BACKSPACE = "backspace"
    ENTER = "enter"
    LEFT = "left"
    RIGHT = "right"
    UP = "up"
    DOWN = "down"
    HOME = "home"
    END = "end"
    PAGE_UP = "page_up"
    PAGE_DOWN = "page_down"
    TAB = "tab"
    BACK_TAB = "back_tab"
    DELETE = "delete"
    INSERT = "insert"
    ESC = "esc"


class KeyModifiers(enum.Flag):
    NONE = 0
    SHIFT = enum.auto()
    CONTROL = enum.auto()
    ALT = enum.auto()


@dataclass(frozen=True)
class KeyEvent:
    """A key press: a character or a ``KeyCode``, with modifiers."""

    code: str | KeyCode
    modifiers: KeyModifiers = KeyModifiers.NONE


def _key(event: Any) -> KeyEvent | None:
    return event if isinstance(event, KeyEvent) else None


def should_quit(event: Any) -> bool:
    """``q``, ``Ctrl-C`` and ``Ctrl-D`` quit."""
    key = _key(event)
    if key is None:
        return False
    if key.code == "q":
        return True
    return key.code in ("c", "d") and KeyModifiers.CONTROL in key.modifiers


def is_space(event: Any) -> bool:
    key = _key(event)
    return key is not None and key.code == " "


def is_help_toggle(event: Any) -> bool:
    key = _key(event)
    return key is not None and key.code == "?"


def is_esc(event: Any) -> bool:
    key = _key(event)
    return key is not None and key.code is KeyCode.ESC