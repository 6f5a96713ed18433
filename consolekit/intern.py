"""A simple string interner."""

from __future__ import annotations

import functools
import logging
import weakref

logger = logging.getLogger(__name__)


@functools.total_ordering
class InternedStr:
    """A shared string handle; equal to and hashed like its text."""

    __slots__ = ("_value", "__weakref__")

    def __init__(self, value: str) -> None:
        self._value = value

    @property
    def value(self) -> str:
        return self._value

    def __str__(self) -> str:
        return self._value

    def __repr__(self) -> str:
        return f"InternedStr({self._value!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, InternedStr):
            return self._value == other._value
        if isinstance(other, str):
            return self._value == other
        return NotImplemented

    def __lt__(self, other: object) -> bool:
        if isinstance(other, InternedStr):
            return self._value < other._value
        if isinstance(other, str):
            return self._value < other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._value)

    def __len__(self) -> int:
        return len(self._value)


class Strings:
    """Hands out one shared ``InternedStr`` per distinct string."""

    def __init__(self) -> None:
        self._strings: dict[str, InternedStr] = {}

    def string(self, value: str) -> InternedStr:
        """Return the interned handle for ``value``, creating it if needed."""
        interned = self._strings.get(value)
        if interned is None:
            interned = InternedStr(value)
            self._strings[value] = interned
        return interned

    def retain_referenced(self) -> None:
        """Drop interned strings that nothing else refers to."""
        before = len(self._strings)
        survivors = weakref.WeakValueDictionary(self._strings)
        self._strings = {}
        self._strings = dict(survivors.items())
        dropped = before - len(self._strings)
        if dropped:
            logger.debug(
                "dropped %d un-referenced strings; %d remain", dropped, len(self._strings)
            )

    def __len__(self) -> int:
        return len(self._strings)

    def __contains__(self, value: object) -> bool:
        if isinstance(value, (str, InternedStr)):
            return str(value) in self._strings
        return False