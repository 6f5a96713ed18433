"""Visitors that pull structured data out of instrumentation span and event fields."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, ClassVar

from consolekit.stats import WakeOp, WakeOpKind

LOCATION_FILE = "loc.file"
LOCATION_LINE = "loc.line"
LOCATION_COLUMN = "loc.col"
INHERIT_FIELD_NAME = "inherits_child_attrs"

_U32_MASK = 0xFFFFFFFF


@dataclass(frozen=True)
class Field:
    """A named field value tagged with the metadata it came from."""

    name: str
    value: Any
    metadata_id: int


@dataclass(frozen=True)
class Location:
    """A source code location."""

    file: str
    line: int
    column: int


@dataclass(frozen=True)
class ResourceKind:
    """The kind of a resource: a known kind such as ``timer``, or any other name."""

    value: str
    known: bool = False


class UpdateOp(enum.Enum):
    ADD = "add"
    SUB = "sub"
    OVERRIDE = "override"


@dataclass(frozen=True)
class Update:
    """A state update for a resource attribute."""

    field: Field
    op: UpdateOp | None
    unit: str | None


@dataclass(frozen=True)
class ResourceVisitorResult:
    concrete_type: str
    kind: ResourceKind
    location: Location | None
    is_internal: bool
    inherit_child_attrs: bool


def _location(file: str | None, line: int | None, column: int | None) -> Location | None:
    if file is None or line is None or column is None:
        return None
    return Location(file, line, column)


class Visitor:
    """Receives typed field values; anything not handled falls back to ``record_debug``."""

    def record_debug(self, name: str, value: Any) -> None:
        """Record a value by its debug representation. Ignored by default."""

    def record_i64(self, name: str, value: int) -> None:
        self.record_debug(name, value)

    def record_u64(self, name: str, value: int) -> None:
        self.record_debug(name, value)

    def record_bool(self, name: str, value: bool) -> None:
        self.record_debug(name, value)

    def record_str(self, name: str, value: str) -> None:
        self.record_debug(name, value)


@dataclass
class ResourceVisitor(Visitor):
    """Extracts the fields of a ``runtime.resource`` span."""

    RES_SPAN_NAME: ClassVar[str] = "runtime.resource"
    RES_CONCRETE_TYPE_FIELD_NAME: ClassVar[str] = "concrete_type"
    RES_VIZ_FIELD_NAME: ClassVar[str] = "is_internal"
    RES_KIND_FIELD_NAME: ClassVar[str] = "kind"
    RES_KIND_TIMER: ClassVar[str] = "timer"

    concrete_type: str | None = None
    kind: ResourceKind | None = None
    is_internal: bool = False
    inherit_child_attrs: bool = False
    line: int | None = None
    file: str | None = None
    column: int | None = None

    def record_str(self, name: str, value: str) -> None:
        if name == self.RES_CONCRETE_TYPE_FIELD_NAME:
            self.concrete_type = value
        elif name == self.RES_KIND_FIELD_NAME:
            self.kind = ResourceKind(value, known=value == self.RES_KIND_TIMER)
        elif name == LOCATION_FILE:
            self.file = value

    def record_bool(self, name: str, value: bool) -> None:
        if name == self.RES_VIZ_FIELD_NAME:
            self.is_internal = value
        elif name == INHERIT_FIELD_NAME:
            self.inherit_child_attrs = value

    def record_u64(self, name: str, value: int) -> None:
        if name == LOCATION_LINE:
            self.line = value & _U32_MASK
        elif name == LOCATION_COLUMN:
            self.column = value & _U32_MASK

    def result(self) -> ResourceVisitorResult | None:
        if self.concrete_type is None or self.kind is None:
            return None
        return ResourceVisitorResult(
            concrete_type=self.concrete_type,
            kind=self.kind,
            location=_location(self.file, self.line, self.column),
            is_internal=self.is_internal,
            inherit_child_attrs=self.inherit_child_attrs,
        )


class FieldVisitor(Visitor):
    """Collects every field it is given."""

    def __init__(self, meta_id: int) -> None:
        self.meta_id = meta_id
        self.fields: list[Field] = []

    def _push(self, name: str, value: Any) -> None:
        self.fields.append(Field(name, value, self.meta_id))

    def record_debug(self, name: str, value: Any) -> None:
        self._push(name, repr(value))

    def record_i64(self, name: str, value: int) -> None:
        self._push(name, value)

    def record_u64(self, name: str, value: int) -> None:
        self._push(name, value)

    def record_bool(self, name: str, value: bool) -> None:
        self._push(name, value)

    def record_str(self, name: str, value: str) -> None:
        self._push(name, value)

    def result(self) -> list[Field]:
        return list(self.fields)


class TaskVisitor(Visitor):
    """Extracts the fields of a spawn span, treating ``loc.*`` fields as its location."""

    def __init__(self, meta_id: int) -> None:
        self.field_visitor = FieldVisitor(meta_id)
        self.line: int | None = None
        self.file: str | None = None
        self.column: int | None = None

    def record_debug(self, name: str, value: Any) -> None:
        self.field_visitor.record_debug(name, value)

    def record_i64(self, name: str, value: int) -> None:
        self.field_visitor.record_i64(name, value)

    def record_u64(self, name: str, value: int) -> None:
        if name == LOCATION_LINE:
            self.line = value & _U32_MASK
        elif name == LOCATION_COLUMN:
            self.column = value & _U32_MASK
        else:
            self.field_visitor.record_u64(name, value)

    def record_bool(self, name: str, value: bool) -> None:
        self.field_visitor.record_bool(name, value)

    def record_str(self, name: str, value: str) -> None:
        if name == LOCATION_FILE:
            self.file = value
        else:
            self.field_visitor.record_str(name, value)

    def result(self) -> tuple[list[Field], Location | None]:
        return self.field_visitor.result(), _location(self.file, self.line, self.column)


@dataclass
class AsyncOpVisitor(Visitor):
    """Extracts the fields of a ``runtime.resource.async_op`` span."""

    ASYNC_OP_SPAN_NAME: ClassVar[str] = "runtime.resource.async_op"
    ASYNC_OP_SRC_FIELD_NAME: ClassVar[str] = "source"

    source: str | None = None
    inherit_child_attrs: bool = False

    def record_str(self, name: str, value: str) -> None:
        if name == self.ASYNC_OP_SRC_FIELD_NAME:
            self.source = value

    def record_bool(self, name: str, value: bool) -> None:
        if name == INHERIT_FIELD_NAME:
            self.inherit_child_attrs = value

    def result(self) -> tuple[str, bool] | None:
        if self.source is None:
            return None
        return self.source, self.inherit_child_attrs


@dataclass
class WakerVisitor(Visitor):
    """Extracts the task ID and operation of a waker event."""

    WAKE: ClassVar[str] = "waker.wake"
    WAKE_BY_REF: ClassVar[str] = "waker.wake_by_ref"
    CLONE: ClassVar[str] = "waker.clone"
    DROP: ClassVar[str] = "waker.drop"
    TASK_ID_FIELD_NAME: ClassVar[str] = "task.id"

    id: int | None = None
    op: WakeOp | None = None

    def record_u64(self, name: str, value: int) -> None:
        if name == self.TASK_ID_FIELD_NAME:
            self.id = value

    def record_str(self, name: str, value: str) -> None:
        if name != "op":
            return
        kinds = {
            self.WAKE: WakeOpKind.WAKE,
            self.WAKE_BY_REF: WakeOpKind.WAKE_BY_REF,
            self.CLONE: WakeOpKind.CLONE,
            self.DROP: WakeOpKind.DROP,
        }
        kind = kinds.get(value)
        if kind is not None:
            self.op = WakeOp(kind, self_wake=False)

    def result(self) -> tuple[int, WakeOp] | None:
        if self.id is None or self.op is None:
            return None
        return self.id, self.op


@dataclass
class PollOpVisitor(Visitor):
    """Extracts the name and readiness of a resource poll operation."""

    POLL_OP_EVENT_TARGET: ClassVar[str] = "runtime::resource::poll_op"
    OP_NAME_FIELD_NAME: ClassVar[str] = "op_name"
    OP_READINESS_FIELD_NAME: ClassVar[str] = "is_ready"

    op_name: str | None = None
    is_ready: bool | None = None

    def record_bool(self, name: str, value: bool) -> None:
        if name == self.OP_READINESS_FIELD_NAME:
            self.is_ready = value

    def record_str(self, name: str, value: str) -> None:
        if name == self.OP_NAME_FIELD_NAME:
            self.op_name = value

    def result(self) -> tuple[str, bool] | None:
        if self.op_name is None or self.is_ready is None:
            return None
        return self.op_name, self.is_ready


class StateUpdateVisitor(Visitor):
    """Extracts a resource attribute update with its unit and operation."""

    RE_STATE_UPDATE_EVENT_TARGET: ClassVar[str] = "runtime::resource::state_update"
    AO_STATE_UPDATE_EVENT_TARGET: ClassVar[str] = "runtime::resource::async_op::state_update"
    STATE_OP_SUFFIX: ClassVar[str] = ".op"
    STATE_UNIT_SUFFIX: ClassVar[str] = ".unit"

    def __init__(self, meta_id: int) -> None:
        self.meta_id = meta_id
        self.field: Field | None = None
        self.unit: str | None = None
        self.op: UpdateOp | None = None

    def _is_value_field(self, name: str) -> bool:
        return not name.endswith((self.STATE_OP_SUFFIX, self.STATE_UNIT_SUFFIX))

    def _set_field(self, name: str, value: Any) -> None:
        if self._is_value_field(name):
            self.field = Field(name, value, self.meta_id)

    def record_debug(self, name: str, value: Any) -> None:
        self._set_field(name, repr(value))

    def record_i64(self, name: str, value: int) -> None:
        self._set_field(name, value)

    def record_u64(self, name: str, value: int) -> None:
        self._set_field(name, value)

    def record_bool(self, name: str, value: bool) -> None:
        self._set_field(name, value)

    def record_str(self, name: str, value: str) -> None:
        if name.endswith(self.STATE_OP_SUFFIX):
            try:
                self.op = UpdateOp(value)
            except ValueError:
                pass
        elif name.endswith(self.STATE_UNIT_SUFFIX):
            self.unit = value
        else:
            self.field = Field(name, value, self.meta_id)

    def result(self) -> Update | None:
        if self.field is None:
            return None
        return Update(field=self.field, op=self.op, unit=self.unit)