"""Structural types used to describe records.

A `StructType` is an ordered, immutable sequence of named fields. Two
struct types with the same fields compare (and hash) equal, which lets
them key the record position cache.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any
from typing import Iterator
from typing import Optional
from typing import Tuple

import pyarrow as pa


class FieldType(Enum):
    """The closed set of value kinds a record slot can hold."""

    BOOLEAN = "boolean"
    INT = "int"
    LONG = "long"
    FLOAT = "float"
    DOUBLE = "double"
    STRING = "string"
    BINARY = "binary"
    STRUCT = "struct"
    LIST = "list"
    MAP = "map"

    def accepts(self, value: Any) -> bool:
        if value is None:
            return False
        if self is FieldType.BOOLEAN:
            return isinstance(value, bool)
        if self in (FieldType.INT, FieldType.LONG):
            # bool is an int subclass but never an integer column value
            return isinstance(value, int) and not isinstance(value, bool)
        if self in (FieldType.FLOAT, FieldType.DOUBLE):
            return isinstance(value, float)
        if self is FieldType.STRING:
            return isinstance(value, str)
        if self is FieldType.BINARY:
            return isinstance(value, (bytes, bytearray))
        if self is FieldType.STRUCT:
            from .record import Record

            return isinstance(value, Record)
        if self is FieldType.LIST:
            return isinstance(value, (list, tuple))
        return isinstance(value, dict)

    @property
    def is_primitive(self) -> bool:
        return self not in (FieldType.STRUCT, FieldType.LIST, FieldType.MAP)


_ARROW_PRIMITIVES = {
    FieldType.BOOLEAN: pa.bool_,
    FieldType.INT: pa.int32,
    FieldType.LONG: pa.int64,
    FieldType.FLOAT: pa.float32,
    FieldType.DOUBLE: pa.float64,
    FieldType.STRING: pa.string,
    FieldType.BINARY: pa.binary,
}


@dataclass(frozen=True)
class NestedField:
    """One named field of a struct.

    `struct` describes the nested record for STRUCT fields and for LIST
    fields whose elements are records. `element`, `key` and `value` give the
    primitive kinds for LIST and MAP fields.
    """

    field_id: int
    name: str
    field_type: FieldType
    required: bool = False
    struct: Optional["StructType"] = None
    element: Optional[FieldType] = None
    key: Optional[FieldType] = None
    value: Optional[FieldType] = None

    def __post_init__(self):
        if self.field_type is FieldType.STRUCT and self.struct is None:
            raise ValueError(f"struct field '{self.name}' needs a nested struct type")
        if self.field_type is FieldType.LIST and self.element is None:
            raise ValueError(f"list field '{self.name}' needs an element type")
        if self.field_type is FieldType.LIST and self.element is FieldType.STRUCT:
            if self.struct is None:
                raise ValueError(f"list field '{self.name}' needs an element struct type")
        if self.field_type is FieldType.MAP and (self.key is None or self.value is None):
            raise ValueError(f"map field '{self.name}' needs key and value types")

    def to_arrow(self) -> pa.Field:
        return pa.field(self.name, _arrow_type(self), nullable=not self.required)


def _primitive_arrow_type(kind: FieldType) -> pa.DataType:
    try:
        return _ARROW_PRIMITIVES[kind]()
    except KeyError:
        raise ValueError(f"{kind.value} is not a primitive kind") from None


def _arrow_type(field: NestedField) -> pa.DataType:
    if field.field_type is FieldType.STRUCT:
        return pa.struct(list(field.struct.to_arrow()))
    if field.field_type is FieldType.LIST:
        if field.element is FieldType.STRUCT:
            return pa.list_(pa.struct(list(field.struct.to_arrow())))
        return pa.list_(_primitive_arrow_type(field.element))
    if field.field_type is FieldType.MAP:
        return pa.map_(_primitive_arrow_type(field.key), _primitive_arrow_type(field.value))
    return _primitive_arrow_type(field.field_type)


@dataclass(frozen=True)
class StructType:
    """Ordered, immutable collection of `NestedField`s."""

    fields: Tuple[NestedField, ...]

    def __init__(self, *fields: NestedField):
        names = [f.name for f in fields]
        if len(set(names)) != len(names):
            raise ValueError(f"duplicate field names in struct: {names}")
        object.__setattr__(self, "fields", tuple(fields))
        object.__setattr__(self, "_hash", hash(self.fields))

    def __hash__(self) -> int:
        return self._hash

    def __iter__(self) -> Iterator[NestedField]:
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    def field(self, name: str) -> Optional[NestedField]:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(f.name for f in self.fields)

    def to_arrow(self) -> pa.Schema:
        return pa.schema([f.to_arrow() for f in self.fields])

    def __repr__(self) -> str:
        inner = ", ".join(f"{f.field_id}: {f.name}: {f.field_type.value}" for f in self.fields)
        return f"struct<{inner}>"

