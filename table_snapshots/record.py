"""Generic schema-typed records.

A `Record` stores one value per field of its `StructType`, in field order.
Name lookups go through a position map that is built once per struct type
and shared by every record of that type, so reading a field by name costs
a dict lookup plus an index.

The position maps live in a process-wide cache keyed weakly on the struct
type: once nothing else references a struct type its entry disappears.
"""

from __future__ import annotations

import copy
import threading
import weakref
from types import MappingProxyType
from typing import Any
from typing import Dict
from typing import List
from typing import Mapping
from typing import Optional
from typing import Union

from .exceptions import InvalidArgumentError
from .exceptions import TypeMismatchError
from .types import FieldType
from .types import StructType

_POSITION_CACHE: "weakref.WeakKeyDictionary[StructType, Mapping[str, int]]" = (
    weakref.WeakKeyDictionary()
)
_POSITION_CACHE_LOCK = threading.Lock()


def _build_position_map(struct: StructType) -> Mapping[str, int]:
    return MappingProxyType({f.name: pos for pos, f in enumerate(struct.fields)})


def position_map(struct: StructType) -> Mapping[str, int]:
    """Return the shared name -> position map for `struct`.

    Two threads missing on the same struct may both build a map; whichever
    is stored first is returned to both, so callers always agree.
    """
    with _POSITION_CACHE_LOCK:
        cached = _POSITION_CACHE.get(struct)
    if cached is not None:
        return cached

    built = _build_position_map(struct)
    with _POSITION_CACHE_LOCK:
        return _POSITION_CACHE.setdefault(struct, built)


def cached_struct_count() -> int:
    with _POSITION_CACHE_LOCK:
        return len(_POSITION_CACHE)


def _freeze(value: Any) -> Any:
    if isinstance(value, dict):
        return tuple(sorted(((k, _freeze(v)) for k, v in value.items()), key=repr))
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    if isinstance(value, bytearray):
        return bytes(value)
    return value


class Record:
    """A mutable row whose shape is fixed by an immutable `StructType`.

    Reads by unknown name return None; writes by unknown name raise
    `InvalidArgumentError`.
    """

    __slots__ = ("_struct", "_values", "_positions")

    def __init__(self, struct: StructType):
        self._struct = struct
        self._values: List[Any] = [None] * len(struct.fields)
        self._positions = position_map(struct)

    @classmethod
    def create(cls, struct: StructType) -> "Record":
        return cls(struct)

    @classmethod
    def from_dict(cls, struct: StructType, values: Optional[Mapping[str, Any]]) -> "Record":
        """Build a record from a plain mapping, such as a decoded Parquet row.

        Nested struct values (and lists of them) become nested records; map
        values given as key/value pairs become dicts. Keys that are not
        fields of `struct` are ignored.
        """
        record = cls(struct)
        if not values:
            return record
        for pos, field in enumerate(struct.fields):
            value = values.get(field.name)
            if value is None:
                continue
            if field.field_type is FieldType.STRUCT and not isinstance(value, Record):
                value = cls.from_dict(field.struct, value)
            elif field.field_type is FieldType.LIST and field.element is FieldType.STRUCT:
                value = [
                    v if v is None or isinstance(v, Record) else cls.from_dict(field.struct, v)
                    for v in value
                ]
            elif field.field_type is FieldType.MAP and not isinstance(value, dict):
                value = dict(value)
            record._values[pos] = value
        return record

    @property
    def struct(self) -> StructType:
        return self._struct

    def get_field(self, name: str) -> Any:
        pos = self._positions.get(name)
        if pos is None:
            return None
        return self._values[pos]

    def set_field(self, name: str, value: Any) -> None:
        pos = self._positions.get(name)
        if pos is None:
            raise InvalidArgumentError(f"Cannot set unknown field named: {name}")
        self._values[pos] = value

    def _check_position(self, pos: int) -> int:
        if not 0 <= pos < len(self._values):
            raise IndexError(f"Position {pos} out of range for {len(self._values)} fields")
        return pos

    def get(self, pos: int, kind: Union[FieldType, type, None] = None) -> Any:
        value = self._values[self._check_position(pos)]
        if kind is None:
            return value
        if isinstance(kind, FieldType):
            matches = kind.accepts(value)
            expected = kind.value
        elif isinstance(kind, type):
            matches = isinstance(value, kind)
            expected = kind.__name__
        else:
            raise InvalidArgumentError(f"Cannot check values against {kind!r}")
        if not matches:
            raise TypeMismatchError(f"Not an instance of {expected}: {value!r}")
        return value

    def set(self, pos: int, value: Any) -> None:
        self._values[self._check_position(pos)] = value

    def __getitem__(self, pos: int) -> Any:
        return self.get(pos)

    def __setitem__(self, pos: int, value: Any) -> None:
        self.set(pos, value)

    def __len__(self) -> int:
        return len(self._values)

    def to_dict(self) -> Dict[str, Any]:
        """Return the record as a plain dict, converting nested records too."""
        out = {}
        for field, value in zip(self._struct.fields, self._values):
            if isinstance(value, Record):
                value = value.to_dict()
            elif isinstance(value, list):
                value = [v.to_dict() if isinstance(v, Record) else v for v in value]
            out[field.name] = value
        return out

    def copy(self) -> "Record":
        clone = Record(self._struct)
        clone._values = copy.deepcopy(self._values)
        return clone

    def __deepcopy__(self, memo) -> "Record":
        clone = Record(self._struct)
        clone._values = copy.deepcopy(self._values, memo)
        return clone

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if not isinstance(other, Record):
            return NotImplemented
        return self._values == other._values

    def __hash__(self) -> int:
        return hash(_freeze(self._values))

    def __repr__(self) -> str:
        fields = ", ".join(
            f"{f.name}={v!r}" for f, v in zip(self._struct.fields, self._values)
        )
        return f"Record({fields})"
