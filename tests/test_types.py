"""Unit tests for struct types and value kinds."""

from __future__ import annotations

import pyarrow as pa
import pytest

from table_snapshots.record import Record
from table_snapshots.types import FieldType
from table_snapshots.types import NestedField
from table_snapshots.types import StructType


def test_struct_types_compare_by_fields() -> None:
    left = StructType(NestedField(1, "a", FieldType.LONG))
    right = StructType(NestedField(1, "a", FieldType.LONG))
    other = StructType(NestedField(1, "a", FieldType.INT))

    assert left == right
    assert hash(left) == hash(right)
    assert left != other


def test_struct_type_hash_is_computed_once() -> None:
    struct = StructType(NestedField(1, "a", FieldType.LONG), NestedField(2, "b", FieldType.STRING))

    assert hash(struct) == struct._hash == hash(struct.fields)
    assert hash(struct) == hash(struct)
    assert struct == StructType(*struct.fields)


def test_struct_type_rejects_duplicate_names() -> None:
    with pytest.raises(ValueError, match="duplicate field names"):
        StructType(NestedField(1, "a", FieldType.LONG), NestedField(2, "a", FieldType.INT))


def test_struct_type_lookup_helpers() -> None:
    struct = StructType(NestedField(1, "a", FieldType.LONG), NestedField(2, "b", FieldType.STRING))

    assert struct.names == ("a", "b")
    assert struct.field("b").field_id == 2
    assert struct.field("missing") is None
    assert [f.name for f in struct] == ["a", "b"]


@pytest.mark.parametrize(
    "kwargs",
    [
        {"field_type": FieldType.STRUCT},
        {"field_type": FieldType.LIST},
        {"field_type": FieldType.LIST, "element": FieldType.STRUCT},
        {"field_type": FieldType.MAP, "key": FieldType.STRING},
    ],
)
def test_nested_field_requires_inner_types(kwargs) -> None:
    with pytest.raises(ValueError):
        NestedField(1, "f", **kwargs)


def test_to_arrow_maps_every_kind() -> None:
    inner = StructType(NestedField(10, "flag", FieldType.BOOLEAN, required=True))
    struct = StructType(
        NestedField(1, "i", FieldType.INT, required=True),
        NestedField(2, "l", FieldType.LONG),
        NestedField(3, "f", FieldType.FLOAT),
        NestedField(4, "d", FieldType.DOUBLE),
        NestedField(5, "s", FieldType.STRING),
        NestedField(6, "b", FieldType.BINARY),
        NestedField(7, "inner", FieldType.STRUCT, struct=inner),
        NestedField(8, "inners", FieldType.LIST, element=FieldType.STRUCT, struct=inner),
        NestedField(9, "ids", FieldType.LIST, element=FieldType.LONG),
        NestedField(11, "m", FieldType.MAP, key=FieldType.INT, value=FieldType.BINARY),
    )

    schema = struct.to_arrow()

    assert schema.field("i").type == pa.int32()
    assert not schema.field("i").nullable
    assert schema.field("l").type == pa.int64()
    assert schema.field("f").type == pa.float32()
    assert schema.field("d").type == pa.float64()
    assert schema.field("s").type == pa.string()
    assert schema.field("b").type == pa.binary()
    assert schema.field("inner").type == pa.struct([pa.field("flag", pa.bool_(), nullable=False)])
    assert schema.field("inners").type == pa.list_(schema.field("inner").type)
    assert schema.field("ids").type == pa.list_(pa.int64())
    assert schema.field("m").type == pa.map_(pa.int32(), pa.binary())


def test_field_type_accepts_matching_python_values() -> None:
    record = Record.create(StructType(NestedField(1, "a", FieldType.LONG)))

    assert FieldType.LONG.accepts(3)
    assert not FieldType.LONG.accepts(True)
    assert FieldType.BOOLEAN.accepts(False)
    assert FieldType.DOUBLE.accepts(1.5)
    assert not FieldType.DOUBLE.accepts(1)
    assert FieldType.BINARY.accepts(b"x")
    assert FieldType.STRUCT.accepts(record)
    assert not FieldType.STRUCT.accepts({"a": 1})
    assert FieldType.LIST.accepts([1])
    assert FieldType.MAP.accepts({})
    assert not FieldType.STRING.accepts(None)
    assert FieldType.INT.is_primitive
    assert not FieldType.MAP.is_primitive
