"""Manifest files, manifest lists and their Parquet encoding.

A manifest list is a Parquet file with one row per manifest file of a
snapshot. A manifest file is a Parquet file with one row per data file,
recording whether the file was added, kept or deleted and which snapshot
made that change. Rows are decoded into `Record`s first and then into the
descriptor classes below.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from dataclasses import field
from enum import Enum
from typing import Any
from typing import Dict
from typing import Iterable
from typing import Iterator
from typing import List
from typing import Mapping
from typing import Optional

import pyarrow as pa
import pyarrow.parquet as pq

from .exceptions import RuntimeIOError
from .iops.base import InputFile
from .iops.base import OutputFile
from .record import Record
from .types import FieldType
from .types import NestedField
from .types import StructType

logger = logging.getLogger(__name__)


class ManifestEntryStatus(int, Enum):
    EXISTING = 0
    ADDED = 1
    DELETED = 2

    def __repr__(self) -> str:
        return f"ManifestEntryStatus.{self.name}"


DATA_FILE_TYPE = StructType(
    NestedField(100, "file_path", FieldType.STRING, required=True),
    NestedField(101, "file_format", FieldType.STRING),
    NestedField(102, "partition", FieldType.MAP, key=FieldType.STRING, value=FieldType.STRING),
    NestedField(103, "record_count", FieldType.LONG),
    NestedField(104, "file_size_in_bytes", FieldType.LONG),
    NestedField(125, "lower_bounds", FieldType.MAP, key=FieldType.INT, value=FieldType.BINARY),
    NestedField(128, "upper_bounds", FieldType.MAP, key=FieldType.INT, value=FieldType.BINARY),
)

MANIFEST_ENTRY_TYPE = StructType(
    NestedField(0, "status", FieldType.INT, required=True),
    NestedField(1, "snapshot_id", FieldType.LONG),
    NestedField(2, "data_file", FieldType.STRUCT, required=True, struct=DATA_FILE_TYPE),
)

PARTITION_FIELD_SUMMARY_TYPE = StructType(
    NestedField(509, "contains_null", FieldType.BOOLEAN, required=True),
    NestedField(510, "lower_bound", FieldType.BINARY),
    NestedField(511, "upper_bound", FieldType.BINARY),
)

MANIFEST_FILE_TYPE = StructType(
    NestedField(500, "path", FieldType.STRING, required=True),
    NestedField(501, "length", FieldType.LONG),
    NestedField(502, "partition_spec_id", FieldType.INT),
    NestedField(503, "added_snapshot_id", FieldType.LONG),
    NestedField(504, "added_files_count", FieldType.INT),
    NestedField(505, "existing_files_count", FieldType.INT),
    NestedField(506, "deleted_files_count", FieldType.INT),
    NestedField(
        507,
        "partitions",
        FieldType.LIST,
        element=FieldType.STRUCT,
        struct=PARTITION_FIELD_SUMMARY_TYPE,
    ),
)

# Column names written by older manifest-list writers, mapped to the names
# used by MANIFEST_FILE_TYPE.
MANIFEST_LIST_ALIASES: Dict[str, str] = {
    "manifest_path": "path",
    "manifest_length": "length",
    "added_data_files_count": "added_files_count",
    "existing_data_files_count": "existing_files_count",
    "deleted_data_files_count": "deleted_files_count",
    "r508": "partitions",
    "partition_summaries": "partitions",
}


@dataclass
class DataFile:
    file_path: str
    file_format: str = "PARQUET"
    record_count: int = 0
    file_size_in_bytes: int = 0
    partition: Dict[str, object] = field(default_factory=dict)
    lower_bounds: Dict[int, bytes] | None = None
    upper_bounds: Dict[int, bytes] | None = None

    def copy(self) -> "DataFile":
        return copy.deepcopy(self)

    @classmethod
    def from_record(cls, record: Record) -> "DataFile":
        return cls(
            file_path=record.get_field("file_path"),
            file_format=record.get_field("file_format") or "PARQUET",
            record_count=int(record.get_field("record_count") or 0),
            file_size_in_bytes=int(record.get_field("file_size_in_bytes") or 0),
            partition=dict(record.get_field("partition") or {}),
            lower_bounds=record.get_field("lower_bounds"),
            upper_bounds=record.get_field("upper_bounds"),
        )

    def to_record(self) -> Record:
        record = Record.create(DATA_FILE_TYPE)
        record.set_field("file_path", self.file_path)
        record.set_field("file_format", self.file_format)
        record.set_field("partition", {k: str(v) for k, v in self.partition.items()})
        record.set_field("record_count", self.record_count)
        record.set_field("file_size_in_bytes", self.file_size_in_bytes)
        record.set_field("lower_bounds", self.lower_bounds)
        record.set_field("upper_bounds", self.upper_bounds)
        return record


@dataclass
class ManifestEntry:
    snapshot_id: int
    data_file: DataFile
    status: ManifestEntryStatus = ManifestEntryStatus.ADDED

    @classmethod
    def from_record(cls, record: Record) -> "ManifestEntry":
        return cls(
            snapshot_id=record.get_field("snapshot_id"),
            data_file=DataFile.from_record(record.get_field("data_file")),
            status=ManifestEntryStatus(record.get_field("status")),
        )

    def to_record(self) -> Record:
        record = Record.create(MANIFEST_ENTRY_TYPE)
        record.set_field("status", int(self.status))
        record.set_field("snapshot_id", self.snapshot_id)
        record.set_field("data_file", self.data_file.to_record())
        return record


@dataclass(frozen=True)
class PartitionFieldSummary:
    contains_null: bool
    lower_bound: Optional[bytes] = None
    upper_bound: Optional[bytes] = None

    @classmethod
    def from_record(cls, record: Record) -> "PartitionFieldSummary":
        return cls(
            contains_null=bool(record.get_field("contains_null")),
            lower_bound=record.get_field("lower_bound"),
            upper_bound=record.get_field("upper_bound"),
        )

    def to_record(self) -> Record:
        record = Record.create(PARTITION_FIELD_SUMMARY_TYPE)
        record.set_field("contains_null", self.contains_null)
        record.set_field("lower_bound", self.lower_bound)
        record.set_field("upper_bound", self.upper_bound)
        return record


@dataclass(frozen=True)
class ManifestFile:
    """Descriptor of one manifest file as listed in a manifest list."""

    path: str
    length: int = 0
    partition_spec_id: int = 0
    added_snapshot_id: Optional[int] = None
    added_files_count: Optional[int] = None
    existing_files_count: Optional[int] = None
    deleted_files_count: Optional[int] = None
    partitions: tuple = ()

    @classmethod
    def for_path(cls, path: str) -> "ManifestFile":
        return cls(path=path)

    @classmethod
    def from_record(cls, record: Record) -> "ManifestFile":
        partitions = record.get_field("partitions") or []
        return cls(
            path=record.get_field("path"),
            length=int(record.get_field("length") or 0),
            partition_spec_id=int(record.get_field("partition_spec_id") or 0),
            added_snapshot_id=record.get_field("added_snapshot_id"),
            added_files_count=record.get_field("added_files_count"),
            existing_files_count=record.get_field("existing_files_count"),
            deleted_files_count=record.get_field("deleted_files_count"),
            partitions=tuple(PartitionFieldSummary.from_record(p) for p in partitions),
        )

    def to_record(self) -> Record:
        record = Record.create(MANIFEST_FILE_TYPE)
        record.set_field("path", self.path)
        record.set_field("length", self.length)
        record.set_field("partition_spec_id", self.partition_spec_id)
        record.set_field("added_snapshot_id", self.added_snapshot_id)
        record.set_field("added_files_count", self.added_files_count)
        record.set_field("existing_files_count", self.existing_files_count)
        record.set_field("deleted_files_count", self.deleted_files_count)
        record.set_field("partitions", [p.to_record() for p in self.partitions])
        return record


def _rename_keys(value: Any, aliases: Mapping[str, str]) -> Any:
    if isinstance(value, dict):
        renamed = {}
        for key, inner in value.items():
            target = aliases.get(key, key)
            # a column already using the current name wins over its alias
            if target in renamed and key != target:
                continue
            renamed[target] = _rename_keys(inner, aliases)
        return renamed
    if isinstance(value, list):
        return [_rename_keys(v, aliases) for v in value]
    return value


class ParquetRecordReader:
    """Closeable iterable of `Record`s decoded from a Parquet file.

    Only columns that (after alias resolution) name a field of `struct` are
    read. Fields with no matching column decode as None. The underlying
    stream is opened when iteration starts and closed when it ends, fails,
    or when `close()` is called.
    """

    def __init__(
        self,
        input_file: InputFile,
        struct: StructType,
        aliases: Optional[Mapping[str, str]] = None,
        batch_size: int = 8192,
    ):
        self.input_file = input_file
        self.struct = struct
        self.aliases = dict(aliases or {})
        self.batch_size = batch_size
        self._streams: list = []
        self._closed = False

    def _projected_columns(self, on_disk: Iterable[str]) -> List[str]:
        wanted = set(self.struct.names)
        chosen: Dict[str, str] = {}
        for name in on_disk:
            target = self.aliases.get(name, name)
            if target not in wanted:
                continue
            if target in chosen and name != target:
                continue
            chosen[target] = name
        return list(chosen.values())

    def __iter__(self) -> Iterator[Record]:
        if self._closed:
            raise RuntimeIOError("Cannot read from a closed reader", self.input_file.location)

        stream = self.input_file.open()
        self._streams.append(stream)
        try:
            parquet_file = pq.ParquetFile(stream)
            columns = self._projected_columns(parquet_file.schema_arrow.names)
            if not columns:
                for _ in range(parquet_file.metadata.num_rows):
                    yield Record.create(self.struct)
                return
            for batch in parquet_file.iter_batches(batch_size=self.batch_size, columns=columns):
                for row in batch.to_pylist():
                    yield Record.from_dict(self.struct, _rename_keys(row, self.aliases))
        finally:
            self._release(stream)

    def _release(self, stream) -> None:
        if stream in self._streams:
            self._streams.remove(stream)
            stream.close()

    def close(self) -> None:
        self._closed = True
        while self._streams:
            self._release(self._streams[0])

    def __enter__(self) -> "ParquetRecordReader":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def read_manifest_list(input_file: InputFile) -> List[ManifestFile]:
    """Decode every manifest descriptor listed in a manifest-list file."""
    with ParquetRecordReader(input_file, MANIFEST_FILE_TYPE, MANIFEST_LIST_ALIASES) as records:
        manifests = [ManifestFile.from_record(r) for r in records]
    logger.debug(f"read {len(manifests)} manifests from {input_file.location}")
    return manifests


class ManifestReader:
    """Reads the entries of one manifest file.

    Entries are decoded once, on first access, and shared by `entries()`,
    `added_files()`, `existing_files()` and `deleted_files()`.
    """

    def __init__(self, input_file: InputFile):
        self.input_file = input_file
        self._records = ParquetRecordReader(input_file, MANIFEST_ENTRY_TYPE)
        self._entries: Optional[List[ManifestEntry]] = None
        self._closed = False

    @classmethod
    def read(cls, input_file: InputFile) -> "ManifestReader":
        return cls(input_file)

    @property
    def location(self) -> str:
        return self.input_file.location

    def entries(self) -> List[ManifestEntry]:
        if self._closed:
            raise RuntimeIOError("Cannot read from a closed manifest reader", self.location)
        if self._entries is None:
            self._entries = [ManifestEntry.from_record(r) for r in self._records]
        return self._entries

    def _with_status(self, status: ManifestEntryStatus) -> Iterator[ManifestEntry]:
        return (e for e in self.entries() if e.status is status)

    def added_files(self) -> Iterator[ManifestEntry]:
        return self._with_status(ManifestEntryStatus.ADDED)

    def existing_files(self) -> Iterator[ManifestEntry]:
        return self._with_status(ManifestEntryStatus.EXISTING)

    def deleted_files(self) -> Iterator[ManifestEntry]:
        return self._with_status(ManifestEntryStatus.DELETED)

    def close(self) -> None:
        self._closed = True
        self._records.close()

    def __enter__(self) -> "ManifestReader":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def _arrow_row(struct: StructType, values: Mapping[str, Any]) -> Dict[str, Any]:
    row = {}
    for f in struct.fields:
        value = values.get(f.name)
        if value is not None:
            if f.field_type is FieldType.STRUCT:
                value = _arrow_row(f.struct, value)
            elif f.field_type is FieldType.LIST and f.element is FieldType.STRUCT:
                value = [_arrow_row(f.struct, v) for v in value]
            elif f.field_type is FieldType.MAP:
                value = list(value.items())
        row[f.name] = value
    return row


def _write_records(output_file: OutputFile, struct: StructType, records: List[Record]) -> int:
    rows = [_arrow_row(struct, r.to_dict()) for r in records]
    table = pa.Table.from_pylist(rows, schema=struct.to_arrow())
    buf = pa.BufferOutputStream()
    pq.write_table(table, buf, compression="zstd")
    data = buf.getvalue().to_pybytes()

    with output_file.create() as out:
        out.write(data)
    return len(data)


def write_manifest(
    output_file: OutputFile,
    entries: Iterable[ManifestEntry],
    snapshot_id: Optional[int] = None,
    partition_spec_id: int = 0,
) -> ManifestFile:
    """Write a manifest file and return the descriptor to list it with."""
    entries = list(entries)
    length = _write_records(output_file, MANIFEST_ENTRY_TYPE, [e.to_record() for e in entries])

    def count(status: ManifestEntryStatus) -> int:
        return sum(1 for e in entries if e.status is status)

    return ManifestFile(
        path=output_file.location,
        length=length,
        partition_spec_id=partition_spec_id,
        added_snapshot_id=snapshot_id,
        added_files_count=count(ManifestEntryStatus.ADDED),
        existing_files_count=count(ManifestEntryStatus.EXISTING),
        deleted_files_count=count(ManifestEntryStatus.DELETED),
    )


def write_manifest_list(output_file: OutputFile, manifests: Iterable[ManifestFile]) -> str:
    """Write a manifest list and return its location."""
    _write_records(output_file, MANIFEST_FILE_TYPE, [m.to_record() for m in manifests])
    return output_file.location
