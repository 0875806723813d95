"""Snapshot and manifest metadata for Iceberg-style tables.

A table's history is a chain of immutable snapshots. Each snapshot lists
its manifest files, and each manifest records data files with the id of
the snapshot that added or deleted them. `Snapshot.added_files()` and
`Snapshot.deleted_files()` reconcile those entries into the changes a
single snapshot made.
"""

from .exceptions import InvalidArgumentError
from .exceptions import RuntimeIOError
from .exceptions import SnapshotCatalogError
from .exceptions import TypeMismatchError
from .manifest import DataFile
from .manifest import ManifestEntry
from .manifest import ManifestEntryStatus
from .manifest import ManifestFile
from .manifest import ManifestReader
from .manifest import PartitionFieldSummary
from .record import Record
from .snapshot import Snapshot
from .types import FieldType
from .types import NestedField
from .types import StructType

__all__ = [
    "Snapshot",
    "ManifestFile",
    "ManifestEntry",
    "ManifestEntryStatus",
    "ManifestReader",
    "PartitionFieldSummary",
    "DataFile",
    "Record",
    "StructType",
    "NestedField",
    "FieldType",
    "SnapshotCatalogError",
    "InvalidArgumentError",
    "TypeMismatchError",
    "RuntimeIOError",
]
