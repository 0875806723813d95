from __future__ import annotations

import logging
import threading
import time
from typing import Any
from typing import Callable
from typing import Dict
from typing import Generic
from typing import List
from typing import Optional
from typing import Sequence
from typing import Tuple
from typing import TypeVar

from .exceptions import InvalidArgumentError
from .exceptions import RuntimeIOError
from .iops.base import FileIO
from .iops.base import InputFile
from .manifest import DataFile
from .manifest import ManifestFile
from .manifest import ManifestReader
from .manifest import read_manifest_list

logger = logging.getLogger(__name__)

T = TypeVar("T")

_UNRESOLVED = object()


class _LazyCell(Generic[T]):
    """Holds a value that is computed at most once and then kept.

    The computation runs outside the lock, so concurrent callers may compute
    redundantly; the first result to finish is published and every caller
    receives that one. A failed computation publishes nothing.
    """

    def __init__(self, value: Any = _UNRESOLVED):
        self._value = value
        self._lock = threading.Lock()

    def peek(self) -> Optional[T]:
        value = self._value
        return None if value is _UNRESOLVED else value

    def get(self, compute: Callable[[], T]) -> T:
        value = self._value
        if value is not _UNRESOLVED:
            return value
        computed = compute()
        with self._lock:
            if self._value is _UNRESOLVED:
                self._value = computed
            return self._value


class Snapshot:
    """A point-in-time view of a table's data files.

    A snapshot either reads its manifests from a manifest-list file or is
    given them directly. The manifests, and the data files this snapshot
    added and deleted, are resolved on first use and cached for the life of
    the object.
    """

    def __init__(
        self,
        io: FileIO,
        snapshot_id: int,
        parent_id: Optional[int] = None,
        timestamp_ms: Optional[int] = None,
        manifest_list: Optional[InputFile] = None,
        manifests: Optional[Sequence[ManifestFile]] = None,
    ):
        if (manifest_list is None) == (manifests is None):
            raise InvalidArgumentError(
                "Snapshot needs exactly one of a manifest list file or a list of manifests"
            )
        self.io = io
        self._snapshot_id = snapshot_id
        self._parent_id = parent_id
        self._timestamp_ms = int(time.time() * 1000) if timestamp_ms is None else timestamp_ms
        self._manifest_list = manifest_list

        self._manifests: _LazyCell[List[ManifestFile]] = (
            _LazyCell(list(manifests)) if manifests is not None else _LazyCell()
        )
        self._changes: _LazyCell[Tuple[List[DataFile], List[DataFile]]] = _LazyCell()

    @classmethod
    def from_manifest_paths(cls, io: FileIO, snapshot_id: int, *paths: str) -> "Snapshot":
        return cls(io, snapshot_id, manifests=[ManifestFile.for_path(p) for p in paths])

    @property
    def snapshot_id(self) -> int:
        return self._snapshot_id

    @property
    def parent_id(self) -> Optional[int]:
        return self._parent_id

    @property
    def timestamp_ms(self) -> int:
        return self._timestamp_ms

    @property
    def manifest_list_location(self) -> Optional[str]:
        return self._manifest_list.location if self._manifest_list is not None else None

    def manifests(self) -> List[ManifestFile]:
        return self._manifests.get(self._read_manifests)

    def _read_manifests(self) -> List[ManifestFile]:
        location = self._manifest_list.location
        try:
            return read_manifest_list(self._manifest_list)
        except Exception as e:
            raise RuntimeIOError("Cannot read manifest list", location) from e

    def added_files(self) -> List[DataFile]:
        return self._changes.get(self._read_changes)[0]

    def deleted_files(self) -> List[DataFile]:
        return self._changes.get(self._read_changes)[1]

    def _read_changes(self) -> Tuple[List[DataFile], List[DataFile]]:
        adds: List[DataFile] = []
        deletes: List[DataFile] = []

        # manifests can be reused by later snapshots, so only entries this
        # snapshot wrote count as its changes
        for manifest in self.manifests():
            try:
                with ManifestReader.read(self.io.new_input(manifest.path)) as reader:
                    for entry in reader.added_files():
                        if entry.snapshot_id == self._snapshot_id:
                            adds.append(entry.data_file.copy())
                    for entry in reader.deleted_files():
                        if entry.snapshot_id == self._snapshot_id:
                            deletes.append(entry.data_file.copy())
            except Exception as e:
                raise RuntimeIOError(
                    "Failed to close reader while caching changes", manifest.path
                ) from e

        logger.debug(
            f"snapshot {self._snapshot_id}: {len(adds)} added, {len(deletes)} deleted files"
        )
        return adds, deletes

    def summary(self) -> Dict[str, int]:
        adds = self.added_files()
        deletes = self.deleted_files()
        return {
            "added-data-files": len(adds),
            "added-records": sum(f.record_count for f in adds),
            "added-files-size": sum(f.file_size_in_bytes for f in adds),
            "deleted-data-files": len(deletes),
            "deleted-records": sum(f.record_count for f in deletes),
            "deleted-files-size": sum(f.file_size_in_bytes for f in deletes),
        }

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "snapshot-id": self._snapshot_id,
            "parent-snapshot-id": self._parent_id,
            "timestamp-ms": self._timestamp_ms,
            "manifest-list": self.manifest_list_location,
        }
        if self._manifest_list is None:
            data["manifests"] = [m.path for m in self.manifests()]
        return data

    @classmethod
    def from_dict(cls, io: FileIO, doc: Dict[str, Any]) -> "Snapshot":
        """Build a snapshot from a stored snapshot document.

        Accepts hyphenated or underscored keys, and `manifest` as an older
        spelling of `manifest-list`. Documents without a manifest list must
        carry a `manifests` list of paths.
        """
        snapshot_id = doc.get("snapshot-id", doc.get("snapshot_id"))
        if snapshot_id is None:
            raise InvalidArgumentError("Snapshot document has no snapshot id")
        parent_id = doc.get("parent-snapshot-id", doc.get("parent_snapshot_id"))
        timestamp_ms = doc.get("timestamp-ms", doc.get("timestamp_ms"))
        location = doc.get("manifest-list") or doc.get("manifest_list") or doc.get("manifest")

        if location:
            return cls(
                io,
                int(snapshot_id),
                parent_id=None if parent_id is None else int(parent_id),
                timestamp_ms=None if timestamp_ms is None else int(timestamp_ms),
                manifest_list=io.new_input(location),
            )
        return cls(
            io,
            int(snapshot_id),
            parent_id=None if parent_id is None else int(parent_id),
            timestamp_ms=None if timestamp_ms is None else int(timestamp_ms),
            manifests=[ManifestFile.for_path(p) for p in doc.get("manifests") or []],
        )

    def __repr__(self) -> str:
        manifests = self._manifests.peek()
        shown = [m.path for m in manifests] if manifests is not None else "<unresolved>"
        return (
            f"Snapshot(id={self._snapshot_id}, timestamp_ms={self._timestamp_ms}, "
            f"manifests={shown})"
        )
