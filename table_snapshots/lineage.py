"""Walk the parent chain of a snapshot.

Snapshots form a singly-linked list through `parent_id`. The functions here
take a `lookup` callable that maps a snapshot id to a `Snapshot` (or None
when the id is unknown, e.g. after the parent was expired).
"""

from __future__ import annotations

from typing import Callable
from typing import Iterator
from typing import Optional

from .exceptions import InvalidArgumentError
from .snapshot import Snapshot

SnapshotLookup = Callable[[int], Optional[Snapshot]]


def ancestors(snapshot: Optional[Snapshot], lookup: SnapshotLookup) -> Iterator[Snapshot]:
    """Yield `snapshot` and then each of its ancestors, newest first."""
    seen = set()
    current = snapshot
    while current is not None:
        if current.snapshot_id in seen:
            raise InvalidArgumentError(
                f"Snapshot lineage has a cycle at snapshot {current.snapshot_id}"
            )
        seen.add(current.snapshot_id)
        yield current
        if current.parent_id is None:
            return
        current = lookup(current.parent_id)


def ancestor_ids(snapshot: Optional[Snapshot], lookup: SnapshotLookup) -> Iterator[int]:
    for s in ancestors(snapshot, lookup):
        yield s.snapshot_id


def is_ancestor_of(snapshot: Snapshot, candidate_id: int, lookup: SnapshotLookup) -> bool:
    return any(sid == candidate_id for sid in ancestor_ids(snapshot, lookup))
