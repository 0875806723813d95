"""Unit tests for snapshot lineage walking."""

from __future__ import annotations

import pytest

from table_snapshots.exceptions import InvalidArgumentError
from table_snapshots.lineage import ancestor_ids
from table_snapshots.lineage import ancestors
from table_snapshots.lineage import is_ancestor_of
from table_snapshots.snapshot import Snapshot


def _chain(io, *pairs):
    return {sid: Snapshot(io, sid, parent_id=parent, manifests=[]) for sid, parent in pairs}


def test_ancestors_walk_to_the_root(io) -> None:
    snapshots = _chain(io, (1, None), (2, 1), (3, 2))

    assert list(ancestor_ids(snapshots[3], snapshots.get)) == [3, 2, 1]
    assert [s.snapshot_id for s in ancestors(snapshots[1], snapshots.get)] == [1]


def test_ancestors_stop_at_unknown_parent(io) -> None:
    """An expired parent ends the walk instead of failing it."""
    snapshots = _chain(io, (2, 1), (3, 2))

    assert list(ancestor_ids(snapshots[3], snapshots.get)) == [3, 2]


def test_ancestors_of_nothing_is_empty(io) -> None:
    assert list(ancestors(None, lambda _: None)) == []


def test_cycle_in_lineage_is_rejected(io) -> None:
    snapshots = _chain(io, (1, 2), (2, 1))

    with pytest.raises(InvalidArgumentError, match="cycle"):
        list(ancestor_ids(snapshots[1], snapshots.get))


def test_is_ancestor_of(io) -> None:
    snapshots = _chain(io, (1, None), (2, 1), (3, 2), (4, 1))

    assert is_ancestor_of(snapshots[3], 1, snapshots.get)
    assert not is_ancestor_of(snapshots[3], 4, snapshots.get)
