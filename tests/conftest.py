"""Shared fixtures for table_snapshots tests."""

from __future__ import annotations

from pathlib import Path
from typing import Callable
from typing import Iterable
from typing import List

import pytest

from table_snapshots.iops.base import FileIO
from table_snapshots.iops.base import InputFile
from table_snapshots.manifest import DataFile
from table_snapshots.manifest import ManifestEntry
from table_snapshots.manifest import ManifestEntryStatus
from table_snapshots.manifest import ManifestFile
from table_snapshots.manifest import write_manifest
from table_snapshots.manifest import write_manifest_list


class CountingFileIO(FileIO):
    """Local FileIO that remembers every location opened for reading."""

    def __init__(self) -> None:
        self.inputs: List[str] = []

    def new_input(self, location: str) -> InputFile:
        self.inputs.append(location)
        return super().new_input(location)


def added(snapshot_id: int, path: str, **kwargs) -> ManifestEntry:
    return ManifestEntry(snapshot_id, DataFile(path, **kwargs), ManifestEntryStatus.ADDED)


def deleted(snapshot_id: int, path: str, **kwargs) -> ManifestEntry:
    return ManifestEntry(snapshot_id, DataFile(path, **kwargs), ManifestEntryStatus.DELETED)


def existing(snapshot_id: int, path: str, **kwargs) -> ManifestEntry:
    return ManifestEntry(snapshot_id, DataFile(path, **kwargs), ManifestEntryStatus.EXISTING)


@pytest.fixture
def io() -> CountingFileIO:
    return CountingFileIO()


@pytest.fixture
def manifest_writer(
    tmp_path: Path, io: CountingFileIO
) -> Callable[[str, Iterable[ManifestEntry]], ManifestFile]:
    """Write a manifest under tmp_path/metadata and return its descriptor."""

    def _write(name: str, entries: Iterable[ManifestEntry], snapshot_id=None) -> ManifestFile:
        location = str(tmp_path / "metadata" / f"{name}.parquet")
        return write_manifest(io.new_output(location), entries, snapshot_id=snapshot_id)

    return _write


@pytest.fixture
def manifest_list_writer(
    tmp_path: Path, io: CountingFileIO
) -> Callable[[str, Iterable[ManifestFile]], str]:
    """Write a manifest list under tmp_path/metadata and return its location."""

    def _write(name: str, manifests: Iterable[ManifestFile]) -> str:
        location = str(tmp_path / "metadata" / f"{name}.parquet")
        return write_manifest_list(io.new_output(location), manifests)

    return _write
