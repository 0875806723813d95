"""Tests for the snapshot validation maintenance script."""

from __future__ import annotations

import importlib.util
from pathlib import Path

import pytest
from conftest import added
from conftest import deleted

SCRIPT = Path(__file__).resolve().parent.parent / "scripts" / "validate_snapshot.py"


@pytest.fixture(scope="module")
def script():
    spec = importlib.util.spec_from_file_location("validate_snapshot", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def snapshot_files(tmp_path: Path, manifest_writer, manifest_list_writer):
    present = tmp_path / "data" / "present.parquet"
    present.parent.mkdir(parents=True)
    present.write_bytes(b"x")
    missing = tmp_path / "data" / "missing.parquet"

    manifest = manifest_writer(
        "m1",
        [added(4, str(present)), added(4, str(missing)), deleted(4, "old.parquet")],
        snapshot_id=4,
    )
    return manifest_list_writer("snap-4", [manifest])


def test_validate_reports_missing_added_files(script, io, snapshot_files, capsys) -> None:
    missing = script.validate_snapshot(snapshot_files, 4, io)

    out = capsys.readouterr().out
    assert missing == 1
    assert "Snapshot 4: 1 manifests" in out
    assert "missing.parquet" in out
    assert "Deleted: old.parquet" in out
    assert "added-data-files: 2" in out


def test_validate_counts_unreadable_manifest_list(script, io, tmp_path: Path) -> None:
    assert script.validate_snapshot(str(tmp_path / "nope.parquet"), 1, io) == 1


def test_main_exit_codes(script, snapshot_files, monkeypatch) -> None:
    for name in ("GCS_BUCKET", "STORAGE_EMULATOR_HOST", "TABLE_SNAPSHOTS_IO"):
        monkeypatch.delenv(name, raising=False)

    assert script.main(["--manifest-list", snapshot_files, "--snapshot-id", "4"]) == 2
    assert script.main(["--manifest-list", snapshot_files, "--snapshot-id", "99"]) == 0
