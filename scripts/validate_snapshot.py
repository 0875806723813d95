"""Report a snapshot's manifests and changes, and check its data files exist.

Reads the manifest list of one snapshot, prints each manifest, the data
files the snapshot added and deleted, and reports added files that are
missing from storage. Useful for triage after a failed write or cleanup.

Usage:
    python scripts/validate_snapshot.py --manifest-list gs://bucket/t/metadata/snap-1.parquet \
        --snapshot-id 1

Env:
    GCS_BUCKET, STORAGE_EMULATOR_HOST, TABLE_SNAPSHOTS_IO
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional
from typing import Sequence

from table_snapshots.config import Settings
from table_snapshots.config import load_file_io
from table_snapshots.exceptions import RuntimeIOError
from table_snapshots.iops.base import FileIO
from table_snapshots.snapshot import Snapshot

logger = logging.getLogger("validate_snapshot")


def validate_snapshot(manifest_list: str, snapshot_id: int, io: FileIO) -> int:
    """Return the number of missing or unreadable items for the snapshot."""
    snapshot = Snapshot(io, snapshot_id, manifest_list=io.new_input(manifest_list))

    try:
        manifests = snapshot.manifests()
    except RuntimeIOError as e:
        logger.error(f"Snapshot {snapshot_id}: {e}")
        return 1

    print(f"Snapshot {snapshot_id}: {len(manifests)} manifests")
    for manifest in manifests:
        print(f"  {manifest.path} (added by {manifest.added_snapshot_id})")

    try:
        added = snapshot.added_files()
        deleted = snapshot.deleted_files()
    except RuntimeIOError as e:
        logger.error(f"Snapshot {snapshot_id}: {e}")
        return 1

    for key, value in snapshot.summary().items():
        print(f"  {key}: {value}")

    total_missing = 0
    for data_file in added:
        if not io.exists(data_file.file_path):
            print(f"    Missing data file: {data_file.file_path}")
            total_missing += 1
    for data_file in deleted:
        print(f"    Deleted: {data_file.file_path}")

    print(f"Validation complete. Missing/errored items: {total_missing}")
    return total_missing


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Validate the changes of one snapshot")
    parser.add_argument("--manifest-list", required=True)
    parser.add_argument("--snapshot-id", required=True, type=int)
    args = parser.parse_args(argv)

    settings = Settings.from_env()
    location = settings.resolve_location(args.manifest_list)
    io = load_file_io(location, settings)
    return 0 if validate_snapshot(location, args.snapshot_id, io) == 0 else 2


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    sys.exit(main())
