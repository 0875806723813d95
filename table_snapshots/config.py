"""Environment-driven settings.

Env vars:
- GCS_BUCKET
- STORAGE_EMULATOR_HOST
- TABLE_SNAPSHOTS_IO ("local" or "gcs"; unset picks by location)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping
from typing import Optional

from .exceptions import InvalidArgumentError
from .iops.base import FileIO

IO_IMPLEMENTATIONS = ("local", "gcs")


@dataclass(frozen=True)
class Settings:
    gcs_bucket: Optional[str] = None
    storage_emulator_host: Optional[str] = None
    io_impl: Optional[str] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        environ = os.environ if environ is None else environ
        io_impl = environ.get("TABLE_SNAPSHOTS_IO") or None
        if io_impl is not None:
            io_impl = io_impl.lower()
            if io_impl not in IO_IMPLEMENTATIONS:
                raise InvalidArgumentError(
                    f"TABLE_SNAPSHOTS_IO must be one of {IO_IMPLEMENTATIONS}, got '{io_impl}'"
                )
        return cls(
            gcs_bucket=environ.get("GCS_BUCKET") or None,
            storage_emulator_host=environ.get("STORAGE_EMULATOR_HOST") or None,
            io_impl=io_impl,
        )

    def resolve_location(self, location: str) -> str:
        """Qualify a bucket-relative path with `gs://<GCS_BUCKET>/`."""
        if "://" in location or location.startswith("/") or not self.gcs_bucket:
            return location
        return f"gs://{self.gcs_bucket}/{location.lstrip('/')}"


def load_file_io(location: Optional[str] = None, settings: Optional[Settings] = None) -> FileIO:
    """Pick the FileIO for `location`.

    `gs://` locations, or TABLE_SNAPSHOTS_IO=gcs, get the GCS FileIO;
    everything else reads the local filesystem.
    """
    settings = settings or Settings.from_env()
    use_gcs = settings.io_impl == "gcs" or (
        settings.io_impl is None and location is not None and location.startswith("gs://")
    )
    if use_gcs:
        from .iops.gcs import GcsFileIO

        return GcsFileIO(host=settings.storage_emulator_host)
    return FileIO()
