"""
File access for table_snapshots.

`FileIO` hands out `InputFile` and `OutputFile` handles by location. The base
implementation works against the local filesystem (optionally with a
`file://` prefix); object-store implementations live beside it.
"""

from __future__ import annotations

import io
import logging
import os
from typing import BinaryIO
from typing import Optional
from typing import Union

logger = logging.getLogger(__name__)


def _local_path(location: str) -> str:
    if location.startswith("file://"):
        return location[7:]
    return location


class InputFile:
    """A readable handle on a location.

    When constructed with `data` the bytes are served from memory; `None`
    means the location does not exist.
    """

    def __init__(self, location: str, data: Optional[bytes] = None):
        self.location = location
        self._data = data

    def exists(self) -> bool:
        return self._data is not None

    def __len__(self) -> int:
        if self._data is None:
            raise FileNotFoundError(f"Cannot stat missing file: {self.location}")
        return len(self._data)

    def open(self) -> BinaryIO:
        if self._data is None:
            raise FileNotFoundError(f"Cannot open missing file: {self.location}")
        return io.BytesIO(self._data)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.location!r})"


class LocalInputFile(InputFile):
    def __init__(self, location: str):
        super().__init__(location)
        self._path = _local_path(location)

    def exists(self) -> bool:
        return os.path.isfile(self._path)

    def __len__(self) -> int:
        return os.path.getsize(self._path)

    def open(self) -> BinaryIO:
        return open(self._path, "rb")


class OutputFile:
    """A writable handle on a location; `create()` returns a binary stream."""

    def __init__(self, location: str):
        self.location = location

    def exists(self) -> bool:
        return os.path.isfile(_local_path(self.location))

    def create(self) -> BinaryIO:
        path = _local_path(self.location)
        parent = os.path.dirname(path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        return open(path, "wb")

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.location!r})"


class FileIO:
    """Local filesystem FileIO.

    Exposes `new_input`, `new_output`, `delete` and `exists`.
    """

    def new_input(self, location: str) -> InputFile:
        return LocalInputFile(location)

    def new_output(self, location: str) -> OutputFile:
        logger.debug(f"new_output -> {location}")
        return OutputFile(location)

    def delete(self, location: Union[str, InputFile, OutputFile]) -> None:
        if isinstance(location, (InputFile, OutputFile)):
            location = location.location
        try:
            os.remove(_local_path(location))
        except FileNotFoundError:
            pass

    def exists(self, location: str) -> bool:
        return os.path.isfile(_local_path(location))
