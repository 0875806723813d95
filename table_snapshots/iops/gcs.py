"""
HTTP-backed Google Cloud Storage FileIO.

Talks to the GCS JSON/XML endpoints through a pooled requests session
instead of the google-cloud-storage client, which is only used to obtain
credentials.
"""

import io
import logging
import os
import urllib.parse
from typing import Optional
from typing import Tuple
from typing import Union

import requests
from google.auth.transport.requests import Request
from requests.adapters import HTTPAdapter

from .base import FileIO
from .base import InputFile
from .base import OutputFile

logger = logging.getLogger(__name__)

GCS_HOST = "https://storage.googleapis.com"


def _get_storage_credentials():
    from google.cloud import storage

    if os.environ.get("STORAGE_EMULATOR_HOST"):
        from google.auth.credentials import AnonymousCredentials

        storage_client = storage.Client(credentials=AnonymousCredentials())
    else:
        storage_client = storage.Client()
    return storage_client._credentials


def split_location(location: str) -> Tuple[str, str]:
    """Split `gs://bucket/path/to/object` into ("bucket", "path/to/object")."""
    path = location[5:] if location.startswith("gs://") else location
    bucket, _, object_name = path.partition("/")
    if not bucket or not object_name:
        raise ValueError(f"Not a GCS object location: '{location}'")
    return bucket, object_name


class _GcsInputFile(InputFile):
    """Fetches the object on first use and keeps the bytes."""

    def __init__(self, location: str, gcs: "GcsFileIO"):
        super().__init__(location, None)
        self._gcs = gcs
        self._fetched = False

    def _fetch(self) -> None:
        if self._fetched:
            return
        response = self._gcs._request("get", self._gcs._object_url(self.location), timeout=30)
        if response.status_code == 200:
            self._data = response.content
        elif response.status_code != 404:
            raise FileNotFoundError(
                f"Unable to read '{self.location}' - status {response.status_code}"
            )
        self._fetched = True

    def exists(self) -> bool:
        self._fetch()
        return super().exists()

    def __len__(self) -> int:
        self._fetch()
        return super().__len__()

    def open(self):
        self._fetch()
        return super().open()


class _GcsOutputStream(io.BytesIO):
    """Buffers writes and uploads the whole object on close()."""

    def __init__(self, location: str, gcs: "GcsFileIO"):
        super().__init__()
        self._location = location
        self._gcs = gcs

    def close(self):
        if self.closed:
            return

        bucket, object_name = split_location(self._location)
        data = self.getvalue()

        response = self._gcs._request(
            "post",
            f"{self._gcs.host}/upload/storage/v1/b/{bucket}/o",
            params={"uploadType": "media", "name": object_name},
            headers={
                "Content-Type": "application/octet-stream",
                "Content-Length": str(len(data)),
            },
            data=data,
            timeout=60,
        )

        if response.status_code not in (200, 201):
            raise IOError(
                f"Failed to write '{self._location}' - status {response.status_code}: {response.text}"
            )

        logger.info(f"uploaded {len(data)} bytes -> {self._location}")
        super().close()


class _GcsOutputFile(OutputFile):
    def __init__(self, location: str, gcs: "GcsFileIO"):
        super().__init__(location)
        self._gcs = gcs

    def exists(self) -> bool:
        return self._gcs.exists(self.location)

    def create(self):
        return _GcsOutputStream(self.location, self._gcs)


class GcsFileIO(FileIO):
    """Optimized HTTP-backed GCS FileIO.

    Exposes `new_input`, `new_output`, `delete` and `exists` for `gs://`
    locations. A session and access token can be passed in; otherwise the
    ambient Google credentials are used. `host` points the client at an
    emulator.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        access_token: Optional[str] = None,
        host: Optional[str] = None,
    ):
        if access_token is None:
            credentials = _get_storage_credentials()
            if not credentials.valid:
                credentials.refresh(Request())
            access_token = credentials.token
        self._access_token = access_token
        host = host or GCS_HOST
        if "://" not in host:
            host = f"http://{host}"
        self.host = host.rstrip("/")

        if session is None:
            session = requests.session()
            adapter = HTTPAdapter(pool_connections=100, pool_maxsize=100)
            session.mount("https://", adapter)
            session.mount("http://", adapter)
        self._session = session

    def _object_url(self, location: str) -> str:
        bucket, object_name = split_location(location)
        return f"{self.host}/{bucket}/{urllib.parse.quote(object_name, safe='')}"

    def _request(self, method: str, url: str, headers: Optional[dict] = None, **kwargs):
        headers = dict(headers or {})
        headers["Authorization"] = f"Bearer {self._access_token}"
        if method == "get":
            headers.setdefault("Accept-Encoding", "identity")
        return getattr(self._session, method)(url, headers=headers, **kwargs)

    def new_input(self, location: str) -> InputFile:
        return _GcsInputFile(location, self)

    def new_output(self, location: str) -> OutputFile:
        logger.info(f"new_output -> {location}")
        return _GcsOutputFile(location, self)

    def delete(self, location: Union[str, InputFile, OutputFile]) -> None:
        if isinstance(location, (InputFile, OutputFile)):
            location = location.location

        bucket, object_name = split_location(location)
        object_full_path = urllib.parse.quote(object_name, safe="")
        response = self._request(
            "delete", f"{self.host}/storage/v1/b/{bucket}/o/{object_full_path}", timeout=10
        )

        if response.status_code not in (204, 404):
            raise IOError(f"Failed to delete '{location}' - status {response.status_code}")

    def exists(self, location: str) -> bool:
        response = self._request("head", self._object_url(location), timeout=10)
        return response.status_code == 200
