"""HTTP blob store client for published build artifacts.

Artifacts are written with a single ``PUT {base_url}/build/{path}``
carrying the raw bytes and HTTP Basic credentials. The client neither
retries nor sets a timeout; any non-2xx response is fatal.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import requests

from ..errors import UploadError

logger = logging.getLogger("build_library.storage.blob")


@dataclass(frozen=True)
class BlobStore:
    base_url: str
    username: str
    password: str

    def url_for(self, path: str) -> str:
        return f"{self.base_url.rstrip('/')}/build/{path.lstrip('/')}"

    def put(self, path: str, data: bytes) -> None:
        """Upload ``data`` to ``path``, overwriting any existing blob."""
        url = self.url_for(path)
        logger.info("Uploading %d bytes to %s", len(data), url)
        try:
            response = requests.put(
                url,
                data=data,
                headers={"content-type": "application/octet-stream"},
                auth=(self.username, self.password),
            )
        except requests.RequestException as exc:
            raise UploadError(None, str(exc), url) from exc
        if not 200 <= response.status_code < 300:
            raise UploadError(response.status_code, response.text, url)
        logger.debug("Upload to %s returned %s", url, response.status_code)


__all__ = ["BlobStore"]
