"""Authenticated HTTP GET streamed to a local file."""

from __future__ import annotations

import shutil
from collections.abc import Mapping
from pathlib import Path
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from docrestore.config import RestoreConfig, ensure_network_allowed

_CHUNK_SIZE = 1024 * 1024


class DownloadError(Exception):
    """Transport-level failure; the URL restorer wraps it with the address."""


class DownloadClient:
    def __init__(self, config: RestoreConfig | None = None) -> None:
        self.config = config or RestoreConfig()

    def download(self, address: str, destination: Path) -> None:
        ensure_network_allowed(config=self.config, operation="download")
        request = Request(address, headers=dict(self._headers()), method="GET")
        try:
            with urlopen(request, timeout=self.config.http_timeout) as response:  # noqa: S310
                status = getattr(response, "status", None)
                if status is not None and not 200 <= status < 300:
                    raise DownloadError(f"Response status code does not indicate success: {status}.")
                with open(destination, "wb") as file:
                    shutil.copyfileobj(response, file, _CHUNK_SIZE)
        except HTTPError as exc:
            raise DownloadError(
                f"Response status code does not indicate success: {exc.code} ({exc.reason})."
            ) from exc
        except URLError as exc:
            raise DownloadError(str(exc.reason)) from exc
        except (OSError, ValueError) as exc:
            raise DownloadError(str(exc)) from exc

    def _headers(self) -> Mapping[str, str]:
        return self.config.http_headers
