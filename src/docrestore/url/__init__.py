"""Download restore: content-addressed cache and garbage collection."""

from .download import DownloadClient, DownloadError
from .restore import UrlRestorer, sha1_file

__all__ = ["DownloadClient", "DownloadError", "UrlRestorer", "sha1_file"]
