"""Content-addressed download cache with lock-aware garbage collection."""

from __future__ import annotations

import hashlib
import uuid
from pathlib import Path

from docrestore.appdata import AppData
from docrestore.config import RestoreConfig
from docrestore.errors import DownloadFailedError
from docrestore.lockfile.registry import LockRegistry
from docrestore.mutex import MutexCoordinator
from docrestore.observability import RestoreLog
from docrestore.url.download import DownloadClient, DownloadError

_HASH_CHUNK_SIZE = 1024 * 1024


def sha1_file(path: Path) -> str:
    digest = hashlib.sha1(usedforsecurity=False)
    with open(path, "rb") as file:
        for chunk in iter(lambda: file.read(_HASH_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


class UrlRestorer:
    def __init__(
        self,
        *,
        config: RestoreConfig | None = None,
        app_data: AppData | None = None,
        client: DownloadClient | None = None,
        mutex: MutexCoordinator | None = None,
        registry: LockRegistry | None = None,
        log: RestoreLog | None = None,
    ) -> None:
        self.config = config or RestoreConfig()
        self.app_data = app_data or AppData(self.config.app_data_dir)
        self.client = client or DownloadClient(self.config)
        self.mutex = mutex or MutexCoordinator(self.app_data.mutex_dir)
        self.registry = registry or LockRegistry(self.app_data.lock_dir)
        self.log = log or RestoreLog()

    def mutex_name(self, address: str) -> str:
        root = self.app_data.url_restore_root(address)
        return root.relative_to(self.app_data.url_restore_dir).as_posix()

    def restore(self, address: str) -> str:
        """Download *address* into the cache and return its content hash."""
        temp_file = self._download_to_temp_file(address)
        try:
            version = sha1_file(temp_file)
        except OSError:
            temp_file.unlink(missing_ok=True)
            raise
        assert version, "content hash must not be empty"

        restore_path = self.app_data.url_version_path(address, version)

        def finalize() -> bool:
            if restore_path.exists():
                temp_file.unlink(missing_ok=True)
                return False
            restore_path.parent.mkdir(parents=True, exist_ok=True)
            temp_file.replace(restore_path)
            return True

        stored = self.mutex.run(self.mutex_name(address), finalize)
        self.log.log(
            operation="download",
            address=address,
            message="Stored new version." if stored else "Version already cached.",
            extra={"version": version},
        )
        return version

    def gc(self, address: str) -> list[Path]:
        """Delete cached versions of *address* no registered lock references.

        Nothing happens until the number of stored versions exceeds
        ``config.max_url_versions``.
        """
        restore_dir = self.app_data.url_restore_root(address)
        if not restore_dir.is_dir():
            return []

        def collect() -> list[Path]:
            existing = [
                path
                for path in restore_dir.iterdir()
                if path.is_file() and not path.name.startswith(".")
            ]
            if len(existing) <= self.config.max_url_versions:
                return []
            in_use = self._in_use_version_paths(restore_dir)
            deleted: list[Path] = []
            for path in sorted(existing):
                if path not in in_use:
                    path.unlink(missing_ok=True)
                    deleted.append(path)
            return deleted

        deleted = self.mutex.run(self.mutex_name(address), collect)
        if deleted:
            self.log.log(
                operation="gc",
                address=address,
                message=f"Deleted {len(deleted)} unreferenced version(s).",
                extra={"versions": [path.name for path in deleted]},
            )
        return deleted

    def _in_use_version_paths(self, restore_dir: Path) -> set[Path]:
        in_use: set[Path] = set()
        for lock in self.registry.load_all():
            for address, version in lock.iter_downloads():
                if self.app_data.url_restore_root(address) == restore_dir:
                    in_use.add(restore_dir / version)
        return in_use

    def _download_to_temp_file(self, address: str) -> Path:
        restore_dir = self.app_data.url_restore_root(address)
        restore_dir.mkdir(parents=True, exist_ok=True)
        temp_file = restore_dir / f".{uuid.uuid4().hex}"
        try:
            self.client.download(address, temp_file)
        except DownloadError as exc:
            temp_file.unlink(missing_ok=True)
            raise DownloadFailedError(address, str(exc)) from exc
        return temp_file
