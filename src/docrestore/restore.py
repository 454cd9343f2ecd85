"""One restore pass over a docset's git and download dependencies."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from docrestore.appdata import AppData
from docrestore.concurrency import run_all
from docrestore.config import RestoreConfig
from docrestore.errors import DownloadFailedError, RestoreFailures
from docrestore.git.restore import (
    DependencySpec,
    GitFlags,
    GitRestorer,
    GitRestoreResult,
    Repository,
    RestoreChildCallback,
    split_git_href,
)
from docrestore.git.toolchain import GitToolchain
from docrestore.lockfile.model import EMPTY_LOCK, DependencyLockModel
from docrestore.lockfile.registry import LockRegistry
from docrestore.mutex import MutexCoordinator
from docrestore.observability import RestoreLog
from docrestore.url.download import DownloadClient
from docrestore.url.restore import UrlRestorer


def dependency_specs(
    hrefs: Iterable[str],
    flags: GitFlags = GitFlags.DEPTH_ONE,
) -> list[DependencySpec]:
    """Configured dependencies (``remote#branch``) default to shallow fetches."""
    specs: list[DependencySpec] = []
    for href in hrefs:
        remote, branch = split_git_href(href)
        specs.append(DependencySpec(remote, branch, flags))
    return specs


class Restorer:
    def __init__(
        self,
        config: RestoreConfig | None = None,
        *,
        toolchain: GitToolchain | None = None,
        client: DownloadClient | None = None,
        log: RestoreLog | None = None,
    ) -> None:
        self.config = config or RestoreConfig()
        self.app_data = AppData(self.config.app_data_dir)
        self.log = log or RestoreLog()
        self.mutex = MutexCoordinator(self.app_data.mutex_dir)
        self.registry = LockRegistry(self.app_data.lock_dir)
        self.git = GitRestorer(
            config=self.config,
            app_data=self.app_data,
            toolchain=toolchain,
            mutex=self.mutex,
            log=self.log,
        )
        self.url = UrlRestorer(
            config=self.config,
            app_data=self.app_data,
            client=client,
            mutex=self.mutex,
            registry=self.registry,
            log=self.log,
        )

    def restore(
        self,
        specs: Sequence[DependencySpec],
        addresses: Sequence[str],
        restore_child: RestoreChildCallback,
        *,
        existing_lock: DependencyLockModel | None = None,
        implicit: bool = False,
        root_repository: Repository | None = None,
        docset_root: str | Path | None = None,
    ) -> DependencyLockModel:
        """Restore everything and return the resulting lock.

        Git remotes and download addresses are restored concurrently. Every
        failure is collected and raised together as :class:`RestoreFailures`
        once all units finished. When *docset_root* is given the lock is
        registered machine-wide and unreferenced downloads are collected.
        """
        lock = existing_lock or EMPTY_LOCK
        unique_addresses = list(dict.fromkeys(addresses))

        with ThreadPoolExecutor(max_workers=1) as executor:
            git_future = executor.submit(
                self.git.restore_collecting,
                specs,
                lock,
                implicit,
                restore_child,
                root_repository=root_repository,
            )
            downloads = run_all(
                unique_addresses,
                self.url.restore,
                max_workers=self.config.max_workers,
            )
            git_result: GitRestoreResult = git_future.result()

        errors: list[Exception] = [*git_result.errors, *downloads.errors]
        if errors:
            raise RestoreFailures(errors)

        result = DependencyLockModel(git=git_result.git, downloads=dict(downloads.results))
        if docset_root is not None:
            self.registry.save(docset_root, result)
            # A collector in another process may have run before the lock was registered.
            evicted = [
                DownloadFailedError(address, "cached version was collected before the lock was registered")
                for address, version in result.downloads.items()
                if not self.app_data.url_version_path(address, version).is_file()
            ]
            if evicted:
                raise RestoreFailures(evicted)
            collected = run_all(
                unique_addresses,
                self.url.gc,
                max_workers=self.config.max_workers,
            )
            if collected.errors:
                raise RestoreFailures(collected.errors)
        return result


def restore_dependencies(
    specs: Sequence[DependencySpec],
    addresses: Sequence[str],
    restore_child: RestoreChildCallback,
    *,
    existing_lock: DependencyLockModel | None = None,
    implicit: bool = False,
    root_repository: Repository | None = None,
    docset_root: str | Path | None = None,
    config: RestoreConfig | None = None,
) -> DependencyLockModel:
    return Restorer(config).restore(
        specs,
        addresses,
        restore_child,
        existing_lock=existing_lock,
        implicit=implicit,
        root_repository=root_repository,
        docset_root=docset_root,
    )
