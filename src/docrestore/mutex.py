"""Named critical sections shared by threads and separate processes.

A mutex name is the identity of a shared cache root (a remote address or the
relative path of a download directory). The name is hashed into a lock file
under the app-data ``mutex/`` directory, so every process on the machine that
restores into the same cache serializes on the same file.
"""

from __future__ import annotations

import hashlib
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TypeVar

from filelock import FileLock

T = TypeVar("T")


def mutex_key(name: str) -> str:
    return hashlib.sha256(name.encode("utf-8")).hexdigest()


class MutexCoordinator:
    def __init__(self, lock_dir: str | Path, *, timeout: float = -1) -> None:
        self.lock_dir = Path(lock_dir)
        self.timeout = timeout

    def lock_path(self, name: str) -> Path:
        return self.lock_dir / f"{mutex_key(name)}.lock"

    @contextmanager
    def hold(self, name: str) -> Iterator[None]:
        self.lock_dir.mkdir(parents=True, exist_ok=True)
        # One FileLock per acquisition: each holds its own descriptor, so
        # threads of this process exclude each other as well.
        lock = FileLock(str(self.lock_path(name)), timeout=self.timeout, thread_local=False)
        with lock:
            yield

    def run(self, name: str, action: Callable[[], T]) -> T:
        with self.hold(name):
            return action()
