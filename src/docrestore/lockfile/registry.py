"""Machine-wide registry of persisted dependency locks.

Download garbage collection must not evict a version that some other docset
on this machine still pins, so every restore pass records its lock here and
the collector scans all of them.
"""

from __future__ import annotations

import hashlib
from pathlib import Path

from docrestore.errors import LockfileError
from docrestore.lockfile.io import read_lock, write_lock
from docrestore.lockfile.model import DependencyLockModel


class LockRegistry:
    def __init__(self, lock_dir: str | Path) -> None:
        self.lock_dir = Path(lock_dir)

    def path_for(self, docset_root: str | Path) -> Path:
        identity = str(Path(docset_root).resolve())
        digest = hashlib.sha256(identity.encode("utf-8")).hexdigest()[:16]
        return self.lock_dir / f"{digest}.json"

    def save(self, docset_root: str | Path, lock: DependencyLockModel) -> Path:
        return write_lock(lock, self.path_for(docset_root))

    def load(self, docset_root: str | Path) -> DependencyLockModel:
        return read_lock(self.path_for(docset_root))

    def load_all(self) -> list[DependencyLockModel]:
        if not self.lock_dir.is_dir():
            return []
        locks: list[DependencyLockModel] = []
        for path in sorted(self.lock_dir.glob("*.json")):
            try:
                locks.append(read_lock(path))
            except LockfileError as exc:
                raise LockfileError(
                    "Registered dependency lock is unreadable.",
                    hint="Delete the corrupt registry entry and restore again.",
                    context={"path": str(path), "reason": exc.args[0]},
                ) from exc
        return locks
