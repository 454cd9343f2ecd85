"""Deterministic worktree materialization on top of a shared bare repository."""

from __future__ import annotations

import hashlib
import threading
from collections.abc import Iterable
from pathlib import Path
from urllib.parse import quote

from docrestore.errors import GitCloneFailedError, GitCommandError
from docrestore.git.toolchain import GitToolchain, normalize_path
from docrestore.observability import RestoreLog

LOCKED_PREFIX = "locked-"


def md5_short(value: str) -> str:
    return hashlib.md5(value.encode("utf-8"), usedforsecurity=False).hexdigest()[:8]


def worktree_head_prefix(branch: str, is_locked: bool = False) -> str:
    assert branch, "branch must not be empty"
    locked = LOCKED_PREFIX if is_locked else ""
    return f"{locked}{quote(branch, safe='')}-{md5_short(branch)}-"


def worktree_path(repo_path: Path, branch: str, commit: str, is_locked: bool = False) -> Path:
    """Worktrees live beside the bare repository, one directory per branch/commit."""
    return Path(normalize_path(repo_path.parent / f"{worktree_head_prefix(branch, is_locked)}{commit}"))


class WorktreeManager:
    """Ensures one checked-out worktree per (branch, commit) of a bare repository.

    Registered worktrees are listed once, at construction, and tracked in a
    thread-safe set afterwards; concurrent requests for the same path add the
    worktree once and reuse it.
    """

    def __init__(
        self,
        repo_path: Path,
        *,
        remote: str,
        branches: Iterable[str],
        toolchain: GitToolchain,
        log: RestoreLog | None = None,
    ) -> None:
        self.repo_path = repo_path
        self.remote = remote
        self.branches = tuple(branches)
        self.toolchain = toolchain
        self.log = log or RestoreLog()
        self._lock = threading.Lock()
        self._pending: dict[str, threading.Event] = {}
        try:
            self._known = set(toolchain.list_worktree(repo_path))
        except GitCommandError as exc:
            raise GitCloneFailedError(remote, self.branches, reason=str(exc)) from exc

    def ensure_worktree(self, branch: str, commit: str, is_locked: bool) -> Path:
        path = worktree_path(self.repo_path, branch, commit, is_locked)
        key = path.as_posix()

        with self._lock:
            # Git keeps listing a worktree whose directory was cleaned up.
            if key in self._known and path.exists():
                return path
            waiter = self._pending.get(key)
            if waiter is None:
                self._pending[key] = threading.Event()

        if waiter is not None:
            # Another branch is adding the same worktree; reuse its result.
            waiter.wait()
            with self._lock:
                if key in self._known and path.exists():
                    return path
            raise GitCloneFailedError(self.remote, self.branches, reason=f"worktree {key} failed")

        try:
            if not path.exists():
                self.toolchain.add_worktree(self.repo_path, commit, path)
                self.log.log(
                    operation="worktree_add",
                    remote=self.remote,
                    branch=branch,
                    message=f"Added worktree at {commit}.",
                    extra={"path": key},
                )
            with self._lock:
                self._known.add(key)
        except GitCommandError as exc:
            raise GitCloneFailedError(self.remote, self.branches, reason=str(exc)) from exc
        finally:
            with self._lock:
                self._pending.pop(key).set()
        return path
