"""Satisfy git dependencies from worktrees already on disk, without network access."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from docrestore.appdata import AppData
from docrestore.git.worktree import worktree_head_prefix, worktree_path


@dataclass(frozen=True, slots=True)
class LocalRestoreHit:
    path: Path
    commit: str


class ImplicitRestoreMap:
    def __init__(self, app_data: AppData) -> None:
        self.app_data = app_data

    def find(self, remote: str, branch: str, locked_commit: str | None = None) -> LocalRestoreHit | None:
        """Return the worktree to reuse for *remote*/*branch*, if one exists.

        A pinned commit only matches its exact ``locked-`` worktree. Otherwise
        the most recently restored worktree of the branch wins.
        """
        repo_path = self.app_data.bare_repo_path(remote)
        if locked_commit:
            path = worktree_path(repo_path, branch, locked_commit, is_locked=True)
            return LocalRestoreHit(path, locked_commit) if path.is_dir() else None

        git_dir = repo_path.parent
        if not git_dir.is_dir():
            return None
        prefix = worktree_head_prefix(branch)
        candidates = [
            entry
            for entry in git_dir.iterdir()
            if entry.is_dir() and entry.name.startswith(prefix) and len(entry.name) > len(prefix)
        ]
        if not candidates:
            return None
        latest = max(candidates, key=lambda entry: (entry.stat().st_mtime, entry.name))
        commit = latest.name.rsplit("-", 1)[-1]
        return LocalRestoreHit(worktree_path(repo_path, branch, commit), commit)
