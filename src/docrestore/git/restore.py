"""Restore git dependencies into shared bare repositories and per-commit worktrees."""

from __future__ import annotations

import os
import time
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Flag
from pathlib import Path
from typing import Protocol

from docrestore.appdata import AppData
from docrestore.concurrency import run_all
from docrestore.config import RestoreConfig
from docrestore.errors import (
    CommittishNotFoundError,
    GitCloneFailedError,
    GitCommandError,
    RestoreError,
    RestoreFailures,
    ValidationError,
)
from docrestore.git.implicit import ImplicitRestoreMap
from docrestore.git.toolchain import GitToolchain
from docrestore.git.worktree import WorktreeManager
from docrestore.lockfile.model import EMPTY_LOCK, DependencyLockModel, merge_git_locks
from docrestore.mutex import MutexCoordinator
from docrestore.observability import RestoreLog

DEFAULT_BRANCH = "master"
CONTRIBUTION_SUFFIX = "-sxs"


class GitFlags(Flag):
    NONE = 0
    NO_CHECKOUT = 1 << 1
    DEPTH_ONE = 1 << 2


@dataclass(frozen=True, slots=True)
class DependencySpec:
    remote: str
    branch: str
    flags: GitFlags = GitFlags.NONE


@dataclass(frozen=True, slots=True)
class Repository:
    """The docset's own checkout, used to fetch its contribution branch."""

    path: Path
    remote: str
    branch: str


@dataclass(frozen=True, slots=True)
class RestoreChild:
    path: Path
    remote: str
    branch: str
    commit: str
    dependency_lock: DependencyLockModel | None = None

    def __post_init__(self) -> None:
        assert str(self.path), "restore child path must not be empty"
        assert self.remote, "restore child remote must not be empty"
        assert self.branch, "restore child branch must not be empty"
        assert self.commit, "restore child commit must not be empty"

    @property
    def to_restore(self) -> tuple[Path, DependencyLockModel | None]:
        return self.path, self.dependency_lock

    @property
    def restored(self) -> tuple[str, str, Path, str]:
        return self.remote, self.branch, self.path, self.commit


class RestoreChildCallback(Protocol):
    def __call__(
        self, path: str, dependency_lock: DependencyLockModel | None
    ) -> DependencyLockModel:
        """Restore the dependencies declared inside *path* and return their lock."""


def split_git_href(href: str) -> tuple[str, str]:
    """Split ``https://host/repo#branch`` into remote and branch."""
    remote, _, branch = href.strip().partition("#")
    if not remote:
        raise ValidationError(
            "Git dependency has no remote.",
            hint="Declare git dependencies as `remote#branch`.",
            context={"href": href},
        )
    return remote, branch or DEFAULT_BRANCH


def contribution_branch(branch: str) -> str | None:
    if branch.endswith(CONTRIBUTION_SUFFIX) and len(branch) > len(CONTRIBUTION_SUFFIX):
        return branch[: -len(CONTRIBUTION_SUFFIX)]
    return None


@dataclass(frozen=True, slots=True)
class RemoteGroup:
    remote: str
    branches: dict[str, GitFlags]

    def depth_one(self, existing_lock: DependencyLockModel) -> bool:
        """Shallow only when every branch asks for it and nothing is pinned."""
        return all(GitFlags.DEPTH_ONE in flags for flags in self.branches.values()) and not (
            existing_lock.contains_git_lock(self.remote)
        )

    def no_checkout(self, branch: str) -> bool:
        return GitFlags.NO_CHECKOUT in self.branches[branch]


def group_by_remote(specs: Iterable[DependencySpec]) -> list[RemoteGroup]:
    """Group specs by remote, keeping first-seen order.

    A flag holds for a branch only if every spec of that branch carries it.
    """
    groups: dict[str, dict[str, GitFlags]] = {}
    for spec in specs:
        branches = groups.setdefault(spec.remote, {})
        if spec.branch in branches:
            branches[spec.branch] &= spec.flags
        else:
            branches[spec.branch] = spec.flags
    return [RemoteGroup(remote, branches) for remote, branches in groups.items()]


@dataclass(slots=True)
class GitRestoreResult:
    git: dict[str, DependencyLockModel]
    errors: list[Exception]


class GitRestorer:
    def __init__(
        self,
        *,
        config: RestoreConfig | None = None,
        app_data: AppData | None = None,
        toolchain: GitToolchain | None = None,
        mutex: MutexCoordinator | None = None,
        log: RestoreLog | None = None,
    ) -> None:
        self.config = config or RestoreConfig()
        self.app_data = app_data or AppData(self.config.app_data_dir)
        self.toolchain = toolchain or GitToolchain(self.config)
        self.mutex = mutex or MutexCoordinator(self.app_data.mutex_dir)
        self.log = log or RestoreLog()
        self.restore_map = ImplicitRestoreMap(self.app_data)

    def restore(
        self,
        specs: Sequence[DependencySpec],
        existing_lock: DependencyLockModel | None,
        implicit: bool,
        restore_child: RestoreChildCallback,
        *,
        root_repository: Repository | None = None,
    ) -> dict[str, DependencyLockModel]:
        result = self.restore_collecting(
            specs,
            existing_lock,
            implicit,
            restore_child,
            root_repository=root_repository,
        )
        if result.errors:
            raise RestoreFailures(result.errors)
        return result.git

    def restore_collecting(
        self,
        specs: Sequence[DependencySpec],
        existing_lock: DependencyLockModel | None,
        implicit: bool,
        restore_child: RestoreChildCallback,
        *,
        root_repository: Repository | None = None,
    ) -> GitRestoreResult:
        """Restore every remote, collecting failures instead of stopping at the first."""
        lock = existing_lock or EMPTY_LOCK
        groups = group_by_remote(specs)

        first_level = run_all(
            groups,
            lambda group: self._restore_remote(group, lock, implicit),
            max_workers=self.config.max_workers,
        )
        errors: list[Exception] = first_level.errors
        restored = [child for _, group_children in first_level.results for child in group_children]

        now = time.time()
        touched = run_all(
            restored,
            lambda child: self._touch(child, now),
            max_workers=self.config.max_workers,
        )
        errors.extend(touched.errors)
        children = [child for child, _ in touched.results]

        if root_repository is not None:
            self._fetch_contribution_branch(root_repository)

        nested = run_all(
            children,
            lambda child: restore_child(child.path.as_posix(), child.dependency_lock),
            max_workers=self.config.max_workers,
        )
        errors.extend(nested.errors)
        git = merge_git_locks(
            (child.remote, child.branch, child.commit, child_lock)
            for child, child_lock in nested.results
        )
        return GitRestoreResult(git=git, errors=errors)

    def _touch(self, child: RestoreChild, now: float) -> None:
        try:
            os.utime(child.path, (now, now))
        except OSError as exc:
            raise GitCloneFailedError(
                child.remote, (child.branch,), reason=f"worktree {child.path.as_posix()} is missing: {exc}"
            ) from exc

    def _restore_remote(
        self,
        group: RemoteGroup,
        existing_lock: DependencyLockModel,
        implicit: bool,
    ) -> list[RestoreChild]:
        remote = group.remote
        children: list[RestoreChild] = []
        branches_to_fetch = list(group.branches)

        if implicit:
            for branch in list(branches_to_fetch):
                if group.no_checkout(branch):
                    continue
                locked = existing_lock.get_git_lock(remote, branch)
                hit = self.restore_map.find(remote, branch, locked.commit if locked else None)
                if hit is None:
                    continue
                branches_to_fetch.remove(branch)
                children.append(RestoreChild(hit.path, remote, branch, hit.commit, locked))
                self.log.log(
                    operation="implicit_restore",
                    remote=remote,
                    branch=branch,
                    message="Reused existing worktree.",
                    extra={"path": hit.path.as_posix(), "commit": hit.commit},
                )

        if not branches_to_fetch:
            return children

        repo_path = self.app_data.bare_repo_path(remote)
        depth_one = group.depth_one(existing_lock)

        def fetch_and_checkout() -> list[RestoreChild]:
            try:
                self.toolchain.clone_or_update_bare(
                    repo_path, remote, branches_to_fetch, depth_one=depth_one
                )
            except GitCommandError as exc:
                raise GitCloneFailedError(remote, group.branches, reason=str(exc)) from exc
            self.log.log(
                operation="fetch",
                remote=remote,
                message=f"Fetched {len(branches_to_fetch)} branch(es).",
                extra={"branches": sorted(branches_to_fetch), "depth_one": depth_one},
            )
            return self._add_worktrees(group, repo_path, branches_to_fetch, existing_lock)

        children.extend(self.mutex.run(repo_path.as_posix(), fetch_and_checkout))
        return children

    def _add_worktrees(
        self,
        group: RemoteGroup,
        repo_path: Path,
        branches: Sequence[str],
        existing_lock: DependencyLockModel,
    ) -> list[RestoreChild]:
        remote = group.remote
        manager = WorktreeManager(
            repo_path,
            remote=remote,
            branches=group.branches,
            toolchain=self.toolchain,
            log=self.log,
        )

        def checkout(branch: str) -> RestoreChild | None:
            if group.no_checkout(branch):
                return None

            head_commit = self.toolchain.rev_parse(repo_path, branch)
            if not head_commit:
                raise CommittishNotFoundError(remote, branch)

            locked = existing_lock.get_git_lock(remote, branch)
            is_locked = bool(locked and locked.commit)
            if locked and locked.commit:
                if not self.toolchain.rev_parse(repo_path, locked.commit):
                    raise CommittishNotFoundError(remote, f"{branch}@{locked.commit}")
                head_commit = locked.commit

            path = manager.ensure_worktree(branch, head_commit, is_locked)
            return RestoreChild(path, remote, branch, head_commit, locked)

        outcome = run_all(branches, checkout, max_workers=self.config.max_workers)
        if outcome.errors:
            if len(outcome.errors) == 1:
                raise outcome.errors[0]
            raise RestoreFailures(outcome.errors)
        return [child for _, child in outcome.results if child is not None]

    def _fetch_contribution_branch(self, repository: Repository) -> None:
        branch = contribution_branch(repository.branch)
        if branch is None or branch == repository.branch:
            return
        try:
            self.toolchain.fetch(repository.path, repository.remote, branch)
        except RestoreError as exc:
            self.log.log(
                operation="fetch_contribution_branch",
                remote=repository.remote,
                branch=branch,
                level="warning",
                message="Contribution branch fetch failed; authorship metadata may be incomplete.",
                extra={"error": exc.to_dict()},
            )
            return
        self.log.log(
            operation="fetch_contribution_branch",
            remote=repository.remote,
            branch=branch,
            message="Fetched contribution branch.",
        )
