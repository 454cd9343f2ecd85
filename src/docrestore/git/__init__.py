"""Git restore: bare object stores, worktrees and recursive restoration."""

from .implicit import ImplicitRestoreMap, LocalRestoreHit
from .restore import (
    DependencySpec,
    GitFlags,
    GitRestorer,
    Repository,
    RestoreChild,
    RestoreChildCallback,
    contribution_branch,
    group_by_remote,
    split_git_href,
)
from .toolchain import GitToolchain
from .worktree import WorktreeManager, worktree_head_prefix, worktree_path

__all__ = [
    "DependencySpec",
    "GitFlags",
    "GitRestorer",
    "GitToolchain",
    "ImplicitRestoreMap",
    "LocalRestoreHit",
    "Repository",
    "RestoreChild",
    "RestoreChildCallback",
    "WorktreeManager",
    "contribution_branch",
    "group_by_remote",
    "split_git_href",
    "worktree_head_prefix",
    "worktree_path",
]
