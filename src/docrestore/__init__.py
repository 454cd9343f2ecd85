"""Public package entrypoint for the dependency restore engine."""

from .config import RestoreConfig
from .errors import (
    CommittishNotFoundError,
    DownloadFailedError,
    GitCloneFailedError,
    LockfileError,
    PolicyError,
    RestoreError,
    RestoreFailures,
    ValidationError,
)
from .git import DependencySpec, GitFlags, GitRestorer, Repository
from .lockfile import DependencyLockModel, LockRegistry, read_lock, write_lock
from .observability import RestoreLog
from .restore import Restorer, dependency_specs, restore_dependencies
from .url import UrlRestorer

__all__ = [
    "CommittishNotFoundError",
    "DependencyLockModel",
    "DependencySpec",
    "DownloadFailedError",
    "GitCloneFailedError",
    "GitFlags",
    "GitRestorer",
    "LockRegistry",
    "LockfileError",
    "PolicyError",
    "Repository",
    "RestoreConfig",
    "RestoreError",
    "RestoreFailures",
    "RestoreLog",
    "Restorer",
    "UrlRestorer",
    "ValidationError",
    "dependency_specs",
    "read_lock",
    "restore_dependencies",
    "write_lock",
]
