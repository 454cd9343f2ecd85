"""Dependency lock model, JSON serialization and machine-wide registry."""

from .io import lock_from_payload, lock_to_payload, parse_lock, read_lock, serialize_lock, write_lock
from .model import (
    EMPTY_LOCK,
    DependencyLockModel,
    git_lock_key,
    merge_git_locks,
    split_git_lock_key,
)
from .registry import LockRegistry

__all__ = [
    "EMPTY_LOCK",
    "DependencyLockModel",
    "LockRegistry",
    "git_lock_key",
    "lock_from_payload",
    "lock_to_payload",
    "merge_git_locks",
    "parse_lock",
    "read_lock",
    "serialize_lock",
    "split_git_lock_key",
    "write_lock",
]
