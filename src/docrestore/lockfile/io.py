"""Dependency lock parser and serializer."""

from __future__ import annotations

import json
import uuid
from pathlib import Path
from typing import Any

from docrestore.errors import LockfileError
from docrestore.lockfile.model import EMPTY_LOCK, DependencyLockModel


def lock_to_payload(lock: DependencyLockModel) -> dict[str, Any]:
    payload: dict[str, Any] = {}
    if lock.commit is not None:
        payload["commit"] = lock.commit
    payload["git"] = {key: lock_to_payload(child) for key, child in lock.git.items()}
    payload["downloads"] = dict(lock.downloads)
    return payload


def serialize_lock(lock: DependencyLockModel) -> str:
    return json.dumps(lock_to_payload(lock), indent=2, sort_keys=True) + "\n"


def parse_lock(raw: str) -> DependencyLockModel:
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise LockfileError("Invalid dependency lock JSON.", hint=str(exc)) from exc
    return lock_from_payload(payload)


def lock_from_payload(payload: Any, *, key: str = "") -> DependencyLockModel:
    if not isinstance(payload, dict):
        raise LockfileError("Invalid dependency lock payload type.", context={"key": key})

    commit = payload.get("commit")
    if commit is not None and (not isinstance(commit, str) or not commit):
        raise LockfileError("Invalid dependency lock `commit` value.", context={"key": key})

    git_raw = payload.get("git", {})
    if not isinstance(git_raw, dict):
        raise LockfileError("Invalid dependency lock `git` value.", context={"key": key})
    git: dict[str, DependencyLockModel] = {}
    for child_key, child in git_raw.items():
        if not isinstance(child_key, str) or "#" not in child_key:
            raise LockfileError(
                "Invalid dependency lock git key.",
                hint="Git lock keys have the form `remote#branch`.",
                context={"key": str(child_key)},
            )
        git[child_key] = lock_from_payload(child, key=child_key)

    # `url` is the older spelling of `downloads`.
    downloads_raw = payload.get("downloads", payload.get("url", {}))
    if not isinstance(downloads_raw, dict) or not all(
        isinstance(address, str) and isinstance(version, str) and version
        for address, version in downloads_raw.items()
    ):
        raise LockfileError("Invalid dependency lock `downloads` value.", context={"key": key})

    return DependencyLockModel(git=git, downloads=downloads_raw, commit=commit)


def read_lock(path: str | Path) -> DependencyLockModel:
    """Load a lock file; a missing file means nothing is pinned."""
    lock_path = Path(path)
    try:
        raw = lock_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return EMPTY_LOCK
    return parse_lock(raw)


def write_lock(lock: DependencyLockModel, path: str | Path) -> Path:
    lock_path = Path(path)
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = lock_path.with_name(f".{lock_path.name}.{uuid.uuid4().hex}.tmp")
    try:
        temp_path.write_text(serialize_lock(lock), encoding="utf-8")
        temp_path.replace(lock_path)
    except OSError:
        temp_path.unlink(missing_ok=True)
        raise
    return lock_path
