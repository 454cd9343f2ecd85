"""Dependency lock typed model."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field


def git_lock_key(remote: str, branch: str) -> str:
    return f"{remote}#{branch}"


def split_git_lock_key(key: str) -> tuple[str, str]:
    remote, _, branch = key.rpartition("#")
    return remote, branch


@dataclass(frozen=True, slots=True)
class DependencyLockModel:
    """Pinned versions of one docset's dependencies.

    ``git`` maps ``"remote#branch"`` to the nested lock of that child with the
    child's resolved ``commit`` filled in; ``downloads`` maps a URL address to
    the content hash it resolved to. The top-level lock has no ``commit``.
    """

    git: Mapping[str, DependencyLockModel] = field(default_factory=dict)
    downloads: Mapping[str, str] = field(default_factory=dict)
    commit: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "git", dict(self.git))
        object.__setattr__(self, "downloads", dict(self.downloads))

    def get_git_lock(self, remote: str, branch: str) -> DependencyLockModel | None:
        return self.git.get(git_lock_key(remote, branch))

    def contains_git_lock(self, remote: str) -> bool:
        prefix = f"{remote}#"
        return any(key.startswith(prefix) for key in self.git)

    def iter_downloads(self) -> Iterator[tuple[str, str]]:
        """Yield every ``(address, version)`` pair, nested locks included."""
        yield from self.downloads.items()
        for child in self.git.values():
            yield from child.iter_downloads()


EMPTY_LOCK = DependencyLockModel()


def merge_git_locks(
    entries: Iterable[tuple[str, str, str, DependencyLockModel]],
) -> dict[str, DependencyLockModel]:
    """Fold ``(remote, branch, commit, child_lock)`` results into one git map.

    A remote/branch restored twice keeps the last entry.
    """
    merged: dict[str, DependencyLockModel] = {}
    for remote, branch, commit, child_lock in entries:
        merged[git_lock_key(remote, branch)] = DependencyLockModel(
            git=child_lock.git,
            downloads=child_lock.downloads,
            commit=commit,
        )
    return merged
