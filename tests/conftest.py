"""Shared test fixtures."""

from __future__ import annotations

import subprocess
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from docrestore.config import RestoreConfig
from docrestore.git.toolchain import GitToolchain


@dataclass(slots=True)
class GitRemote:
    path: Path
    commits: dict[str, str] = field(default_factory=dict)

    @property
    def url(self) -> str:
        return self.path.as_uri()

    def commit(self, branch: str, filename: str, content: str) -> str:
        _run_git(["checkout", "--quiet", branch], cwd=self.path)
        (self.path / filename).write_text(content, encoding="utf-8")
        _run_git(["add", filename], cwd=self.path)
        _run_git(["commit", "--quiet", "-m", f"update {filename}"], cwd=self.path)
        self.commits[branch] = _run_git(["rev-parse", "HEAD"], cwd=self.path)
        return self.commits[branch]


@pytest.fixture
def config(tmp_path: Path) -> RestoreConfig:
    return RestoreConfig(app_data_dir=tmp_path / "appdata", max_workers=4)


@pytest.fixture
def git_remote(tmp_path: Path) -> Callable[..., GitRemote]:
    """Create a local repository with one commit per requested branch."""

    def create(name: str = "remote", branches: tuple[str, ...] = ("main",)) -> GitRemote:
        path = tmp_path / "remotes" / name
        path.mkdir(parents=True, exist_ok=True)
        _run_git(["init", "--quiet"], cwd=path)
        _run_git(["checkout", "--quiet", "-b", branches[0]], cwd=path)
        _run_git(["config", "user.email", "docs@example.com"], cwd=path)
        _run_git(["config", "user.name", "Docs Test"], cwd=path)
        (path / "README.md").write_text(f"{name}\n", encoding="utf-8")
        _run_git(["add", "README.md"], cwd=path)
        _run_git(["commit", "--quiet", "-m", "initial"], cwd=path)

        remote = GitRemote(path)
        remote.commits[branches[0]] = _run_git(["rev-parse", "HEAD"], cwd=path)
        for branch in branches[1:]:
            _run_git(["checkout", "--quiet", "-b", branch, branches[0]], cwd=path)
            remote.commit(branch, f"{branch}.md", f"{branch}\n")
        _run_git(["checkout", "--quiet", branches[0]], cwd=path)
        return remote

    return create


class RecordingToolchain(GitToolchain):
    """Real git toolchain that records every operation it performs."""

    def __init__(self, config: RestoreConfig) -> None:
        super().__init__(config)
        self.calls: list[tuple[str, ...]] = []

    def clone_or_update_bare(self, repo_path, remote, branches, *, depth_one):  # type: ignore[no-untyped-def]
        self.calls.append(("clone_or_update_bare", remote, *sorted(branches), str(depth_one)))
        super().clone_or_update_bare(repo_path, remote, branches, depth_one=depth_one)

    def fetch(self, repo_path, remote, ref):  # type: ignore[no-untyped-def]
        self.calls.append(("fetch", remote, ref))
        super().fetch(repo_path, remote, ref)

    def list_worktree(self, repo_path):  # type: ignore[no-untyped-def]
        self.calls.append(("list_worktree",))
        return super().list_worktree(repo_path)

    def add_worktree(self, repo_path, commit, destination):  # type: ignore[no-untyped-def]
        self.calls.append(("add_worktree", commit))
        super().add_worktree(repo_path, commit, destination)

    def rev_parse(self, repo_path, ref):  # type: ignore[no-untyped-def]
        self.calls.append(("rev_parse", ref))
        return super().rev_parse(repo_path, ref)


class FakeToolchain(GitToolchain):
    """Toolchain that never runs git; worktrees are plain directories."""

    def __init__(self, config: RestoreConfig, commits: dict[str, str | None] | None = None) -> None:
        super().__init__(config)
        self.commits = commits or {}
        self.calls: list[tuple[str, ...]] = []
        self.depth_one: list[bool] = []

    def clone_or_update_bare(self, repo_path, remote, branches, *, depth_one):  # type: ignore[no-untyped-def]
        self.calls.append(("clone_or_update_bare", remote, *sorted(branches)))
        self.depth_one.append(depth_one)
        repo_path.mkdir(parents=True, exist_ok=True)

    def fetch(self, repo_path, remote, ref):  # type: ignore[no-untyped-def]
        self.calls.append(("fetch", remote, ref))

    def list_worktree(self, repo_path):  # type: ignore[no-untyped-def]
        self.calls.append(("list_worktree",))
        return []

    def add_worktree(self, repo_path, commit, destination):  # type: ignore[no-untyped-def]
        self.calls.append(("add_worktree", commit))
        destination.mkdir(parents=True)

    def rev_parse(self, repo_path, ref):  # type: ignore[no-untyped-def]
        self.calls.append(("rev_parse", ref))
        if ref in self.commits:
            return self.commits[ref]
        return ref if len(ref) == 40 else "a" * 40


def _run_git(argv: list[str], *, cwd: Path) -> str:
    completed = subprocess.run(
        ["git", *argv],
        cwd=cwd,
        check=False,
        text=True,
        capture_output=True,
    )
    if completed.returncode != 0:
        raise RuntimeError(f"git {' '.join(argv)} failed: {completed.stderr.strip()}")
    return completed.stdout.strip()


run_git = _run_git
