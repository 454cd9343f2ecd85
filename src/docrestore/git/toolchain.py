"""Thin adapter over the external ``git`` executable.

Only the handful of plumbing operations the restorer needs are exposed. Every
failure surfaces as :class:`GitCommandError`; callers wrap it into the domain
error that names the remote and branches involved.
"""

from __future__ import annotations

import os
import subprocess
from collections.abc import Iterable, Mapping
from pathlib import Path

from docrestore.config import RestoreConfig, ensure_network_allowed
from docrestore.errors import GitCommandError


class GitToolchain:
    def __init__(self, config: RestoreConfig | None = None) -> None:
        self.config = config or RestoreConfig()

    def clone_or_update_bare(
        self,
        repo_path: Path,
        remote: str,
        branches: Iterable[str],
        *,
        depth_one: bool,
    ) -> None:
        """Create the bare object store if needed and fetch *branches* in one call."""
        ensure_network_allowed(config=self.config, operation="clone_or_update_bare")
        refspecs = [f"+refs/heads/{branch}:refs/heads/{branch}" for branch in sorted(set(branches))]
        if not refspecs:
            return

        if not (repo_path / "HEAD").exists():
            repo_path.mkdir(parents=True, exist_ok=True)
            self._run(["init", "--bare", "--quiet", str(repo_path)])

        argv = ["fetch", "--quiet", "--no-tags", "--update-head-ok"]
        if depth_one:
            argv.extend(["--depth", "1"])
        elif (repo_path / "shallow").exists():
            argv.append("--unshallow")
        argv.append(remote)
        argv.extend(refspecs)
        self._run(argv, cwd=repo_path, auth=True)

    def fetch(self, repo_path: Path, remote: str, ref: str) -> None:
        ensure_network_allowed(config=self.config, operation="fetch")
        self._run(
            ["fetch", "--quiet", "--no-tags", remote, f"+refs/heads/{ref}:refs/remotes/origin/{ref}"],
            cwd=repo_path,
            auth=True,
        )

    def list_worktree(self, repo_path: Path) -> list[str]:
        output = self._run(["worktree", "list", "--porcelain"], cwd=repo_path)
        paths: list[str] = []
        for line in output.splitlines():
            if line.startswith("worktree "):
                worktree = Path(line[len("worktree ") :])
                # The bare repository lists itself first.
                if worktree.resolve() != repo_path.resolve():
                    paths.append(normalize_path(worktree))
        return paths

    def add_worktree(self, repo_path: Path, commit: str, destination: Path) -> None:
        self._run(
            ["worktree", "add", "--force", "--detach", str(destination), commit],
            cwd=repo_path,
        )

    def rev_parse(self, repo_path: Path, ref: str) -> str | None:
        completed = self._complete(
            ["rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"],
            cwd=repo_path,
        )
        if completed.returncode != 0:
            return None
        return completed.stdout.strip() or None

    def _run(self, argv: list[str], cwd: Path | None = None, *, auth: bool = False) -> str:
        completed = self._complete(argv, cwd=cwd, auth=auth)
        if completed.returncode != 0:
            raise GitCommandError(
                "Git command failed.",
                hint="Inspect remote/branch inputs and git installation.",
                context={
                    "argv": " ".join(["git", *argv]),
                    "returncode": str(completed.returncode),
                    "stderr": completed.stderr.strip()[:2000],
                },
            )
        return completed.stdout.strip()

    def _complete(
        self,
        argv: list[str],
        cwd: Path | None = None,
        *,
        auth: bool = False,
    ) -> subprocess.CompletedProcess[str]:
        command = ["git", *(self._auth_args() if auth else []), *argv]
        env = dict(os.environ)
        env["GIT_TERMINAL_PROMPT"] = "0"
        try:
            return subprocess.run(
                command,
                cwd=cwd,
                env=env,
                check=False,
                text=True,
                capture_output=True,
                timeout=self.config.git_timeout,
            )
        except subprocess.TimeoutExpired as exc:
            raise GitCommandError(
                "Git command timed out.",
                context={"argv": " ".join(["git", *argv]), "timeout": str(exc.timeout)},
            ) from exc
        except FileNotFoundError as exc:
            raise GitCommandError(
                "Git executable not found.",
                hint="Install git and ensure it is available in PATH.",
            ) from exc

    def _auth_args(self) -> list[str]:
        return _extraheader_args(self.config.git_http_headers)


def _extraheader_args(headers: Mapping[str, str]) -> list[str]:
    args: list[str] = []
    for name, value in headers.items():
        args.extend(["-c", f"http.extraheader={name}: {value}"])
    return args


def normalize_path(path: str | Path) -> str:
    return Path(path).resolve().as_posix()
