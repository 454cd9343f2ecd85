"""On-disk layout of the shared restore cache.

Every remote gets one directory under ``git/`` holding its bare repository
(``.git``) with worktrees as siblings. Every download address gets one
directory under ``downloads/`` holding content-hash named files. Directory
names are a readable slug of the address plus a short hash, so distinct
addresses never collide even when their slugs do.
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlparse

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")
_MAX_SLUG_LENGTH = 60


def url_to_short_name(url: str) -> str:
    """Return a filesystem-safe, deterministic directory name for *url*."""
    digest = hashlib.sha256(url.encode("utf-8")).hexdigest()[:8]

    normalized = url.strip().rstrip("/")
    parsed = urlparse(normalized)
    if parsed.scheme and parsed.netloc:
        normalized = parsed.netloc + parsed.path
    elif "://" not in normalized and ":" in normalized and "@" in normalized:
        # scp-style git@host:owner/repo.git
        normalized = normalized.split("@", 1)[1].replace(":", "/", 1)
    if normalized.endswith(".git"):
        normalized = normalized[:-4]

    slug = _UNSAFE_CHARS.sub("-", normalized).strip("-.")
    if len(slug) > _MAX_SLUG_LENGTH:
        slug = slug[-_MAX_SLUG_LENGTH:].lstrip("-.")
    if not slug:
        slug = "root"
    return f"{slug}-{digest}"


@dataclass(frozen=True, slots=True)
class AppData:
    root: Path

    @property
    def git_root(self) -> Path:
        return self.root / "git"

    @property
    def url_restore_dir(self) -> Path:
        return self.root / "downloads"

    @property
    def lock_dir(self) -> Path:
        return self.root / "locks"

    @property
    def mutex_dir(self) -> Path:
        return self.root / "mutex"

    def git_dir(self, remote: str) -> Path:
        return self.git_root / url_to_short_name(remote)

    def bare_repo_path(self, remote: str) -> Path:
        return self.git_dir(remote) / ".git"

    def url_restore_root(self, address: str) -> Path:
        return self.url_restore_dir / url_to_short_name(address)

    def url_version_path(self, address: str, version: str) -> Path:
        return self.url_restore_root(address) / version
