"""Restore configuration and policy enforcement helpers."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from docrestore.errors import PolicyError

NetworkMode = Literal["online", "offline"]

DEFAULT_MAX_WORKERS = 8
DEFAULT_MAX_URL_VERSIONS = 5
_MAX_WORKERS_CAP = 64


@dataclass(frozen=True, slots=True)
class RestoreConfig:
    app_data_dir: Path = field(
        default_factory=lambda: Path(os.path.expanduser("~/.local/share/docrestore"))
    )
    max_workers: int = DEFAULT_MAX_WORKERS
    network_mode: NetworkMode = "online"
    http_headers: Mapping[str, str] = field(default_factory=dict)
    git_http_headers: Mapping[str, str] = field(default_factory=dict)
    max_url_versions: int = DEFAULT_MAX_URL_VERSIONS
    git_timeout: float | None = None
    http_timeout: float | None = 300.0

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> RestoreConfig:
        """Build a config from ``DOCRESTORE_*`` environment variables."""
        env = os.environ if environ is None else environ
        kwargs: dict[str, object] = {}

        app_data = (env.get("DOCRESTORE_APPDATA_PATH") or "").strip()
        if app_data:
            kwargs["app_data_dir"] = Path(app_data).expanduser()

        kwargs["max_workers"] = _read_positive_int(env, "DOCRESTORE_JOBS", DEFAULT_MAX_WORKERS)

        if (env.get("DOCRESTORE_OFFLINE") or "").strip().lower() in {"1", "true", "yes"}:
            kwargs["network_mode"] = "offline"

        token = (env.get("DOCRESTORE_GITHUB_TOKEN") or "").strip()
        if token:
            auth = {"Authorization": f"bearer {token}"}
            kwargs["http_headers"] = auth
            kwargs["git_http_headers"] = auth

        return cls(**kwargs)  # type: ignore[arg-type]


def ensure_network_allowed(*, config: RestoreConfig, operation: str) -> None:
    if config.network_mode == "offline":
        raise PolicyError(
            "Network operations are disabled by configuration.",
            hint="Unset DOCRESTORE_OFFLINE or restore implicitly from local copies.",
            context={"operation": operation},
        )


def _read_positive_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = (env.get(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    if value <= 0:
        return default
    return min(value, _MAX_WORKERS_CAP)
