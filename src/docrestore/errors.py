"""Typed restore error model with stable, machine-readable error codes."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from enum import StrEnum


class ErrorCode(StrEnum):
    """Stable error identifiers reported to the build orchestrator."""

    VALIDATION = "E_VALIDATION"
    LOCKFILE = "E_LOCKFILE"
    POLICY = "E_POLICY"
    GIT_CLONE_FAILED = "E_GIT_CLONE_FAILED"
    COMMITTISH_NOT_FOUND = "E_COMMITTISH_NOT_FOUND"
    DOWNLOAD_FAILED = "E_DOWNLOAD_FAILED"
    GIT_COMMAND = "E_GIT_COMMAND"
    RESTORE_FAILED = "E_RESTORE_FAILED"


class RestoreError(Exception):
    """Base error class that carries code, optional hint, and context."""

    code: str
    hint: str | None
    context: Mapping[str, str]

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code.value
        self.hint = hint
        self.context = dict(context or {})

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.hint:
            parts.append(f"Hint: {self.hint}")
        if self.context:
            for k, v in self.context.items():
                if v:
                    parts.append(f"  {k}: {v}")
        return "\n".join(parts)

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "code": self.code,
            "message": str(self),
            "context": dict(self.context),
        }
        if self.hint is not None:
            payload["hint"] = self.hint
        return payload


class ValidationError(RestoreError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.VALIDATION, hint=hint, context=context)


class LockfileError(RestoreError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.LOCKFILE, hint=hint, context=context)


class PolicyError(RestoreError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.POLICY, hint=hint, context=context)


class GitCommandError(RestoreError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.GIT_COMMAND, hint=hint, context=context)


class GitCloneFailedError(RestoreError):
    """Clone, fetch or worktree creation failed for a remote."""

    def __init__(self, remote: str, branches: Iterable[str], *, reason: str = "") -> None:
        self.remote = remote
        self.branches = tuple(sorted(branches))
        super().__init__(
            f"Failure to clone the repository `{remote}#{','.join(self.branches)}`.",
            code=ErrorCode.GIT_CLONE_FAILED,
            hint="Check that the remote exists, the branches are spelled correctly "
            "and that your credentials grant read access.",
            context={"remote": remote, "branches": ",".join(self.branches), "reason": reason},
        )


class CommittishNotFoundError(RestoreError):
    def __init__(self, remote: str, branch: str) -> None:
        self.remote = remote
        self.branch = branch
        super().__init__(
            f"Can't find a commit for `{remote}#{branch}`.",
            code=ErrorCode.COMMITTISH_NOT_FOUND,
            hint="The branch was fetched but rev-parse resolved nothing; "
            "make sure the branch exists on the remote.",
            context={"remote": remote, "branch": branch},
        )


class DownloadFailedError(RestoreError):
    def __init__(self, address: str, message: str) -> None:
        self.address = address
        super().__init__(
            f"Download '{address}' failed: {message}",
            code=ErrorCode.DOWNLOAD_FAILED,
            context={"address": address},
        )


class RestoreFailures(RestoreError):
    """Every failure collected from one restore pass, reported together."""

    errors: tuple[Exception, ...]

    def __init__(self, errors: Sequence[Exception]) -> None:
        self.errors = tuple(errors)
        codes = sorted({getattr(error, "code", type(error).__name__) for error in self.errors})
        super().__init__(
            f"Restore failed with {len(self.errors)} error(s).",
            code=ErrorCode.RESTORE_FAILED,
            context={"codes": ",".join(codes)},
        )

    def __str__(self) -> str:
        lines = [super().__str__()]
        for error in self.errors:
            lines.append(f"- {error}".replace("\n", "\n  "))
        return "\n".join(lines)

    def to_dict(self) -> dict[str, object]:
        payload = super().to_dict()
        payload["errors"] = [
            error.to_dict() if isinstance(error, RestoreError) else {"message": str(error)}
            for error in self.errors
        ]
        return payload


__all__ = [
    "CommittishNotFoundError",
    "DownloadFailedError",
    "ErrorCode",
    "GitCloneFailedError",
    "GitCommandError",
    "LockfileError",
    "PolicyError",
    "RestoreError",
    "RestoreFailures",
    "ValidationError",
]
