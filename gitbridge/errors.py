"""Centralized exception hierarchy for gitbridge.

Every failure surfaced by the library is a subclass of GitBridgeError.
Failed git invocations are reported as CommandError, whose ``kind`` is one
of the stable ErrorKind values so callers can react without parsing git's
free-text output themselves.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    """Stable classification of a failed git invocation."""

    CREDENTIAL_REJECTED = "credential_rejected"
    TRANSPORT_UNREACHABLE = "transport_unreachable"
    LOCAL_CHANGES_BLOCK_OPERATION = "local_changes_block_operation"
    MERGE_CONFLICT = "merge_conflict"
    PULL_WOULD_OVERWRITE = "pull_would_overwrite_local_changes"
    PUSH_REJECTED = "push_rejected_non_fast_forward"
    BRANCH_UNMERGED = "branch_deletion_blocked_unmerged"
    REMOTE_EXISTS = "remote_name_collision"
    NOT_A_REPOSITORY = "not_a_repository"
    REPOSITORY_NOT_FOUND = "remote_repository_not_found"
    REMOTE_GONE = "tracked_remote_branch_gone"
    GENERIC = "generic"


class GitBridgeError(Exception):
    """Base exception for all gitbridge errors.

    Attributes:
        message: Human-readable error message.
        code: Optional error code for programmatic handling.
        details: Optional dictionary with additional error context.
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "details": self.details,
        }


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(GitBridgeError):
    """Raised when there's a configuration problem."""
    pass


class InvalidConfigError(ConfigurationError):
    """Raised when configuration values are invalid."""

    def __init__(self, field: str, value: Any, reason: str):
        super().__init__(
            message=f"Invalid configuration for '{field}': {reason}",
            code="INVALID_CONFIG",
            details={"field": field, "value": str(value)[:100], "reason": reason},
        )


class InputValidationError(GitBridgeError):
    """Raised when an operation argument fails validation."""

    def __init__(self, field: str, reason: str):
        super().__init__(
            message=f"Invalid input for '{field}': {reason}",
            code="INPUT_VALIDATION_ERROR",
            details={"field": field, "reason": reason},
        )


# =============================================================================
# Git Errors
# =============================================================================

class GitError(GitBridgeError):
    """Base exception for git invocation failures."""
    pass


class CommandError(GitError):
    """Raised when a git command exits with a nonzero status.

    The raw output is always kept so callers can diagnose failures that
    could not be classified.
    """

    def __init__(
        self,
        kind: ErrorKind,
        args: list[str],
        returncode: int,
        stdout: str = "",
        stderr: str = "",
        message: Optional[str] = None,
    ):
        message = message or stderr.strip() or f"git exited with status {returncode}"
        super().__init__(
            message=message,
            code=kind.value,
            details={"args": list(args), "returncode": returncode},
        )
        self.kind = kind
        self.command_args = list(args)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr

    def reclassify(self, kind: ErrorKind, message: Optional[str] = None) -> "CommandError":
        """Return a copy of this error carrying a more specific kind."""
        return CommandError(
            kind,
            self.command_args,
            self.returncode,
            stdout=self.stdout,
            stderr=self.stderr,
            message=message or self.message,
        )

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["stdout"] = self.stdout
        data["stderr"] = self.stderr
        return data


class CommandTimeoutError(GitError):
    """Raised when a git command runs longer than the configured timeout."""

    def __init__(self, args: list[str], timeout: float):
        super().__init__(
            message=f"git {' '.join(args[:1])} timed out after {timeout}s",
            code="COMMAND_TIMEOUT",
            details={"args": list(args), "timeout_seconds": timeout},
        )


class GitNotFoundError(GitError):
    """Raised when the git executable cannot be started."""

    def __init__(self, command: str, reason: Optional[str] = None):
        message = f"Could not start git executable '{command}'"
        if reason:
            message += f": {reason}"
        super().__init__(
            message=message,
            code="GIT_NOT_FOUND",
            details={"command": command},
        )


class UnsupportedOperationError(GitError):
    """Raised locally, without spawning git, for unsupported requests."""

    def __init__(self, operation: str, reason: str):
        super().__init__(
            message=f"{operation} is not supported: {reason}",
            code="UNSUPPORTED_OPERATION",
            details={"operation": operation},
        )


# =============================================================================
# Credential Errors
# =============================================================================

class CredentialError(GitBridgeError):
    """Base exception for credential brokering failures."""
    pass


class BrokerError(CredentialError):
    """Raised when a credential channel cannot be opened."""

    def __init__(self, reason: str, original_error: Optional[Exception] = None):
        details = {"reason": reason}
        if original_error:
            details["original_error"] = str(original_error)
            details["original_type"] = type(original_error).__name__
        super().__init__(
            message=f"Could not open credential channel: {reason}",
            code="BROKER_ERROR",
            details=details,
        )
