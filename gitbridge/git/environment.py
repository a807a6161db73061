"""Startup probe for the installed git executable."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional

from gitbridge.config import Settings, get_settings
from gitbridge.errors import GitError
from gitbridge.git.models import GitUser
from gitbridge.git.parsers import parse_version
from gitbridge.git.runner import GIT_COMMAND, run_git_command

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GitEnvironment:
    """What is known about git once at startup.

    Produced by probe_git() and handed to every GitRepository, so no
    operation depends on process-wide state.
    """

    version: str
    command: str = GIT_COMMAND
    user: Optional[GitUser] = None
    timeout: Optional[float] = None

    def to_dict(self) -> dict[str, Any]:
        """The capability report handed to the host application."""
        report: dict[str, Any] = {"version": self.version}
        if self.user is not None:
            report["user"] = {"name": self.user.name, "email": self.user.email}
        return report


async def _read_global_config(command: str, key: str, timeout: Optional[float]) -> str:
    try:
        result = await run_git_command(["config", "--global", key], command=command, timeout=timeout)
    except GitError:
        return ""
    return result.stdout.strip()


async def probe_git(settings: Optional[Settings] = None) -> Optional[GitEnvironment]:
    """Report the git version and global identity.

    Returns None when git is missing or its version cannot be read, so the
    host can keep running without version control. A missing identity is
    not an error; the report simply has no user.
    """
    settings = settings or get_settings()
    command = settings.git.command
    timeout = settings.git.timeout_seconds

    try:
        version_result, name, email = await asyncio.gather(
            run_git_command(["--version"], command=command, timeout=timeout),
            _read_global_config(command, "user.name", timeout),
            _read_global_config(command, "user.email", timeout),
        )
    except (GitError, OSError) as e:
        logger.warning(f"git is not available: {e}")
        return None

    version = parse_version(version_result.stdout)
    if version is None:
        logger.warning(f"Could not parse git version from {version_result.stdout.strip()!r}")
        return None

    user = GitUser(name=name, email=email) if name and email else None
    logger.debug(f"Found git {version} at '{command}'")
    return GitEnvironment(version=version, command=command, user=user, timeout=timeout)
