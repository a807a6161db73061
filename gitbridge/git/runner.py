"""Spawn git and classify its failures."""

from __future__ import annotations

import asyncio
import logging
import os
import re
import signal
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from gitbridge.errors import (
    CommandError,
    CommandTimeoutError,
    ErrorKind,
    GitNotFoundError,
)
from gitbridge.utils.logging import redact

logger = logging.getLogger(__name__)

GIT_COMMAND = "git"

# Disables any configured credential helper so cached credentials are never
# used; authentication goes through the credential bridge instead.
CREDENTIAL_HELPER_OVERRIDE = ["-c", "credential.helper="]

STDOUT = "stdout"
STDERR = "stderr"

# Ordered: the first matching rule wins.
ERROR_PATTERNS: list[tuple[re.Pattern[str], str, ErrorKind]] = [
    (re.compile(r"fatal: could not read Username"), STDERR, ErrorKind.CREDENTIAL_REJECTED),
    (re.compile(r"HTTP Basic: Access denied"), STDERR, ErrorKind.CREDENTIAL_REJECTED),
    (re.compile(r"Permission denied \(publickey"), STDERR, ErrorKind.CREDENTIAL_REJECTED),
    (re.compile(r"Authentication failed"), STDERR, ErrorKind.CREDENTIAL_REJECTED),
    (re.compile(r"Connection refused"), STDERR, ErrorKind.TRANSPORT_UNREACHABLE),
    (re.compile(r"Could not resolve host"), STDERR, ErrorKind.TRANSPORT_UNREACHABLE),
    (re.compile(r"commit your changes or stash"), STDERR, ErrorKind.LOCAL_CHANGES_BLOCK_OPERATION),
    (re.compile(r"CONFLICT"), STDOUT, ErrorKind.MERGE_CONFLICT),
    (re.compile(r"not fully merged"), STDERR, ErrorKind.BRANCH_UNMERGED),
    (re.compile(r"remote .* already exists"), STDERR, ErrorKind.REMOTE_EXISTS),
    (re.compile(r"does not appear to be a git repository"), STDERR, ErrorKind.NOT_A_REPOSITORY),
    (re.compile(r"not a git repository"), STDERR, ErrorKind.NOT_A_REPOSITORY),
    (re.compile(r"Repository not found", re.IGNORECASE), STDERR, ErrorKind.REPOSITORY_NOT_FOUND),
]


@dataclass
class GitResult:
    """Output of a git invocation that exited with status 0."""

    args: list[str]
    returncode: int
    stdout: str
    stderr: str


def classify_failure(stdout: str, stderr: str) -> ErrorKind:
    """Map the output of a failed command onto an ErrorKind."""
    streams = {STDOUT: stdout, STDERR: stderr}
    for pattern, stream, kind in ERROR_PATTERNS:
        if pattern.search(streams[stream]):
            return kind
    return ErrorKind.GENERIC


def _decode(data: Optional[bytes]) -> str:
    if not data:
        return ""
    return data.decode("utf-8", errors="replace")


def _kill_session(proc: asyncio.subprocess.Process) -> None:
    """Kill git and every process it started (ssh, the askpass relay).

    git runs as the leader of its own session, so its process group id is
    its pid.
    """
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass


async def run_git_command(
    args: list[str],
    cwd: Path | str | None = None,
    env: Optional[Mapping[str, str]] = None,
    *,
    command: str = GIT_COMMAND,
    timeout: Optional[float] = None,
) -> GitResult:
    """Run git once and return its output.

    Args:
        args: Git command arguments (without the 'git' prefix).
        cwd: Working directory for the command.
        env: Variables layered over the current environment for this
            invocation only.
        command: The git executable.
        timeout: Seconds before the process is killed. None waits forever.

    Returns:
        GitResult with the decoded stdout/stderr.

    Raises:
        CommandError: If git exits with a nonzero status.
        CommandTimeoutError: If the timeout expires.
        GitNotFoundError: If the executable cannot be started.
    """
    args = [str(arg) for arg in args]
    cmd = [command, *CREDENTIAL_HELPER_OVERRIDE, *args]

    process_env = os.environ.copy()
    process_env["GIT_TERMINAL_PROMPT"] = "0"
    if env:
        process_env.update(env)

    logger.debug(f"Running git command: {redact(' '.join(cmd))}")

    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            cwd=str(cwd) if cwd else None,
            env=process_env,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            # Without a controlling terminal ssh falls back to SSH_ASKPASS.
            start_new_session=True,
        )
    except FileNotFoundError as e:
        raise GitNotFoundError(command, str(e)) from e
    except PermissionError as e:
        raise GitNotFoundError(command, str(e)) from e

    try:
        raw_stdout, raw_stderr = await asyncio.wait_for(proc.communicate(), timeout)
    except asyncio.TimeoutError:
        _kill_session(proc)
        await proc.wait()
        raise CommandTimeoutError(args, timeout)

    stdout = _decode(raw_stdout)
    stderr = _decode(raw_stderr)
    returncode = proc.returncode if proc.returncode is not None else -1

    if returncode != 0:
        kind = classify_failure(stdout, stderr)
        logger.debug(f"git {args[0] if args else ''} failed ({returncode}, {kind.value}): {redact(stderr.strip())}")
        raise CommandError(kind, args, returncode, stdout=stdout, stderr=stderr)

    return GitResult(args=args, returncode=returncode, stdout=stdout, stderr=stderr)
