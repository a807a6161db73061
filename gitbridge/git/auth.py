"""Credential bridge for git operations that talk to a remote.

Secrets never reach git's configuration or the filesystem. For each
authenticated invocation a broker opens a private channel, git's prompt
mechanism (GIT_ASKPASS or SSH_ASKPASS) is pointed at a relay that asks the
channel, and the channel is released as soon as the command settles.
"""

from __future__ import annotations

import logging
import os
import shlex
import tempfile
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Awaitable, Callable, Optional, Protocol, Union

from gitbridge.config import AuthConfig
from gitbridge.git.runner import GitResult, run_git_command

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SSHAuth:
    """Authenticate over SSH with a private key file."""

    key_path: str
    passphrase: Optional[str] = None

    def __repr__(self) -> str:
        return f"SSHAuth(key_path={self.key_path!r})"


@dataclass(frozen=True)
class CredentialAuth:
    """Answer git's username/password prompts for HTTP(S) remotes."""

    username: Optional[str] = None
    password: Optional[str] = None

    def __repr__(self) -> str:
        return f"CredentialAuth(username={self.username!r})"


AuthSpec = Union[SSHAuth, CredentialAuth]


class CredentialChannel:
    """A broker channel: a socket path plus a one-shot release hook."""

    def __init__(self, path: str, closer: Callable[[], Awaitable[None]]):
        self.path = path
        self._closer = closer
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    async def release(self) -> None:
        """Tear the channel down. Calling it again is a no-op."""
        if self._released:
            return
        self._released = True
        await self._closer()


class CredentialBroker(Protocol):
    """Serves secrets for one AuthSpec over a private channel."""

    async def open_channel(self, auth: AuthSpec) -> CredentialChannel:
        ...


@dataclass(frozen=True)
class RelayEnvironment:
    """Everything the relay needs, as seen from inside the git process."""

    socket_path: str
    python_path: str
    relay_path: str
    askpass_path: str

    def to_env(self) -> dict[str, str]:
        return {
            "GITBRIDGE_SOCK_PATH": self.socket_path,
            "GITBRIDGE_PYTHON_PATH": self.python_path,
            "GITBRIDGE_RELAY_PATH": self.relay_path,
        }


def build_auth_env(auth: AuthSpec, relay: RelayEnvironment) -> dict[str, str]:
    """Environment overlay that routes git's credential prompts to the relay."""
    env = relay.to_env()
    env["GIT_TERMINAL_PROMPT"] = "0"
    if isinstance(auth, SSHAuth):
        key = shlex.quote(str(Path(auth.key_path).expanduser()))
        env["GIT_SSH_COMMAND"] = f"ssh -i {key} -F /dev/null -o IdentitiesOnly=yes"
        env["SSH_ASKPASS"] = relay.askpass_path
        env["SSH_ASKPASS_REQUIRE"] = "force"
        env["DISPLAY"] = "dummy:0"
    else:
        env["GIT_ASKPASS"] = relay.askpass_path
    return env


ASKPASS_SCRIPT = """#!/bin/sh
exec "$GITBRIDGE_PYTHON_PATH" "$GITBRIDGE_RELAY_PATH" "$GITBRIDGE_SOCK_PATH" "$@"
"""


def write_askpass_script(directory: Optional[Path] = None) -> str:
    """Write the askpass wrapper to a private temporary file."""
    if directory is not None:
        directory.mkdir(parents=True, exist_ok=True)
    fd, path = tempfile.mkstemp(prefix="gitbridge-askpass-", suffix=".sh", dir=directory)
    try:
        os.fchmod(fd, 0o700)
        os.write(fd, ASKPASS_SCRIPT.encode("utf-8"))
    finally:
        os.close(fd)
    return path


class CredentialBridge:
    """Runs git commands with credentials supplied through a broker channel."""

    def __init__(self, broker: CredentialBroker, config: Optional[AuthConfig] = None):
        self.broker = broker
        self.config = config or AuthConfig()

    def relay_environment(self, channel: CredentialChannel, askpass_path: str) -> RelayEnvironment:
        return RelayEnvironment(
            socket_path=channel.path,
            python_path=self.config.resolved_python_path,
            relay_path=str(self.config.resolved_relay_path),
            askpass_path=askpass_path,
        )

    @asynccontextmanager
    async def session(self, auth: AuthSpec) -> AsyncIterator[dict[str, str]]:
        """Open a channel for ``auth`` and yield the env overlay for git.

        The channel is released exactly once when the block exits. A failing
        release is logged and never replaces the outcome of the block.
        """
        channel = await self.broker.open_channel(auth)
        logger.debug(f"Opened credential channel {channel.path}")
        script_path: Optional[str] = None
        try:
            askpass_path = self.config.resolved_askpass_path
            if askpass_path is None:
                script_path = write_askpass_script(self.config.resolved_socket_dir)
                askpass_path = script_path
            yield build_auth_env(auth, self.relay_environment(channel, str(askpass_path)))
        finally:
            if script_path is not None:
                try:
                    os.unlink(script_path)
                except OSError as e:
                    logger.warning(f"Failed to remove askpass script {script_path}: {e}")
            try:
                await channel.release()
                logger.debug(f"Released credential channel {channel.path}")
            except Exception as e:
                logger.warning(f"Failed to release credential channel {channel.path}: {e}")

    async def run(
        self,
        args: list[str],
        cwd: Path | str | None,
        auth: AuthSpec,
        *,
        command: str = "git",
        timeout: Optional[float] = None,
    ) -> GitResult:
        """Run one git command inside a credential session."""
        async with self.session(auth) as env:
            return await run_git_command(args, cwd, env, command=command, timeout=timeout)
