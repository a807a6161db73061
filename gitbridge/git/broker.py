"""Default credential broker: one private Unix socket per channel.

The relay (see relay.py) connects, sends a single JSON line
``{"prompt": "<text git or ssh printed>"}`` and receives a single JSON line,
either ``{"ok": true, "secret": "..."}`` or ``{"ok": false, "error": "..."}``.
The exchange is private to gitbridge and may change between releases.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import shutil
import tempfile
from enum import Enum
from functools import partial
from pathlib import Path
from typing import Optional

from gitbridge.errors import BrokerError
from gitbridge.git.auth import AuthSpec, CredentialAuth, CredentialChannel, SSHAuth

logger = logging.getLogger(__name__)

SOCKET_NAME = "auth.sock"
MAX_REQUEST_BYTES = 64 * 1024


class PromptKind(str, Enum):
    USERNAME = "username"
    PASSWORD = "password"
    PASSPHRASE = "passphrase"


def classify_prompt(prompt: str) -> Optional[PromptKind]:
    """Work out which secret a git or ssh prompt asks for."""
    text = prompt.lower()
    if "username" in text:
        return PromptKind.USERNAME
    if "passphrase" in text:
        return PromptKind.PASSPHRASE
    if "password" in text or "token" in text:
        return PromptKind.PASSWORD
    return None


def secret_for(auth: AuthSpec, kind: Optional[PromptKind]) -> Optional[str]:
    """Pick the secret in ``auth`` that answers a prompt of ``kind``."""
    if isinstance(auth, SSHAuth):
        if kind is PromptKind.PASSPHRASE:
            return auth.passphrase
        return None
    if isinstance(auth, CredentialAuth):
        if kind is PromptKind.USERNAME:
            return auth.username
        if kind is PromptKind.PASSWORD:
            return auth.password
    return None


class LocalCredentialBroker:
    """Answers relay requests from an AuthSpec held only in memory."""

    def __init__(self, socket_dir: Optional[Path | str] = None):
        self.socket_dir = Path(socket_dir).expanduser() if socket_dir else None

    async def open_channel(self, auth: AuthSpec) -> CredentialChannel:
        directory: Optional[str] = None
        try:
            if self.socket_dir is not None:
                self.socket_dir.mkdir(parents=True, exist_ok=True)
            # mkdtemp creates the directory with mode 0700
            directory = tempfile.mkdtemp(prefix="gitbridge-", dir=self.socket_dir)
            path = os.path.join(directory, SOCKET_NAME)
            server = await asyncio.start_unix_server(
                partial(self._handle, auth), path=path, limit=MAX_REQUEST_BYTES
            )
        except OSError as e:
            if directory is not None:
                shutil.rmtree(directory, ignore_errors=True)
            raise BrokerError(str(e), original_error=e) from e

        async def close() -> None:
            try:
                server.close()
                await server.wait_closed()
            finally:
                shutil.rmtree(directory, ignore_errors=True)

        return CredentialChannel(path, close)

    async def _handle(
        self,
        auth: AuthSpec,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        try:
            try:
                line = await reader.readline()
            except ValueError:
                # readline() raises ValueError once a line exceeds the stream limit
                logger.debug(f"Relay request larger than {MAX_REQUEST_BYTES} bytes rejected")
                response = {"ok": False, "error": "request too large"}
            else:
                response = self.answer(auth, line)
            writer.write(json.dumps(response).encode("utf-8") + b"\n")
            await writer.drain()
        except (ConnectionError, asyncio.IncompleteReadError) as e:
            logger.debug(f"Relay connection dropped: {e}")
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except ConnectionError:
                pass

    @staticmethod
    def answer(auth: AuthSpec, raw_request: bytes) -> dict:
        """Build the response for one relay request."""
        try:
            request = json.loads(raw_request.decode("utf-8") or "{}")
        except (UnicodeDecodeError, json.JSONDecodeError):
            return {"ok": False, "error": "malformed request"}
        if not isinstance(request, dict):
            return {"ok": False, "error": "malformed request"}

        kind = classify_prompt(str(request.get("prompt", "")))
        secret = secret_for(auth, kind)
        if secret is None:
            label = kind.value if kind else "unrecognised prompt"
            logger.debug(f"No credential available for {label}")
            return {"ok": False, "error": f"no credential available for {label}"}

        logger.debug(f"Answered {kind.value} prompt")
        return {"ok": True, "secret": secret}
