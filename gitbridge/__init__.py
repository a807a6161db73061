"""gitbridge - drive git from Python with structured results and brokered credentials."""

__version__ = "0.1.0"

from gitbridge.errors import CommandError, ErrorKind, GitBridgeError
from gitbridge.git import (
    CredentialAuth,
    GitEnvironment,
    GitRepository,
    RemoteSpec,
    SSHAuth,
    probe_git,
)

__all__ = [
    "__version__",
    "CommandError",
    "CredentialAuth",
    "ErrorKind",
    "GitBridgeError",
    "GitEnvironment",
    "GitRepository",
    "RemoteSpec",
    "SSHAuth",
    "probe_git",
]
