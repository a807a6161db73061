"""Git integration for gitbridge.

This package runs the git executable, brokers credentials for remote
operations and turns git's output into structured records.
"""

from gitbridge.git.auth import (
    AuthSpec,
    CredentialAuth,
    CredentialBridge,
    CredentialBroker,
    CredentialChannel,
    RelayEnvironment,
    SSHAuth,
)
from gitbridge.git.broker import LocalCredentialBroker
from gitbridge.git.environment import GitEnvironment, probe_git
from gitbridge.git.models import (
    Branch,
    BranchInfo,
    BranchStatus,
    Commit,
    CommitCounts,
    CommitLog,
    CommitRef,
    FileEntry,
    GitUser,
    Remote,
    RemoteSpec,
    RepositoryStatus,
)
from gitbridge.git.repository import GitRepository
from gitbridge.git.runner import GitResult, classify_failure, run_git_command

__all__ = [
    # Main class
    "GitRepository",
    "GitEnvironment",
    "probe_git",
    # Credentials
    "AuthSpec",
    "CredentialAuth",
    "CredentialBridge",
    "CredentialBroker",
    "CredentialChannel",
    "LocalCredentialBroker",
    "RelayEnvironment",
    "SSHAuth",
    # Data classes
    "Branch",
    "BranchInfo",
    "BranchStatus",
    "Commit",
    "CommitCounts",
    "CommitLog",
    "CommitRef",
    "FileEntry",
    "GitUser",
    "Remote",
    "RemoteSpec",
    "RepositoryStatus",
    # Process execution
    "GitResult",
    "classify_failure",
    "run_git_command",
]
