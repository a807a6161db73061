"""Structured records produced from git output."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Optional

from gitbridge.errors import ErrorKind

FILE = "f"
DIRECTORY = "d"
UNTRACKED = "??"


@dataclass
class FileEntry:
    """A file or directory known to the repository.

    ``status`` is git's two-letter porcelain code, or ``"??"`` inherited from
    an untracked parent directory. It is None for clean tracked files.
    """

    type: str = FILE
    status: Optional[str] = None
    old_name: Optional[str] = None

    @property
    def is_directory(self) -> bool:
        return self.type == DIRECTORY

    @property
    def is_untracked(self) -> bool:
        return self.status == UNTRACKED


@dataclass
class CommitCounts:
    """Commit totals for the current branch."""

    total: int = 0
    ahead: Optional[int] = None
    behind: Optional[int] = None


@dataclass
class BranchInfo:
    """Current branch and the remote branch it tracks."""

    local: Optional[str] = None
    remote: Optional[str] = None
    remote_error: Optional[ErrorKind] = None


@dataclass
class RepositoryStatus:
    """Snapshot of a working tree, rebuilt on every status request."""

    files: dict[str, FileEntry] = field(default_factory=dict)
    commits: CommitCounts = field(default_factory=CommitCounts)
    branches: BranchInfo = field(default_factory=BranchInfo)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class Commit:
    """A commit as reported by the custom log template."""

    sha: str
    parents: list[str] = field(default_factory=list)
    refs: list[str] = field(default_factory=list)
    author: str = ""
    date: str = ""  # seconds since the epoch, unformatted
    subject: str = ""


@dataclass
class CommitLog:
    """A page of history plus the branch's total commit count."""

    commits: list[Commit]
    total: int
    before: Optional[str] = None

    @property
    def count(self) -> int:
        return len(self.commits)


@dataclass
class BranchStatus:
    ahead: int = 0
    behind: int = 0


@dataclass
class CommitRef:
    sha: str
    subject: str = ""


@dataclass
class Branch:
    """A branch line from ``git branch -vv``."""

    name: str
    commit: CommitRef
    remote: Optional[str] = None
    status: BranchStatus = field(default_factory=BranchStatus)
    current: bool = False


@dataclass
class Remote:
    fetch: Optional[str] = None
    push: Optional[str] = None


@dataclass(frozen=True)
class GitUser:
    """A commit identity."""

    name: str
    email: str

    @property
    def is_complete(self) -> bool:
        return bool(self.name and self.email)


@dataclass(frozen=True)
class RemoteSpec:
    """What to clone: the URL plus optional remote name and branch."""

    url: str
    name: Optional[str] = None
    branch: Optional[str] = None
