"""Parsers for git's script-oriented output.

Each function takes raw command output and returns structured records.
Lines that do not match the expected shape are skipped so that minor
differences between git versions do not break parsing.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional

from gitbridge.git.models import (
    Branch,
    BranchStatus,
    Commit,
    CommitRef,
    Remote,
)

logger = logging.getLogger(__name__)

# Template for ``git log --format``; one field per line, one sentinel per commit.
LOG_SENTINEL = "-----"
LOG_FORMAT = (
    "sha: %H%n"
    "parents: %p%n"
    "refs: %D%n"
    "author: %an%n"
    "date: %ct%n"
    "subject: %s%n"
    + LOG_SENTINEL
)

# A porcelain path: either a C-style quoted string or a bare token.
_PATH = r'"(?:[^"\\]|\\.)*"|[^ "]+'
_FILENAMES_RE = re.compile(rf"^(?P<first>{_PATH})(?: -> (?P<second>{_PATH}))?$")

_STATUS_HEADER_RE = re.compile(
    r"^## (?:No commits yet on |Initial commit on )?(?P<local>.+?)"
    r"(?:$|\.\.\.(?P<remote>.+?)"
    r"(?:$| \[(?:(?:ahead (?P<ahead>\d+)(?:, )?)?(?:behind (?P<behind>\d+))?|(?P<gone>gone))\]))"
)

_REMOTE_RE = re.compile(r"^(?P<name>.+)\t(?P<url>.+) \((?P<kind>.+)\)$", re.MULTILINE)

_BRANCH_RE = re.compile(
    r"^(?P<marker>[ *+] )(?P<name>\S+) +(?P<sha>\S+)"
    r"(?: \[(?P<remote>\S+?)(?:: (?:gone|(?:ahead (?P<ahead>\d+)(?:, )?)?(?:behind (?P<behind>\d+))?))?\])?"
    r" (?P<subject>.*)$"
)

_LOG_FIELD_RE = re.compile(r"^(?P<key>[a-z]+): ?(?P<value>.*)$")

_VERSION_RE = re.compile(r" (\d\S*)")

_C_ESCAPES = {
    "a": 0x07,
    "b": 0x08,
    "t": 0x09,
    "n": 0x0A,
    "v": 0x0B,
    "f": 0x0C,
    "r": 0x0D,
    '"': 0x22,
    "\\": 0x5C,
}


@dataclass
class StatusHeader:
    """The ``## ...`` line of ``git status --porcelain -b``."""

    local: str
    remote: Optional[str] = None
    ahead: Optional[int] = None
    behind: Optional[int] = None
    gone: bool = False


@dataclass
class StatusLine:
    """One file line of ``git status --porcelain``."""

    status: str
    path: str
    old_name: Optional[str] = None


def _unescape(body: str) -> str:
    """Decode the C-style escapes git uses inside quoted paths."""
    out = bytearray()
    i = 0
    while i < len(body):
        ch = body[i]
        if ch == "\\" and i + 1 < len(body):
            nxt = body[i + 1]
            octal = body[i + 1:i + 4]
            if len(octal) == 3 and all(c in "01234567" for c in octal):
                out.append(int(octal, 8) & 0xFF)
                i += 4
                continue
            if nxt in _C_ESCAPES:
                out.append(_C_ESCAPES[nxt])
                i += 2
                continue
        out.extend(ch.encode("utf-8"))
        i += 1
    return out.decode("utf-8", errors="replace")


def clean_filename(name: str) -> str:
    """Strip the quoting git adds around names with special characters."""
    if len(name) >= 2 and name[0] == '"' and name[-1] == '"':
        return _unescape(name[1:-1])
    return name


def parse_filenames(text: str) -> list[str]:
    """Split a porcelain path field into ``[path]`` or ``[old, new]``.

    The arrow only separates names when it sits unquoted between two
    path tokens, so a quoted name containing `` -> `` stays whole.
    """
    match = _FILENAMES_RE.match(text)
    if not match:
        return [clean_filename(text)] if text else []
    names = [clean_filename(match.group("first"))]
    if match.group("second") is not None:
        names.append(clean_filename(match.group("second")))
    return names


def parse_status_header(line: str) -> Optional[StatusHeader]:
    """Parse the branch header, e.g. ``## main...origin/main [ahead 2, behind 1]``."""
    match = _STATUS_HEADER_RE.match(line)
    if not match:
        return None
    return StatusHeader(
        local=match.group("local"),
        remote=match.group("remote"),
        ahead=int(match.group("ahead")) if match.group("ahead") is not None else None,
        behind=int(match.group("behind")) if match.group("behind") is not None else None,
        gone=match.group("gone") is not None,
    )


def parse_status_line(line: str) -> Optional[StatusLine]:
    """Parse ``XY path`` or ``XY old -> new``."""
    if len(line) < 4 or line[2] != " ":
        return None
    status = line[:2]
    rest = line[3:]
    if status in ("??", "!!"):
        names = [clean_filename(rest)]
    else:
        names = parse_filenames(rest)
    if not names or not names[-1]:
        return None
    if len(names) > 1:
        return StatusLine(status=status, path=names[1], old_name=names[0])
    return StatusLine(status=status, path=names[0])


def parse_ls_files(output: str) -> list[str]:
    """Return the paths listed by ``git ls-files``."""
    return [clean_filename(line) for line in output.split("\n") if line]


def parse_count(output: str) -> int:
    """Parse the single integer printed by ``git rev-list --count``."""
    return int(output.strip() or 0)


def parse_remotes(output: str) -> Optional[dict[str, Remote]]:
    """Parse ``git remote -v``.

    Returns None, not an empty mapping, when the repository has no remotes.
    """
    if not output.strip():
        return None
    remotes: dict[str, Remote] = {}
    for match in _REMOTE_RE.finditer(output):
        remote = remotes.setdefault(match.group("name"), Remote())
        kind = match.group("kind")
        if kind == "fetch":
            remote.fetch = match.group("url")
        elif kind == "push":
            remote.push = match.group("url")
    return remotes or None


def parse_branches(output: str) -> list[Branch]:
    """Parse ``git branch -vv --no-color``."""
    branches = []
    for line in output.split("\n"):
        match = _BRANCH_RE.match(line)
        if not match:
            continue
        name = match.group("name")
        sha = match.group("sha")
        # "origin/HEAD -> origin/main" and "(HEAD detached at ...)" are not branches
        if sha == "->" or name.startswith("("):
            continue
        branches.append(Branch(
            name=name,
            commit=CommitRef(sha=sha, subject=match.group("subject")),
            remote=match.group("remote"),
            status=BranchStatus(
                ahead=int(match.group("ahead") or 0),
                behind=int(match.group("behind") or 0),
            ),
            current=match.group("marker") == "* ",
        ))
    return branches


def parse_log(output: str) -> list[Commit]:
    """Parse ``git log`` output produced with LOG_FORMAT."""
    commits = []
    fields: dict[str, str] = {}
    for line in output.split("\n"):
        if line == LOG_SENTINEL:
            if fields.get("sha"):
                commits.append(_commit_from_fields(fields))
            else:
                logger.debug("Skipping log record without sha: %r", fields)
            fields = {}
            continue
        match = _LOG_FIELD_RE.match(line)
        if match and match.group("key") not in fields:
            fields[match.group("key")] = match.group("value")
    return commits


def _commit_from_fields(fields: dict[str, str]) -> Commit:
    refs = fields.get("refs", "")
    parents = fields.get("parents", "")
    return Commit(
        sha=fields["sha"],
        parents=parents.split(" ") if parents else [],
        refs=[ref.strip() for ref in refs.split(",")] if refs else [],
        author=fields.get("author", ""),
        date=fields.get("date", ""),
        subject=fields.get("subject", ""),
    )


def parse_version(output: str) -> Optional[str]:
    """Return the first digit-led token after the label in ``git --version``."""
    match = _VERSION_RE.search(output)
    return match.group(1) if match else None
