"""Build a RepositoryStatus from several git queries.

The file listing from ``git ls-files`` seeds the map, ``git status`` adds
status codes and branch tracking, and untracked directories pass their
status down to files beneath them.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

from gitbridge.errors import CommandError, ErrorKind
from gitbridge.git.models import (
    DIRECTORY,
    FILE,
    UNTRACKED,
    FileEntry,
    RepositoryStatus,
)
from gitbridge.git.parsers import (
    parse_count,
    parse_ls_files,
    parse_status_header,
    parse_status_line,
)

logger = logging.getLogger(__name__)

# Runs git with the given arguments in the repository and returns stdout.
Runner = Callable[[list[str]], Awaitable[str]]

COUNT_ARGS = ["rev-list", "HEAD", "--count"]
LS_FILES_ARGS = ["ls-files", "--cached", "--others", "--exclude-standard"]
STATUS_ARGS = ["status", "--porcelain", "-b"]


async def count_commits(run: Runner) -> int:
    """Count commits reachable from HEAD; 0 before the first commit."""
    try:
        return parse_count(await run(COUNT_ARGS))
    except CommandError as e:
        # An unborn HEAD is reported as an ambiguous argument.
        if "ambiguous argument" in e.stderr:
            return 0
        raise


def add_path(files: dict[str, FileEntry], path: str) -> FileEntry:
    """Add ``path`` and an entry for each of its parent directories."""
    parts = path.rstrip("/").split("/")
    for i in range(1, len(parts)):
        directory = "/".join(parts[:i]) + "/"
        if directory not in files:
            files[directory] = FileEntry(type=DIRECTORY)
    entry = files.get(path)
    if entry is None:
        entry = FileEntry(type=DIRECTORY if path.endswith("/") else FILE)
        files[path] = entry
    return entry


def seed_files(status: RepositoryStatus, ls_files_output: str) -> None:
    for path in parse_ls_files(ls_files_output):
        add_path(status.files, path)


def apply_porcelain(status: RepositoryStatus, output: str) -> None:
    """Merge ``git status --porcelain -b`` output into ``status``."""
    untracked_dirs: list[str] = []

    for line in output.split("\n"):
        if not line:
            continue
        if line.startswith("#"):
            _apply_header(status, line)
            continue

        parsed = parse_status_line(line)
        if parsed is None:
            logger.debug(f"Skipping unrecognised status line: {line!r}")
            continue

        entry = add_path(status.files, parsed.path)
        entry.status = parsed.status
        if parsed.old_name is not None:
            entry.old_name = parsed.old_name
        if parsed.status == UNTRACKED and parsed.path.endswith("/"):
            untracked_dirs.append(parsed.path)

    if not untracked_dirs:
        return
    for path, entry in status.files.items():
        if entry.status is None and any(path.startswith(d) for d in untracked_dirs):
            entry.status = UNTRACKED


def _apply_header(status: RepositoryStatus, line: str) -> None:
    header = parse_status_header(line)
    if header is None:
        return
    commits = status.commits
    branches = status.branches

    branches.local = header.local
    if header.remote:
        branches.remote = header.remote
        commits.ahead = 0
        commits.behind = 0
    if header.ahead is not None:
        commits.ahead = header.ahead
    if header.behind is not None:
        commits.behind = header.behind
    if header.gone:
        # Nothing on the remote any more, so every commit is unpushed.
        commits.ahead = commits.total
        branches.remote_error = ErrorKind.REMOTE_GONE


def build_status(total: int, ls_files_output: str, status_output: str) -> RepositoryStatus:
    """Assemble a RepositoryStatus from already captured command output."""
    status = RepositoryStatus()
    status.commits.total = total
    seed_files(status, ls_files_output)
    apply_porcelain(status, status_output)
    return status


async def get_status(run: Runner) -> RepositoryStatus:
    """Query git and build a fresh RepositoryStatus."""
    total = await count_commits(run)
    ls_files_output = await run(LS_FILES_ARGS)
    status_output = await run(STATUS_ARGS)
    return build_status(total, ls_files_output, status_output)
