"""Git repository operations for gitbridge."""

from __future__ import annotations

import asyncio
import logging
import re
from pathlib import Path
from typing import Optional

from gitbridge.config import get_settings
from gitbridge.errors import (
    CommandError,
    ErrorKind,
    InputValidationError,
    UnsupportedOperationError,
)
from gitbridge.git import status as status_reconciler
from gitbridge.git.auth import AuthSpec, CredentialBridge
from gitbridge.git.broker import LocalCredentialBroker
from gitbridge.git.environment import GitEnvironment
from gitbridge.git.models import (
    Branch,
    BranchStatus,
    CommitLog,
    FileEntry,
    GitUser,
    Remote,
    RemoteSpec,
    RepositoryStatus,
)
from gitbridge.git.parsers import (
    LOG_FORMAT,
    parse_branches,
    parse_count,
    parse_log,
    parse_remotes,
)
from gitbridge.git.runner import GitResult, run_git_command

logger = logging.getLogger(__name__)

__all__ = ["GitRepository", "default_bridge"]

DIFF_TYPES = ("tree", "index")
DEFAULT_LOG_LIMIT = 20

_PUSH_REJECTED_RE = re.compile(r"^!.*(non-fast-forward|fetch first)", re.MULTILINE)


def default_bridge() -> CredentialBridge:
    """A bridge backed by the local socket broker, configured from settings."""
    config = get_settings().auth
    return CredentialBridge(LocalCredentialBroker(config.resolved_socket_dir), config)


def _require(value: Optional[str], field: str) -> str:
    if value is None or not str(value).strip():
        raise InputValidationError(field, "must not be empty")
    return str(value)


def _positional(value: Optional[str], field: str) -> str:
    """Require ``value`` and refuse a leading '-' that git would parse as an option."""
    value = _require(value, field)
    if value.startswith("-"):
        raise InputValidationError(field, "must not start with '-'")
    return value


class GitRepository:
    """A working directory operated on through the git executable.

    Every method runs git as a fresh subprocess. Nothing is cached between
    calls and nothing is serialized; callers that need ordering (stage, then
    commit) must await each step before starting the next.
    """

    def __init__(
        self,
        path: Path | str,
        env: GitEnvironment,
        bridge: Optional[CredentialBridge] = None,
    ):
        """Initialize a GitRepository.

        Args:
            path: Path to the repository root.
            env: The git environment reported by probe_git().
            bridge: Credential bridge used for authenticated remote
                operations. Defaults to the local socket broker.
        """
        self.path = Path(path).resolve()
        self.env = env
        self._bridge = bridge

    @property
    def bridge(self) -> CredentialBridge:
        if self._bridge is None:
            self._bridge = default_bridge()
        return self._bridge

    async def _git(self, args: list[str], auth: Optional[AuthSpec] = None) -> GitResult:
        """Run git in this repository, inside a credential session if ``auth`` is given."""
        if auth is None:
            return await run_git_command(
                args, self.path, command=self.env.command, timeout=self.env.timeout
            )
        return await self.bridge.run(
            args, self.path, auth, command=self.env.command, timeout=self.env.timeout
        )

    async def _run(self, args: list[str]) -> str:
        return (await self._git(args)).stdout

    # -------------------------------------------------------------------------
    # Repository creation
    # -------------------------------------------------------------------------

    @classmethod
    async def clone(
        cls,
        env: GitEnvironment,
        remote: RemoteSpec,
        auth: Optional[AuthSpec],
        directory: Path | str,
        bridge: Optional[CredentialBridge] = None,
    ) -> "GitRepository":
        """Clone ``remote`` into ``directory``.

        Args:
            env: The git environment.
            remote: URL plus optional remote name and branch.
            auth: Credentials for the remote, or None.
            directory: Target directory; created if missing, must be empty.
            bridge: Credential bridge to use when ``auth`` is given.

        Returns:
            The cloned repository.
        """
        url = _positional(remote.url, "url")
        args = ["clone"]
        if remote.name:
            args.extend(["-o", _positional(remote.name, "name")])
        if remote.branch:
            args.extend(["-b", _positional(remote.branch, "branch")])
        args.extend(["--", url, "."])

        target = Path(directory)
        target.mkdir(parents=True, exist_ok=True)
        repo = cls(target, env, bridge)
        logger.info(f"Cloning into {repo.path}")
        await repo._git(args, auth)
        return repo

    @classmethod
    async def init(
        cls,
        env: GitEnvironment,
        directory: Path | str,
        bridge: Optional[CredentialBridge] = None,
    ) -> "GitRepository":
        """Create an empty repository in ``directory``."""
        target = Path(directory)
        target.mkdir(parents=True, exist_ok=True)
        repo = cls(target, env, bridge)
        await repo._git(["init"])
        return repo

    # -------------------------------------------------------------------------
    # Remote operations
    # -------------------------------------------------------------------------

    async def fetch(self, remote: Optional[str] = None, auth: Optional[AuthSpec] = None) -> str:
        """Fetch from ``remote`` (git's default remote when omitted)."""
        args = ["fetch"]
        if remote:
            args.append(_positional(remote, "remote"))
        return (await self._git(args, auth)).stdout

    async def pull(
        self,
        remote: Optional[str] = None,
        branch: Optional[str] = None,
        auth: Optional[AuthSpec] = None,
    ) -> str:
        """Pull into the current branch.

        Remote and branch are only passed to git when both are given;
        otherwise the branch's configured upstream is used.

        Raises:
            CommandError: ``merge_conflict`` if the merge left conflicts,
                ``pull_would_overwrite_local_changes`` if local edits block it.
        """
        args = ["pull"]
        if remote and branch:
            args.extend([_positional(remote, "remote"), _positional(branch, "branch")])
        try:
            result = await self._git(args, auth)
        except CommandError as e:
            if "CONFLICT" in e.stdout:
                raise e.reclassify(ErrorKind.MERGE_CONFLICT, "Pull failed: merge conflict") from e
            if "Please commit your changes or stash" in e.stderr:
                raise e.reclassify(
                    ErrorKind.PULL_WOULD_OVERWRITE,
                    "Pull failed: local changes would be overwritten",
                ) from e
            raise
        return result.stdout

    async def push(
        self,
        remote: str,
        branch: Optional[str] = None,
        auth: Optional[AuthSpec] = None,
        set_upstream: bool = False,
    ) -> str:
        """Push HEAD to ``remote``.

        Args:
            remote: Remote name or URL.
            branch: Remote branch to update with HEAD. When omitted git's
                push defaults decide what is pushed.
            auth: Credentials for the remote, or None.
            set_upstream: Record ``remote/branch`` as the upstream. Only
                honoured together with ``branch``.

        Raises:
            CommandError: ``push_rejected_non_fast_forward`` when the remote
                refused the update.
        """
        _positional(remote, "remote")
        if branch:
            _positional(branch, "branch")
        args = ["push"]
        if branch:
            if set_upstream:
                args.append("-u")
            args.extend([remote, f"HEAD:{branch}"])
        else:
            args.append(remote)
        args.append("--porcelain")

        try:
            result = await self._git(args, auth)
        except CommandError as e:
            if e.kind is ErrorKind.GENERIC and _PUSH_REJECTED_RE.search(e.stdout):
                raise e.reclassify(ErrorKind.PUSH_REJECTED, "Push rejected: remote has newer commits") from e
            raise
        return result.stdout

    # -------------------------------------------------------------------------
    # Working tree and index
    # -------------------------------------------------------------------------

    async def stage(self, files: str | list[str]) -> str:
        """Stage one file or a list of files."""
        paths = [files] if isinstance(files, str) else list(files)
        if not paths:
            raise InputValidationError("files", "at least one path is required")
        for path in paths:
            _require(path, "files")
        return await self._run(["add", "--", *paths])

    async def unstage(self, file: Optional[str] = None) -> str:
        """Unstage ``file``, or everything when no file is given."""
        args = ["reset", "--"]
        if file:
            args.append(file)
        return await self._run(args)

    async def revert(self, file: str) -> str:
        """Discard working tree changes to ``file``."""
        return await self._run(["checkout", "--", _require(file, "file")])

    async def commit(self, message: str, user: Optional[GitUser] = None) -> str:
        """Commit the index.

        Args:
            message: Commit message.
            user: Identity for this commit only. It is passed as one-shot
                ``-c`` overrides and never written to any git config.
        """
        _require(message, "message")
        args = []
        if user is not None and user.is_complete:
            args.extend(["-c", f"user.name={user.name}", "-c", f"user.email={user.email}"])
        args.extend(["commit", "-m", message])
        return await self._run(args)

    async def abort_merge(self) -> str:
        return await self._run(["merge", "--abort"])

    # -------------------------------------------------------------------------
    # Branches and remotes
    # -------------------------------------------------------------------------

    async def checkout_branch(self, name: str, create: bool = False) -> str:
        """Switch to ``name``, creating it first when ``create`` is set."""
        args = ["checkout"]
        if create:
            args.append("-b")
        args.append(_positional(name, "name"))
        return await self._run(args)

    async def delete_branch(self, name: str, remote: bool = False, force: bool = False) -> str:
        """Delete a local branch.

        Raises:
            UnsupportedOperationError: For remote branches; git is not run.
            CommandError: ``branch_deletion_blocked_unmerged`` when the branch
                is unmerged and ``force`` is not set.
        """
        if remote:
            raise UnsupportedOperationError(
                "Deleting remote branches", "only local branches can be deleted"
            )
        return await self._run(["branch", "-D" if force else "-d", _positional(name, "name")])

    async def set_upstream(self, remote_branch: str) -> str:
        return await self._run(["branch", "--set-upstream-to", _positional(remote_branch, "remote_branch")])

    async def add_remote(self, name: str, url: str) -> str:
        return await self._run(["remote", "add", _positional(name, "name"), _positional(url, "url")])

    async def remove_remote(self, name: str) -> str:
        return await self._run(["remote", "remove", _positional(name, "name")])

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def get_status(self) -> RepositoryStatus:
        """Build a fresh status snapshot of the working tree."""
        return await status_reconciler.get_status(self._run)

    async def get_files(self) -> dict[str, FileEntry]:
        return (await self.get_status()).files

    async def get_file(self, path: str, treeish: str = "HEAD") -> str:
        """Contents of ``path`` as of ``treeish``."""
        return await self._run(["show", f"{_positional(treeish, 'treeish')}:{_require(path, 'path')}"])

    async def get_file_diff(self, path: str, diff_type: str = "tree") -> str:
        """Diff of ``path`` against the index ("tree") or HEAD ("index")."""
        if diff_type not in DIFF_TYPES:
            raise InputValidationError("diff_type", f"must be one of {', '.join(DIFF_TYPES)}")
        args = ["diff"]
        if diff_type == "index":
            args.append("--cached")
        args.extend(["--", _require(path, "path")])
        return await self._run(args)

    async def get_commits(self, limit: int = DEFAULT_LOG_LIMIT, before: Optional[str] = None) -> CommitLog:
        """Get a page of history, newest first.

        Args:
            limit: Maximum number of commits.
            before: Start listing from this commit instead of HEAD.
        """
        if before:
            _positional(before, "before")
        limit = int(limit) if limit and int(limit) > 0 else DEFAULT_LOG_LIMIT
        total = await status_reconciler.count_commits(self._run)
        if total == 0:
            return CommitLog(commits=[], total=0, before=before)

        args = ["log", f"--format={LOG_FORMAT}", f"-n{limit}"]
        if before:
            args.append(before)
        commits = parse_log(await self._run(args))
        return CommitLog(commits=commits, total=total, before=before)

    async def get_commit(self, sha: str) -> str:
        """Full ``git show`` output for a commit."""
        return await self._run(["show", _positional(sha, "sha")])

    async def get_remotes(self) -> Optional[dict[str, Remote]]:
        """Remotes by name, or None when there are none."""
        return parse_remotes(await self._run(["remote", "-v"]))

    async def get_branches(self, remote: bool = False) -> list[Branch]:
        args = ["branch", "-vv", "--no-color"]
        if remote:
            args.append("-r")
        return parse_branches(await self._run(args))

    async def get_remote_branch(self) -> Optional[str]:
        """The upstream of the current branch, or None if it has none."""
        try:
            output = await self._run(["rev-parse", "--abbrev-ref", "--symbolic-full-name", "@{u}"])
        except CommandError as e:
            if "no upstream configured for branch" in e.stderr:
                return None
            raise
        return output.strip() or None

    async def get_branch_status(self, remote_branch: str) -> BranchStatus:
        """Commits ahead of and behind ``remote_branch``."""
        _positional(remote_branch, "remote_branch")
        ahead, behind = await asyncio.gather(
            self._run(["rev-list", "HEAD", f"^{remote_branch}", "--count"]),
            self._run(["rev-list", "^HEAD", remote_branch, "--count"]),
        )
        return BranchStatus(ahead=parse_count(ahead), behind=parse_count(behind))
