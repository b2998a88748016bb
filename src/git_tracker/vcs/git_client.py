"""
Git client implementation for git_tracker.

This module is the gateway between the commit orchestrator and the ``git``
executable. Each method runs one or two git commands and turns the outcome
into a boolean, a value, or one of the exceptions below. All subprocess
calls go through :meth:`GitClient._run` so that unit tests can mock them
easily.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Optional


logger = logging.getLogger(__name__)
# Attach a null handler to avoid logging errors when the root logger is not
# configured. Logs will propagate to the root when configured by the CLI.
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


DEFAULT_REMOTE = "origin"


@dataclass
class FileChange:
    """Representation of a single file change in the working tree."""

    path: str
    status: str  # e.g. 'M' modified, 'A' added, 'D' deleted, 'R' renamed, 'N' untracked


class GitError(Exception):
    """Raised when a Git command fails."""

    pass


class NotARepositoryError(GitError):
    """Raised when the working directory is not inside a Git repository."""

    pass


class NothingToCommitError(GitError):
    """Raised when the working tree has nothing to commit."""

    pass


class CommitError(GitError):
    """Raised when staging or committing fails.

    ``commit_message`` and ``changes`` are filled in by the orchestrator so
    the user can see what was not committed.
    """

    def __init__(self, message: str, commit_message: Optional[str] = None, changes=()) -> None:
        super().__init__(message)
        self.commit_message = commit_message
        self.changes = tuple(changes)


class RemoteMissingError(GitError):
    """Raised when the push remote is not configured."""

    pass


class BranchCreationError(GitError):
    """Raised when a branch cannot be created on the remote."""

    pass


class PushError(GitError):
    """Raised when pushing to the remote fails."""

    pass


class GitClient:
    """Client for interacting with a Git repository."""

    def __init__(self, workdir: Path) -> None:
        self.workdir = workdir

    # ------------------------------------------------------------------
    # Static helpers
    # ------------------------------------------------------------------
    @staticmethod
    def find_repo_root(start: Path) -> Optional[Path]:
        """Find the root of the Git repository starting from ``start``.

        Walk upwards until a ``.git`` entry is found or the filesystem
        root is reached.
        """
        current = start.resolve()
        while True:
            if (current / ".git").exists():
                return current
            if current.parent == current:
                return None
            current = current.parent

    # ------------------------------------------------------------------
    # Basic Git commands
    # ------------------------------------------------------------------
    def _run(self, args: List[str], check: bool = True) -> subprocess.CompletedProcess:
        """Run a Git command in the working directory.

        Raises
        ------
        GitError
            If git cannot be started, or the command exits with a non-zero
            status when ``check`` is True.
        """
        full_cmd = ["git"] + args
        logger.debug("Executing Git command: %s", " ".join(full_cmd))
        try:
            result = subprocess.run(
                full_cmd,
                cwd=self.workdir,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except FileNotFoundError as e:
            logger.error("Git executable not found: %s", e)
            raise GitError("git executable not found") from e

        if check and result.returncode != 0:
            logger.error(
                "Git command failed: %s\nSTDOUT: %s\nSTDERR: %s",
                " ".join(full_cmd),
                result.stdout,
                result.stderr,
            )
            raise GitError(result.stderr.strip() or result.stdout.strip())
        return result

    def is_repository(self) -> bool:
        """Return True if the working directory is inside a Git repository."""
        try:
            result = self._run(["rev-parse", "--git-dir"], check=False)
        except GitError:
            return False
        return result.returncode == 0

    # ------------------------------------------------------------------
    # Status and change detection
    # ------------------------------------------------------------------
    def get_changes(self, include_untracked: bool = True) -> List[FileChange]:
        """Get the list of changed files in the working tree.

        Untracked files are reported with status ``'N'`` unless
        ``include_untracked`` is False.

        Raises
        ------
        GitError
            If the git status command fails.
        """
        result = self._run(["status", "--porcelain"], check=True)
        changes = []

        for line in result.stdout.splitlines():
            # Porcelain format: XY filename
            if len(line) < 4 or not line.strip():
                continue

            status_code = line[:2]
            filename = line[3:]

            if status_code == "??":
                if include_untracked:
                    changes.append(FileChange(path=filename, status="N"))
                continue

            status = status_code.strip()
            if not status:
                continue
            changes.append(FileChange(path=filename, status=status[0]))

        return changes

    def get_modified_files(self) -> List[str]:
        """Return the tracked files modified in the working tree.

        Used to annotate recorded changes; a git failure yields an empty list.
        """
        try:
            result = self._run(["diff", "--name-only"], check=True)
        except GitError as exc:
            logger.debug("Could not list modified files: %s", exc)
            return []
        return [line for line in result.stdout.splitlines() if line.strip()]

    def has_uncommitted_changes(
        self,
        recorded_files: Iterable[str] = (),
        ignore: Iterable[str] = (),
    ) -> bool:
        """Return True if the working tree has changes nobody recorded.

        Paths listed in ``recorded_files`` (files captured with recorded
        changes) and ``ignore`` (the tool's own state files) do not count.
        Renamed entries count as covered when either side is covered.
        """
        covered = set(recorded_files) | set(ignore)
        for change in self._uncovered_changes(covered):
            logger.debug("Unrecorded change: %s %s", change.status, change.path)
            return True
        return False

    def has_changes_to_commit(self, ignore: Iterable[str] = ()) -> bool:
        """Return True if anything besides the paths in ``ignore`` would be staged.

        Raises
        ------
        GitError
            If the git status command fails.
        """
        return any(True for _ in self._uncovered_changes(set(ignore)))

    def _uncovered_changes(self, covered) -> Iterator[FileChange]:
        # Renamed entries are covered when either side is.
        for change in self.get_changes(include_untracked=True):
            paths = [part.strip().strip('"') for part in change.path.split(" -> ")]
            if not any(path in covered for path in paths):
                yield change

    # ------------------------------------------------------------------
    # Branch and remote operations
    # ------------------------------------------------------------------
    def get_current_branch(self) -> str:
        """Get the name of the current branch.

        Raises
        ------
        GitError
            If unable to determine the current branch.
        """
        result = self._run(["rev-parse", "--abbrev-ref", "HEAD"], check=True)
        return result.stdout.strip()

    def remote_exists(self, name: str = DEFAULT_REMOTE) -> bool:
        """Return True if a remote called ``name`` is configured."""
        result = self._run(["remote", "get-url", name], check=False)
        return result.returncode == 0

    def branch_exists_on_remote(self, branch: str, remote: str = DEFAULT_REMOTE) -> bool:
        """Check whether ``branch`` exists on ``remote``.

        ``git ls-remote --heads`` prints nothing (exit code 0) when the
        branch does not exist on the remote.
        """
        result = self._run(["ls-remote", "--heads", remote, branch], check=False)
        if result.returncode != 0:
            logger.debug("ls-remote failed for %s/%s: %s", remote, branch, result.stderr.strip())
            return False
        return bool(result.stdout.strip())

    def create_remote_branch(self, branch: str, remote: str = DEFAULT_REMOTE) -> None:
        """Create ``branch`` on ``remote`` from HEAD if it does not exist yet.

        Does nothing when the branch already exists. If the push fails
        because someone else created the branch meanwhile, that also counts
        as success.

        Raises
        ------
        BranchCreationError
            If the branch could not be created.
        """
        if self.branch_exists_on_remote(branch, remote):
            logger.debug("Remote branch %s/%s already exists", remote, branch)
            return

        args = ["push"]
        try:
            if self.get_current_branch() == branch:
                args.append("--set-upstream")
        except GitError as exc:
            logger.debug("Not setting upstream, current branch unknown: %s", exc)
        args += [remote, f"HEAD:refs/heads/{branch}"]

        try:
            self._run(args, check=True)
        except GitError as exc:
            if self.branch_exists_on_remote(branch, remote):
                logger.info("Remote branch %s/%s appeared concurrently", remote, branch)
                return
            raise BranchCreationError(
                f"Could not create branch '{branch}' on '{remote}': {exc}"
            ) from exc

    # ------------------------------------------------------------------
    # Staging, committing, pushing
    # ------------------------------------------------------------------
    def stage_all(self, exclude: Iterable[str] = ()) -> None:
        """Stage every change in the working tree except ``exclude``.

        Raises
        ------
        CommitError
            If staging fails.
        """
        args = ["add", "-A", "--", "."]
        args += [f":(exclude){path}" for path in exclude]
        try:
            self._run(args, check=True)
        except GitError as exc:
            raise CommitError(f"Failed to stage changes: {exc}") from exc

    def commit(self, message: str) -> str:
        """Create a commit with the given message and return its id.

        Multi-line commit messages are supported.

        Raises
        ------
        CommitError
            If there is nothing staged or git rejects the commit.
        """
        if not message or not message.strip():
            raise CommitError("Refusing to commit with an empty message")
        try:
            self._run(["commit", "-m", message], check=True)
        except GitError as exc:
            raise CommitError(f"Failed to commit changes: {exc}") from exc
        try:
            result = self._run(["rev-parse", "HEAD"], check=True)
        except GitError as exc:
            logger.warning("Committed, but could not read the commit id: %s", exc)
            return "HEAD"
        return result.stdout.strip()

    def push(self, branch: str, remote: str = DEFAULT_REMOTE) -> None:
        """Push HEAD to ``branch`` on ``remote``.

        Raises
        ------
        PushError
            If pushing fails (network, authentication, non-fast-forward).
        """
        try:
            self._run(["push", remote, f"HEAD:refs/heads/{branch}"], check=True)
        except GitError as exc:
            raise PushError(f"Failed to push to {remote}/{branch}: {exc}") from exc
