"""
Commit orchestration for git_tracker.

:class:`CommitOrchestrator` turns the recorded changes into one commit and,
when asked to, pushes it. It walks the states

    START -> VALIDATED -> MESSAGE_READY -> COMMITTED -> BRANCH_READY -> PUSHED -> DONE

Failures before the commit (not a repository, nothing recorded, a clean
working tree, a pending recovery slot, a failed commit) abort the run and
raise. Only the commit itself can fail after the log was drained. Failures
after the commit (no remote, branch creation, push) never undo the commit;
they are collected as warnings and the run still reaches DONE.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

from git_tracker.changes.change_log import ChangeLog, EmptyChangeLogError, RecoveryPendingError
from git_tracker.changes.model import Change
from git_tracker.config.loader import ConfigStore
from git_tracker.message.synthesizer import synthesize
from git_tracker.vcs.git_client import (
    DEFAULT_REMOTE,
    BranchCreationError,
    CommitError,
    GitClient,
    GitError,
    NotARepositoryError,
    NothingToCommitError,
    PushError,
    RemoteMissingError,
)


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


class CommitState(str, Enum):
    """States of a single commit run."""

    START = "start"
    VALIDATED = "validated"
    MESSAGE_READY = "message_ready"
    COMMITTED = "committed"
    BRANCH_READY = "branch_ready"
    PUSHED = "pushed"
    DONE = "done"
    ABORTED = "aborted"


@dataclass
class CommitOutcome:
    """What a commit run did."""

    branch: str = ""
    message: str = ""
    commit_id: Optional[str] = None
    changes: Tuple[Change, ...] = ()
    push_requested: bool = False
    branch_created: bool = False
    pushed: bool = False
    warnings: List[str] = field(default_factory=list)
    states: List[CommitState] = field(default_factory=list)

    @property
    def state(self) -> CommitState:
        return self.states[-1] if self.states else CommitState.START

    @property
    def summary(self) -> str:
        if self.pushed:
            return "committed and pushed"
        return "committed only"


class CommitOrchestrator:
    """Drive the recorded changes through commit and optional push.

    Parameters
    ----------
    change_log : ChangeLog
        The pending changes; drained once the commit starts.
    config : ConfigStore
        Loaded configuration (templates, default branch, auto push).
    gateway : GitClient
        Repository access.
    state_files : Sequence[str]
        Paths of the tool's own files, relative to the repository root.
        They are never staged and never count as unrecorded work.
    observer : Callable[[CommitState], None], optional
        Called every time a state is entered.
    remote : str
        Remote to push to.
    """

    def __init__(
        self,
        change_log: ChangeLog,
        config: ConfigStore,
        gateway: GitClient,
        state_files: Sequence[str] = (),
        observer: Optional[Callable[[CommitState], None]] = None,
        remote: str = DEFAULT_REMOTE,
    ) -> None:
        self.change_log = change_log
        self.config = config
        self.gateway = gateway
        self.state_files = list(state_files)
        self.observer = observer
        self.remote = remote

    def _enter(self, outcome: CommitOutcome, state: CommitState) -> None:
        outcome.states.append(state)
        logger.debug("Commit state: %s", state.value)
        if self.observer is not None:
            self.observer(state)

    def _warn(self, outcome: CommitOutcome, message: str) -> None:
        logger.warning(message)
        outcome.warnings.append(message)

    def run(self, branch: Optional[str] = None, no_push: bool = False) -> CommitOutcome:
        """Commit every recorded change and push unless told not to.

        Raises
        ------
        NotARepositoryError
            If the working directory is not a Git repository.
        EmptyChangeLogError
            If no changes are recorded.
        NothingToCommitError
            If the working tree has nothing to commit besides the state files.
        RecoveryPendingError
            If an earlier drain was never confirmed.
        CommitError
            If staging or committing failed; carries the message and the
            drained changes, which stay in the recovery slot.
        """
        outcome = CommitOutcome()
        self._enter(outcome, CommitState.START)

        try:
            self._validate(outcome)
            self._prepare(outcome, branch)
            self._commit(outcome)
        except (EmptyChangeLogError, RecoveryPendingError, GitError):
            self._enter(outcome, CommitState.ABORTED)
            raise

        outcome.push_requested = self.config.should_push(no_push)
        if outcome.push_requested and self._prepare_branch(outcome):
            self._push(outcome)

        self._enter(outcome, CommitState.DONE)
        return outcome

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def _validate(self, outcome: CommitOutcome) -> None:
        if not self.gateway.is_repository():
            raise NotARepositoryError(f"{self.gateway.workdir} is not inside a Git repository")
        if self.change_log.has_recovery():
            raise RecoveryPendingError(
                f"Unconfirmed changes from an earlier commit are stored in "
                f"{self.change_log.recovery_path}. Run 'gtrack recover' first."
            )
        if not self.change_log:
            raise EmptyChangeLogError("No changes recorded; use 'gtrack add' first")
        if not self.gateway.has_changes_to_commit(ignore=self.state_files):
            raise NothingToCommitError(
                "Nothing to commit: the working tree is clean. Recorded changes were kept."
            )

        recorded = ChangeLog.affected_files(self.change_log.all())
        try:
            if self.gateway.has_uncommitted_changes(recorded, ignore=self.state_files):
                self._warn(
                    outcome,
                    "The working tree has changes that were not recorded; they will be committed too",
                )
        except GitError as exc:
            self._warn(outcome, f"Could not inspect the working tree: {exc}")
        self._enter(outcome, CommitState.VALIDATED)

    def _prepare(self, outcome: CommitOutcome, branch: Optional[str]) -> None:
        outcome.changes = self.change_log.drain()
        outcome.message = synthesize(outcome.changes, self.config.template_for)
        outcome.branch = self.config.resolved_branch(branch)
        self._enter(outcome, CommitState.MESSAGE_READY)

    def _commit(self, outcome: CommitOutcome) -> None:
        try:
            self.gateway.stage_all(exclude=self.state_files)
            outcome.commit_id = self.gateway.commit(outcome.message)
        except CommitError as exc:
            exc.commit_message = outcome.message
            exc.changes = outcome.changes
            logger.error("Commit failed; drained changes kept in %s", self.change_log.recovery_path)
            raise
        self.change_log.clear_recovery()
        self._enter(outcome, CommitState.COMMITTED)

    def _prepare_branch(self, outcome: CommitOutcome) -> bool:
        """Make sure the target branch exists remotely; False skips the push."""
        if not self.gateway.remote_exists(self.remote):
            error = RemoteMissingError(f"Remote '{self.remote}' not found; push skipped")
            self._warn(outcome, str(error))
            return False

        try:
            current = self.gateway.get_current_branch()
        except GitError as exc:
            logger.debug("Could not determine the current branch: %s", exc)
            current = None
        if current and current != outcome.branch:
            self._warn(
                outcome,
                f"Committed on '{current}' but pushing HEAD to '{outcome.branch}'",
            )

        if not self.gateway.branch_exists_on_remote(outcome.branch, self.remote):
            try:
                self.gateway.create_remote_branch(outcome.branch, self.remote)
            except BranchCreationError as exc:
                self._warn(outcome, f"{exc}; push skipped")
                return False
            outcome.branch_created = True
        self._enter(outcome, CommitState.BRANCH_READY)
        return True

    def _push(self, outcome: CommitOutcome) -> None:
        try:
            self.gateway.push(outcome.branch, self.remote)
        except PushError as exc:
            self._warn(outcome, f"{exc}; the commit is saved locally")
            return
        outcome.pushed = True
        self._enter(outcome, CommitState.PUSHED)
