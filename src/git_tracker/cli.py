"""
Command line interface for the git_tracker tool.

This module defines the ``main`` click group which is used as the entry
point when executing the ``gtrack`` command. The commands record changes
(``add``), show them (``list``), turn them into one commit and push it
(``commit``), and deal with changes left over from an interrupted or failed
commit (``recover``). Exit codes are listed below.
"""

from __future__ import annotations

import functools
import logging
from pathlib import Path
from typing import List, Optional

import click

from git_tracker import __version__
from git_tracker.changes.change_log import (
    CHANGES_FILENAME,
    RECOVERY_FILENAME,
    ChangeLog,
    ChangeLogCorruptError,
    EmptyChangeLogError,
    RecoveryPendingError,
)
from git_tracker.changes.model import Change, ChangeType, ValidationError
from git_tracker.config.loader import CONFIG_FILENAME, ConfigError, ConfigStore
from git_tracker.orchestrator import CommitOrchestrator, CommitState
from git_tracker.vcs.git_client import CommitError, GitClient, NotARepositoryError, NothingToCommitError

# Create a module-level logger. Attach a null handler and disable
# propagation to avoid logging errors when the root logger's stream is
# closed (such as during unit tests).
logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------
EXIT_SUCCESS = 0
EXIT_GENERIC_ERROR = 1
EXIT_INVALID_USAGE = 2
EXIT_NO_REPO = 3
EXIT_NO_CHANGES = 4
EXIT_CONFIG_ERROR = 5
EXIT_COMMIT_FAILURE = 6
EXIT_STATE_CORRUPT = 7
EXIT_RECOVERY_PENDING = 8


STATE_MESSAGES = {
    CommitState.VALIDATED: "Repository and recorded changes checked",
    CommitState.MESSAGE_READY: "Commit message prepared",
    CommitState.COMMITTED: "Changes committed",
    CommitState.BRANCH_READY: "Remote branch ready",
    CommitState.PUSHED: "Pushed to remote",
}


# ---------------------------------------------------------------------------
# Status display utilities
# ---------------------------------------------------------------------------

def print_info(message: str, indent: int = 0):
    """Print an info message."""
    prefix = "  " * indent
    click.echo(f"{prefix}ℹ {message}", err=False)


def print_success(message: str, indent: int = 0):
    """Print a success message."""
    prefix = "  " * indent
    click.echo(f"{prefix}✓ {message}", err=False)


def print_warning(message: str, indent: int = 0):
    """Print a warning message."""
    prefix = "  " * indent
    click.echo(f"{prefix}⚠ {message}", err=False)


def print_error(message: str, indent: int = 0):
    """Print an error message."""
    prefix = "  " * indent
    click.echo(f"{prefix}✗ {message}", err=True)


def print_summary_box(title: str, items: List[str]):
    """Print a formatted summary box."""
    max_width = max(len(title), max(len(item) for item in items) if items else 0)
    box_width = min(max_width + 4, 60)

    click.echo(f"\n┌{'─' * box_width}┐")
    click.echo(f"│ {title.ljust(box_width - 2)}│")
    click.echo(f"├{'─' * box_width}┤")
    for item in items:
        click.echo(f"│ {item.ljust(box_width - 2)}│")
    click.echo(f"└{'─' * box_width}┘")


def print_change(index: int, change: Change, indent: int = 0):
    """Print one recorded change as shown by ``gtrack list``."""
    prefix = "  " * indent
    click.echo(f"{prefix}{index}. [{change.timestamp}] {change.change_type.value}: {change.description}")
    if change.affected_files:
        click.echo(f"{prefix}   Files: {', '.join(change.affected_files)}")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def find_state_dir(start: Path) -> Path:
    """Return the directory holding the config and change files.

    This is the repository root, or ``start`` outside a repository.
    """
    return GitClient.find_repo_root(start) or start


def state_file_names() -> List[str]:
    """The tool's own files, relative to the state directory."""
    return [CONFIG_FILENAME, CHANGES_FILENAME, RECOVERY_FILENAME]


def open_change_log(state_dir: Path) -> ChangeLog:
    """Open the change log, exiting with a diagnostic if it is unreadable."""
    try:
        change_log = ChangeLog.in_directory(state_dir)
    except ChangeLogCorruptError as exc:
        print_error(f"Change log error: {exc}")
        raise click.exceptions.Exit(EXIT_STATE_CORRUPT)
    if change_log.has_recovery():
        print_warning(
            f"Changes from an unfinished commit are stored in {change_log.recovery_path.name}; "
            f"run 'gtrack recover' to restore or discard them"
        )
    return change_log


def open_config(state_dir: Path) -> ConfigStore:
    """Load the configuration, exiting with a diagnostic if it is corrupt."""
    store = ConfigStore.in_directory(state_dir)
    try:
        store.load()
    except ConfigError as exc:
        print_error(f"Configuration error: {exc}")
        raise click.exceptions.Exit(EXIT_CONFIG_ERROR)
    return store


def command_boundary(func):
    """Turn unexpected errors in a command into a diagnostic and exit code 1."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (click.exceptions.Exit, click.ClickException, click.Abort):
            # Click uses its own exceptions; re-raise to let Click handle them
            raise
        except Exception as exc:
            logging.exception("Unhandled error: %s", exc)
            print_error(f"Unexpected error: {exc}")
            raise click.exceptions.Exit(EXIT_GENERIC_ERROR)

    return wrapper


class AliasedGroup(click.Group):
    """Click group that accepts single-letter aliases for its commands."""

    aliases = {"a": "add", "c": "commit", "l": "list"}

    def get_command(self, ctx, cmd_name):
        return super().get_command(ctx, self.aliases.get(cmd_name, cmd_name))

    def resolve_command(self, ctx, args):
        # Report the full command name even when an alias was typed.
        _, cmd, args = super().resolve_command(ctx, args)
        return cmd.name if cmd else None, cmd, args


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

@click.group(cls=AliasedGroup)
@click.option("--verbose", is_flag=True, help="Enable verbose (debug) output.")
@click.version_option(version=__version__, prog_name="gtrack")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """Record typed notes about your work and commit them as one structured commit."""
    # Configure logging. Use force=True to ensure handlers are reconfigured
    # on subsequent invocations (important for tests).
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
        force=True,
    )
    ctx.ensure_object(dict)
    ctx.obj.setdefault("cwd", Path.cwd())


@main.command("add")
@click.argument("message", required=False)
@click.option("-m", "--message", "message_option", default=None, help="Change description.")
@click.option(
    "-t",
    "--type",
    "change_type",
    default=ChangeType.FEATURE.value,
    show_default=True,
    help=f"Type of change ({', '.join(t.value for t in ChangeType)}).",
)
@click.pass_context
@command_boundary
def add_command(
    ctx: click.Context,
    message: Optional[str],
    message_option: Optional[str],
    change_type: str,
) -> None:
    """Record a change.

    The description is given either as MESSAGE or with -m.
    """
    if message is not None and message_option is not None and message != message_option:
        raise click.UsageError("Give the description either as an argument or with -m, not both.")
    description = message_option if message_option is not None else message
    if description is None:
        raise click.UsageError("Missing change description.")

    state_dir = find_state_dir(ctx.obj["cwd"])
    change_log = open_change_log(state_dir)

    try:
        gateway = GitClient(state_dir)
        files = gateway.get_modified_files() if gateway.is_repository() else []
        change = Change.create(description, change_type, affected_files=files)
        change_log.append(change)
    except ValidationError as exc:
        print_error(str(exc))
        raise click.exceptions.Exit(EXIT_INVALID_USAGE)

    logger.debug("Recorded change %s in %s", change, change_log.path)
    print_success(f"Recorded {change.change_type.value}: {change.description}")
    if change.affected_files:
        print_info(f"Modified files: {', '.join(change.affected_files)}", indent=1)


@main.command("list")
@click.pass_context
@command_boundary
def list_command(ctx: click.Context) -> None:
    """List recorded changes."""
    change_log = open_change_log(find_state_dir(ctx.obj["cwd"]))
    changes = change_log.all()
    if not changes:
        click.echo("No changes recorded yet")
        return

    click.echo("\nRecorded changes:")
    for index, change in enumerate(changes, 1):
        print_change(index, change)


@main.command("commit")
@click.option("-b", "--branch", default=None, help="Target branch (defaults to the configured branch).")
@click.option("--no-push", is_flag=True, help="Skip pushing changes.")
@click.pass_context
@command_boundary
def commit_command(ctx: click.Context, branch: Optional[str], no_push: bool) -> None:
    """Commit all recorded changes and push them."""
    cwd: Path = ctx.obj["cwd"]
    gateway = GitClient(cwd)

    # Nothing is created or modified outside a repository.
    if not gateway.is_repository():
        print_error("Not in a git repository")
        raise click.exceptions.Exit(EXIT_NO_REPO)

    state_dir = find_state_dir(cwd)
    gateway = GitClient(state_dir)
    config = open_config(state_dir)
    change_log = open_change_log(state_dir)

    def report(state: CommitState) -> None:
        if state in STATE_MESSAGES:
            print_success(STATE_MESSAGES[state])

    orchestrator = CommitOrchestrator(
        change_log,
        config,
        gateway,
        state_files=state_file_names(),
        observer=report,
    )

    try:
        outcome = orchestrator.run(branch=branch, no_push=no_push)
    except NotARepositoryError as exc:
        print_error(str(exc))
        raise click.exceptions.Exit(EXIT_NO_REPO)
    except (EmptyChangeLogError, NothingToCommitError) as exc:
        print_error(str(exc))
        raise click.exceptions.Exit(EXIT_NO_CHANGES)
    except RecoveryPendingError as exc:
        print_error(str(exc))
        raise click.exceptions.Exit(EXIT_RECOVERY_PENDING)
    except ChangeLogCorruptError as exc:
        print_error(f"Change log error: {exc}")
        raise click.exceptions.Exit(EXIT_STATE_CORRUPT)
    except CommitError as exc:
        print_error(str(exc))
        if exc.commit_message:
            click.echo("  The following message was not committed:", err=True)
            for line in exc.commit_message.splitlines():
                click.echo(f"    {line}", err=True)
        print_info(
            f"{len(exc.changes)} drained change(s) are kept in {change_log.recovery_path.name}; "
            f"run 'gtrack recover' to record them again",
            indent=1,
        )
        raise click.exceptions.Exit(EXIT_COMMIT_FAILURE)

    for warning in outcome.warnings:
        print_warning(warning)
    if outcome.push_requested and not outcome.pushed:
        print_info("Your commit is saved locally. To push later, run:", indent=1)
        print_info(f"git push origin HEAD:{outcome.branch}", indent=2)

    summary_items = [
        f"Commit: {outcome.commit_id}",
        f"Branch: {outcome.branch}",
        f"Changes: {len(outcome.changes)}",
        f"Result: {outcome.summary}",
    ]
    if outcome.branch_created:
        summary_items.append(f"Created remote branch: {outcome.branch}")
    print_summary_box("Summary", summary_items)


@main.command("recover")
@click.option("--discard", is_flag=True, help="Delete the leftover changes instead of restoring them.")
@click.pass_context
@command_boundary
def recover_command(ctx: click.Context, discard: bool) -> None:
    """Restore changes left over from an unfinished commit."""
    state_dir = find_state_dir(ctx.obj["cwd"])
    try:
        change_log = ChangeLog.in_directory(state_dir)
        if not change_log.has_recovery():
            click.echo("Nothing to recover")
            return

        if discard:
            count = change_log.discard_recovery()
            print_warning(f"Discarded {count} leftover change(s)")
            return

        leftovers = change_log.recovered()
        click.echo("\nLeftover changes:")
        for index, change in enumerate(leftovers, 1):
            print_change(index, change, indent=1)
        count = change_log.restore_recovery()
    except ChangeLogCorruptError as exc:
        print_error(f"Change log error: {exc}")
        raise click.exceptions.Exit(EXIT_STATE_CORRUPT)
    print_success(f"Restored {count} change(s) to the change log")


if __name__ == "__main__":  # pragma: no cover
    main(prog_name="gtrack")
