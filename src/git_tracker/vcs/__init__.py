"""
Version control integration.

:class:`GitClient` wraps the ``git`` executable for repository checks,
staging, committing, remote branch creation and pushing.
"""

from .git_client import (  # noqa: F401
    BranchCreationError,
    CommitError,
    GitClient,
    GitError,
    NotARepositoryError,
    PushError,
    RemoteMissingError,
)
