"""
git_tracker: record intended changes, then commit and push them as one.

The ``gtrack`` command lives in :mod:`git_tracker.cli`. Recorded changes are
kept by :mod:`git_tracker.changes`, settings by :mod:`git_tracker.config`,
and :class:`git_tracker.orchestrator.CommitOrchestrator` turns them into a
commit through :class:`git_tracker.vcs.git_client.GitClient`.
"""

from pathlib import Path

from git_tracker._version import package_version

__all__ = ["__version__", "__base_version__"]

# Bumped by hand; the minor part comes from the v<major>.<minor> release tags.
__base_version__ = "0"

# gtrack runs inside other people's repositories, so the version must come
# from the checkout holding this package and never from the working directory.
__version__ = package_version(__base_version__, Path(__file__).resolve().parent)
