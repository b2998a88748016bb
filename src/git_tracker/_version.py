"""
Dynamic version generation for git_tracker.

The version string is ``{major}.{minor}.dev0+g{sha}`` where the major part
is fixed in ``__init__.py``, the minor part is the highest ``v{major}.{minor}``
release tag and ``sha`` is the short hash of HEAD. Outside a checkout the
local identifier is dropped.
"""

import subprocess
from pathlib import Path
from typing import List, Optional


def _git_output(args: List[str], repo_path: Optional[Path] = None) -> str:
    """Run a read-only git command and return its stripped stdout.

    Raises ``subprocess.CalledProcessError`` or ``FileNotFoundError``.
    """
    cmd = ["git"]
    if repo_path:
        cmd += ["-C", str(repo_path)]
    result = subprocess.run(
        cmd + args,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


def get_git_commit_sha(repo_path: Optional[Path] = None) -> str:
    """Return the 7 character sha of HEAD, or ``'unknown'``."""
    try:
        return _git_output(["rev-parse", "--short=7", "HEAD"], repo_path)
    except (subprocess.CalledProcessError, FileNotFoundError):
        return "unknown"


def parse_minor_version(tag: str) -> Optional[int]:
    """Return the minor number of a ``v{major}.{minor}`` tag, if it is one."""
    if not tag.startswith("v"):
        return None
    parts = tag[1:].split(".")
    if len(parts) < 2:
        return None
    try:
        return int(parts[1])
    except ValueError:
        return None


def get_minor_version_from_tags(repo_path: Optional[Path] = None) -> int:
    """Return the highest minor version among the release tags (0 if none)."""
    try:
        output = _git_output(["tag", "-l", "v*"], repo_path)
    except (subprocess.CalledProcessError, FileNotFoundError):
        return 0

    minors = [parse_minor_version(tag) for tag in output.splitlines() if tag]
    minors = [minor for minor in minors if minor is not None]
    return max(minors) if minors else 0


def generate_version(base_version: str, repo_path: Optional[Path] = None) -> str:
    """Build the PEP 440 version string for ``base_version``."""
    minor = get_minor_version_from_tags(repo_path)
    commit_sha = get_git_commit_sha(repo_path)
    if commit_sha == "unknown":
        return f"{base_version}.{minor}.dev0"
    return f"{base_version}.{minor}.dev0+g{commit_sha}"


def source_checkout(package_dir: Path) -> Optional[Path]:
    """Return the repository root of a ``src/`` checkout holding ``package_dir``.

    An installed copy (site-packages) has no such root, even when the
    virtual environment itself sits inside some other repository.
    """
    root = package_dir.parents[1]
    if (root / ".git").exists() and (root / "src" / package_dir.name) == package_dir:
        return root
    return None


def package_version(base_version: str, package_dir: Path) -> str:
    """Version of the package in ``package_dir``, read from its own checkout only."""
    checkout = source_checkout(package_dir)
    if checkout is None:
        return f"{base_version}.0.dev0"
    return generate_version(base_version, checkout)
