#!/usr/bin/env python
"""
Thin wrapper script to invoke the git_tracker CLI.

Running ``python gtrack.py`` is equivalent to running the ``gtrack``
console script installed via ``pyproject.toml``.
"""

from git_tracker.cli import main


if __name__ == "__main__":
    main(prog_name="gtrack")
