import os
from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def isolate_working_directory(tmp_path: Path):
    """Run every test from an empty temporary directory.

    The CLI stores its config and change log in the current directory when
    it is not inside a repository, so tests must never run from the
    project checkout.
    """
    workdir = tmp_path / "work"
    workdir.mkdir()
    previous = Path.cwd()
    os.chdir(workdir)
    try:
        yield workdir
    finally:
        os.chdir(previous)
