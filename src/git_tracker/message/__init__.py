"""
Commit message synthesis.

See :mod:`git_tracker.message.synthesizer`.
"""

from .synthesizer import render, synthesize  # noqa: F401
