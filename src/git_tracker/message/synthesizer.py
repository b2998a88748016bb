"""
Commit message synthesis from recorded changes.

One commit covers every pending change. A single change becomes its
type's template with the description filled in::

    fix: Fix mobile login

Several changes become a summary line built from the most recent change,
a blank line, and one bullet per change in recording order::

    fix: Fix mobile login

    - feat: Add profile page
    - fix: Fix mobile login

The output depends only on the changes and the templates, so the same log
always yields the same message.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Sequence

from git_tracker.changes.model import Change, ChangeType
from git_tracker.config.loader import PLACEHOLDER, fallback_template


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


TemplateLookup = Callable[[ChangeType], str]


def render(change: Change, template_lookup: TemplateLookup) -> str:
    """Fill the change's template with its description.

    The placeholder is replaced literally so braces in descriptions are kept
    as typed.
    """
    template = template_lookup(change.change_type) or ""
    if PLACEHOLDER not in template:
        logger.warning(
            "Template %r for '%s' has no %s placeholder; using fallback",
            template,
            change.change_type.value,
            PLACEHOLDER,
        )
        template = fallback_template(change.change_type)
    return template.replace(PLACEHOLDER, change.description)


def synthesize(changes: Sequence[Change], template_lookup: TemplateLookup) -> str:
    """Build one commit message covering all ``changes``.

    Parameters
    ----------
    changes : Sequence[Change]
        Pending changes, oldest first. Must not be empty.
    template_lookup : Callable[[ChangeType], str]
        Returns the template for a change type, e.g.
        :meth:`ConfigStore.template_for`.

    Raises
    ------
    ValueError
        If ``changes`` is empty.
    """
    if not changes:
        raise ValueError("Cannot synthesize a commit message without changes")

    lines = [render(change, template_lookup) for change in changes]
    if len(lines) == 1:
        return lines[0]

    # The latest change names the commit.
    summary = lines[-1]
    body: List[str] = [f"- {line}" for line in lines]
    return summary + "\n\n" + "\n".join(body)
