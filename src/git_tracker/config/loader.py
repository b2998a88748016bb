"""
Configuration loader for git_tracker.

The tool keeps its settings in a JSON file named ``.gt-config.json`` in the
state directory (the repository root, or the current directory outside a
repository). The file is created with defaults on first use::

    {
      "default_branch": "main",
      "commit_templates": {"feature": "feat: {message}", ...},
      "auto_push": true
    }

A file that cannot be read or has values of the wrong type raises
:class:`ConfigCorruptError`; a missing file never does.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from git_tracker.changes.change_log import write_json_atomic
from git_tracker.changes.model import ChangeType, ValidationError


logger = logging.getLogger(__name__)
# Attach a null handler to avoid "No handler" warnings or logging errors in
# environments where the root logger may be closed. When the CLI configures
# logging, handlers are installed on the root logger.
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


CONFIG_FILENAME = ".gt-config.json"
PLACEHOLDER = "{message}"

DEFAULT_TEMPLATES: Dict[str, str] = {
    ChangeType.FEATURE.value: "feat: {message}",
    ChangeType.FIX.value: "fix: {message}",
    ChangeType.DOCS.value: "docs: {message}",
    ChangeType.STYLE.value: "style: {message}",
    ChangeType.REFACTOR.value: "refactor: {message}",
    ChangeType.TEST.value: "test: {message}",
    ChangeType.CHORE.value: "chore: {message}",
}


class ConfigError(Exception):
    """Raised when the configuration cannot be loaded."""

    pass


class ConfigCorruptError(ConfigError):
    """Raised when the configuration file is unreadable or malformed."""

    pass


def fallback_template(change_type: ChangeType) -> str:
    """Generic template used when a change type has no usable template."""
    return f"{ChangeType.parse(change_type).value}: {PLACEHOLDER}"


@dataclass
class Config:
    """Process-wide settings, read-only once loaded."""

    default_branch: str = "main"
    commit_templates: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_TEMPLATES))
    auto_push: bool = True

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "default_branch": self.default_branch,
            "commit_templates": dict(self.commit_templates),
            "auto_push": self.auto_push,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], source: str = "config") -> "Config":
        """Create a Config from parsed JSON, filling missing keys with defaults.

        Raises
        ------
        ConfigCorruptError
            If a key is present with a value of the wrong type.
        """
        defaults = cls()

        branch = data.get("default_branch", defaults.default_branch)
        if not isinstance(branch, str) or not branch.strip():
            raise ConfigCorruptError(f"'default_branch' in {source} must be a non-empty string")

        auto_push = data.get("auto_push", defaults.auto_push)
        if not isinstance(auto_push, bool):
            raise ConfigCorruptError(f"'auto_push' in {source} must be true or false")

        raw_templates = data.get("commit_templates", defaults.commit_templates)
        if not isinstance(raw_templates, dict):
            raise ConfigCorruptError(f"'commit_templates' in {source} must be an object")

        templates: Dict[str, str] = {}
        for key, template in raw_templates.items():
            if not isinstance(template, str):
                raise ConfigCorruptError(f"Template for '{key}' in {source} must be a string")
            if not key.strip():
                logger.warning("Ignoring template with a blank change type")
                continue
            try:
                change_type = ChangeType.parse(key)
            except ValidationError:
                logger.warning("Ignoring template for unknown change type '%s'", key)
                continue
            templates[change_type.value] = template

        return cls(default_branch=branch.strip(), commit_templates=templates, auto_push=auto_push)


class ConfigStore:
    """Loads the configuration file and answers questions about it."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self.config = Config()

    @classmethod
    def in_directory(cls, state_dir: Path) -> "ConfigStore":
        return cls(state_dir / CONFIG_FILENAME)

    def load(self) -> Config:
        """Read the configuration, creating it with defaults if it is missing.

        Raises
        ------
        ConfigCorruptError
            If the file exists but cannot be read or parsed.
        """
        if not self.path.exists():
            self.config = Config()
            write_json_atomic(self.path, self.config.to_dict())
            logger.info("Created default configuration at %s", self.path)
            return self.config

        try:
            content = self.path.read_text(encoding="utf-8")
            data = json.loads(content)
        except (OSError, json.JSONDecodeError) as exc:
            logger.error("Failed to read or parse configuration file: %s", exc)
            raise ConfigCorruptError(
                f"Invalid configuration in {self.path}: {exc}. "
                f"Fix the file or delete it to restore the defaults."
            ) from exc

        if not isinstance(data, dict):
            raise ConfigCorruptError(
                f"{self.path} must contain a JSON object. "
                f"Fix the file or delete it to restore the defaults."
            )

        self.config = Config.from_dict(data, source=str(self.path))
        logger.debug("Loaded configuration from: %s", self.path)
        logger.debug("Configuration data: %s", self.config)
        return self.config

    def template_for(self, change_type: ChangeType) -> str:
        """Return the template for ``change_type``, or the generic fallback.

        A configured template without the ``{message}`` placeholder would
        drop the description, so it is treated as missing.
        """
        key = ChangeType.parse(change_type).value
        template = self.config.commit_templates.get(key)
        if template is None:
            logger.debug("No template configured for '%s'; using fallback", key)
            return fallback_template(change_type)
        if PLACEHOLDER not in template:
            logger.warning("Template for '%s' lacks %s; using fallback", key, PLACEHOLDER)
            return fallback_template(change_type)
        return template

    def resolved_branch(self, explicit_branch: Optional[str] = None) -> str:
        """Return ``explicit_branch`` when given, otherwise the default branch."""
        if explicit_branch and explicit_branch.strip():
            return explicit_branch.strip()
        return self.config.default_branch

    def should_push(self, no_push: bool = False) -> bool:
        """Return True if the commit should be pushed."""
        return self.config.auto_push and not no_push


def load_config(state_dir: Optional[Path] = None) -> ConfigStore:
    """Load the configuration stored in ``state_dir`` (default: cwd)."""
    store = ConfigStore.in_directory(state_dir or Path.cwd())
    store.load()
    return store
