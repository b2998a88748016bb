import json
import tempfile
import unittest
from pathlib import Path

from git_tracker.changes.model import ChangeType
from git_tracker.config.loader import (
    CONFIG_FILENAME,
    DEFAULT_TEMPLATES,
    Config,
    ConfigCorruptError,
    ConfigError,
    ConfigStore,
    load_config,
)


class TestConfigStoreLoad(unittest.TestCase):
    """Tests for loading and creating the configuration file."""

    def test_missing_file_creates_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / CONFIG_FILENAME
            store = ConfigStore(path)
            config = store.load()

            self.assertTrue(path.exists())
            self.assertEqual(config.default_branch, "main")
            self.assertTrue(config.auto_push)
            self.assertEqual(config.commit_templates, DEFAULT_TEMPLATES)

            data = json.loads(path.read_text())
            self.assertEqual(data["default_branch"], "main")
            self.assertIs(data["auto_push"], True)
            self.assertEqual(set(data["commit_templates"]), {t.value for t in ChangeType})
            for template in data["commit_templates"].values():
                self.assertIn("{message}", template)

    def test_load_existing_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / CONFIG_FILENAME
            path.write_text(json.dumps({
                "default_branch": "develop",
                "commit_templates": {"fix": "bugfix: {message}"},
                "auto_push": False,
            }))
            config = ConfigStore(path).load()
            self.assertEqual(config.default_branch, "develop")
            self.assertFalse(config.auto_push)
            self.assertEqual(config.commit_templates, {"fix": "bugfix: {message}"})

    def test_missing_keys_use_defaults_without_rewriting(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / CONFIG_FILENAME
            path.write_text(json.dumps({"auto_push": False}))
            config = ConfigStore(path).load()
            self.assertEqual(config.default_branch, "main")
            self.assertEqual(config.commit_templates, DEFAULT_TEMPLATES)
            self.assertEqual(json.loads(path.read_text()), {"auto_push": False})

    def test_invalid_json_raises_corrupt(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / CONFIG_FILENAME
            path.write_text("{invalid}")
            with self.assertRaises(ConfigCorruptError) as ctx:
                ConfigStore(path).load()
            self.assertIn("delete", str(ctx.exception))

    def test_corrupt_is_a_config_error(self) -> None:
        self.assertTrue(issubclass(ConfigCorruptError, ConfigError))

    def test_non_object_raises_corrupt(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / CONFIG_FILENAME
            path.write_text("[]")
            with self.assertRaises(ConfigCorruptError):
                ConfigStore(path).load()

    def test_wrong_types_raise_corrupt(self) -> None:
        bad_values = [
            {"default_branch": 3},
            {"default_branch": ""},
            {"auto_push": "yes"},
            {"commit_templates": ["feat: {message}"]},
            {"commit_templates": {"fix": 1}},
        ]
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / CONFIG_FILENAME
            for data in bad_values:
                path.write_text(json.dumps(data))
                with self.assertRaises(ConfigCorruptError, msg=str(data)):
                    ConfigStore(path).load()

    def test_unknown_template_keys_are_ignored(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / CONFIG_FILENAME
            path.write_text(json.dumps({
                "commit_templates": {"perf": "perf: {message}", "feat": "feature: {message}", " ": "x"},
            }))
            config = ConfigStore(path).load()
            self.assertEqual(config.commit_templates, {"feature": "feature: {message}"})

    def test_load_config_helper_uses_directory(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            store = load_config(Path(tmp))
            self.assertTrue((Path(tmp) / CONFIG_FILENAME).exists())
            self.assertEqual(store.config.default_branch, "main")


class TestConfigStoreQueries(unittest.TestCase):
    """Tests for template lookup, branch resolution and push decisions."""

    def make_store(self, **kwargs) -> ConfigStore:
        store = ConfigStore(Path("unused.json"))
        store.config = Config(**kwargs)
        return store

    def test_template_for_configured_type(self) -> None:
        store = self.make_store()
        self.assertEqual(store.template_for(ChangeType.FEATURE), "feat: {message}")
        self.assertEqual(store.template_for(ChangeType.FIX), "fix: {message}")

    def test_template_for_missing_type_falls_back(self) -> None:
        store = self.make_store(commit_templates={})
        self.assertEqual(store.template_for(ChangeType.REFACTOR), "refactor: {message}")

    def test_template_without_placeholder_falls_back(self) -> None:
        store = self.make_store(commit_templates={"docs": "documentation update"})
        self.assertEqual(store.template_for(ChangeType.DOCS), "docs: {message}")

    def test_resolved_branch(self) -> None:
        store = self.make_store(default_branch="develop")
        self.assertEqual(store.resolved_branch("release"), "release")
        self.assertEqual(store.resolved_branch(None), "develop")
        self.assertEqual(store.resolved_branch("  "), "develop")

    def test_should_push(self) -> None:
        self.assertTrue(self.make_store(auto_push=True).should_push(False))
        self.assertFalse(self.make_store(auto_push=True).should_push(True))
        self.assertFalse(self.make_store(auto_push=False).should_push(False))
        self.assertFalse(self.make_store(auto_push=False).should_push(True))

    def test_config_dict_round_trip(self) -> None:
        config = Config(default_branch="trunk", commit_templates={"fix": "f: {message}"}, auto_push=False)
        self.assertEqual(Config.from_dict(config.to_dict()), config)


if __name__ == "__main__":
    unittest.main()
