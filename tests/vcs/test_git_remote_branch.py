import unittest
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import patch

from git_tracker.vcs.git_client import BranchCreationError, GitClient, GitError


class DummyProc(SimpleNamespace):
    returncode: int = 0
    stdout: str = ""
    stderr: str = ""


class TestRemoteBranchCreation(unittest.TestCase):
    """Remote branch creation and pushing, with GitClient._run replaced."""

    def run_with(self, responses):
        calls = []

        def fake_run(self, args, check=True):
            calls.append(args)
            for prefix, response in responses:
                if args[: len(prefix)] == prefix:
                    if isinstance(response, Exception):
                        raise response
                    if callable(response):
                        return response()
                    return response
            return DummyProc(returncode=0, stdout="", stderr="")

        return calls, fake_run

    def test_existing_branch_is_noop(self):
        calls, fake_run = self.run_with([(["ls-remote"], DummyProc(returncode=0, stdout="abc\trefs/heads/main\n"))])
        with patch.object(GitClient, "_run", autospec=True, side_effect=fake_run):
            GitClient(Path("/repo")).create_remote_branch("main")
        self.assertEqual(calls, [["ls-remote", "--heads", "origin", "main"]])

    def test_creates_branch_with_upstream_when_current(self):
        calls, fake_run = self.run_with([
            (["ls-remote"], DummyProc(returncode=0, stdout="")),
            (["rev-parse", "--abbrev-ref"], DummyProc(returncode=0, stdout="feature\n")),
        ])
        with patch.object(GitClient, "_run", autospec=True, side_effect=fake_run):
            GitClient(Path("/repo")).create_remote_branch("feature")
        self.assertIn(["push", "--set-upstream", "origin", "HEAD:refs/heads/feature"], calls)

    def test_creates_branch_without_upstream_when_other_branch(self):
        calls, fake_run = self.run_with([
            (["ls-remote"], DummyProc(returncode=0, stdout="")),
            (["rev-parse", "--abbrev-ref"], DummyProc(returncode=0, stdout="main\n")),
        ])
        with patch.object(GitClient, "_run", autospec=True, side_effect=fake_run):
            GitClient(Path("/repo")).create_remote_branch("release")
        self.assertIn(["push", "origin", "HEAD:refs/heads/release"], calls)

    def test_concurrently_created_branch_counts_as_success(self):
        answers = iter([DummyProc(stdout=""), DummyProc(stdout="abc\trefs/heads/feature\n")])
        calls, fake_run = self.run_with([
            (["ls-remote"], lambda: next(answers)),
            (["rev-parse", "--abbrev-ref"], DummyProc(stdout="feature\n")),
            (["push"], GitError("rejected: already exists")),
        ])
        with patch.object(GitClient, "_run", autospec=True, side_effect=fake_run):
            GitClient(Path("/repo")).create_remote_branch("feature")
        self.assertEqual([c[0] for c in calls].count("ls-remote"), 2)

    def test_failed_creation_raises(self):
        calls, fake_run = self.run_with([
            (["ls-remote"], DummyProc(stdout="")),
            (["rev-parse", "--abbrev-ref"], DummyProc(stdout="feature\n")),
            (["push"], GitError("Permission denied")),
        ])
        with patch.object(GitClient, "_run", autospec=True, side_effect=fake_run):
            with self.assertRaises(BranchCreationError) as ctx:
                GitClient(Path("/repo")).create_remote_branch("feature")
        self.assertIn("Permission denied", str(ctx.exception))

    def test_push_targets_branch_on_origin(self):
        calls, fake_run = self.run_with([])
        with patch.object(GitClient, "_run", autospec=True, side_effect=fake_run):
            GitClient(Path("/repo")).push("main")
        self.assertEqual(calls, [["push", "origin", "HEAD:refs/heads/main"]])


if __name__ == "__main__":
    unittest.main()
