"""Core gitutils behavior with subprocess patched."""


from unittest.mock import patch
import subprocess
import unittest

from drift import gitutils
from drift.error_model import GitBranchUnavailable


def _cp(rc: int = 0, out: str = "", err: str = "") -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(["git"], rc, out, err)


class RunGitTests(unittest.TestCase):
    def test_success_strips_output(self) -> None:
        with patch("drift.gitutils.subprocess.run",
                   return_value=_cp(0, " feature/x\n")):
            self.assertEqual(gitutils.run_git(["status"], "."),
                             (0, "feature/x"))

    def test_failure_prefers_stderr(self) -> None:
        with patch("drift.gitutils.subprocess.run",
                   return_value=_cp(128, "", "fatal: not a git repo\n")):
            rc, out = gitutils.run_git(["status"], ".")
        self.assertEqual(rc, 128)
        self.assertEqual(out, "fatal: not a git repo")

    def test_missing_git(self) -> None:
        with patch("drift.gitutils.subprocess.run",
                   side_effect=FileNotFoundError()):
            self.assertEqual(gitutils.run_git(["status"], ".")[0], 127)

    def test_timeout(self) -> None:
        with patch("drift.gitutils.subprocess.run",
                   side_effect=subprocess.TimeoutExpired("git", 15)):
            self.assertEqual(gitutils.run_git(["status"], ".")[0], 124)


class CurrentBranchTests(unittest.TestCase):
    def test_named_branch(self) -> None:
        with patch("drift.gitutils.subprocess.run",
                   return_value=_cp(0, "checkout-flow\n")) as run:
            self.assertEqual(gitutils.current_branch("/repo"),
                             "checkout-flow")
        self.assertEqual(run.call_args.args[0],
                         ["git", "rev-parse", "--abbrev-ref", "HEAD"])
        self.assertEqual(run.call_args.kwargs["cwd"], "/repo")

    def test_detached_head_returns_short_hash(self) -> None:
        with patch("drift.gitutils.subprocess.run",
                   side_effect=[_cp(0, "HEAD\n"), _cp(0, "a1b2c3d\n")]):
            self.assertEqual(gitutils.current_branch("."), "a1b2c3d")

    def test_outside_repository(self) -> None:
        with patch("drift.gitutils.subprocess.run",
                   return_value=_cp(128, "", "fatal: not a git repository")):
            with self.assertRaises(GitBranchUnavailable) as ctx:
                gitutils.current_branch(".")
        self.assertIn("not a git repository", ctx.exception.message)


if __name__ == "__main__":
    unittest.main()
