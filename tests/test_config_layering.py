"""Tests for layered config precedence (default < yaml < local < git < env < cli)."""
from __future__ import annotations

from pathlib import Path
from unittest.mock import patch
import tempfile
import unittest
import os

from drift import config
from drift.cli import _build_parser


def _write(root: Path, name: str, text: str) -> Path:
    path = root / name
    path.write_text(text, encoding="utf-8")
    return path


class ConfigLayeringTests(unittest.TestCase):
    def _merge(self, argv: list[str], git: dict[str, str] | None = None,
               env: dict[str, str] | None = None):
        args = _build_parser().parse_args(argv)
        with patch("drift.config._load_git_overrides",
                   return_value=dict(git or {})):
            with patch.dict(os.environ, dict(env or {}), clear=True):
                return config.apply_layered_config(args)

    def test_defaults_without_any_layer(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            missing = str(Path(tmp) / ".drift.yaml")
            merged = self._merge(["--config", missing, "env", "show"])
        self.assertEqual(merged.fallback_branch, "")
        self.assertEqual(merged.protected_branches, ())
        self.assertEqual(merged.directory_timeout, 60.0)
        self.assertFalse(merged.yes)
        self.assertEqual(merged._drift_config_sources["fallback_branch"],
                         "default")
        diags = merged._drift_config_diagnostics
        self.assertTrue(any(d["key"] == "config" for d in diags))

    def test_project_yaml_overrides_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            cfg = _write(root, ".drift.yaml",
                "supabase:\n"
                "  fallback_branch: development\n"
                "  protected_branches: [staging, release]\n"
                "  directory_timeout: 5\n")
            merged = self._merge(["--config", str(cfg), "resolve"])
        self.assertEqual(merged.fallback_branch, "development")
        self.assertEqual(merged.protected_branches, ("staging", "release"))
        self.assertEqual(merged.directory_timeout, 5.0)
        self.assertEqual(merged._drift_config_sources["fallback_branch"],
                         "project")
        self.assertEqual(merged._drift_config_files["project"],
                         str(cfg.resolve()))

    def test_local_yaml_overrides_project(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            cfg = _write(root, ".drift.yaml",
                "supabase:\n  override_branch: development\n")
            _write(root, ".drift.local.yaml",
                "supabase:\n  override_branch: feature/mine\n")
            merged = self._merge(["--config", str(cfg), "resolve"])
        self.assertEqual(merged.override_branch, "feature/mine")
        self.assertEqual(merged._drift_config_sources["override_branch"],
                         "local")

    def test_git_overrides_local(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            cfg = _write(root, ".drift.yaml", "")
            _write(root, ".drift.local.yaml",
                "supabase:\n  fallback_branch: local-dev\n")
            merged = self._merge(["--config", str(cfg), "resolve"],
                     git={"fallback_branch": "git-dev"})
        self.assertEqual(merged.fallback_branch, "git-dev")
        self.assertEqual(merged._drift_config_sources["fallback_branch"],
                         "git")

    def test_env_overrides_git(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            missing = str(Path(tmp) / "none.yaml")
            merged = self._merge(["--config", missing, "resolve"],
                     git={"fallback_branch": "git-dev"},
                     env={"DRIFT_FALLBACK_BRANCH": "env-dev",
                          "DRIFT_PROTECTED_BRANCHES": "qa, uat"})
        self.assertEqual(merged.fallback_branch, "env-dev")
        self.assertEqual(merged.protected_branches, ("qa", "uat"))
        self.assertEqual(merged._drift_config_sources["fallback_branch"],
                         "env")

    def test_cli_overrides_env(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            missing = str(Path(tmp) / "none.yaml")
            merged = self._merge(["--config", missing, "--plain", "resolve",
                     "--fallback-branch", "cli-dev"],
                     env={"DRIFT_FALLBACK_BRANCH": "env-dev",
                          "DRIFT_PLAIN": "0"})
        self.assertEqual(merged.fallback_branch, "cli-dev")
        self.assertTrue(merged.plain)
        self.assertEqual(merged._drift_config_sources["fallback_branch"],
                         "cli")
        self.assertEqual(merged._drift_config_sources["plain"], "cli")

    def test_yes_is_never_read_from_files(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            cfg = _write(Path(tmp), ".drift.yaml",
                "yes: true\npreferences:\n  yes: true\n")
            merged = self._merge(["--config", str(cfg), "resolve"])
        self.assertFalse(merged.yes)

    def test_yes_from_env(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            missing = str(Path(tmp) / "none.yaml")
            merged = self._merge(["--config", missing, "resolve"],
                     env={"DRIFT_YES": "true"})
        self.assertTrue(merged.yes)

    def test_invalid_values_keep_lower_layer(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            cfg = _write(Path(tmp), ".drift.yaml",
                "supabase:\n  directory_timeout: -3\n"
                "  fallback_branch: 12\n"
                "preferences:\n  verbose: maybe\n")
            merged = self._merge(["--config", str(cfg), "resolve"])
        self.assertEqual(merged.directory_timeout, 60.0)
        self.assertEqual(merged.fallback_branch, "")
        self.assertFalse(merged.verbose)
        keys = {d["key"] for d in merged._drift_config_diagnostics}
        self.assertTrue({"directory_timeout", "fallback_branch",
                         "verbose"} <= keys)

    def test_malformed_yaml_is_reported(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            cfg = _write(Path(tmp), ".drift.yaml", "supabase: [unclosed\n")
            merged = self._merge(["--config", str(cfg), "resolve"])
        levels = [d["level"] for d in merged._drift_config_diagnostics]
        self.assertIn("error", levels)
        self.assertEqual(merged.fallback_branch, "")

    def test_non_mapping_yaml_is_reported(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            cfg = _write(Path(tmp), ".drift.yaml", "- main\n- develop\n")
            merged = self._merge(["--config", str(cfg), "resolve"])
        self.assertTrue(any("mapping" in d["message"]
                        for d in merged._drift_config_diagnostics))

    def test_git_local_scope_wins_over_global(self) -> None:
        scopes = [(0, "drift.fallback-branch global-dev\ndrift.other x"),
                  (0, "drift.fallback-branch local-dev\n")]
        with patch("drift.config.run_git", side_effect=scopes) as git:
            values = config._load_git_overrides(".")
        self.assertEqual(values, {"fallback_branch": "local-dev"})
        self.assertEqual(git.call_args_list[0].args[0][:2],
                         ["config", "--global"])

    def test_git_failure_contributes_nothing(self) -> None:
        with patch("drift.config.run_git", return_value=(127, "missing")):
            self.assertEqual(config._load_git_overrides("."), {})

    def test_config_discovered_from_parent_directory(self) -> None:
        cwd = os.getcwd()
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            _write(root, ".drift.yaml",
                "supabase:\n  fallback_branch: development\n")
            nested = root / "app" / "src"
            nested.mkdir(parents=True)
            os.chdir(nested)
            try: merged = self._merge(["resolve"])
            finally: os.chdir(cwd)
        self.assertEqual(merged.fallback_branch, "development")


if __name__ == "__main__":
    unittest.main()
