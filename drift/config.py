"""Layered runtime configuration for drift.

Precedence order (low -> high):
1) built-in defaults
2) .drift.yaml (project, committed)
3) .drift.local.yaml (developer-local, gitignored)
4) git config (global, then local repository)
5) environment variables
6) explicit CLI options
"""
from __future__ import annotations

from argparse import Namespace
from dataclasses import dataclass
from pathlib import Path
from typing import Any
import os

import yaml

from ._constants import CONFIG_FILE, LOCAL_CONFIG_FILE
from .gitutils import run_git


@dataclass(frozen=True)
class OptionSpec:
    dest: str
    yaml_key: str | None
    git_key: str
    env_key: str
    kind: str  # "bool" | "str" | "list" | "float"
    default: object = None


SPECS: tuple[OptionSpec, ...] = (
    OptionSpec("override_branch", "supabase.override_branch",
               "override-branch", "DRIFT_OVERRIDE_BRANCH", "str", ""),
    OptionSpec("fallback_branch", "supabase.fallback_branch",
               "fallback-branch", "DRIFT_FALLBACK_BRANCH", "str", ""),
    OptionSpec("protected_branches", "supabase.protected_branches",
               "protected-branches", "DRIFT_PROTECTED_BRANCHES", "list", ()),
    OptionSpec("project_ref", "supabase.project_ref",
               "project-ref", "DRIFT_PROJECT_REF", "str", ""),
    OptionSpec("directory_timeout", "supabase.directory_timeout",
               "directory-timeout", "DRIFT_DIRECTORY_TIMEOUT", "float", 60.0),
    OptionSpec("verbose", "preferences.verbose", "verbose",
               "DRIFT_VERBOSE", "bool", False),
    OptionSpec("plain", "preferences.plain", "plain",
               "DRIFT_PLAIN", "bool", False),
    OptionSpec("quiet", None, "quiet", "DRIFT_QUIET", "bool", False),
    OptionSpec("debug", None, "debug", "DRIFT_DEBUG", "bool", False),
    OptionSpec("ci", None, "ci", "DRIFT_CI", "bool", False),
    # never read from committed files: it bypasses production prompts
    OptionSpec("yes", None, "yes", "DRIFT_YES", "bool", False),
)


_BOOL_WORDS: dict[str, bool] = {
    "1": True, "true": True, "yes": True, "on": True,
    "0": False, "false": False, "no": False, "off": False,
}


def _as_bool(raw: object) -> bool | None:
    if isinstance(raw, bool): return raw
    if not isinstance(raw, str): return None
    return _BOOL_WORDS.get(raw.strip().lower())


def _find_config(path: str) -> Path | None:
    """Nearest .drift.yaml at or above `path`."""
    start = Path(path).expanduser().resolve()
    for folder in (start, *start.parents):
        if (folder / CONFIG_FILE).is_file(): return folder / CONFIG_FILE
    return None


def _diag(level: str, source: str, key: str, raw: object,
          message: str) -> dict[str, str]:
    return {
        "level": level,
        "source": source,
        "key": key,
        "raw": str(raw),
        "message": message,
    }


def _lookup(data: dict[str, Any], dotted: str) -> tuple[bool, object]:
    node: object = data
    for part in dotted.split("."):
        if not isinstance(node, dict) or part not in node:
            return False, None
        node = node[part]
    return True, node


def _load_yaml_overrides(path: Path, source: str
                        ) -> tuple[dict[str, object], list[dict[str, str]]]:
    if not path.is_file():
        return {}, []
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except (OSError, yaml.YAMLError) as exc:
        msg = f"failed to parse {path.name}: {exc}"
        return {}, [_diag("error", source, path.name, "", msg)]
    if data is None:
        return {}, []
    if not isinstance(data, dict):
        msg = f"{path.name} must contain a mapping at the top level"
        return {}, [_diag("error", source, path.name, type(data).__name__, msg)]

    values: dict[str, object] = {}
    for spec in SPECS:
        if spec.yaml_key is None:
            continue
        found, raw = _lookup(data, spec.yaml_key)
        if found and raw is not None:
            values[spec.dest] = raw
    return values, []


def _git_config(scope: str, cwd: str) -> dict[str, str]:
    rc, out = run_git(["config", scope, "--get-regexp", r"^drift\."], cwd)
    if rc != 0: return {}
    pairs = (line.partition(" ") for line in out.splitlines() if line.strip())
    return {key.strip(): value.strip() for key, _, value in pairs}


def _load_git_overrides(path: str) -> dict[str, str]:
    """drift.<key> entries; repository scope wins over global."""
    values = {**_git_config("--global", path),
              **_git_config("--local", path)}
    by_key = {f"drift.{spec.git_key}": spec.dest for spec in SPECS}
    return {by_key[k]: v for k, v in values.items() if k in by_key}


def _load_env_overrides() -> dict[str, str]:
    return {spec.dest: os.environ[spec.env_key] for spec in SPECS
            if spec.env_key in os.environ}


def _coerce(spec: OptionSpec, raw: object, source: str,
            diagnostics: list[dict[str, str]]) -> object | None:
    dest = spec.dest
    if spec.kind == "bool":
        value = _as_bool(raw)
        if value is None:
            msg = f"invalid boolean value for {dest}; use true/false"
            diagnostics.append(_diag("warning", source, dest, raw, msg))
        return value
    if spec.kind == "str":
        if not isinstance(raw, str):
            msg = f"invalid value type for {dest}; expected string"
            diagnostics.append(_diag("warning", source, dest, raw, msg))
            return None
        return raw.strip()
    if spec.kind == "list":
        if isinstance(raw, str):
            return tuple(p.strip() for p in raw.split(",") if p.strip())
        if isinstance(raw, (list, tuple)) and all(isinstance(p, str) for p in raw):
            return tuple(p.strip() for p in raw if p.strip())
        msg = f"invalid value for {dest}; expected a list of branch names"
        diagnostics.append(_diag("warning", source, dest, raw, msg))
        return None
    if spec.kind == "float":
        try:
            value = float(raw)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            value = -1.0
        if isinstance(raw, bool) or value <= 0:
            msg = f"invalid value for {dest}; expected a positive number"
            diagnostics.append(_diag("warning", source, dest, raw, msg))
            return None
        return value
    return None


def apply_layered_config(args: Namespace) -> Namespace:
    """
    Merge config layers into parsed args.

    Configurable CLI options default to None, so a non-None
    value means the user set it explicitly.
    """
    merged = Namespace(**vars(args))
    explicit_file = getattr(merged, "config", None)
    if explicit_file:
        candidate = Path(explicit_file).expanduser().resolve()
        main_file = candidate if candidate.is_file() else None
    else:
        main_file = _find_config(os.getcwd())
    local_file = main_file.with_name(LOCAL_CONFIG_FILE) if main_file else \
        Path(os.getcwd()) / LOCAL_CONFIG_FILE
    root = str(main_file.parent) if main_file else os.getcwd()

    project_vals, diagnostics = ({}, []) if main_file is None else \
        _load_yaml_overrides(main_file, "project")
    local_vals, local_diags = _load_yaml_overrides(local_file, "local")
    diagnostics = list(diagnostics) + local_diags
    if explicit_file and main_file is None:
        msg = "config file not found"
        diagnostics.append(_diag("error", "cli", "config", explicit_file, msg))
    git_vals = _load_git_overrides(root)
    env_vals = _load_env_overrides()

    layers = (
        ("project", project_vals),
        ("local", local_vals),
        ("git", git_vals),
        ("env", env_vals),
    )
    sources: dict[str, str] = {}
    for spec in SPECS:
        if getattr(merged, spec.dest, None) is not None:
            sources[spec.dest] = "cli"
            continue
        setattr(merged, spec.dest, spec.default)
        sources[spec.dest] = "default"
        for source, values in layers:
            if spec.dest not in values:
                continue
            value = _coerce(spec, values[spec.dest], source, diagnostics)
            if value is not None:
                setattr(merged, spec.dest, value)
                sources[spec.dest] = source

    setattr(merged, "_drift_config_sources", sources)
    setattr(merged, "_drift_config_diagnostics", diagnostics)
    setattr(merged, "_drift_config_files", {
        "project": str(main_file) if main_file else None,
        "local": str(local_file) if local_file.is_file() else None,
    })
    return merged
