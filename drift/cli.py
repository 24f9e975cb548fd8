#!/usr/bin/env python3
"""
Primary CLI entry point for `drift`.

Every command starts from the same question: which remote
Supabase branch should this git branch act against, and is
it production? This module wires the layered config, the
branch directory and the interactive prompter into the
resolution engine and the production confirmation gate.

Commands:
  - env show   Show the resolved environment for this branch
  - resolve    Resolve the target (optionally as JSON)
  - branches   List remote branches by environment
  - guard      Resolve, then confirm before a mutating step
  - protected  Migration-push protected-branch check

Failures are rendered as a summary/fix pair and persisted
as an error envelope under driftlog/ for postmortems.
"""


# ======================= STANDARDS =======================
import argparse
import json
import sys
import os

# ==================== THIRD-PARTIES ======================
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text

# ======================== LOCALS =========================
from .directory import BranchDirectory, SupabaseDirectory, find_similar
from .error_model import ResolutionError, build_error_envelope
from .models import BranchTarget, CancelToken, Environment, Session
from .models import ResolutionPolicy
from .prompt import ConsolePrompter, Prompter
from .environment import classify, is_protected_name
from . import _constants as const
from . import resolution
from . import protection
from . import __version__
from . import telemetry
from . import gitutils
from . import config
from . import utils
from . import tui


FAILURE_SUMMARIES: dict[str, str] = {
    "DRIFT_NET_DIRECTORY_UNAVAILABLE": "branch directory lookup failed",
    "DRIFT_GIT_BRANCH_UNAVAILABLE": "could not read the current git branch",
    "DRIFT_GIT_PROTECTED_BRANCH": "protected branch refused",
    "DRIFT_RES_PRODUCTION_REFUSED": "override points at production",
    "DRIFT_RES_FALLBACK_NOT_FOUND": "configured fallback does not exist",
    "DRIFT_RES_FALLBACK_PRODUCTION_REFUSED": "fallback points at production",
    "DRIFT_RES_NO_CANDIDATES": "no safe fallback candidates",
    "DRIFT_RES_UNRESOLVED": "no matching Supabase branch",
    "DRIFT_INT_PROMPT_CANCELLED": "selection cancelled",
    "DRIFT_INT_CANCELLED": "lookup cancelled",
}

ENV_COLORS: dict[Environment, str] = {
    Environment.PRODUCTION: const.BAD,
    Environment.DEVELOPMENT: const.PROMPT,
    Environment.FEATURE: const.GOOD,
}


def make_directory(args: argparse.Namespace,
                   cancel: CancelToken) -> BranchDirectory:
    return SupabaseDirectory(
        project_ref=getattr(args, "project_ref", "") or None,
        timeout_s=float(getattr(args, "directory_timeout", 60.0)),
        cancel=cancel,
    )


def make_prompter(cancel: CancelToken) -> Prompter:
    return ConsolePrompter(cancel=cancel)


def build_session(args: argparse.Namespace) -> Session:
    interactive = not getattr(args, "ci", False) \
              and sys.stdin is not None and sys.stdin.isatty()
    return Session(
        assume_yes=bool(getattr(args, "yes", False)),
        interactive=interactive,
        verbose=bool(getattr(args, "verbose", False)
             or getattr(args, "debug", False)),
    )


def _env_text(env: Environment) -> str:
    if const.PLAIN: return env.value
    return utils.color(env.value, ENV_COLORS.get(env, const.INFO))


def _spinner_enabled(args: argparse.Namespace) -> bool:
    if const.PLAIN or const.QUIET: return False
    if getattr(args, "json", False): return False
    return sys.stderr is not None and sys.stderr.isatty()


def _git_branch(args: argparse.Namespace) -> str:
    explicit = (getattr(args, "branch", None) or "").strip()
    if explicit: return explicit
    return gitutils.current_branch(os.getcwd())


def _resolve(args: argparse.Namespace, policy: ResolutionPolicy,
             directory: BranchDirectory, prompter: Prompter,
             session: Session, cancel: CancelToken) -> BranchTarget:
    names = tuple(getattr(args, "protected_branches", None) or ())
    with tui.lookup_status("Resolving Supabase branch",
                           _spinner_enabled(args)):
        return resolution.resolve(policy, directory, prompter=prompter,
               session=session, cancel=cancel, protected_names=names)


def _show_target(target: BranchTarget, out: utils.Output) -> None:
    out.key_value("Git Branch", target.git_branch)
    out.key_value("Environment", _env_text(target.environment))
    out.key_value("Supabase Branch", target.remote_branch.name)
    out.key_value("Project Ref", target.project_ref)
    out.key_value("API URL", target.api_url)
    out.key_value("Region", target.region)
    if target.is_override:
        out.raw()
        out.info(f"override: using {target.remote_branch.name} instead "
                 f"of {target.override_from}")
    if target.is_fallback:
        out.raw()
        out.warn("using fallback: no Supabase branch exists for this "
                 "git branch")


def cmd_env_show(args: argparse.Namespace, out: utils.Output,
                 directory: BranchDirectory, prompter: Prompter,
                 session: Session, cancel: CancelToken) -> int:
    policy = resolution.read_only_policy(args, _git_branch(args))
    target = _resolve(args, policy, directory, prompter, session, cancel)
    out.raw()
    _show_target(target, out)
    out.raw()
    protection.warn_if_production(target.environment, out)
    return 0


def cmd_resolve(args: argparse.Namespace, out: utils.Output,
                directory: BranchDirectory, prompter: Prompter,
                session: Session, cancel: CancelToken) -> int:
    policy = resolution.policy_for_current_branch(args,
             _git_branch(args),
             allow_interactive=not args.no_interactive)
    target = _resolve(args, policy, directory, prompter, session, cancel)
    if args.json:
        print(json.dumps(target.as_dict(), indent=2, sort_keys=True))
        return 0
    _show_target(target, out)
    return 0


def cmd_branches(args: argparse.Namespace, out: utils.Output,
                 directory: BranchDirectory, prompter: Prompter,
                 session: Session, cancel: CancelToken) -> int:
    with tui.lookup_status("Listing Supabase branches",
                           _spinner_enabled(args)):
        branches = directory.list_all()
    if args.match: branches = find_similar(branches, args.match)
    ordered = resolution.fallback_candidates(branches, False)

    if args.json:
        rows = [{
            "name": b.name,
            "git_branch": b.git_branch,
            "project_ref": b.project_ref,
            "environment": classify(b).value,
            "status": b.status,
            "updated_at": b.updated_at,
        } for b in ordered]
        print(json.dumps(rows, indent=2))
        return 0

    if not ordered:
        what = f" matching '{args.match}'" if args.match else ""
        out.warn(f"no Supabase branches{what}")
        return 0
    table = Table(show_header=True, box=None, pad_edge=False,
            header_style="bold")
    for column in ("Git Branch", "Environment", "Project Ref",
                   "Status", "Updated"):
        table.add_column(column)
    for b in ordered:
        env = classify(b)
        table.add_row(escape(b.git_branch or b.name),
                      Text(env.value, style=ENV_COLORS[env]),
                      b.project_ref, escape(b.status), b.updated_at)
    Console(no_color=const.PLAIN).print(table)
    return 0


def cmd_guard(args: argparse.Namespace, out: utils.Output,
              directory: BranchDirectory, prompter: Prompter,
              session: Session, cancel: CancelToken) -> int:
    git_branch = _git_branch(args)
    with tui.lookup_status("Resolving Supabase branch",
                           _spinner_enabled(args)):
        target = resolution.resolve_for_current_branch(directory, args,
                 git_branch, prompter, session, cancel)
    out.info(f"target: {target.remote_branch.name} "
             f"({target.environment.value}, {target.project_ref})")
    level = protection.Level.STRICT if args.strict \
        else protection.Level.STANDARD
    if not protection.confirm(target.environment, args.operation,
                              level, session, prompter, out):
        return 1
    if args.destructive and not protection.confirm_destructive(
            args.operation, level, session, prompter, out):
        return 1
    out.success(f"proceed: {args.operation}")
    return 0


def cmd_protected(args: argparse.Namespace, out: utils.Output,
                  directory: BranchDirectory, prompter: Prompter,
                  session: Session, cancel: CancelToken) -> int:
    branch = args.target or gitutils.current_branch(os.getcwd())
    protection.check_protected_push(branch, args, force=args.force)
    configured = tuple(args.protected_branches or ())
    if is_protected_name(branch, configured):
        out.warn(f"'{branch}' is protected; continuing because of --force")
    else: out.success(f"'{branch}' is not a protected branch")
    return 0


def show_effective_config(args: argparse.Namespace,
                          out: utils.Output) -> int:
    """Print the effective merged runtime configuration."""
    keys = [spec.dest for spec in config.SPECS]
    effective: dict[str, object] = {}
    for k in keys:
        value = getattr(args, k, None)
        effective[k] = list(value) if isinstance(value, tuple) else value
    sources = getattr(args, "_drift_config_sources", None)
    if isinstance(sources, dict):
        effective["_sources"] = {k: sources.get(k, "default") for k in keys}
    files = getattr(args, "_drift_config_files", None)
    if isinstance(files, dict):
        effective["_config_files"] = files
    diagnostics = getattr(args, "_drift_config_diagnostics", None)
    if isinstance(diagnostics, list):
        effective["_config_diagnostics"] = diagnostics
    out.raw(json.dumps(effective, indent=2, sort_keys=True))
    return 0


def _emit_failure_ux(args: argparse.Namespace,
                     envelope: dict[str, object],
                     out: utils.Output) -> None:
    """Emit concise failure summary with optional advanced details."""
    code = str(envelope.get("code", "")).strip()
    fix = str(envelope.get("suggested_fix", "")).strip()
    summary = FAILURE_SUMMARIES.get(code, "command failed")
    telemetry.emit_event(
        event_type="actionable_diagnosis",
        step_id=str(envelope.get("operation", "")),
        payload={"code": code, "summary": summary, "fix": fix},
    )
    out.warn(f"summary: {summary}")
    if fix: out.warn(f"fix: {fix}")

    if not (getattr(args, "verbose", False) or getattr(args, "debug", False)):
        return
    out.warn("advanced details:")
    out.warn(f"code={code} severity={envelope.get('severity', '')} "
             f"category={envelope.get('category', '')}")
    target = str(envelope.get("target", "")).strip()
    if target: out.warn(f"target={target}")


def _persist_error_envelope(envelope: dict[str, object],
                            out: utils.Output) -> None:
    """Persist envelope to driftlog for postmortems."""
    log_dir = os.path.join(os.getcwd(), const.LOG_DIR)
    path = os.path.join(log_dir, "last_error_envelope.json")
    try:
        os.makedirs(log_dir, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(envelope, f, indent=2)
        telemetry.emit_event(
            event_type="runtime_error",
            step_id=str(envelope.get("operation", "")),
            payload=dict(envelope),
        )
        out.warn(f"error envelope written: {utils.pathit(path)}")
    except OSError as e:
        out.warn(f"failed to persist error envelope: {e}")


def _add_target_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--branch", "-b", default=None,
                   help="act as if on this git branch")
    p.add_argument("--fallback-branch", default=None,
                   help="remote branch to use when no exact match")


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="drift",
        description="Resolve which Supabase branch this git branch "
                    "targets, and guard production.")
    p.add_argument("--version", action="version",
        version=f"{const.APP} {__version__}")
    p.add_argument("--config", default=None,
                   help="config file (default: nearest .drift.yaml)")
    p.add_argument("--verbose", "-v", action="store_true", default=None)
    p.add_argument("--yes", "-y", action="store_true", default=None,
                   help="skip all confirmations, production included")
    p.add_argument("--plain", action="store_true", default=None)
    p.add_argument("--quiet", "-q", action="store_true", default=None)
    p.add_argument("--debug", "-d", action="store_true", default=None)
    p.add_argument("--ci", action="store_true", default=None,
                   help="never prompt")
    p.add_argument("--show-config", action="store_true")

    sub = p.add_subparsers(dest="command")

    env = sub.add_parser("env", help="environment commands")
    env_sub = env.add_subparsers(dest="env_command")
    show = env_sub.add_parser("show", help="show resolved environment")
    _add_target_args(show)
    show.set_defaults(handler=cmd_env_show)

    res = sub.add_parser("resolve", help="resolve the target branch")
    _add_target_args(res)
    res.add_argument("--no-interactive", action="store_true")
    res.add_argument("--json", action="store_true")
    res.set_defaults(handler=cmd_resolve)

    br = sub.add_parser("branches", help="list remote branches")
    br.add_argument("--match", "-m", default=None)
    br.add_argument("--json", action="store_true")
    br.set_defaults(handler=cmd_branches)

    guard = sub.add_parser("guard",
            help="resolve, then confirm before OPERATION")
    guard.add_argument("operation")
    _add_target_args(guard)
    guard.add_argument("--strict", action="store_true",
                       help="require typing 'yes' on production")
    guard.add_argument("--destructive", action="store_true",
                       help="also confirm data loss on any environment")
    guard.set_defaults(handler=cmd_guard)

    prot = sub.add_parser("protected",
           help="refuse protected branches for migration pushes")
    prot.add_argument("target", nargs="?", default=None)
    prot.add_argument("--force", "-f", action="store_true")
    prot.set_defaults(handler=cmd_protected)
    return p


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Add and parse arguments."""
    parsed = _build_parser().parse_args(argv)
    return config.apply_layered_config(parsed)


def run(args: argparse.Namespace, out: utils.Output) -> int:
    """Dispatch one parsed command; return its exit code."""
    if args.show_config: return show_effective_config(args, out)
    handler = getattr(args, "handler", None)
    if handler is None:
        _build_parser().print_help()
        return 2

    cancel    = CancelToken()
    session   = build_session(args)
    operation = args.command if args.command != "env" else "env show"
    try:
        return handler(args, out, make_directory(args, cancel),
               make_prompter(cancel), session, cancel)
    except ResolutionError as e:
        if e.interrupted: out.raw()
        out.warn(f"ERROR: {e.message}")
        _report(args, e, operation, out)
        return 130 if e.interrupted else 1
    except KeyboardInterrupt as e:
        cancel.cancel()
        out.raw()
        out.warn("forced exit")
        _report(args, e, operation, out)
        return 130


def _report(args: argparse.Namespace, error: BaseException,
            operation: str, out: utils.Output) -> None:
    context = {
        "cwd": os.getcwd(),
        "branch": getattr(args, "branch", None) or "",
        "override_branch": getattr(args, "override_branch", ""),
        "fallback_branch": getattr(args, "fallback_branch", ""),
        "ci_mode": bool(getattr(args, "ci", False)),
    }
    envelope = build_error_envelope(error, operation, context)
    payload  = envelope.with_runtime_schema()
    _emit_failure_ux(args, payload, out)
    _persist_error_envelope(payload, out)


def main(argv: list[str] | None = None) -> None:
    """
    CLI entry point for the `drift` tool.

    Parses arguments, merges layered config, prepares logging
    and telemetry under driftlog/, then dispatches the chosen
    command. Unexpected exceptions re-raise under --debug and
    are otherwise reported as an error envelope.
    """
    args = parse_args(sys.argv[1:] if argv is None else argv)
    const.sync_runtime_flags(args)
    out = utils.Output(quiet=bool(args.quiet))
    for diag in getattr(args, "_drift_config_diagnostics", []):
        if diag["level"] == "error" or const.VERBOSE:
            out.warn(f"config {diag['source']}: {diag['message']}")

    log_dir = utils.get_log_dir(os.getcwd())
    utils.configure_logging(log_dir)
    telemetry.set_run_id()
    telemetry.init_event_stream(log_dir)
    try:
        code = run(args, out)
    except Exception as e:
        if const.DEBUG: raise
        out.warn(f"ERROR: {e}")
        _report(args, e, str(getattr(args, "command", "") or ""), out)
        code = 1
    finally:
        telemetry.close_event_stream()
    sys.exit(code)
