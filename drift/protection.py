"""
Production confirmation gate.

Declining is a normal `False` result: the caller should stop
gracefully. Only a cancelled prompt raises.
"""
from __future__ import annotations

# ======================= STANDARDS =======================
from argparse import Namespace
from enum import Enum

# ======================== LOCALS =========================
from .environment import is_protected_name
from .error_model import ProtectedBranchPush
from .models import Environment, Session
from .prompt import Prompter
from . import telemetry
from . import utils


class Level(str, Enum):
    STANDARD = "standard"
    STRICT   = "strict"


CONFIRM_TOKEN = "yes"


def _typed_yes(prompter: Prompter) -> bool:
    answer = prompter.ask(f"Type '{CONFIRM_TOKEN}' to confirm")
    return (answer or "").strip().lower() == CONFIRM_TOKEN


def _ask(level: Level, prompter: Prompter) -> bool:
    if level is Level.STRICT: return _typed_yes(prompter)
    return prompter.confirm("Continue?", default=False)


def _no_prompt(subject: str, kind: str, level: Level,
               out: utils.Output) -> bool:
    out.warn("Non-interactive session; pass --yes to proceed")
    out.info("Cancelled")
    _record(kind, subject, level, False)
    return False


def _record(kind: str, subject: str, level: Level,
            proceed: bool) -> None:
    telemetry.emit_event(
        event_type="confirmation",
        step_id=kind,
        payload={"subject": subject, "level": level.value,
                 "proceed": proceed},
    )


def confirm(environment: Environment, operation: str,
            level: Level, session: Session, prompter: Prompter,
            out: utils.Output | None = None) -> bool:
    """
    Decide whether `operation` may run against `environment`.

    `session.assume_yes` short-circuits to True before the
    environment is even looked at, so scripted runs proceed
    on production without any prompt. A non-interactive session
    without it declines instead of blocking on a prompt.
    """
    if session.assume_yes: return True
    if environment is not Environment.PRODUCTION: return True

    out = out or utils.Output()
    out.raw()
    out.warn(f"You are about to {operation} on PRODUCTION!")
    if not session.interactive:
        return _no_prompt(operation, "production", level, out)
    proceed = _ask(level, prompter)
    if not proceed: out.info("Cancelled")
    _record("production", operation, level, proceed)
    return proceed


def confirm_production(environment: Environment, operation: str,
                       session: Session, prompter: Prompter,
                       out: utils.Output | None = None) -> bool:
    return confirm(environment, operation, Level.STANDARD, session,
           prompter, out)


def require_production(environment: Environment, operation: str,
                       session: Session, prompter: Prompter,
                       out: utils.Output | None = None) -> bool:
    return confirm(environment, operation, Level.STRICT, session,
           prompter, out)


def confirm_destructive(description: str, level: Level,
                        session: Session, prompter: Prompter,
                        out: utils.Output | None = None) -> bool:
    """Confirm a data-losing operation regardless of environment."""
    if session.assume_yes: return True

    out = out or utils.Output()
    out.raw()
    out.warn(f"This will {description}")
    if level is Level.STRICT: out.warn("This action cannot be undone!")
    if not session.interactive:
        return _no_prompt(description, "destructive", level, out)
    proceed = _ask(level, prompter)
    if not proceed: out.info("Cancelled")
    _record("destructive", description, level, proceed)
    return proceed


def warn_if_production(environment: Environment,
                       out: utils.Output | None = None) -> None:
    if environment is Environment.PRODUCTION:
        (out or utils.Output()).warn("Operating on PRODUCTION environment")


def check_protected_push(git_branch: str, args: Namespace,
                         force: bool = False) -> None:
    """Refuse pushing migrations from a protected branch."""
    configured = tuple(getattr(args, "protected_branches", None) or ())
    if is_protected_name(git_branch, configured) and not force:
        raise ProtectedBranchPush(git_branch)
