"""
Typed resolution failures and the machine-readable error
envelope the CLI persists for postmortems.
"""
from datetime import datetime, timezone
from dataclasses import asdict, dataclass
from typing import Any


ENVELOPE_SCHEMA = "drift.error_envelope.v1"

ERROR_CODE_POLICY: dict[str, dict[str, Any]] = {
    code: {"severity": severity, "category": category}
    for code, severity, category in (
        ("DRIFT_INT_UNHANDLED_EXCEPTION",         "error", "internal"),
        ("DRIFT_INT_KEYBOARD_INTERRUPT",          "warn",  "workflow"),
        ("DRIFT_INT_CANCELLED",                   "warn",  "workflow"),
        ("DRIFT_INT_PROMPT_CANCELLED",            "warn",  "workflow"),
        ("DRIFT_NET_DIRECTORY_UNAVAILABLE",       "error", "network"),
        ("DRIFT_GIT_BRANCH_UNAVAILABLE",          "error", "git"),
        ("DRIFT_GIT_PROTECTED_BRANCH",            "error", "git"),
        ("DRIFT_RES_PRODUCTION_REFUSED",          "error", "resolution"),
        ("DRIFT_RES_FALLBACK_NOT_FOUND",          "error", "resolution"),
        ("DRIFT_RES_FALLBACK_PRODUCTION_REFUSED", "error", "resolution"),
        ("DRIFT_RES_NO_CANDIDATES",               "error", "resolution"),
        ("DRIFT_RES_UNRESOLVED",                  "error", "resolution"),
    )
}


def error_policy_for(code: str) -> dict[str, str]:
    """Severity/category for `code`; unknown codes are workflow errors."""
    default = {"severity": "error", "category": "workflow"}
    return dict(ERROR_CODE_POLICY.get(code.strip(), default))


class ResolutionError(Exception):
    """Base for every named failure of branch resolution."""
    code = "DRIFT_INT_UNHANDLED_EXCEPTION"
    # set when the failure stems from Ctrl-C or a fired CancelToken
    interrupted = False

    def __init__(self, message: str, suggested_fix: str = "",
                 target: str = "") -> None:
        super().__init__(message)
        self.message       = message
        self.suggested_fix = suggested_fix
        self.target        = target

    @property
    def severity(self) -> str:
        return error_policy_for(self.code)["severity"]

    @property
    def category(self) -> str:
        return error_policy_for(self.code)["category"]


class DirectoryUnavailable(ResolutionError):
    code = "DRIFT_NET_DIRECTORY_UNAVAILABLE"

    def __init__(self, message: str, stderr: str = "") -> None:
        super().__init__(
            message,
            "Check that the supabase CLI is installed, logged in "
            "and linked, then rerun.",
        )
        self.stderr = stderr


class ResolutionCancelled(ResolutionError):
    code = "DRIFT_INT_CANCELLED"
    interrupted = True

    def __init__(self, message: str = "branch lookup cancelled"
                ) -> None:
        super().__init__(message, "Rerun the command when ready.")


class GitBranchUnavailable(ResolutionError):
    code = "DRIFT_GIT_BRANCH_UNAVAILABLE"

    def __init__(self, message: str) -> None:
        super().__init__(
            message,
            "Run from inside a git repository or pass --branch.",
        )


class ProductionRefused(ResolutionError):
    code = "DRIFT_RES_PRODUCTION_REFUSED"

    def __init__(self, target: str) -> None:
        super().__init__(
            f"refusing to target production branch '{target}' via "
            "override",
            "Remove the override or point it at a non-production "
            "branch.",
            target,
        )


class FallbackNotFound(ResolutionError):
    code = "DRIFT_RES_FALLBACK_NOT_FOUND"

    def __init__(self, target: str) -> None:
        super().__init__(
            f"fallback branch '{target}' was not found",
            "Set --fallback-branch or supabase.fallback_branch to an "
            "existing branch (see `drift branches`).",
            target,
        )


class FallbackProductionRefused(ResolutionError):
    code = "DRIFT_RES_FALLBACK_PRODUCTION_REFUSED"

    def __init__(self, target: str) -> None:
        super().__init__(
            f"refusing to use production branch '{target}' as "
            "fallback target",
            "Configure a development or feature branch as the "
            "fallback.",
            target,
        )


class NoInteractiveCandidates(ResolutionError):
    code = "DRIFT_RES_NO_CANDIDATES"

    def __init__(self, target: str) -> None:
        super().__init__(
            "no non-production Supabase branches are available for "
            f"fallback from '{target}'",
            "Create a development or preview branch, or set an "
            "override.",
            target,
        )


class InteractiveCancelled(ResolutionError):
    code = "DRIFT_INT_PROMPT_CANCELLED"

    def __init__(self, target: str = "", interrupted: bool = False
                ) -> None:
        what = f" for '{target}'" if target else ""
        super().__init__(
            f"branch selection cancelled{what}",
            "Rerun and pick a branch, or set --fallback-branch.",
            target,
        )
        self.interrupted = interrupted


class Unresolved(ResolutionError):
    code = "DRIFT_RES_UNRESOLVED"

    def __init__(self, target: str) -> None:
        super().__init__(
            f"no Supabase branch found for '{target}'",
            "Set --fallback-branch or configure "
            "supabase.fallback_branch in .drift.local.yaml.",
            target,
        )


class ProtectedBranchPush(ResolutionError):
    code = "DRIFT_GIT_PROTECTED_BRANCH"

    def __init__(self, target: str) -> None:
        super().__init__(
            f"'{target}' is a protected branch",
            "Use --force to override.",
            target,
        )


@dataclass(frozen=True)
class ErrorEnvelope:
    code: str
    severity: str
    category: str
    message: str
    operation: str
    target: str
    retryable: bool
    user_action_required: bool
    suggested_fix: str
    context: dict[str, object]

    def as_dict(self) -> dict[str, object]:
        return asdict(self)

    def with_runtime_schema(self) -> dict[str, object]:
        """Envelope as persisted to driftlog/last_error_envelope.json."""
        stamp = datetime.now(timezone.utc).isoformat(timespec="seconds")
        return {
            "schema": ENVELOPE_SCHEMA,
            "schema_version": 1,
            "generated_at": stamp.replace("+00:00", "Z"),
            **self.as_dict(),
        }


def build_error_envelope(
    error: BaseException,
    operation: str,
    context: dict[str, object],
) -> ErrorEnvelope:
    """Map any failure into a typed envelope."""
    if isinstance(error, ResolutionError):
        return ErrorEnvelope(
            code=error.code,
            severity=error.severity,
            category=error.category,
            message=error.message,
            operation=operation,
            target=error.target,
            retryable=isinstance(error, DirectoryUnavailable),
            user_action_required=True,
            suggested_fix=error.suggested_fix,
            context=context,
        )

    code = "DRIFT_INT_UNHANDLED_EXCEPTION"
    message = str(error).strip() or "command failed"
    suggested_fix = "Run with --debug for traceback and inspect driftlog."
    if isinstance(error, KeyboardInterrupt):
        code = "DRIFT_INT_KEYBOARD_INTERRUPT"
        message = "command interrupted by keyboard input"
        suggested_fix = "Rerun command when ready."
    policy = error_policy_for(code)
    return ErrorEnvelope(
        code=code,
        severity=policy["severity"],
        category=policy["category"],
        message=message,
        operation=operation,
        target="",
        retryable=False,
        user_action_required=True,
        suggested_fix=suggested_fix,
        context=context,
    )
