"""
Branch resolution engine.

Maps a git branch (optionally redirected by an override)
onto a remote backend branch, in strict order:

  1) exact match on the override or git branch
  2) configured fallback branch
  3) interactive fallback selection
  4) failure naming the unresolved key

Every failure is a named `ResolutionError`; directory
errors propagate unchanged and nothing is retried.
"""
# ======================= STANDARDS =======================
from __future__ import annotations

from argparse import Namespace
from typing import Iterable, Sequence
import logging

# ======================== LOCALS =========================
from .environment import classify, environment_weight, is_protected
from .models import BranchTarget, CancelToken, Environment
from .models import RemoteBranch, ResolutionPolicy, Session
from .directory import BranchDirectory
from .prompt import Prompter
from .error_model import (
    FallbackNotFound,
    FallbackProductionRefused,
    InteractiveCancelled,
    NoInteractiveCandidates,
    ProductionRefused,
    ResolutionCancelled,
    Unresolved,
)
from . import _constants as const
from . import telemetry
from . import utils


logger = logging.getLogger("drift.resolution")


def _trace(session: Session, msg: str, *args: object) -> None:
    logger.debug(msg, *args)
    if session.verbose:
        utils.transmit(msg % args if args else msg, fg=const.INFO)


def _checkpoint(cancel: CancelToken | None) -> None:
    if cancel is not None and cancel.cancelled:
        raise ResolutionCancelled()


def default_prompt_label(target_key: str) -> str:
    return f"No Supabase branch for '{target_key}'. Select fallback target"


def option_label(branch: RemoteBranch) -> str:
    return f"{branch.git_branch} ({classify(branch).value})"


def fallback_candidates(branches: Iterable[RemoteBranch],
                        disallow_production: bool,
                        protected_names: Sequence[str] = ()
                       ) -> list[RemoteBranch]:
    """Filter and order branches offered for interactive fallback."""
    pool = [
        b for b in branches
        if not (disallow_production and is_protected(b, protected_names))
    ]
    return sorted(pool, key=lambda b: (environment_weight(classify(b)),
                  b.git_branch))


def select_fallback(directory: BranchDirectory, target_key: str,
                    label: str, disallow_production: bool,
                    prompter: Prompter,
                    protected_names: Sequence[str] = ()
                   ) -> RemoteBranch:
    """Ask the user to pick a fallback branch from the directory."""
    candidates = fallback_candidates(directory.list_all(),
                 disallow_production, protected_names)
    if not candidates: raise NoInteractiveCandidates(target_key)

    options = [option_label(b) for b in candidates]
    idx = prompter.select_one(label, options)
    if not 0 <= idx < len(candidates):
        logger.debug("prompt returned invalid index %s", idx)
        raise InteractiveCancelled(target_key)
    return candidates[idx]


def _build_target(directory: BranchDirectory, policy: ResolutionPolicy,
                  branch: RemoteBranch, is_fallback: bool
                 ) -> BranchTarget:
    is_override = bool(policy.override)
    return BranchTarget(
        git_branch=policy.git_branch,
        remote_branch=branch,
        environment=classify(branch),
        project_ref=branch.project_ref,
        api_url=directory.url_for(branch.project_ref),
        region=directory.find_project_region(branch.project_ref),
        is_override=is_override,
        override_from=policy.git_branch if is_override else "",
        is_fallback=is_fallback,
    )


def _emit(policy: ResolutionPolicy, outcome: str, branch: str = "",
          environment: Environment | None = None) -> None:
    telemetry.emit_event(
        event_type="resolution",
        step_id="resolve",
        payload={
            "git_branch": policy.git_branch,
            "override": policy.override,
            "fallback": policy.fallback,
            "outcome": outcome,
            "branch": branch,
            "environment": environment.value if environment else "",
        },
    )


def resolve(policy: ResolutionPolicy, directory: BranchDirectory,
            prompter: Prompter | None = None,
            session: Session | None = None,
            cancel: CancelToken | None = None,
            protected_names: Sequence[str] = ()) -> BranchTarget:
    """Resolve `policy` to a single remote target or raise."""
    session    = session or Session()
    target_key = policy.git_branch
    if policy.override: target_key = policy.override
    _trace(session, "branch resolution: git=%s override=%s fallback=%s",
           policy.git_branch, policy.override, policy.fallback)

    _checkpoint(cancel)
    branch = directory.find_by_git_branch(target_key)
    if branch is not None:
        if policy.disallow_production \
                and is_protected(branch, protected_names) \
                and target_key != policy.git_branch:
            _emit(policy, "production_refused", branch.git_branch)
            raise ProductionRefused(target_key)
        target = _build_target(directory, policy, branch, False)
        _trace(session, "resolved exact branch match: %s (%s) -> "
               "project %s", branch.git_branch,
               target.environment.value, branch.project_ref)
        _emit(policy, "exact", branch.git_branch, target.environment)
        return target

    fallback = policy.fallback.strip()
    if fallback:
        _checkpoint(cancel)
        branch = directory.find_by_git_branch(fallback)
        if branch is None:
            _emit(policy, "fallback_not_found")
            raise FallbackNotFound(fallback)
        if policy.disallow_production \
                and is_protected(branch, protected_names):
            _emit(policy, "fallback_production_refused",
                  branch.git_branch)
            raise FallbackProductionRefused(fallback)
        target = _build_target(directory, policy, branch, True)
        _trace(session, "using configured fallback branch: %s (%s)",
               branch.git_branch, target.environment.value)
        _emit(policy, "fallback", branch.git_branch, target.environment)
        return target

    can_prompt = policy.allow_interactive and not session.assume_yes \
             and session.interactive and prompter is not None
    if can_prompt:
        _checkpoint(cancel)
        label  = policy.prompt_label or default_prompt_label(target_key)
        branch = select_fallback(directory, target_key, label,
                 policy.disallow_production, prompter,
                 protected_names)
        target = _build_target(directory, policy, branch, True)
        _trace(session, "using interactive fallback branch: %s (%s)",
               branch.git_branch, target.environment.value)
        _emit(policy, "interactive", branch.git_branch,
              target.environment)
        return target

    _emit(policy, "unresolved")
    raise Unresolved(target_key)


def _setting(args: Namespace, name: str) -> str:
    value = getattr(args, name, None)
    return value.strip() if isinstance(value, str) else ""


def policy_for_current_branch(args: Namespace, git_branch: str,
                              allow_interactive: bool = True
                             ) -> ResolutionPolicy:
    """
    Build the policy for commands that act on the target.

    An explicit --branch replaces the git branch; otherwise a
    configured override redirects it. Either way, reaching
    production by redirection is refused.
    """
    explicit = _setting(args, "branch")
    override = ""
    disallow = False
    if explicit:
        git_branch = explicit
        disallow   = True
    elif _setting(args, "override_branch"):
        override = _setting(args, "override_branch")
        disallow = True
    return ResolutionPolicy(
        git_branch=git_branch,
        override=override,
        fallback=_setting(args, "fallback_branch"),
        allow_interactive=allow_interactive,
        disallow_production=disallow,
    )


def read_only_policy(args: Namespace, git_branch: str
                    ) -> ResolutionPolicy:
    """Policy for display commands; never refuses production."""
    explicit = _setting(args, "branch")
    return ResolutionPolicy(
        git_branch=explicit or git_branch,
        override="" if explicit else _setting(args, "override_branch"),
        fallback=_setting(args, "fallback_branch"),
        allow_interactive=False,
        disallow_production=False,
    )


def resolve_for_current_branch(directory: BranchDirectory,
                               args: Namespace, git_branch: str,
                               prompter: Prompter | None = None,
                               session: Session | None = None,
                               cancel: CancelToken | None = None
                              ) -> BranchTarget:
    """Resolve against merged config and CLI inputs."""
    policy = policy_for_current_branch(args, git_branch)
    names  = tuple(getattr(args, "protected_branches", None) or ())
    return resolve(policy, directory, prompter=prompter,
           session=session, cancel=cancel, protected_names=names)
