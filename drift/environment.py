"""Pure environment classification and production protection."""
from typing import Iterable

from .models import Environment, RemoteBranch


PROTECTED_BRANCH_NAMES: frozenset[str] = frozenset({
    "main",
    "master",
    "production",
    "prod",
})

ENVIRONMENT_WEIGHT: dict[Environment, int] = {
    Environment.DEVELOPMENT: 0,
    Environment.FEATURE: 1,
    Environment.PRODUCTION: 2,
}
UNKNOWN_WEIGHT = 3


def classify(branch: RemoteBranch) -> Environment:
    """Map a remote branch onto its operating tier."""
    # default wins over persistent
    if branch.is_default: return Environment.PRODUCTION
    if branch.is_persistent: return Environment.DEVELOPMENT
    return Environment.FEATURE


def _normalize(name: str | None) -> str:
    return (name or "").strip().lower()


def is_protected_name(name: str | None,
                      extra_names: Iterable[str] = ()) -> bool:
    """Return True when a name looks like production."""
    token = _normalize(name)
    if not token: return False
    if token in PROTECTED_BRANCH_NAMES: return True
    return token in {_normalize(n) for n in extra_names if _normalize(n)}


def is_protected(branch: RemoteBranch | None,
                 extra_names: Iterable[str] = ()) -> bool:
    """
    Return True when a branch must not be reached by
    redirection. Broader than `classify`: a production-like
    name is protected even before the directory marks it
    default.
    """
    if branch is None: return False
    if branch.is_default: return True
    extra = tuple(extra_names)
    return is_protected_name(branch.name, extra) \
        or is_protected_name(branch.git_branch, extra)


def environment_weight(env: Environment | str | None) -> int:
    """Sort weight surfacing the safest targets first."""
    try: key = Environment(env)
    except ValueError: return UNKNOWN_WEIGHT
    return ENVIRONMENT_WEIGHT.get(key, UNKNOWN_WEIGHT)
