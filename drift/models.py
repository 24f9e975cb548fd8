"""Value objects shared by resolution, the gate and the CLI."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping
from enum import Enum
import threading


class Environment(str, Enum):
    PRODUCTION  = "Production"
    DEVELOPMENT = "Development"
    FEATURE     = "Feature"


@dataclass(frozen=True)
class RemoteBranch:
    """A provisioned backend branch as listed by the directory."""
    name: str
    git_branch: str
    project_ref: str
    is_default: bool = False
    is_persistent: bool = False
    status: str = ""
    updated_at: str = ""
    id: str = ""
    created_at: str = ""

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> RemoteBranch:
        def text(key: str) -> str:
            value = payload.get(key)
            return "" if value is None else str(value)

        return cls(
            name=text("name"),
            git_branch=text("git_branch"),
            project_ref=text("project_ref"),
            is_default=bool(payload.get("is_default", False)),
            is_persistent=bool(payload.get("persistent", False)),
            status=text("status"),
            updated_at=text("updated_at"),
            id=text("id"),
            created_at=text("created_at"),
        )


@dataclass(frozen=True)
class ResolutionPolicy:
    """Caller-supplied inputs for one resolution call."""
    git_branch: str
    override: str = ""
    fallback: str = ""
    allow_interactive: bool = False
    disallow_production: bool = False
    prompt_label: str = ""


@dataclass(frozen=True)
class BranchTarget:
    """Fully resolved remote target; never partially populated."""
    git_branch: str
    remote_branch: RemoteBranch
    environment: Environment
    project_ref: str
    api_url: str
    region: str | None = None
    is_override: bool = False
    override_from: str = ""
    is_fallback: bool = False

    def as_dict(self) -> dict[str, object]:
        return {
            "git_branch": self.git_branch,
            "remote_branch": {
                "name": self.remote_branch.name,
                "git_branch": self.remote_branch.git_branch,
                "project_ref": self.remote_branch.project_ref,
                "is_default": self.remote_branch.is_default,
                "persistent": self.remote_branch.is_persistent,
                "status": self.remote_branch.status,
                "updated_at": self.remote_branch.updated_at,
            },
            "environment": self.environment.value,
            "project_ref": self.project_ref,
            "api_url": self.api_url,
            "region": self.region,
            "is_override": self.is_override,
            "override_from": self.override_from,
            "is_fallback": self.is_fallback,
        }


@dataclass(frozen=True)
class Session:
    """Read-only runtime switches, set once at process start.

    `assume_yes` bypasses every confirmation, production included.
    It exists for CI and scripted use.
    """
    assume_yes: bool = False
    interactive: bool = True
    verbose: bool = False


@dataclass
class CancelToken:
    """Cooperative cancellation shared by blocking calls."""
    _event: threading.Event = field(default_factory=threading.Event)

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()
