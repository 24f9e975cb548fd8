"""
Branch directory clients.

`SupabaseDirectory` talks to the `supabase` CLI through
subprocess; `StaticDirectory` serves a fixed snapshot for
tests and offline use. Both raise `DirectoryUnavailable`
on failure and never retry.
"""
# ======================= STANDARDS =======================
from __future__ import annotations

from typing import Iterable, Protocol, Sequence
import subprocess
import logging
import json
import time

# ======================== LOCALS =========================
from .error_model import DirectoryUnavailable, ResolutionCancelled
from .models import CancelToken, RemoteBranch


logger = logging.getLogger("drift.directory")

DEFAULT_TIMEOUT_S = 60.0
POLL_INTERVAL_S   = 0.1


class BranchDirectory(Protocol):
    """Lookup surface the resolution engine depends on."""
    def find_by_git_branch(self, name: str) -> RemoteBranch | None: ...
    def list_all(self) -> list[RemoteBranch]: ...
    def url_for(self, project_ref: str) -> str: ...
    def find_project_region(self, project_ref: str) -> str | None: ...


def branch_url(project_ref: str) -> str:
    return f"https://{project_ref}.supabase.co"


def match_branch(branches: Iterable[RemoteBranch], name: str
                ) -> RemoteBranch | None:
    """Exact match on git branch first, then on display name."""
    pool = list(branches)
    for branch in pool:
        if branch.git_branch == name: return branch
    for branch in pool:
        if branch.name == name: return branch
    return None


def find_similar(branches: Iterable[RemoteBranch], query: str
                ) -> list[RemoteBranch]:
    """Return branches whose names resemble `query`."""
    needle = query.strip().lower()
    if not needle: return []
    parts = [p for p in needle.replace("/", " ").replace("-", " ")
             .replace("_", " ").split() if len(p) > 2]
    similar: list[RemoteBranch] = []
    for branch in branches:
        name = branch.name.lower()
        git_branch = branch.git_branch.lower()
        if needle in name or needle in git_branch:
            similar.append(branch)
            continue
        if any(p in name or p in git_branch for p in parts):
            similar.append(branch)
    return similar


class SupabaseDirectory:
    """Directory backed by `supabase ... --output json`."""

    def __init__(self, project_ref: str | None = None,
                 timeout_s: float = DEFAULT_TIMEOUT_S,
                 cancel: CancelToken | None = None,
                 executable: str = "supabase") -> None:
        self.project_ref = project_ref or None
        self.timeout_s   = timeout_s
        self.cancel      = cancel or CancelToken()
        self.executable  = executable

    def _run(self, args: Sequence[str]) -> str:
        cmd = [self.executable, *args]
        logger.debug("RUN: %s", " ".join(cmd))
        try:
            proc = subprocess.Popen(cmd, stdout=subprocess.PIPE,
                   stderr=subprocess.PIPE, text=True)
        except FileNotFoundError as e:
            raise DirectoryUnavailable(
                f"{self.executable} CLI not found on PATH") from e
        except OSError as e:
            raise DirectoryUnavailable(
                f"failed to start {self.executable}: {e}") from e

        deadline = time.monotonic() + self.timeout_s
        try:
            while True:
                try:
                    stdout, stderr = proc.communicate(
                                     timeout=POLL_INTERVAL_S)
                    break
                except subprocess.TimeoutExpired:
                    if self.cancel.cancelled:
                        self._kill(proc)
                        raise ResolutionCancelled()
                    if time.monotonic() >= deadline:
                        self._kill(proc)
                        raise DirectoryUnavailable(
                            f"{' '.join(cmd)} timed out after "
                            f"{self.timeout_s:g}s")
        except KeyboardInterrupt:
            self._kill(proc)
            self.cancel.cancel()
            raise ResolutionCancelled() from None

        logger.debug("RC=%s stdout=%r stderr=%r", proc.returncode,
                     stdout, stderr)
        if proc.returncode != 0:
            detail = (stderr or stdout or "").strip()
            if "not enabled" in detail:
                raise DirectoryUnavailable(
                    "branching is not enabled for this project",
                    stderr=detail)
            raise DirectoryUnavailable(
                f"{' '.join(cmd)} failed with exit code "
                f"{proc.returncode}: {detail}", stderr=detail)
        return stdout

    @staticmethod
    def _kill(proc: subprocess.Popen) -> None:
        proc.kill()
        proc.wait()

    def _json(self, args: Sequence[str], what: str) -> list[dict]:
        raw = self._run(args)
        try: payload = json.loads(raw or "[]")
        except json.JSONDecodeError as e:
            raise DirectoryUnavailable(
                f"failed to parse {what}: {e}") from e
        if not isinstance(payload, list):
            raise DirectoryUnavailable(
                f"failed to parse {what}: expected a JSON list")
        return [item for item in payload if isinstance(item, dict)]

    def list_all(self) -> list[RemoteBranch]:
        args = ["branches", "list", "--output", "json"]
        if self.project_ref: args += ["--project-ref", self.project_ref]
        items = self._json(args, "branches")
        return [RemoteBranch.from_payload(item) for item in items]

    def find_by_git_branch(self, name: str) -> RemoteBranch | None:
        return match_branch(self.list_all(), name)

    def url_for(self, project_ref: str) -> str:
        return branch_url(project_ref)

    def find_project_region(self, project_ref: str) -> str | None:
        items = self._json(["projects", "list", "--output", "json"],
                "projects")
        for item in items:
            if item.get("ref") == project_ref or item.get("id") \
                    == project_ref:
                region = item.get("region")
                return str(region) if region else None
        return None


class StaticDirectory:
    """In-memory directory over a fixed branch snapshot."""

    def __init__(self, branches: Iterable[RemoteBranch],
                 regions: dict[str, str] | None = None) -> None:
        self.branches = list(branches)
        self.regions  = dict(regions or {})
        self.calls: list[tuple[str, str]] = []

    def list_all(self) -> list[RemoteBranch]:
        self.calls.append(("list_all", ""))
        return list(self.branches)

    def find_by_git_branch(self, name: str) -> RemoteBranch | None:
        self.calls.append(("find_by_git_branch", name))
        return match_branch(self.branches, name)

    def url_for(self, project_ref: str) -> str:
        return branch_url(project_ref)

    def find_project_region(self, project_ref: str) -> str | None:
        self.calls.append(("find_project_region", project_ref))
        return self.regions.get(project_ref)
