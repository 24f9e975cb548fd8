"""
Small helpers for reading local git state. All operations
use the git CLI via subprocess and never mutate the repo.
"""
# ======================= STANDARDS =======================
import subprocess
import logging

# ======================== LOCALS =========================
from .error_model import GitBranchUnavailable


logger = logging.getLogger("drift.gitutils")

GIT_TIMEOUT_S = 15.0


def run_git(args: list[str], cwd: str) -> tuple[int, str]:
    """Run a read-only git command; return (rc, output)."""
    logger.debug("RUN: git %s (cwd=%s)", " ".join(args), cwd)
    try:
        proc = subprocess.run(
            ["git"] + args,
            cwd=cwd,
            text=True,
            capture_output=True,
            timeout=GIT_TIMEOUT_S,
        )
    except FileNotFoundError: return 127, "git executable not found"
    except subprocess.TimeoutExpired:
        return 124, "git command timed out"
    stdout = proc.stdout or ""
    stderr = proc.stderr or ""
    logger.debug("RC=%s stdout=%r stderr=%r", proc.returncode,
                 stdout, stderr)
    if proc.returncode == 0: return 0, stdout.strip()
    return proc.returncode, (stderr or stdout).strip()


def current_branch(path: str = ".") -> str:
    """Current branch name; the short commit hash when detached."""
    rc, out = run_git(["rev-parse", "--abbrev-ref", "HEAD"],
              cwd=path)
    if rc != 0:
        raise GitBranchUnavailable(
            f"failed to get current branch: {out or 'git error'}")
    if out != "HEAD": return out

    rc, out = run_git(["rev-parse", "--short", "HEAD"], cwd=path)
    if rc != 0:
        raise GitBranchUnavailable(
            f"failed to get current commit: {out or 'git error'}")
    return out
