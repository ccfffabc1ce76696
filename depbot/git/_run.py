"""Internal helpers: run git commands, GitRunnerError."""

import logging
import subprocess
from pathlib import Path


class GitRunnerError(Exception):
    """Raised when a git command fails."""

    pass


def _run_git(args: list[str], cwd: Path, log: logging.Logger | None = None, timeout: int = 300) -> str:
    """Run git command and return its stdout; raise GitRunnerError on non-zero exit."""
    cmd = ["git"] + args
    # only the subcommand is reported: clone/remote arguments may carry credentials
    try:
        result = subprocess.run(cmd, cwd=cwd, check=True, capture_output=True, text=True, timeout=timeout)
    except subprocess.CalledProcessError as e:
        err = (e.stderr or e.stdout or "").strip()
        if log:
            log.warning("Git %s failed: %s", args[0], err)
        raise GitRunnerError(f"git {args[0]}: {err}") from e
    except subprocess.TimeoutExpired as e:
        raise GitRunnerError(f"git {args[0]}: timed out after {timeout}s") from e
    except FileNotFoundError as e:
        raise GitRunnerError("git not found") from e
    return result.stdout
