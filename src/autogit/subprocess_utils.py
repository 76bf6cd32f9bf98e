"""Subprocess helpers that attach operation context to failures."""

import logging
import os
import subprocess
from collections.abc import Sequence
from pathlib import Path

from autogit.core.errors import TransientNetworkError

logger = logging.getLogger(__name__)


def copied_env_for_git_subprocess() -> dict[str, str]:
    """Return a copy of the environment with interactive git prompts disabled.

    A credential prompt would otherwise block a timed-out subprocess forever.
    """
    env = os.environ.copy()
    env["GIT_TERMINAL_PROMPT"] = "0"
    return env


def run_subprocess_with_context(
    *,
    cmd: Sequence[str],
    operation_context: str,
    cwd: Path | None = None,
    timeout: float | None = None,
    env: dict[str, str] | None = None,
    check: bool = True,
) -> subprocess.CompletedProcess[str]:
    """Run a command, raising an error that names the operation on failure.

    Args:
        cmd: Command and arguments
        operation_context: Human-readable description used in error messages
        cwd: Working directory for the command
        timeout: Seconds before the command is killed
        env: Environment for the command (defaults to inherited)
        check: Raise RuntimeError on non-zero exit

    Returns:
        Completed process with text stdout/stderr

    Raises:
        RuntimeError: If the command exits non-zero (and check is True) or
            the executable is missing
        TransientNetworkError: If the command exceeds its timeout
    """
    logger.debug("Running %s (cwd=%s)", " ".join(cmd), cwd)
    try:
        result = subprocess.run(
            list(cmd),
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=timeout,
            env=env,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        raise TransientNetworkError(
            f"Failed to {operation_context}: timed out after {timeout}s"
        ) from e
    except FileNotFoundError as e:
        raise RuntimeError(f"Failed to {operation_context}: {cmd[0]} not found") from e

    if check and result.returncode != 0:
        stderr = result.stderr.strip()
        stdout = result.stdout.strip()
        detail = stderr or stdout or f"exit code {result.returncode}"
        raise RuntimeError(f"Failed to {operation_context}: {detail}")
    return result
