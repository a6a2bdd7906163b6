"""Blocking subprocess execution with consistent logging and error reporting."""

import os
import subprocess
from pathlib import Path

import structlog

from .exceptions import CommandError

logger = structlog.get_logger()


class SubprocessResult:
    """Result of a subprocess execution."""

    def __init__(
        self,
        returncode: int,
        stdout: str,
        stderr: str,
        cmd: list[str],
    ):
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.cmd = cmd

    @property
    def success(self) -> bool:
        """Check if the command succeeded."""
        return self.returncode == 0

    @property
    def error_message(self) -> str:
        return self.stderr.strip() or self.stdout.strip() or "Command failed"

    def check_returncode(self) -> None:
        """Raise an exception if the command failed."""
        if self.returncode != 0:
            raise CommandError(
                f"Command failed with exit code {self.returncode}: {self.error_message}"
            )


def run_command(
    cmd: list[str],
    *,
    cwd: Path | str | None = None,
    timeout: float | None = None,
    check: bool = True,
    env: dict[str, str] | None = None,
) -> SubprocessResult:
    """Run a command to completion and capture its output.

    Args:
        cmd: Command and arguments as a list
        cwd: Working directory for the command
        timeout: Timeout in seconds (None waits indefinitely)
        check: Raise CommandError if the command exits non-zero
        env: Environment variables (defaults to the current environment)

    Returns:
        SubprocessResult with returncode, stdout and stderr

    Raises:
        CommandError: If check=True and the command fails, times out, or
            cannot be started
    """
    logger.debug("Executing command", command=" ".join(cmd), cwd=str(cwd) if cwd else None, timeout=timeout)

    try:
        completed = subprocess.run(  # nosec B603
            cmd,
            cwd=cwd,
            env=env or os.environ.copy(),
            capture_output=True,
            text=True,
            check=False,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        logger.warning("Command timed out", command=" ".join(cmd), timeout=timeout)
        raise CommandError(f"Command timed out after {timeout} seconds: {' '.join(cmd)}") from e
    except OSError as e:
        raise CommandError(f"Command could not be started: {e}") from e

    result = SubprocessResult(
        returncode=completed.returncode,
        stdout=completed.stdout or "",
        stderr=completed.stderr or "",
        cmd=cmd,
    )

    if check:
        result.check_returncode()

    return result
