"""
External command execution.

Every binary this project drives (docker, ssh-keygen, useradd, chpasswd, ...)
goes through `run_command`, which logs the command line and turns a non-zero
exit into `CommandError`.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass

from sftpbox.core.errors import CommandError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a finished command."""

    args: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


# Signature shared by run_command and test doubles
CommandRunner = Callable[..., CommandResult]


def format_command(cmd: Sequence[str]) -> str:
    """Render a command for logs."""
    return " ".join(shlex.quote(part) for part in cmd)


def run_command(
    cmd: Sequence[str],
    *,
    check: bool = True,
    input_text: str | None = None,
    env: Mapping[str, str] | None = None,
    timeout: float | None = None,
) -> CommandResult:
    """
    Run a command and capture its output.

    Args:
        cmd: Command and arguments
        check: Raise CommandError on non-zero exit
        input_text: Data written to stdin (never logged)
        env: Full environment for the child (inherits when None)
        timeout: Seconds before the command is killed

    Returns:
        CommandResult with decoded stdout/stderr

    Raises:
        CommandError: Binary missing or not executable, timed out, or non-zero exit
            with check=True
    """
    args = tuple(str(part) for part in cmd)
    logger.debug("  > %s", format_command(args))

    try:
        completed = subprocess.run(
            args,
            input=input_text,
            capture_output=True,
            text=True,
            env=dict(env) if env is not None else None,
            timeout=timeout,
        )
    except FileNotFoundError as e:
        raise CommandError(
            f"Command not found: {args[0]}", details={"command": list(args), "returncode": 127}
        ) from e
    except subprocess.TimeoutExpired as e:
        raise CommandError(
            f"Command timed out after {timeout}s: {args[0]}",
            details={"command": list(args), "timeout": timeout},
        ) from e
    except OSError as e:
        raise CommandError(
            f"Cannot execute {args[0]}: {e.strerror}",
            details={"command": list(args), "errno": e.errno, "strerror": e.strerror},
        ) from e

    result = CommandResult(
        args=args,
        returncode=completed.returncode,
        stdout=completed.stdout or "",
        stderr=completed.stderr or "",
    )

    if check and not result.ok:
        raise CommandError(
            f"Command failed with exit code {result.returncode}: {args[0]}",
            details={
                "command": list(args),
                "returncode": result.returncode,
                "stderr": result.stderr.strip(),
            },
        )
    return result
