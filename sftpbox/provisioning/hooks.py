"""
Startup scripts from ``/etc/sftp.d``.

Executable files run in name order before sshd starts (for example to set up
bind mounts). Non-executable files are reported and skipped.
"""

import logging
import os
from pathlib import Path

from sftpbox.core.errors import CommandError, ProvisioningError
from sftpbox.core.process import CommandRunner, run_command

logger = logging.getLogger(__name__)


def run_startup_scripts(directory: Path, runner: CommandRunner = run_command) -> list[Path]:
    """
    Run every executable file in ``directory``.

    Returns:
        Scripts that ran

    Raises:
        ProvisioningError: A script could not be executed or exited non-zero
    """
    if not directory.is_dir():
        return []

    ran = []
    for script in sorted(directory.iterdir()):
        if not script.is_file():
            continue
        if not os.access(script, os.X_OK):
            logger.warning("Could not run %s, because it's missing execute permission (+x).", script)
            continue

        logger.info("Running %s ...", script)
        try:
            result = runner([str(script)])
        except CommandError as e:
            raise ProvisioningError(
                f"Startup script {script.name} failed", details={"script": str(script), **e.details}
            ) from e
        for line in result.stdout.splitlines():
            logger.info("%s: %s", script.name, line)
        for line in result.stderr.splitlines():
            logger.warning("%s: %s", script.name, line)
        ran.append(script)

    return ran
