"""
Process helper for the sftpbox developer commands.

`sftp-test`, `sftp-test-integration`, `sftp-lint` and `sftp-format` each
start pytest or ruff under the current interpreter and exit with its status.
"""

from __future__ import annotations

import subprocess
from collections.abc import Sequence


def run(cmd: Sequence[str]) -> None:
    """
    Run a tool and exit with its return code.

    Args:
        cmd: Tool command line, e.g. ``[sys.executable, "-m", "ruff", "check", "sftpbox"]``
    """
    result = subprocess.run(cmd)
    raise SystemExit(result.returncode)
