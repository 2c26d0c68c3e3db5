"""CLI wrappers: Run the test suites.

Usage:
    uv run sftp-test                  # unit tests (no container runtime needed)
    uv run sftp-test-integration      # container tests against SFTPBOX_TEST_IMAGE
"""

from __future__ import annotations

import sys

from cli._runner import run


def main() -> None:
    run([sys.executable, "-m", "pytest", "-q", "-m", "unit", *sys.argv[1:]])


def integration() -> None:
    run([sys.executable, "-m", "pytest", "-m", "integration", "-v", *sys.argv[1:]])
