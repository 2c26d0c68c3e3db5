"""CLI wrappers: Lint and format with ruff."""

from __future__ import annotations

import sys

from cli._runner import run

_TARGETS = ["sftpbox", "cli", "scripts", "tests"]


def lint() -> None:
    run([sys.executable, "-m", "ruff", "check", *_TARGETS, *sys.argv[1:]])


def fmt() -> None:
    run([sys.executable, "-m", "ruff", "format", *_TARGETS, *sys.argv[1:]])
