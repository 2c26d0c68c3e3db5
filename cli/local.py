"""
Local SFTP container management commands.

Build the image and run a throwaway server for manual testing.

Usage:
    uv run sftp-image-build       # Build SFTPBOX_TEST_IMAGE from the Dockerfile
    uv run sftp-local-up          # Start a server on 127.0.0.1:2222 (user foo / pass)
    uv run sftp-local-down        # Stop and remove it
"""

from __future__ import annotations

import sys
from pathlib import Path

from sftpbox.core.config import HarnessSettings
from sftpbox.core.errors import SftpBoxError
from sftpbox.runtime.container import ContainerRuntime, RunOptions
from sftpbox.runtime.readiness import wait_for_sftp

LOCAL_CONTAINER = "sftpbox-local"
LOCAL_PORT = 2222
LOCAL_USER = "foo:pass:::upload"


def _get_project_root() -> Path:
    """Get the project root directory."""
    return Path(__file__).parent.parent


def _runtime(settings: HarnessSettings) -> ContainerRuntime:
    runtime = ContainerRuntime(settings.runtime_binary)
    if not runtime.is_available():
        print(f"ERROR: container runtime '{settings.runtime_binary}' is not available")
        sys.exit(1)
    return runtime


def build() -> None:
    """Build the SFTP image under test."""
    settings = HarnessSettings()
    runtime = _runtime(settings)
    root = _get_project_root()
    try:
        runtime.build(root, settings.image, dockerfile=root / "Dockerfile")
    except SftpBoxError as e:
        print(f"ERROR: {e.message}")
        print(e.details.get("stderr", ""))
        sys.exit(1)
    print(f"[OK] Built {settings.image}")


def up() -> None:
    """Start a local SFTP server for manual testing."""
    settings = HarnessSettings()
    runtime = _runtime(settings)

    if runtime.is_running(LOCAL_CONTAINER):
        print(f"[OK] {LOCAL_CONTAINER} already running on 127.0.0.1:{LOCAL_PORT}")
        return

    runtime.remove(LOCAL_CONTAINER)
    print(f"Starting {settings.image} as {LOCAL_CONTAINER}...")
    try:
        runtime.run(
            settings.image,
            [*sys.argv[1:]] or [LOCAL_USER],
            RunOptions(name=LOCAL_CONTAINER, publish=[f"127.0.0.1:{LOCAL_PORT}:22"]),
        )
        wait_for_sftp(
            "127.0.0.1", LOCAL_PORT, timeout=settings.ready_timeout, interval=settings.ready_interval
        )
    except SftpBoxError as e:
        print(f"ERROR: {e.message}")
        print(runtime.logs(LOCAL_CONTAINER))
        sys.exit(1)

    print()
    print("=" * 70)
    print("Local SFTP server is ready!")
    print("=" * 70)
    print()
    print(f"  sftp -P {LOCAL_PORT} foo@127.0.0.1      (password: pass)")
    print()


def down() -> None:
    """Stop and remove the local SFTP server."""
    settings = HarnessSettings()
    runtime = _runtime(settings)
    print(f"Removing {LOCAL_CONTAINER}...")
    runtime.remove(LOCAL_CONTAINER)
    print("Done.")
