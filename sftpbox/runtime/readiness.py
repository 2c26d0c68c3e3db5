"""
Bounded readiness polling.

The only retry policy in the project: call a check until it passes or a
deadline expires, sleeping between attempts.
"""

from __future__ import annotations

import logging
import socket
import time
from collections.abc import Callable

from sftpbox.core.errors import CommandError, ServiceNotReadyError
from sftpbox.runtime.container import ContainerRuntime

logger = logging.getLogger(__name__)

SSH_BANNER_PREFIX = b"SSH-"


def poll_until(
    check: Callable[[], bool],
    timeout: float,
    interval: float,
    description: str,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """
    Call ``check`` until it returns True.

    Args:
        check: Readiness predicate; exceptions count as "not ready"
        timeout: Seconds before giving up
        interval: Seconds between attempts
        description: What is awaited (for logs and errors)

    Returns:
        Number of attempts made

    Raises:
        ServiceNotReadyError: Deadline passed
    """
    deadline = clock() + timeout
    attempts = 0
    last_error: str | None = None

    while True:
        attempts += 1
        try:
            if check():
                logger.debug("%s ready after %d attempt(s)", description, attempts)
                return attempts
        except (OSError, CommandError) as e:
            last_error = str(e)

        if clock() >= deadline:
            raise ServiceNotReadyError(
                f"{description} not ready after {timeout}s",
                details={"attempts": attempts, "last_error": last_error},
            )
        sleep(interval)


def probe_ssh_banner(host: str, port: int = 22, timeout: float = 2.0) -> bool:
    """True when ``host:port`` accepts a TCP connection and greets with an SSH banner."""
    with socket.create_connection((host, port), timeout=timeout) as sock:
        sock.settimeout(timeout)
        banner = sock.recv(len(SSH_BANNER_PREFIX))
    return banner.startswith(SSH_BANNER_PREFIX)


def wait_for_sftp(host: str, port: int = 22, timeout: float = 20.0, interval: float = 0.5) -> int:
    """Wait until an SSH server answers on ``host:port``."""
    return poll_until(
        lambda: probe_ssh_banner(host, port, timeout=min(interval * 4, 5.0)),
        timeout=timeout,
        interval=interval,
        description=f"SSH server at {host}:{port}",
    )


def wait_for_process(
    runtime: ContainerRuntime,
    container: str,
    process: str = "sshd",
    timeout: float = 20.0,
    interval: float = 0.5,
) -> int:
    """Wait until ``process`` shows up in the container's process list."""

    def _check() -> bool:
        if not runtime.is_running(container):
            raise ServiceNotReadyError(
                f"Container {container} stopped while waiting for {process}",
                details={"logs": runtime.logs(container)[-2000:]},
            )
        result = runtime.exec(container, ["pgrep", "-x", process], check=False)
        return result.ok

    return poll_until(
        _check, timeout=timeout, interval=interval, description=f"{process} in {container}"
    )
