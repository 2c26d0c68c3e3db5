#!/usr/bin/env python3
"""
Simple health check script for the SFTP container.

Returns exit code 0 if sshd answers with an SSH banner, 1 otherwise.

Usage:
    # Check default (127.0.0.1:22)
    python scripts/healthcheck.py

    # Check specific host/port
    python scripts/healthcheck.py 127.0.0.1 2222

    # Use in Docker health check
    HEALTHCHECK CMD python3 /opt/sftpbox/scripts/healthcheck.py

Exit Codes:
    0 - sshd is healthy
    1 - sshd is unhealthy or unreachable
    2 - Invalid arguments
"""

from __future__ import annotations

import sys

from sftpbox.runtime.readiness import probe_ssh_banner


def check_health(host: str, port: int, timeout: float = 5.0) -> bool:
    """Check if an SSH server greets on ``host:port``.

    Args:
        host: Host to connect to
        port: TCP port
        timeout: Connect/read timeout in seconds

    Returns:
        True if healthy, False otherwise
    """
    try:
        return probe_ssh_banner(host, port, timeout=timeout)
    except OSError:
        return False


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = sys.argv[1:] if argv is None else argv
    host = "127.0.0.1"
    port = 22

    if args and args[0] in ("-h", "--help"):
        print(__doc__)
        return 0
    if len(args) > 2:
        print("ERROR: expected at most HOST and PORT")
        return 2
    if args:
        host = args[0]
    if len(args) > 1:
        try:
            port = int(args[1])
        except ValueError:
            print(f"ERROR: invalid port '{args[1]}'")
            return 2

    if check_health(host, port):
        print(f"OK: {host}:{port} is healthy")
        return 0
    else:
        print(f"FAIL: {host}:{port} is unhealthy or unreachable")
        return 1


if __name__ == "__main__":
    sys.exit(main())
