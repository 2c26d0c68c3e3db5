"""
Domain-specific exceptions for the SFTP container entrypoint and harness.

These exceptions represent provisioning and orchestration failures and are
mapped to process exit codes by the entrypoint.
"""

from typing import Any


class SftpBoxError(Exception):
    """Base exception for all sftpbox errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class UserSpecError(SftpBoxError):
    """
    Raised when a user specification string is malformed.

    Examples:
    - Invalid user name characters
    - Non-numeric uid or gid
    - Directory escaping the home directory

    Exit code: 2
    """

    pass


class ConfigurationError(SftpBoxError):
    """
    Raised when the container configuration cannot be used.

    Examples:
    - No users provided from any source
    - Unreadable users file

    Exit code: 3
    """

    pass


class CommandError(SftpBoxError):
    """
    Raised when an external command exits with a non-zero status.

    The details carry ``command``, ``returncode`` and ``stderr``.

    Exit code: 1
    """

    pass


class ProvisioningError(SftpBoxError):
    """
    Raised when an account, key or startup script cannot be set up.

    Examples:
    - useradd/chpasswd failure
    - Startup script exited non-zero

    Exit code: 1
    """

    pass


class ServiceNotReadyError(SftpBoxError):
    """
    Raised when a polled service does not become ready before its deadline.

    Exit code: 1
    """

    pass


# Process exit code mapping
ERROR_EXIT_CODE_MAP = {
    UserSpecError: 2,
    ConfigurationError: 3,
    CommandError: 1,
    ProvisioningError: 1,
    ServiceNotReadyError: 1,
}


def get_exit_code(error: Exception) -> int:
    """
    Get the process exit code for a given exception.

    Args:
        error: The exception instance

    Returns:
        Exit code (defaults to 1 for unknown errors)
    """
    return ERROR_EXIT_CODE_MAP.get(type(error), 1)
