"""Entrypoint and harness configuration using Pydantic Settings.

Configuration is loaded from environment variables. Optionally, point
`ENV_FILE` at a local env file (useful for running the harness locally).

Two settings classes exist:
- `Settings`: read inside the container by the entrypoint
- `HarnessSettings`: read on the host by the integration test harness
"""

import os
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from sftpbox.domain.enums import KeyType

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _normalize_log_level(v: str) -> str:
    level = (v or "").strip().upper()
    if level not in _LOG_LEVELS:
        raise ValueError(f"log level must be one of {list(_LOG_LEVELS)}, got '{v}'")
    return level


class Settings(BaseSettings):
    """
    Container entrypoint settings.

    Paths default to the locations the image documents; tests override them
    with temporary directories.
    """

    model_config = SettingsConfigDict(
        env_file=os.getenv("ENV_FILE") or None,
        env_prefix="SFTPBOX_",
        extra="ignore",
        populate_by_name=True,
    )

    # Logging
    log_level: str = "INFO"
    log_structured: bool = False

    # Users from the environment (space separated specs), kept unprefixed
    sftp_users: str = Field(default="", validation_alias="SFTP_USERS")

    # Users files
    users_conf_path: Path = Path("/etc/sftp/users.conf")
    users_conf_legacy_path: Path = Path("/etc/sftp-users.conf")
    users_conf_final_path: Path = Path("/var/run/sftp/users.conf")

    # Filesystem layout
    home_root: Path = Path("/home")
    ssh_dir: Path = Path("/etc/ssh")
    scripts_dir: Path = Path("/etc/sftp.d")

    # Group owning autocreated directories
    shared_group: str = "users"
    shared_group_default_gid: int = 100

    # Generated password length for users without a password
    random_password_length: int = 64

    # sshd
    sshd_path: str = "/usr/sbin/sshd"
    sshd_args: str = "-D -e"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize log level to uppercase."""
        return _normalize_log_level(v)

    @field_validator("random_password_length")
    @classmethod
    def validate_password_length(cls, v: int) -> int:
        if v < 16:
            raise ValueError("random_password_length must be at least 16")
        return v

    @property
    def sftp_users_list(self) -> list[str]:
        """Split SFTP_USERS on whitespace."""
        return self.sftp_users.split()

    @property
    def sshd_command(self) -> list[str]:
        """Full sshd command line."""
        return [self.sshd_path, *self.sshd_args.split()]


class HarnessSettings(BaseSettings):
    """
    Integration harness settings (host side).

    Example:
        SFTPBOX_TEST_IMAGE=sftpbox:dev SFTPBOX_TEST_READY_TIMEOUT=30 uv run sftp-test-integration
    """

    model_config = SettingsConfigDict(
        env_file=os.getenv("ENV_FILE") or None, env_prefix="SFTPBOX_TEST_", extra="ignore"
    )

    image: str = "sftpbox:test"
    runtime_binary: str = "docker"
    container_prefix: str = "sftpbox_test"

    # Readiness polling
    ready_timeout: float = 20.0
    ready_interval: float = 0.5
    ssh_port: int = 22

    # Keep containers after a failing test for inspection
    keep_containers: bool = False

    # Client key type generated for tests
    client_key_type: str = "ed25519"

    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize log level to uppercase."""
        return _normalize_log_level(v)

    @field_validator("ready_timeout", "ready_interval")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("polling values must be positive")
        return v

    @field_validator("client_key_type")
    @classmethod
    def validate_client_key_type(cls, v: str) -> str:
        try:
            return KeyType(v.lower()).value
        except ValueError:
            raise ValueError(
                f"client_key_type must be one of {[k.value for k in KeyType]}, got '{v}'"
            )
