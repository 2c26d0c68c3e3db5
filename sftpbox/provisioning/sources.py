"""
User specification sources.

Users come from three places, appended in this order on first start:
1. The users file (``/etc/sftp/users.conf``, or the legacy ``/etc/sftp-users.conf``)
2. Command-line arguments, when they are user specs
3. ``SFTP_USERS`` (space separated)

The merged list is written to the final users file. Its presence means the
container already provisioned its accounts, so restarts leave them alone.
"""

import logging
from collections.abc import Sequence
from pathlib import Path

from sftpbox.core.config import Settings
from sftpbox.core.errors import ConfigurationError
from sftpbox.domain.user_spec import is_skippable_line

logger = logging.getLogger(__name__)


def link_legacy_users_conf(settings: Settings) -> bool:
    """
    Point the users file at the legacy location when only the latter exists.

    Returns:
        True when a link was created
    """
    target = settings.users_conf_path
    legacy = settings.users_conf_legacy_path
    if target.exists() or target.is_symlink() or not legacy.is_file():
        return False

    logger.warning("Using legacy users file %s; move it to %s", legacy, target)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.symlink_to(legacy)
    return True


def read_users_file(path: Path) -> list[str]:
    """Return the non-comment, non-blank lines of a users file."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(
            f"Cannot read users file {path}: {e.strerror}", details={"path": str(path)}
        ) from e
    return [line.strip() for line in text.splitlines() if not is_skippable_line(line)]


def collect_user_lines(
    settings: Settings, args: Sequence[str] = (), accept_args: bool = True
) -> list[str]:
    """
    Merge user specs from every source.

    Args:
        settings: Entrypoint settings
        args: Command-line arguments
        accept_args: Arguments are user specs (False when they are a command)

    Returns:
        Spec strings in source order
    """
    lines: list[str] = []

    if settings.users_conf_path.is_file():
        from_file = read_users_file(settings.users_conf_path)
        logger.debug("%d user(s) from %s", len(from_file), settings.users_conf_path)
        lines.extend(from_file)

    if accept_args:
        lines.extend(arg for arg in args if arg.strip())

    lines.extend(settings.sftp_users_list)
    return lines


def final_users_conf_exists(settings: Settings) -> bool:
    return settings.users_conf_final_path.exists()


def write_final_users_conf(settings: Settings, lines: Sequence[str]) -> Path:
    """Write the merged spec list, one per line."""
    path = settings.users_conf_final_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("".join(f"{line}\n" for line in lines), encoding="utf-8")
    path.chmod(0o600)
    return path


def read_final_users_conf(settings: Settings) -> list[str]:
    return read_users_file(settings.users_conf_final_path)
