"""
OS account provisioning for SFTP users.

Turns a `UserSpec` into a local account whose home directory is a valid sshd
chroot: root-owned, mode 0755, with user-writable subdirectories inside it.

Steps per user:
1. Skip when the account already exists
2. groupadd (``group_<gid>``) when a requested gid has no group
3. useradd
4. Home directory ownership and mode
5. Password via chpasswd (random when none was given)
6. authorized_keys from ``~/.ssh/keys/``
7. Requested directories, owned by ``uid:users``
"""

from __future__ import annotations

import argparse
import logging
import os
import secrets
import string
import sys
from pathlib import Path

from sftpbox.core.config import Settings
from sftpbox.core.errors import CommandError, ProvisioningError, SftpBoxError, get_exit_code
from sftpbox.core.observability import configure_logging, provisioning_user
from sftpbox.core.process import CommandRunner, run_command
from sftpbox.domain.user_spec import UserSpec, parse_user_spec
from sftpbox.provisioning.keys import install_authorized_keys
from sftpbox.provisioning.system import AccountIds, SystemAccounts

logger = logging.getLogger(__name__)

_PASSWORD_ALPHABET = string.ascii_letters + string.digits


def generate_password(length: int) -> str:
    """Random alphanumeric password for accounts created without one."""
    return "".join(secrets.choice(_PASSWORD_ALPHABET) for _ in range(length))


def build_useradd_command(spec: UserSpec) -> list[str]:
    """Build the useradd command line for ``spec``."""
    cmd = ["useradd", "--no-user-group"]
    if spec.uid is not None:
        cmd += ["--non-unique", "--uid", str(spec.uid)]
    if spec.gid is not None:
        cmd += ["--gid", str(spec.gid)]
    cmd.append(spec.name)
    return cmd


def _chown_recursive(path: Path, uid: int, gid: int) -> None:
    os.chown(path, uid, gid)
    for root, dirs, files in os.walk(path):
        for name in dirs + files:
            os.chown(os.path.join(root, name), uid, gid, follow_symlinks=False)


class AccountProvisioner:
    """
    Creates SFTP accounts.

    Args:
        settings: Entrypoint settings (home root, shared group, password length)
        runner: Command runner (defaults to subprocess-backed run_command)
        accounts: Passwd/group lookups
    """

    def __init__(
        self,
        settings: Settings,
        runner: CommandRunner = run_command,
        accounts: SystemAccounts | None = None,
    ) -> None:
        self.settings = settings
        self.runner = runner
        self.accounts = accounts or SystemAccounts()

    def home_of(self, spec: UserSpec) -> Path:
        return self.settings.home_root / spec.name

    def create_user(self, spec: UserSpec) -> bool:
        """
        Create one account.

        Returns:
            True when created, False when the user already existed

        Raises:
            ProvisioningError: Any step failed
        """
        with provisioning_user(spec.name):
            if self.accounts.user_exists(spec.name):
                logger.warning("User already exists, skipping")
                return False

            try:
                self._ensure_group(spec)
                self.runner(build_useradd_command(spec))
                ids = self.accounts.user_ids(spec.name)
                home = self._prepare_home(spec)
                self._set_password(spec)
                install_authorized_keys(home, ids.uid)
                self._create_directories(spec, home, ids)
            except CommandError as e:
                raise ProvisioningError(
                    f"Failed to create user '{spec.name}': {e.message}",
                    details={"user": spec.name, **e.details},
                ) from e
            except (OSError, KeyError) as e:
                raise ProvisioningError(
                    f"Failed to create user '{spec.name}': {e}",
                    details={"user": spec.name},
                ) from e

            logger.info("Created user (uid=%d gid=%d)", ids.uid, ids.gid)
            return True

    def create_users(self, specs: list[UserSpec]) -> int:
        """Create every account in order; returns how many were created."""
        return sum(1 for spec in specs if self.create_user(spec))

    def _ensure_group(self, spec: UserSpec) -> None:
        if spec.gid is None or self.accounts.group_exists(spec.gid):
            return
        group = f"group_{spec.gid}"
        logger.info("Creating group %s", group)
        self.runner(["groupadd", "--gid", str(spec.gid), group])

    def _prepare_home(self, spec: UserSpec) -> Path:
        # sshd refuses to chroot into a directory writable by anyone but root
        home = self.home_of(spec)
        home.mkdir(parents=True, exist_ok=True)
        os.chown(home, 0, 0)
        os.chmod(home, 0o755)
        return home

    def _set_password(self, spec: UserSpec) -> None:
        if spec.has_password:
            password = spec.password
            cmd = ["chpasswd", "-e"] if spec.password_encrypted else ["chpasswd"]
        else:
            password = generate_password(self.settings.random_password_length)
            cmd = ["chpasswd"]
        self.runner(cmd, input_text=f"{spec.name}:{password}\n")

    def _create_directories(self, spec: UserSpec, home: Path, ids: AccountIds) -> None:
        if not spec.directories:
            return
        shared_gid = self.accounts.group_gid(
            self.settings.shared_group, self.settings.shared_group_default_gid
        )
        for directory in spec.directories:
            path = home / directory
            if not path.exists():
                logger.info("Creating directory %s", path)
                path.mkdir(parents=True)
            _chown_recursive(path, ids.uid, shared_gid)


def create_user_main(argv: list[str] | None = None) -> int:
    """
    ``sftp-create-user`` command: create a single account from one spec.

    Usage:
        sftp-create-user 'foo:pass:1001:100:upload'
    """
    parser = argparse.ArgumentParser(prog="sftp-create-user", description="Create one SFTP account")
    parser.add_argument("spec", help="name:password[:e][:uid[:gid[:dir1[,dir2]...]]]")
    args = parser.parse_args(argv if argv is not None else sys.argv[1:])

    settings = Settings()
    configure_logging(settings.log_level, settings.log_structured, prog="sftp-create-user")

    try:
        AccountProvisioner(settings).create_user(parse_user_spec(args.spec))
    except SftpBoxError as e:
        logger.critical("%s", e.message)
        return get_exit_code(e)
    return 0
