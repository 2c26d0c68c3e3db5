"""
Container entrypoint.

Provisions SFTP accounts and host keys, runs startup scripts, then replaces
itself with sshd (or with the command given as arguments).

Usage:
    sftp-entrypoint foo:pass:::upload bar:secret:1002
    sftp-entrypoint                       # users from users.conf / SFTP_USERS
    sftp-entrypoint ls -la /home          # run a command instead of sshd

Exit Codes:
    0 - Handed over to sshd or the command
    1 - Provisioning, filesystem or configuration failure
    2 - Invalid user specification
    3 - No users provided
    127 - Command could not be executed
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Callable, Sequence

from pydantic import ValidationError

from sftpbox.core.config import Settings
from sftpbox.core.errors import ConfigurationError, SftpBoxError, get_exit_code
from sftpbox.core.observability import configure_logging
from sftpbox.core.process import CommandRunner, format_command, run_command
from sftpbox.domain.user_spec import UserSpec, looks_like_user_spec, parse_user_spec, redact_spec
from sftpbox.provisioning.accounts import AccountProvisioner
from sftpbox.provisioning.hooks import run_startup_scripts
from sftpbox.provisioning.keys import ensure_host_keys
from sftpbox.provisioning.sources import (
    collect_user_lines,
    final_users_conf_exists,
    link_legacy_users_conf,
    write_final_users_conf,
)
from sftpbox.provisioning.system import SystemAccounts

logger = logging.getLogger("sftpbox.entrypoint")

Exec = Callable[[str, Sequence[str]], object]


def starts_sshd(args: Sequence[str]) -> bool:
    """Arguments that are not user specs are a command to run instead of sshd."""
    return not args or looks_like_user_spec(args[0])


def parse_specs(lines: Sequence[str]) -> list[UserSpec]:
    """Parse every line before touching the system, so one typo aborts cleanly."""
    specs = []
    for line in lines:
        logger.debug("Parsing %s", redact_spec(line))
        specs.append(parse_user_spec(line))
    return specs


def provision(
    settings: Settings,
    args: Sequence[str],
    start_sshd: bool,
    runner: CommandRunner = run_command,
    accounts: SystemAccounts | None = None,
) -> bool:
    """
    First-start provisioning: users, then host keys.

    Returns:
        False when the container was already provisioned

    Raises:
        ConfigurationError: No users while sshd would start
        UserSpecError: Invalid spec in any source
        ProvisioningError: Account or key setup failed
    """
    link_legacy_users_conf(settings)

    if final_users_conf_exists(settings):
        logger.info("Users already provisioned (%s exists)", settings.users_conf_final_path)
        return False

    specs = parse_specs(collect_user_lines(settings, args, accept_args=start_sshd))

    if specs:
        provisioner = AccountProvisioner(settings, runner=runner, accounts=accounts)
        created = provisioner.create_users(specs)
        write_final_users_conf(settings, [spec.to_spec() for spec in specs])
        logger.info("Provisioned %d of %d user(s)", created, len(specs))
    elif start_sshd:
        raise ConfigurationError("No users provided!")

    ensure_host_keys(settings.ssh_dir, runner=runner)
    return True


def main(
    argv: Sequence[str] | None = None,
    settings: Settings | None = None,
    runner: CommandRunner = run_command,
    accounts: SystemAccounts | None = None,
    execvp: Exec = os.execvp,
) -> int:
    """Entrypoint main; only returns on failure (or when ``execvp`` is stubbed)."""
    args = list(sys.argv[1:] if argv is None else argv)
    if settings is None:
        try:
            settings = Settings()
        except ValidationError as e:
            configure_logging(prog="sftp-entrypoint")
            logger.critical("Invalid configuration: %s", e)
            return 1
    configure_logging(settings.log_level, settings.log_structured, prog="sftp-entrypoint")

    start_sshd = starts_sshd(args)

    try:
        provision(settings, args, start_sshd, runner=runner, accounts=accounts)
        run_startup_scripts(settings.scripts_dir, runner=runner)
    except SftpBoxError as e:
        logger.critical("%s", e.message, extra={"details": e.details} if e.details else None)
        return get_exit_code(e)
    except OSError as e:
        logger.critical("Start-up failed: %s", e)
        return 1

    command = settings.sshd_command if start_sshd else args
    logger.info("Executing %s", format_command(command))
    sys.stdout.flush()
    sys.stderr.flush()
    try:
        execvp(command[0], command)
    except OSError as e:
        logger.critical("Cannot execute %s: %s", command[0], e.strerror)
        return 127
    return 0


if __name__ == "__main__":
    sys.exit(main())
