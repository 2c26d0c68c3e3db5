"""
SSH key material: user authorized_keys, container host keys, client key pairs.

Key generation is delegated to ``ssh-keygen``.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from sftpbox.core.process import CommandRunner, run_command
from sftpbox.domain.enums import HOST_KEY_TYPES, KeyType

logger = logging.getLogger(__name__)

KEYS_QUEUE_DIR = ".ssh/keys"
AUTHORIZED_KEYS_FILE = ".ssh/authorized_keys"


def collect_public_keys(keys_dir: Path) -> list[str]:
    """
    Read every file in ``keys_dir`` and return the unique key lines, sorted.

    Blank lines are dropped and surrounding whitespace is stripped, so the
    same key mounted twice (or with a trailing newline difference) counts once.
    """
    keys: set[str] = set()
    for entry in sorted(keys_dir.iterdir()):
        if not entry.is_file():
            continue
        for line in entry.read_text(encoding="utf-8", errors="replace").splitlines():
            line = line.strip()
            if line:
                keys.add(line)
    return sorted(keys)


def install_authorized_keys(home: Path, uid: int) -> Path | None:
    """
    Build ``~/.ssh/authorized_keys`` from the keys queued in ``~/.ssh/keys/``.

    The file is rewritten on every call, owned by ``uid`` with mode 0600.

    Args:
        home: User home directory
        uid: Owner of the generated file

    Returns:
        Path of the authorized_keys file, or None when no keys directory exists
    """
    keys_dir = home / KEYS_QUEUE_DIR
    if not keys_dir.is_dir():
        return None

    keys = collect_public_keys(keys_dir)
    authorized = home / AUTHORIZED_KEYS_FILE
    authorized.write_text("".join(f"{key}\n" for key in keys), encoding="utf-8")
    os.chown(authorized, uid, -1)
    os.chmod(authorized, 0o600)

    logger.info("Installed %d authorized key(s)", len(keys))
    return authorized


def host_key_path(ssh_dir: Path, key_type: KeyType) -> Path:
    return ssh_dir / f"ssh_host_{key_type.value}_key"


def generate_keypair(
    path: Path,
    key_type: KeyType = KeyType.ED25519,
    bits: int | None = None,
    comment: str | None = None,
    runner: CommandRunner = run_command,
) -> Path:
    """
    Generate an unencrypted key pair with ``ssh-keygen``.

    Returns:
        Path of the private key; the public key is ``<path>.pub``
    """
    cmd = ["ssh-keygen", "-q", "-t", key_type.value, "-f", str(path), "-N", ""]
    if bits is not None:
        cmd[4:4] = ["-b", str(bits)]
    if comment is not None:
        cmd += ["-C", comment]
    runner(cmd)
    return path


def ensure_host_keys(ssh_dir: Path, runner: CommandRunner = run_command) -> list[Path]:
    """
    Generate missing host keys and restrict all host keys to their owner.

    Existing keys are kept so a container restart presents the same identity.

    Returns:
        Paths of keys generated by this call
    """
    ssh_dir.mkdir(parents=True, exist_ok=True)
    generated = []
    for key_type, bits in HOST_KEY_TYPES.items():
        path = host_key_path(ssh_dir, key_type)
        if path.exists():
            continue
        logger.info("Generating %s host key", key_type.value)
        generate_keypair(path, key_type, bits=bits, runner=runner)
        generated.append(path)

    for key in sorted(ssh_dir.glob("ssh_host_*_key")):
        try:
            os.chmod(key, 0o600)
        except OSError as e:
            logger.warning("Could not restrict %s: %s", key, e)

    return generated
