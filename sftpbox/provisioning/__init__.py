"""
Provisioning package: everything the entrypoint does to the container
before handing over to sshd.
"""

from sftpbox.provisioning.accounts import AccountProvisioner
from sftpbox.provisioning.hooks import run_startup_scripts
from sftpbox.provisioning.keys import ensure_host_keys, install_authorized_keys

__all__ = [
    "AccountProvisioner",
    "ensure_host_keys",
    "install_authorized_keys",
    "run_startup_scripts",
]
