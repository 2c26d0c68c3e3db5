"""
Read access to the OS account database.

Wraps ``pwd``/``grp`` so provisioning logic can be exercised without touching
the real ``/etc/passwd``.
"""

import grp
import pwd
from dataclasses import dataclass


@dataclass(frozen=True)
class AccountIds:
    """Numeric identity of an existing account."""

    uid: int
    gid: int


class SystemAccounts:
    """Lookups against the local passwd/group databases."""

    def user_exists(self, name: str) -> bool:
        try:
            pwd.getpwnam(name)
        except KeyError:
            return False
        return True

    def user_ids(self, name: str) -> AccountIds:
        """Return uid/gid of ``name``; raises KeyError when absent."""
        entry = pwd.getpwnam(name)
        return AccountIds(uid=entry.pw_uid, gid=entry.pw_gid)

    def group_exists(self, gid: int) -> bool:
        try:
            grp.getgrgid(gid)
        except KeyError:
            return False
        return True

    def group_gid(self, name: str, default: int) -> int:
        """Return gid of group ``name``, or ``default`` when the group is missing."""
        try:
            return grp.getgrnam(name).gr_gid
        except KeyError:
            return default
