"""
Domain enums for key material and container state.
"""

from enum import Enum


class KeyType(str, Enum):
    """SSH key algorithms passed to ``ssh-keygen -t``."""

    ED25519 = "ed25519"
    RSA = "rsa"


# Host keys generated on first start, in generation order.
# Value is the ``-b`` bit size (None lets ssh-keygen choose).
HOST_KEY_TYPES: dict[KeyType, int | None] = {
    KeyType.ED25519: None,
    KeyType.RSA: 4096,
}


class ContainerState(str, Enum):
    """Container states reported by ``docker inspect --format {{.State.Status}}``."""

    CREATED = "created"
    RUNNING = "running"
    PAUSED = "paused"
    RESTARTING = "restarting"
    REMOVING = "removing"
    EXITED = "exited"
    DEAD = "dead"
