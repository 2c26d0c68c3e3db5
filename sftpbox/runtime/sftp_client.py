"""
SFTP session used by the integration harness to assert on file access.

Usage:
    with SftpSession("127.0.0.1", 2222, "foo", key_file=key) as sftp:
        sftp.put_text("upload/hello.txt", "hello")
        assert "hello.txt" in sftp.listdir("upload")
"""

from __future__ import annotations

import io
import logging
from pathlib import Path

import paramiko

from sftpbox.core.errors import ServiceNotReadyError

logger = logging.getLogger(__name__)


class SftpSession:
    """
    Context-managed paramiko SFTP connection.

    Host keys are not verified: every test container generates fresh ones.
    """

    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str | None = None,
        key_file: Path | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.key_file = key_file
        self.timeout = timeout
        self._ssh: paramiko.SSHClient | None = None
        self._sftp: paramiko.SFTPClient | None = None

    def connect(self) -> SftpSession:
        ssh = paramiko.SSHClient()
        ssh.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        try:
            ssh.connect(
                self.host,
                port=self.port,
                username=self.username,
                password=self.password,
                key_filename=str(self.key_file) if self.key_file else None,
                look_for_keys=False,
                allow_agent=False,
                timeout=self.timeout,
                banner_timeout=self.timeout,
                auth_timeout=self.timeout,
            )
        except (paramiko.SSHException, OSError) as e:
            ssh.close()
            raise ServiceNotReadyError(
                f"SFTP login failed for {self.username}@{self.host}:{self.port}: {e}",
                details={"host": self.host, "port": self.port, "user": self.username},
            ) from e
        self._ssh = ssh
        self._sftp = ssh.open_sftp()
        logger.debug("SFTP session open for %s@%s:%d", self.username, self.host, self.port)
        return self

    @property
    def client(self) -> paramiko.SFTPClient:
        if self._sftp is None:
            raise RuntimeError("SFTP session is not connected")
        return self._sftp

    def close(self) -> None:
        if self._sftp is not None:
            self._sftp.close()
            self._sftp = None
        if self._ssh is not None:
            self._ssh.close()
            self._ssh = None

    def __enter__(self) -> SftpSession:
        return self.connect()

    def __exit__(self, *exc: object) -> None:
        self.close()

    def listdir(self, path: str = ".") -> list[str]:
        return sorted(self.client.listdir(path))

    def put_text(self, path: str, content: str) -> None:
        self.client.putfo(io.BytesIO(content.encode("utf-8")), path)

    def read_text(self, path: str) -> str:
        buffer = io.BytesIO()
        self.client.getfo(path, buffer)
        return buffer.getvalue().decode("utf-8")

    def stat(self, path: str) -> paramiko.SFTPAttributes:
        return self.client.stat(path)

    def mkdir(self, path: str) -> None:
        self.client.mkdir(path)

    def can_write(self, path: str) -> bool:
        """True when a probe file can be created (and removed) under ``path``."""
        probe = f"{path.rstrip('/')}/.sftpbox-write-probe"
        try:
            self.put_text(probe, "probe")
        except OSError:
            return False
        self.client.remove(probe)
        return True
