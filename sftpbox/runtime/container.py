"""
Container runtime wrapper.

Drives a docker-compatible CLI (``docker``, ``podman``) through subprocess.
Only what the integration harness needs is covered: run, exec, inspect,
logs, remove, image checks and build.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from sftpbox.core.errors import CommandError
from sftpbox.core.process import CommandResult, CommandRunner, run_command
from sftpbox.domain.enums import ContainerState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Mount:
    """Bind mount ``source`` (host) at ``target`` (container)."""

    source: Path
    target: str
    read_only: bool = False

    def as_arg(self) -> str:
        spec = f"{self.source}:{self.target}"
        return f"{spec}:ro" if self.read_only else spec


@dataclass
class RunOptions:
    """Options for `ContainerRuntime.run`."""

    name: str | None = None
    env: dict[str, str] = field(default_factory=dict)
    mounts: list[Mount] = field(default_factory=list)
    detach: bool = True
    remove: bool = False
    publish: list[str] = field(default_factory=list)
    extra_args: list[str] = field(default_factory=list)


class ContainerRuntime:
    """
    Thin docker CLI client.

    Args:
        binary: Runtime executable name or path
        runner: Command runner (tests inject a fake)
    """

    def __init__(self, binary: str = "docker", runner: CommandRunner = run_command) -> None:
        self.binary = binary
        self.runner = runner

    def _cmd(self, *args: str) -> list[str]:
        return [self.binary, *args]

    def is_available(self) -> bool:
        """True when the runtime binary exists and its daemon answers."""
        if shutil.which(self.binary) is None:
            return False
        result = self.runner(self._cmd("info", "--format", "{{.ServerVersion}}"), check=False)
        return result.ok

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------

    def image_exists(self, image: str) -> bool:
        result = self.runner(self._cmd("image", "inspect", image), check=False)
        return result.ok

    def build(self, context: Path, tag: str, dockerfile: Path | None = None) -> CommandResult:
        cmd = self._cmd("build", "--tag", tag)
        if dockerfile is not None:
            cmd += ["--file", str(dockerfile)]
        cmd.append(str(context))
        logger.info("Building image %s from %s", tag, context)
        return self.runner(cmd)

    # ------------------------------------------------------------------
    # Containers
    # ------------------------------------------------------------------

    def build_run_command(
        self, image: str, args: Sequence[str] = (), options: RunOptions | None = None
    ) -> list[str]:
        """Build the ``docker run`` command line."""
        options = options or RunOptions()
        cmd = self._cmd("run")
        if options.detach:
            cmd.append("--detach")
        if options.remove:
            cmd.append("--rm")
        if options.name:
            cmd += ["--name", options.name]
        for key, value in options.env.items():
            cmd += ["--env", f"{key}={value}"]
        for mount in options.mounts:
            cmd += ["--volume", mount.as_arg()]
        for port in options.publish:
            cmd += ["--publish", port]
        cmd += options.extra_args
        cmd.append(image)
        cmd += list(args)
        return cmd

    def run(
        self,
        image: str,
        args: Sequence[str] = (),
        options: RunOptions | None = None,
        check: bool = True,
    ) -> CommandResult:
        """
        Start a container.

        Detached runs return the container id in stdout; foreground runs
        return the container's own output and exit status.
        """
        return self.runner(self.build_run_command(image, args, options), check=check)

    def exec(
        self, container: str, cmd: Sequence[str], check: bool = True, user: str | None = None
    ) -> CommandResult:
        argv = self._cmd("exec")
        if user:
            argv += ["--user", user]
        argv.append(container)
        argv += list(cmd)
        return self.runner(argv, check=check)

    def logs(self, container: str) -> str:
        result = self.runner(self._cmd("logs", container), check=False)
        return result.stdout + result.stderr

    def inspect(self, container: str, template: str) -> str:
        result = self.runner(self._cmd("inspect", "--format", template, container))
        return result.stdout.strip()

    def state(self, container: str) -> ContainerState | None:
        """Current state, or None when the container does not exist."""
        try:
            value = self.inspect(container, "{{.State.Status}}")
        except CommandError:
            return None
        try:
            return ContainerState(value)
        except ValueError:
            logger.warning("Unknown container state %r for %s", value, container)
            return None

    def is_running(self, container: str) -> bool:
        return self.state(container) == ContainerState.RUNNING

    def ip_address(self, container: str) -> str:
        """First network IP address of the container."""
        value = self.inspect(
            container, "{{range .NetworkSettings.Networks}}{{.IPAddress}} {{end}}"
        )
        addresses = value.split()
        if not addresses:
            raise CommandError(
                f"Container {container} has no IP address", details={"container": container}
            )
        return addresses[0]

    def published_port(self, container: str, port: int, protocol: str = "tcp") -> tuple[str, int]:
        """Host address bound to a published container port (``docker port``)."""
        result = self.runner(self._cmd("port", container, f"{port}/{protocol}"))
        # One line per binding, e.g. "0.0.0.0:49153" or "[::]:49153"
        binding = result.stdout.strip().splitlines()[0]
        host, _, host_port = binding.rpartition(":")
        host = host.strip("[]")
        if host in ("0.0.0.0", "::", ""):
            host = "127.0.0.1"
        return host, int(host_port)

    def restart(self, container: str) -> None:
        self.runner(self._cmd("restart", container))

    def remove(self, container: str) -> None:
        """Force-remove the container and its anonymous volumes."""
        result = self.runner(self._cmd("rm", "--force", "--volumes", container), check=False)
        if not result.ok:
            logger.warning("Could not remove container %s: %s", container, result.stderr.strip())

