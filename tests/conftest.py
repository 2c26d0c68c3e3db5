"""
Pytest configuration and shared fixtures.

Provides:
- Settings pointing every container path at a temporary directory
- FakeRunner: records commands instead of executing them
- FakeAccounts: in-memory passwd/group database
- Container harness fixtures for integration tests (skipped when the
  container runtime or the image under test is unavailable)

Integration Fixtures:
- harness_settings: Session-scoped HarnessSettings
- runtime: Session-scoped ContainerRuntime (skips if unavailable)
- sftp_image: Image name (skips if not built; run `uv run sftp-image-build`)
- client_key: Client key pair generated with ssh-keygen
- sftp_container: Factory starting containers, removed on teardown
"""

from __future__ import annotations

import os
import sys
import uuid
from collections.abc import Callable, Generator, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

ROOT = Path(__file__).resolve().parents[1]

if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest  # noqa: E402 (import after path setup)

from sftpbox.core.config import HarnessSettings, Settings  # noqa: E402
from sftpbox.core.errors import CommandError  # noqa: E402
from sftpbox.core.process import CommandResult, format_command  # noqa: E402
from sftpbox.domain.enums import KeyType  # noqa: E402
from sftpbox.provisioning.keys import generate_keypair  # noqa: E402
from sftpbox.provisioning.system import AccountIds  # noqa: E402
from sftpbox.runtime.container import ContainerRuntime, Mount, RunOptions  # noqa: E402
from sftpbox.runtime.readiness import wait_for_process, wait_for_sftp  # noqa: E402

# ============================================================================
# Unit Test Doubles
# ============================================================================


@dataclass
class FakeRunner:
    """
    Command runner double.

    Records every call. Responses can be scripted per executable name with
    `respond`, or produced by a side-effect hook (e.g. to emulate useradd).
    """

    calls: list[dict[str, Any]] = field(default_factory=list)
    responses: dict[str, CommandResult] = field(default_factory=dict)
    hooks: dict[str, Callable[[list[str]], None]] = field(default_factory=dict)

    def respond(self, executable: str, returncode: int = 0, stdout: str = "", stderr: str = ""):
        self.responses[executable] = CommandResult(
            args=(executable,), returncode=returncode, stdout=stdout, stderr=stderr
        )

    def __call__(self, cmd: Sequence[str], *, check: bool = True, **kwargs: Any) -> CommandResult:
        args = [str(part) for part in cmd]
        self.calls.append({"args": args, "check": check, **kwargs})

        name = Path(args[0]).name
        hook = self.hooks.get(args[0]) or self.hooks.get(name)
        if hook is not None:
            hook(args)

        canned = self.responses.get(args[0]) or self.responses.get(name)
        result = CommandResult(
            args=tuple(args),
            returncode=canned.returncode if canned else 0,
            stdout=canned.stdout if canned else "",
            stderr=canned.stderr if canned else "",
        )
        if check and not result.ok:
            raise CommandError(
                f"Command failed with exit code {result.returncode}: {args[0]}",
                details={
                    "command": args,
                    "returncode": result.returncode,
                    "stderr": result.stderr,
                },
            )
        return result

    @property
    def commands(self) -> list[list[str]]:
        return [call["args"] for call in self.calls]

    def commands_for(self, executable: str) -> list[list[str]]:
        return [c for c in self.commands if Path(c[0]).name == executable]

    def rendered(self) -> list[str]:
        return [format_command(c) for c in self.commands]


@dataclass
class FakeAccounts:
    """In-memory replacement for SystemAccounts."""

    users: dict[str, AccountIds] = field(default_factory=dict)
    groups: dict[int, str] = field(default_factory=lambda: {0: "root", 100: "users"})
    next_uid: int = 1000

    def user_exists(self, name: str) -> bool:
        return name in self.users

    def user_ids(self, name: str) -> AccountIds:
        return self.users[name]

    def group_exists(self, gid: int) -> bool:
        return gid in self.groups

    def group_gid(self, name: str, default: int) -> int:
        for gid, group in self.groups.items():
            if group == name:
                return gid
        return default

    def apply_useradd(self, args: list[str]) -> None:
        """Emulate the effect of a useradd command line."""
        name = args[-1]
        uid = int(args[args.index("--uid") + 1]) if "--uid" in args else self.next_uid
        gid = int(args[args.index("--gid") + 1]) if "--gid" in args else 100
        if "--uid" not in args:
            self.next_uid += 1
        self.users[name] = AccountIds(uid=uid, gid=gid)

    def apply_groupadd(self, args: list[str]) -> None:
        self.groups[int(args[args.index("--gid") + 1])] = args[-1]


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Entrypoint settings rooted in a temporary directory."""
    return Settings(
        users_conf_path=tmp_path / "etc/sftp/users.conf",
        users_conf_legacy_path=tmp_path / "etc/sftp-users.conf",
        users_conf_final_path=tmp_path / "run/sftp/users.conf",
        home_root=tmp_path / "home",
        ssh_dir=tmp_path / "etc/ssh",
        scripts_dir=tmp_path / "etc/sftp.d",
        sftp_users="",
    )


@pytest.fixture
def fake_accounts() -> FakeAccounts:
    return FakeAccounts()


@pytest.fixture
def fake_runner(fake_accounts: FakeAccounts) -> FakeRunner:
    """Runner wired to FakeAccounts so useradd/groupadd take effect."""
    runner = FakeRunner()
    runner.hooks["useradd"] = fake_accounts.apply_useradd
    runner.hooks["groupadd"] = fake_accounts.apply_groupadd

    def _keygen(args: list[str]) -> None:
        path = Path(args[args.index("-f") + 1])
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("PRIVATE KEY\n")
        Path(f"{path}.pub").write_text(f"ssh-{args[args.index('-t') + 1]} AAAA test\n")

    runner.hooks["ssh-keygen"] = _keygen
    return runner


@pytest.fixture
def chown_calls(monkeypatch: pytest.MonkeyPatch) -> list[tuple[str, int, int]]:
    """Record os.chown instead of changing ownership (tests do not run as root)."""
    calls: list[tuple[str, int, int]] = []

    def _fake_chown(path: Any, uid: int, gid: int, **kwargs: Any) -> None:
        calls.append((str(path), uid, gid))

    monkeypatch.setattr(os, "chown", _fake_chown)
    return calls


# ============================================================================
# Integration Harness
# ============================================================================


@pytest.fixture(scope="session")
def harness_settings() -> HarnessSettings:
    return HarnessSettings()


@pytest.fixture(scope="session")
def runtime(harness_settings: HarnessSettings) -> ContainerRuntime:
    runtime = ContainerRuntime(harness_settings.runtime_binary)
    if not runtime.is_available():
        pytest.skip(f"container runtime '{harness_settings.runtime_binary}' is not available")
    return runtime


@pytest.fixture(scope="session")
def sftp_image(runtime: ContainerRuntime, harness_settings: HarnessSettings) -> str:
    if not runtime.image_exists(harness_settings.image):
        pytest.skip(f"image {harness_settings.image} not found; run `uv run sftp-image-build`")
    return harness_settings.image


@pytest.fixture
def client_key(tmp_path: Path, harness_settings: HarnessSettings) -> Path:
    """Private key path; the public half is ``<path>.pub``."""
    key_dir = tmp_path / "client"
    key_dir.mkdir()
    return generate_keypair(
        key_dir / "id_test",
        KeyType(harness_settings.client_key_type),
        comment="sftpbox-test",
    )


@dataclass
class StartedContainer:
    """A running test container and how to reach it."""

    name: str
    runtime: ContainerRuntime
    host: str
    port: int

    def exec(self, *cmd: str, check: bool = True) -> CommandResult:
        return self.runtime.exec(self.name, list(cmd), check=check)

    def logs(self) -> str:
        return self.runtime.logs(self.name)

    def read(self, path: str) -> str:
        return self.exec("cat", path).stdout


@pytest.fixture
def sftp_container(
    request: pytest.FixtureRequest,
    runtime: ContainerRuntime,
    sftp_image: str,
    harness_settings: HarnessSettings,
) -> Generator[Callable[..., StartedContainer], None, None]:
    """
    Factory starting SFTP containers and waiting until sshd answers.

    Usage:
        container = sftp_container(["foo:pass:::upload"], mounts=[...], env={...})
    """
    started: list[str] = []

    def _start(
        args: Sequence[str] = (),
        mounts: Sequence[Mount] = (),
        env: dict[str, str] | None = None,
        wait: bool = True,
    ) -> StartedContainer:
        name = f"{harness_settings.container_prefix}_{uuid.uuid4().hex[:12]}"
        started.append(name)
        runtime.run(
            sftp_image,
            list(args),
            RunOptions(
                name=name,
                env=env or {},
                mounts=list(mounts),
                publish=[f"127.0.0.1::{harness_settings.ssh_port}"],
            ),
        )
        container = StartedContainer(name=name, runtime=runtime, host="", port=0)
        if wait:
            wait_for_process(
                runtime,
                name,
                "sshd",
                timeout=harness_settings.ready_timeout,
                interval=harness_settings.ready_interval,
            )
            container.host, container.port = runtime.published_port(
                name, harness_settings.ssh_port
            )
            wait_for_sftp(
                container.host,
                container.port,
                timeout=harness_settings.ready_timeout,
                interval=harness_settings.ready_interval,
            )
        return container

    yield _start

    failed = getattr(request.node, "rep_call", None)
    keep = harness_settings.keep_containers and failed is not None and failed.failed
    for name in started:
        if keep:
            print(f"\nKeeping container {name} for inspection:\n{runtime.logs(name)}")
            continue
        runtime.remove(name)


@pytest.hookimpl(tryfirst=True, hookwrapper=True)
def pytest_runtest_makereport(item: pytest.Item, call: pytest.CallInfo) -> Generator:
    """Expose the call-phase report to fixtures (used by sftp_container teardown)."""
    outcome = yield
    report = outcome.get_result()
    if report.when == "call":
        item.rep_call = report
