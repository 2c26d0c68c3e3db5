"""Unit tests for run_command and exit code mapping."""

import errno
import subprocess
from unittest.mock import patch

import pytest

from sftpbox.core.errors import (
    CommandError,
    ConfigurationError,
    ProvisioningError,
    SftpBoxError,
    UserSpecError,
    get_exit_code,
)
from sftpbox.core.process import format_command, run_command

pytestmark = pytest.mark.unit


def _completed(returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


class TestRunCommand:
    def test_success_captures_output(self):
        with patch("sftpbox.core.process.subprocess.run", return_value=_completed(0, "out\n")) as m:
            result = run_command(["echo", "out"])

        assert result.ok
        assert result.stdout == "out\n"
        assert result.args == ("echo", "out")
        assert m.call_args.kwargs["capture_output"] is True
        assert m.call_args.kwargs["text"] is True

    def test_stdin_forwarded(self):
        with patch("sftpbox.core.process.subprocess.run", return_value=_completed()) as m:
            run_command(["chpasswd"], input_text="foo:bar\n")

        assert m.call_args.kwargs["input"] == "foo:bar\n"

    def test_failure_raises_with_details(self):
        with patch(
            "sftpbox.core.process.subprocess.run",
            return_value=_completed(4, stderr="useradd: bad\n"),
        ):
            with pytest.raises(CommandError) as exc_info:
                run_command(["useradd", "x"])

        assert exc_info.value.details == {
            "command": ["useradd", "x"],
            "returncode": 4,
            "stderr": "useradd: bad",
        }

    def test_failure_without_check(self):
        with patch("sftpbox.core.process.subprocess.run", return_value=_completed(1)):
            result = run_command(["false"], check=False)

        assert result.returncode == 1
        assert not result.ok

    def test_missing_binary(self):
        with patch("sftpbox.core.process.subprocess.run", side_effect=FileNotFoundError()):
            with pytest.raises(CommandError) as exc_info:
                run_command(["no-such-tool"])

        assert exc_info.value.details["returncode"] == 127

    def test_exec_format_error(self):
        with patch(
            "sftpbox.core.process.subprocess.run",
            side_effect=OSError(errno.ENOEXEC, "Exec format error"),
        ):
            with pytest.raises(CommandError) as exc_info:
                run_command(["/etc/sftp.d/10-noshebang"])

        assert exc_info.value.details["errno"] == errno.ENOEXEC
        assert exc_info.value.details["strerror"] == "Exec format error"

    def test_timeout(self):
        with patch(
            "sftpbox.core.process.subprocess.run",
            side_effect=subprocess.TimeoutExpired(cmd="sleep", timeout=1),
        ):
            with pytest.raises(CommandError, match="timed out"):
                run_command(["sleep", "10"], timeout=1)

    def test_format_command_quotes(self):
        assert format_command(["ssh-keygen", "-N", "", "-C", "a b"]) == "ssh-keygen -N '' -C 'a b'"


class TestExitCodes:
    @pytest.mark.parametrize(
        "error,code",
        [
            (UserSpecError("x"), 2),
            (ConfigurationError("x"), 3),
            (CommandError("x"), 1),
            (ProvisioningError("x"), 1),
            (SftpBoxError("x"), 1),
            (RuntimeError("x"), 1),
        ],
    )
    def test_mapping(self, error, code):
        assert get_exit_code(error) == code

    def test_details_default_to_empty(self):
        assert SftpBoxError("x").details == {}
