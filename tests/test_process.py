"""Tests for the subprocess wrappers."""

from __future__ import annotations

import subprocess
from unittest import mock

import pytest

from getoai import process
from getoai.errors import ExternalProcessFailure
from getoai.process import privileged, run, run_captured, run_pipe


def _completed(returncode: int = 0, stdout: str = "") -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout)


class TestRun:
    def test_success_echoes_command(self, capsys: pytest.CaptureFixture) -> None:
        with mock.patch("subprocess.run", return_value=_completed()) as sp_run:
            run(["brew", "install", "ollama"])

        assert sp_run.call_args[0][0] == ["brew", "install", "ollama"]
        assert sp_run.call_args[1]["env"] is None
        assert "$ brew install ollama" in capsys.readouterr().out

    def test_env_is_merged(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PATH", "/usr/bin")
        with mock.patch("subprocess.run", return_value=_completed()) as sp_run:
            run(["go", "install", "x@latest"], env={"GOPROXY": "https://goproxy.cn"})

        env = sp_run.call_args[1]["env"]
        assert env["GOPROXY"] == "https://goproxy.cn"
        assert env["PATH"] == "/usr/bin"

    def test_nonzero_exit(self) -> None:
        with mock.patch("subprocess.run", return_value=_completed(returncode=3)):
            with pytest.raises(ExternalProcessFailure) as excinfo:
                run(["npm", "install", "-g", "x"], hint="check npm")

        assert excinfo.value.returncode == 3
        assert excinfo.value.hint == "check npm"
        assert excinfo.value.message == "Command failed with exit code 3: npm install -g x"

    def test_missing_binary(self) -> None:
        with mock.patch("subprocess.run", side_effect=FileNotFoundError):
            with pytest.raises(ExternalProcessFailure) as excinfo:
                run(["nope"])

        assert excinfo.value.returncode == 127
        assert excinfo.value.message == "Command not found: nope"


class TestRunCaptured:
    def test_output_returned(self) -> None:
        with mock.patch("subprocess.run", return_value=_completed(stdout="v1.2.3\n")):
            result = run_captured(["tool", "--version"])

        assert result.success
        assert result.output == "v1.2.3\n"

    def test_failure_and_oserror(self) -> None:
        with mock.patch("subprocess.run", return_value=_completed(returncode=1, stdout="bad")):
            assert not run_captured(["tool"]).success
        with mock.patch("subprocess.run", side_effect=FileNotFoundError("no such file")):
            result = run_captured(["tool"])

        assert not result.success
        assert "no such file" in result.output


class TestRunPipe:
    def _popen(self, returncode: int) -> mock.Mock:
        fetch = mock.Mock()
        fetch.wait.return_value = returncode
        return fetch

    def test_both_succeed(self) -> None:
        fetch = self._popen(0)
        with mock.patch("subprocess.Popen", return_value=fetch), mock.patch(
            "subprocess.run", return_value=_completed()
        ) as sp_run:
            run_pipe(["curl", "-fsSL", "https://x/install.sh"], ["sh", "-s", "--"])

        assert sp_run.call_args[1]["stdin"] is fetch.stdout
        fetch.stdout.close.assert_called_once()

    def test_shell_failure_reported_first(self) -> None:
        with mock.patch("subprocess.Popen", return_value=self._popen(23)), mock.patch(
            "subprocess.run", return_value=_completed(returncode=1)
        ):
            with pytest.raises(ExternalProcessFailure) as excinfo:
                run_pipe(["curl", "https://x"], ["sh"])

        assert excinfo.value.cmd == ["sh"]

    def test_fetch_failure(self) -> None:
        with mock.patch("subprocess.Popen", return_value=self._popen(22)), mock.patch(
            "subprocess.run", return_value=_completed()
        ):
            with pytest.raises(ExternalProcessFailure) as excinfo:
                run_pipe(["curl", "https://x"], ["sh"])

        assert excinfo.value.cmd == ["curl", "https://x"]
        assert excinfo.value.returncode == 22


class TestPrivileged:
    def test_sudo_prefix(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(process, "is_root", lambda: False)
        assert privileged(["apt-get", "update"]) == ["sudo", "apt-get", "update"]

    def test_root_runs_directly(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(process, "is_root", lambda: True)
        assert privileged(["apt-get", "update"]) == ["apt-get", "update"]
