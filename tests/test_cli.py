from __future__ import annotations

import sys
from pathlib import Path

import pytest
from click.testing import CliRunner

from subexec import cli
from subexec.errors import CommandFailedError, CommandNotFoundError
from subexec.executor import host_arch, host_os
from subexec.fake import FakeExecutor

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="requires a POSIX shell")


def test_platform_prints_executor_platform() -> None:
    runner = CliRunner()

    result = runner.invoke(
        cli.app, ["platform"], obj=FakeExecutor(expect_os="os", expect_arch="arch")
    )

    assert result.exit_code == 0
    assert result.output.splitlines() == ["OS=os", "ARCH=arch"]


def test_platform_defaults_to_system_executor() -> None:
    result = CliRunner().invoke(cli.app, ["platform"])

    assert result.exit_code == 0
    assert f"OS={host_os()}" in result.output
    assert f"ARCH={host_arch()}" in result.output


def test_which_prints_resolved_path() -> None:
    result = CliRunner().invoke(
        cli.app, ["which", "tool"], obj=FakeExecutor(expect_look_path="/opt/bin/tool")
    )

    assert result.exit_code == 0
    assert "PATH=/opt/bin/tool" in result.output


def test_which_reports_missing_command() -> None:
    fake = FakeExecutor(expect_look_path_error=CommandNotFoundError("tool"))

    result = CliRunner().invoke(cli.app, ["which", "tool"], obj=fake)

    assert result.exit_code == 1
    assert "executable file not found" in result.output


def test_capture_failure_prints_partial_output_and_exits_with_child_code() -> None:
    fake = FakeExecutor(
        expect_error=CommandFailedError(["tool"], 2),
        expect_output="output",
        expect_err_output="error",
    )

    result = CliRunner().invoke(cli.app, ["capture", "tool", "--flag"], obj=fake)

    assert result.exit_code == 2
    assert "outputerror" in result.output


def test_capture_success_prints_stdout() -> None:
    result = CliRunner().invoke(
        cli.app, ["capture", "tool"], obj=FakeExecutor(expect_output="hello")
    )

    assert result.exit_code == 0
    assert result.output == "hello"


def test_run_sudo_cannot_be_combined_with_dir(tmp_path: Path) -> None:
    result = CliRunner().invoke(
        cli.app, ["run", "--sudo", "--dir", str(tmp_path), "tool"], obj=FakeExecutor()
    )

    assert result.exit_code == 1
    assert "--sudo cannot be combined with --dir" in result.output


def test_run_rejects_non_positive_timeout() -> None:
    result = CliRunner().invoke(
        cli.app, ["run", "--timeout", "0", "tool"], obj=FakeExecutor()
    )

    assert result.exit_code == 1
    assert "--timeout must be greater than zero" in result.output


@posix_only
def test_run_streams_real_output_and_propagates_exit_code() -> None:
    runner = CliRunner()

    ok = runner.invoke(cli.app, ["run", "sh", "-c", "printf hi"])
    failed = runner.invoke(cli.app, ["run", "sh", "-c", "exit 4"])

    assert ok.exit_code == 0
    assert "hi" in ok.output
    assert failed.exit_code == 4


@posix_only
def test_run_timeout_cancels_real_process() -> None:
    result = CliRunner().invoke(cli.app, ["run", "--timeout", "0.3", "sleep", "3"])

    assert result.exit_code == 1
    assert "cancelled" in result.output


def test_mkdir_creates_directory(tmp_path: Path) -> None:
    target = tmp_path / "x" / "y"

    result = CliRunner().invoke(cli.app, ["mkdir", str(target), "--mode", "700"])

    assert result.exit_code == 0
    assert target.is_dir()
    assert f"CREATED={target}" in result.output


def test_mkdir_rejects_invalid_mode(tmp_path: Path) -> None:
    result = CliRunner().invoke(cli.app, ["mkdir", str(tmp_path / "z"), "--mode", "rwx"])

    assert result.exit_code == 1
    assert "Invalid mode" in result.output


def test_console_entrypoint_is_declared() -> None:
    pyproject = Path(__file__).resolve().parents[1] / "pyproject.toml"
    text = pyproject.read_text(encoding="utf-8")

    assert 'subexec = "subexec.cli:main"' in text
