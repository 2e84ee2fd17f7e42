"""Test double that answers every executor call from fixed expectations."""
from __future__ import annotations

import copy
import io
from collections.abc import Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from subexec.cancel import CancelToken
from subexec.executor import Environ
from subexec.streams import Sink


def _fresh(error: Exception) -> Exception:
    """Copy *error* so raising it never touches the configured instance."""
    return copy.copy(error)


class FakeExecutor(BaseModel):
    """Executor that never starts a process.

    Run operations raise ``expect_error`` when it is set and otherwise succeed;
    queries return the matching ``expect_*`` value. Arguments are ignored.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    expect_error: Exception | None = None
    expect_look_path_error: Exception | None = None
    expect_output: str = ""
    expect_err_output: str = ""
    expect_os: str = ""
    expect_arch: str = ""
    expect_look_path: str = ""
    expect_env: dict[str, str] = Field(default_factory=dict)

    _env: dict[str, str] = PrivateAttr(default_factory=dict)

    def model_post_init(self, __context: Any) -> None:
        self._env.update(self.expect_env)

    def _fail(self) -> None:
        if self.expect_error is not None:
            raise _fresh(self.expect_error)

    def with_cancellation(self, token: CancelToken | None) -> FakeExecutor:
        return self

    def look_path(self, name: str) -> str:
        if self.expect_look_path_error is not None:
            raise _fresh(self.expect_look_path_error)
        return self.expect_look_path

    def command(self, name: str, *args: str) -> bytes:
        self._fail()
        return self.expect_output.encode("utf-8")

    def run_command(self, name: str, *args: str) -> None:
        self._fail()

    def run_command_with_env(
        self,
        name: str,
        argv: Sequence[str],
        envv: Environ | None,
        stdout: Sink | None,
        stderr: Sink | None,
    ) -> None:
        self._fail()

    def run_command_in_dir(self, name: str, dir: str, *args: str) -> None:
        self._fail()

    def run_command_and_return(self, name: str, dir: str, *args: str) -> str:
        if self.expect_error is None:
            return self.expect_output
        error = _fresh(self.expect_error)
        error.output = self.expect_output + self.expect_err_output
        raise error

    def run_command_with_sudo(self, name: str, *args: str) -> None:
        self._fail()

    def run_command_with_buffer(
        self,
        name: str,
        dir: str,
        stdout: io.BytesIO | None,
        stderr: io.BytesIO | None,
        *args: str,
    ) -> None:
        self._fail()

    def run_command_with_io(
        self, name: str, dir: str, stdout: Sink | None, stderr: Sink | None, *args: str
    ) -> None:
        self._fail()

    def system_call(self, name: str, argv: Sequence[str], envv: Environ) -> None:
        self._fail()

    def mkdir_all(self, path: str, perm: int = 0o755) -> None:
        self._fail()

    def getenv(self, key: str) -> str:
        return self._env.get(key, "")

    def setenv(self, key: str, value: str) -> None:
        self._env[key] = value

    def os(self) -> str:
        return self.expect_os

    def arch(self) -> str:
        return self.expect_arch
