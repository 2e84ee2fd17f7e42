"""Capability interface shared by the system executor and its test double."""
from __future__ import annotations

import io
import platform
from collections.abc import Mapping, Sequence
from typing import Protocol

from subexec.cancel import CancelToken
from subexec.streams import Sink

OS_LINUX = "linux"
OS_DARWIN = "darwin"
OS_WINDOWS = "windows"

Environ = Mapping[str, str] | Sequence[str]

_ARCH_ALIASES: dict[str, str] = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "x64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armv8l": "arm64",
    "i386": "386",
    "i686": "386",
    "x86": "386",
    "armv6l": "arm",
    "armv7l": "arm",
    "ppc64le": "ppc64le",
    "s390x": "s390x",
    "riscv64": "riscv64",
}


def host_os() -> str:
    return platform.system().lower()


def host_arch() -> str:
    machine = platform.machine().lower()
    return _ARCH_ALIASES.get(machine, machine)


class Executor(Protocol):
    """Locates, launches and collects output from OS processes.

    Every run operation raises an :class:`~subexec.errors.ExecError` subclass
    on failure; the exception carries any output captured before the failure.
    """

    def with_cancellation(self, token: CancelToken | None) -> Executor: ...

    def look_path(self, name: str) -> str: ...

    def command(self, name: str, *args: str) -> bytes: ...

    def run_command(self, name: str, *args: str) -> None: ...

    def run_command_with_env(
        self,
        name: str,
        argv: Sequence[str],
        envv: Environ | None,
        stdout: Sink | None,
        stderr: Sink | None,
    ) -> None: ...

    def run_command_in_dir(self, name: str, dir: str, *args: str) -> None: ...

    def run_command_and_return(self, name: str, dir: str, *args: str) -> str: ...

    def run_command_with_sudo(self, name: str, *args: str) -> None: ...

    def run_command_with_buffer(
        self,
        name: str,
        dir: str,
        stdout: io.BytesIO | None,
        stderr: io.BytesIO | None,
        *args: str,
    ) -> None: ...

    def run_command_with_io(
        self, name: str, dir: str, stdout: Sink | None, stderr: Sink | None, *args: str
    ) -> None: ...

    def system_call(self, name: str, argv: Sequence[str], envv: Environ) -> None: ...

    def mkdir_all(self, path: str, perm: int = 0o755) -> None: ...

    def getenv(self, key: str) -> str: ...

    def setenv(self, key: str, value: str) -> None: ...

    def os(self) -> str: ...

    def arch(self) -> str: ...
