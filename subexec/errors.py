from __future__ import annotations

import signal as _signal


class ExecError(RuntimeError):
    """Raised when an external process cannot be located, started or completed.

    Carries whatever the process produced before the failure so callers can
    report it without re-running the command.
    """

    def __init__(
        self,
        message: str,
        *,
        stdout: bytes = b"",
        stderr: bytes = b"",
        output: str = "",
    ) -> None:
        super().__init__(message)
        self.stdout = stdout
        self.stderr = stderr
        self.output = output

    def __copy__(self) -> ExecError:
        clone = type(self).__new__(type(self), *self.args)
        clone.__dict__.update(self.__dict__)
        return clone


class CommandNotFoundError(ExecError):
    """Raised when a command is not on the search path."""

    def __init__(self, name: str) -> None:
        super().__init__(f"exec: {name!r}: executable file not found in $PATH")
        self.name = name


class StartError(ExecError):
    """Raised when the process could not be spawned."""


class SinkWriteError(ExecError):
    """Raised when writing streamed output to a caller sink fails."""


class CancelledError(ExecError):
    """Raised when a run is cancelled or its deadline passes."""


def _describe_exit(returncode: int) -> tuple[str, int | None]:
    if returncode >= 0:
        return f"exit status {returncode}", None
    signum = -returncode
    try:
        name = _signal.Signals(signum).name
    except ValueError:
        name = f"signal {signum}"
    return f"signal: {name}", signum


class CommandFailedError(ExecError):
    """Raised when a process exits nonzero or is killed by a signal."""

    def __init__(
        self,
        cmd: list[str],
        returncode: int,
        *,
        stdout: bytes = b"",
        stderr: bytes = b"",
    ) -> None:
        detail, signum = _describe_exit(returncode)
        super().__init__(f"{cmd[0]}: {detail}", stdout=stdout, stderr=stderr)
        self.cmd = cmd
        self.returncode = returncode
        self.signal = signum
