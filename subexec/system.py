"""Executor backed by the host operating system."""
from __future__ import annotations

import io
import logging
import os
import shlex
import shutil
import subprocess
import sys
import threading
from collections.abc import Mapping, Sequence
from typing import TextIO

from subexec.cancel import CancelToken
from subexec.errors import (
    CancelledError,
    CommandFailedError,
    CommandNotFoundError,
    ExecError,
    SinkWriteError,
    StartError,
)
from subexec.executor import Environ, host_arch, host_os
from subexec.settings import ExecutorSettings
from subexec.streams import Discard, DrainThread, Sink, drain

logger = logging.getLogger(__name__)

_CANCEL_POLL_SECONDS = 0.05


def _decode(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


def normalize_env(envv: Environ | None) -> dict[str, str] | None:
    """Turn a mapping or a list of ``KEY=VALUE`` strings into an env dict.

    ``None`` is passed through so the child inherits the current environment.
    """
    if envv is None:
        return None
    if isinstance(envv, Mapping):
        return {str(key): str(value) for key, value in envv.items()}
    env: dict[str, str] = {}
    for entry in envv:
        key, sep, value = entry.partition("=")
        if not sep or not key:
            raise ValueError(f"Invalid environment entry: {entry!r}")
        env[key] = value
    return env


class _TextSink:
    def __init__(self, stream: TextIO) -> None:
        self._stream = stream

    def write(self, data: bytes) -> int:
        self._stream.write(_decode(data))
        return len(data)

    def flush(self) -> None:
        self._stream.flush()


def _std_sink(stream: TextIO) -> Sink:
    buffer = getattr(stream, "buffer", None)
    if buffer is not None:
        stream.flush()
        return buffer
    return _TextSink(stream)


class _CancelWatcher(threading.Thread):
    """Kills *proc* when *token* fires; stopped once the process has exited."""

    def __init__(self, token: CancelToken, proc: subprocess.Popen[bytes]) -> None:
        super().__init__(name="subexec-cancel", daemon=True)
        self._token = token
        self._proc = proc
        self._done = threading.Event()
        self.fired = False

    def run(self) -> None:
        while not self._done.is_set():
            if self._token.wait(_CANCEL_POLL_SECONDS):
                if self._proc.poll() is None:
                    logger.debug("cancelling pid %s", self._proc.pid)
                    self._proc.kill()
                    self.fired = True
                return

    def stop(self) -> None:
        self._done.set()
        self.join()


class SystemExecutor:
    """Runs real processes.

    Construct one instance and pass it to whatever needs to run commands;
    swap in :class:`~subexec.fake.FakeExecutor` under test.
    """

    def __init__(
        self,
        token: CancelToken | None = None,
        settings: ExecutorSettings | None = None,
    ) -> None:
        self.token = token
        self.settings = settings or ExecutorSettings()

    def with_cancellation(self, token: CancelToken | None) -> SystemExecutor:
        return SystemExecutor(token=token, settings=self.settings)

    def look_path(self, name: str) -> str:
        path = shutil.which(name)
        if path is None:
            raise CommandNotFoundError(name)
        return os.path.abspath(path)

    def command(self, name: str, *args: str) -> bytes:
        combined = io.BytesIO()
        self._run([name, *args], stdout=combined, stderr=Discard(), merge_stderr=True)
        return combined.getvalue()

    def run_command(self, name: str, *args: str) -> None:
        self.run_command_with_io(name, "", _std_sink(sys.stdout), _std_sink(sys.stderr), *args)

    def run_command_with_env(
        self,
        name: str,
        argv: Sequence[str],
        envv: Environ | None,
        stdout: Sink | None,
        stderr: Sink | None,
    ) -> None:
        self._run(
            [name, *argv],
            env=normalize_env(envv),
            stdout=Discard() if stdout is None else stdout,
            stderr=Discard() if stderr is None else stderr,
        )

    def run_command_in_dir(self, name: str, dir: str, *args: str) -> None:
        self.run_command_with_io(name, dir, _std_sink(sys.stdout), _std_sink(sys.stderr), *args)

    def run_command_and_return(self, name: str, dir: str, *args: str) -> str:
        stdout = io.BytesIO()
        stderr = io.BytesIO()
        try:
            self.run_command_with_buffer(name, dir, stdout, stderr, *args)
        except ExecError as exc:
            exc.output = _decode(stdout.getvalue()) + _decode(stderr.getvalue())
            raise
        return _decode(stdout.getvalue())

    def run_command_with_sudo(self, name: str, *args: str) -> None:
        self.run_command(self.settings.elevation_program, name, *args)

    def run_command_with_buffer(
        self,
        name: str,
        dir: str,
        stdout: io.BytesIO | None,
        stderr: io.BytesIO | None,
        *args: str,
    ) -> None:
        if stdout is None:
            stdout = io.BytesIO()
        if stderr is None:
            stderr = io.BytesIO()
        self.run_command_with_io(name, dir, stdout, stderr, *args)

    def run_command_with_io(
        self, name: str, dir: str, stdout: Sink | None, stderr: Sink | None, *args: str
    ) -> None:
        self._run(
            [name, *args],
            cwd=dir or None,
            stdout=Discard() if stdout is None else stdout,
            stderr=Discard() if stderr is None else stderr,
        )

    def system_call(self, name: str, argv: Sequence[str], envv: Environ) -> None:
        self._check_cancelled([name, *argv[1:]])
        env = normalize_env(envv) or {}
        logger.debug("exec replacing process image with %s", name)
        try:
            os.execve(name, list(argv), env)
        except OSError as exc:
            raise StartError(f"exec {name}: {exc.strerror or exc}") from exc

    def mkdir_all(self, path: str, perm: int = 0o755) -> None:
        os.makedirs(path, mode=perm, exist_ok=True)

    def getenv(self, key: str) -> str:
        return os.environ.get(key, "")

    def setenv(self, key: str, value: str) -> None:
        os.environ[key] = value

    def _check_cancelled(self, argv: list[str]) -> None:
        if self.token is not None and self.token.cancelled:
            raise CancelledError(f"{argv[0]}: cancelled before start")

    def _run(
        self,
        argv: list[str],
        *,
        stdout: Sink,
        stderr: Sink,
        merge_stderr: bool = False,
        cwd: str | None = None,
        env: dict[str, str] | None = None,
    ) -> None:
        """Start *argv* and stream its output into the sinks until it exits.

        With *merge_stderr* both streams share one pipe drained into *stdout*
        and *stderr* is unused.
        Otherwise stdout is drained on a background thread and stderr on the
        calling thread; both drains finish before the process is waited on.
        """
        self._check_cancelled(argv)
        log = logger.info if self.settings.log_commands else logger.debug
        log("exec %s", shlex.join(argv))

        try:
            proc = subprocess.Popen(
                argv,
                cwd=cwd,
                env=env,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT if merge_stderr else subprocess.PIPE,
                bufsize=0,
            )
        except OSError as exc:
            raise StartError(f"exec {argv[0]}: {exc.strerror or exc}") from exc

        assert proc.stdout is not None
        watcher: _CancelWatcher | None = None
        if self.token is not None:
            watcher = _CancelWatcher(self.token, proc)
            watcher.start()

        err_captured = b""
        err_sink_error: Exception | None = None
        err_read_error: Exception | None = None
        try:
            if merge_stderr:
                out_captured, out_sink_error, out_read_error = drain(stdout, proc.stdout)
            else:
                assert proc.stderr is not None
                out_thread = DrainThread(stdout, proc.stdout)
                out_thread.start()
                err_captured, err_sink_error, err_read_error = drain(stderr, proc.stderr)
                out_thread.join()
                out_captured = out_thread.captured
                out_sink_error = out_thread.sink_error
                out_read_error = out_thread.read_error
            returncode = proc.wait()
        finally:
            if watcher is not None:
                watcher.stop()

        logger.debug("%s exited with %s", argv[0], returncode)
        if watcher is not None and watcher.fired:
            raise CancelledError(
                f"{argv[0]}: cancelled", stdout=out_captured, stderr=err_captured
            )
        sink_error = out_sink_error or err_sink_error
        if sink_error is not None:
            raise SinkWriteError(
                f"{argv[0]}: writing output: {sink_error}",
                stdout=out_captured,
                stderr=err_captured,
            ) from sink_error
        read_error = out_read_error or err_read_error
        if read_error is not None:
            raise ExecError(
                f"{argv[0]}: reading output: {read_error}",
                stdout=out_captured,
                stderr=err_captured,
            ) from read_error
        if returncode != 0:
            raise CommandFailedError(
                argv, returncode, stdout=out_captured, stderr=err_captured
            )

    def os(self) -> str:
        return host_os()

    def arch(self) -> str:
        return host_arch()
