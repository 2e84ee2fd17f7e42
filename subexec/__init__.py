"""Thin layer for locating, launching and collecting output from OS processes."""

from subexec.cancel import CancelToken
from subexec.errors import (
    CancelledError,
    CommandFailedError,
    CommandNotFoundError,
    ExecError,
    SinkWriteError,
    StartError,
)
from subexec.executor import OS_DARWIN, OS_LINUX, OS_WINDOWS, Executor, host_arch, host_os
from subexec.fake import FakeExecutor
from subexec.settings import ExecutorSettings
from subexec.system import SystemExecutor

__all__ = [
    "OS_DARWIN",
    "OS_LINUX",
    "OS_WINDOWS",
    "CancelToken",
    "CancelledError",
    "CommandFailedError",
    "CommandNotFoundError",
    "ExecError",
    "Executor",
    "ExecutorSettings",
    "FakeExecutor",
    "SinkWriteError",
    "StartError",
    "SystemExecutor",
    "host_arch",
    "host_os",
]
