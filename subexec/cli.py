from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import NoReturn

import click

from subexec.cancel import CancelToken
from subexec.errors import CommandFailedError, CommandNotFoundError, ExecError
from subexec.executor import Executor
from subexec.settings import ExecutorSettings
from subexec.system import SystemExecutor


def _executor(ctx: click.Context, timeout: float | None = None) -> Executor:
    executor: Executor = ctx.obj
    if timeout is not None:
        if timeout <= 0:
            raise click.ClickException("--timeout must be greater than zero")
        executor = executor.with_cancellation(CancelToken.with_timeout(timeout))
    return executor


def _exit_for(exc: ExecError) -> NoReturn:
    if isinstance(exc, CommandFailedError) and exc.returncode > 0:
        click.echo(str(exc), err=True)
        sys.exit(exc.returncode)
    raise click.ClickException(str(exc)) from exc


def _parse_mode(value: str) -> int:
    try:
        return int(value, 8)
    except ValueError as exc:
        raise click.ClickException(f"Invalid mode '{value}'. Use octal, e.g. 755") from exc


@click.group(help="Locate and run external commands.")
@click.option("verbose", "--verbose", "-v", is_flag=True, default=False)
@click.pass_context
def app(ctx: click.Context, verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    if ctx.obj is None:
        ctx.obj = SystemExecutor(settings=ExecutorSettings.from_env())


@app.command("which")
@click.argument("name", type=str)
@click.pass_context
def which(ctx: click.Context, name: str) -> None:
    try:
        path = _executor(ctx).look_path(name)
    except CommandNotFoundError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"PATH={path}")


@app.command(
    "run",
    context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False},
)
@click.option("directory", "--dir", type=click.Path(file_okay=False, path_type=Path), default=None)
@click.option("sudo", "--sudo", is_flag=True, default=False)
@click.option("timeout", "--timeout", type=float, default=None)
@click.argument("name", type=str)
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def run(
    ctx: click.Context,
    directory: Path | None,
    sudo: bool,
    timeout: float | None,
    name: str,
    args: tuple[str, ...],
) -> None:
    if sudo and directory is not None:
        raise click.ClickException("--sudo cannot be combined with --dir")
    executor = _executor(ctx, timeout)
    try:
        if sudo:
            executor.run_command_with_sudo(name, *args)
        else:
            executor.run_command_in_dir(name, str(directory or ""), *args)
    except ExecError as exc:
        _exit_for(exc)


@app.command(
    "capture",
    context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False},
)
@click.option("directory", "--dir", type=click.Path(file_okay=False, path_type=Path), default=None)
@click.option("timeout", "--timeout", type=float, default=None)
@click.argument("name", type=str)
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def capture(
    ctx: click.Context,
    directory: Path | None,
    timeout: float | None,
    name: str,
    args: tuple[str, ...],
) -> None:
    executor = _executor(ctx, timeout)
    try:
        output = executor.run_command_and_return(name, str(directory or ""), *args)
    except ExecError as exc:
        click.echo(exc.output, nl=False)
        _exit_for(exc)
    click.echo(output, nl=False)


@app.command("platform")
@click.pass_context
def platform_info(ctx: click.Context) -> None:
    executor = _executor(ctx)
    click.echo(f"OS={executor.os()}")
    click.echo(f"ARCH={executor.arch()}")


@app.command("mkdir")
@click.argument("path", type=click.Path(path_type=Path))
@click.option("mode", "--mode", type=str, default="755")
@click.pass_context
def mkdir(ctx: click.Context, path: Path, mode: str) -> None:
    perm = _parse_mode(mode)
    try:
        _executor(ctx).mkdir_all(str(path), perm)
    except (OSError, ExecError) as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"CREATED={path}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
