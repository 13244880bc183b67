#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Command line interface.

    sendtoremote invoke pkg.mod:double cluster --arg 4 --nout 1
    sendtoremote invoke setup cluster
    sendtoremote resume
    sendtoremote finish-load
    sendtoremote show
"""

import ast
import sys
from typing import Any, Optional, Sequence

import click
from rich.console import Console
from rich.table import Table
from rich.text import Text

from .client import InvocationOutcome, RemoteInvoker
from .core.config import SendToRemoteConfig
from .core.loader import LoadResult
from .core.utils.exceptions import SendToRemoteError

console = Console()
err_console = Console(stderr=True)


def parse_arg_value(raw: str) -> Any:
    """Interpret a command-line argument as a Python literal, else keep the string."""
    try:
        return ast.literal_eval(raw)
    except (ValueError, SyntaxError):
        return raw


def _render_result(result: LoadResult) -> None:
    if not result.loaded:
        console.print("Not loading variables locally; find output at {0}".format(result.location))
        return

    if result.failed:
        err_console.print(
            "[bold red]{0} raised an error remotely[/bold red]; transcript: {1}".format(
                result.target, result.transcript_path
            )
        )
        if result.error:
            err_console.print(result.error, markup=False, highlight=False)

    if result.bindings:
        table = Table(title="Variables created by {0}".format(result.target))
        table.add_column("Name")
        table.add_column("Type")
        table.add_column("Value", overflow="fold")
        for name, value in result.bindings.items():
            table.add_row(Text(name), type(value).__name__, Text(repr(value)))
        console.print(table)
    elif result.results:
        for index, value in enumerate(result.results, start=1):
            console.print("[{0}] {1!r}".format(index, value), markup=False)
    elif not result.failed:
        console.print("{0} finished with no results".format(result.target))


def _render_outcome(outcome: InvocationOutcome) -> None:
    if not outcome.completed:
        err_console.print(outcome.notice or "Session was closed before completing.")
        return
    if outcome.result is not None:
        _render_result(outcome.result)


@click.group()
@click.option("--log-level", default=None, help="Logging level (debug, info, warning, error)")
@click.option("--state-dir", default=None, help="Local directory for the descriptor and results")
@click.pass_context
def cli(ctx: click.Context, log_level: Optional[str], state_dir: Optional[str]) -> None:
    """Run Python scripts and functions on a remote host as though they ran locally."""
    ctx.ensure_object(dict)
    try:
        config = SendToRemoteConfig.from_env(validate=False).with_overrides(
            log_level=log_level.lower() if log_level else None,
            state_dir=state_dir,
        )
        config.validate()
    except SendToRemoteError as exc:
        raise click.ClickException(str(exc)) from exc
    ctx.obj["config"] = config


def _invoker(ctx: click.Context) -> RemoteInvoker:
    return RemoteInvoker(config=ctx.obj["config"])


@cli.command()
@click.argument("target")
@click.argument("host")
@click.argument("options", nargs=-1)
@click.option("--arg", "-a", "args", multiple=True, help="Positional argument (Python literal); repeatable")
@click.option("--nout", "-n", type=click.IntRange(min=0), default=None, help="Number of results to bring back")
@click.option("--script/--function", "as_script", default=None, help="Force script or function style")
@click.option("--no-load", is_flag=True, default=False, help="Leave results on disk instead of loading them")
@click.option("--no-reconnect", is_flag=True, default=False, help="Run over plain ssh without a resumable screen session")
@click.option("--remote-root", default=None, help="Remote directory that mirrors the search path")
@click.pass_context
def invoke(
    ctx: click.Context,
    target: str,
    host: str,
    options: Sequence[str],
    args: Sequence[str],
    nout: Optional[int],
    as_script: Optional[bool],
    no_load: bool,
    no_reconnect: bool,
    remote_root: Optional[str],
) -> None:
    """Run TARGET on HOST (an ssh destination).

    TARGET is a script module or file (setup, scripts/setup.py) or a function
    (pkg.module:func). Extra OPTIONS tokens (noload, noreconnect,
    remoteroot DIR) are accepted for compatibility.

    WARNING: the whole user search path is copied to HOST and extraneous
    files under the remote root are deleted.
    """
    try:
        outcome = _invoker(ctx).invoke(
            target,
            host,
            *options,
            args=[parse_arg_value(raw) for raw in args],
            result_arity=nout,
            style=None if as_script is None else ("script" if as_script else "function"),
            no_load=no_load or None,
            no_reconnect=no_reconnect or None,
            remote_root=remote_root,
        )
    except SendToRemoteError as exc:
        raise click.ClickException(str(exc)) from exc
    _render_outcome(outcome)


@cli.command()
@click.pass_context
def resume(ctx: click.Context) -> None:
    """Reattach to the last detached session and load its results."""
    try:
        outcome = _invoker(ctx).resume()
    except SendToRemoteError as exc:
        raise click.ClickException(str(exc)) from exc
    _render_outcome(outcome)


@cli.command("finish-load")
@click.pass_context
def finish_load(ctx: click.Context) -> None:
    """Pull and load the results of the last invocation again."""
    try:
        result = _invoker(ctx).finish_load()
    except SendToRemoteError as exc:
        raise click.ClickException(str(exc)) from exc
    _render_result(result)


@cli.command()
@click.pass_context
def show(ctx: click.Context) -> None:
    """Show the last saved invocation descriptor."""
    try:
        descriptor = _invoker(ctx).last_descriptor()
    except SendToRemoteError as exc:
        raise click.ClickException(str(exc)) from exc

    table = Table(title="Last invocation", show_header=False)
    table.add_column("Field")
    table.add_column("Value", overflow="fold")
    table.add_row("target", descriptor.target)
    table.add_row("style", descriptor.style.value)
    table.add_row("host", descriptor.host)
    table.add_row("session", descriptor.session_name)
    table.add_row("args", Text(repr(descriptor.args)))
    table.add_row("result arity", repr(descriptor.result_arity))
    table.add_row("remote root", descriptor.options.remote_root)
    table.add_row("no load", str(descriptor.options.no_load))
    table.add_row("no reconnect", str(descriptor.options.no_reconnect))
    table.add_row("working dir", descriptor.working_dir)
    table.add_row("created", descriptor.created_at)
    table.add_row("manifest", "\n".join(descriptor.manifest))
    console.print(table)


def main(argv: Optional[Sequence[str]] = None) -> None:
    cli.main(args=list(argv) if argv is not None else None, prog_name="sendtoremote")


if __name__ == "__main__":
    main(sys.argv[1:])
