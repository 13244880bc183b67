#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Blocking execution of local helper processes (ssh, rsync, screen).

Components take a ``CommandRunner`` so tests can script exit codes without
touching the network.
"""

import shlex
import subprocess
from typing import Optional, Protocol, Sequence, runtime_checkable

from .exceptions import CommandNotFoundError
from .logger import ModernLogger


@runtime_checkable
class CommandRunner(Protocol):
    """Protocol for running a command to completion and returning its exit code."""

    def run(self, argv: Sequence[str], cwd: Optional[str] = None) -> int:
        """Run ``argv`` and block until it exits."""
        ...


def format_command(argv: Sequence[str]) -> str:
    """Render argv as a copy-pasteable shell line."""
    return " ".join(shlex.quote(part) for part in argv)


class SubprocessRunner(ModernLogger):
    """Run commands with ``subprocess``, inheriting the terminal."""

    def __init__(self) -> None:
        ModernLogger.__init__(self, name="SubprocessRunner")

    def run(self, argv: Sequence[str], cwd: Optional[str] = None) -> int:
        command = list(argv)
        self.debug("Running: %s", format_command(command))
        try:
            completed = subprocess.run(command, cwd=cwd, check=False)
        except FileNotFoundError as exc:
            raise CommandNotFoundError(
                "Required program '{0}' was not found; install it or configure its path".format(
                    command[0]
                ),
                command=command[0],
                cause=exc,
            ) from exc
        self.debug("Exit code %s from %s", completed.returncode, command[0])
        return completed.returncode


__all__ = ["CommandRunner", "SubprocessRunner", "format_command"]
