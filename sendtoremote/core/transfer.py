#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Transfer channel over rsync.

push: mirrors each manifest directory (files only, no recursion) under the
remote root using relative path names, deleting anything extraneous in those
directories. The remote root must therefore be owned exclusively by
SendToRemote.

pull: copies one invocation's result subtree back, additively.
"""

from typing import List, Optional, Sequence

from .utils.exceptions import TransferError, UsageError
from .utils.logger import ModernLogger
from .utils.paths import remote_join
from .utils.process import CommandRunner, SubprocessRunner, format_command

# archive, verbose, compress, directories, prune-empty-dirs, relative-path-names
PUSH_FLAGS = ("-avzdmR", "--no-r", "--delete")
PULL_FLAGS = ("-avz",)


class TransferChannel(ModernLogger):
    """Mirror local directories to ``host`` and pull results back."""

    def __init__(
        self,
        host: str,
        runner: Optional[CommandRunner] = None,
        rsync_binary: str = "rsync",
        local_prefix: Sequence[str] = (),
    ) -> None:
        ModernLogger.__init__(self, name="TransferChannel")
        if not host:
            raise UsageError("Host cannot be empty")
        self.host = host
        self.runner = runner or SubprocessRunner()
        self.rsync_binary = rsync_binary
        self.local_prefix = tuple(local_prefix)

    def push_command(self, directories: Sequence[str], destination_root: str) -> List[str]:
        return [
            *self.local_prefix,
            self.rsync_binary,
            *PUSH_FLAGS,
            *directories,
            "{0}:{1}".format(self.host, destination_root),
        ]

    def pull_command(self, remote_root: str, relative_result_path: str) -> List[str]:
        source = remote_join(remote_root, relative_result_path).rstrip("/")
        return [
            *self.local_prefix,
            self.rsync_binary,
            *PULL_FLAGS,
            "{0}:{1}".format(self.host, source),
            ".",
        ]

    def push(self, directories: Sequence[str], destination_root: str) -> None:
        """
        Mirror ``directories`` (posix paths ending in ``/``) into ``destination_root``.

        Raises:
            TransferError: If rsync exits with a non-zero status
        """
        if not directories:
            raise UsageError("Nothing to push: the manifest is empty")
        self.info("Syncing path to remote machine (%d directories)", len(directories))
        self._run("push", self.push_command(directories, destination_root))

    def pull(self, remote_root: str, relative_result_path: str, local_root: str) -> None:
        """
        Copy ``<remote_root>/<relative_result_path>`` into ``local_root``.

        Raises:
            TransferError: If rsync exits with a non-zero status
        """
        self.info("Syncing output files locally")
        self._run("pull", self.pull_command(remote_root, relative_result_path), cwd=local_root)

    def _run(self, operation: str, argv: List[str], cwd: Optional[str] = None) -> None:
        exit_code = self.runner.run(argv, cwd=cwd)
        if exit_code != 0:
            command = format_command(argv)
            self.error("rsync %s failed with exit code %s", operation, exit_code)
            raise TransferError(
                "Transfer failed during {0}".format(operation),
                operation=operation,
                exit_code=exit_code,
                command=command,
            )


__all__ = ["PULL_FLAGS", "PUSH_FLAGS", "TransferChannel"]
