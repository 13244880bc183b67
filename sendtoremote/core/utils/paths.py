#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Path conventions shared by the client and the remote executor.

Local paths are translated to posix form (``/mnt/c/...`` for Windows drives,
as seen from WSL) before they are sent anywhere. A local directory ``/a/b/``
is mirrored to ``<remote_root>/a/b/`` on the remote host.
"""

import os
import re
import shlex
from pathlib import PureWindowsPath
from typing import Optional

_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


def to_posix_path(path: str, windows: Optional[bool] = None) -> str:
    """
    Translate a local path to the posix convention used on the remote host.

    On Windows ``C:\\Users\\me`` becomes ``/mnt/c/Users/me``.
    """
    if windows is None:
        windows = os.name == "nt"
    if not windows:
        return path

    pure = PureWindowsPath(path)
    if pure.drive.endswith(":"):
        drive = pure.drive.rstrip(":").lower()
        return "/mnt/{0}/{1}".format(drive, "/".join(pure.parts[1:])).rstrip("/")
    return pure.as_posix()


def as_directory(path: str) -> str:
    """Append a trailing separator so the path is treated as a directory."""
    return path if path.endswith("/") else path + "/"


def remote_join(root: str, path: str) -> str:
    """Place an absolute posix ``path`` underneath ``root``."""
    return root.rstrip("/") + "/" + path.lstrip("/")


def shell_path(path: str) -> str:
    """Quote a remote path for the remote shell, keeping ``~`` expansion."""
    if path == "~":
        return '"$HOME"'
    if path.startswith("~/"):
        rest = path[2:]
        return '"$HOME"/' + shlex.quote(rest) if rest else '"$HOME"/'
    return shlex.quote(path)


def target_dirname(target: str) -> str:
    """Directory name used for a target's execution record."""
    cleaned = _UNSAFE_NAME_CHARS.sub("_", target.strip())
    return cleaned.strip(".") or "_"


__all__ = ["as_directory", "remote_join", "shell_path", "target_dirname", "to_posix_path"]
