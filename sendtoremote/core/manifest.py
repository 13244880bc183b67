#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Search-path manifest construction.

The manifest is the ordered set of user-owned directories that must exist on
the remote host for the target to resolve its imports. It is sorted so that
repeated builds mirror identical trees, which keeps the delete-extraneous push
idempotent.

The push copies each listed directory without descending into it, so every
regular package (a directory holding ``__init__.py``) below a listed
directory is listed on its own, as is the directory of a ``.py`` script
target.
"""

import os
import sys
import sysconfig
from typing import Iterable, List, Optional, Sequence, Tuple

from .utils.exceptions import ManifestError
from .utils.logger import ModernLogger
from .utils.paths import as_directory, to_posix_path


def interpreter_roots() -> Tuple[str, ...]:
    """Installation directories of the running interpreter (never mirrored)."""
    candidates = {
        sys.prefix,
        sys.base_prefix,
        sys.exec_prefix,
        sys.base_exec_prefix,
    }
    for key in ("stdlib", "platstdlib", "purelib", "platlib"):
        path = sysconfig.get_paths().get(key)
        if path:
            candidates.add(path)
    return tuple(sorted(os.path.abspath(path) for path in candidates if path))


def _is_within(path: str, root: str) -> bool:
    try:
        return os.path.commonpath([path, root]) == root
    except ValueError:
        # Different drives on Windows.
        return False


def _is_site_directory(path: str) -> bool:
    parts = path.replace("\\", "/").split("/")
    return "site-packages" in parts or "dist-packages" in parts


def package_directories(root: str) -> List[str]:
    """Regular package directories nested under ``root``, at any depth."""
    found = []
    for current, dirnames, _ in os.walk(root):
        dirnames[:] = sorted(
            name for name in dirnames
            if os.path.isfile(os.path.join(current, name, "__init__.py"))
        )
        if current != root:
            found.append(current)
    return found


def build_manifest(
    search_path: Iterable[str],
    working_dir: str,
    excluded_roots: Optional[Sequence[str]] = None,
    windows: Optional[bool] = None,
    extra_directories: Iterable[str] = (),
) -> Tuple[str, ...]:
    """
    Compute the deduplicated, sorted directory manifest.

    Args:
        search_path: Local module search path entries (usually ``sys.path``)
        working_dir: Local working directory; always included
        excluded_roots: Interpreter installation roots to leave out
        windows: Force Windows path translation (defaults to the local OS)
        extra_directories: Further directories to mirror (e.g. the directory
            of a script file target)

    Returns:
        Posix-style directory paths, each ending in ``/``

    Raises:
        ManifestError: If the search path cannot be enumerated
    """
    roots = tuple(
        os.path.abspath(root)
        for root in (interpreter_roots() if excluded_roots is None else excluded_roots)
    )

    try:
        entries: List[str] = list(search_path)
    except TypeError as exc:
        raise ManifestError(
            "Search path cannot be enumerated: {0}".format(exc), cause=exc
        ) from exc

    roots_to_walk = []
    for entry in entries:
        if not isinstance(entry, str):
            raise ManifestError(
                "Search path entry is not a string: {0!r}".format(entry),
                entry=repr(entry),
            )
        # Empty entries and zip archives are skipped.
        if not entry or not os.path.isdir(entry):
            continue
        path = os.path.abspath(entry)
        if _is_site_directory(path):
            continue
        if any(_is_within(path, root) for root in roots):
            continue
        roots_to_walk.append(path)

    if not isinstance(working_dir, str) or not working_dir:
        raise ManifestError("Working directory must be a non-empty path")
    roots_to_walk.append(os.path.abspath(working_dir))

    selected = set()
    for path in roots_to_walk:
        for directory in [path] + package_directories(path):
            selected.add(as_directory(to_posix_path(directory, windows=windows)))
    for directory in extra_directories:
        selected.add(as_directory(to_posix_path(os.path.abspath(directory), windows=windows)))

    return tuple(sorted(selected))


class PathManifestBuilder(ModernLogger):
    """Builds manifests from the live interpreter state."""

    def __init__(self, excluded_roots: Optional[Sequence[str]] = None) -> None:
        ModernLogger.__init__(self, name="PathManifestBuilder")
        self.excluded_roots = excluded_roots

    def build(
        self,
        search_path: Optional[Iterable[str]] = None,
        working_dir: Optional[str] = None,
        extra_directories: Iterable[str] = (),
    ) -> Tuple[str, ...]:
        path_entries = sys.path if search_path is None else search_path
        cwd = os.getcwd() if working_dir is None else working_dir
        manifest = build_manifest(
            path_entries,
            cwd,
            excluded_roots=self.excluded_roots,
            extra_directories=extra_directories,
        )
        self.debug("Manifest holds %d directories", len(manifest))
        for entry in manifest:
            self.debug("  %s", entry)
        return manifest


__all__ = ["PathManifestBuilder", "build_manifest", "interpreter_roots", "package_directories"]
