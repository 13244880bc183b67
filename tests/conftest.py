#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Pytest bootstrap for local package imports, plus shared fakes.

``FakeHost`` stands in for ssh/rsync: pushes copy files under a local
"remote root" without descending into subdirectories, the launch command
runs ``python -m sendtoremote.runner`` in a separate interpreter that only
sees the mirrored tree, and pulls copy the result subtree back.
"""

import os
import shlex
import shutil
import subprocess
import sys
from pathlib import Path

import pytest


PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from sendtoremote.core.config import SendToRemoteConfig  # noqa: E402
from sendtoremote.core.utils.paths import remote_join  # noqa: E402


class RecordingRunner:
    """CommandRunner returning scripted exit codes and recording every argv."""

    def __init__(self, *exit_codes):
        self.exit_codes = list(exit_codes)
        self.calls = []

    def run(self, argv, cwd=None):
        self.calls.append((list(argv), cwd))
        if not self.exit_codes:
            return 0
        code = self.exit_codes.pop(0)
        if isinstance(code, BaseException):
            raise code
        return code


class FakeHost:
    """
    Simulates the remote machine on the local filesystem.

    ``ssh_script`` holds one ``(exit_code, run_remote)`` pair per ssh call:
    ``run_remote`` says whether the remote runner actually runs during it.
    """

    def __init__(self, remote_root, ssh_script=None):
        self.remote_root = str(remote_root)
        self.ssh_script = list(ssh_script or [])
        self.calls = []
        self.remote_exit_codes = []
        self.remote_output = []
        self.last_state_dir = None

    def run(self, argv, cwd=None):
        argv = list(argv)
        self.calls.append((argv, cwd))
        if argv[0] == "rsync" and "--delete" in argv:
            return self._push(argv)
        if argv[0] == "rsync":
            return self._pull(argv, cwd)
        if argv[0] == "ssh":
            return self._ssh(argv)
        raise AssertionError("unexpected command {0!r}".format(argv))

    @property
    def ssh_calls(self):
        return [argv for argv, _ in self.calls if argv[0] == "ssh"]

    def _push(self, argv):
        directories = [arg for arg in argv[1:-1] if not arg.startswith("-")]
        destination = argv[-1].split(":", 1)[1]
        for directory in directories:
            mirrored = Path(remote_join(destination, directory))
            mirrored.mkdir(parents=True, exist_ok=True)
            for entry in os.listdir(directory):
                source = os.path.join(directory, entry)
                if os.path.isfile(source):
                    shutil.copy2(source, mirrored / entry)
        return 0

    def _pull(self, argv, cwd):
        source = argv[-2].split(":", 1)[1]
        if not os.path.isdir(source):
            return 23
        destination = Path(cwd) / os.path.basename(source.rstrip("/"))
        shutil.copytree(source, destination, dirs_exist_ok=True)
        return 0

    def _ssh(self, argv):
        exit_code, run_remote = self.ssh_script.pop(0) if self.ssh_script else (0, True)
        tokens = shlex.split(argv[-1])
        if tokens[0] == "screen" and "-r" in tokens:
            remote_state = self.last_state_dir
        else:
            command = tokens[-1] if tokens[0] == "screen" else argv[-1]
            remote_state = shlex.split(command)[1]
            self.last_state_dir = remote_state
        if run_remote:
            self.remote_exit_codes.append(self._run_remote(remote_state))
        return exit_code

    def _run_remote(self, remote_state):
        # Only sendtoremote itself is importable; user code must come from the mirror.
        env = dict(os.environ, PYTHONPATH=str(PROJECT_ROOT), PYTHONDONTWRITEBYTECODE="1")
        completed = subprocess.run(
            [sys.executable, "-m", "sendtoremote.runner"],
            cwd=remote_state,
            env=env,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            universal_newlines=True,
        )
        self.remote_output.append(completed.stdout + completed.stderr)
        return completed.returncode


@pytest.fixture
def project(tmp_path, monkeypatch):
    """A user project directory on the search path, used as the working directory."""
    path = tmp_path / "project"
    path.mkdir()
    monkeypatch.syspath_prepend(str(path))
    monkeypatch.chdir(path)
    return path


@pytest.fixture
def remote_root(tmp_path):
    path = tmp_path / "remote"
    path.mkdir()
    return path


@pytest.fixture
def client_config(tmp_path, remote_root):
    return SendToRemoteConfig(
        remote_root=str(remote_root),
        state_dir=str(tmp_path / "state"),
        use_wsl=False,
        log_level="debug",
    )


@pytest.fixture
def make_runner():
    return RecordingRunner


@pytest.fixture
def make_fake_host(remote_root):
    def factory(*ssh_script):
        return FakeHost(remote_root, ssh_script=ssh_script)

    return factory
