#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Session controller: launches the remote runner over ssh and classifies how
the session ended.

Direct mode (``no_reconnect``) runs ``ssh HOST <command>`` and maps exit code
0 to completed and anything else to aborted. Resumable mode wraps the command
in a named GNU screen session (``ssh -t HOST screen -S NAME ...``); exit codes
0 and 1 mean completed (1 is what ``screen -r`` reports when the session has
already finished), anything else means the connection was closed while the
remote command keeps running detached, to be picked up with ``resume``.

An aborted session is not an error: the controller returns an outcome
carrying a notice, and the saved descriptor stays valid for resuming.
"""

import shlex
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Sequence

from .descriptor import InvocationDescriptor
from .utils.exceptions import UsageError
from .utils.logger import ModernLogger
from .utils.paths import shell_path
from .utils.process import CommandRunner, SubprocessRunner

RUNNER_MODULE = "sendtoremote.runner"
RESUME_NOTICE = (
    "SSH was closed before completing; run 'sendtoremote resume' to continue the session."
)
DIRECT_ABORT_NOTICE = (
    "SSH exited with code {0} before completing; the remote run cannot be resumed "
    "in no-reconnect mode."
)
# Exit code reported when the local wait is interrupted (Ctrl-C).
INTERRUPTED_EXIT_CODE = -2


class SessionMode(str, Enum):
    DIRECT = "direct"
    RESUMABLE = "resumable"


class SessionState(str, Enum):
    """Phases of one launch/reattach call."""
    NOT_STARTED = "not_started"
    LAUNCHING = "launching"
    ATTACHED = "attached"
    DETACHED = "detached"
    COMPLETED = "completed"
    ABORTED = "aborted"


_TRANSITIONS: Dict[SessionState, FrozenSet[SessionState]] = {
    SessionState.NOT_STARTED: frozenset({SessionState.LAUNCHING}),
    SessionState.LAUNCHING: frozenset({SessionState.ATTACHED, SessionState.DETACHED}),
    SessionState.ATTACHED: frozenset({SessionState.COMPLETED, SessionState.ABORTED}),
    SessionState.DETACHED: frozenset({SessionState.COMPLETED, SessionState.ABORTED}),
    SessionState.COMPLETED: frozenset(),
    SessionState.ABORTED: frozenset(),
}


def classify_exit_code(exit_code: int, mode: SessionMode) -> SessionState:
    """Map the launcher's exit code to ``COMPLETED`` or ``ABORTED``."""
    if mode is SessionMode.DIRECT:
        return SessionState.COMPLETED if exit_code == 0 else SessionState.ABORTED
    return SessionState.COMPLETED if exit_code in (0, 1) else SessionState.ABORTED


def session_mode_for(descriptor: InvocationDescriptor) -> SessionMode:
    return SessionMode.DIRECT if descriptor.options.no_reconnect else SessionMode.RESUMABLE


@dataclass
class SessionOutcome:
    """Result of one launch or reattach call."""

    state: SessionState
    exit_code: int
    mode: SessionMode
    notice: Optional[str] = None
    history: List[SessionState] = field(default_factory=list)

    @property
    def completed(self) -> bool:
        return self.state is SessionState.COMPLETED

    @property
    def resumable(self) -> bool:
        return self.state is SessionState.ABORTED and self.mode is SessionMode.RESUMABLE


class SessionController(ModernLogger):
    """Runs the remote entry point, blocking until the local launcher exits."""

    def __init__(
        self,
        host: str,
        runner: Optional[CommandRunner] = None,
        python: str = "python3",
        ssh_binary: str = "ssh",
        screen_binary: str = "screen",
        local_prefix: Sequence[str] = (),
    ) -> None:
        ModernLogger.__init__(self, name="SessionController")
        if not host:
            raise UsageError("Host cannot be empty")
        self.host = host
        self.runner = runner or SubprocessRunner()
        self.python = python
        self.ssh_binary = ssh_binary
        self.screen_binary = screen_binary
        self.local_prefix = tuple(local_prefix)
        self._state = SessionState.NOT_STARTED
        self._history: List[SessionState] = []

    @property
    def state(self) -> SessionState:
        return self._state

    def remote_command(self, descriptor: InvocationDescriptor) -> str:
        """Shell command that starts the runner from the mirrored state directory."""
        return "cd {0} && {1} -m {2}".format(
            shell_path(descriptor.remote_state_dir),
            shlex.quote(self.python),
            RUNNER_MODULE,
        )

    def launch_command(self, descriptor: InvocationDescriptor, mode: SessionMode) -> List[str]:
        command = self.remote_command(descriptor)
        if mode is SessionMode.DIRECT:
            return [*self.local_prefix, self.ssh_binary, self.host, command]
        wrapped = " ".join(
            [
                shlex.quote(self.screen_binary),
                "-S",
                shlex.quote(descriptor.session_name),
                "sh",
                "-c",
                shlex.quote(command),
            ]
        )
        return [*self.local_prefix, self.ssh_binary, "-t", self.host, wrapped]

    def reattach_command(self, descriptor: InvocationDescriptor) -> List[str]:
        return [
            *self.local_prefix,
            self.ssh_binary,
            "-t",
            self.host,
            "{0} -r {1}".format(
                shlex.quote(self.screen_binary), shlex.quote(descriptor.session_name)
            ),
        ]

    def launch(self, descriptor: InvocationDescriptor) -> SessionOutcome:
        """Start the remote run and block until the launcher exits."""
        mode = session_mode_for(descriptor)
        self._begin()
        self.info("Running %s remotely on %s (%s mode)", descriptor.target, self.host, mode.value)
        self._transition(SessionState.ATTACHED)
        exit_code = self._wait(self.launch_command(descriptor, mode))
        return self._finish(exit_code, mode)

    def reattach(self, descriptor: InvocationDescriptor) -> SessionOutcome:
        """Reattach to the named screen session and block until it exits."""
        self._begin()
        self.info("Reconnecting to remote command %s on %s", descriptor.session_name, self.host)
        self._transition(SessionState.DETACHED)
        exit_code = self._wait(self.reattach_command(descriptor))
        return self._finish(exit_code, SessionMode.RESUMABLE)

    def _begin(self) -> None:
        self._state = SessionState.NOT_STARTED
        self._history = [self._state]
        self._transition(SessionState.LAUNCHING)

    def _transition(self, new_state: SessionState) -> None:
        if new_state not in _TRANSITIONS[self._state]:
            raise RuntimeError(
                "Illegal session transition {0} -> {1}".format(
                    self._state.value, new_state.value
                )
            )
        self.debug("Session %s -> %s", self._state.value, new_state.value)
        self._state = new_state
        self._history.append(new_state)

    def _wait(self, argv: List[str]) -> int:
        try:
            return self.runner.run(argv)
        except KeyboardInterrupt:
            self.warning("Interrupted while waiting for the remote session")
            return INTERRUPTED_EXIT_CODE

    def _finish(self, exit_code: int, mode: SessionMode) -> SessionOutcome:
        final = classify_exit_code(exit_code, mode)
        self._transition(final)
        notice = None
        if final is SessionState.ABORTED:
            if mode is SessionMode.RESUMABLE:
                notice = RESUME_NOTICE
            else:
                notice = DIRECT_ABORT_NOTICE.format(exit_code)
            self.warning(notice)
        else:
            self.debug("Remote session completed with exit code %s", exit_code)
        return SessionOutcome(
            state=final,
            exit_code=exit_code,
            mode=mode,
            notice=notice,
            history=list(self._history),
        )


__all__ = [
    "INTERRUPTED_EXIT_CODE",
    "RESUME_NOTICE",
    "SessionController",
    "SessionMode",
    "SessionOutcome",
    "SessionState",
    "classify_exit_code",
    "session_mode_for",
]
