#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Client entry points: invoke, resume and finish_load.

``RemoteInvoker.invoke`` runs the whole protocol for one call:

    build manifest -> build descriptor -> save descriptor -> push
    -> launch session -> (completed) pull -> load

``resume`` re-enters at the session step with the saved descriptor, and
``finish_load`` repeats only pull + load. Only the last descriptor is kept,
so there is at most one outstanding session per state directory.
"""

import os
import shutil
from dataclasses import dataclass
from typing import Any, Optional, Sequence, Union

from .core.config import SendToRemoteConfig
from .core.data.backends import PickleBackend
from .core.descriptor import DescriptorStore, InvocationDescriptor, InvocationOptions
from .core.loader import LoadResult, ResultLoader
from .core.manifest import PathManifestBuilder
from .core.session import SessionController, SessionOutcome
from .core.targets import InvocationStyle, is_script_path, resolve_invocation_spec
from .core.transfer import TransferChannel
from .core.utils.exceptions import SerializationError, UsageError
from .core.utils.logger import ModernLogger
from .core.utils.paths import as_directory, target_dirname, to_posix_path
from .core.utils.process import CommandRunner, SubprocessRunner


@dataclass
class InvocationOutcome:
    """What a caller gets back from invoke/resume."""

    descriptor: InvocationDescriptor
    session: SessionOutcome
    result: Optional[LoadResult] = None

    @property
    def completed(self) -> bool:
        return self.session.completed

    @property
    def notice(self) -> Optional[str]:
        return self.session.notice

    @property
    def results(self) -> list:
        return list(self.result.results) if self.result is not None else []

    @property
    def bindings(self) -> dict:
        return dict(self.result.bindings) if self.result is not None else {}


class RemoteInvoker(ModernLogger):
    """
    Run scripts and functions on a remote host as though they ran locally.

    WARNING: every user-owned directory on ``sys.path`` is copied to the
    remote host, and extraneous files under the remote root are deleted on
    each push. Point ``remote_root`` at a directory used for nothing else.
    """

    def __init__(
        self,
        config: Optional[SendToRemoteConfig] = None,
        runner: Optional[CommandRunner] = None,
        manifest_builder: Optional[PathManifestBuilder] = None,
    ) -> None:
        if config is None:
            config = SendToRemoteConfig.from_env()
        ModernLogger.__init__(self, name="RemoteInvoker", level=config.log_level)
        self.config = config
        self.runner = runner or SubprocessRunner()
        self.manifest_builder = manifest_builder or PathManifestBuilder()
        self.store = DescriptorStore(self.state_dir, backend=PickleBackend())

    @property
    def state_dir(self) -> str:
        return str(self.config.state_path)

    def build_descriptor(
        self,
        target: str,
        host: str,
        args: Sequence[Any] = (),
        result_arity: Optional[int] = None,
        style: Optional[Union[InvocationStyle, str]] = None,
        options: Optional[InvocationOptions] = None,
        search_path: Optional[Sequence[str]] = None,
        working_dir: Optional[str] = None,
    ) -> InvocationDescriptor:
        """
        Validate the call and assemble its descriptor. No remote side effects.

        Raises:
            UsageError: On bad arguments, illegal options or unresolvable targets
        """
        options = options or InvocationOptions(remote_root=self.config.remote_root)
        cwd = os.path.abspath(working_dir or os.getcwd())
        spec = resolve_invocation_spec(
            target,
            args=args,
            result_arity=result_arity,
            style=InvocationStyle(style) if style is not None else None,
            working_dir=cwd,
        )

        backend = PickleBackend(max_payload_bytes=self.config.max_payload_bytes)
        for index, value in enumerate(args):
            try:
                backend.serialize(value)
            except SerializationError as exc:
                raise UsageError(
                    "Argument {0} cannot be sent to the remote host".format(index),
                    target=target,
                    cause=exc,
                ) from exc

        script_dirs = []
        if spec.style is InvocationStyle.SCRIPT and is_script_path(target):
            script_dirs.append(os.path.dirname(os.path.join(cwd, target)))
        manifest = self.manifest_builder.build(
            search_path=search_path, working_dir=cwd, extra_directories=script_dirs
        )
        return InvocationDescriptor(
            target=target,
            style=spec.style,
            host=host,
            manifest=manifest,
            working_dir=to_posix_path(cwd),
            state_dir=to_posix_path(self.state_dir),
            args=tuple(args),
            result_arity=spec.arity,
            options=options,
            record_compression=self.config.compression,
            max_payload_bytes=self.config.max_payload_bytes,
        )

    def invoke(
        self,
        target: str,
        host: str,
        *option_tokens: Any,
        args: Sequence[Any] = (),
        result_arity: Optional[int] = None,
        style: Optional[Union[InvocationStyle, str]] = None,
        no_load: Optional[bool] = None,
        no_reconnect: Optional[bool] = None,
        remote_root: Optional[str] = None,
        search_path: Optional[Sequence[str]] = None,
        working_dir: Optional[str] = None,
    ) -> InvocationOutcome:
        """
        Run ``target`` on ``host`` and return its results.

        Args:
            target: Script module/file or ``module:function``
            host: ssh destination, as in ``ssh HOST``
            *option_tokens: Free-form options (``"noload"``, ``"noreconnect"``,
                ``"remoteroot", path``); unknown tokens are kept as extras
            args: Positional arguments (functions only)
            result_arity: Number of results to bring back (functions only)
            style: Force script or function style
            no_load / no_reconnect / remote_root: Explicit option overrides

        Returns:
            InvocationOutcome; ``completed`` is False when the session was
            closed early, in which case ``notice`` says to call ``resume``.
        """
        options = InvocationOptions.from_tokens(
            option_tokens, remote_root=self.config.remote_root
        )
        options = InvocationOptions(
            no_load=options.no_load if no_load is None else no_load,
            no_reconnect=options.no_reconnect if no_reconnect is None else no_reconnect,
            remote_root=remote_root or options.remote_root,
            extra=options.extra,
        )
        descriptor = self.build_descriptor(
            target,
            host,
            args=args,
            result_arity=result_arity,
            style=style,
            options=options,
            search_path=search_path,
            working_dir=working_dir,
        )

        self.store.save(descriptor)
        self._transfer(descriptor).push(
            list(descriptor.manifest) + [as_directory(descriptor.state_dir)],
            descriptor.options.remote_root,
        )

        session = self._session(descriptor).launch(descriptor)
        return self._complete(descriptor, session)

    def resume(self) -> InvocationOutcome:
        """
        Reattach to the last detached session and load its results.

        Raises:
            DescriptorNotFoundError: If nothing was ever invoked
        """
        descriptor = self.store.load()
        if descriptor.options.no_reconnect:
            self.warning(
                "The last invocation of '%s' ran without a resumable session; "
                "attempting to reattach anyway",
                descriptor.target,
            )
        session = self._session(descriptor).reattach(descriptor)
        return self._complete(descriptor, session)

    def finish_load(self) -> LoadResult:
        """Pull and decode the results of the last invocation."""
        descriptor = self.store.load()
        return self._pull_and_load(descriptor)

    def last_descriptor(self) -> InvocationDescriptor:
        return self.store.load()

    def discard_results(self, target: str) -> bool:
        """Delete the local result directory of ``target``; True if it existed."""
        path = os.path.join(self.state_dir, target_dirname(target))
        if not os.path.isdir(path):
            return False
        shutil.rmtree(path)
        self.info("Removed local results at %s", path)
        return True

    def _complete(self, descriptor: InvocationDescriptor, session: SessionOutcome) -> InvocationOutcome:
        if not session.completed:
            return InvocationOutcome(descriptor=descriptor, session=session)
        result = self._pull_and_load(descriptor)
        self.info("Done!")
        return InvocationOutcome(descriptor=descriptor, session=session, result=result)

    def _pull_and_load(self, descriptor: InvocationDescriptor) -> LoadResult:
        os.makedirs(self.state_dir, exist_ok=True)
        self._transfer(descriptor).pull(
            descriptor.options.remote_root,
            descriptor.remote_result_path,
            self.state_dir,
        )
        return ResultLoader(self.state_dir).load(descriptor)

    def _transfer(self, descriptor: InvocationDescriptor) -> TransferChannel:
        return TransferChannel(
            descriptor.host,
            runner=self.runner,
            rsync_binary=self.config.rsync_binary,
            local_prefix=self.config.local_prefix,
        )

    def _session(self, descriptor: InvocationDescriptor) -> SessionController:
        return SessionController(
            descriptor.host,
            runner=self.runner,
            python=self.config.python,
            ssh_binary=self.config.ssh_binary,
            screen_binary=self.config.screen_binary,
            local_prefix=self.config.local_prefix,
        )


_default_invoker: Optional[RemoteInvoker] = None


def get_default_invoker() -> RemoteInvoker:
    """Return the shared invoker, creating it from the environment on first use."""
    global _default_invoker
    if _default_invoker is None:
        _default_invoker = RemoteInvoker()
    return _default_invoker


def set_default_invoker(invoker: Optional[RemoteInvoker]) -> Optional[RemoteInvoker]:
    global _default_invoker
    _default_invoker = invoker
    return invoker


__all__ = [
    "InvocationOutcome",
    "RemoteInvoker",
    "get_default_invoker",
    "set_default_invoker",
]
