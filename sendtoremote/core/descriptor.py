#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Invocation descriptor and its on-disk store.

The descriptor is the single unit of state sent to the remote host and the
sole source of truth for resuming a detached session. It is immutable once
built and is written (replacing the previous one) before the session starts.
Only one descriptor is kept, so only one outstanding session is supported.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Sequence, Tuple, Union

from .config import DEFAULT_REMOTE_ROOT
from .data.backends import PickleBackend
from .data.config import DEFAULT_MAX_PAYLOAD_BYTES, CompressionAlgorithm
from .targets import InvocationStyle
from .utils.exceptions import DescriptorNotFoundError, SerializationError, UsageError
from .utils.logger import ModernLogger
from .utils.paths import remote_join, target_dirname

DESCRIPTOR_FILENAME = "descriptor.pkl"
SESSION_PREFIX = "sendtoremote-"

_NO_LOAD_TOKENS = ("noload", "no-load", "no_load")
_NO_RECONNECT_TOKENS = ("noreconnect", "no-reconnect", "no_reconnect")
_REMOTE_ROOT_TOKENS = ("remoteroot", "remote-root", "remote_root", "remexdir")


@dataclass(frozen=True)
class InvocationOptions:
    """
    Resolved option set in effect for one invocation.

    Attributes:
        no_load: Leave results on disk instead of decoding them
        no_reconnect: Run over plain ssh instead of a resumable screen session
        remote_root: Remote directory mirroring the local search path
        extra: Raw option tokens that were not recognised
    """

    no_load: bool = False
    no_reconnect: bool = False
    remote_root: str = DEFAULT_REMOTE_ROOT
    extra: Tuple[str, ...] = ()

    @classmethod
    def from_tokens(
        cls,
        tokens: Sequence[Any],
        remote_root: str = DEFAULT_REMOTE_ROOT,
    ) -> "InvocationOptions":
        """
        Parse free-form option tokens (case-insensitive).

        Recognised: ``noload``, ``noreconnect`` and ``remoteroot <path>``.
        Everything else is preserved in ``extra``.
        """
        no_load = False
        no_reconnect = False
        extra = []
        items = list(tokens)
        index = 0
        while index < len(items):
            token = str(items[index])
            lowered = token.lower()
            if lowered in _NO_LOAD_TOKENS:
                no_load = True
            elif lowered in _NO_RECONNECT_TOKENS:
                no_reconnect = True
            elif lowered in _REMOTE_ROOT_TOKENS:
                if index + 1 >= len(items):
                    raise UsageError("Option '{0}' requires a directory".format(token))
                remote_root = str(items[index + 1])
                index += 1
            else:
                extra.append(token)
            index += 1
        return cls(
            no_load=no_load,
            no_reconnect=no_reconnect,
            remote_root=remote_root,
            extra=tuple(extra),
        )


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class InvocationDescriptor:
    """
    Everything the remote side needs to execute or resume one invocation.

    Paths (``manifest``, ``working_dir``, ``state_dir``) are already in the
    remote posix convention.
    """

    target: str
    style: InvocationStyle
    host: str
    manifest: Tuple[str, ...]
    working_dir: str
    state_dir: str
    args: Tuple[Any, ...] = ()
    result_arity: Optional[int] = None
    options: InvocationOptions = field(default_factory=InvocationOptions)
    record_compression: CompressionAlgorithm = CompressionAlgorithm.NONE
    max_payload_bytes: int = DEFAULT_MAX_PAYLOAD_BYTES
    created_at: str = field(default_factory=_utcnow)

    def __post_init__(self):
        if not self.target or not self.target.strip():
            raise UsageError("Target name cannot be empty")
        if not self.host or not self.host.strip():
            raise UsageError("Host cannot be empty", target=self.target)

        object.__setattr__(self, "style", InvocationStyle(self.style))
        object.__setattr__(self, "args", tuple(self.args))
        object.__setattr__(self, "manifest", tuple(self.manifest))
        object.__setattr__(
            self, "record_compression", CompressionAlgorithm.parse(self.record_compression)
        )
        if self.max_payload_bytes <= 0:
            raise UsageError(
                "max_payload_bytes must be positive",
                max_payload_bytes=self.max_payload_bytes,
            )

        if self.style is InvocationStyle.SCRIPT:
            if self.args:
                raise UsageError("Cannot pass input arguments to a script.", target=self.target)
            if self.result_arity:
                raise UsageError(
                    "Cannot request output arguments from a script.", target=self.target
                )
            object.__setattr__(self, "result_arity", None)
            return

        arity = 0 if self.result_arity is None else self.result_arity
        if not isinstance(arity, int) or isinstance(arity, bool) or arity < 0:
            raise UsageError(
                "Result arity must be a non-negative integer", target=self.target
            )
        object.__setattr__(self, "result_arity", arity)
        if self.options.no_load and arity > 0:
            raise UsageError(
                "Assigning the output of a function to a variable requires "
                "loading results back; 'no_load' cannot be combined with a "
                "result arity above zero.",
                target=self.target,
                result_arity=arity,
            )

    @property
    def is_script(self) -> bool:
        return self.style is InvocationStyle.SCRIPT

    @property
    def result_dir_name(self) -> str:
        return target_dirname(self.target)

    @property
    def session_name(self) -> str:
        return SESSION_PREFIX + self.result_dir_name

    @property
    def remote_state_dir(self) -> str:
        """The mirrored state directory on the remote host."""
        return remote_join(self.options.remote_root, self.state_dir)

    @property
    def remote_result_path(self) -> str:
        """Result subtree relative to the remote root."""
        return self.state_dir.rstrip("/") + "/" + self.result_dir_name


class DescriptorStore(ModernLogger):
    """Persists the last invocation descriptor in the local state directory."""

    def __init__(self, state_dir: Union[str, Path], backend: Optional[PickleBackend] = None) -> None:
        ModernLogger.__init__(self, name="DescriptorStore")
        self.state_dir = Path(state_dir)
        self.backend = backend or PickleBackend()

    @property
    def path(self) -> Path:
        return self.state_dir / DESCRIPTOR_FILENAME

    def exists(self) -> bool:
        return self.path.is_file()

    def save(self, descriptor: InvocationDescriptor) -> Path:
        """Replace the stored descriptor."""
        path = self.backend.dump_to(self.path, descriptor)
        self.debug("Saved descriptor for '%s' to %s", descriptor.target, path)
        return path

    def load(self) -> InvocationDescriptor:
        """
        Load the last saved descriptor.

        Raises:
            DescriptorNotFoundError: If nothing was ever invoked
            SerializationError: If the file is unreadable
        """
        if not self.exists():
            raise DescriptorNotFoundError(
                "No previous invocation found; nothing to resume or load",
                path=str(self.path),
            )
        descriptor = self.backend.load_from(self.path)
        if not isinstance(descriptor, InvocationDescriptor):
            raise SerializationError(
                "Descriptor file does not hold an invocation descriptor",
                operation="deserialize",
                data_type=type(descriptor).__name__,
                serialization_format="pickle",
            )
        return descriptor


__all__ = [
    "DESCRIPTOR_FILENAME",
    "DescriptorStore",
    "InvocationDescriptor",
    "InvocationOptions",
]
