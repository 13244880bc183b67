#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Exception hierarchy for SendToRemote.

Every error raised by the protocol derives from ``SendToRemoteError``. Keyword
context passed to the constructor is kept on the instance (``context``) so the
CLI and logs can report it, and an optional ``cause`` is chained.

Failures of the remote payload itself are *not* exceptions at the protocol
level: the executor records them in the transcript and the session still
completes. ``RemoteExecutionError`` is only raised by the ``@remote`` proxy when
asked to re-raise such a recorded failure.
"""

import traceback
from typing import Any, Dict, Optional, Type


class SendToRemoteError(Exception):
    """Base exception for all SendToRemote errors."""

    def __init__(
        self,
        message: str,
        *,
        cause: Optional[BaseException] = None,
        **context: Any,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.context: Dict[str, Any] = {
            key: value for key, value in context.items() if value is not None
        }

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(
            "{0}={1!r}".format(key, value) for key, value in self.context.items()
        )
        return "{0} ({1})".format(self.message, details)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "error": type(self).__name__,
            "message": self.message,
        }
        payload.update(self.context)
        if self.cause is not None:
            payload["cause"] = ExceptionFormatter.format_exception_summary(self.cause)
        return payload


class UsageError(SendToRemoteError):
    """Bad arguments or an illegal option combination; raised before any transfer."""


class ConfigurationError(UsageError):
    """Raised when configuration is invalid or incomplete."""


class TargetResolutionError(UsageError):
    """Raised when the target cannot be found on the local search path."""

    def __init__(self, message: str, target: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(message, target=target, **kwargs)
        self.target = target


class DescriptorNotFoundError(UsageError):
    """Raised when resume or finish-load is requested but no descriptor was saved."""

    def __init__(self, message: str, path: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(message, path=path, **kwargs)
        self.path = path


class CommandNotFoundError(UsageError):
    """Raised when an external tool (ssh, rsync, screen) is not installed."""

    def __init__(self, message: str, command: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(message, command=command, **kwargs)
        self.command = command


class ManifestError(SendToRemoteError):
    """Raised when the local search path cannot be enumerated."""


class TransferError(SendToRemoteError):
    """Raised when the mirroring tool exits with a non-zero status."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        exit_code: Optional[int] = None,
        command: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            message, operation=operation, exit_code=exit_code, command=command, **kwargs
        )
        self.operation = operation
        self.exit_code = exit_code
        self.command = command


class SerializationError(SendToRemoteError):
    """Raised when a descriptor, argument or record cannot be (de)serialized."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        data_type: Optional[str] = None,
        serialization_format: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            message,
            operation=operation,
            data_type=data_type,
            serialization_format=serialization_format,
            **kwargs,
        )
        self.operation = operation
        self.data_type = data_type
        self.serialization_format = serialization_format


class IntegrityError(SendToRemoteError):
    """Raised when a completed session left no readable execution record."""

    def __init__(self, message: str, path: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(message, path=path, **kwargs)
        self.path = path


class RemoteExecutionError(SendToRemoteError):
    """Raised by the call proxy when the remote routine itself failed."""

    def __init__(
        self,
        message: str,
        target: Optional[str] = None,
        transcript: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, target=target, **kwargs)
        self.target = target
        self.transcript = transcript


class ExceptionFormatter:
    """Render exceptions for transcripts and user-facing messages."""

    @staticmethod
    def format_exception(exc: BaseException) -> str:
        return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))

    @staticmethod
    def format_exception_chain(exc: BaseException) -> str:
        parts = []
        current: Optional[BaseException] = exc
        while current is not None:
            parts.append(ExceptionFormatter.format_exception_summary(current))
            current = current.__cause__ or current.__context__
        return " <- ".join(parts)

    @staticmethod
    def format_exception_summary(exc: BaseException) -> str:
        message = str(exc)
        if not message:
            return type(exc).__name__
        return "{0}: {1}".format(type(exc).__name__, message)


class ExceptionTranslator:
    """Wrap foreign exceptions into the SendToRemote hierarchy."""

    @staticmethod
    def as_send_error(
        exc: BaseException,
        error_type: Type[SendToRemoteError] = SendToRemoteError,
        message: Optional[str] = None,
        **context: Any,
    ) -> SendToRemoteError:
        if isinstance(exc, SendToRemoteError):
            return exc
        text = message or ExceptionFormatter.format_exception_summary(exc)
        return error_type(text, cause=exc, **context)

    @staticmethod
    def as_remote_execution_error(
        exc: BaseException,
        target: Optional[str] = None,
    ) -> SendToRemoteError:
        if isinstance(exc, SendToRemoteError):
            return exc
        return RemoteExecutionError(
            "Remote invocation failed: {0}".format(
                ExceptionFormatter.format_exception_summary(exc)
            ),
            target=target,
            cause=exc,
        )


__all__ = [
    "CommandNotFoundError",
    "ConfigurationError",
    "DescriptorNotFoundError",
    "ExceptionFormatter",
    "ExceptionTranslator",
    "IntegrityError",
    "ManifestError",
    "RemoteExecutionError",
    "SendToRemoteError",
    "SerializationError",
    "TargetResolutionError",
    "TransferError",
    "UsageError",
]
