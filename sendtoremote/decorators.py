#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Decorator helpers for remote function invocation.

    @remote(host="cluster")
    def simulate(n):
        ...

    value = simulate(1000)   # runs on "cluster", returns the remote result

The decorated function must live in an importable module (not ``__main__``)
so the remote runner can resolve it from the mirrored search path.
"""

import functools
from typing import Any, Callable, Optional, Sequence, TypeVar, Union, cast

from .client import InvocationOutcome, RemoteInvoker, get_default_invoker
from .core.targets import InvocationStyle
from .core.utils.exceptions import (
    ExceptionTranslator,
    RemoteExecutionError,
    SendToRemoteError,
    UsageError,
)

T = TypeVar("T", bound=Callable[..., Any])


def _resolve_default_invoker() -> RemoteInvoker:
    """
    Resolve the invoker lazily so configuration is read at call time.
    """
    return get_default_invoker()


class RemoteFunction:
    """
    Callable wrapper that routes a local function call to a remote host.

    Return value mirrors a local call: ``None`` for ``result_arity=0``, the
    single value for 1, a tuple for more. When the session is closed early the
    call returns ``None`` after logging the resume notice; ``last_outcome``
    always holds the full ``InvocationOutcome``.
    """

    invoker_resolver: Callable[[], RemoteInvoker] = staticmethod(_resolve_default_invoker)

    def __init__(
        self,
        func: Callable[..., Any],
        host: str,
        target: Optional[str] = None,
        result_arity: int = 1,
        no_reconnect: bool = False,
        remote_root: Optional[str] = None,
        options: Sequence[Any] = (),
        raise_on_failure: bool = True,
        invoker: Optional[RemoteInvoker] = None,
    ) -> None:
        if not host:
            raise UsageError("@remote requires a host")
        if result_arity < 0:
            raise UsageError("result_arity must be non-negative", result_arity=result_arity)
        module = getattr(func, "__module__", None)
        if target is None and module in (None, "__main__"):
            raise UsageError(
                "Functions defined in __main__ cannot be resolved remotely; move "
                "'{0}' into a module or pass target='module:function'".format(
                    getattr(func, "__name__", func)
                )
            )
        self.func = func
        # The remote runner unwraps this to call the original function.
        self._sendtoremote_local = func
        self.host = host
        self.target = target or "{0}:{1}".format(module, func.__qualname__)
        self.result_arity = result_arity
        self.no_reconnect = no_reconnect
        self.remote_root = remote_root
        self.options = tuple(options)
        self.raise_on_failure = raise_on_failure
        self._invoker = invoker
        self.last_outcome: Optional[InvocationOutcome] = None
        functools.update_wrapper(self, func)

    def _get_invoker(self) -> RemoteInvoker:
        if self._invoker is not None:
            return self._invoker
        return self.invoker_resolver()

    def call(self, *args: Any) -> InvocationOutcome:
        """Run remotely and return the full outcome."""
        invoker = self._get_invoker()
        try:
            outcome = invoker.invoke(
                self.target,
                self.host,
                *self.options,
                args=args,
                result_arity=self.result_arity,
                style=InvocationStyle.FUNCTION,
                no_reconnect=self.no_reconnect,
                remote_root=self.remote_root,
            )
        except SendToRemoteError:
            raise
        except Exception as exc:
            raise ExceptionTranslator.as_remote_execution_error(exc, target=self.target) from exc
        self.last_outcome = outcome
        return outcome

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        if kwargs:
            raise UsageError(
                "Remote calls accept positional arguments only", target=self.target
            )
        outcome = self.call(*args)
        if not outcome.completed or outcome.result is None:
            return None

        result = outcome.result
        if result.failed and self.raise_on_failure:
            raise RemoteExecutionError(
                "'{0}' raised an error on {1}".format(self.target, self.host),
                target=self.target,
                transcript=result.transcript,
                remote_error=result.error,
            )

        if self.result_arity == 0:
            return None
        values = result.unpack(self.result_arity)
        if self.result_arity == 1:
            return values[0]
        return values


def remote(
    func: Optional[Callable[..., Any]] = None,
    *,
    host: Optional[str] = None,
    target: Optional[str] = None,
    result_arity: int = 1,
    no_reconnect: bool = False,
    remote_root: Optional[str] = None,
    options: Sequence[Any] = (),
    raise_on_failure: bool = True,
    invoker: Optional[RemoteInvoker] = None,
) -> Union[Callable[[T], T], T]:
    """
    Public decorator entry supporting both:
    - @remote(host="...")
    - remote(func, host="...")
    """

    def decorator(fn: T) -> T:
        remote_function = RemoteFunction(
            fn,
            host=cast(str, host),
            target=target,
            result_arity=result_arity,
            no_reconnect=no_reconnect,
            remote_root=remote_root,
            options=options,
            raise_on_failure=raise_on_failure,
            invoker=invoker,
        )
        return cast(T, remote_function)

    if func is not None and callable(func):
        return decorator(cast(T, func))
    return decorator


__all__ = ["RemoteFunction", "remote"]
