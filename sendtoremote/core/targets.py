#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Target naming and resolution.

Target forms:
    ``pkg.module:func``   Function ``func`` defined in ``pkg.module``
    ``pkg.module.func``   same, when a result arity or arguments are given
    ``double``            Function ``double`` defined in module ``double``
                          (one routine per file), when called as a Function
    ``pkg.setup``         Script: module ``pkg.setup`` run top to bottom
    ``scripts/setup.py``  Script: a file path relative to the working directory

Style is decided by ``resolve_invocation_spec`` from the target form and
what the caller supplies, never by running the target and catching errors.
Locating ``pkg.module`` with ``importlib.util.find_spec`` imports the parent
package ``pkg`` (running its ``__init__``) but does not execute ``pkg.module``.
"""

import importlib
import importlib.util
import os
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Sequence, Tuple

from .utils.exceptions import TargetResolutionError, UsageError


class InvocationStyle(str, Enum):
    """How the target is executed remotely."""
    SCRIPT = "script"
    FUNCTION = "function"


@dataclass(frozen=True)
class InvocationSpec:
    """Explicit call shape: style plus the number of requested result slots."""
    style: InvocationStyle
    arity: Optional[int] = None

    def __post_init__(self):
        if self.style is InvocationStyle.SCRIPT and self.arity:
            raise UsageError("Cannot request output arguments from a script.")
        if self.arity is not None and self.arity < 0:
            raise UsageError("Result arity must be non-negative", arity=self.arity)


def is_script_path(target: str) -> bool:
    return target.endswith(".py")


def split_function_target(target: str) -> Tuple[str, str]:
    """Split a Function target into ``(module, attribute)``."""
    if ":" in target:
        module_name, _, attr = target.partition(":")
    elif "." in target:
        module_name, _, attr = target.rpartition(".")
    else:
        module_name, attr = target, target
    if not module_name or not attr:
        raise TargetResolutionError(
            "Function target must look like 'module:function'", target=target
        )
    return module_name, attr


def _module_exists(module_name: str) -> bool:
    try:
        return importlib.util.find_spec(module_name) is not None
    except (ImportError, ValueError):
        return False


def resolve_invocation_spec(
    target: str,
    args: Sequence[Any] = (),
    result_arity: Optional[int] = None,
    style: Optional[InvocationStyle] = None,
    working_dir: Optional[str] = None,
) -> InvocationSpec:
    """
    Decide the call shape of ``target`` and check it is resolvable locally.

    Raises:
        TargetResolutionError: If the target is not on the local search path
        UsageError: If the style conflicts with the supplied arguments/arity
    """
    if not target or not target.strip():
        raise UsageError("Target name cannot be empty")

    if style is None:
        if is_script_path(target):
            style = InvocationStyle.SCRIPT
        elif ":" in target or args or result_arity is not None:
            style = InvocationStyle.FUNCTION
        else:
            style = InvocationStyle.SCRIPT
    else:
        style = InvocationStyle(style)

    if style is InvocationStyle.SCRIPT:
        if args:
            raise UsageError("Cannot pass input arguments to a script.", target=target)
        if result_arity:
            raise UsageError("Cannot request output arguments from a script.", target=target)
        if is_script_path(target):
            base = working_dir or os.getcwd()
            if not os.path.isfile(os.path.join(base, target)):
                raise TargetResolutionError(
                    "The script file '{0}' does not exist and therefore cannot be "
                    "executed remotely.".format(target),
                    target=target,
                )
        elif not _module_exists(target):
            raise TargetResolutionError(
                "The specified script isn't on the search path and therefore "
                "cannot be executed remotely.",
                target=target,
            )
        return InvocationSpec(style=style)

    module_name, _ = split_function_target(target)
    if not _module_exists(module_name):
        raise TargetResolutionError(
            "The specified function's module isn't on the search path and "
            "therefore cannot be executed remotely.",
            target=target,
        )
    return InvocationSpec(style=style, arity=0 if result_arity is None else result_arity)


def resolve_callable(target: str) -> Callable[..., Any]:
    """Import the module named by a Function target and return the callable."""
    module_name, attr = split_function_target(target)
    module = importlib.import_module(module_name)
    obj: Any = module
    for part in attr.split("."):
        obj = getattr(obj, part)
    # Functions decorated with @remote resolve to their local body.
    obj = getattr(obj, "_sendtoremote_local", obj)
    if not callable(obj):
        raise TargetResolutionError(
            "'{0}' is not callable".format(target), target=target
        )
    return obj


__all__ = [
    "InvocationSpec",
    "InvocationStyle",
    "is_script_path",
    "resolve_callable",
    "resolve_invocation_spec",
    "split_function_target",
]
