#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
SendToRemote public API with lazy imports.

Run a Python script or function on a remote host over ssh as though it ran
locally; the remote run survives a dropped connection when started inside a
GNU screen session, and ``resume`` picks it back up.

WARNING: the whole user-owned search path is copied to the remote host and
every extraneous file under the remote root is deleted on each push.
"""

from importlib import import_module
from typing import Any, Dict, Tuple

from ._version import __version__

_EXPORT_MAP: Dict[str, Tuple[str, str]] = {
    "RemoteInvoker": ("sendtoremote.client", "RemoteInvoker"),
    "InvocationOutcome": ("sendtoremote.client", "InvocationOutcome"),
    "get_default_invoker": ("sendtoremote.client", "get_default_invoker"),
    "set_default_invoker": ("sendtoremote.client", "set_default_invoker"),
    "remote": ("sendtoremote.decorators", "remote"),
    "RemoteFunction": ("sendtoremote.decorators", "RemoteFunction"),
    "SendToRemoteConfig": ("sendtoremote.core.config", "SendToRemoteConfig"),
    "InvocationDescriptor": ("sendtoremote.core.descriptor", "InvocationDescriptor"),
    "InvocationOptions": ("sendtoremote.core.descriptor", "InvocationOptions"),
    "InvocationStyle": ("sendtoremote.core.targets", "InvocationStyle"),
    "InvocationSpec": ("sendtoremote.core.targets", "InvocationSpec"),
    "LoadResult": ("sendtoremote.core.loader", "LoadResult"),
    "SessionState": ("sendtoremote.core.session", "SessionState"),
}

__all__ = ["__version__", *sorted(_EXPORT_MAP.keys())]


def __getattr__(name: str) -> Any:
    """
    Resolve public API symbols lazily.
    """
    if name not in _EXPORT_MAP:
        raise AttributeError("module 'sendtoremote' has no attribute '{0}'".format(name))

    module_name, attr_name = _EXPORT_MAP[name]
    module = import_module(module_name)
    value = getattr(module, attr_name)
    globals()[name] = value
    return value
