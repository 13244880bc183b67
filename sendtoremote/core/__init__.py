#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
SendToRemote core module exports (lazy-loaded).
"""

from importlib import import_module
from typing import Any, Dict, Tuple

_EXPORT_MAP: Dict[str, Tuple[str, str]] = {
    "SendToRemoteConfig": ("sendtoremote.core.config", "SendToRemoteConfig"),
    "get_config": ("sendtoremote.core.config", "get_config"),
    "create_config": ("sendtoremote.core.config", "create_config"),
    "PathManifestBuilder": ("sendtoremote.core.manifest", "PathManifestBuilder"),
    "build_manifest": ("sendtoremote.core.manifest", "build_manifest"),
    "InvocationDescriptor": ("sendtoremote.core.descriptor", "InvocationDescriptor"),
    "InvocationOptions": ("sendtoremote.core.descriptor", "InvocationOptions"),
    "DescriptorStore": ("sendtoremote.core.descriptor", "DescriptorStore"),
    "TransferChannel": ("sendtoremote.core.transfer", "TransferChannel"),
    "RemoteContext": ("sendtoremote.core.executor", "RemoteContext"),
    "RemoteExecutor": ("sendtoremote.core.executor", "RemoteExecutor"),
    "ExecutionRecord": ("sendtoremote.core.record", "ExecutionRecord"),
    "SessionController": ("sendtoremote.core.session", "SessionController"),
    "SessionState": ("sendtoremote.core.session", "SessionState"),
    "ResultLoader": ("sendtoremote.core.loader", "ResultLoader"),
    "LoadResult": ("sendtoremote.core.loader", "LoadResult"),
}

__all__ = sorted(_EXPORT_MAP.keys())


def __getattr__(name: str) -> Any:
    if name not in _EXPORT_MAP:
        raise AttributeError("module 'sendtoremote.core' has no attribute '{0}'".format(name))

    module_name, attr_name = _EXPORT_MAP[name]
    module = import_module(module_name)
    value = getattr(module, attr_name)
    globals()[name] = value
    return value
