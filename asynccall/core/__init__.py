#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
asynccall core module exports (lazy-loaded).
"""

from importlib import import_module
from typing import Any, Dict, Tuple

_EXPORT_MAP: Dict[str, Tuple[str, str]] = {
    "AsyncCall": ("asynccall.core.call", "AsyncCall"),
    "RemoteSurface": ("asynccall.core.call", "RemoteSurface"),
    "RemoteMethod": ("asynccall.core.call", "RemoteMethod"),
    "build_implementation_table": ("asynccall.core.call", "build_implementation_table"),
    "AsyncCallConfig": ("asynccall.core.config", "AsyncCallConfig"),
    "NotImplementedPolicy": ("asynccall.core.config", "NotImplementedPolicy"),
    "get_config": ("asynccall.core.config", "get_config"),
    "create_config": ("asynccall.core.config", "create_config"),
    "CallRegistry": ("asynccall.core.registry", "CallRegistry"),
    "CallIdGenerator": ("asynccall.core.registry", "CallIdGenerator"),
    "RequestDispatcher": ("asynccall.core.dispatch", "RequestDispatcher"),
    "ResponseDispatcher": ("asynccall.core.dispatch", "ResponseDispatcher"),
    "MetadataStore": ("asynccall.core.metadata", "MetadataStore"),
    "MetadataPropagator": ("asynccall.core.metadata", "MetadataPropagator"),
}

__all__ = sorted(_EXPORT_MAP.keys())


def __getattr__(name: str) -> Any:
    if name not in _EXPORT_MAP:
        raise AttributeError("module 'asynccall.core' has no attribute '{0}'".format(name))

    module_name, attr_name = _EXPORT_MAP[name]
    module = import_module(module_name)
    value = getattr(module, attr_name)
    globals()[name] = value
    return value
