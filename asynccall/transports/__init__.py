#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Transports for asynccall (lazy-loaded so grpc is only imported on demand).
"""

from importlib import import_module
from typing import Any, Dict, Tuple

_EXPORT_MAP: Dict[str, Tuple[str, str]] = {
    "MessageCenter": ("asynccall.transports.base", "MessageCenter"),
    "LocalMessageHub": ("asynccall.transports.local", "LocalMessageHub"),
    "LocalMessageCenter": ("asynccall.transports.local", "LocalMessageCenter"),
    "default_hub": ("asynccall.transports.local", "default_hub"),
    "GrpcMessageCenter": ("asynccall.transports.grpc", "GrpcMessageCenter"),
}

__all__ = sorted(_EXPORT_MAP.keys())


def __getattr__(name: str) -> Any:
    if name not in _EXPORT_MAP:
        raise AttributeError(
            "module 'asynccall.transports' has no attribute '{0}'".format(name)
        )

    module_name, attr_name = _EXPORT_MAP[name]
    module = import_module(module_name)
    value = getattr(module, attr_name)
    globals()[name] = value
    return value
