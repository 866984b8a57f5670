#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
asynccall public API with lazy imports.

Two-way async RPC over any publish/subscribe channel:

    >>> from asynccall import AsyncCall
    >>> server = AsyncCall({"add": add}, key="math")
    >>> client = AsyncCall(key="math")
    >>> await client.remote.add(2, 3)
    5

gRPC is only imported when ``GrpcMessageCenter`` is requested.
"""

from importlib import import_module
from typing import Any, Dict, Tuple

from ._version import __version__

_EXPORT_MAP: Dict[str, Tuple[str, str]] = {
    "AsyncCall": ("asynccall.core.call", "AsyncCall"),
    "RemoteSurface": ("asynccall.core.call", "RemoteSurface"),
    "AsyncCallConfig": ("asynccall.core.config", "AsyncCallConfig"),
    "NotImplementedPolicy": ("asynccall.core.config", "NotImplementedPolicy"),
    "get_config": ("asynccall.core.config", "get_config"),
    "create_config": ("asynccall.core.config", "create_config"),
    "reset_config": ("asynccall.core.config", "reset_config"),
    "Serializer": ("asynccall.core.data", "Serializer"),
    "IdentitySerializer": ("asynccall.core.data", "IdentitySerializer"),
    "JSONSerializer": ("asynccall.core.data", "JSONSerializer"),
    "PickleSerializer": ("asynccall.core.data", "PickleSerializer"),
    "CompressionAlgorithm": ("asynccall.core.data", "CompressionAlgorithm"),
    "MetadataStore": ("asynccall.core.metadata", "MetadataStore"),
    "PassthroughMetadataCodec": ("asynccall.core.metadata", "PassthroughMetadataCodec"),
    "PickleMetadataCodec": ("asynccall.core.metadata", "PickleMetadataCodec"),
    "define_metadata": ("asynccall.core.metadata", "define_metadata"),
    "get_metadata": ("asynccall.core.metadata", "get_metadata"),
    "get_own_metadata": ("asynccall.core.metadata", "get_own_metadata"),
    "delete_metadata": ("asynccall.core.metadata", "delete_metadata"),
    "MessageCenter": ("asynccall.transports.base", "MessageCenter"),
    "LocalMessageHub": ("asynccall.transports.local", "LocalMessageHub"),
    "LocalMessageCenter": ("asynccall.transports.local", "LocalMessageCenter"),
    "GrpcMessageCenter": ("asynccall.transports.grpc", "GrpcMessageCenter"),
    "AsyncCallError": ("asynccall.core.utils.exceptions", "AsyncCallError"),
    "ConfigurationError": ("asynccall.core.utils.exceptions", "ConfigurationError"),
    "SerializationError": ("asynccall.core.utils.exceptions", "SerializationError"),
    "InvalidCallTargetError": ("asynccall.core.utils.exceptions", "InvalidCallTargetError"),
    "MethodNotImplementedError": ("asynccall.core.utils.exceptions", "MethodNotImplementedError"),
    "RemoteCallError": ("asynccall.core.utils.exceptions", "RemoteCallError"),
    "DuplicateCallIdError": ("asynccall.core.utils.exceptions", "DuplicateCallIdError"),
    "TransportError": ("asynccall.core.utils.exceptions", "TransportError"),
    "remote": ("asynccall.decorators", "remote"),
    "RemoteStub": ("asynccall.decorators", "RemoteStub"),
    "remote_interface": ("asynccall.decorators", "remote_interface"),
}

__all__ = ["__version__", *sorted(_EXPORT_MAP.keys())]


def __getattr__(name: str) -> Any:
    """
    Resolve public API symbols lazily.
    """
    if name not in _EXPORT_MAP:
        raise AttributeError("module 'asynccall' has no attribute '{0}'".format(name))

    module_name, attr_name = _EXPORT_MAP[name]
    module = import_module(module_name)
    value = getattr(module, attr_name)
    globals()[name] = value
    return value
