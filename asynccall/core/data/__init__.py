#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Payload models and serialization strategies.
"""

from .backends import (
    CompressionAlgorithm,
    IdentitySerializer,
    JSONSerializer,
    PickleSerializer,
    Serializer,
)
from .models import ErrorPayload, MalformedMessageError, Request, Response

__all__ = [
    "Serializer",
    "IdentitySerializer",
    "JSONSerializer",
    "PickleSerializer",
    "CompressionAlgorithm",
    "Request",
    "Response",
    "ErrorPayload",
    "MalformedMessageError",
]
