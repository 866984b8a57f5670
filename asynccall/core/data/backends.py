#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Serialization strategies for call and response payloads.

A serializer turns the request/response dictionaries built by the
dispatchers into whatever the transport carries, and back. Both directions
are coroutines so strategies are free to offload heavy work.

Built-in strategies:
- ``IdentitySerializer``: no conversion (both sides share memory semantics)
- ``JSONSerializer``: JSON text with replacer/reviver hooks
- ``PickleSerializer``: pickle bytes with optional compression

Round-trip fidelity of ``JSONSerializer`` is limited to what JSON can
represent (plus the extended envelopes below); anything else is coerced by
the replacer or rejected with ``SerializationError``.
"""

import gzip
import json
import pickle
import zlib
from enum import Enum
from typing import Any, Callable, Dict, Optional, Protocol, runtime_checkable

from ..utils.exceptions import SerializationError

Replacer = Callable[[Any], Any]
Reviver = Callable[[Dict[str, Any]], Any]


@runtime_checkable
class Serializer(Protocol):
    """Protocol defining the interface for payload serializers"""

    async def serialize(self, value: Any) -> Any:
        """Convert an in-memory value into a transportable payload"""
        ...

    async def deserialize(self, payload: Any) -> Any:
        """Convert a transported payload back into an in-memory value"""
        ...


class IdentitySerializer:
    """
    Pass values through untouched.

    Only meaningful when both sides can exchange live objects, e.g. two
    ``AsyncCall`` instances in one process over the in-memory hub.
    """

    async def serialize(self, value: Any) -> Any:
        return value

    async def deserialize(self, payload: Any) -> Any:
        return payload


class CompressionAlgorithm(str, Enum):
    NONE = "none"
    ZLIB = "zlib"
    GZIP = "gzip"


class CompressionCodec(Protocol):
    """Protocol for compression/decompression strategies."""

    def compress(self, data: bytes, level: int) -> bytes:
        ...

    def decompress(self, data: bytes) -> bytes:
        ...


class NoCompressionCodec:
    def compress(self, data: bytes, level: int) -> bytes:
        return data

    def decompress(self, data: bytes) -> bytes:
        return data


class ZlibCompressionCodec:
    def compress(self, data: bytes, level: int) -> bytes:
        return zlib.compress(data, level=level)

    def decompress(self, data: bytes) -> bytes:
        return zlib.decompress(data)


class GzipCompressionCodec:
    def compress(self, data: bytes, level: int) -> bytes:
        return gzip.compress(data, compresslevel=level)

    def decompress(self, data: bytes) -> bytes:
        return gzip.decompress(data)


_CODEC_MAP: Dict[CompressionAlgorithm, CompressionCodec] = {
    CompressionAlgorithm.NONE: NoCompressionCodec(),
    CompressionAlgorithm.ZLIB: ZlibCompressionCodec(),
    CompressionAlgorithm.GZIP: GzipCompressionCodec(),
}


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class JSONSerializer:
    """
    JSON text serializer.

    Args:
        replacer: Called for every value the JSON encoder cannot represent;
            must return a JSON-representable substitute or raise TypeError
        reviver: Called for every decoded JSON object (dict); its return value
            replaces the object
        extended_types: Encode tuple/set/complex/bytes as tagged envelopes so
            they survive the round trip. Applied before ``replacer`` on encode
            and before ``reviver`` on decode.
        ensure_ascii: Forwarded to ``json.dumps``

    Values with no JSON representation and no replacer (functions, arbitrary
    objects) make ``serialize`` raise ``SerializationError``. Cyclic
    structures are rejected the same way.
    """

    TYPE_TAG = "__type__"

    def __init__(
        self,
        replacer: Optional[Replacer] = None,
        reviver: Optional[Reviver] = None,
        extended_types: bool = True,
        ensure_ascii: bool = False,
    ) -> None:
        self.replacer = replacer
        self.reviver = reviver
        self.extended_types = extended_types
        self.ensure_ascii = ensure_ascii

    def _encode_recursive(self, obj: Any) -> Any:
        """
        Pre-encode extended types.

        ``json.dumps(..., default=...)`` never sees tuples because they are
        natively emitted as arrays, so tagging has to happen before dumping.
        Plain dicts that already use the tag key are escaped as a list of
        pairs so they come back unchanged.
        """
        if isinstance(obj, dict):
            if self.TYPE_TAG in obj:
                return {
                    self.TYPE_TAG: "dict",
                    "items": [[k, self._encode_recursive(v)] for k, v in obj.items()],
                }
            return {k: self._encode_recursive(v) for k, v in obj.items()}
        if isinstance(obj, list):
            return [self._encode_recursive(item) for item in obj]
        if isinstance(obj, tuple):
            return {self.TYPE_TAG: "tuple", "data": [self._encode_recursive(i) for i in obj]}
        if isinstance(obj, (set, frozenset)):
            return {self.TYPE_TAG: "set", "data": [self._encode_recursive(i) for i in obj]}
        if isinstance(obj, complex):
            return {self.TYPE_TAG: "complex", "real": obj.real, "imag": obj.imag}
        if isinstance(obj, (bytes, bytearray)):
            return {self.TYPE_TAG: "bytes", "data": bytes(obj).decode("latin-1")}
        return obj

    def _decode_extended(self, obj: Dict[str, Any]) -> Any:
        """
        Rebuild a tagged envelope; objects that do not match one are kept as-is.
        """
        type_name = obj.get(self.TYPE_TAG)
        data = obj.get("data")
        if type_name == "tuple" and isinstance(data, list):
            return tuple(data)
        if type_name == "set" and isinstance(data, list):
            try:
                return set(data)
            except TypeError:
                return obj
        if type_name == "complex":
            real, imag = obj.get("real"), obj.get("imag")
            if _is_number(real) and _is_number(imag):
                return complex(real, imag)
            return obj
        if type_name == "bytes" and isinstance(data, str):
            try:
                return data.encode("latin-1")
            except UnicodeEncodeError:
                return obj
        if type_name == "dict":
            items = obj.get("items")
            if isinstance(items, list) and all(
                isinstance(item, list) and len(item) == 2 and isinstance(item[0], str)
                for item in items
            ):
                return {key: value for key, value in items}
        return obj

    def _default(self, obj: Any) -> Any:
        if self.replacer is not None:
            replaced = self.replacer(obj)
            if self.extended_types:
                return self._encode_recursive(replaced)
            return replaced
        raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")

    def _object_hook(self, obj: Dict[str, Any]) -> Any:
        if self.extended_types and self.TYPE_TAG in obj:
            obj = self._decode_extended(obj)
            if not isinstance(obj, dict):
                return obj
        if self.reviver is not None:
            return self.reviver(obj)
        return obj

    async def serialize(self, value: Any) -> str:
        try:
            if self.extended_types:
                value = self._encode_recursive(value)
            return json.dumps(
                value,
                ensure_ascii=self.ensure_ascii,
                default=self._default,
            )
        except (TypeError, ValueError, RecursionError) as e:
            raise SerializationError(
                operation="serialize",
                message=f"JSON serialization failed: {e}",
                data_type=type(value).__name__,
                serialization_format="json",
                cause=e,
            ) from e

    async def deserialize(self, payload: Any) -> Any:
        try:
            if isinstance(payload, (bytes, bytearray)):
                payload = bytes(payload).decode("utf-8")
            return json.loads(payload, object_hook=self._object_hook)
        except (ValueError, TypeError, KeyError, AttributeError, RecursionError) as e:
            raise SerializationError(
                operation="deserialize",
                message=f"JSON deserialization failed: {e}",
                data_type=type(payload).__name__,
                serialization_format="json",
                cause=e,
            ) from e


class PickleSerializer:
    """
    Pickle serializer for trusted Python-to-Python links.

    Never use it on a transport reachable by untrusted peers: unpickling
    executes arbitrary code. The ``safe_mode`` checks only reject payloads
    that are obviously not pickles.
    """

    MAX_PAYLOAD_BYTES = 1024 * 1024 * 1024

    def __init__(
        self,
        protocol: int = pickle.DEFAULT_PROTOCOL,
        safe_mode: bool = True,
        compression: CompressionAlgorithm = CompressionAlgorithm.NONE,
        compression_level: int = 6,
    ) -> None:
        if protocol not in range(0, pickle.HIGHEST_PROTOCOL + 1):
            raise ValueError(
                f"Unsupported pickle protocol {protocol}. "
                f"Supported range: 0-{pickle.HIGHEST_PROTOCOL}"
            )
        if not 0 <= compression_level <= 9:
            raise ValueError("compression_level must be in the range 0-9")

        self.protocol = protocol
        self.safe_mode = safe_mode
        self.compression = CompressionAlgorithm(compression)
        self.compression_level = compression_level
        self._codec = _CODEC_MAP[self.compression]

    def dumps(self, value: Any) -> bytes:
        """Synchronous encode, shared with transports that frame envelopes."""
        try:
            data = pickle.dumps(value, protocol=self.protocol)
            return self._codec.compress(data, self.compression_level)
        except (pickle.PicklingError, TypeError, AttributeError) as e:
            raise SerializationError(
                operation="serialize",
                message=f"Pickle serialization failed: {e}",
                data_type=type(value).__name__,
                serialization_format="pickle",
                cause=e,
            ) from e

    def loads(self, data: bytes) -> Any:
        """Synchronous decode, shared with transports that frame envelopes."""
        try:
            data = self._codec.decompress(data)
            if self.safe_mode:
                self._validate(data)
            return pickle.loads(data)
        except (pickle.UnpicklingError, EOFError, ValueError, zlib.error, OSError) as e:
            raise SerializationError(
                operation="deserialize",
                message=f"Pickle deserialization failed: {e}",
                serialization_format="pickle",
                cause=e,
            ) from e

    def _validate(self, data: bytes) -> None:
        if len(data) < 4:
            raise SerializationError(
                operation="deserialize",
                message="Invalid pickle data: too short",
                serialization_format="pickle",
            )
        # Protocol 2+ payloads start with the PROTO opcode
        if self.protocol >= 2 and data[0] != 0x80:
            raise SerializationError(
                operation="deserialize",
                message="Invalid pickle data: bad magic bytes",
                serialization_format="pickle",
            )
        if len(data) > self.MAX_PAYLOAD_BYTES:
            raise SerializationError(
                operation="deserialize",
                message=f"Pickle data too large: {len(data)} bytes",
                serialization_format="pickle",
            )

    async def serialize(self, value: Any) -> bytes:
        return self.dumps(value)

    async def deserialize(self, payload: Any) -> Any:
        if not isinstance(payload, (bytes, bytearray)):
            raise SerializationError(
                operation="deserialize",
                message="Pickle payload must be bytes",
                data_type=type(payload).__name__,
                serialization_format="pickle",
            )
        return self.loads(bytes(payload))
