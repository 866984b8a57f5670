#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Out-of-band metadata for call arguments, results and errors.

Applications annotate values with ``define_metadata(key, value, target)``.
When such a value crosses the channel, its annotations are captured from the
in-memory object before serialization, carried in the ``metadata`` field of
the request or response, and reapplied to the deserialized object on the
other side. The serializer never sees the annotations attached to the
objects themselves, so they survive lossy encodings such as JSON.

Annotations are stored by object identity:
- weak-referenceable targets (functions, class instances, exceptions) are
  released automatically when the target is garbage collected
- plain containers (``dict``, ``list``, ``tuple``, ``set``) cannot be weakly
  referenced; the store keeps them alive until ``delete_metadata`` is called
- primitives (``None``, ``bool``, numbers, ``str``, ``bytes``) never carry
  metadata
"""

import base64
import weakref
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple

from .data.backends import PickleSerializer

RESPONSE_METADATA_KEY = "async-call-response"

PRIMITIVE_TYPES = (type(None), bool, int, float, complex, str, bytes, bytearray)


def can_carry_metadata(value: Any) -> bool:
    """
    True for values that metadata can be attached to.
    """
    return not isinstance(value, PRIMITIVE_TYPES)


class MetadataStore:
    """
    Identity-keyed annotation storage.
    """

    def __init__(self) -> None:
        # id(target) -> (weak ref or None, pinned target or None, annotations)
        self._entries: Dict[int, Tuple[Optional[weakref.ref], Any, Dict[str, Any]]] = {}

    def _lookup(self, target: Any) -> Optional[Dict[str, Any]]:
        entry = self._entries.get(id(target))
        if entry is None:
            return None
        ref, pinned, annotations = entry
        current = ref() if ref is not None else pinned
        if current is not target:
            # id reused by a new object after the old one died
            return None
        return annotations

    def _forget(self, key: int, ref: weakref.ref) -> None:
        entry = self._entries.get(key)
        if entry is not None and entry[0] is ref:
            del self._entries[key]

    def _ensure(self, target: Any) -> Dict[str, Any]:
        annotations = self._lookup(target)
        if annotations is not None:
            return annotations

        key = id(target)
        annotations = {}
        try:
            ref = weakref.ref(target, lambda r, k=key: self._forget(k, r))
        except TypeError:
            self._entries[key] = (None, target, annotations)
        else:
            self._entries[key] = (ref, None, annotations)
        return annotations

    def define_metadata(self, key: str, value: Any, target: Any) -> None:
        if not can_carry_metadata(target):
            raise TypeError(
                "Cannot attach metadata to primitive value of type {0}".format(
                    type(target).__name__
                )
            )
        self._ensure(target)[key] = value

    def get_metadata(self, key: str, target: Any, default: Any = None) -> Any:
        if not can_carry_metadata(target):
            return default
        annotations = self._lookup(target)
        if annotations is None:
            return default
        return annotations.get(key, default)

    def get_own_metadata(self, target: Any) -> Optional[Dict[str, Any]]:
        """
        Copy of all annotations on ``target``, or None when it has none.
        """
        if not can_carry_metadata(target):
            return None
        annotations = self._lookup(target)
        if not annotations:
            return None
        return dict(annotations)

    def apply_metadata(self, target: Any, metadata: Optional[Mapping[str, Any]]) -> Any:
        """
        Merge ``metadata`` into ``target``'s annotations; returns ``target``.

        Primitive targets and empty metadata are ignored.
        """
        if not metadata or not can_carry_metadata(target):
            return target
        self._ensure(target).update(metadata)
        return target

    def delete_metadata(self, target: Any, key: Optional[str] = None) -> bool:
        """
        Remove one annotation, or all of them when ``key`` is None.
        """
        annotations = self._lookup(target) if can_carry_metadata(target) else None
        if annotations is None:
            return False
        if key is None:
            del self._entries[id(target)]
            return True
        removed = annotations.pop(key, _SENTINEL) is not _SENTINEL
        if not annotations:
            del self._entries[id(target)]
        return removed

    def __len__(self) -> int:
        return len(self._entries)


_SENTINEL = object()


class MetadataCodec(Protocol):
    """
    Converts annotation dictionaries to and from their on-the-wire form.
    """

    def encode(self, metadata: Dict[str, Any]) -> Any:
        ...

    def decode(self, encoded: Any) -> Optional[Dict[str, Any]]:
        ...


class PassthroughMetadataCodec:
    """
    Put annotation dictionaries on the wire as-is.

    The request/response serializer must be able to encode the annotation
    values themselves.
    """

    def encode(self, metadata: Dict[str, Any]) -> Any:
        return dict(metadata)

    def decode(self, encoded: Any) -> Optional[Dict[str, Any]]:
        if isinstance(encoded, Mapping):
            return dict(encoded)
        return None


class PickleMetadataCodec:
    """
    Pickle annotations into base64 text.

    Lets arbitrary Python annotation values cross a JSON serializer. Same
    trust caveats as ``PickleSerializer``.
    """

    def __init__(self, serializer: Optional[PickleSerializer] = None) -> None:
        self._serializer = serializer or PickleSerializer()

    def encode(self, metadata: Dict[str, Any]) -> str:
        return base64.b64encode(self._serializer.dumps(dict(metadata))).decode("ascii")

    def decode(self, encoded: Any) -> Optional[Dict[str, Any]]:
        if not isinstance(encoded, str):
            return None
        decoded = self._serializer.loads(base64.b64decode(encoded.encode("ascii")))
        if isinstance(decoded, Mapping):
            return dict(decoded)
        return None


class MetadataPropagator:
    """
    Capture annotations before serialization and reapply them afterwards.
    """

    def __init__(
        self,
        store: Optional[MetadataStore] = None,
        codec: Optional[MetadataCodec] = None,
    ) -> None:
        self.store = store if store is not None else default_store
        self.codec = codec if codec is not None else PassthroughMetadataCodec()

    def capture(self, value: Any) -> Optional[Any]:
        metadata = self.store.get_own_metadata(value)
        if metadata is None:
            return None
        return self.codec.encode(metadata)

    def capture_many(self, values: Sequence[Any]) -> Optional[List[Optional[Any]]]:
        """
        Per-value annotations aligned by index; None when no value has any.
        """
        captured = [self.capture(value) for value in values]
        if all(item is None for item in captured):
            return None
        return captured

    def apply(
        self,
        value: Any,
        encoded: Optional[Any],
        extra: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        metadata: Dict[str, Any] = {}
        if encoded is not None:
            metadata.update(self.codec.decode(encoded) or {})
        if extra:
            metadata.update(extra)
        return self.store.apply_metadata(value, metadata)

    def apply_many(
        self,
        values: Sequence[Any],
        encoded: Optional[Sequence[Optional[Any]]],
    ) -> None:
        if not encoded:
            return
        for value, item in zip(values, encoded):
            if item is not None:
                self.apply(value, item)


default_store = MetadataStore()


def define_metadata(key: str, value: Any, target: Any) -> None:
    """Annotate ``target`` in the process-wide store."""
    default_store.define_metadata(key, value, target)


def get_metadata(key: str, target: Any, default: Any = None) -> Any:
    """Read one annotation of ``target`` from the process-wide store."""
    return default_store.get_metadata(key, target, default)


def get_own_metadata(target: Any) -> Optional[Dict[str, Any]]:
    return default_store.get_own_metadata(target)


def delete_metadata(target: Any, key: Optional[str] = None) -> bool:
    return default_store.delete_metadata(target, key)
