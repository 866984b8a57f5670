#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Tests for the metadata store, codecs and propagator.
"""

import gc

import pytest

from asynccall.core.metadata import (
    MetadataPropagator,
    MetadataStore,
    PassthroughMetadataCodec,
    PickleMetadataCodec,
    can_carry_metadata,
)


class Token:
    pass


def test_store_define_get_and_delete_on_objects():
    store = MetadataStore()
    token = Token()

    store.define_metadata("role", "admin", token)
    store.define_metadata("scope", ["read"], token)

    assert store.get_metadata("role", token) == "admin"
    assert store.get_own_metadata(token) == {"role": "admin", "scope": ["read"]}
    assert store.delete_metadata(token, "role") is True
    assert store.get_own_metadata(token) == {"scope": ["read"]}
    assert store.delete_metadata(token) is True
    assert store.get_own_metadata(token) is None


def test_store_tracks_plain_containers_until_deleted():
    store = MetadataStore()
    payload = {"value": 1}

    store.define_metadata("origin", "client", payload)

    assert store.get_own_metadata(payload) == {"origin": "client"}
    assert store.get_own_metadata({"value": 1}) is None
    store.delete_metadata(payload)
    assert len(store) == 0


def test_store_releases_weak_targets_when_collected():
    store = MetadataStore()
    token = Token()
    store.define_metadata("k", "v", token)
    assert len(store) == 1

    del token
    gc.collect()

    assert len(store) == 0


def test_primitives_never_carry_metadata():
    store = MetadataStore()

    assert can_carry_metadata(5) is False
    assert can_carry_metadata("text") is False
    assert can_carry_metadata(None) is False
    with pytest.raises(TypeError):
        store.define_metadata("k", "v", 5)
    assert store.get_own_metadata("text") is None
    assert store.apply_metadata(5, {"k": "v"}) == 5


def test_pickle_codec_encodes_text_and_roundtrips():
    codec = PickleMetadataCodec()

    encoded = codec.encode({"when": (1, 2), "who": {"name": "x"}})

    assert isinstance(encoded, str)
    assert codec.decode(encoded) == {"when": (1, 2), "who": {"name": "x"}}
    assert codec.decode(None) is None


def test_passthrough_codec_copies_mappings():
    codec = PassthroughMetadataCodec()
    original = {"a": 1}

    encoded = codec.encode(original)

    assert encoded == original and encoded is not original
    assert codec.decode("not-a-mapping") is None


def test_propagator_captures_aligned_by_index():
    store = MetadataStore()
    propagator = MetadataPropagator(store=store)
    annotated = Token()
    store.define_metadata("k", "v", annotated)

    assert propagator.capture_many([1, "x"]) is None
    assert propagator.capture_many([1, annotated]) == [None, {"k": "v"}]


def test_propagator_apply_merges_extra_annotations():
    store = MetadataStore()
    propagator = MetadataPropagator(store=store, codec=PickleMetadataCodec())
    target = Token()
    encoded = propagator.codec.encode({"k": "v"})

    propagator.apply(target, encoded, extra={"async-call-response": {"t": 1}})

    assert store.get_own_metadata(target) == {
        "k": "v",
        "async-call-response": {"t": 1},
    }


def test_propagator_apply_many_skips_unannotated_positions():
    store = MetadataStore()
    propagator = MetadataPropagator(store=store)
    first, second = Token(), Token()

    propagator.apply_many([first, second], [None, {"k": "v"}])

    assert store.get_own_metadata(first) is None
    assert store.get_own_metadata(second) == {"k": "v"}
