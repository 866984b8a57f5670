#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Tests for the gRPC message center and its shutdown noise filter.
"""

import asyncio
import logging

import pytest

from asynccall.core.call import AsyncCall
from asynccall.core.data.backends import JSONSerializer, PickleSerializer
from asynccall.core.utils.exceptions import RemoteCallError, TransportError
from asynccall.transports.base import MessageCenter
from asynccall.transports.grpc import (
    GrpcMessageCenter,
    install_grpc_shutdown_noise_filter,
)


def _passes_logger_filters(record: logging.LogRecord) -> bool:
    logger = logging.getLogger("asyncio")
    for logger_filter in logger.filters:
        if not logger_filter.filter(record):
            return False
    return True


def _asyncio_record(msg, exc):
    return logging.LogRecord(
        name="asyncio",
        level=logging.ERROR,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=(),
        exc_info=(type(exc), exc, None),
    )


def test_noise_filter_blocks_known_poller_artifact():
    install_grpc_shutdown_noise_filter()

    record = _asyncio_record(
        "Exception in callback PollerCompletionQueue._handle_events(...)",
        BlockingIOError(35, "Resource temporarily unavailable"),
    )

    assert _passes_logger_filters(record) is False


def test_noise_filter_keeps_other_asyncio_errors():
    install_grpc_shutdown_noise_filter()

    record = _asyncio_record(
        "Exception in callback some_other_callback",
        RuntimeError("unexpected asyncio error"),
    )

    assert _passes_logger_filters(record) is True


def test_grpc_center_satisfies_protocol_and_validates_options():
    assert isinstance(GrpcMessageCenter(), MessageCenter)

    with pytest.raises(ValueError):
        GrpcMessageCenter(send_timeout=0)


def test_publish_before_connect_raises_transport_error():
    center = GrpcMessageCenter()

    with pytest.raises(TransportError) as exc_info:
        center.publish("k-call", b"payload")

    assert exc_info.value.event == "k-call"


def test_malformed_envelopes_are_dropped():
    center = GrpcMessageCenter()
    received = []
    center.subscribe("k-call", received.append)
    envelopes = PickleSerializer()

    async def run_case():
        assert await center._handle_publish(b"garbage", None) == b""
        assert await center._handle_publish(envelopes.dumps(["not", "a", "dict"]), None) == b""
        await center._handle_publish(envelopes.dumps({"event": "k-call", "payload": "ok"}), None)

    asyncio.run(run_case())

    assert received == ["ok"]


def test_async_call_over_grpc_between_two_centers():
    async def add(a, b):
        return a + b

    async def fail():
        raise ValueError("boom")

    async def run_case():
        server_center = GrpcMessageCenter()
        client_center = GrpcMessageCenter()
        await server_center.start()
        await client_center.start()
        await server_center.connect(client_center.address)
        await client_center.connect(server_center.address)

        try:
            AsyncCall(
                {"add": add, "fail": fail},
                transport=server_center,
                serializer=JSONSerializer(),
                key="grpc",
            )
            client = AsyncCall(transport=client_center, serializer=JSONSerializer(), key="grpc")

            assert await asyncio.wait_for(client.remote.add(2, 3), timeout=10) == 5
            with pytest.raises(RemoteCallError) as exc_info:
                await asyncio.wait_for(client.remote.fail(), timeout=10)
            assert str(exc_info.value) == "boom"
        finally:
            await client_center.close()
            await server_center.close()

    asyncio.run(run_case())
