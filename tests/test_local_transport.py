#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Tests for the in-process message hub.
"""

import asyncio

import pytest

from asynccall.transports.base import MessageCenter
from asynccall.transports.local import LocalMessageCenter, LocalMessageHub, default_hub
from asynccall.core.utils.exceptions import TransportError


def test_local_endpoints_satisfy_message_center_protocol():
    first, second = LocalMessageCenter.pair()

    assert isinstance(first, MessageCenter)
    assert first.hub is second.hub


def test_publish_reaches_other_endpoints_but_not_sender():
    hub = LocalMessageHub()
    sender, receiver, bystander = hub.endpoint(), hub.endpoint(), hub.endpoint()
    received = {"sender": [], "receiver": [], "bystander": []}
    sender.subscribe("ping", received["sender"].append)
    receiver.subscribe("ping", received["receiver"].append)
    bystander.subscribe("other", received["bystander"].append)

    async def run_case():
        sender.publish("ping", {"n": 1})
        # Delivery happens on a later loop iteration
        assert received["receiver"] == []
        await asyncio.sleep(0)

    asyncio.run(run_case())

    assert received == {"sender": [], "receiver": [{"n": 1}], "bystander": []}


def test_publish_requires_running_loop():
    first, _ = LocalMessageCenter.pair()

    with pytest.raises(TransportError) as exc_info:
        first.publish("ping", 1)

    assert exc_info.value.event == "ping"


def test_closed_endpoint_is_detached():
    hub = LocalMessageHub()
    first, second = hub.endpoint(), hub.endpoint()
    received = []
    second.subscribe("ping", received.append)

    second.close()

    assert hub.endpoints == [first]
    with pytest.raises(TransportError):
        second.publish("ping", 1)
    with pytest.raises(TransportError):
        second.subscribe("ping", received.append)

    async def run_case():
        assert hub.deliver(first, "ping", 1) == 0

    asyncio.run(run_case())


def test_unsubscribe_stops_delivery():
    first, second = LocalMessageCenter.pair()
    received = []
    second.subscribe("ping", received.append)

    assert second.unsubscribe("ping", received.append) is True
    assert second.unsubscribe("ping", received.append) is False

    async def run_case():
        first.publish("ping", 1)
        await asyncio.sleep(0)

    asyncio.run(run_case())

    assert received == []


def test_default_hub_is_a_singleton():
    assert default_hub() is default_hub()
    assert default_hub().name == "default"
