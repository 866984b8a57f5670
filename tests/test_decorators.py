#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Tests for typed remote stubs.
"""

import asyncio

import pytest

from asynccall.core.call import AsyncCall
from asynccall.decorators import (
    RemoteStub,
    RemoteStubMethod,
    remote,
    remote_interface,
)
from asynccall.transports.local import LocalMessageCenter


class RecordingCall:
    """
    Stand-in for AsyncCall that records invocations.
    """

    key = "recording"

    def __init__(self):
        self.calls = []

    async def invoke(self, method, *args):
        self.calls.append((method, list(args)))
        return "{0}:{1}".format(method, len(args))


class MathStub(RemoteStub):
    @remote
    async def add(self, a: int, b: int = 10) -> int:
        ...

    @remote(name="mul")
    async def multiply(self, a: int, b: int) -> int:
        ...

    @remote
    async def total(self, *values: int) -> int:
        ...

    def local_helper(self):
        return "local"


def test_stub_binds_keywords_and_defaults_to_positions():
    recorder = RecordingCall()
    stub = MathStub(recorder)

    async def run_case():
        await stub.add(1, b=2)
        await stub.add(5)
        await stub.multiply(b=3, a=4)
        await stub.total(1, 2, 3)

    asyncio.run(run_case())

    assert recorder.calls == [
        ("add", [1, 2]),
        ("add", [5, 10]),
        ("mul", [4, 3]),
        ("total", [1, 2, 3]),
    ]


def test_stub_rejects_arguments_not_matching_signature():
    stub = MathStub(RecordingCall())

    with pytest.raises(TypeError):
        asyncio.run(stub.multiply(1))
    with pytest.raises(TypeError):
        asyncio.run(stub.add(1, c=2))


def test_stub_lists_remote_methods_and_keeps_local_ones():
    stub = MathStub(RecordingCall())

    assert MathStub.remote_methods() == ["add", "mul", "total"]
    assert isinstance(MathStub.__dict__["add"], RemoteStubMethod)
    assert stub.local_helper() == "local"
    assert MathStub.add.__name__ == "add"


def test_keyword_only_parameters_are_rejected():
    with pytest.raises(TypeError):

        class BadStub(RemoteStub):
            @remote
            async def search(self, query, *, limit=10):
                ...


def test_remote_name_must_be_string():
    with pytest.raises(TypeError):
        remote(name=3)


class Greeter:
    """Greets people."""

    async def greet(self, name, punctuation="!"):
        return "hello " + name + punctuation

    @remote(name="farewell")
    async def goodbye(self, name):
        return "bye " + name

    def sync_helper(self):
        return "not exported to the stub"


def test_remote_interface_generates_stub_from_coroutines():
    GreeterStub = remote_interface(Greeter)

    assert issubclass(GreeterStub, RemoteStub)
    assert GreeterStub.__name__ == "GreeterStub"
    assert GreeterStub.__doc__ == "Greets people."
    assert GreeterStub.remote_methods() == ["farewell", "greet"]
    assert not hasattr(GreeterStub, "sync_helper")


def test_generated_stub_calls_real_implementation():
    GreeterStub = remote_interface(Greeter)
    greeter = Greeter()

    async def run_case():
        server_side, client_side = LocalMessageCenter.pair()
        AsyncCall(
            {"greet": greeter.greet, "farewell": greeter.goodbye},
            transport=server_side,
            key="greeter",
        )
        stub = GreeterStub(AsyncCall(transport=client_side, key="greeter"))

        return await stub.greet(name="bob"), await stub.goodbye("amy")

    assert asyncio.run(run_case()) == ("hello bob!", "bye amy")
