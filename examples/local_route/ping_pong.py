#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Two AsyncCall sides in one process, each calling the other.
"""

import asyncio

from asynccall import AsyncCall, JSONSerializer, LocalMessageCenter, RemoteCallError


class PingSide:
    async def ping(self, count: int) -> str:
        return f"pong #{count}"


class PongSide:
    async def whoami(self) -> str:
        return "pong side"

    async def divide(self, a: float, b: float) -> float:
        return a / b


class PingPongDemo:
    """
    Demonstrates calls in both directions and remote error reporting.
    """

    async def run(self) -> None:
        ping_center, pong_center = LocalMessageCenter.pair()
        options = dict(key="ping-pong", serializer=JSONSerializer(), not_implemented_policy="strict")

        ping = AsyncCall(PingSide(), transport=ping_center, **options)
        pong = AsyncCall(PongSide(), transport=pong_center, **options)

        print("pong ->", await pong.remote.ping(1))
        print("ping ->", await ping.remote.whoami())

        try:
            await ping.remote.divide(1, 0)
        except RemoteCallError as exc:
            print(f"divide failed remotely: {exc.remote_type}: {exc}")

        try:
            await ping.remote.missing()
        except RemoteCallError as exc:
            print(exc)


if __name__ == "__main__":
    asyncio.run(PingPongDemo().run())
