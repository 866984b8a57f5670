#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Worker process exposing math functions over the gRPC transport.

Run ``worker.py`` first, then ``caller.py`` in another terminal.
"""

import asyncio
import os

from asynccall import AsyncCall, GrpcMessageCenter, JSONSerializer

WORKER_ADDRESS = os.getenv("ASYNCCALL_WORKER_ADDRESS", "127.0.0.1:50710")
CALLER_ADDRESS = os.getenv("ASYNCCALL_CALLER_ADDRESS", "127.0.0.1:50711")


class MathService:
    async def add(self, a: int, b: int) -> int:
        return a + b

    async def slow_square(self, value: int) -> int:
        await asyncio.sleep(0.5)
        return value * value


async def main() -> None:
    center = GrpcMessageCenter(bind_address=WORKER_ADDRESS, peer_address=CALLER_ADDRESS)
    await center.start()
    AsyncCall(MathService(), transport=center, key="math", serializer=JSONSerializer())
    try:
        await asyncio.Event().wait()
    finally:
        await center.close()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
