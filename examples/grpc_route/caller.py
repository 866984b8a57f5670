#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Caller process using a typed stub over the gRPC transport.
"""

import asyncio
import os

from asynccall import AsyncCall, GrpcMessageCenter, JSONSerializer, RemoteStub, remote

WORKER_ADDRESS = os.getenv("ASYNCCALL_WORKER_ADDRESS", "127.0.0.1:50710")
CALLER_ADDRESS = os.getenv("ASYNCCALL_CALLER_ADDRESS", "127.0.0.1:50711")


class MathStub(RemoteStub):
    @remote
    async def add(self, a: int, b: int) -> int:
        ...

    @remote
    async def slow_square(self, value: int) -> int:
        ...


async def main() -> None:
    center = GrpcMessageCenter(bind_address=CALLER_ADDRESS, peer_address=WORKER_ADDRESS)
    await center.start()
    math = MathStub(AsyncCall(transport=center, key="math", serializer=JSONSerializer()))
    try:
        print("add ->", await asyncio.wait_for(math.add(12, b=30), timeout=5))
        squares = await asyncio.wait_for(
            asyncio.gather(*(math.slow_square(n) for n in range(5))), timeout=5
        )
        print("slow_square ->", squares)
    finally:
        await center.close()


if __name__ == "__main__":
    asyncio.run(main())
