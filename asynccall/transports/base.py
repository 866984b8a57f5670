#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Transport contract used by ``AsyncCall``.

A transport moves opaque payloads between the two sides under named events.
Delivery is at most once and unordered; ``publish`` never waits for the
other side and never reports whether the payload arrived.
"""

from typing import Any, Callable, Protocol, runtime_checkable

PayloadHandler = Callable[[Any], None]


@runtime_checkable
class MessageCenter(Protocol):
    """
    Minimal publish/subscribe capability required from a transport.

    Handlers are invoked from the thread running the event loop that owns
    the subscribing ``AsyncCall``.
    """

    def subscribe(self, event: str, handler: PayloadHandler) -> None:
        """Call ``handler(payload)`` for every payload received on ``event``"""
        ...

    def publish(self, event: str, payload: Any) -> None:
        """Send ``payload`` to the other side under ``event``"""
        ...
