#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
In-process transport.

``LocalMessageHub`` connects any number of ``LocalMessageCenter`` endpoints
living on the same event loop. A payload published on one endpoint is
delivered, on a later loop iteration, to the handlers of every *other*
endpoint subscribed to the event; the publisher never hears its own
messages, which mirrors a link between two separate contexts.

Endpoints hold their handlers strongly and the hub holds its endpoints
strongly, so an ``AsyncCall`` attached to a hub keeps serving until its
endpoint is closed.
"""

import asyncio
import threading
from typing import Any, Dict, List, Optional, Tuple

from ..core.utils.exceptions import TransportError
from .base import PayloadHandler


class LocalMessageCenter:
    """
    One endpoint of a ``LocalMessageHub``.
    """

    def __init__(self, hub: "LocalMessageHub") -> None:
        self.hub = hub
        self._handlers: Dict[str, List[PayloadHandler]] = {}
        self.closed = False

    @classmethod
    def pair(cls) -> Tuple["LocalMessageCenter", "LocalMessageCenter"]:
        """
        Two endpoints connected only to each other.
        """
        hub = LocalMessageHub(name="pair")
        return hub.endpoint(), hub.endpoint()

    def subscribe(self, event: str, handler: PayloadHandler) -> None:
        if self.closed:
            raise TransportError("Endpoint is closed", event=event)
        self._handlers.setdefault(event, []).append(handler)

    def unsubscribe(self, event: str, handler: PayloadHandler) -> bool:
        handlers = self._handlers.get(event, [])
        try:
            handlers.remove(handler)
        except ValueError:
            return False
        return True

    def handlers_for(self, event: str) -> List[PayloadHandler]:
        return list(self._handlers.get(event, ()))

    def publish(self, event: str, payload: Any) -> None:
        if self.closed:
            raise TransportError("Endpoint is closed", event=event)
        self.hub.deliver(self, event, payload)

    def close(self) -> None:
        """
        Detach from the hub and drop all handlers.
        """
        self.closed = True
        self._handlers.clear()
        self.hub.detach(self)

    def __repr__(self) -> str:
        return "<LocalMessageCenter hub={0!r} events={1}>".format(
            self.hub.name, sorted(self._handlers)
        )


class LocalMessageHub:
    """
    Broadcast medium for ``LocalMessageCenter`` endpoints.
    """

    def __init__(self, name: str = "local") -> None:
        self.name = name
        self._endpoints: List[LocalMessageCenter] = []

    def endpoint(self) -> LocalMessageCenter:
        center = LocalMessageCenter(self)
        self._endpoints.append(center)
        return center

    def detach(self, center: LocalMessageCenter) -> None:
        if center in self._endpoints:
            self._endpoints.remove(center)

    @property
    def endpoints(self) -> List[LocalMessageCenter]:
        return list(self._endpoints)

    def deliver(self, sender: Optional[LocalMessageCenter], event: str, payload: Any) -> int:
        """
        Schedule ``payload`` for every other endpoint; returns handler count.

        Must be called from the thread running the event loop.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as exc:
            raise TransportError(
                "Local transport requires a running event loop", event=event, cause=exc
            ) from exc

        scheduled = 0
        for center in list(self._endpoints):
            if center is sender:
                continue
            for handler in center.handlers_for(event):
                loop.call_soon(handler, payload)
                scheduled += 1
        return scheduled


_default_hub: Optional[LocalMessageHub] = None
_default_hub_lock = threading.Lock()


def default_hub() -> LocalMessageHub:
    """
    Process-wide hub used by ``AsyncCall`` when no transport is configured.
    """
    global _default_hub

    if _default_hub is None:
        with _default_hub_lock:
            if _default_hub is None:
                _default_hub = LocalMessageHub(name="default")
    return _default_hub
