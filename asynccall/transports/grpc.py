#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
gRPC transport for linking two processes.

Each process runs a ``GrpcMessageCenter``: a ``grpc.aio`` server exposing a
single unary method ``/asynccall.MessageCenter/Publish`` plus a channel to
the peer's server. Messages are raw bytes (no protobuf schema): a pickled
``{"event": ..., "payload": ...}`` envelope. Publishing schedules the unary
call and returns immediately; failed deliveries are logged and dropped, in
line with the at-most-once contract.

    >>> center = GrpcMessageCenter(bind_address="127.0.0.1:50100",
    ...                            peer_address="127.0.0.1:50101")
    >>> await center.start()
    >>> call = AsyncCall(implementation, transport=center, serializer=JSONSerializer())

Only connect processes that trust each other: envelopes are unpickled.
"""

import logging
import threading
from typing import Any, Dict, List, Optional

import grpc
from grpc import aio as grpc_aio

from ..core.data.backends import PickleSerializer
from ..core.utils.concurrency import BackgroundTaskGroup
from ..core.utils.exceptions import (
    ExceptionFormatter,
    SerializationError,
    TransportError,
)
from ..core.utils.logger import ModernLogger
from .base import PayloadHandler

SERVICE_NAME = "asynccall.MessageCenter"
PUBLISH_METHOD_NAME = "Publish"
PUBLISH_METHOD = "/{0}/{1}".format(SERVICE_NAME, PUBLISH_METHOD_NAME)

_EMPTY_REPLY = b""

_NOISE_FILTER_LOCK = threading.Lock()
_NOISE_FILTER_INSTALLED = False


class _PollerShutdownNoiseFilter(logging.Filter):
    """
    Drop the BlockingIOError that grpc.aio's poller reports at teardown.

    asyncio logs it as "Exception in callback
    PollerCompletionQueue._handle_events(...)" with errno EAGAIN/EWOULDBLOCK.
    """

    _ERRNOS = (11, 35)  # EAGAIN on Linux, EWOULDBLOCK on macOS

    def filter(self, record: logging.LogRecord) -> bool:
        if not record.exc_info:
            return True
        exception = record.exc_info[1]
        if not isinstance(exception, BlockingIOError) or exception.errno not in self._ERRNOS:
            return True
        return "PollerCompletionQueue._handle_events" not in record.getMessage()


def install_grpc_shutdown_noise_filter() -> None:
    """
    Attach the poller noise filter to the asyncio logger once per process.
    """
    global _NOISE_FILTER_INSTALLED

    if _NOISE_FILTER_INSTALLED:
        return

    with _NOISE_FILTER_LOCK:
        if _NOISE_FILTER_INSTALLED:
            return
        logging.getLogger("asyncio").addFilter(_PollerShutdownNoiseFilter())
        _NOISE_FILTER_INSTALLED = True


class GrpcMessageCenter(ModernLogger):
    """
    Message center backed by a local gRPC server and a channel to the peer.

    Args:
        bind_address: ``host:port`` to serve on; port 0 picks a free port
        peer_address: ``host:port`` of the other side; may be given later
            through ``connect``
        envelope_serializer: Encoder for envelopes (pickle by default)
        send_timeout: Deadline in seconds for one delivery attempt
        log_level: Level of this transport's logger
    """

    def __init__(
        self,
        bind_address: str = "127.0.0.1:0",
        peer_address: Optional[str] = None,
        envelope_serializer: Optional[PickleSerializer] = None,
        send_timeout: float = 10.0,
        log_level: str = "info",
    ) -> None:
        ModernLogger.__init__(self, name="GrpcMessageCenter", level=log_level)
        install_grpc_shutdown_noise_filter()

        if send_timeout <= 0:
            raise ValueError(f"send_timeout must be positive, got {send_timeout}")

        self.bind_address = bind_address
        self.peer_address = peer_address
        self.send_timeout = send_timeout
        self.port: Optional[int] = None

        self._envelopes = envelope_serializer or PickleSerializer()
        self._handlers: Dict[str, List[PayloadHandler]] = {}
        self._server: Optional[grpc_aio.Server] = None
        self._channel: Optional[grpc_aio.Channel] = None
        self._publish_rpc: Any = None
        self._sends = BackgroundTaskGroup(on_error=self._on_send_error)

    @property
    def address(self) -> Optional[str]:
        """Address peers should connect to, once started."""
        if self.port is None:
            return None
        host = self.bind_address.rsplit(":", 1)[0]
        return "{0}:{1}".format(host, self.port)

    async def start(self) -> int:
        """
        Start serving and connect to the peer if its address is known.

        Returns:
            The bound port
        """
        if self._server is not None:
            raise TransportError("GrpcMessageCenter already started")

        server = grpc_aio.server()
        handler = grpc.method_handlers_generic_handler(
            SERVICE_NAME,
            {
                PUBLISH_METHOD_NAME: grpc.unary_unary_rpc_method_handler(
                    self._handle_publish
                )
            },
        )
        server.add_generic_rpc_handlers((handler,))
        try:
            port = server.add_insecure_port(self.bind_address)
        except RuntimeError as exc:
            raise TransportError(
                "Cannot bind gRPC transport to {0}".format(self.bind_address), cause=exc
            ) from exc
        if port == 0:
            raise TransportError("Cannot bind gRPC transport to {0}".format(self.bind_address))

        await server.start()
        self._server = server
        self.port = port
        self.info(f"gRPC message center listening on {self.address}")

        if self.peer_address:
            await self.connect(self.peer_address)
        return port

    async def connect(self, peer_address: str) -> None:
        """
        Open (or replace) the channel to the peer.
        """
        if self._channel is not None:
            await self._channel.close()
        self.peer_address = peer_address
        self._channel = grpc_aio.insecure_channel(peer_address)
        self._publish_rpc = self._channel.unary_unary(PUBLISH_METHOD)
        self.info(f"gRPC message center connected to {peer_address}")

    def subscribe(self, event: str, handler: PayloadHandler) -> None:
        self._handlers.setdefault(event, []).append(handler)

    def publish(self, event: str, payload: Any) -> None:
        if self._publish_rpc is None:
            raise TransportError("gRPC transport is not connected to a peer", event=event)
        envelope = self._envelopes.dumps({"event": event, "payload": payload})
        self._sends.spawn(self._send(event, envelope))

    async def _send(self, event: str, envelope: bytes) -> None:
        try:
            await self._publish_rpc(envelope, timeout=self.send_timeout)
        except grpc_aio.AioRpcError as exc:
            self.warning(
                "Dropping message on %s: %s %s", event, exc.code().name, exc.details()
            )

    def _on_send_error(self, task: Any, exc: BaseException) -> None:
        self.error("Unexpected send failure: %s", ExceptionFormatter.format_exception_summary(exc))

    async def _handle_publish(self, request: bytes, context: Any) -> bytes:
        try:
            envelope = self._envelopes.loads(request)
        except SerializationError as exc:
            self.warning("Dropping undecodable envelope: %s", exc.message)
            return _EMPTY_REPLY

        if not isinstance(envelope, dict) or not isinstance(envelope.get("event"), str):
            self.warning("Dropping malformed envelope of type %s", type(envelope).__name__)
            return _EMPTY_REPLY

        event = envelope["event"]
        for handler in list(self._handlers.get(event, ())):
            try:
                handler(envelope.get("payload"))
            except Exception as exc:
                self.error(
                    "Handler for %s failed: %s",
                    event,
                    ExceptionFormatter.format_exception_summary(exc),
                )
        return _EMPTY_REPLY

    async def close(self, grace: Optional[float] = 1.0) -> None:
        """
        Flush pending sends, close the peer channel and stop the server.
        """
        await self._sends.drain()
        if self._channel is not None:
            await self._channel.close()
            self._channel = None
            self._publish_rpc = None
        if self._server is not None:
            await self._server.stop(grace)
            self._server = None
        self.info("gRPC message center closed")
