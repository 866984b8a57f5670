#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
``AsyncCall``: two-way RPC over a publish/subscribe message channel.

Each side constructs an ``AsyncCall`` with the functions it implements and
calls the other side's functions through ``AsyncCall.remote``:

    >>> # Side A
    >>> async def add(a, b):
    ...     return a + b
    >>> server = AsyncCall({"add": add}, key="math")
    >>>
    >>> # Side B
    >>> client = AsyncCall({}, key="math")
    >>> await client.remote.add(2, 3)
    5

Both sides must use the same ``key`` and compatible serializers. Two sides
may implement methods with the same name; each call is routed to the other
side only.
"""

import asyncio
import inspect
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional

from .config import AsyncCallConfig, get_config
from .data.models import Request
from .dispatch import RequestDispatcher, ResponseDispatcher
from .metadata import MetadataPropagator
from .registry import CallIdGenerator, CallRegistry
from .utils.concurrency import BackgroundTaskGroup, create_loop_future
from .utils.exceptions import (
    ExceptionFormatter,
    ExceptionTranslator,
    InvalidCallTargetError,
)
from .utils.logger import ModernLogger


def build_implementation_table(implementation: Any) -> Mapping[str, Callable[..., Any]]:
    """
    Freeze the methods this side exposes into a read-only mapping.

    Accepts ``None``, a mapping of name to callable, or any object whose
    public callable attributes become the exposed methods.
    """
    if implementation is None:
        return MappingProxyType({})

    table: Dict[str, Callable[..., Any]] = {}
    if isinstance(implementation, Mapping):
        for name, func in implementation.items():
            if not isinstance(name, str):
                raise TypeError(
                    "Implementation names must be strings, got {0!r}".format(name)
                )
            if not callable(func):
                raise TypeError("Implementation {0!r} is not callable".format(name))
            table[name] = func
    else:
        for name in dir(implementation):
            if name.startswith("_"):
                continue
            func = getattr(implementation, name, None)
            if callable(func) and not inspect.isclass(func):
                table[name] = func
    return MappingProxyType(table)


class RemoteMethod:
    """
    Callable bound to one method name of the other side.

    Calling it sends the request right away and returns an ``asyncio.Task``
    resolving to the remote result, so a call that is never awaited is
    still delivered. Must be called from a running event loop.
    """

    __slots__ = ("_call", "name")

    def __init__(self, call: "AsyncCall", name: Any) -> None:
        self._call = call
        self.name = name

    def __call__(self, *args: Any, **kwargs: Any) -> "asyncio.Task[Any]":
        if not isinstance(self.name, str):
            raise InvalidCallTargetError(self.name)
        if kwargs:
            raise TypeError(
                "Remote method {0!r} takes positional arguments only".format(self.name)
            )
        loop = asyncio.get_running_loop()
        return loop.create_task(self._call.invoke(self.name, *args))

    def __repr__(self) -> str:
        return "<RemoteMethod {0!r} key={1!r}>".format(self.name, self._call.key)


class RemoteSurface:
    """
    Dynamic proxy of the other side.

    Any attribute is a remote method: ``surface.anything(1, 2)`` sends a call
    to ``anything``. Item access (``surface["name with spaces"]``) reaches
    names that are not identifiers. Dunder names are never remote so that
    introspection, copying and pickling behave normally.
    """

    __slots__ = ("_call",)

    def __init__(self, call: "AsyncCall") -> None:
        self._call = call

    def __getattr__(self, name: str) -> RemoteMethod:
        if name.startswith("__") and name.endswith("__"):
            raise AttributeError(name)
        return RemoteMethod(self._call, name)

    def __getitem__(self, name: Any) -> RemoteMethod:
        return RemoteMethod(self._call, name)

    def __repr__(self) -> str:
        return "<RemoteSurface key={0!r}>".format(self._call.key)


class AsyncCall(ModernLogger):
    """
    One side of a bidirectional RPC channel.

    Args:
        implementation: Methods exposed to the other side (mapping or object)
        config: Base configuration; defaults to ``get_config()``
        transport: Ready transport instance; overrides ``transport_factory``
        **options: Overrides applied on top of ``config``
            (``key``, ``serializer``, ``not_implemented_policy``, ``logging``,
            ``log_level``, ``transport_factory``, ``metadata_codec``,
            ``metadata_store``)
    """

    def __init__(
        self,
        implementation: Any = None,
        config: Optional[AsyncCallConfig] = None,
        *,
        transport: Any = None,
        **options: Any,
    ) -> None:
        config = config if config is not None else get_config()
        if options:
            config = config.with_overrides(**options)
        self.config = config

        ModernLogger.__init__(
            self,
            name="AsyncCall.{0}".format(config.key),
            level=config.log_level,
            enabled=config.logging,
        )

        self.implementations = build_implementation_table(implementation)
        self.transport = transport if transport is not None else config.transport_factory()

        self._registry = CallRegistry()
        self._call_ids = CallIdGenerator()
        self._propagator = MetadataPropagator(
            store=config.metadata_store, codec=config.metadata_codec
        )
        self._tasks = BackgroundTaskGroup(on_error=self._on_task_error)
        self._request_dispatcher = RequestDispatcher(
            self.implementations, self.transport, config, self._propagator
        )
        self._response_dispatcher = ResponseDispatcher(
            self._registry, config, self._propagator
        )

        self.transport.subscribe(config.call_event, self._on_call_payload)
        self.transport.subscribe(config.return_event, self._on_return_payload)

        self.remote = RemoteSurface(self)

        self.debug(
            "AsyncCall ready (key=%s, methods=%s, policy=%s, serializer=%s)",
            config.key,
            sorted(self.implementations),
            config.not_implemented_policy.value,
            type(config.serializer).__name__,
        )

    @property
    def key(self) -> str:
        return self.config.key

    @property
    def registry(self) -> CallRegistry:
        return self._registry

    @property
    def pending_calls(self) -> int:
        """Number of calls still waiting for a response."""
        return len(self._registry)

    def _spawn(self, coroutine_factory: Callable[[Any], Any], payload: Any, event: str) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.error("Payload on %s delivered outside a running event loop, dropped", event)
            return
        self._tasks.spawn(coroutine_factory(payload), loop=loop)

    def _on_call_payload(self, payload: Any) -> None:
        self._spawn(self._request_dispatcher.dispatch, payload, self.config.call_event)

    def _on_return_payload(self, payload: Any) -> None:
        self._spawn(self._response_dispatcher.dispatch, payload, self.config.return_event)

    def _on_task_error(self, task: asyncio.Task, exc: BaseException) -> None:
        self.error(
            "Dispatch task failed: %s",
            ExceptionFormatter.format_exception_summary(exc),
        )

    async def invoke(self, method: Any, *args: Any) -> Any:
        """
        Call ``method`` on the other side and wait for its result.

        Raises:
            InvalidCallTargetError: ``method`` is not a string; nothing is sent
            SerializationError: The request cannot be serialized; nothing is
                registered or sent
            TransportError: The transport refused the message
            RemoteCallError: The remote implementation failed, or (strict
                policy) does not exist
        """
        if not isinstance(method, str):
            raise InvalidCallTargetError(method)

        call_id = self._call_ids.next_id()
        request = Request(
            method=method,
            args=list(args),
            call_id=call_id,
            metadata=self._propagator.capture_many(args),
        )

        try:
            payload = await self.config.serializer.serialize(request.to_wire())
        except Exception as exc:
            raise ExceptionTranslator.as_serialization_error(
                exc,
                operation="serialize_request",
                message="Failed to serialize call to {0}()".format(method),
                data_type="Request",
            ) from exc

        future = create_loop_future()
        self._registry.register(call_id, future)
        try:
            self.transport.publish(self.config.call_event, payload)
        except Exception as exc:
            self._registry.pop(call_id)
            raise ExceptionTranslator.as_transport_error(
                exc,
                event=self.config.call_event,
                message="Failed to publish call to {0}()".format(method),
            ) from exc

        return await future

    def bind(self, method: str) -> RemoteMethod:
        """
        Remote method object for ``method``; same as ``self.remote[method]``.
        """
        return RemoteMethod(self, method)

    async def drain(self) -> None:
        """
        Wait for every incoming payload received so far to be fully handled.
        """
        await self._tasks.drain()

    def __repr__(self) -> str:
        return "<AsyncCall key={0!r} methods={1} pending={2}>".format(
            self.key, len(self.implementations), self.pending_calls
        )
