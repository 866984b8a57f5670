#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Incoming message handling.

``RequestDispatcher`` runs local implementations for payloads arriving on
the call channel and answers on the return channel. ``ResponseDispatcher``
settles the caller's future for payloads arriving on the return channel.

Neither dispatcher ever raises into the transport: undecodable payloads,
unknown call ids and unanswerable responses are logged and dropped.
"""

import inspect
from typing import Any, Callable, Mapping, Optional

from .config import AsyncCallConfig, NotImplementedPolicy
from .data.models import ErrorPayload, Request, Response
from .metadata import RESPONSE_METADATA_KEY, MetadataPropagator
from .registry import CallRegistry
from .utils.exceptions import (
    ExceptionFormatter,
    ExceptionTranslator,
    MethodNotImplementedError,
    RemoteCallError,
)
from .utils.logger import ModernLogger


def _describe_args(args: Any) -> str:
    return ", ".join(repr(arg) for arg in args)


class RequestDispatcher(ModernLogger):
    """
    Execute incoming calls against the implementation table.
    """

    def __init__(
        self,
        implementations: Mapping[str, Callable[..., Any]],
        transport: Any,
        config: AsyncCallConfig,
        propagator: MetadataPropagator,
    ) -> None:
        ModernLogger.__init__(
            self,
            name="RequestDispatcher.{0}".format(config.key),
            level=config.log_level,
            enabled=config.logging,
        )
        self._implementations = implementations
        self._transport = transport
        self._config = config
        self._serializer = config.serializer
        self._propagator = propagator

    async def dispatch(self, payload: Any) -> None:
        try:
            request = Request.from_wire(await self._serializer.deserialize(payload))
        except Exception as exc:
            self.debug(
                "Dropping undecodable payload on %s: %s",
                self._config.call_event,
                ExceptionFormatter.format_exception_summary(exc),
            )
            return

        executor = self._implementations.get(request.method)
        if executor is None:
            await self._handle_not_implemented(request)
            return

        try:
            self._propagator.apply_many(request.args, request.metadata)
            self.info(
                "%s.%s(%s) @%s",
                self._config.key,
                request.method,
                _describe_args(request.args),
                request.call_id,
            )
            result = executor(*request.args)
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:
            self.error(
                "%s @%s\n%s",
                ExceptionFormatter.format_exception_summary(exc),
                request.call_id,
                ExceptionFormatter.format_exception(exc),
            )
            response = Response.failure(
                request, exc, metadata=self._capture_quietly(exc)
            )
        else:
            response = Response.success(
                request, result, metadata=self._capture_quietly(result)
            )

        await self._send(request, response)

    async def _handle_not_implemented(self, request: Request) -> None:
        if self._config.not_implemented_policy is NotImplementedPolicy.LENIENT:
            self.debug(
                "Receive remote call, but not implemented: %s.%s() @%s",
                self._config.key,
                request.method,
                request.call_id,
            )
            return

        error = MethodNotImplementedError(request.method, key=self._config.key)
        self.warning("%s @%s", error.message, request.call_id)
        await self._send(request, Response.failure(request, error))

    def _capture_quietly(self, value: Any) -> Optional[Any]:
        try:
            return self._propagator.capture(value)
        except Exception as exc:
            self.warning(
                "Failed to encode metadata of %s: %s",
                type(value).__name__,
                ExceptionFormatter.format_exception_summary(exc),
            )
            return None

    async def _send(self, request: Request, response: Response) -> None:
        try:
            payload = await self._serializer.serialize(response.to_wire())
        except Exception as exc:
            if response.has_error:
                self.error(
                    "Dropping error response for %s() @%s, it cannot be serialized: %s",
                    request.method,
                    request.call_id,
                    ExceptionFormatter.format_exception_summary(exc),
                )
                return
            # The result itself is not transportable: tell the caller instead
            error = ExceptionTranslator.as_serialization_error(
                exc,
                operation="serialize_response",
                message="Failed to serialize result of {0}()".format(request.method),
                data_type=type(response.return_value).__name__,
            )
            self.error("%s @%s", error.message, request.call_id)
            await self._send(request, Response.failure(request, error))
            return

        try:
            self._transport.publish(self._config.return_event, payload)
        except Exception as exc:
            self.error(
                "Failed to publish response for %s() @%s: %s",
                request.method,
                request.call_id,
                ExceptionFormatter.format_exception_summary(exc),
            )


class ResponseDispatcher(ModernLogger):
    """
    Match incoming responses to outstanding calls.
    """

    def __init__(
        self,
        registry: CallRegistry,
        config: AsyncCallConfig,
        propagator: MetadataPropagator,
    ) -> None:
        ModernLogger.__init__(
            self,
            name="ResponseDispatcher.{0}".format(config.key),
            level=config.log_level,
            enabled=config.logging,
        )
        self._registry = registry
        self._config = config
        self._serializer = config.serializer
        self._propagator = propagator

    async def dispatch(self, payload: Any) -> None:
        transport_metadata = self._propagator.store.get_own_metadata(payload)
        try:
            response = Response.from_wire(await self._serializer.deserialize(payload))
        except Exception as exc:
            self.debug(
                "Dropping undecodable payload on %s: %s",
                self._config.return_event,
                ExceptionFormatter.format_exception_summary(exc),
            )
            return

        future = self._registry.pop(response.call_id)
        if future is None:
            # Stale, duplicate, or owned by another instance on this transport
            return

        extra = None
        if transport_metadata:
            extra = {RESPONSE_METADATA_KEY: transport_metadata}

        if response.has_error:
            error = self._rebuild_error(response)
            self._apply_quietly(error, response, extra)
            self.error(
                "%s @%s\n%s",
                error.message,
                response.call_id,
                error.remote_stack or "",
            )
            if not future.done():
                future.set_exception(error)
            return

        value = response.return_value
        self._apply_quietly(value, response, extra)
        if not future.done():
            future.set_result(value)

    def _apply_quietly(
        self,
        value: Any,
        response: Response,
        extra: Optional[Mapping[str, Any]],
    ) -> None:
        try:
            self._propagator.apply(value, response.metadata, extra)
        except Exception as exc:
            self.warning(
                "Failed to apply metadata for @%s: %s",
                response.call_id,
                ExceptionFormatter.format_exception_summary(exc),
            )

    @staticmethod
    def _rebuild_error(response: Response) -> RemoteCallError:
        error = response.error
        if isinstance(error, ErrorPayload):
            return RemoteCallError(
                message=error.message,
                remote_stack=error.stack,
                remote_type=error.name,
                method=response.method,
                call_id=response.call_id,
            )
        return RemoteCallError(
            message=str(error),
            remote_error=error,
            method=response.method,
            call_id=response.call_id,
        )
