#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Exception hierarchy for asynccall.

Every error raised by the library derives from ``AsyncCallError`` so callers
can catch library failures with a single ``except`` clause while still being
able to branch on the concrete failure type.

Hierarchy:
    AsyncCallError
    ├── ConfigurationError
    ├── SerializationError
    ├── InvalidCallTargetError
    ├── MethodNotImplementedError
    ├── RemoteCallError
    ├── DuplicateCallIdError
    └── TransportError
"""

import traceback
from typing import Any, Dict, List, Optional

__all__ = [
    "AsyncCallError",
    "ConfigurationError",
    "SerializationError",
    "InvalidCallTargetError",
    "MethodNotImplementedError",
    "RemoteCallError",
    "DuplicateCallIdError",
    "TransportError",
    "ExceptionFormatter",
    "ExceptionTranslator",
]


class AsyncCallError(Exception):
    """
    Base class for all asynccall errors.

    Attributes:
        message: Human readable description
        cause: Underlying exception, if any
        details: Structured context for logging and debugging
    """

    def __init__(
        self,
        message: str,
        cause: Optional[BaseException] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.details: Dict[str, Any] = dict(details or {})

    def to_dict(self) -> Dict[str, Any]:
        """
        Render the error as a plain dictionary.
        """
        data: Dict[str, Any] = {
            "type": self.__class__.__name__,
            "message": self.message,
        }
        if self.details:
            data["details"] = dict(self.details)
        if self.cause is not None:
            data["cause"] = "{0}: {1}".format(type(self.cause).__name__, self.cause)
        return data

    def __str__(self) -> str:
        return self.message


class ConfigurationError(AsyncCallError):
    """Invalid configuration value."""

    def __init__(
        self,
        message: str,
        option: Optional[str] = None,
        value: Any = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(
            message,
            cause=cause,
            details={"option": option, "value": repr(value)},
        )
        self.option = option
        self.value = value


class SerializationError(AsyncCallError):
    """
    A serializer failed to convert a value to or from its payload form.
    """

    def __init__(
        self,
        operation: str,
        message: Optional[str] = None,
        data_type: Optional[str] = None,
        serialization_format: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(
            message or "Serialization failed during {0}".format(operation),
            cause=cause,
            details={
                "operation": operation,
                "data_type": data_type,
                "serialization_format": serialization_format,
            },
        )
        self.operation = operation
        self.data_type = data_type
        self.serialization_format = serialization_format


class InvalidCallTargetError(AsyncCallError, TypeError):
    """
    A remote method was addressed with something other than a string.
    """

    def __init__(self, target: Any) -> None:
        super().__init__(
            "Only string can be keys, got {0}".format(type(target).__name__),
            details={"target": repr(target)},
        )
        self.target = target


class MethodNotImplementedError(AsyncCallError):
    """
    The receiving side has no implementation for the requested method.
    """

    def __init__(self, method: str, key: Optional[str] = None) -> None:
        super().__init__(
            "Remote-call: {0}() not implemented!".format(method),
            details={"method": method, "key": key},
        )
        self.method = method
        self.key = key


class RemoteCallError(AsyncCallError):
    """
    Failure raised on the other side, reconstructed from an error response.

    Attributes:
        remote_stack: Traceback text produced by the remote side
        remote_type: Exception type name reported by the remote side
        remote_error: Raw error value when the remote did not send a
            ``{message, stack}`` object
        method: Remote method name
        call_id: Identifier of the failed call
    """

    def __init__(
        self,
        message: str,
        remote_stack: Optional[str] = None,
        remote_type: Optional[str] = None,
        remote_error: Any = None,
        method: Optional[str] = None,
        call_id: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            details={
                "method": method,
                "call_id": call_id,
                "remote_type": remote_type,
            },
        )
        self.remote_stack = remote_stack
        self.remote_type = remote_type
        self.remote_error = remote_error
        self.method = method
        self.call_id = call_id


class DuplicateCallIdError(AsyncCallError):
    """
    A call identifier is already registered for an outstanding call.
    """

    def __init__(self, call_id: str) -> None:
        super().__init__(
            "Call id {0!r} is already outstanding".format(call_id),
            details={"call_id": call_id},
        )
        self.call_id = call_id


class TransportError(AsyncCallError):
    """
    The transport collaborator failed to accept a message.
    """

    def __init__(
        self,
        message: str,
        event: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message, cause=cause, details={"event": event})
        self.event = event


class ExceptionFormatter:
    """
    Text renderings of exceptions for logs and error responses.
    """

    @staticmethod
    def format_exception(exc: BaseException) -> str:
        """
        Full traceback of ``exc`` as a single string.
        """
        return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))

    @staticmethod
    def format_exception_chain(exc: BaseException) -> List[str]:
        """
        One ``Type: message`` line per exception in the cause/context chain.
        """
        chain: List[str] = []
        seen = set()
        current: Optional[BaseException] = exc
        while current is not None and id(current) not in seen:
            seen.add(id(current))
            chain.append("{0}: {1}".format(type(current).__name__, current))
            current = current.__cause__ or current.__context__
        return chain

    @staticmethod
    def format_exception_summary(exc: BaseException) -> str:
        """
        Compact ``Type: message`` summary.
        """
        message = str(exc)
        if not message:
            return type(exc).__name__
        return "{0}: {1}".format(type(exc).__name__, message)


class ExceptionTranslator:
    """
    Translate arbitrary exceptions into the asynccall hierarchy.

    Exceptions that already belong to the expected family are returned
    unchanged so translation can be applied at every boundary safely.
    """

    @staticmethod
    def as_serialization_error(
        exc: BaseException,
        operation: str,
        message: Optional[str] = None,
        data_type: Optional[str] = None,
        serialization_format: Optional[str] = None,
    ) -> SerializationError:
        if isinstance(exc, SerializationError):
            return exc
        return SerializationError(
            operation=operation,
            message="{0}: {1}".format(
                message or "Serialization failed",
                ExceptionFormatter.format_exception_summary(exc),
            ),
            data_type=data_type,
            serialization_format=serialization_format,
            cause=exc,
        )

    @staticmethod
    def as_transport_error(
        exc: BaseException,
        event: Optional[str] = None,
        message: Optional[str] = None,
    ) -> TransportError:
        if isinstance(exc, TransportError):
            return exc
        return TransportError(
            message="{0}: {1}".format(
                message or "Transport failed",
                ExceptionFormatter.format_exception_summary(exc),
            ),
            event=event,
            cause=exc,
        )
