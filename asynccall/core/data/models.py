#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Wire models for calls and responses.

The dictionaries produced by ``to_wire`` use the camelCase keys of the
protocol (``callId``, ``return``) so peers written in other languages can
share a channel with Python peers.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from ..utils.exceptions import ExceptionFormatter

Metadata = Dict[str, Any]

_MISSING = object()


class MalformedMessageError(ValueError):
    """
    Incoming payload does not have the shape of a request or response.
    """


def _require_str(data: Mapping[str, Any], key: str, kind: str) -> str:
    value = data.get(key)
    if not isinstance(value, str):
        raise MalformedMessageError(
            "{0} field {1!r} must be a string, got {2}".format(
                kind, key, type(value).__name__
            )
        )
    return value


def _is_error_value(value: Any) -> bool:
    """
    Whether a response's ``error`` field marks a failure.

    Follows the truthiness peers on the wire apply: absent, null, false,
    empty string, zero and NaN all mean success. Empty objects and arrays
    still count as errors.
    """
    if value is _MISSING or value is None or value is False:
        return False
    if isinstance(value, str):
        return value != ""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value == value and value != 0
    return True


@dataclass
class Request:
    """
    One outgoing or incoming call.

    ``metadata`` is aligned with ``args`` by index and is only put on the
    wire when at least one argument carries an annotation.
    """

    method: str
    args: List[Any]
    call_id: str
    metadata: Optional[List[Optional[Any]]] = None

    def to_wire(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "method": self.method,
            "args": list(self.args),
            "callId": self.call_id,
        }
        if self.metadata is not None and any(m is not None for m in self.metadata):
            data["metadata"] = list(self.metadata)
        return data

    @classmethod
    def from_wire(cls, data: Any) -> "Request":
        if not isinstance(data, Mapping):
            raise MalformedMessageError(
                "Request must be an object, got {0}".format(type(data).__name__)
            )
        args = data.get("args", [])
        if args is None:
            args = []
        if not isinstance(args, (list, tuple)):
            raise MalformedMessageError("Request args must be a list")
        metadata = data.get("metadata")
        if metadata is not None and not isinstance(metadata, (list, tuple)):
            raise MalformedMessageError("Request metadata must be a list")
        return cls(
            method=_require_str(data, "method", "Request"),
            args=list(args),
            call_id=_require_str(data, "callId", "Request"),
            metadata=list(metadata) if metadata is not None else None,
        )


@dataclass
class ErrorPayload:
    """
    Serializable description of a failure raised by an implementation.
    """

    message: str
    stack: Optional[str] = None
    name: Optional[str] = None

    @classmethod
    def from_exception(cls, exc: BaseException) -> "ErrorPayload":
        return cls(
            message=str(exc),
            stack=ExceptionFormatter.format_exception(exc),
            name=type(exc).__name__,
        )

    def to_wire(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"message": self.message, "stack": self.stack}
        if self.name is not None:
            data["name"] = self.name
        return data

    @classmethod
    def from_wire(cls, data: Any) -> Optional["ErrorPayload"]:
        """
        Parse ``{message, stack}``; returns None for any other error value.
        """
        if not isinstance(data, Mapping) or "message" not in data:
            return None
        stack = data.get("stack")
        name = data.get("name")
        return cls(
            message=str(data["message"]),
            stack=stack if isinstance(stack, str) else None,
            name=name if isinstance(name, str) else None,
        )


@dataclass
class Response:
    """
    Result of one call.

    Exactly one of ``return_value`` / ``error`` is meaningful. ``error`` is
    normally an ``ErrorPayload``; foreign peers may send any other value,
    which is preserved untouched.
    """

    method: str
    call_id: str
    return_value: Any = None
    error: Any = None
    metadata: Optional[Any] = None
    has_error: bool = field(default=False)

    @classmethod
    def success(cls, request: Request, result: Any, metadata: Optional[Any] = None) -> "Response":
        return cls(
            method=request.method,
            call_id=request.call_id,
            return_value=result,
            metadata=metadata,
        )

    @classmethod
    def failure(cls, request: Request, error: Any, metadata: Optional[Any] = None) -> "Response":
        if isinstance(error, BaseException):
            error = ErrorPayload.from_exception(error)
        return cls(
            method=request.method,
            call_id=request.call_id,
            error=error,
            metadata=metadata,
            has_error=True,
        )

    def to_wire(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"method": self.method, "callId": self.call_id}
        if self.has_error:
            data["error"] = (
                self.error.to_wire() if isinstance(self.error, ErrorPayload) else self.error
            )
        else:
            data["return"] = self.return_value
        if self.metadata is not None:
            data["metadata"] = self.metadata
        return data

    @classmethod
    def from_wire(cls, data: Any) -> "Response":
        if not isinstance(data, Mapping):
            raise MalformedMessageError(
                "Response must be an object, got {0}".format(type(data).__name__)
            )
        error = data.get("error", _MISSING)
        has_error = _is_error_value(error)
        if has_error:
            parsed = ErrorPayload.from_wire(error)
            if parsed is not None:
                error = parsed
        method = data.get("method")
        return cls(
            method=method if isinstance(method, str) else "",
            call_id=_require_str(data, "callId", "Response"),
            return_value=data.get("return"),
            error=error if has_error else None,
            metadata=data.get("metadata"),
            has_error=has_error,
        )
