#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Tests for the logging mixin and the exception helpers.
"""

import logging

import pytest

from asynccall.core.utils.exceptions import (
    AsyncCallError,
    ExceptionFormatter,
    ExceptionTranslator,
    InvalidCallTargetError,
    MethodNotImplementedError,
    SerializationError,
    TransportError,
)
from asynccall.core.utils.logger import ModernLogger, resolve_log_level


class Component(ModernLogger):
    def __init__(self, enabled=True):
        ModernLogger.__init__(self, name="tests.Component", level="debug", enabled=enabled)


def test_logger_names_live_under_package_namespace():
    assert Component().logger.name == "asynccall.tests.Component"


def test_logger_emits_records(caplog):
    component = Component()

    with caplog.at_level(logging.DEBUG, logger="asynccall"):
        component.info("hello %s", "world")

    assert "hello world" in caplog.text


def test_disabled_logger_emits_nothing(caplog):
    component = Component(enabled=False)

    with caplog.at_level(logging.DEBUG, logger="asynccall"):
        component.error("should not appear")

    assert "should not appear" not in caplog.text


def test_resolve_log_level():
    assert resolve_log_level("WARNING") == logging.WARNING
    assert resolve_log_level(logging.DEBUG) == logging.DEBUG
    with pytest.raises(ValueError):
        resolve_log_level("verbose")


def test_invalid_call_target_is_also_a_type_error():
    error = InvalidCallTargetError(42)

    assert isinstance(error, TypeError)
    assert isinstance(error, AsyncCallError)
    assert str(error) == "Only string can be keys, got int"


def test_method_not_implemented_message():
    error = MethodNotImplementedError("multiply", key="math")

    assert str(error) == "Remote-call: multiply() not implemented!"
    assert error.to_dict()["details"]["key"] == "math"


def test_translator_wraps_foreign_errors_and_keeps_own():
    original = SerializationError(operation="serialize", message="bad")
    assert ExceptionTranslator.as_serialization_error(original, operation="x") is original

    wrapped = ExceptionTranslator.as_transport_error(
        ConnectionError("link down"), event="k-call", message="Publish failed"
    )
    assert isinstance(wrapped, TransportError)
    assert wrapped.event == "k-call"
    assert wrapped.message == "Publish failed: ConnectionError: link down"
    assert isinstance(wrapped.cause, ConnectionError)


def test_formatter_chain_and_summary():
    try:
        try:
            raise KeyError("inner")
        except KeyError as inner:
            raise RuntimeError("outer") from inner
    except RuntimeError as exc:
        chain = ExceptionFormatter.format_exception_chain(exc)
        text = ExceptionFormatter.format_exception(exc)

    assert chain == ["RuntimeError: outer", "KeyError: 'inner'"]
    assert "Traceback" in text
    assert ExceptionFormatter.format_exception_summary(ValueError()) == "ValueError"
