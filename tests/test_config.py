#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Tests for AsyncCallConfig and the process-wide config helpers.
"""

import pytest

from asynccall.core.config import (
    AsyncCallConfig,
    NotImplementedPolicy,
    create_config,
    get_config,
    reset_config,
)
from asynccall.core.data.backends import IdentitySerializer, JSONSerializer
from asynccall.core.utils.exceptions import ConfigurationError


def test_defaults_are_lenient_identity_and_default_key():
    config = AsyncCallConfig()

    assert config.key == "default"
    assert isinstance(config.serializer, IdentitySerializer)
    assert config.not_implemented_policy is NotImplementedPolicy.LENIENT
    assert config.logging is True
    assert config.call_event == "default-call"
    assert config.return_event == "default-return"


def test_policy_accepts_strings():
    config = AsyncCallConfig(not_implemented_policy="STRICT")

    assert config.not_implemented_policy is NotImplementedPolicy.STRICT


def test_invalid_values_raise_configuration_error():
    with pytest.raises(ConfigurationError):
        AsyncCallConfig(key="")
    with pytest.raises(ConfigurationError):
        AsyncCallConfig(serializer=object())
    with pytest.raises(ConfigurationError):
        AsyncCallConfig(not_implemented_policy="sometimes")
    with pytest.raises(ConfigurationError) as exc_info:
        AsyncCallConfig(log_level="loud")
    assert exc_info.value.option == "log_level"


def test_with_overrides_rejects_unknown_options():
    config = AsyncCallConfig()

    updated = config.with_overrides(key="math", serializer=JSONSerializer())
    assert updated.key == "math"
    assert config.key == "default"

    with pytest.raises(ConfigurationError) as exc_info:
        config.with_overrides(timeout=3)
    assert exc_info.value.option == "timeout"


def test_from_env_reads_prefixed_variables():
    config = AsyncCallConfig.from_env(
        {
            "ASYNCCALL_KEY": "worker",
            "ASYNCCALL_NOT_IMPLEMENTED_POLICY": "strict",
            "ASYNCCALL_LOGGING": "off",
            "ASYNCCALL_LOG_LEVEL": "DEBUG",
        }
    )

    assert config.key == "worker"
    assert config.not_implemented_policy is NotImplementedPolicy.STRICT
    assert config.logging is False
    assert config.log_level == "debug"


def test_from_env_overrides_win_and_bad_booleans_fail():
    config = AsyncCallConfig.from_env({"ASYNCCALL_KEY": "worker"}, key="explicit")
    assert config.key == "explicit"

    with pytest.raises(ConfigurationError):
        AsyncCallConfig.from_env({"ASYNCCALL_LOGGING": "maybe"})


def test_global_config_is_cached_until_reset(monkeypatch):
    reset_config()
    monkeypatch.setenv("ASYNCCALL_KEY", "from-env")
    try:
        first = get_config()
        assert first.key == "from-env"
        assert get_config() is first
        assert create_config(key="other").key == "other"

        monkeypatch.setenv("ASYNCCALL_KEY", "changed")
        reset_config()
        assert get_config().key == "changed"
    finally:
        monkeypatch.delenv("ASYNCCALL_KEY")
        reset_config()
