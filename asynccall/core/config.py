#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Configuration for ``AsyncCall`` instances.

Both sides of a channel must agree on ``key`` and on the serializer; every
other option is local to the side that sets it.

Environment variables understood by ``AsyncCallConfig.from_env``:
    ASYNCCALL_KEY                     channel namespace
    ASYNCCALL_NOT_IMPLEMENTED_POLICY  "lenient" or "strict"
    ASYNCCALL_LOGGING                 "1"/"true"/"yes"/"on" or "0"/"false"/"no"/"off"
    ASYNCCALL_LOG_LEVEL               debug, info, warning, error
"""

import os
import threading
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Mapping, Optional, Union

from .data.backends import IdentitySerializer, Serializer
from .metadata import MetadataCodec, MetadataStore
from .utils.exceptions import ConfigurationError
from .utils.logger import resolve_log_level

ENV_PREFIX = "ASYNCCALL_"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


class NotImplementedPolicy(str, Enum):
    """
    What the receiving side does with a call for a method it lacks.

    LENIENT drops the call without answering, so the caller waits forever.
    STRICT answers with an error response naming the method.
    """

    LENIENT = "lenient"
    STRICT = "strict"

    @classmethod
    def from_value(cls, value: Union["NotImplementedPolicy", str]) -> "NotImplementedPolicy":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            raise ConfigurationError(
                "Unknown not-implemented policy: {0!r}".format(value),
                option="not_implemented_policy",
                value=value,
                cause=exc,
            ) from exc


def _default_transport_factory() -> Any:
    from ..transports.local import default_hub

    return default_hub().endpoint()


def _parse_bool(name: str, raw: str) -> bool:
    lowered = raw.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigurationError(
        "Invalid boolean for {0}: {1!r}".format(name, raw),
        option=name,
        value=raw,
    )


@dataclass(frozen=True)
class AsyncCallConfig:
    """
    Options of one ``AsyncCall`` instance.

    Attributes:
        key: Namespace of the two channels (``{key}-call``, ``{key}-return``)
        serializer: Payload serializer shared with the other side
        not_implemented_policy: Handling of calls to missing methods
        logging: Log every incoming call and remote failure
        log_level: Level of this instance's logger
        transport_factory: Zero-argument callable building the transport;
            defaults to an endpoint on the process-wide in-memory hub
        metadata_codec: Wire codec for annotations (None: passthrough)
        metadata_store: Annotation store (None: process-wide store)
    """

    key: str = "default"
    serializer: Serializer = field(default_factory=IdentitySerializer)
    not_implemented_policy: NotImplementedPolicy = NotImplementedPolicy.LENIENT
    logging: bool = True
    log_level: str = "info"
    transport_factory: Callable[[], Any] = _default_transport_factory
    metadata_codec: Optional[MetadataCodec] = None
    metadata_store: Optional[MetadataStore] = None

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "not_implemented_policy",
            NotImplementedPolicy.from_value(self.not_implemented_policy),
        )
        self.validate()

    def validate(self) -> None:
        if not isinstance(self.key, str) or not self.key:
            raise ConfigurationError(
                "key must be a non-empty string", option="key", value=self.key
            )
        if not isinstance(self.serializer, Serializer):
            raise ConfigurationError(
                "serializer must provide async serialize/deserialize",
                option="serializer",
                value=self.serializer,
            )
        if not callable(self.transport_factory):
            raise ConfigurationError(
                "transport_factory must be callable",
                option="transport_factory",
                value=self.transport_factory,
            )
        try:
            resolve_log_level(self.log_level)
        except ValueError as exc:
            raise ConfigurationError(
                str(exc), option="log_level", value=self.log_level, cause=exc
            ) from exc

    @property
    def call_event(self) -> str:
        return "{0}-call".format(self.key)

    @property
    def return_event(self) -> str:
        return "{0}-return".format(self.key)

    def with_overrides(self, **overrides: Any) -> "AsyncCallConfig":
        unknown = set(overrides) - set(self.__dataclass_fields__)
        if unknown:
            raise ConfigurationError(
                "Unknown configuration option(s): {0}".format(", ".join(sorted(unknown))),
                option=sorted(unknown)[0],
            )
        return replace(self, **overrides)

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        **overrides: Any,
    ) -> "AsyncCallConfig":
        """
        Build a config from ``ASYNCCALL_*`` variables; keyword overrides win.
        """
        env = os.environ if environ is None else environ
        values: dict = {}

        key = env.get(ENV_PREFIX + "KEY")
        if key:
            values["key"] = key
        policy = env.get(ENV_PREFIX + "NOT_IMPLEMENTED_POLICY")
        if policy:
            values["not_implemented_policy"] = NotImplementedPolicy.from_value(policy)
        logging_flag = env.get(ENV_PREFIX + "LOGGING")
        if logging_flag:
            values["logging"] = _parse_bool(ENV_PREFIX + "LOGGING", logging_flag)
        log_level = env.get(ENV_PREFIX + "LOG_LEVEL")
        if log_level:
            values["log_level"] = log_level.strip().lower()

        values.update(overrides)
        return cls(**values)


_global_config: Optional[AsyncCallConfig] = None
_global_config_lock = threading.Lock()


def get_config() -> AsyncCallConfig:
    """
    Process-wide default config, loaded from the environment on first use.
    """
    global _global_config

    if _global_config is None:
        with _global_config_lock:
            if _global_config is None:
                _global_config = AsyncCallConfig.from_env()
    return _global_config


def create_config(**options: Any) -> AsyncCallConfig:
    """
    Derive a config from the process-wide default with ``options`` applied.
    """
    return get_config().with_overrides(**options)


def reset_config() -> None:
    """
    Forget the cached process-wide config.
    """
    global _global_config

    with _global_config_lock:
        _global_config = None
