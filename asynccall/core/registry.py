#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Outstanding-call bookkeeping.

Each outgoing call gets an identifier from ``CallIdGenerator`` and a future
registered in ``CallRegistry``. The response dispatcher pops the future when
the first matching response arrives. Calls that never get a response stay
registered for the lifetime of the registry: there is no timeout and no
sweeping, callers that need a bound wrap the call in ``asyncio.wait_for``.
"""

import asyncio
import itertools
import random
import string
from typing import Any, Dict, List, Optional

from .utils.exceptions import DuplicateCallIdError

_ALPHABET = string.digits + string.ascii_lowercase


def _to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_ALPHABET[remainder])
    return "".join(reversed(digits))


class CallIdGenerator:
    """
    Opaque call identifiers: per-instance random salt plus a counter.

    The counter makes identifiers unique within one generator; the salt keeps
    two generators sharing a transport from producing the same sequence. The
    salt comes from a non-cryptographic PRNG, identifiers are not secrets.
    """

    def __init__(self, salt_length: int = 8, rng: Optional[random.Random] = None) -> None:
        if salt_length < 1:
            raise ValueError("salt_length must be positive")
        rng = rng or random.Random()
        self.salt = "".join(rng.choice(_ALPHABET) for _ in range(salt_length))
        self._counter = itertools.count(1)

    def next_id(self) -> str:
        return "{0}-{1}".format(self.salt, _to_base36(next(self._counter)))

    __call__ = next_id


class CallRegistry:
    """
    Map of call id to the future awaiting its response.

    Only ever touched from the event loop thread, so no locking.
    """

    def __init__(self) -> None:
        self._pending: Dict[str, "asyncio.Future[Any]"] = {}

    def register(self, call_id: str, future: "asyncio.Future[Any]") -> None:
        if call_id in self._pending:
            raise DuplicateCallIdError(call_id)
        self._pending[call_id] = future

    def pop(self, call_id: Any) -> Optional["asyncio.Future[Any]"]:
        """
        Remove and return the future for ``call_id``; None if unknown.
        """
        if not isinstance(call_id, str):
            return None
        return self._pending.pop(call_id, None)

    def get(self, call_id: str) -> Optional["asyncio.Future[Any]"]:
        return self._pending.get(call_id)

    def pending_ids(self) -> List[str]:
        return list(self._pending)

    def __contains__(self, call_id: object) -> bool:
        return call_id in self._pending

    def __len__(self) -> int:
        return len(self._pending)
