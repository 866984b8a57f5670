#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Typed stubs for the remote side.

``AsyncCall.remote`` accepts any attribute name. When the other side's
surface is known, declare it once and get signature checking, keyword
arguments and editor completion:

    >>> class MathStub(RemoteStub):
    ...     @remote
    ...     async def add(self, a: int, b: int = 0) -> int:
    ...         ...
    ...
    ...     @remote(name="mul")
    ...     async def multiply(self, a: int, b: int) -> int:
    ...         ...
    >>> math = MathStub(call)
    >>> await math.add(2, b=3)
    5

Arguments are bound against the declared signature (defaults applied) and
sent positionally; the stub body never runs.
"""

import functools
import inspect
from typing import Any, Callable, List, Optional, Type, TypeVar, Union, cast

from .core.call import AsyncCall

T = TypeVar("T", bound=Callable[..., Any])

REMOTE_NAME_ATTRIBUTE = "__asynccall_remote_name__"

_UNSUPPORTED_KINDS = (inspect.Parameter.KEYWORD_ONLY, inspect.Parameter.VAR_KEYWORD)


def _check_signature(func: Callable[..., Any]) -> inspect.Signature:
    signature = inspect.signature(func)
    for parameter in signature.parameters.values():
        if parameter.kind in _UNSUPPORTED_KINDS:
            raise TypeError(
                "Remote stub {0}() cannot declare keyword-only parameter {1!r}: "
                "calls are sent positionally".format(func.__name__, parameter.name)
            )
    return signature


def _positional_arguments(bound: inspect.BoundArguments) -> List[Any]:
    values: List[Any] = []
    for name, parameter in bound.signature.parameters.items():
        if name not in bound.arguments:
            continue
        if parameter.kind is inspect.Parameter.VAR_POSITIONAL:
            values.extend(bound.arguments[name])
        else:
            values.append(bound.arguments[name])
    return values


class RemoteStubMethod:
    """
    Descriptor turning a declared stub method into a remote invocation.
    """

    def __init__(self, func: Callable[..., Any], remote_name: str) -> None:
        self.func = func
        self.remote_name = remote_name
        self.signature = _check_signature(func)
        functools.update_wrapper(self, func)

    def bind_arguments(self, instance: Any, *args: Any, **kwargs: Any) -> List[Any]:
        bound = self.signature.bind(instance, *args, **kwargs)
        bound.apply_defaults()
        # Drop ``self``
        return _positional_arguments(bound)[1:]

    def __get__(self, instance: Any, owner: Optional[type] = None) -> Any:
        if instance is None:
            return self

        @functools.wraps(self.func)
        async def invoke_remote(*args: Any, **kwargs: Any) -> Any:
            arguments = self.bind_arguments(instance, *args, **kwargs)
            return await instance.asynccall.invoke(self.remote_name, *arguments)

        return invoke_remote

    def __repr__(self) -> str:
        return "<RemoteStubMethod {0!r}>".format(self.remote_name)


def remote(
    func: Optional[Callable[..., Any]] = None,
    *,
    name: Optional[str] = None,
) -> Union[Callable[[T], T], T]:
    """
    Mark a ``RemoteStub`` method as remote.

    Supports both ``@remote`` and ``@remote(name="wire_name")``.
    """
    if name is not None and not isinstance(name, str):
        raise TypeError("Remote method name must be a string, got {0!r}".format(name))

    def decorator(target: T) -> T:
        _check_signature(target)
        setattr(target, REMOTE_NAME_ATTRIBUTE, name or target.__name__)
        return target

    if func is not None and callable(func):
        return decorator(cast(T, func))
    return decorator


class RemoteStub:
    """
    Base class for typed views of the other side.

    Methods marked with ``@remote`` are replaced by ``RemoteStubMethod``
    descriptors when the subclass is created.
    """

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        for attribute, value in list(vars(cls).items()):
            if isinstance(value, RemoteStubMethod):
                continue
            remote_name = getattr(value, REMOTE_NAME_ATTRIBUTE, None)
            if remote_name is not None:
                setattr(cls, attribute, RemoteStubMethod(value, remote_name))

    def __init__(self, asynccall: AsyncCall) -> None:
        self.asynccall = asynccall

    @classmethod
    def remote_methods(cls) -> List[str]:
        """Wire names of every remote method declared on this stub."""
        names = []
        for attribute in dir(cls):
            value = inspect.getattr_static(cls, attribute)
            if isinstance(value, RemoteStubMethod):
                names.append(value.remote_name)
        return sorted(names)

    def __repr__(self) -> str:
        return "<{0} key={1!r}>".format(type(self).__name__, self.asynccall.key)


def remote_interface(interface: type) -> Type[RemoteStub]:
    """
    Build a stub class from an interface's public coroutine methods.

    The same interface class can back the implementation on one side and the
    stub on the other:

        >>> class Greeter:
        ...     async def greet(self, name):
        ...         return "hello " + name
        >>> AsyncCall(Greeter(), key="greet")          # side A
        >>> GreeterStub = remote_interface(Greeter)    # side B
        >>> await GreeterStub(call).greet("bob")
    """
    namespace = {"__doc__": interface.__doc__, "__module__": interface.__module__}
    for attribute in dir(interface):
        if attribute.startswith("_"):
            continue
        value = inspect.getattr_static(interface, attribute)
        if not inspect.iscoroutinefunction(value):
            continue
        remote_name = getattr(value, REMOTE_NAME_ATTRIBUTE, attribute)
        namespace[attribute] = RemoteStubMethod(value, remote_name)

    stub_class = type("{0}Stub".format(interface.__name__), (RemoteStub,), namespace)
    return cast(Type[RemoteStub], stub_class)
