"""
conductor_harness.orchestration.middleware - Caller Map Middleware
====================================================================

Middleware reshapes the caller map handed to scenario closures, e.g. to keep
older scenario files working after the map layout changed.

Contract:
    A middleware is a plain function ``Mapping[str, Any] -> Mapping[str, Any]``.
    The runner always starts from the nested layout

        {conductor_name: {instance_name: Caller}}

    and ``compose(a, b, c)`` applies a, then b, then c. Every middleware
    must return a new mapping and leave its input untouched.

Usage:
    >>> middleware = compose(flatten_conductors, namespace_instances("app"))
    >>> middleware({"conductor": {"alice": caller}})
    {'alice': {'app': caller}}
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from conductor_harness.core.exceptions import DuplicateInstanceError

CallerMap = Mapping[str, Any]
Middleware = Callable[[CallerMap], CallerMap]


def identity(callers: CallerMap) -> CallerMap:
    """Leave the nested ``{conductor: {instance: Caller}}`` layout as is."""
    return dict(callers)


def compose(*middlewares: Middleware) -> Middleware:
    """Chain middlewares left-to-right. ``compose()`` is ``identity``."""
    if not middlewares:
        return identity

    def composed(callers: CallerMap) -> CallerMap:
        for middleware in middlewares:
            callers = middleware(callers)
        return callers

    return composed


def flatten_conductors(callers: CallerMap) -> CallerMap:
    """``{conductor: {instance: Caller}}`` → ``{instance: Caller}``.

    Raises:
        DuplicateInstanceError: Two conductors host an instance with the
            same name.
    """
    flat: dict[str, Any] = {}
    for conductor_name, instances in callers.items():
        for name, caller in instances.items():
            if name in flat:
                raise DuplicateInstanceError(name, details={"conductor": conductor_name})
            flat[name] = caller
    return flat


backward_compatibility_middleware = flatten_conductors


def namespace_instances(namespace: str = "app") -> Middleware:
    """Wrap each entry of a flat map: ``{alice: Caller}`` → ``{alice: {namespace: Caller}}``."""

    def middleware(callers: CallerMap) -> CallerMap:
        return {name: {namespace: caller} for name, caller in callers.items()}

    return middleware
