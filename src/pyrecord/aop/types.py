# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""AOP core types: operation descriptors, readiness state and aspect order."""

from __future__ import annotations

import enum
import inspect
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

_READINESS_ATTR = "__pyrecord_readiness__"

# Resolver contract: (options or None, record class or record instance) -> options
AliasResolver = Callable[[Any, Any], Any]


class Readiness(enum.Enum):
    """Per-class setup state. Moves from UNREADY to READY once, never back."""

    UNREADY = "unready"
    READY = "ready"


def readiness_of(cls: type) -> Readiness:
    """Return the readiness of *cls* itself.

    Only the class's own namespace is consulted: a subclass of a ready
    record type stays UNREADY until its own ``init()`` runs.
    """
    return cls.__dict__.get(_READINESS_ATTR, Readiness.UNREADY)


def mark_ready(cls: type) -> None:
    """Flip *cls* to READY. Repeated calls leave it READY."""
    setattr(cls, _READINESS_ATTR, Readiness.READY)


class ReadinessFlag:
    """Read-only class attribute reporting ``readiness_of(owner) is READY``.

    Usage::

        class Model(ActiveModel):
            is_initialized = ReadinessFlag()

        Order.is_initialized  # False until Order.init(...)
    """

    def __get__(self, instance: Any, owner: type) -> bool:
        return readiness_of(owner) is Readiness.READY


class AspectOrder(enum.Enum):
    """Call-time order of the two aspects on a rewritten operation.

    ``REWRITE_THEN_GUARD`` runs the alias resolver before the readiness
    check, so a resolver error can pre-empt ``ModelNotInitializedException``.
    ``GUARD_THEN_REWRITE`` fails fast without touching the resolver.
    """

    REWRITE_THEN_GUARD = "rewrite-then-guard"
    GUARD_THEN_REWRITE = "guard-then-rewrite"


@dataclass(frozen=True)
class OperationDescriptor:
    """One interceptable class-level operation.

    Attributes:
        name: Attribute name on the record base.
        original: The undecorated function (first parameter is the class).
        option_index: Positional index of the options argument, or ``None``
            when the operation is guarded only.
        option_name: Keyword name of that argument when it has one.
        is_coroutine: Whether *original* is an ``async def`` function.
    """

    name: str
    original: Callable[..., Any]
    option_index: int | None = None
    option_name: str | None = None
    is_coroutine: bool = field(default=False)

    @property
    def rewrites_options(self) -> bool:
        return self.option_index is not None

    @classmethod
    def describe(cls, name: str, original: Callable[..., Any], option_index: int | None = None) -> OperationDescriptor:
        """Build a descriptor, deriving the option keyword from the signature."""
        return cls(
            name=name,
            original=original,
            option_index=option_index,
            option_name=_option_name(original, option_index),
            is_coroutine=inspect.iscoroutinefunction(original),
        )


def _option_name(fn: Callable[..., Any], option_index: int | None) -> str | None:
    if option_index is None:
        return None
    try:
        params = list(inspect.signature(fn).parameters.values())[1:]
    except (TypeError, ValueError):
        return None
    for position, param in enumerate(params):
        if param.kind is inspect.Parameter.VAR_POSITIONAL:
            return None
        if position == option_index:
            return param.name if param.kind is inspect.Parameter.POSITIONAL_OR_KEYWORD else None
    return None


@dataclass
class Invocation:
    """A single call passing through an aspect.

    Attributes:
        target: The record class the call was made through.
        operation: Name of the operation being called.
        args: Positional arguments after the class.
        kwargs: Keyword arguments.
    """

    target: type
    operation: str
    args: tuple
    kwargs: dict[str, Any]
