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
"""Interception stages: the initialization guard and the alias rewrite aspect.

Each stage turns an ``(cls, *args, **kwargs)`` function into another one
with the same calling convention. Wrappers are synchronous and hand back
whatever the wrapped function returns, so a coroutine from an ``async``
engine operation reaches the caller untouched and stage errors surface at
call time.
"""

from __future__ import annotations

import functools
import inspect
from collections.abc import Callable
from typing import Any, Protocol

from pyrecord.aop.types import AliasResolver, Invocation, OperationDescriptor, Readiness, readiness_of
from pyrecord.kernel.exceptions import ModelNotInitializedException


class InterceptionStage(Protocol):
    """A named transformation applied to one operation."""

    name: str

    def applies_to(self, descriptor: OperationDescriptor) -> bool: ...

    def apply(self, descriptor: OperationDescriptor, fn: Callable[..., Any]) -> Callable[..., Any]: ...


def require_ready(cls: type, detail: str, member: str | None = None) -> None:
    """Raise :class:`ModelNotInitializedException` unless *cls* is READY."""
    if readiness_of(cls) is not Readiness.READY:
        raise ModelNotInitializedException(cls, detail, member=member)


def _finish(wrapper: Callable[..., Any], descriptor: OperationDescriptor) -> Callable[..., Any]:
    if descriptor.is_coroutine:
        inspect.markcoroutinefunction(wrapper)
    return wrapper


class GuardStage:
    """Refuses the call while the invoking class has not completed ``init()``."""

    name = "guard"

    def applies_to(self, descriptor: OperationDescriptor) -> bool:
        return True

    def apply(self, descriptor: OperationDescriptor, fn: Callable[..., Any]) -> Callable[..., Any]:
        member = descriptor.name
        detail = f'Member "{member}" cannot be called.'

        @functools.wraps(fn)
        def guarded(cls: type, *args: Any, **kwargs: Any) -> Any:
            require_ready(cls, detail, member=member)
            return fn(cls, *args, **kwargs)

        return _finish(guarded, descriptor)


class AliasRewriteStage:
    """Passes the options argument through *resolver* before delegating."""

    name = "alias-rewrite"

    def __init__(self, resolver: AliasResolver) -> None:
        self._resolver = resolver

    def applies_to(self, descriptor: OperationDescriptor) -> bool:
        return descriptor.rewrites_options

    def rewrite(self, descriptor: OperationDescriptor, invocation: Invocation) -> Invocation:
        """Return a copy of *invocation* with the options argument resolved."""
        index = descriptor.option_index
        if index is None:
            return invocation

        args = list(invocation.args)
        kwargs = dict(invocation.kwargs)
        if len(args) > index:
            args[index] = self._resolver(args[index], invocation.target)
        elif descriptor.option_name is not None:
            kwargs[descriptor.option_name] = self._resolver(kwargs.get(descriptor.option_name), invocation.target)
        else:
            args.extend([None] * (index - len(args)))
            args.append(self._resolver(None, invocation.target))
        return Invocation(target=invocation.target, operation=invocation.operation, args=tuple(args), kwargs=kwargs)

    def apply(self, descriptor: OperationDescriptor, fn: Callable[..., Any]) -> Callable[..., Any]:
        @functools.wraps(fn)
        def rewritten(cls: type, *args: Any, **kwargs: Any) -> Any:
            invocation = self.rewrite(descriptor, Invocation(cls, descriptor.name, args, kwargs))
            return fn(cls, *invocation.args, **invocation.kwargs)

        return _finish(rewritten, descriptor)
