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
"""AOP weaver: installs the guard and alias rewrite stages onto a record base."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from pyrecord.aop.catalog import candidate_operations
from pyrecord.aop.registry import INSTALLATION_MARKER, InterceptionRegistry, interception_of
from pyrecord.aop.stages import AliasRewriteStage, GuardStage, InterceptionStage
from pyrecord.aop.types import AliasResolver, AspectOrder, OperationDescriptor
from pyrecord.kernel.exceptions import InterceptionConfigurationException

logger = logging.getLogger(__name__)


def build_stages(resolver: AliasResolver, order: AspectOrder) -> list[InterceptionStage]:
    """Return the stages innermost first.

    The last stage wraps all the others, so it is the first to run at call time.
    """
    guard = GuardStage()
    rewrite = AliasRewriteStage(resolver)
    if order is AspectOrder.REWRITE_THEN_GUARD:
        return [guard, rewrite]
    return [rewrite, guard]


def compose(descriptor: OperationDescriptor, stages: Iterable[InterceptionStage]) -> Callable[..., Any]:
    """Apply every stage that accepts *descriptor*, innermost first."""
    fn = descriptor.original
    for stage in stages:
        if stage.applies_to(descriptor):
            fn = stage.apply(descriptor, fn)
    return fn


def install_interception(
    target: type,
    base: type,
    alias_map: Mapping[str, int],
    resolver: AliasResolver,
    *,
    order: AspectOrder = AspectOrder.REWRITE_THEN_GUARD,
    instance_handled: Iterable[str] = (),
    strict: bool = True,
) -> InterceptionRegistry:
    """Weave guard and alias rewrite onto *target* for every candidate of *base*.

    *target* must be a subclass of *base* (or *base* itself). Each candidate
    is replaced on *target* exactly once; a second installation on the same
    class is refused.

    Args:
        target: Class receiving the woven ``classmethod`` wrappers.
        base: Engine class whose class-level operations are enumerated.
        alias_map: Operation name -> positional index of its options argument.
        resolver: ``resolver(options_or_None, record_class) -> options``.
        order: Call-time order of the two aspects.
        instance_handled: Alias-map names rewritten by hand on the instance
            side and therefore skipped here.
        strict: Raise on alias-map names that match no operation; otherwise
            log a warning and skip them.
    """
    if interception_of(target) is not None:
        raise InterceptionConfigurationException(
            f"Interception is already installed on {target.__name__}",
            context={"target": target.__name__},
        )
    if not (isinstance(target, type) and issubclass(target, base)):
        raise InterceptionConfigurationException(
            f"{target!r} must be a subclass of {base.__name__}",
            context={"target": repr(target), "base": base.__name__},
        )

    candidates = candidate_operations(base)
    handled = frozenset(instance_handled)
    unknown = sorted(set(alias_map) - set(candidates) - handled)
    if unknown:
        if strict:
            raise InterceptionConfigurationException(
                f"Alias map names operations missing from {base.__name__}: {', '.join(unknown)}",
                context={"base": base.__name__, "unknown": unknown},
            )
        logger.warning("Ignoring alias map entries with no matching operation on %s: %s", base.__name__, unknown)

    descriptors: dict[str, OperationDescriptor] = {}
    for name in candidates:
        member = inspect.getattr_static(target, name)
        if not isinstance(member, classmethod):
            raise InterceptionConfigurationException(
                f"{target.__name__}.{name} shadows a class-level operation of {base.__name__}",
                context={"target": target.__name__, "member": name},
            )
        descriptors[name] = OperationDescriptor.describe(name, member.__func__, alias_map.get(name))

    stages = build_stages(resolver, order)
    for name, descriptor in descriptors.items():
        setattr(target, name, classmethod(compose(descriptor, stages)))

    registry = InterceptionRegistry(target, descriptors, order, instance_handled=handled)
    setattr(target, INSTALLATION_MARKER, registry)
    logger.debug("Installed interception on %s: %r", target.__name__, registry)
    return registry
