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
"""InterceptionRegistry: the immutable record of what was woven onto a record base."""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

from pyrecord.aop.types import AspectOrder, OperationDescriptor

INSTALLATION_MARKER = "__pyrecord_interception__"


class InterceptionRegistry:
    """Read-only view of one installation.

    Usage::

        registry = interception_of(Model)
        registry.guarded_names()        # every candidate operation
        registry.is_rewritten("find")   # True
    """

    def __init__(
        self,
        target: type,
        descriptors: Mapping[str, OperationDescriptor],
        order: AspectOrder,
        instance_handled: frozenset[str] = frozenset(),
    ) -> None:
        self._target = target
        self._descriptors = MappingProxyType(dict(descriptors))
        self._order = order
        self._instance_handled = instance_handled

    @property
    def target(self) -> type:
        return self._target

    @property
    def order(self) -> AspectOrder:
        return self._order

    @property
    def descriptors(self) -> Mapping[str, OperationDescriptor]:
        return self._descriptors

    @property
    def instance_handled(self) -> frozenset[str]:
        """Alias-map names rewritten explicitly at instance level (e.g. ``reload``)."""
        return self._instance_handled

    def descriptor(self, name: str) -> OperationDescriptor | None:
        return self._descriptors.get(name)

    def guarded_names(self) -> frozenset[str]:
        return frozenset(self._descriptors)

    def rewritten_names(self) -> frozenset[str]:
        return frozenset(name for name, d in self._descriptors.items() if d.rewrites_options)

    def is_guarded(self, name: str) -> bool:
        return name in self._descriptors

    def is_rewritten(self, name: str) -> bool:
        descriptor = self._descriptors.get(name)
        return descriptor is not None and descriptor.rewrites_options

    def __repr__(self) -> str:
        return (
            f"InterceptionRegistry(target={self._target.__name__}, guarded={len(self._descriptors)}, "
            f"rewritten={len(self.rewritten_names())}, order={self._order.value})"
        )


def interception_of(target: type) -> InterceptionRegistry | None:
    """Return the registry installed on *target* itself, if any."""
    return target.__dict__.get(INSTALLATION_MARKER)
