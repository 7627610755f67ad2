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
"""Member catalog: discovers the class-level operations eligible for interception."""

from __future__ import annotations

import inspect

from pyrecord.kernel.exceptions import InterceptionConfigurationException

# Structural members and engine internals that the setup step itself relies on.
FORBIDDEN_MEMBERS: frozenset[str] = frozenset(
    {
        "name",
        "constructor",
        "length",
        "prototype",
        "caller",
        "arguments",
        "apply",
        "mro",
        "init",
        "inspect",
        "metadata",
        "registry",
        "query_interface",
        "query_generator",
        "refresh_attributes",
        "replace_hook_aliases",
    }
)


def collect_member_names(base: type) -> frozenset[str]:
    """Return the names of all class-level callables on *base*, own and inherited.

    A class-level callable is a ``classmethod``. Members are inspected with
    :func:`inspect.getattr_static` so no descriptor is triggered.
    """
    if not isinstance(base, type):
        raise InterceptionConfigurationException(
            f"Cannot reflect over {base!r}: expected a class",
            context={"base": repr(base)},
        )

    names: set[str] = set()
    for attr_name in dir(base):
        try:
            attr = inspect.getattr_static(base, attr_name)
        except AttributeError:
            continue
        if isinstance(attr, classmethod):
            names.add(attr_name)
    return frozenset(names)


def is_forbidden_member(name: str) -> bool:
    return name in FORBIDDEN_MEMBERS


def is_private_member(name: str) -> bool:
    return name.startswith("_")


def is_candidate(name: str) -> bool:
    """Whether *name* may be intercepted. Pure and total."""
    return not is_forbidden_member(name) and not is_private_member(name)


def candidate_operations(base: type) -> tuple[str, ...]:
    """Catalog of *base* narrowed by the member filter, in name order."""
    return tuple(sorted(name for name in collect_member_names(base) if is_candidate(name)))
