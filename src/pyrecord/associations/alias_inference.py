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
"""Alias inference: fills in the relationship name of ``include`` entries.

Callers may include an associated record class without naming the
relationship::

    await Order.find_all({"include": [Customer]})

``infer_alias`` rewrites that into ``{"include": [{"model": Customer,
"as": "customer"}]}`` by looking up the single relationship of ``Order``
that targets ``Customer``.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import Mapper

from pyrecord.kernel.exceptions import AliasInferenceException


def infer_alias(options: Mapping[str, Any] | None, target: Any) -> dict[str, Any]:
    """Return a copy of *options* whose include entries all carry an alias.

    Args:
        options: Find/build options, or ``None``.
        target: The record class, or a record instance, the options apply to.

    Returns:
        ``{}`` for ``None``; otherwise a new dict. *options* is never mutated.
    """
    if options is None:
        return {}
    resolved = dict(options)
    includes = resolved.get("include")
    if not includes:
        return resolved

    model = target if isinstance(target, type) else type(target)
    mapper = _mapper_of(model)
    if mapper is None:
        return resolved
    entries = includes if isinstance(includes, (list, tuple)) else [includes]
    resolved["include"] = [_infer_entry(entry, mapper) for entry in entries]
    return resolved


def _mapper_of(model: type) -> Mapper[Any] | None:
    mapper = sa_inspect(model, raiseerr=False)
    return mapper if isinstance(mapper, Mapper) else None


def _infer_entry(entry: Any, mapper: Mapper[Any]) -> Any:
    if isinstance(entry, str):
        return entry
    if isinstance(entry, type):
        entry = {"model": entry}
    elif not isinstance(entry, Mapping):
        raise AliasInferenceException(
            f"Unsupported include entry {entry!r} for {mapper.class_.__name__}",
            context={"model": mapper.class_.__name__},
        )

    resolved = dict(entry)
    alias = resolved.get("as")
    if not alias:
        model = resolved.get("model")
        if model is None:
            raise AliasInferenceException(
                f"Include entry for {mapper.class_.__name__} names neither 'model' nor 'as'",
                context={"model": mapper.class_.__name__},
            )
        alias = _alias_for(mapper, model)
        resolved["as"] = alias

    nested = resolved.get("include")
    if nested and alias in mapper.relationships:
        child = mapper.relationships[alias].mapper
        nested_entries = nested if isinstance(nested, (list, tuple)) else [nested]
        resolved["include"] = [_infer_entry(item, child) for item in nested_entries]
    return resolved


def _alias_for(mapper: Mapper[Any], model: type) -> str:
    matches = [rel.key for rel in mapper.relationships if issubclass(rel.mapper.class_, model)]
    source = mapper.class_.__name__
    if not matches:
        raise AliasInferenceException(
            f"{model.__name__} is not associated to {source}",
            context={"model": source, "include": model.__name__},
        )
    if len(matches) > 1:
        raise AliasInferenceException(
            f"Alias cannot be inferred: {source} has multiple relations to {model.__name__} ({', '.join(sorted(matches))})",
            context={"model": source, "include": model.__name__, "candidates": sorted(matches)},
        )
    return matches[0]
