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
"""Model: the record base applications derive from.

Every class-level operation of :class:`ActiveModel` is re-installed on
``Model`` behind a readiness guard, and the operations listed in
:data:`INFER_ALIAS_MAP` additionally run their options argument through
alias inference. Construction and ``reload()`` apply the same checks by
hand. The weaving happens once, when this module is imported.

Usage::

    class Order(Model):
        __tablename__ = "orders"
        ...

    Order.find_all()          # ModelNotInitializedException
    Order.init(session_factory)
    await Order.find_all({"include": [Customer]})
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pyrecord.aop.registry import InterceptionRegistry
from pyrecord.aop.stages import require_ready
from pyrecord.aop.types import AspectOrder, ReadinessFlag, mark_ready
from pyrecord.aop.weaver import install_interception
from pyrecord.associations.alias_inference import infer_alias
from pyrecord.config.properties.interception import InterceptionProperties
from pyrecord.core.config import Config
from pyrecord.data.active_model import ActiveModel

logger = logging.getLogger(__name__)

# Operation name -> position of its options argument (class argument excluded).
INFER_ALIAS_MAP: Mapping[str, int] = MappingProxyType(
    {
        "bulk_build": 1,
        "build": 1,
        "create": 1,
        "aggregate": 2,
        "all": 0,
        "find": 0,
        "find_all": 0,
        "find_and_count": 0,
        "find_and_count_all": 0,
        "find_by_id": 1,
        "find_by_pk": 1,
        "find_by_primary": 1,
        "find_create_find": 0,
        "find_one": 0,
        "find_or_build": 0,
        "find_or_create": 0,
        "find_or_initialize": 0,
        "reload": 0,
    }
)

# Rewritten on the instance side by Model.reload, not by the weaver.
INSTANCE_ALIAS_OPERATIONS: frozenset[str] = frozenset({"reload"})

_RELOAD_DETAIL = 'Member "reload" cannot be called.'


def _resolve_alias(options: Any, target: Any) -> Any:
    # looked up at call time so the resolver can be swapped on this module
    return infer_alias(options, target)


class Model(ActiveModel):
    """Abstract record base with readiness guard and alias inference."""

    __abstract__ = True

    is_initialized = ReadinessFlag()

    @classmethod
    def init(cls, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """One-time setup: bind the session factory and mark *cls* ready.

        Calling it again rebinds the factory; readiness stays set and the
        woven operations are left as they are.
        """
        was_ready = cls.is_initialized
        super().init(session_factory)
        mark_ready(cls)
        if was_ready:
            logger.debug("Model %s re-initialized", cls.__name__)
        else:
            logger.info("Model %s initialized", cls.__name__)

    def __init__(self, values: Mapping[str, Any] | None = None, options: Mapping[str, Any] | None = None, **kwargs: Any) -> None:
        cls = type(self)
        require_ready(cls, f"{cls.__name__} cannot be instantiated.")
        super().__init__(values, _resolve_alias(options, cls), **kwargs)

    @inspect.markcoroutinefunction
    def reload(self, options: Mapping[str, Any] | None = None) -> Any:
        """Reload with alias inference against this instance; returns the engine coroutine."""
        cls = type(self)
        if INTERCEPTION.order is AspectOrder.GUARD_THEN_REWRITE:
            require_ready(cls, _RELOAD_DETAIL, member="reload")
            return super().reload(_resolve_alias(options, self))
        options = _resolve_alias(options, self)
        require_ready(cls, _RELOAD_DETAIL, member="reload")
        return super().reload(options)


_properties = Config.load().bind(InterceptionProperties)

INTERCEPTION: InterceptionRegistry = install_interception(
    Model,
    ActiveModel,
    INFER_ALIAS_MAP,
    _resolve_alias,
    order=_properties.aspect_order,
    instance_handled=INSTANCE_ALIAS_OPERATIONS,
    strict=_properties.strict_alias_map,
)
