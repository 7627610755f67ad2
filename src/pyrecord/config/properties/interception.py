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
"""Interception subsystem configuration properties."""

from __future__ import annotations

from pydantic import BaseModel

from pyrecord.aop.types import AspectOrder
from pyrecord.core.config import config_properties


@config_properties(prefix="pyrecord.interception")
class InterceptionProperties(BaseModel):
    """Configuration for the record interception pipeline (pyrecord.interception.*).

    Both values are read once, when ``pyrecord.data.model`` is imported, from
    the project file found by :meth:`Config.load` and ``PYRECORD_INTERCEPTION_*``
    environment variables.
    """

    aspect_order: AspectOrder = AspectOrder.REWRITE_THEN_GUARD
    strict_alias_map: bool = True
