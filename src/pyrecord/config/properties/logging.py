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
"""Logging subsystem configuration properties."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator

from pyrecord.core.config import config_properties


@config_properties(prefix="pyrecord.logging")
class LoggingProperties(BaseModel):
    """Configuration for log output (pyrecord.logging.*)."""

    level: dict[str, str] = Field(default_factory=lambda: {"root": "INFO"})
    format: Literal["console", "json"] = "console"

    @field_validator("format", mode="before")
    @classmethod
    def normalize_format(cls, value: object) -> object:
        return value.lower() if isinstance(value, str) else value
