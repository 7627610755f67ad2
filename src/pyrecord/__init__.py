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
"""PyRecord: active-record models with a readiness guard and alias inference."""

from __future__ import annotations

from pyrecord.core.config import Config
from pyrecord.data.model import INFER_ALIAS_MAP, Model
from pyrecord.kernel.exceptions import AliasInferenceException, ModelNotInitializedException, PyRecordException
from pyrecord.logging.port import LoggingPort
from pyrecord.logging.structlog_adapter import StructlogAdapter

__version__ = "0.1.0"


def configure(config: Config | None = None, adapter: LoggingPort | None = None) -> LoggingPort:
    """Set up log output through *adapter* (structlog by default).

    Without *config* the project file found by :meth:`Config.load` is used.
    """
    port = adapter if adapter is not None else StructlogAdapter()
    port.configure(config if config is not None else Config.load())
    return port


__all__ = [
    "INFER_ALIAS_MAP",
    "AliasInferenceException",
    "Config",
    "LoggingPort",
    "Model",
    "ModelNotInitializedException",
    "PyRecordException",
    "configure",
]
