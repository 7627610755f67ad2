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
"""Unified exception hierarchy for PyRecord.

All library exceptions inherit from PyRecordException, enabling unified
error handling across modules.

Categories:
- BusinessException: Record preconditions and invalid query options
- InfrastructureException: Engine and session failures
- InterceptionConfigurationException: Broken interception wiring, raised at import
"""

from __future__ import annotations

from typing import Any

# =============================================================================
# Base Exception
# =============================================================================


class PyRecordException(Exception):
    """Base exception for all PyRecord errors.

    Carries an optional error code and context dict for structured error data.

    Args:
        message: Human-readable error description.
        code: Machine-readable error code (e.g. "MODEL_NOT_INITIALIZED").
        context: Arbitrary key-value pairs for error context and debugging.
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: dict | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.context: dict = context if context is not None else {}


# =============================================================================
# Business Exceptions
# =============================================================================


class BusinessException(PyRecordException):
    """Record rule violations and usage errors."""


class ResourceNotFoundException(BusinessException):
    """Requested record does not exist."""


class PreconditionFailedException(BusinessException):
    """A precondition for the operation was not met."""


class InvalidRequestException(BusinessException):
    """Request is syntactically valid but semantically incorrect."""


class ModelNotInitializedException(PreconditionFailedException):
    """A record type was used before its one-time ``init()`` ran.

    Raised by every guarded class-level operation, by the constructor and
    by ``reload()``. Never retried.

    Attributes:
        model: The record class the call was made through.
        model_name: ``model.__name__``.
        member: The operation name, or ``None`` for construction.
    """

    def __init__(self, model: type, detail: str, member: str | None = None) -> None:
        self.model = model
        self.model_name = model.__name__
        self.member = member
        super().__init__(
            f'Model not initialized: {detail} "{self.model_name}" needs to be initialized '
            f"by calling {self.model_name}.init() first.",
            code="MODEL_NOT_INITIALIZED",
            context={"model": self.model_name, "member": member},
        )


class AliasInferenceException(InvalidRequestException):
    """An include entry could not be mapped onto exactly one relationship."""


class EagerLoadingException(InvalidRequestException):
    """An include entry reached the engine without a usable alias."""


class RecordNotPersistedException(ResourceNotFoundException):
    """An instance-level operation needs a row that was never saved."""


# =============================================================================
# Infrastructure Exceptions
# =============================================================================


class InfrastructureException(PyRecordException):
    """Infrastructure failures: database, session, driver."""


# =============================================================================
# Configuration Exceptions
# =============================================================================


class InterceptionConfigurationException(PyRecordException):
    """The interception pipeline cannot be installed as declared."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message, code="INTERCEPTION_CONFIGURATION", context=context)
