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
"""Unified exception hierarchy for genrepo.

All library exceptions inherit from GenRepoException, enabling unified
error handling across modules.

Categories:
- ValidationException: invalid arguments reported before any storage access
- InvalidRequestException: requests the entity type cannot satisfy

Storage failures are never wrapped: SQLAlchemy exceptions reach the caller
unmodified.
"""

from __future__ import annotations

# =============================================================================
# Base Exception
# =============================================================================


class GenRepoException(Exception):
    """Base exception for all genrepo errors.

    Carries an optional error code and context dict for structured error data.

    Args:
        message: Human-readable error description.
        code: Machine-readable error code (e.g. "PAGING_001").
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


class BusinessException(GenRepoException):
    """Rule violations raised by the data-access layer itself."""


class ValidationException(BusinessException):
    """Input validation failures."""


class InvalidArgumentException(ValidationException, ValueError):
    """A required argument is missing or malformed."""


class ArgumentOutOfRangeException(InvalidArgumentException):
    """A numeric argument falls outside its permitted range."""


class InvalidRequestException(BusinessException):
    """Request is syntactically valid but semantically incorrect."""


class UnsupportedCapabilityException(InvalidRequestException):
    """The entity type lacks the capability the operation requires."""


def require_not_none(value: object, name: str) -> None:
    """Raise :class:`InvalidArgumentException` when *value* is None."""
    if value is None:
        raise InvalidArgumentException(
            f"{name} must not be None",
            code="ARGUMENT_NULL",
            context={"argument": name},
        )
