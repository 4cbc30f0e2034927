"""Unified exception hierarchy for pysift.

All library exceptions inherit from SiftException, enabling unified
error handling across modules.

Categories:
- BusinessException: Rejected user input (validation errors)
- ConfigurationException: Schema declaration bugs, raised at registration
- FatalMisuseError: Calling-code bugs (invalid filters, alias cursors)
"""

from __future__ import annotations

from typing import Any

# =============================================================================
# Base Exception
# =============================================================================


class SiftException(Exception):
    """Base exception for all pysift errors.

    Carries an optional error code and context dict for structured error data.

    Args:
        message: Human-readable error description.
        code: Machine-readable error code (e.g. "VALIDATION_ERROR").
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


class BusinessException(SiftException):
    """User input that cannot be turned into a query."""


class ValidationException(BusinessException):
    """Input validation failures, collected per field.

    ``errors`` maps a field path (``"limit"``, ``"filters.0.op"``) to the
    list of messages attached to it.
    """

    def __init__(
        self,
        message: str,
        errors: dict[str, list[str]] | None = None,
        code: str | None = "VALIDATION_ERROR",
        context: dict | None = None,
        params: Any = None,
    ) -> None:
        super().__init__(message, code=code, context=context)
        self.errors: dict[str, list[str]] = errors if errors is not None else {}
        self.params = params


class PaginationConflictError(ValidationException):
    """Parameters of more than one pagination strategy were supplied."""


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigurationException(SiftException):
    """A schema or option declaration is invalid."""


# =============================================================================
# Misuse Exceptions
# =============================================================================


class FatalMisuseError(SiftException):
    """The calling code used the library in a way that can never succeed."""


class InvalidFilterError(FatalMisuseError):
    """A filter was built without a field or operator."""


class InvalidCursorFieldError(FatalMisuseError):
    """A field that cannot take part in cursor pagination was ordered on."""


class UnsupportedOperatorError(FatalMisuseError):
    """An operator was applied to a field kind that cannot express it."""


class UnknownFieldError(FatalMisuseError, KeyError):
    """A logical field name is not declared in the schema."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""
