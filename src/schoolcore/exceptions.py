"""Unified exception hierarchy for schoolcore.

All errors inherit from SchoolCoreError. This module provides:
- Base exception hierarchy with stable error codes
- ErrorRegistry for mapping codes back to exception classes

Authorization decisions never raise these; a denial is a plain ``False``.
The entity store returns typed misses (see ``schoolcore.store.models``)
instead of raising NotFoundError / AlreadyExistsError, and raises only
StoreUnavailableError. Managers raise the rest.

Usage:
    from schoolcore.exceptions import (
        SchoolCoreError,
        PermissionDeniedError,
        NotFoundError,
    )
"""

from __future__ import annotations

from typing import Any, Callable, TypeVar, cast

__all__ = [
    # Base hierarchy
    "SchoolCoreError",
    "ConfigurationError",
    "PermissionDeniedError",
    "NotFoundError",
    "ConflictError",
    "AlreadyExistsError",
    "MembersRemainError",
    "InvalidGrantError",
    "StorageError",
    "StoreUnavailableError",
    # Registry
    "ErrorRegistry",
    "error_registry",
    "register_error",
]


# ---- Exception Hierarchy ----------------------------------------------------


class SchoolCoreError(Exception):
    """Base exception for schoolcore.

    Attributes:
        code: Stable error code string (e.g. "NOT_FOUND").
        message: Human-readable error description.
        details: Additional context as keyword arguments.
    """

    code: str = "INTERNAL_ERROR"
    message: str = "An internal error occurred"

    def __init__(self, message: str | None = None, code: str | None = None, **kwargs: Any) -> None:
        self.message = message or self.message
        self.code = code or self.code
        self.details = kwargs
        super().__init__(self.message)


class ConfigurationError(SchoolCoreError):
    """Invalid or missing configuration (settings or layer tree)."""

    code: str = "CONFIGURATION_ERROR"


class PermissionDeniedError(SchoolCoreError):
    """The authorization engine denied the requested action."""

    code: str = "PERMISSION_DENIED"
    message: str = "Permission denied"


class NotFoundError(SchoolCoreError):
    """An expected entity is missing from the store."""

    code: str = "NOT_FOUND"
    message: str = "Entity not found"


class ConflictError(SchoolCoreError):
    """The operation conflicts with the current state of the store."""

    code: str = "CONFLICT"
    message: str = "Conflicting state"


class AlreadyExistsError(ConflictError):
    """Uniqueness violation on create."""

    code: str = "ALREADY_EXISTS"
    message: str = "Entity already exists"


class MembersRemainError(ConflictError):
    """A container still has members and cannot be removed."""

    code: str = "MEMBERS_REMAIN"
    message: str = "Entity still has members"


class InvalidGrantError(SchoolCoreError):
    """Malformed layer id or unknown action in a direct grant write."""

    code: str = "INVALID_GRANT"
    message: str = "Invalid grant"


class StorageError(SchoolCoreError):
    """Storage layer failure."""

    code: str = "STORAGE_ERROR"


class StoreUnavailableError(StorageError):
    """The backing store could not be reached. Never retried by the core."""

    code: str = "STORE_UNAVAILABLE"
    message: str = "Store unavailable"


# ---- Error Registry ---------------------------------------------------------

_E = TypeVar("_E", bound=type[SchoolCoreError])


class ErrorRegistry:
    """Registry for mapping stable error codes to exception classes."""

    def __init__(self) -> None:
        self._errors: dict[str, type[SchoolCoreError]] = {}

    def register(self, code: str, error_cls: type[SchoolCoreError]) -> None:
        self._errors[code] = error_cls

    def get(self, code: str) -> type[SchoolCoreError] | None:
        return self._errors.get(code)

    def all(self) -> dict[str, type[SchoolCoreError]]:
        return dict(self._errors)


error_registry = ErrorRegistry()


def register_error(code: str) -> Callable[[_E], _E]:
    """Decorator to register a custom error type.

    Usage:
        @register_error("ENROLLMENT_CLOSED")
        class EnrollmentClosedError(SchoolCoreError):
            code = "ENROLLMENT_CLOSED"
    """

    def decorator(cls: _E) -> _E:
        error_registry.register(code, cls)
        return cls

    return cast(Callable[[_E], _E], decorator)


# Register base errors
error_registry.register("INTERNAL_ERROR", SchoolCoreError)
error_registry.register("CONFIGURATION_ERROR", ConfigurationError)
error_registry.register("PERMISSION_DENIED", PermissionDeniedError)
error_registry.register("NOT_FOUND", NotFoundError)
error_registry.register("CONFLICT", ConflictError)
error_registry.register("ALREADY_EXISTS", AlreadyExistsError)
error_registry.register("MEMBERS_REMAIN", MembersRemainError)
error_registry.register("INVALID_GRANT", InvalidGrantError)
error_registry.register("STORAGE_ERROR", StorageError)
error_registry.register("STORE_UNAVAILABLE", StoreUnavailableError)
