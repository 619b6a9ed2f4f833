"""Unified exception hierarchy for tenantscope.

Authorization outcomes (Deny, NeedsOnboarding, Unassigned) are ordinary
return values and never raised. Exceptions are reserved for:
- programming/configuration errors
- rejected request overrides (before any handler runs)
- tenancy lookups that miss (caught inside the engine)
- storage collaborator failures (the only retryable kind)

Usage:
    from tenantscope.exceptions import (
        TenantScopeError,
        NotFoundError,
        PlanExecutionError,
    )
"""

from __future__ import annotations

from typing import Any, Callable, TypeVar, cast

__all__ = [
    # Base hierarchy
    "TenantScopeError",
    "ConfigurationError",
    "SecurityError",
    "OverrideRejectedError",
    "NotFoundError",
    "TenancyIntegrityError",
    "InvalidCascadeRootError",
    "StorageError",
    "PlanExecutionError",
    # Registry
    "ErrorRegistry",
    "error_registry",
    "register_error",
    # Transport helpers
    "get_grpc_status_code",
]


# ---- Exception Hierarchy ----------------------------------------------------


class TenantScopeError(Exception):
    """Base exception for tenantscope.

    Attributes:
        code: Stable error code string for protocol mapping (e.g. "NOT_FOUND").
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


class ConfigurationError(TenantScopeError):
    """Invalid or missing configuration."""

    code: str = "CONFIGURATION_ERROR"


class SecurityError(TenantScopeError):
    """Request-level security failure raised before reaching a handler."""

    code: str = "SECURITY_ERROR"


class OverrideRejectedError(SecurityError):
    """Acting company/branch override is unknown, not owned, or inconsistent."""

    code: str = "OVERRIDE_REJECTED"
    message: str = "Acting company/branch override rejected"


class NotFoundError(TenantScopeError):
    """Referenced tenancy entity does not exist.

    Raised by TenancyGraph reads. The engine converts it into a Deny;
    it must never abort a whole request.
    """

    code: str = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: str | None, **kwargs: Any) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id!r} not found", entity=entity, entity_id=entity_id, **kwargs)


class TenancyIntegrityError(TenantScopeError):
    """A write would break a company/branch/user invariant."""

    code: str = "TENANCY_INTEGRITY_ERROR"


class InvalidCascadeRootError(TenantScopeError):
    """The cascade root is not an entity of the requested root kind."""

    code: str = "INVALID_CASCADE_ROOT"


class StorageError(TenantScopeError):
    """Storage collaborator failure. Callers may retry."""

    code: str = "STORAGE_ERROR"


class PlanExecutionError(StorageError):
    """A deletion plan failed and was rolled back entirely."""

    code: str = "PLAN_EXECUTION_ERROR"


# ---- Error Registry for Protocol Mapping ------------------------------------

_E = TypeVar("_E", bound=type[TenantScopeError])


class ErrorRegistry:
    """Registry for mapping internal errors to external protocol codes."""

    def __init__(self) -> None:
        self._errors: dict[str, type[TenantScopeError]] = {}

    def register(self, code: str, error_cls: type[TenantScopeError]) -> None:
        self._errors[code] = error_cls

    def get(self, code: str) -> type[TenantScopeError] | None:
        return self._errors.get(code)

    def all(self) -> dict[str, type[TenantScopeError]]:
        return dict(self._errors)


error_registry = ErrorRegistry()


def register_error(code: str) -> Callable[[_E], _E]:
    """Decorator to register a custom error type.

    Usage:
        @register_error("BILLING_ERROR")
        class BillingError(TenantScopeError):
            code = "BILLING_ERROR"
    """

    def decorator(cls: _E) -> _E:
        error_registry.register(code, cls)
        return cls

    return cast(Callable[[_E], _E], decorator)


for _cls in (
    TenantScopeError,
    ConfigurationError,
    SecurityError,
    OverrideRejectedError,
    NotFoundError,
    TenancyIntegrityError,
    InvalidCascadeRootError,
    StorageError,
    PlanExecutionError,
):
    error_registry.register(_cls.code, _cls)


# ---- Transport mapping ------------------------------------------------------


def get_grpc_status_code(error: TenantScopeError) -> Any:
    """Map a TenantScopeError to a gRPC status code.

    Import grpc locally to avoid hard dependency at module level.
    """
    import grpc

    error_to_status = {
        "CONFIGURATION_ERROR": grpc.StatusCode.FAILED_PRECONDITION,
        "SECURITY_ERROR": grpc.StatusCode.PERMISSION_DENIED,
        "OVERRIDE_REJECTED": grpc.StatusCode.PERMISSION_DENIED,
        "NOT_FOUND": grpc.StatusCode.NOT_FOUND,
        "TENANCY_INTEGRITY_ERROR": grpc.StatusCode.FAILED_PRECONDITION,
        "INVALID_CASCADE_ROOT": grpc.StatusCode.INVALID_ARGUMENT,
        "STORAGE_ERROR": grpc.StatusCode.UNAVAILABLE,
        "PLAN_EXECUTION_ERROR": grpc.StatusCode.ABORTED,
    }
    return error_to_status.get(error.code, grpc.StatusCode.INTERNAL)
