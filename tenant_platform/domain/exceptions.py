"""
Domain exceptions for the tenant platform.

This module defines domain-level exceptions that represent business rule violations.
These exceptions are independent of infrastructure concerns; the HTTP layer maps
them to status codes by type.
"""

from typing import Any


class TenantPlatformException(Exception):
    """
    Base exception for all tenant platform errors.

    All custom exceptions should inherit from this class to allow
    for consistent error handling and logging.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable error code for API responses
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(TenantPlatformException):
    """Raised when input validation fails."""

    def __init__(self, message: str, field: str | None = None):
        details = {"field": field} if field else {}
        super().__init__(message, "VALIDATION_ERROR", details)


class InvalidCursorError(ValidationError):
    """Raised when a pagination cursor cannot be decoded."""

    def __init__(self, cursor: str, reason: str = "malformed cursor"):
        super().__init__(f"Invalid pagination cursor: {reason}", field="cursor")
        self.details["cursor"] = cursor


class NotFoundError(TenantPlatformException):
    """Raised when a requested record is not found."""

    def __init__(self, resource_type: str, resource_id: Any, error_code: str = "NOT_FOUND"):
        super().__init__(
            f"{resource_type} with ID {resource_id} not found",
            error_code,
            {"resource_type": resource_type, "resource_id": str(resource_id)},
        )


class TenantNotFoundError(NotFoundError):
    """Raised when tenant is not found."""

    def __init__(self, tenant_id: str):
        super().__init__("Tenant", tenant_id, "TENANT_NOT_FOUND")
        self.tenant_id = tenant_id


class AddressNotFoundError(NotFoundError):
    def __init__(self, address_id: str):
        super().__init__("Address", address_id, "ADDRESS_NOT_FOUND")


class ContactInfoNotFoundError(NotFoundError):
    def __init__(self, contact_id: str):
        super().__init__("ContactInfo", contact_id, "CONTACT_INFO_NOT_FOUND")


class AlreadyExistsError(TenantPlatformException):
    """Raised when a unique constraint (name, subdomain, ...) is violated."""

    def __init__(self, resource_type: str, field: str | None = None, value: Any = None):
        if field:
            message = f"{resource_type} with this {field} already exists"
        else:
            message = f"{resource_type} already exists"
        details: dict[str, Any] = {"resource_type": resource_type}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
        super().__init__(message, "ALREADY_EXISTS", details)


class MissingTenantContextError(TenantPlatformException):
    """Raised when no tenant id was supplied and none is active in the current scope."""

    def __init__(self, message: str = "Tenant context is missing"):
        super().__init__(message, "MISSING_TENANT_CONTEXT")


class TenantRequiredError(TenantPlatformException):
    """Raised by tenant-scoped repositories when no tenant context is present."""

    def __init__(self, operation: str | None = None):
        message = "Tenant context is required for this operation"
        details = {"operation": operation} if operation else {}
        super().__init__(message, "TENANT_REQUIRED", details)


class TenantInactiveError(TenantPlatformException):
    """Raised when a tenant exists but is not active."""

    def __init__(self, tenant_id: str):
        super().__init__(
            f"Tenant {tenant_id} is inactive",
            "TENANT_INACTIVE",
            {"tenant_id": tenant_id},
        )
        self.tenant_id = tenant_id


class UnauthorizedTenantAccessError(TenantPlatformException):
    """Raised when a user is not allowed to act on a tenant."""

    def __init__(self, tenant_id: str, user_id: str | None = None):
        super().__init__(
            f"Access to tenant {tenant_id} is not allowed",
            "UNAUTHORIZED_TENANT_ACCESS",
            {"tenant_id": tenant_id, "user_id": user_id},
        )


class ContextExpiredError(TenantPlatformException):
    """Raised when the current tenant context has outlived its TTL."""

    def __init__(self, tenant_id: str | None):
        super().__init__(
            f"Tenant context for {tenant_id} has expired",
            "CONTEXT_EXPIRED",
            {"tenant_id": tenant_id},
        )
        self.tenant_id = tenant_id


class InvalidStateTransitionError(TenantPlatformException):
    """Raised when a status change is not allowed from the current status."""

    def __init__(self, entity: str, current: str, target: str):
        super().__init__(
            f"Cannot transition {entity} from {current} to {target}",
            "INVALID_STATE_TRANSITION",
            {"entity": entity, "from": current, "to": target},
        )


class BulkOperationError(TenantPlatformException):
    """
    Raised when an all-or-nothing bulk operation fails.

    Since the batch runs in a single transaction, every supplied item is
    reported as failed.
    """

    def __init__(self, operation: str, failures: list[dict[str, Any]]):
        super().__init__(
            f"Bulk {operation} failed for {len(failures)} item(s)",
            "BULK_OPERATION_FAILED",
            {"operation": operation, "failures": failures},
        )
        self.operation = operation
        self.failures = failures


class ConcurrencyConflictError(TenantPlatformException):
    """Raised when an optimistic-lock version check fails."""

    def __init__(self, message: str = "Record was modified by another transaction"):
        super().__init__(message, "CONCURRENCY_CONFLICT")


class DatabaseOperationError(TenantPlatformException):
    """Generic wrapper for unexpected storage-layer failures."""

    def __init__(self, operation: str = "database operation"):
        super().__init__(f"Failed to complete {operation}", "DATABASE_ERROR")


class TransactionTimeoutError(TenantPlatformException):
    """Raised when a transaction exceeds its allotted time and was rolled back."""

    def __init__(self, timeout: float):
        super().__init__(
            f"Transaction timed out after {timeout} seconds",
            "TRANSACTION_TIMEOUT",
            {"timeout": timeout},
        )
