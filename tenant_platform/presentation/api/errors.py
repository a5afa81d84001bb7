"""Map domain exceptions to HTTP responses."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from tenant_platform.domain.exceptions import (
    AlreadyExistsError,
    BulkOperationError,
    ConcurrencyConflictError,
    ContextExpiredError,
    InvalidStateTransitionError,
    MissingTenantContextError,
    NotFoundError,
    TenantInactiveError,
    TenantPlatformException,
    TenantRequiredError,
    TransactionTimeoutError,
    UnauthorizedTenantAccessError,
    ValidationError,
)
from tenant_platform.shared.telemetry.tracing import get_trace_id

logger = logging.getLogger(__name__)

# Checked in order; subclasses must precede their bases
STATUS_CODES: list[tuple[type[TenantPlatformException], int]] = [
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (AlreadyExistsError, status.HTTP_409_CONFLICT),
    (ConcurrencyConflictError, status.HTTP_409_CONFLICT),
    (MissingTenantContextError, status.HTTP_400_BAD_REQUEST),
    (TenantRequiredError, status.HTTP_400_BAD_REQUEST),
    (BulkOperationError, status.HTTP_400_BAD_REQUEST),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (InvalidStateTransitionError, status.HTTP_400_BAD_REQUEST),
    (ContextExpiredError, status.HTTP_400_BAD_REQUEST),
    (TenantInactiveError, status.HTTP_403_FORBIDDEN),
    (UnauthorizedTenantAccessError, status.HTTP_403_FORBIDDEN),
    (TransactionTimeoutError, status.HTTP_504_GATEWAY_TIMEOUT),
]


def status_code_for(exc: TenantPlatformException) -> int:
    for exc_type, code in STATUS_CODES:
        if isinstance(exc, exc_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def handle_domain_error(request: Request, exc: TenantPlatformException) -> JSONResponse:
    status_code = status_code_for(exc)
    body = exc.to_dict()

    if status_code >= 500:
        # Storage internals never reach the client
        logger.error(
            "Server error on %s %s: %s (trace %s)",
            request.method,
            request.url.path,
            exc.error_code,
            get_trace_id(),
        )
        if status_code == status.HTTP_500_INTERNAL_SERVER_ERROR:
            body = {"error": exc.error_code, "message": "Internal server error", "details": {}}
    else:
        logger.warning("Client error on %s %s: %s", request.method, request.url.path, body)

    return JSONResponse(status_code=status_code, content=body)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TenantPlatformException, handle_domain_error)
