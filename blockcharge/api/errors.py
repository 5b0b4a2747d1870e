"""API error handling and response helpers."""

from typing import Any, Dict

from fastapi import HTTPException, status

from blockcharge.errors import (
    ConcurrentUpdateError,
    DemandNotFoundError,
    InvariantViolationError,
    ServiceChargeError,
    StoreError,
    UnsupportedPenaltyTypeError,
    ValidationError,
)


class AppError(Exception):
    """Base application error."""

    def __init__(self, message: str, code: str, http_status: int = 400, retryable: bool = False):
        """Initialize error."""
        self.message = message
        self.code = code
        self.http_status = http_status
        self.retryable = retryable
        super().__init__(message)


def from_service_error(error: ServiceChargeError) -> AppError:
    """Map a service-charge exception to its HTTP representation.

    Order matters: ConcurrentUpdateError is a StoreError and
    UnsupportedPenaltyTypeError is a ValidationError.
    """
    message = str(error)
    if isinstance(error, DemandNotFoundError):
        return AppError(message, "demand_not_found", status.HTTP_404_NOT_FOUND)
    if isinstance(error, UnsupportedPenaltyTypeError):
        return AppError(message, "unsupported_penalty_type", status.HTTP_422_UNPROCESSABLE_ENTITY)
    if isinstance(error, ValidationError):
        return AppError(message, "validation_error", status.HTTP_422_UNPROCESSABLE_ENTITY)
    if isinstance(error, InvariantViolationError):
        return AppError(message, "invariant_violation", status.HTTP_409_CONFLICT)
    if isinstance(error, ConcurrentUpdateError):
        return AppError(message, "concurrent_update", status.HTTP_409_CONFLICT, retryable=True)
    if isinstance(error, StoreError):
        if error.retryable:
            return AppError(
                message, "store_unavailable", status.HTTP_503_SERVICE_UNAVAILABLE, retryable=True
            )
        return AppError(message, "store_error", status.HTTP_409_CONFLICT)
    return AppError(message, "service_charge_error", status.HTTP_400_BAD_REQUEST)


def error_response(error: AppError) -> Dict[str, Any]:
    """Create a standardized error response."""
    return {
        "error": {
            "code": error.code,
            "message": error.message,
            "retryable": error.retryable,
        }
    }


def raise_app_error(error: AppError | ServiceChargeError) -> None:
    """Raise an HTTPException from an AppError or service exception."""
    if isinstance(error, ServiceChargeError):
        error = from_service_error(error)
    raise HTTPException(
        status_code=error.http_status,
        detail=error_response(error),
    )
