"""Tests for mapping service errors to HTTP responses."""

import pytest
from fastapi import HTTPException

from blockcharge.api.errors import AppError, error_response, from_service_error, raise_app_error
from blockcharge.errors import (
    ConcurrentUpdateError,
    DemandNotFoundError,
    InvariantViolationError,
    StoreError,
    UnsupportedPenaltyTypeError,
    ValidationError,
)


class TestFromServiceError:
    @pytest.mark.parametrize(
        "error, http_status, code, retryable",
        [
            (DemandNotFoundError(5), 404, "demand_not_found", False),
            (ValidationError("bad amount"), 422, "validation_error", False),
            (UnsupportedPenaltyTypeError("percentage"), 422, "unsupported_penalty_type", False),
            (InvariantViolationError(5, "total"), 409, "invariant_violation", False),
            (ConcurrentUpdateError(), 409, "concurrent_update", True),
            (StoreError("locked", retryable=True), 503, "store_unavailable", True),
            (StoreError("constraint", retryable=False), 409, "store_error", False),
        ],
    )
    def test_mapping(self, error, http_status, code, retryable):
        app_error = from_service_error(error)

        assert app_error.http_status == http_status
        assert app_error.code == code
        assert app_error.retryable is retryable
        assert app_error.message == str(error)


class TestRaiseAppError:
    def test_raises_http_exception_with_error_body(self):
        with pytest.raises(HTTPException) as exc_info:
            raise_app_error(DemandNotFoundError(42))

        assert exc_info.value.status_code == 404
        assert exc_info.value.detail == {
            "error": {
                "code": "demand_not_found",
                "message": "Service charge demand 42 not found",
                "retryable": False,
            }
        }

    def test_accepts_app_error(self):
        error = AppError("nope", "custom", 400)

        with pytest.raises(HTTPException) as exc_info:
            raise_app_error(error)

        assert exc_info.value.detail == error_response(error)
