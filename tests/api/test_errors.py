"""Tests for the API error envelope."""

from fastapi import status

from itemgen.api.errors import domain_error_to_http
from itemgen.domain.exceptions import (
    BatchOperationError,
    RegenerationPendingError,
    ValidationError,
)


class TestDomainErrorToHttp:
    """Tests for mapping regeneration errors to HTTP errors."""

    def test_validation_error(self) -> None:
        """Validation errors are 400 with one detail per context key."""
        error = ValidationError("Bad selection", details={"unknown_ids": ["x"], "empty": None})

        exc = domain_error_to_http(error)

        assert exc.status_code == status.HTTP_400_BAD_REQUEST
        assert exc.detail["error_code"] == "VALIDATION_ERROR"
        assert exc.detail["details"] == [{"field": "unknown_ids", "message": "['x']"}]

    def test_pending_error(self) -> None:
        """A running regeneration is a conflict."""
        exc = domain_error_to_http(RegenerationPendingError("p-1"))

        assert exc.status_code == status.HTTP_409_CONFLICT
        assert exc.detail["error_code"] == "REGENERATION_PENDING"

    def test_batch_error_lists_failures(self) -> None:
        """Each failed item becomes a detail keyed by the phase."""
        error = BatchOperationError("p-1", phase="creating", failures=["boom", "bang"])

        exc = domain_error_to_http(error)

        assert exc.status_code == status.HTTP_502_BAD_GATEWAY
        assert exc.detail["error_code"] == "BATCH_OPERATION_FAILED"
        assert exc.detail["details"] == [
            {"field": "creating", "message": "boom"},
            {"field": "creating", "message": "bang"},
        ]
