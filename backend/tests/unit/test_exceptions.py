"""
Unit Tests for the engine's error body
"""
from app.exceptions import (
    CircularBOMError,
    InvalidBOMError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)


class TestErrorBody:

    def test_unset_context_is_omitted(self):
        assert ValidationError("No shortage lines to order").to_dict() == {
            "error": "VALIDATION_ERROR",
            "message": "No shortage lines to order",
        }

    def test_context_becomes_details(self):
        body = InvalidStateError(
            "Order is draft", current_state="draft", allowed_states=["submitted", "partial"]
        ).to_dict()
        assert body["error"] == "INVALID_STATE"
        assert body["details"] == {"current_state": "draft", "allowed_states": ["submitted", "partial"]}

    def test_not_found_message(self):
        exc = NotFoundError("PO line", 7)
        assert exc.status_code == 404
        assert exc.message == "PO line 7 not found"
        assert exc.details == {"resource": "PO line", "resource_id": "7"}

    def test_cycle_is_an_invalid_bom(self):
        exc = CircularBOMError(["ASY-A", "ASY-A"])
        assert isinstance(exc, InvalidBOMError)
        assert exc.status_code == 422
        assert exc.message == "invalid BOM: cycle detected (ASY-A -> ASY-A)"
