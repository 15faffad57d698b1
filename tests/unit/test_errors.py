"""
Error taxonomy and the structured error payload.
"""

import pytest

from alumni_records.core.exceptions import (
    ConstraintError,
    HookError,
    NotFoundError,
    RecordStoreError,
    SchemaError,
    ValidationError,
)
from alumni_records.schemas.common.error import ErrorResponse


@pytest.mark.parametrize("error_class, code", [
    (SchemaError, "SCHEMA_ERROR"),
    (ValidationError, "VALIDATION_ERROR"),
    (NotFoundError, "NOT_FOUND"),
    (ConstraintError, "CONSTRAINT_ERROR"),
    (HookError, "HOOK_ERROR"),
])
def test_error_codes(error_class, code):
    error = error_class()
    assert isinstance(error, RecordStoreError)
    assert error.error_code == code
    assert error.details == {}


def test_to_response():
    error = NotFoundError("forums 9 not found", details={"entity": "forums", "id": 9})
    response = error.to_response()
    assert isinstance(response, ErrorResponse)
    assert response.success is False
    assert response.error_type == "NotFoundError"
    assert error.to_dict() == {
        "success": False,
        "error_code": "NOT_FOUND",
        "message": "forums 9 not found",
        "error_type": "NotFoundError",
        "details": {"entity": "forums", "id": 9},
    }


class TestRaisedByStore:

    async def test_not_found_details(self, store):
        with pytest.raises(NotFoundError) as exc:
            await store.find_or_fail("forums", 404)
        assert exc.value.details == {"entity": "forums", "id": 404}

    async def test_unique_violation_is_a_constraint_error(self, store, institution):
        with pytest.raises(ConstraintError) as exc:
            await store.create("institutions", name="Northfield Again", slug="northfield")
        assert exc.value.details["entity"] == "institutions"

    async def test_unknown_entity_is_a_schema_error(self, store):
        with pytest.raises(SchemaError):
            store.query("newsletters")

    async def test_uncastable_value(self, store, institution):
        with pytest.raises(ValidationError):
            await store.create("events", institution_id=institution.id, title="Gala", starts_at="next friday")
