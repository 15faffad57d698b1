# alumni_records/core/exceptions.py
from typing import Any, Dict, Optional

from alumni_records.schemas.common.error import ErrorResponse


class RecordStoreError(Exception):
    """Base exception class for record store errors"""
    def __init__(
        self,
        message: str,
        error_code: str = "RECORD_STORE_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(
            error_code=self.error_code,
            message=self.message,
            error_type=self.__class__.__name__,
            details=self.details
        )

    def to_dict(self) -> Dict[str, Any]:
        return self.to_response().model_dump()

class SchemaError(RecordStoreError):
    """Raised when an entity definition is invalid or refers to something undeclared"""
    def __init__(
        self,
        message: str = "Invalid entity schema",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code="SCHEMA_ERROR",
            details=details
        )

class ValidationError(RecordStoreError):
    """Raised when a field is not assignable or a value cannot be cast"""
    def __init__(
        self,
        message: str = "Validation error",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            details=details
        )

class NotFoundError(RecordStoreError):
    """Raised when an operation targets a record that does not exist"""
    def __init__(
        self,
        message: str = "Record not found",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code="NOT_FOUND",
            details=details
        )

class ConstraintError(RecordStoreError):
    """Raised when storage rejects a write (foreign key, uniqueness, not null)"""
    def __init__(
        self,
        message: str = "Storage constraint violated",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code="CONSTRAINT_ERROR",
            details=details
        )

class HookError(RecordStoreError):
    """Raised when a lifecycle side effect fails; the triggering operation is rolled back"""
    def __init__(
        self,
        message: str = "Lifecycle hook failed",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code="HOOK_ERROR",
            details=details
        )
