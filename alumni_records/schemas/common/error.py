from typing import Any, Dict
from pydantic import BaseModel, ConfigDict, Field


class ErrorResponse(BaseModel):
    """Structured error value handed back to callers of the record store."""
    model_config = ConfigDict(from_attributes=True)

    success: bool = False
    error_code: str
    message: str
    error_type: str
    details: Dict[str, Any] = Field(default_factory=dict)
