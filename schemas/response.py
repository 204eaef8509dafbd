"""
Standard response envelope.

Success:  {"success": true, "message"?: ..., "data"?: ..., "timestamp": ...}
Error:    {"success": false, "errorCode": "AUTH_001", "message": ..., "errors"?: [...], "timestamp": ...}
"""

from datetime import datetime, timezone
from typing import Any, Generic, Optional, TypeVar
from pydantic import Field
from schemas.auth_schemas import CamelModel
from core.exceptions import ErrorCode

T = TypeVar("T")


class FieldError(CamelModel):
    field: str
    message: str
    rejected_value: Optional[Any] = None


class ApiResponse(CamelModel, Generic[T]):
    success: bool = True
    message: Optional[str] = None
    data: Optional[T] = None
    error_code: Optional[str] = None
    errors: Optional[list[FieldError]] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def ok(cls, data: Any = None, message: Optional[str] = None) -> "ApiResponse":
        return cls(data=data, message=message)

    @classmethod
    def error(cls, error_code: ErrorCode, message: Optional[str] = None,
              errors: Optional[list[FieldError]] = None) -> "ApiResponse":
        return cls(
            success=False,
            message=message or error_code.message,
            error_code=error_code.code,
            errors=errors,
        )

    def to_json(self) -> dict:
        """Serialized form used for JSONResponse bodies."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
