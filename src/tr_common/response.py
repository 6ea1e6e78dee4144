"""Unified API response envelope.

Every operation answers HTTP 200 with this shape so the transport never masks
the application-level message:
{
    "success": true,
    "data": { ... },        // null on error
    "error": null,          // message on error
    "code": 0,              // 0=success, non-0=AppError code
    "retryable": false,
    "timestamp": "...",
    "request_id": "..."
}
"""

import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Request/response payloads use camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class ApiResponse(BaseModel):
    success: bool = True
    data: Any = None
    error: str | None = None
    code: int = 0
    retryable: bool = False
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    request_id: str = Field(default_factory=lambda: f"req_{uuid.uuid4().hex[:12]}")


def success_response(data: Any = None) -> ApiResponse:
    return ApiResponse(success=True, data=data)


def error_response(code: int, message: str, retryable: bool = False) -> ApiResponse:
    return ApiResponse(success=False, error=message, code=code, retryable=retryable)
