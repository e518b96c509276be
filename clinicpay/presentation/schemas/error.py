"""Error body returned by every failing endpoint, and its OpenAPI docs."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

_EXAMPLE_ID = "550e8400-e29b-41d4-a716-446655440000"


class ErrorResponseSchema(BaseModel):
    """`{"error": code, "message": ..., "request_id": ...}`"""

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "error": "PLAN_OPERATION_NOT_ALLOWED",
                    "message": f"Cannot resume plan {_EXAMPLE_ID}: no paused installments",
                    "request_id": "abc123",
                }
            ]
        }
    )

    error: str = Field(..., description="Machine-readable error code", examples=["PLAN_NOT_FOUND"])
    message: str = Field(..., description="Human-readable explanation")
    request_id: str | None = Field(None, description="X-Request-ID of the failing request")


_DESCRIPTIONS = {
    400: "Operation not allowed in the current state",
    404: "Plan or installment not found, or owned by another clinic",
    409: "Plan changed concurrently; retry the request",
    503: "Overdue sweep unavailable",
}


def error_responses(*status_codes: int, **overrides: str) -> dict[int, dict[str, Any]]:
    """
    Build a FastAPI `responses=` mapping documenting the given error statuses.

    Descriptions can be overridden per status with keyword arguments named
    after the status, e.g. `error_responses(400, 404, e400="Bad transition")`.
    """
    return {
        code: {
            "model": ErrorResponseSchema,
            "description": overrides.get(f"e{code}", _DESCRIPTIONS[code]),
        }
        for code in status_codes
    }
