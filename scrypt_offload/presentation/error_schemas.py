"""Pydantic models for error responses used in OpenAPI schema generation."""

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Model for every error body the service returns.

    Used for malformed requests (400), unknown routes (404), capacity
    problems (503) and unexpected failures (500). Operation failures on
    well-formed requests use the same ``error`` field inside the 200
    response of /hash and /compare.
    """

    error: str = Field(
        ...,
        description="Short human-readable error message",
        examples=["Invalid or missing data", "Invalid or missing params", "Not found"],
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "error": "Invalid or missing params",
            }
        }
    }
