"""Shared response envelope and base model for API payloads.

Every response body, success or failure, has the shape
``{"success": bool, "message": str, "data": T | null}``.
"""

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Serializes as camelCase; accepts snake_case or camelCase on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ApiResponse(CamelModel, Generic[T]):
    success: bool
    message: str
    data: T | None = None


def error_body(message: str) -> dict:
    """Failure envelope as a plain dict for exception handlers."""
    return ApiResponse[None](success=False, message=message).model_dump(by_alias=True)
