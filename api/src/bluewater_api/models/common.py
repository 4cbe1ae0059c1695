"""Shared API request/response models."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from bluewater.models.errors import ErrorCode, ErrorResponse

__all__ = [
    "ApiModel",
    "ErrorCode",
    "ErrorResponse",
    "MessageResponse",
]


class ApiModel(BaseModel):
    """Base for API models: camelCase on the wire, snake_case in Python.

    strict=False allows JSON strings to coerce into dates and numbers.
    """

    model_config = ConfigDict(strict=False, alias_generator=to_camel, populate_by_name=True)


class MessageResponse(ApiModel):
    """Acknowledgement for operations without a data payload."""

    message: str = Field(..., examples=["Booking deleted successfully"])
