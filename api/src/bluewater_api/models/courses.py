"""API models for course ordering."""

from typing import Any

from pydantic import Field

from bluewater.models import Course

from .common import ApiModel


class CourseOrderRequest(ApiModel):
    """Course IDs in the desired display order.

    Entries are validated by the service so that a non-numeric id is reported
    with the course-order error code rather than a generic schema error.
    """

    courses: list[Any] = Field(..., examples=[[3, 1, 2]])


class CourseOrderResponse(ApiModel):
    success: bool = True
    message: str = "Course order updated successfully"
    data: list[Course]
