"""Course listing and display-order endpoints."""

from fastapi import APIRouter, Depends

from bluewater.models import Course, Principal
from bluewater.services.course_service import CourseService
from bluewater_api.dependencies import get_course_service
from bluewater_api.models.common import ErrorResponse
from bluewater_api.models.courses import CourseOrderRequest, CourseOrderResponse
from bluewater_api.security import require_staff

router = APIRouter(tags=["courses"])


@router.get(
    "/courses",
    summary="List courses in display order",
    response_model=list[Course],
)
async def list_courses(
    service: CourseService = Depends(get_course_service),
) -> list[Course]:
    return service.list_courses()


@router.patch(
    "/courses/order",
    summary="Reorder courses",
    description="""
Set the display order of courses in one transaction.

The course at position i of the list gets orderIndex i + 1. Either every
listed course is renumbered or none is. The response carries the courses as
stored after the update, so the dashboard can reconcile its optimistic order.

**Requires a staff or admin principal.**
""",
    response_model=CourseOrderResponse,
    responses={
        400: {"description": "Empty list or non-numeric id", "model": ErrorResponse},
        403: {"description": "Staff or admin only", "model": ErrorResponse},
        404: {"description": "Unknown course id; nothing changed", "model": ErrorResponse},
    },
)
async def update_course_order(
    body: CourseOrderRequest,
    principal: Principal = Depends(require_staff),
    service: CourseService = Depends(get_course_service),
) -> CourseOrderResponse:
    courses = service.update_course_order(body.courses)
    return CourseOrderResponse(data=courses)
