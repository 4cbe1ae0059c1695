"""Enrollment endpoints for course access grants.

Users enroll themselves; staff and admins can list and delete any
enrollment.
"""

from fastapi import APIRouter, Depends
from starlette.status import HTTP_201_CREATED

from bluewater.models import (
    AuthError,
    CoursePaymentIntent,
    Enrollment,
    EnrollmentDetail,
    ErrorCode,
    Principal,
)
from bluewater.services.enrollment_service import EnrollmentService
from bluewater_api.dependencies import get_enrollment_service
from bluewater_api.models.common import ErrorResponse, MessageResponse
from bluewater_api.models.enrollments import CoursePaymentIntentRequest, EnrollmentCreateRequest
from bluewater_api.security import get_principal, require_staff

router = APIRouter(tags=["enrollments"])


@router.post(
    "/enrollments",
    summary="Enroll in a course",
    description="""
Record an enrollment for the caller.

If paymentIntentId is given, the intent is checked at Stripe. It must have
been opened for this caller and course, cover the course price, and not have
paid for another enrollment. A succeeded intent makes the enrollment paid,
otherwise it stays pending until the webhook confirms the payment.
""",
    response_model=Enrollment,
    status_code=HTTP_201_CREATED,
    responses={
        400: {"description": "Payment intent does not pay for this enrollment", "model": ErrorResponse},
        404: {"description": "Course not found", "model": ErrorResponse},
        409: {"description": "Already enrolled, or payment intent already used", "model": ErrorResponse},
    },
)
async def create_enrollment(
    body: EnrollmentCreateRequest,
    principal: Principal = Depends(get_principal),
    service: EnrollmentService = Depends(get_enrollment_service),
) -> Enrollment:
    return service.create_enrollment(body.to_create(principal.user_id))


@router.post(
    "/enrollments/payment-intent",
    summary="Start paying for a course",
    response_model=CoursePaymentIntent,
    responses={
        404: {"description": "Course not found", "model": ErrorResponse},
        502: {"description": "Payment processor failure", "model": ErrorResponse},
    },
)
async def create_course_payment_intent(
    body: CoursePaymentIntentRequest,
    principal: Principal = Depends(get_principal),
    service: EnrollmentService = Depends(get_enrollment_service),
) -> CoursePaymentIntent:
    return service.create_course_payment_intent(principal.user_id, body.course_id)


@router.get(
    "/enrollments/my",
    summary="List my enrollments",
    response_model=list[EnrollmentDetail],
)
async def my_enrollments(
    principal: Principal = Depends(get_principal),
    service: EnrollmentService = Depends(get_enrollment_service),
) -> list[EnrollmentDetail]:
    return service.list_user_enrollments(principal.user_id)


@router.get(
    "/enrollments/{enrollment_id}",
    summary="Get enrollment",
    response_model=EnrollmentDetail,
    responses={
        403: {"description": "Not your enrollment", "model": ErrorResponse},
        404: {"description": "Enrollment not found", "model": ErrorResponse},
    },
)
async def get_enrollment(
    enrollment_id: int,
    principal: Principal = Depends(get_principal),
    service: EnrollmentService = Depends(get_enrollment_service),
) -> EnrollmentDetail:
    enrollment = service.get_enrollment(enrollment_id)
    if enrollment.user_id != principal.user_id and not principal.is_staff:
        raise AuthError(ErrorCode.FORBIDDEN)
    return enrollment


@router.get(
    "/enrollments",
    summary="List all enrollments",
    response_model=list[EnrollmentDetail],
    responses={403: {"description": "Staff or admin only", "model": ErrorResponse}},
)
async def list_enrollments(
    principal: Principal = Depends(require_staff),
    service: EnrollmentService = Depends(get_enrollment_service),
) -> list[EnrollmentDetail]:
    return service.list_enrollments()


@router.delete(
    "/enrollments/{enrollment_id}",
    summary="Delete enrollment",
    response_model=MessageResponse,
    responses={
        403: {"description": "Staff or admin only", "model": ErrorResponse},
        404: {"description": "Enrollment not found", "model": ErrorResponse},
    },
)
async def delete_enrollment(
    enrollment_id: int,
    principal: Principal = Depends(require_staff),
    service: EnrollmentService = Depends(get_enrollment_service),
) -> MessageResponse:
    service.delete_enrollment(enrollment_id)
    return MessageResponse(message="Enrollment deleted successfully")
