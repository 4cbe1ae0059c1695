"""Principal extraction from authorizer-injected headers.

Authentication happens upstream: API Gateway validates the token and passes
the caller's identity via x-user-id and x-user-role headers. Routes only
read those headers; they never see credentials.
"""

from fastapi import Depends, Request

from bluewater.models import AuthError, ErrorCode, Principal, UserRole

USER_ID_HEADER = "x-user-id"
USER_ROLE_HEADER = "x-user-role"


def get_principal(request: Request) -> Principal:
    """Require an authenticated principal.

    Raises:
        AuthError: 401 if the identity headers are missing or malformed.
    """
    raw_id = request.headers.get(USER_ID_HEADER)
    if not raw_id:
        raise AuthError(ErrorCode.AUTH_REQUIRED)

    try:
        user_id = int(raw_id)
    except ValueError as e:
        raise AuthError(ErrorCode.AUTH_REQUIRED, details={"header": USER_ID_HEADER}) from e

    raw_role = (request.headers.get(USER_ROLE_HEADER) or UserRole.USER.value).lower()
    try:
        role = UserRole(raw_role)
    except ValueError as e:
        raise AuthError(ErrorCode.AUTH_REQUIRED, details={"header": USER_ROLE_HEADER}) from e

    return Principal(user_id=user_id, role=role)


def require_staff(principal: Principal = Depends(get_principal)) -> Principal:
    """Require an admin or staff principal.

    Raises:
        AuthError: 403 for a plain user.
    """
    if not principal.is_staff:
        raise AuthError(ErrorCode.FORBIDDEN)
    return principal
