"""Authenticated principal as handed over by the upstream authorizer."""

from pydantic import BaseModel, ConfigDict

from .enums import UserRole


class Principal(BaseModel):
    """Opaque caller identity: a user id and a role."""

    model_config = ConfigDict(strict=True, frozen=True)

    user_id: int
    role: UserRole = UserRole.USER

    @property
    def is_staff(self) -> bool:
        return self.role in (UserRole.STAFF, UserRole.ADMIN)
