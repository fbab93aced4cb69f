"""Authentication schemas."""

from pydantic import BaseModel, Field

from app.core.permissions import Role
from app.schemas.document import User


class LoginRequest(BaseModel):
    """Login request schema."""

    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class Actor(BaseModel):
    """Identity of the logged-in user, passed into every operation."""

    username: str
    role: Role
    name: str | None = None
    house_id: int | None = None
    grade_access: list[str] | None = None
    accessible_student_ids: list[int] | None = None

    @classmethod
    def from_user(cls, user: User) -> "Actor":
        return cls(
            username=user.username,
            role=user.role,
            name=user.name,
            house_id=user.house_id,
            grade_access=list(user.grade_access) if user.grade_access is not None else None,
            accessible_student_ids=(
                list(user.accessible_student_ids)
                if user.accessible_student_ids is not None
                else None
            ),
        )

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN
