"""Teacher account schemas."""

from pydantic import BaseModel, Field


class TeacherCreate(BaseModel):
    """Schema for creating a teacher profile."""

    model_config = {"str_strip_whitespace": True}

    name: str = Field(..., max_length=100)
    username: str = Field(..., max_length=50)
    password: str
    house_id: int | None = None
    grade_access: list[str] = Field(default_factory=list)
    accessible_student_ids: list[int] = Field(default_factory=list)


class TeacherUpdate(BaseModel):
    """Schema for editing a teacher profile."""

    model_config = {"str_strip_whitespace": True}

    name: str | None = Field(None, max_length=100)
    house_id: int | None = None
    grade_access: list[str] | None = None


class TeacherSummary(BaseModel):
    """Row of the teacher list."""

    username: str
    name: str | None
    house_name: str | None
    grades: str
    assigned_count: int
