"""Student schemas."""

from pydantic import BaseModel, Field


class StudentCreate(BaseModel):
    """Schema for creating a new student."""

    model_config = {"str_strip_whitespace": True}

    name: str = Field(..., max_length=100)
    grade: str = Field("", max_length=50)
    house_id: int | None = None


class StudentUpdate(BaseModel):
    """Schema for updating a student.

    Only fields that are explicitly set are applied, so ``house_id=None``
    means "unassign" while leaving it out keeps the current house.
    """

    model_config = {"str_strip_whitespace": True}

    name: str | None = Field(None, max_length=100)
    grade: str | None = Field(None, max_length=50)
    house_id: int | None = None
