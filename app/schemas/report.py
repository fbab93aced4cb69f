"""Report schemas."""

from pydantic import BaseModel, Field


# ============== Leaderboard ==============


class HouseStanding(BaseModel):
    """One row of the house leaderboard."""

    rank: int
    rank_label: str = Field(description="Ordinal rank, e.g. 1st")
    house_id: int
    name: str
    color: str | None
    points: int
    has_logo: bool


class StudentStanding(BaseModel):
    """Top student entry."""

    student_id: int
    name: str
    points: int
    house_name: str | None
    color: str | None


class TeacherStanding(BaseModel):
    """Top teacher entry, ranked by points awarded (deductions excluded)."""

    username: str
    total_awarded: int


class Leaderboard(BaseModel):
    """Ranked houses plus the top students and teachers."""

    houses: list[HouseStanding]
    top_students: list[StudentStanding]
    top_teachers: list[TeacherStanding]
