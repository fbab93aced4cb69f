"""Sorting wheel schemas."""

from pydantic import BaseModel


class Spin(BaseModel):
    """One draw of the wheel."""

    rotations: int
    angle: int
    cumulative_angle: int
    segment: int
    category: str
    house_id: int | None
    house_name: str | None
    eligible: bool


class SortingResult(BaseModel):
    """Outcome of sorting one student.

    ``resolved`` is False when every draw landed on a full house; the
    student is then left where they were.
    """

    student_id: int
    resolved: bool
    house_id: int | None = None
    house_name: str | None = None
    spins: list[Spin]

    @property
    def final_angle(self) -> int:
        return self.spins[-1].cumulative_angle if self.spins else 0

    @property
    def attempts(self) -> int:
        return len(self.spins)
