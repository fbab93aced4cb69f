"""Transaction (ledger) schemas."""

from datetime import datetime

from pydantic import BaseModel


class TransactionCreate(BaseModel):
    """Schema for awarding or deducting points."""

    model_config = {"str_strip_whitespace": True}

    student_id: int
    amount: int
    note: str


class TransactionRow(BaseModel):
    """Ledger entry joined with the names it refers to.

    Names are empty when the student or house has since been deleted.
    """

    id: int
    timestamp: datetime
    teacher_username: str
    student_id: int
    student_name: str
    house_id: int | None
    house_name: str
    amount: int
    note: str

    @property
    def amount_display(self) -> str:
        return f"+{self.amount}" if self.amount >= 0 else str(self.amount)
