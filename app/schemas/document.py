"""Document schemas.

The persisted document uses the camelCase layout of the legacy browser
storage format (``houseId``, ``accessibleStudentIds``, ``nextHouseId`` ...),
so documents exported from it load unchanged.
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from app.core.permissions import Role

SCHEMA_VERSION = 2

CounterName = Literal["house", "student", "transaction", "reward"]


class DocumentModel(BaseModel):
    """Base for records stored in the document."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class User(DocumentModel):
    """Admin or teacher account."""

    username: str
    password: str
    role: Role
    name: str | None = None
    house_id: int | None = None
    grade_access: list[str] | None = None
    accessible_student_ids: list[int] | None = None

    @model_validator(mode="after")
    def teacher_only_grants(self) -> "User":
        # Grants only mean something for teachers; admins see everything.
        if self.role == Role.TEACHER:
            if self.grade_access is None:
                self.grade_access = []
            if self.accessible_student_ids is None:
                self.accessible_student_ids = []
        else:
            self.grade_access = None
            self.accessible_student_ids = None
        return self


class House(DocumentModel):
    """House with its running point total."""

    id: int
    name: str
    color: str | None = None
    logo: str | None = None  # data: URL
    points: int = 0


class Student(DocumentModel):
    """Student; grade is free text, house is optional."""

    id: int
    name: str
    grade: str = ""
    house_id: int | None = None
    points: int = 0
    photo: str | None = None  # data: URL


class Transaction(DocumentModel):
    """One ledger entry. house_id is the student's house when it was posted."""

    id: int
    timestamp: datetime
    teacher_username: str
    student_id: int
    house_id: int | None = None
    amount: int
    note: str


class Reward(DocumentModel):
    """Catalog entry."""

    id: int
    name: str
    cost: int


class Counters(DocumentModel):
    """Next free ID per entity type. IDs are never reused."""

    house: int = 1
    student: int = 1
    transaction: int = 1
    reward: int = 1


class Document(DocumentModel):
    """The whole application state."""

    schema_version: int = SCHEMA_VERSION
    users: list[User] = Field(default_factory=list)
    houses: list[House] = Field(default_factory=list)
    students: list[Student] = Field(default_factory=list)
    transactions: list[Transaction] = Field(default_factory=list)
    rewards: list[Reward] = Field(default_factory=list)
    house_limits: dict[int, int] = Field(default_factory=dict)
    counters: Counters = Field(default_factory=Counters)

    # ============== Lookups ==============

    def get_user(self, username: str) -> User | None:
        """Find a user by username, ignoring case."""
        wanted = username.strip().lower()
        return next((u for u in self.users if u.username.lower() == wanted), None)

    def get_house(self, house_id: int | None) -> House | None:
        if house_id is None:
            return None
        return next((h for h in self.houses if h.id == house_id), None)

    def get_house_by_name(self, name: str) -> House | None:
        wanted = name.strip().lower()
        return next((h for h in self.houses if h.name.lower() == wanted), None)

    def get_student(self, student_id: int | None) -> Student | None:
        if student_id is None:
            return None
        return next((s for s in self.students if s.id == student_id), None)

    def get_transaction(self, transaction_id: int) -> Transaction | None:
        return next((t for t in self.transactions if t.id == transaction_id), None)

    def get_reward(self, reward_id: int) -> Reward | None:
        return next((r for r in self.rewards if r.id == reward_id), None)

    def teachers(self) -> list[User]:
        return [u for u in self.users if u.role == Role.TEACHER]

    def house_member_count(self, house_id: int, *, exclude_student_id: int | None = None) -> int:
        """Number of students currently assigned to a house."""
        return sum(
            1
            for s in self.students
            if s.house_id == house_id and s.id != exclude_student_id
        )

    # ============== Mutation helpers ==============

    def next_id(self, counter: CounterName) -> int:
        """Take the next ID from a counter."""
        value = getattr(self.counters, counter)
        setattr(self.counters, counter, value + 1)
        return value

    def to_storage(self) -> dict[str, Any]:
        """JSON-ready form written to the store."""
        return self.model_dump(mode="json", by_alias=True)
