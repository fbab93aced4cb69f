"""Tests for the leaderboard."""

from sqlalchemy.ext.asyncio import AsyncSession

from app.schemas.auth import Actor
from app.schemas.document import Document
from app.schemas.transaction import TransactionCreate
from app.services.ledger import apply_transaction, post_transaction
from app.services.report import (
    build_leaderboard,
    get_leaderboard,
    house_standings,
    top_students,
    top_teachers,
)


def _post(document: Document, username: str, student_id: int, amount: int) -> None:
    user = document.get_user(username)
    apply_transaction(document, user, TransactionCreate(student_id=student_id, amount=amount, note="x"))


class TestHouseStandings:
    """Tests for house ranking."""

    def test_ranked_by_points(self, document: Document):
        _post(document, "admin", 7, 20)
        _post(document, "admin", 1, 5)

        standings = house_standings(document)

        assert [s.name for s in standings] == ["Curie", "Darwin", "Hippocretes", "Newton"]
        assert [s.rank_label for s in standings] == ["1st", "2nd", "3rd", "4th"]
        assert standings[0].points == 20

    def test_ties_keep_creation_order(self, document: Document):
        assert [s.house_id for s in house_standings(document)] == [1, 2, 3, 4]

    def test_negative_totals_rank_last(self, document: Document):
        _post(document, "admin", 1, -4)
        assert house_standings(document)[-1].name == "Darwin"


class TestTopStudents:
    """Tests for the top students list."""

    def test_top_three(self, document: Document):
        _post(document, "admin", 1, 3)
        _post(document, "admin", 7, 9)
        _post(document, "admin", 9, 1)
        document.students.append(document.get_student(9).model_copy(update={"id": 12, "name": "Dee"}))

        top = top_students(document)

        assert [s.name for s in top] == ["Ben", "Ada", "Cy"]
        assert top[0].house_name == "Curie"
        assert top[2].house_name is None


class TestTopTeachers:
    """Tests for the top teachers list."""

    def test_counts_awards_only(self, document: Document):
        """Test deductions do not count towards a teacher's total."""
        _post(document, "frizzle", 1, 10)
        _post(document, "frizzle", 1, -8)
        document.get_user("keating").grade_access = ["2"]
        _post(document, "keating", 1, 4)

        totals = {t.username: t.total_awarded for t in top_teachers(document)}

        assert totals == {"frizzle": 10, "keating": 4}

    def test_teachers_without_awards_are_listed(self, document: Document):
        assert [t.total_awarded for t in top_teachers(document)] == [0, 0]


class TestLeaderboard:
    """Tests for the combined leaderboard."""

    def test_build(self, document: Document):
        board = build_leaderboard(document)

        assert len(board.houses) == 4
        assert len(board.top_students) == 3
        assert len(board.top_teachers) == 2

    async def test_teacher_can_read(self, seeded_db: AsyncSession, frizzle: Actor):
        await post_transaction(
            seeded_db, frizzle, TransactionCreate(student_id=1, amount=7, note="Kindness")
        )

        board = await get_leaderboard(seeded_db, frizzle)

        assert board.houses[0].name == "Darwin"
        assert board.houses[0].points == 7
        assert board.top_teachers[0].username == "frizzle"
