"""Report service - leaderboard and standings."""

from collections import defaultdict

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.grades import ordinal_suffix
from app.core.permissions import require_permission
from app.schemas.auth import Actor
from app.schemas.document import Document
from app.schemas.report import HouseStanding, Leaderboard, StudentStanding, TeacherStanding
from app.services.store import load_document

TOP_COUNT = 3


def house_standings(document: Document) -> list[HouseStanding]:
    """Houses ranked by points, highest first. Ties keep creation order."""
    ranked = sorted(document.houses, key=lambda h: h.points, reverse=True)
    return [
        HouseStanding(
            rank=position,
            rank_label=f"{position}{ordinal_suffix(position)}",
            house_id=house.id,
            name=house.name,
            color=house.color,
            points=house.points,
            has_logo=house.logo is not None,
        )
        for position, house in enumerate(ranked, start=1)
    ]


def top_students(document: Document, limit: int = TOP_COUNT) -> list[StudentStanding]:
    """Students with the most points."""
    ranked = sorted(document.students, key=lambda s: s.points, reverse=True)[:limit]
    standings = []
    for student in ranked:
        house = document.get_house(student.house_id)
        standings.append(
            StudentStanding(
                student_id=student.id,
                name=student.name,
                points=student.points,
                house_name=house.name if house else None,
                color=house.color if house else None,
            )
        )
    return standings


def top_teachers(document: Document, limit: int = TOP_COUNT) -> list[TeacherStanding]:
    """Teachers ranked by the points they awarded; deductions do not count."""
    awarded: dict[str, int] = defaultdict(int)
    for txn in document.transactions:
        if txn.amount > 0:
            awarded[txn.teacher_username.lower()] += txn.amount

    totals = [
        TeacherStanding(username=t.username, total_awarded=awarded.get(t.username.lower(), 0))
        for t in document.teachers()
    ]
    totals.sort(key=lambda t: t.total_awarded, reverse=True)
    return totals[:limit]


def build_leaderboard(document: Document) -> Leaderboard:
    return Leaderboard(
        houses=house_standings(document),
        top_students=top_students(document),
        top_teachers=top_teachers(document),
    )


async def get_leaderboard(db: AsyncSession, actor: Actor) -> Leaderboard:
    """Ranked houses with the top three students and teachers."""
    require_permission(actor.role, "leaderboard:read")
    document = await load_document(db)
    return build_leaderboard(document)
