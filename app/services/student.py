"""Student service."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ValidationError
from app.core.grades import normalize_grade
from app.core.permissions import require_permission
from app.schemas.auth import Actor
from app.schemas.document import Document, Student
from app.schemas.student import StudentCreate, StudentUpdate
from app.services.access import compute_accessible_students
from app.services.auth import resolve_actor
from app.services.ledger import reassign_student_house
from app.services.store import load_document, save_document

logger = logging.getLogger(__name__)


def _get_student_or_raise(document: Document, student_id: int) -> Student:
    student = document.get_student(student_id)
    if student is None:
        raise NotFoundError("Student not found")
    return student


def filter_students(
    students: list[Student],
    *,
    search: str | None = None,
    grade: str | None = None,
    house_id: int | None = None,
) -> list[Student]:
    """Filter students by name fragment, grade and house; sorted by name."""
    result = list(students)

    if search:
        term = search.strip().lower()
        result = [s for s in result if term in s.name.lower()]

    if grade is not None:
        wanted = normalize_grade(grade)
        result = [s for s in result if normalize_grade(s.grade) == wanted]

    if house_id is not None:
        result = [s for s in result if s.house_id == house_id]

    return sorted(result, key=lambda s: s.name.lower())


async def get_students(
    db: AsyncSession,
    actor: Actor,
    *,
    search: str | None = None,
    grade: str | None = None,
    house_id: int | None = None,
) -> list[Student]:
    """
    List students the actor can see, with optional filters.

    - ADMIN: every student
    - TEACHER: only students they may award points to
    """
    document = await load_document(db)
    user = resolve_actor(document, actor)
    visible = compute_accessible_students(user, document.students)
    return filter_students(visible, search=search, grade=grade, house_id=house_id)


async def create_student(
    db: AsyncSession,
    actor: Actor,
    student_data: StudentCreate,
) -> Student:
    """Create a new student with zero points, optionally in a house."""
    require_permission(actor.role, "students:write")

    document = await load_document(db)
    name = student_data.name.strip()
    if not name:
        raise ValidationError("Student name cannot be empty")
    if student_data.house_id is not None and document.get_house(student_data.house_id) is None:
        raise ValidationError("House not found")

    student = Student(
        id=document.next_id("student"),
        name=name,
        grade=student_data.grade.strip(),
        house_id=student_data.house_id,
        points=0,
    )
    document.students.append(student)
    await save_document(db, document)

    logger.info("Student %d created: %s (grade %r)", student.id, student.name, student.grade)
    return student


async def update_student(
    db: AsyncSession,
    actor: Actor,
    student_id: int,
    student_data: StudentUpdate,
) -> Student:
    """Edit a student; a house change carries their points to the new house."""
    require_permission(actor.role, "students:write")

    document = await load_document(db)
    student = _get_student_or_raise(document, student_id)
    update_data = student_data.model_dump(exclude_unset=True)

    if "name" in update_data:
        name = (update_data["name"] or "").strip()
        if not name:
            raise ValidationError("Student name cannot be empty")
        student.name = name
    if "grade" in update_data:
        student.grade = (update_data["grade"] or "").strip()
    if "house_id" in update_data:
        reassign_student_house(document, student, update_data["house_id"])

    await save_document(db, document)

    logger.info("Student %d updated: %s", student.id, ", ".join(update_data) or "no changes")
    return student


async def set_student_photo(
    db: AsyncSession,
    actor: Actor,
    student_id: int,
    photo: str | None,
) -> Student:
    """Replace (or clear) a student photo; ``photo`` is a data URL."""
    require_permission(actor.role, "students:write")

    document = await load_document(db)
    student = _get_student_or_raise(document, student_id)
    student.photo = photo
    await save_document(db, document)

    logger.info("Student %d photo %s", student.id, "updated" if photo else "cleared")
    return student


async def delete_student(db: AsyncSession, actor: Actor, student_id: int) -> None:
    """
    Delete a student.

    Their points come off their house and teachers lose the explicit grant.
    Ledger entries stay and show an empty student name.
    """
    require_permission(actor.role, "students:write")

    document = await load_document(db)
    student = _get_student_or_raise(document, student_id)

    house = document.get_house(student.house_id)
    if house:
        house.points -= student.points
    document.students.remove(student)
    for teacher in document.teachers():
        if student.id in teacher.accessible_student_ids:
            teacher.accessible_student_ids.remove(student.id)
    await save_document(db, document)

    logger.info(
        "Student %d deleted: %s (%d points removed from house %s)",
        student.id,
        student.name,
        student.points,
        student.house_id,
    )
