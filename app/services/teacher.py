"""Teacher account service."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ValidationError
from app.core.grades import format_grade_access, normalize_grade_access
from app.core.permissions import Role, require_permission
from app.schemas.auth import Actor
from app.schemas.document import Document, User
from app.schemas.teacher import TeacherCreate, TeacherSummary, TeacherUpdate
from app.services.store import load_document, save_document

logger = logging.getLogger(__name__)


def _get_teacher_or_raise(document: Document, username: str) -> User:
    user = document.get_user(username)
    if user is None or user.role != Role.TEACHER:
        raise NotFoundError("Teacher not found")
    return user


def _check_house(document: Document, house_id: int | None) -> None:
    if house_id is not None and document.get_house(house_id) is None:
        raise ValidationError("House not found")


def _check_student_ids(document: Document, student_ids: list[int]) -> list[int]:
    """Validate explicit grants; duplicates are dropped, order kept."""
    unknown = [sid for sid in student_ids if document.get_student(sid) is None]
    if unknown:
        raise ValidationError(f"Unknown student ID(s): {', '.join(map(str, unknown))}")
    return list(dict.fromkeys(student_ids))


def teacher_summaries(document: Document) -> list[TeacherSummary]:
    """Rows for the teacher list."""
    rows = []
    for teacher in document.teachers():
        house = document.get_house(teacher.house_id)
        rows.append(
            TeacherSummary(
                username=teacher.username,
                name=teacher.name,
                house_name=house.name if house else None,
                grades=format_grade_access(teacher.grade_access or []),
                assigned_count=len(teacher.accessible_student_ids or []),
            )
        )
    return rows


async def get_teachers(db: AsyncSession, actor: Actor) -> list[TeacherSummary]:
    """List teacher accounts."""
    require_permission(actor.role, "teachers:write")
    document = await load_document(db)
    return teacher_summaries(document)


async def create_teacher(
    db: AsyncSession,
    actor: Actor,
    teacher_data: TeacherCreate,
) -> User:
    """Create a teacher profile; the username is stored lower-cased."""
    require_permission(actor.role, "teachers:write")

    document = await load_document(db)
    name = teacher_data.name.strip()
    username = teacher_data.username.strip().lower()
    password = teacher_data.password.strip()
    if not name or not username or not password:
        raise ValidationError("Name, username and password are required")
    if document.get_user(username) is not None:
        raise ValidationError("Username already exists")
    _check_house(document, teacher_data.house_id)

    teacher = User(
        username=username,
        password=password,
        role=Role.TEACHER,
        name=name,
        house_id=teacher_data.house_id,
        grade_access=normalize_grade_access(teacher_data.grade_access),
        accessible_student_ids=_check_student_ids(document, teacher_data.accessible_student_ids),
    )
    document.users.append(teacher)
    await save_document(db, document)

    logger.info("Teacher %r created (grades: %s)", teacher.username, teacher.grade_access)
    return teacher


async def update_teacher(
    db: AsyncSession,
    actor: Actor,
    username: str,
    teacher_data: TeacherUpdate,
) -> User:
    """Edit a teacher's name, home house or grade access."""
    require_permission(actor.role, "teachers:write")

    document = await load_document(db)
    teacher = _get_teacher_or_raise(document, username)
    update_data = teacher_data.model_dump(exclude_unset=True)

    if "house_id" in update_data:
        _check_house(document, update_data["house_id"])
    if "grade_access" in update_data:
        update_data["grade_access"] = normalize_grade_access(update_data["grade_access"] or [])
    if "name" in update_data:
        update_data["name"] = (update_data["name"] or "").strip() or None

    for field, value in update_data.items():
        setattr(teacher, field, value)

    await save_document(db, document)

    logger.info("Teacher %r updated: %s", teacher.username, ", ".join(update_data) or "no changes")
    return teacher


async def set_teacher_password(
    db: AsyncSession,
    actor: Actor,
    username: str,
    new_password: str,
) -> User:
    """Change a teacher's password."""
    require_permission(actor.role, "teachers:write")

    document = await load_document(db)
    teacher = _get_teacher_or_raise(document, username)
    if not new_password.strip():
        raise ValidationError("Password cannot be empty")
    teacher.password = new_password.strip()
    await save_document(db, document)

    logger.info("Password changed for teacher %r", teacher.username)
    return teacher


async def set_accessible_students(
    db: AsyncSession,
    actor: Actor,
    username: str,
    student_ids: list[int],
) -> User:
    """Replace a teacher's explicit student grants."""
    require_permission(actor.role, "teachers:write")

    document = await load_document(db)
    teacher = _get_teacher_or_raise(document, username)
    teacher.accessible_student_ids = _check_student_ids(document, student_ids)
    await save_document(db, document)

    logger.info(
        "Teacher %r now has %d assigned student(s)",
        teacher.username,
        len(teacher.accessible_student_ids),
    )
    return teacher


async def grant_student(db: AsyncSession, actor: Actor, username: str, student_id: int) -> User:
    """Add one explicit student grant."""
    require_permission(actor.role, "teachers:write")

    document = await load_document(db)
    teacher = _get_teacher_or_raise(document, username)
    _check_student_ids(document, [student_id])
    if student_id not in teacher.accessible_student_ids:
        teacher.accessible_student_ids.append(student_id)
        await save_document(db, document)
        logger.info("Teacher %r granted student %d", teacher.username, student_id)
    return teacher


async def revoke_student(db: AsyncSession, actor: Actor, username: str, student_id: int) -> User:
    """Remove one explicit student grant; grade access is unaffected."""
    require_permission(actor.role, "teachers:write")

    document = await load_document(db)
    teacher = _get_teacher_or_raise(document, username)
    if student_id in teacher.accessible_student_ids:
        teacher.accessible_student_ids.remove(student_id)
        await save_document(db, document)
        logger.info("Teacher %r no longer assigned student %d", teacher.username, student_id)
    return teacher


async def delete_teacher(db: AsyncSession, actor: Actor, username: str) -> None:
    """Delete a teacher account. Their ledger entries stay."""
    require_permission(actor.role, "teachers:write")

    document = await load_document(db)
    teacher = _get_teacher_or_raise(document, username)
    document.users.remove(teacher)
    await save_document(db, document)

    logger.info("Teacher %r deleted", teacher.username)
