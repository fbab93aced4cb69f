"""Access filter - which students a user may award points to."""

from typing import Protocol

from app.core.grades import CANONICAL_GRADES, normalize_grade
from app.core.permissions import Role
from app.schemas.document import Student

ASSIGNED_GROUP = "assigned"


class Grantee(Protocol):
    """Anything carrying a role and teacher grants (a stored User or an Actor)."""

    role: Role
    grade_access: list[str] | None
    accessible_student_ids: list[int] | None


def _grants(user: Grantee) -> tuple[set[str], set[int]]:
    grades = {normalize_grade(g) for g in (user.grade_access or [])}
    grades.discard("")
    return grades, set(user.accessible_student_ids or [])


def can_access_student(user: Grantee, student: Student) -> bool:
    """Check if a user may act on one student."""
    if user.role == Role.ADMIN:
        return True
    grades, student_ids = _grants(user)
    return student.id in student_ids or normalize_grade(student.grade) in grades


def compute_accessible_students(user: Grantee, students: list[Student]) -> list[Student]:
    """
    Students a user may act on, in document order.

    - ADMIN: every student
    - TEACHER: students explicitly assigned to them plus every student whose
      grade is in their grade access. No grants means no students.
    """
    if user.role == Role.ADMIN:
        return list(students)
    return [s for s in students if can_access_student(user, s)]


def group_accessible_students(
    user: Grantee, students: list[Student]
) -> dict[str, list[Student]]:
    """
    Accessible students grouped for selection lists.

    Teachers get one group per granted grade (in K-5 order) and an
    "assigned" group for explicit grants outside those grades. Admins get
    one group per canonical grade plus "assigned" for everyone else.
    Students are sorted by name within a group; empty groups are kept so a
    granted grade with no students still shows up.
    """
    accessible = compute_accessible_students(user, students)

    if user.role == Role.ADMIN:
        grade_keys = list(CANONICAL_GRADES)
    else:
        grades, _ = _grants(user)
        grade_keys = [g for g in CANONICAL_GRADES if g in grades]
        grade_keys += sorted(g for g in grades if g not in CANONICAL_GRADES)

    groups: dict[str, list[Student]] = {key: [] for key in grade_keys}
    for student in accessible:
        grade = normalize_grade(student.grade)
        groups.setdefault(grade if grade in groups else ASSIGNED_GROUP, []).append(student)

    for members in groups.values():
        members.sort(key=lambda s: s.name.lower())
    return groups
