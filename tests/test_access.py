"""Tests for the access filter."""

from app.core.permissions import Role
from app.schemas.document import Document, Student, User
from app.services.access import (
    ASSIGNED_GROUP,
    can_access_student,
    compute_accessible_students,
    group_accessible_students,
)


def _ids(students: list[Student]) -> list[int]:
    return [s.id for s in students]


class TestComputeAccessibleStudents:
    """Tests for compute_accessible_students."""

    def test_explicit_and_grade_access_are_combined(self):
        """Test a teacher sees assigned students plus everyone in granted grades."""
        teacher = User(
            username="t",
            password="x",
            role=Role.TEACHER,
            accessible_student_ids=[7],
            grade_access=["2"],
        )
        students = [
            Student(id=1, name="A", grade="2nd Grade"),
            Student(id=7, name="B", grade="5"),
            Student(id=9, name="C", grade="3"),
        ]

        assert set(_ids(compute_accessible_students(teacher, students))) == {1, 7}

    def test_teacher_without_grants_sees_nobody(self, document: Document):
        """Test no grants means no students."""
        keating = document.get_user("keating")
        assert compute_accessible_students(keating, document.students) == []

    def test_admin_sees_everyone(self, document: Document):
        """Test admins see every student in document order."""
        admin = document.get_user("admin")
        assert _ids(compute_accessible_students(admin, document.students)) == [1, 7, 9]

    def test_grade_labels_are_normalized_on_both_sides(self):
        """Test "Kindergarten" grants match students graded "k"."""
        teacher = User(username="t", password="x", role=Role.TEACHER, grade_access=["Kindergarten"])
        students = [Student(id=1, name="A", grade="k"), Student(id=2, name="B", grade="1")]

        assert _ids(compute_accessible_students(teacher, students)) == [1]

    def test_student_without_grade_only_by_assignment(self):
        """Test an ungraded student is reachable only through an explicit grant."""
        student = Student(id=3, name="D", grade="")
        by_grade = User(username="t", password="x", role=Role.TEACHER, grade_access=["K", "1"])
        by_id = User(username="u", password="x", role=Role.TEACHER, accessible_student_ids=[3])

        assert not can_access_student(by_grade, student)
        assert can_access_student(by_id, student)

    def test_accessible_set_follows_grants(self, document: Document):
        """Test access changes as soon as the grants change."""
        frizzle = document.get_user("frizzle")
        frizzle.accessible_student_ids = []
        assert _ids(compute_accessible_students(frizzle, document.students)) == [1]

        frizzle.grade_access.append("3")
        assert _ids(compute_accessible_students(frizzle, document.students)) == [1, 9]


class TestGroupAccessibleStudents:
    """Tests for selection-list grouping."""

    def test_teacher_groups(self, document: Document):
        """Test granted grades get their own group and the rest go to assigned."""
        frizzle = document.get_user("frizzle")
        groups = group_accessible_students(frizzle, document.students)

        assert list(groups) == ["2", ASSIGNED_GROUP]
        assert [s.name for s in groups["2"]] == ["Ada"]
        assert [s.name for s in groups[ASSIGNED_GROUP]] == ["Ben"]

    def test_granted_grade_without_students_is_kept(self):
        """Test an empty granted grade still appears."""
        teacher = User(username="t", password="x", role=Role.TEACHER, grade_access=["K", "4"])
        groups = group_accessible_students(teacher, [Student(id=1, name="A", grade="4")])

        assert list(groups) == ["K", "4"]
        assert groups["K"] == []

    def test_admin_groups_in_grade_order(self, document: Document):
        """Test admins get every canonical grade, sorted by name within a group."""
        document.students.append(Student(id=10, name="aaron", grade="5th Grade"))
        document.students.append(Student(id=11, name="Zed", grade="7"))
        admin = document.get_user("admin")

        groups = group_accessible_students(admin, document.students)

        assert list(groups)[:6] == ["K", "1", "2", "3", "4", "5"]
        assert [s.name for s in groups["5"]] == ["aaron", "Ben"]
        assert [s.name for s in groups[ASSIGNED_GROUP]] == ["Zed"]
