"""Tests for the sorting wheel."""

import random

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from app.schemas.auth import Actor
from app.schemas.document import Document
from app.schemas.transaction import TransactionCreate
from app.services.ledger import apply_transaction, audit_balances
from app.services.sorting import (
    FIRST_SPIN_ROTATIONS,
    RESPIN_ROTATIONS,
    get_house_capacities,
    house_capacities,
    segment_for_angle,
    set_house_limit,
    sort_student,
    spin_wheel,
    wheel_categories,
)
from app.services.store import load_document


class ScriptedRandom:
    """Stand-in for random.Random that rests at preset angles."""

    def __init__(self, *angles: int):
        self.angles = list(angles)

    def randint(self, low: int, high: int) -> int:
        return low

    def randrange(self, stop: int) -> int:
        return self.angles.pop(0)


# With the four default arcs (90 degrees each), the pointer reads:
#   0 -> Darwin, 270 -> Curie, 180 -> Hippocretes, 90 -> Newton
DARWIN, CURIE, HIPPOCRETES, NEWTON = 0, 270, 180, 90


class TestSegmentForAngle:
    """Tests for mapping a resting angle to an arc."""

    @pytest.mark.parametrize(
        ("angle", "segment"),
        [(0, 0), (1, 3), (45, 3), (90, 3), (91, 2), (180, 2), (270, 1), (271, 0), (300, 0), (359, 0), (720, 0)],
    )
    def test_four_arcs(self, angle, segment):
        assert segment_for_angle(angle, 4) == segment

    def test_single_arc(self):
        assert all(segment_for_angle(a, 1) == 0 for a in range(0, 360, 7))


class TestWheelCategories:
    """Tests for arc names."""

    def test_configured_names(self, document: Document):
        assert wheel_categories(document, ["A", "B"]) == ["A", "B"]

    def test_empty_falls_back_to_house_names(self, document: Document):
        """Test an empty category list uses the house names in order."""
        assert wheel_categories(document, []) == ["Darwin", "Curie", "Hippocretes", "Newton"]


class TestSpinWheel:
    """Tests for spin_wheel."""

    def test_lands_in_drawn_house(self, document: Document):
        """Test an unsorted student goes to the house under the pointer."""
        result = spin_wheel(document, 9, rng=ScriptedRandom(CURIE))

        assert result.resolved
        assert result.house_id == 2
        assert result.house_name == "Curie"
        assert result.attempts == 1
        assert result.spins[0].rotations == FIRST_SPIN_ROTATIONS[0]
        assert document.get_student(9).house_id == 2

    def test_full_house_is_respun(self, document: Document):
        """Test a draw on a full house spins again with fewer rotations."""
        document.house_limits[2] = 1  # Ben already fills Curie

        result = spin_wheel(document, 9, rng=ScriptedRandom(CURIE, DARWIN))

        assert result.resolved
        assert result.house_name == "Darwin"
        assert [s.eligible for s in result.spins] == [False, True]
        assert result.spins[1].rotations == RESPIN_ROTATIONS[0]
        assert document.get_student(9).house_id == 1

    def test_student_does_not_count_against_own_house(self, document: Document):
        """Test re-sorting a student into the house they already fill is allowed."""
        document.house_limits[2] = 1

        result = spin_wheel(document, 7, rng=ScriptedRandom(CURIE))

        assert result.resolved
        assert result.house_id == 2

    def test_limit_is_never_exceeded(self, document: Document):
        """Test no spin places a student into a house at its limit."""
        for house in document.houses:
            document.house_limits[house.id] = 1
        # Darwin and Curie are full; Hippocretes and Newton have room
        rng = random.Random(2024)

        result = spin_wheel(document, 9, max_attempts=50, rng=rng)

        assert result.resolved
        assert result.house_name in ("Hippocretes", "Newton")
        for house in document.houses:
            assert document.house_member_count(house.id) <= 1

    def test_unresolved_after_max_attempts(self, document: Document):
        """Test every house full leaves the student where they were."""
        for house in document.houses:
            document.house_limits[house.id] = 0
        before = document.model_copy(deep=True)

        result = spin_wheel(
            document, 9, max_attempts=3, rng=ScriptedRandom(DARWIN, CURIE, NEWTON)
        )

        assert not result.resolved
        assert result.house_id is None
        assert result.attempts == 3
        assert [s.house_name for s in result.spins] == ["Darwin", "Curie", "Newton"]
        assert document == before

    def test_cumulative_angle_tracks_resting_angle(self, document: Document):
        """Test the cumulative angle always rests where the draw says."""
        for house in document.houses:
            document.house_limits[house.id] = 0

        result = spin_wheel(document, 9, max_attempts=20, rng=random.Random(7))

        assert result.attempts == 20
        previous = 0
        for index, spin in enumerate(result.spins):
            low, high = FIRST_SPIN_ROTATIONS if index == 0 else RESPIN_ROTATIONS
            assert low <= spin.rotations <= high
            assert 0 <= spin.angle < 360
            assert spin.cumulative_angle % 360 == spin.angle
            assert spin.cumulative_angle > previous
            previous = spin.cumulative_angle
        assert result.final_angle == result.spins[-1].cumulative_angle

    def test_unmatched_category_falls_back_to_position(self, document: Document):
        """Test an arc with no house of that name picks the house at the same index."""
        # Two arcs of 180 degrees: angle 90 is under arc 1
        result = spin_wheel(document, 9, categories=["Red", "Blue"], rng=ScriptedRandom(90))

        assert result.spins[0].category == "Blue"
        assert result.house_name == "Curie"

    def test_category_match_ignores_case(self, document: Document):
        result = spin_wheel(
            document, 9, categories=["newton", "darwin"], rng=ScriptedRandom(90)
        )
        assert result.house_name == "Darwin"

    def test_points_move_with_the_student(self, document: Document):
        """Test sorting carries the student's points to the new house."""
        admin = document.get_user("admin")
        apply_transaction(document, admin, TransactionCreate(student_id=1, amount=9, note="Quiz"))

        spin_wheel(document, 1, rng=ScriptedRandom(NEWTON))

        assert document.get_house(1).points == 0
        assert document.get_house(4).points == 9
        assert audit_balances(document) == []

    def test_unknown_student(self, document: Document):
        with pytest.raises(ValidationError):
            spin_wheel(document, 404, rng=ScriptedRandom(0))

    def test_no_houses(self, document: Document):
        """Test the wheel refuses to spin without houses."""
        document.houses.clear()
        with pytest.raises(ValidationError) as exc_info:
            spin_wheel(document, 9, rng=ScriptedRandom(0))
        assert exc_info.value.message == "Add houses before using the sorting wheel"

    def test_max_attempts_must_be_positive(self, document: Document):
        with pytest.raises(ValidationError):
            spin_wheel(document, 9, max_attempts=0, rng=ScriptedRandom(0))


class TestHouseCapacities:
    """Tests for the capacity table."""

    def test_counts_and_limits(self, document: Document):
        document.house_limits[1] = 1
        capacities = {c.name: c for c in house_capacities(document)}

        assert capacities["Darwin"].count == 1
        assert capacities["Darwin"].is_full
        assert capacities["Curie"].limit is None
        assert not capacities["Curie"].is_full


class TestSortStudent:
    """Tests for persisted sorting."""

    async def test_resolved_sort_is_saved(self, seeded_db: AsyncSession, admin: Actor):
        result = await sort_student(seeded_db, admin, 9, rng=ScriptedRandom(HIPPOCRETES))

        assert result.resolved
        document = await load_document(seeded_db)
        assert document.get_student(9).house_id == 3

    async def test_teacher_cannot_sort(self, seeded_db: AsyncSession, frizzle: Actor):
        with pytest.raises(PermissionDeniedError):
            await sort_student(seeded_db, frizzle, 9, rng=ScriptedRandom(0))

    async def test_limits_apply(self, seeded_db: AsyncSession, admin: Actor):
        """Test a stored limit sends the student elsewhere."""
        await set_house_limit(seeded_db, admin, 3, 0)

        result = await sort_student(
            seeded_db, admin, 9, rng=ScriptedRandom(HIPPOCRETES, NEWTON)
        )

        assert result.house_name == "Newton"


class TestSetHouseLimit:
    """Tests for house limits."""

    async def test_set_and_clear(self, seeded_db: AsyncSession, admin: Actor):
        capacity = await set_house_limit(seeded_db, admin, 1, 1)
        assert capacity.is_full

        capacity = await set_house_limit(seeded_db, admin, 1, None)
        assert capacity.limit is None

        document = await load_document(seeded_db)
        assert 1 not in document.house_limits

    async def test_limit_survives_reload(self, seeded_db: AsyncSession, admin: Actor):
        await set_house_limit(seeded_db, admin, 2, 5)

        capacities = await get_house_capacities(seeded_db, admin)
        assert {c.house_id: c.limit for c in capacities}[2] == 5

    async def test_negative_limit(self, seeded_db: AsyncSession, admin: Actor):
        with pytest.raises(ValidationError):
            await set_house_limit(seeded_db, admin, 1, -1)

    async def test_unknown_house(self, seeded_db: AsyncSession, admin: Actor):
        with pytest.raises(NotFoundError):
            await set_house_limit(seeded_db, admin, 99, 3)
