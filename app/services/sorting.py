"""Sorting wheel service - random house assignment under capacity limits.

The wheel is split into equal arcs, one per category name, laid out
clockwise from a fixed pointer. A spin lands on an angle; the arc under the
pointer names the house. When that house is full the wheel is spun again,
up to a fixed number of draws.
"""

import logging
import random

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import NotFoundError, ValidationError
from app.core.permissions import require_permission
from app.schemas.auth import Actor
from app.schemas.document import Document, House
from app.schemas.house import HouseCapacity
from app.schemas.sorting import Spin, SortingResult
from app.services.ledger import reassign_student_house
from app.services.store import load_document, save_document

logger = logging.getLogger(__name__)

FIRST_SPIN_ROTATIONS = (4, 7)
RESPIN_ROTATIONS = (1, 4)


def wheel_categories(document: Document, categories: list[str] | None = None) -> list[str]:
    """Arc names; falls back to the house names when none are configured."""
    if categories is None:
        categories = settings.SORTING_CATEGORIES
    if categories:
        return list(categories)
    return [h.name for h in document.houses]


def segment_for_angle(angle: int, segment_count: int) -> int:
    """Index of the arc under the pointer once the wheel has turned ``angle`` degrees."""
    arc = 360 / segment_count
    # The wheel turns clockwise under a fixed pointer
    under_pointer = (360 - angle % 360) % 360
    return min(int(under_pointer // arc), segment_count - 1)


def resolve_house(document: Document, categories: list[str], segment: int) -> House | None:
    """House named by an arc, or the house at the same position when no name matches."""
    house = document.get_house_by_name(categories[segment % len(categories)])
    if house is None and document.houses:
        house = document.houses[segment % len(document.houses)]
    return house


def is_eligible(document: Document, house: House, student_id: int) -> bool:
    """A house can take the student if it has no limit or room below it."""
    limit = document.house_limits.get(house.id)
    if limit is None:
        return True
    # The student being sorted does not take a place from their own house
    return document.house_member_count(house.id, exclude_student_id=student_id) < limit


def spin_wheel(
    document: Document,
    student_id: int,
    *,
    categories: list[str] | None = None,
    max_attempts: int | None = None,
    rng: random.Random | None = None,
) -> SortingResult:
    """
    Spin until the student lands in a house with room, then move them there.

    Each draw is a whole number of extra rotations plus a random resting
    angle in [0, 360). Only the resting angle decides the arc; the
    cumulative angle is kept so a display can keep turning the same way.

    The result is unresolved, and the document unchanged, when all
    ``max_attempts`` draws land on full houses.
    """
    student = document.get_student(student_id)
    if student is None:
        raise ValidationError("Please select a student")
    if not document.houses:
        raise ValidationError("Add houses before using the sorting wheel")

    arcs = wheel_categories(document, categories)
    if max_attempts is None:
        max_attempts = settings.SORTING_MAX_ATTEMPTS
    if max_attempts < 1:
        raise ValidationError("The wheel needs at least one attempt")
    rng = rng or random.Random()

    spins: list[Spin] = []
    cumulative = 0
    for attempt in range(max_attempts):
        low, high = FIRST_SPIN_ROTATIONS if attempt == 0 else RESPIN_ROTATIONS
        rotations = rng.randint(low, high)
        angle = rng.randrange(360)
        cumulative += rotations * 360 + angle - cumulative % 360

        segment = segment_for_angle(angle, len(arcs))
        house = resolve_house(document, arcs, segment)
        eligible = house is not None and is_eligible(document, house, student.id)
        spins.append(
            Spin(
                rotations=rotations,
                angle=angle,
                cumulative_angle=cumulative,
                segment=segment,
                category=arcs[segment],
                house_id=house.id if house else None,
                house_name=house.name if house else None,
                eligible=eligible,
            )
        )

        if eligible:
            reassign_student_house(document, student, house.id)
            return SortingResult(
                student_id=student.id,
                resolved=True,
                house_id=house.id,
                house_name=house.name,
                spins=spins,
            )

    return SortingResult(student_id=student.id, resolved=False, spins=spins)


def house_capacities(document: Document) -> list[HouseCapacity]:
    """Member count and limit for every house."""
    return [
        HouseCapacity(
            house_id=h.id,
            name=h.name,
            count=document.house_member_count(h.id),
            limit=document.house_limits.get(h.id),
        )
        for h in document.houses
    ]


# ============== Persistent operations ==============


async def sort_student(
    db: AsyncSession,
    actor: Actor,
    student_id: int,
    *,
    rng: random.Random | None = None,
) -> SortingResult:
    """Spin the wheel for one student and save the placement."""
    require_permission(actor.role, "sorting:run")

    document = await load_document(db)
    result = spin_wheel(document, student_id, rng=rng)

    if result.resolved:
        await save_document(db, document)
        logger.info(
            "Student %d sorted into %s after %d spin(s)",
            student_id,
            result.house_name,
            result.attempts,
        )
    else:
        logger.warning(
            "Could not place student %d: every house drawn in %d spins was full",
            student_id,
            result.attempts,
        )
    return result


async def get_house_capacities(db: AsyncSession, actor: Actor) -> list[HouseCapacity]:
    """Capacity table for the sorting wheel settings."""
    require_permission(actor.role, "sorting:run")
    document = await load_document(db)
    return house_capacities(document)


async def set_house_limit(
    db: AsyncSession,
    actor: Actor,
    house_id: int,
    limit: int | None,
) -> HouseCapacity:
    """Set or clear (``None``) the maximum number of students in a house."""
    require_permission(actor.role, "houses:write")

    document = await load_document(db)
    house = document.get_house(house_id)
    if house is None:
        raise NotFoundError("House not found")
    if limit is not None and limit < 0:
        raise ValidationError("A house limit cannot be negative")

    if limit is None:
        document.house_limits.pop(house_id, None)
    else:
        document.house_limits[house_id] = limit
    await save_document(db, document)

    logger.info("House %d limit set to %s", house_id, "none" if limit is None else limit)
    return HouseCapacity(
        house_id=house.id,
        name=house.name,
        count=document.house_member_count(house.id),
        limit=limit,
    )
