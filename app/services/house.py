"""House service."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ValidationError
from app.core.permissions import require_permission
from app.schemas.auth import Actor
from app.schemas.document import Document, House
from app.schemas.house import HouseCreate, HouseUpdate
from app.services.store import load_document, save_document

logger = logging.getLogger(__name__)


def _check_name(document: Document, name: str, *, house_id: int | None = None) -> str:
    """Validate a house name; names are unique regardless of case."""
    name = name.strip()
    if not name:
        raise ValidationError("House name cannot be empty")
    existing = document.get_house_by_name(name)
    if existing is not None and existing.id != house_id:
        raise ValidationError("House name already exists")
    return name


def _get_house_or_raise(document: Document, house_id: int) -> House:
    house = document.get_house(house_id)
    if house is None:
        raise NotFoundError("House not found")
    return house


async def get_houses(db: AsyncSession) -> list[House]:
    """Get all houses in creation order."""
    document = await load_document(db)
    return document.houses


async def create_house(
    db: AsyncSession,
    actor: Actor,
    house_data: HouseCreate,
    *,
    logo: str | None = None,
) -> House:
    """Create a new house with zero points."""
    require_permission(actor.role, "houses:write")

    document = await load_document(db)
    name = _check_name(document, house_data.name)
    house = House(
        id=document.next_id("house"),
        name=name,
        color=house_data.color,
        logo=logo,
        points=0,
    )
    document.houses.append(house)
    await save_document(db, document)

    logger.info("House %d created: %s", house.id, house.name)
    return house


async def update_house(
    db: AsyncSession,
    actor: Actor,
    house_id: int,
    house_data: HouseUpdate,
) -> House:
    """Rename a house or change its colour."""
    require_permission(actor.role, "houses:write")

    document = await load_document(db)
    house = _get_house_or_raise(document, house_id)
    update_data = house_data.model_dump(exclude_unset=True)

    if "name" in update_data:
        if update_data["name"] is None:
            raise ValidationError("House name cannot be empty")
        update_data["name"] = _check_name(document, update_data["name"], house_id=house.id)

    for field, value in update_data.items():
        setattr(house, field, value)

    await save_document(db, document)

    logger.info("House %d updated: %s", house.id, ", ".join(update_data) or "no changes")
    return house


async def set_house_logo(
    db: AsyncSession,
    actor: Actor,
    house_id: int,
    logo: str | None,
) -> House:
    """Replace (or clear) a house logo; ``logo`` is a data URL."""
    require_permission(actor.role, "houses:write")

    document = await load_document(db)
    house = _get_house_or_raise(document, house_id)
    house.logo = logo
    await save_document(db, document)

    logger.info("House %d logo %s", house.id, "updated" if logo else "cleared")
    return house


async def delete_house(db: AsyncSession, actor: Actor, house_id: int) -> None:
    """
    Delete a house.

    Refused while any student is assigned to it. The house's capacity limit
    goes with it and teachers whose home house it was are left without one.
    Ledger entries keep the old house ID.
    """
    require_permission(actor.role, "houses:write")

    document = await load_document(db)
    house = _get_house_or_raise(document, house_id)

    if any(s.house_id == house.id for s in document.students):
        raise ValidationError("Cannot delete house with assigned students")

    document.houses.remove(house)
    document.house_limits.pop(house.id, None)
    for teacher in document.teachers():
        if teacher.house_id == house.id:
            teacher.house_id = None
    await save_document(db, document)

    logger.info("House %d deleted: %s", house.id, house.name)
