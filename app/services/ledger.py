"""Ledger service - awards, deductions and their reversal.

Balances are maintained incrementally:

- ``student.points`` is the sum of the ledger amounts for that student
- ``house.points`` is the sum of the points of the students in that house

The ``apply_*`` functions change an in-memory document and either apply
every effect or raise before touching anything. The async functions wrap
them in a load/save of the whole document.
"""

import logging
from collections import defaultdict
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import PermissionDeniedError, ValidationError
from app.core.permissions import has_permission, require_permission
from app.schemas.auth import Actor
from app.schemas.document import Document, Student, Transaction, User
from app.schemas.transaction import TransactionCreate, TransactionRow
from app.services.access import can_access_student
from app.services.auth import resolve_actor
from app.services.store import load_document, save_document

logger = logging.getLogger(__name__)


# ============== Document operations ==============


def apply_transaction(
    document: Document,
    user: User,
    data: TransactionCreate,
    *,
    now: datetime | None = None,
) -> Transaction:
    """Credit or debit a student and their house, and record the entry."""
    if data.amount == 0:
        raise ValidationError("Points must be a non-zero whole number")

    note = data.note.strip()
    if not note:
        raise ValidationError("A reason is required")

    student = document.get_student(data.student_id)
    if student is None:
        raise ValidationError("Please select a student")

    if not can_access_student(user, student):
        raise PermissionDeniedError(f"You do not have access to {student.name}")

    house = document.get_house(student.house_id)
    txn = Transaction(
        id=document.next_id("transaction"),
        timestamp=now or datetime.now(timezone.utc),
        teacher_username=user.username,
        student_id=student.id,
        house_id=house.id if house else None,
        amount=data.amount,
        note=note,
    )

    student.points += txn.amount
    if house:
        house.points += txn.amount
    document.transactions.append(txn)

    return txn


def apply_reversal(document: Document, transaction_id: int) -> Transaction | None:
    """
    Undo a ledger entry and delete it.

    Returns None when no entry has that ID. The amount comes back off the
    student and off the house the student is in now; when the student has
    been deleted their points already left the house at deletion time, so
    only the entry is removed.
    """
    txn = document.get_transaction(transaction_id)
    if txn is None:
        return None

    student = document.get_student(txn.student_id)
    if student is not None:
        student.points -= txn.amount
        house = document.get_house(student.house_id)
        if house:
            house.points -= txn.amount

    document.transactions.remove(txn)
    return txn


def reassign_student_house(
    document: Document,
    student: Student,
    new_house_id: int | None,
) -> None:
    """Move a student, carrying their points from the old house to the new one."""
    new_house = document.get_house(new_house_id)
    if new_house_id is not None and new_house is None:
        raise ValidationError("House not found")

    if student.house_id == new_house_id:
        return

    old_house = document.get_house(student.house_id)
    if old_house:
        old_house.points -= student.points
    if new_house:
        new_house.points += student.points
    student.house_id = new_house_id


def transaction_rows(document: Document, user: User | Actor) -> list[TransactionRow]:
    """Ledger entries visible to a user, newest first."""
    if has_permission(user.role, "transactions:read_all"):
        entries = list(document.transactions)
    else:
        require_permission(user.role, "transactions:read_own")
        wanted = user.username.lower()
        entries = [t for t in document.transactions if t.teacher_username.lower() == wanted]

    entries.sort(key=lambda t: (t.timestamp, t.id), reverse=True)

    rows = []
    for txn in entries:
        student = document.get_student(txn.student_id)
        house = document.get_house(txn.house_id)
        rows.append(
            TransactionRow(
                id=txn.id,
                timestamp=txn.timestamp,
                teacher_username=txn.teacher_username,
                student_id=txn.student_id,
                student_name=student.name if student else "",
                house_id=txn.house_id,
                house_name=house.name if house else "",
                amount=txn.amount,
                note=txn.note,
            )
        )
    return rows


def audit_balances(document: Document) -> list[str]:
    """
    Compare stored balances with the ledger and house membership.

    Returns one message per mismatch; an empty list means the document is
    consistent. Nothing is repaired.
    """
    problems = []

    ledger_totals: dict[int, int] = defaultdict(int)
    for txn in document.transactions:
        ledger_totals[txn.student_id] += txn.amount

    member_totals: dict[int, int] = defaultdict(int)
    for student in document.students:
        expected = ledger_totals.get(student.id, 0)
        if student.points != expected:
            problems.append(
                f"Student {student.id} ({student.name}) has {student.points} points, "
                f"ledger says {expected}"
            )
        if student.house_id is not None:
            member_totals[student.house_id] += student.points

    for house in document.houses:
        expected = member_totals.get(house.id, 0)
        if house.points != expected:
            problems.append(
                f"House {house.id} ({house.name}) has {house.points} points, "
                f"its students add up to {expected}"
            )

    return problems


# ============== Persistent operations ==============


async def post_transaction(
    db: AsyncSession,
    actor: Actor,
    data: TransactionCreate,
) -> Transaction:
    """Award (positive amount) or deduct (negative amount) points."""
    require_permission(actor.role, "transactions:write")

    document = await load_document(db)
    user = resolve_actor(document, actor)
    txn = apply_transaction(document, user, data)
    await save_document(db, document)

    logger.info(
        "Transaction %d: %s gave %+d to student %d (house %s): %s",
        txn.id,
        txn.teacher_username,
        txn.amount,
        txn.student_id,
        txn.house_id,
        txn.note,
    )
    return txn


async def deduct_points(
    db: AsyncSession,
    actor: Actor,
    data: TransactionCreate,
) -> Transaction:
    """Take points away; the amount is always recorded as negative."""
    taken = data.model_copy(update={"amount": -abs(data.amount)})
    return await post_transaction(db, actor, taken)


async def reverse_transaction(
    db: AsyncSession,
    actor: Actor,
    transaction_id: int,
) -> bool:
    """
    Reverse a ledger entry by ID.

    - ADMIN: any entry
    - TEACHER: only entries they posted

    Returns False if no entry has that ID.
    """
    document = await load_document(db)
    user = resolve_actor(document, actor)
    txn = document.get_transaction(transaction_id)
    if txn is None:
        return False

    if not has_permission(user.role, "transactions:reverse_any"):
        require_permission(user.role, "transactions:reverse_own")
        if txn.teacher_username.lower() != user.username.lower():
            raise PermissionDeniedError("You can only delete your own transactions")

    apply_reversal(document, transaction_id)
    await save_document(db, document)

    logger.info(
        "Transaction %d reversed by %s (%+d for student %d)",
        txn.id,
        actor.username,
        txn.amount,
        txn.student_id,
    )
    return True


async def list_transactions(db: AsyncSession, actor: Actor) -> list[TransactionRow]:
    """Transactions visible to the actor, newest first."""
    document = await load_document(db)
    return transaction_rows(document, resolve_actor(document, actor))


async def check_balances(db: AsyncSession) -> list[str]:
    """Run ``audit_balances`` against the stored document."""
    document = await load_document(db)
    return audit_balances(document)
