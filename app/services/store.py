"""Document store - whole-document load and save.

Every operation reads the full document, changes it in memory and writes the
full document back. There are no partial writes; a failed operation never
reaches ``save_document`` so the stored copy stays as it was.
"""

import copy
import logging
from typing import Any

from pydantic import ValidationError as SchemaValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import CorruptDocumentError
from app.core.permissions import Role, require_permission
from app.models.document import StoredDocument
from app.schemas.auth import Actor
from app.schemas.document import SCHEMA_VERSION, Document, User

logger = logging.getLogger(__name__)

DOCUMENT_ROW_ID = 1

REQUIRED_LISTS = ("users", "houses", "students", "transactions")

# Top-level counters of the legacy layout -> key inside "counters"
LEGACY_COUNTERS = {
    "nextHouseId": "house",
    "nextStudentId": "student",
    "nextTransactionId": "transaction",
    "nextRewardId": "reward",
}

COUNTED_LISTS = {
    "house": "houses",
    "student": "students",
    "transaction": "transactions",
    "reward": "rewards",
}


def new_document() -> Document:
    """Empty document holding only the default admin account."""
    admin = User(
        username=settings.DEFAULT_ADMIN_USERNAME,
        password=settings.DEFAULT_ADMIN_PASSWORD,
        role=Role.ADMIN,
    )
    return Document(users=[admin])


def check_shape(raw: Any) -> None:
    """Minimal structural check; refuse to work on anything else."""
    if not isinstance(raw, dict):
        raise CorruptDocumentError("Stored document is not a JSON object")
    for key in REQUIRED_LISTS:
        if not isinstance(raw.get(key), list):
            raise CorruptDocumentError(f"Stored document has no '{key}' list")
    version = raw.get("schemaVersion")
    if isinstance(version, int) and version > SCHEMA_VERSION:
        raise CorruptDocumentError(
            f"Stored document has schema version {version}, "
            f"this program understands up to {SCHEMA_VERSION}"
        )


def migrate_document(raw: dict[str, Any]) -> tuple[dict[str, Any], bool]:
    """
    Bring an older document layout up to date.

    - teacher records without ``accessibleStudentIds``/``gradeAccess`` get
      empty lists
    - missing ``rewards``/``houseLimits`` are created; house limits that
      are not whole numbers are dropped
    - top-level ``next*Id`` counters move into ``counters``; counters are
      kept ahead of every ID already in use
    - transactions without an ID are numbered

    Returns the migrated copy and whether anything changed.
    """
    data = copy.deepcopy(raw)
    changed = False

    for user in data["users"]:
        if isinstance(user, dict) and user.get("role") == Role.TEACHER.value:
            for key in ("accessibleStudentIds", "gradeAccess"):
                if not isinstance(user.get(key), list):
                    user[key] = []
                    changed = True

    if not isinstance(data.get("rewards"), list):
        data["rewards"] = []
        changed = True
    if not isinstance(data.get("houseLimits"), dict):
        data["houseLimits"] = {}
        changed = True
    for house_id, limit in list(data["houseLimits"].items()):
        # null (a NaN limit in the legacy layout) means no limit
        if isinstance(limit, float) and limit.is_integer():
            data["houseLimits"][house_id] = int(limit)
            changed = True
        elif isinstance(limit, bool) or not isinstance(limit, int):
            del data["houseLimits"][house_id]
            changed = True

    counters = data.get("counters")
    if not isinstance(counters, dict):
        counters = {}
        data["counters"] = counters
        changed = True
    for legacy_key, name in LEGACY_COUNTERS.items():
        if legacy_key in data:
            value = data.pop(legacy_key)
            if isinstance(value, int) and name not in counters:
                counters[name] = value
            changed = True

    for name, list_key in COUNTED_LISTS.items():
        highest = max(
            (
                item["id"]
                for item in data[list_key]
                if isinstance(item, dict) and isinstance(item.get("id"), int)
            ),
            default=0,
        )
        if not isinstance(counters.get(name), int) or counters[name] <= highest:
            counters[name] = highest + 1
            changed = True

    for txn in data["transactions"]:
        if isinstance(txn, dict) and txn.get("id") is None:
            txn["id"] = counters["transaction"]
            counters["transaction"] += 1
            changed = True

    if data.get("schemaVersion") != SCHEMA_VERSION:
        data["schemaVersion"] = SCHEMA_VERSION
        changed = True

    return data, changed


def parse_document(raw: Any) -> tuple[Document, bool]:
    """Shape-check, migrate and validate raw stored data."""
    check_shape(raw)
    data, changed = migrate_document(raw)
    try:
        document = Document.model_validate(data)
    except SchemaValidationError as exc:
        raise CorruptDocumentError(
            f"Stored document is invalid ({exc.error_count()} problem(s)): {exc.errors()[0]['msg']}"
        ) from exc
    return document, changed


async def get_stored_document(db: AsyncSession) -> StoredDocument | None:
    """Get the document row, if one was ever written."""
    result = await db.execute(
        select(StoredDocument).where(StoredDocument.id == DOCUMENT_ROW_ID)
    )
    return result.scalar_one_or_none()


async def save_document(db: AsyncSession, document: Document) -> None:
    """Replace the stored document with this one."""
    data = document.to_storage()
    stored = await get_stored_document(db)

    if stored is None:
        stored = StoredDocument(
            id=DOCUMENT_ROW_ID,
            schema_version=document.schema_version,
            data=data,
        )
        db.add(stored)
    else:
        stored.schema_version = document.schema_version
        stored.data = data

    await db.commit()


async def load_document(db: AsyncSession) -> Document:
    """
    Load the document.

    An empty database is seeded with the default admin account. A document
    that needed migrating is written back straight away so later loads skip
    the repair.
    """
    stored = await get_stored_document(db)

    if stored is None:
        document = new_document()
        await save_document(db, document)
        logger.info(
            "Created new document with admin account %r", settings.DEFAULT_ADMIN_USERNAME
        )
        return document

    document, changed = parse_document(stored.data)
    if changed:
        await save_document(db, document)
        logger.info("Migrated stored document to schema version %s", SCHEMA_VERSION)

    return document


async def export_document(db: AsyncSession, actor: Actor) -> dict[str, Any]:
    """JSON-ready copy of the whole document."""
    require_permission(actor.role, "document:export")
    document = await load_document(db)
    return document.to_storage()


async def import_document(db: AsyncSession, actor: Actor, raw: Any) -> Document:
    """Replace the stored document with imported data (migrated on the way in)."""
    require_permission(actor.role, "document:import")
    document, _ = parse_document(raw)
    await save_document(db, document)
    logger.info(
        "Imported document: %d houses, %d students, %d transactions",
        len(document.houses),
        len(document.students),
        len(document.transactions),
    )
    return document
