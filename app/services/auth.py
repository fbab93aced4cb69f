"""Authentication service."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import PermissionDeniedError
from app.schemas.auth import Actor, LoginRequest
from app.schemas.document import Document, User
from app.services.store import load_document

logger = logging.getLogger(__name__)


async def authenticate(db: AsyncSession, credentials: LoginRequest) -> Actor | None:
    """Authenticate a user; usernames are matched without regard to case."""
    document = await load_document(db)
    user = document.get_user(credentials.username)

    if not user or user.password != credentials.password:
        logger.info("Failed login for %r", credentials.username)
        return None

    return Actor.from_user(user)


def resolve_actor(document: Document, actor: Actor) -> User:
    """Current stored record of the acting user.

    Grants may have changed since login, so access decisions use the stored
    record rather than the session copy.
    """
    user = document.get_user(actor.username)
    if user is None or user.role != actor.role:
        raise PermissionDeniedError(f"Account {actor.username!r} no longer exists")
    return user
