"""Test configuration and fixtures."""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from app.core.database import init_db
from app.core.permissions import Role
from app.schemas.auth import Actor
from app.schemas.document import Counters, Document, House, Student, User
from app.services.store import save_document


@pytest_asyncio.fixture
async def engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """Fresh SQLite database file per test."""
    test_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'house_points_test.db'}",
        echo=False,
        poolclass=NullPool,
    )
    await init_db(test_engine)
    yield test_engine
    await test_engine.dispose()


@pytest_asyncio.fixture
async def session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_maker: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    """Get database session for tests."""
    async with session_maker() as session:
        yield session


@pytest.fixture
def document() -> Document:
    """
    A small school:

    - houses Darwin(1), Curie(2), Hippocretes(3), Newton(4)
    - students Ada(1, "2nd Grade", Darwin), Ben(7, "5", Curie), Cy(9, "3", none)
    - teacher "frizzle" with grade 2 access and Ben assigned explicitly
    """
    return Document(
        users=[
            User(username="admin", password="admin123", role=Role.ADMIN),
            User(
                username="frizzle",
                password="magicbus",
                role=Role.TEACHER,
                name="Valerie Frizzle",
                house_id=1,
                grade_access=["2"],
                accessible_student_ids=[7],
            ),
            User(username="keating", password="carpe", role=Role.TEACHER, name="John Keating"),
        ],
        houses=[
            House(id=1, name="Darwin", color="blue"),
            House(id=2, name="Curie", color="yellow"),
            House(id=3, name="Hippocretes", color="green"),
            House(id=4, name="Newton", color="red"),
        ],
        students=[
            Student(id=1, name="Ada", grade="2nd Grade", house_id=1),
            Student(id=7, name="Ben", grade="5", house_id=2),
            Student(id=9, name="Cy", grade="3"),
        ],
        counters=Counters(house=5, student=10),
    )


@pytest_asyncio.fixture
async def seeded_db(db: AsyncSession, document: Document) -> AsyncSession:
    """Database holding the ``document`` fixture."""
    await save_document(db, document)
    return db


@pytest.fixture
def admin() -> Actor:
    return Actor(username="admin", role=Role.ADMIN)


@pytest.fixture
def frizzle(document: Document) -> Actor:
    return Actor.from_user(document.get_user("frizzle"))


@pytest.fixture
def keating(document: Document) -> Actor:
    return Actor.from_user(document.get_user("keating"))
