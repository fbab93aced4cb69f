"""Pydantic schemas."""

from app.schemas.auth import Actor, LoginRequest
from app.schemas.document import (
    Counters,
    Document,
    House,
    Reward,
    Student,
    Transaction,
    User,
)

__all__ = [
    # Auth
    "Actor",
    "LoginRequest",
    # Document
    "Counters",
    "Document",
    "House",
    "Reward",
    "Student",
    "Transaction",
    "User",
]
