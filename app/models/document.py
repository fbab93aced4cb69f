"""Stored document model."""

from typing import Any

from sqlalchemy import JSON, Integer
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import BaseModel


class StoredDocument(BaseModel):
    """The whole application state, kept as one JSON value in a single row."""

    __tablename__ = "documents"

    schema_version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

    def __repr__(self) -> str:
        return f"<StoredDocument(id={self.id}, schema_version={self.schema_version})>"
