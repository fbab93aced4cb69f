# Database models

from app.models.document import StoredDocument

__all__ = [
    "StoredDocument",
]
