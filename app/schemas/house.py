"""House schemas."""

from pydantic import BaseModel, Field

from app.schemas.validators import Color


class HouseCreate(BaseModel):
    """Schema for creating a new house."""

    model_config = {"str_strip_whitespace": True}

    name: str = Field(..., max_length=100)
    color: Color = None


class HouseUpdate(BaseModel):
    """Schema for updating a house."""

    model_config = {"str_strip_whitespace": True}

    name: str | None = Field(None, max_length=100)
    color: Color = None


class HouseCapacity(BaseModel):
    """Member count and optional limit of one house."""

    house_id: int
    name: str
    count: int
    limit: int | None = None

    @property
    def is_full(self) -> bool:
        return self.limit is not None and self.count >= self.limit
