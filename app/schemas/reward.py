"""Reward schemas."""

from pydantic import BaseModel, Field


class RewardCreate(BaseModel):
    """Schema for adding a reward to the catalog."""

    model_config = {"str_strip_whitespace": True}

    name: str = Field(..., max_length=100)
    cost: int
