"""Reward catalog service."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ValidationError
from app.core.permissions import require_permission
from app.schemas.auth import Actor
from app.schemas.document import Reward
from app.schemas.reward import RewardCreate
from app.services.store import load_document, save_document

logger = logging.getLogger(__name__)


async def get_rewards(db: AsyncSession, actor: Actor) -> list[Reward]:
    """Get the reward catalog."""
    require_permission(actor.role, "rewards:read")
    document = await load_document(db)
    return document.rewards


async def create_reward(db: AsyncSession, actor: Actor, reward_data: RewardCreate) -> Reward:
    """Add a reward to the catalog."""
    require_permission(actor.role, "rewards:write")

    name = reward_data.name.strip()
    if not name:
        raise ValidationError("Reward name cannot be empty")
    if reward_data.cost <= 0:
        raise ValidationError("Reward cost must be a positive number of points")

    document = await load_document(db)
    reward = Reward(id=document.next_id("reward"), name=name, cost=reward_data.cost)
    document.rewards.append(reward)
    await save_document(db, document)

    logger.info("Reward %d created: %s (%d pts)", reward.id, reward.name, reward.cost)
    return reward


async def delete_reward(db: AsyncSession, actor: Actor, reward_id: int) -> None:
    """Remove a reward from the catalog."""
    require_permission(actor.role, "rewards:write")

    document = await load_document(db)
    reward = document.get_reward(reward_id)
    if reward is None:
        raise NotFoundError("Reward not found")
    document.rewards.remove(reward)
    await save_document(db, document)

    logger.info("Reward %d deleted: %s", reward.id, reward.name)
