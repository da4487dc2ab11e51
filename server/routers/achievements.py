"""
Achievements API router for the event tracker.

Evaluating a user's achievements also records any unlocks that their
current events newly qualify for.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from models.achievements import AchievementTier
from models.events import Sport
from routers.stats import require_user_id
from services.achievement_service import AchievementService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/achievements", tags=["achievements"])


class AchievementResponse(BaseModel):
    """Achievement definition response."""
    id: str
    name: str
    description: str
    icon: str
    tier: AchievementTier
    criteria_type: str
    threshold: int
    sport: Optional[Sport] = None


# Set by main.py during startup
_achievement_service: Optional[AchievementService] = None


def set_achievement_service(service: Optional[AchievementService]) -> None:
    """Set the achievement service instance (called from main.py)."""
    global _achievement_service
    _achievement_service = service


def get_achievement_service_dep() -> AchievementService:
    """Dependency to get achievement service."""
    if _achievement_service is None:
        raise HTTPException(status_code=503, detail="Achievement service not initialized")
    return _achievement_service


@router.get("", response_model=dict)
async def get_achievements(
    user_id: str = Depends(require_user_id),
    service: AchievementService = Depends(get_achievement_service_dep),
):
    """Get progress on every achievement, unlocking any newly earned."""
    progress = await service.evaluate(user_id)

    newly = [p.definition.id for p in progress if p.newly_unlocked]
    if newly:
        logger.info(f"Evaluation for {user_id} unlocked {len(newly)} achievement(s)")

    return {
        "achievements": [p.to_dict() for p in progress],
        "summary": service.summarize(progress),
    }


@router.get("/catalog", response_model=dict)
async def get_catalog(
    service: AchievementService = Depends(get_achievement_service_dep),
):
    """Get all achievement definitions."""
    return {
        "achievements": [
            AchievementResponse(
                id=d.id,
                name=d.name,
                description=d.description,
                icon=d.icon,
                tier=d.tier,
                criteria_type=d.criteria_type,
                threshold=d.threshold,
                sport=d.sport,
            ).model_dump(mode="json")
            for d in service.get_catalog()
        ]
    }
