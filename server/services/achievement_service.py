"""
Achievement evaluator for the event tracker.

Measures each catalog definition against a user's events and records an
unlock the first time progress reaches the target. Unlocks are terminal:
re-evaluation never inserts a second record or moves the stored timestamp,
even if the measured value later drops.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from models.achievements import (
    ACHIEVEMENTS,
    TIER_ORDER,
    AchievementDefinition,
    AchievementProgress,
    UserAchievement,
)
from services.achievement_criteria import CRITERIA, CriteriaFn, Measurement
from stores.attendance_store import AttendanceStore

logger = logging.getLogger(__name__)


def progress_percentage(current: int, target: int) -> int:
    """
    Percentage of target reached, rounded half up and capped at 100.

    Args:
        current: Measured value.
        target: Threshold; values below 1 are treated as 1.

    Returns:
        Integer in [0, 100].
    """
    target = max(target, 1)
    current = max(current, 0)
    return min(100, (200 * current + target) // (2 * target))


class AchievementService:
    """
    Evaluates achievement progress and records unlocks.

    The catalog and criteria table default to the module-level ones and can
    be replaced for tests.
    """

    def __init__(
        self,
        store: AttendanceStore,
        definitions: Optional[list[AchievementDefinition]] = None,
        criteria: Optional[dict[str, CriteriaFn]] = None,
    ):
        self.store = store
        self.definitions = list(ACHIEVEMENTS if definitions is None else definitions)
        self.criteria = CRITERIA if criteria is None else criteria

    def get_catalog(self) -> list[AchievementDefinition]:
        return list(self.definitions)

    def measure(self, definition: AchievementDefinition, events: list) -> Measurement:
        fn = self.criteria.get(definition.criteria_type)
        if fn is None:
            logger.debug(
                f"No criteria registered for {definition.criteria_type!r} "
                f"({definition.id}), measuring as 0"
            )
            return Measurement(0)
        return fn(events, definition)

    async def evaluate(self, user_id: str) -> list[AchievementProgress]:
        """
        Evaluate every definition for a user, unlocking any newly reached.

        Args:
            user_id: User to evaluate.

        Returns:
            Progress for each definition, in catalog order.
        """
        events, unlocked = await asyncio.gather(
            self.store.get_events(user_id),
            self.store.get_user_achievements(user_id),
        )
        events = sorted(events, key=lambda e: e.date)

        results = []
        for definition in self.definitions:
            measurement = self.measure(definition, events)
            target = definition.target
            record = unlocked.get(definition.id)
            newly_unlocked = False

            if record is None and measurement.current >= target:
                record, newly_unlocked = await self._unlock(user_id, definition, measurement)

            results.append(AchievementProgress(
                definition=definition,
                current=measurement.current,
                target=target,
                percentage=progress_percentage(measurement.current, target),
                unlocked=record is not None,
                unlocked_at=record.unlocked_at if record else None,
                trigger_event_id=record.trigger_event_id if record else None,
                newly_unlocked=newly_unlocked,
            ))

        return results

    async def _unlock(
        self,
        user_id: str,
        definition: AchievementDefinition,
        measurement: Measurement,
    ) -> tuple[Optional[UserAchievement], bool]:
        unlock = UserAchievement(
            user_id=user_id,
            achievement_id=definition.id,
            unlocked_at=datetime.now(timezone.utc),
            trigger_event_id=measurement.trigger_event_id,
        )
        if await self.store.record_unlock(unlock):
            logger.info(f"User {user_id} unlocked {definition.id} (event {unlock.trigger_event_id})")
            return unlock, True

        # Another evaluation inserted it first; report the stored record
        logger.debug(f"Unlock of {definition.id} for {user_id} already recorded")
        return await self.store.get_user_achievement(user_id, definition.id), False

    @staticmethod
    def summarize(progress: list[AchievementProgress]) -> dict:
        """Totals for an evaluation, overall and per tier."""
        by_tier = {
            tier.value: {"total": 0, "unlocked": 0}
            for tier in sorted(TIER_ORDER, key=TIER_ORDER.get)
        }
        for item in progress:
            tier = by_tier[item.definition.tier.value]
            tier["total"] += 1
            tier["unlocked"] += int(item.unlocked)

        return {
            "total": len(progress),
            "unlocked": sum(1 for item in progress if item.unlocked),
            "newly_unlocked": [item.definition.id for item in progress if item.newly_unlocked],
            "by_tier": by_tier,
        }
