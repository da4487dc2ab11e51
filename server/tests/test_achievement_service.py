"""
Tests for the achievement evaluator.

Verifies:
- Progress and percentage for count thresholds
- Exactly-once unlocks, including a lost insert race
- Graceful handling of unregistered criteria types
- Summary totals
"""

from datetime import date, datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from models.achievements import ACHIEVEMENTS, AchievementDefinition, AchievementTier, UserAchievement
from services.achievement_service import AchievementService, progress_percentage

from factories import USER, concert, soccer, venue


def _definition(criteria_type: str, threshold: int, id: str = "test-achievement") -> AchievementDefinition:
    return AchievementDefinition(
        id=id,
        name=id.title(),
        description="",
        icon="*",
        tier=AchievementTier.BRONZE,
        criteria_type=criteria_type,
        threshold=threshold,
    )


def _events(count: int, start: date = date(2024, 1, 1)):
    return [
        soccer("A", "B", on=start + timedelta(days=i), id=f"e{i + 1}")
        for i in range(count)
    ]


def _by_id(progress, achievement_id):
    return next(p for p in progress if p.definition.id == achievement_id)


@pytest.fixture
def service(store):
    return AchievementService(store)


class TestProgressPercentage:

    @pytest.mark.parametrize("current,target,expected", [
        (0, 10, 0),
        (9, 10, 90),
        (1, 3, 33),
        (2, 3, 67),
        (1, 8, 13),
        (10, 10, 100),
        (25, 10, 100),
        (0, 0, 0),
        (1, 0, 100),
    ])
    def test_values(self, current, target, expected):
        assert progress_percentage(current, target) == expected

    def test_bounded_and_monotonic(self):
        for target in (1, 3, 7, 10, 100):
            previous = 0
            for current in range(0, 2 * target + 2):
                percentage = progress_percentage(current, target)
                assert 0 <= percentage <= 100
                assert percentage >= previous
                previous = percentage


class TestEvaluate:

    @pytest.mark.asyncio
    async def test_getting_started_progression(self, store, service):
        store.add(*_events(9))

        progress = _by_id(await service.evaluate(USER), "getting-started")
        assert (progress.current, progress.target, progress.percentage) == (9, 10, 90)
        assert not progress.unlocked

        store.add(soccer("A", "B", on=date(2024, 2, 1), id="tenth"))
        progress = _by_id(await service.evaluate(USER), "getting-started")
        assert progress.unlocked
        assert progress.newly_unlocked
        assert progress.trigger_event_id == "tenth"
        unlocked_at = progress.unlocked_at

        store.add(soccer("A", "B", on=date(2024, 3, 1), id="eleventh"))
        attempts = store.unlock_attempts
        progress = _by_id(await service.evaluate(USER), "getting-started")
        assert progress.unlocked
        assert not progress.newly_unlocked
        assert progress.unlocked_at == unlocked_at
        assert progress.trigger_event_id == "tenth"
        assert progress.current == 11
        assert progress.percentage == 100
        assert store.unlock_attempts == attempts

    @pytest.mark.asyncio
    async def test_re_evaluation_is_idempotent(self, store, service):
        store.add(*_events(12))

        first = await service.evaluate(USER)
        second = await service.evaluate(USER)

        def unlock_set(progress):
            return {(p.definition.id, p.unlocked_at) for p in progress if p.unlocked}

        assert unlock_set(first) == unlock_set(second)
        assert not any(p.newly_unlocked for p in second)

    @pytest.mark.asyncio
    async def test_progress_in_catalog_order(self, store, service):
        progress = await service.evaluate(USER)

        assert [p.definition.id for p in progress] == [a.id for a in ACHIEVEMENTS]
        assert all(0 <= p.percentage <= 100 for p in progress)
        assert not any(p.unlocked for p in progress)

    @pytest.mark.asyncio
    async def test_unlock_survives_drop_in_progress(self, store, service):
        unlocked_at = datetime(2023, 1, 1, tzinfo=timezone.utc)
        store.unlocks[(USER, "explorer")] = UserAchievement(USER, "explorer", unlocked_at, "old-event")

        progress = _by_id(await service.evaluate(USER), "explorer")

        assert progress.current == 0
        assert progress.unlocked
        assert progress.unlocked_at == unlocked_at
        assert progress.trigger_event_id == "old-event"

    @pytest.mark.asyncio
    async def test_lost_race_reports_stored_record(self, store):
        stored = UserAchievement(USER, "test-achievement", datetime(2024, 1, 1, tzinfo=timezone.utc), "e1")
        store.unlocks[(USER, "test-achievement")] = stored
        # Simulate reading unlocks before the other writer committed
        store.get_user_achievements = AsyncMock(return_value={})
        store.add(*_events(1))
        service = AchievementService(store, [_definition("total_events", 1)])

        progress = (await service.evaluate(USER))[0]

        assert progress.unlocked
        assert not progress.newly_unlocked
        assert progress.unlocked_at == stored.unlocked_at
        assert store.unlock_attempts == 1
        assert store.unlocks[(USER, "test-achievement")] is stored

    @pytest.mark.asyncio
    async def test_unlock_trigger_is_event_that_added_a_venue(self, store):
        first, second = venue("One", id="v1"), venue("Two", id="v2")
        store.add(
            soccer("A", "B", at=first, on=date(2024, 1, 1), id="e1"),
            soccer("A", "B", at=second, on=date(2024, 1, 2), id="e2"),
            soccer("A", "B", at=first, on=date(2024, 1, 3), id="e3"),
        )
        service = AchievementService(store, [_definition("unique_venues", 2)])

        progress = (await service.evaluate(USER))[0]

        assert progress.newly_unlocked
        assert progress.trigger_event_id == "e2"
        assert store.unlocks[(USER, "test-achievement")].trigger_event_id == "e2"

    @pytest.mark.asyncio
    async def test_unregistered_criteria_measure_zero(self, store):
        store.add(*_events(3))
        service = AchievementService(store, [
            _definition("festivals_in_year", 1, id="festival"),
            _definition("no_such_criteria", 1, id="mystery"),
            _definition("total_events", 3, id="counted"),
        ])

        progress = await service.evaluate(USER)

        assert [(p.current, p.percentage, p.unlocked) for p in progress[:2]] == [(0, 0, False), (0, 0, False)]
        assert progress[2].unlocked

    @pytest.mark.asyncio
    async def test_evaluation_scoped_to_user(self, store):
        store.add(*_events(2))
        store.add(concert(user_id="someone-else"))
        service = AchievementService(store, [_definition("all_event_types", 5)])

        progress = (await service.evaluate(USER))[0]

        assert progress.current == 1
        assert (USER, "test-achievement") not in store.unlocks


class TestSummary:

    @pytest.mark.asyncio
    async def test_summarize(self, store, service):
        store.add(*_events(1))

        progress = await service.evaluate(USER)
        summary = service.summarize(progress)

        assert summary["total"] == len(ACHIEVEMENTS)
        assert summary["unlocked"] == 1
        assert summary["newly_unlocked"] == ["first-memory"]
        assert summary["by_tier"]["bronze"]["unlocked"] == 1
        assert list(summary["by_tier"]) == ["bronze", "silver", "gold", "platinum"]
        assert sum(t["total"] for t in summary["by_tier"].values()) == len(ACHIEVEMENTS)

    def test_catalog(self, service):
        assert [d.id for d in service.get_catalog()] == [a.id for a in ACHIEVEMENTS]
