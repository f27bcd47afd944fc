# tests/core/test_matching_service.py
"""
Тесты для сервиса матчинга водителей.
"""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from fleetops.common.geo import Point
from fleetops.core.matching.service import GeoMatcher

METERS_PER_DEGREE = 111194.93


def _north_of(pickup: Point, meters: float) -> dict[str, float]:
    return {"latitude": pickup.latitude + meters / METERS_PER_DEGREE, "longitude": pickup.longitude}


@pytest.fixture
def drivers_repo() -> MagicMock:
    repo = MagicMock()
    repo.find_within_radius = AsyncMock(return_value=[])
    return repo


@pytest.fixture
def matcher(drivers_repo: MagicMock) -> GeoMatcher:
    return GeoMatcher(drivers_repo)


class TestFindEligibleDrivers:
    """Тесты для GeoMatcher.find_eligible_drivers."""

    @pytest.mark.asyncio
    async def test_only_nearby_live_driver_matches(self, matcher, drivers_repo, driver_factory, pickup, scope):
        """Ближний водитель подходит, дальний и водитель с удалённым пользователем нет."""
        near = driver_factory("d1", **_north_of(pickup, 500))
        far = driver_factory("d2", **_north_of(pickup, 7000))
        orphan = driver_factory(
            "d3",
            **_north_of(pickup, 200),
            user_deleted_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )
        drivers_repo.find_within_radius.return_value = [(near, 500.0), (far, 7000.0), (orphan, 200.0)]

        matches = await matcher.find_eligible_drivers(pickup, 6000, scope)

        assert [m.driver.uuid for m in matches] == ["d1"]
        assert matches[0].distance == pytest.approx(500, abs=1)
        drivers_repo.find_within_radius.assert_awaited_once_with(pickup, 6000)

    @pytest.mark.asyncio
    async def test_sorted_by_distance(self, matcher, drivers_repo, driver_factory, pickup, scope):
        farther = driver_factory("d-far", **_north_of(pickup, 3000))
        closer = driver_factory("d-close", **_north_of(pickup, 1000))
        drivers_repo.find_within_radius.return_value = [(farther, 3000.0), (closer, 1000.0)]

        matches = await matcher.find_eligible_drivers(pickup, 6000, scope)

        assert [m.driver.uuid for m in matches] == ["d-close", "d-far"]

    @pytest.mark.asyncio
    async def test_excludes_offline_and_inactive(self, matcher, drivers_repo, driver_factory, pickup, scope):
        offline = driver_factory("d-offline", online=False)
        inactive = driver_factory("d-inactive", status="inactive")
        deleted = driver_factory("d-deleted", deleted_at=datetime(2024, 1, 1, tzinfo=timezone.utc))
        no_user = driver_factory("d-no-user", user_exists=False)
        drivers_repo.find_within_radius.return_value = [
            (offline, 0.0), (inactive, 0.0), (deleted, 0.0), (no_user, 0.0),
        ]

        assert await matcher.find_eligible_drivers(pickup, 6000, scope) == []

    @pytest.mark.asyncio
    async def test_excludes_driver_without_location(self, matcher, drivers_repo, driver_factory, pickup, scope):
        drivers_repo.find_within_radius.return_value = [(driver_factory("d-x", location=None), 0.0)]

        assert await matcher.find_eligible_drivers(pickup, 6000, scope) == []

    @pytest.mark.asyncio
    async def test_driver_on_the_boundary_is_included(self, matcher, drivers_repo, driver_factory, pickup, scope):
        driver = driver_factory("d-edge", **_north_of(pickup, 999))
        drivers_repo.find_within_radius.return_value = [(driver, 999.0)]

        matches = await matcher.find_eligible_drivers(pickup, 1000, scope)

        assert len(matches) == 1

    @pytest.mark.asyncio
    async def test_invalid_pickup_returns_empty(self, matcher, drivers_repo, scope):
        assert await matcher.find_eligible_drivers(None, 6000, scope) == []
        drivers_repo.find_within_radius.assert_not_called()

    @pytest.mark.asyncio
    async def test_zero_radius_returns_empty(self, matcher, drivers_repo, pickup, scope):
        assert await matcher.find_eligible_drivers(pickup, 0, scope) == []
        drivers_repo.find_within_radius.assert_not_called()
