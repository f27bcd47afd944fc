# tests/core/test_repositories.py
"""
Тесты для репозиториев заказов и водителей (БД замокана).
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from fleetops.common.geo import Point
from fleetops.core.drivers.repository import DriverRepository
from fleetops.core.orders.models import Order, OrderActivity
from fleetops.core.orders.repository import OrderRepository

CREATED = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)


def _order_row(**overrides) -> dict:
    row = {
        "uuid": "order-uuid-1",
        "public_id": "order_123",
        "company_uuid": "company-uuid-1",
        "driver_assigned_uuid": None,
        "api_credential": "key-live-1",
        "adhoc": True,
        "adhoc_distance": None,
        "pickup_latitude": 1.3521,
        "pickup_longitude": 103.8198,
        "dropoff_latitude": None,
        "dropoff_longitude": None,
        "waypoints": json.dumps([{"latitude": 1.31, "longitude": 103.81, "meta": {"name": "stop"}}]),
        "status": "created",
        "dispatched": False,
        "dispatched_at": None,
        "meta": None,
        "created_at": CREATED,
        "updated_at": CREATED,
        "company_public_id": "company_abc",
        "company_name": "Acme Logistics",
        "company_options": json.dumps({"fleetops": {"adhoc_distance": 4000}}),
        "flow": {"activities": [{"code": "dispatched"}]},
    }
    row.update(overrides)
    return row


def _driver_row(**overrides) -> dict:
    row = {
        "uuid": "driver-uuid-1",
        "public_id": "driver_1",
        "company_uuid": "company-uuid-1",
        "user_uuid": "user-1",
        "status": "active",
        "online": True,
        "latitude": 1.35,
        "longitude": 103.82,
        "fcm_tokens": ["t1"],
        "apn_tokens": None,
        "deleted_at": None,
        "joined_user_uuid": "user-1",
        "user_deleted_at": None,
        "distance": 412.5,
    }
    row.update(overrides)
    return row


class TestOrderRepository:
    """Тесты для OrderRepository."""

    @pytest.mark.asyncio
    async def test_get_by_uuid_maps_row(self, mock_db) -> None:
        mock_db.fetchrow.return_value = _order_row()
        mock_db.fetch.return_value = [{
            "code": "created",
            "status": "Created",
            "details": None,
            "latitude": None,
            "longitude": None,
            "created_at": CREATED,
        }]

        order = await OrderRepository(mock_db).get_by_uuid("order-uuid-1")

        assert order.public_id == "order_123"
        assert order.pickup == Point(latitude=1.3521, longitude=103.8198)
        assert order.dropoff is None
        assert order.company.adhoc_distance == 4000
        assert order.waypoints[0].meta == {"name": "stop"}
        assert order.flow == {"activities": [{"code": "dispatched"}]}
        assert order.activities[0].details == ""
        assert order.has_activity("created")

    @pytest.mark.asyncio
    async def test_get_by_uuid_not_found(self, mock_db) -> None:
        assert await OrderRepository(mock_db).get_by_uuid("missing") is None
        mock_db.fetch.assert_not_called()

    @pytest.mark.asyncio
    async def test_get_by_uuid_db_error(self, mock_db) -> None:
        mock_db.fetchrow.side_effect = ConnectionError("db down")
        assert await OrderRepository(mock_db).get_by_uuid("order-uuid-1") is None

    @pytest.mark.asyncio
    async def test_get_cached_hit(self, mock_db, mock_redis, sample_order) -> None:
        mock_redis.get_model.return_value = sample_order

        order = await OrderRepository(mock_db, mock_redis).get_cached("order-uuid-1")

        assert order is sample_order
        mock_redis.get_model.assert_awaited_once_with("order:order-uuid-1", Order)
        mock_db.fetchrow.assert_not_called()

    @pytest.mark.asyncio
    async def test_get_cached_miss_fills_cache(self, mock_db, mock_redis) -> None:
        mock_db.fetchrow.return_value = _order_row()

        order = await OrderRepository(mock_db, mock_redis).get_cached("order-uuid-1")

        assert order.uuid == "order-uuid-1"
        mock_redis.set_model.assert_awaited_once()
        assert mock_redis.set_model.call_args.args[0] == "order:order-uuid-1"

    @pytest.mark.asyncio
    async def test_apply_activity_in_transaction(self, mock_db) -> None:
        activity = OrderActivity(
            code="dispatched",
            status="Order dispatched",
            location=Point(latitude=1.0, longitude=2.0),
            created_at=CREATED,
        )

        assert await OrderRepository(mock_db).apply_activity("order-uuid-1", activity) is True

        update_call, insert_call = mock_db.conn.execute.call_args_list
        assert update_call.args[1:] == ("order-uuid-1", "dispatched")
        assert insert_call.args[1:] == ("order-uuid-1", "dispatched", "Order dispatched", "", 1.0, 2.0, CREATED)

    @pytest.mark.asyncio
    async def test_apply_activity_failure(self, mock_db) -> None:
        mock_db.conn.execute = AsyncMock(side_effect=RuntimeError("constraint"))

        ok = await OrderRepository(mock_db).apply_activity("order-uuid-1", OrderActivity(code="x", status="x"))

        assert ok is False

    @pytest.mark.asyncio
    async def test_mark_dispatched(self, mock_db) -> None:
        assert await OrderRepository(mock_db).mark_dispatched("order-uuid-1", CREATED) is True
        assert mock_db.execute.call_args.args[1:] == ("order-uuid-1", CREATED)

    @pytest.mark.asyncio
    async def test_mark_dispatched_missing_order(self, mock_db) -> None:
        mock_db.execute.return_value = "UPDATE 0"
        assert await OrderRepository(mock_db).mark_dispatched("missing", CREATED) is False

    @pytest.mark.asyncio
    async def test_invalidate_cache(self, mock_db, mock_redis) -> None:
        await OrderRepository(mock_db, mock_redis).invalidate_cache("order-uuid-1")
        mock_redis.delete.assert_awaited_once_with("order:order-uuid-1")


class TestDriverRepository:
    """Тесты для DriverRepository."""

    @pytest.mark.asyncio
    async def test_find_within_radius(self, mock_db, pickup) -> None:
        mock_db.fetch.return_value = [_driver_row()]

        result = await DriverRepository(mock_db).find_within_radius(pickup, 6000)

        driver, distance = result[0]
        assert driver.public_id == "driver_1"
        assert driver.fcm_tokens == ["t1"]
        assert driver.apn_tokens == []
        assert distance == 412.5
        assert mock_db.fetch.call_args.args[1:] == (pickup.latitude, pickup.longitude, 6000.0, "active")

    @pytest.mark.asyncio
    async def test_find_within_radius_db_error(self, mock_db, pickup) -> None:
        mock_db.fetch.side_effect = ConnectionError("db down")
        assert await DriverRepository(mock_db).find_within_radius(pickup, 6000) == []

    @pytest.mark.asyncio
    async def test_get_by_uuid_includes_deleted(self, mock_db) -> None:
        mock_db.fetchrow.return_value = _driver_row(deleted_at=CREATED, latitude=None)

        driver = await DriverRepository(mock_db).get_by_uuid("driver-uuid-1")

        assert driver.is_deleted is True
        assert driver.location is None

    @pytest.mark.asyncio
    async def test_get_by_uuid_without_user(self, mock_db) -> None:
        mock_db.fetchrow.return_value = _driver_row(joined_user_uuid=None)

        driver = await DriverRepository(mock_db).get_by_uuid("driver-uuid-1")

        assert driver.user_exists is False
        assert driver.is_deleted is True
        assert "LEFT JOIN users" in mock_db.fetchrow.call_args.args[0]

    @pytest.mark.asyncio
    async def test_update_location(self, mock_db) -> None:
        ok = await DriverRepository(mock_db).update_location("driver-uuid-1", Point(latitude=1.5, longitude=2.5))

        assert ok is True
        assert mock_db.execute.call_args.args[1:] == ("driver-uuid-1", 1.5, 2.5)
