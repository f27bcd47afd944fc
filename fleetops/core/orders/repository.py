# fleetops/core/orders/repository.py
"""
Репозиторий для работы с заказами в БД.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Optional

from fleetops.common.constants import TypeMsg
from fleetops.common.geo import Point
from fleetops.common.logger import log_error, log_info
from fleetops.core.orders.models import Company, Order, OrderActivity
from fleetops.infra.database import DatabaseManager
from fleetops.infra.redis_client import RedisClient
from fleetops.shared.models.waypoint import Waypoint


_ORDER_SELECT = """
    SELECT o.uuid, o.public_id, o.company_uuid, o.driver_assigned_uuid, o.api_credential,
           o.adhoc, o.adhoc_distance,
           ST_Y(o.pickup) AS pickup_latitude, ST_X(o.pickup) AS pickup_longitude,
           ST_Y(o.dropoff) AS dropoff_latitude, ST_X(o.dropoff) AS dropoff_longitude,
           o.waypoints, o.status, o.dispatched, o.dispatched_at, o.meta,
           o.created_at, o.updated_at,
           c.public_id AS company_public_id, c.name AS company_name, c.options AS company_options,
           oc.flow AS flow
    FROM orders o
    LEFT JOIN companies c ON c.uuid = o.company_uuid
    LEFT JOIN order_configs oc ON oc.uuid = o.order_config_uuid
    WHERE o.uuid = $1 AND o.deleted_at IS NULL
"""


def _json_value(value: Any, default: Any) -> Any:
    """asyncpg без кодека отдаёт jsonb строкой."""
    if value is None:
        return default
    if isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return default
    return value


def _point(lat: Any, lon: Any) -> Optional[Point]:
    if lat is None or lon is None:
        return None
    return Point(latitude=float(lat), longitude=float(lon))


class OrderRepository:
    """Репозиторий заказов."""

    CACHE_KEY = "order:{uuid}"

    def __init__(self, db: DatabaseManager, redis: RedisClient | None = None) -> None:
        """
        Args:
            db: Менеджер базы данных (Dependency Injection)
            redis: Клиент Redis для кэша заказов
        """
        self._db = db
        self._redis = redis

    async def get_by_uuid(self, order_uuid: str) -> Optional[Order]:
        """
        Получает заказ вместе с компанией, flow и историей активностей.

        Args:
            order_uuid: UUID заказа

        Returns:
            Заказ или None
        """
        try:
            row = await self._db.fetchrow(_ORDER_SELECT, order_uuid)
            if row is None:
                return None

            activity_rows = await self._db.fetch(
                """
                SELECT code, status, details,
                       ST_Y(location) AS latitude, ST_X(location) AS longitude,
                       created_at
                FROM order_activities
                WHERE order_uuid = $1
                ORDER BY created_at ASC, id ASC
                """,
                order_uuid,
            )

            return self._row_to_order(row, activity_rows)
        except Exception as e:
            await log_error(f"Ошибка получения заказа {order_uuid}: {e}")
            return None

    async def get_cached(self, order_uuid: str) -> Optional[Order]:
        """Заказ из кэша Redis, при промахе из БД с записью в кэш."""
        key = self.CACHE_KEY.format(uuid=order_uuid)

        if self._redis is not None:
            cached = await self._redis.get_model(key, Order)
            if cached is not None:
                return cached

        order = await self.get_by_uuid(order_uuid)

        if order is not None and self._redis is not None:
            from fleetops.config import settings
            await self._redis.set_model(key, order, ttl=settings.redis_ttl.ORDER_TTL)

        return order

    async def invalidate_cache(self, order_uuid: str) -> None:
        """Сбрасывает кэшированные производные данные заказа."""
        if self._redis is None:
            return
        try:
            await self._redis.delete(self.CACHE_KEY.format(uuid=order_uuid))
        except Exception as e:
            await log_error(f"Ошибка сброса кэша заказа {order_uuid}: {e}")

    async def apply_activity(self, order_uuid: str, activity: OrderActivity) -> bool:
        """
        Меняет статус заказа на код активности и дописывает запись в историю.
        Обе операции в одной транзакции.

        Returns:
            True если успешно
        """
        location = activity.location
        try:
            async with self._db.transaction() as conn:
                await conn.execute(
                    "UPDATE orders SET status = $2, updated_at = NOW() WHERE uuid = $1",
                    order_uuid,
                    activity.code,
                )
                await conn.execute(
                    """
                    INSERT INTO order_activities (order_uuid, code, status, details, location, created_at)
                    VALUES ($1, $2, $3, $4,
                            CASE WHEN $5::float8 IS NULL THEN NULL
                                 ELSE ST_SetSRID(ST_MakePoint($6::float8, $5::float8), 4326) END,
                            COALESCE($7, NOW()))
                    """,
                    order_uuid,
                    activity.code,
                    activity.status,
                    activity.details,
                    location.latitude if location else None,
                    location.longitude if location else None,
                    activity.created_at,
                )

            await log_info(
                f"Заказ {order_uuid}: статус {activity.code}",
                type_msg=TypeMsg.DEBUG,
            )
            return True
        except Exception as e:
            await log_error(f"Ошибка записи активности заказа {order_uuid}: {e}")
            return False

    async def mark_dispatched(self, order_uuid: str, dispatched_at: datetime) -> bool:
        """
        Помечает заказ как отправленный.

        Returns:
            True если заказ обновлён
        """
        try:
            result = await self._db.execute(
                """
                UPDATE orders
                SET dispatched = TRUE, dispatched_at = $2, updated_at = NOW()
                WHERE uuid = $1
                """,
                order_uuid,
                dispatched_at,
            )
            return result == "UPDATE 1"
        except Exception as e:
            await log_error(f"Ошибка диспетчеризации заказа {order_uuid}: {e}")
            return False

    def _row_to_order(self, row: Any, activity_rows: list[Any]) -> Order:
        """Преобразует строки БД в модель заказа."""
        company = None
        if row["company_public_id"] is not None:
            company = Company(
                uuid=row["company_uuid"],
                public_id=row["company_public_id"],
                name=row["company_name"] or "",
                options=_json_value(row["company_options"], {}),
            )

        waypoints = [
            Waypoint.model_validate({"index": i, **w})
            for i, w in enumerate(_json_value(row["waypoints"], []))
        ]

        activities = [
            OrderActivity(
                code=a["code"],
                status=a["status"],
                details=a["details"] or "",
                location=_point(a["latitude"], a["longitude"]),
                created_at=a["created_at"],
            )
            for a in activity_rows
        ]

        return Order(
            uuid=row["uuid"],
            public_id=row["public_id"],
            company_uuid=row["company_uuid"],
            company=company,
            driver_assigned_uuid=row["driver_assigned_uuid"],
            api_credential=row["api_credential"],
            adhoc=row["adhoc"],
            adhoc_distance=row["adhoc_distance"],
            pickup=_point(row["pickup_latitude"], row["pickup_longitude"]),
            dropoff=_point(row["dropoff_latitude"], row["dropoff_longitude"]),
            waypoints=waypoints,
            status=row["status"],
            dispatched=row["dispatched"],
            dispatched_at=row["dispatched_at"],
            flow=_json_value(row["flow"], {}),
            activities=activities,
            meta=_json_value(row["meta"], {}),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
