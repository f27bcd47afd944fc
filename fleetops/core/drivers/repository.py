# fleetops/core/drivers/repository.py
"""
Репозиторий водителей (PostGIS).
"""

from __future__ import annotations

from typing import Any, Optional

from fleetops.common.constants import DriverStatus
from fleetops.common.geo import Point
from fleetops.common.logger import log_error
from fleetops.core.drivers.models import Driver
from fleetops.infra.database import DatabaseManager


_DRIVER_COLUMNS = """
    d.uuid, d.public_id, d.company_uuid, d.user_uuid, d.status, d.online,
    ST_Y(d.location) AS latitude, ST_X(d.location) AS longitude,
    d.fcm_tokens, d.apn_tokens, d.deleted_at,
    u.uuid AS joined_user_uuid, u.deleted_at AS user_deleted_at
"""

# Глобальные фильтры тенанта здесь не применяются: пул кандидатов общий,
# удалённые записи отсекаются явными условиями ниже.
_WITHIN_RADIUS_SQL = f"""
    SELECT {_DRIVER_COLUMNS},
           ST_DistanceSphere(d.location, ST_SetSRID(ST_MakePoint($2, $1), 4326)) AS distance
    FROM drivers d
    JOIN users u ON u.uuid = d.user_uuid
    WHERE d.status = $4
      AND d.online = TRUE
      AND d.deleted_at IS NULL
      AND u.deleted_at IS NULL
      AND d.location IS NOT NULL
      AND EXISTS (
          SELECT 1
          FROM users cu
          JOIN drivers cd ON cd.user_uuid = cu.uuid
          WHERE cu.company_uuid = d.company_uuid
            AND cu.deleted_at IS NULL
            AND cd.status = $4
            AND cd.online = TRUE
            AND cd.deleted_at IS NULL
      )
      AND ST_DistanceSphere(d.location, ST_SetSRID(ST_MakePoint($2, $1), 4326)) <= $3
    ORDER BY distance ASC
"""


class DriverRepository:
    """Репозиторий водителей."""

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    async def find_within_radius(self, pickup: Point, radius: float) -> list[tuple[Driver, float]]:
        """
        Водители в радиусе от точки (сферическое расстояние), ближайшие первыми.

        Args:
            pickup: Точка подачи
            radius: Радиус в метрах

        Returns:
            Список (водитель, расстояние в метрах)
        """
        try:
            rows = await self._db.fetch(
                _WITHIN_RADIUS_SQL,
                pickup.latitude,
                pickup.longitude,
                float(radius),
                DriverStatus.ACTIVE.value,
            )
            return [(self._row_to_driver(row), float(row["distance"])) for row in rows]
        except Exception as e:
            await log_error(f"Ошибка поиска водителей в радиусе {radius} м: {e}")
            return []

    async def get_by_uuid(self, driver_uuid: str) -> Optional[Driver]:
        """
        Водитель по UUID, включая удалённых (проверка удаления на стороне вызывающего).
        Водитель без пользователя тоже возвращается, с user_exists=False.
        """
        try:
            row = await self._db.fetchrow(
                f"""
                SELECT {_DRIVER_COLUMNS}
                FROM drivers d
                LEFT JOIN users u ON u.uuid = d.user_uuid
                WHERE d.uuid = $1
                """,
                driver_uuid,
            )
            if row is None:
                return None
            return self._row_to_driver(row)
        except Exception as e:
            await log_error(f"Ошибка получения водителя {driver_uuid}: {e}")
            return None

    async def update_location(self, driver_uuid: str, location: Point) -> bool:
        """Обновляет текущую позицию водителя."""
        try:
            result = await self._db.execute(
                """
                UPDATE drivers
                SET location = ST_SetSRID(ST_MakePoint($3, $2), 4326), updated_at = NOW()
                WHERE uuid = $1
                """,
                driver_uuid,
                location.latitude,
                location.longitude,
            )
            return result == "UPDATE 1"
        except Exception as e:
            await log_error(f"Ошибка обновления позиции водителя {driver_uuid}: {e}")
            return False

    def _row_to_driver(self, row: Any) -> Driver:
        location = None
        if row["latitude"] is not None and row["longitude"] is not None:
            location = Point(latitude=float(row["latitude"]), longitude=float(row["longitude"]))

        return Driver(
            uuid=row["uuid"],
            public_id=row["public_id"],
            company_uuid=row["company_uuid"],
            user_uuid=row["user_uuid"],
            status=row["status"],
            online=row["online"],
            location=location,
            fcm_tokens=list(row["fcm_tokens"] or []),
            apn_tokens=list(row["apn_tokens"] or []),
            deleted_at=row["deleted_at"],
            user_deleted_at=row["user_deleted_at"],
            user_exists=row["joined_user_uuid"] is not None,
        )
