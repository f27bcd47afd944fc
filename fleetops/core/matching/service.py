# fleetops/core/matching/service.py
"""
Сервис поиска водителей для adhoc-заказов.
Использует PostGIS (ST_DistanceSphere) и повторную проверку по формуле Haversine.
"""

from __future__ import annotations

from fleetops.common.constants import TypeMsg
from fleetops.common.geo import Point, haversine_meters, is_point
from fleetops.common.logger import log_info
from fleetops.core.drivers.models import DriverMatch
from fleetops.core.drivers.repository import DriverRepository
from fleetops.core.orders.models import TenantScope


class GeoMatcher:
    """
    Матчинг заказа с водителями по расстоянию до точки подачи.

    Пул кандидатов общий для всех тенантов; tenant scope используется
    только для логирования и трассировки.
    """

    def __init__(self, drivers: DriverRepository) -> None:
        """
        Args:
            drivers: Репозиторий водителей
        """
        self._drivers = drivers

    async def find_eligible_drivers(
        self,
        pickup: Point,
        radius: float,
        scope: TenantScope,
    ) -> list[DriverMatch]:
        """
        Ищет подходящих водителей в радиусе от точки подачи.

        Водитель подходит, если он активен, на линии, не удалён, его пользователь
        не удалён и расстояние по большому кругу не превышает радиус.

        Args:
            pickup: Точка подачи
            radius: Радиус поиска в метрах
            scope: Контекст тенанта

        Returns:
            Список DriverMatch по возрастанию расстояния
        """
        if not is_point(pickup) or radius <= 0:
            return []

        candidates = await self._drivers.find_within_radius(pickup, radius)

        matches: list[DriverMatch] = []
        for driver, _ in candidates:
            if not driver.is_eligible or driver.location is None:
                continue

            distance = haversine_meters(pickup, driver.location)
            if distance > radius:
                continue

            matches.append(DriverMatch(driver=driver, distance=distance))

        matches.sort(key=lambda m: m.distance)

        await log_info(
            f"Найдено водителей: {len(matches)} из {len(candidates)} кандидатов (радиус {radius} м)",
            type_msg=TypeMsg.DEBUG,
            extra={"company_uuid": scope.company_uuid},
        )

        return matches
