# fleetops/common/geo.py
"""
Геометрия на сфере: точка, расстояние по формуле Haversine, форматирование расстояний.
"""

from __future__ import annotations

import math
from typing import Any

from pydantic import BaseModel, ConfigDict


EARTH_RADIUS_METERS = 6371000.0


class Point(BaseModel):
    """Географическая точка (WGS84)."""

    model_config = ConfigDict(frozen=True)

    latitude: float
    longitude: float

    def to_list(self) -> list[float]:
        """GeoJSON-совместимые координаты [lon, lat]."""
        return [self.longitude, self.latitude]


def is_point(value: Any) -> bool:
    """
    Проверяет, что значение является корректной точкой.

    Args:
        value: Проверяемое значение

    Returns:
        True для Point с конечными координатами в допустимых пределах
    """
    if not isinstance(value, Point):
        return False

    lat, lon = value.latitude, value.longitude
    if not (math.isfinite(lat) and math.isfinite(lon)):
        return False

    return -90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0


def haversine_meters(a: Point, b: Point) -> float:
    """
    Расстояние по большому кругу между двумя точками (в метрах).
    """
    dlat = math.radians(b.latitude - a.latitude)
    dlon = math.radians(b.longitude - a.longitude)

    h = (math.sin(dlat / 2) ** 2 +
         math.cos(math.radians(a.latitude)) * math.cos(math.radians(b.latitude)) *
         math.sin(dlon / 2) ** 2)

    return 2 * EARTH_RADIUS_METERS * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def format_meters(meters: float, abbreviate: bool = True) -> str:
    """
    Форматирует расстояние для человека.

    Args:
        meters: Расстояние в метрах
        abbreviate: Короткие единицы (m / km) вместо полных

    Returns:
        Строка вида "500 meters" или "1.25 km"
    """
    if meters > 1000:
        value = f"{meters / 1000:.2f}".rstrip("0").rstrip(".")
        unit = "km" if abbreviate else "kilometers"
        return f"{value} {unit}"

    unit = "m" if abbreviate else "meters"
    return f"{round(meters)} {unit}"
