# fleetops/shared/models/waypoint.py
"""
Точка маршрута для симуляции движения водителя.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from fleetops.common.geo import Point


class Waypoint(BaseModel):
    """Упорядоченная точка маршрута. Неизменяема на время прогона симуляции."""

    model_config = ConfigDict(frozen=True)

    index: int = 0
    latitude: float
    longitude: float
    meta: dict[str, Any] = Field(default_factory=dict)

    @property
    def point(self) -> Point:
        return Point(latitude=self.latitude, longitude=self.longitude)

    @classmethod
    def from_point(cls, point: Point, index: int, meta: dict[str, Any] | None = None) -> Waypoint:
        return cls(
            index=index,
            latitude=point.latitude,
            longitude=point.longitude,
            meta=meta or {},
        )
