# fleetops/shared/events/simulation_events.py
"""
События симуляции маршрута водителя.
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field

from fleetops.shared.events.base import DomainEvent
from fleetops.shared.models.waypoint import Waypoint


class RouteSimulationRequested(DomainEvent):
    """
    Событие: запрос на симуляцию маршрута.
    Если waypoints пуст и задан order_uuid, маршрут строится по заказу.
    """

    event_type: Literal["route.simulate"] = "route.simulate"

    driver_uuid: str
    waypoints: list[Waypoint] = Field(default_factory=list)
    order_uuid: str | None = None


class DriverSimulatedLocationChanged(DomainEvent):
    """Событие: водитель достиг очередной точки маршрута."""

    event_type: Literal["driver.simulated_location_changed"] = "driver.simulated_location_changed"

    driver_uuid: str
    driver_public_id: str | None = None
    company_uuid: str | None = None
    waypoint: Waypoint


class RouteSimulationAbandoned(DomainEvent):
    """Событие: цепочка симуляции прервана, оставшиеся точки не будут пройдены."""

    event_type: Literal["route.simulation_abandoned"] = "route.simulation_abandoned"

    driver_uuid: str
    index: int
    attempts: int
    remaining: int = 0  # точек после прерванной
    reason: str
