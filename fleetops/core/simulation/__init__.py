# fleetops/core/simulation/__init__.py
"""
Модуль симуляции маршрутов.
"""

from fleetops.core.simulation.service import (
    WAYPOINT_REACHED_TASK,
    RouteSimulator,
    WaypointReachedHandler,
)

__all__ = ["WAYPOINT_REACHED_TASK", "RouteSimulator", "WaypointReachedHandler"]
