# fleetops/shared/models/__init__.py
"""
Общие DTO и Pydantic-модели.
"""

from fleetops.shared.models.waypoint import Waypoint
from fleetops.shared.models.common import HealthStatus

__all__ = [
    "Waypoint",
    "HealthStatus",
]
