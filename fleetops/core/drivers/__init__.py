# fleetops/core/drivers/__init__.py
"""
Модуль водителей.
"""

from fleetops.core.drivers.models import Driver, DriverMatch
from fleetops.core.drivers.repository import DriverRepository

__all__ = ["Driver", "DriverMatch", "DriverRepository"]
