# fleetops/core/matching/__init__.py
"""
Модуль матчинга водителей.
"""

from fleetops.core.matching.service import GeoMatcher

__all__ = ["GeoMatcher"]
