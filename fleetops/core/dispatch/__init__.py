# fleetops/core/dispatch/__init__.py
"""
Модуль диспетчеризации заказов.
"""

from fleetops.core.dispatch.service import DispatchCoordinator, DispatchOutcome

__all__ = ["DispatchCoordinator", "DispatchOutcome"]
