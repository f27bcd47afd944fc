# fleetops/core/flow/__init__.py
from fleetops.core.flow.resolver import DispatchActivityResolver

__all__ = ["DispatchActivityResolver"]
