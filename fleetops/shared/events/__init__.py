# fleetops/shared/events/__init__.py
"""
Схемы событий для RabbitMQ.

События разделены по доменам:
- dispatch_events: диспетчеризация заказа и её неудачи
- simulation_events: запрос симуляции, смена позиции, прерывание цепочки

Все события содержат event_id для дедупликации.
"""

from fleetops.shared.events.base import DomainEvent, EventMetadata
from fleetops.shared.events.dispatch_events import OrderDispatched, DispatchFailed
from fleetops.shared.events.simulation_events import (
    RouteSimulationRequested,
    DriverSimulatedLocationChanged,
    RouteSimulationAbandoned,
)

__all__ = [
    # Base
    "DomainEvent",
    "EventMetadata",
    # Dispatch
    "OrderDispatched",
    "DispatchFailed",
    # Simulation
    "RouteSimulationRequested",
    "DriverSimulatedLocationChanged",
    "RouteSimulationAbandoned",
]
