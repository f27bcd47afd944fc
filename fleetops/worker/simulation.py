# fleetops/worker/simulation.py
"""
Воркер запросов симуляции маршрута.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import ValidationError

from fleetops.worker.base import BaseWorker
from fleetops.infra.event_bus import DomainEvent, EventTypes
from fleetops.infra.task_queue import TaskQueue, get_task_queue
from fleetops.core.drivers.repository import DriverRepository
from fleetops.core.orders.repository import OrderRepository
from fleetops.core.simulation.service import RouteSimulator
from fleetops.shared.events import RouteSimulationRequested
from fleetops.common.logger import log_error, log_warning
from fleetops.config import settings


class SimulationWorker(BaseWorker):
    """Воркер для route.simulate: строит цепочку задач по точкам маршрута."""

    def __init__(
        self,
        *args,
        task_queue: Optional[TaskQueue] = None,
        simulator: Optional[RouteSimulator] = None,
        **kwargs,
    ) -> None:
        super().__init__(*args, **kwargs)
        self._simulator = simulator or RouteSimulator(
            task_queue or get_task_queue(),
            waypoint_delay=settings.simulation.WAYPOINT_DELAY,
            max_attempts=settings.simulation.TASK_MAX_ATTEMPTS,
            timeout=settings.simulation.TASK_TIMEOUT,
        )
        self._drivers = DriverRepository(self.db)
        self._orders = OrderRepository(self.db, self.redis)

    @property
    def name(self) -> str:
        return "SimulationWorker"

    @property
    def subscriptions(self) -> List[str]:
        return [EventTypes.ROUTE_SIMULATE]

    async def handle_event(self, event: DomainEvent) -> None:
        if event.event_type != EventTypes.ROUTE_SIMULATE:
            return

        try:
            request = RouteSimulationRequested.from_envelope(event)
        except ValidationError as e:
            await log_error("Некорректный запрос симуляции", extra={"payload": event.payload, "error": str(e)})
            return

        driver = await self._drivers.get_by_uuid(request.driver_uuid)
        if driver is None or driver.is_deleted:
            await log_warning(f"Симуляция: водитель {request.driver_uuid} не найден")
            return

        if request.waypoints:
            await self._simulator.simulate(driver, request.waypoints)
            return

        if request.order_uuid:
            order = await self._orders.get_cached(request.order_uuid)
            if order is None:
                await log_warning(f"Симуляция: заказ {request.order_uuid} не найден")
                return
            await self._simulator.simulate_order(driver, order)
            return

        await log_warning(f"Симуляция: нет точек маршрута для водителя {driver.public_id}")
