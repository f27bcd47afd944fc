# fleetops/worker/dispatch.py
"""
Воркер диспетчеризации заказов.
"""

from __future__ import annotations

from typing import List, Optional

import httpx
from pydantic import ValidationError

from fleetops.worker.base import BaseWorker
from fleetops.infra.event_bus import DomainEvent, EventTypes
from fleetops.core.dispatch.service import DispatchCoordinator
from fleetops.core.drivers.repository import DriverRepository
from fleetops.core.flow.resolver import DispatchActivityResolver
from fleetops.core.matching.service import GeoMatcher
from fleetops.core.notifications.channels import build_default_channels
from fleetops.core.notifications.service import NotificationFanout, NotifiedMarkers
from fleetops.core.orders.repository import OrderRepository
from fleetops.shared.events import OrderDispatched
from fleetops.common.logger import log_error
from fleetops.config import settings


class DispatchWorker(BaseWorker):
    """
    Воркер для order.dispatched.
    Ошибка доставки назначенному водителю возвращает событие в очередь.
    """

    reraise_errors = True

    def __init__(self, *args, coordinator: Optional[DispatchCoordinator] = None, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._coordinator = coordinator
        self._http: Optional[httpx.AsyncClient] = None

    @property
    def name(self) -> str:
        return "DispatchWorker"

    @property
    def subscriptions(self) -> List[str]:
        return [EventTypes.ORDER_DISPATCHED]

    async def on_start(self) -> None:
        if self._coordinator is None:
            self._coordinator = self._build_coordinator()

    async def on_stop(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    def _build_coordinator(self) -> DispatchCoordinator:
        """Собирает координатор из инфраструктуры воркера."""
        self._http = httpx.AsyncClient(http2=True, timeout=settings.push.PUSH_TIMEOUT)

        drivers = DriverRepository(self.db)
        fanout = NotificationFanout(
            build_default_channels(self.redis, self._http),
            markers=NotifiedMarkers(self.redis, ttl=settings.redis_ttl.NOTIFIED_DRIVERS_TTL),
        )

        return DispatchCoordinator(
            orders=OrderRepository(self.db, self.redis),
            drivers=drivers,
            matcher=GeoMatcher(drivers),
            resolver=DispatchActivityResolver(),
            fanout=fanout,
            event_bus=self.event_bus,
            default_adhoc_distance=settings.dispatch.ADHOC_DISTANCE_DEFAULT,
        )

    async def handle_event(self, event: DomainEvent) -> None:
        """Обрабатывает событие."""
        if event.event_type != EventTypes.ORDER_DISPATCHED:
            return

        try:
            dispatched = OrderDispatched.from_envelope(event)
        except ValidationError as e:
            await log_error("Некорректное событие order.dispatched", extra={"payload": event.payload, "error": str(e)})
            return

        await self._coordinator.dispatch_by_uuid(dispatched.order_uuid)
