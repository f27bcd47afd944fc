# fleetops/core/simulation/service.py
"""
Симуляция движения водителя по маршруту.

Маршрут превращается в цепочку задач "точка достигнута": первая задача
ставится в очередь сразу, остальные едут в её цепочке продолжений и
ставятся только после успешного выполнения предыдущей.
"""

from __future__ import annotations

from typing import Sequence

from fleetops.common.constants import DriverStatus, TypeMsg
from fleetops.common.exceptions import FleetOpsError, SimulationHalted
from fleetops.common.logger import log_info, log_warning
from fleetops.core.drivers.models import Driver
from fleetops.core.drivers.repository import DriverRepository
from fleetops.core.notifications.messages import new_event_id
from fleetops.core.orders.models import Order
from fleetops.infra.event_bus import EventBus, EventTypes, utc_timestamp
from fleetops.infra.redis_client import RedisClient
from fleetops.infra.task_queue import QueuedTask, TaskQueue
from fleetops.shared.events import DriverSimulatedLocationChanged, RouteSimulationAbandoned
from fleetops.shared.models.waypoint import Waypoint

WAYPOINT_REACHED_TASK = "route.waypoint_reached"


class RouteSimulator:
    """Планировщик цепочки задач симуляции."""

    def __init__(
        self,
        task_queue: TaskQueue,
        waypoint_delay: float = 1.0,
        max_attempts: int = 20,
        timeout: float = 900.0,
    ) -> None:
        """
        Args:
            task_queue: Очередь задач
            waypoint_delay: Пауза перед каждой точкой, кроме первой (секунды)
            max_attempts: Попыток на одну задачу
            timeout: Предел времени одной задачи (секунды)
        """
        self._queue = task_queue
        self._delay = waypoint_delay
        self._max_attempts = max_attempts
        self._timeout = timeout

    def build_chain(self, driver: Driver, waypoints: Sequence[Waypoint]) -> QueuedTask | None:
        """
        Строит цепочку задач по точкам в порядке следования.

        Returns:
            Первая задача (индекс 0) с остальными в chain, или None для пустого маршрута
        """
        if not waypoints:
            return None

        total = len(waypoints)
        tasks = [
            QueuedTask(
                name=WAYPOINT_REACHED_TASK,
                payload={
                    "driver_uuid": driver.uuid,
                    "index": index,
                    "total": total,
                    "waypoint": waypoint.model_copy(update={"index": index}).model_dump(mode="json"),
                },
                max_attempts=self._max_attempts,
                timeout=self._timeout,
                delay=0.0 if index == 0 else self._delay,
            )
            for index, waypoint in enumerate(waypoints)
        ]

        head = tasks[0]
        head.chain = tasks[1:]
        return head

    async def simulate(self, driver: Driver, waypoints: Sequence[Waypoint]) -> QueuedTask | None:
        """
        Запускает симуляцию маршрута водителя.

        Args:
            driver: Водитель
            waypoints: Точки маршрута по порядку

        Returns:
            Поставленная в очередь первая задача или None
        """
        head = self.build_chain(driver, waypoints)
        if head is None:
            await log_warning(f"Симуляция для водителя {driver.public_id}: пустой маршрут")
            return None

        if not await self._queue.enqueue(head):
            raise FleetOpsError(f"Не удалось запустить симуляцию для водителя {driver.public_id}")

        await log_info(
            f"Симуляция маршрута запущена: водитель {driver.public_id}, точек {len(waypoints)}",
            type_msg=TypeMsg.INFO,
        )
        return head

    async def simulate_order(self, driver: Driver, order: Order) -> QueuedTask | None:
        """Симуляция по маршруту заказа: подача, промежуточные точки, назначение."""
        return await self.simulate(driver, order.route())


class WaypointReachedHandler:
    """
    Выполняет задачу "точка достигнута": проверяет водителя, обновляет позицию,
    транслирует её и публикует DriverSimulatedLocationChanged.
    """

    def __init__(
        self,
        drivers: DriverRepository,
        event_bus: EventBus,
        redis: RedisClient,
        api_version: str = "v1",
        channel_prefix: str = "",
    ) -> None:
        self._drivers = drivers
        self._event_bus = event_bus
        self._redis = redis
        self._api_version = api_version
        self._prefix = channel_prefix

    async def __call__(self, task: QueuedTask) -> None:
        driver_uuid = task.payload["driver_uuid"]
        waypoint = Waypoint.model_validate(task.payload["waypoint"])

        driver = await self._drivers.get_by_uuid(driver_uuid)
        if driver is None or driver.is_deleted:
            raise SimulationHalted(f"водитель {driver_uuid} не найден или удалён")
        if driver.status != DriverStatus.ACTIVE.value:
            raise SimulationHalted(f"водитель {driver.public_id} неактивен ({driver.status})")

        if not await self._drivers.update_location(driver.uuid, waypoint.point):
            raise FleetOpsError(f"Не удалось обновить позицию водителя {driver.public_id}")

        event = DriverSimulatedLocationChanged(
            driver_uuid=driver.uuid,
            driver_public_id=driver.public_id,
            company_uuid=driver.company_uuid,
            waypoint=waypoint,
        )

        await self._broadcast(driver, event)

        if not await self._event_bus.publish(event.to_envelope()):
            raise FleetOpsError(f"Событие смены позиции водителя {driver.public_id} не опубликовано")

        await log_info(
            f"Водитель {driver.public_id}: точка {waypoint.index + 1}/{task.payload.get('total', '?')}",
            type_msg=TypeMsg.DEBUG,
        )

    async def _broadcast(self, driver: Driver, event: DriverSimulatedLocationChanged) -> None:
        payload = {
            "id": new_event_id(),
            "api_version": self._api_version,
            "event": EventTypes.DRIVER_SIMULATED_LOCATION_CHANGED,
            "created_at": utc_timestamp(),
            "data": {
                "id": driver.public_id,
                "location": event.waypoint.point.to_list(),
                "waypoint": event.waypoint.model_dump(mode="json"),
            },
        }
        channels = list(driver.channel_ids)
        if driver.company_uuid:
            channels.append(f"company.{driver.company_uuid}")

        for channel in channels:
            await self._redis.publish(f"{self._prefix}{channel}", payload)

    async def abandon(self, task: QueuedTask, reason: str) -> None:
        """Терминальный сигнал: цепочка прервана, оставшиеся точки не пройдены."""
        event = RouteSimulationAbandoned(
            driver_uuid=task.payload.get("driver_uuid", ""),
            index=int(task.payload.get("index", 0)),
            attempts=task.attempt,
            remaining=len(task.chain),
            reason=reason,
        )
        await log_warning(
            f"Симуляция водителя {event.driver_uuid} прервана на точке {event.index}: {reason}",
            extra={"task_id": task.task_id},
        )
        await self._event_bus.publish(event.to_envelope())
