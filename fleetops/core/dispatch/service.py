# fleetops/core/dispatch/service.py
"""
Координатор диспетчеризации заказа.

Проверяет предусловия, применяет активность flow, помечает заказ отправленным
и выбирает ветку: adhoc (ping водителям поблизости) или прямое назначение.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from fleetops.common.constants import (
    DEFAULT_ADHOC_DISTANCE,
    REASON_DRIVER_NOT_NOTIFIED,
    REASON_NO_DRIVER_ASSIGNED,
    DispatchState,
    NotificationMode,
    TypeMsg,
)
from fleetops.common.exceptions import FleetOpsError, NotificationDeliveryError
from fleetops.common.geo import Point, is_point
from fleetops.common.logger import log_info, log_warning
from fleetops.core.drivers.repository import DriverRepository
from fleetops.core.flow.resolver import DispatchActivityResolver
from fleetops.core.matching.service import GeoMatcher
from fleetops.core.notifications.service import FanoutReport, NotificationFanout
from fleetops.core.orders.models import DispatchActivity, Order, OrderActivity, TenantScope
from fleetops.core.orders.repository import OrderRepository
from fleetops.infra.event_bus import EventBus
from fleetops.shared.events import DispatchFailed


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class DispatchOutcome:
    """Итог обработки события диспетчеризации."""
    order_uuid: str
    state: DispatchState
    reason: Optional[str] = None
    activity: Optional[DispatchActivity] = None
    radius: Optional[float] = None
    report: Optional[FanoutReport] = None


class DispatchCoordinator:
    """
    Обработчик события order.dispatched.

    Безопасен к повторной доставке события: активность с тем же кодом
    не дублируется, dispatched_at не перезаписывается, уже уведомлённые
    водители пропускаются (метки в NotificationFanout).
    """

    def __init__(
        self,
        orders: OrderRepository,
        drivers: DriverRepository,
        matcher: GeoMatcher,
        resolver: DispatchActivityResolver,
        fanout: NotificationFanout,
        event_bus: EventBus,
        default_adhoc_distance: int = DEFAULT_ADHOC_DISTANCE,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._orders = orders
        self._drivers = drivers
        self._matcher = matcher
        self._resolver = resolver
        self._fanout = fanout
        self._event_bus = event_bus
        self._default_adhoc_distance = default_adhoc_distance
        self._clock = clock

    async def dispatch_by_uuid(self, order_uuid: str) -> Optional[DispatchOutcome]:
        """Загружает заказ и обрабатывает его; None если заказ не найден."""
        order = await self._orders.get_by_uuid(order_uuid)
        if order is None:
            await log_warning(f"Заказ {order_uuid} для диспетчеризации не найден")
            return None
        return await self.handle(order)

    async def handle(self, order: Order) -> DispatchOutcome:
        """
        Обрабатывает диспетчеризацию заказа.

        Args:
            order: Заказ с загруженными компанией, flow и активностями

        Returns:
            DispatchOutcome

        Raises:
            NotificationDeliveryError: назначенному водителю не удалось доставить уведомление
            FleetOpsError: не удалось сохранить состояние заказа
        """
        scope = TenantScope.for_order(order)

        if not order.has_driver_assigned and not order.adhoc:
            await self._fail(order, scope, REASON_NO_DRIVER_ASSIGNED)
            return DispatchOutcome(order.uuid, DispatchState.FAILED, reason=REASON_NO_DRIVER_ASSIGNED)

        now = self._dispatch_time(order)
        activity = self._resolver.resolve(order)
        if activity is not None:
            order = await self._apply_activity(order, activity, now)

        order = await self._mark_dispatched(order, now)

        if order.adhoc:
            return await self._dispatch_adhoc(order, scope, activity)

        return await self._dispatch_direct(order, scope, activity)

    # =========================================================================
    # ПЕРЕХОДЫ СОСТОЯНИЯ
    # =========================================================================

    def _dispatch_time(self, order: Order) -> datetime:
        """Текущее время, но не раньше последней активности заказа."""
        now = self._clock()
        stamps = [a.created_at for a in order.activities if a.created_at is not None]
        if stamps:
            latest = max(stamps)
            if latest.tzinfo is None:
                latest = latest.replace(tzinfo=timezone.utc)
            now = max(now, latest)
        return now

    async def _apply_activity(self, order: Order, activity: DispatchActivity, now: datetime) -> Order:
        if order.has_activity(activity.code):
            return order

        record = OrderActivity(
            code=activity.code,
            status=activity.status,
            details=activity.details,
            location=await self._last_known_location(order),
            created_at=now,
        )
        if not await self._orders.apply_activity(order.uuid, record):
            raise FleetOpsError(f"Не удалось записать активность {activity.code} заказа {order.uuid}")

        return order.model_copy(update={
            "status": activity.code,
            "activities": [*order.activities, record],
        })

    async def _mark_dispatched(self, order: Order, now: datetime) -> Order:
        if order.dispatched and order.dispatched_at is not None:
            await self._orders.invalidate_cache(order.uuid)
            return order

        if not await self._orders.mark_dispatched(order.uuid, now):
            raise FleetOpsError(f"Не удалось пометить заказ {order.uuid} отправленным")

        await self._orders.invalidate_cache(order.uuid)
        await log_info(f"Заказ {order.public_id} отправлен", type_msg=TypeMsg.INFO)

        return order.model_copy(update={"dispatched": True, "dispatched_at": now})

    async def _last_known_location(self, order: Order) -> Optional[Point]:
        """Позиция назначенного водителя, иначе точка подачи."""
        if order.driver_assigned_uuid:
            driver = await self._drivers.get_by_uuid(order.driver_assigned_uuid)
            if driver is not None and driver.location is not None:
                return driver.location
        return order.pickup

    # =========================================================================
    # ВЕТКИ
    # =========================================================================

    def _adhoc_radius(self, order: Order) -> float:
        if order.adhoc_distance is not None:
            return float(order.adhoc_distance)
        if order.company is not None and order.company.adhoc_distance is not None:
            return float(order.company.adhoc_distance)
        return float(self._default_adhoc_distance)

    async def _dispatch_adhoc(
        self,
        order: Order,
        scope: TenantScope,
        activity: Optional[DispatchActivity],
    ) -> DispatchOutcome:
        radius = self._adhoc_radius(order)
        outcome = DispatchOutcome(
            order.uuid,
            DispatchState.DISPATCHED_ADHOC_PENDING,
            activity=activity,
            radius=radius,
        )

        if not is_point(order.pickup):
            await log_info(
                f"Заказ {order.public_id}: нет корректной точки подачи, ping не отправлен",
                type_msg=TypeMsg.DEBUG,
            )
            return outcome

        matches = await self._matcher.find_eligible_drivers(order.pickup, radius, scope)

        # ошибки отдельных водителей остаются в отчёте
        outcome.report = await self._fanout.notify(
            order.snapshot(),
            [m.driver for m in matches],
            NotificationMode.PING,
            scope,
            distances={m.driver.uuid: m.distance for m in matches},
        )
        return outcome

    async def _dispatch_direct(
        self,
        order: Order,
        scope: TenantScope,
        activity: Optional[DispatchActivity],
    ) -> DispatchOutcome:
        driver = await self._drivers.get_by_uuid(order.driver_assigned_uuid)

        if driver is None:
            await self._fail(order, scope, REASON_DRIVER_NOT_NOTIFIED)
            return DispatchOutcome(
                order.uuid,
                DispatchState.DISPATCHED_ASSIGNED,
                reason=REASON_DRIVER_NOT_NOTIFIED,
                activity=activity,
            )

        report = await self._fanout.notify(order.snapshot(), [driver], NotificationMode.ASSIGNED, scope)

        result = report.for_driver(driver.uuid)
        if result is not None and not result.ok:
            raise NotificationDeliveryError(order.public_id, driver.public_id, result.errors)

        return DispatchOutcome(
            order.uuid,
            DispatchState.DISPATCHED_ASSIGNED,
            activity=activity,
            report=report,
        )

    async def _fail(self, order: Order, scope: TenantScope, reason: str) -> None:
        """Сигнал неудачи диспетчеризации для операторов и UI."""
        await log_warning(
            f"Диспетчеризация заказа {order.public_id}: {reason}",
            extra={"order_uuid": order.uuid, "company_uuid": scope.company_uuid},
        )
        event = DispatchFailed(
            order_uuid=order.uuid,
            order_public_id=order.public_id,
            company_uuid=scope.company_uuid,
            reason=reason,
        )
        await self._event_bus.publish(event.to_envelope())
