# fleetops/core/notifications/service.py
"""
Сервис уведомлений водителей о заказе.
Доставляет каждому получателю независимо по всем каналам и собирает отчёт.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Optional, Sequence

from fleetops.common.constants import DeliveryStatus, NotificationMode, TypeMsg
from fleetops.common.logger import log_info, log_warning
from fleetops.core.drivers.models import Driver
from fleetops.core.notifications.channels import DeliveryChannel
from fleetops.core.notifications.messages import build_notification
from fleetops.core.orders.models import OrderSnapshot, TenantScope
from fleetops.infra.redis_client import RedisClient


@dataclass
class RecipientResult:
    """Результат доставки одному водителю."""
    driver_uuid: str
    distance: Optional[float] = None
    channels: dict[str, DeliveryStatus] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)
    already_notified: bool = False

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def delivered(self) -> bool:
        return self.ok and not self.already_notified


@dataclass
class FanoutReport:
    """Сводка по рассылке одного уведомления."""
    order_uuid: str
    mode: NotificationMode
    results: list[RecipientResult] = field(default_factory=list)

    @property
    def delivered(self) -> list[RecipientResult]:
        return [r for r in self.results if r.delivered]

    @property
    def failed(self) -> list[RecipientResult]:
        return [r for r in self.results if not r.ok]

    @property
    def skipped(self) -> list[RecipientResult]:
        return [r for r in self.results if r.already_notified]

    def for_driver(self, driver_uuid: str) -> Optional[RecipientResult]:
        return next((r for r in self.results if r.driver_uuid == driver_uuid), None)


class NotifiedMarkers:
    """
    Метки уведомлённых водителей в Redis: order:{uuid}:notified:{driver}.
    Повторная доставка события не рассылает уведомление второй раз.
    """

    KEY = "order:{order_uuid}:notified:{driver_uuid}"

    def __init__(self, redis: RedisClient, ttl: int) -> None:
        self._redis = redis
        self._ttl = ttl

    def _key(self, order_uuid: str, driver_uuid: str) -> str:
        return self.KEY.format(order_uuid=order_uuid, driver_uuid=driver_uuid)

    async def claim(self, order_uuid: str, driver_uuid: str, mode: NotificationMode) -> bool:
        """Ставит метку; False если водитель уже уведомлён."""
        return await self._redis.set_nx(self._key(order_uuid, driver_uuid), mode.value, ttl=self._ttl)

    async def release(self, order_uuid: str, driver_uuid: str) -> None:
        """Снимает метку после неудачной доставки."""
        await self._redis.delete(self._key(order_uuid, driver_uuid))


class NotificationFanout:
    """
    Рассылка уведомлений о заказе.

    Каналы для получателя вызываются независимо друг от друга,
    получатели обрабатываются конкурентно. Ошибка одного получателя
    попадает в его RecipientResult и не влияет на остальных.
    """

    def __init__(
        self,
        channels: Sequence[DeliveryChannel],
        markers: NotifiedMarkers | None = None,
    ) -> None:
        """
        Args:
            channels: Каналы доставки
            markers: Метки уведомлённых водителей (None отключает дедупликацию)
        """
        self._channels = list(channels)
        self._markers = markers

    async def notify(
        self,
        order: OrderSnapshot,
        recipients: Sequence[Driver],
        mode: NotificationMode,
        scope: TenantScope,
        distances: dict[str, float] | None = None,
    ) -> FanoutReport:
        """
        Уведомляет водителей о заказе.

        Args:
            order: Снимок заказа
            recipients: Водители-получатели
            mode: PING для adhoc, ASSIGNED для назначенного водителя
            scope: Контекст тенанта (топики трансляции)
            distances: Расстояние до точки подачи по UUID водителя

        Returns:
            FanoutReport с результатом по каждому получателю
        """
        distances = distances or {}

        results = await asyncio.gather(*(
            self._notify_one(order, driver, mode, scope, distances.get(driver.uuid))
            for driver in recipients
        ))

        report = FanoutReport(order_uuid=order.uuid, mode=mode, results=list(results))

        await log_info(
            f"Заказ {order.public_id}: {mode.value} доставлено {len(report.delivered)}, "
            f"ошибок {len(report.failed)}, повторов {len(report.skipped)}",
            type_msg=TypeMsg.INFO,
            extra={"company_uuid": scope.company_uuid, "order_uuid": order.uuid},
        )

        return report

    async def _notify_one(
        self,
        order: OrderSnapshot,
        driver: Driver,
        mode: NotificationMode,
        scope: TenantScope,
        distance: Optional[float],
    ) -> RecipientResult:
        result = RecipientResult(driver_uuid=driver.uuid, distance=distance)

        try:
            if self._markers is not None and not await self._markers.claim(order.uuid, driver.uuid, mode):
                result.already_notified = True
                return result
        except Exception as e:
            result.errors.append(f"markers: {e}")
            return result

        notification = build_notification(order, mode, distance)

        for channel in self._channels:
            try:
                result.channels[channel.name] = await channel.deliver(notification, driver, scope)
            except Exception as e:
                result.channels[channel.name] = DeliveryStatus.FAILED
                result.errors.append(f"{channel.name}: {e}")

        if result.errors:
            await log_warning(
                f"Не удалось уведомить водителя {driver.public_id} о заказе {order.public_id}: "
                f"{'; '.join(result.errors)}",
                extra={"order_uuid": order.uuid, "driver_uuid": driver.uuid},
            )
            if self._markers is not None:
                try:
                    await self._markers.release(order.uuid, driver.uuid)
                except Exception as e:
                    result.errors.append(f"markers: {e}")

        return result
