# fleetops/common/exceptions.py
"""
Исключения доменного слоя.
"""

from __future__ import annotations


class FleetOpsError(Exception):
    """Базовое исключение приложения."""


class NotificationDeliveryError(FleetOpsError):
    """Уведомление назначенному водителю не доставлено ни по одному каналу."""

    def __init__(self, order_id: str, driver_id: str, errors: list[str] | None = None) -> None:
        self.order_id = order_id
        self.driver_id = driver_id
        self.errors = errors or []
        super().__init__(
            f"Не удалось уведомить водителя {driver_id} о заказе {order_id}: "
            f"{'; '.join(self.errors) or 'unknown error'}"
        )


class SimulationHalted(FleetOpsError):
    """Цепочка симуляции маршрута остановлена без повторных попыток."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class TaskTimeoutError(FleetOpsError):
    """Задача превысила допустимое время выполнения."""


class PushDeliveryError(FleetOpsError):
    """Push-провайдер отклонил часть устройств водителя."""

    def __init__(self, channel: str, errors: list[str]) -> None:
        self.channel = channel
        self.errors = errors
        super().__init__(f"{channel}: не доставлено на {len(errors)} устр.: {'; '.join(errors)}")
