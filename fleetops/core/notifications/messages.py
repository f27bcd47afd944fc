# fleetops/core/notifications/messages.py
"""
Уведомления водителю о заказе: ping (adhoc) и assigned (прямое назначение).
Строят payload для трансляции и push-провайдеров.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional
from uuid import uuid4

from fleetops.common.constants import NotificationMode
from fleetops.common.geo import format_meters
from fleetops.core.orders.models import OrderSnapshot, TenantScope
from fleetops.core.orders.serializer import serialize_order
from fleetops.infra.event_bus import utc_timestamp

ANDROID_COLOR = "#4391EA"
ANALYTICS_LABEL = "analytics"
ANALYTICS_LABEL_IOS = "analytics_ios"


def new_event_id() -> str:
    """Уникальный идентификатор события трансляции."""
    return f"event_{uuid4().hex[:13]}"


@dataclass(frozen=True)
class OrderNotification(ABC):
    """Базовое уведомление: снимок заказа и контекст доставки."""

    order: OrderSnapshot
    distance: Optional[float] = None

    mode = NotificationMode.PING
    event = "order.ping"
    push_type = "order_ping"

    @property
    @abstractmethod
    def title(self) -> str:
        """Заголовок push-уведомления."""
        pass

    @property
    @abstractmethod
    def body(self) -> str:
        """Текст push-уведомления."""
        pass

    def push_data(self) -> dict[str, str]:
        return {"id": self.order.public_id, "type": self.push_type}

    def broadcast_channels(self, scope: TenantScope, prefix: str = "") -> list[str]:
        """
        Топики трансляции: компания (uuid и public_id), API-ключ, заказ (uuid и public_id).
        Пустые идентификаторы пропускаются.
        """
        channels = [
            f"company.{scope.company_uuid}",
            f"company.{scope.company_public_id}" if scope.company_public_id else None,
            f"api.{scope.api_credential}" if scope.api_credential else None,
            f"order.{self.order.uuid}",
            f"order.{self.order.public_id}",
        ]
        return [f"{prefix}{c}" for c in channels if c]

    def to_broadcast(self, api_version: str) -> dict[str, Any]:
        """Payload для real-time трансляции."""
        return {
            "id": new_event_id(),
            "api_version": api_version,
            "event": self.event,
            "created_at": utc_timestamp(),
            "data": serialize_order(self.order),
        }

    def to_fcm(self, token: str) -> dict[str, Any]:
        """Сообщение FCM HTTP v1."""
        return {
            "message": {
                "token": token,
                "notification": {"title": self.title, "body": self.body},
                "data": self.push_data(),
                "android": {
                    "fcm_options": {"analytics_label": ANALYTICS_LABEL},
                    "notification": {"color": ANDROID_COLOR},
                },
                "apns": {
                    "fcm_options": {"analytics_label": ANALYTICS_LABEL_IOS},
                },
            }
        }

    def to_apn(self) -> dict[str, Any]:
        """Payload APNs с deep-link действием на заказ."""
        return {
            "aps": {
                "alert": {"title": self.title, "body": self.body},
                "badge": 1,
            },
            **self.push_data(),
            "action": {"action": "view_order", "params": {"id": self.order.public_id}},
        }


@dataclass(frozen=True)
class PingNotification(OrderNotification):
    """Конкурентное предложение adhoc-заказа водителю поблизости."""

    mode = NotificationMode.PING
    event = "order.ping"
    push_type = "order_ping"

    @property
    def title(self) -> str:
        return "New incoming order!"

    @property
    def body(self) -> str:
        if self.distance:
            return f"New order available for pickup about {format_meters(self.distance, False)} away"
        return "New order is available for pickup."


@dataclass(frozen=True)
class AssignedNotification(OrderNotification):
    """Уведомление назначенному водителю."""

    mode = NotificationMode.ASSIGNED
    event = "order.assigned"
    push_type = "order_assigned"

    @property
    def title(self) -> str:
        return f"Order {self.order.public_id} has been dispatched!"

    @property
    def body(self) -> str:
        return "An order has been dispatched to you for pickup."


def build_notification(
    order: OrderSnapshot,
    mode: NotificationMode,
    distance: Optional[float] = None,
) -> OrderNotification:
    """Создаёт уведомление нужного режима."""
    if mode == NotificationMode.ASSIGNED:
        return AssignedNotification(order=order, distance=distance)
    return PingNotification(order=order, distance=distance)
