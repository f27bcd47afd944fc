# fleetops/shared/events/dispatch_events.py
"""
События домена диспетчеризации заказов.
"""

from __future__ import annotations

from typing import Literal

from fleetops.shared.events.base import DomainEvent


class OrderDispatched(DomainEvent):
    """Событие: заказ отправлен на диспетчеризацию."""

    event_type: Literal["order.dispatched"] = "order.dispatched"

    order_uuid: str
    company_uuid: str | None = None


class DispatchFailed(DomainEvent):
    """Событие: диспетчеризация заказа не удалась или водитель не уведомлён."""

    event_type: Literal["order.dispatch_failed"] = "order.dispatch_failed"

    order_uuid: str
    order_public_id: str | None = None
    company_uuid: str | None = None
    reason: str
