# fleetops/core/orders/__init__.py
"""
Модуль заказов: модели, снимки и репозиторий.
"""

from fleetops.core.orders.models import (
    Company,
    DispatchActivity,
    Order,
    OrderActivity,
    OrderSnapshot,
    TenantScope,
)
from fleetops.core.orders.repository import OrderRepository
from fleetops.core.orders.serializer import serialize_order

__all__ = [
    "Company",
    "DispatchActivity",
    "Order",
    "OrderActivity",
    "OrderSnapshot",
    "TenantScope",
    "OrderRepository",
    "serialize_order",
]
