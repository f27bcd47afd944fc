# fleetops/common/constants.py
"""
Общие константы и перечисления.
"""

from enum import Enum


class TypeMsg(str, Enum):
    """Типы сообщений для логирования."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class DriverStatus(str, Enum):
    """Статусы учётной записи водителя."""
    ACTIVE = "active"
    INACTIVE = "inactive"
    PENDING = "pending"


class OrderStatus(str, Enum):
    """Базовые коды статусов заказа (flow может задавать свои)."""
    CREATED = "created"
    DISPATCHED = "dispatched"
    STARTED = "started"
    COMPLETED = "completed"
    CANCELED = "canceled"


class NotificationMode(str, Enum):
    """Режим уведомления водителя о заказе."""
    PING = "ping"
    ASSIGNED = "assigned"


class DispatchState(str, Enum):
    """Состояния жизненного цикла диспетчеризации заказа."""
    FAILED = "failed"
    DISPATCHED_ADHOC_PENDING = "dispatched_adhoc_pending"
    DISPATCHED_ASSIGNED = "dispatched_assigned"


class DeliveryStatus(str, Enum):
    """Результат доставки уведомления по одному каналу."""
    SENT = "sent"
    SKIPPED = "skipped"
    FAILED = "failed"


# Радиус поиска водителей для adhoc-заказов по умолчанию (метры)
DEFAULT_ADHOC_DISTANCE = 6000

# Причины неудачной диспетчеризации
REASON_NO_DRIVER_ASSIGNED = "No driver assigned for order to dispatch to."
REASON_DRIVER_NOT_NOTIFIED = "Order was dispatched, but driver was unable to be notified."
