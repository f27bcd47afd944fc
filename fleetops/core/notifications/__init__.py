# fleetops/core/notifications/__init__.py
"""
Модуль уведомлений водителей: сообщения, каналы доставки, рассылка.
"""

from fleetops.core.notifications.messages import (
    AssignedNotification,
    OrderNotification,
    PingNotification,
    build_notification,
)
from fleetops.core.notifications.channels import (
    ApnChannel,
    BroadcastChannel,
    FcmChannel,
    build_default_channels,
)
from fleetops.core.notifications.service import (
    FanoutReport,
    NotificationFanout,
    NotifiedMarkers,
    RecipientResult,
)

__all__ = [
    "AssignedNotification",
    "OrderNotification",
    "PingNotification",
    "build_notification",
    "ApnChannel",
    "BroadcastChannel",
    "FcmChannel",
    "build_default_channels",
    "FanoutReport",
    "NotificationFanout",
    "NotifiedMarkers",
    "RecipientResult",
]
