# fleetops/infra/__init__.py
"""
Инфраструктурный слой.
Работа с внешними сервисами: PostgreSQL, Redis, RabbitMQ.
"""

from fleetops.infra.database import DatabaseManager, get_db
from fleetops.infra.redis_client import RedisClient, get_redis
from fleetops.infra.event_bus import DomainEvent, EventBus, EventTypes, get_event_bus
from fleetops.infra.task_queue import QueuedTask, TaskQueue, get_task_queue

__all__ = [
    "DatabaseManager",
    "get_db",
    "RedisClient",
    "get_redis",
    "DomainEvent",
    "EventBus",
    "EventTypes",
    "get_event_bus",
    "QueuedTask",
    "TaskQueue",
    "get_task_queue",
]
