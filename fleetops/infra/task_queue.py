# fleetops/infra/task_queue.py
"""
Очередь отложенных задач на базе RabbitMQ.
Задача несёт цепочку продолжений: следующая ставится в очередь
только после успешного завершения текущей.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable
from uuid import uuid4

import aio_pika
from aio_pika import Message
from aio_pika.abc import AbstractChannel, AbstractConnection, AbstractQueue

from fleetops.common.logger import get_logger, log_error, log_info
from fleetops.common.constants import TypeMsg

logger = get_logger("task_queue")


@dataclass
class QueuedTask:
    """Единица работы очереди задач."""
    name: str
    payload: dict[str, Any] = field(default_factory=dict)
    task_id: str = field(default_factory=lambda: str(uuid4()))
    attempt: int = 1
    max_attempts: int = 20
    timeout: float = 900.0
    delay: float = 0.0
    chain: list[QueuedTask] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "task_id": self.task_id,
            "name": self.name,
            "payload": self.payload,
            "attempt": self.attempt,
            "max_attempts": self.max_attempts,
            "timeout": self.timeout,
            "delay": self.delay,
            "chain": [t.to_dict() for t in self.chain],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> QueuedTask:
        return cls(
            task_id=data.get("task_id", str(uuid4())),
            name=data.get("name", ""),
            payload=data.get("payload", {}),
            attempt=int(data.get("attempt", 1)),
            max_attempts=int(data.get("max_attempts", 20)),
            timeout=float(data.get("timeout", 900.0)),
            delay=float(data.get("delay", 0.0)),
            chain=[cls.from_dict(t) for t in data.get("chain", [])],
        )

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, default=str)

    @classmethod
    def from_json(cls, data: str) -> QueuedTask:
        return cls.from_dict(json.loads(data))

    def next_in_chain(self) -> QueuedTask | None:
        """
        Следующая задача цепочки с остатком продолжений.

        Returns:
            QueuedTask или None, если цепочка закончилась
        """
        if not self.chain:
            return None
        head, *rest = self.chain
        return QueuedTask(
            name=head.name,
            payload=head.payload,
            task_id=head.task_id,
            max_attempts=head.max_attempts,
            timeout=head.timeout,
            delay=head.delay,
            chain=list(head.chain) + rest,
        )

    def retried(self, delay: float) -> QueuedTask:
        """Копия задачи для следующей попытки (та же цепочка)."""
        return QueuedTask(
            name=self.name,
            payload=self.payload,
            task_id=self.task_id,
            attempt=self.attempt + 1,
            max_attempts=self.max_attempts,
            timeout=self.timeout,
            delay=delay,
            chain=list(self.chain),
        )

    @property
    def exhausted(self) -> bool:
        """Попытки исчерпаны."""
        return self.attempt >= self.max_attempts


TaskHandler = Callable[[QueuedTask], Awaitable[None]]


class TaskQueue:
    """
    Durable очередь задач RabbitMQ (default exchange, routing_key = имя очереди).
    """

    _instance: TaskQueue | None = None

    def __new__(cls) -> TaskQueue:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        if hasattr(self, "_initialized"):
            return
        self._initialized = True
        self._connection: AbstractConnection | None = None
        self._channel: AbstractChannel | None = None
        self._queue: AbstractQueue | None = None
        self._queue_name = "fleetops.tasks"

    @property
    def is_connected(self) -> bool:
        return self._connection is not None and not self._connection.is_closed

    async def connect(
        self,
        url: str | None = None,
        queue_name: str | None = None,
        prefetch_count: int = 10,
    ) -> None:
        """
        Подключается к RabbitMQ и объявляет очередь задач.

        Args:
            url: URL RabbitMQ (если None, берётся из конфига)
            queue_name: Имя очереди
            prefetch_count: Сколько задач воркер держит одновременно
        """
        if self.is_connected:
            return

        if url is None:
            from fleetops.config import settings
            url = settings.rabbitmq.url
            queue_name = settings.simulation.TASK_QUEUE
            prefetch_count = settings.rabbitmq.RABBITMQ_PREFETCH_COUNT

        if queue_name:
            self._queue_name = queue_name

        self._connection = await aio_pika.connect_robust(url)
        self._channel = await self._connection.channel()
        await self._channel.set_qos(prefetch_count=prefetch_count)
        self._queue = await self._channel.declare_queue(self._queue_name, durable=True)

        await log_info(f"Очередь задач готова: {self._queue_name}", type_msg=TypeMsg.INFO)

    async def disconnect(self) -> None:
        """Закрывает соединение."""
        if self._connection is not None:
            await self._connection.close()
            self._connection = None
            self._channel = None
            self._queue = None
            await log_info("Очередь задач отключена", type_msg=TypeMsg.INFO)

    async def enqueue(self, task: QueuedTask) -> bool:
        """
        Ставит задачу в очередь.

        Returns:
            True если задача отправлена
        """
        if not self.is_connected or self._channel is None:
            await log_error(
                "Не удалось поставить задачу: нет соединения с RabbitMQ",
                extra={"task": task.name, "task_id": task.task_id},
            )
            return False

        try:
            message = Message(
                body=task.to_json().encode(),
                content_type="application/json",
                message_id=f"{task.task_id}:{task.attempt}",
                timestamp=datetime.now(timezone.utc),
                delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
            )
            await self._channel.default_exchange.publish(message, routing_key=self._queue_name)

            await log_info(
                f"Задача поставлена: {task.name} (попытка {task.attempt})",
                type_msg=TypeMsg.DEBUG,
                extra={"task_id": task.task_id},
            )
            return True
        except Exception as e:
            await log_error(f"Ошибка постановки задачи {task.name}: {e}")
            return False

    async def consume(self, handler: TaskHandler) -> None:
        """
        Запускает потребление очереди.
        Сообщение подтверждается после того, как handler вернул управление:
        повторы и продолжения handler ставит сам.
        """
        if self._queue is None:
            await log_error("Не удалось подписаться на задачи: очередь не объявлена")
            return

        async def consumer(message: aio_pika.abc.AbstractIncomingMessage) -> None:
            async with message.process(requeue=False):
                try:
                    task = QueuedTask.from_json(message.body.decode())
                except (ValueError, KeyError) as e:
                    await log_error(f"Некорректное сообщение очереди задач: {e}")
                    return
                await handler(task)

        await self._queue.consume(consumer)

    async def health_check(self) -> bool:
        try:
            return self.is_connected
        except Exception as e:
            await log_error(f"Health check очереди задач failed: {e}")
            return False


_task_queue: TaskQueue | None = None


def get_task_queue() -> TaskQueue:
    """Возвращает глобальный экземпляр TaskQueue."""
    global _task_queue
    if _task_queue is None:
        _task_queue = TaskQueue()
    return _task_queue


async def init_task_queue() -> None:
    """Инициализирует очередь задач по настройкам."""
    from fleetops.config import settings

    await get_task_queue().connect(
        url=settings.rabbitmq.url,
        queue_name=settings.simulation.TASK_QUEUE,
        prefetch_count=settings.rabbitmq.RABBITMQ_PREFETCH_COUNT,
    )


async def close_task_queue() -> None:
    """Закрывает очередь задач."""
    await get_task_queue().disconnect()
