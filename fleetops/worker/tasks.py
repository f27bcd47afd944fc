# fleetops/worker/tasks.py
"""
Исполнитель задач из очереди: таймаут, повторы, цепочки продолжений.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional

from fleetops.common.constants import TypeMsg
from fleetops.common.exceptions import SimulationHalted, TaskTimeoutError
from fleetops.common.logger import log_error, log_info, log_warning
from fleetops.infra.task_queue import QueuedTask, TaskHandler, TaskQueue, get_task_queue

AbandonHandler = Callable[[QueuedTask, str], Awaitable[None]]


class TaskOutcome(str, Enum):
    """Итог одного запуска задачи."""
    COMPLETED = "completed"
    RETRIED = "retried"
    ABANDONED = "abandoned"
    UNKNOWN = "unknown"


@dataclass
class _Registration:
    handler: TaskHandler
    on_abandon: Optional[AbandonHandler] = None


class TaskRunner:
    """
    Выполняет задачу и решает, что дальше.

    - успех: в очередь ставится следующая задача цепочки
    - ошибка или таймаут: повтор с задержкой, пока не исчерпаны попытки
    - SimulationHalted или исчерпанные попытки: цепочка прерывается
    """

    def __init__(self, task_queue: TaskQueue, retry_delay: float = 5.0) -> None:
        self._queue = task_queue
        self._retry_delay = retry_delay
        self._handlers: dict[str, _Registration] = {}

    def register(
        self,
        name: str,
        handler: TaskHandler,
        on_abandon: Optional[AbandonHandler] = None,
    ) -> None:
        """Регистрирует обработчик задач с именем name."""
        self._handlers[name] = _Registration(handler=handler, on_abandon=on_abandon)

    async def run(self, task: QueuedTask) -> TaskOutcome:
        """
        Выполняет задачу.

        Args:
            task: Задача из очереди

        Returns:
            TaskOutcome
        """
        registration = self._handlers.get(task.name)
        if registration is None:
            await log_error(f"Нет обработчика для задачи {task.name}", extra={"task_id": task.task_id})
            return TaskOutcome.UNKNOWN

        if task.delay > 0:
            await asyncio.sleep(task.delay)

        try:
            await asyncio.wait_for(registration.handler(task), timeout=task.timeout)
        except SimulationHalted as e:
            await self._abandon(registration, task, e.reason)
            return TaskOutcome.ABANDONED
        except asyncio.TimeoutError:
            error = TaskTimeoutError(f"задача {task.name} превысила {task.timeout} с")
            return await self._retry_or_abandon(registration, task, str(error))
        except Exception as e:
            return await self._retry_or_abandon(registration, task, str(e))

        next_task = task.next_in_chain()
        if next_task is not None and not await self._queue.enqueue(next_task):
            await self._abandon(registration, next_task, "не удалось поставить следующую задачу цепочки")
            return TaskOutcome.ABANDONED

        await log_info(f"Задача {task.name} выполнена", type_msg=TypeMsg.DEBUG, extra={"task_id": task.task_id})
        return TaskOutcome.COMPLETED

    async def _retry_or_abandon(self, registration: _Registration, task: QueuedTask, error: str) -> TaskOutcome:
        if task.exhausted:
            await self._abandon(registration, task, f"попытки исчерпаны ({task.attempt}): {error}")
            return TaskOutcome.ABANDONED

        await log_warning(
            f"Задача {task.name} упала (попытка {task.attempt}/{task.max_attempts}): {error}",
            extra={"task_id": task.task_id},
        )

        if not await self._queue.enqueue(task.retried(self._retry_delay)):
            await self._abandon(registration, task, f"не удалось поставить повтор: {error}")
            return TaskOutcome.ABANDONED

        return TaskOutcome.RETRIED

    async def _abandon(self, registration: _Registration, task: QueuedTask, reason: str) -> None:
        if registration.on_abandon is None:
            await log_error(f"Задача {task.name} прервана: {reason}", extra={"task_id": task.task_id})
            return
        try:
            await registration.on_abandon(task, reason)
        except Exception as e:
            await log_error(f"Ошибка обработки прерывания задачи {task.name}: {e}")


class TaskWorker:
    """Потребитель очереди задач."""

    name = "TaskWorker"

    def __init__(self, runner: TaskRunner, task_queue: Optional[TaskQueue] = None) -> None:
        self._runner = runner
        self._queue = task_queue or get_task_queue()
        self._running = False

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        await self._queue.consume(self._on_task)
        await log_info(f"Воркер {self.name} запущен", type_msg=TypeMsg.INFO)

    async def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        await log_info(f"Воркер {self.name} остановлен", type_msg=TypeMsg.INFO)

    async def _on_task(self, task: QueuedTask) -> None:
        await self._runner.run(task)
