# fleetops/worker/runner.py
"""
Запускалка воркеров.
"""

from __future__ import annotations

import asyncio
from typing import List, Union

from fleetops.worker.base import BaseWorker
from fleetops.worker.dispatch import DispatchWorker
from fleetops.worker.simulation import SimulationWorker
from fleetops.worker.tasks import TaskRunner, TaskWorker
from fleetops.core.drivers.repository import DriverRepository
from fleetops.core.simulation.service import WAYPOINT_REACHED_TASK, WaypointReachedHandler
from fleetops.infra.database import get_db, init_db, close_db
from fleetops.infra.redis_client import get_redis, init_redis, close_redis
from fleetops.infra.event_bus import get_event_bus, init_event_bus, close_event_bus
from fleetops.infra.task_queue import get_task_queue, init_task_queue, close_task_queue
from fleetops.common.logger import log_info, log_error
from fleetops.common.constants import TypeMsg
from fleetops.config import settings

WORKER_MODES = ("dispatch", "simulation", "tasks", "all")


def build_task_runner() -> TaskRunner:
    """Исполнитель задач с обработчиком точек маршрута."""
    runner = TaskRunner(get_task_queue(), retry_delay=settings.simulation.TASK_RETRY_DELAY)
    handler = WaypointReachedHandler(
        drivers=DriverRepository(get_db()),
        event_bus=get_event_bus(),
        redis=get_redis(),
        api_version=settings.dispatch.API_VERSION,
        channel_prefix=settings.dispatch.BROADCAST_CHANNEL_PREFIX,
    )
    runner.register(WAYPOINT_REACHED_TASK, handler, on_abandon=handler.abandon)
    return runner


def build_workers(mode: str) -> List[Union[BaseWorker, TaskWorker]]:
    """
    Воркеры для режима запуска.

    Args:
        mode: dispatch, simulation, tasks или all
    """
    if mode not in WORKER_MODES:
        raise ValueError(f"Неизвестный режим воркеров: {mode}")

    workers: List[Union[BaseWorker, TaskWorker]] = []
    if mode in ("dispatch", "all"):
        workers.append(DispatchWorker())
    if mode in ("simulation", "all"):
        workers.append(SimulationWorker())
    if mode in ("tasks", "all"):
        workers.append(TaskWorker(build_task_runner()))
    return workers


async def run_workers(mode: str = "all", init_infra: bool = True) -> None:
    """
    Запускает воркеры выбранного режима и ждёт остановки.

    Args:
        mode: Режим (dispatch, simulation, tasks, all)
        init_infra: Инициализировать ли инфраструктуру (БД, Redis, RabbitMQ)
    """
    await log_info(f"Запуск воркеров (режим {mode})...", type_msg=TypeMsg.INFO)

    if init_infra:
        await init_db()
        await init_redis()
        await init_event_bus()
        await init_task_queue()

    workers = build_workers(mode)

    try:
        for worker in workers:
            await worker.start()

        await log_info(f"Запущено {len(workers)} воркеров", type_msg=TypeMsg.INFO)

        while True:
            await asyncio.sleep(1)

    except asyncio.CancelledError:
        await log_info("Получен сигнал остановки", type_msg=TypeMsg.INFO)
    except Exception as e:
        await log_error(f"Критическая ошибка: {e}", exc_info=True)
    finally:
        for worker in workers:
            await worker.stop()

        if init_infra:
            await close_task_queue()
            await close_event_bus()
            await close_redis()
            await close_db()

        await log_info("Воркеры остановлены", type_msg=TypeMsg.INFO)
