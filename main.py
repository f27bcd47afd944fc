#!/usr/bin/env python3
# main.py
"""
Главная точка входа диспетчерского сервиса.
Запускает воркеры диспетчеризации, симуляции или очереди задач.
"""

from __future__ import annotations

import asyncio
import signal
import sys

from fleetops.config import settings
from fleetops.common.logger import setup_logging, log_info, log_error
from fleetops.common.constants import TypeMsg
from fleetops.infra.database import init_db, close_db, get_db
from fleetops.infra.redis_client import init_redis, close_redis, get_redis
from fleetops.infra.event_bus import init_event_bus, close_event_bus, get_event_bus
from fleetops.infra.task_queue import init_task_queue, close_task_queue, get_task_queue
from fleetops.shared.models import HealthStatus
from fleetops.worker.runner import WORKER_MODES, run_workers

VALID_MODES = (*WORKER_MODES, "health")

_shutdown_event: asyncio.Event | None = None
_running_tasks: list[asyncio.Task] = []


def setup_signal_handlers() -> None:
    """Настраивает обработчики сигналов для graceful shutdown."""
    global _shutdown_event
    _shutdown_event = asyncio.Event()

    def signal_handler(sig: int) -> None:
        if _shutdown_event and not _shutdown_event.is_set():
            print(f"\nПолучен сигнал остановки (sig={sig}), завершаем работу...")
            _shutdown_event.set()
            for task in _running_tasks:
                if not task.done():
                    task.cancel()

    try:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, lambda s=sig: signal_handler(s))
    except NotImplementedError:
        # Windows не поддерживает add_signal_handler
        signal.signal(signal.SIGINT, lambda s, f: signal_handler(s))
        signal.signal(signal.SIGTERM, lambda s, f: signal_handler(s))


async def init_infrastructure() -> None:
    """Инициализирует все подключения к инфраструктуре."""
    await log_info("Инициализация инфраструктуры...", type_msg=TypeMsg.INFO)

    await init_db()
    await init_redis()
    await init_event_bus()
    await init_task_queue()

    await log_info("Инфраструктура инициализирована", type_msg=TypeMsg.INFO)


async def close_infrastructure() -> None:
    """Закрывает все подключения."""
    await log_info("Закрытие подключений...", type_msg=TypeMsg.INFO)

    await close_task_queue()
    await close_event_bus()
    await close_redis()
    await close_db()

    await log_info("Подключения закрыты", type_msg=TypeMsg.INFO)


async def check_health() -> HealthStatus:
    """Опрашивает health_check() всех зависимостей."""
    checks = {
        "postgres": await get_db().health_check(),
        "redis": await get_redis().health_check(),
        "rabbitmq": await get_event_bus().health_check(),
        "task_queue": await get_task_queue().health_check(),
    }
    return HealthStatus.from_checks(
        settings.system.PROJECT_NAME,
        checks,
        version=settings.system.VERSION,
    )


def resolve_mode(argv: list[str]) -> str:
    """Режим из аргумента командной строки, иначе из COMPONENT_MODE."""
    if len(argv) > 1:
        return argv[1].strip().lower()
    return settings.system.COMPONENT_MODE


async def main(mode: str | None = None) -> None:
    """
    Главная функция запуска.

    Args:
        mode: dispatch, simulation, tasks, all или health
    """
    setup_logging()
    setup_signal_handlers()

    mode = mode or resolve_mode(sys.argv)
    if mode not in VALID_MODES:
        await log_error(f"Неизвестный режим: {mode}. Допустимые: {', '.join(VALID_MODES)}")
        sys.exit(2)

    await log_info(
        f"{settings.system.PROJECT_NAME} v{settings.system.VERSION}: запуск в режиме '{mode}'",
        type_msg=TypeMsg.INFO,
    )

    try:
        await init_infrastructure()

        if mode == "health":
            status = await check_health()
            print(status.model_dump_json(indent=2))
            if status.status != "healthy":
                sys.exit(1)
            return

        task = asyncio.create_task(run_workers(mode, init_infra=False))
        _running_tasks.append(task)
        await asyncio.gather(task, return_exceptions=True)

    except asyncio.CancelledError:
        await log_info("Остановка...", type_msg=TypeMsg.INFO)
    except Exception as e:
        await log_error(f"Критическая ошибка: {e}", exc_info=True)
        raise
    finally:
        await close_infrastructure()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
