# fleetops/worker/__init__.py
"""
Фоновые воркеры для обработки событий из RabbitMQ и очереди задач.
"""

from fleetops.worker.base import BaseWorker
from fleetops.worker.dispatch import DispatchWorker
from fleetops.worker.simulation import SimulationWorker
from fleetops.worker.tasks import TaskOutcome, TaskRunner, TaskWorker

__all__ = [
    "BaseWorker",
    "DispatchWorker",
    "SimulationWorker",
    "TaskOutcome",
    "TaskRunner",
    "TaskWorker",
]
