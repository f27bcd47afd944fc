# tests/conftest.py
"""
Общие фикстуры и настройки для тестов.
"""

from __future__ import annotations

import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

# Устанавливаем переменные окружения перед импортом модулей
os.environ.setdefault("DB_PASSWORD", "test_password")
os.environ.setdefault("REDIS_PASSWORD", "")
os.environ.setdefault("FCM_ACCESS_TOKEN", "")
os.environ.setdefault("APN_AUTH_TOKEN", "")

from fleetops.common.geo import Point
from fleetops.core.drivers.models import Driver
from fleetops.core.orders.models import Company, Order, TenantScope


# =============================================================================
# ФИКСТУРЫ КОНФИГУРАЦИИ
# =============================================================================

@pytest.fixture(scope="session")
def project_root() -> Path:
    """Корневая директория проекта."""
    return Path(__file__).parent.parent


@pytest.fixture(scope="session")
def config_path(project_root: Path) -> Path:
    """Путь к файлу конфигурации."""
    return project_root / "config" / "config.json"


@pytest.fixture
def mock_config() -> dict[str, Any]:
    """Мок конфигурации для тестов."""
    return {
        "PROJECT_NAME": "fleetops_test",
        "VERSION": "1.0.0-test",
        "DEBUG": True,
        "ENVIRONMENT": "test",
        "COMPONENT_MODE": "dispatch",
        "LOG_LEVEL": "DEBUG",
        "LOG_TO_FILE": False,
        "LOG_FORMAT": "colored",
        "DB_HOST": "localhost",
        "DB_PORT": 5432,
        "DB_NAME": "fleetops_test",
        "DB_USER": "postgres",
        "REDIS_HOST": "localhost",
        "REDIS_PORT": 6379,
        "ORDER_TTL": 600,
        "NOTIFIED_DRIVERS_TTL": 3600,
        "RABBITMQ_HOST": "localhost",
        "RABBITMQ_EXCHANGE": "fleetops.test",
        "API_VERSION": "v2",
        "ADHOC_DISTANCE_DEFAULT": 5000,
        "FCM_PROJECT_ID": "test-project",
        "TASK_MAX_ATTEMPTS": 3,
        "WAYPOINT_DELAY": 0.5,
    }


@pytest.fixture
def temp_config_file(tmp_path: Path, mock_config: dict[str, Any]) -> Path:
    """Временный config.json."""
    import json

    path = tmp_path / "config.json"
    path.write_text(
        json.dumps({"_comment_test": "комментарий", **mock_config}),
        encoding="utf-8",
    )
    return path


# =============================================================================
# ФИКСТУРЫ ИНФРАСТРУКТУРЫ
# =============================================================================

@pytest.fixture
def mock_db() -> MagicMock:
    """Мок менеджера БД."""
    db = MagicMock()
    db.fetchrow = AsyncMock(return_value=None)
    db.fetch = AsyncMock(return_value=[])
    db.execute = AsyncMock(return_value="UPDATE 1")
    db.fetchval = AsyncMock(return_value=None)

    conn = MagicMock()
    conn.execute = AsyncMock(return_value="UPDATE 1")

    @asynccontextmanager
    async def transaction():
        yield conn

    db.transaction = transaction
    db.conn = conn
    return db


@pytest.fixture
def mock_redis() -> MagicMock:
    """Мок Redis клиента."""
    redis = MagicMock()
    redis.get = AsyncMock(return_value=None)
    redis.set = AsyncMock(return_value=True)
    redis.set_nx = AsyncMock(return_value=True)
    redis.delete = AsyncMock(return_value=True)
    redis.get_model = AsyncMock(return_value=None)
    redis.set_model = AsyncMock(return_value=True)
    redis.publish = AsyncMock(return_value=1)
    return redis


@pytest.fixture
def mock_event_bus() -> MagicMock:
    """Мок шины событий."""
    bus = MagicMock()
    bus.publish = AsyncMock(return_value=True)
    bus.subscribe = AsyncMock()
    return bus


@pytest.fixture
def mock_task_queue() -> MagicMock:
    """Мок очереди задач."""
    queue = MagicMock()
    queue.enqueue = AsyncMock(return_value=True)
    queue.consume = AsyncMock()
    return queue


# =============================================================================
# ФИКСТУРЫ ДАННЫХ
# =============================================================================

PICKUP = Point(latitude=1.3521, longitude=103.8198)


@pytest.fixture
def pickup() -> Point:
    return PICKUP


@pytest.fixture
def sample_company() -> Company:
    """Тестовая компания без настроек радиуса."""
    return Company(uuid="company-uuid-1", public_id="company_abc", name="Acme Logistics")


@pytest.fixture
def scope(sample_company: Company) -> TenantScope:
    return TenantScope(
        company_uuid=sample_company.uuid,
        company_public_id=sample_company.public_id,
        api_credential="key-live-1",
    )


@pytest.fixture
def sample_order(sample_company: Company) -> Order:
    """Тестовый adhoc-заказ с flow, где есть активность dispatched."""
    return Order(
        uuid="order-uuid-1",
        public_id="order_123",
        company_uuid=sample_company.uuid,
        company=sample_company,
        api_credential="key-live-1",
        adhoc=True,
        pickup=PICKUP,
        dropoff=Point(latitude=1.3000, longitude=103.8500),
        flow={
            "activities": [
                {"code": "created", "status": "Order created"},
                {
                    "code": "dispatched",
                    "status": "Order dispatched",
                    "details": "Order has been dispatched to driver",
                },
            ],
        },
        created_at=datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc),
    )


def make_driver(
    uuid: str,
    *,
    latitude: float = PICKUP.latitude,
    longitude: float = PICKUP.longitude,
    **overrides: Any,
) -> Driver:
    """Водитель на линии с указанной позицией."""
    data: dict[str, Any] = {
        "uuid": uuid,
        "public_id": f"driver_{uuid}",
        "company_uuid": "company-uuid-1",
        "user_uuid": f"user-{uuid}",
        "status": "active",
        "online": True,
        "location": Point(latitude=latitude, longitude=longitude),
    }
    data.update(overrides)
    return Driver(**data)


@pytest.fixture
def sample_driver() -> Driver:
    return make_driver("driver-uuid-1", fcm_tokens=["fcm-token-1"], apn_tokens=["apn-token-1"])


@pytest.fixture
def driver_factory():
    """Фабрика водителей для тестов матчинга и рассылки."""
    return make_driver
