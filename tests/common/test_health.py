# tests/common/test_health.py
"""
Тесты для HealthStatus.
"""

from fleetops.shared.models import HealthStatus


class TestHealthStatus:
    """Тесты для сборки статуса из проверок зависимостей."""

    def test_all_healthy(self) -> None:
        status = HealthStatus.from_checks("fleetops", {"postgres": True, "redis": True}, version="1.0.0")

        assert status.status == "healthy"
        assert status.version == "1.0.0"
        assert status.dependencies == {"postgres": "healthy", "redis": "healthy"}

    def test_one_unhealthy(self) -> None:
        status = HealthStatus.from_checks("fleetops", {"postgres": True, "rabbitmq": False})

        assert status.status == "unhealthy"
        assert status.dependencies["rabbitmq"] == "unhealthy"
