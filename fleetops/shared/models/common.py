# fleetops/shared/models/common.py
"""
Общие служебные модели.
"""

from pydantic import BaseModel, Field


class HealthStatus(BaseModel):
    """Статус здоровья сервиса."""

    service: str
    status: str = "healthy"  # healthy, unhealthy
    version: str | None = None
    dependencies: dict[str, str] = Field(default_factory=dict)
    # dependencies: {"postgres": "healthy", "redis": "healthy", "rabbitmq": "healthy"}

    @classmethod
    def from_checks(cls, service: str, checks: dict[str, bool], version: str | None = None) -> "HealthStatus":
        """Собирает статус из результатов health_check() зависимостей."""
        dependencies = {name: "healthy" if ok else "unhealthy" for name, ok in checks.items()}
        status = "healthy" if all(checks.values()) else "unhealthy"
        return cls(service=service, status=status, version=version, dependencies=dependencies)
