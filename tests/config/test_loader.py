# tests/config/test_loader.py
"""
Тесты для модуля загрузки конфигурации.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from fleetops.config.loader import (
    DispatchSettings,
    PushSettings,
    RabbitMQSettings,
    RedisSettings,
    Settings,
    SimulationSettings,
    get_config_path,
    get_project_root,
    load_config_json,
)


class TestGetProjectRoot:
    """Тесты для функции get_project_root."""

    def test_returns_path_object(self) -> None:
        assert isinstance(get_project_root(), Path)

    def test_root_contains_package(self) -> None:
        assert (get_project_root() / "fleetops").exists()

    def test_root_contains_config_directory(self) -> None:
        assert (get_project_root() / "config").exists()


class TestGetConfigPath:
    """Тесты для функции get_config_path."""

    def test_default_path(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("FLEETOPS_CONFIG", raising=False)
        path = get_config_path()

        assert path.name == "config.json"
        assert path.parent.name == "config"

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        target = tmp_path / "custom.json"
        monkeypatch.setenv("FLEETOPS_CONFIG", str(target))

        assert get_config_path() == target


class TestLoadConfigJson:
    """Тесты для функции load_config_json."""

    def test_skips_comment_keys(self, monkeypatch: pytest.MonkeyPatch, temp_config_file: Path) -> None:
        monkeypatch.setenv("FLEETOPS_CONFIG", str(temp_config_file))
        data = load_config_json()

        assert "_comment_test" not in data
        assert data["PROJECT_NAME"] == "fleetops_test"

    def test_missing_file(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.setenv("FLEETOPS_CONFIG", str(tmp_path / "missing.json"))

        with pytest.raises(FileNotFoundError):
            load_config_json()

    def test_project_config_is_valid(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("FLEETOPS_CONFIG", raising=False)
        data = load_config_json()

        assert data["ADHOC_DISTANCE_DEFAULT"] == 6000
        assert data["TASK_MAX_ATTEMPTS"] == 20


class TestSettingsModels:
    """Тесты для секций настроек."""

    def test_dispatch_defaults(self) -> None:
        dispatch = DispatchSettings()
        assert dispatch.ADHOC_DISTANCE_DEFAULT == 6000
        assert dispatch.API_VERSION == "v1"

    def test_simulation_defaults(self) -> None:
        simulation = SimulationSettings()
        assert simulation.TASK_MAX_ATTEMPTS == 20
        assert simulation.TASK_TIMEOUT == 900

    def test_redis_url_without_password(self) -> None:
        redis = RedisSettings(REDIS_HOST="cache", REDIS_PORT=6380, REDIS_DB=2, REDIS_PASSWORD="")
        assert redis.url == "redis://cache:6380/2"

    def test_redis_url_with_password(self) -> None:
        redis = RedisSettings(REDIS_PASSWORD="secret")
        assert redis.url.startswith("redis://:secret@")

    def test_rabbitmq_url(self) -> None:
        rabbit = RabbitMQSettings(RABBITMQ_USER="u", RABBITMQ_PASSWORD="p", RABBITMQ_HOST="mq")
        assert rabbit.url.startswith("amqp://u:")
        assert "@mq:5672/" in rabbit.url

    def test_push_token_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FCM_ACCESS_TOKEN", "env-token")
        assert PushSettings(FCM_ACCESS_TOKEN="").FCM_ACCESS_TOKEN == "env-token"


class TestSettingsFromConfigJson:
    """Тесты для Settings.from_config_json."""

    def test_reads_sections(self, monkeypatch: pytest.MonkeyPatch, temp_config_file: Path) -> None:
        monkeypatch.setenv("FLEETOPS_CONFIG", str(temp_config_file))
        monkeypatch.delenv("COMPONENT_MODE", raising=False)

        settings = Settings.from_config_json()

        assert settings.system.PROJECT_NAME == "fleetops_test"
        assert settings.system.COMPONENT_MODE == "dispatch"
        assert settings.dispatch.API_VERSION == "v2"
        assert settings.dispatch.ADHOC_DISTANCE_DEFAULT == 5000
        assert settings.redis_ttl.NOTIFIED_DRIVERS_TTL == 3600
        assert settings.rabbitmq.RABBITMQ_EXCHANGE == "fleetops.test"
        assert settings.simulation.TASK_MAX_ATTEMPTS == 3
        assert settings.simulation.WAYPOINT_DELAY == 0.5

    def test_missing_keys_fall_back_to_defaults(
        self,
        monkeypatch: pytest.MonkeyPatch,
        temp_config_file: Path,
    ) -> None:
        monkeypatch.setenv("FLEETOPS_CONFIG", str(temp_config_file))

        settings = Settings.from_config_json()

        assert settings.simulation.TASK_TIMEOUT == 900
        assert settings.push.FCM_URL.startswith("https://fcm.googleapis.com/")

    def test_component_mode_from_env(self, monkeypatch: pytest.MonkeyPatch, temp_config_file: Path) -> None:
        monkeypatch.setenv("FLEETOPS_CONFIG", str(temp_config_file))
        monkeypatch.setenv("COMPONENT_MODE", "simulation")

        assert Settings.from_config_json().system.COMPONENT_MODE == "simulation"
