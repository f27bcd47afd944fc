# fleetops/core/drivers/models.py
"""
Модели водителей.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from fleetops.common.constants import DriverStatus
from fleetops.common.geo import Point


class Driver(BaseModel):
    """Водитель. Ядро диспетчеризации только читает эту запись."""

    uuid: str = Field(..., description="UUID водителя")
    public_id: str = Field(..., description="Публичный ID водителя")
    company_uuid: Optional[str] = Field(None, description="UUID компании")
    user_uuid: Optional[str] = Field(None, description="UUID пользователя водителя")

    status: str = Field(DriverStatus.ACTIVE.value, description="Статус учётной записи")
    online: bool = Field(False, description="Водитель на линии")
    location: Optional[Point] = Field(None, description="Текущая позиция")

    fcm_tokens: list[str] = Field(default_factory=list, description="Токены FCM устройств")
    apn_tokens: list[str] = Field(default_factory=list, description="Токены APNs устройств")

    deleted_at: Optional[datetime] = None
    user_deleted_at: Optional[datetime] = None
    user_exists: bool = True

    model_config = ConfigDict(from_attributes=True)

    @property
    def is_deleted(self) -> bool:
        """Удалён сам водитель или его пользователь."""
        return self.deleted_at is not None or self.user_deleted_at is not None or not self.user_exists

    @property
    def is_eligible(self) -> bool:
        """Может получать adhoc-заказы: активен, на линии, не удалён."""
        return self.status == DriverStatus.ACTIVE.value and self.online and not self.is_deleted

    @property
    def channel_ids(self) -> list[str]:
        """Каналы трансляции водителя."""
        return [f"driver.{self.uuid}", f"driver.{self.public_id}"]


@dataclass(frozen=True)
class DriverMatch:
    """Водитель, прошедший отбор, с расстоянием до точки подачи (м)."""
    driver: Driver
    distance: float
