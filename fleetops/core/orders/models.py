# fleetops/core/orders/models.py
"""
Модели данных заказов.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from fleetops.common.constants import OrderStatus
from fleetops.common.geo import Point
from fleetops.shared.models.waypoint import Waypoint


class Company(BaseModel):
    """Компания (тенант)."""

    uuid: str = Field(..., description="UUID компании")
    public_id: str = Field(..., description="Публичный ID компании")
    name: str = Field("", description="Название")
    options: dict[str, Any] = Field(default_factory=dict, description="Настройки компании")

    model_config = ConfigDict(from_attributes=True)

    @property
    def adhoc_distance(self) -> Optional[int]:
        """Радиус adhoc-поиска из options.fleetops.adhoc_distance."""
        value = (self.options.get("fleetops") or {}).get("adhoc_distance")
        if value in (None, ""):
            return None
        try:
            return int(float(value))
        except (TypeError, ValueError):
            return None


class TenantScope(BaseModel):
    """Явный контекст тенанта, передаётся во все запросы и трансляции."""

    model_config = ConfigDict(frozen=True)

    company_uuid: str
    company_public_id: Optional[str] = None
    api_credential: Optional[str] = None

    @classmethod
    def for_order(cls, order: "Order") -> "TenantScope":
        public_id = order.company.public_id if order.company else None
        return cls(
            company_uuid=order.company_uuid,
            company_public_id=public_id,
            api_credential=order.api_credential,
        )


class DispatchActivity(BaseModel):
    """Активность flow, применяемая в момент диспетчеризации."""

    model_config = ConfigDict(frozen=True)

    code: str
    status: str
    details: str = ""


class OrderActivity(BaseModel):
    """Запись истории активностей заказа."""

    code: str
    status: str
    details: str = ""
    location: Optional[Point] = None
    created_at: Optional[datetime] = None


class Order(BaseModel):
    """Модель заказа."""

    uuid: str = Field(..., description="UUID заказа")
    public_id: str = Field(..., description="Публичный ID заказа")
    company_uuid: str = Field(..., description="UUID компании")
    company: Optional[Company] = Field(None, description="Компания-владелец")
    driver_assigned_uuid: Optional[str] = Field(None, description="UUID назначенного водителя")
    api_credential: Optional[str] = Field(None, description="API-ключ или сессия создателя")

    adhoc: bool = Field(False, description="Заказ без предназначенного водителя")
    adhoc_distance: Optional[int] = Field(None, description="Радиус поиска водителей (м)")

    pickup: Optional[Point] = Field(None, description="Точка подачи")
    dropoff: Optional[Point] = Field(None, description="Точка назначения")
    waypoints: list[Waypoint] = Field(default_factory=list, description="Промежуточные точки")

    status: str = Field(OrderStatus.CREATED.value, description="Код текущего статуса")
    dispatched: bool = Field(False, description="Заказ отправлен водителям")
    dispatched_at: Optional[datetime] = Field(None, description="Время диспетчеризации")

    flow: dict[str, Any] = Field(default_factory=dict, description="Flow из конфигурации заказа")
    activities: list[OrderActivity] = Field(default_factory=list, description="История активностей")
    meta: dict[str, Any] = Field(default_factory=dict)

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def has_driver_assigned(self) -> bool:
        return bool(self.driver_assigned_uuid)

    def has_activity(self, code: str) -> bool:
        """Есть ли в истории активность с указанным кодом."""
        return any(a.code == code for a in self.activities)

    def route(self) -> list[Waypoint]:
        """Маршрут заказа: подача, промежуточные точки, назначение (с индексами по порядку)."""
        points: list[tuple[Point, dict[str, Any]]] = []
        if self.pickup is not None:
            points.append((self.pickup, {"type": "pickup"}))
        for waypoint in sorted(self.waypoints, key=lambda w: w.index):
            points.append((waypoint.point, dict(waypoint.meta)))
        if self.dropoff is not None:
            points.append((self.dropoff, {"type": "dropoff"}))

        return [Waypoint.from_point(point, index=i, meta=meta) for i, (point, meta) in enumerate(points)]

    def snapshot(self) -> "OrderSnapshot":
        """Неизменяемая копия заказа без связей для асинхронной передачи."""
        return OrderSnapshot(
            uuid=self.uuid,
            public_id=self.public_id,
            company_uuid=self.company_uuid,
            company_public_id=self.company.public_id if self.company else None,
            driver_assigned_uuid=self.driver_assigned_uuid,
            api_credential=self.api_credential,
            adhoc=self.adhoc,
            status=self.status,
            dispatched=self.dispatched,
            dispatched_at=self.dispatched_at,
            pickup=self.pickup,
            dropoff=self.dropoff,
            meta=dict(self.meta),
            created_at=self.created_at,
        )


class OrderSnapshot(BaseModel):
    """Снимок заказа, отсоединённый от связанных записей."""

    model_config = ConfigDict(frozen=True)

    uuid: str
    public_id: str
    company_uuid: str
    company_public_id: Optional[str] = None
    driver_assigned_uuid: Optional[str] = None
    api_credential: Optional[str] = None
    adhoc: bool = False
    status: str = OrderStatus.CREATED.value
    dispatched: bool = False
    dispatched_at: Optional[datetime] = None
    pickup: Optional[Point] = None
    dropoff: Optional[Point] = None
    meta: dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
