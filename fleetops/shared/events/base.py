# fleetops/shared/events/base.py
"""
Базовые классы для типизированных доменных событий.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, TypeVar
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from fleetops.infra.event_bus import DomainEvent as EventEnvelope


class EventMetadata(BaseModel):
    """Метаданные события для трассировки и дедупликации."""

    model_config = ConfigDict(frozen=True)

    event_id: str = Field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    correlation_id: str | None = None
    source_service: str = ""
    version: int = 1


class DomainEvent(BaseModel):
    """
    Базовый класс для всех доменных событий.

    Все события должны быть:
    - Иммутабельными
    - Сериализуемыми в JSON
    - Идемпотентными при обработке (по event_id)
    """

    model_config = ConfigDict(frozen=True)

    event_type: str = ""
    metadata: EventMetadata = Field(default_factory=EventMetadata)

    @property
    def event_id(self) -> str:
        return self.metadata.event_id

    @property
    def timestamp(self) -> datetime:
        return self.metadata.timestamp

    def to_payload(self) -> dict[str, Any]:
        """Поля события без конверта (JSON-совместимый словарь)."""
        return self.model_dump(mode="json", exclude={"event_type", "metadata"})

    def to_envelope(self) -> EventEnvelope:
        """Упаковывает событие в конверт шины."""
        return EventEnvelope(
            event_id=self.event_id,
            event_type=self.event_type,
            timestamp=self.timestamp.isoformat().replace("+00:00", "Z"),
            payload=self.to_payload(),
        )

    @classmethod
    def from_envelope(cls: type[EventT], envelope: EventEnvelope) -> EventT:
        """Восстанавливает типизированное событие из конверта шины."""
        return cls.model_validate({
            **envelope.payload,
            "metadata": {"event_id": envelope.event_id},
        })


EventT = TypeVar("EventT", bound=DomainEvent)
