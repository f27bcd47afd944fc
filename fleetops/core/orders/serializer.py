# fleetops/core/orders/serializer.py
"""
Сериализация заказа в документ для трансляции.
Вложенные ресурсы сворачиваются до идентификаторов.
"""

from __future__ import annotations

from typing import Any

from fleetops.core.orders.models import OrderSnapshot

# ключи, по которым вложенный словарь считается ссылкой на ресурс
_RESOURCE_ID_KEYS = ("public_id", "id", "uuid")


def collapse_resource(value: Any) -> Any:
    """
    Рекурсивно заменяет вложенные ресурсы их идентификаторами.

    Args:
        value: Значение документа (dict, list или скаляр)

    Returns:
        Значение, где каждый вложенный словарь с public_id / id / uuid заменён этим id
    """
    if isinstance(value, dict):
        for key in _RESOURCE_ID_KEYS:
            if value.get(key):
                return value[key]
        return {k: collapse_resource(v) for k, v in value.items()}

    if isinstance(value, list):
        return [collapse_resource(v) for v in value]

    return value


def serialize_order(snapshot: OrderSnapshot) -> dict[str, Any]:
    """Преобразует снимок заказа в плоский документ (ключ/значение)."""
    document = snapshot.model_dump(mode="json", exclude={"api_credential"})
    data: dict[str, Any] = {"id": snapshot.public_id}
    for key, value in document.items():
        data[key] = value if key == "public_id" else collapse_resource(value)
    return data
