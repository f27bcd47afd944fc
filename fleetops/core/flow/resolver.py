# fleetops/core/flow/resolver.py
"""
Поиск активности диспетчеризации в flow заказа.
"""

from __future__ import annotations

from typing import Any, Iterator, Optional

from fleetops.common.constants import OrderStatus
from fleetops.core.orders.models import DispatchActivity, Order

DISPATCH_TRIGGER = "dispatch"


def _walk_activities(node: Any) -> Iterator[dict[str, Any]]:
    """Обход flow в глубину в порядке объявления."""
    if isinstance(node, dict):
        if "code" in node:
            yield node
        for key, value in node.items():
            if isinstance(value, (dict, list)):
                yield from _walk_activities(value)
    elif isinstance(node, list):
        for item in node:
            yield from _walk_activities(item)


class DispatchActivityResolver:
    """
    Определяет, какую активность flow применить при диспетчеризации.
    Не имеет побочных эффектов.
    """

    def resolve(self, order: Order) -> Optional[DispatchActivity]:
        """
        Первая активность flow с триггером dispatch (или с кодом dispatched).

        Args:
            order: Заказ с загруженным flow

        Returns:
            DispatchActivity или None, если flow её не задаёт
        """
        for node in _walk_activities(order.flow):
            trigger = node.get("trigger") or node.get("event")
            if trigger == DISPATCH_TRIGGER or node.get("code") == OrderStatus.DISPATCHED.value:
                return DispatchActivity(
                    code=str(node["code"]),
                    status=str(node.get("status") or node["code"]),
                    details=str(node.get("details") or ""),
                )
        return None
