# tests/core/test_flow_resolver.py
"""
Тесты для поиска активности диспетчеризации во flow заказа.
"""

from __future__ import annotations

import pytest

from fleetops.core.flow.resolver import DispatchActivityResolver


@pytest.fixture
def resolver() -> DispatchActivityResolver:
    return DispatchActivityResolver()


class TestDispatchActivityResolver:
    """Тесты для DispatchActivityResolver.resolve."""

    def test_finds_dispatched_code(self, resolver, sample_order):
        activity = resolver.resolve(sample_order)

        assert activity is not None
        assert activity.code == "dispatched"
        assert activity.status == "Order dispatched"
        assert activity.details == "Order has been dispatched to driver"

    def test_trigger_takes_any_code(self, resolver, sample_order):
        order = sample_order.model_copy(update={"flow": {
            "activities": [
                {"code": "created", "status": "Created"},
                {"code": "sent_to_courier", "status": "Sent", "trigger": "dispatch"},
            ],
        }})

        assert resolver.resolve(order).code == "sent_to_courier"

    def test_nested_flow(self, resolver, sample_order):
        order = sample_order.model_copy(update={"flow": {
            "created": {
                "code": "created",
                "activities": [{"code": "dispatched", "status": "Dispatched"}],
            },
        }})

        assert resolver.resolve(order).code == "dispatched"

    def test_first_match_wins(self, resolver, sample_order):
        order = sample_order.model_copy(update={"flow": [
            {"code": "first", "status": "First", "event": "dispatch"},
            {"code": "dispatched", "status": "Second"},
        ]})

        assert resolver.resolve(order).code == "first"

    def test_status_defaults_to_code(self, resolver, sample_order):
        order = sample_order.model_copy(update={"flow": {"activities": [{"code": "dispatched"}]}})

        activity = resolver.resolve(order)

        assert activity.status == "dispatched"
        assert activity.details == ""

    def test_no_dispatch_activity(self, resolver, sample_order):
        order = sample_order.model_copy(update={"flow": {"activities": [{"code": "created"}]}})
        assert resolver.resolve(order) is None

    def test_empty_flow(self, resolver, sample_order):
        assert resolver.resolve(sample_order.model_copy(update={"flow": {}})) is None
