# tests/worker/test_dispatch_worker.py
"""
Тесты для воркеров диспетчеризации и симуляции.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from fleetops.common.exceptions import NotificationDeliveryError
from fleetops.core.dispatch.service import DispatchCoordinator
from fleetops.infra.event_bus import DomainEvent, EventTypes
from fleetops.shared.events import OrderDispatched, RouteSimulationRequested
from fleetops.shared.models.waypoint import Waypoint
from fleetops.worker.dispatch import DispatchWorker
from fleetops.worker.runner import build_workers
from fleetops.worker.simulation import SimulationWorker
from fleetops.worker.tasks import TaskWorker


@pytest.fixture
def coordinator() -> MagicMock:
    coordinator = MagicMock()
    coordinator.dispatch_by_uuid = AsyncMock()
    return coordinator


@pytest.fixture
def dispatch_worker(mock_event_bus, mock_db, mock_redis, coordinator) -> DispatchWorker:
    return DispatchWorker(mock_event_bus, mock_db, mock_redis, coordinator=coordinator)


class TestDispatchWorker:
    """Тесты для DispatchWorker."""

    def test_subscriptions(self, dispatch_worker) -> None:
        assert dispatch_worker.subscriptions == [EventTypes.ORDER_DISPATCHED]
        assert dispatch_worker.reraise_errors is True

    @pytest.mark.asyncio
    async def test_handles_order_dispatched(self, dispatch_worker, coordinator) -> None:
        event = OrderDispatched(order_uuid="order-uuid-1", company_uuid="company-uuid-1").to_envelope()

        await dispatch_worker.handle_event(event)

        coordinator.dispatch_by_uuid.assert_awaited_once_with("order-uuid-1")

    @pytest.mark.asyncio
    async def test_invalid_payload_is_dropped(self, dispatch_worker, coordinator) -> None:
        await dispatch_worker.handle_event(DomainEvent(event_type=EventTypes.ORDER_DISPATCHED, payload={}))

        coordinator.dispatch_by_uuid.assert_not_called()

    @pytest.mark.asyncio
    async def test_other_events_ignored(self, dispatch_worker, coordinator) -> None:
        await dispatch_worker.handle_event(DomainEvent(event_type=EventTypes.ROUTE_SIMULATE, payload={}))

        coordinator.dispatch_by_uuid.assert_not_called()

    @pytest.mark.asyncio
    async def test_delivery_error_reaches_bus(self, dispatch_worker, coordinator) -> None:
        """Ошибка доставки назначенному водителю возвращает событие в очередь."""
        coordinator.dispatch_by_uuid.side_effect = NotificationDeliveryError("order_123", "driver_1", ["fcm: 500"])
        dispatch_worker._running = True
        event = OrderDispatched(order_uuid="order-uuid-1").to_envelope()

        with pytest.raises(NotificationDeliveryError):
            await dispatch_worker._on_event(event)

    @pytest.mark.asyncio
    async def test_builds_coordinator_on_start(self, mock_event_bus, mock_db, mock_redis) -> None:
        worker = DispatchWorker(mock_event_bus, mock_db, mock_redis)

        await worker.start()

        assert isinstance(worker._coordinator, DispatchCoordinator)
        assert worker._http is not None

        await worker.stop()

        assert worker._http is None


@pytest.fixture
def simulator() -> MagicMock:
    simulator = MagicMock()
    simulator.simulate = AsyncMock()
    simulator.simulate_order = AsyncMock()
    return simulator


@pytest.fixture
def simulation_worker(mock_event_bus, mock_db, mock_redis, simulator, sample_driver, sample_order) -> SimulationWorker:
    worker = SimulationWorker(mock_event_bus, mock_db, mock_redis, simulator=simulator)
    worker._drivers = MagicMock()
    worker._drivers.get_by_uuid = AsyncMock(return_value=sample_driver)
    worker._orders = MagicMock()
    worker._orders.get_cached = AsyncMock(return_value=sample_order)
    return worker


class TestSimulationWorker:
    """Тесты для SimulationWorker."""

    @pytest.mark.asyncio
    async def test_simulates_given_waypoints(self, simulation_worker, simulator, sample_driver) -> None:
        waypoints = [Waypoint(index=0, latitude=1.3, longitude=103.8)]
        event = RouteSimulationRequested(driver_uuid=sample_driver.uuid, waypoints=waypoints).to_envelope()

        await simulation_worker.handle_event(event)

        simulator.simulate.assert_awaited_once()
        driver, route = simulator.simulate.call_args.args
        assert driver is sample_driver
        assert route == waypoints

    @pytest.mark.asyncio
    async def test_simulates_order_route(self, simulation_worker, simulator, sample_order) -> None:
        event = RouteSimulationRequested(driver_uuid="driver-uuid-1", order_uuid="order-uuid-1").to_envelope()

        await simulation_worker.handle_event(event)

        simulator.simulate_order.assert_awaited_once()
        assert simulator.simulate_order.call_args.args[1] is sample_order

    @pytest.mark.asyncio
    async def test_missing_driver(self, simulation_worker, simulator) -> None:
        simulation_worker._drivers.get_by_uuid.return_value = None
        event = RouteSimulationRequested(driver_uuid="ghost", order_uuid="order-uuid-1").to_envelope()

        await simulation_worker.handle_event(event)

        simulator.simulate.assert_not_called()
        simulator.simulate_order.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_order(self, simulation_worker, simulator) -> None:
        simulation_worker._orders.get_cached.return_value = None
        event = RouteSimulationRequested(driver_uuid="driver-uuid-1", order_uuid="missing").to_envelope()

        await simulation_worker.handle_event(event)

        simulator.simulate_order.assert_not_called()

    @pytest.mark.asyncio
    async def test_nothing_to_simulate(self, simulation_worker, simulator) -> None:
        await simulation_worker.handle_event(RouteSimulationRequested(driver_uuid="driver-uuid-1").to_envelope())

        simulator.simulate.assert_not_called()
        simulator.simulate_order.assert_not_called()


class TestBuildWorkers:
    """Тесты для набора воркеров по режиму."""

    def test_unknown_mode(self) -> None:
        with pytest.raises(ValueError):
            build_workers("bot")

    def test_dispatch_mode(self) -> None:
        workers = build_workers("dispatch")
        assert [type(w) for w in workers] == [DispatchWorker]

    def test_all_mode(self) -> None:
        workers = build_workers("all")
        assert [type(w) for w in workers] == [DispatchWorker, SimulationWorker, TaskWorker]
