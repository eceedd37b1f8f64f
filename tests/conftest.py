import pytest

from ttl_router.data.memory_transport import InMemoryTransport
from ttl_router.domain.routing_unit import RoutingUnit
from ttl_router.logic.topology_registry import TopologyRegistry


@pytest.fixture
def order():
    return RoutingUnit("order", "ex.order", "q.order", "order")


@pytest.fixture
def order_dead():
    return RoutingUnit("order.dead", "ex.dead", "q.dead", "dead")


@pytest.fixture
def order_ttl():
    return RoutingUnit("order.ttl", "ex.ttl", "q.ttl", "ttl", dead_letter="order.dead")


@pytest.fixture
def registry(order, order_dead, order_ttl):
    return TopologyRegistry.from_units([order, order_dead, order_ttl])


@pytest.fixture
def transport():
    return InMemoryTransport()


@pytest.fixture
def events():
    """Pass ``events.append`` as an event sink to collect what is emitted."""
    return []
