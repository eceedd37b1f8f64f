"""Topology declaration and delayed publishing for RabbitMQ dead-letter routing.

Typical use::

    registry = TopologyRegistry()
    registry.register(RoutingUnit("order.dead", "ex.dead", "q.dead", "dead"))
    registry.register(RoutingUnit("order.ttl", "ex.ttl", "q.ttl", "ttl", dead_letter="order.dead"))

    with RabbitTransport("localhost") as transport:
        DeclarationApplier().apply(registry.build(), transport)
        DelayedPublisher(transport, registry=registry).send_delayed("order.ttl", b"42", 30)
"""

from .data import InMemoryTransport, RabbitTransport
from .domain import (
    ApplyConflictError,
    ApplyError,
    BindQueue,
    BrokerTransport,
    ConflictingQueueError,
    CyclicDeadLetterChainError,
    DeclareEvent,
    DeclareExchange,
    DeclareQueue,
    DuplicateNameError,
    InvalidDelayError,
    OutboundMessage,
    PublishError,
    PublishEvent,
    RegistryFrozenError,
    RoutingUnit,
    TopologyError,
    TopologyPlan,
    TransportConflictError,
    TransportError,
    TtlRouterError,
    UnknownDeadLetterTargetError,
    UnknownRoutingUnitError,
)
from .logic import DeclarationApplier, DelayedPublisher, TopologyRegistry, apply
from .utils.encoding import json_encoder
