from .errors import (
    ApplyConflictError,
    ApplyError,
    ConflictingQueueError,
    CyclicDeadLetterChainError,
    DuplicateNameError,
    InvalidDelayError,
    PublishError,
    RegistryFrozenError,
    TopologyError,
    TransportConflictError,
    TransportError,
    TtlRouterError,
    UnknownDeadLetterTargetError,
    UnknownRoutingUnitError,
)
from .events import DeclareEvent, EventSink, PublishEvent, log_event
from .routing_unit import (
    DEAD_LETTER_EXCHANGE_ARG,
    DEAD_LETTER_ROUTING_KEY_ARG,
    BindQueue,
    DeclareExchange,
    DeclareQueue,
    OutboundMessage,
    RoutingUnit,
    TopologyPlan,
)
from .transport import BrokerTransport
