"""Routing units and the declaration steps derived from them.

A *routing unit* is one exchange -> queue binding under a routing key.  Its
optional dead-letter target names another unit: messages that expire (or
are rejected) in this unit's queue are republished by the broker to the
target's exchange with the target's routing key.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple, Union

DEAD_LETTER_EXCHANGE_ARG = "x-dead-letter-exchange"
DEAD_LETTER_ROUTING_KEY_ARG = "x-dead-letter-routing-key"

DIRECT = "direct"


@dataclass(frozen=True)
class RoutingUnit:
    name: str
    exchange: str
    queue: str
    route_key: str
    dead_letter: Optional[Union[str, "RoutingUnit"]] = None

    def __post_init__(self) -> None:
        for attr in ("name", "exchange", "queue"):
            if not getattr(self, attr):
                raise ValueError(f"RoutingUnit.{attr} must be a non-empty string")
        if self.route_key is None:
            raise ValueError("RoutingUnit.route_key must be a string")
        # Targets are kept by name so units stay plain, hashable values.
        if isinstance(self.dead_letter, RoutingUnit):
            object.__setattr__(self, "dead_letter", self.dead_letter.name)

    def dead_letter_arguments(self) -> Dict[str, Any]:
        """Queue arguments that make the broker republish expired messages here."""
        return {
            DEAD_LETTER_EXCHANGE_ARG: self.exchange,
            DEAD_LETTER_ROUTING_KEY_ARG: self.route_key,
        }


@dataclass(frozen=True)
class DeclareExchange:
    name: str
    exchange_type: str = DIRECT
    durable: bool = True

    def __str__(self) -> str:
        return f"declare exchange '{self.name}'"


@dataclass(frozen=True)
class DeclareQueue:
    name: str
    durable: bool = True
    arguments: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # read-only copy so a built plan cannot be edited through its steps
        object.__setattr__(self, "arguments", MappingProxyType(dict(self.arguments)))

    def __hash__(self) -> int:
        return hash((self.name, self.durable, tuple(sorted(self.arguments.items()))))

    @property
    def dead_letter_exchange(self) -> Optional[str]:
        return self.arguments.get(DEAD_LETTER_EXCHANGE_ARG)

    def __str__(self) -> str:
        return f"declare queue '{self.name}'"


@dataclass(frozen=True)
class BindQueue:
    queue: str
    exchange: str
    route_key: str

    def __str__(self) -> str:
        return f"bind queue '{self.queue}' to '{self.exchange}' with key '{self.route_key}'"


Step = Union[DeclareExchange, DeclareQueue, BindQueue]


@dataclass(frozen=True)
class TopologyPlan:
    """Ordered declaration steps: exchanges, then queues, then bindings."""

    steps: Tuple[Step, ...] = ()

    def __iter__(self) -> Iterator[Step]:
        return iter(self.steps)

    def __len__(self) -> int:
        return len(self.steps)

    @property
    def exchanges(self) -> Tuple[DeclareExchange, ...]:
        return tuple(s for s in self.steps if isinstance(s, DeclareExchange))

    @property
    def queues(self) -> Tuple[DeclareQueue, ...]:
        return tuple(s for s in self.steps if isinstance(s, DeclareQueue))

    @property
    def bindings(self) -> Tuple[BindQueue, ...]:
        return tuple(s for s in self.steps if isinstance(s, BindQueue))


@dataclass(frozen=True)
class OutboundMessage:
    payload: bytes
    exchange: str
    route_key: str
    expiration_millis: Optional[int] = None
