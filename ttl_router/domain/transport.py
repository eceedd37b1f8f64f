"""Domain-level abstraction of the message broker.

The registry, applier and publisher depend on this interface rather than on
the concrete RabbitMQ client, so topology and publishing logic can run
against an in-memory transport in tests.

Implementations signal failures by raising *TransportError*; a redeclaration
that conflicts with the live entity raises *TransportConflictError*.
Redeclaring an identical entity must be a silent no-op.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional

from .routing_unit import DIRECT


class BrokerTransport(ABC):

    @abstractmethod
    def declare_exchange(self, name: str, durable: bool = True, exchange_type: str = DIRECT) -> None:
        pass

    @abstractmethod
    def declare_queue(self, name: str, durable: bool = True,
                      arguments: Optional[Mapping[str, Any]] = None) -> None:
        """Declare *name*; *arguments* are broker-level queue arguments
        (dead-letter exchange and routing key, for instance)."""

    @abstractmethod
    def bind_queue(self, queue: str, exchange: str, route_key: str) -> None:
        pass

    @abstractmethod
    def publish(self, exchange: str, route_key: str, payload: bytes,
                expiration_millis: Optional[int] = None) -> None:
        """Send *payload*. When *expiration_millis* is set the broker drops
        (or dead-letters) the message once it has waited that long."""

    def close(self) -> None:
        """Release connections held by the transport. No-op by default."""

    def __enter__(self) -> "BrokerTransport":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
