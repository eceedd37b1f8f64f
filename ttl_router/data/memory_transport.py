"""In-process BrokerTransport.

Keeps declarations and routed messages in dictionaries so topology and
publishing can be exercised without a broker.  Redeclaration follows
RabbitMQ: identical parameters are a no-op, different ones are a conflict.
Direct exchanges deliver a message to every queue bound with exactly the
message's routing key.  Expiry and dead-lettering are not simulated.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..domain.errors import TransportConflictError, TransportError
from ..domain.routing_unit import DIRECT, OutboundMessage
from ..domain.transport import BrokerTransport


class InMemoryTransport(BrokerTransport):

    def __init__(self) -> None:
        self.exchanges: Dict[str, Tuple[str, bool]] = {}
        self.queues: Dict[str, Tuple[bool, Dict[str, Any]]] = {}
        self.bindings: List[Tuple[str, str, str]] = []
        self.messages: Dict[str, List[OutboundMessage]] = {}
        self.published: List[OutboundMessage] = []
        self.calls: List[Tuple[str, Tuple[Any, ...]]] = []
        self.closed = False
        self._lock = threading.Lock()

    def declare_exchange(self, name: str, durable: bool = True, exchange_type: str = DIRECT) -> None:
        with self._lock:
            self.calls.append(("declare_exchange", (name, durable, exchange_type)))
            current = self.exchanges.get(name)
            if current is not None and current != (exchange_type, durable):
                raise TransportConflictError(
                    f"exchange '{name}' exists as {current}, redeclared as {(exchange_type, durable)}"
                )
            self.exchanges[name] = (exchange_type, durable)

    def declare_queue(self, name: str, durable: bool = True,
                      arguments: Optional[Mapping[str, Any]] = None) -> None:
        with self._lock:
            declared = (durable, dict(arguments or {}))
            self.calls.append(("declare_queue", (name, durable, declared[1])))
            current = self.queues.get(name)
            if current is not None and current != declared:
                raise TransportConflictError(
                    f"queue '{name}' exists as {current}, redeclared as {declared}"
                )
            self.queues[name] = declared
            self.messages.setdefault(name, [])

    def bind_queue(self, queue: str, exchange: str, route_key: str) -> None:
        with self._lock:
            self.calls.append(("bind_queue", (queue, exchange, route_key)))
            if queue not in self.queues:
                raise TransportError(f"no queue '{queue}'")
            if exchange not in self.exchanges:
                raise TransportError(f"no exchange '{exchange}'")
            binding = (queue, exchange, route_key)
            if binding not in self.bindings:
                self.bindings.append(binding)

    def publish(self, exchange: str, route_key: str, payload: bytes,
                expiration_millis: Optional[int] = None) -> None:
        with self._lock:
            self.calls.append(("publish", (exchange, route_key, payload, expiration_millis)))
            if exchange not in self.exchanges:
                raise TransportError(f"no exchange '{exchange}'")
            message = OutboundMessage(payload, exchange, route_key, expiration_millis)
            self.published.append(message)
            routed = [q for q, ex, key in self.bindings if ex == exchange and key == route_key]
            if not routed:
                logging.debug(f"Message to {exchange} with key {route_key} was not routed to any queue")
            for queue in routed:
                self.messages[queue].append(message)

    def close(self) -> None:
        self.closed = True
