"""Immediate and delayed sends on top of a BrokerTransport.

A delayed send is an ordinary publish with a per-message expiration.  The
message waits in the unit's queue (which nobody consumes) until the broker
expires it and dead-letters it to the queue's dead-letter target, where the
real consumer picks it up.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, Union

from ..domain.errors import (
    InvalidDelayError,
    PublishError,
    TransportError,
    UnknownRoutingUnitError,
)
from ..domain.events import EventSink, PublishEvent, log_event
from ..domain.routing_unit import OutboundMessage, RoutingUnit
from ..domain.transport import BrokerTransport
from .topology_registry import TopologyRegistry

# RabbitMQ rejects per-message TTLs above 2^32 - 1 milliseconds.
MAX_BROKER_EXPIRATION_MILLIS = 2 ** 32 - 1
DEFAULT_MAX_DELAY_SECONDS = 7 * 24 * 60 * 60

UnitRef = Union[RoutingUnit, str]


class DelayedPublisher:

    def __init__(
        self,
        transport: BrokerTransport,
        *,
        registry: Optional[TopologyRegistry] = None,
        max_delay_seconds: int = DEFAULT_MAX_DELAY_SECONDS,
        encoder: Optional[Callable[[Any], bytes]] = None,
        event_sink: Optional[EventSink] = None,
    ) -> None:
        if max_delay_seconds < 0 or max_delay_seconds * 1000 > MAX_BROKER_EXPIRATION_MILLIS:
            raise ValueError(
                f"max_delay_seconds must be between 0 and {MAX_BROKER_EXPIRATION_MILLIS // 1000}, "
                f"got {max_delay_seconds}"
            )
        self._transport = transport
        self._registry = registry
        self._encoder = encoder
        self._event_sink = event_sink or log_event
        self.max_delay_seconds = max_delay_seconds

    # ------------------------------------------------------------------
    # Registry-routed sends
    # ------------------------------------------------------------------
    def send(self, unit: UnitRef, payload: Any) -> OutboundMessage:
        unit = self._resolve_unit(unit)
        return self._publish(unit.exchange, unit.route_key, payload, 0)

    def send_delayed(self, unit: UnitRef, payload: Any, delay_seconds: int) -> OutboundMessage:
        unit = self._resolve_unit(unit)
        return self._publish(unit.exchange, unit.route_key, payload, delay_seconds)

    # ------------------------------------------------------------------
    # Ad-hoc sends
    # ------------------------------------------------------------------
    def send_to(self, exchange: str, route_key: str, payload: Any) -> OutboundMessage:
        return self._publish(exchange, route_key, payload, 0)

    def send_delayed_to(self, exchange: str, route_key: str, payload: Any, delay_seconds: int) -> OutboundMessage:
        return self._publish(exchange, route_key, payload, delay_seconds)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def build_message(self, exchange: str, route_key: str, payload: Any, delay_seconds: int = 0) -> OutboundMessage:
        """Validate the delay and build the message without sending it."""
        self._check_delay(delay_seconds)
        return OutboundMessage(
            payload=self._encode(payload),
            exchange=exchange,
            route_key=route_key,
            expiration_millis=delay_seconds * 1000 if delay_seconds else None,
        )

    def _publish(self, exchange: str, route_key: str, payload: Any, delay_seconds: int) -> OutboundMessage:
        message = self.build_message(exchange, route_key, payload, delay_seconds)
        try:
            self._transport.publish(
                message.exchange,
                message.route_key,
                message.payload,
                expiration_millis=message.expiration_millis,
            )
        except TransportError as e:
            logging.error(f"Failed to send message to exchange {exchange} with routing key {route_key}: {e}")
            raise PublishError(f"Publish to '{exchange}' ({route_key}) failed: {e}") from e

        self._event_sink(PublishEvent(exchange, route_key, delay_seconds or None))
        return message

    def _check_delay(self, delay_seconds: Any) -> None:
        # bool is an int subclass but never a meaningful delay
        if (
            isinstance(delay_seconds, bool)
            or not isinstance(delay_seconds, int)
            or delay_seconds < 0
            or delay_seconds > self.max_delay_seconds
        ):
            raise InvalidDelayError(delay_seconds, self.max_delay_seconds)

    def _encode(self, payload: Any) -> bytes:
        if isinstance(payload, (bytes, bytearray, memoryview)):
            return bytes(payload)
        if self._encoder is None:
            raise TypeError(
                f"Payload must be bytes, got {type(payload).__name__}; pass an encoder to the publisher"
            )
        return self._encoder(payload)

    def _resolve_unit(self, unit: UnitRef) -> RoutingUnit:
        if isinstance(unit, RoutingUnit):
            return unit
        resolved = self._registry.lookup(unit) if self._registry is not None else None
        if resolved is None:
            raise UnknownRoutingUnitError(unit)
        return resolved
