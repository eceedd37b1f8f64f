"""Structured events emitted after successful declarations and publishes."""

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Union


@dataclass(frozen=True)
class PublishEvent:
    exchange: str
    route_key: str
    delay_seconds: Optional[int] = None


@dataclass(frozen=True)
class DeclareEvent:
    step_index: int
    step: object


Event = Union[PublishEvent, DeclareEvent]
EventSink = Callable[[Event], None]


def log_event(event: Event) -> None:
    """Default sink: write the event to the log."""
    if isinstance(event, PublishEvent):
        if event.delay_seconds:
            logging.info(
                f"Sent delayed message. Delay: {event.delay_seconds}s, exchange: {event.exchange}, "
                f"routing key: {event.route_key}"
            )
        else:
            logging.info(f"Sent message. Exchange: {event.exchange}, routing key: {event.route_key}")
    else:
        logging.debug(f"Step {event.step_index} applied: {event.step}")
