"""Issue the declare/bind calls of a TopologyPlan against a transport."""

import logging
from typing import Optional

from ..domain.errors import ApplyConflictError, ApplyError, TransportConflictError, TransportError
from ..domain.events import DeclareEvent, EventSink, log_event
from ..domain.routing_unit import BindQueue, DeclareExchange, DeclareQueue, TopologyPlan
from ..domain.transport import BrokerTransport


class DeclarationApplier:
    """Applies plans step by step, in plan order.

    The first failing step stops the run; nothing is rolled back since the
    broker keeps whatever was declared before the failure.  Re-applying the
    same plan is safe: identical redeclarations are no-ops at the broker.
    Callers must not run two applies against the same transport at once.
    """

    def __init__(self, event_sink: Optional[EventSink] = None) -> None:
        self._event_sink = event_sink or log_event

    def apply(self, plan: TopologyPlan, transport: BrokerTransport) -> int:
        logging.info(f"Applying topology plan with {len(plan)} steps")
        # steps are numbered from 1
        for number, step in enumerate(plan.steps, start=1):
            try:
                self._apply_step(step, transport)
            except TransportConflictError as e:
                logging.error(f"Step {number} ({step}) conflicts with the live topology: {e}")
                raise ApplyConflictError(number, step, str(e)) from e
            except TransportError as e:
                logging.error(f"Step {number} ({step}) failed: {e}")
                raise ApplyError(number, step, str(e)) from e
            self._event_sink(DeclareEvent(number, step))

        logging.info(f"Topology plan applied ({len(plan)} steps)")
        return len(plan)

    @staticmethod
    def _apply_step(step, transport: BrokerTransport) -> None:
        if isinstance(step, DeclareExchange):
            transport.declare_exchange(step.name, durable=step.durable, exchange_type=step.exchange_type)
        elif isinstance(step, DeclareQueue):
            transport.declare_queue(step.name, durable=step.durable, arguments=dict(step.arguments))
        elif isinstance(step, BindQueue):
            transport.bind_queue(step.queue, step.exchange, step.route_key)
        else:
            raise TypeError(f"Unknown plan step: {step!r}")


def apply(plan: TopologyPlan, transport: BrokerTransport) -> int:
    """Apply *plan* with a default DeclarationApplier."""
    return DeclarationApplier().apply(plan, transport)
