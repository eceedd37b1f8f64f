"""Exception hierarchy shared by the topology, apply and publish layers."""

from typing import Any, Optional


class TtlRouterError(Exception):
    """Base class for every error raised by ttl_router."""


# ----------------------------------------------------------------------
# Topology (registration / build time)
# ----------------------------------------------------------------------
class TopologyError(TtlRouterError):
    pass


class DuplicateNameError(TopologyError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Routing unit '{name}' is already registered")
        self.name = name


class UnknownDeadLetterTargetError(TopologyError):
    def __init__(self, name: str, target: str) -> None:
        super().__init__(
            f"Routing unit '{name}' dead-letters to '{target}', which is not registered"
        )
        self.name = name
        self.target = target


class CyclicDeadLetterChainError(TopologyError):
    def __init__(self, chain) -> None:
        self.chain = list(chain)
        super().__init__(f"Dead-letter chain is cyclic: {' -> '.join(self.chain)}")


class ConflictingQueueError(TopologyError):
    def __init__(self, queue: str, owner: str, name: str) -> None:
        super().__init__(
            f"Queue '{queue}' is shared by routing units '{owner}' and '{name}' "
            f"with different dead-letter targets"
        )
        self.queue = queue
        self.owner = owner
        self.name = name


class RegistryFrozenError(TopologyError):
    pass


# ----------------------------------------------------------------------
# Transport (raised by BrokerTransport implementations)
# ----------------------------------------------------------------------
class TransportError(TtlRouterError):
    pass


class TransportConflictError(TransportError):
    """An entity was redeclared with parameters that differ from the live one."""


# ----------------------------------------------------------------------
# Apply
# ----------------------------------------------------------------------
class ApplyError(TtlRouterError):
    def __init__(self, step_index: int, step: Any, reason: Optional[str] = None) -> None:
        self.step_index = step_index
        self.step = step
        message = f"Topology apply stopped at step {step_index} ({step})"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)

    @property
    def attempted(self) -> int:
        """Number of steps sent to the transport, the failed one included.
        Steps are numbered from 1, so this equals *step_index*."""
        return self.step_index


class ApplyConflictError(ApplyError):
    pass


# ----------------------------------------------------------------------
# Publish
# ----------------------------------------------------------------------
class PublishError(TtlRouterError):
    pass


class InvalidDelayError(PublishError):
    def __init__(self, delay_seconds: Any, max_delay_seconds: int) -> None:
        super().__init__(
            f"Invalid delay {delay_seconds!r}: expected whole seconds between 0 and {max_delay_seconds}"
        )
        self.delay_seconds = delay_seconds
        self.max_delay_seconds = max_delay_seconds


class UnknownRoutingUnitError(PublishError):
    def __init__(self, name: str) -> None:
        super().__init__(f"No routing unit named '{name}'")
        self.name = name
