from .declaration_applier import DeclarationApplier, apply
from .delayed_publisher import DEFAULT_MAX_DELAY_SECONDS, MAX_BROKER_EXPIRATION_MILLIS, DelayedPublisher
from .topology_registry import TopologyRegistry
