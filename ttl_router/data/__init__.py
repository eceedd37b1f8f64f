from .memory_transport import InMemoryTransport
from .rabbit_transport import RabbitTransport
