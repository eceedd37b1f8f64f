import logging
import threading
import time

import pika
import pika.exceptions

from ..domain.errors import TransportConflictError, TransportError
from ..domain.routing_unit import DIRECT
from ..domain.transport import BrokerTransport

rabbit_logger = logging.getLogger("RabbitMQ")

# AMQP reply code sent when a redeclaration does not match the live entity
PRECONDITION_FAILED = 406


class RabbitTransport(BrokerTransport):
    """BrokerTransport backed by a pika BlockingConnection.

    A single channel is shared and guarded by a lock, since pika's blocking
    channel must not be used from several threads at once.  When the broker
    closes the channel (a conflicting redeclaration does that) it is
    reopened on the next call.
    """

    def __init__(self, host, port=5672, virtual_host="/", username="guest", password="guest",
                 connect_retries=5, retry_delay=5, heartbeat=500):
        self.host = host
        self.port = port
        self.virtual_host = virtual_host
        self.connect_retries = connect_retries
        self.retry_delay = retry_delay
        self._parameters = pika.ConnectionParameters(
            host=host,
            port=port,
            virtual_host=virtual_host,
            credentials=pika.PlainCredentials(username, password),
            heartbeat=heartbeat,
        )
        self._connection = None
        self._channel = None
        self._lock = threading.RLock()
        self._connect_with_retry()

    def _connect_with_retry(self):
        """Establishes connection with RabbitMQ using retries."""
        retries = 0
        while True:
            try:
                if self._channel and self._channel.is_open:
                    self._channel.close()
                if self._connection and self._connection.is_open:
                    self._connection.close()

                self._connection = pika.BlockingConnection(self._parameters)
                self._channel = self._connection.channel()
                rabbit_logger.info(f"Connected to RabbitMQ at {self.host}:{self.port}{self.virtual_host}")
                return
            except pika.exceptions.AMQPConnectionError as e:
                retries += 1
                if retries >= self.connect_retries:
                    rabbit_logger.error("Max connection retries reached. Could not connect to RabbitMQ.")
                    raise TransportError(f"Could not connect to RabbitMQ at {self.host}: {e}") from e
                rabbit_logger.warning(
                    f"Connection attempt {retries}/{self.connect_retries} failed: {e}. Retrying in {self.retry_delay}s..."
                )
                time.sleep(self.retry_delay)

    @property
    def channel(self):
        """Ensures channel is active, reconnects if necessary."""
        if not self._connection or self._connection.is_closed:
            rabbit_logger.warning("Connection is closed. Attempting to reconnect...")
            self._connect_with_retry()
        elif not self._channel or self._channel.is_closed:
            rabbit_logger.info("Channel is closed, reopening it on the existing connection")
            self._channel = self._connection.channel()
        return self._channel

    def _call(self, description, operation):
        with self._lock:
            try:
                return operation(self.channel)
            except pika.exceptions.ChannelClosedByBroker as e:
                if e.reply_code == PRECONDITION_FAILED:
                    raise TransportConflictError(f"{description}: {e.reply_text}") from e
                raise TransportError(f"{description}: channel closed by broker ({e.reply_code} {e.reply_text})") from e
            except pika.exceptions.AMQPError as e:
                raise TransportError(f"{description}: {e!r}") from e

    def declare_exchange(self, name, durable=True, exchange_type=DIRECT):
        self._call(
            f"declare exchange '{name}'",
            lambda ch: ch.exchange_declare(exchange=name, exchange_type=exchange_type, durable=durable),
        )
        rabbit_logger.debug(f"Exchange '{name}' ({exchange_type}) declared")

    def declare_queue(self, name, durable=True, arguments=None):
        self._call(
            f"declare queue '{name}'",
            lambda ch: ch.queue_declare(queue=name, durable=durable, arguments=dict(arguments or {})),
        )
        rabbit_logger.debug(f"Queue '{name}' declared (durable: {durable}, arguments: {arguments or {}})")

    def bind_queue(self, queue, exchange, route_key):
        self._call(
            f"bind queue '{queue}' to '{exchange}'",
            lambda ch: ch.queue_bind(queue=queue, exchange=exchange, routing_key=route_key),
        )
        rabbit_logger.debug(f"Queue '{queue}' bound to exchange '{exchange}' with key '{route_key}'")

    def publish(self, exchange, route_key, payload, expiration_millis=None):
        properties = pika.BasicProperties(
            delivery_mode=2,
            expiration=str(expiration_millis) if expiration_millis is not None else None,
        )
        self._call(
            f"publish to '{exchange}' with key '{route_key}'",
            lambda ch: ch.basic_publish(exchange=exchange, routing_key=route_key, body=payload, properties=properties),
        )
        rabbit_logger.debug(f"Published {len(payload)} bytes to exchange '{exchange}' with key '{route_key}'")

    def close(self):
        """Closes the channel and connection gracefully."""
        with self._lock:
            try:
                if self._channel and self._channel.is_open:
                    self._channel.close()
                    rabbit_logger.info("RabbitMQ channel closed.")
                if self._connection and self._connection.is_open:
                    self._connection.close()
                    rabbit_logger.info("RabbitMQ connection closed.")
            except pika.exceptions.AMQPError as e:
                rabbit_logger.error(f"Error closing RabbitMQ resources: {e}", exc_info=True)
            finally:
                self._channel = None
                self._connection = None
