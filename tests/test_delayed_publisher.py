import json

import pytest

from ttl_router.domain.errors import (
    InvalidDelayError,
    PublishError,
    TransportError,
    UnknownRoutingUnitError,
)
from ttl_router.domain.events import PublishEvent
from ttl_router.domain.routing_unit import OutboundMessage
from ttl_router.logic.declaration_applier import apply
from ttl_router.logic.delayed_publisher import MAX_BROKER_EXPIRATION_MILLIS, DelayedPublisher
from ttl_router.utils.encoding import json_encoder


@pytest.fixture
def publisher(registry, transport, events):
    apply(registry.build(), transport)
    return DelayedPublisher(transport, registry=registry, max_delay_seconds=3600, event_sink=events.append)


def test_send_routes_through_unit(publisher, transport, order):
    message = publisher.send(order, b"hello")

    assert message == OutboundMessage(b"hello", "ex.order", "order", None)
    assert transport.published == [message]
    assert transport.messages["q.order"] == [message]


def test_send_delayed_zero_is_identical_to_send(publisher, transport, order_ttl):
    immediate = publisher.send(order_ttl, b"payload")
    delayed = publisher.send_delayed(order_ttl, b"payload", 0)

    assert immediate == delayed
    assert delayed.expiration_millis is None
    assert transport.calls[-1] == ("publish", ("ex.ttl", "ttl", b"payload", None))


def test_send_delayed_sets_expiration_in_millis(publisher, transport, order_ttl):
    message = publisher.send_delayed(order_ttl, b"cancel order 7", 30)

    assert message.expiration_millis == 30000
    assert transport.messages["q.ttl"][-1].expiration_millis == 30000


def test_delay_above_maximum_is_rejected(publisher, transport, order_ttl):
    with pytest.raises(InvalidDelayError) as info:
        publisher.send_delayed(order_ttl, b"x", 3601)

    assert info.value.max_delay_seconds == 3600
    assert transport.published == []


@pytest.mark.parametrize("delay", [-1, 1.5, "10", True])
def test_malformed_delays_are_rejected(publisher, order_ttl, delay):
    with pytest.raises(InvalidDelayError):
        publisher.send_delayed(order_ttl, b"x", delay)


def test_maximum_delay_is_accepted(publisher, order_ttl):
    assert publisher.send_delayed(order_ttl, b"x", 3600).expiration_millis == 3_600_000


def test_send_by_registered_name(publisher, transport):
    publisher.send_delayed("order.ttl", b"x", 5)
    assert transport.messages["q.ttl"][0].expiration_millis == 5000


def test_unknown_unit_name(publisher):
    with pytest.raises(UnknownRoutingUnitError):
        publisher.send("nope", b"x")


def test_name_without_registry_is_unknown(transport):
    with pytest.raises(UnknownRoutingUnitError):
        DelayedPublisher(transport).send("order", b"x")


def test_ad_hoc_routing(publisher, transport):
    publisher.send_to("ex.dead", "dead", b"now")
    publisher.send_delayed_to("ex.ttl", "ttl", b"later", 10)

    assert transport.messages["q.dead"][0].payload == b"now"
    assert transport.messages["q.ttl"][0] == OutboundMessage(b"later", "ex.ttl", "ttl", 10000)


def test_ad_hoc_delay_is_validated(publisher):
    with pytest.raises(InvalidDelayError):
        publisher.send_delayed_to("ex.ttl", "ttl", b"later", -5)


def test_transport_failure_becomes_publish_error(publisher):
    with pytest.raises(PublishError) as info:
        publisher.send_to("ex.missing", "key", b"x")

    assert isinstance(info.value.__cause__, TransportError)


def test_publish_events(publisher, events, order, order_ttl):
    publisher.send(order, b"a")
    publisher.send_delayed(order_ttl, b"b", 30)

    assert events[-2:] == [
        PublishEvent("ex.order", "order", None),
        PublishEvent("ex.ttl", "ttl", 30),
    ]


def test_no_event_when_publish_fails(publisher, events):
    before = len(events)
    with pytest.raises(PublishError):
        publisher.send_to("ex.missing", "key", b"x")
    assert len(events) == before


def test_non_bytes_payload_needs_encoder(publisher, order):
    with pytest.raises(TypeError):
        publisher.send(order, {"id": 1})


def test_encoder_is_applied(registry, transport, order):
    apply(registry.build(), transport)
    publisher = DelayedPublisher(transport, encoder=json_encoder)

    message = publisher.send(order, {"orderId": 7, "status": "CREATED"})

    assert json.loads(message.payload) == {"orderId": 7, "status": "CREATED"}


def test_build_message_does_not_publish(publisher, transport):
    message = publisher.build_message("ex.ttl", "ttl", b"x", 2)
    assert message.expiration_millis == 2000
    assert transport.published == []


def test_maximum_is_bounded_by_broker_ttl_limit(transport):
    with pytest.raises(ValueError):
        DelayedPublisher(transport, max_delay_seconds=MAX_BROKER_EXPIRATION_MILLIS // 1000 + 1)
