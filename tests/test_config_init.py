import textwrap

import pytest

from ttl_router.config.config_init import build_registry, initialize_config
from ttl_router.domain.routing_unit import RoutingUnit

CONFIG = textwrap.dedent("""
    [DEFAULT]
    LOGGING_LEVEL = DEBUG

    [RABBITMQ]
    RABBIT_HOST = broker
    RABBIT_PORT = 5673
    MAX_DELAY_SECONDS = 600

    [unit:order.ttl]
    EXCHANGE = van.order.ttl.exchange
    QUEUE = van.order.ttl.queue
    ROUTING_KEY = order.ttl
    DEAD_LETTER = order.dead

    [unit:order.dead]
    EXCHANGE = van.order.dead.exchange
    QUEUE = van.order.dead.queue
    ROUTING_KEY = van.order.dead
""")

ENV_KEYS = [
    "LOGGING_LEVEL", "RABBIT_HOST", "RABBIT_PORT", "RABBIT_VHOST", "RABBIT_USER",
    "RABBIT_PASSWORD", "CONNECT_RETRIES", "CONNECT_RETRY_DELAY", "MAX_DELAY_SECONDS",
    "TTL_ROUTER_CONFIG",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.ini"
    path.write_text(CONFIG)
    return str(path)


def test_reads_file_with_defaults(config_file):
    config = initialize_config(config_file)

    assert config["logging_level"] == "DEBUG"
    assert config["rabbit_host"] == "broker"
    assert config["rabbit_port"] == 5673
    assert config["rabbit_vhost"] == "/"
    assert config["rabbit_user"] == "guest"
    assert config["connect_retries"] == 5
    assert config["max_delay_seconds"] == 600
    assert config["units"] == [
        RoutingUnit("order.ttl", "van.order.ttl.exchange", "van.order.ttl.queue", "order.ttl", "order.dead"),
        RoutingUnit("order.dead", "van.order.dead.exchange", "van.order.dead.queue", "van.order.dead"),
    ]


def test_env_overrides_file(config_file, monkeypatch):
    monkeypatch.setenv("RABBIT_HOST", "other-host")
    monkeypatch.setenv("RABBIT_PORT", "5000")

    config = initialize_config(config_file)

    assert config["rabbit_host"] == "other-host"
    assert config["rabbit_port"] == 5000


def test_config_path_from_env(config_file, monkeypatch):
    monkeypatch.setenv("TTL_ROUTER_CONFIG", config_file)
    assert initialize_config()["rabbit_host"] == "broker"


def test_env_alone_is_enough(tmp_path, monkeypatch):
    monkeypatch.setenv("RABBIT_HOST", "env-host")
    config = initialize_config(str(tmp_path / "missing.ini"))

    assert config["rabbit_host"] == "env-host"
    assert config["units"] == []


def test_missing_host(tmp_path):
    with pytest.raises(KeyError):
        initialize_config(str(tmp_path / "missing.ini"))


def test_unparsable_value(config_file, monkeypatch):
    monkeypatch.setenv("RABBIT_PORT", "not-a-port")
    with pytest.raises(ValueError):
        initialize_config(config_file)


def test_unit_missing_queue(tmp_path):
    path = tmp_path / "config.ini"
    path.write_text("[RABBITMQ]\nRABBIT_HOST = h\n\n[unit:broken]\nEXCHANGE = ex\nROUTING_KEY = k\n")
    with pytest.raises(KeyError):
        initialize_config(str(path))


def test_registry_resolves_out_of_order_sections(config_file):
    plan = build_registry(initialize_config(config_file)).build()

    assert [q.name for q in plan.queues] == ["van.order.ttl.queue", "van.order.dead.queue"]
    assert plan.queues[0].arguments == {
        "x-dead-letter-exchange": "van.order.dead.exchange",
        "x-dead-letter-routing-key": "van.order.dead",
    }
