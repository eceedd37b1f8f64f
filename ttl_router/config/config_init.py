from configparser import ConfigParser
import os
import logging

from ..domain.routing_unit import RoutingUnit
from ..logic.delayed_publisher import DEFAULT_MAX_DELAY_SECONDS
from ..logic.topology_registry import TopologyRegistry

CONFIG_FILE = "config.ini"
UNIT_SECTION_PREFIX = "unit:"


def initialize_config(config_file=None):
    """ Parse env variables or config file to find program config params

    Environment variables take precedence over the config file. Routing units
    are read from every ``[unit:<name>]`` section of the file. If a required
    parameter is missing a KeyError is raised; if one cannot be parsed, a
    ValueError is raised.
    """
    config_file = config_file or os.getenv("TTL_ROUTER_CONFIG", CONFIG_FILE)
    config = ConfigParser()
    config.read(config_file)

    config_params = {}

    try:
        # General Config
        config_params["logging_level"] = _param(config, "DEFAULT", "LOGGING_LEVEL", "INFO")

        # RabbitMQ Config
        config_params["rabbit_host"] = _param(config, "RABBITMQ", "RABBIT_HOST")
        config_params["rabbit_port"] = int(_param(config, "RABBITMQ", "RABBIT_PORT", "5672"))
        config_params["rabbit_vhost"] = _param(config, "RABBITMQ", "RABBIT_VHOST", "/")
        config_params["rabbit_user"] = _param(config, "RABBITMQ", "RABBIT_USER", "guest")
        config_params["rabbit_password"] = _param(config, "RABBITMQ", "RABBIT_PASSWORD", "guest")
        config_params["connect_retries"] = int(_param(config, "RABBITMQ", "CONNECT_RETRIES", "5"))
        config_params["connect_retry_delay"] = float(_param(config, "RABBITMQ", "CONNECT_RETRY_DELAY", "5"))
        config_params["max_delay_seconds"] = int(
            _param(config, "RABBITMQ", "MAX_DELAY_SECONDS", str(DEFAULT_MAX_DELAY_SECONDS))
        )

        # Routing units
        config_params["units"] = _read_units(config)

    except KeyError as e:
        raise KeyError(f"Required key was not found in {config_file} or Env Vars. Error: {e}. Aborting")
    except ValueError as e:
        raise ValueError(f"Key could not be parsed in {config_file} or Env Vars. Error: {e}. Aborting")

    logging.debug(f"Config initialized from {config_file}: {len(config_params['units'])} routing units")
    return config_params


def _param(config, section, key, default=None):
    """Env var *key*, else *key* in *section*, else *default*.
    Raises KeyError when none of them is set."""
    value = os.getenv(key)
    if value is None:
        value = config.get(section, key, fallback=default)
    if value is None:
        raise KeyError(f"{section}.{key}")
    return value


def _read_units(config):
    units = []
    for section in config.sections():
        if not section.startswith(UNIT_SECTION_PREFIX):
            continue
        name = section[len(UNIT_SECTION_PREFIX):].strip()
        values = config[section]
        units.append(RoutingUnit(
            name=name,
            exchange=values["EXCHANGE"],
            queue=values["QUEUE"],
            route_key=values["ROUTING_KEY"],
            dead_letter=values.get("DEAD_LETTER") or None,
        ))
    return units


def build_registry(config_params):
    """Registry for the configured units. Sections may appear in any order,
    so dead-letter targets are resolved when the plan is built."""
    return TopologyRegistry.from_units(config_params["units"], defer_resolution=True)
