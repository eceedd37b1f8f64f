import argparse
import logging
import sys

from ttl_router.config.config_init import build_registry, initialize_config
from ttl_router.data.memory_transport import InMemoryTransport
from ttl_router.data.rabbit_transport import RabbitTransport
from ttl_router.domain.errors import TtlRouterError
from ttl_router.logic.declaration_applier import DeclarationApplier
from ttl_router.logic.delayed_publisher import DelayedPublisher
from ttl_router.utils.logger import config_logger


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog="ttl-router",
        description="Declare the configured RabbitMQ topology and optionally send one message.",
    )
    parser.add_argument("--config", default=None, help="path to config.ini (default: $TTL_ROUTER_CONFIG or ./config.ini)")
    parser.add_argument("--dry-run", action="store_true", help="apply against an in-memory broker instead of RabbitMQ")
    parser.add_argument("--unit", help="routing unit to send --message to after applying")
    parser.add_argument("--message", help="message body (UTF-8 text)")
    parser.add_argument("--delay", type=int, help="delay in seconds before the message is dead-lettered")
    args = parser.parse_args(argv)
    if (args.unit is None) != (args.message is None):
        parser.error("--unit and --message must be given together")
    if args.delay is not None and args.unit is None:
        parser.error("--delay requires --unit and --message")
    return args


def create_transport(config, dry_run=False):
    if dry_run:
        return InMemoryTransport()
    return RabbitTransport(
        config["rabbit_host"],
        port=config["rabbit_port"],
        virtual_host=config["rabbit_vhost"],
        username=config["rabbit_user"],
        password=config["rabbit_password"],
        connect_retries=config["connect_retries"],
        retry_delay=config["connect_retry_delay"],
    )


def main(argv=None):
    args = parse_args(argv)
    transport = None
    try:
        config = initialize_config(args.config)
        config_logger(config["logging_level"])

        registry = build_registry(config)
        plan = registry.build()
        if args.dry_run:
            for step in plan:
                logging.info(f"[dry-run] {step}")

        transport = create_transport(config, args.dry_run)
        DeclarationApplier().apply(plan, transport)

        if args.unit is not None:
            publisher = DelayedPublisher(transport, registry=registry, max_delay_seconds=config["max_delay_seconds"])
            publisher.send_delayed(args.unit, args.message.encode("utf-8"), args.delay or 0)
        return 0

    except (KeyError, ValueError) as e:
        logging.error(f"Invalid configuration: {e}")
    except TtlRouterError as e:
        logging.error(f"ttl-router error: {e}")
    finally:
        if transport is not None:
            transport.close()
    return 1


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)-8s %(message)s')
    sys.exit(main())
