import logging


def config_logger(logging_level):
    """Configure the root logger. *logging_level* is a level name
    ("INFO", "debug", ...) or a numeric level."""
    level = logging_level
    if isinstance(level, str):
        level = logging.getLevelName(level.strip().upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown logging level: {logging_level}")

    logging.basicConfig(
        format='%(asctime)s %(levelname)-8s %(message)s',
        level=level,
        datefmt='%Y-%m-%d %H:%M:%S',
    )
    logging.getLogger().setLevel(level)
    logging.getLogger("pika").setLevel(logging.ERROR)
