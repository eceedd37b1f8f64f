from .config_init import build_registry, initialize_config
