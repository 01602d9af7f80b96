from treegate.infrastructure.config.config_loader import (
    TreegateConfig,
    find_config_file,
    load_config,
    resolve_config,
)

__all__ = ["TreegateConfig", "find_config_file", "load_config", "resolve_config"]
