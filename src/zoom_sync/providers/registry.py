"""
Provider registry

Register provider classes by type name. ProviderConfig.name selects the
class, so config.yaml only lists names and options.

Usage:
    @register_provider("cpu_temp")
    class CpuTempProvider(DataProvider):
        ...
"""

from typing import Dict, Type

from zoom_sync.models.config import ProviderConfig
from zoom_sync.models.errors import ConfigError
from zoom_sync.utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.PROVIDER)

PROVIDER_REGISTRY: Dict[str, Type] = {}


def register_provider(name: str):
    """Decorator to register a provider class by type name."""
    def decorator(cls):
        PROVIDER_REGISTRY[name] = cls
        log.debug(f"Registered provider type: {name} -> {cls.__name__}")
        return cls
    return decorator


def create_provider(config: ProviderConfig, **context):
    """
    Instantiate the provider registered under config.name

    context carries shared collaborators (aggregator, http_client); each
    provider picks what it needs.

    Raises:
        ConfigError: unknown provider name
    """
    cls = PROVIDER_REGISTRY.get(config.name)
    if cls is None:
        raise ConfigError(
            f"Unknown provider '{config.name}' (known: {', '.join(sorted(PROVIDER_REGISTRY))})",
            key=f"providers.{config.name}",
        )
    return cls(config, **context)
