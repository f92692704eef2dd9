"""
Data providers

Importing this package registers every built-in provider type.
"""

from zoom_sync.providers.base import DataProvider
from zoom_sync.providers.registry import PROVIDER_REGISTRY, register_provider, create_provider

from zoom_sync.providers import cpu_temp, gpu_temp, download_rate, geolocation, weather  # noqa: F401

__all__ = [
    "DataProvider",
    "PROVIDER_REGISTRY",
    "register_provider",
    "create_provider",
]
