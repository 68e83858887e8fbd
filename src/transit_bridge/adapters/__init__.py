"""Adapters layer - external system integrations."""

from transit_bridge.adapters.config import TransitConfig
from transit_bridge.adapters.hafas_api import HafasProvider
from transit_bridge.adapters.http_client import TransitHttpClient
from transit_bridge.adapters.navitia_api import NavitiaProvider
from transit_bridge.adapters.provider_factory import create_provider

__all__ = [
    "HafasProvider",
    "NavitiaProvider",
    "TransitConfig",
    "TransitHttpClient",
    "create_provider",
]
