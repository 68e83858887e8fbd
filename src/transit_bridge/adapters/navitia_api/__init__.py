"""Navitia REST API adapter."""

from transit_bridge.adapters.navitia_api.navitia_context import NavitiaContext
from transit_bridge.adapters.navitia_api.navitia_provider import NavitiaProvider

__all__ = ["NavitiaContext", "NavitiaProvider"]
