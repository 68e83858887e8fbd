"""HAFAS client interface adapter."""

from transit_bridge.adapters.hafas_api.hafas_context import HafasContext
from transit_bridge.adapters.hafas_api.hafas_provider import HafasProvider

__all__ = ["HafasContext", "HafasProvider"]
