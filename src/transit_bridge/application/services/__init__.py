"""Application services (use cases) for transit queries."""

from transit_bridge.application.services.location_disambiguator import LocationDisambiguator
from transit_bridge.application.services.query_service import TransitQueryService

__all__ = ["LocationDisambiguator", "TransitQueryService"]
