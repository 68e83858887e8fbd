"""Turns free-text or partial locations into routable ones."""

import logging
from collections.abc import Set
from typing import TYPE_CHECKING

from transit_bridge.domain.errors import InvalidArgumentError, ServiceDownError
from transit_bridge.domain.models import (
    EndpointResolution,
    Location,
    LocationType,
    SuggestLocationsResult,
    SuggestLocationsStatus,
)

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from transit_bridge.domain.ports import NetworkProvider


class LocationDisambiguator:
    """Resolves trip endpoints through the provider's location suggestions."""

    def __init__(self, provider: "NetworkProvider") -> None:
        """Initialize with the provider used for suggestions."""
        self._provider = provider

    async def suggest_locations(
        self,
        text: str,
        types: Set[LocationType] | None = None,
        max_locations: int = 0,
    ) -> SuggestLocationsResult:
        """Query the backend for name matches, ranked highest priority first."""
        if not text or not text.strip():
            raise InvalidArgumentError("Suggestion text must not be empty")
        if max_locations < 0:
            raise InvalidArgumentError("max_locations must not be negative")

        result = await self._provider.suggest_locations(text, types, max_locations)
        if result.status != SuggestLocationsStatus.OK:
            return result
        return SuggestLocationsResult(
            header=result.header,
            status=result.status,
            suggested_locations=tuple(sorted(result.suggested_locations)),
        )

    async def resolve_endpoint(self, location: Location) -> EndpointResolution:
        """Resolve a trip endpoint.

        Identified locations are returned unchanged without any I/O. A
        name-only location is looked up: no match is unknown, a single
        identified match is used, anything else is handed back as candidates.
        """
        if location.is_identified:
            return EndpointResolution.resolved(location)
        if not location.has_name:
            raise InvalidArgumentError(f"Location is neither identified nor named: {location}")

        result = await self.suggest_locations(location.name or "")
        if result.status != SuggestLocationsStatus.OK:
            raise ServiceDownError(
                f"Suggestions for {location.name!r} failed: {result.status.name}"
            )

        candidates = result.get_locations()
        if not candidates:
            logger.debug(f"No location matches {location.name!r}")
            return EndpointResolution.unknown()
        if len(candidates) == 1 and candidates[0].is_identified:
            return EndpointResolution.resolved(candidates[0])
        return EndpointResolution.ambiguous(candidates)
