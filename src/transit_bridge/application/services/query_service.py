"""Query orchestration across a single network provider."""

import logging
from collections.abc import Set
from datetime import datetime
from typing import TYPE_CHECKING

from transit_bridge.application.services.location_disambiguator import LocationDisambiguator
from transit_bridge.domain.errors import (
    InvalidArgumentError,
    ServiceDownError,
    UnsupportedOperationError,
)
from transit_bridge.domain.models import (
    Location,
    LocationType,
    NearbyLocationsResult,
    NearbyLocationsStatus,
    PaginationContext,
    Product,
    QueryDeparturesResult,
    QueryDeparturesStatus,
    QueryTripsResult,
    QueryTripsStatus,
    ResolutionStatus,
    ResultHeader,
    Style,
    SuggestLocationsResult,
    SuggestLocationsStatus,
    TripOptions,
)
from transit_bridge.domain.ports import Capability

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from transit_bridge.domain.ports import NetworkProvider


_UNKNOWN_STATUS = {
    "from": QueryTripsStatus.UNKNOWN_FROM,
    "via": QueryTripsStatus.UNKNOWN_VIA,
    "to": QueryTripsStatus.UNKNOWN_TO,
}


class TransitQueryService:
    """Entry points for every query a caller can make.

    Validates input, checks the provider offers the capability, resolves
    name-only trip endpoints and turns ServiceDownError into the
    SERVICE_DOWN status of each result. Other errors propagate.
    """

    def __init__(
        self,
        provider: "NetworkProvider",
        disambiguator: LocationDisambiguator | None = None,
    ) -> None:
        """Initialize with the provider to query."""
        self._provider = provider
        self._disambiguator = disambiguator or LocationDisambiguator(provider)

    def _header(self) -> ResultHeader:
        return ResultHeader(network=self._provider.network, server_product="transit_bridge")

    def _require(self, capability: Capability) -> None:
        if capability not in self._provider.capabilities:
            raise UnsupportedOperationError(
                f"Network {self._provider.network} does not support {capability.value}"
            )

    @staticmethod
    def _check_limit(name: str, value: int) -> None:
        if value < 0:
            raise InvalidArgumentError(f"{name} must not be negative: {value}")

    async def query_nearby_locations(
        self,
        types: Set[LocationType],
        location: Location,
        max_distance: int = 0,
        max_locations: int = 0,
    ) -> NearbyLocationsResult:
        """Find locations around a coordinate or a station."""
        self._require(Capability.NEARBY_LOCATIONS)
        if not location.is_identified:
            raise InvalidArgumentError(f"Nearby query needs an id or a coordinate: {location}")
        self._check_limit("max_distance", max_distance)
        self._check_limit("max_locations", max_locations)

        try:
            return await self._provider.query_nearby_locations(
                types, location, max_distance, max_locations
            )
        except ServiceDownError as e:
            logger.warning(f"Nearby locations query failed, service down: {e}")
            return NearbyLocationsResult(
                header=self._header(), status=NearbyLocationsStatus.SERVICE_DOWN
            )

    async def query_departures(
        self,
        station_id: str,
        time: datetime | None = None,
        max_departures: int = 0,
        equivs: bool = False,
    ) -> QueryDeparturesResult:
        """Get departures for a station; ``time`` of None means now."""
        self._require(Capability.DEPARTURES)
        if not station_id or not station_id.strip():
            raise InvalidArgumentError("Station id must not be empty")
        self._check_limit("max_departures", max_departures)

        try:
            return await self._provider.query_departures(
                station_id, time, max_departures, equivs
            )
        except ServiceDownError as e:
            logger.warning(f"Departures query for {station_id} failed, service down: {e}")
            return QueryDeparturesResult(
                header=self._header(), status=QueryDeparturesStatus.SERVICE_DOWN
            )

    async def suggest_locations(
        self,
        text: str,
        types: Set[LocationType] | None = None,
        max_locations: int = 0,
    ) -> SuggestLocationsResult:
        """Find locations matching free text, highest priority first."""
        self._require(Capability.SUGGEST_LOCATIONS)
        try:
            return await self._disambiguator.suggest_locations(text, types, max_locations)
        except ServiceDownError as e:
            logger.warning(f"Location suggestions for {text!r} failed, service down: {e}")
            return SuggestLocationsResult(
                header=self._header(), status=SuggestLocationsStatus.SERVICE_DOWN
            )

    async def query_trips(
        self,
        from_location: Location,
        via: Location | None,
        to_location: Location,
        date: datetime,
        departure: bool = True,
        options: TripOptions | None = None,
    ) -> QueryTripsResult:
        """Plan trips, resolving name-only endpoints first.

        If any endpoint matches nothing the matching UNKNOWN_* status is
        returned. If any endpoint matches several candidates, an AMBIGUOUS
        result carries a candidate list for every given endpoint, with the
        resolved ones as single-element lists.
        """
        self._require(Capability.TRIPS)
        if via is not None:
            self._require(Capability.TRIPS_VIA)
        endpoints = {"from": from_location, "via": via, "to": to_location}
        for role, endpoint in endpoints.items():
            if endpoint is not None and not endpoint.is_valid_endpoint:
                raise InvalidArgumentError(
                    f"Trip {role} location is neither identified nor named: {endpoint}"
                )

        try:
            resolved: dict[str, Location | None] = {"via": None}
            ambiguous: dict[str, list[Location]] = {}
            for role, endpoint in endpoints.items():
                if endpoint is None:
                    continue
                resolution = await self._disambiguator.resolve_endpoint(endpoint)
                if resolution.status == ResolutionStatus.UNKNOWN:
                    logger.info(f"Trip {role} location could not be resolved: {endpoint}")
                    return QueryTripsResult.error(self._header(), _UNKNOWN_STATUS[role])
                if resolution.status == ResolutionStatus.AMBIGUOUS:
                    ambiguous[role] = list(resolution.candidates)
                else:
                    resolved[role] = resolution.location

            if ambiguous:
                # Resolved endpoints come back as their only candidate
                for role, location in resolved.items():
                    if location is not None:
                        ambiguous.setdefault(role, [location])
                return QueryTripsResult.ambiguous(
                    self._header(),
                    ambiguous_from=ambiguous.get("from"),
                    ambiguous_via=ambiguous.get("via"),
                    ambiguous_to=ambiguous.get("to"),
                )

            return await self._provider.query_trips(
                resolved["from"],  # type: ignore[arg-type]
                resolved["via"],
                resolved["to"],  # type: ignore[arg-type]
                date,
                departure,
                options or TripOptions(),
            )
        except ServiceDownError as e:
            logger.warning(f"Trip query failed, service down: {e}")
            return QueryTripsResult.error(self._header(), QueryTripsStatus.SERVICE_DOWN)

    async def query_more_trips(
        self, context: PaginationContext, later: bool
    ) -> QueryTripsResult:
        """Fetch earlier or later trips for a previous result.

        Answers NO_TRIPS without touching the network when the backend gave
        no continuation token for that direction.
        """
        self._require(Capability.TRIPS)
        if not context.can_query(later):
            direction = "later" if later else "earlier"
            logger.debug(f"No continuation token to query {direction} trips")
            return QueryTripsResult.error(self._header(), QueryTripsStatus.NO_TRIPS)

        try:
            return await self._provider.query_more_trips(context, later)
        except ServiceDownError as e:
            logger.warning(f"Query for more trips failed, service down: {e}")
            return QueryTripsResult.error(self._header(), QueryTripsStatus.SERVICE_DOWN)

    def line_style(self, network: str | None, product: Product | None, label: str | None) -> Style:
        """Look up how a line label is drawn."""
        return self._provider.line_style(network, product, label)
