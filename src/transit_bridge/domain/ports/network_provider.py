"""Network provider port."""

from collections.abc import Set
from datetime import datetime
from enum import Enum
from typing import Protocol

from transit_bridge.domain.models.location import Location, LocationType
from transit_bridge.domain.models.pagination import PaginationContext
from transit_bridge.domain.models.product import Product
from transit_bridge.domain.models.results import (
    NearbyLocationsResult,
    QueryDeparturesResult,
    QueryTripsResult,
    SuggestLocationsResult,
)
from transit_bridge.domain.models.style import Style
from transit_bridge.domain.models.trip_options import TripOptions


class Capability(Enum):
    """Operations a backend may offer."""

    SUGGEST_LOCATIONS = "suggest_locations"
    NEARBY_LOCATIONS = "nearby_locations"
    DEPARTURES = "departures"
    TRIPS = "trips"
    TRIPS_VIA = "trips_via"


class NetworkProvider(Protocol):
    """Port for one public transport backend.

    Implementations perform at most one network round trip per call and
    raise ServiceDownError when the backend cannot be reached.
    """

    network: str
    capabilities: Set[Capability]

    async def query_nearby_locations(
        self,
        types: Set[LocationType],
        location: Location,
        max_distance: int = 0,
        max_locations: int = 0,
    ) -> NearbyLocationsResult:
        """Find locations around a coordinate or station.

        A distance or count of 0 leaves the choice to the backend.
        """
        ...

    async def query_departures(
        self,
        station_id: str,
        time: datetime | None = None,
        max_departures: int = 0,
        equivs: bool = False,
    ) -> QueryDeparturesResult:
        """Get departures for a station, optionally including its equivalent stops."""
        ...

    async def suggest_locations(
        self,
        text: str,
        types: Set[LocationType] | None = None,
        max_locations: int = 0,
    ) -> SuggestLocationsResult:
        """Find locations matching free text, ranked."""
        ...

    async def query_trips(
        self,
        from_location: Location,
        via: Location | None,
        to_location: Location,
        date: datetime,
        departure: bool,
        options: TripOptions,
    ) -> QueryTripsResult:
        """Plan trips between two identified locations."""
        ...

    async def query_more_trips(
        self, context: PaginationContext, later: bool
    ) -> QueryTripsResult:
        """Fetch the next page of trips in the given direction."""
        ...

    def line_style(self, network: str | None, product: Product | None, label: str | None) -> Style:
        """Look up how a line label is drawn. Never performs I/O."""
        ...
