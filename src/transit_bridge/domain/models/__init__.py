"""Domain models for transit backends."""

from transit_bridge.domain.models.departure import Departure, LineDestination, StationDepartures
from transit_bridge.domain.models.endpoint_resolution import EndpointResolution, ResolutionStatus
from transit_bridge.domain.models.error_details import ErrorDetails
from transit_bridge.domain.models.line import Line
from transit_bridge.domain.models.location import Location, LocationType, Point, SuggestedLocation
from transit_bridge.domain.models.pagination import PaginationContext
from transit_bridge.domain.models.product import Product, ProductCodec
from transit_bridge.domain.models.results import (
    NearbyLocationsResult,
    NearbyLocationsStatus,
    QueryDeparturesResult,
    QueryDeparturesStatus,
    QueryTripsResult,
    QueryTripsStatus,
    ResultHeader,
    SuggestLocationsResult,
    SuggestLocationsStatus,
)
from transit_bridge.domain.models.stop import Position, Stop
from transit_bridge.domain.models.style import Shape, Style
from transit_bridge.domain.models.trip import (
    Fare,
    FareType,
    Individual,
    IndividualType,
    Leg,
    Public,
    Trip,
)
from transit_bridge.domain.models.trip_options import (
    TripFlag,
    TripOptions,
    WalkSpeed,
)

__all__ = [
    "Departure",
    "EndpointResolution",
    "ErrorDetails",
    "Fare",
    "FareType",
    "Individual",
    "IndividualType",
    "Leg",
    "Line",
    "LineDestination",
    "Location",
    "LocationType",
    "NearbyLocationsResult",
    "NearbyLocationsStatus",
    "PaginationContext",
    "Point",
    "Position",
    "Product",
    "ProductCodec",
    "Public",
    "QueryDeparturesResult",
    "QueryDeparturesStatus",
    "QueryTripsResult",
    "QueryTripsStatus",
    "ResolutionStatus",
    "ResultHeader",
    "Shape",
    "StationDepartures",
    "Stop",
    "Style",
    "SuggestLocationsResult",
    "SuggestLocationsStatus",
    "SuggestedLocation",
    "Trip",
    "TripFlag",
    "TripOptions",
    "WalkSpeed",
]
