"""Result domain models returned by every query."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from transit_bridge.domain.models.departure import StationDepartures
from transit_bridge.domain.models.location import Location, SuggestedLocation
from transit_bridge.domain.models.pagination import PaginationContext
from transit_bridge.domain.models.trip import Trip


@dataclass(frozen=True)
class ResultHeader:
    """Describes which backend produced a result."""

    network: str
    server_product: str
    server_version: str | None = None
    server_name: str | None = None
    server_time: datetime | None = None


class NearbyLocationsStatus(Enum):
    OK = "ok"
    INVALID_ID = "invalid_id"
    SERVICE_DOWN = "service_down"


class QueryDeparturesStatus(Enum):
    OK = "ok"
    INVALID_STATION = "invalid_station"
    SERVICE_DOWN = "service_down"


class SuggestLocationsStatus(Enum):
    OK = "ok"
    SERVICE_DOWN = "service_down"


class QueryTripsStatus(Enum):
    OK = "ok"
    AMBIGUOUS = "ambiguous"
    TOO_CLOSE = "too_close"
    UNKNOWN_FROM = "unknown_from"
    UNKNOWN_VIA = "unknown_via"
    UNKNOWN_TO = "unknown_to"
    UNKNOWN_LOCATION = "unknown_location"
    UNRESOLVABLE_ADDRESS = "unresolvable_address"
    NO_TRIPS = "no_trips"
    INVALID_DATE = "invalid_date"
    SERVICE_DOWN = "service_down"


@dataclass(frozen=True)
class NearbyLocationsResult:
    header: ResultHeader | None
    status: NearbyLocationsStatus
    locations: tuple[Location, ...] = ()


@dataclass(frozen=True)
class QueryDeparturesResult:
    header: ResultHeader | None
    status: QueryDeparturesStatus
    station_departures: tuple[StationDepartures, ...] = ()

    def find_station_departures(self, station_id: str) -> StationDepartures | None:
        for departures in self.station_departures:
            if departures.location.id == station_id:
                return departures
        return None


@dataclass(frozen=True)
class SuggestLocationsResult:
    header: ResultHeader | None
    status: SuggestLocationsStatus
    suggested_locations: tuple[SuggestedLocation, ...] = ()

    def get_locations(self) -> list[Location]:
        """Suggested locations in rank order."""
        return [suggestion.location for suggestion in sorted(self.suggested_locations)]


@dataclass(frozen=True)
class QueryTripsResult:
    """Outcome of a trip query.

    Exactly one of these holds: the status is AMBIGUOUS and at least one
    candidate list is filled, the status is OK and trips are present, or the
    status is an error and both are empty.
    """

    header: ResultHeader | None
    status: QueryTripsStatus
    trips: tuple[Trip, ...] = ()
    context: PaginationContext | None = None
    ambiguous_from: tuple[Location, ...] | None = None
    ambiguous_via: tuple[Location, ...] | None = None
    ambiguous_to: tuple[Location, ...] | None = None

    def __post_init__(self) -> None:
        has_candidates = bool(self.ambiguous_from or self.ambiguous_via or self.ambiguous_to)
        if self.status == QueryTripsStatus.OK:
            if not self.trips or has_candidates:
                raise ValueError("OK trip result needs trips and no ambiguous candidates")
        elif self.status == QueryTripsStatus.AMBIGUOUS:
            if not has_candidates or self.trips:
                raise ValueError("Ambiguous trip result needs candidates and no trips")
        elif self.trips or has_candidates:
            raise ValueError(f"{self.status.name} trip result must not carry trips or candidates")

    @classmethod
    def ok(
        cls,
        header: ResultHeader | None,
        trips: tuple[Trip, ...] | list[Trip],
        context: PaginationContext | None,
    ) -> "QueryTripsResult":
        """Trips if any were found, NO_TRIPS otherwise."""
        if not trips:
            return cls(header=header, status=QueryTripsStatus.NO_TRIPS)
        return cls(header=header, status=QueryTripsStatus.OK, trips=tuple(trips), context=context)

    @classmethod
    def ambiguous(
        cls,
        header: ResultHeader | None,
        ambiguous_from: list[Location] | None = None,
        ambiguous_via: list[Location] | None = None,
        ambiguous_to: list[Location] | None = None,
    ) -> "QueryTripsResult":
        return cls(
            header=header,
            status=QueryTripsStatus.AMBIGUOUS,
            ambiguous_from=tuple(ambiguous_from) if ambiguous_from else None,
            ambiguous_via=tuple(ambiguous_via) if ambiguous_via else None,
            ambiguous_to=tuple(ambiguous_to) if ambiguous_to else None,
        )

    @classmethod
    def error(cls, header: ResultHeader | None, status: QueryTripsStatus) -> "QueryTripsResult":
        return cls(header=header, status=status)
