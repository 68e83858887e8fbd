"""Network provider for Navitia REST backends.

API Documentation: https://doc.navitia.io/
"""

import json
import logging
from collections.abc import Set
from datetime import datetime
from typing import TYPE_CHECKING, Any
from zoneinfo import ZoneInfo

from transit_bridge.adapters.error_mapping import ErrorCodeTable
from transit_bridge.adapters.json_fields import require
from transit_bridge.adapters.line_styles import LineStyleResolver
from transit_bridge.adapters.navitia_api.constants import (
    ALWAYS_FORBIDDEN_MODES,
    BASE_WALKING_SPEED,
    DEFAULT_NEARBY_DISTANCE,
    DEPARTURES_DURATION_SECONDS,
    FORBIDDEN_MODES,
    PHYSICAL_MODE_PREFIX,
    SERVER_PRODUCT,
    SERVER_VERSION,
    WALKING_SPEED_FACTORS,
)
from transit_bridge.adapters.navitia_api.departure_parser import NavitiaDepartureParser
from transit_bridge.adapters.navitia_api.navitia_context import NavitiaContext
from transit_bridge.adapters.navitia_api.place_parser import (
    NavitiaPlaceParser,
    format_date,
    print_location,
)
from transit_bridge.adapters.navitia_api.section_parser import NavitiaSectionParser
from transit_bridge.domain.errors import (
    HttpStatusError,
    InvalidArgumentError,
    MalformedResponseError,
    ServiceDownError,
    UnsupportedOperationError,
)
from transit_bridge.domain.models import (
    ErrorDetails,
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
    ResultHeader,
    Style,
    SuggestLocationsResult,
    SuggestLocationsStatus,
    TripOptions,
)
from transit_bridge.domain.models.location import rank_by_position
from transit_bridge.domain.ports import Capability

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from transit_bridge.adapters.http_client import TransitHttpClient

NEARBY_ERRORS = ErrorCodeTable.of(
    "Navitia nearby",
    (("unknown_object",), NearbyLocationsStatus.INVALID_ID),
)
DEPARTURES_ERRORS = ErrorCodeTable.of(
    "Navitia departures",
    (("unknown_object",), QueryDeparturesStatus.INVALID_STATION),
)
TRIPS_ERRORS = ErrorCodeTable.of(
    "Navitia journeys",
    (("no_solution",), QueryTripsStatus.NO_TRIPS),
    (("date_out_of_bounds",), QueryTripsStatus.INVALID_DATE),
    (("unknown_object",), QueryTripsStatus.UNKNOWN_LOCATION),
)


def forbidden_physical_modes(products: frozenset[Product]) -> list[str]:
    """Physical mode URIs to forbid so only ``products`` are used.

    Empty when every product is allowed.
    """
    forbidden = Product.all() - products
    if not forbidden:
        return []
    modes = list(ALWAYS_FORBIDDEN_MODES)
    for product in Product:
        if product in forbidden:
            modes += FORBIDDEN_MODES.get(product, ())
    unique_modes = list(dict.fromkeys(modes))
    return [f"{PHYSICAL_MODE_PREFIX}{mode}" for mode in unique_modes]


def parse_error(payload: Any, status_code: int | None = None) -> ErrorDetails:
    error = require(payload, "error")
    return ErrorDetails(
        code=str(require(error, "id")),
        message=error.get("message"),
        status_code=status_code,
    )


class NavitiaProvider:
    """Talks to one Navitia coverage region."""

    capabilities: Set[Capability] = frozenset(
        {
            Capability.SUGGEST_LOCATIONS,
            Capability.NEARBY_LOCATIONS,
            Capability.DEPARTURES,
            Capability.TRIPS,
        }
    )

    def __init__(
        self,
        http_client: "TransitHttpClient",
        *,
        network: str,
        region: str,
        zone: ZoneInfo,
        api_base: str = "https://api.navitia.io/v1/",
        authorization: str | None = None,
        style_resolver: LineStyleResolver | None = None,
        num_trips: int = 4,
    ) -> None:
        """Initialize with the HTTP client and read-only backend settings."""
        self.network = network
        self._http_client = http_client
        self._coverage_url = f"{api_base.rstrip('/')}/coverage/{region}/"
        self._zone = zone
        self._headers = {"Authorization": authorization} if authorization else {}
        self._style_resolver = style_resolver or LineStyleResolver()
        self._num_trips = num_trips
        self._sections = NavitiaSectionParser(zone, self._style_resolver)
        self._departures = NavitiaDepartureParser(zone, self._sections)

    def _header(self) -> ResultHeader:
        return ResultHeader(
            network=self.network, server_product=SERVER_PRODUCT, server_version=SERVER_VERSION
        )

    async def _get_json(self, url: str, params: list[tuple[str, Any]] | None = None) -> Any:
        body = await self._http_client.get_text(url, params=params, headers=self._headers)
        return self._decode(body)

    @staticmethod
    def _decode(body: str) -> Any:
        try:
            return json.loads(body)
        except ValueError as e:
            raise ServiceDownError(f"Unparseable Navitia response: {body[:200]!r}") from e

    def _error_from_status(self, error: HttpStatusError) -> ErrorDetails:
        try:
            return parse_error(self._decode(error.body), error.status)
        except (ServiceDownError, MalformedResponseError) as e:
            raise ServiceDownError(f"Cannot parse Navitia error content: {error}") from e

    def line_style(self, network: str | None, product: Product | None, label: str | None) -> Style:
        return self._style_resolver.line_style(network, product, label)

    async def query_nearby_locations(
        self,
        types: Set[LocationType],
        location: Location,
        max_distance: int = 0,
        max_locations: int = 0,
    ) -> NearbyLocationsResult:
        if location.coord is not None:
            path = f"coords/{location.coord.lon_degrees};{location.coord.lat_degrees}"
        elif location.type == LocationType.STATION and location.id:
            path = f"stop_points/{location.id}"
        elif location.type == LocationType.POI and location.id:
            path = f"pois/{location.id}"
        else:
            raise InvalidArgumentError(f"Unhandled location for nearby query: {location}")

        params: list[tuple[str, Any]] = [
            ("type[]", "stop_point"),
            ("distance", max_distance or DEFAULT_NEARBY_DISTANCE),
        ]
        if max_locations > 0:
            params.append(("count", max_locations))
        params.append(("depth", 3))

        try:
            head = await self._get_json(f"{self._coverage_url}{path}/places_nearby", params)
        except HttpStatusError as e:
            status = NEARBY_ERRORS.classify(self._error_from_status(e))
            return NearbyLocationsResult(header=self._header(), status=status)

        if int(require(require(head, "pagination"), "total_result")) == 0:
            return NearbyLocationsResult(
                header=self._header(), status=NearbyLocationsStatus.INVALID_ID
            )
        locations = tuple(
            NavitiaPlaceParser.parse_location(place) for place in require(head, "places_nearby")
        )
        return NearbyLocationsResult(
            header=self._header(), status=NearbyLocationsStatus.OK, locations=locations
        )

    async def _resolve_stop_area_id(self, stop_point_id: str) -> str:
        head = await self._get_json(
            f"{self._coverage_url}stop_points/{stop_point_id}", [("depth", 1)]
        )
        stop_points = require(head, "stop_points")
        if not stop_points:
            raise MalformedResponseError("No stop point in response", head)
        return str(require(require(stop_points[0], "stop_area"), "id"))

    async def query_departures(
        self,
        station_id: str,
        time: datetime | None = None,
        max_departures: int = 0,
        equivs: bool = False,
    ) -> QueryDeparturesResult:
        id_kind = station_id.split(":", 1)[0]
        try:
            if equivs and id_kind == "stop_point":
                path = f"stop_areas/{await self._resolve_stop_area_id(station_id)}"
            elif id_kind == "stop_area":
                path = f"stop_areas/{station_id}"
            else:
                path = f"stop_points/{station_id}"

            params: list[tuple[str, Any]] = [
                ("from_datetime", format_date(time or datetime.now(self._zone), self._zone)),
                ("count", max_departures),
                ("duration", DEPARTURES_DURATION_SECONDS),
                ("depth", 0),
            ]
            head = await self._get_json(f"{self._coverage_url}{path}/departures", params)
        except HttpStatusError as e:
            status = DEPARTURES_ERRORS.classify(self._error_from_status(e))
            return QueryDeparturesResult(header=self._header(), status=status)

        return QueryDeparturesResult(
            header=self._header(),
            status=QueryDeparturesStatus.OK,
            station_departures=tuple(self._departures.parse_departures(head)),
        )

    async def suggest_locations(
        self,
        text: str,
        types: Set[LocationType] | None = None,
        max_locations: int = 0,
    ) -> SuggestLocationsResult:
        def wanted(location_type: LocationType) -> bool:
            return types is None or LocationType.ANY in types or location_type in types

        params: list[tuple[str, Any]] = [("q", text)]
        if wanted(LocationType.STATION):
            params.append(("type[]", "stop_area"))
        if wanted(LocationType.ADDRESS):
            params.append(("type[]", "address"))
        if wanted(LocationType.POI):
            params.append(("type[]", "poi"))
        params.append(("type[]", "administrative_region"))
        if max_locations > 0:
            params.append(("count", max_locations))
        params.append(("depth", 1))

        head = await self._get_json(f"{self._coverage_url}places", params)
        places = head.get("places") or []
        # Only the order matters, the "quality" field is deprecated
        suggestions = tuple(
            rank_by_position([NavitiaPlaceParser.parse_location(place) for place in places])
        )
        return SuggestLocationsResult(
            header=self._header(),
            status=SuggestLocationsStatus.OK,
            suggested_locations=suggestions,
        )

    def _journey_params(
        self,
        from_location: Location,
        to_location: Location,
        date: datetime,
        departure: bool,
        options: TripOptions,
    ) -> list[tuple[str, Any]]:
        params: list[tuple[str, Any]] = [
            ("from", print_location(from_location)),
            ("to", print_location(to_location)),
            ("datetime", format_date(date, self._zone)),
            ("datetime_represents", "departure" if departure else "arrival"),
            ("min_nb_journeys", self._num_trips),
            ("depth", 0),
            ("walking_speed", BASE_WALKING_SPEED * WALKING_SPEED_FACTORS[options.walk_speed]),
        ]
        if options.bike:
            params += [("first_section_mode[]", "bike"), ("last_section_mode[]", "bike")]
        for mode in forbidden_physical_modes(options.requested_products):
            params.append(("forbidden_uris[]", mode))
        return params

    @staticmethod
    def _parse_links(head: Any) -> tuple[str | None, str | None]:
        prev_url = None
        next_url = None
        for link in head.get("links") or []:
            if link.get("type") == "prev":
                prev_url = link.get("href")
            elif link.get("type") == "next":
                next_url = link.get("href")
        return prev_url, next_url

    def _trips_result(
        self, head: Any, from_location: Location, to_location: Location
    ) -> QueryTripsResult:
        if "error" in head:
            status = self._classify_trip_error(parse_error(head), from_location, to_location)
            return QueryTripsResult.error(self._header(), status)

        prev_url, next_url = self._parse_links(head)
        context = NavitiaContext(
            from_location=from_location,
            to_location=to_location,
            prev_query_url=prev_url,
            next_query_url=next_url,
        )
        trips = self._sections.parse_journeys(head, from_location, to_location)
        return QueryTripsResult.ok(self._header(), trips, context)

    def _classify_trip_error(
        self, error: ErrorDetails, from_location: Location, to_location: Location
    ) -> QueryTripsStatus:
        status = TRIPS_ERRORS.classify(error)
        if status != QueryTripsStatus.UNKNOWN_LOCATION:
            return status

        # Navitia names the unknown object in the message
        message = error.message or ""
        if print_location(from_location) in message:
            return QueryTripsStatus.UNKNOWN_FROM
        if print_location(to_location) in message:
            return QueryTripsStatus.UNKNOWN_TO
        raise UnsupportedOperationError(f"Unhandled Navitia error message: {message}")

    async def query_trips(
        self,
        from_location: Location,
        via: Location | None,
        to_location: Location,
        date: datetime,
        departure: bool,
        options: TripOptions,
    ) -> QueryTripsResult:
        if via is not None:
            raise UnsupportedOperationError("Navitia journeys do not support via locations")
        if not from_location.is_identified or not to_location.is_identified:
            raise InvalidArgumentError("Navitia journeys need identified endpoints")

        params = self._journey_params(from_location, to_location, date, departure, options)
        try:
            head = await self._get_json(f"{self._coverage_url}journeys", params)
        except HttpStatusError as e:
            status = self._classify_trip_error(
                self._error_from_status(e), from_location, to_location
            )
            return QueryTripsResult.error(self._header(), status)

        return self._trips_result(head, from_location, to_location)

    async def query_more_trips(self, context: PaginationContext, later: bool) -> QueryTripsResult:
        if not isinstance(context, NavitiaContext):
            raise InvalidArgumentError(f"Not a Navitia context: {type(context).__name__}")
        url = context.query_url(later)
        if not url:
            return QueryTripsResult.error(self._header(), QueryTripsStatus.NO_TRIPS)

        try:
            head = await self._get_json(url)
        except HttpStatusError as e:
            status = self._classify_trip_error(
                self._error_from_status(e), context.from_location, context.to_location
            )
            return QueryTripsResult.error(self._header(), status)

        return self._trips_result(head, context.from_location, context.to_location)
