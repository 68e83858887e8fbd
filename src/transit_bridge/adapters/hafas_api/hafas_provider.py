"""Network provider for HAFAS client interface ("mgate") backends.

Every call is one POST of a JSON envelope holding a ServerInfo request and
the actual service request. Errors come back in-band per service request.
"""

import hashlib
import json
import logging
from collections.abc import Mapping, Set
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any
from zoneinfo import ZoneInfo

from transit_bridge.adapters.error_mapping import ErrorCodeTable
from transit_bridge.adapters.hafas_api.constants import (
    DATE_FORMAT,
    DEFAULT_MAX_DEPARTURES,
    DEFAULT_MAX_DISTANCE,
    DEFAULT_MAX_LOCATIONS,
    EQUIV_WORKAROUND_FACTOR,
    LANGUAGE,
    LAST_VERSION_WITH_EQUIV_FILTER,
    POLYLINE_ENCODING,
    SERVER_PRODUCT,
    TIME_FORMAT,
    LocType,
)
from transit_bridge.adapters.hafas_api.hafas_context import HafasContext
from transit_bridge.adapters.hafas_api.hafas_parser import HafasParser
from transit_bridge.adapters.hafas_api.names import (
    NameSplitter,
    split_address,
    split_station_name,
)
from transit_bridge.adapters.json_fields import require
from transit_bridge.adapters.line_styles import LineStyleResolver
from transit_bridge.domain.errors import (
    InvalidArgumentError,
    MalformedResponseError,
    ServiceDownError,
)
from transit_bridge.domain.location_ids import format_lid, normalize_station_id
from transit_bridge.domain.models import (
    ErrorDetails,
    Location,
    LocationType,
    NearbyLocationsResult,
    NearbyLocationsStatus,
    PaginationContext,
    Product,
    ProductCodec,
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

_SERVICE_DOWN_CODES: tuple[str | tuple[str, str], ...] = (
    "H887",
    "H9240",
    "CGI_READ_FAILED",
    "CGI_NO_SERVER",
    "H_UNKNOWN",
    ("FAIL", "HCI Service: request failed"),
    ("PROBLEMS", "HCI Service: problems during service execution"),
)
_LOCATION_INVALID = ("LOCATION", "HCI Service: location missing or invalid")

NEARBY_ERRORS = ErrorCodeTable.of(
    "HAFAS LocGeoPos",
    (_SERVICE_DOWN_CODES, NearbyLocationsStatus.SERVICE_DOWN),
)
DEPARTURES_ERRORS = ErrorCodeTable.of(
    "HAFAS StationBoard",
    ((_LOCATION_INVALID,), QueryDeparturesStatus.INVALID_STATION),
    (_SERVICE_DOWN_CODES, QueryDeparturesStatus.SERVICE_DOWN),
)
SUGGEST_ERRORS = ErrorCodeTable.of(
    "HAFAS LocMatch",
    (_SERVICE_DOWN_CODES, SuggestLocationsStatus.SERVICE_DOWN),
)
TRIPS_ERRORS = ErrorCodeTable.of(
    "HAFAS TripSearch",
    (("H890", "H891", "H892", "H886"), QueryTripsStatus.NO_TRIPS),
    (("H895", "H9380"), QueryTripsStatus.TOO_CLOSE),
    (("H9220",), QueryTripsStatus.UNRESOLVABLE_ADDRESS),
    (("H9360",), QueryTripsStatus.INVALID_DATE),
    ((_LOCATION_INVALID,), QueryTripsStatus.UNKNOWN_LOCATION),
    (_SERVICE_DOWN_CODES, QueryTripsStatus.SERVICE_DOWN),
)

_FOOT_SPEED_META = "foot_speed_{}"


def parse_version(version: str) -> tuple[int, ...]:
    try:
        return tuple(int(part) for part in version.split("."))
    except ValueError as e:
        raise InvalidArgumentError(f"Invalid HAFAS version: {version!r}") from e


_LID_TYPES = {LocationType.ADDRESS: LocType.ADDRESS, LocationType.POI: LocType.POI}


def json_location(location: Location) -> dict[str, Any]:
    """Request form of an identified location."""
    if location.type == LocationType.STATION and location.id:
        return {"type": LocType.STATION.value, "extId": location.id}
    if location.type in _LID_TYPES:
        lid_type = _LID_TYPES[location.type].value
        if location.id:
            return {"type": lid_type, "lid": location.id}
        # Named coordinates are sent as a lid built from their fields
        if location.name and location.coord is not None:
            return {"type": lid_type, "lid": format_lid(location)}
    if location.coord is not None:
        return {
            "type": LocType.COORD.value,
            "crd": {"x": location.coord.lon, "y": location.coord.lat},
        }
    raise InvalidArgumentError(f"Cannot send location to HAFAS: {location}")


def location_match_type(types: Set[LocationType] | None) -> str:
    wanted = {LocationType.STATION, LocationType.ADDRESS, LocationType.POI}
    if types is None or LocationType.ANY in types or wanted <= set(types):
        return "ALL"
    return "".join(
        code
        for location_type, code in (
            (LocationType.STATION, "S"),
            (LocationType.ADDRESS, "A"),
            (LocationType.POI, "P"),
        )
        if location_type in types
    )


@dataclass(frozen=True)
class HafasResponse:
    """Outcome of one service request: its header and either a result or an error."""

    header: ResultHeader
    res: Mapping[str, Any]
    error: ErrorDetails | None = None


class HafasProvider:
    """Talks to one HAFAS client interface endpoint."""

    capabilities: Set[Capability] = frozenset(
        {
            Capability.SUGGEST_LOCATIONS,
            Capability.NEARBY_LOCATIONS,
            Capability.DEPARTURES,
            Capability.TRIPS,
            Capability.TRIPS_VIA,
        }
    )

    def __init__(
        self,
        http_client: "TransitHttpClient",
        *,
        network: str,
        zone: ZoneInfo,
        api_base: str,
        product_codec: ProductCodec,
        endpoint: str = "mgate.exe",
        version: str = "1.44",
        client: Mapping[str, Any] | None = None,
        auth: Mapping[str, Any] | None = None,
        ext: str | None = None,
        checksum_salt: bytes | None = None,
        mic_mac_salt: bytes | None = None,
        style_resolver: LineStyleResolver | None = None,
        station_splitter: NameSplitter = split_station_name,
        address_splitter: NameSplitter = split_address,
    ) -> None:
        """Initialize with the HTTP client and read-only endpoint settings."""
        self.network = network
        self._http_client = http_client
        self._url = f"{api_base.rstrip('/')}/{endpoint}"
        self._zone = zone
        self._codec = product_codec
        self._version = version
        self._can_filter_equivs = parse_version(version) <= LAST_VERSION_WITH_EQUIV_FILTER
        self._client = dict(client or {})
        self._auth = dict(auth) if auth else None
        self._ext = ext
        self._checksum_salt = checksum_salt
        self._mic_mac_salt = mic_mac_salt
        self._style_resolver = style_resolver or LineStyleResolver()
        self._parser = HafasParser(
            zone, product_codec, self._style_resolver, station_splitter, address_splitter
        )

    def _header(self) -> ResultHeader:
        return ResultHeader(
            network=self.network, server_product=SERVER_PRODUCT, server_version=self._version
        )

    def _local(self, value: datetime) -> datetime:
        """Wall clock time in the backend zone; naive values are taken as such."""
        return value.astimezone(self._zone) if value.tzinfo is not None else value

    def line_style(self, network: str | None, product: Product | None, label: str | None) -> Style:
        return self._style_resolver.line_style(network, product, label)

    def wrap_request(self, method: str, request: Mapping[str, Any]) -> str:
        envelope: dict[str, Any] = {}
        if self._auth is not None:
            envelope["auth"] = self._auth
        envelope["client"] = self._client
        if self._ext is not None:
            envelope["ext"] = self._ext
        envelope["ver"] = self._version
        envelope["lang"] = LANGUAGE
        envelope["svcReqL"] = [
            {
                "meth": "ServerInfo",
                "req": {"getServerDateTime": True, "getTimeTablePeriod": False},
            },
            {"meth": method, "cfg": {"polyEnc": POLYLINE_ENCODING}, "req": request},
        ]
        envelope["formatted"] = False
        return json.dumps(envelope, separators=(",", ":"), ensure_ascii=False)

    def request_params(self, body: str) -> list[tuple[str, str]]:
        """Signature query parameters for a request body."""
        params = []
        encoded = body.encode("utf-8")
        if self._checksum_salt is not None:
            checksum = hashlib.md5(encoded + self._checksum_salt).hexdigest()
            params.append(("checksum", checksum))
        if self._mic_mac_salt is not None:
            mic = hashlib.md5(encoded).hexdigest()
            mac = hashlib.md5(mic.encode("utf-8") + self._mic_mac_salt).hexdigest()
            params += [("mic", mic), ("mac", mac)]
        return params

    async def _call(self, method: str, request: Mapping[str, Any]) -> HafasResponse:
        body = self.wrap_request(method, request)
        page = await self._http_client.post_text(self._url, body, params=self.request_params(body))
        try:
            head = json.loads(page)
        except ValueError as e:
            raise ServiceDownError(f"Unparseable HAFAS response: {page[:200]!r}") from e

        head_error = head.get("err") if isinstance(head, dict) else None
        if head_error is not None and head_error != "OK":
            raise ServiceDownError(f"HAFAS error {head_error} {head.get('errTxt', '')}".strip())

        svc_res_list = require(head, "svcResL")
        if len(svc_res_list) != 2:
            raise MalformedResponseError("Expected two service results", svc_res_list)
        server_info, svc_res = svc_res_list
        if require(server_info, "meth") != "ServerInfo" or require(svc_res, "meth") != method:
            raise MalformedResponseError(f"Unexpected service results for {method}", svc_res_list)

        header = self._parser.parse_server_info(self.network, server_info, head.get("ver"))
        err = require(svc_res, "err")
        if err != "OK":
            error = ErrorDetails(code=str(err), message=svc_res.get("errTxt"))
            logger.debug(f"HAFAS {method} error: {error.describe()}")
            return HafasResponse(header=header, res={}, error=error)
        return HafasResponse(header=header, res=require(svc_res, "res"))

    async def query_nearby_locations(
        self,
        types: Set[LocationType],
        location: Location,
        max_distance: int = 0,
        max_locations: int = 0,
    ) -> NearbyLocationsResult:
        if location.coord is None:
            raise InvalidArgumentError(f"HAFAS nearby query needs a coordinate: {location}")

        request = {
            "ring": {
                "cCrd": {"x": location.coord.lon, "y": location.coord.lat},
                "maxDist": max_distance or DEFAULT_MAX_DISTANCE,
            },
            "getStops": LocationType.STATION in types,
            "getPOIs": LocationType.POI in types,
            "maxLoc": max_locations or DEFAULT_MAX_LOCATIONS,
        }
        response = await self._call("LocGeoPos", request)
        if response.error is not None:
            status = NEARBY_ERRORS.classify(response.error)
            return NearbyLocationsResult(header=response.header, status=status)

        common = self._parser.parse_common(response.res)
        locations = self._parser.parse_location_list(response.res.get("locL") or [], common)
        return NearbyLocationsResult(
            header=response.header,
            status=NearbyLocationsStatus.OK,
            locations=tuple(location for location in locations if location.type in types),
        )

    async def query_departures(
        self,
        station_id: str,
        time: datetime | None = None,
        max_departures: int = 0,
        equivs: bool = False,
    ) -> QueryDeparturesResult:
        normalized_id = normalize_station_id(station_id)
        if normalized_id is None:
            raise InvalidArgumentError("Station id must not be empty")

        max_journeys = max_departures or DEFAULT_MAX_DEPARTURES
        if not equivs and not self._can_filter_equivs:
            max_journeys *= EQUIV_WORKAROUND_FACTOR
            logger.info(
                f"Equivalent station filter unavailable in {self._version}, "
                f"querying {max_journeys} departures"
            )

        when = self._local(time or datetime.now(self._zone))
        request: dict[str, Any] = {
            "type": "DEP",
            "date": when.strftime(DATE_FORMAT),
            "time": when.strftime(TIME_FORMAT),
            "stbLoc": {"type": LocType.STATION.value, "state": "F", "extId": normalized_id},
        }
        if self._can_filter_equivs:
            request["stbFltrEquiv"] = not equivs
        request["maxJny"] = max_journeys

        response = await self._call("StationBoard", request)
        if response.error is not None:
            status = DEPARTURES_ERRORS.classify(response.error)
            return QueryDeparturesResult(header=response.header, status=status)

        return QueryDeparturesResult(
            header=response.header,
            status=QueryDeparturesStatus.OK,
            station_departures=tuple(
                self._parser.parse_departures(response.res, normalized_id, equivs)
            ),
        )

    async def suggest_locations(
        self,
        text: str,
        types: Set[LocationType] | None = None,
        max_locations: int = 0,
    ) -> SuggestLocationsResult:
        request = {
            "input": {
                "field": "S",
                "loc": {"name": f"{text}?", "type": location_match_type(types)},
                "maxLoc": max_locations or DEFAULT_MAX_LOCATIONS,
            }
        }
        response = await self._call("LocMatch", request)
        if response.error is not None:
            status = SUGGEST_ERRORS.classify(response.error)
            return SuggestLocationsResult(header=response.header, status=status)

        common = self._parser.parse_common(response.res)
        match = require(response.res, "match")
        locations = self._parser.parse_location_list(match.get("locL") or [], common)
        suggestions = tuple(rank_by_position(locations))
        return SuggestLocationsResult(
            header=response.header,
            status=SuggestLocationsStatus.OK,
            suggested_locations=suggestions,
        )

    def _trip_search_request(
        self,
        from_location: Location,
        via: Location | None,
        to_location: Location,
        date: datetime,
        departure: bool,
        options: TripOptions,
        scroll_token: str | None = None,
    ) -> dict[str, Any]:
        when = self._local(date)
        request: dict[str, Any] = {}
        if scroll_token is not None:
            request["ctxScr"] = scroll_token
        request["depLocL"] = [json_location(from_location)]
        request["arrLocL"] = [json_location(to_location)]
        if via is not None:
            request["viaLocL"] = [{"loc": json_location(via)}]
        request["outDate"] = when.strftime(DATE_FORMAT)
        request["outTime"] = when.strftime(TIME_FORMAT)
        request["outFrwd"] = departure
        if options.products is not None:
            request["jnyFltrL"] = [
                {"value": self._codec.encode(options.products), "mode": "BIT", "type": "PROD"}
            ]
        request["gisFltrL"] = [
            {
                "mode": "FB",
                "profile": {"type": "F", "linDistRouting": False, "maxdist": 2000},
                "type": "M",
                "meta": _FOOT_SPEED_META.format(options.walk_speed.value),
            }
        ]
        request.update(
            {
                "getPolyline": True,
                "getPasslist": True,
                "getConGroups": False,
                "getIST": False,
                "getEco": False,
                "extChgTime": -1,
            }
        )
        return request

    async def _trip_search(
        self, context: HafasContext, scroll_token: str | None
    ) -> QueryTripsResult:
        request = self._trip_search_request(
            context.from_location,
            context.via,
            context.to_location,
            context.date,
            context.departure,
            context.options,
            scroll_token,
        )
        response = await self._call("TripSearch", request)
        if response.error is not None:
            status = TRIPS_ERRORS.classify(response.error)
            return QueryTripsResult.error(response.header, status)

        trips = self._parser.parse_trips(response.res)
        next_context = HafasContext(
            from_location=context.from_location,
            via=context.via,
            to_location=context.to_location,
            date=context.date,
            departure=context.departure,
            options=context.options,
            later_context=response.res.get("outCtxScrF") or None,
            earlier_context=response.res.get("outCtxScrB") or None,
        )
        return QueryTripsResult.ok(response.header, trips, next_context)

    async def query_trips(
        self,
        from_location: Location,
        via: Location | None,
        to_location: Location,
        date: datetime,
        departure: bool,
        options: TripOptions,
    ) -> QueryTripsResult:
        context = HafasContext(
            from_location=from_location,
            via=via,
            to_location=to_location,
            date=date,
            departure=departure,
            options=options,
        )
        return await self._trip_search(context, None)

    async def query_more_trips(self, context: PaginationContext, later: bool) -> QueryTripsResult:
        if not isinstance(context, HafasContext):
            raise InvalidArgumentError(f"Not a HAFAS context: {type(context).__name__}")
        scroll_token = context.scroll_token(later)
        if scroll_token is None:
            return QueryTripsResult.error(self._header(), QueryTripsStatus.NO_TRIPS)
        return await self._trip_search(context, scroll_token)
