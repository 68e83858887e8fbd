"""Parsing of HAFAS client interface responses.

Every HAFAS result carries a ``common`` block with shared lists (locations,
products, remarks, icons, operators, polylines) that the actual payload
references by index (``locX``, ``prodX``, ``remX`` and so on).
"""

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any
from zoneinfo import ZoneInfo

from transit_bridge.adapters.hafas_api.constants import (
    COORDINATE_SYSTEM,
    DATE_FORMAT,
    LINE_MESSAGE_REMARK_CODE,
    PUBLIC_SECTION_TYPES,
    SERVER_PRODUCT,
    TRANSFER_SECTION_TYPES,
    LocType,
    SectionType,
)
from transit_bridge.adapters.hafas_api.names import (
    NameSplitter,
    split_address,
    split_station_name,
)
from transit_bridge.adapters.hafas_api.polyline import decode_polyline
from transit_bridge.adapters.json_fields import empty_to_none, require, require_index
from transit_bridge.adapters.line_styles import LineStyleResolver
from transit_bridge.domain.errors import InvalidArgumentError, MalformedResponseError
from transit_bridge.domain.location_ids import normalize_station_id, parse_lid
from transit_bridge.domain.models import (
    Departure,
    Fare,
    FareType,
    Individual,
    IndividualType,
    Leg,
    Line,
    Location,
    LocationType,
    Point,
    Position,
    Product,
    ProductCodec,
    Public,
    ResultHeader,
    Shape,
    StationDepartures,
    Stop,
    Style,
    Trip,
)
from transit_bridge.domain.models.style import derive_foreground_color
from transit_bridge.domain.models.trip import adjust_untravelable_individual_legs

logger = logging.getLogger(__name__)

_TIME_PATTERN = re.compile(r"(\d{2})?(\d{2})(\d{2})(\d{2})")
_SHAPES = {"C": Shape.CIRCLE, "R": Shape.RECT}
_FARE_TYPE_KEYWORDS = (
    (("erwachsene", "adult"), FareType.ADULT),
    (("kind", "child", "kids", "ermäßigung"), FareType.CHILD),
    (("schüler", "azubi"), FareType.STUDENT),
    (("fahrrad",), FareType.BIKE),
    (("senior",), FareType.SENIOR),
)


@dataclass(frozen=True)
class Remark:
    code: str | None
    text: str | None


@dataclass(frozen=True)
class HafasCommon:
    """Shared lists of one response, indexed by the payload."""

    locations: list[Any] = field(default_factory=list)
    coordinate_systems: list[Any] = field(default_factory=list)
    remarks: list[Remark] = field(default_factory=list)
    lines: list[Line] = field(default_factory=list)
    polylines: list[str] = field(default_factory=list)


def parse_json_date(value: Any) -> date:
    try:
        return datetime.strptime(str(value), DATE_FORMAT).date()
    except ValueError as e:
        raise MalformedResponseError("Invalid date", value) from e


def parse_json_time(base_date: date, value: str | None, zone: ZoneInfo) -> datetime | None:
    """Resolve ``(dd)?HHMMSS`` against ``base_date``; ``dd`` counts extra days."""
    if value is None:
        return None
    match = _TIME_PATTERN.fullmatch(value)
    if not match:
        raise MalformedResponseError("Invalid time", value)
    days, hours, minutes, seconds = match.groups()
    day = base_date + timedelta(days=int(days) if days else 0)
    try:
        clock = time(int(hours), int(minutes), int(seconds))
    except ValueError as e:
        raise MalformedResponseError("Invalid time", value) from e
    return datetime.combine(day, clock, tzinfo=zone)


def normalize_fare_type(fare_name: str) -> FareType:
    lowered = fare_name.lower()
    for keywords, fare_type in _FARE_TYPE_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return fare_type
    return FareType.ADULT


def parse_remarks(rem_list: list[Any]) -> list[Remark]:
    return [
        Remark(code=remark.get("code"), text=remark.get("txtS") or remark.get("txtN"))
        for remark in rem_list
    ]


def parse_icon_color(color: Mapping[str, Any]) -> int:
    alpha = int(color.get("a", 255))
    red, green, blue = (int(require(color, key)) for key in ("r", "g", "b"))
    if red == -1 and green == -1 and blue == -1:
        return 0
    return (alpha << 24) | (red << 16) | (green << 8) | blue


def parse_icons(ico_list: list[Any]) -> list[Style | None]:
    styles: list[Style | None] = []
    for icon in ico_list:
        if "bg" not in icon:
            styles.append(None)
            continue
        background = parse_icon_color(icon["bg"])
        foreground = (
            parse_icon_color(icon["fg"]) if icon.get("fg") else derive_foreground_color(background)
        )
        shape_code = icon.get("shp")
        if shape_code is not None and shape_code not in _SHAPES:
            raise MalformedResponseError("Unknown icon shape", icon)
        styles.append(
            Style(
                background_color=background,
                foreground_color=foreground,
                shape=_SHAPES.get(shape_code, Shape.ROUNDED),
            )
        )
    return styles


def parse_polylines(poly_list: list[Any]) -> list[str]:
    polylines = []
    for poly in poly_list:
        if not poly.get("delta", False):
            raise MalformedResponseError("Only delta encoded polylines are supported", poly)
        polylines.append(str(require(poly, "crdEncYX")))
    return polylines


def parse_position(
    data: Mapping[str, Any], platform_key: str, structured_key: str
) -> Position | None:
    """Platform from the structured ``*PltfS`` form or the plain ``*PlatfS`` string."""
    structured = data.get(structured_key)
    if isinstance(structured, dict) and structured.get("txt"):
        return Position(name=str(structured["txt"]))
    platform = empty_to_none(data.get(platform_key))
    return Position(name=platform) if platform else None


class HafasParser:
    """Turns HAFAS service results into domain values."""

    def __init__(
        self,
        zone: ZoneInfo,
        product_codec: ProductCodec,
        style_resolver: LineStyleResolver,
        station_splitter: NameSplitter = split_station_name,
        address_splitter: NameSplitter = split_address,
    ) -> None:
        self._zone = zone
        self._codec = product_codec
        self._style_resolver = style_resolver
        self._split_station_name = station_splitter
        self._split_address = address_splitter

    def parse_server_info(
        self, network: str, server_info: Mapping[str, Any], version: str | None
    ) -> ResultHeader:
        if server_info.get("err", "OK") != "OK":
            logger.info(f"ServerInfo error {server_info.get('err')}, ignoring")
            return ResultHeader(
                network=network, server_product=SERVER_PRODUCT, server_version=version
            )
        res = server_info.get("res") or {}
        server_time = None
        if res.get("sD") and res.get("sT"):
            server_time = parse_json_time(parse_json_date(res["sD"]), str(res["sT"]), self._zone)
        return ResultHeader(
            network=network,
            server_product=SERVER_PRODUCT,
            server_version=version,
            server_time=server_time,
        )

    def _decode_products(self, bits: Any) -> frozenset[Product]:
        try:
            return self._codec.decode(int(bits))
        except (InvalidArgumentError, TypeError, ValueError) as e:
            raise MalformedResponseError("Invalid product bits", bits) from e

    def _decode_product(self, bits: Any) -> Product | None:
        try:
            return self._codec.decode_one(int(bits))
        except (InvalidArgumentError, TypeError, ValueError) as e:
            raise MalformedResponseError("Invalid product class", bits) from e

    def _check_coordinate_system(self, data: Mapping[str, Any], common: HafasCommon) -> None:
        index = data.get("crdSysX")
        if index is None:
            return
        crd_sys = require_index(common.coordinate_systems, index, "coordinate system")
        if crd_sys.get("type") != COORDINATE_SYSTEM:
            raise MalformedResponseError("Unknown coordinate system", crd_sys)

    def parse_location(
        self, loc: Mapping[str, Any], common: HafasCommon | None = None
    ) -> Location | None:
        """Location from one ``locL`` entry, or None for untyped entries."""
        loc_type = loc.get("type")
        if loc_type is None:
            return None

        products = None
        if loc_type == LocType.STATION:
            location_type = LocationType.STATION
            location_id = normalize_station_id(str(require(loc, "extId")))
            place, name = self._split_station_name(str(require(loc, "name")))
            if loc.get("pCls") is not None:
                products = self._decode_products(loc["pCls"])
        elif loc_type == LocType.POI:
            location_type = LocationType.POI
            location_id = str(require(loc, "lid"))
            place, name = self._split_station_name(str(require(loc, "name")))
        elif loc_type == LocType.ADDRESS:
            location_type = LocationType.ADDRESS
            location_id = str(require(loc, "lid"))
            place, name = self._split_address(str(require(loc, "name")))
        else:
            raise MalformedResponseError("Unknown location type", loc)

        coord = None
        crd = loc.get("crd")
        if crd:
            self._check_coordinate_system(loc, common or HafasCommon())
            try:
                coord = Point(lat=int(require(crd, "y")), lon=int(require(crd, "x")))
            except (TypeError, ValueError) as e:
                raise MalformedResponseError("Invalid coordinate", crd) from e
        elif location_type != LocationType.STATION:
            # Addresses and POIs also carry their coordinate in the lid
            try:
                coord = parse_lid(location_id or "").coord
            except InvalidArgumentError as e:
                raise MalformedResponseError("Invalid lid coordinate", location_id) from e

        return Location(
            type=location_type,
            id=location_id,
            coord=coord,
            place=place,
            name=name,
            products=products,
        )

    def parse_location_list(
        self, loc_list: list[Any], common: HafasCommon | None = None
    ) -> list[Location]:
        locations = []
        for loc in loc_list:
            location = self.parse_location(loc, common)
            if location is not None:
                locations.append(location)
        return locations

    def resolve_location(self, common: HafasCommon, index: Any) -> Location:
        """Location at ``index``, following station entries to their main station."""
        seen: set[int] = set()
        while True:
            loc = require_index(common.locations, index, "location")
            main_index = loc.get("mMastLocX")
            is_station = loc.get("type") == LocType.STATION
            if is_station and main_index is not None and main_index not in seen:
                seen.add(index)
                index = main_index
                continue
            location = self.parse_location(loc, common)
            if location is None:
                raise MalformedResponseError("Untyped location referenced", loc)
            return location

    def new_line(
        self,
        line_id: str | None,
        operator: str | None,
        product: Product | None,
        name: str | None,
        short_name: str | None,
        number: str | None,
        style: Style | None,
    ) -> Line:
        if name is not None:
            long_name = name + (f" ({number})" if number and not name.endswith(number) else "")
        elif short_name is not None:
            long_name = short_name + (
                f" ({number})" if number and not short_name.endswith(number) else ""
            )
        else:
            long_name = number

        label: str | None
        if product in (Product.BUS, Product.TRAM):
            # Bus and tram labels drop the product prefix
            if short_name is not None:
                label = short_name
            elif number is not None and name is not None and name.endswith(number):
                label = number
            else:
                label = name
        else:
            label = name
        if label is None:
            label = short_name or number or ""

        return Line(
            id=line_id,
            network=operator,
            product=product,
            label=label,
            name=long_name,
            style=style or self._style_resolver.line_style(operator, product, label),
        )

    def parse_lines(
        self, prod_list: list[Any], operators: list[str], styles: list[Style | None]
    ) -> list[Line]:
        lines = []
        for prod in prod_list:
            icon_index = prod.get("icoX")
            style = require_index(styles, icon_index, "icon") if icon_index is not None else None
            operator_index = prod.get("oprX")
            operator = (
                require_index(operators, operator_index, "operator")
                if operator_index is not None
                else None
            )
            product = self._decode_product(prod["cls"]) if prod.get("cls") is not None else None
            context = prod.get("prodCtx") or {}
            lines.append(
                self.new_line(
                    line_id=empty_to_none(context.get("lineId")),
                    operator=operator,
                    product=product,
                    name=empty_to_none(prod.get("name")),
                    short_name=empty_to_none(prod.get("nameS")),
                    number=empty_to_none(prod.get("number")),
                    style=style,
                )
            )
        return lines

    def parse_common(self, res: Mapping[str, Any]) -> HafasCommon:
        common = require(res, "common")
        styles = parse_icons(common.get("icoL") or [])
        operators = [str(require(op, "name")) for op in common.get("opL") or []]
        return HafasCommon(
            locations=common.get("locL") or [],
            coordinate_systems=common.get("crdSysL") or [],
            remarks=parse_remarks(common.get("remL") or []),
            lines=self.parse_lines(common.get("prodL") or [], operators, styles),
            polylines=parse_polylines(common.get("polyL") or []),
        )

    def parse_stop(self, data: Mapping[str, Any], common: HafasCommon, base_date: date) -> Stop:
        def timestamp(key: str) -> datetime | None:
            value = data.get(key)
            return parse_json_time(base_date, str(value), self._zone) if value else None

        return Stop(
            location=self.resolve_location(common, require(data, "locX")),
            planned_arrival_time=timestamp("aTimeS"),
            predicted_arrival_time=timestamp("aTimeR"),
            planned_arrival_position=parse_position(data, "aPlatfS", "aPltfS"),
            predicted_arrival_position=parse_position(data, "aPlatfR", "aPltfR"),
            arrival_cancelled=bool(data.get("aCncl", False)),
            planned_departure_time=timestamp("dTimeS"),
            predicted_departure_time=timestamp("dTimeR"),
            planned_departure_position=parse_position(data, "dPlatfS", "dPltfS"),
            predicted_departure_position=parse_position(data, "dPlatfR", "dPltfR"),
            departure_cancelled=bool(data.get("dCncl", False)),
        )

    @staticmethod
    def parse_message(data: Mapping[str, Any], common: HafasCommon) -> str | None:
        """Line messages referenced by ``remL``, joined by newlines."""
        texts = []
        for reference in data.get("remL") or []:
            remark = require_index(common.remarks, reference.get("remX"), "remark")
            if remark.code == LINE_MESSAGE_REMARK_CODE and remark.text:
                texts.append(remark.text)
        return "\n".join(texts) if texts else None

    def _destination(self, direction: str | None) -> Location | None:
        if not direction:
            return None
        place, name = self._split_station_name(direction)
        return Location(type=LocationType.ANY, place=place, name=name)

    def _parse_path(self, journey: Mapping[str, Any], common: HafasCommon) -> tuple[Point, ...]:
        poly_g = journey.get("polyG")
        if not poly_g:
            return ()
        self._check_coordinate_system(poly_g, common)
        indexes = require(poly_g, "polyXL")
        if len(indexes) > 1:
            raise MalformedResponseError("More than one polyline per journey", poly_g)
        path: list[Point] = []
        for index in indexes:
            path.extend(decode_polyline(require_index(common.polylines, index, "polyline")))
        return tuple(path)

    def _parse_public_leg(
        self,
        section: Mapping[str, Any],
        departure_stop: Stop,
        arrival_stop: Stop,
        common: HafasCommon,
        base_date: date,
    ) -> Public:
        journey = require(section, "jny")
        line = require_index(common.lines, require(journey, "prodX"), "product")

        intermediate_stops: tuple[Stop, ...] = ()
        stop_list = journey.get("stopL")
        if stop_list is not None:
            if len(stop_list) < 2:
                raise MalformedResponseError("Stop list shorter than two stops", stop_list)
            intermediate_stops = tuple(
                self.parse_stop(stop, common, base_date) for stop in stop_list[1:-1]
            )

        return Public(
            line=line,
            destination=self._destination(empty_to_none(journey.get("dirTxt"))),
            departure_stop=departure_stop,
            arrival_stop=arrival_stop,
            intermediate_stops=intermediate_stops,
            path=self._parse_path(journey, common),
            message=self.parse_message(journey, common),
        )

    def _parse_section(
        self, section: Mapping[str, Any], common: HafasCommon, base_date: date
    ) -> Leg | None:
        raw_type = require(section, "type")
        try:
            section_type = SectionType(raw_type)
        except ValueError as e:
            raise MalformedResponseError("Unknown section type", raw_type) from e

        departure_stop = self.parse_stop(require(section, "dep"), common, base_date)
        arrival_stop = self.parse_stop(require(section, "arr"), common, base_date)

        if section_type in PUBLIC_SECTION_TYPES:
            return self._parse_public_leg(section, departure_stop, arrival_stop, common, base_date)

        if section_type == SectionType.WALK:
            individual_type = IndividualType.WALK
            gis = require(section, "gis")
        elif section_type in TRANSFER_SECTION_TYPES:
            individual_type = IndividualType.TRANSFER
            gis = section.get("gis") or {}
        else:
            raise MalformedResponseError("Unhandled section type", raw_type)

        departure_time = departure_stop.departure_time
        arrival_time = arrival_stop.arrival_time
        if departure_time is None or arrival_time is None:
            raise MalformedResponseError("Individual section without times", section)
        leg = Individual(
            type=individual_type,
            departure=departure_stop.location,
            departure_time=departure_time,
            arrival=arrival_stop.location,
            arrival_time=arrival_time,
            distance=int(gis.get("dist", 0)),
        )
        if leg.type == IndividualType.WALK and leg.min == 0:
            logger.debug("Dropping zero-duration walk")
            return None
        return leg

    def parse_section(
        self, section: Mapping[str, Any], common: HafasCommon, base_date: date
    ) -> Leg | None:
        """Reconstruct one leg, failing with the raw section if anything is malformed.

        Walks that take no time are dropped and give None.
        """
        try:
            return self._parse_section(section, common, base_date)
        except MalformedResponseError as e:
            raise MalformedResponseError(f"Malformed section ({e})", section) from e

    def parse_fares(self, connection: Mapping[str, Any]) -> tuple[Fare, ...]:
        tariff = connection.get("trfRes")
        references = connection.get("ovwTrfRefL")
        if not tariff or not references:
            return ()

        fare_sets = require(tariff, "fareSetL")
        fares = []
        for reference in references:
            fare_set = require_index(fare_sets, require(reference, "fareSetX"), "fare set")
            fare_data = require_index(
                require(fare_set, "fareL"), require(reference, "fareX"), "fare"
            )
            fare_name = str(require(fare_data, "name"))
            ref_type = require(reference, "type")
            if ref_type == "T":
                ticket = require_index(
                    require(fare_data, "ticketL"), require(reference, "ticketX"), "ticket"
                )
                ticket_name = str(require(ticket, "name"))
                currency = empty_to_none(ticket.get("cur"))
                if currency is None:
                    continue
                fares.append(
                    Fare(
                        network=f"{fare_name}\n{ticket_name}",
                        type=normalize_fare_type(ticket_name),
                        currency=currency,
                        fare=Decimal(int(require(ticket, "prc"))) / 100,
                    )
                )
            elif ref_type == "F":
                currency = empty_to_none(fare_data.get("cur"))
                if currency is None:
                    continue
                fares.append(
                    Fare(
                        network=fare_name,
                        type=normalize_fare_type(fare_name),
                        currency=currency,
                        fare=Decimal(int(require(fare_data, "prc"))) / 100,
                    )
                )
            else:
                raise MalformedResponseError("Unknown fare reference type", reference)
        return tuple(fares)

    def parse_connection(self, connection: Mapping[str, Any], common: HafasCommon) -> Trip | None:
        """Build a trip from one ``outConL`` entry, or None if it has no sections."""
        base_date = parse_json_date(require(connection, "date"))
        sections = (
            self.parse_section(section, common, base_date)
            for section in connection.get("secL") or []
        )
        legs = [leg for leg in sections if leg is not None]
        if not legs:
            logger.debug("Skipping connection without legs")
            return None
        departure = require(connection, "dep")
        arrival = require(connection, "arr")
        return Trip(
            id=empty_to_none(connection.get("cid")),
            from_location=self.resolve_location(common, require(departure, "locX")),
            to_location=self.resolve_location(common, require(arrival, "locX")),
            legs=tuple(adjust_untravelable_individual_legs(legs)),
            fares=self.parse_fares(connection),
        )

    def parse_trips(self, res: Mapping[str, Any]) -> list[Trip]:
        common = self.parse_common(res)
        trips = []
        for connection in res.get("outConL") or []:
            trip = self.parse_connection(connection, common)
            if trip is not None:
                trips.append(trip)
        return trips

    def parse_departures(
        self, res: Mapping[str, Any], station_id: str, equivs: bool
    ) -> list[StationDepartures]:
        """Group StationBoard journeys per departure station, each sorted by time."""
        common = self.parse_common(res)
        wanted_id = normalize_station_id(station_id)
        locations: dict[str, Location] = {}
        departures: dict[str, list[Departure]] = {}

        for journey in res.get("jnyL") or []:
            board_stop = require(journey, "stbStop")
            base_date = parse_json_date(require(journey, "date"))

            product_index = board_stop.get("dProdX")
            if product_index is None:
                logger.debug("Skipping departure without product")
                continue
            line = require_index(common.lines, product_index, "product")

            location = self.parse_location(
                require_index(common.locations, require(board_stop, "locX"), "location"), common
            )
            if location is None or location.type != LocationType.STATION:
                raise MalformedResponseError("Departure not from a station", board_stop)
            if not equivs and location.id != wanted_id:
                continue

            direction = str(require(journey, "dirTxt"))
            departure = Departure(
                line=line,
                planned_time=parse_json_time(
                    base_date, str(require(board_stop, "dTimeS")), self._zone
                ),
                predicted_time=parse_json_time(
                    base_date, empty_to_none(board_stop.get("dTimeR")), self._zone
                ),
                position=parse_position(board_stop, "dPlatfS", "dPltfS"),
                destination=self._departure_destination(journey, direction, common),
                cancelled=bool(board_stop.get("dCncl", False)),
                message=self.parse_message(journey, common),
            )

            key = location.id or ""
            if key not in locations:
                locations[key] = location
                departures[key] = []
            departures[key].append(departure)

        return [
            StationDepartures(
                location=location,
                departures=tuple(sorted(departures[key], key=lambda d: d.time)),
            )
            for key, location in locations.items()
        ]

    def _departure_destination(
        self, journey: Mapping[str, Any], direction: str, common: HafasCommon
    ) -> Location | None:
        # The last stop is the destination if its name matches the direction text
        stop_list = journey.get("stopL")
        if stop_list:
            last_index = require(stop_list[-1], "locX")
            last_loc = require_index(common.locations, last_index, "location")
            if last_loc.get("name") == direction:
                return self.resolve_location(common, last_index)
        return self._destination(direction)
