"""Parser for Navitia departure boards."""

from typing import Any
from zoneinfo import ZoneInfo

from transit_bridge.adapters.json_fields import empty_to_none, require
from transit_bridge.adapters.navitia_api.constants import PlaceType
from transit_bridge.adapters.navitia_api.place_parser import (
    NavitiaPlaceParser,
    parse_date,
    parse_product_from_mode,
)
from transit_bridge.adapters.navitia_api.section_parser import NavitiaSectionParser
from transit_bridge.domain.errors import MalformedResponseError
from transit_bridge.domain.models import (
    Departure,
    Line,
    LineDestination,
    Location,
    StationDepartures,
)


class NavitiaDepartureParser:
    """Groups Navitia departures by the stop point they leave from."""

    def __init__(self, zone: ZoneInfo, section_parser: NavitiaSectionParser) -> None:
        self._zone = zone
        self._section_parser = section_parser

    def parse_line(self, route: Any) -> Line:
        line = require(route, "line")
        network = None
        if isinstance(line.get("network"), dict):
            network = empty_to_none(line["network"].get("name"))
        physical_modes = require(route, "physical_modes")
        if not physical_modes:
            raise MalformedResponseError("Route without physical mode", route)
        product = parse_product_from_mode(require(physical_modes[0], "id"))
        code = str(require(line, "code"))
        return Line(
            id=str(require(line, "id")),
            network=network,
            product=product,
            label=code,
            name=empty_to_none(line.get("name")),
            style=self._section_parser.line_style(
                network,
                product,
                code,
                empty_to_none(line.get("color")),
                empty_to_none(line.get("text_color")),
            ),
        )

    @staticmethod
    def parse_destination(route: Any) -> Location | None:
        direction = route.get("direction")
        if not direction:
            return None
        return NavitiaPlaceParser.parse_location(direction)

    def parse_departure(self, data: Any) -> tuple[Location, Departure]:
        stop_date_time = require(data, "stop_date_time")
        departure_time = parse_date(require(stop_date_time, "departure_date_time"), self._zone)
        base_time = stop_date_time.get("base_departure_date_time")
        is_realtime = bool(base_time) and stop_date_time.get("data_freshness") == "realtime"

        route = require(data, "route")
        line = self.parse_line(route)
        location = NavitiaPlaceParser.parse_place(require(data, "stop_point"), PlaceType.STOP_POINT)
        departure = Departure(
            line=line,
            planned_time=parse_date(base_time, self._zone) if is_realtime else departure_time,
            predicted_time=departure_time if is_realtime else None,
            destination=self.parse_destination(route),
        )
        return location, departure

    def parse_departures(self, head: Any) -> list[StationDepartures]:
        """Build one StationDepartures per stop point, in first-seen order."""
        locations: dict[str, Location] = {}
        departures: dict[str, list[Departure]] = {}
        lines: dict[str, list[LineDestination]] = {}

        for data in require(head, "departures"):
            location, departure = self.parse_departure(data)
            stop_id = location.id or ""
            if stop_id not in locations:
                locations[stop_id] = location
                departures[stop_id] = []
                lines[stop_id] = []
            departures[stop_id].append(departure)
            line_destination = LineDestination(
                line=departure.line, destination=departure.destination
            )
            if line_destination not in lines[stop_id]:
                lines[stop_id].append(line_destination)

        return [
            StationDepartures(
                location=location,
                departures=tuple(departures[stop_id]),
                lines=tuple(lines[stop_id]),
            )
            for stop_id, location in locations.items()
        ]
