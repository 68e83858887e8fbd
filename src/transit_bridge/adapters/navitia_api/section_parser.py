"""Reconstruction of trips from Navitia journey sections."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

from transit_bridge.adapters.json_fields import empty_to_none, require
from transit_bridge.adapters.line_styles import LineStyleResolver
from transit_bridge.adapters.navitia_api.constants import (
    INSTANT_SECTION_TYPES,
    PlaceType,
    SectionType,
)
from transit_bridge.adapters.navitia_api.place_parser import (
    NavitiaPlaceParser,
    parse_date,
    parse_product_from_mode,
)
from transit_bridge.domain.errors import (
    InvalidArgumentError,
    MalformedResponseError,
    UnsupportedModeError,
)
from transit_bridge.domain.models import (
    Individual,
    IndividualType,
    Leg,
    Line,
    Location,
    LocationType,
    Point,
    Product,
    Public,
    Shape,
    Stop,
    Style,
    Trip,
)
from transit_bridge.domain.models.style import derive_foreground_color, parse_color
from transit_bridge.domain.models.trip import adjust_untravelable_individual_legs

logger = logging.getLogger(__name__)

_TRANSFER_MODES = {
    "bike": IndividualType.BIKE,
    "walking": IndividualType.WALK,
}


@dataclass(frozen=True)
class LegInfo:
    """Fields every moving section carries."""

    departure: Location
    departure_time: datetime
    arrival: Location
    arrival_time: datetime
    path: tuple[Point, ...]
    distance: int
    min: int


def parse_disruptions(head: Mapping[str, Any]) -> dict[str, str]:
    """Map disruption ids to their message texts joined by newlines."""
    disruptions: dict[str, str] = {}
    for disruption in head.get("disruptions") or []:
        disruption_id = disruption.get("id") or disruption.get("disruption_id")
        texts = [
            message["text"]
            for message in disruption.get("messages") or []
            if message.get("text")
        ]
        if disruption_id and texts:
            disruptions[disruption_id] = "\n".join(texts)
    return disruptions


class NavitiaSectionParser:
    """Turns journey sections into legs and journeys into trips."""

    def __init__(self, zone: ZoneInfo, style_resolver: LineStyleResolver) -> None:
        self._zone = zone
        self._style_resolver = style_resolver

    def line_style(
        self,
        network: str | None,
        product: Product | None,
        code: str | None,
        color: str | None,
        text_color: str | None = None,
    ) -> Style:
        """Style from the line's own colors, or from the style tables if it has none."""
        if color is None:
            return self._style_resolver.line_style(network, product, code)
        try:
            background = parse_color(f"#{color}")
            foreground = (
                parse_color(f"#{text_color}") if text_color else derive_foreground_color(background)
            )
        except InvalidArgumentError as e:
            raise MalformedResponseError("Invalid line color", color) from e
        return Style(shape=Shape.RECT, background_color=background, foreground_color=foreground)

    @staticmethod
    def _parse_path(coordinates: Any) -> tuple[Point, ...]:
        path = []
        for coordinate in coordinates:
            try:
                lon, lat = float(coordinate[0]), float(coordinate[1])
            except (TypeError, ValueError, IndexError) as e:
                raise MalformedResponseError("Invalid path coordinate", coordinate) from e
            path.append(Point.from_degrees(lat, lon))
        return tuple(path)

    def parse_leg_info(self, section: Mapping[str, Any]) -> LegInfo:
        path: tuple[Point, ...] = ()
        distance = 0
        geojson = section.get("geojson")
        if geojson:
            path = self._parse_path(require(geojson, "coordinates"))
            for prop in geojson.get("properties") or []:
                if "length" in prop:
                    distance = int(prop["length"])
                    break

        try:
            duration_seconds = int(require(section, "duration"))
        except (TypeError, ValueError) as e:
            raise MalformedResponseError("Invalid duration", section.get("duration")) from e

        return LegInfo(
            departure=NavitiaPlaceParser.parse_location(require(section, "from")),
            departure_time=parse_date(require(section, "departure_date_time"), self._zone),
            arrival=NavitiaPlaceParser.parse_location(require(section, "to")),
            arrival_time=parse_date(require(section, "arrival_date_time"), self._zone),
            path=path,
            distance=distance,
            min=duration_seconds // 60,
        )

    def parse_line_from_section(
        self, section: Mapping[str, Any], section_type: SectionType
    ) -> Line:
        line_id = None
        mode_id = None
        for link in section.get("links") or []:
            if link.get("type") == "line":
                line_id = link.get("id")
            elif link.get("type") == "physical_mode":
                mode_id = link.get("id")

        if section_type == SectionType.ON_DEMAND_TRANSPORT:
            product: Product | None = Product.ON_DEMAND
        elif mode_id is not None:
            product = parse_product_from_mode(mode_id)
        else:
            product = None

        display_info = require(section, "display_informations")
        network = empty_to_none(display_info.get("network"))
        code = str(require(display_info, "code"))
        color = empty_to_none(display_info.get("color"))
        text_color = empty_to_none(display_info.get("text_color"))
        return Line(
            id=line_id,
            network=network,
            product=product,
            label=code,
            name=empty_to_none(display_info.get("headsign")),
            style=self.line_style(network, product, code, color, text_color),
        )

    def parse_stop(self, stop_date_time: Mapping[str, Any]) -> Stop:
        location = NavitiaPlaceParser.parse_place(
            require(stop_date_time, "stop_point"), PlaceType.STOP_POINT
        )
        arrival = parse_date(require(stop_date_time, "arrival_date_time"), self._zone)
        departure = parse_date(require(stop_date_time, "departure_date_time"), self._zone)

        # base_* times are the schedule, the plain ones include realtime data
        base_arrival = stop_date_time.get("base_arrival_date_time")
        base_departure = stop_date_time.get("base_departure_date_time")
        return Stop(
            location=location,
            planned_arrival_time=parse_date(base_arrival, self._zone) if base_arrival else arrival,
            predicted_arrival_time=arrival if base_arrival else None,
            planned_departure_time=(
                parse_date(base_departure, self._zone) if base_departure else departure
            ),
            predicted_departure_time=departure if base_departure else None,
        )

    @staticmethod
    def _parse_message(
        display_info: Mapping[str, Any], disruptions: Mapping[str, str]
    ) -> str | None:
        texts = [
            disruptions[link["id"]]
            for link in display_info.get("links") or []
            if link.get("type") == "disruption" and link.get("id") in disruptions
        ]
        return "\n".join(texts) if texts else None

    def _parse_public_leg(
        self,
        section: Mapping[str, Any],
        section_type: SectionType,
        info: LegInfo,
        disruptions: Mapping[str, str],
    ) -> Public:
        line = self.parse_line_from_section(section, section_type)
        display_info = require(section, "display_informations")
        direction = empty_to_none(display_info.get("direction"))
        destination = Location(type=LocationType.ANY, name=direction) if direction else None

        stop_date_times = require(section, "stop_date_times")
        if not stop_date_times:
            raise MalformedResponseError("Public section without stops", section)
        stops = [self.parse_stop(stop_date_time) for stop_date_time in stop_date_times]

        return Public(
            line=line,
            destination=destination,
            departure_stop=stops[0],
            arrival_stop=stops[-1],
            intermediate_stops=tuple(stops[1:-1]),
            path=info.path,
            message=self._parse_message(display_info, disruptions),
        )

    def _parse_leg(
        self, section: Mapping[str, Any], disruptions: Mapping[str, str]
    ) -> Leg | None:
        raw_type = require(section, "type")
        try:
            section_type = SectionType(raw_type)
        except ValueError as e:
            raise MalformedResponseError("Unknown section type", raw_type) from e

        if section_type == SectionType.WAITING or section_type in INSTANT_SECTION_TYPES:
            logger.debug(f"Dropping {section_type.value} section")
            return None

        info = self.parse_leg_info(section)

        if section_type == SectionType.CROW_FLY:
            individual_type = IndividualType.WALK
        elif section_type in (SectionType.PUBLIC_TRANSPORT, SectionType.ON_DEMAND_TRANSPORT):
            return self._parse_public_leg(section, section_type, info, disruptions)
        elif section_type == SectionType.STREET_NETWORK:
            mode = require(section, "mode")
            if mode not in _TRANSFER_MODES:
                raise UnsupportedModeError("Unhandled transfer mode", mode)
            individual_type = _TRANSFER_MODES[mode]
        else:
            individual_type = IndividualType.WALK

        if individual_type == IndividualType.WALK and info.min == 0:
            logger.debug(f"Dropping zero-duration {section_type.value} walk")
            return None

        return Individual(
            type=individual_type,
            departure=info.departure,
            departure_time=info.departure_time,
            arrival=info.arrival,
            arrival_time=info.arrival_time,
            path=info.path,
            distance=info.distance,
        )

    def parse_leg(
        self, section: Mapping[str, Any], disruptions: Mapping[str, str] | None = None
    ) -> Leg | None:
        """Reconstruct one leg, or None for sections that are dropped.

        Any malformed field fails the whole section with its raw form attached.
        """
        try:
            return self._parse_leg(section, disruptions or {})
        except UnsupportedModeError:
            raise
        except MalformedResponseError as e:
            raise MalformedResponseError(f"Malformed section ({e})", section) from e

    def parse_legs(
        self, sections: list[Mapping[str, Any]], disruptions: Mapping[str, str] | None = None
    ) -> list[Leg]:
        legs = []
        for section in sections:
            leg = self.parse_leg(section, disruptions)
            if leg is not None:
                legs.append(leg)
        return adjust_untravelable_individual_legs(legs)

    def parse_journey(
        self,
        journey: Mapping[str, Any],
        from_location: Location,
        to_location: Location,
        disruptions: Mapping[str, str] | None = None,
    ) -> Trip | None:
        """Build a trip, or None if every section was dropped."""
        legs = self.parse_legs(require(journey, "sections"), disruptions)
        if not legs:
            logger.debug("Skipping journey without legs")
            return None
        return Trip(
            id=empty_to_none(journey.get("id")),
            from_location=from_location,
            to_location=to_location,
            legs=tuple(legs),
        )

    def parse_journeys(
        self, head: Mapping[str, Any], from_location: Location, to_location: Location
    ) -> list[Trip]:
        disruptions = parse_disruptions(head)
        trips = []
        for journey in require(head, "journeys"):
            trip = self.parse_journey(journey, from_location, to_location, disruptions)
            if trip is not None:
                trips.append(trip)
        return trips
