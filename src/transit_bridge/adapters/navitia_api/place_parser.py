"""Parsing of Navitia places, coordinates, dates and physical modes."""

from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

from transit_bridge.adapters.json_fields import empty_to_none, require
from transit_bridge.adapters.navitia_api.constants import (
    DATE_FORMAT,
    PHYSICAL_MODE_PREFIX,
    PHYSICAL_MODE_PRODUCTS,
    PlaceType,
)
from transit_bridge.domain.errors import MalformedResponseError
from transit_bridge.domain.models import Location, LocationType, Point, Product

_LOCATION_TYPES = {
    PlaceType.STOP_POINT: LocationType.STATION,
    PlaceType.STOP_AREA: LocationType.STATION,
    PlaceType.ADDRESS: LocationType.ADDRESS,
    PlaceType.POI: LocationType.POI,
}


def parse_coord(coord: Any) -> Point:
    try:
        return Point.from_degrees(float(require(coord, "lat")), float(require(coord, "lon")))
    except (TypeError, ValueError) as e:
        raise MalformedResponseError("Invalid coordinate", coord) from e


def parse_date(value: Any, zone: ZoneInfo) -> datetime:
    try:
        return datetime.strptime(str(value), DATE_FORMAT).replace(tzinfo=zone)
    except ValueError as e:
        raise MalformedResponseError("Invalid date", value) from e


def format_date(value: datetime, zone: ZoneInfo) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(zone)
    return value.strftime(DATE_FORMAT)


def parse_product_from_mode(mode_id: str) -> Product | None:
    """Map a physical mode id such as ``physical_mode:Bus`` to a product."""
    mode = mode_id.removeprefix(PHYSICAL_MODE_PREFIX).lower()
    if mode not in PHYSICAL_MODE_PRODUCTS:
        raise MalformedResponseError("Unknown physical mode", mode_id)
    return PHYSICAL_MODE_PRODUCTS[mode]


def print_location(location: Location) -> str:
    """Format a location the way Navitia expects it in from/to parameters."""
    if location.id:
        return location.id
    if location.coord:
        return f"{location.coord.lon_degrees};{location.coord.lat_degrees}"
    return ""


def address_name(name: str, house_number: str) -> str:
    """Put the house number behind the street name."""
    return f"{name} {house_number}"


class NavitiaPlaceParser:
    """Parses Navitia place objects into locations."""

    @staticmethod
    def _parse_products(stop_area: Any) -> frozenset[Product] | None:
        if not isinstance(stop_area, dict) or "physical_modes" not in stop_area:
            return None
        products = set()
        for mode in stop_area["physical_modes"]:
            product = parse_product_from_mode(require(mode, "id"))
            if product is not None:
                products.add(product)
        return frozenset(products)

    @staticmethod
    def _parse_place_name(data: dict[str, Any]) -> str | None:
        regions = data.get("administrative_regions") or []
        if regions and isinstance(regions[0], dict):
            return empty_to_none(regions[0].get("name"))
        return None

    @classmethod
    def parse_place(cls, data: Any, place_type: PlaceType) -> Location:
        """Parse a stop point, stop area, address or POI object."""
        if place_type == PlaceType.ADMINISTRATIVE_REGION:
            return cls.parse_administrative_region(data)

        location_type = _LOCATION_TYPES[place_type]
        location_id = None
        if place_type not in (PlaceType.ADDRESS, PlaceType.POI):
            location_id = str(require(data, "id"))
        coord = parse_coord(require(data, "coord"))
        name = str(require(data, "name"))

        if place_type == PlaceType.ADDRESS:
            house_number = str(data.get("house_number", "0"))
            if house_number != "0":
                name = address_name(name, house_number)

        products = None
        if "stop_area" in data:
            products = cls._parse_products(data["stop_area"])
        elif place_type == PlaceType.STOP_AREA:
            products = cls._parse_products(data)

        return Location(
            type=location_type,
            id=location_id,
            coord=coord,
            place=cls._parse_place_name(data),
            name=name,
            products=products,
        )

    @staticmethod
    def parse_administrative_region(data: Any) -> Location:
        return Location(
            type=LocationType.POI,
            coord=parse_coord(require(data, "coord")),
            name=str(require(data, "name")),
        )

    @classmethod
    def parse_location(cls, data: Any) -> Location:
        """Parse a place wrapper carrying an ``embedded_type``."""
        embedded_type = require(data, "embedded_type")
        try:
            place_type = PlaceType(embedded_type)
        except ValueError as e:
            raise MalformedResponseError("Unknown place type", data) from e
        return cls.parse_place(require(data, place_type.value), place_type)
