"""Location domain model."""

from dataclasses import dataclass
from enum import Enum

from transit_bridge.domain.models.product import Product


class LocationType(Enum):
    """Kind of place a Location describes."""

    STATION = "station"
    POI = "poi"
    ADDRESS = "address"
    ANY = "any"
    COORD = "coord"


@dataclass(frozen=True)
class Point:
    """Geographic coordinate in micro-degrees."""

    lat: int
    lon: int

    @classmethod
    def from_degrees(cls, lat: float, lon: float) -> "Point":
        return cls(lat=round(lat * 1e6), lon=round(lon * 1e6))

    @property
    def lat_degrees(self) -> float:
        return self.lat / 1e6

    @property
    def lon_degrees(self) -> float:
        return self.lon / 1e6

    def __str__(self) -> str:
        return f"{self.lat_degrees:.6f}/{self.lon_degrees:.6f}"


@dataclass(frozen=True)
class Location:
    """A station, address, point of interest or bare coordinate.

    ``id`` is opaque and backend specific. A location used as a trip
    endpoint needs an id, a coordinate or at least a name.
    """

    type: LocationType
    id: str | None = None
    coord: Point | None = None
    place: str | None = None
    name: str | None = None
    products: frozenset[Product] | None = None

    def __post_init__(self) -> None:
        if self.id == "":
            raise ValueError("Location id must not be empty, use None instead")
        if self.type == LocationType.COORD and self.coord is None:
            raise ValueError("Coordinate location needs a coordinate")
        if self.type == LocationType.STATION and self.id is None and self.coord is None:
            raise ValueError("Station location needs an id or a coordinate")
        if self.place is not None and self.name is None:
            raise ValueError("Location with a place needs a name")

    @classmethod
    def coordinate(cls, coord: Point) -> "Location":
        return cls(type=LocationType.COORD, coord=coord)

    @property
    def has_id(self) -> bool:
        return bool(self.id)

    @property
    def has_coord(self) -> bool:
        return self.coord is not None

    @property
    def has_name(self) -> bool:
        return bool(self.name)

    @property
    def is_identified(self) -> bool:
        """Whether a backend can route to this location without a lookup."""
        return self.has_id or self.has_coord

    @property
    def is_valid_endpoint(self) -> bool:
        return self.is_identified or self.has_name

    def unique_short_name(self) -> str:
        if self.name:
            return self.name
        if self.id:
            return self.id
        return str(self.coord)

    def same_place(self, other: "Location") -> bool:
        """Whether both locations point to the same place."""
        if self.type != other.type:
            return False
        if self.id and other.id:
            return self.id == other.id
        if self.coord and other.coord:
            return self.coord == other.coord
        return self.place == other.place and self.name == other.name


_TYPE_ORDER = {location_type: index for index, location_type in enumerate(LocationType)}


@dataclass(frozen=True)
class SuggestedLocation:
    """A location matched by a free-text query together with its rank."""

    location: Location
    priority: int = 0

    def __lt__(self, other: "SuggestedLocation") -> bool:
        # Higher priority first, then by location type.
        return (-self.priority, _TYPE_ORDER[self.location.type]) < (
            -other.priority,
            _TYPE_ORDER[other.location.type],
        )


def rank_by_position(locations: list[Location]) -> list[SuggestedLocation]:
    """Rank locations so that the first one seen has the highest priority."""
    count = len(locations)
    return [
        SuggestedLocation(location=location, priority=count - index)
        for index, location in enumerate(locations)
    ]
