"""Location identifier encodings.

HAFAS-family backends identify addresses and points of interest with a
"lid", a string of ``KEY=value@`` tuples such as
``A=2@O=Marienplatz 1@X=11575440@Y=48137350@``. Known keys are ``A``
(location type code), ``O`` (name), ``X``/``Y`` (longitude/latitude in
micro-degrees) and ``L`` (numeric id).
"""

from dataclasses import dataclass

from transit_bridge.domain.errors import InvalidArgumentError
from transit_bridge.domain.models.location import Location, LocationType, Point

_TYPE_CODES = {
    "1": LocationType.STATION,
    "2": LocationType.ADDRESS,
    "4": LocationType.POI,
}
_CODES_BY_TYPE = {location_type: code for code, location_type in _TYPE_CODES.items()}


def normalize_station_id(station_id: str | None) -> str | None:
    """Strip leading zeros from an all-digit station id.

    ``"0012345"`` and ``"12345"`` name the same station. Non-numeric ids are
    returned unchanged, an empty id becomes ``None``.
    """
    if not station_id:
        return None
    if station_id.isdigit():
        stripped = station_id.lstrip("0")
        return stripped or "0"
    return station_id


@dataclass(frozen=True)
class LocationId:
    """Decoded lid. Every field is optional."""

    type_code: str | None = None
    name: str | None = None
    lon: int | None = None
    lat: int | None = None
    id: str | None = None

    @property
    def location_type(self) -> LocationType:
        if self.type_code is None:
            return LocationType.ANY
        return _TYPE_CODES.get(self.type_code, LocationType.ANY)

    @property
    def coord(self) -> Point | None:
        if self.lat is None or self.lon is None:
            return None
        return Point(lat=self.lat, lon=self.lon)


def _parse_micro_degrees(key: str, value: str) -> int:
    try:
        return int(value)
    except ValueError as e:
        raise InvalidArgumentError(f"Invalid {key} coordinate in lid: {value!r}") from e


def parse_lid(lid: str) -> LocationId:
    """Decode a lid, tolerating missing keys and stray separators."""
    fields: dict[str, str] = {}
    for part in lid.split("@"):
        if not part or "=" not in part:
            continue
        key, value = part.split("=", 1)
        fields[key] = value

    return LocationId(
        type_code=fields.get("A") or None,
        name=fields.get("O") or None,
        lon=_parse_micro_degrees("X", fields["X"]) if fields.get("X") else None,
        lat=_parse_micro_degrees("Y", fields["Y"]) if fields.get("Y") else None,
        id=normalize_station_id(fields.get("L")),
    )


def format_lid(location: Location) -> str:
    """Encode the fields a location has into a lid."""
    parts = []
    code = _CODES_BY_TYPE.get(location.type)
    if code:
        parts.append(f"A={code}")
    if location.name:
        parts.append(f"O={location.name}")
    if location.coord:
        parts.append(f"X={location.coord.lon}")
        parts.append(f"Y={location.coord.lat}")
    if location.id and location.type == LocationType.STATION:
        parts.append(f"L={normalize_station_id(location.id)}")
    return "".join(f"{part}@" for part in parts)

