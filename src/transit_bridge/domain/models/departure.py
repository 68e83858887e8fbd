"""Departure domain models."""

from dataclasses import dataclass
from datetime import datetime

from transit_bridge.domain.models.line import Line
from transit_bridge.domain.models.location import Location
from transit_bridge.domain.models.stop import Position


@dataclass(frozen=True)
class Departure:
    """Represents a single departure from a station."""

    line: Line
    planned_time: datetime | None = None
    predicted_time: datetime | None = None
    position: Position | None = None
    destination: Location | None = None
    cancelled: bool = False
    message: str | None = None

    def __post_init__(self) -> None:
        if self.planned_time is None and self.predicted_time is None:
            raise ValueError("Departure needs a planned or a predicted time")

    @property
    def time(self) -> datetime:
        """Predicted time if known, planned otherwise."""
        return self.predicted_time or self.planned_time  # type: ignore[return-value]

    @property
    def delay_seconds(self) -> int | None:
        if self.planned_time and self.predicted_time:
            return int((self.predicted_time - self.planned_time).total_seconds())
        return None


@dataclass(frozen=True)
class LineDestination:
    """A line serving a station together with where it is heading."""

    line: Line
    destination: Location | None = None


@dataclass(frozen=True)
class StationDepartures:
    """Departures of one station, ordered by time."""

    location: Location
    departures: tuple[Departure, ...] = ()
    lines: tuple[LineDestination, ...] | None = None
