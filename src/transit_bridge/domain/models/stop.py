"""Stop domain model."""

from dataclasses import dataclass
from datetime import datetime

from transit_bridge.domain.models.location import Location


@dataclass(frozen=True)
class Position:
    """Platform or track, optionally with a section (e.g. "A-C")."""

    name: str
    section: str | None = None

    def __str__(self) -> str:
        return f"{self.name} {self.section}" if self.section else self.name


@dataclass(frozen=True)
class Stop:
    """A location served by a public leg, with planned and predicted times."""

    location: Location
    planned_arrival_time: datetime | None = None
    predicted_arrival_time: datetime | None = None
    planned_arrival_position: Position | None = None
    predicted_arrival_position: Position | None = None
    arrival_cancelled: bool = False
    planned_departure_time: datetime | None = None
    predicted_departure_time: datetime | None = None
    planned_departure_position: Position | None = None
    predicted_departure_position: Position | None = None
    departure_cancelled: bool = False

    @property
    def arrival_time(self) -> datetime | None:
        """Predicted arrival if known, planned otherwise."""
        return self.predicted_arrival_time or self.planned_arrival_time

    @property
    def departure_time(self) -> datetime | None:
        """Predicted departure if known, planned otherwise."""
        return self.predicted_departure_time or self.planned_departure_time

    @property
    def arrival_position(self) -> Position | None:
        return self.predicted_arrival_position or self.planned_arrival_position

    @property
    def departure_position(self) -> Position | None:
        return self.predicted_departure_position or self.planned_departure_position

    @property
    def departure_delay_seconds(self) -> int | None:
        if self.planned_departure_time and self.predicted_departure_time:
            delta = self.predicted_departure_time - self.planned_departure_time
            return int(delta.total_seconds())
        return None
