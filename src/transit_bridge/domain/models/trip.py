"""Trip and leg domain models."""

from collections.abc import Sequence
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum

from transit_bridge.domain.models.line import Line
from transit_bridge.domain.models.location import Location, Point
from transit_bridge.domain.models.stop import Stop


class IndividualType(Enum):
    """How an individual leg is travelled."""

    WALK = "walk"
    BIKE = "bike"
    CAR = "car"
    TRANSFER = "transfer"


@dataclass(frozen=True)
class Individual:
    """A leg the passenger covers on their own (walking, cycling, changing)."""

    type: IndividualType
    departure: Location
    departure_time: datetime
    arrival: Location
    arrival_time: datetime
    path: tuple[Point, ...] = ()
    distance: int = 0

    @property
    def min(self) -> int:
        """Duration in whole minutes."""
        return int((self.arrival_time - self.departure_time).total_seconds() // 60)

    def moved(self, delta: timedelta) -> "Individual":
        return replace(
            self,
            departure_time=self.departure_time + delta,
            arrival_time=self.arrival_time + delta,
        )


@dataclass(frozen=True)
class Public:
    """A ride on a scheduled or on-demand public transport service."""

    line: Line
    departure_stop: Stop
    arrival_stop: Stop
    destination: Location | None = None
    intermediate_stops: tuple[Stop, ...] = ()
    path: tuple[Point, ...] = ()
    message: str | None = None

    @property
    def departure(self) -> Location:
        return self.departure_stop.location

    @property
    def arrival(self) -> Location:
        return self.arrival_stop.location

    @property
    def departure_time(self) -> datetime:
        time = self.departure_stop.departure_time or self.departure_stop.arrival_time
        if time is None:
            raise ValueError("Departure stop has no time")
        return time

    @property
    def arrival_time(self) -> datetime:
        time = self.arrival_stop.arrival_time or self.arrival_stop.departure_time
        if time is None:
            raise ValueError("Arrival stop has no time")
        return time


Leg = Individual | Public


class FareType(Enum):
    ADULT = "adult"
    CHILD = "child"
    YOUTH = "youth"
    STUDENT = "student"
    MILITARY = "military"
    SENIOR = "senior"
    DISABLED = "disabled"
    BIKE = "bike"


@dataclass(frozen=True)
class Fare:
    network: str
    type: FareType
    currency: str
    fare: Decimal
    unit_name: str | None = None
    units: str | None = None


@dataclass(frozen=True)
class Trip:
    """An itinerary from one location to another as an ordered list of legs."""

    from_location: Location
    to_location: Location
    legs: tuple[Leg, ...]
    id: str | None = None
    fares: tuple[Fare, ...] = ()
    capacity: tuple[int, ...] | None = None

    def __post_init__(self) -> None:
        if not self.legs:
            raise ValueError("Trip needs at least one leg")

    def get_id(self) -> str:
        """Backend id if known, otherwise one derived from the legs."""
        if self.id:
            return self.id
        parts = []
        for leg in self.legs:
            if isinstance(leg, Public):
                planned = leg.departure_stop.planned_departure_time or leg.departure_time
                parts.append(
                    f"{leg.departure.id or leg.departure.unique_short_name()}"
                    f"@{planned:%Y%m%dT%H%M}/{leg.line}"
                )
            else:
                parts.append(f"{leg.type.value}:{leg.min}")
        return "|".join(parts)

    @property
    def public_legs(self) -> list[Public]:
        return [leg for leg in self.legs if isinstance(leg, Public)]

    @property
    def num_changes(self) -> int:
        return max(len(self.public_legs) - 1, 0)

    def is_travelable(self) -> bool:
        """Whether each leg starts no earlier than the previous one ends."""
        for previous, current in zip(self.legs, self.legs[1:], strict=False):
            if current.departure_time < previous.arrival_time:
                return False
        return True


def adjust_untravelable_individual_legs(legs: Sequence[Leg]) -> list[Leg]:
    """Shift individual legs that overlap their neighbours.

    A walk after a ride is moved to start when the ride arrives. A leading
    walk that would end after the first ride leaves is moved earlier.
    """
    adjusted = list(legs)
    for index in range(1, len(adjusted)):
        current = adjusted[index]
        if not isinstance(current, Individual):
            continue
        overlap = adjusted[index - 1].arrival_time - current.departure_time
        if overlap > timedelta(0):
            adjusted[index] = current.moved(overlap)

    if len(adjusted) > 1 and isinstance(adjusted[0], Individual):
        overlap = adjusted[0].arrival_time - adjusted[1].departure_time
        if overlap > timedelta(0):
            adjusted[0] = adjusted[0].moved(-overlap)
    return adjusted
