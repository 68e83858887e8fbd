"""Endpoint resolution domain model."""

from dataclasses import dataclass
from enum import Enum

from transit_bridge.domain.models.location import Location


class ResolutionStatus(Enum):
    RESOLVED = "resolved"
    UNKNOWN = "unknown"
    AMBIGUOUS = "ambiguous"


@dataclass(frozen=True)
class EndpointResolution:
    """Outcome of turning a possibly name-only location into a routable one."""

    status: ResolutionStatus
    location: Location | None = None
    candidates: tuple[Location, ...] = ()

    @classmethod
    def resolved(cls, location: Location) -> "EndpointResolution":
        return cls(status=ResolutionStatus.RESOLVED, location=location)

    @classmethod
    def unknown(cls) -> "EndpointResolution":
        return cls(status=ResolutionStatus.UNKNOWN)

    @classmethod
    def ambiguous(cls, candidates: list[Location]) -> "EndpointResolution":
        return cls(status=ResolutionStatus.AMBIGUOUS, candidates=tuple(candidates))
