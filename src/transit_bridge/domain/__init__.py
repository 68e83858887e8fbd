"""Domain layer - core transit models and ports."""

from transit_bridge.domain.models import (
    Location,
    Product,
    QueryTripsResult,
    Trip,
)
from transit_bridge.domain.ports import (
    Capability,
    NetworkProvider,
)

__all__ = [
    "Capability",
    "Location",
    "NetworkProvider",
    "Product",
    "QueryTripsResult",
    "Trip",
]
