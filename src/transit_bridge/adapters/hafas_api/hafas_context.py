"""HAFAS pagination context."""

from dataclasses import dataclass
from datetime import datetime

from transit_bridge.domain.models import Location, PaginationContext, TripOptions


@dataclass(frozen=True)
class HafasContext(PaginationContext):
    """Repeats the original TripSearch with one of the scroll tokens HAFAS returned."""

    from_location: Location
    via: Location | None
    to_location: Location
    date: datetime
    departure: bool
    options: TripOptions
    later_context: str | None = None
    earlier_context: str | None = None

    def can_query_later(self) -> bool:
        return self.later_context is not None

    def can_query_earlier(self) -> bool:
        return self.earlier_context is not None

    def scroll_token(self, later: bool) -> str | None:
        return self.later_context if later else self.earlier_context
