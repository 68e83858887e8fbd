"""Navitia pagination context."""

from dataclasses import dataclass

from transit_bridge.domain.models import Location, PaginationContext


@dataclass(frozen=True)
class NavitiaContext(PaginationContext):
    """Holds the prev/next journey URLs Navitia links from each result."""

    from_location: Location
    to_location: Location
    prev_query_url: str | None = None
    next_query_url: str | None = None

    def can_query_later(self) -> bool:
        return bool(self.next_query_url)

    def can_query_earlier(self) -> bool:
        return bool(self.prev_query_url)

    def query_url(self, later: bool) -> str | None:
        return self.next_query_url if later else self.prev_query_url
