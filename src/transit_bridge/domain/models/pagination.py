"""Pagination context for trip queries."""

from abc import ABC, abstractmethod


class PaginationContext(ABC):
    """Opaque continuation state returned with trip results.

    Each backend subclasses this with a frozen dataclass holding whatever it
    needs to fetch earlier or later trips. Callers only see whether a
    direction can be queried.
    """

    @abstractmethod
    def can_query_later(self) -> bool: ...

    @abstractmethod
    def can_query_earlier(self) -> bool: ...

    def can_query(self, later: bool) -> bool:
        return self.can_query_later() if later else self.can_query_earlier()
