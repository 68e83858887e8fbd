"""Backend error code tables."""

import logging
from collections.abc import Mapping
from enum import Enum
from types import MappingProxyType
from typing import Generic, TypeVar

from transit_bridge.domain.errors import UnsupportedOperationError
from transit_bridge.domain.models import ErrorDetails

logger = logging.getLogger(__name__)

StatusT = TypeVar("StatusT", bound=Enum)


class ErrorCodeTable(Generic[StatusT]):
    """Immutable mapping from a backend's error codes to result statuses.

    Keys are either a bare code or a ``(code, text)`` pair for backends
    that reuse one code for several conditions. Pairs are matched first.
    Codes missing from the table raise UnsupportedOperationError.
    """

    def __init__(self, name: str, entries: Mapping[str | tuple[str, str], StatusT]) -> None:
        self._name = name
        self._entries: Mapping[str | tuple[str, str], StatusT] = MappingProxyType(dict(entries))

    @classmethod
    def of(
        cls, name: str, *groups: tuple[tuple[str | tuple[str, str], ...], StatusT]
    ) -> "ErrorCodeTable[StatusT]":
        """Build a table from ``(codes, status)`` groups."""
        entries: dict[str | tuple[str, str], StatusT] = {}
        for codes, status in groups:
            for code in codes:
                entries[code] = status
        return cls(name, entries)

    def __contains__(self, code: object) -> bool:
        return code in self._entries

    def lookup(self, error: ErrorDetails) -> StatusT | None:
        if error.message is not None:
            status = self._entries.get((error.code, error.message))
            if status is not None:
                return status
        return self._entries.get(error.code)

    def classify(self, error: ErrorDetails) -> StatusT:
        status = self.lookup(error)
        if status is None:
            raise UnsupportedOperationError(f"Unhandled {self._name} error: {error.describe()}")
        logger.warning(f"{self._name} error {error.describe()} mapped to {status.name}")
        return status
