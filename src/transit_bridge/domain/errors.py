"""Error taxonomy shared by all backends.

Expected outcomes (unknown station, no trips, ambiguous endpoints) are
reported as result statuses. The exceptions below are reserved for
failures a caller cannot treat as a normal answer.
"""


class TransitError(Exception):
    """Base class for all errors raised by transit_bridge."""


class ServiceDownError(TransitError):
    """The backend could not be reached or returned an unusable envelope."""


class HttpStatusError(TransitError):
    """The backend answered with a non-success HTTP status."""

    def __init__(self, status: int, url: str, body: str) -> None:
        super().__init__(f"HTTP {status} for {url}")
        self.status = status
        self.url = url
        self.body = body


class MalformedResponseError(TransitError):
    """The backend returned data the parser cannot make sense of.

    The offending raw fragment is kept for diagnosis.
    """

    def __init__(self, message: str, fragment: object = None) -> None:
        super().__init__(f"{message}: {fragment!r}" if fragment is not None else message)
        self.fragment = fragment


class UnsupportedModeError(MalformedResponseError):
    """A section carries a transfer mode the reconstructor does not know."""


class UnsupportedOperationError(TransitError):
    """The backend does not offer a capability or sent an unmapped error code."""


class InvalidArgumentError(TransitError, ValueError):
    """Caller input or codec input is out of range."""


class AmbiguousProductError(InvalidArgumentError):
    """A bit pattern implies more than one product where one was expected."""
