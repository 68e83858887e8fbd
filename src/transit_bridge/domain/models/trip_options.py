"""Trip query options."""

from dataclasses import dataclass
from enum import Enum

from transit_bridge.domain.models.product import Product


class WalkSpeed(Enum):
    SLOW = "slow"
    NORMAL = "normal"
    FAST = "fast"


class TripFlag(Enum):
    BIKE = "bike"


@dataclass(frozen=True)
class TripOptions:
    """Options bundle for a trip query.

    ``products`` of ``None`` means every product is acceptable.
    """

    products: frozenset[Product] | None = None
    walk_speed: WalkSpeed = WalkSpeed.NORMAL
    flags: frozenset[TripFlag] = frozenset()

    @property
    def requested_products(self) -> frozenset[Product]:
        return self.products if self.products is not None else Product.all()

    @property
    def forbidden_products(self) -> frozenset[Product]:
        """Products the backend must not use, the complement of the requested set."""
        return Product.all() - self.requested_products

    @property
    def bike(self) -> bool:
        return TripFlag.BIKE in self.flags
