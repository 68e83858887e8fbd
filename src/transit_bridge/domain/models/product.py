"""Product domain model and bitmask codec."""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum

from transit_bridge.domain.errors import AmbiguousProductError, InvalidArgumentError


class Product(Enum):
    """Transport mode category."""

    HIGH_SPEED_TRAIN = "I"
    REGIONAL_TRAIN = "R"
    SUBURBAN_TRAIN = "S"
    SUBWAY = "U"
    TRAM = "T"
    BUS = "B"
    FERRY = "F"
    CABLECAR = "C"
    ON_DEMAND = "P"

    @property
    def code(self) -> str:
        """One-letter code used in line labels and style keys."""
        return self.value

    @classmethod
    def from_code(cls, code: str) -> "Product":
        """Look up a product by its one-letter code."""
        try:
            return cls(code)
        except ValueError as e:
            raise InvalidArgumentError(f"Unknown product code: {code!r}") from e

    @classmethod
    def all(cls) -> frozenset["Product"]:
        """All products."""
        return frozenset(cls)


@dataclass(frozen=True)
class ProductCodec:
    """Encodes product sets as a backend's bitmask.

    ``products_map[i]`` is the product carried by bit ``i``; ``None`` marks a
    bit the backend uses for something this library does not model.
    """

    products_map: tuple[Product | None, ...]

    @classmethod
    def of(cls, products_map: Sequence[Product | None]) -> "ProductCodec":
        return cls(tuple(products_map))

    @property
    def max_value(self) -> int:
        return (1 << len(self.products_map)) - 1

    def encode(self, products: Iterable[Product]) -> str:
        """Encode as a bitstring where character ``i`` is bit ``i``."""
        wanted = frozenset(products)
        return "".join(
            "1" if product is not None and product in wanted else "0"
            for product in self.products_map
        )

    def encode_int(self, products: Iterable[Product]) -> int:
        wanted = frozenset(products)
        value = 0
        for bit, product in enumerate(self.products_map):
            if product is not None and product in wanted:
                value |= 1 << bit
        return value

    def decode(self, bits: int) -> frozenset[Product]:
        """Decode a bitmask, walking from the highest bit down."""
        if bits < 0 or bits > self.max_value:
            raise InvalidArgumentError(f"Product bits out of range: {bits}")

        products: set[Product] = set()
        value = bits
        for bit in range(len(self.products_map) - 1, -1, -1):
            bit_value = 1 << bit
            if value >= bit_value:
                product = self.products_map[bit]
                if product is not None:
                    products.add(product)
                value -= bit_value
        if value != 0:
            raise InvalidArgumentError(f"Unconsumed product bits: {value} of {bits}")
        return frozenset(products)

    def decode_one(self, bits: int) -> Product | None:
        """Decode a bitmask that is expected to name a single product.

        BUS together with ON_DEMAND collapses to ON_DEMAND, since some
        backends reuse the bus bit for dial-a-ride services.
        """
        products = self.decode(bits)
        if not products:
            return None
        if len(products) == 1:
            return next(iter(products))
        if products == {Product.BUS, Product.ON_DEMAND}:
            return Product.ON_DEMAND
        names = ", ".join(sorted(product.name for product in products))
        raise AmbiguousProductError(f"Ambiguous product bits {bits}: {names}")
