"""Line domain model."""

from dataclasses import dataclass

from transit_bridge.domain.models.product import Product
from transit_bridge.domain.models.style import Style


@dataclass(frozen=True)
class Line:
    """A public transport line as shown to passengers.

    Every line carries a label and a style, even when the backend gave
    neither; the label is then empty and the style comes from the defaults.
    """

    label: str
    style: Style
    id: str | None = None
    network: str | None = None
    product: Product | None = None
    name: str | None = None

    @property
    def product_code(self) -> str:
        return self.product.code if self.product else "?"

    def __str__(self) -> str:
        return f"{self.product_code}{self.label}"
