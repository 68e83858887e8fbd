"""Line style tables and lookup."""

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from transit_bridge.domain.models import Product, Shape, Style
from transit_bridge.domain.models.style import (
    BLUE,
    DKGRAY,
    GRAY,
    RED,
    WHITE,
    derive_foreground_color,
    parse_color,
)

STYLES_SEPARATOR = "|"
NIGHT_BUS_KEY = "BN"

DEFAULT_STYLE = Style(background_color=DKGRAY, foreground_color=WHITE)

STANDARD_STYLES: Mapping[Product, Style] = MappingProxyType(
    {
        Product.HIGH_SPEED_TRAIN: Style(
            shape=Shape.RECT, background_color=WHITE, foreground_color=RED, border_color=RED
        ),
        Product.REGIONAL_TRAIN: Style(
            shape=Shape.RECT, background_color=GRAY, foreground_color=WHITE
        ),
        Product.SUBURBAN_TRAIN: Style(
            shape=Shape.CIRCLE, background_color=parse_color("#006e34"), foreground_color=WHITE
        ),
        Product.SUBWAY: Style(
            shape=Shape.RECT, background_color=parse_color("#003090"), foreground_color=WHITE
        ),
        Product.TRAM: Style(
            shape=Shape.RECT, background_color=parse_color("#cc0000"), foreground_color=WHITE
        ),
        Product.BUS: Style(background_color=parse_color("#993399"), foreground_color=WHITE),
        Product.ON_DEMAND: Style(background_color=parse_color("#00695c"), foreground_color=WHITE),
        Product.FERRY: Style(shape=Shape.CIRCLE, background_color=BLUE, foreground_color=WHITE),
    }
)


def style_from_config(entry: Mapping[str, Any]) -> Style:
    """Build a Style from a ``[line_styles]`` TOML entry.

    ``background`` is required, a missing ``foreground`` is derived from it.
    """
    if "background" not in entry:
        raise ValueError(f"Line style needs a background color: {dict(entry)}")
    background = parse_color(entry["background"])
    foreground = (
        parse_color(entry["foreground"])
        if "foreground" in entry
        else derive_foreground_color(background)
    )
    return Style(
        shape=Shape(entry.get("shape", Shape.ROUNDED.value)),
        background_color=background,
        background_color2=parse_color(entry["background2"]) if "background2" in entry else None,
        foreground_color=foreground,
        border_color=parse_color(entry["border"]) if "border" in entry else None,
    )


class LineStyleResolver:
    """Looks up line styles, falling back from specific to generic keys.

    Keys are ``network|<product code><label>``, ``network|<product code>``,
    ``network|BN`` for night buses, then the same without the network, then
    the per-product default.
    """

    def __init__(self, styles: Mapping[str, Style] | None = None) -> None:
        self._styles: Mapping[str, Style] = MappingProxyType(dict(styles or {}))

    @classmethod
    def from_config(cls, line_styles: Mapping[str, Mapping[str, Any]]) -> "LineStyleResolver":
        return cls({key: style_from_config(entry) for key, entry in line_styles.items()})

    def __len__(self) -> int:
        return len(self._styles)

    def _candidate_keys(
        self, network: str | None, product: Product, label: str | None
    ) -> list[str]:
        is_night_bus = product == Product.BUS and label is not None and label.startswith("N")
        line_key = f"{product.code}{label or ''}"
        keys = []
        if network:
            prefix = f"{network}{STYLES_SEPARATOR}"
            keys += [prefix + line_key, prefix + product.code]
            if is_night_bus:
                keys.append(prefix + NIGHT_BUS_KEY)
        keys += [line_key, product.code]
        if is_night_bus:
            keys.append(NIGHT_BUS_KEY)
        return keys

    def line_style(self, network: str | None, product: Product | None, label: str | None) -> Style:
        if self._styles and product is not None:
            for key in self._candidate_keys(network, product, label):
                style = self._styles.get(key)
                if style is not None:
                    return style
        if product is None:
            return DEFAULT_STYLE
        return STANDARD_STYLES.get(product, DEFAULT_STYLE)
