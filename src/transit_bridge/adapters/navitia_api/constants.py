"""Constants and lookup tables for the Navitia API.

API Documentation: https://doc.navitia.io/
"""

from collections.abc import Mapping
from enum import Enum
from types import MappingProxyType

from transit_bridge.domain.models import Product, WalkSpeed

SERVER_PRODUCT = "navitia"
SERVER_VERSION = "v1"

DATE_FORMAT = "%Y%m%dT%H%M%S"

DEFAULT_NEARBY_DISTANCE = 50000
DEPARTURES_DURATION_SECONDS = 86400

PHYSICAL_MODE_PREFIX = "physical_mode:"


class SectionType(Enum):
    CROW_FLY = "crow_fly"
    PUBLIC_TRANSPORT = "public_transport"
    STREET_NETWORK = "street_network"
    TRANSFER = "transfer"
    WAITING = "waiting"
    STAY_IN = "stay_in"
    ON_DEMAND_TRANSPORT = "on_demand_transport"
    BSS_RENT = "bss_rent"
    BSS_PUT_BACK = "bss_put_back"
    BOARDING = "boarding"
    LANDING = "landing"


class PlaceType(Enum):
    STOP_POINT = "stop_point"
    STOP_AREA = "stop_area"
    ADDRESS = "address"
    POI = "poi"
    ADMINISTRATIVE_REGION = "administrative_region"


# Transitions without movement of their own
INSTANT_SECTION_TYPES = frozenset(
    {
        SectionType.STAY_IN,
        SectionType.BSS_RENT,
        SectionType.BSS_PUT_BACK,
        SectionType.BOARDING,
        SectionType.LANDING,
    }
)

# Keys are lowercased physical mode ids without the "physical_mode:" prefix
PHYSICAL_MODE_PRODUCTS: Mapping[str, Product | None] = MappingProxyType(
    {
        "bus": Product.BUS,
        "busrapidtransit": Product.BUS,
        "coach": Product.BUS,
        "shuttle": Product.BUS,
        "rapidtransit": Product.SUBURBAN_TRAIN,
        "train": Product.SUBURBAN_TRAIN,
        "localtrain": Product.SUBURBAN_TRAIN,
        "longdistancetrain": Product.SUBURBAN_TRAIN,
        "val": Product.SUBURBAN_TRAIN,
        "railshuttle": Product.SUBURBAN_TRAIN,
        "tramway": Product.TRAM,
        "tram": Product.TRAM,
        "metro": Product.SUBWAY,
        "ferry": Product.FERRY,
        "funicular": Product.CABLECAR,
        "taxi": Product.ON_DEMAND,
        "other": None,
    }
)

ALWAYS_FORBIDDEN_MODES = ("Air", "Boat")

FORBIDDEN_MODES: Mapping[Product, tuple[str, ...]] = MappingProxyType(
    {
        Product.REGIONAL_TRAIN: ("Localdistancetrain", "Train"),
        Product.SUBURBAN_TRAIN: ("Localtrain", "Train", "Rapidtransit"),
        Product.SUBWAY: ("Metro",),
        Product.TRAM: ("Tramway",),
        Product.BUS: ("Bus", "Busrapidtransit", "Coach", "Shuttle"),
        Product.FERRY: ("Ferry",),
        Product.CABLECAR: ("Funicular",),
        Product.ON_DEMAND: ("Taxi",),
    }
)

BASE_WALKING_SPEED = 1.12

WALKING_SPEED_FACTORS: Mapping[WalkSpeed, float] = MappingProxyType(
    {
        WalkSpeed.SLOW: 0.8,
        WalkSpeed.NORMAL: 1.0,
        WalkSpeed.FAST: 1.2,
    }
)
