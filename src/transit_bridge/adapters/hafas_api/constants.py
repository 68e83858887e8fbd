"""HAFAS client interface constants."""

from enum import Enum

SERVER_PRODUCT = "hci"
LANGUAGE = "eng"
POLYLINE_ENCODING = "GPA"
COORDINATE_SYSTEM = "WGS84"

DEFAULT_MAX_DISTANCE = 20000
DEFAULT_MAX_LOCATIONS = 50
DEFAULT_MAX_DEPARTURES = 100
# Versions up to this one accept the stbFltrEquiv flag on StationBoard
LAST_VERSION_WITH_EQUIV_FILTER = (1, 18)
EQUIV_WORKAROUND_FACTOR = 4

DATE_FORMAT = "%Y%m%d"
TIME_FORMAT = "%H%M00"

# Remarks with this code carry line disruption messages
LINE_MESSAGE_REMARK_CODE = "l?"


class SectionType(str, Enum):
    """Section types of a TripSearch connection."""

    JOURNEY = "JNY"
    TELE_TAXI = "TETA"
    WALK = "WALK"
    TRANSFER = "TRSF"
    DEVIATION = "DEVI"


PUBLIC_SECTION_TYPES = frozenset({SectionType.JOURNEY, SectionType.TELE_TAXI})
TRANSFER_SECTION_TYPES = frozenset({SectionType.TRANSFER, SectionType.DEVIATION})


class LocType(str, Enum):
    """Location types in HAFAS location lists."""

    STATION = "S"
    POI = "P"
    ADDRESS = "A"
    COORD = "C"
