"""Splitting of HAFAS display names into place and name."""

import re
from collections.abc import Callable

NameSplitter = Callable[[str], tuple[str | None, str]]

SPLIT_NAME_FIRST_COMMA = re.compile(r"([^,]*), (.*)")
SPLIT_NAME_ONE_COMMA = re.compile(r"([^,]*), ([^,]*)")
SPLIT_NAME_PAREN = re.compile(r"(.*) \((.{3,}?)\)")


def split_place_and_name(
    text: str, pattern: re.Pattern[str], place_group: int, name_group: int
) -> tuple[str | None, str]:
    """Split ``text`` with ``pattern``, or return it whole with no place."""
    match = pattern.fullmatch(text)
    if match:
        return match.group(place_group), match.group(name_group)
    return None, text


def split_station_name(name: str) -> tuple[str | None, str]:
    return None, name


def split_address(address: str) -> tuple[str | None, str]:
    """``"Street 12, City"`` becomes ``("City", "Street 12")``."""
    return split_place_and_name(address, SPLIT_NAME_FIRST_COMMA, 2, 1)


def paren_splitter(text: str) -> tuple[str | None, str]:
    """``"Street (City)"`` becomes ``("City", "Street")``."""
    return split_place_and_name(text, SPLIT_NAME_PAREN, 2, 1)


def comma_splitter(text: str) -> tuple[str | None, str]:
    """``"City, Street"`` becomes ``("City", "Street")`` when there is one comma."""
    return split_place_and_name(text, SPLIT_NAME_ONE_COMMA, 1, 2)


SPLITTERS: dict[str, NameSplitter] = {
    "none": split_station_name,
    "comma": comma_splitter,
    "paren": paren_splitter,
    "address": split_address,
}
