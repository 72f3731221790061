"""Update cadences users can pick from the home tab."""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

DEFAULT_UPDATE_FREQUENCY_SECONDS = 3600

# Seconds between updates -> label shown in the select menu
FREQUENCY_OPTIONS: Mapping[int, str] = MappingProxyType({
    3600: "Every Hour",
    7200: "Every 2 Hours",
    14400: "Every 4 Hours",
    28800: "Every 8 Hours",
    43200: "Every 12 Hours",
    86400: "Every Day",
    172800: "Every 2 Days",
    604800: "Every Week",
})


def is_known_frequency(value: int, options: Mapping[int, str] = FREQUENCY_OPTIONS) -> bool:
    return value in options


def label_for(value: int, options: Mapping[int, str] = FREQUENCY_OPTIONS) -> str | None:
    return options.get(value)


def sorted_options(options: Mapping[int, str] = FREQUENCY_OPTIONS) -> list[tuple[int, str]]:
    """Options in display order (ascending seconds)."""
    return sorted(options.items())
