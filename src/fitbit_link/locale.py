"""Locales accepted by the Fitbit Web API and the measurement units they imply.

The API localizes responses from the ``Accept-Locale`` and
``Accept-Language`` request headers. Only the language decides the unit
system: United States English gets imperial units, United Kingdom English
gets stones and metric lengths, and everything else is metric.

The tables here are immutable. :func:`get_corresponding_unit` is the only
lookup.
"""

from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict


class Locale(str, Enum):
    """Locale identifiers understood by the API."""

    AUSTRALIA = "en_AU"
    FRANCE = "fr_FR"
    GERMANY = "de_DE"
    JAPAN = "ja_JP"
    NEW_ZEALAND = "en_NZ"
    SPAIN = "es_ES"
    UNITED_KINGDOM = "en_GB"
    UNITED_STATES = "en_US"


class Unit(BaseModel):
    """Units used for each measurement kind in API responses."""

    model_config = ConfigDict(frozen=True)

    distance: str
    elevation: str
    height: str
    weight: str
    body_measurements: str
    liquids: str
    blood_glucose: str


UNITED_STATES_UNIT = Unit(
    distance="mile",
    elevation="ft",
    height="in",
    weight="lb",
    body_measurements="in",
    liquids="fl oz",
    blood_glucose="mg/dL",
)

UNITED_KINGDOM_UNIT = Unit(
    distance="km",
    elevation="m",
    height="cm",
    weight="st",
    body_measurements="cm",
    liquids="ml",
    blood_glucose="mmol/l",
)

METRIC_UNIT = Unit(
    distance="km",
    elevation="m",
    height="cm",
    weight="kg",
    body_measurements="cm",
    liquids="ml",
    blood_glucose="mmol/l",
)

_UNITS_BY_LOCALE: Mapping[Locale, Unit] = MappingProxyType(
    {
        Locale.UNITED_STATES: UNITED_STATES_UNIT,
        Locale.UNITED_KINGDOM: UNITED_KINGDOM_UNIT,
    }
)


def get_corresponding_unit(locale: Optional[Locale]) -> Unit:
    """Return the unit set the API uses for *locale*.

    Args:
        locale: The requested locale, or ``None`` when no locale header is
            sent (the API then answers in metric units).

    Returns:
        One of :data:`UNITED_STATES_UNIT`, :data:`UNITED_KINGDOM_UNIT`, or
        :data:`METRIC_UNIT`.
    """
    if locale is None:
        return METRIC_UNIT
    return _UNITS_BY_LOCALE.get(locale, METRIC_UNIT)


def locale_headers(locale: Optional[Locale]) -> dict[str, str]:
    """Build the request headers that select *locale* for API responses."""
    if locale is None:
        return {}
    return {"Accept-Locale": locale.value, "Accept-Language": locale.value}
