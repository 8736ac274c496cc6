"""
Rate component construction.

Turns a resolved jurisdiction rate breakdown (the output of a local tax
rate lookup by ZIP code) into the flat, ordered list of named rate
components the calculator applies to a taxable base.

The engine never performs the rate lookup itself.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Iterable, Union

STATE_LABEL = "STATE"


class JurisdictionType(Enum):
    STATE = "STATE"
    COUNTY = "COUNTY"
    CITY = "CITY"
    SPECIAL_DISTRICT = "SPECIAL_DISTRICT"


@dataclass(frozen=True)
class RateComponent:
    """A single named percentage contributing to the total tax rate."""

    label: str
    rate: Decimal  # decimal, e.g. 0.07 = 7%

    @classmethod
    def from_dict(cls, data: dict) -> "RateComponent":
        return cls(label=str(data["label"]), rate=Decimal(str(data["rate"])))


@dataclass(frozen=True)
class LocalTaxRateInfo:
    """Rate summary for one ZIP code, as returned by a local rate service."""

    state_tax_rate: Decimal
    county_rate: Decimal = Decimal("0")
    city_rate: Decimal = Decimal("0")
    special_district_rate: Decimal = Decimal("0")


@dataclass(frozen=True)
class JurisdictionRate:
    """One line of a detailed jurisdiction breakdown."""

    jurisdiction_type: JurisdictionType
    name: str
    rate: Decimal


Number = Union[Decimal, int, float, str]


def _dec(value: Number) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def build_rate_components_from_local_info(
    info: LocalTaxRateInfo,
) -> tuple[RateComponent, ...]:
    """
    Build rate components from a local rate summary.

    The state component is always present; county, city and special
    district components are included only when non-zero.
    """
    components = [RateComponent(STATE_LABEL, _dec(info.state_tax_rate))]

    optional = (
        ("COUNTY", info.county_rate),
        ("CITY", info.city_rate),
        ("SPECIAL_DISTRICT", info.special_district_rate),
    )
    for label, rate in optional:
        rate = _dec(rate)
        if rate > 0:
            components.append(RateComponent(label, rate))

    return tuple(components)


def _district_label(name: str) -> str:
    return "DISTRICT_" + re.sub(r"[^a-zA-Z0-9]", "_", name).upper()


def build_rate_components_from_breakdown(
    breakdown: Iterable[JurisdictionRate],
) -> tuple[RateComponent, ...]:
    """
    Build rate components from a detailed jurisdiction breakdown.

    Order is preserved. Special districts get a label derived from the
    district name (``DISTRICT_<NAME>``) so several districts stay
    distinguishable in the component list.
    """
    components: list[RateComponent] = []
    for item in breakdown:
        if item.jurisdiction_type is JurisdictionType.SPECIAL_DISTRICT:
            label = _district_label(item.name)
        else:
            label = item.jurisdiction_type.value
        components.append(RateComponent(label, _dec(item.rate)))
    return tuple(components)


def combined_rate(components: Iterable[RateComponent]) -> Decimal:
    """Sum of all component rates."""
    return sum((c.rate for c in components), Decimal("0"))
