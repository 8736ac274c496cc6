"""Tests for rate component construction."""

from decimal import Decimal

from auto_tax_engine.rates import (
    JurisdictionRate,
    JurisdictionType,
    LocalTaxRateInfo,
    RateComponent,
    build_rate_components_from_breakdown,
    build_rate_components_from_local_info,
    combined_rate,
)


# ── Local rate summary ───────────────────────────────────────────────


def test_state_component_always_first():
    components = build_rate_components_from_local_info(
        LocalTaxRateInfo(state_tax_rate=Decimal("0.07"))
    )
    assert components == (RateComponent("STATE", Decimal("0.07")),)


def test_zero_state_rate_still_included():
    components = build_rate_components_from_local_info(
        LocalTaxRateInfo(state_tax_rate=Decimal("0"), city_rate=Decimal("0.01"))
    )
    assert [c.label for c in components] == ["STATE", "CITY"]
    assert components[0].rate == Decimal("0")


def test_local_components_only_when_positive():
    info = LocalTaxRateInfo(
        state_tax_rate=Decimal("0.0625"),
        county_rate=Decimal("0.0175"),
        city_rate=Decimal("0"),
        special_district_rate=Decimal("0.005"),
    )
    components = build_rate_components_from_local_info(info)
    assert [c.label for c in components] == ["STATE", "COUNTY", "SPECIAL_DISTRICT"]
    assert components[1].rate == Decimal("0.0175")


def test_float_rates_converted_to_decimal():
    components = build_rate_components_from_local_info(
        LocalTaxRateInfo(state_tax_rate=0.06, county_rate=0.01)
    )
    assert components[0].rate == Decimal("0.06")
    assert components[1].rate == Decimal("0.01")


# ── Detailed breakdown ───────────────────────────────────────────────


def test_breakdown_preserves_order():
    breakdown = [
        JurisdictionRate(JurisdictionType.STATE, "Illinois", Decimal("0.0625")),
        JurisdictionRate(JurisdictionType.COUNTY, "Cook", Decimal("0.0175")),
        JurisdictionRate(JurisdictionType.CITY, "Chicago", Decimal("0.0125")),
    ]
    components = build_rate_components_from_breakdown(breakdown)
    assert [c.label for c in components] == ["STATE", "COUNTY", "CITY"]


def test_special_districts_labeled_by_name():
    breakdown = [
        JurisdictionRate(JurisdictionType.STATE, "Illinois", Decimal("0.0625")),
        JurisdictionRate(
            JurisdictionType.SPECIAL_DISTRICT, "Regional Transit Authority", Decimal("0.01")
        ),
        JurisdictionRate(JurisdictionType.SPECIAL_DISTRICT, "Metro-East", Decimal("0.0025")),
    ]
    labels = [c.label for c in build_rate_components_from_breakdown(breakdown)]
    assert labels == ["STATE", "DISTRICT_REGIONAL_TRANSIT_AUTHORITY", "DISTRICT_METRO_EAST"]


def test_empty_breakdown():
    assert build_rate_components_from_breakdown([]) == ()


# ── Helpers ──────────────────────────────────────────────────────────


def test_combined_rate():
    components = (
        RateComponent("STATE", Decimal("0.04")),
        RateComponent("CITY", Decimal("0.045")),
        RateComponent("DISTRICT_MCTD", Decimal("0.00375")),
    )
    assert combined_rate(components) == Decimal("0.08875")


def test_rate_component_from_dict():
    component = RateComponent.from_dict({"label": "COUNTY", "rate": 0.0175})
    assert component == RateComponent("COUNTY", Decimal("0.0175"))
