"""Tests for the title ad valorem, highway use and privilege tax calculators."""

import dataclasses
from datetime import date
from decimal import Decimal

import pytest

from auto_tax_engine.catalog import StateRulesCatalog
from auto_tax_engine.highway_use import calculate_highway_use
from auto_tax_engine.models import (
    DealType,
    LeaseTaxInput,
    OriginTaxInfo,
    RetailTaxInput,
)
from auto_tax_engine.privilege import calculate_privilege_tax, privilege_rate_for_class
from auto_tax_engine.rates import RateComponent
from auto_tax_engine.rules import (
    HUT_EXTRAS_KEY,
    TAVT_EXTRAS_KEY,
    MissingSchemeConfigError,
    PrivilegeTaxConfig,
    TavtLeaseBaseMode,
    TaxRulesConfig,
)
from auto_tax_engine.title_ad_valorem import calculate_title_ad_valorem

AS_OF = date(2025, 3, 1)


@pytest.fixture(scope="module")
def catalog() -> StateRulesCatalog:
    return StateRulesCatalog()


def _deal(state: str, **overrides) -> RetailTaxInput:
    params = dict(state_code=state, as_of_date=AS_OF, vehicle_price=Decimal("30000"))
    params.update(overrides)
    return RetailTaxInput(**params)


def _lease(state: str, **overrides) -> LeaseTaxInput:
    params = dict(
        state_code=state,
        as_of_date=AS_OF,
        vehicle_price=Decimal("35000"),
        gross_cap_cost=Decimal("33000"),
        base_payment=Decimal("450"),
        payment_count=36,
    )
    params.update(overrides)
    return LeaseTaxInput(**params)


def _with_extra(rules: TaxRulesConfig, key: str, **changes) -> TaxRulesConfig:
    extras = dict(rules.extras)
    extras[key] = dataclasses.replace(extras[key], **changes)
    return dataclasses.replace(rules, extras=extras)


# ── Title ad valorem tax ─────────────────────────────────────────────


def test_tavt_basic(catalog: StateRulesCatalog):
    result = calculate_title_ad_valorem(_deal("GA"), catalog.get_rules("GA"))
    assert result.total_tax == Decimal("2100.00")
    assert result.taxes.component_taxes[0].label == "GA_TAVT"
    assert result.taxes.component_taxes[0].rate == Decimal("0.07")
    assert any("pending valuation" in n for n in result.debug.notes)


def test_tavt_trade_in_credit(catalog: StateRulesCatalog):
    result = calculate_title_ad_valorem(
        _deal("GA", trade_in_value=Decimal("10000")), catalog.get_rules("GA")
    )
    assert result.debug.applied_trade_in == Decimal("10000")
    assert result.bases.vehicle_base == Decimal("20000")
    assert result.total_tax == Decimal("1400.00")


def test_tavt_trade_in_disabled(catalog: StateRulesCatalog):
    rules = _with_extra(catalog.get_rules("GA"), TAVT_EXTRAS_KEY, allow_trade_in_credit=False)
    result = calculate_title_ad_valorem(_deal("GA", trade_in_value=Decimal("10000")), rules)
    assert result.total_tax == Decimal("2100.00")
    assert result.debug.applied_trade_in == Decimal("0")


def test_tavt_higher_assessed_value(catalog: StateRulesCatalog):
    result = calculate_title_ad_valorem(
        _deal("GA", assessed_value=Decimal("32000")), catalog.get_rules("GA")
    )
    assert result.bases.vehicle_base == Decimal("32000")
    assert result.total_tax == Decimal("2240.00")


def test_tavt_negative_equity_added(catalog: StateRulesCatalog):
    result = calculate_title_ad_valorem(
        _deal("GA", negative_equity=Decimal("2000")), catalog.get_rules("GA")
    )
    assert result.total_tax == Decimal("2240.00")


def test_tavt_excludes_fees_and_products(catalog: StateRulesCatalog):
    result = calculate_title_ad_valorem(
        _deal(
            "GA",
            doc_fee=Decimal("500"),
            service_contracts=Decimal("2000"),
            gap=Decimal("700"),
            rebate_manufacturer=Decimal("1000"),
            rebate_dealer=Decimal("500"),
        ),
        catalog.get_rules("GA"),
    )
    assert result.bases.fees_base == Decimal("0")
    assert result.bases.products_base == Decimal("0")
    assert result.debug.applied_rebates_taxable == Decimal("1500")
    assert result.total_tax == Decimal("2100.00")


def test_tavt_reciprocity_credit(catalog: StateRulesCatalog):
    deal = _deal("GA", origin_tax_info=OriginTaxInfo("FL", Decimal("1500"), date(2025, 1, 10)))
    result = calculate_title_ad_valorem(deal, catalog.get_rules("GA"))
    assert result.debug.reciprocity_credit == Decimal("1500.00")
    assert result.total_tax == Decimal("600.00")


def test_tavt_reciprocity_capped(catalog: StateRulesCatalog):
    deal = _deal("GA", origin_tax_info=OriginTaxInfo("FL", Decimal("3000")))
    result = calculate_title_ad_valorem(deal, catalog.get_rules("GA"))
    assert result.debug.reciprocity_credit == Decimal("2100.00")
    assert result.total_tax == Decimal("0")


def test_tavt_lease_agreed_value(catalog: StateRulesCatalog):
    result = calculate_title_ad_valorem(_lease("GA"), catalog.get_rules("GA"))
    lease = result.lease_breakdown
    assert result.mode is DealType.LEASE
    assert lease.upfront_taxes.total_tax == Decimal("2450.00")
    assert lease.payment_taxable_base_per_period == Decimal("0")
    assert lease.payment_taxes_per_period.component_taxes == ()
    assert result.total_tax == Decimal("2450.00")


def test_tavt_lease_cap_cost(catalog: StateRulesCatalog):
    rules = _with_extra(
        catalog.get_rules("GA"), TAVT_EXTRAS_KEY, lease_base_mode=TavtLeaseBaseMode.CAP_COST
    )
    result = calculate_title_ad_valorem(_lease("GA"), rules)
    assert result.total_tax == Decimal("2310.00")


def test_tavt_requires_config(catalog: StateRulesCatalog):
    rules = dataclasses.replace(catalog.get_rules("GA"), extras={})
    with pytest.raises(MissingSchemeConfigError):
        calculate_title_ad_valorem(_deal("GA"), rules)


# ── Highway use tax ──────────────────────────────────────────────────


def _hut_deal(**overrides) -> RetailTaxInput:
    params = dict(
        trade_in_value=Decimal("5000"),
        rebate_manufacturer=Decimal("1000"),
        rebate_dealer=Decimal("500"),
        doc_fee=Decimal("200"),
    )
    params.update(overrides)
    return _deal("NC", **params)


def test_hut_basic(catalog: StateRulesCatalog):
    result = calculate_highway_use(_hut_deal(), catalog.get_rules("NC"))
    # 30000 - 5000 trade - 1000 mfr rebate + 200 doc fee
    assert result.bases.total_taxable_base == Decimal("24200")
    assert result.total_tax == Decimal("726.00")
    assert result.debug.applied_rebates_taxable == Decimal("500")
    assert result.debug.applied_rebates_non_taxable == Decimal("1000")


def test_hut_ignores_local_rates(catalog: StateRulesCatalog):
    rates = (
        RateComponent("STATE", Decimal("0.0475")),
        RateComponent("COUNTY", Decimal("0.02")),
    )
    result = calculate_highway_use(_hut_deal(rates=rates), catalog.get_rules("NC"))
    assert len(result.taxes.component_taxes) == 1
    assert result.taxes.component_taxes[0].label == "NC_HUT"
    assert result.taxes.component_taxes[0].rate == Decimal("0.03")


def test_hut_accessories_and_products(catalog: StateRulesCatalog):
    result = calculate_highway_use(
        _hut_deal(accessories_amount=Decimal("1000"), service_contracts=Decimal("2000")),
        catalog.get_rules("NC"),
    )
    # accessories taxable, service contracts not
    assert result.bases.products_base == Decimal("1000")
    assert result.total_tax == Decimal("756.00")


def test_hut_negative_equity(catalog: StateRulesCatalog):
    result = calculate_highway_use(
        _hut_deal(negative_equity=Decimal("1000")), catalog.get_rules("NC")
    )
    assert result.bases.vehicle_base == Decimal("25000")


def test_hut_trade_in_reduction_disabled(catalog: StateRulesCatalog):
    rules = _with_extra(
        catalog.get_rules("NC"), HUT_EXTRAS_KEY, include_trade_in_reduction=False
    )
    result = calculate_highway_use(_hut_deal(), rules)
    assert result.debug.applied_trade_in == Decimal("0")
    assert result.total_tax == Decimal("876.00")


def test_hut_reciprocity_within_window(catalog: StateRulesCatalog):
    deal = _hut_deal(
        origin_tax_info=OriginTaxInfo("SC", Decimal("500"), date(2025, 1, 15))
    )
    result = calculate_highway_use(deal, catalog.get_rules("NC"))
    assert result.debug.reciprocity_credit == Decimal("500.00")
    assert result.total_tax == Decimal("226.00")


def test_hut_reciprocity_outside_window(catalog: StateRulesCatalog):
    deal = _hut_deal(
        origin_tax_info=OriginTaxInfo("SC", Decimal("500"), date(2024, 10, 1))
    )
    result = calculate_highway_use(deal, catalog.get_rules("NC"))
    assert result.debug.reciprocity_credit == Decimal("0")
    assert result.total_tax == Decimal("726.00")
    assert any("exceeds 90-day window" in n for n in result.debug.notes)


def test_hut_reciprocity_needs_paid_date(catalog: StateRulesCatalog):
    deal = _hut_deal(origin_tax_info=OriginTaxInfo("SC", Decimal("500")))
    result = calculate_highway_use(deal, catalog.get_rules("NC"))
    assert result.total_tax == Decimal("726.00")


def test_hut_lease_taxed_upfront(catalog: StateRulesCatalog):
    result = calculate_highway_use(_lease("NC"), catalog.get_rules("NC"))
    assert result.bases.vehicle_base == Decimal("33000")
    assert result.lease_breakdown.upfront_taxes.total_tax == Decimal("990.00")
    assert result.total_tax == Decimal("990.00")


# ── Privilege tax ────────────────────────────────────────────────────


@pytest.mark.parametrize(
    "vehicle_class,expected",
    [
        ("RV", Decimal("1800.00")),
        ("trailer", Decimal("900.00")),
        ("auto", Decimal("1500.00")),
        ("boat", Decimal("1500.00")),
        (None, Decimal("1500.00")),
    ],
)
def test_privilege_class_rates(catalog: StateRulesCatalog, vehicle_class, expected):
    result = calculate_privilege_tax(
        _deal("WV", vehicle_class=vehicle_class), catalog.get_rules("WV")
    )
    assert result.total_tax == expected
    assert result.taxes.component_taxes[0].label == "WV_PRIVILEGE"


def test_privilege_unknown_class_noted(catalog: StateRulesCatalog):
    result = calculate_privilege_tax(_deal("WV", vehicle_class="boat"), catalog.get_rules("WV"))
    assert any("no rate for vehicle class 'boat'" in n for n in result.debug.notes)


def test_privilege_rate_lookup():
    cfg = PrivilegeTaxConfig(
        base_rate=Decimal("0.05"), vehicle_class_rates={"trailer": Decimal("0.03")}
    )
    assert privilege_rate_for_class(cfg, "trailer")[0] == Decimal("0.03")
    assert privilege_rate_for_class(cfg, "truck")[0] == Decimal("0.05")
    assert privilege_rate_for_class(cfg, None)[0] == Decimal("0.05")


def test_privilege_assessed_value(catalog: StateRulesCatalog):
    result = calculate_privilege_tax(
        _deal("WV", assessed_value=Decimal("35000")), catalog.get_rules("WV")
    )
    assert result.bases.vehicle_base == Decimal("35000")
    assert result.total_tax == Decimal("1750.00")


def test_privilege_rebates_do_not_reduce_base(catalog: StateRulesCatalog):
    result = calculate_privilege_tax(
        _deal("WV", rebate_manufacturer=Decimal("1000"), rebate_dealer=Decimal("500")),
        catalog.get_rules("WV"),
    )
    assert result.debug.applied_rebates_taxable == Decimal("1500")
    assert result.total_tax == Decimal("1500.00")


def test_privilege_trade_in_credit(catalog: StateRulesCatalog):
    result = calculate_privilege_tax(
        _deal("WV", trade_in_value=Decimal("10000")), catalog.get_rules("WV")
    )
    assert result.total_tax == Decimal("1000.00")


def test_privilege_add_ons(catalog: StateRulesCatalog):
    result = calculate_privilege_tax(
        _deal(
            "WV",
            doc_fee=Decimal("200"),
            service_contracts=Decimal("1000"),
            gap=Decimal("500"),
            accessories_amount=Decimal("300"),
            negative_equity=Decimal("2000"),
        ),
        catalog.get_rules("WV"),
    )
    assert result.bases.vehicle_base == Decimal("32000")
    assert result.bases.fees_base == Decimal("200")
    assert result.bases.products_base == Decimal("1800")
    assert result.total_tax == Decimal("1700.00")


def test_privilege_lease_upfront_only(catalog: StateRulesCatalog):
    result = calculate_privilege_tax(_lease("WV"), catalog.get_rules("WV"))
    assert result.lease_breakdown.payment_count == 36
    assert result.lease_breakdown.payment_taxes_per_period.total_tax == Decimal("0")
    assert result.total_tax == Decimal("1650.00")
