"""Tests for deal inputs and result assembly."""

from datetime import date
from decimal import Decimal

import pytest

from auto_tax_engine.models import (
    ComponentTax,
    DealType,
    LeaseTaxBreakdown,
    LeaseTaxInput,
    RetailTaxInput,
    TaxAmountBreakdown,
    TaxBaseBreakdown,
    deal_input_from_dict,
    redistribute_tax,
    round_money,
)


def _breakdown(*amounts: str) -> TaxAmountBreakdown:
    return TaxAmountBreakdown(
        tuple(
            ComponentTax(f"C{i}", Decimal("0.01"), Decimal(a))
            for i, a in enumerate(amounts)
        )
    )


# ── Deal input parsing ───────────────────────────────────────────────


def test_retail_from_dict():
    deal = deal_input_from_dict(
        {
            "state_code": "in",
            "as_of_date": "2025-03-01",
            "vehicle_price": "35000",
            "trade_in_value": 10000,
            "other_fees": [{"code": "TITLE", "amount": "31"}],
            "rates": [{"label": "STATE", "rate": "0.07"}],
            "origin_tax_info": {
                "state_code": "oh",
                "amount": "500",
                "tax_paid_date": "2025-02-01",
            },
        }
    )
    assert isinstance(deal, RetailTaxInput)
    assert deal.deal_type is DealType.RETAIL
    assert deal.state_code == "IN"
    assert deal.as_of_date == date(2025, 3, 1)
    assert deal.trade_in_value == Decimal("10000")
    assert deal.other_fees[0].amount == Decimal("31")
    assert deal.origin_tax_info.state_code == "OH"
    assert deal.origin_tax_info.tax_paid_date == date(2025, 2, 1)
    assert deal.origin_tax_info.same_owner is True
    assert deal.assessed_value is None


def test_lease_from_dict():
    deal = deal_input_from_dict(
        {
            "deal_type": "lease",
            "state_code": "NJ",
            "as_of_date": "2025-03-01",
            "vehicle_price": "52000",
            "gross_cap_cost": "50000",
            "base_payment": "650",
            "payment_count": "36",
        }
    )
    assert isinstance(deal, LeaseTaxInput)
    assert deal.deal_type is DealType.LEASE
    assert deal.payment_count == 36
    assert deal.base_payment == Decimal("650")


def test_lease_requires_payment_fields():
    with pytest.raises(KeyError):
        deal_input_from_dict(
            {"deal_type": "LEASE", "state_code": "NJ", "vehicle_price": "50000"}
        )


def test_unknown_deal_type_rejected():
    with pytest.raises(ValueError):
        deal_input_from_dict(
            {"deal_type": "RENTAL", "state_code": "NJ", "vehicle_price": "50000"}
        )


def test_lease_cap_reduction_falls_back_to_deal_fields():
    deal = LeaseTaxInput(
        state_code="IN",
        as_of_date=date(2025, 3, 1),
        vehicle_price=Decimal("40000"),
        gross_cap_cost=Decimal("40000"),
        base_payment=Decimal("500"),
        payment_count=36,
        trade_in_value=Decimal("4000"),
        rebate_manufacturer=Decimal("1000"),
        cap_reduction_rebate_manufacturer=Decimal("1500"),
    )
    assert deal.lease_trade_in_amount == Decimal("4000")
    assert deal.lease_rebate_manufacturer == Decimal("1500")
    assert deal.lease_rebate_dealer == Decimal("0")


# ── Result totals ────────────────────────────────────────────────────


def test_total_taxable_base_is_sum_of_parts():
    bases = TaxBaseBreakdown(Decimal("25000"), Decimal("200"), Decimal("3300"))
    assert bases.total_taxable_base == Decimal("28500")


def test_lease_total_over_term():
    lease = LeaseTaxBreakdown(
        upfront_taxable_base=Decimal("200"),
        upfront_taxes=_breakdown("14.00"),
        payment_taxable_base_per_period=Decimal("500"),
        payment_taxes_per_period=_breakdown("35.00"),
        payment_count=36,
    )
    assert lease.total_tax_over_term == Decimal("1274.00")


def test_round_money_half_up():
    assert round_money(Decimal("3978.975")) == Decimal("3978.98")
    assert round_money(Decimal("0.005")) == Decimal("0.01")


# ── Redistribution ───────────────────────────────────────────────────


def test_redistribute_scales_proportionally():
    adjusted = redistribute_tax(_breakdown("600.00", "100.00"), Decimal("350.00"))
    assert [c.amount for c in adjusted.component_taxes] == [
        Decimal("300.00"),
        Decimal("50.00"),
    ]


def test_redistribute_residual_cent_keeps_total():
    adjusted = redistribute_tax(
        _breakdown("10.00", "10.00", "10.00"), Decimal("20.00")
    )
    assert adjusted.total_tax == Decimal("20.00")
    assert sorted(c.amount for c in adjusted.component_taxes) == [
        Decimal("6.66"),
        Decimal("6.67"),
        Decimal("6.67"),
    ]


def test_redistribute_to_zero():
    adjusted = redistribute_tax(_breakdown("40.00", "30.00"), Decimal("0"))
    assert adjusted.total_tax == Decimal("0")
    assert len(adjusted.component_taxes) == 2


def test_redistribute_unchanged_total_returns_same():
    raw = _breakdown("40.00", "30.00")
    assert redistribute_tax(raw, Decimal("70.00")) is raw
