"""
Privilege tax (West Virginia style).

Charged by the DMV at titling instead of sales tax, at a rate that may
depend on the vehicle class. Rebates never reduce the base.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from auto_tax_engine.interpreters import (
    interpret_assessed_value,
    interpret_taxable_add_ons,
)
from auto_tax_engine.models import (
    ZERO,
    LeaseTaxInput,
    TaxBaseBreakdown,
    TaxCalculationInput,
    TaxCalculationResult,
    TaxDebug,
    round_money,
    single_component,
    upfront_only_lease_breakdown,
)
from auto_tax_engine.reciprocity import apply_reciprocity
from auto_tax_engine.rules import (
    PRIVILEGE_EXTRAS_KEY,
    PrivilegeTaxConfig,
    TaxRulesConfig,
)


def privilege_rate_for_class(
    cfg: PrivilegeTaxConfig, vehicle_class: Optional[str]
) -> tuple[Decimal, str]:
    """Class rate from the table, falling back to the base rate."""
    if vehicle_class is None:
        return cfg.base_rate, f"base rate {cfg.base_rate * 100:.2f}% (no vehicle class)"
    rate = cfg.vehicle_class_rates.get(vehicle_class)
    if rate is None:
        return cfg.base_rate, (
            f"base rate {cfg.base_rate * 100:.2f}% "
            f"(no rate for vehicle class '{vehicle_class}')"
        )
    return rate, f"vehicle class '{vehicle_class}' rate {rate * 100:.2f}%"


def calculate_privilege_tax(
    deal: TaxCalculationInput, rules: TaxRulesConfig
) -> TaxCalculationResult:
    cfg: PrivilegeTaxConfig = rules.require_extra(PRIVILEGE_EXTRAS_KEY, PrivilegeTaxConfig)
    notes = [f"{rules.state_code} privilege tax: charged at titling"]

    if isinstance(deal, LeaseTaxInput):
        price = deal.gross_cap_cost or deal.vehicle_price
        notes.append(f"Privilege base (lease): gross cap cost ${price:,.2f}")
    else:
        price = deal.vehicle_price
        notes.append(f"Privilege base (retail): vehicle price ${price:,.2f}")

    vehicle, valuation_notes = interpret_assessed_value(
        price,
        deal.assessed_value,
        cfg.use_assessed_value,
        cfg.use_higher_of_price_or_assessed,
    )
    notes.extend(f"Privilege: {n}" for n in valuation_notes)

    applied_trade_in = ZERO
    if deal.trade_in_value > 0:
        if cfg.allow_trade_in_credit:
            applied_trade_in = min(deal.trade_in_value, vehicle)
            vehicle -= applied_trade_in
            notes.append(f"Privilege: full trade-in credit ${applied_trade_in:,.2f}")
        else:
            notes.append(
                f"Privilege: trade-in ${deal.trade_in_value:,.2f} not credited "
                f"(trade-in credit disabled)"
            )

    rebates_taxable = deal.rebate_manufacturer + deal.rebate_dealer
    if rebates_taxable > 0:
        notes.append(
            f"Privilege: rebates ${rebates_taxable:,.2f} are taxable, base not reduced"
        )

    if deal.negative_equity > 0:
        if cfg.apply_negative_equity_to_base:
            vehicle += deal.negative_equity
            notes.append(f"Privilege: added negative equity ${deal.negative_equity:,.2f}")
        else:
            notes.append(
                f"Privilege: negative equity ${deal.negative_equity:,.2f} not added to base"
            )

    add_ons = interpret_taxable_add_ons(deal, rules)
    notes.extend(f"Privilege: {n}" for n in add_ons.notes)

    products = add_ons.products_base
    if rules.tax_on_accessories and deal.accessories_amount > 0:
        products += deal.accessories_amount
        notes.append(f"Privilege: added accessories ${deal.accessories_amount:,.2f}")

    bases = TaxBaseBreakdown(
        vehicle_base=max(ZERO, vehicle),
        fees_base=add_ons.fees_base,
        products_base=products,
    )
    base = bases.total_taxable_base

    rate, rate_note = privilege_rate_for_class(cfg, deal.vehicle_class)
    notes.append(f"Privilege: {rate_note}")

    raw_tax = round_money(base * rate)
    notes.append(f"Privilege: ${base:,.2f} x {rate * 100:.2f}% = ${raw_tax:,.2f}")

    reciprocity = apply_reciprocity(raw_tax, deal, rules, cap_at_tax=True)
    notes.extend(reciprocity.notes)

    taxes = single_component(
        f"{rules.state_code}_PRIVILEGE", rate, reciprocity.final_tax
    )
    debug = TaxDebug(
        applied_trade_in=applied_trade_in,
        applied_rebates_taxable=rebates_taxable,
        taxable_doc_fee=add_ons.taxable_doc_fee,
        taxable_fees=add_ons.taxable_fees,
        taxable_service_contracts=add_ons.taxable_service_contracts,
        taxable_gap=add_ons.taxable_gap,
        reciprocity_credit=reciprocity.credit,
        notes=tuple(notes),
    )

    lease_breakdown = None
    if isinstance(deal, LeaseTaxInput):
        lease_breakdown = upfront_only_lease_breakdown(base, taxes, deal.payment_count)

    return TaxCalculationResult(
        mode=deal.deal_type,
        state_code=rules.state_code,
        rules_version=rules.version,
        bases=bases,
        taxes=taxes,
        debug=debug,
        lease_breakdown=lease_breakdown,
    )
