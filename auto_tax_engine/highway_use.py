"""
Highway use tax (HUT).

A flat state-only rate charged at titling (North Carolina style). Local
rate components are ignored. Reciprocity credit is only granted when
the origin state's tax was paid within a configured number of days.
"""

from __future__ import annotations

from auto_tax_engine.interpreters import interpret_taxable_add_ons
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
from auto_tax_engine.rules import HUT_EXTRAS_KEY, HighwayUseConfig, TaxRulesConfig


def calculate_highway_use(
    deal: TaxCalculationInput, rules: TaxRulesConfig
) -> TaxCalculationResult:
    cfg: HighwayUseConfig = rules.require_extra(HUT_EXTRAS_KEY, HighwayUseConfig)
    notes = [f"{rules.state_code} HUT: highway use tax, state rate only"]

    if isinstance(deal, LeaseTaxInput):
        vehicle = deal.gross_cap_cost or deal.vehicle_price
        notes.append(f"HUT base (lease): gross cap cost ${vehicle:,.2f}")
    else:
        vehicle = deal.vehicle_price
        notes.append(f"HUT base (retail): vehicle price ${vehicle:,.2f}")

    applied_trade_in = ZERO
    if deal.trade_in_value > 0:
        if cfg.include_trade_in_reduction:
            applied_trade_in = min(deal.trade_in_value, vehicle)
            vehicle -= applied_trade_in
            notes.append(f"HUT: full trade-in credit ${applied_trade_in:,.2f}")
        else:
            notes.append(
                f"HUT: trade-in ${deal.trade_in_value:,.2f} not credited "
                f"(trade-in reduction disabled)"
            )

    rebates_non_taxable = ZERO
    if deal.rebate_manufacturer > 0:
        rebates_non_taxable = min(deal.rebate_manufacturer, vehicle)
        vehicle -= rebates_non_taxable
        notes.append(
            f"HUT: manufacturer rebate ${rebates_non_taxable:,.2f} reduces base"
        )

    rebates_taxable = deal.rebate_dealer
    if rebates_taxable > 0:
        notes.append(
            f"HUT: dealer rebate ${rebates_taxable:,.2f} is taxable, base not reduced"
        )

    if rules.tax_on_negative_equity and deal.negative_equity > 0:
        vehicle += deal.negative_equity
        notes.append(f"HUT: added negative equity ${deal.negative_equity:,.2f}")

    add_ons = interpret_taxable_add_ons(deal, rules)
    notes.extend(f"HUT: {n}" for n in add_ons.notes)

    products = add_ons.products_base
    if rules.tax_on_accessories and deal.accessories_amount > 0:
        products += deal.accessories_amount
        notes.append(f"HUT: added accessories ${deal.accessories_amount:,.2f}")

    bases = TaxBaseBreakdown(
        vehicle_base=max(ZERO, vehicle),
        fees_base=add_ons.fees_base,
        products_base=products,
    )
    base = bases.total_taxable_base
    raw_tax = round_money(base * cfg.base_rate)
    notes.append(f"HUT: ${base:,.2f} x {cfg.base_rate * 100:.2f}% = ${raw_tax:,.2f}")

    reciprocity = apply_reciprocity(
        raw_tax,
        deal,
        rules,
        cap_at_tax=True,
        max_age_days=cfg.max_reciprocity_age_days,
    )
    notes.extend(reciprocity.notes)

    taxes = single_component(
        f"{rules.state_code}_HUT", cfg.base_rate, reciprocity.final_tax
    )
    debug = TaxDebug(
        applied_trade_in=applied_trade_in,
        applied_rebates_non_taxable=rebates_non_taxable,
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
