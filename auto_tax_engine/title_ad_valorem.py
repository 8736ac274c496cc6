"""
Title ad valorem tax (TAVT).

A one-time tax charged at titling in place of sales tax (Georgia
style). It applies to the vehicle value only: doc fees, itemized fees
and F&I products never enter the base. Leases are taxed once, upfront.
"""

from __future__ import annotations

from auto_tax_engine.interpreters import interpret_assessed_value
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
    TAVT_EXTRAS_KEY,
    TavtLeaseBaseMode,
    TaxRulesConfig,
    TitleAdValoremConfig,
    TradeInScope,
)


def calculate_title_ad_valorem(
    deal: TaxCalculationInput, rules: TaxRulesConfig
) -> TaxCalculationResult:
    cfg: TitleAdValoremConfig = rules.require_extra(TAVT_EXTRAS_KEY, TitleAdValoremConfig)
    notes = [f"{rules.state_code} TAVT: one-time title ad valorem tax on vehicle value"]

    if isinstance(deal, LeaseTaxInput):
        if cfg.lease_base_mode is TavtLeaseBaseMode.CAP_COST:
            price = deal.gross_cap_cost or deal.vehicle_price
            notes.append(f"TAVT base (lease): gross cap cost ${price:,.2f}")
        else:
            price = deal.vehicle_price
            notes.append(
                f"TAVT base (lease, {cfg.lease_base_mode.value}): "
                f"vehicle price ${price:,.2f}"
            )
    else:
        price = deal.vehicle_price
        notes.append(f"TAVT base (retail): vehicle price ${price:,.2f}")

    base, valuation_notes = interpret_assessed_value(
        price,
        deal.assessed_value,
        cfg.use_assessed_value,
        cfg.use_higher_of_price_or_assessed,
    )
    notes.extend(f"TAVT: {n}" for n in valuation_notes)

    applied_trade_in = ZERO
    if deal.trade_in_value > 0:
        if cfg.allow_trade_in_credit:
            applied_trade_in = min(deal.trade_in_value, base)
            base -= applied_trade_in
            if cfg.trade_in_applies_to is TradeInScope.VEHICLE_ONLY:
                notes.append(
                    f"TAVT: trade-in credit ${applied_trade_in:,.2f} against vehicle value"
                )
            else:
                # FULL scope has no extra effect while fees stay outside the base
                notes.append(
                    f"TAVT: full-transaction trade-in credit ${applied_trade_in:,.2f} "
                    f"(same effect as vehicle-only)"
                )
        else:
            notes.append(
                f"TAVT: trade-in ${deal.trade_in_value:,.2f} not credited "
                f"(trade-in credit disabled)"
            )

    if deal.negative_equity > 0:
        if cfg.apply_negative_equity_to_base:
            base += deal.negative_equity
            notes.append(f"TAVT: added negative equity ${deal.negative_equity:,.2f}")
        else:
            notes.append(
                f"TAVT: negative equity ${deal.negative_equity:,.2f} not added to base"
            )

    base = max(ZERO, base)
    notes.append("TAVT: doc fee, itemized fees and F&I products excluded from base")

    raw_tax = round_money(base * cfg.default_rate)
    notes.append(
        f"TAVT: ${base:,.2f} x {cfg.default_rate * 100:.2f}% = ${raw_tax:,.2f}"
    )

    reciprocity = apply_reciprocity(raw_tax, deal, rules, cap_at_tax=True)
    notes.extend(reciprocity.notes)

    taxes = single_component(
        f"{rules.state_code}_TAVT", cfg.default_rate, reciprocity.final_tax
    )
    bases = TaxBaseBreakdown(vehicle_base=base, fees_base=ZERO, products_base=ZERO)
    debug = TaxDebug(
        applied_trade_in=applied_trade_in,
        applied_rebates_taxable=deal.rebate_manufacturer + deal.rebate_dealer,
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
