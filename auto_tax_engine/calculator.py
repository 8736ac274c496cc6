"""
Vehicle tax calculation engine.

Handles:
- Dispatch between generic sales tax and special title-tax schemes
- Generic retail taxable base construction
- Generic lease taxation (monthly, full upfront, hybrid)
- Reciprocity credit with proportional component re-scaling
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Callable, Optional

from auto_tax_engine.catalog import StateRulesCatalog
from auto_tax_engine.highway_use import calculate_highway_use
from auto_tax_engine.interpreters import (
    apply_cap_and_floor,
    interpret_fee_taxability,
    interpret_lease_special_scheme,
    interpret_taxable_add_ons,
    interpret_trade_in_policy,
    interpret_vehicle_tax_scheme,
    is_doc_fee_taxable,
    is_rebate_taxable,
)
from auto_tax_engine.models import (
    ZERO,
    DealType,
    FeeItem,
    LeaseTaxBreakdown,
    LeaseTaxInput,
    RetailTaxInput,
    TaxAmountBreakdown,
    TaxBaseBreakdown,
    TaxCalculationInput,
    TaxCalculationResult,
    TaxDebug,
    apply_tax_rates,
    redistribute_tax,
)
from auto_tax_engine.privilege import calculate_privilege_tax
from auto_tax_engine.reciprocity import apply_reciprocity
from auto_tax_engine.rules import (
    LeaseMethod,
    LeaseRebateBehavior,
    LeaseTradeInCredit,
    MissingSchemeConfigError,
    RebateSource,
    TaxRulesConfig,
    VehicleTaxScheme,
)
from auto_tax_engine.title_ad_valorem import calculate_title_ad_valorem

logger = logging.getLogger(__name__)

SchemeCalculator = Callable[[TaxCalculationInput, TaxRulesConfig], TaxCalculationResult]

_SPECIAL_SCHEMES: dict[VehicleTaxScheme, SchemeCalculator] = {
    VehicleTaxScheme.SPECIAL_TAVT: calculate_title_ad_valorem,
    VehicleTaxScheme.SPECIAL_HUT: calculate_highway_use,
    VehicleTaxScheme.DMV_PRIVILEGE_TAX: calculate_privilege_tax,
}


def _money(amount: Decimal) -> str:
    return f"${amount:,.2f}"


def calculate_tax(
    deal: TaxCalculationInput, rules: TaxRulesConfig
) -> TaxCalculationResult:
    """
    Calculate tax for one deal under one state's rules.

    Special schemes (TAVT, HUT, privilege tax) go to their own
    calculators; everything else runs the generic retail or lease
    pipeline. Pure: no I/O and no shared state beyond logging.
    """
    logger.debug(
        "tax_calculation_started",
        extra={
            "state_code": rules.state_code,
            "deal_type": deal.deal_type.value,
            "scheme": rules.vehicle_tax_scheme.value,
        },
    )

    special = _SPECIAL_SCHEMES.get(rules.vehicle_tax_scheme)
    try:
        if special is not None:
            result = special(deal, rules)
        elif isinstance(deal, LeaseTaxInput):
            result = calculate_lease_tax(deal, rules)
        else:
            result = calculate_retail_tax(deal, rules)
    except MissingSchemeConfigError:
        logger.error(
            "missing_scheme_config",
            extra={
                "state_code": rules.state_code,
                "scheme": rules.vehicle_tax_scheme.value,
            },
        )
        raise

    logger.info(
        "tax_calculation_completed",
        extra={
            "state_code": rules.state_code,
            "deal_type": deal.deal_type.value,
            "total_tax": str(result.total_tax),
            "reciprocity_credit": str(result.debug.reciprocity_credit),
        },
    )
    return result


# ---------------------------------------------------------------------------
# Generic retail
# ---------------------------------------------------------------------------


def calculate_retail_tax(
    deal: RetailTaxInput, rules: TaxRulesConfig
) -> TaxCalculationResult:
    notes: list[str] = []

    vehicle = deal.vehicle_price
    notes.append(f"Vehicle price: {_money(vehicle)}")

    if rules.tax_on_accessories and deal.accessories_amount > 0:
        vehicle += deal.accessories_amount
        notes.append(f"Accessories taxable: +{_money(deal.accessories_amount)}")

    if rules.tax_on_negative_equity and deal.negative_equity > 0:
        vehicle += deal.negative_equity
        notes.append(f"Negative equity taxable: +{_money(deal.negative_equity)}")

    trade_in = interpret_trade_in_policy(rules.trade_in_policy, deal.trade_in_value)
    notes.extend(trade_in.notes)
    applied_trade_in = apply_cap_and_floor(trade_in.amount, cap=vehicle)
    vehicle = max(ZERO, vehicle - applied_trade_in)

    rebates_taxable = ZERO
    rebates_non_taxable = ZERO
    for source, amount in (
        (RebateSource.MANUFACTURER, deal.rebate_manufacturer),
        (RebateSource.DEALER, deal.rebate_dealer),
    ):
        if amount <= 0:
            continue
        label = source.value.lower()
        if is_rebate_taxable(source, rules):
            rebates_taxable += amount
            notes.append(f"Rebate ({label}) {_money(amount)} taxable, base not reduced")
        else:
            rebates_non_taxable += amount
            vehicle = max(ZERO, vehicle - amount)
            notes.append(f"Rebate ({label}) {_money(amount)} non-taxable, reduces base")

    add_ons = interpret_taxable_add_ons(deal, rules)
    notes.extend(add_ons.notes)

    bases = TaxBaseBreakdown(
        vehicle_base=vehicle,
        fees_base=add_ons.fees_base,
        products_base=add_ons.products_base,
    )

    scheme = interpret_vehicle_tax_scheme(rules.vehicle_tax_scheme, deal.rates)
    notes.extend(scheme.notes)

    raw_taxes = apply_tax_rates(bases.total_taxable_base, scheme.effective_rates)
    notes.append(
        f"Taxable base {_money(bases.total_taxable_base)}, "
        f"raw tax {_money(raw_taxes.total_tax)}"
    )

    reciprocity = apply_reciprocity(raw_taxes.total_tax, deal, rules)
    notes.extend(reciprocity.notes)
    taxes = redistribute_tax(raw_taxes, reciprocity.final_tax)

    if deal.tax_already_collected > 0:
        notes.append(
            f"Tax already collected: {_money(deal.tax_already_collected)} (informational)"
        )

    return TaxCalculationResult(
        mode=DealType.RETAIL,
        state_code=rules.state_code,
        rules_version=rules.version,
        bases=bases,
        taxes=taxes,
        debug=TaxDebug(
            applied_trade_in=applied_trade_in,
            applied_rebates_non_taxable=rebates_non_taxable,
            applied_rebates_taxable=rebates_taxable,
            taxable_doc_fee=add_ons.taxable_doc_fee,
            taxable_fees=add_ons.taxable_fees,
            taxable_service_contracts=add_ons.taxable_service_contracts,
            taxable_gap=add_ons.taxable_gap,
            reciprocity_credit=reciprocity.credit,
            notes=tuple(notes),
        ),
    )


# ---------------------------------------------------------------------------
# Generic lease
# ---------------------------------------------------------------------------


def _lease_trade_in(
    deal: LeaseTaxInput, rules: TaxRulesConfig, base: Decimal, notes: list[str]
) -> tuple[Decimal, Decimal]:
    """Return ``(applied_trade_in, base)`` after the lease trade-in mode."""
    amount = deal.lease_trade_in_amount
    mode = rules.lease_rules.trade_in_credit

    if mode is LeaseTradeInCredit.NONE or amount <= 0:
        if amount > 0:
            notes.append(f"Lease trade-in {_money(amount)}: no credit")
        return ZERO, base

    if mode is LeaseTradeInCredit.APPLIED_TO_PAYMENT:
        notes.append(
            f"Lease trade-in {_money(amount)} applied to payment, cap cost base unchanged"
        )
        return amount, base

    if mode is LeaseTradeInCredit.FOLLOW_RETAIL_RULE:
        credit = interpret_trade_in_policy(rules.trade_in_policy, amount)
        notes.extend(f"Lease (retail rule) {n}" for n in credit.notes)
        amount = credit.amount
    else:
        notes.append(f"Lease trade-in credit ({mode.value}): {_money(amount)}")

    applied = apply_cap_and_floor(amount, cap=base)
    return applied, base - applied


def _lease_rebates(
    deal: LeaseTaxInput, rules: TaxRulesConfig, base: Decimal, notes: list[str]
) -> tuple[Decimal, Decimal, Decimal]:
    """Return ``(taxable, non_taxable, base)`` after the lease rebate behavior."""
    behavior = rules.lease_rules.rebate_behavior
    taxable = ZERO
    non_taxable = ZERO

    for source, amount in (
        (RebateSource.MANUFACTURER, deal.lease_rebate_manufacturer),
        (RebateSource.DEALER, deal.lease_rebate_dealer),
    ):
        if amount <= 0:
            continue
        if behavior is LeaseRebateBehavior.FOLLOW_RETAIL_RULE:
            is_taxable = is_rebate_taxable(source, rules)
        else:
            is_taxable = behavior is LeaseRebateBehavior.ALWAYS_TAXABLE

        label = source.value.lower()
        if is_taxable:
            taxable += amount
            notes.append(f"Lease rebate ({label}) {_money(amount)} taxable")
        else:
            non_taxable += amount
            base = max(ZERO, base - amount)
            notes.append(f"Lease rebate ({label}) {_money(amount)} non-taxable, reduces base")

    return taxable, non_taxable, base


def _lease_fees(
    deal: LeaseTaxInput, rules: TaxRulesConfig, notes: list[str]
) -> tuple[Decimal, list[FeeItem]]:
    """Return ``(taxable_doc_fee, taxable_fees)`` for the upfront fee base."""
    lease_rules = rules.lease_rules

    doc_fee = ZERO
    if deal.doc_fee > 0:
        if is_doc_fee_taxable(DealType.LEASE, rules):
            doc_fee = deal.doc_fee
            notes.append(
                f"Lease doc fee {_money(doc_fee)} taxable "
                f"({lease_rules.doc_fee_taxability.value})"
            )
        else:
            notes.append(f"Lease doc fee {_money(deal.doc_fee)} not taxable")

    title_rules = {r.code: r for r in lease_rules.title_fee_rules}
    fees: list[FeeItem] = []
    for fee in deal.other_fees:
        title_rule = title_rules.get(fee.code)
        taxable, fallback = interpret_fee_taxability(fee.code, DealType.LEASE, rules)
        if title_rule is not None:
            taxable = taxable or title_rule.taxable
        elif fallback:
            notes.append(fallback)

        if not taxable:
            continue
        if title_rule is not None and not title_rule.included_in_upfront:
            notes.append(f"Lease fee {fee.code} taxable but not collected upfront")
            continue
        fees.append(fee)
        notes.append(f"Lease fee {fee.code} {_money(fee.amount)} taxable upfront")

    return doc_fee, fees


def calculate_lease_tax(
    deal: LeaseTaxInput, rules: TaxRulesConfig
) -> TaxCalculationResult:
    lease_rules = rules.lease_rules
    notes = [
        f"Lease method: {lease_rules.method.value}",
        f"Gross cap cost: {_money(deal.gross_cap_cost)}",
    ]

    applied_trade_in, vehicle = _lease_trade_in(deal, rules, deal.gross_cap_cost, notes)
    rebates_taxable, rebates_non_taxable, vehicle = _lease_rebates(
        deal, rules, vehicle, notes
    )

    if lease_rules.negative_equity_taxable and deal.negative_equity > 0:
        vehicle += deal.negative_equity
        notes.append(f"Lease negative equity taxable: +{_money(deal.negative_equity)}")

    doc_fee, fees = _lease_fees(deal, rules, notes)

    lease_fee_table = {r.code: r.taxable for r in lease_rules.fee_tax_rules}
    service_contracts = (
        deal.service_contracts if lease_fee_table.get("SERVICE_CONTRACT") else ZERO
    )
    gap = deal.gap if lease_fee_table.get("GAP") else ZERO

    adjustments = interpret_lease_special_scheme(
        lease_rules.special_scheme,
        deal.gross_cap_cost,
        deal.base_payment,
        deal.payment_count,
    )
    notes.extend(adjustments.notes)
    for special in adjustments.special_fees:
        notes.append(f"Special fee ({special.code}): {_money(special.amount)}")

    fees_base = (
        doc_fee
        + sum((f.amount for f in fees), ZERO)
        + sum((f.amount for f in adjustments.special_fees), ZERO)
        + adjustments.upfront_adjustment
    )
    products_base = service_contracts + gap
    bases = TaxBaseBreakdown(
        vehicle_base=vehicle, fees_base=fees_base, products_base=products_base
    )

    scheme = interpret_vehicle_tax_scheme(rules.vehicle_tax_scheme, deal.rates)
    notes.extend(scheme.notes)
    rates = scheme.effective_rates

    if lease_rules.method is LeaseMethod.FULL_UPFRONT:
        upfront_base = bases.total_taxable_base
        payment_base = ZERO
        notes.append(f"Full upfront: tax on {_money(upfront_base)} at signing")
    else:
        upfront_base = fees_base + products_base
        payment_base = deal.base_payment + adjustments.monthly_adjustment
        notes.append(
            f"Upfront base (fees and products): {_money(upfront_base)}; "
            f"per-payment base: {_money(payment_base)}"
        )

    upfront_taxes = apply_tax_rates(upfront_base, rates)
    if lease_rules.method is LeaseMethod.FULL_UPFRONT:
        payment_taxes = TaxAmountBreakdown()
    else:
        payment_taxes = apply_tax_rates(payment_base, rates)

    reciprocity = apply_reciprocity(upfront_taxes.total_tax, deal, rules)
    notes.extend(reciprocity.notes)
    adjusted_upfront = redistribute_tax(upfront_taxes, reciprocity.final_tax)

    breakdown = LeaseTaxBreakdown(
        upfront_taxable_base=upfront_base,
        upfront_taxes=adjusted_upfront,
        payment_taxable_base_per_period=payment_base,
        payment_taxes_per_period=payment_taxes,
        payment_count=deal.payment_count,
    )
    notes.append(
        f"Total lease tax over term: {_money(breakdown.total_tax_over_term)} "
        f"({deal.payment_count} payments)"
    )

    return TaxCalculationResult(
        mode=DealType.LEASE,
        state_code=rules.state_code,
        rules_version=rules.version,
        bases=bases,
        taxes=adjusted_upfront,
        debug=TaxDebug(
            applied_trade_in=applied_trade_in,
            applied_rebates_non_taxable=rebates_non_taxable,
            applied_rebates_taxable=rebates_taxable,
            taxable_doc_fee=doc_fee,
            taxable_fees=tuple(fees),
            taxable_service_contracts=service_contracts,
            taxable_gap=gap,
            reciprocity_credit=reciprocity.credit,
            notes=tuple(notes),
        ),
        lease_breakdown=breakdown,
    )


# ---------------------------------------------------------------------------
# Catalog-backed calculator
# ---------------------------------------------------------------------------


class TaxCalculator:
    """Looks up a deal's state rules in a catalog and calculates its tax."""

    def __init__(self, catalog: Optional[StateRulesCatalog] = None) -> None:
        self.catalog = catalog or StateRulesCatalog()

    def calculate(self, deal: TaxCalculationInput) -> TaxCalculationResult:
        rules = self.catalog.get_rules(deal.state_code)
        return calculate_tax(deal, rules)

    def calculate_batch(
        self, deals: list[TaxCalculationInput]
    ) -> list[TaxCalculationResult]:
        return [self.calculate(d) for d in deals]
