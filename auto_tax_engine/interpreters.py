"""
Policy interpreters.

Each interpreter turns one enumerable policy value from a
``TaxRulesConfig`` plus numeric context into a concrete effect and a
list of human-readable notes. Interpreters are pure: no logging, no
mutation of their inputs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from auto_tax_engine.models import (
    ZERO,
    DealType,
    FeeItem,
    TaxCalculationInput,
    round_money,
)
from auto_tax_engine.rates import STATE_LABEL, RateComponent
from auto_tax_engine.rules import (
    DocFeeTaxability,
    LeaseSpecialScheme,
    RebateSource,
    TaxRulesConfig,
    TradeInPolicy,
    TradeInPolicyType,
    VehicleTaxScheme,
)

NJ_LUXURY_THRESHOLD = Decimal("45000")
NJ_LUXURY_RATE = Decimal("0.004")
NJ_LUXURY_FEE_CODE = "NJ_LUXURY_TAX"


def _money(amount: Decimal) -> str:
    return f"${amount:,.2f}"


@dataclass(frozen=True)
class TradeInCredit:
    amount: Decimal
    notes: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class SchemeRates:
    effective_rates: tuple[RateComponent, ...]
    notes: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class LeaseSchemeAdjustments:
    upfront_adjustment: Decimal = ZERO
    monthly_adjustment: Decimal = ZERO
    special_fees: tuple[FeeItem, ...] = ()
    notes: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Trade-in
# ---------------------------------------------------------------------------


def interpret_trade_in_policy(
    policy: TradeInPolicy, trade_in_value: Decimal
) -> TradeInCredit:
    """Return the trade-in credit a policy allows. Never negative."""
    value = max(trade_in_value, ZERO)

    if policy.type is TradeInPolicyType.NONE:
        return TradeInCredit(ZERO, ["Trade-in policy: no credit allowed"])

    if policy.type is TradeInPolicyType.FULL:
        return TradeInCredit(value, [f"Trade-in policy: full credit of {_money(value)}"])

    if policy.type is TradeInPolicyType.CAPPED:
        cap = policy.cap_amount if policy.cap_amount is not None else ZERO
        credit = min(value, cap)
        return TradeInCredit(
            credit,
            [f"Trade-in policy: capped at {_money(cap)}, applied {_money(credit)}"],
        )

    percent = policy.percent if policy.percent is not None else ZERO
    credit = round_money(value * percent)
    shown = (percent * 100).normalize()
    return TradeInCredit(
        max(credit, ZERO),
        [f"Trade-in policy: {shown:f}% credit, applied {_money(credit)}"],
    )


# ---------------------------------------------------------------------------
# Vehicle tax scheme
# ---------------------------------------------------------------------------

_SCHEME_NOTES = {
    VehicleTaxScheme.STATE_PLUS_LOCAL: "STATE_PLUS_LOCAL (all jurisdiction rates apply)",
    VehicleTaxScheme.SPECIAL_TAVT: "SPECIAL_TAVT (title ad valorem tax, one-time charge)",
    VehicleTaxScheme.SPECIAL_HUT: "SPECIAL_HUT (highway use tax, special calculation)",
    VehicleTaxScheme.DMV_PRIVILEGE_TAX: "DMV_PRIVILEGE_TAX (privilege tax at titling)",
}


def interpret_vehicle_tax_scheme(
    scheme: VehicleTaxScheme, rates: tuple[RateComponent, ...]
) -> SchemeRates:
    """
    Select the rate components a scheme applies.

    STATE_ONLY keeps only the ``STATE`` component. Every other scheme
    passes the components through; the special schemes are computed by
    their own calculators and are only annotated here.
    """
    if scheme is VehicleTaxScheme.STATE_ONLY:
        state_rates = tuple(r for r in rates if r.label == STATE_LABEL)
        return SchemeRates(
            state_rates,
            ["Vehicle tax scheme: STATE_ONLY (local rates ignored)"],
        )
    return SchemeRates(tuple(rates), [f"Vehicle tax scheme: {_SCHEME_NOTES[scheme]}"])


# ---------------------------------------------------------------------------
# Lease special schemes
# ---------------------------------------------------------------------------

_INFORMATIONAL_LEASE_SCHEMES = {
    LeaseSpecialScheme.NY_MTR: [
        "Lease scheme: NY_MTR (Metropolitan Commuter Transportation District)",
        "NY: MCTD surcharge is carried in the local rate components",
    ],
    LeaseSpecialScheme.PA_LEASE_TAX: [
        "Lease scheme: PA_LEASE_TAX (tax on monthly payments, no upfront)",
    ],
    LeaseSpecialScheme.IL_CHICAGO_COOK: [
        "Lease scheme: IL_CHICAGO_COOK (Chicago/Cook County lease rules)",
        "IL: Chicago lease tax and Cook County rates come from the rate components",
    ],
    LeaseSpecialScheme.TX_LEASE_SPECIAL: [
        "Lease scheme: TX_LEASE_SPECIAL (motor vehicle sales tax)",
    ],
    LeaseSpecialScheme.VA_USAGE: [
        "Lease scheme: VA_USAGE (motor vehicle sales and use tax)",
    ],
    LeaseSpecialScheme.MD_UPFRONT_GAIN: [
        "Lease scheme: MD_UPFRONT_GAIN (tax on upfront gain)",
    ],
    LeaseSpecialScheme.CO_HOME_RULE_LEASE: [
        "Lease scheme: CO_HOME_RULE_LEASE (home-rule city complications)",
        "CO: home-rule cities may apply different lease tax rates",
    ],
}


def interpret_lease_special_scheme(
    scheme: LeaseSpecialScheme,
    gross_cap_cost: Decimal,
    base_payment: Decimal,
    payment_count: int,
) -> LeaseSchemeAdjustments:
    """
    Return the base adjustments and special fees a lease scheme adds.

    Only NJ_LUXURY produces a numeric effect: 0.4% of the capitalized
    cost above $45,000, as a named upfront fee. The remaining schemes
    are informational.
    """
    if scheme is LeaseSpecialScheme.NONE:
        return LeaseSchemeAdjustments()

    if scheme is LeaseSpecialScheme.NJ_LUXURY:
        notes = ["Lease scheme: NJ_LUXURY (luxury vehicle surcharge)"]
        fees: tuple[FeeItem, ...] = ()
        if gross_cap_cost > NJ_LUXURY_THRESHOLD:
            luxury = round_money((gross_cap_cost - NJ_LUXURY_THRESHOLD) * NJ_LUXURY_RATE)
            fees = (FeeItem(NJ_LUXURY_FEE_CODE, luxury),)
            notes.append(
                f"NJ luxury tax: 0.4% on amount over {_money(NJ_LUXURY_THRESHOLD)} "
                f"= {_money(luxury)}"
            )
        return LeaseSchemeAdjustments(special_fees=fees, notes=notes)

    return LeaseSchemeAdjustments(notes=list(_INFORMATIONAL_LEASE_SCHEMES[scheme]))


# ---------------------------------------------------------------------------
# Fee, doc fee and rebate taxability
# ---------------------------------------------------------------------------


def interpret_fee_taxability(
    code: str, deal_type: DealType, rules: TaxRulesConfig
) -> tuple[bool, Optional[str]]:
    """
    Look up a fee code in the retail or lease fee table.

    Returns ``(taxable, note)``. A code missing from the table is
    non-taxable and the note records the fallback.
    """
    table = rules.fee_tax_rules if deal_type is DealType.RETAIL else rules.lease_rules.fee_tax_rules
    for rule in table:
        if rule.code == code:
            return rule.taxable, None
    return False, f"Fee {code}: no {deal_type.value.lower()} tax rule, treated as non-taxable"


def is_doc_fee_taxable(deal_type: DealType, rules: TaxRulesConfig) -> bool:
    if deal_type is DealType.RETAIL:
        return rules.doc_fee_taxable

    taxability = rules.lease_rules.doc_fee_taxability
    if taxability is DocFeeTaxability.FOLLOW_RETAIL_RULE:
        return rules.doc_fee_taxable
    # ONLY_UPFRONT is taxable; the lease pipeline taxes fees upfront anyway
    return taxability in (DocFeeTaxability.ALWAYS, DocFeeTaxability.ONLY_UPFRONT)


def is_rebate_taxable(source: RebateSource, rules: TaxRulesConfig) -> bool:
    """First rule matching the source (or ANY) wins; no rule means non-taxable."""
    for rule in rules.rebates:
        if rule.applies_to is source or rule.applies_to is RebateSource.ANY:
            return rule.taxable
    return False


def apply_cap_and_floor(
    value: Decimal, cap: Optional[Decimal] = None, floor: Decimal = ZERO
) -> Decimal:
    if cap is not None:
        value = min(value, cap)
    return max(value, floor)


# ---------------------------------------------------------------------------
# Fees and F&I products on retail-shaped bases
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TaxableAddOns:
    taxable_doc_fee: Decimal = ZERO
    taxable_fees: tuple[FeeItem, ...] = ()
    taxable_service_contracts: Decimal = ZERO
    taxable_gap: Decimal = ZERO
    notes: list[str] = field(default_factory=list)

    @property
    def fees_base(self) -> Decimal:
        return self.taxable_doc_fee + sum((f.amount for f in self.taxable_fees), ZERO)

    @property
    def products_base(self) -> Decimal:
        return self.taxable_service_contracts + self.taxable_gap


def interpret_taxable_add_ons(
    deal: TaxCalculationInput, rules: TaxRulesConfig
) -> TaxableAddOns:
    """
    Split a deal's doc fee, itemized fees, service contracts and GAP
    into taxable amounts using the state's retail tables and flags.
    """
    notes: list[str] = []

    doc_fee = ZERO
    if deal.doc_fee > 0:
        if is_doc_fee_taxable(DealType.RETAIL, rules):
            doc_fee = deal.doc_fee
            notes.append(f"Doc fee {_money(doc_fee)} is taxable")
        else:
            notes.append(f"Doc fee {_money(deal.doc_fee)} is not taxable")

    fees: list[FeeItem] = []
    for fee in deal.other_fees:
        taxable, note = interpret_fee_taxability(fee.code, DealType.RETAIL, rules)
        if note:
            notes.append(note)
        if taxable:
            fees.append(fee)
            notes.append(f"Fee {fee.code} {_money(fee.amount)} is taxable")

    service_contracts = deal.service_contracts if rules.tax_on_service_contracts else ZERO
    gap = deal.gap if rules.tax_on_gap else ZERO
    if deal.service_contracts > 0:
        notes.append(
            f"Service contracts {_money(deal.service_contracts)} "
            f"{'taxable' if service_contracts else 'not taxable'}"
        )
    if deal.gap > 0:
        notes.append(f"GAP {_money(deal.gap)} {'taxable' if gap else 'not taxable'}")

    return TaxableAddOns(doc_fee, tuple(fees), service_contracts, gap, notes)


# ---------------------------------------------------------------------------
# Assessed value
# ---------------------------------------------------------------------------


def interpret_assessed_value(
    price: Decimal,
    assessed_value: Optional[Decimal],
    use_assessed_value: bool,
    use_higher_of_price_or_assessed: bool,
) -> tuple[Decimal, list[str]]:
    """
    Pick the valuation base for schemes that may tax an assessed value.

    Higher-of takes precedence over use-assessed. Without an assessed
    value the price is kept and the pending valuation is noted.
    """
    if not (use_assessed_value or use_higher_of_price_or_assessed):
        return price, []

    if assessed_value is None:
        return price, [
            "Assessed value configured but not supplied; using price "
            "pending valuation integration"
        ]

    if use_higher_of_price_or_assessed:
        base = max(price, assessed_value)
        return base, [
            f"Valuation: higher of price {_money(price)} and assessed "
            f"{_money(assessed_value)} = {_money(base)}"
        ]

    return assessed_value, [f"Valuation: using assessed value {_money(assessed_value)}"]
