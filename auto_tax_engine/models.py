"""
Deal inputs, calculation results, and shared result assembly.

Inputs are a tagged variant keyed by deal type: ``RetailTaxInput`` and
``LeaseTaxInput``. Lease-only fields exist only on the lease type.

Results are immutable. Totals on the base and amount breakdowns are
derived properties, so a total always equals the sum of its parts.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import ClassVar, Optional, Union

from auto_tax_engine.rates import RateComponent

ZERO = Decimal("0")
_CENT = Decimal("0.01")


class DealType(Enum):
    RETAIL = "RETAIL"
    LEASE = "LEASE"


def round_money(amount: Decimal) -> Decimal:
    """Round to the nearest cent, half up."""
    return amount.quantize(_CENT, rounding=ROUND_HALF_UP)


def _dec(value, default: Decimal = ZERO) -> Decimal:
    if value is None:
        return default
    return Decimal(str(value))


def _parse_date(value) -> Optional[date]:
    if value is None or isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FeeItem:
    """An itemized fee on the deal (title, registration, etc.)."""

    code: str
    amount: Decimal


@dataclass(frozen=True)
class OriginTaxInfo:
    """Tax already paid to another state on the same vehicle."""

    state_code: str
    amount: Decimal
    tax_paid_date: Optional[date] = None
    same_owner: bool = True


@dataclass(frozen=True, kw_only=True)
class _DealInput:
    state_code: str
    as_of_date: date
    vehicle_price: Decimal
    rates: tuple[RateComponent, ...] = ()
    accessories_amount: Decimal = ZERO
    trade_in_value: Decimal = ZERO
    rebate_manufacturer: Decimal = ZERO
    rebate_dealer: Decimal = ZERO
    doc_fee: Decimal = ZERO
    other_fees: tuple[FeeItem, ...] = ()
    service_contracts: Decimal = ZERO
    gap: Decimal = ZERO
    negative_equity: Decimal = ZERO
    tax_already_collected: Decimal = ZERO
    origin_tax_info: Optional[OriginTaxInfo] = None
    vehicle_class: Optional[str] = None
    assessed_value: Optional[Decimal] = None


@dataclass(frozen=True, kw_only=True)
class RetailTaxInput(_DealInput):
    """A retail (purchase) deal."""

    deal_type: ClassVar[DealType] = DealType.RETAIL


@dataclass(frozen=True, kw_only=True)
class LeaseTaxInput(_DealInput):
    """A lease deal. Carries capitalized cost and payment schedule."""

    deal_type: ClassVar[DealType] = DealType.LEASE

    gross_cap_cost: Decimal
    base_payment: Decimal
    payment_count: int
    cap_reduction_cash: Decimal = ZERO
    cap_reduction_trade_in: Decimal = ZERO
    cap_reduction_rebate_manufacturer: Decimal = ZERO
    cap_reduction_rebate_dealer: Decimal = ZERO

    @property
    def lease_trade_in_amount(self) -> Decimal:
        return self.cap_reduction_trade_in or self.trade_in_value

    @property
    def lease_rebate_manufacturer(self) -> Decimal:
        return self.cap_reduction_rebate_manufacturer or self.rebate_manufacturer

    @property
    def lease_rebate_dealer(self) -> Decimal:
        return self.cap_reduction_rebate_dealer or self.rebate_dealer


TaxCalculationInput = Union[RetailTaxInput, LeaseTaxInput]


def deal_input_from_dict(data: dict) -> TaxCalculationInput:
    """
    Build a retail or lease input from a plain mapping (e.g. parsed JSON).

    ``deal_type`` selects the variant and defaults to RETAIL. Lease
    inputs require ``gross_cap_cost``, ``base_payment`` and
    ``payment_count``.
    """
    deal_type = DealType(str(data.get("deal_type", "RETAIL")).upper())

    origin = data.get("origin_tax_info")
    assessed = data.get("assessed_value")
    common = dict(
        state_code=str(data["state_code"]).upper(),
        as_of_date=_parse_date(data.get("as_of_date")) or date.today(),
        vehicle_price=_dec(data["vehicle_price"]),
        rates=tuple(RateComponent.from_dict(r) for r in data.get("rates", [])),
        accessories_amount=_dec(data.get("accessories_amount")),
        trade_in_value=_dec(data.get("trade_in_value")),
        rebate_manufacturer=_dec(data.get("rebate_manufacturer")),
        rebate_dealer=_dec(data.get("rebate_dealer")),
        doc_fee=_dec(data.get("doc_fee")),
        other_fees=tuple(
            FeeItem(code=str(f["code"]), amount=_dec(f["amount"]))
            for f in data.get("other_fees", [])
        ),
        service_contracts=_dec(data.get("service_contracts")),
        gap=_dec(data.get("gap")),
        negative_equity=_dec(data.get("negative_equity")),
        tax_already_collected=_dec(data.get("tax_already_collected")),
        origin_tax_info=(
            OriginTaxInfo(
                state_code=str(origin["state_code"]).upper(),
                amount=_dec(origin["amount"]),
                tax_paid_date=_parse_date(origin.get("tax_paid_date")),
                same_owner=bool(origin.get("same_owner", True)),
            )
            if origin
            else None
        ),
        vehicle_class=data.get("vehicle_class"),
        assessed_value=_dec(assessed) if assessed is not None else None,
    )

    if deal_type is DealType.RETAIL:
        return RetailTaxInput(**common)

    return LeaseTaxInput(
        **common,
        gross_cap_cost=_dec(data["gross_cap_cost"]),
        base_payment=_dec(data["base_payment"]),
        payment_count=int(data["payment_count"]),
        cap_reduction_cash=_dec(data.get("cap_reduction_cash")),
        cap_reduction_trade_in=_dec(data.get("cap_reduction_trade_in")),
        cap_reduction_rebate_manufacturer=_dec(
            data.get("cap_reduction_rebate_manufacturer")
        ),
        cap_reduction_rebate_dealer=_dec(data.get("cap_reduction_rebate_dealer")),
    )


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TaxBaseBreakdown:
    vehicle_base: Decimal
    fees_base: Decimal
    products_base: Decimal

    @property
    def total_taxable_base(self) -> Decimal:
        return self.vehicle_base + self.fees_base + self.products_base


@dataclass(frozen=True)
class ComponentTax:
    label: str
    rate: Decimal
    amount: Decimal


@dataclass(frozen=True)
class TaxAmountBreakdown:
    component_taxes: tuple[ComponentTax, ...] = ()

    @property
    def total_tax(self) -> Decimal:
        return sum((c.amount for c in self.component_taxes), ZERO)


@dataclass(frozen=True)
class LeaseTaxBreakdown:
    upfront_taxable_base: Decimal
    upfront_taxes: TaxAmountBreakdown
    payment_taxable_base_per_period: Decimal
    payment_taxes_per_period: TaxAmountBreakdown
    payment_count: int

    @property
    def total_tax_over_term(self) -> Decimal:
        return (
            self.upfront_taxes.total_tax
            + self.payment_taxes_per_period.total_tax * self.payment_count
        )


@dataclass(frozen=True)
class TaxDebug:
    applied_trade_in: Decimal = ZERO
    applied_rebates_non_taxable: Decimal = ZERO
    applied_rebates_taxable: Decimal = ZERO
    taxable_doc_fee: Decimal = ZERO
    taxable_fees: tuple[FeeItem, ...] = ()
    taxable_service_contracts: Decimal = ZERO
    taxable_gap: Decimal = ZERO
    reciprocity_credit: Decimal = ZERO
    notes: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class TaxCalculationResult:
    """Outcome of one ``calculate_tax`` call."""

    mode: DealType
    state_code: str
    rules_version: int
    bases: TaxBaseBreakdown
    taxes: TaxAmountBreakdown
    debug: TaxDebug
    lease_breakdown: Optional[LeaseTaxBreakdown] = None

    @property
    def total_tax(self) -> Decimal:
        if self.lease_breakdown is not None:
            return self.lease_breakdown.total_tax_over_term
        return self.taxes.total_tax


# ---------------------------------------------------------------------------
# Result assembly
# ---------------------------------------------------------------------------


def apply_tax_rates(
    base: Decimal, rates: tuple[RateComponent, ...]
) -> TaxAmountBreakdown:
    """Apply each rate component to a base, rounding each amount to cents."""
    return TaxAmountBreakdown(
        tuple(
            ComponentTax(label=r.label, rate=r.rate, amount=round_money(base * r.rate))
            for r in rates
        )
    )


def single_component(label: str, rate: Decimal, amount: Decimal) -> TaxAmountBreakdown:
    return TaxAmountBreakdown((ComponentTax(label, rate, round_money(amount)),))


def redistribute_tax(
    raw: TaxAmountBreakdown, final_total: Decimal
) -> TaxAmountBreakdown:
    """
    Scale component amounts so they sum to ``final_total``.

    Each component is scaled by ``final_total / raw.total_tax`` and
    rounded; any residual cent goes to the largest component.
    """
    raw_total = raw.total_tax
    if raw_total == final_total:
        return raw
    if raw_total == 0 or not raw.component_taxes:
        return TaxAmountBreakdown(
            tuple(
                ComponentTax(c.label, c.rate, ZERO) for c in raw.component_taxes
            )
        )

    final_total = round_money(final_total)
    scale = final_total / raw_total
    amounts = [round_money(c.amount * scale) for c in raw.component_taxes]
    residual = final_total - sum(amounts, ZERO)
    if residual:
        largest = max(range(len(amounts)), key=lambda i: amounts[i])
        amounts[largest] += residual

    return TaxAmountBreakdown(
        tuple(
            ComponentTax(c.label, c.rate, amount)
            for c, amount in zip(raw.component_taxes, amounts)
        )
    )


def upfront_only_lease_breakdown(
    upfront_base: Decimal, taxes: TaxAmountBreakdown, payment_count: int
) -> LeaseTaxBreakdown:
    """Lease breakdown for one-time title events: no per-payment tax."""
    return LeaseTaxBreakdown(
        upfront_taxable_base=upfront_base,
        upfront_taxes=taxes,
        payment_taxable_base_per_period=ZERO,
        payment_taxes_per_period=TaxAmountBreakdown(),
        payment_count=payment_count,
    )
