#!/usr/bin/env python3
"""
Quick Start Example
===================

Quotes a retail deal in Indiana and a highway use tax deal in North
Carolina, then prints the totals and the audit trail.

Usage:
    python examples/quick_start.py
"""

from datetime import date
from decimal import Decimal

from auto_tax_engine.calculator import TaxCalculator
from auto_tax_engine.catalog import StateRulesCatalog
from auto_tax_engine.models import FeeItem, RetailTaxInput


def main() -> None:
    catalog = StateRulesCatalog()
    calculator = TaxCalculator(catalog)

    # Indiana: flat 7% state rate, full trade-in credit
    deal = RetailTaxInput(
        state_code="IN",
        as_of_date=date.today(),
        vehicle_price=Decimal("35000"),
        accessories_amount=Decimal("2000"),
        trade_in_value=Decimal("10000"),
        rebate_manufacturer=Decimal("2000"),
        rebate_dealer=Decimal("500"),
        doc_fee=Decimal("200"),
        other_fees=(FeeItem("TITLE", Decimal("31")), FeeItem("REG", Decimal("50"))),
        service_contracts=Decimal("2500"),
        gap=Decimal("800"),
        rates=catalog.default_rates("IN"),
    )
    result = calculator.calculate(deal)

    print(f"State:          {result.state_code}")
    print(f"Vehicle Base:   ${result.bases.vehicle_base:,.2f}")
    print(f"Fees Base:      ${result.bases.fees_base:,.2f}")
    print(f"Products Base:  ${result.bases.products_base:,.2f}")
    print(f"Taxable Base:   ${result.bases.total_taxable_base:,.2f}")
    print(f"Total Tax:      ${result.total_tax:,.2f}")

    # North Carolina: 3% highway use tax instead of sales tax
    print("\n--- Highway Use Tax ---")
    hut_deal = RetailTaxInput(
        state_code="NC",
        as_of_date=date.today(),
        vehicle_price=Decimal("30000"),
        trade_in_value=Decimal("5000"),
        rebate_manufacturer=Decimal("1000"),
        rebate_dealer=Decimal("500"),
        doc_fee=Decimal("200"),
    )
    hut_result = calculator.calculate(hut_deal)
    print(f"HUT Base:       ${hut_result.bases.total_taxable_base:,.2f}")
    print(f"HUT:            ${hut_result.total_tax:,.2f}")
    for note in hut_result.debug.notes:
        print(f"  * {note}")


if __name__ == "__main__":
    main()
