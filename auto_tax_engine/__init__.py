"""
Auto Tax Engine
===============

Vehicle retail and lease tax calculation across US state tax regimes:
declarative per-state rules, generic sales tax pipelines, and dedicated
calculators for title ad valorem, highway use and privilege taxes.

Modules:
    rates            - Rate component construction from jurisdiction breakdowns
    models           - Deal inputs, calculation results and result assembly
    rules            - Per-state tax rule configuration
    context          - Governing-state resolution for multi-state deals
    interpreters     - Pure policy interpreters
    reciprocity      - Cross-state tax credit
    calculator       - Dispatcher plus generic retail and lease pipelines
    title_ad_valorem - Title ad valorem tax (TAVT) calculator
    highway_use      - Highway use tax (HUT) calculator
    privilege        - Privilege tax calculator
    catalog          - Sample state rule catalog
    report_generator - Quote reporting with CSV/JSON export
    cli              - Command-line interface
"""

__version__ = "1.0.0"

from auto_tax_engine.calculator import TaxCalculator, calculate_tax
from auto_tax_engine.catalog import StateRulesCatalog
from auto_tax_engine.context import resolve_tax_context
from auto_tax_engine.models import (
    LeaseTaxInput,
    RetailTaxInput,
    TaxCalculationResult,
    deal_input_from_dict,
)
from auto_tax_engine.rates import (
    build_rate_components_from_breakdown,
    build_rate_components_from_local_info,
)
from auto_tax_engine.report_generator import ReportGenerator
from auto_tax_engine.rules import MissingSchemeConfigError, TaxRulesConfig

__all__ = [
    "TaxCalculator",
    "calculate_tax",
    "StateRulesCatalog",
    "resolve_tax_context",
    "LeaseTaxInput",
    "RetailTaxInput",
    "TaxCalculationResult",
    "deal_input_from_dict",
    "build_rate_components_from_breakdown",
    "build_rate_components_from_local_info",
    "ReportGenerator",
    "MissingSchemeConfigError",
    "TaxRulesConfig",
]
