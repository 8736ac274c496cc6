"""
Command-line interface for the Auto Tax Engine.

Provides subcommands for quoting vehicle deal taxes, browsing state
rule profiles, and resolving which state governs a deal.
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich import box

from auto_tax_engine.calculator import calculate_tax
from auto_tax_engine.catalog import StateRulesCatalog
from auto_tax_engine.context import (
    DealPartyInfo,
    RooftopConfig,
    StateOverride,
    TaxPerspective,
    get_involved_states,
    is_multi_state_deal,
    resolve_tax_context,
)
from auto_tax_engine.models import TaxCalculationResult, deal_input_from_dict
from auto_tax_engine.rates import combined_rate
from auto_tax_engine.report_generator import ReportGenerator
from auto_tax_engine.rules import TaxRulesConfig

console = Console()


def _load_json(path: str) -> Any:
    json_path = Path(path)
    if not json_path.exists():
        console.print(f"[red]File not found: {path}[/red]")
        sys.exit(1)
    with open(json_path, encoding="utf-8") as f:
        return json.load(f)


def _result_panel(result: TaxCalculationResult) -> Panel:
    bases = result.bases
    lines = [
        f"[bold]State:[/bold] {result.state_code} (rules v{result.rules_version})",
        f"[bold]Deal Type:[/bold] {result.mode.value}",
        f"[bold]Vehicle Base:[/bold] ${bases.vehicle_base:,.2f}",
        f"[bold]Fees Base:[/bold] ${bases.fees_base:,.2f}",
        f"[bold]Products Base:[/bold] ${bases.products_base:,.2f}",
        f"[bold]Total Taxable:[/bold] ${bases.total_taxable_base:,.2f}",
        f"[bold]Reciprocity Credit:[/bold] ${result.debug.reciprocity_credit:,.2f}",
    ]
    lease = result.lease_breakdown
    if lease is not None:
        lines += [
            f"[bold]Upfront Tax:[/bold] ${lease.upfront_taxes.total_tax:,.2f}",
            f"[bold]Tax per Payment:[/bold] ${lease.payment_taxes_per_period.total_tax:,.2f}"
            f" x {lease.payment_count}",
        ]
    lines.append(f"[bold]Total Tax:[/bold] ${result.total_tax:,.2f}")
    return Panel("\n".join(lines), title="Tax Quote", border_style="blue")


# -----------------------------------------------------------------------
# Subcommand: quote
# -----------------------------------------------------------------------


def cmd_quote(args: argparse.Namespace) -> None:
    """Quote tax for one deal, or a list of deals, from a JSON file."""
    catalog = StateRulesCatalog()
    data = _load_json(args.file)
    deal_dicts = data if isinstance(data, list) else [data]

    rules_override: Optional[TaxRulesConfig] = None
    if args.rules:
        try:
            rules_override = TaxRulesConfig.from_dict(_load_json(args.rules))
        except (KeyError, ValueError) as e:
            console.print(f"[red]Invalid rules file {args.rules}: {e}[/red]")
            sys.exit(1)

    results: list[TaxCalculationResult] = []
    for i, raw in enumerate(deal_dicts):
        try:
            deal = deal_input_from_dict(raw)
            rules = rules_override or catalog.get_rules(deal.state_code)
            if not deal.rates and catalog.find_rules(deal.state_code):
                deal = dataclasses.replace(
                    deal, rates=catalog.default_rates(deal.state_code)
                )
            results.append(calculate_tax(deal, rules))
        except (KeyError, ValueError) as e:
            console.print(f"[red]Deal {i + 1}: {e}[/red]")
            if len(deal_dicts) == 1:
                sys.exit(1)

    for result in results:
        console.print(_result_panel(result))

        table = Table(title="Component Taxes", box=box.SIMPLE)
        table.add_column("Component")
        table.add_column("Rate", justify="right")
        table.add_column("Amount", justify="right", style="bold")
        for c in result.taxes.component_taxes:
            table.add_row(c.label, f"{c.rate:.3%}", f"${c.amount:,.2f}")
        console.print(table)

        if args.notes:
            for note in result.debug.notes:
                console.print(f"  [dim]* {note}[/dim]")
        console.print()

    if args.export_json and results:
        rg = ReportGenerator(args.output_dir or "reports")
        if len(results) == 1:
            report = rg.quote_report(results[0])
        else:
            report = rg.batch_report(results)
        rg.to_json(report, args.export_json)
        console.print(f"[green]JSON exported to {args.export_json}[/green]")


# -----------------------------------------------------------------------
# Subcommand: rules
# -----------------------------------------------------------------------


def cmd_rules(args: argparse.Namespace) -> None:
    """Display rule profiles for one state or the whole catalog."""
    catalog = StateRulesCatalog()

    if args.state:
        rules = catalog.find_rules(args.state)
        if rules is None:
            console.print(f"[red]Unknown state: {args.state}[/red]")
            sys.exit(1)

        lease = rules.lease_rules
        default_rates = catalog.default_rates(rules.state_code)
        rates = ", ".join(f"{r.label} {r.rate:.3%}" for r in default_rates)
        rates += f" (combined {combined_rate(default_rates):.3%})"
        console.print(
            Panel(
                f"[bold]State:[/bold] {catalog.state_name(rules.state_code)} ({rules.state_code})\n"
                f"[bold]Version:[/bold] {rules.version}{' (STUB)' if rules.is_stub else ''}\n"
                f"[bold]Scheme:[/bold] {rules.vehicle_tax_scheme.value}\n"
                f"[bold]Default Rates:[/bold] {rates}\n"
                f"[bold]Trade-in:[/bold] {rules.trade_in_policy.type.value}\n"
                f"[bold]Doc Fee Taxable:[/bold] {'Yes' if rules.doc_fee_taxable else 'No'}\n"
                f"[bold]Service Contracts / GAP:[/bold] "
                f"{'Y' if rules.tax_on_service_contracts else 'N'} / "
                f"{'Y' if rules.tax_on_gap else 'N'}\n"
                f"[bold]Lease:[/bold] {lease.method.value}, trade-in {lease.trade_in_credit.value}, "
                f"scheme {lease.special_scheme.value}\n"
                f"[bold]Reciprocity:[/bold] "
                f"{rules.reciprocity.home_state_behavior.value if rules.reciprocity.enabled else 'None'}",
                title=f"{rules.state_code} Tax Rules",
                border_style="cyan",
            )
        )

        if rules.fee_tax_rules:
            table = Table(title="Fee Taxability", box=box.SIMPLE)
            table.add_column("Code")
            table.add_column("Retail", justify="center")
            for fee in rules.fee_tax_rules:
                table.add_row(fee.code, "Y" if fee.taxable else "")
            console.print(table)

        reciprocal = catalog.reciprocal_states(rules.state_code)
        if reciprocal:
            table = Table(title="Reciprocal States", box=box.SIMPLE)
            table.add_column("Origin")
            table.add_column("Mode")
            table.add_column("Restricted", justify="center")
            for state in reciprocal:
                table.add_row(
                    state.state_code,
                    state.mode.value,
                    "Y" if state.has_restrictions else "",
                )
            console.print(table)

    else:
        table = Table(title="State Tax Rule Catalog", box=box.ROUNDED)
        table.add_column("State", style="bold")
        table.add_column("Name")
        table.add_column("Scheme")
        table.add_column("Lease")
        table.add_column("Reciprocity", justify="center")
        table.add_column("Version", justify="right")

        for code in catalog.all_state_codes():
            rules = catalog.get_rules(code)
            table.add_row(
                code,
                catalog.state_name(code),
                rules.vehicle_tax_scheme.value,
                rules.lease_rules.method.value,
                "Y" if rules.reciprocity.enabled else "",
                "stub" if rules.is_stub else str(rules.version),
                style="dim" if rules.is_stub else "",
            )
        console.print(table)

    for code, errors in catalog.configuration_issues().items():
        for error in errors:
            console.print(f"[yellow]Warning ({code}): {error}[/yellow]")


# -----------------------------------------------------------------------
# Subcommand: context
# -----------------------------------------------------------------------


def _state_list(value: Optional[str]) -> list[str]:
    return [s.strip().upper() for s in value.split(",") if s.strip()] if value else []


def cmd_context(args: argparse.Namespace) -> None:
    """Resolve which state's rules govern a deal."""
    dealer = args.dealer.upper()
    overrides: dict[str, StateOverride] = {}
    for code in _state_list(args.force_primary):
        overrides[code] = StateOverride(force_primary=True)
    for code in _state_list(args.disallow_primary):
        overrides[code] = StateOverride(disallow_primary=True)

    allowed = _state_list(args.allowed)
    if dealer not in allowed:
        allowed.insert(0, dealer)

    rooftop = RooftopConfig(
        dealer_state_code=dealer,
        default_tax_perspective=TaxPerspective(args.perspective),
        allowed_registration_states=tuple(allowed),
        state_overrides=overrides,
    )
    party = DealPartyInfo(
        buyer_residence_state=args.buyer.upper() if args.buyer else None,
        registration_state=args.registration.upper() if args.registration else None,
    )
    context = resolve_tax_context(rooftop, party)

    console.print(
        Panel(
            f"[bold]Primary State:[/bold] {context.primary_state_code}\n"
            f"[bold]Dealer State:[/bold] {context.dealer_state_code}\n"
            f"[bold]Buyer Residence:[/bold] {context.buyer_residence_state_code}\n"
            f"[bold]Registration:[/bold] {context.registration_state_code}\n"
            f"[bold]Perspective:[/bold] {rooftop.default_tax_perspective.value}\n"
            f"[bold]Multi-State:[/bold] "
            f"{'Yes - ' + ', '.join(get_involved_states(context)) if is_multi_state_deal(context) else 'No'}",
            title="Tax Context",
            border_style="green",
        )
    )


# -----------------------------------------------------------------------
# Argument parser
# -----------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tax-engine",
        description="Auto Tax Engine - Vehicle retail and lease tax calculation across US states",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # quote
    quote_p = subparsers.add_parser("quote", help="Quote tax for a deal")
    quote_p.add_argument("--file", "-f", required=True, help="JSON file with one deal or a list")
    quote_p.add_argument("--rules", help="JSON file with state rules to use instead of the catalog")
    quote_p.add_argument("--notes", "-n", action="store_true", help="Print the audit trail")
    quote_p.add_argument("--export-json", help="Export quote report to JSON file")
    quote_p.add_argument("--output-dir", help="Output directory for exports")
    quote_p.set_defaults(func=cmd_quote)

    # rules
    rules_p = subparsers.add_parser("rules", help="View state rule catalog")
    rules_p.add_argument("--state", "-s", help="State code to look up")
    rules_p.set_defaults(func=cmd_rules)

    # context
    ctx_p = subparsers.add_parser("context", help="Resolve the governing state for a deal")
    ctx_p.add_argument("--dealer", required=True, help="Dealer state code")
    ctx_p.add_argument("--buyer", help="Buyer residence state code")
    ctx_p.add_argument("--registration", help="Registration state code")
    ctx_p.add_argument(
        "--perspective",
        choices=[p.value for p in TaxPerspective],
        default=TaxPerspective.DEALER_STATE.value,
        help="Default tax perspective of the rooftop",
    )
    ctx_p.add_argument("--allowed", help="Comma-separated allowed registration states")
    ctx_p.add_argument("--force-primary", help="Comma-separated states forced primary")
    ctx_p.add_argument("--disallow-primary", help="Comma-separated states never primary")
    ctx_p.set_defaults(func=cmd_context)

    return parser


def main(argv: Optional[list[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    if not args.command:
        parser.print_help()
        sys.exit(0)

    args.func(args)
