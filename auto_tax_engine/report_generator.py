"""
Tax quote report generator.

Produces:
- Single-deal tax quotes with the full audit trail
- Multi-deal summaries with a state-by-state breakdown
- CSV and JSON export
"""

from __future__ import annotations

import csv
import io
import json
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional

from auto_tax_engine.models import ZERO, TaxCalculationResult


class _DecimalEncoder(json.JSONEncoder):
    """JSON encoder that handles Decimal and date objects."""

    def default(self, o: Any) -> Any:
        if isinstance(o, Decimal):
            return float(o)
        if isinstance(o, date):
            return o.isoformat()
        return super().default(o)


def _decimal_to_float(obj: Any) -> Any:
    """Recursively convert Decimal values to float for serialization."""
    if isinstance(obj, dict):
        return {k: _decimal_to_float(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_decimal_to_float(i) for i in obj]
    if isinstance(obj, Decimal):
        return float(obj)
    if isinstance(obj, date):
        return obj.isoformat()
    return obj


def _effective_rate(tax: Decimal, base: Decimal) -> float:
    return float(tax / base) if base > 0 else 0.0


class ReportGenerator:
    """
    Generates formatted tax quote reports with export capabilities.

    All reports can be returned as structured dicts, rendered to
    console-friendly text, or exported to CSV/JSON files.
    """

    def __init__(self, output_dir: Optional[str] = None) -> None:
        self.output_dir = Path(output_dir) if output_dir else Path("reports")
        self.output_dir.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------
    # Single deal quote
    # ------------------------------------------------------------------

    def quote_report(self, result: TaxCalculationResult) -> dict[str, Any]:
        """Structured quote for one calculation, including every audit note."""
        bases = result.bases
        debug = result.debug

        report: dict[str, Any] = {
            "report_type": "tax_quote",
            "generated_date": date.today().isoformat(),
            "summary": {
                "state": result.state_code,
                "deal_type": result.mode.value,
                "rules_version": result.rules_version,
                "total_taxable_base": bases.total_taxable_base,
                "total_tax": result.total_tax,
                "reciprocity_credit": debug.reciprocity_credit,
                "effective_rate": _effective_rate(result.total_tax, bases.total_taxable_base),
            },
            "bases": {
                "vehicle_base": bases.vehicle_base,
                "fees_base": bases.fees_base,
                "products_base": bases.products_base,
                "total_taxable_base": bases.total_taxable_base,
            },
            "component_taxes": [
                {"label": c.label, "rate": c.rate, "amount": c.amount}
                for c in result.taxes.component_taxes
            ],
            "credits": {
                "applied_trade_in": debug.applied_trade_in,
                "applied_rebates_non_taxable": debug.applied_rebates_non_taxable,
                "applied_rebates_taxable": debug.applied_rebates_taxable,
                "taxable_doc_fee": debug.taxable_doc_fee,
                "taxable_service_contracts": debug.taxable_service_contracts,
                "taxable_gap": debug.taxable_gap,
            },
            "taxable_fees": [
                {"code": f.code, "amount": f.amount} for f in debug.taxable_fees
            ],
            "notes": list(debug.notes),
        }

        lease = result.lease_breakdown
        if lease is not None:
            report["lease"] = {
                "upfront_taxable_base": lease.upfront_taxable_base,
                "upfront_tax": lease.upfront_taxes.total_tax,
                "payment_taxable_base_per_period": lease.payment_taxable_base_per_period,
                "payment_tax_per_period": lease.payment_taxes_per_period.total_tax,
                "payment_count": lease.payment_count,
                "total_tax_over_term": lease.total_tax_over_term,
            }

        return report

    # ------------------------------------------------------------------
    # Multi-deal summary
    # ------------------------------------------------------------------

    def batch_report(
        self, results: list[TaxCalculationResult], period_label: str = ""
    ) -> dict[str, Any]:
        """Summarize several quotes, grouped by state."""
        by_state: dict[str, list[TaxCalculationResult]] = {}
        for r in results:
            by_state.setdefault(r.state_code, []).append(r)

        state_details: list[dict[str, Any]] = []
        for state_code in sorted(by_state):
            group = by_state[state_code]
            taxable = sum((r.bases.total_taxable_base for r in group), ZERO)
            tax = sum((r.total_tax for r in group), ZERO)
            state_details.append(
                {
                    "state": state_code,
                    "deal_count": len(group),
                    "taxable_amount": taxable,
                    "total_tax": tax,
                    "reciprocity_credit": sum(
                        (r.debug.reciprocity_credit for r in group), ZERO
                    ),
                }
            )

        total_taxable = sum((r.bases.total_taxable_base for r in results), ZERO)
        total_tax = sum((r.total_tax for r in results), ZERO)
        return {
            "report_type": "tax_quote_summary",
            "period": period_label,
            "generated_date": date.today().isoformat(),
            "summary": {
                "total_deals": len(results),
                "lease_deals": sum(1 for r in results if r.lease_breakdown is not None),
                "total_taxable": total_taxable,
                "total_tax": total_tax,
                "overall_effective_rate": _effective_rate(total_tax, total_taxable),
            },
            "state_breakdown": state_details,
        }

    # ------------------------------------------------------------------
    # Export methods
    # ------------------------------------------------------------------

    def to_json(
        self,
        report: dict[str, Any],
        filename: Optional[str] = None,
    ) -> str:
        """Export a report to JSON. Returns the JSON string."""
        serializable = _decimal_to_float(report)
        json_str = json.dumps(serializable, indent=2, cls=_DecimalEncoder)

        if filename:
            path = self.output_dir / filename
            path.write_text(json_str, encoding="utf-8")

        return json_str

    def to_csv(
        self,
        report: dict[str, Any],
        filename: Optional[str] = None,
        section: str = "component_taxes",
    ) -> str:
        """
        Export a report section to CSV. Returns the CSV string.

        The section parameter specifies which list/dict in the report
        to export as rows.
        """
        data = report.get(section, [])
        if not data:
            return ""

        output = io.StringIO()

        if isinstance(data, list) and isinstance(data[0], dict):
            writer = csv.DictWriter(output, fieldnames=list(data[0].keys()))
            writer.writeheader()
            for row in data:
                writer.writerow(
                    {k: float(v) if isinstance(v, Decimal) else v for k, v in row.items()}
                )
        elif isinstance(data, dict):
            writer = csv.writer(output)
            writer.writerow(["key", "value"])
            for k, v in data.items():
                writer.writerow([k, float(v) if isinstance(v, Decimal) else v])

        csv_str = output.getvalue()

        if filename:
            path = self.output_dir / filename
            path.write_text(csv_str, encoding="utf-8")

        return csv_str

    # ------------------------------------------------------------------
    # Console-formatted text output
    # ------------------------------------------------------------------

    def format_text(self, report: dict[str, Any]) -> str:
        """Format a report as human-readable text for console output."""
        lines: list[str] = []
        report_type = report.get("report_type", "report").replace("_", " ").title()
        lines.append(f"{'=' * 60}")
        lines.append(f"  {report_type}")
        lines.append(f"  Generated: {report.get('generated_date', '')}")
        if report.get("period"):
            lines.append(f"  Period: {report['period']}")
        lines.append(f"{'=' * 60}")
        lines.append("")

        for title, key in (("SUMMARY", "summary"), ("TAXABLE BASES", "bases"), ("LEASE", "lease")):
            section = report.get(key, {})
            if not section:
                continue
            lines.append(title)
            lines.append("-" * 40)
            for name, value in section.items():
                label = name.replace("_", " ").title()
                if "rate" in name and isinstance(value, float):
                    lines.append(f"  {label}: {value:.2%}")
                elif isinstance(value, Decimal):
                    lines.append(f"  {label}: ${float(value):,.2f}")
                else:
                    lines.append(f"  {label}: {value}")
            lines.append("")

        components = report.get("component_taxes", [])
        if components:
            lines.append("COMPONENT TAXES")
            lines.append("-" * 40)
            for c in components:
                lines.append(
                    f"  {c['label']:<20} {float(c['rate']):>8.3%}  "
                    f"${float(c['amount']):>10,.2f}"
                )
            lines.append("")

        state_data = report.get("state_breakdown", [])
        if state_data:
            lines.append("STATE BREAKDOWN")
            lines.append("-" * 40)
            for sd in state_data:
                lines.append(
                    f"  {sd['state']}: ${float(sd['taxable_amount']):>12,.2f} taxable | "
                    f"${float(sd['total_tax']):>10,.2f} tax | {sd['deal_count']} deals"
                )
            lines.append("")

        notes = report.get("notes", [])
        if notes:
            lines.append("AUDIT TRAIL")
            lines.append("-" * 40)
            for n in notes:
                lines.append(f"  * {n}")
            lines.append("")

        return "\n".join(lines)
