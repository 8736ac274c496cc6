"""Tests for the quote ReportGenerator."""

import json
from datetime import date
from decimal import Decimal

import pytest

from auto_tax_engine.calculator import TaxCalculator
from auto_tax_engine.catalog import StateRulesCatalog
from auto_tax_engine.models import LeaseTaxInput, RetailTaxInput, TaxCalculationResult
from auto_tax_engine.report_generator import ReportGenerator


@pytest.fixture
def catalog() -> StateRulesCatalog:
    return StateRulesCatalog()


@pytest.fixture
def generator(tmp_path) -> ReportGenerator:
    return ReportGenerator(output_dir=str(tmp_path))


@pytest.fixture
def retail_result(catalog: StateRulesCatalog) -> TaxCalculationResult:
    deal = RetailTaxInput(
        state_code="IN",
        as_of_date=date(2025, 3, 1),
        vehicle_price=Decimal("35000"),
        trade_in_value=Decimal("10000"),
        rates=catalog.default_rates("IN"),
    )
    return TaxCalculator(catalog).calculate(deal)


@pytest.fixture
def lease_result(catalog: StateRulesCatalog) -> TaxCalculationResult:
    deal = LeaseTaxInput(
        state_code="IN",
        as_of_date=date(2025, 3, 1),
        vehicle_price=Decimal("42000"),
        gross_cap_cost=Decimal("40000"),
        base_payment=Decimal("500"),
        payment_count=36,
        doc_fee=Decimal("200"),
        rates=catalog.default_rates("IN"),
    )
    return TaxCalculator(catalog).calculate(deal)


# ── Quote report ─────────────────────────────────────────────────────


def test_quote_report_structure(generator: ReportGenerator, retail_result):
    report = generator.quote_report(retail_result)
    assert report["report_type"] == "tax_quote"
    assert report["summary"]["state"] == "IN"
    assert report["summary"]["total_tax"] == Decimal("1750.00")
    assert report["summary"]["effective_rate"] == pytest.approx(0.07)
    assert report["bases"]["vehicle_base"] == Decimal("25000")
    assert report["component_taxes"][0]["label"] == "STATE"
    assert report["credits"]["applied_trade_in"] == Decimal("10000")
    assert report["notes"] == list(retail_result.debug.notes)
    assert "lease" not in report


def test_quote_report_lease_section(generator: ReportGenerator, lease_result):
    report = generator.quote_report(lease_result)
    assert report["summary"]["deal_type"] == "LEASE"
    assert report["lease"]["payment_count"] == 36
    assert report["lease"]["total_tax_over_term"] == Decimal("1274.00")


def test_quote_report_lease_rate_uses_term_total(generator: ReportGenerator, lease_result):
    summary = generator.quote_report(lease_result)["summary"]
    assert summary["total_tax"] == Decimal("1274.00")
    assert summary["effective_rate"] == pytest.approx(
        float(Decimal("1274.00") / summary["total_taxable_base"])
    )


# ── Batch report ─────────────────────────────────────────────────────


def test_batch_report_groups_by_state(
    generator: ReportGenerator, retail_result, lease_result
):
    report = generator.batch_report([retail_result, lease_result], "March 2025")
    assert report["report_type"] == "tax_quote_summary"
    assert report["summary"]["total_deals"] == 2
    assert report["summary"]["lease_deals"] == 1
    assert report["summary"]["total_tax"] == Decimal("3024.00")
    assert len(report["state_breakdown"]) == 1
    assert report["state_breakdown"][0]["deal_count"] == 2


# ── Export ───────────────────────────────────────────────────────────


def test_json_export(generator: ReportGenerator, retail_result, tmp_path):
    report = generator.quote_report(retail_result)
    json_str = generator.to_json(report, "quote.json")
    parsed = json.loads(json_str)
    assert parsed["summary"]["total_tax"] == 1750.0
    assert (tmp_path / "quote.json").exists()


def test_csv_export(generator: ReportGenerator, retail_result, tmp_path):
    report = generator.quote_report(retail_result)
    csv_str = generator.to_csv(report, "components.csv")
    lines = csv_str.strip().splitlines()
    assert lines[0] == "label,rate,amount"
    assert lines[1].startswith("STATE,")
    assert (tmp_path / "components.csv").exists()


def test_csv_export_dict_section(generator: ReportGenerator, retail_result):
    report = generator.quote_report(retail_result)
    csv_str = generator.to_csv(report, section="bases")
    assert csv_str.splitlines()[0] == "key,value"


def test_csv_export_missing_section(generator: ReportGenerator, retail_result):
    report = generator.quote_report(retail_result)
    assert generator.to_csv(report, section="state_breakdown") == ""


def test_text_format(generator: ReportGenerator, lease_result):
    text = generator.format_text(generator.quote_report(lease_result))
    assert "Tax Quote" in text
    assert "COMPONENT TAXES" in text
    assert "LEASE" in text
    assert "AUDIT TRAIL" in text
