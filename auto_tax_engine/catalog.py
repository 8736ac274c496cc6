"""
Sample state rule catalog.

A small set of researched state profiles covering each vehicle tax
scheme and lease timing method, plus stub entries for states that have
not been researched yet. Each profile also carries a default rate
component list so deals can be quoted without a ZIP-code rate lookup.

Sources: state revenue department and DMV publications, 2024-2025.
"""

from __future__ import annotations

from typing import Optional

from auto_tax_engine.rates import RateComponent
from auto_tax_engine.reciprocity import (
    ReciprocalState,
    get_reciprocal_states,
    validate_reciprocity_config,
)
from auto_tax_engine.rules import TaxRulesConfig

_GOVERNMENT_FEES = [
    {"code": "TITLE", "taxable": False, "notes": "Government fee, not taxable"},
    {"code": "REG", "taxable": False, "notes": "Government fee, not taxable"},
]

_LEASE_TITLE_FEES = [
    {"code": "TITLE", "taxable": False, "included_in_cap_cost": True},
    {"code": "REG", "taxable": False, "included_in_cap_cost": True},
]


def _products(service_contract: bool, gap: bool) -> list[dict]:
    return [
        {"code": "SERVICE_CONTRACT", "taxable": service_contract},
        {"code": "GAP", "taxable": gap},
    ]


_STATE_RULES: dict[str, dict] = {
    "IN": {
        "name": "Indiana",
        "rates": [("STATE", "0.07")],
        "version": 2,
        "trade_in_policy": {"type": "FULL"},
        "rebates": [
            {"applies_to": "MANUFACTURER", "taxable": False},
            {"applies_to": "DEALER", "taxable": True},
        ],
        "doc_fee_taxable": True,
        "fee_tax_rules": _products(True, True) + _GOVERNMENT_FEES,
        "tax_on_accessories": True,
        "tax_on_negative_equity": True,
        "tax_on_service_contracts": True,
        "tax_on_gap": True,
        "vehicle_tax_scheme": "STATE_ONLY",
        "lease_rules": {
            "method": "MONTHLY",
            "rebate_behavior": "FOLLOW_RETAIL_RULE",
            "doc_fee_taxability": "ALWAYS",
            "trade_in_credit": "FULL",
            "negative_equity_taxable": True,
            "fee_tax_rules": [{"code": "DOC_FEE", "taxable": True}]
            + _products(False, False)
            + _GOVERNMENT_FEES,
            "title_fee_rules": _LEASE_TITLE_FEES,
        },
        "reciprocity": {
            "enabled": True,
            "scope": "BOTH",
            "home_state_behavior": "CREDIT_UP_TO_STATE_RATE",
            "require_proof_of_tax_paid": True,
            "cap_at_this_states_tax": True,
        },
    },
    "GA": {
        "name": "Georgia",
        "rates": [("STATE", "0.04")],
        "version": 1,
        "trade_in_policy": {"type": "FULL"},
        "rebates": [
            {"applies_to": "MANUFACTURER", "taxable": True},
            {"applies_to": "DEALER", "taxable": True},
        ],
        "doc_fee_taxable": False,
        "fee_tax_rules": _products(False, False) + _GOVERNMENT_FEES,
        "tax_on_accessories": True,
        "tax_on_negative_equity": True,
        "vehicle_tax_scheme": "SPECIAL_TAVT",
        "lease_rules": {
            "method": "MONTHLY",
            "rebate_behavior": "ALWAYS_TAXABLE",
            "doc_fee_taxability": "ALWAYS",
            "trade_in_credit": "CAP_COST_ONLY",
            "negative_equity_taxable": True,
            "fee_tax_rules": [{"code": "DOC_FEE", "taxable": True}]
            + _products(False, False)
            + _GOVERNMENT_FEES,
            "title_fee_rules": _LEASE_TITLE_FEES,
        },
        "reciprocity": {
            "enabled": True,
            "home_state_behavior": "CREDIT_UP_TO_STATE_RATE",
            "require_proof_of_tax_paid": True,
        },
        "extras": {
            "ga_tavt": {
                "default_rate": "0.07",
                "use_assessed_value": True,
                "use_higher_of_price_or_assessed": True,
                "allow_trade_in_credit": True,
                "trade_in_applies_to": "VEHICLE_ONLY",
                "apply_negative_equity_to_base": True,
                "lease_base_mode": "AGREED_VALUE",
            },
        },
    },
    "NC": {
        "name": "North Carolina",
        "rates": [("STATE", "0.0475")],
        "version": 1,
        "trade_in_policy": {"type": "FULL"},
        "rebates": [
            {"applies_to": "MANUFACTURER", "taxable": False},
            {"applies_to": "DEALER", "taxable": True},
        ],
        "doc_fee_taxable": True,
        "fee_tax_rules": _products(False, False) + _GOVERNMENT_FEES,
        "tax_on_accessories": True,
        "tax_on_negative_equity": True,
        "vehicle_tax_scheme": "SPECIAL_HUT",
        "lease_rules": {
            "method": "MONTHLY",
            "doc_fee_taxability": "ALWAYS",
            "trade_in_credit": "FULL",
            "negative_equity_taxable": True,
            "fee_tax_rules": [{"code": "DOC_FEE", "taxable": True}]
            + _products(False, False)
            + _GOVERNMENT_FEES,
            "title_fee_rules": _LEASE_TITLE_FEES,
        },
        "reciprocity": {
            "enabled": True,
            "home_state_behavior": "CREDIT_UP_TO_STATE_RATE",
            "require_proof_of_tax_paid": True,
            "overrides": [
                {"origin_state_code": "ALL", "max_age_days_since_tax_paid": 90},
            ],
        },
        "extras": {
            "nc_hut": {
                "base_rate": "0.03",
                "include_trade_in_reduction": True,
                "max_reciprocity_age_days": 90,
            },
        },
    },
    "WV": {
        "name": "West Virginia",
        "rates": [("STATE", "0.06")],
        "version": 1,
        "trade_in_policy": {"type": "FULL"},
        "rebates": [
            {"applies_to": "MANUFACTURER", "taxable": False},
            {"applies_to": "DEALER", "taxable": True},
        ],
        "doc_fee_taxable": True,
        "fee_tax_rules": _products(True, True) + _GOVERNMENT_FEES,
        "tax_on_accessories": True,
        "tax_on_negative_equity": True,
        "tax_on_service_contracts": True,
        "tax_on_gap": True,
        "vehicle_tax_scheme": "DMV_PRIVILEGE_TAX",
        "lease_rules": {
            "method": "MONTHLY",
            "doc_fee_taxability": "ALWAYS",
            "trade_in_credit": "FULL",
            "negative_equity_taxable": True,
            "fee_tax_rules": [{"code": "DOC_FEE", "taxable": True}]
            + _products(True, True)
            + _GOVERNMENT_FEES,
            "title_fee_rules": _LEASE_TITLE_FEES,
        },
        "reciprocity": {
            "enabled": True,
            "home_state_behavior": "CREDIT_UP_TO_STATE_RATE",
            "require_proof_of_tax_paid": True,
        },
        "extras": {
            "wv_privilege": {
                "base_rate": "0.05",
                "use_assessed_value": True,
                "use_higher_of_price_or_assessed": True,
                "allow_trade_in_credit": True,
                "apply_negative_equity_to_base": True,
                "vehicle_class_rates": {
                    "auto": "0.05",
                    "truck": "0.05",
                    "RV": "0.06",
                    "trailer": "0.03",
                    "motorcycle": "0.05",
                },
            },
        },
    },
    "NY": {
        "name": "New York",
        "rates": [("STATE", "0.04"), ("CITY", "0.045"), ("DISTRICT_MCTD", "0.00375")],
        "version": 1,
        "trade_in_policy": {"type": "FULL"},
        "rebates": [
            {"applies_to": "MANUFACTURER", "taxable": False},
            {"applies_to": "DEALER", "taxable": True},
        ],
        "doc_fee_taxable": True,
        "fee_tax_rules": _products(True, True) + _GOVERNMENT_FEES,
        "tax_on_accessories": True,
        "tax_on_negative_equity": True,
        "tax_on_service_contracts": True,
        "tax_on_gap": True,
        "vehicle_tax_scheme": "STATE_PLUS_LOCAL",
        "lease_rules": {
            "method": "FULL_UPFRONT",
            "doc_fee_taxability": "ALWAYS",
            "trade_in_credit": "FULL",
            "negative_equity_taxable": True,
            "fee_tax_rules": [{"code": "DOC_FEE", "taxable": True}]
            + _products(True, True)
            + _GOVERNMENT_FEES,
            "title_fee_rules": _LEASE_TITLE_FEES,
            "special_scheme": "NY_MTR",
        },
        "reciprocity": {
            "enabled": False,
            "home_state_behavior": "NONE",
            "cap_at_this_states_tax": False,
        },
    },
    "NJ": {
        "name": "New Jersey",
        "rates": [("STATE", "0.06625")],
        "version": 1,
        "trade_in_policy": {"type": "FULL"},
        "rebates": [
            {"applies_to": "MANUFACTURER", "taxable": True},
            {"applies_to": "DEALER", "taxable": True},
        ],
        "doc_fee_taxable": True,
        "fee_tax_rules": _products(True, True) + _GOVERNMENT_FEES,
        "tax_on_accessories": True,
        "tax_on_negative_equity": True,
        "tax_on_service_contracts": True,
        "tax_on_gap": True,
        "vehicle_tax_scheme": "STATE_ONLY",
        "lease_rules": {
            "method": "FULL_UPFRONT",
            "doc_fee_taxability": "ALWAYS",
            "trade_in_credit": "FULL",
            "negative_equity_taxable": True,
            "fee_tax_rules": [{"code": "DOC_FEE", "taxable": True}]
            + _products(True, True)
            + _GOVERNMENT_FEES,
            "title_fee_rules": _LEASE_TITLE_FEES,
            "special_scheme": "NJ_LUXURY",
        },
        "reciprocity": {
            "enabled": True,
            "home_state_behavior": "CREDIT_UP_TO_STATE_RATE",
            "require_proof_of_tax_paid": True,
        },
    },
    "PA": {
        "name": "Pennsylvania",
        "rates": [("STATE", "0.06")],
        "version": 1,
        "trade_in_policy": {"type": "FULL"},
        "rebates": [
            {"applies_to": "MANUFACTURER", "taxable": False},
            {"applies_to": "DEALER", "taxable": True},
        ],
        "doc_fee_taxable": False,
        "fee_tax_rules": _products(False, False) + _GOVERNMENT_FEES,
        "tax_on_accessories": True,
        "tax_on_negative_equity": True,
        "vehicle_tax_scheme": "STATE_PLUS_LOCAL",
        "lease_rules": {
            "method": "MONTHLY",
            "doc_fee_taxability": "NEVER",
            "trade_in_credit": "FULL",
            "negative_equity_taxable": True,
            "fee_tax_rules": [{"code": "DOC_FEE", "taxable": False}]
            + _products(False, False)
            + _GOVERNMENT_FEES,
            "title_fee_rules": _LEASE_TITLE_FEES,
            "special_scheme": "PA_LEASE_TAX",
        },
        "reciprocity": {
            "enabled": True,
            "home_state_behavior": "CREDIT_UP_TO_STATE_RATE",
            "require_proof_of_tax_paid": True,
        },
    },
    "IL": {
        "name": "Illinois",
        "rates": [("STATE", "0.0625")],
        "version": 2,
        "trade_in_policy": {"type": "FULL"},
        "rebates": [
            {"applies_to": "MANUFACTURER", "taxable": False},
            {"applies_to": "DEALER", "taxable": True},
        ],
        "doc_fee_taxable": True,
        "fee_tax_rules": _products(True, True) + _GOVERNMENT_FEES,
        "tax_on_accessories": True,
        "tax_on_service_contracts": True,
        "tax_on_gap": True,
        "vehicle_tax_scheme": "STATE_PLUS_LOCAL",
        "lease_rules": {
            "method": "MONTHLY",
            "doc_fee_taxability": "ALWAYS",
            "trade_in_credit": "CAP_COST_ONLY",
            "negative_equity_taxable": True,
            "fee_tax_rules": [{"code": "DOC_FEE", "taxable": True}]
            + _products(False, False)
            + _GOVERNMENT_FEES,
            "title_fee_rules": _LEASE_TITLE_FEES,
            "special_scheme": "IL_CHICAGO_COOK",
        },
        "reciprocity": {
            "enabled": True,
            "scope": "RETAIL_ONLY",
            "home_state_behavior": "CREDIT_UP_TO_STATE_RATE",
            "require_proof_of_tax_paid": True,
        },
    },
    "CO": {
        "name": "Colorado",
        "rates": [("STATE", "0.029")],
        "version": 2,
        "trade_in_policy": {"type": "FULL"},
        "rebates": [
            {"applies_to": "MANUFACTURER", "taxable": True},
            {"applies_to": "DEALER", "taxable": False},
        ],
        "doc_fee_taxable": True,
        "fee_tax_rules": [{"code": "DOC_FEE", "taxable": True}]
        + _products(False, False)
        + _GOVERNMENT_FEES,
        "tax_on_accessories": True,
        "vehicle_tax_scheme": "STATE_PLUS_LOCAL",
        "lease_rules": {
            "method": "HYBRID",
            "rebate_behavior": "ALWAYS_TAXABLE",
            "doc_fee_taxability": "ALWAYS",
            "trade_in_credit": "FOLLOW_RETAIL_RULE",
            "negative_equity_taxable": True,
            "fee_tax_rules": [
                {"code": "DOC_FEE", "taxable": True},
                {"code": "ACQUISITION_FEE", "taxable": True},
            ]
            + _products(False, False)
            + _GOVERNMENT_FEES,
            "title_fee_rules": _LEASE_TITLE_FEES,
            "special_scheme": "CO_HOME_RULE_LEASE",
        },
        "reciprocity": {
            "enabled": True,
            "home_state_behavior": "CREDIT_UP_TO_STATE_RATE",
        },
    },
    "TX": {
        "name": "Texas",
        "rates": [("STATE", "0.0625")],
        "vehicle_tax_scheme": "STATE_ONLY",
        "extras": {"status": "STUB"},
    },
    "CA": {
        "name": "California",
        "rates": [("STATE", "0.0725")],
        "vehicle_tax_scheme": "STATE_PLUS_LOCAL",
        "extras": {"status": "STUB"},
    },
}


class StateRulesCatalog:
    """
    Queryable catalog of per-state tax rule profiles.

    Provides lookup by state code plus default rate components.
    """

    def __init__(self) -> None:
        self._rules: dict[str, TaxRulesConfig] = {}
        self._names: dict[str, str] = {}
        self._rates: dict[str, tuple[RateComponent, ...]] = {}
        self._load_rules()

    def _load_rules(self) -> None:
        for code, data in _STATE_RULES.items():
            profile = {k: v for k, v in data.items() if k not in ("name", "rates")}
            self._rules[code] = TaxRulesConfig.from_dict({"state_code": code, **profile})
            self._names[code] = data["name"]
            self._rates[code] = tuple(
                RateComponent.from_dict({"label": label, "rate": rate})
                for label, rate in data["rates"]
            )

    @property
    def state_count(self) -> int:
        return len(self._rules)

    def find_rules(self, state_code: str) -> Optional[TaxRulesConfig]:
        return self._rules.get(state_code.upper())

    def get_rules(self, state_code: str) -> TaxRulesConfig:
        """Return the rule profile for a state."""
        rules = self.find_rules(state_code)
        if rules is None:
            raise ValueError(f"Unknown state code: {state_code}")
        return rules

    def state_name(self, state_code: str) -> str:
        self.get_rules(state_code)
        return self._names[state_code.upper()]

    def default_rates(self, state_code: str) -> tuple[RateComponent, ...]:
        """Representative rate components for quoting without a rate lookup."""
        self.get_rules(state_code)
        return self._rates[state_code.upper()]

    def all_state_codes(self) -> list[str]:
        return sorted(self._rules)

    def implemented_states(self) -> list[str]:
        return [code for code in self.all_state_codes() if not self._rules[code].is_stub]

    def stub_states(self) -> list[str]:
        return [code for code in self.all_state_codes() if self._rules[code].is_stub]

    def reciprocal_states(self, state_code: str) -> list[ReciprocalState]:
        """Catalog states whose tax the given state credits."""
        self.get_rules(state_code)
        return get_reciprocal_states(state_code, self._rules.values())

    def configuration_issues(self) -> dict[str, list[str]]:
        """Reciprocity configuration problems, keyed by state code."""
        issues = {}
        for code in self.all_state_codes():
            errors = validate_reciprocity_config(self._rules[code])
            if errors:
                issues[code] = errors
        return issues
