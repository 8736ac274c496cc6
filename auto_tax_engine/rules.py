"""
Per-state tax rule configuration.

A ``TaxRulesConfig`` is pure data: enumerable policy choices and
tables, never behavior. All interpretation lives in
``auto_tax_engine.interpreters`` and the calculators. Bump ``version``
whenever policy values change.

Special schemes read their parameters from the ``extras`` mapping:

    ga_tavt       -> TitleAdValoremConfig   (SPECIAL_TAVT)
    nc_hut        -> HighwayUseConfig       (SPECIAL_HUT)
    wv_privilege  -> PrivilegeTaxConfig     (DMV_PRIVILEGE_TAX)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping, Optional

from auto_tax_engine.models import DealType

TAVT_EXTRAS_KEY = "ga_tavt"
HUT_EXTRAS_KEY = "nc_hut"
PRIVILEGE_EXTRAS_KEY = "wv_privilege"


class MissingSchemeConfigError(ValueError):
    """A special tax scheme was selected but its extras block is absent."""


# ---------------------------------------------------------------------------
# Policy vocabularies
# ---------------------------------------------------------------------------


class TradeInPolicyType(Enum):
    NONE = "NONE"
    FULL = "FULL"
    CAPPED = "CAPPED"
    PERCENT = "PERCENT"


class RebateSource(Enum):
    MANUFACTURER = "MANUFACTURER"
    DEALER = "DEALER"
    ANY = "ANY"


class VehicleTaxScheme(Enum):
    STATE_ONLY = "STATE_ONLY"
    STATE_PLUS_LOCAL = "STATE_PLUS_LOCAL"
    SPECIAL_TAVT = "SPECIAL_TAVT"  # title ad valorem tax
    SPECIAL_HUT = "SPECIAL_HUT"  # highway use tax
    DMV_PRIVILEGE_TAX = "DMV_PRIVILEGE_TAX"  # privilege / title tax


class LeaseMethod(Enum):
    MONTHLY = "MONTHLY"
    FULL_UPFRONT = "FULL_UPFRONT"
    HYBRID = "HYBRID"


class LeaseRebateBehavior(Enum):
    FOLLOW_RETAIL_RULE = "FOLLOW_RETAIL_RULE"
    ALWAYS_TAXABLE = "ALWAYS_TAXABLE"
    ALWAYS_NON_TAXABLE = "ALWAYS_NON_TAXABLE"


class DocFeeTaxability(Enum):
    ALWAYS = "ALWAYS"
    FOLLOW_RETAIL_RULE = "FOLLOW_RETAIL_RULE"
    NEVER = "NEVER"
    ONLY_UPFRONT = "ONLY_UPFRONT"


class LeaseTradeInCredit(Enum):
    NONE = "NONE"
    FULL = "FULL"
    CAP_COST_ONLY = "CAP_COST_ONLY"
    APPLIED_TO_PAYMENT = "APPLIED_TO_PAYMENT"
    FOLLOW_RETAIL_RULE = "FOLLOW_RETAIL_RULE"


class LeaseSpecialScheme(Enum):
    NONE = "NONE"
    NY_MTR = "NY_MTR"
    NJ_LUXURY = "NJ_LUXURY"
    PA_LEASE_TAX = "PA_LEASE_TAX"
    IL_CHICAGO_COOK = "IL_CHICAGO_COOK"
    TX_LEASE_SPECIAL = "TX_LEASE_SPECIAL"
    VA_USAGE = "VA_USAGE"
    MD_UPFRONT_GAIN = "MD_UPFRONT_GAIN"
    CO_HOME_RULE_LEASE = "CO_HOME_RULE_LEASE"


class ReciprocityScope(Enum):
    RETAIL_ONLY = "RETAIL_ONLY"
    LEASE_ONLY = "LEASE_ONLY"
    BOTH = "BOTH"

    def covers(self, deal_type: DealType) -> bool:
        if self is ReciprocityScope.RETAIL_ONLY:
            return deal_type is DealType.RETAIL
        if self is ReciprocityScope.LEASE_ONLY:
            return deal_type is DealType.LEASE
        return True


class ReciprocityMode(Enum):
    NONE = "NONE"
    CREDIT_UP_TO_STATE_RATE = "CREDIT_UP_TO_STATE_RATE"
    CREDIT_FULL = "CREDIT_FULL"
    HOME_STATE_ONLY = "HOME_STATE_ONLY"


class TavtLeaseBaseMode(Enum):
    CAP_COST = "CAP_COST"
    AGREED_VALUE = "AGREED_VALUE"
    CUSTOM = "CUSTOM"


class TradeInScope(Enum):
    VEHICLE_ONLY = "VEHICLE_ONLY"
    FULL = "FULL"


# ---------------------------------------------------------------------------
# Policy records
# ---------------------------------------------------------------------------


def _dec(value) -> Decimal:
    return Decimal(str(value))


def _opt_dec(value) -> Optional[Decimal]:
    return None if value is None else _dec(value)


@dataclass(frozen=True)
class TradeInPolicy:
    type: TradeInPolicyType
    cap_amount: Optional[Decimal] = None
    percent: Optional[Decimal] = None  # decimal, e.g. 0.5 = 50%

    @classmethod
    def none(cls) -> "TradeInPolicy":
        return cls(TradeInPolicyType.NONE)

    @classmethod
    def full(cls) -> "TradeInPolicy":
        return cls(TradeInPolicyType.FULL)

    @classmethod
    def capped(cls, cap_amount) -> "TradeInPolicy":
        return cls(TradeInPolicyType.CAPPED, cap_amount=_dec(cap_amount))

    @classmethod
    def percent_of(cls, percent) -> "TradeInPolicy":
        return cls(TradeInPolicyType.PERCENT, percent=_dec(percent))

    @classmethod
    def from_dict(cls, data: dict) -> "TradeInPolicy":
        return cls(
            type=TradeInPolicyType(data["type"]),
            cap_amount=_opt_dec(data.get("cap_amount")),
            percent=_opt_dec(data.get("percent")),
        )


@dataclass(frozen=True)
class RebateRule:
    applies_to: RebateSource
    taxable: bool
    notes: str = ""


@dataclass(frozen=True)
class FeeTaxRule:
    code: str
    taxable: bool
    notes: str = ""


@dataclass(frozen=True)
class TitleFeeRule:
    code: str
    taxable: bool
    included_in_cap_cost: bool = False
    included_in_upfront: bool = True
    included_in_monthly: bool = False


@dataclass(frozen=True)
class LeaseRules:
    method: LeaseMethod = LeaseMethod.MONTHLY
    rebate_behavior: LeaseRebateBehavior = LeaseRebateBehavior.FOLLOW_RETAIL_RULE
    doc_fee_taxability: DocFeeTaxability = DocFeeTaxability.FOLLOW_RETAIL_RULE
    trade_in_credit: LeaseTradeInCredit = LeaseTradeInCredit.FOLLOW_RETAIL_RULE
    negative_equity_taxable: bool = False
    fee_tax_rules: tuple[FeeTaxRule, ...] = ()
    title_fee_rules: tuple[TitleFeeRule, ...] = ()
    special_scheme: LeaseSpecialScheme = LeaseSpecialScheme.NONE

    @classmethod
    def from_dict(cls, data: dict) -> "LeaseRules":
        return cls(
            method=LeaseMethod(data.get("method", "MONTHLY")),
            rebate_behavior=LeaseRebateBehavior(
                data.get("rebate_behavior", "FOLLOW_RETAIL_RULE")
            ),
            doc_fee_taxability=DocFeeTaxability(
                data.get("doc_fee_taxability", "FOLLOW_RETAIL_RULE")
            ),
            trade_in_credit=LeaseTradeInCredit(
                data.get("trade_in_credit", "FOLLOW_RETAIL_RULE")
            ),
            negative_equity_taxable=bool(data.get("negative_equity_taxable", False)),
            fee_tax_rules=tuple(
                FeeTaxRule(r["code"], bool(r["taxable"]), r.get("notes", ""))
                for r in data.get("fee_tax_rules", [])
            ),
            title_fee_rules=tuple(
                TitleFeeRule(
                    code=r["code"],
                    taxable=bool(r["taxable"]),
                    included_in_cap_cost=bool(r.get("included_in_cap_cost", False)),
                    included_in_upfront=bool(r.get("included_in_upfront", True)),
                    included_in_monthly=bool(r.get("included_in_monthly", False)),
                )
                for r in data.get("title_fee_rules", [])
            ),
            special_scheme=LeaseSpecialScheme(data.get("special_scheme", "NONE")),
        )


@dataclass(frozen=True)
class ReciprocityOverride:
    """
    Pairwise exception to a state's default reciprocity behavior.

    ``origin_state_code`` may be ``"ALL"``. A missing
    ``dest_state_code`` matches the configuring state.
    A non-empty ``applies_to_vehicle_class`` limits the override to
    deals whose vehicle class is listed.
    """

    origin_state_code: str
    dest_state_code: Optional[str] = None
    mode: Optional[ReciprocityMode] = None
    disallow_credit: bool = False
    max_age_days_since_tax_paid: Optional[int] = None
    requires_mutual_credit: bool = False
    requires_same_owner: bool = False
    cap_at_this_states_tax: Optional[bool] = None
    applies_to_vehicle_class: tuple[str, ...] = ()

    @property
    def has_restrictions(self) -> bool:
        return bool(
            self.max_age_days_since_tax_paid is not None
            or self.requires_mutual_credit
            or self.requires_same_owner
            or self.applies_to_vehicle_class
        )

    @classmethod
    def from_dict(cls, data: dict) -> "ReciprocityOverride":
        mode = data.get("mode")
        max_age = data.get("max_age_days_since_tax_paid")
        cap = data.get("cap_at_this_states_tax")
        dest = data.get("dest_state_code")
        return cls(
            origin_state_code=str(data.get("origin_state_code", "ALL")).upper(),
            dest_state_code=str(dest).upper() if dest else None,
            mode=ReciprocityMode(mode) if mode else None,
            disallow_credit=bool(data.get("disallow_credit", False)),
            max_age_days_since_tax_paid=int(max_age) if max_age is not None else None,
            requires_mutual_credit=bool(data.get("requires_mutual_credit", False)),
            requires_same_owner=bool(data.get("requires_same_owner", False)),
            cap_at_this_states_tax=bool(cap) if cap is not None else None,
            applies_to_vehicle_class=tuple(data.get("applies_to_vehicle_class", ())),
        )


@dataclass(frozen=True)
class ReciprocityRules:
    enabled: bool = False
    scope: ReciprocityScope = ReciprocityScope.BOTH
    home_state_behavior: ReciprocityMode = ReciprocityMode.CREDIT_UP_TO_STATE_RATE
    require_proof_of_tax_paid: bool = False
    cap_at_this_states_tax: bool = True
    overrides: tuple[ReciprocityOverride, ...] = ()

    @classmethod
    def from_dict(cls, data: dict) -> "ReciprocityRules":
        return cls(
            enabled=bool(data.get("enabled", False)),
            scope=ReciprocityScope(data.get("scope", "BOTH")),
            home_state_behavior=ReciprocityMode(
                data.get("home_state_behavior", "CREDIT_UP_TO_STATE_RATE")
            ),
            require_proof_of_tax_paid=bool(data.get("require_proof_of_tax_paid", False)),
            cap_at_this_states_tax=bool(data.get("cap_at_this_states_tax", True)),
            overrides=tuple(
                ReciprocityOverride.from_dict(o) for o in data.get("overrides", [])
            ),
        )


# ---------------------------------------------------------------------------
# Special scheme parameters (extras)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TitleAdValoremConfig:
    default_rate: Decimal
    use_assessed_value: bool = False
    use_higher_of_price_or_assessed: bool = False
    allow_trade_in_credit: bool = True
    trade_in_applies_to: TradeInScope = TradeInScope.VEHICLE_ONLY
    apply_negative_equity_to_base: bool = False
    lease_base_mode: TavtLeaseBaseMode = TavtLeaseBaseMode.AGREED_VALUE

    @classmethod
    def from_dict(cls, data: dict) -> "TitleAdValoremConfig":
        return cls(
            default_rate=_dec(data["default_rate"]),
            use_assessed_value=bool(data.get("use_assessed_value", False)),
            use_higher_of_price_or_assessed=bool(
                data.get("use_higher_of_price_or_assessed", False)
            ),
            allow_trade_in_credit=bool(data.get("allow_trade_in_credit", True)),
            trade_in_applies_to=TradeInScope(
                data.get("trade_in_applies_to", "VEHICLE_ONLY")
            ),
            apply_negative_equity_to_base=bool(
                data.get("apply_negative_equity_to_base", False)
            ),
            lease_base_mode=TavtLeaseBaseMode(
                data.get("lease_base_mode", "AGREED_VALUE")
            ),
        )


@dataclass(frozen=True)
class HighwayUseConfig:
    base_rate: Decimal
    include_trade_in_reduction: bool = True
    max_reciprocity_age_days: Optional[int] = None

    @classmethod
    def from_dict(cls, data: dict) -> "HighwayUseConfig":
        max_age = data.get("max_reciprocity_age_days")
        return cls(
            base_rate=_dec(data["base_rate"]),
            include_trade_in_reduction=bool(data.get("include_trade_in_reduction", True)),
            max_reciprocity_age_days=int(max_age) if max_age is not None else None,
        )


@dataclass(frozen=True)
class PrivilegeTaxConfig:
    base_rate: Decimal
    use_assessed_value: bool = False
    use_higher_of_price_or_assessed: bool = False
    allow_trade_in_credit: bool = True
    apply_negative_equity_to_base: bool = False
    vehicle_class_rates: Mapping[str, Decimal] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "PrivilegeTaxConfig":
        return cls(
            base_rate=_dec(data["base_rate"]),
            use_assessed_value=bool(data.get("use_assessed_value", False)),
            use_higher_of_price_or_assessed=bool(
                data.get("use_higher_of_price_or_assessed", False)
            ),
            allow_trade_in_credit=bool(data.get("allow_trade_in_credit", True)),
            apply_negative_equity_to_base=bool(
                data.get("apply_negative_equity_to_base", False)
            ),
            vehicle_class_rates={
                k: _dec(v) for k, v in data.get("vehicle_class_rates", {}).items()
            },
        )


_EXTRAS_PARSERS = {
    TAVT_EXTRAS_KEY: TitleAdValoremConfig.from_dict,
    HUT_EXTRAS_KEY: HighwayUseConfig.from_dict,
    PRIVILEGE_EXTRAS_KEY: PrivilegeTaxConfig.from_dict,
}


# ---------------------------------------------------------------------------
# State configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TaxRulesConfig:
    """Complete, versioned tax rule profile for a single state."""

    state_code: str
    version: int
    trade_in_policy: TradeInPolicy
    vehicle_tax_scheme: VehicleTaxScheme
    rebates: tuple[RebateRule, ...] = ()
    doc_fee_taxable: bool = False
    fee_tax_rules: tuple[FeeTaxRule, ...] = ()
    tax_on_accessories: bool = False
    tax_on_negative_equity: bool = False
    tax_on_service_contracts: bool = False
    tax_on_gap: bool = False
    lease_rules: LeaseRules = field(default_factory=LeaseRules)
    reciprocity: ReciprocityRules = field(default_factory=ReciprocityRules)
    extras: Mapping[str, Any] = field(default_factory=dict)

    @property
    def is_stub(self) -> bool:
        return self.extras.get("status") == "STUB"

    def require_extra(self, key: str, expected: type) -> Any:
        """Return a typed extras block or fail fast if it is missing."""
        block = self.extras.get(key)
        if not isinstance(block, expected):
            raise MissingSchemeConfigError(
                f"{self.state_code}: {self.vehicle_tax_scheme.value} requires "
                f"extras['{key}'] ({expected.__name__}) in state rules"
            )
        return block

    @classmethod
    def from_dict(cls, data: dict) -> "TaxRulesConfig":
        """
        Build a configuration from a plain mapping (e.g. parsed JSON).

        Unknown enum tags raise ``ValueError``. Known extras keys are
        converted to their typed scheme configs; other extras pass
        through unchanged.
        """
        extras: dict[str, Any] = {}
        for key, value in data.get("extras", {}).items():
            parser = _EXTRAS_PARSERS.get(key)
            extras[key] = parser(value) if parser and isinstance(value, dict) else value

        return cls(
            state_code=str(data["state_code"]).upper(),
            version=int(data.get("version", 1)),
            trade_in_policy=TradeInPolicy.from_dict(
                data.get("trade_in_policy", {"type": "NONE"})
            ),
            vehicle_tax_scheme=VehicleTaxScheme(data["vehicle_tax_scheme"]),
            rebates=tuple(
                RebateRule(
                    RebateSource(r["applies_to"]), bool(r["taxable"]), r.get("notes", "")
                )
                for r in data.get("rebates", [])
            ),
            doc_fee_taxable=bool(data.get("doc_fee_taxable", False)),
            fee_tax_rules=tuple(
                FeeTaxRule(r["code"], bool(r["taxable"]), r.get("notes", ""))
                for r in data.get("fee_tax_rules", [])
            ),
            tax_on_accessories=bool(data.get("tax_on_accessories", False)),
            tax_on_negative_equity=bool(data.get("tax_on_negative_equity", False)),
            tax_on_service_contracts=bool(data.get("tax_on_service_contracts", False)),
            tax_on_gap=bool(data.get("tax_on_gap", False)),
            lease_rules=LeaseRules.from_dict(data.get("lease_rules", {})),
            reciprocity=ReciprocityRules.from_dict(data.get("reciprocity", {})),
            extras=extras,
        )
