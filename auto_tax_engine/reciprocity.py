"""
Cross-state tax credit (reciprocity).

When a vehicle was already taxed by another state, the destination
state may credit that payment against its own tax. ``apply_reciprocity``
is shared by the generic pipelines and by every specialized calculator.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from auto_tax_engine.models import ZERO, TaxCalculationInput, round_money
from auto_tax_engine.rules import (
    ReciprocityMode,
    ReciprocityOverride,
    TaxRulesConfig,
)

ALL_STATES = "ALL"


@dataclass(frozen=True)
class ReciprocityResult:
    final_tax: Decimal
    credit: Decimal
    credit_allowed: bool
    notes: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class TimeWindowCheck:
    within_window: bool
    days_since: Optional[int]
    message: str


@dataclass(frozen=True)
class MutualCreditCheck:
    exists: bool
    message: str
    reverse_mode: Optional[ReciprocityMode] = None


@dataclass(frozen=True)
class ReciprocalState:
    state_code: str
    mode: ReciprocityMode
    has_restrictions: bool


def _no_credit(raw_tax: Decimal, *notes: str) -> ReciprocityResult:
    return ReciprocityResult(raw_tax, ZERO, False, list(notes))


def apply_reciprocity(
    raw_tax: Decimal,
    deal: TaxCalculationInput,
    rules: TaxRulesConfig,
    *,
    cap_at_tax: bool = False,
    max_age_days: Optional[int] = None,
) -> ReciprocityResult:
    """
    Credit tax paid to another state against ``raw_tax``.

    Checks run in order: policy enabled, scope covers the deal type,
    origin tax present, pairwise override restrictions, time window.
    Only then is the credit computed from the effective mode.

    ``cap_at_tax`` forces the credit to be capped at ``raw_tax``
    regardless of policy. ``max_age_days`` imposes a time window
    between the origin payment and the deal's as-of date.
    """
    policy = rules.reciprocity
    dest = rules.state_code

    if not policy.enabled:
        return _no_credit(raw_tax, f"Reciprocity: {dest} does not offer reciprocity credits")

    if not policy.scope.covers(deal.deal_type):
        return _no_credit(
            raw_tax,
            f"Reciprocity: {dest} credit scope {policy.scope.value} "
            f"does not cover {deal.deal_type.value} deals",
        )

    origin = deal.origin_tax_info
    if origin is None or origin.amount <= 0:
        return _no_credit(raw_tax, "Reciprocity: no origin state tax paid to credit")

    override = find_applicable_override(
        origin.state_code, rules, vehicle_class=deal.vehicle_class
    )
    mode = policy.home_state_behavior
    windows = [max_age_days] if max_age_days is not None else []

    if override is not None:
        if override.disallow_credit:
            return _no_credit(
                raw_tax, f"Reciprocity: {dest} does not reciprocate with {origin.state_code}"
            )
        if override.max_age_days_since_tax_paid is not None:
            windows.append(override.max_age_days_since_tax_paid)
        if override.mode is not None:
            mode = override.mode

    if windows:
        window = check_reciprocity_time_window(
            origin.tax_paid_date, deal.as_of_date, min(windows)
        )
        if not window.within_window:
            return _no_credit(raw_tax, f"Reciprocity: {window.message}")

    if override is not None:
        if override.requires_mutual_credit:
            mutual = check_mutual_credit(origin.state_code, dest, policy.overrides)
            if not mutual.exists:
                return _no_credit(raw_tax, f"Reciprocity: {mutual.message}")
        if override.requires_same_owner and not origin.same_owner:
            return _no_credit(
                raw_tax,
                f"Reciprocity: {dest} requires the same owner as when tax was paid "
                f"in {origin.state_code}",
            )

    if mode is ReciprocityMode.NONE:
        return _no_credit(raw_tax, "Reciprocity: mode NONE, no credit allowed")

    notes: list[str] = []
    origin_amount = origin.amount
    if mode is ReciprocityMode.CREDIT_FULL:
        credit = origin_amount
        notes.append(
            f"Reciprocity: full credit for {origin.state_code} tax paid ${credit:,.2f}"
        )
    else:
        credit = min(origin_amount, raw_tax)
        notes.append(
            f"Reciprocity: credit up to {dest} tax ${credit:,.2f} "
            f"(origin tax ${origin_amount:,.2f}, {dest} tax ${raw_tax:,.2f})"
        )
        if mode is ReciprocityMode.HOME_STATE_ONLY:
            notes.append(
                "Reciprocity: HOME_STATE_ONLY treated as credit up to this state's tax"
            )

    if cap_at_tax:
        capped = True
    elif override is not None and override.cap_at_this_states_tax is not None:
        capped = override.cap_at_this_states_tax
    else:
        capped = policy.cap_at_this_states_tax

    if credit > raw_tax:
        if capped:
            credit = raw_tax
            notes.append(f"Reciprocity: credit capped at {dest} tax amount")
        else:
            notes.append(
                f"Reciprocity: credit exceeds {dest} tax by ${credit - raw_tax:,.2f}, "
                f"potential carryover"
            )

    credit = round_money(credit)
    if policy.require_proof_of_tax_paid:
        notes.append(f"Reciprocity: proof of tax paid to {origin.state_code} required")

    return ReciprocityResult(max(ZERO, raw_tax - credit), credit, True, notes)


def find_applicable_override(
    origin_state_code: str,
    rules: TaxRulesConfig,
    *,
    vehicle_class: Optional[str] = None,
) -> Optional[ReciprocityOverride]:
    """
    Return the override for an origin state, preferring an exact match
    over an ``ALL`` entry. Overrides naming another destination are skipped,
    as are overrides scoped to vehicle classes that do not include
    ``vehicle_class``.
    """
    candidates = [
        o
        for o in rules.reciprocity.overrides
        if o.dest_state_code in (None, rules.state_code)
        and (not o.applies_to_vehicle_class or vehicle_class in o.applies_to_vehicle_class)
    ]
    for o in candidates:
        if o.origin_state_code == origin_state_code:
            return o
    for o in candidates:
        if o.origin_state_code == ALL_STATES:
            return o
    return None


def check_reciprocity_time_window(
    tax_paid_date: Optional[date], as_of_date: date, max_age_days: int
) -> TimeWindowCheck:
    if tax_paid_date is None:
        return TimeWindowCheck(False, None, "tax paid date is required but not provided")

    days_since = (as_of_date - tax_paid_date).days
    if days_since < 0:
        return TimeWindowCheck(
            False, days_since, f"tax paid date {tax_paid_date.isoformat()} is in the future"
        )
    if days_since > max_age_days:
        return TimeWindowCheck(
            False,
            days_since,
            f"tax paid {days_since} days ago, exceeds {max_age_days}-day window; credit denied",
        )
    return TimeWindowCheck(
        True, days_since, f"tax paid {days_since} days ago, within {max_age_days}-day window"
    )


def check_mutual_credit(
    origin_state_code: str,
    dest_state_code: str,
    overrides: Iterable[ReciprocityOverride],
) -> MutualCreditCheck:
    """Check that the origin state would credit the destination state in return."""
    reverse = next(
        (
            o
            for o in overrides
            if o.origin_state_code == dest_state_code
            and o.dest_state_code == origin_state_code
        ),
        None,
    )
    if reverse is None:
        return MutualCreditCheck(
            False,
            f"{origin_state_code} has no reciprocity rule for {dest_state_code}; "
            f"mutual credit required but not found",
        )
    if reverse.disallow_credit:
        return MutualCreditCheck(
            False,
            f"{origin_state_code} disallows credit for {dest_state_code}; "
            f"mutual credit required but not found",
            ReciprocityMode.NONE,
        )

    reverse_mode = reverse.mode or ReciprocityMode.CREDIT_UP_TO_STATE_RATE
    if reverse_mode is ReciprocityMode.NONE:
        return MutualCreditCheck(
            False,
            f"{origin_state_code} reciprocity mode is NONE for {dest_state_code}",
            reverse_mode,
        )
    return MutualCreditCheck(
        True,
        f"mutual credit confirmed: {origin_state_code} reciprocates with "
        f"{dest_state_code} ({reverse_mode.value})",
        reverse_mode,
    )


def get_reciprocal_states(
    state_code: str, rules_list: Iterable[TaxRulesConfig]
) -> list[ReciprocalState]:
    """
    List the origin states whose tax ``state_code`` credits.

    Every other state in ``rules_list`` gets the default mode unless an
    override says otherwise. Origin states named only in overrides are
    included too. A disallowed credit is reported as mode NONE.
    """
    code = state_code.upper()
    all_rules = list(rules_list)
    rules = next((r for r in all_rules if r.state_code == code), None)
    if rules is None or not rules.reciprocity.enabled:
        return []

    default_mode = rules.reciprocity.home_state_behavior
    exact: dict[str, ReciprocityOverride] = {}
    blanket: Optional[ReciprocityOverride] = None
    for o in rules.reciprocity.overrides:
        if o.dest_state_code not in (None, code):
            continue
        if o.origin_state_code == ALL_STATES:
            blanket = blanket or o
        else:
            exact.setdefault(o.origin_state_code, o)

    origins = {r.state_code for r in all_rules if r.state_code != code} | set(exact)
    states: list[ReciprocalState] = []
    for origin in sorted(origins):
        o = exact.get(origin, blanket)
        if o is None:
            states.append(ReciprocalState(origin, default_mode, False))
            continue
        mode = ReciprocityMode.NONE if o.disallow_credit else (o.mode or default_mode)
        states.append(ReciprocalState(origin, mode, o.has_restrictions))
    return states


def validate_reciprocity_config(rules: TaxRulesConfig) -> list[str]:
    """Return configuration problems in a state's reciprocity overrides."""
    errors: list[str] = []
    overrides = rules.reciprocity.overrides

    def dest_of(o: ReciprocityOverride) -> str:
        return o.dest_state_code or rules.state_code

    for o in overrides:
        if not o.requires_mutual_credit:
            continue
        for r in overrides:
            if (
                r.requires_mutual_credit
                and r.origin_state_code == dest_of(o)
                and dest_of(r) == o.origin_state_code
            ):
                errors.append(
                    f"Circular mutual credit requirement: {o.origin_state_code} <-> {dest_of(o)}"
                )
                break

    seen: set[tuple[str, str, tuple[str, ...]]] = set()
    for o in overrides:
        key = (o.origin_state_code, dest_of(o), o.applies_to_vehicle_class)
        if key in seen:
            errors.append(f"Duplicate reciprocity override: {key[0]} -> {key[1]}")
        seen.add(key)

    for o in overrides:
        if o.max_age_days_since_tax_paid is not None and o.max_age_days_since_tax_paid < 0:
            errors.append(
                f"Invalid time window for {o.origin_state_code} -> {dest_of(o)}: "
                f"{o.max_age_days_since_tax_paid} days"
            )

    return errors
