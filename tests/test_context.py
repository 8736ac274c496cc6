"""Tests for tax context resolution."""

from auto_tax_engine.context import (
    DealPartyInfo,
    RooftopConfig,
    StateOverride,
    TaxPerspective,
    create_multi_state_rooftop_config,
    create_simple_rooftop_config,
    get_involved_states,
    is_multi_state_deal,
    resolve_tax_context,
)


def _rooftop(
    perspective: TaxPerspective = TaxPerspective.DEALER_STATE,
    allowed: tuple[str, ...] = ("IN", "OH", "MI"),
    overrides: dict | None = None,
) -> RooftopConfig:
    return RooftopConfig(
        dealer_state_code="IN",
        default_tax_perspective=perspective,
        allowed_registration_states=allowed,
        state_overrides=overrides or {},
    )


# ── Defaults ─────────────────────────────────────────────────────────


def test_missing_party_states_default_to_dealer():
    ctx = resolve_tax_context(create_simple_rooftop_config("IN"), DealPartyInfo())
    assert ctx.primary_state_code == "IN"
    assert ctx.registration_state_code == "IN"
    assert ctx.buyer_residence_state_code == "IN"
    assert is_multi_state_deal(ctx) is False


def test_buyer_defaults_to_registration_state():
    ctx = resolve_tax_context(_rooftop(), DealPartyInfo(registration_state="OH"))
    assert ctx.buyer_residence_state_code == "OH"


# ── Perspectives ─────────────────────────────────────────────────────


def test_dealer_state_perspective():
    ctx = resolve_tax_context(
        _rooftop(), DealPartyInfo(buyer_residence_state="OH", registration_state="OH")
    )
    assert ctx.primary_state_code == "IN"


def test_dealer_state_disallowed_registration_falls_to_registration():
    rooftop = _rooftop(overrides={"OH": StateOverride(disallow_primary=True)})
    ctx = resolve_tax_context(rooftop, DealPartyInfo(registration_state="OH"))
    assert ctx.primary_state_code == "OH"


def test_registration_state_perspective():
    ctx = resolve_tax_context(
        _rooftop(TaxPerspective.REGISTRATION_STATE),
        DealPartyInfo(buyer_residence_state="IN", registration_state="OH"),
    )
    assert ctx.primary_state_code == "OH"


def test_registration_state_disallowed_falls_back_to_dealer():
    rooftop = _rooftop(
        TaxPerspective.REGISTRATION_STATE,
        overrides={"OH": StateOverride(disallow_primary=True)},
    )
    ctx = resolve_tax_context(rooftop, DealPartyInfo(registration_state="OH"))
    assert ctx.primary_state_code == "IN"


def test_buyer_state_perspective_allowed_buyer():
    ctx = resolve_tax_context(
        _rooftop(TaxPerspective.BUYER_STATE),
        DealPartyInfo(buyer_residence_state="MI", registration_state="IN"),
    )
    assert ctx.primary_state_code == "MI"


def test_buyer_state_perspective_buyer_not_allowed():
    ctx = resolve_tax_context(
        _rooftop(TaxPerspective.BUYER_STATE),
        DealPartyInfo(buyer_residence_state="KY", registration_state="OH"),
    )
    assert ctx.primary_state_code == "OH"


def test_buyer_state_perspective_buyer_disallowed():
    rooftop = _rooftop(
        TaxPerspective.BUYER_STATE,
        overrides={"MI": StateOverride(disallow_primary=True)},
    )
    ctx = resolve_tax_context(
        rooftop, DealPartyInfo(buyer_residence_state="MI", registration_state="IN")
    )
    assert ctx.primary_state_code == "IN"


# ── Forced overrides ─────────────────────────────────────────────────


def test_forced_registration_state_wins():
    rooftop = _rooftop(overrides={"OH": StateOverride(force_primary=True)})
    ctx = resolve_tax_context(
        rooftop, DealPartyInfo(buyer_residence_state="MI", registration_state="OH")
    )
    assert ctx.primary_state_code == "OH"


def test_forced_buyer_state_wins_over_perspective():
    rooftop = _rooftop(overrides={"MI": StateOverride(force_primary=True)})
    ctx = resolve_tax_context(
        rooftop, DealPartyInfo(buyer_residence_state="MI", registration_state="IN")
    )
    assert ctx.primary_state_code == "MI"


# ── Factories and helpers ────────────────────────────────────────────


def test_simple_rooftop_defaults():
    rooftop = create_simple_rooftop_config("GA")
    assert rooftop.default_tax_perspective is TaxPerspective.DEALER_STATE
    assert rooftop.allowed_registration_states == ("GA",)
    assert rooftop.name == "GA Dealership"


def test_multi_state_rooftop_includes_dealer_state():
    rooftop = create_multi_state_rooftop_config("IN", ["OH", "MI"])
    assert rooftop.allowed_registration_states == ("IN", "OH", "MI")
    assert rooftop.default_tax_perspective is TaxPerspective.REGISTRATION_STATE


def test_multi_state_rooftop_keeps_existing_order():
    rooftop = create_multi_state_rooftop_config(
        "IN", ["OH", "IN"], TaxPerspective.BUYER_STATE, name="Border Motors"
    )
    assert rooftop.allowed_registration_states == ("OH", "IN")
    assert rooftop.name == "Border Motors"


def test_involved_states_sorted_and_unique():
    ctx = resolve_tax_context(
        _rooftop(), DealPartyInfo(buyer_residence_state="MI", registration_state="OH")
    )
    assert get_involved_states(ctx) == ["IN", "MI", "OH"]
    assert is_multi_state_deal(ctx) is True
