"""
Tax context resolution.

Decides which single state's rules govern a deal, given where the
dealership (rooftop) sits and where the buyer lives and registers the
vehicle.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class TaxPerspective(Enum):
    DEALER_STATE = "DEALER_STATE"
    REGISTRATION_STATE = "REGISTRATION_STATE"
    BUYER_STATE = "BUYER_STATE"


@dataclass(frozen=True)
class StateOverride:
    force_primary: bool = False
    disallow_primary: bool = False


@dataclass(frozen=True)
class RooftopConfig:
    """A dealership location and its tax-perspective policy."""

    dealer_state_code: str
    default_tax_perspective: TaxPerspective = TaxPerspective.DEALER_STATE
    allowed_registration_states: tuple[str, ...] = ()
    state_overrides: dict[str, StateOverride] = field(default_factory=dict)
    id: str = "default"
    name: str = ""

    def override_for(self, state_code: str) -> StateOverride:
        return self.state_overrides.get(state_code, StateOverride())


@dataclass(frozen=True)
class DealPartyInfo:
    buyer_residence_state: Optional[str] = None
    registration_state: Optional[str] = None
    vehicle_location_state: Optional[str] = None
    delivery_state: Optional[str] = None


@dataclass(frozen=True)
class TaxContext:
    primary_state_code: str
    dealer_state_code: str
    buyer_residence_state_code: str
    registration_state_code: str


def resolve_tax_context(rooftop: RooftopConfig, deal: DealPartyInfo) -> TaxContext:
    """
    Pick the primary state for a deal.

    Registration defaults to the dealer state and the buyer's residence
    defaults to the registration state. Forced overrides win first
    (registration, then buyer), then the rooftop's default perspective
    decides.
    """
    dealer = rooftop.dealer_state_code
    registration = deal.registration_state or dealer
    buyer = deal.buyer_residence_state or registration

    def context(primary: str) -> TaxContext:
        return TaxContext(primary, dealer, buyer, registration)

    if rooftop.override_for(registration).force_primary:
        return context(registration)
    if buyer != dealer and rooftop.override_for(buyer).force_primary:
        return context(buyer)

    perspective = rooftop.default_tax_perspective

    if perspective is TaxPerspective.DEALER_STATE:
        if rooftop.override_for(registration).disallow_primary:
            return context(registration)
        return context(dealer)

    if perspective is TaxPerspective.BUYER_STATE:
        if (
            buyer != dealer
            and buyer in rooftop.allowed_registration_states
            and not rooftop.override_for(buyer).disallow_primary
        ):
            return context(buyer)
        return context(registration)

    if rooftop.override_for(registration).disallow_primary:
        return context(dealer)
    return context(registration)


def create_simple_rooftop_config(
    state_code: str, name: Optional[str] = None
) -> RooftopConfig:
    """Single-state dealership taxing from the dealer's own state."""
    return RooftopConfig(
        dealer_state_code=state_code,
        default_tax_perspective=TaxPerspective.DEALER_STATE,
        allowed_registration_states=(state_code,),
        name=name or f"{state_code} Dealership",
    )


def create_multi_state_rooftop_config(
    state_code: str,
    allowed_registration_states: list[str],
    perspective: TaxPerspective = TaxPerspective.REGISTRATION_STATE,
    name: Optional[str] = None,
) -> RooftopConfig:
    allowed = list(allowed_registration_states)
    if state_code not in allowed:
        allowed.insert(0, state_code)
    return RooftopConfig(
        dealer_state_code=state_code,
        default_tax_perspective=perspective,
        allowed_registration_states=tuple(allowed),
        name=name or f"{state_code} Multi-State Dealership",
    )


def get_involved_states(context: TaxContext) -> list[str]:
    return sorted(
        {
            context.primary_state_code,
            context.dealer_state_code,
            context.buyer_residence_state_code,
            context.registration_state_code,
        }
    )


def is_multi_state_deal(context: TaxContext) -> bool:
    return len(get_involved_states(context)) > 1
