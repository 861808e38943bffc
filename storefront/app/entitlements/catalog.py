"""Static catalog definitions for the purchasable plans."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple

from .models import PlanKind


@dataclass(frozen=True)
class PlanDefinition:
    """Describes a plan as presented on the membership screen."""

    kind: PlanKind
    display_name: str
    description: str
    benefits: Tuple[str, ...]
    icon: str
    unlimited_visits: bool = False


PLAN_CATALOG: Dict[PlanKind, PlanDefinition] = {
    PlanKind.MONTHLY: PlanDefinition(
        kind=PlanKind.MONTHLY,
        display_name="Monthly Membership",
        description="Unlimited access to all workshops for one month",
        benefits=(
            "Unlimited workshop access",
            "Priority booking",
            "10% discount on materials",
            "Special events access",
            "Cancel anytime",
        ),
        icon="calendar.badge.plus",
        unlimited_visits=True,
    ),
    PlanKind.SINGLE_VISIT: PlanDefinition(
        kind=PlanKind.SINGLE_VISIT,
        display_name="Single Visit Pass",
        description="Access to any single workshop",
        benefits=(
            "Access to one workshop",
            "All materials included",
            "No commitment",
            "Valid for 30 days",
        ),
        icon="ticket.fill",
    ),
}


def get_plan_definition(kind: PlanKind) -> PlanDefinition:
    """Return a plan definition, raising if unsupported."""

    try:
        return PLAN_CATALOG[kind]
    except KeyError as exc:  # pragma: no cover - guarded by static catalog
        raise KeyError(f"Unknown plan kind: {kind}") from exc
