"""Capsule build classification and league build rules.

A character's build is the set of capsules equipped for a match. Each capsule
has a build type (one of seven categories) and a cost; the cost distribution
across categories decides the build label:

- Pure:      top category holds at least 75% of the cost
- Focused:   top category holds at least 45% of the cost
- Dual:      top two categories within 20 points of each other and
             together at least 65% of the cost
- Balanced:  anything else
- No Build:  no categorized capsule cost at all
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

BUILD_CATEGORIES: tuple[str, ...] = (
    "Melee",
    "Blast",
    "Ki Blast",
    "Defense",
    "Skill",
    "Ki Efficiency",
    "Utility",
)

_CATEGORY_LOOKUP = {name.lower(): name for name in BUILD_CATEGORIES}

PURE_THRESHOLD = 75.0
FOCUSED_THRESHOLD = 45.0
DUAL_MAX_GAP = 20.0
DUAL_MIN_COMBINED = 65.0


@dataclass(frozen=True)
class BuildShare:
    name: str
    cost: int
    percent: float


@dataclass(frozen=True)
class BuildComposition:
    """Classification of a capsule cost distribution."""

    primary: str
    label: str
    type: str  # pure | focused | dual | balanced | none
    secondary: str | None = None
    primary_percent: float = 0.0
    breakdown: tuple[BuildShare, ...] = ()


NO_BUILD = BuildComposition(primary="No Build", label="No Build", type="none")


def classify_build_type(build_type: str | None) -> str | None:
    """Map a capsule build type onto one of the seven categories.

    Matching is case-insensitive and treats hyphens as spaces, so
    ``ki-efficiency`` and ``Ki Efficiency`` are the same category.
    Returns None for unknown types.
    """
    if not build_type:
        return None
    key = " ".join(build_type.replace("-", " ").lower().split())
    return _CATEGORY_LOOKUP.get(key)


def empty_category_map() -> dict[str, int]:
    return {name: 0 for name in BUILD_CATEGORIES}


def get_build_composition(capsule_costs: dict[str, int | float]) -> BuildComposition:
    """Classify a category -> cost map into a build composition.

    Categories are ranked by cost descending; equal costs keep the order of
    BUILD_CATEGORIES (stable sort).
    """
    costs = [(name, capsule_costs.get(name, 0) or 0) for name in BUILD_CATEGORIES]
    total = sum(cost for _, cost in costs)
    if total <= 0:
        return NO_BUILD

    ranked = sorted(costs, key=lambda item: item[1], reverse=True)
    breakdown = tuple(
        BuildShare(name=name, cost=cost, percent=cost / total * 100)
        for name, cost in ranked
        if cost > 0
    )

    top_name, top_cost = ranked[0]
    second_name, second_cost = ranked[1]
    top_pct = top_cost / total * 100
    second_pct = second_cost / total * 100
    secondary = second_name if second_cost > 0 else None

    if top_pct >= PURE_THRESHOLD:
        return BuildComposition(
            primary=top_name,
            label=f"Pure {top_name}",
            type="pure",
            secondary=secondary,
            primary_percent=top_pct,
            breakdown=breakdown,
        )

    if top_pct >= FOCUSED_THRESHOLD:
        return BuildComposition(
            primary=top_name,
            label=f"{top_name}-Focused",
            type="focused",
            secondary=secondary,
            primary_percent=top_pct,
            breakdown=breakdown,
        )

    if (
        second_cost > 0
        and top_pct - second_pct <= DUAL_MAX_GAP
        and top_pct + second_pct >= DUAL_MIN_COMBINED
    ):
        return BuildComposition(
            primary=top_name,
            label=f"Dual: {top_name}/{second_name}",
            type="dual",
            secondary=second_name,
            primary_percent=top_pct,
            breakdown=breakdown,
        )

    return BuildComposition(
        primary="Hybrid",
        label="Balanced Hybrid",
        type="balanced",
        secondary=None,
        primary_percent=top_pct,
        breakdown=breakdown,
    )


# ============================================================================
# League build rules
# ============================================================================


@dataclass(frozen=True)
class BuildRules:
    """Constraints a legal build must satisfy."""

    max_cost: int = 20
    max_capsules: int = 7
    min_cost: int | None = None
    banned_capsules: tuple[str, ...] = ()
    required_capsules: tuple[str, ...] = ()


BUILD_RULES = BuildRules()


@dataclass(frozen=True)
class BuildValidation:
    valid: bool
    total_cost: int
    capsule_count: int
    remaining_cost: int
    remaining_slots: int
    max_cost: int
    max_capsules: int
    violations: dict[str, bool] = field(default_factory=dict)


def validate_build(capsules: Iterable, rules: BuildRules = BUILD_RULES) -> BuildValidation:
    """Check a list of capsules (anything with ``id`` and ``cost``) against rules."""
    capsules = list(capsules)
    total_cost = sum(getattr(c, "cost", 0) or 0 for c in capsules)
    capsule_count = len(capsules)
    ids = {getattr(c, "id", None) for c in capsules}

    violations = {
        "cost_exceeded": total_cost > rules.max_cost,
        "too_many_capsules": capsule_count > rules.max_capsules,
        "below_min_cost": rules.min_cost is not None and total_cost < rules.min_cost,
        "has_banned_capsules": any(cid in ids for cid in rules.banned_capsules),
        "missing_required_capsules": any(
            cid not in ids for cid in rules.required_capsules
        ),
    }

    return BuildValidation(
        valid=not any(violations.values()),
        total_cost=total_cost,
        capsule_count=capsule_count,
        remaining_cost=rules.max_cost - total_cost,
        remaining_slots=rules.max_capsules - capsule_count,
        max_cost=rules.max_cost,
        max_capsules=rules.max_capsules,
        violations=violations,
    )


def validation_message(validation: BuildValidation) -> str:
    """Human-readable summary of a build validation."""
    if validation.valid:
        return (
            f"Valid build ({validation.capsule_count}/{validation.max_capsules} "
            f"slots, {validation.total_cost}/{validation.max_cost} cost)"
        )

    errors = []
    if validation.violations.get("cost_exceeded"):
        errors.append(f"Cost exceeds limit ({validation.total_cost}/{validation.max_cost})")
    if validation.violations.get("too_many_capsules"):
        errors.append(
            f"Too many capsules ({validation.capsule_count}/{validation.max_capsules})"
        )
    if validation.violations.get("below_min_cost"):
        errors.append("Below minimum cost requirement")
    if validation.violations.get("has_banned_capsules"):
        errors.append("Contains banned capsules")
    if validation.violations.get("missing_required_capsules"):
        errors.append("Missing required capsules")

    return f"Invalid build: {', '.join(errors)}"
