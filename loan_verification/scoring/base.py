"""
Scorer protocol and shared points calculation.

Every strategy returns a ScoreResult; callers pick the strategy. The two
local strategies build per-item match maps and then share
points_from_matches(), so caps, the personal residence slot and the
business conditional sub-block are applied identically.
"""

from decimal import Decimal
from typing import Any, Dict, Mapping, Optional, Protocol

from loan_verification.models.enumerations import BusinessType, Category, ScoringStrategy
from loan_verification.models.score_result import ScoreResult
from loan_verification.scoring.rubric import BUSINESS_CONDITIONAL_CAP, RUBRIC
from loan_verification.scoring.utils import ZERO, clamp

RESIDENCE_SLOT_ITEM = "monthly_rent_if_rented"

Matches = Dict[Category, Dict[str, bool]]


class Scorer(Protocol):
    strategy: ScoringStrategy

    def score(self, source: Any) -> ScoreResult:
        ...


def business_points(
    matches: Mapping[str, bool],
    business_type: Optional[BusinessType],
) -> Decimal:
    """
    Core and cross-category items, plus one conditional sub-block.

    With no detected business type every sub-block is evaluated together;
    the conditional part is capped at BUSINESS_CONDITIONAL_CAP either way.
    """
    definition = RUBRIC[Category.BUSINESS]
    unconditional = [i for i in definition.items if i.business_type is None]
    if business_type is None:
        conditional = [i for i in definition.items if i.business_type is not None]
    else:
        conditional = definition.conditional_items(business_type)

    base = definition.sum_matched(matches, unconditional)
    extra = clamp(definition.sum_matched(matches, conditional), ZERO, BUSINESS_CONDITIONAL_CAP)
    return definition.capped(base + extra)


def personal_points(matches: Mapping[str, bool], residence_owned: bool) -> Decimal:
    definition = RUBRIC[Category.PERSONAL]
    points = definition.sum_matched(matches)
    # owned residence takes the rent slot; rent itself is never matched when owned
    if residence_owned:
        points += definition.item(RESIDENCE_SLOT_ITEM).weight
    return definition.capped(points)


def points_from_matches(
    matches: Mapping[Category, Mapping[str, bool]],
    business_type: Optional[BusinessType],
    residence_owned: bool,
) -> Dict[Category, Decimal]:
    scores: Dict[Category, Decimal] = {}
    for category, definition in RUBRIC.items():
        category_matches = matches.get(category, {})
        if category is Category.PERSONAL:
            scores[category] = personal_points(category_matches, residence_owned)
        elif category is Category.BUSINESS:
            scores[category] = business_points(category_matches, business_type)
        else:
            scores[category] = definition.capped(definition.sum_matched(category_matches))
    return scores
