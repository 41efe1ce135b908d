"""
Score Aggregator
loan_verification/scoring/aggregator.py

Sums already-capped category scores into the 0-100 total and derives the
risk band used by downstream decisioning:

    total >= 70  ->  High
    total >= 40  ->  Medium
    otherwise    ->  Low

Every result passes an invariant check first. A category above its cap or
a total above 100 cannot happen by construction, so a violation raises
ScoreInvariantError.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional

from loan_verification.core.exceptions import ScoreInvariantError
from loan_verification.core.logging import get_logger
from loan_verification.models.enumerations import RiskBand
from loan_verification.models.score_result import ScoreResult
from loan_verification.scoring.rubric import RUBRIC, TOTAL_CAP
from loan_verification.scoring.utils import ZERO, round_half_up, sum_decimals

logger = get_logger(__name__)

HIGH_BAND_THRESHOLD = Decimal("70")
MEDIUM_BAND_THRESHOLD = Decimal("40")


@dataclass
class AggregateScore:
    total: Decimal
    risk_band: RiskBand
    breakdown: Dict[str, Any]
    warnings: List[str] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": float(self.total),
            "risk_band": self.risk_band.value,
            "breakdown": self.breakdown,
            "warnings": list(self.warnings),
            "error": self.error,
        }


def risk_band(total: Decimal) -> RiskBand:
    if total >= HIGH_BAND_THRESHOLD:
        return RiskBand.HIGH
    if total >= MEDIUM_BAND_THRESHOLD:
        return RiskBand.MEDIUM
    return RiskBand.LOW


class ScoreAggregator:
    """Total, risk band and blending over Score Results from any strategy."""

    def check(self, result: ScoreResult) -> None:
        for category, definition in RUBRIC.items():
            value = result.scores.get(category, ZERO)
            if value < ZERO or value > definition.cap:
                raise ScoreInvariantError(category.value, value, f"[0, {definition.cap}]")
        total = result.total
        if total < ZERO or total > TOTAL_CAP:
            raise ScoreInvariantError("total", total, f"[0, {TOTAL_CAP}]")

    def aggregate(self, result: ScoreResult) -> AggregateScore:
        self.check(result)
        total = sum_decimals(result.scores[category] for category in RUBRIC)
        band = risk_band(total)
        logger.info(
            "score_aggregated",
            strategy=result.strategy.value,
            total=float(total),
            risk_band=band.value,
            error=result.error,
        )
        return AggregateScore(
            total=total,
            risk_band=band,
            breakdown=result.to_breakdown(),
            warnings=list(result.warnings),
            error=result.error,
        )

    def blend(self, first: Decimal, second: Decimal) -> int:
        """Rounded mean of two totals, e.g. deterministic and holistic."""
        for name, value in (("first", first), ("second", second)):
            if value < ZERO or value > TOTAL_CAP:
                raise ScoreInvariantError(name, value, f"[0, {TOTAL_CAP}]")
        return round_half_up((Decimal(first) + Decimal(second)) / 2)
