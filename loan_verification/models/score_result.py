from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from loan_verification.models.enumerations import Category, ScoringStrategy
from loan_verification.scoring.rubric import RUBRIC, RUBRIC_VERSION
from loan_verification.scoring.utils import ZERO, sum_decimals, to_decimal

AI_NOT_CONFIGURED = "AI_NOT_CONFIGURED"
SCORING_FAILED = "SCORING_FAILED"


def coverage_warnings(scores: Mapping[Category, Decimal]) -> List[str]:
    """One warning per category scoring exactly zero, in rubric order."""
    return [
        f"{definition.label} not verified"
        for category, definition in RUBRIC.items()
        if scores.get(category, ZERO) == ZERO
    ]


def format_points(value: Decimal) -> str:
    normalized = value.normalize()
    return format(normalized, "f")


def score_summary(scores: Mapping[Category, Decimal]) -> str:
    """'Total: T/100. Personal details: p/15, ...' for rationales and logs."""
    total = sum_decimals(scores.get(c, ZERO) for c in RUBRIC)
    parts = ", ".join(
        f"{definition.label}: {format_points(scores.get(category, ZERO))}/{format_points(definition.cap)}"
        for category, definition in RUBRIC.items()
    )
    return f"Total: {format_points(total)}/100. {parts}."


class ScoreResult(BaseModel):
    """
    Shared output contract of every scoring strategy.

    Every category appears in ``scores`` and every rubric item appears in
    ``matches``; missing entries are filled with 0 / False on construction.
    Bounds are not enforced here: ScoreAggregator.check() raises
    ScoreInvariantError for out-of-range values.
    """

    model_config = ConfigDict(frozen=True)

    strategy: ScoringStrategy = Field(..., description="Strategy that produced the result")
    scores: Dict[Category, Decimal] = Field(default_factory=dict)
    matches: Dict[Category, Dict[str, bool]] = Field(default_factory=dict)
    warnings: List[str] = Field(default_factory=list)
    rationale: str = ""
    error: Optional[str] = Field(
        default=None,
        description="AI_NOT_CONFIGURED or 'SCORING_FAILED: <reason>'",
    )
    rubric_version: str = RUBRIC_VERSION

    @model_validator(mode="after")
    def fill_missing_entries(self):
        for category, definition in RUBRIC.items():
            self.scores.setdefault(category, ZERO)
            item_matches = self.matches.setdefault(category, {})
            for key in definition.keys:
                item_matches.setdefault(key, False)
        return self

    @property
    def total(self) -> Decimal:
        return sum_decimals(self.scores.values())

    @classmethod
    def build(
        cls,
        strategy: ScoringStrategy,
        scores: Mapping[Category, Decimal],
        matches: Mapping[Category, Mapping[str, bool]],
        rationale: str = "",
        error: Optional[str] = None,
    ) -> "ScoreResult":
        """Quantize scores and derive coverage warnings."""
        quantized = {category: to_decimal(value) for category, value in scores.items()}
        return cls(
            strategy=strategy,
            scores=quantized,
            matches={category: dict(items) for category, items in matches.items()},
            warnings=coverage_warnings(quantized),
            rationale=rationale,
            error=error,
        )

    @classmethod
    def empty(
        cls,
        strategy: ScoringStrategy,
        error: Optional[str] = None,
        rationale: str = "",
    ) -> "ScoreResult":
        """All-zero result: every score 0, every item False."""
        return cls.build(
            strategy=strategy,
            scores={category: ZERO for category in RUBRIC},
            matches={},
            rationale=rationale,
            error=error,
        )

    def to_breakdown(self) -> Dict[str, Any]:
        """Flat JSON-friendly dict for persistence and UI panels."""
        breakdown: Dict[str, Any] = {
            "strategy": self.strategy.value,
            "rubric_version": self.rubric_version,
            "total": float(self.total),
        }
        for category in RUBRIC:
            breakdown[category.value] = float(self.scores[category])
        for category in RUBRIC:
            breakdown[f"{category.value}_matches"] = dict(self.matches[category])
        breakdown["warnings"] = list(self.warnings)
        breakdown["rationale"] = self.rationale
        breakdown["error"] = self.error
        return breakdown
