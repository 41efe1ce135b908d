"""
Holistic Scorer Adapter
loan_verification/scoring/holistic_scorer.py

Delegates scoring to an external reasoning service. The prompt restates
the rubric table (categories, caps, items, weights) and asks for one JSON
object:

    {"personal": 9.0, ..., "personal_matches": {"self_education": true, ...},
     ..., "rationale": "..."}

Response handling:
  1. Service not configured   -> all-zero result, AI_NOT_CONFIGURED, no call
  2. Transient failure         -> retried with linear backoff (n x delay)
  3. No usable JSON object, or one
     without any scoring key   -> all-zero result, "SCORING_FAILED: <cause>"
  4. Otherwise every score is coerced to a number and clamped to
     [0, cap]; every item is coerced to bool ("true" accepted)

score() never raises. The caller may pass a deadline and a cancellation
event; both are honored between attempts and during backoff waits.
"""

import json
import threading
import time
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Mapping, Optional, Tuple

from loan_verification.config import Settings
from loan_verification.core.exceptions import ReasoningServiceError, ResponseParseError
from loan_verification.core.logging import get_logger
from loan_verification.models.enumerations import Category, ScoringStrategy
from loan_verification.models.score_result import AI_NOT_CONFIGURED, SCORING_FAILED, ScoreResult
from loan_verification.scoring.reasoning_client import ReasoningServiceClient, ReasoningServiceConfig
from loan_verification.scoring.rubric import BUSINESS_CONDITIONAL_CAP, RUBRIC
from loan_verification.scoring.utils import ZERO, clamp, to_decimal

logger = get_logger(__name__)

DEADLINE_EXCEEDED = "deadline exceeded"
CANCELLED = "cancelled"

# Alternate response keys seen from camelCase-prompted models
_CATEGORY_ALIASES: Dict[Category, Tuple[str, ...]] = {
    Category.PERSONAL: ("personal",),
    Category.BUSINESS: ("business",),
    Category.BANKING: ("banking",),
    Category.NETWORTH: ("networth",),
    Category.EXISTING_DEBT: ("existing_debt", "existingDebt"),
    Category.END_USE: ("end_use", "endUse"),
    Category.REFERENCE_CHECKS: ("reference_checks", "referenceChecks"),
}


# ---------------------------------------------------------------------------
# Prompt
# ---------------------------------------------------------------------------

SYSTEM_PROMPT = (
    "You are a credit verification analyst reviewing a field verification "
    "report for a loan applicant. Score the report strictly against the "
    "rubric you are given. Credit an item only when the report states the "
    "fact; never infer or assume. Respond with a single JSON object and "
    "nothing else."
)


def _fmt(value: Decimal) -> str:
    return format(value.normalize(), "f")


def rubric_prompt() -> str:
    lines = ["RUBRIC (category caps sum to 100; sum matched item points, never exceed the cap):"]
    for category, definition in RUBRIC.items():
        lines.append(f"- {category.value} (max {_fmt(definition.cap)}): {definition.label}")
        for item in definition.items:
            note = "" if item.scored else ", tracked only, no points"
            if item.business_type is not None:
                note += f", {item.business_type.value} businesses only"
            lines.append(f"    * {item.key} ({_fmt(item.weight)} pts{note}): {item.label}")
    lines.append(
        f"Business: score only the conditional block matching the business type "
        f"(at most {_fmt(BUSINESS_CONDITIONAL_CAP)} points from it)."
    )
    lines.append(
        "Existing debt: has_existing_loans is true when the report states either that "
        "loans exist or that there are none; the other debt items need loans to exist."
    )
    return "\n".join(lines)


def response_schema() -> str:
    fields = [f'  "{c.value}": <number 0-{_fmt(d.cap)}>' for c, d in RUBRIC.items()]
    for category, definition in RUBRIC.items():
        items = ", ".join(f'"{key}": true|false' for key in definition.keys)
        fields.append(f'  "{category.value}_matches": {{{items}}}')
    fields.append('  "rationale": "<two or three sentences>"')
    return "{\n" + ",\n".join(fields) + "\n}"


def build_user_prompt(document_text: str) -> str:
    return (
        f"{rubric_prompt()}\n\n"
        f"Return exactly this JSON shape:\n{response_schema()}\n\n"
        f"VERIFICATION REPORT:\n{document_text}"
    )


# ---------------------------------------------------------------------------
# Response parsing and coercion
# ---------------------------------------------------------------------------

def extract_json_object(raw: str) -> Dict[str, Any]:
    """First decodable JSON object in the reply; prose or fences around it are ignored."""
    decoder = json.JSONDecoder()
    index = raw.find("{")
    while index != -1:
        try:
            value, _ = decoder.raw_decode(raw, index)
        except json.JSONDecodeError:
            value = None
        if isinstance(value, dict):
            return value
        index = raw.find("{", index + 1)
    raise ResponseParseError()


def coerce_score(value: Any, cap: Decimal) -> Decimal:
    if isinstance(value, bool) or value is None:
        return ZERO
    if isinstance(value, Decimal):
        number = value
    elif isinstance(value, (str, int, float)):
        try:
            number = Decimal(str(value).strip())
        except InvalidOperation:
            return ZERO
    else:
        return ZERO
    if not number.is_finite():
        return ZERO
    # clamp before quantizing; huge magnitudes cannot be quantized
    return to_decimal(clamp(number, ZERO, cap))


def coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return False


def _lookup(payload: Mapping[str, Any], keys: Tuple[str, ...]) -> Any:
    for key in keys:
        if key in payload:
            return payload[key]
    return None


def _match_aliases(category: Category) -> Tuple[str, ...]:
    aliases = _CATEGORY_ALIASES[category]
    return tuple(f"{a}_matches" for a in aliases) + tuple(f"{a}Matches" for a in aliases)


SCHEMA_KEYS = frozenset(
    key
    for category in RUBRIC
    for key in _CATEGORY_ALIASES[category] + _match_aliases(category)
)


def coerce_payload(payload: Mapping[str, Any]) -> Tuple[Dict[Category, Decimal], Dict[Category, Dict[str, bool]], str]:
    """
    Coerce a reply object into scores, matches and rationale.

    An object carrying no category or *_matches key is not a scoring reply
    and raises ResponseParseError; individual missing fields default to 0/False.
    """
    if not SCHEMA_KEYS.intersection(payload):
        raise ResponseParseError("Response object has no scoring keys")
    scores: Dict[Category, Decimal] = {}
    matches: Dict[Category, Dict[str, bool]] = {}
    for category, definition in RUBRIC.items():
        aliases = _CATEGORY_ALIASES[category]
        scores[category] = coerce_score(_lookup(payload, aliases), definition.cap)
        raw_matches = _lookup(payload, _match_aliases(category))
        if not isinstance(raw_matches, Mapping):
            raw_matches = {}
        matches[category] = {key: coerce_bool(raw_matches.get(key)) for key in definition.keys}
    rationale = payload.get("rationale")
    return scores, matches, rationale.strip() if isinstance(rationale, str) else ""


# ---------------------------------------------------------------------------
# HolisticScorer
# ---------------------------------------------------------------------------

class HolisticScorer:
    """Reasoning-service strategy; same output contract as the local scorers."""

    strategy = ScoringStrategy.HOLISTIC

    def __init__(self, client: Optional[ReasoningServiceClient] = None):
        self.client = client

    @classmethod
    def from_settings(cls, settings: Settings, transport=None) -> "HolisticScorer":
        config = ReasoningServiceConfig.from_settings(settings)
        if not config.configured:
            return cls(client=None)
        return cls(client=ReasoningServiceClient(config, transport=transport))

    @property
    def configured(self) -> bool:
        return self.client is not None and self.client.config.configured

    def score(
        self,
        document_text: str,
        deadline_seconds: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ScoreResult:
        if not self.configured:
            logger.warning("holistic_not_configured")
            return ScoreResult.empty(
                self.strategy,
                error=AI_NOT_CONFIGURED,
                rationale="Reasoning service is not configured; no scoring performed.",
            )

        text = document_text if isinstance(document_text, str) else ""
        config = self.client.config
        prompt_text = text[: config.max_document_chars]
        deadline = time.monotonic() + deadline_seconds if deadline_seconds is not None else None

        try:
            raw = self._complete_with_retry(build_user_prompt(prompt_text), deadline, cancel_event)
            scores, matches, rationale = coerce_payload(extract_json_object(raw))
        except (ReasoningServiceError, ResponseParseError) as e:
            return self._failed(e.message, len(text))
        except Exception as e:
            logger.exception("holistic_unexpected_error", text_length=len(text))
            return self._failed(str(e) or type(e).__name__, len(text))

        result = ScoreResult.build(
            strategy=self.strategy,
            scores=scores,
            matches=matches,
            rationale=rationale or "Holistic scoring completed.",
        )
        logger.info(
            "holistic_scored",
            text_length=len(text),
            truncated=len(text) > len(prompt_text),
            total=float(result.total),
            warnings=result.warnings,
        )
        return result

    def _complete_with_retry(
        self,
        user_prompt: str,
        deadline: Optional[float],
        cancel_event: Optional[threading.Event],
    ) -> str:
        config = self.client.config
        attempts = config.max_retries + 1

        for attempt in range(1, attempts + 1):
            if cancel_event is not None and cancel_event.is_set():
                raise ReasoningServiceError(CANCELLED)

            timeout = config.timeout_seconds
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise ReasoningServiceError(DEADLINE_EXCEEDED)
                timeout = min(timeout, remaining)

            logger.info("holistic_attempt", attempt=attempt, max_attempts=attempts, model=config.model)
            try:
                return self.client.complete(SYSTEM_PROMPT, user_prompt, timeout=timeout)
            except ReasoningServiceError as e:
                if deadline is not None and time.monotonic() >= deadline:
                    raise ReasoningServiceError(DEADLINE_EXCEEDED) from e
                if not e.transient or attempt == attempts:
                    raise

                delay = config.retry_delay_seconds * attempt
                if deadline is not None and time.monotonic() + delay >= deadline:
                    raise ReasoningServiceError(DEADLINE_EXCEEDED) from e

                logger.warning(
                    "holistic_retry",
                    attempt=attempt,
                    delay_seconds=delay,
                    status_code=e.status_code,
                    error=e.message,
                )
                if self._wait(delay, cancel_event):
                    raise ReasoningServiceError(CANCELLED) from e

        raise ReasoningServiceError("no attempts made")

    @staticmethod
    def _wait(delay: float, cancel_event: Optional[threading.Event]) -> bool:
        """Sleep for the backoff delay; True if cancelled meanwhile."""
        if cancel_event is not None:
            return cancel_event.wait(delay)
        time.sleep(delay)
        return False

    def _failed(self, reason: str, text_length: int) -> ScoreResult:
        logger.warning("holistic_degraded", reason=reason, text_length=text_length)
        return ScoreResult.empty(
            self.strategy,
            error=f"{SCORING_FAILED}: {reason}",
            rationale="Holistic scoring failed; all categories defaulted to zero.",
        )
