"""
Pattern-Based Scorer
loan_verification/scoring/pattern_scorer.py

Best-effort scoring straight from raw report text, used when no structured
draft exists yet. Each rubric item is backed by a case-insensitive regex;
a match means the item is satisfied. Numeric items (income, turnover
credited, banking tenure, rent, agreement value) also try to read a number
from the same line and fall back to presence when none is found.

The rules that need structure are kept identical to the deterministic
scorer:
  - owned residence detected => rent weight never awarded
  - labelled loan entry ("Existing loans: HDFC ...") => loans present
  - loans explicitly absent ("no existing loans") => status documented only
  - loans merely undocumented => whole debt category stays at 0
  - business type picked by keyword bucket; none found => all sub-blocks

Usage:
    result = PatternScorer().score(report_text)
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Dict, Optional, Tuple

from loan_verification.core.logging import get_logger
from loan_verification.models.enumerations import (
    BusinessType,
    Category,
    LoanStatus,
    RepaymentTrack,
    ScoringStrategy,
)
from loan_verification.models.score_result import SCORING_FAILED, ScoreResult, score_summary
from loan_verification.scoring.base import Matches, points_from_matches
from loan_verification.scoring.field_mapper import classify_business_type, parse_repayment_track
from loan_verification.scoring.rubric import (
    MIN_BANKING_TENURE_MONTHS,
    MIN_MONTHLY_INCOME,
    MIN_TURNOVER_CREDITED_PERCENT,
    RUBRIC,
)
from loan_verification.scoring.utils import AMOUNT_UNIT_PATTERN, ZERO, scale_amount

logger = get_logger(__name__)


def _p(*alternatives: str) -> re.Pattern:
    return re.compile("|".join(f"(?:{a})" for a in alternatives), re.IGNORECASE)


# ---------------------------------------------------------------------------
# Pattern tables (rubric item key -> regex)
# ---------------------------------------------------------------------------

ITEM_PATTERNS: Dict[Category, Dict[str, re.Pattern]] = {

    Category.PERSONAL: {
        "self_education": _p(r"\beducation\b", r"qualification", r"graduat", r"\bdegree\b",
                             r"diploma", r"\b(?:10th|12th)\b", r"matriculat"),
        "spouse_name": _p(r"spouse(?:'s)?\s*(?:name)?\s*[:\-]", r"\bwife\b", r"\bhusband\b",
                          r"married\s*to"),
        "spouse_education": _p(r"(?:spouse|wife|husband)[^\n]{0,40}educat"),
        "spouse_employment": _p(r"(?:spouse|wife|husband)[^\n]{0,40}"
                                r"(?:employ|occupation|work|job|homemaker|housewife)"),
        "mention_about_kids": _p(r"\b(?:child|children|sons?|daughters?|kids?|dependents?)\b"),
        "kids_education": _p(r"\b(?:child|children|sons?|daughters?|kids?)\b[^\n]{0,40}"
                             r"(?:educat|study|studying|class|grade)"),
        "kids_school": _p(r"\bschool\b", r"\bcollege\b", r"studying\s*at"),
        "residence_vintage": _p(r"resid\w*\s*(?:since|vintage|for)", r"(?:stay|living)\w*\s*(?:here\s*)?since",
                                r"\d+\s*years?\s*(?:at|in)\s*(?:the\s*)?(?:current\s*)?resid"),
    },

    Category.BUSINESS: {
        "business_name": _p(r"(?:business|firm|company|entity|shop)\s*name\s*[:\-]"),
        "nature_of_business": _p(r"nature\s*of\s*business", r"business\s*type", r"type\s*of\s*business",
                                 r"line\s*of\s*business"),
        "existence_current_place": _p(r"(?:exist\w*|establish\w*|operat\w*|running)\s*(?:here\s*)?since",
                                      r"\d+\s*years?\s*(?:in|of)\s*business", r"business\s*vintage",
                                      r"at\s*(?:the\s*)?current\s*(?:place|location|premises)"),
        "licenses_registrations": _p(r"licen[cs]e", r"registration", r"\bgst(?:in)?\b", r"udyam",
                                     r"\bmsme\b", r"shop\s*act"),
        "promoter_experience": _p(r"experience", r"expertise",
                                  r"years?\s*in\s*(?:the\s*)?(?:business|industry|trade)"),
        "strategic_vision": _p(r"\bvision\b", r"expansion", r"growth\s*plan", r"future\s*plan"),
        "employees_seen": _p(r"\bemployees?\b", r"\bstaff\b", r"\bworkers?\b", r"\blabou?r\b"),
        "monthly_turnover": _p(r"turnover", r"monthly\s*sales"),
        "client_list_concentration_risk": _p(r"\bclients?\b", r"\bcustomers?\b", r"\bbuyers?\b"),
        "activity_during_visit": _p(r"during\s*(?:the\s*)?visit", r"activity\s*(?:was\s*)?observed",
                                    r"business\s*activity", r"active\s*operations?"),
        "monthly_income": _p(r"(?:net\s*)?(?:monthly\s*)?income", r"net\s*profit"),
        "seasonality": _p(r"seasonal", r"peak\s*season", r"off[- ]?season", r"fluctuat"),
        "infra_supports_turnover": _p(r"infrastructure", r"premises", r"office\s*space", r"godown",
                                      r"warehouse"),
        "source_of_business": _p(r"source\s*of\s*business", r"referred\s*by", r"word\s*of\s*mouth",
                                 r"walk[- ]?in\s*customers?"),
        "comfortable_emi": _p(r"can\s*(?:comfortably\s*)?service", r"repay\w*\s*capacity",
                              r"sufficient\s*income", r"comfortable\s*(?:with\s*)?(?:the\s*)?emi",
                              r"emi\s*comfort"),
        "mfg_raw_material_sourcing": _p(r"raw\s*materials?", r"procurement"),
        "mfg_process_flow": _p(r"process\s*flow", r"production\s*process", r"manufacturing\s*process"),
        "mfg_capacity_utilization": _p(r"\bcapacity\b", r"utili[sz]ation"),
        "mfg_machinery": _p(r"machine\w*", r"equipment", r"automation"),
        "mfg_inventory_aging": _p(r"inventory", r"\bfifo\b", r"\bage?ing\b"),
        "mfg_quality_control": _p(r"quality\s*(?:control|check)", r"\bq[ac]\b", r"\biso\b"),
        "trading_product_range": _p(r"product\s*range", r"range\s*of\s*products", r"variety",
                                    r"assortment"),
        "trading_purchase_sales_cycle": _p(r"(?:purchase|sales)\s*cycle", r"credit\s*period"),
        "trading_warehouse_stock": _p(r"warehouse", r"godown", r"stock\s*(?:was\s*)?(?:seen|observed|verified)"),
        "svc_delivery_documentation": _p(r"(?:service|delivery)\s*(?:records?|documentation|reports?)",
                                         r"job\s*cards?", r"work\s*orders?"),
        "svc_technology_systems": _p(r"technology", r"software", r"\bcrm\b", r"\berp\b", r"\bit\s*systems?"),
        "svc_contracts_revenue_model": _p(r"\bcontracts?\b", r"revenue\s*model", r"retainer"),
        "svc_contract_or_walkin": _p(r"contract[- ]based", r"walk[- ]?in", r"project[- ]based", r"retainer"),
    },

    Category.BANKING: {
        "primary_banker_name": _p(r"primary\s*bank(?:er)?", r"bank\s*name", r"\bbanker\s*[:\-]",
                                  r"\b(?:hdfc|icici|sbi|axis|kotak|yes\s*bank|idfc|bandhan|pnb|canara|"
                                  r"indusind|federal\s*bank|bank\s*of\s*baroda|union\s*bank)\b"),
        "turnover_credited_percent": _p(r"turnover[^\n]{0,40}credit", r"credit\w*[^\n]{0,40}turnover",
                                        r"turnover[^\n]{0,20}routed"),
        "banking_tenure": _p(r"banking\s*(?:relation\w*|tenure|since|vintage)", r"account\s*since",
                             r"\d+\s*(?:years?|months?)\s*(?:with|at)\s*(?:the\s*)?bank"),
        "emis_routed_bank": _p(r"emis?\s*(?:are\s*)?(?:routed|debited|paid)", r"\bnach\b",
                               r"ecs\s*mandate"),
        "qr_code_spotted": _p(r"qr\s*code", r"\bupi\b", r"phonepe", r"g\s*pay", r"paytm", r"\bbhim\b"),
    },

    Category.NETWORTH: {
        "properties_owned": _p(r"propert(?:y|ies)", r"\bland\b", r"\bplot\b", r"\bflat\b", r"apartment",
                               r"real\s*estate"),
        "vehicles_owned": _p(r"vehicles?", r"\bcars?\b", r"\bbikes?\b", r"scooter", r"two[- ]?wheeler",
                             r"four[- ]?wheeler"),
        "other_investments": _p(r"invest", r"fixed\s*deposit", r"\bfds?\b", r"mutual\s*funds?",
                                r"\bshares\b", r"\bgold\b", r"\blic\b", r"insurance\s*polic"),
        "business_place_owned": _p(r"(?:own(?:ed)?|self[- ]?owned)\s*(?:business\s*place|shop|office|"
                                   r"factory|premises)",
                                   r"(?:shop|office|factory|premises|business\s*place)\s*(?:(?:is|are)\s*)?"
                                   r"(?:self[- ]?)?owned"),
    },

    Category.END_USE: {
        "additional_use_information": _p(r"purpose\s*of\s*(?:the\s*)?loan", r"end\s*use",
                                         r"loan\s*(?:is\s*)?(?:required\s*)?for"),
        "agreement_value_available": _p(r"agreement\s*value", r"property\s*value", r"sale\s*deed\s*value"),
        "will_occupy_post_purchase": _p(r"will\s*occupy", r"self[- ]?occup", r"personal\s*use",
                                        r"own\s*stay"),
    },

    Category.REFERENCE_CHECKS: {
        "personal_ref_neighbours": _p(r"neighbou?rs?", r"relatives?", r"personal\s*reference",
                                      r"family\s*reference"),
        "business_ref_buyers_sellers": _p(r"\bbuyers?\b", r"\bsellers?\b", r"suppliers?", r"vendors?",
                                          r"business\s*reference", r"customer\s*reference"),
        "invoice_verification": _p(r"invoices?", r"\bbills?\b", r"receipts?", r"purchase\s*orders?",
                                   r"sales\s*orders?"),
    },
}

# Residence
OWNED_RESIDENCE_RE = _p(r"(?:own(?:ed)?|self[- ]?owned)\s*(?:house|home|residence|property|flat)",
                        r"(?:house|home|residence|flat)\s*(?:is\s*)?self[- ]?owned",
                        r"resid\w*\s*(?:type|status)?\s*[:\-]?\s*(?:self[- ]?)?owned")
RENT_RE = _p(r"monthly\s*rent", r"\brent(?:al)?\s*(?:paid|amount|of|is|[:\-])", r"\brented\b")

# Existing debt
NO_LOANS_RE = _p(r"\bno\s+(?:existing|outstanding|current|running)?\s*(?:loans?|debts?|borrowings?)\b",
                 r"\bloans?\s*[:\-]\s*(?:nil|none|no)\b", r"not\s*availed\s*any\s*loans?", r"debt[- ]free")
LOANS_LISTED_RE = _p(r"(?:existing|current|outstanding|running)\s*loans?\s*[:\-]\s*(?!(?:nil|none|no|not|nothing|n/?a)\b)\w")
HAS_LOANS_RE = _p(r"existing\s*loans?", r"current\s*loans?", r"outstanding\s*loans?",
                  r"running\s*loans?", r"loans?\s*(?:from|with|availed)", r"borrowings?")
LOAN_LIST_RE = _p(r"loan\s*(?:list|details|schedule)", r"loans?\s*(?:from|with)\s+\w+")
LOAN_SOURCE_RE = _p(r"loans?[^\n]{0,60}\b(?:from|with)\b[^\n]{0,40}\b(?:bank|nbfc|fintech|financ\w*)")
REPAYMENT_RE = _p(r"(?:repayment|track\s*record|payment\s*history|cibil|credit\s*score)[^\n]*")

NATURE_LINE_RE = _p(r"(?:nature|type|line)\s*of\s*business[^\n]*", r"business\s*type[^\n]*")

# Numbers
_AMOUNT_RE = re.compile(
    rf"(?:rs\.?|inr|₹)?\s*(\d[\d,]*(?:\.\d+)?)\s*({AMOUNT_UNIT_PATTERN})?\b",
    re.IGNORECASE,
)
_PERCENT_RE = re.compile(r"(\d+(?:\.\d+)?)\s*(?:%|percent)", re.IGNORECASE)
_DURATION_RE = re.compile(r"(\d+(?:\.\d+)?)\s*(years?|yrs?|months?|mos?)\b", re.IGNORECASE)


def _decimal(raw: str) -> Optional[Decimal]:
    try:
        return Decimal(raw.replace(",", ""))
    except InvalidOperation:
        return None


def extract_amount(snippet: str) -> Optional[Decimal]:
    """First amount in the snippet: 'Rs. 1,20,000' -> 120000, '2.5 lakh' -> 250000."""
    match = _AMOUNT_RE.search(snippet)
    if not match:
        return None
    value = _decimal(match.group(1))
    if value is None:
        return None
    return scale_amount(value, match.group(2))


def extract_percent(snippet: str) -> Optional[Decimal]:
    match = _PERCENT_RE.search(snippet)
    return _decimal(match.group(1)) if match else None


def extract_months(snippet: str) -> Optional[Decimal]:
    """First duration in the snippet, in months: '3 years' -> 36."""
    match = _DURATION_RE.search(snippet)
    if not match:
        return None
    value = _decimal(match.group(1))
    if value is None:
        return None
    return value * 12 if match.group(2).lower().startswith("y") else value


def _rest_of_line(text: str, match: re.Match) -> str:
    end = text.find("\n", match.start())
    return text[match.start(): end if end != -1 else len(text)]


def _whole_line(text: str, match: re.Match) -> str:
    start = text.rfind("\n", 0, match.start()) + 1
    end = text.find("\n", match.end())
    return text[start: end if end != -1 else len(text)]


def detect_loan_status(text: str) -> LoanStatus:
    """
    A labelled loan entry ("Existing loans: HDFC ...") is YES; otherwise an
    explicit negative phrase wins over loose loan mentions; neither => UNKNOWN.
    """
    if LOANS_LISTED_RE.search(text):
        return LoanStatus.YES
    if NO_LOANS_RE.search(text):
        return LoanStatus.NO
    if HAS_LOANS_RE.search(text):
        return LoanStatus.YES
    return LoanStatus.UNKNOWN


def detect_repayment_track(text: str) -> RepaymentTrack:
    match = REPAYMENT_RE.search(text)
    return parse_repayment_track(match.group(0)) if match else RepaymentTrack.UNKNOWN


def detect_business_type(text: str) -> Optional[BusinessType]:
    """Classify the nature-of-business line first, then the whole document."""
    line = NATURE_LINE_RE.search(text)
    if line:
        business_type = classify_business_type(line.group(0))
        if business_type is not None:
            return business_type
    return classify_business_type(text)


class PatternScorer:
    """Regex/keyword heuristics over raw report text. Pure and stateless."""

    strategy = ScoringStrategy.PATTERN

    def score(self, text: str) -> ScoreResult:
        document = text if isinstance(text, str) else ""
        try:
            matches, business_type, residence_owned = self.evaluate(document)
            scores = points_from_matches(matches, business_type, residence_owned)
        except Exception as e:
            logger.exception("pattern_scoring_failed", text_length=len(document), error=str(e))
            return ScoreResult.empty(self.strategy, error=f"{SCORING_FAILED}: {e}")

        result = ScoreResult.build(
            strategy=self.strategy,
            scores=scores,
            matches=matches,
            rationale=f"Pattern-based scoring completed. {score_summary(scores)}",
        )
        logger.info(
            "pattern_scored",
            text_length=len(document),
            total=float(result.total),
            business_type=business_type.value if business_type else None,
            warnings=result.warnings,
        )
        return result

    def evaluate(self, text: str) -> Tuple[Matches, Optional[BusinessType], bool]:
        matches: Matches = {
            category: {key: bool(pattern.search(text)) for key, pattern in patterns.items()}
            for category, patterns in ITEM_PATTERNS.items()
        }

        residence_owned = self._apply_residence(text, matches[Category.PERSONAL])
        self._apply_thresholds(text, matches)

        networth = matches[Category.NETWORTH]
        networth["total_networth_available"] = networth["properties_owned"] or networth["vehicles_owned"]

        matches[Category.EXISTING_DEBT] = self._debt_matches(
            text, can_service=matches[Category.BUSINESS]["comfortable_emi"]
        )

        # keep the match map complete even for items without a pattern
        for category, definition in RUBRIC.items():
            for key in definition.keys:
                matches.setdefault(category, {}).setdefault(key, False)

        return matches, detect_business_type(text), residence_owned

    def _apply_residence(self, text: str, personal: Dict[str, bool]) -> bool:
        owned = bool(OWNED_RESIDENCE_RE.search(text))
        rent_documented = False
        if not owned:
            rent = RENT_RE.search(text)
            if rent:
                amount = extract_amount(_rest_of_line(text, rent))
                rent_documented = amount is None or amount > ZERO
        personal["monthly_rent_if_rented"] = rent_documented
        personal["residence_owned_or_rented"] = owned or rent_documented
        return owned

    def _apply_thresholds(self, text: str, matches: Matches) -> None:
        business = matches[Category.BUSINESS]
        banking = matches[Category.BANKING]
        end_use = matches[Category.END_USE]

        income = ITEM_PATTERNS[Category.BUSINESS]["monthly_income"].search(text)
        if income:
            amount = extract_amount(_rest_of_line(text, income))
            business["monthly_income"] = amount is None or amount >= MIN_MONTHLY_INCOME

        credited = ITEM_PATTERNS[Category.BANKING]["turnover_credited_percent"].search(text)
        if credited:
            percent = extract_percent(_whole_line(text, credited))
            banking["turnover_credited_percent"] = (
                percent is None or percent >= MIN_TURNOVER_CREDITED_PERCENT
            )

        tenure = ITEM_PATTERNS[Category.BANKING]["banking_tenure"].search(text)
        if tenure:
            months = extract_months(_whole_line(text, tenure))
            banking["banking_tenure"] = months is None or months >= MIN_BANKING_TENURE_MONTHS

        agreement = ITEM_PATTERNS[Category.END_USE]["agreement_value_available"].search(text)
        if agreement:
            amount = extract_amount(_rest_of_line(text, agreement))
            end_use["agreement_value_available"] = amount is None or amount > ZERO

    def _debt_matches(self, text: str, can_service: bool) -> Dict[str, bool]:
        status = detect_loan_status(text)
        loans_present = status is LoanStatus.YES
        track = detect_repayment_track(text)
        return {
            "has_existing_loans": status is not LoanStatus.UNKNOWN,
            "loan_list_available": loans_present and bool(LOAN_LIST_RE.search(text)),
            "repayment_history_quality": loans_present and track is RepaymentTrack.GOOD,
            "loans_source_bank_nature": loans_present and bool(LOAN_SOURCE_RE.search(text)),
            "can_service_new_loan": can_service,
        }
