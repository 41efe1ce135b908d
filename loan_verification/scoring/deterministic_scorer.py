"""
Deterministic Scorer
loan_verification/scoring/deterministic_scorer.py

Evaluates every rubric item as a predicate over ApplicantData, sums the
matched weights and truncates at each category cap.

Category rules:
  Personal      residence owned OR rent documented fills one slot, never
                both; a further 1.5 when ownership status is documented
  Business      13 core items, source-of-business and comfortable-EMI,
                plus the conditional sub-block for the detected type
  Banking       turnover credited >= 50%, tenure >= 12 months
  Networth      2.5 per asset class; total-networth flag is display only
  Existing debt status documented (yes OR no) scores; the other three
                items need loans explicitly present

Usage:
    result = DeterministicScorer().score(applicant)
    result = DeterministicScorer().score_draft(draft_dict)
"""

from typing import Any, Dict, Optional

from loan_verification.core.logging import get_logger
from loan_verification.models.applicant import (
    ApplicantData,
    BankingInfo,
    BusinessInfo,
    DebtInfo,
    EndUseInfo,
    NetworthInfo,
    PersonalInfo,
    ReferenceInfo,
)
from loan_verification.models.enumerations import (
    Category,
    LoanStatus,
    RepaymentTrack,
    ScoringStrategy,
)
from loan_verification.models.score_result import SCORING_FAILED, ScoreResult, score_summary
from loan_verification.scoring.base import Matches, points_from_matches
from loan_verification.scoring.field_mapper import FieldMapper, has_value
from loan_verification.scoring.rubric import (
    MIN_BANKING_TENURE_MONTHS,
    MIN_MONTHLY_INCOME,
    MIN_TURNOVER_CREDITED_PERCENT,
    RUBRIC,
)
from loan_verification.scoring.utils import ZERO

logger = get_logger(__name__)


def personal_matches(p: PersonalInfo) -> Dict[str, bool]:
    rent_documented = not p.residence_owned and p.monthly_rent > ZERO
    return {
        "self_education": has_value(p.self_education),
        "spouse_name": has_value(p.spouse_name),
        "spouse_education": has_value(p.spouse_education),
        "spouse_employment": has_value(p.spouse_employment),
        "mention_about_kids": p.kids_count > ZERO,
        "kids_education": has_value(p.kids_education),
        "kids_school": has_value(p.kids_school),
        "residence_vintage": has_value(p.residence_vintage),
        "monthly_rent_if_rented": rent_documented,
        "residence_owned_or_rented": p.residence_owned or rent_documented,
    }


def business_matches(b: BusinessInfo, debt: DebtInfo) -> Dict[str, bool]:
    matches = {
        "business_name": has_value(b.name),
        "nature_of_business": has_value(b.nature),
        "existence_current_place": b.vintage_months > ZERO,
        "licenses_registrations": b.licenses_verified,
        "promoter_experience": b.promoter_experience,
        "strategic_vision": b.strategic_vision,
        "employees_seen": b.employees_verified,
        "monthly_turnover": b.monthly_turnover > ZERO,
        "client_list_concentration_risk": b.client_list_available,
        "activity_during_visit": b.activity_observed,
        "monthly_income": b.monthly_income >= MIN_MONTHLY_INCOME,
        "seasonality": b.seasonality_mentioned,
        "infra_supports_turnover": b.infrastructure_adequate,
        "source_of_business": b.source_of_business,
        "comfortable_emi": debt.can_service_new_loan,
    }
    # evidence is reported for every sub-block; only the selected one scores
    for item in RUBRIC[Category.BUSINESS].items:
        if item.business_type is not None:
            matches[item.key] = item.key in b.conditional_evidence
    return matches


def banking_matches(bank: BankingInfo) -> Dict[str, bool]:
    return {
        "primary_banker_name": has_value(bank.primary_bank),
        "turnover_credited_percent": bank.turnover_credit_percent >= MIN_TURNOVER_CREDITED_PERCENT,
        "banking_tenure": bank.tenure_months >= MIN_BANKING_TENURE_MONTHS,
        "emis_routed_bank": bank.emis_routed,
        "qr_code_spotted": bank.qr_code_spotted,
    }


def networth_matches(n: NetworthInfo) -> Dict[str, bool]:
    properties = n.properties_owned > ZERO
    vehicles = n.vehicles_owned > ZERO
    return {
        "properties_owned": properties,
        "vehicles_owned": vehicles,
        "other_investments": n.other_investments,
        "business_place_owned": n.business_place_owned,
        "total_networth_available": properties or vehicles,
    }


def debt_matches(d: DebtInfo) -> Dict[str, bool]:
    loans_present = d.existing_loans is LoanStatus.YES
    track_known = d.repayment_track is not RepaymentTrack.UNKNOWN
    return {
        "has_existing_loans": d.existing_loans is not LoanStatus.UNKNOWN,
        "loan_list_available": loans_present and d.loan_list_available,
        "repayment_history_quality": loans_present and d.repayment_track is RepaymentTrack.GOOD,
        "loans_source_bank_nature": loans_present and track_known,
        "can_service_new_loan": d.can_service_new_loan,
    }


def end_use_matches(e: EndUseInfo) -> Dict[str, bool]:
    return {
        "additional_use_information": has_value(e.purpose),
        "agreement_value_available": e.agreement_value > ZERO,
        "will_occupy_post_purchase": e.will_occupy,
    }


def reference_matches(r: ReferenceInfo) -> Dict[str, bool]:
    return {
        "personal_ref_neighbours": r.personal_check,
        "business_ref_buyers_sellers": r.business_check,
        "invoice_verification": r.invoice_verified,
    }


class DeterministicScorer:
    """Field-based scoring over mapped ApplicantData. Pure and stateless."""

    strategy = ScoringStrategy.DETERMINISTIC

    def __init__(self, mapper: Optional[FieldMapper] = None):
        self.mapper = mapper or FieldMapper()

    def score(self, applicant: ApplicantData) -> ScoreResult:
        try:
            matches = self.evaluate(applicant)
            scores = points_from_matches(
                matches,
                business_type=applicant.business.business_type,
                residence_owned=applicant.personal.residence_owned,
            )
        except Exception as e:
            logger.exception("deterministic_scoring_failed", error=str(e))
            return ScoreResult.empty(self.strategy, error=f"{SCORING_FAILED}: {e}")

        result = ScoreResult.build(
            strategy=self.strategy,
            scores=scores,
            matches=matches,
            rationale=f"Deterministic scoring completed. {score_summary(scores)}",
        )
        logger.info(
            "deterministic_scored",
            total=float(result.total),
            business_type=(
                applicant.business.business_type.value
                if applicant.business.business_type else None
            ),
            warnings=result.warnings,
        )
        return result

    def score_draft(self, draft: Any) -> ScoreResult:
        """Map a raw draft record, then score it."""
        return self.score(self.mapper.map(draft))

    def evaluate(self, applicant: ApplicantData) -> Matches:
        return {
            Category.PERSONAL: personal_matches(applicant.personal),
            Category.BUSINESS: business_matches(applicant.business, applicant.debt),
            Category.BANKING: banking_matches(applicant.banking),
            Category.NETWORTH: networth_matches(applicant.networth),
            Category.EXISTING_DEBT: debt_matches(applicant.debt),
            Category.END_USE: end_use_matches(applicant.end_use),
            Category.REFERENCE_CHECKS: reference_matches(applicant.references),
        }
