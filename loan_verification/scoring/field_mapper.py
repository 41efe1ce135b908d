"""
Field Mapper
loan_verification/scoring/field_mapper.py

Normalizes a structured draft report into canonical ApplicantData.

Draft sections read (all optional):
  primaryApplicant, basicDetails, personalDetails, businessDetails,
  propertyDetails, bankingDetails, debtDetails, endUseDetails,
  referenceChecks; top-level existingLoans / repaymentHistory / loanList
  take precedence over debtDetails.

Coercion never raises. Anything unparsable collapses to the field's
"absent" value, which the scorers treat as not matched. Loan existence is
tri-state: "unknown" and "no" stay distinct all the way through.

Usage:
    applicant = FieldMapper().map(draft)
"""

import math
import re
from decimal import Decimal, InvalidOperation
from collections.abc import Mapping
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
from loan_verification.models.enumerations import BusinessType, LoanStatus, RepaymentTrack
from loan_verification.scoring.utils import AMOUNT_UNIT_PATTERN, ZERO, scale_amount

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Vocabulary
# ---------------------------------------------------------------------------

ABSENCE_SENTINELS = frozenset({
    "", "n/a", "na", "not available", "unknown", "nil", "none", "-",
})

NEGATIVE_LOAN_ANSWERS = frozenset({
    "no", "none", "nil", "false", "0", "no loans", "no loan",
    "no existing loans", "no existing loan",
})

PENDING_FEEDBACK = "pending"

_NUMBER_RE = re.compile(rf"(-?\d+(?:\.\d+)?)\s*({AMOUNT_UNIT_PATTERN})?\b", re.IGNORECASE)
_YEARS_RE = re.compile(r"\b(years?|yrs?)\b", re.IGNORECASE)
_GOOD_TRACK_RE = re.compile(r"\b(good|excellent|regular|timely)\b", re.IGNORECASE)
_POOR_TRACK_RE = re.compile(r"\b(poor|bad|irregular|delayed)\b", re.IGNORECASE)
_OWNED_RE = re.compile(r"own|self", re.IGNORECASE)
_LICENSE_RE = re.compile(r"licen[cs]e|registration|gst|udyam|msme|shop\s*act", re.IGNORECASE)
_SELF_OCCUPY_RE = re.compile(r"\bself|own\s*(stay|use|occupation)", re.IGNORECASE)

# Priority order: manufacturing > trading > service
BUSINESS_TYPE_PATTERNS: Dict[BusinessType, re.Pattern] = {
    BusinessType.MANUFACTURING: re.compile(
        r"manufactur|production|factory|fabricat|\bplant\b", re.IGNORECASE
    ),
    BusinessType.TRADING: re.compile(
        r"\btrad(e|er|ers|ing)\b|wholesale|retail|\bshop\b|\bstore\b|dealer|distribut",
        re.IGNORECASE,
    ),
    BusinessType.SERVICE: re.compile(
        r"\bservices?\b|consultan|software|contractor|agency|clinic|salon|repair",
        re.IGNORECASE,
    ),
}

# businessDetails key -> conditional rubric item it evidences
CONDITIONAL_EVIDENCE_FIELDS: Dict[str, str] = {
    "rawMaterialSourcing": "mfg_raw_material_sourcing",
    "processFlow": "mfg_process_flow",
    "capacityUtilization": "mfg_capacity_utilization",
    "machinery": "mfg_machinery",
    "inventoryAging": "mfg_inventory_aging",
    "qualityControl": "mfg_quality_control",
    "productRange": "trading_product_range",
    "purchaseSalesCycle": "trading_purchase_sales_cycle",
    "warehouseStock": "trading_warehouse_stock",
    "deliveryDocumentation": "svc_delivery_documentation",
    "technologySystems": "svc_technology_systems",
    "contractsRevenueModel": "svc_contracts_revenue_model",
    "contractOrWalkin": "svc_contract_or_walkin",
}


# ---------------------------------------------------------------------------
# Coercion functions
# ---------------------------------------------------------------------------

def _is_finite_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, float):
        return math.isfinite(value)
    if isinstance(value, Decimal):
        return value.is_finite()
    return isinstance(value, int)


def is_absent_text(value: str) -> bool:
    return value.strip().lower() in ABSENCE_SENTINELS


def has_value(value: Any) -> bool:
    """True for meaningful strings, nonzero numbers, boolean True, non-empty collections."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float, Decimal)):
        return _is_finite_number(value) and value != 0
    if isinstance(value, str):
        return not is_absent_text(value)
    if isinstance(value, (list, tuple, set, frozenset, dict)):
        return len(value) > 0
    return False


def parse_number(value: Any) -> Decimal:
    """
    Parse a loosely formatted number ("Rs. 1,20,000", "45%", "1.5 lakh", 12.5).

    Thousands separators are dropped and the first numeric run is used,
    scaled by a lakh/crore/k suffix when one follows it.
    Absent or unparsable input yields Decimal("0").
    """
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, (int, float, Decimal)):
        if not _is_finite_number(value):
            return ZERO
        return value if isinstance(value, Decimal) else Decimal(str(value))
    if not isinstance(value, str) or is_absent_text(value):
        return ZERO
    match = _NUMBER_RE.search(value.replace(",", ""))
    if not match:
        return ZERO
    try:
        return scale_amount(Decimal(match.group(1)), match.group(2))
    except InvalidOperation:
        return ZERO


def parse_months(value: Any) -> Decimal:
    """Duration in months; text mentioning years is converted ("3 years" -> 36)."""
    number = parse_number(value)
    if isinstance(value, str) and _YEARS_RE.search(value):
        return number * 12
    return number


def is_owned(value: Any) -> bool:
    """Ownership text contains 'own' or 'self' ("Owned", "Self-owned"); else rented."""
    if not isinstance(value, str) or is_absent_text(value):
        return False
    return bool(_OWNED_RE.search(value))


def parse_existing_loans(value: Any) -> LoanStatus:
    """
    Tri-state loan existence.

    Booleans map directly. Negative answers ("no", "none", "nil") are NO.
    Absence sentinels ("n/a", "unknown", empty) are UNKNOWN, never NO.
    Any other non-empty string is YES.
    """
    if value is None:
        return LoanStatus.UNKNOWN
    if isinstance(value, bool):
        return LoanStatus.YES if value else LoanStatus.NO
    if isinstance(value, (int, float, Decimal)):
        if not _is_finite_number(value):
            return LoanStatus.UNKNOWN
        return LoanStatus.YES if value > 0 else LoanStatus.NO
    if isinstance(value, str):
        normalized = " ".join(value.strip().lower().split())
        if normalized in NEGATIVE_LOAN_ANSWERS:
            return LoanStatus.NO
        if normalized in ABSENCE_SENTINELS:
            return LoanStatus.UNKNOWN
        return LoanStatus.YES
    if isinstance(value, (list, tuple, dict)):
        return LoanStatus.YES if value else LoanStatus.UNKNOWN
    return LoanStatus.UNKNOWN


def parse_repayment_track(value: Any) -> RepaymentTrack:
    if not isinstance(value, str) or is_absent_text(value):
        return RepaymentTrack.UNKNOWN
    if _GOOD_TRACK_RE.search(value):
        return RepaymentTrack.GOOD
    if _POOR_TRACK_RE.search(value):
        return RepaymentTrack.POOR
    return RepaymentTrack.UNKNOWN


def classify_business_type(*texts: Any) -> Optional[BusinessType]:
    """Keyword classification; first matching bucket in priority order wins."""
    combined = " ".join(t for t in texts if isinstance(t, str) and not is_absent_text(t))
    if not combined:
        return None
    for business_type, pattern in BUSINESS_TYPE_PATTERNS.items():
        if pattern.search(combined):
            return business_type
    return None


def explicit_business_type(value: Any) -> Optional[BusinessType]:
    if not isinstance(value, str):
        return None
    normalized = value.strip().lower()
    for business_type in BusinessType:
        if normalized.startswith(business_type.value[:4]):
            return business_type
    return None


# ---------------------------------------------------------------------------
# Draft access helpers
# ---------------------------------------------------------------------------

def _section(record: Mapping, name: str) -> Mapping:
    value = record.get(name)
    return value if isinstance(value, Mapping) else {}


def _pick(*values: Any) -> Any:
    """First value that is neither None nor a blank string."""
    for value in values:
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return None


def _text(*values: Any) -> Optional[str]:
    for value in values:
        if isinstance(value, str) and has_value(value):
            return value.strip()
        if _is_finite_number(value) and value != 0:
            return str(value)
    return None


def _feedback_given(reference: Any) -> bool:
    if not isinstance(reference, Mapping):
        return False
    feedback = reference.get("feedback")
    if not has_value(feedback):
        return False
    return not (isinstance(feedback, str) and feedback.strip().lower() == PENDING_FEEDBACK)


# ---------------------------------------------------------------------------
# FieldMapper
# ---------------------------------------------------------------------------

class FieldMapper:
    """Map a draft report record (or None) into ApplicantData."""

    def map(self, raw: Any) -> ApplicantData:
        draft: Mapping = raw if isinstance(raw, Mapping) else {}

        applicant = ApplicantData(
            personal=self._personal(draft),
            business=self._business(draft),
            banking=self._banking(draft),
            networth=self._networth(draft),
            debt=self._debt(draft),
            end_use=self._end_use(draft),
            references=self._references(draft),
        )
        logger.debug(
            "draft_mapped",
            sections=sorted(str(k) for k, v in draft.items() if isinstance(v, Mapping)),
            business_type=applicant.business.business_type.value if applicant.business.business_type else None,
            existing_loans=applicant.debt.existing_loans.value,
        )
        return applicant

    def _personal(self, draft: Mapping) -> PersonalInfo:
        primary = _section(draft, "primaryApplicant")
        pers = _section(draft, "personalDetails")
        return PersonalInfo(
            self_education=_text(pers.get("selfEducation"), primary.get("education")),
            spouse_name=_text(primary.get("spouseName"), pers.get("spouseName")),
            spouse_education=_text(pers.get("spouseEducation")),
            spouse_employment=_text(pers.get("spouseEmployment")),
            kids_count=parse_number(_pick(pers.get("dependents"), pers.get("kidsCount"))),
            kids_education=_text(pers.get("kidsEducation")),
            kids_school=_text(pers.get("kidsSchool")),
            residence_vintage=_text(pers.get("residenceVintage")),
            residence_owned=is_owned(pers.get("residenceType")),
            monthly_rent=parse_number(pers.get("monthlyRent")),
        )

    def _business(self, draft: Mapping) -> BusinessInfo:
        basic = _section(draft, "basicDetails")
        bus = _section(draft, "businessDetails")

        setup = bus.get("businessSetup")
        licenses = has_value(_pick(bus.get("licensesRegistrations"), bus.get("licenses"))) or (
            isinstance(setup, str) and bool(_LICENSE_RE.search(setup))
        )

        business_type = explicit_business_type(bus.get("businessType")) or classify_business_type(
            basic.get("natureOfBusiness"),
            bus.get("majorServices"),
            bus.get("businessProfile"),
        )

        evidence = frozenset(
            item_key
            for draft_key, item_key in CONDITIONAL_EVIDENCE_FIELDS.items()
            if has_value(bus.get(draft_key))
        )

        return BusinessInfo(
            name=_text(bus.get("businessName")),
            nature=_text(bus.get("majorServices"), basic.get("natureOfBusiness")),
            vintage_months=parse_months(
                _pick(bus.get("businessVintageMonths"), bus.get("businessVintage"))
            ),
            licenses_verified=licenses,
            promoter_experience=has_value(bus.get("promoterExperience"))
            or has_value(bus.get("yearsOfExperience")),
            strategic_vision=has_value(bus.get("strategicVision")) or has_value(bus.get("growthPlans")),
            employees_verified=has_value(bus.get("employeeCount")),
            monthly_turnover=parse_number(bus.get("monthlyTurnover")),
            client_list_available=has_value(bus.get("clientListConcentrationRisk"))
            or has_value(bus.get("majorClients")),
            activity_observed=has_value(bus.get("businessProfile")),
            monthly_income=parse_number(bus.get("netMonthlyIncome")),
            seasonality_mentioned=has_value(bus.get("seasonality")),
            infrastructure_adequate=has_value(bus.get("surroundingArea")),
            source_of_business=has_value(bus.get("sourceOfBusiness")),
            business_type=business_type,
            conditional_evidence=evidence,
        )

    def _banking(self, draft: Mapping) -> BankingInfo:
        bank = _section(draft, "bankingDetails")
        return BankingInfo(
            primary_bank=_text(bank.get("bankName")),
            turnover_credit_percent=parse_number(bank.get("turnoverCreditPercent")),
            tenure_months=parse_months(bank.get("bankingTenure")),
            emis_routed=has_value(bank.get("emisRouted")),
            qr_code_spotted=has_value(bank.get("qrCodeSpotted")),
        )

    def _networth(self, draft: Mapping) -> NetworthInfo:
        prop = _section(draft, "propertyDetails")
        bus = _section(draft, "businessDetails")

        properties = parse_number(prop.get("propertiesOwned"))
        if properties <= 0 and has_value(prop.get("propertyType")):
            properties = Decimal("1")

        return NetworthInfo(
            properties_owned=properties,
            vehicles_owned=parse_number(prop.get("vehiclesOwned")),
            other_investments=has_value(prop.get("otherInvestments")),
            business_place_owned=is_owned(
                _pick(bus.get("premisesOwnership"), bus.get("businessSetup"))
            ),
        )

    def _debt(self, draft: Mapping) -> DebtInfo:
        debt = _section(draft, "debtDetails")
        bus = _section(draft, "businessDetails")
        return DebtInfo(
            existing_loans=parse_existing_loans(
                _pick(draft.get("existingLoans"), debt.get("existingLoans"))
            ),
            repayment_track=parse_repayment_track(
                _pick(
                    draft.get("repaymentHistory"),
                    debt.get("repaymentHistory"),
                    debt.get("repaymentTrack"),
                )
            ),
            loan_list_available=has_value(_pick(draft.get("loanList"), debt.get("loanList"))),
            can_service_new_loan=has_value(bus.get("comfortableEmi"))
            or has_value(debt.get("comfortableEmi")),
        )

    def _end_use(self, draft: Mapping) -> EndUseInfo:
        end = _section(draft, "endUseDetails")
        end_use_text = _text(end.get("endUse"))
        return EndUseInfo(
            purpose=_text(end.get("purposeOfLoan")),
            agreement_value=parse_number(end.get("agreementValue")),
            advance_paid=parse_number(end.get("advancePaid")),
            will_occupy=bool(end_use_text and _SELF_OCCUPY_RE.search(end_use_text)),
            funds_use=end_use_text,
        )

    def _references(self, draft: Mapping) -> ReferenceInfo:
        ref = _section(draft, "referenceChecks")
        return ReferenceInfo(
            personal_check=_feedback_given(ref.get("reference1")),
            business_check=_feedback_given(ref.get("reference2")),
            invoice_verified=has_value(ref.get("invoiceVerified")),
        )
