# loan_verification/models/applicant.py
"""
Canonical applicant snapshot, one per verification case.

Every field is a concrete value, an explicit absence (None for text,
Decimal("0") for numbers, False for flags), or, for loan existence and
repayment track, a tri-state enum. Built by the field mapper and treated
as immutable for the duration of a scoring call.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import FrozenSet, Optional

from loan_verification.models.enumerations import BusinessType, LoanStatus, RepaymentTrack

_ZERO = Decimal("0")


@dataclass(frozen=True)
class PersonalInfo:
    self_education: Optional[str] = None
    spouse_name: Optional[str] = None
    spouse_education: Optional[str] = None
    spouse_employment: Optional[str] = None
    kids_count: Decimal = _ZERO
    kids_education: Optional[str] = None
    kids_school: Optional[str] = None
    residence_vintage: Optional[str] = None
    residence_owned: bool = False       # False means rented (or unstated)
    monthly_rent: Decimal = _ZERO


@dataclass(frozen=True)
class BusinessInfo:
    name: Optional[str] = None
    nature: Optional[str] = None
    vintage_months: Decimal = _ZERO
    licenses_verified: bool = False
    promoter_experience: bool = False
    strategic_vision: bool = False
    employees_verified: bool = False
    monthly_turnover: Decimal = _ZERO
    client_list_available: bool = False
    activity_observed: bool = False
    monthly_income: Decimal = _ZERO
    seasonality_mentioned: bool = False
    infrastructure_adequate: bool = False
    source_of_business: bool = False
    business_type: Optional[BusinessType] = None
    # Rubric keys of conditional (mfg/trading/service) items with evidence
    conditional_evidence: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class BankingInfo:
    primary_bank: Optional[str] = None
    turnover_credit_percent: Decimal = _ZERO
    tenure_months: Decimal = _ZERO
    emis_routed: bool = False
    qr_code_spotted: bool = False


@dataclass(frozen=True)
class NetworthInfo:
    properties_owned: Decimal = _ZERO
    vehicles_owned: Decimal = _ZERO
    other_investments: bool = False
    business_place_owned: bool = False


@dataclass(frozen=True)
class DebtInfo:
    existing_loans: LoanStatus = LoanStatus.UNKNOWN
    repayment_track: RepaymentTrack = RepaymentTrack.UNKNOWN
    loan_list_available: bool = False
    can_service_new_loan: bool = False


@dataclass(frozen=True)
class EndUseInfo:
    purpose: Optional[str] = None
    agreement_value: Decimal = _ZERO
    advance_paid: Decimal = _ZERO
    will_occupy: bool = False
    funds_use: Optional[str] = None


@dataclass(frozen=True)
class ReferenceInfo:
    personal_check: bool = False
    business_check: bool = False
    invoice_verified: bool = False


@dataclass(frozen=True)
class ApplicantData:
    personal: PersonalInfo = field(default_factory=PersonalInfo)
    business: BusinessInfo = field(default_factory=BusinessInfo)
    banking: BankingInfo = field(default_factory=BankingInfo)
    networth: NetworthInfo = field(default_factory=NetworthInfo)
    debt: DebtInfo = field(default_factory=DebtInfo)
    end_use: EndUseInfo = field(default_factory=EndUseInfo)
    references: ReferenceInfo = field(default_factory=ReferenceInfo)
