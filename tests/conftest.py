# tests/conftest.py

"""
Pytest Fixtures - Shared drafts, report text and reasoning-service fakes

FULL_DRAFT scores 100/100 under the deterministic scorer:
- Personal 15, Business 30 (manufacturing), Banking 15, Networth 10,
  Existing debt 10, End use 10, References 10
"""

import copy
import json
from typing import Callable, Dict, List

import httpx
import pytest
import structlog

from loan_verification.models.applicant import ApplicantData
from loan_verification.scoring.reasoning_client import (
    ReasoningServiceClient,
    ReasoningServiceConfig,
)


# =============================================================================
# LOGGING ISOLATION
# =============================================================================

@pytest.fixture(autouse=True)
def reset_structlog():
    """CLI tests configure structlog against captured streams; undo it."""
    yield
    structlog.reset_defaults()


# =============================================================================
# DRAFT RECORDS
# =============================================================================

FULL_DRAFT: Dict = {
    "primaryApplicant": {"name": "Ramesh Kumar", "spouseName": "Sunita Kumar"},
    "basicDetails": {"natureOfBusiness": "Manufacturing of steel fabrication parts"},
    "personalDetails": {
        "selfEducation": "Graduate",
        "spouseEducation": "12th",
        "spouseEmployment": "Homemaker",
        "dependents": "2",
        "kidsEducation": "Both in school",
        "kidsSchool": "DAV Public School",
        "residenceVintage": "12 years",
        "residenceType": "Owned",
        "monthlyRent": "N/A",
    },
    "businessDetails": {
        "businessName": "Kumar Steel Works",
        "majorServices": "Steel fabrication",
        "businessVintageMonths": "96",
        "businessSetup": "Owned premises with trade license and GST registration",
        "employeeCount": "14",
        "monthlyTurnover": "Rs. 8,50,000",
        "businessProfile": "Active production observed during visit",
        "surroundingArea": "Industrial area with adequate shed space",
        "seasonality": "Peak season Oct-Mar",
        "clientListConcentrationRisk": "Top 3 clients are 40% of sales",
        "sourceOfBusiness": "Repeat orders from OEMs",
        "strategicVision": "Plans to add a CNC line",
        "promoterExperience": "18 years in fabrication",
        "netMonthlyIncome": "1,20,000",
        "comfortableEmi": "EMI of 35,000 is comfortable",
        "rawMaterialSourcing": "Steel from local distributors",
        "processFlow": "Cutting, welding, finishing",
        "machinery": "2 lathes, 1 CNC",
        "qualityControl": "Manual inspection",
    },
    "propertyDetails": {
        "propertiesOwned": "2",
        "vehiclesOwned": "1",
        "otherInvestments": "LIC policies",
    },
    "bankingDetails": {
        "bankName": "HDFC Bank",
        "turnoverCreditPercent": "80%",
        "bankingTenure": "6 years",
        "emisRouted": "Yes",
        "qrCodeSpotted": "Yes",
    },
    "debtDetails": {
        "existingLoans": "Yes",
        "loanList": "Business loan from SBI",
        "repaymentHistory": "Good, no delays",
    },
    "endUseDetails": {
        "purposeOfLoan": "Purchase of factory shed",
        "agreementValue": "45,00,000",
        "endUse": "Self occupation for business",
    },
    "referenceChecks": {
        "reference1": {"name": "Neighbour", "feedback": "Positive"},
        "reference2": {"name": "Supplier", "feedback": "Pays on time"},
        "invoiceVerified": "Yes, 3 invoices",
    },
}


@pytest.fixture
def full_draft() -> Dict:
    """A fresh deep copy so tests can mutate it freely."""
    return copy.deepcopy(FULL_DRAFT)


@pytest.fixture
def empty_applicant() -> ApplicantData:
    return ApplicantData()


# =============================================================================
# RAW REPORT TEXT
# =============================================================================

TRADING_REPORT = """FIELD VERIFICATION REPORT
Applicant education: B.Com graduate
Spouse name: Sunita. Spouse education: 12th pass. Spouse employment: homemaker.
Two children; children studying in class 8 and 5 at DAV Public School.
Residing since 2012 in own house.
Business name: Kumar Traders
Nature of business: Wholesale trading of FMCG goods
Operating since 2015 at current premises. GST registration and trade licence seen.
Promoter has 15 years experience in the trade. Expansion planned next year.
8 employees present during the visit.
Monthly turnover: Rs 12 lakh. Net monthly income: Rs 1.5 lakh.
Major customers are local retailers. Peak season during festivals.
Product range covers 300 SKUs; godown stock seen.
Primary bank: HDFC Bank. 85% of turnover credited to the account. Banking relationship of 6 years.
EMIs debited from HDFC account. QR code displayed at counter.
Owns a plot and a car; invests in mutual funds. Shop is self owned.
Existing loans: business loan from HDFC Bank, repayment track good.
Purpose of loan: purchase of adjacent shop. Agreement value Rs 35 lakh.
Will occupy the shop for own business.
Neighbours confirmed residence. Supplier reference positive. Invoices verified.
"""


@pytest.fixture
def trading_report() -> str:
    return TRADING_REPORT


# =============================================================================
# REASONING SERVICE FAKES
# =============================================================================

def completion(content: str, status_code: int = 200) -> httpx.Response:
    """An OpenAI-compatible chat completion response wrapping ``content``."""
    return httpx.Response(
        status_code,
        json={"choices": [{"message": {"role": "assistant", "content": content}}]},
    )


def holistic_payload(**overrides) -> str:
    payload = {
        "personal": 12,
        "business": 24,
        "banking": 9,
        "networth": 5,
        "existing_debt": 7.5,
        "end_use": 6,
        "reference_checks": 7,
        "personal_matches": {"self_education": True},
        "rationale": "Well documented file.",
    }
    payload.update(overrides)
    return json.dumps(payload)


@pytest.fixture
def reply():
    """Factory for chat completion responses: reply(content, status_code=200)."""
    return completion


@pytest.fixture
def payload():
    """Factory for holistic JSON replies: payload(**overrides)."""
    return holistic_payload


class RecordingHandler:
    """MockTransport handler replaying queued responses and recording requests."""

    def __init__(self, responses: List):
        self.responses = list(responses)
        self.requests: List[httpx.Request] = []
        self.on_request: Callable[[httpx.Request], None] = lambda request: None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        self.on_request(request)
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, Exception):
            raise item
        # a fresh response per call; the last one may be replayed
        return httpx.Response(item.status_code, headers=item.headers, content=item.content)

    @property
    def calls(self) -> int:
        return len(self.requests)


@pytest.fixture
def reasoning_config() -> ReasoningServiceConfig:
    return ReasoningServiceConfig(
        base_url="https://reasoning.test/api/v1",
        model="test-model",
        api_key="test-key",
        max_retries=1,
        retry_delay_seconds=0.0,
        timeout_seconds=5.0,
        max_document_chars=15000,
    )


@pytest.fixture
def make_client(reasoning_config):
    """Build a client over a RecordingHandler; returns (client, handler)."""
    clients = []

    def _make(*responses, config: ReasoningServiceConfig = None):
        handler = RecordingHandler(list(responses))
        client = ReasoningServiceClient(
            config or reasoning_config,
            transport=httpx.MockTransport(handler),
        )
        clients.append(client)
        return client, handler

    yield _make
    for client in clients:
        client.close()
