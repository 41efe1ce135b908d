# tests/test_property_based.py
"""
Property-Based Tests

Hypothesis properties over every strategy, max_examples=200:
  - bounds: every category in [0, cap], total in [0, 100]
  - warnings list exactly the zero-score categories
  - loan-existence gating and residence exclusivity
  - business conditional sub-block never exceeds its cap
  - mapper and scorers never raise on arbitrary input
  - holistic coercion survives adversarial replies
"""

import json
from decimal import Decimal

import httpx
from hypothesis import given, settings
from hypothesis import strategies as st

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
    BusinessType,
    Category,
    LoanStatus,
    RepaymentTrack,
)
from loan_verification.scoring.aggregator import ScoreAggregator
from loan_verification.scoring.deterministic_scorer import DeterministicScorer
from loan_verification.scoring.field_mapper import FieldMapper
from loan_verification.scoring.holistic_scorer import HolisticScorer
from loan_verification.scoring.pattern_scorer import PatternScorer
from loan_verification.scoring.reasoning_client import (
    ReasoningServiceClient,
    ReasoningServiceConfig,
)
from loan_verification.scoring.rubric import BUSINESS_CONDITIONAL_CAP, RUBRIC, TOTAL_CAP

# ---------------------------------------------------------------------------
# Shared strategies
# ---------------------------------------------------------------------------

CONDITIONAL_KEYS = [
    i.key for i in RUBRIC[Category.BUSINESS].items if i.business_type is not None
]

text_st = st.one_of(st.none(), st.sampled_from(["", "N/A", "Yes", "Graduate"]), st.text(max_size=20))
amount_st = st.decimals(
    min_value=-1000, max_value=10_000_000, allow_nan=False, allow_infinity=False, places=2
)


@st.composite
def applicant_st(draw):
    """Draw an arbitrary ApplicantData, including nonsense values."""
    return ApplicantData(
        personal=PersonalInfo(
            self_education=draw(text_st),
            spouse_name=draw(text_st),
            spouse_education=draw(text_st),
            spouse_employment=draw(text_st),
            kids_count=draw(amount_st),
            kids_education=draw(text_st),
            kids_school=draw(text_st),
            residence_vintage=draw(text_st),
            residence_owned=draw(st.booleans()),
            monthly_rent=draw(amount_st),
        ),
        business=BusinessInfo(
            name=draw(text_st),
            nature=draw(text_st),
            vintage_months=draw(amount_st),
            licenses_verified=draw(st.booleans()),
            promoter_experience=draw(st.booleans()),
            strategic_vision=draw(st.booleans()),
            employees_verified=draw(st.booleans()),
            monthly_turnover=draw(amount_st),
            client_list_available=draw(st.booleans()),
            activity_observed=draw(st.booleans()),
            monthly_income=draw(amount_st),
            seasonality_mentioned=draw(st.booleans()),
            infrastructure_adequate=draw(st.booleans()),
            source_of_business=draw(st.booleans()),
            business_type=draw(st.one_of(st.none(), st.sampled_from(list(BusinessType)))),
            conditional_evidence=frozenset(draw(st.lists(st.sampled_from(CONDITIONAL_KEYS)))),
        ),
        banking=BankingInfo(
            primary_bank=draw(text_st),
            turnover_credit_percent=draw(amount_st),
            tenure_months=draw(amount_st),
            emis_routed=draw(st.booleans()),
            qr_code_spotted=draw(st.booleans()),
        ),
        networth=NetworthInfo(
            properties_owned=draw(amount_st),
            vehicles_owned=draw(amount_st),
            other_investments=draw(st.booleans()),
            business_place_owned=draw(st.booleans()),
        ),
        debt=DebtInfo(
            existing_loans=draw(st.sampled_from(list(LoanStatus))),
            repayment_track=draw(st.sampled_from(list(RepaymentTrack))),
            loan_list_available=draw(st.booleans()),
            can_service_new_loan=draw(st.booleans()),
        ),
        end_use=EndUseInfo(
            purpose=draw(text_st),
            agreement_value=draw(amount_st),
            will_occupy=draw(st.booleans()),
        ),
        references=ReferenceInfo(
            personal_check=draw(st.booleans()),
            business_check=draw(st.booleans()),
            invoice_verified=draw(st.booleans()),
        ),
    )


json_leaf_st = st.one_of(
    st.none(),
    st.booleans(),
    st.integers(min_value=-10**6, max_value=10**6),
    st.floats(allow_nan=True, allow_infinity=True),
    st.text(max_size=15),
)
json_st = st.recursive(
    json_leaf_st,
    lambda children: st.one_of(
        st.lists(children, max_size=4),
        st.dictionaries(st.text(max_size=12), children, max_size=4),
    ),
    max_leaves=20,
)

draft_key_st = st.sampled_from([
    "primaryApplicant", "basicDetails", "personalDetails", "businessDetails",
    "propertyDetails", "bankingDetails", "debtDetails", "endUseDetails",
    "referenceChecks", "existingLoans", "repaymentHistory", "loanList",
])
draft_st = st.dictionaries(draft_key_st, json_st, max_size=8)

reply_value_st = st.one_of(
    json_leaf_st,
    st.sampled_from(["12.5", "-4", "1e9", "NaN", "Infinity", "true"]),
)


@st.composite
def adversarial_reply_st(draw):
    """A reply object with every category key present and arbitrary values."""
    reply = {}
    for category in RUBRIC:
        reply[category.value] = draw(reply_value_st)
        reply[f"{category.value}_matches"] = draw(
            st.one_of(json_st, st.dictionaries(st.sampled_from(RUBRIC[category].keys), reply_value_st))
        )
    reply["rationale"] = draw(json_leaf_st)
    return reply


def assert_bounded(result):
    for category, definition in RUBRIC.items():
        assert Decimal("0") <= result.scores[category] <= definition.cap
    assert Decimal("0") <= result.total <= TOTAL_CAP
    ScoreAggregator().check(result)


# ---------------------------------------------------------------------------
# Deterministic scorer properties
# ---------------------------------------------------------------------------


class TestDeterministicPropertyBased:

    @given(applicant_st())
    @settings(max_examples=200)
    def test_scores_always_bounded(self, applicant):
        """Every category stays within [0, cap] and the total within [0, 100]."""
        assert_bounded(DeterministicScorer().score(applicant))

    @given(applicant_st())
    @settings(max_examples=200)
    def test_warnings_match_zero_categories(self, applicant):
        result = DeterministicScorer().score(applicant)
        expected = [
            f"{d.label} not verified" for c, d in RUBRIC.items() if result.scores[c] == 0
        ]
        assert result.warnings == expected

    @given(applicant_st())
    @settings(max_examples=200)
    def test_debt_gated_on_loan_existence(self, applicant):
        """Without loans explicitly present at most the status item scores."""
        result = DeterministicScorer().score(applicant)
        debt = result.scores[Category.EXISTING_DEBT]
        if applicant.debt.existing_loans is LoanStatus.UNKNOWN:
            assert debt == Decimal("0")
        elif applicant.debt.existing_loans is LoanStatus.NO:
            assert debt == Decimal("2.5")

    @given(applicant_st())
    @settings(max_examples=200)
    def test_residence_slot_never_double_counted(self, applicant):
        result = DeterministicScorer().score(applicant)
        personal = result.matches[Category.PERSONAL]
        if applicant.personal.residence_owned:
            assert personal["monthly_rent_if_rented"] is False
            assert personal["residence_owned_or_rented"] is True

    @given(
        st.lists(st.sampled_from(CONDITIONAL_KEYS), min_size=1),
        st.one_of(st.none(), st.sampled_from(list(BusinessType))),
    )
    @settings(max_examples=200)
    def test_conditional_block_capped(self, keys, business_type):
        applicant = ApplicantData(
            business=BusinessInfo(business_type=business_type, conditional_evidence=frozenset(keys))
        )
        result = DeterministicScorer().score(applicant)
        assert result.scores[Category.BUSINESS] <= BUSINESS_CONDITIONAL_CAP

    @given(applicant_st())
    @settings(max_examples=100)
    def test_deterministic(self, applicant):
        scorer = DeterministicScorer()
        assert scorer.score(applicant) == scorer.score(applicant)


# ---------------------------------------------------------------------------
# Mapper and pattern scorer robustness
# ---------------------------------------------------------------------------


class TestRobustnessPropertyBased:

    @given(st.one_of(draft_st, json_st))
    @settings(max_examples=300, deadline=None)
    def test_mapper_never_raises(self, draft):
        applicant = FieldMapper().map(draft)
        result = DeterministicScorer().score(applicant)
        assert result.error is None
        assert_bounded(result)

    @given(st.text(max_size=400))
    @settings(max_examples=300, deadline=None)
    def test_pattern_scorer_bounded(self, text):
        result = PatternScorer().score(text)
        assert result.error is None
        assert_bounded(result)

    @given(st.text(max_size=200))
    @settings(max_examples=200, deadline=None)
    def test_pattern_owned_residence_excludes_rent(self, prefix):
        text = prefix + "\nLives in own house. Monthly rent Rs 9,000."
        result = PatternScorer().score(text)
        assert result.matches[Category.PERSONAL]["monthly_rent_if_rented"] is False


# ---------------------------------------------------------------------------
# Holistic coercion
# ---------------------------------------------------------------------------


class TestHolisticPropertyBased:

    @given(adversarial_reply_st(), st.sampled_from(["{}", "```json\n{}\n```", "Result: {} done"]))
    @settings(max_examples=200, deadline=None)
    def test_adversarial_reply_bounded(self, reply, wrapper):
        content = wrapper.replace("{}", json.dumps(reply))
        transport = httpx.MockTransport(
            lambda request: httpx.Response(
                200, json={"choices": [{"message": {"content": content}}]}
            )
        )
        config = ReasoningServiceConfig(
            base_url="https://reasoning.test/api/v1",
            model="test-model",
            api_key="test-key",
            retry_delay_seconds=0.0,
        )
        with ReasoningServiceClient(config, transport=transport) as client:
            result = HolisticScorer(client).score("report")
        assert result.error is None
        assert_bounded(result)
        assert all(
            isinstance(v, bool) for items in result.matches.values() for v in items.values()
        )
