# tests/test_pattern_scorer.py
"""
Pattern-Based Scorer - regex heuristics over raw report text.
"""

from decimal import Decimal

import pytest

from loan_verification.models.enumerations import (
    BusinessType,
    Category,
    LoanStatus,
    RepaymentTrack,
    ScoringStrategy,
)
from loan_verification.scoring.pattern_scorer import (
    PatternScorer,
    detect_business_type,
    detect_loan_status,
    detect_repayment_track,
    extract_amount,
    extract_months,
    extract_percent,
)


@pytest.fixture
def scorer():
    return PatternScorer()


class TestExtraction:

    @pytest.mark.parametrize("snippet,expected", [
        ("Rs. 1,20,000", Decimal("120000")),
        ("INR 75000 per month", Decimal("75000")),
        ("2.5 lakh", Decimal("250000")),
        ("1.2 cr", Decimal("12000000")),
        ("50k", Decimal("50000")),
    ])
    def test_extract_amount(self, snippet, expected):
        assert extract_amount(snippet) == expected

    def test_extract_amount_missing(self):
        assert extract_amount("not stated") is None

    def test_extract_percent(self):
        assert extract_percent("85% of sales") == Decimal("85")
        assert extract_percent("about 60 percent") == Decimal("60")
        assert extract_percent("most of it") is None

    def test_extract_months(self):
        assert extract_months("3 years") == Decimal("36")
        assert extract_months("18 months") == Decimal("18")
        assert extract_months("a long time") is None


class TestDetection:

    def test_negative_loan_phrase_wins(self):
        assert detect_loan_status("Applicant has no existing loans.") is LoanStatus.NO

    def test_loan_mention(self):
        assert detect_loan_status("Existing loans: car loan from ICICI") is LoanStatus.YES

    def test_emi_remark_does_not_negate_listed_loans(self):
        text = (
            "Bank statement shows no EMI bounces in the last year.\n"
            "Existing loans: HDFC business loan Rs 5 lakh, repayment track good.\n"
            "Loan list: attached."
        )
        assert detect_loan_status(text) is LoanStatus.YES

    @pytest.mark.parametrize("text", ["Existing loans: nil", "Existing loans - none", "No outstanding debts."])
    def test_labelled_negative_answers(self, text):
        assert detect_loan_status(text) is LoanStatus.NO

    def test_loan_silence_is_unknown(self):
        assert detect_loan_status("Applicant runs a grocery shop.") is LoanStatus.UNKNOWN

    def test_repayment_track(self):
        assert detect_repayment_track("Repayment track is good") is RepaymentTrack.GOOD
        assert detect_repayment_track("CIBIL shows irregular payments") is RepaymentTrack.POOR
        assert detect_repayment_track("Nothing on record") is RepaymentTrack.UNKNOWN

    def test_nature_line_takes_priority(self):
        text = "Nature of business: retail store\nSmall production unit next door"
        assert detect_business_type(text) is BusinessType.TRADING

    def test_whole_text_fallback(self):
        assert detect_business_type("Runs a garment factory") is BusinessType.MANUFACTURING
        assert detect_business_type("Nothing useful here") is None


class TestTradingReport:

    def test_scores(self, scorer, trading_report):
        result = scorer.score(trading_report)
        assert result.strategy is ScoringStrategy.PATTERN
        assert result.scores[Category.PERSONAL] == Decimal("15")
        assert result.scores[Category.BUSINESS] == Decimal("30")
        assert result.scores[Category.BANKING] == Decimal("15")
        assert result.scores[Category.NETWORTH] == Decimal("10")
        assert result.scores[Category.EXISTING_DEBT] == Decimal("10")
        assert result.scores[Category.END_USE] == Decimal("10")
        assert result.scores[Category.REFERENCE_CHECKS] == Decimal("10")
        assert result.total == Decimal("100")
        assert result.warnings == []

    def test_match_details(self, scorer, trading_report):
        result = scorer.score(trading_report)
        business = result.matches[Category.BUSINESS]
        assert business["trading_product_range"] is True
        assert business["trading_warehouse_stock"] is True
        assert business["source_of_business"] is False
        assert result.matches[Category.PERSONAL]["monthly_rent_if_rented"] is False
        assert result.matches[Category.NETWORTH]["total_networth_available"] is True


class TestResidence:

    def test_rent_documented(self, scorer):
        result = scorer.score("Residence: rented. Monthly rent Rs 8,000.")
        personal = result.matches[Category.PERSONAL]
        assert personal["monthly_rent_if_rented"] is True
        assert personal["residence_owned_or_rented"] is True
        assert result.scores[Category.PERSONAL] == Decimal("3.00")

    def test_zero_rent_not_documented(self, scorer):
        result = scorer.score("Monthly rent: 0")
        assert result.matches[Category.PERSONAL]["monthly_rent_if_rented"] is False
        assert result.scores[Category.PERSONAL] == Decimal("0")

    def test_owned_residence_ignores_rent(self, scorer):
        result = scorer.score("Lives in own house. Monthly rent Rs 5,000 received from tenant.")
        personal = result.matches[Category.PERSONAL]
        assert personal["monthly_rent_if_rented"] is False
        assert personal["residence_owned_or_rented"] is True
        assert result.scores[Category.PERSONAL] == Decimal("3.00")

    def test_owned_shop_does_not_mark_residence_owned(self, scorer):
        result = scorer.score("Residence: rented, monthly rent Rs 8,000.\nShop premises are self-owned.")
        assert result.matches[Category.PERSONAL]["monthly_rent_if_rented"] is True
        assert result.matches[Category.NETWORTH]["business_place_owned"] is True

    @pytest.mark.parametrize("text", ["Residence: self-owned.", "House is self owned.", "Stays in a self-owned flat."])
    def test_self_owned_residence(self, scorer, text):
        result = scorer.score(text + " Monthly rent Rs 4,000.")
        assert result.matches[Category.PERSONAL]["monthly_rent_if_rented"] is False
        assert result.matches[Category.PERSONAL]["residence_owned_or_rented"] is True


class TestDebt:

    def test_emi_remark_keeps_gated_items(self, scorer):
        result = scorer.score(
            "Bank statement shows no EMI bounces in the last year.\n"
            "Existing loans: HDFC business loan Rs 5 lakh, repayment track good.\n"
            "Loan list: attached."
        )
        debt = result.matches[Category.EXISTING_DEBT]
        assert debt["has_existing_loans"] is True
        assert debt["loan_list_available"] is True
        assert debt["repayment_history_quality"] is True

    def test_explicitly_no_loans(self, scorer):
        result = scorer.score("Applicant has no existing loans.")
        assert result.scores[Category.EXISTING_DEBT] == Decimal("2.50")
        assert result.matches[Category.EXISTING_DEBT]["has_existing_loans"] is True

    def test_undocumented_loans(self, scorer):
        result = scorer.score("Repayment track good. Applicant runs a grocery shop.")
        assert result.scores[Category.EXISTING_DEBT] == Decimal("0")


class TestThresholds:

    @pytest.mark.parametrize("text,matched", [
        ("Net monthly income: Rs 45,000", False),
        ("Net monthly income: Rs 60,000", True),
        ("Net monthly income: 1.2 lakh", True),
        ("Net monthly income confirmed by accountant", True),
    ])
    def test_monthly_income(self, scorer, text, matched):
        result = scorer.score(text)
        assert result.matches[Category.BUSINESS]["monthly_income"] is matched

    @pytest.mark.parametrize("text,matched", [
        ("30% of turnover credited to the account", False),
        ("70% of turnover credited to the account", True),
    ])
    def test_turnover_credited(self, scorer, text, matched):
        result = scorer.score(text)
        assert result.matches[Category.BANKING]["turnover_credited_percent"] is matched

    @pytest.mark.parametrize("text,matched", [
        ("Banking relationship of 8 months", False),
        ("Banking relationship of 2 years", True),
    ])
    def test_banking_tenure(self, scorer, text, matched):
        result = scorer.score(text)
        assert result.matches[Category.BANKING]["banking_tenure"] is matched


class TestConditionalBlock:

    def test_undetected_type_sums_blocks(self, scorer):
        result = scorer.score("Process flow documented. Product range is wide.")
        assert result.scores[Category.BUSINESS] == Decimal("3.00")


class TestEdgeInputs:

    @pytest.mark.parametrize("text", ["", None, 123])
    def test_empty_or_non_text(self, scorer, text):
        result = scorer.score(text)
        assert result.total == Decimal("0")
        assert len(result.warnings) == 7
        assert result.error is None
        assert result.rationale.startswith("Pattern-based scoring completed.")

    def test_deterministic_output(self, scorer, trading_report):
        assert scorer.score(trading_report) == scorer.score(trading_report)
