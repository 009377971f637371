from datetime import date
from decimal import Decimal

import pytest

from mortgage_calc.costs import (
    ltv_percent,
    monthly_cost_breakdown,
    quoted_monthly_pmi,
    requires_pmi,
    resolve_down_payment,
    va_funding_fee_rate,
    va_loan_amount,
)
from mortgage_calc.data_models import HousingCosts, LoanTerms, ScheduleStatus, ScheduleSummary
from mortgage_calc.formatter import to_jsonable
from mortgage_calc.utils import (
    InvalidParameterError,
    add_months,
    parse_year_month,
    period_date,
    require_non_negative_int,
    require_positive_int,
    round_money,
    to_decimal,
)


class TestDownPayment:
    def test_amount_wins_over_percent(self):
        assert resolve_down_payment(Decimal("400000"), Decimal("80000"), Decimal("10")) == (
            Decimal("80000"),
            Decimal("20"),
        )

    def test_percent_only(self):
        assert resolve_down_payment(Decimal("400000"), percent=Decimal("10")) == (Decimal("40000"), Decimal("10"))

    def test_nothing_given(self):
        assert resolve_down_payment(Decimal("400000")) == (Decimal("0"), Decimal("0"))

    def test_amount_above_price(self):
        with pytest.raises(InvalidParameterError):
            resolve_down_payment(Decimal("100000"), amount=Decimal("100001"))


def test_pmi_threshold():
    assert requires_pmi(Decimal("85000"), Decimal("100000"))
    assert not requires_pmi(Decimal("80000"), Decimal("100000"))
    assert ltv_percent(Decimal("1"), Decimal("0")) == 0


def test_monthly_cost_breakdown():
    terms = LoanTerms(Decimal("270000"), Decimal("0"), 360)
    costs = HousingCosts(
        property_tax_annual=Decimal("3600"),
        insurance_annual=Decimal("1200"),
        hoa_monthly=Decimal("50"),
        pmi_rate_percent=Decimal("0.5"),
    )
    breakdown = monthly_cost_breakdown(Decimal("300000"), terms, costs)
    assert breakdown.principal_and_interest == Decimal("750")
    assert breakdown.property_tax == Decimal("300")
    assert breakdown.insurance == Decimal("100")
    assert breakdown.pmi == Decimal("112.5")
    assert breakdown.total == Decimal("1312.5")


def test_flat_annual_pmi_wins_over_rate():
    costs = HousingCosts(pmi_rate_percent=Decimal("0.5"), pmi_annual=Decimal("1800"))
    assert quoted_monthly_pmi(Decimal("270000"), costs) == Decimal("150")
    assert quoted_monthly_pmi(Decimal("270000"), HousingCosts(pmi_rate_percent=Decimal("0.5"))) == Decimal("112.5")
    terms = LoanTerms(Decimal("240000"), Decimal("0"), 360)
    # no PMI at 80 % LTV, whatever was quoted
    assert monthly_cost_breakdown(Decimal("300000"), terms, costs).pmi == 0
    with pytest.raises(InvalidParameterError):
        HousingCosts(pmi_annual=Decimal("-1"))


@pytest.mark.parametrize(
    "first_use, down, reserves, exempt, expected",
    [
        (True, "0", False, False, "2.15"),
        (True, "0", True, False, "2.4"),
        (False, "0", False, False, "3.3"),
        (False, "5", False, False, "1.5"),
        (True, "10", False, False, "1.25"),
        (True, "0", False, True, "0"),
    ],
)
def test_va_funding_fee(first_use, down, reserves, exempt, expected):
    assert va_funding_fee_rate(first_use, Decimal(down), reserves, exempt) == Decimal(expected)


def test_va_loan_amount():
    assert va_loan_amount(Decimal("200000"), Decimal("2.15")) == (Decimal("4300"), Decimal("204300"))
    assert va_loan_amount(Decimal("200000"), Decimal("2.15"), finance_fee=False) == (
        Decimal("4300"),
        Decimal("200000"),
    )


class TestUtils:
    def test_to_decimal(self):
        assert to_decimal(6.5) == Decimal("6.5")
        assert to_decimal("1,250,000") == Decimal("1250000")
        with pytest.raises(InvalidParameterError):
            to_decimal("nan")
        with pytest.raises(InvalidParameterError):
            to_decimal("twelve")

    def test_integer_validation(self):
        assert require_non_negative_int(0, "months") == 0
        assert require_non_negative_int("7", "months") == 7
        assert require_positive_int(12.0, "term") == 12
        for bad in (-1, 2.5, "two", None):
            with pytest.raises(InvalidParameterError):
                require_non_negative_int(bad, "months")
        with pytest.raises(InvalidParameterError):
            require_positive_int(0, "term")

    def test_round_money(self):
        assert round_money(Decimal("1011.305")) == Decimal("1011.31")

    def test_dates(self):
        assert parse_year_month("2024-01") == date(2024, 1, 1)
        assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
        assert period_date(date(2024, 1, 1), 3, 26) == date(2024, 1, 29)
        assert period_date(date(2024, 1, 1), 13, 12) == date(2025, 1, 1)
        assert period_date(None, 3, 12) is None
        with pytest.raises(ValueError):
            parse_year_month("2024")


def test_to_jsonable():
    summary = ScheduleSummary(
        total_periods=12,
        total_paid=Decimal("1200.50"),
        total_interest=Decimal("0.5"),
        final_period_index=12,
        payoff_early=False,
        status=ScheduleStatus.COMPLETE,
        periods_per_year=12,
        months_elapsed=12,
        ending_balance=Decimal("0"),
    )
    data = to_jsonable(summary)
    assert data["total_paid"] == 1200.5
    assert data["status"] == "complete"
    assert data["payoff_early"] is False
