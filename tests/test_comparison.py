import math
from decimal import Decimal

import pytest

from mortgage_calc.comparison import (
    analyze_refinance,
    combined_tax_rate,
    compare_biweekly,
    compare_extra_payments,
    compare_schedules,
    recommend,
)
from mortgage_calc.data_models import LoanTerms, Recommendation, RefinanceQuery
from mortgage_calc.engine import balance_after, generate_schedule
from mortgage_calc.policies import FixedRatePolicy
from mortgage_calc.utils import InvalidParameterError


def test_ties_favour_baseline():
    assert recommend(Decimal("0")) is Recommendation.BASELINE
    assert recommend(Decimal("-1")) is Recommendation.BASELINE
    assert recommend(Decimal("0.01")) is Recommendation.ALTERNATIVE


def test_combined_tax_rate():
    assert combined_tax_rate(Decimal("25"), Decimal("5")) == Decimal("0.3")


def test_identical_schedules(standard_terms):
    schedule = generate_schedule(standard_terms.principal, FixedRatePolicy(standard_terms))
    result = compare_schedules(schedule, schedule)
    assert result.interest_saved == 0
    assert result.periods_saved == 0
    assert result.net_benefit == 0
    assert result.recommendation is Recommendation.BASELINE
    assert result.break_even_period == 0


def test_one_time_costs_are_charged(standard_terms):
    baseline = generate_schedule(standard_terms.principal, FixedRatePolicy(standard_terms))
    cheaper = LoanTerms(standard_terms.principal, Decimal("6"), 360)
    alternative = generate_schedule(cheaper.principal, FixedRatePolicy(cheaper))
    free = compare_schedules(baseline, alternative)
    costly = compare_schedules(baseline, alternative, one_time_costs=Decimal("5000"))
    assert costly.net_benefit == free.net_benefit - Decimal("5000")
    assert costly.break_even_period is not None
    assert 1 <= costly.break_even_period <= 360


def test_costs_never_recovered(standard_terms):
    schedule = generate_schedule(standard_terms.principal, FixedRatePolicy(standard_terms))
    result = compare_schedules(schedule, schedule, one_time_costs=Decimal("100"))
    assert result.break_even_period is None
    assert result.recommendation is Recommendation.BASELINE


class TestBiWeeklyComparison:
    def test_recommends_biweekly(self, standard_terms):
        result = compare_biweekly(standard_terms)
        assert result.interest_saved > 0
        assert result.periods_saved > 0
        assert result.recommendation is Recommendation.ALTERNATIVE

    def test_tax_shield_reduces_benefit(self, standard_terms):
        untaxed = compare_biweekly(standard_terms)
        taxed = compare_biweekly(standard_terms, Decimal("22"), Decimal("5"))
        assert taxed.tax_shield_loss == taxed.interest_saved * Decimal("0.27")
        assert taxed.net_benefit < untaxed.net_benefit
        assert taxed.net_benefit > 0


class TestExtraPaymentComparison:
    def test_extra_payments_save_interest(self, standard_terms):
        result = compare_extra_payments(standard_terms, monthly_extra=Decimal("300"))
        assert result.interest_saved > 0
        assert result.alternative.months_elapsed < 360
        assert result.recommendation is Recommendation.ALTERNATIVE

    def test_no_extra_is_a_tie(self, standard_terms):
        result = compare_extra_payments(standard_terms)
        assert result.interest_saved == 0
        assert result.recommendation is Recommendation.BASELINE


class TestRefinance:
    def _query(self, **overrides):
        params = dict(
            original=LoanTerms(Decimal("300000"), Decimal("7"), 360),
            months_already_paid=60,
            new_rate_percent=Decimal("5"),
            new_term_months=360,
            horizon_months=60,
            other_closing_costs=Decimal("3000"),
        )
        params.update(overrides)
        return RefinanceQuery(**params)

    def test_remaining_balance(self):
        query = self._query()
        result = analyze_refinance(query)
        original = generate_schedule(query.original.principal, FixedRatePolicy(query.original))
        assert result.remaining_balance == balance_after(original, 60)

    def test_closing_costs_and_break_even(self):
        result = analyze_refinance(
            self._query(discount_points_percent=Decimal("1"), origination_fee_percent=Decimal("0.5"))
        )
        expected_closing = result.remaining_balance * Decimal("0.015") + Decimal("3000")
        assert result.closing_costs == expected_closing
        assert result.new_payment < result.original_payment
        saving = result.original_payment - result.new_payment
        assert result.comparison.break_even_period == math.ceil(result.closing_costs / saving)

    def test_net_benefit_identity(self):
        result = analyze_refinance(self._query(federal_tax_rate_percent=Decimal("24")))
        comparison = result.comparison
        assert comparison.net_benefit == (
            result.equity_difference - comparison.tax_shield_loss - result.closing_costs
        )
        assert result.equity_difference == result.original_balance_at_horizon - result.new_balance_at_horizon

    def test_lower_rate_same_term_recommended(self):
        result = analyze_refinance(self._query(new_term_months=300, other_closing_costs=Decimal("0")))
        assert result.equity_difference > 0
        assert result.comparison.recommendation is Recommendation.ALTERNATIVE
        assert result.comparison.break_even_period == 0

    def test_months_paid_must_be_inside_term(self):
        with pytest.raises(InvalidParameterError):
            self._query(months_already_paid=360)

    @pytest.mark.parametrize("months_paid", [-1, 12.9, "abc", None])
    def test_months_paid_must_be_a_whole_number(self, months_paid):
        with pytest.raises(InvalidParameterError):
            self._query(months_already_paid=months_paid)

    def test_months_paid_accepts_zero_and_numeric_strings(self):
        assert self._query(months_already_paid=0).months_already_paid == 0
        assert self._query(months_already_paid="24").months_already_paid == 24
