"""Scenario comparison for the mortgage calculator.

Two schedules are summarized over a shared horizon and reduced into savings,
a net benefit after tax effects and one-time costs, a break-even month and a
recommendation. Ties favour the baseline: switching is only recommended when
it is strictly better.

Refinancing is compared differently. The old and new loans are both run to
the date the owner expects to sell, and the benefit is the difference in the
balances owed at that point, less the lost mortgage-interest tax shield and
the closing costs.
"""

from __future__ import annotations

import logging
import math
from decimal import Decimal
from typing import Optional

from .data_models import (
    ComparisonResult,
    LoanTerms,
    Recommendation,
    RefinanceQuery,
    RefinanceResult,
    ScheduleResult,
)
from .engine import balance_after, generate_schedule, interest_by_month, recast_payment, summarize
from .policies import BiWeeklyPolicy, ExtraPrincipalPolicy, FixedRatePolicy
from .utils import require_non_negative

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def recommend(net_benefit: Decimal) -> Recommendation:
    return Recommendation.ALTERNATIVE if net_benefit > 0 else Recommendation.BASELINE


def combined_tax_rate(federal_percent: Decimal = ZERO, state_percent: Decimal = ZERO) -> Decimal:
    """Combined marginal tax rate as a fraction, e.g. 25 % + 5 % -> 0.30."""
    federal = require_non_negative(federal_percent, "federal_tax_rate_percent")
    state = require_non_negative(state_percent, "state_tax_rate_percent")
    return (federal + state) / Decimal(100)


def _break_even_month(
    baseline: ScheduleResult,
    alternative: ScheduleResult,
    tax_rate: Decimal,
    one_time_costs: Decimal,
    horizon_months: int,
) -> Optional[int]:
    """First month whose cumulative after-tax interest saving covers the costs."""
    if one_time_costs <= 0:
        return 0
    base_interest = interest_by_month(baseline)
    alt_interest = interest_by_month(alternative)
    cumulative = ZERO
    for month in range(1, horizon_months + 1):
        saved = base_interest.get(month, ZERO) - alt_interest.get(month, ZERO)
        cumulative += saved * (1 - tax_rate)
        if cumulative >= one_time_costs:
            return month
    return None


def compare_schedules(
    baseline: ScheduleResult,
    alternative: ScheduleResult,
    horizon_months: Optional[int] = None,
    marginal_tax_rate_percent: Decimal = ZERO,
    one_time_costs: Decimal = ZERO,
) -> ComparisonResult:
    """Compare two schedule runs over a shared horizon.

    Parameters
    ----------
    baseline, alternative: ScheduleResult
        Schedules produced by :func:`generate_schedule`, possibly with
        different periodicities.
    horizon_months: int, optional
        Only periods inside this many months count. ``None`` compares the
        full schedules.
    marginal_tax_rate_percent: Decimal
        Combined marginal rate applied to mortgage interest. Paying less
        interest shrinks the deduction, and that loss is charged against the
        alternative.
    one_time_costs: Decimal
        Up-front cost of switching to the alternative.

    Returns
    -------
    ComparisonResult
        ``periods_saved`` is expressed in months so that monthly and
        bi-weekly schedules are comparable.
    """
    tax_rate = require_non_negative(marginal_tax_rate_percent, "marginal_tax_rate_percent") / Decimal(100)
    one_time_costs = require_non_negative(one_time_costs, "one_time_costs")
    base_summary = summarize(baseline, horizon_months)
    alt_summary = summarize(alternative, horizon_months)

    interest_saved = base_summary.total_interest - alt_summary.total_interest
    tax_shield_loss = (base_summary.total_interest - alt_summary.total_interest) * tax_rate
    net_benefit = interest_saved - tax_shield_loss - one_time_costs

    span = horizon_months
    if span is None:
        span = max(base_summary.months_elapsed, alt_summary.months_elapsed)
    break_even = _break_even_month(baseline, alternative, tax_rate, one_time_costs, span)

    return ComparisonResult(
        baseline=base_summary,
        alternative=alt_summary,
        periods_saved=base_summary.months_elapsed - alt_summary.months_elapsed,
        interest_saved=interest_saved,
        net_benefit=net_benefit,
        recommendation=recommend(net_benefit),
        tax_shield_loss=tax_shield_loss,
        one_time_costs=one_time_costs,
        break_even_period=break_even,
    )


def compare_biweekly(
    terms: LoanTerms,
    federal_tax_rate_percent: Decimal = ZERO,
    state_tax_rate_percent: Decimal = ZERO,
) -> ComparisonResult:
    """Standard monthly schedule vs. half-payments every two weeks."""
    tax_percent = combined_tax_rate(federal_tax_rate_percent, state_tax_rate_percent) * 100
    standard = generate_schedule(terms.principal, FixedRatePolicy(terms))
    biweekly = generate_schedule(terms.principal, BiWeeklyPolicy(terms))
    return compare_schedules(standard, biweekly, marginal_tax_rate_percent=tax_percent)


def compare_extra_payments(
    terms: LoanTerms,
    initial_extra: Decimal = ZERO,
    monthly_extra: Decimal = ZERO,
) -> ComparisonResult:
    """Standard monthly schedule vs. the same loan with extra principal."""
    standard = generate_schedule(terms.principal, FixedRatePolicy(terms))
    policy = ExtraPrincipalPolicy(terms, monthly_extra=monthly_extra, initial_extra=initial_extra)
    accelerated = generate_schedule(terms.principal, policy)
    return compare_schedules(standard, accelerated)


def analyze_refinance(query: RefinanceQuery) -> RefinanceResult:
    """Keep the current loan or refinance what is left of it.

    Both loans are followed until ``query.horizon_months``; the refinance is
    recommended when the extra equity it builds by then outweighs the lost
    tax shield and the closing costs.
    """
    original = query.original
    original_policy = FixedRatePolicy(original)
    original_payment = original_policy.payment

    history = generate_schedule(original.principal, original_policy, max_periods=query.months_already_paid)
    remaining_balance = balance_after(history, query.months_already_paid)
    remaining_months = original.term_months - query.months_already_paid

    baseline_terms = LoanTerms(remaining_balance, original.annual_rate_percent, remaining_months)
    baseline = generate_schedule(
        remaining_balance,
        FixedRatePolicy(baseline_terms, payment=original_payment),
        max_periods=query.horizon_months,
    )

    new_terms = LoanTerms(remaining_balance, query.new_rate_percent, query.new_term_months)
    new_payment = recast_payment(remaining_balance, query.new_rate_percent, query.new_term_months)
    alternative = generate_schedule(
        remaining_balance,
        FixedRatePolicy(new_terms, payment=new_payment),
        max_periods=query.horizon_months,
    )

    closing_costs = (
        (query.discount_points_percent + query.origination_fee_percent) / Decimal(100) * remaining_balance
        + query.other_closing_costs
    )
    tax_rate = combined_tax_rate(query.federal_tax_rate_percent, query.state_tax_rate_percent)

    base_summary = summarize(baseline, query.horizon_months)
    alt_summary = summarize(alternative, query.horizon_months)
    tax_shield_loss = (base_summary.total_interest - alt_summary.total_interest) * tax_rate
    original_balance = base_summary.ending_balance
    new_balance = alt_summary.ending_balance
    equity_difference = original_balance - new_balance
    net_benefit = equity_difference - tax_shield_loss - closing_costs

    monthly_difference = new_payment - original_payment
    monthly_saving = -monthly_difference
    if monthly_saving > 0:
        break_even: Optional[int] = math.ceil(closing_costs / monthly_saving)
    elif net_benefit > 0:
        break_even = math.ceil(closing_costs / (net_benefit / Decimal(query.horizon_months)))
    else:
        break_even = None
    logger.debug("Refinance net benefit %s, break-even %s", net_benefit, break_even)

    comparison = ComparisonResult(
        baseline=base_summary,
        alternative=alt_summary,
        periods_saved=base_summary.months_elapsed - alt_summary.months_elapsed,
        interest_saved=base_summary.total_interest - alt_summary.total_interest,
        net_benefit=net_benefit,
        recommendation=recommend(net_benefit),
        tax_shield_loss=tax_shield_loss,
        one_time_costs=closing_costs,
        break_even_period=break_even,
    )
    return RefinanceResult(
        comparison=comparison,
        remaining_balance=remaining_balance,
        original_payment=original_payment,
        new_payment=new_payment,
        closing_costs=closing_costs,
        original_balance_at_horizon=original_balance,
        new_balance_at_horizon=new_balance,
        equity_difference=equity_difference,
        monthly_payment_difference=monthly_difference,
        additional_payments_over_horizon=monthly_difference * query.horizon_months,
    )
