"""Core calculation engine for the mortgage calculator.

This module implements the amortization primitives every calculator builds
on: the closed-form annuity payment, the recast of a remaining balance, the
period-by-period schedule generator driven by a payment policy, and the
reducers that turn a schedule into summary totals. All arithmetic uses
``Decimal`` and every loop is bounded by an explicit period budget.
"""

from __future__ import annotations

import logging
from decimal import Decimal, getcontext
from typing import Dict, List, Optional

from .data_models import (
    PaymentScheduleEntry,
    PeriodTerms,
    ScheduleResult,
    ScheduleStatus,
    ScheduleSummary,
)
from .utils import InvalidParameterError, periodic_rate, require_non_negative

getcontext().prec = 28  # increase precision for financial calculations

logger = logging.getLogger(__name__)

# Balances at or below one cent count as paid off.
SETTLEMENT_EPSILON = Decimal("0.01")

ZERO = Decimal("0")


def annuity_payment(principal: Decimal, rate_per_period: Decimal, num_periods: int) -> Decimal:
    """Return the level payment that fully amortizes ``principal``.

    The formula is:

        payment = P * (i * (1 + i)^n) / ((1 + i)^n - 1)

    where ``P`` is the principal, ``i`` is the periodic interest rate and
    ``n`` is the number of payments. When the interest rate is zero, the
    payment simplifies to ``P / n``.
    """
    if num_periods <= 0:
        raise InvalidParameterError(f"Number of periods must be positive, got {num_periods}")
    if rate_per_period < 0:
        raise InvalidParameterError(f"Periodic rate must be non-negative, got {rate_per_period}")
    if rate_per_period == 0:
        return principal / Decimal(num_periods)
    factor = (1 + rate_per_period) ** num_periods
    return principal * (rate_per_period * factor) / (factor - 1)


def recast_payment(
    remaining_balance: Decimal,
    new_annual_rate_percent: Decimal,
    remaining_periods: int,
    periods_per_year: int = 12,
) -> Decimal:
    """Recompute the level payment for a remaining balance and term.

    Used whenever an ARM crosses an adjustment boundary and for the new loan
    of a refinance.
    """
    balance = require_non_negative(remaining_balance, "remaining_balance")
    rate = require_non_negative(new_annual_rate_percent, "new_annual_rate_percent")
    return annuity_payment(balance, periodic_rate(rate, periods_per_year), remaining_periods)


def generate_schedule(starting_balance: Decimal, policy, max_periods: Optional[int] = None) -> ScheduleResult:
    """Build the amortization schedule for ``starting_balance`` under ``policy``.

    Parameters
    ----------
    starting_balance: Decimal
        The amount owed before the first period. Policies with an up-front
        extra payment reduce it before period 1.
    policy:
        Any object implementing the payment policy interface from
        :mod:`mortgage_calc.policies`.
    max_periods: int, optional
        Hard cap on generated periods. Defaults to the policy's own bound.

    Returns
    -------
    ScheduleResult
        Entries up to payoff, plus a status. A period whose payment would not
        cover its interest is not emitted; the run stops there with status
        ``NON_AMORTIZING``. Running out of periods with money still owed
        yields ``INCOMPLETE``.
    """
    starting_balance = require_non_negative(starting_balance, "starting_balance")
    if max_periods is None:
        max_periods = policy.max_periods
    if max_periods < 0:
        raise InvalidParameterError(f"max_periods must be non-negative, got {max_periods}")

    opening_balance = policy.opening_balance(starting_balance)
    upfront_payment = starting_balance - opening_balance
    periods_per_year = policy.periods_per_year

    balance = opening_balance
    entries: List[PaymentScheduleEntry] = []
    terms: Optional[PeriodTerms] = None
    status = ScheduleStatus.INCOMPLETE
    stalled_period = None

    for period in range(1, max_periods + 1):
        if balance <= SETTLEMENT_EPSILON:
            break
        terms = policy.period_terms(period, balance, terms)
        interest = balance * periodic_rate(terms.rate_percent, periods_per_year)
        if terms.scheduled_payment + terms.extra_principal <= interest:
            status = ScheduleStatus.NON_AMORTIZING
            stalled_period = period
            logger.warning(
                "Payment %s does not cover interest %s in period %s; stopping schedule",
                terms.scheduled_payment,
                interest,
                period,
            )
            break
        principal = min(terms.scheduled_payment - interest + terms.extra_principal, balance)
        ending = max(ZERO, balance - principal)
        # Fold sub-cent residue into this period so the balance lands on zero.
        if ending <= SETTLEMENT_EPSILON:
            principal += ending
            ending = ZERO
        extra = min(terms.extra_principal, principal)
        entries.append(
            PaymentScheduleEntry(
                period=period,
                rate_used_percent=terms.rate_percent,
                scheduled_payment=terms.scheduled_payment,
                interest_portion=interest,
                principal_portion=principal,
                extra_principal=extra,
                total_payment=interest + principal,
                beginning_balance=balance,
                ending_balance=ending,
            )
        )
        balance = ending

    if status is not ScheduleStatus.NON_AMORTIZING and balance <= SETTLEMENT_EPSILON:
        status = ScheduleStatus.COMPLETE
    if status is ScheduleStatus.INCOMPLETE:
        logger.debug("Schedule truncated after %s periods with balance %s", max_periods, balance)

    return ScheduleResult(
        entries=tuple(entries),
        status=status,
        starting_balance=starting_balance,
        opening_balance=opening_balance,
        upfront_payment=upfront_payment,
        periods_per_year=periods_per_year,
        nominal_periods=policy.nominal_periods,
        stalled_period=stalled_period,
    )


def months_for_periods(periods: int, periods_per_year: int) -> int:
    """Convert a count of periods into whole months (rounded)."""
    if periods_per_year == 12:
        return periods
    return int((Decimal(periods) * 12 / Decimal(periods_per_year)).to_integral_value())


def period_month(period: int, periods_per_year: int) -> int:
    """1-based month in which a 1-based period falls."""
    if periods_per_year == 12:
        return period
    return -(-(period * 12) // periods_per_year)


def entries_within(result: ScheduleResult, horizon_months: Optional[int]) -> List[PaymentScheduleEntry]:
    """Entries whose period falls inside the first ``horizon_months`` months."""
    if horizon_months is None:
        return list(result.entries)
    return [e for e in result.entries if period_month(e.period, result.periods_per_year) <= horizon_months]


def summarize(result: ScheduleResult, horizon_months: Optional[int] = None) -> ScheduleSummary:
    """Reduce a schedule into totals.

    With ``horizon_months`` only the periods inside the horizon count, which
    is how comparisons over a sell-before-payoff window are made. The
    up-front payment of an extra-principal policy is always included in
    ``total_paid`` so that ``total_interest == total_paid - starting_balance``
    holds for completed schedules.
    """
    entries = entries_within(result, horizon_months)
    total_interest = sum((e.interest_portion for e in entries), ZERO)
    total_paid = result.upfront_payment + sum((e.total_payment for e in entries), ZERO)
    total_periods = len(entries)
    final_period = entries[-1].period if entries else 0
    ending_balance = entries[-1].ending_balance if entries else result.opening_balance
    if horizon_months is not None and len(entries) < len(result.entries):
        status = ScheduleStatus.INCOMPLETE
    else:
        status = result.status
    return ScheduleSummary(
        total_periods=total_periods,
        total_paid=total_paid,
        total_interest=total_interest,
        final_period_index=final_period,
        payoff_early=status is ScheduleStatus.COMPLETE and total_periods < result.nominal_periods,
        status=status,
        periods_per_year=result.periods_per_year,
        months_elapsed=months_for_periods(total_periods, result.periods_per_year),
        ending_balance=ending_balance,
    )


def balance_after(result: ScheduleResult, months: int) -> Decimal:
    """Outstanding balance once ``months`` months of the schedule have passed."""
    entries = entries_within(result, months)
    if not entries:
        return result.opening_balance
    return entries[-1].ending_balance


def interest_by_month(result: ScheduleResult) -> Dict[int, Decimal]:
    """Interest paid per calendar month, keyed by 1-based month index."""
    mapping: Dict[int, Decimal] = {}
    for entry in result.entries:
        month = period_month(entry.period, result.periods_per_year)
        mapping[month] = mapping.get(month, ZERO) + entry.interest_portion
    return mapping
