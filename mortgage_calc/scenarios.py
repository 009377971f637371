"""Calculator scenarios built on the schedule engine.

Each function here answers one question a borrower asks: what an ARM may
cost after its fixed period, whether buying beats renting over a holding
period, whether rolling consumer debts into a HELOC pays off, whether a
piggyback second mortgage beats PMI, and how much cash a refinance can take
out. Every projection goes through :func:`generate_schedule`, so the loops are
bounded and the interest split matches the other calculators.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable, List

from .costs import HUNDRED, TWELVE, ZERO, monthly_pmi
from .data_models import (
    ArmOutlook,
    CashOutResult,
    Debt,
    DebtConsolidationResult,
    DebtPayoff,
    LoanOffer,
    LoanTerms,
    MonthlyCostBreakdown,
    MortgageLeg,
    PiggybackResult,
    RateAdjustmentPolicy,
    RentVsBuyQuery,
    RentVsBuyResult,
    ScheduleStatus,
)
from .engine import balance_after, generate_schedule, recast_payment, summarize
from .comparison import recommend
from .policies import ArmPolicy, FixedRatePolicy
from .utils import InvalidParameterError, require_non_negative, require_positive_int

logger = logging.getLogger(__name__)

# Payoff assumed for a debt whose payment never covers its interest.
FALLBACK_PAYOFF_MONTHS = 360
# Longest payoff projected for an existing debt.
MAX_DEBT_PAYOFF_MONTHS = 1200

MAX_CASH_OUT_LTV = Decimal("0.80")
PIGGYBACK_FIRST_LTV = Decimal("0.80")


def analyze_arm(terms: LoanTerms, adjustment: RateAdjustmentPolicy) -> ArmOutlook:
    """Payment outlook for an adjustable-rate loan.

    ``worst_case_payment`` recasts the balance left after the fixed period at
    the rate ceiling; ``expected`` follows the configured adjustments.
    """
    policy = ArmPolicy(terms, adjustment)
    schedule = generate_schedule(terms.principal, policy)
    initial_payment = recast_payment(terms.principal, adjustment.initial_rate_percent, terms.term_months)
    fixed_months = min(adjustment.fixed_period_months, terms.term_months)
    balance = balance_after(schedule, fixed_months)
    remaining = terms.term_months - fixed_months
    if remaining > 0:
        worst_case = recast_payment(balance, policy.ceiling_rate, remaining)
    else:
        worst_case = ZERO
    rate_path = tuple(
        (entry.period, entry.rate_used_percent, entry.scheduled_payment)
        for entry in schedule.entries
        if policy.is_boundary(entry.period)
    )
    return ArmOutlook(
        initial_payment=initial_payment,
        balance_after_fixed_period=balance,
        ceiling_rate_percent=policy.ceiling_rate,
        worst_case_payment=worst_case,
        expected=summarize(schedule),
        rate_path=rate_path,
        schedule=schedule,
    )


def analyze_rent_vs_buy(query: RentVsBuyQuery) -> RentVsBuyResult:
    """Compare renting with buying over ``query.years``.

    Rent rises once a year. Ownership pays principal and interest, property
    tax, insurance, maintenance, and PMI while the loan is above 80 % of the
    appreciated home value (only when less than 20 % was put down). Buying is
    recommended when the equity gained plus the interest tax savings exceed
    any extra cash spent over renting.
    """
    months = query.years * 12
    down_payment = query.home_price * query.down_payment_percent / HUNDRED
    loan = query.home_price - down_payment
    terms = LoanTerms(loan, query.annual_rate_percent, query.term_months)
    policy = FixedRatePolicy(terms)
    schedule = generate_schedule(loan, policy, max_periods=months)

    has_pmi = query.down_payment_percent < 20
    breakdown = MonthlyCostBreakdown(
        principal_and_interest=policy.payment,
        property_tax=query.home_price * query.property_tax_rate_percent / HUNDRED / TWELVE,
        insurance=query.home_price * query.insurance_rate_percent / HUNDRED / TWELVE,
        hoa=ZERO,
        pmi=monthly_pmi(loan, query.pmi_rate_percent) if has_pmi else ZERO,
    )
    maintenance = query.annual_maintenance / TWELVE

    total_rent = ZERO
    rent = query.monthly_rent
    rent_growth = 1 + query.annual_rent_increase_percent / HUNDRED
    for _ in range(query.years):
        total_rent += rent * 12
        rent *= rent_growth

    growth = 1 + query.annual_appreciation_percent / HUNDRED
    entries = schedule.entries
    ownership = ZERO
    pmi_paid = ZERO
    for month in range(1, months + 1):
        if month <= len(entries):
            entry = entries[month - 1]
            ownership += entry.total_payment
            balance = entry.ending_balance
        else:
            balance = ZERO
        ownership += breakdown.property_tax + breakdown.insurance + maintenance
        value = query.home_price * growth ** (Decimal(month) / TWELVE)
        if has_pmi and balance / value * HUNDRED > 80:
            pmi_paid += breakdown.pmi
    ownership += pmi_paid

    interest = summarize(schedule).total_interest
    tax_savings = interest * query.income_tax_rate_percent / HUNDRED
    future_value = query.home_price * growth ** query.years
    proceeds = future_value * (1 - query.selling_cost_percent / HUNDRED)
    loan_balance = balance_after(schedule, months)
    equity_gain = proceeds - loan_balance - down_payment
    net_benefit = equity_gain + tax_savings - max(ZERO, ownership - total_rent)

    return RentVsBuyResult(
        total_rent_paid=total_rent,
        average_monthly_rent=total_rent / months,
        monthly_ownership_cost=breakdown,
        monthly_maintenance=maintenance,
        total_ownership_payments=ownership,
        total_interest_paid=interest,
        total_pmi_paid=pmi_paid,
        total_tax_savings=tax_savings,
        future_home_value=future_value,
        proceeds_after_selling_costs=proceeds,
        loan_balance=loan_balance,
        equity_gain=equity_gain,
        net_benefit_of_buying=net_benefit,
        recommendation=recommend(net_benefit),
    )


def project_debt_payoff(debt: Debt) -> DebtPayoff:
    """Follow a debt at its current payment until it is paid off.

    A payment that never gets ahead of the interest is costed as if it were
    made for :data:`FALLBACK_PAYOFF_MONTHS` months. A debt that amortizes too
    slowly to clear within :data:`MAX_DEBT_PAYOFF_MONTHS` is costed at every
    payment made in that window plus the balance still owed at its end.
    Neither case has a payoff month.
    """
    if debt.balance <= 0:
        return DebtPayoff(debt, 0, ZERO, ZERO, ScheduleStatus.COMPLETE)
    terms = LoanTerms(debt.balance, debt.annual_rate_percent, FALLBACK_PAYOFF_MONTHS)
    policy = FixedRatePolicy(terms, payment=debt.monthly_payment, max_periods=MAX_DEBT_PAYOFF_MONTHS)
    schedule = generate_schedule(debt.balance, policy)
    summary = summarize(schedule)
    if schedule.status is ScheduleStatus.COMPLETE:
        return DebtPayoff(debt, summary.total_periods, summary.total_paid, summary.total_interest, schedule.status)
    if schedule.status is ScheduleStatus.INCOMPLETE:
        logger.warning(
            "Debt %r is not paid off within %d months; %s is still owed",
            debt.name,
            MAX_DEBT_PAYOFF_MONTHS,
            summary.ending_balance,
        )
        total_paid = summary.total_paid + summary.ending_balance
        return DebtPayoff(debt, None, total_paid, summary.total_interest, schedule.status)
    logger.warning("Debt %r does not amortize at a payment of %s", debt.name, debt.monthly_payment)
    total_paid = debt.monthly_payment * FALLBACK_PAYOFF_MONTHS
    return DebtPayoff(debt, None, total_paid, max(ZERO, total_paid - debt.balance), schedule.status)


def _assumed_payoff_months(payoff: DebtPayoff) -> int:
    if payoff.months is not None:
        return payoff.months
    if payoff.status is ScheduleStatus.INCOMPLETE:
        return MAX_DEBT_PAYOFF_MONTHS
    return FALLBACK_PAYOFF_MONTHS


def analyze_debt_consolidation(
    debts: Iterable[Debt],
    heloc_rate_percent: Decimal,
    heloc_term_months: int,
    heloc_closing_costs: Decimal = ZERO,
    federal_tax_rate_percent: Decimal = ZERO,
) -> DebtConsolidationResult:
    """Keep paying existing debts or roll them into one HELOC.

    HELOC interest is treated as deductible at the federal rate; consumer
    debt interest is not.
    """
    debts = list(debts)
    if not debts:
        raise InvalidParameterError("At least one debt is required")
    closing = require_non_negative(heloc_closing_costs, "heloc_closing_costs")
    tax_rate = require_non_negative(federal_tax_rate_percent, "federal_tax_rate_percent") / HUNDRED

    payoffs: List[DebtPayoff] = [project_debt_payoff(debt) for debt in debts]
    total_balance = sum((d.balance for d in debts), ZERO)
    total_payment = sum((d.monthly_payment for d in debts), ZERO)
    weighted = sum((d.balance * d.annual_rate_percent for d in debts), ZERO)
    weighted_rate = weighted / total_balance if total_balance > 0 else ZERO
    existing_months = max(_assumed_payoff_months(p) for p in payoffs)
    existing_paid = sum((p.total_paid for p in payoffs), ZERO)
    existing_interest = sum((p.total_interest for p in payoffs), ZERO)

    heloc_terms = LoanTerms(total_balance, heloc_rate_percent, heloc_term_months)
    heloc_policy = FixedRatePolicy(heloc_terms)
    heloc = summarize(generate_schedule(total_balance, heloc_policy))
    heloc_tax_savings = heloc.total_interest * tax_rate
    heloc_cost = heloc.total_paid + closing - heloc_tax_savings
    savings = existing_paid - heloc_cost

    return DebtConsolidationResult(
        payoffs=tuple(payoffs),
        total_balance=total_balance,
        total_monthly_payment=total_payment,
        weighted_rate_percent=weighted_rate,
        existing_months=existing_months,
        existing_total_paid=existing_paid,
        existing_total_interest=existing_interest,
        heloc_payment=heloc_policy.payment,
        heloc=heloc,
        heloc_tax_savings=heloc_tax_savings,
        heloc_closing_costs=closing,
        heloc_cost_after_tax=heloc_cost,
        monthly_savings=total_payment - heloc_policy.payment,
        total_savings=savings,
        recommendation=recommend(savings),
        unpayable_debts=tuple(p.debt.name for p in payoffs if p.status is ScheduleStatus.NON_AMORTIZING),
    )


def _leg(amount: Decimal, offer: LoanOffer) -> MortgageLeg:
    if amount <= 0:
        return MortgageLeg(ZERO, ZERO, ZERO, ZERO, ZERO)
    policy = FixedRatePolicy(LoanTerms(amount, offer.annual_rate_percent, offer.term_months))
    summary = summarize(generate_schedule(amount, policy))
    return MortgageLeg(
        loan_amount=amount,
        monthly_payment=policy.payment,
        points_cost=amount * offer.discount_points_percent / HUNDRED,
        closing_costs=offer.closing_costs,
        total_interest=summary.total_interest,
    )


def analyze_piggyback(
    home_value: Decimal,
    down_payment: Decimal,
    single: LoanOffer,
    pmi_rate_percent: Decimal,
    first: LoanOffer,
    second: LoanOffer,
) -> PiggybackResult:
    """One loan with PMI vs. an 80 % first mortgage plus a second mortgage.

    PMI is paid until the single loan's balance falls to 80 % of the home
    value. Lifetime cost counts every payment, PMI, points, closing costs and
    the down payment.
    """
    home_value = require_non_negative(home_value, "home_value")
    down_payment = require_non_negative(down_payment, "down_payment")
    if down_payment > home_value:
        raise InvalidParameterError("Down payment cannot exceed the home value")
    loan = home_value - down_payment

    single_leg = _leg(loan, single)
    pmi = monthly_pmi(loan, require_non_negative(pmi_rate_percent, "pmi_rate_percent"))
    threshold = home_value * PIGGYBACK_FIRST_LTV
    pmi_months = 0
    if loan > threshold:
        policy = FixedRatePolicy(LoanTerms(loan, single.annual_rate_percent, single.term_months))
        schedule = generate_schedule(loan, policy)
        pmi_months = sum(1 for e in schedule.entries if e.beginning_balance > threshold)
    total_pmi = pmi * pmi_months
    single_cost = single_leg.loan_amount + single_leg.total_interest + total_pmi + single_leg.total_closing + down_payment

    first_amount = min(threshold, loan)
    first_leg = _leg(first_amount, first)
    second_leg = _leg(loan - first_amount, second)
    piggyback_cost = (
        first_leg.loan_amount
        + first_leg.total_interest
        + first_leg.total_closing
        + second_leg.loan_amount
        + second_leg.total_interest
        + second_leg.total_closing
        + down_payment
    )
    savings = single_cost - piggyback_cost
    return PiggybackResult(
        single_loan=single_leg,
        monthly_pmi=pmi,
        pmi_months=pmi_months,
        total_pmi_paid=total_pmi,
        single_loan_total_cost=single_cost,
        first_mortgage=first_leg,
        second_mortgage=second_leg,
        piggyback_total_cost=piggyback_cost,
        savings=savings,
        recommendation=recommend(savings),
    )


def analyze_cash_out(
    home_value: Decimal,
    current_balance: Decimal,
    annual_rate_percent: Decimal,
    term_months: int,
    desired_cash_out: Decimal,
    refinance_fees: Decimal = ZERO,
    roll_fees_into_loan: bool = False,
) -> CashOutResult:
    """Cash-out refinance limited to 80 % of the home value."""
    home_value = require_non_negative(home_value, "home_value")
    current_balance = require_non_negative(current_balance, "current_balance")
    fees = require_non_negative(refinance_fees, "refinance_fees")
    term_months = require_positive_int(term_months, "term_months")
    if home_value == 0:
        raise InvalidParameterError("home_value must be positive")

    max_cash_out = max(ZERO, home_value * MAX_CASH_OUT_LTV - current_balance)
    cash_out = min(require_non_negative(desired_cash_out, "desired_cash_out"), max_cash_out)
    new_balance = current_balance + cash_out
    if roll_fees_into_loan:
        new_balance += fees
        net_cash = cash_out
    else:
        net_cash = max(ZERO, cash_out - fees)

    policy = FixedRatePolicy(LoanTerms(new_balance, annual_rate_percent, term_months))
    summary = summarize(generate_schedule(new_balance, policy))
    return CashOutResult(
        max_cash_out=max_cash_out,
        cash_out=cash_out,
        net_cash_out=net_cash,
        new_loan_balance=new_balance,
        combined_ltv_percent=min(new_balance / home_value * HUNDRED, HUNDRED),
        monthly_payment=policy.payment,
        total_interest=summary.total_interest,
        equity=home_value - current_balance,
    )
