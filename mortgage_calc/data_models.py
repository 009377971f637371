"""Data models for the mortgage calculator.

This module defines dataclasses representing the entities passed into and
returned from the engine: loan terms, ARM adjustment rules, individual
schedule entries, summaries and comparison results. Parameter objects are
frozen and validate themselves on construction, so a schedule run never sees
a negative principal or a zero term. Result objects are frozen as well; they
are created fresh for every calculation and simply discarded afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple

from .utils import (
    InvalidParameterError,
    require_non_negative,
    require_non_negative_int,
    require_positive_int,
    to_decimal,
)


class ScheduleStatus(str, Enum):
    """How a schedule run ended."""

    COMPLETE = "complete"  # balance reached zero
    NON_AMORTIZING = "non_amortizing"  # payment stopped covering interest
    INCOMPLETE = "incomplete"  # period budget exhausted with a balance left


class Recommendation(str, Enum):
    BASELINE = "baseline"
    ALTERNATIVE = "alternative"


@dataclass(frozen=True)
class LoanTerms:
    """Principal, annual nominal rate (percent) and term in months.

    Attributes
    ----------
    principal: Decimal
        The financed amount. Down payments must already be subtracted.
    annual_rate_percent: Decimal
        Nominal yearly rate, e.g. ``Decimal("6.5")`` for 6.5 %.
    term_months: int
        Number of monthly periods the loan amortizes over.
    """

    principal: Decimal
    annual_rate_percent: Decimal
    term_months: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "principal", require_non_negative(self.principal, "principal"))
        object.__setattr__(
            self,
            "annual_rate_percent",
            require_non_negative(self.annual_rate_percent, "annual_rate_percent"),
        )
        object.__setattr__(self, "term_months", require_positive_int(self.term_months, "term_months"))

    @property
    def term_years(self) -> Decimal:
        return Decimal(self.term_months) / Decimal(12)


@dataclass(frozen=True)
class RateAdjustmentPolicy:
    """Adjustment rules of an adjustable-rate mortgage.

    The rate stays at ``initial_rate_percent`` for ``fixed_period_months``
    periods, moves by ``first_adjustment_delta_percent`` at the first
    boundary and by ``subsequent_adjustment_delta_percent`` every
    ``adjustment_interval_months`` after that. The effective rate never
    exceeds ``initial + lifetime_cap`` nor the absolute ARM ceiling.
    """

    initial_rate_percent: Decimal
    fixed_period_months: int
    first_adjustment_delta_percent: Decimal
    subsequent_adjustment_delta_percent: Decimal
    adjustment_interval_months: int
    lifetime_cap_percent: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "initial_rate_percent",
            require_non_negative(self.initial_rate_percent, "initial_rate_percent"),
        )
        object.__setattr__(
            self,
            "fixed_period_months",
            require_positive_int(self.fixed_period_months, "fixed_period_months"),
        )
        object.__setattr__(
            self,
            "first_adjustment_delta_percent",
            to_decimal(self.first_adjustment_delta_percent, "first_adjustment_delta_percent"),
        )
        object.__setattr__(
            self,
            "subsequent_adjustment_delta_percent",
            to_decimal(self.subsequent_adjustment_delta_percent, "subsequent_adjustment_delta_percent"),
        )
        object.__setattr__(
            self,
            "adjustment_interval_months",
            require_positive_int(self.adjustment_interval_months, "adjustment_interval_months"),
        )
        object.__setattr__(
            self,
            "lifetime_cap_percent",
            require_non_negative(self.lifetime_cap_percent, "lifetime_cap_percent"),
        )


@dataclass(frozen=True)
class PeriodTerms:
    """What a policy decides for one period."""

    rate_percent: Decimal
    scheduled_payment: Decimal
    extra_principal: Decimal = Decimal("0")


@dataclass(frozen=True)
class PaymentScheduleEntry:
    """One period of an amortization schedule.

    ``scheduled_payment`` is the installment the policy asked for;
    ``total_payment`` is what was actually paid (interest plus principal,
    including any extra principal), which is smaller in the final period.
    """

    period: int
    rate_used_percent: Decimal
    scheduled_payment: Decimal
    interest_portion: Decimal
    principal_portion: Decimal
    extra_principal: Decimal
    total_payment: Decimal
    beginning_balance: Decimal
    ending_balance: Decimal


@dataclass(frozen=True)
class ScheduleResult:
    """Output of a schedule run: the entries plus how the run ended."""

    entries: Tuple[PaymentScheduleEntry, ...]
    status: ScheduleStatus
    starting_balance: Decimal
    opening_balance: Decimal
    upfront_payment: Decimal
    periods_per_year: int
    nominal_periods: int
    stalled_period: Optional[int] = None

    @property
    def ending_balance(self) -> Decimal:
        return self.entries[-1].ending_balance if self.entries else self.opening_balance


@dataclass(frozen=True)
class ScheduleSummary:
    """Totals reduced from a list of schedule entries."""

    total_periods: int
    total_paid: Decimal
    total_interest: Decimal
    final_period_index: int
    payoff_early: bool
    status: ScheduleStatus
    periods_per_year: int
    months_elapsed: int
    ending_balance: Decimal


@dataclass(frozen=True)
class ComparisonResult:
    """Baseline vs. alternative schedule comparison."""

    baseline: ScheduleSummary
    alternative: ScheduleSummary
    periods_saved: int
    interest_saved: Decimal
    net_benefit: Decimal
    recommendation: Recommendation
    tax_shield_loss: Decimal = Decimal("0")
    one_time_costs: Decimal = Decimal("0")
    break_even_period: Optional[int] = 0


@dataclass(frozen=True)
class RefinanceQuery:
    """Inputs of a refinance analysis."""

    original: LoanTerms
    months_already_paid: int
    new_rate_percent: Decimal
    new_term_months: int
    horizon_months: int
    discount_points_percent: Decimal = Decimal("0")
    origination_fee_percent: Decimal = Decimal("0")
    other_closing_costs: Decimal = Decimal("0")
    federal_tax_rate_percent: Decimal = Decimal("0")
    state_tax_rate_percent: Decimal = Decimal("0")

    def __post_init__(self) -> None:
        months_paid = require_non_negative_int(self.months_already_paid, "months_already_paid")
        if months_paid >= self.original.term_months:
            raise InvalidParameterError("months_already_paid must be shorter than the original term")
        object.__setattr__(self, "months_already_paid", months_paid)
        object.__setattr__(self, "new_rate_percent", require_non_negative(self.new_rate_percent, "new_rate_percent"))
        object.__setattr__(self, "new_term_months", require_positive_int(self.new_term_months, "new_term_months"))
        object.__setattr__(self, "horizon_months", require_positive_int(self.horizon_months, "horizon_months"))
        for name in (
            "discount_points_percent",
            "origination_fee_percent",
            "other_closing_costs",
            "federal_tax_rate_percent",
            "state_tax_rate_percent",
        ):
            object.__setattr__(self, name, require_non_negative(getattr(self, name), name))


@dataclass(frozen=True)
class RefinanceResult:
    comparison: ComparisonResult
    remaining_balance: Decimal
    original_payment: Decimal
    new_payment: Decimal
    closing_costs: Decimal
    original_balance_at_horizon: Decimal
    new_balance_at_horizon: Decimal
    equity_difference: Decimal
    monthly_payment_difference: Decimal
    additional_payments_over_horizon: Decimal


@dataclass(frozen=True)
class MonthlyCostBreakdown:
    """Monthly housing cost split into its components."""

    principal_and_interest: Decimal
    property_tax: Decimal
    insurance: Decimal
    hoa: Decimal
    pmi: Decimal

    @property
    def total(self) -> Decimal:
        return self.principal_and_interest + self.property_tax + self.insurance + self.hoa + self.pmi


@dataclass(frozen=True)
class AffordabilityResult:
    """Largest affordable home price for a monthly ceiling.

    ``affordable`` is False when even the search floor costs more than the
    ceiling; ``max_price`` is then zero. ``capped`` is True when the search
    ceiling itself was affordable, so the true maximum may be higher.
    """

    max_price: Decimal
    loan_amount: Decimal
    down_payment: Decimal
    breakdown: MonthlyCostBreakdown
    monthly_ceiling: Decimal
    affordable: bool
    capped: bool = False

    @property
    def resulting_monthly_cost(self) -> Decimal:
        return self.breakdown.total


@dataclass(frozen=True)
class QualificationResult:
    loan_amount: Decimal
    breakdown: MonthlyCostBreakdown
    required_monthly_income: Decimal
    required_annual_income: Decimal
    front_end_ratio_percent: Decimal
    back_end_ratio_percent: Decimal
    max_monthly_debt_allowance: Decimal
    down_payment_percent: Decimal
    ltv_percent: Decimal


@dataclass(frozen=True)
class ArmOutlook:
    initial_payment: Decimal
    balance_after_fixed_period: Decimal
    ceiling_rate_percent: Decimal
    worst_case_payment: Decimal
    expected: ScheduleSummary
    rate_path: Tuple[Tuple[int, Decimal, Decimal], ...]  # (period, rate, recast payment)
    schedule: ScheduleResult


@dataclass(frozen=True)
class RentVsBuyQuery:
    monthly_rent: Decimal
    annual_rent_increase_percent: Decimal
    home_price: Decimal
    annual_appreciation_percent: Decimal
    years: int
    selling_cost_percent: Decimal
    down_payment_percent: Decimal
    annual_rate_percent: Decimal
    term_months: int
    pmi_rate_percent: Decimal = Decimal("0")
    property_tax_rate_percent: Decimal = Decimal("0")
    insurance_rate_percent: Decimal = Decimal("0")
    annual_maintenance: Decimal = Decimal("0")
    income_tax_rate_percent: Decimal = Decimal("0")

    def __post_init__(self) -> None:
        for name in (
            "monthly_rent",
            "home_price",
            "selling_cost_percent",
            "down_payment_percent",
            "annual_rate_percent",
            "pmi_rate_percent",
            "property_tax_rate_percent",
            "insurance_rate_percent",
            "annual_maintenance",
            "income_tax_rate_percent",
        ):
            object.__setattr__(self, name, require_non_negative(getattr(self, name), name))
        for name in ("annual_rent_increase_percent", "annual_appreciation_percent"):
            object.__setattr__(self, name, to_decimal(getattr(self, name), name))
        object.__setattr__(self, "years", require_positive_int(self.years, "years"))
        object.__setattr__(self, "term_months", require_positive_int(self.term_months, "term_months"))
        if self.home_price == 0:
            raise InvalidParameterError("home_price must be positive")
        if self.down_payment_percent > 100:
            raise InvalidParameterError("down_payment_percent cannot exceed 100")
        if self.annual_appreciation_percent <= -100 or self.annual_rent_increase_percent <= -100:
            raise InvalidParameterError("Growth rates must be above -100 percent")


@dataclass(frozen=True)
class RentVsBuyResult:
    total_rent_paid: Decimal
    average_monthly_rent: Decimal
    monthly_ownership_cost: MonthlyCostBreakdown
    monthly_maintenance: Decimal
    total_ownership_payments: Decimal
    total_interest_paid: Decimal
    total_pmi_paid: Decimal
    total_tax_savings: Decimal
    future_home_value: Decimal
    proceeds_after_selling_costs: Decimal
    loan_balance: Decimal
    equity_gain: Decimal
    net_benefit_of_buying: Decimal
    recommendation: Recommendation  # ALTERNATIVE means buy


@dataclass(frozen=True)
class Debt:
    """An existing consumer debt considered for consolidation."""

    name: str
    balance: Decimal
    annual_rate_percent: Decimal
    monthly_payment: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "balance", require_non_negative(self.balance, "balance"))
        object.__setattr__(
            self, "annual_rate_percent", require_non_negative(self.annual_rate_percent, "annual_rate_percent")
        )
        object.__setattr__(self, "monthly_payment", require_non_negative(self.monthly_payment, "monthly_payment"))


@dataclass(frozen=True)
class DebtPayoff:
    debt: Debt
    months: Optional[int]  # None when the debt is not paid off at its payment
    total_paid: Decimal
    total_interest: Decimal
    status: ScheduleStatus


@dataclass(frozen=True)
class DebtConsolidationResult:
    payoffs: Tuple[DebtPayoff, ...]
    total_balance: Decimal
    total_monthly_payment: Decimal
    weighted_rate_percent: Decimal
    existing_months: int
    existing_total_paid: Decimal
    existing_total_interest: Decimal
    heloc_payment: Decimal
    heloc: ScheduleSummary
    heloc_tax_savings: Decimal
    heloc_closing_costs: Decimal
    heloc_cost_after_tax: Decimal
    monthly_savings: Decimal
    total_savings: Decimal
    recommendation: Recommendation  # ALTERNATIVE means consolidate
    unpayable_debts: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class LoanOffer:
    """Rate, term and up-front costs quoted for one mortgage."""

    annual_rate_percent: Decimal
    term_months: int
    discount_points_percent: Decimal = Decimal("0")
    closing_costs: Decimal = Decimal("0")

    def __post_init__(self) -> None:
        for name in ("annual_rate_percent", "discount_points_percent", "closing_costs"):
            object.__setattr__(self, name, require_non_negative(getattr(self, name), name))
        object.__setattr__(self, "term_months", require_positive_int(self.term_months, "term_months"))


@dataclass(frozen=True)
class MortgageLeg:
    """One mortgage of a financing structure and its lifetime cost."""

    loan_amount: Decimal
    monthly_payment: Decimal
    points_cost: Decimal
    closing_costs: Decimal
    total_interest: Decimal

    @property
    def total_closing(self) -> Decimal:
        return self.points_cost + self.closing_costs


@dataclass(frozen=True)
class PiggybackResult:
    single_loan: MortgageLeg
    monthly_pmi: Decimal
    pmi_months: int
    total_pmi_paid: Decimal
    single_loan_total_cost: Decimal
    first_mortgage: MortgageLeg
    second_mortgage: MortgageLeg
    piggyback_total_cost: Decimal
    savings: Decimal
    recommendation: Recommendation  # ALTERNATIVE means piggyback


@dataclass(frozen=True)
class CashOutResult:
    max_cash_out: Decimal
    cash_out: Decimal
    net_cash_out: Decimal
    new_loan_balance: Decimal
    combined_ltv_percent: Decimal
    monthly_payment: Decimal
    total_interest: Decimal
    equity: Decimal


@dataclass(frozen=True)
class HousingCosts:
    """Recurring ownership costs layered on top of principal and interest.

    Annual amounts are spread over twelve months; ``hoa_monthly`` is already
    monthly. PMI is either a flat ``pmi_annual`` premium or a
    ``pmi_rate_percent`` charged on the loan amount; the flat premium wins
    when both are set.
    """

    property_tax_annual: Decimal = Decimal("0")
    insurance_annual: Decimal = Decimal("0")
    hoa_monthly: Decimal = Decimal("0")
    pmi_rate_percent: Decimal = Decimal("0")
    pmi_annual: Decimal = Decimal("0")

    def __post_init__(self) -> None:
        for name in ("property_tax_annual", "insurance_annual", "hoa_monthly", "pmi_rate_percent", "pmi_annual"):
            object.__setattr__(self, name, require_non_negative(getattr(self, name), name))

