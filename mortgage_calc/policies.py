"""Rate and payment policies driving the schedule generator.

A policy answers one question per period: which nominal rate applies and how
much is scheduled to be paid. The generator hands it the period number, the
current balance and the terms it returned for the previous period, so a
policy can keep a payment until a boundary is crossed without holding any
state of its own. Policies are immutable and can be reused across runs.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

from .data_models import LoanTerms, PeriodTerms, RateAdjustmentPolicy
from .engine import annuity_payment, recast_payment
from .utils import InvalidParameterError, periodic_rate, require_non_negative, require_positive_int

logger = logging.getLogger(__name__)

# Absolute ceiling applied to any adjustable rate.
ARM_RATE_CEILING = Decimal("18")

BIWEEKLY_PERIODS_PER_YEAR = 26

SUPPORTED_PERIODICITIES = (12, BIWEEKLY_PERIODS_PER_YEAR)


class PaymentPolicy:
    """Base class for payment policies.

    Subclasses set ``periods_per_year``, ``nominal_periods`` (the contractual
    number of periods) and ``max_periods`` (the generator's safety bound) and
    implement :meth:`period_terms`.
    """

    periods_per_year = 12
    nominal_periods = 0
    max_periods = 0

    def opening_balance(self, principal: Decimal) -> Decimal:
        """Balance at the start of period 1."""
        return principal

    def period_terms(self, period: int, balance: Decimal, previous: Optional[PeriodTerms]) -> PeriodTerms:
        raise NotImplementedError


class FixedRatePolicy(PaymentPolicy):
    """Constant rate and constant payment.

    The payment is the annuity payment of ``terms`` unless an explicit
    ``payment`` is given, which is how a known monthly payment on an existing
    debt is projected forward. ``max_periods`` overrides the safety bound for
    explicit payments, which may need more periods than the nominal term.
    """

    def __init__(
        self,
        terms: LoanTerms,
        payment: Optional[Decimal] = None,
        periods_per_year: int = 12,
        max_periods: Optional[int] = None,
    ) -> None:
        if periods_per_year not in SUPPORTED_PERIODICITIES:
            raise InvalidParameterError(f"Unsupported periods per year: {periods_per_year}")
        self.terms = terms
        self.periods_per_year = periods_per_year
        self.nominal_periods = terms.term_months * periods_per_year // 12 or 1
        if payment is None:
            self.payment = annuity_payment(
                terms.principal,
                periodic_rate(terms.annual_rate_percent, periods_per_year),
                self.nominal_periods,
            )
        else:
            self.payment = require_non_negative(payment, "payment")
        self.max_periods = max_periods if max_periods is not None else self.nominal_periods

    def period_terms(self, period, balance, previous):
        return PeriodTerms(rate_percent=self.terms.annual_rate_percent, scheduled_payment=self.payment)


class ArmPolicy(PaymentPolicy):
    """Adjustable-rate mortgage with periodic adjustments and a lifetime cap.

    The payment is recast at period 1 and again at every adjustment boundary
    from the balance owed at that moment and the periods left in the term.
    """

    def __init__(self, terms: LoanTerms, adjustment: RateAdjustmentPolicy) -> None:
        if terms.annual_rate_percent != adjustment.initial_rate_percent:
            raise InvalidParameterError("Loan rate and ARM initial rate must match")
        self.terms = terms
        self.adjustment = adjustment
        self.nominal_periods = terms.term_months
        self.max_periods = terms.term_months

    @property
    def ceiling_rate(self) -> Decimal:
        adj = self.adjustment
        return min(adj.initial_rate_percent + adj.lifetime_cap_percent, ARM_RATE_CEILING)

    def rate_for_period(self, period: int) -> Decimal:
        """Nominal annual rate that applies in a 1-based period."""
        adj = self.adjustment
        if period <= adj.fixed_period_months:
            rate = adj.initial_rate_percent
        else:
            adjustments = (period - adj.fixed_period_months - 1) // adj.adjustment_interval_months
            rate = (
                adj.initial_rate_percent
                + adj.first_adjustment_delta_percent
                + adj.subsequent_adjustment_delta_percent * adjustments
            )
        return max(Decimal("0"), min(rate, self.ceiling_rate))

    def is_boundary(self, period: int) -> bool:
        """True for the first period of a new rate (including period 1)."""
        adj = self.adjustment
        if period == 1:
            return True
        if period <= adj.fixed_period_months:
            return False
        return (period - adj.fixed_period_months - 1) % adj.adjustment_interval_months == 0

    def period_terms(self, period, balance, previous):
        if previous is not None and not self.is_boundary(period):
            return previous
        rate = self.rate_for_period(period)
        remaining = self.terms.term_months - period + 1
        payment = recast_payment(balance, rate, remaining)
        if previous is not None:
            logger.debug("ARM recast at period %s: rate %s%%, payment %s", period, rate, payment)
        return PeriodTerms(rate_percent=rate, scheduled_payment=payment)


class BiWeeklyPolicy(PaymentPolicy):
    """Half of the standard monthly payment, paid 26 times a year.

    The payment comes from the original monthly schedule rather than a
    bi-weekly annuity, which yields the thirteenth monthly payment per year
    that shortens the loan.
    """

    periods_per_year = BIWEEKLY_PERIODS_PER_YEAR

    def __init__(self, terms: LoanTerms) -> None:
        self.terms = terms
        self.monthly_payment = annuity_payment(
            terms.principal, periodic_rate(terms.annual_rate_percent, 12), terms.term_months
        )
        self.payment = self.monthly_payment / 2
        self.nominal_periods = terms.term_months * BIWEEKLY_PERIODS_PER_YEAR // 12 or 1
        # Safety bound of twice the nominal term.
        self.max_periods = 2 * self.nominal_periods

    def period_terms(self, period, balance, previous):
        return PeriodTerms(rate_percent=self.terms.annual_rate_percent, scheduled_payment=self.payment)


class ExtraPrincipalPolicy(PaymentPolicy):
    """Standard monthly payment plus a constant extra principal amount.

    An optional one-time ``initial_extra`` is applied to the balance before
    period 1.
    """

    def __init__(self, terms: LoanTerms, monthly_extra: Decimal = Decimal("0"), initial_extra: Decimal = Decimal("0")):
        self.terms = terms
        self.monthly_extra = require_non_negative(monthly_extra, "monthly_extra")
        self.initial_extra = require_non_negative(initial_extra, "initial_extra")
        self.payment = annuity_payment(
            terms.principal, periodic_rate(terms.annual_rate_percent, 12), terms.term_months
        )
        self.nominal_periods = terms.term_months
        self.max_periods = terms.term_months

    def opening_balance(self, principal):
        return max(Decimal("0"), principal - self.initial_extra)

    def period_terms(self, period, balance, previous):
        return PeriodTerms(
            rate_percent=self.terms.annual_rate_percent,
            scheduled_payment=self.payment,
            extra_principal=self.monthly_extra,
        )


def build_policy(kind: str, terms: LoanTerms, **options) -> PaymentPolicy:
    """Create a policy by name (``fixed``, ``arm``, ``biweekly`` or ``extra``).

    This is the entry point the CLI and web collaborators use to map a
    parameter set onto a policy.
    """
    if not isinstance(kind, str):
        raise InvalidParameterError(f"Unknown policy: {kind!r}")
    kind = kind.lower()
    if kind == "fixed":
        return FixedRatePolicy(terms)
    if kind == "arm":
        adjustment = RateAdjustmentPolicy(
            initial_rate_percent=terms.annual_rate_percent,
            fixed_period_months=require_positive_int(options.get("fixed_period_months", 60), "fixed_period_months"),
            first_adjustment_delta_percent=options.get("first_adjustment_delta_percent", Decimal("1")),
            subsequent_adjustment_delta_percent=options.get("subsequent_adjustment_delta_percent", Decimal("0.25")),
            adjustment_interval_months=options.get("adjustment_interval_months", 12),
            lifetime_cap_percent=options.get("lifetime_cap_percent", Decimal("5")),
        )
        return ArmPolicy(terms, adjustment)
    if kind == "biweekly":
        return BiWeeklyPolicy(terms)
    if kind == "extra":
        return ExtraPrincipalPolicy(
            terms,
            monthly_extra=options.get("monthly_extra", Decimal("0")),
            initial_extra=options.get("initial_extra", Decimal("0")),
        )
    raise InvalidParameterError(f"Unknown policy: {kind}")
