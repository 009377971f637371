"""Affordability search and income qualification.

The search looks for the most expensive home whose total monthly cost stays
within a ceiling. Prices are tested on a fixed grid (every $1,000 between
$10,000 and $5,000,000). The cost of every component grows with the price or
stays flat, so cost is monotone along the grid. A linear scan and a bisection
over the same grid therefore give the same answer; bisection just needs far
fewer cost evaluations.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Tuple

from .costs import HUNDRED, TWELVE, ZERO, monthly_pmi, quoted_monthly_pmi, requires_pmi
from .data_models import AffordabilityResult, HousingCosts, LoanTerms, MonthlyCostBreakdown, QualificationResult
from .engine import annuity_payment
from .utils import InvalidParameterError, periodic_rate, require_non_negative, require_positive_int

logger = logging.getLogger(__name__)

SEARCH_FLOOR = Decimal("10000")
SEARCH_CEILING = Decimal("5000000")
SEARCH_STEP = Decimal("1000")

SEARCH_METHODS = ("scan", "bisect")

DTI_RULES = {
    "28/36": (Decimal("28"), Decimal("36")),
    "31/43": (Decimal("31"), Decimal("43")),
    "41": (Decimal("41"), Decimal("41")),
}


@dataclass(frozen=True)
class HousingCostModel:
    """Monthly cost of owning a home as a function of its price.

    Property tax and insurance are annual percentages of the price, HOA is a
    fixed annual amount and PMI is an annual percentage of the loan, charged
    while the loan exceeds 80 % of the price.
    """

    annual_rate_percent: Decimal
    term_months: int
    down_payment_percent: Decimal = ZERO
    property_tax_rate_percent: Decimal = ZERO
    insurance_rate_percent: Decimal = ZERO
    hoa_annual: Decimal = ZERO
    pmi_rate_percent: Decimal = ZERO

    def __post_init__(self) -> None:
        for name in (
            "annual_rate_percent",
            "down_payment_percent",
            "property_tax_rate_percent",
            "insurance_rate_percent",
            "hoa_annual",
            "pmi_rate_percent",
        ):
            object.__setattr__(self, name, require_non_negative(getattr(self, name), name))
        object.__setattr__(self, "term_months", require_positive_int(self.term_months, "term_months"))
        if self.down_payment_percent > HUNDRED:
            raise InvalidParameterError("down_payment_percent cannot exceed 100")

    def loan_amount(self, price: Decimal) -> Decimal:
        return price * (1 - self.down_payment_percent / HUNDRED)

    def breakdown(self, price: Decimal) -> MonthlyCostBreakdown:
        loan = self.loan_amount(price)
        pmi = ZERO
        if self.pmi_rate_percent > 0 and requires_pmi(loan, price):
            pmi = monthly_pmi(loan, self.pmi_rate_percent)
        return MonthlyCostBreakdown(
            principal_and_interest=annuity_payment(
                loan, periodic_rate(self.annual_rate_percent, 12), self.term_months
            ),
            property_tax=price * self.property_tax_rate_percent / HUNDRED / TWELVE,
            insurance=price * self.insurance_rate_percent / HUNDRED / TWELVE,
            hoa=self.hoa_annual / TWELVE,
            pmi=pmi,
        )

    def __call__(self, price: Decimal) -> Decimal:
        return self.breakdown(price).total


def _grid_size() -> int:
    return int((SEARCH_CEILING - SEARCH_FLOOR) / SEARCH_STEP)


def _grid_price(index: int) -> Decimal:
    return SEARCH_FLOOR + SEARCH_STEP * index


def _scan(ceiling: Decimal, cost_model: Callable[[Decimal], Decimal]) -> int:
    best = -1
    for index in range(_grid_size() + 1):
        if cost_model(_grid_price(index)) > ceiling:
            break
        best = index
    return best


def _bisect(ceiling: Decimal, cost_model: Callable[[Decimal], Decimal]) -> int:
    lo, hi = -1, _grid_size()
    if cost_model(_grid_price(hi)) <= ceiling:
        return hi
    # invariant: lo affordable (or -1), hi unaffordable
    while hi - lo > 1:
        mid = (lo + hi) // 2
        if cost_model(_grid_price(mid)) <= ceiling:
            lo = mid
        else:
            hi = mid
    return lo


def max_affordable_price(
    monthly_ceiling: Decimal, cost_model: Callable[[Decimal], Decimal], method: str = "scan"
) -> Tuple[Decimal, bool, bool]:
    """Largest grid price whose monthly cost does not exceed ``monthly_ceiling``.

    Returns
    -------
    (price, affordable, capped)
        ``price`` is zero and ``affordable`` False when even the floor price
        is too expensive. ``capped`` is True when the top of the grid was
        affordable.
    """
    ceiling = require_non_negative(monthly_ceiling, "monthly_ceiling")
    if method not in SEARCH_METHODS:
        raise InvalidParameterError(f"Unknown search method: {method}")
    index = _scan(ceiling, cost_model) if method == "scan" else _bisect(ceiling, cost_model)
    logger.debug("Affordability search (%s) for ceiling %s stopped at grid index %s", method, ceiling, index)
    if index < 0:
        return ZERO, False, False
    return _grid_price(index), True, index == _grid_size()


def affordability_from_budget(
    monthly_budget: Decimal, cost_model: HousingCostModel, method: str = "scan"
) -> AffordabilityResult:
    """Most expensive home whose total monthly cost fits ``monthly_budget``."""
    price, affordable, capped = max_affordable_price(monthly_budget, cost_model, method)
    loan = cost_model.loan_amount(price)
    return AffordabilityResult(
        max_price=price,
        loan_amount=loan,
        down_payment=price - loan,
        breakdown=cost_model.breakdown(price),
        monthly_ceiling=require_non_negative(monthly_budget, "monthly_budget"),
        affordable=affordable,
        capped=capped,
    )


def dti_limits(rule: str) -> Tuple[Decimal, Decimal]:
    """Front-end and back-end DTI limits (percent) for a rule name.

    Besides the named rules a bare number such as ``"45"`` applies the same
    limit to both ratios.
    """
    rule = str(rule).strip()
    if rule in DTI_RULES:
        return DTI_RULES[rule]
    try:
        limit = Decimal(rule.rstrip("%"))
    except ArithmeticError as exc:
        raise InvalidParameterError(f"Unknown DTI rule: {rule}") from exc
    if not limit.is_finite() or limit <= 0 or limit > HUNDRED:
        raise InvalidParameterError(f"DTI limit must be between 0 and 100, got {rule}")
    return limit, limit


def housing_payment_ceiling(monthly_income: Decimal, monthly_debts: Decimal, rule: str = "28/36") -> Decimal:
    """Highest housing payment both DTI ratios allow, never negative."""
    income = require_non_negative(monthly_income, "monthly_income")
    debts = require_non_negative(monthly_debts, "monthly_debts")
    front, back = dti_limits(rule)
    front_limit = income * front / HUNDRED
    back_limit = income * back / HUNDRED - debts
    return max(ZERO, min(front_limit, back_limit))


def affordability_from_income(
    annual_income: Decimal,
    monthly_debts: Decimal,
    cost_model: HousingCostModel,
    rule: str = "28/36",
    method: str = "scan",
) -> AffordabilityResult:
    """Most expensive home a gross annual income qualifies for."""
    monthly_income = require_non_negative(annual_income, "annual_income") / TWELVE
    ceiling = housing_payment_ceiling(monthly_income, monthly_debts, rule)
    return affordability_from_budget(ceiling, cost_model, method)


def required_income(
    home_value: Decimal,
    down_payment: Decimal,
    annual_rate_percent: Decimal,
    term_months: int,
    costs: HousingCosts,
    monthly_debts: Decimal = ZERO,
    front_end_ratio_percent: Decimal = Decimal("28"),
    back_end_ratio_percent: Decimal = Decimal("36"),
) -> QualificationResult:
    """Gross income needed to qualify for a purchase.

    The stricter of the front-end (housing only) and back-end (housing plus
    other debts) ratios decides. PMI is whatever the lender quoted in
    ``costs``: the flat annual premium spread over twelve months, or the
    rate applied to the loan amount. It is counted as quoted, without an LTV
    check.
    """
    home_value = require_non_negative(home_value, "home_value")
    down_payment = require_non_negative(down_payment, "down_payment")
    debts = require_non_negative(monthly_debts, "monthly_debts")
    front = require_non_negative(front_end_ratio_percent, "front_end_ratio_percent")
    back = require_non_negative(back_end_ratio_percent, "back_end_ratio_percent")
    if home_value == 0:
        raise InvalidParameterError("home_value must be positive")
    if front == 0 or back == 0:
        raise InvalidParameterError("DTI ratios must be positive")
    if down_payment > home_value:
        raise InvalidParameterError("Down payment cannot exceed the home value")

    terms = LoanTerms(home_value - down_payment, annual_rate_percent, term_months)
    breakdown = MonthlyCostBreakdown(
        principal_and_interest=annuity_payment(
            terms.principal, periodic_rate(terms.annual_rate_percent, 12), terms.term_months
        ),
        property_tax=costs.property_tax_annual / TWELVE,
        insurance=costs.insurance_annual / TWELVE,
        hoa=costs.hoa_monthly,
        pmi=quoted_monthly_pmi(terms.principal, costs),
    )
    housing = breakdown.total
    income = max(housing / (front / HUNDRED), (housing + debts) / (back / HUNDRED))
    if income > 0:
        front_actual = housing / income * HUNDRED
        back_actual = (housing + debts) / income * HUNDRED
    else:
        front_actual = back_actual = ZERO
    return QualificationResult(
        loan_amount=terms.principal,
        breakdown=breakdown,
        required_monthly_income=income,
        required_annual_income=income * TWELVE,
        front_end_ratio_percent=front_actual,
        back_end_ratio_percent=back_actual,
        max_monthly_debt_allowance=income * back / HUNDRED - housing,
        down_payment_percent=down_payment / home_value * HUNDRED,
        ltv_percent=terms.principal / home_value * HUNDRED,
    )
