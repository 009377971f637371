"""Housing cost helpers shared by the calculators.

Down payment amount and percentage are two views of the same number. The
collaborators let users edit either one, so the derivation is made explicit
here: :func:`resolve_down_payment` takes whichever is given, and when both
are given the amount is the source of truth and the percentage is derived
from it.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional, Tuple

from .data_models import HousingCosts, LoanTerms, MonthlyCostBreakdown
from .engine import annuity_payment
from .utils import InvalidParameterError, periodic_rate, require_non_negative

# PMI applies while the loan exceeds this share of the home value.
PMI_LTV_THRESHOLD_PERCENT = Decimal("80")

HUNDRED = Decimal(100)
TWELVE = Decimal(12)
ZERO = Decimal("0")


def down_payment_from_percent(price: Decimal, percent: Decimal) -> Decimal:
    return require_non_negative(price, "price") * require_non_negative(percent, "percent") / HUNDRED


def down_payment_percent(price: Decimal, amount: Decimal) -> Decimal:
    price = require_non_negative(price, "price")
    if price == 0:
        return ZERO
    return require_non_negative(amount, "amount") / price * HUNDRED


def resolve_down_payment(
    price: Decimal, amount: Optional[Decimal] = None, percent: Optional[Decimal] = None
) -> Tuple[Decimal, Decimal]:
    """Return ``(amount, percent)`` for a down payment.

    The amount wins when both are supplied; a missing value is derived from
    the other. Neither supplied means no down payment.
    """
    price = require_non_negative(price, "price")
    if amount is not None:
        amount = require_non_negative(amount, "down_payment")
        if amount > price:
            raise InvalidParameterError("Down payment cannot exceed the home price")
        return amount, down_payment_percent(price, amount)
    if percent is not None:
        percent = require_non_negative(percent, "down_payment_percent")
        if percent > HUNDRED:
            raise InvalidParameterError("Down payment percent cannot exceed 100")
        return down_payment_from_percent(price, percent), percent
    return ZERO, ZERO


def ltv_percent(loan_amount: Decimal, value: Decimal) -> Decimal:
    if value <= 0:
        return ZERO
    return loan_amount / value * HUNDRED


def requires_pmi(loan_amount: Decimal, value: Decimal) -> bool:
    return ltv_percent(loan_amount, value) > PMI_LTV_THRESHOLD_PERCENT


def monthly_pmi(loan_amount: Decimal, pmi_rate_percent: Decimal) -> Decimal:
    return loan_amount * pmi_rate_percent / HUNDRED / TWELVE


def quoted_monthly_pmi(loan_amount: Decimal, costs: HousingCosts) -> Decimal:
    """Monthly PMI from a flat annual premium, else from the quoted rate."""
    if costs.pmi_annual > 0:
        return costs.pmi_annual / TWELVE
    return monthly_pmi(loan_amount, costs.pmi_rate_percent)


def monthly_cost_breakdown(price: Decimal, terms: LoanTerms, costs: HousingCosts) -> MonthlyCostBreakdown:
    """Monthly P&I plus tax, insurance, HOA and PMI for a purchase.

    PMI is only charged when the loan exceeds 80 % of ``price``.
    """
    principal_and_interest = annuity_payment(
        terms.principal, periodic_rate(terms.annual_rate_percent, 12), terms.term_months
    )
    pmi = ZERO
    if requires_pmi(terms.principal, price):
        pmi = quoted_monthly_pmi(terms.principal, costs)
    return MonthlyCostBreakdown(
        principal_and_interest=principal_and_interest,
        property_tax=costs.property_tax_annual / TWELVE,
        insurance=costs.insurance_annual / TWELVE,
        hoa=costs.hoa_monthly,
        pmi=pmi,
    )


def va_funding_fee_rate(
    first_time_use: bool,
    down_payment_percent_value: Decimal,
    reserves: bool = False,
    disability_exempt: bool = False,
) -> Decimal:
    """VA funding fee as a percentage of the base loan amount.

    Veterans receiving disability compensation are exempt. Larger down
    payments lower the fee; first-time use without a down payment costs
    2.15 % (3.3 % on subsequent use). Reserves pay 2.4 % on first use.
    """
    if disability_exempt:
        return ZERO
    down = require_non_negative(down_payment_percent_value, "down_payment_percent")
    if down >= 10:
        return Decimal("1.25")
    if down >= 5:
        return Decimal("1.5")
    if first_time_use:
        return Decimal("2.4") if reserves else Decimal("2.15")
    return Decimal("3.3")


def va_loan_amount(base_loan: Decimal, fee_rate_percent: Decimal, finance_fee: bool = True) -> Tuple[Decimal, Decimal]:
    """Return ``(funding_fee, total_loan)``; the fee is added to the loan when financed."""
    fee = require_non_negative(base_loan, "base_loan") * fee_rate_percent / HUNDRED
    return fee, base_loan + fee if finance_fee else base_loan
