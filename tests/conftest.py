from decimal import Decimal

import pytest

from mortgage_calc.data_models import LoanTerms, RateAdjustmentPolicy


@pytest.fixture
def standard_terms():
    """$320,000 at 6.5 % over 30 years."""
    return LoanTerms(Decimal("320000"), Decimal("6.5"), 360)


@pytest.fixture
def arm_adjustment():
    return RateAdjustmentPolicy(
        initial_rate_percent=Decimal("6.5"),
        fixed_period_months=60,
        first_adjustment_delta_percent=Decimal("1"),
        subsequent_adjustment_delta_percent=Decimal("0.25"),
        adjustment_interval_months=12,
        lifetime_cap_percent=Decimal("5"),
    )
