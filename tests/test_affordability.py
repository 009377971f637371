from decimal import Decimal

import pytest

from mortgage_calc.affordability import (
    SEARCH_CEILING,
    SEARCH_STEP,
    HousingCostModel,
    affordability_from_budget,
    affordability_from_income,
    dti_limits,
    housing_payment_ceiling,
    max_affordable_price,
    required_income,
)
from mortgage_calc.data_models import HousingCosts
from mortgage_calc.utils import InvalidParameterError


@pytest.fixture
def model():
    return HousingCostModel(
        annual_rate_percent=Decimal("6.5"),
        term_months=360,
        down_payment_percent=Decimal("10"),
        property_tax_rate_percent=Decimal("1.2"),
        insurance_rate_percent=Decimal("0.35"),
        hoa_annual=Decimal("1200"),
        pmi_rate_percent=Decimal("0.5"),
    )


class TestHousingCostModel:
    def test_breakdown_components(self, model):
        breakdown = model.breakdown(Decimal("300000"))
        assert breakdown.property_tax == Decimal("300")
        assert breakdown.hoa == Decimal("100")
        assert breakdown.pmi == Decimal("112.5")
        assert model(Decimal("300000")) == breakdown.total

    def test_no_pmi_at_twenty_percent_down(self):
        model = HousingCostModel(Decimal("6"), 360, down_payment_percent=Decimal("20"), pmi_rate_percent=Decimal("0.5"))
        assert model.breakdown(Decimal("300000")).pmi == 0

    def test_rejects_down_payment_over_hundred(self):
        with pytest.raises(InvalidParameterError):
            HousingCostModel(Decimal("6"), 360, down_payment_percent=Decimal("101"))


class TestMaxAffordablePrice:
    def test_result_is_the_last_affordable_step(self, model):
        price, affordable, capped = max_affordable_price(Decimal("3000"), model)
        assert affordable and not capped
        assert model(price) <= Decimal("3000")
        assert model(price + SEARCH_STEP) > Decimal("3000")

    def test_monotone_in_budget(self, model):
        low, _, _ = max_affordable_price(Decimal("2000"), model, method="bisect")
        high, _, _ = max_affordable_price(Decimal("4000"), model, method="bisect")
        assert high > low

    @pytest.mark.parametrize("budget", ["850", "2500", "6100"])
    def test_bisect_matches_scan(self, model, budget):
        assert max_affordable_price(Decimal(budget), model, "scan") == max_affordable_price(
            Decimal(budget), model, "bisect"
        )

    def test_unaffordable_floor(self, model):
        assert max_affordable_price(Decimal("10"), model) == (Decimal("0"), False, False)

    def test_ceiling_is_capped(self, model):
        price, affordable, capped = max_affordable_price(Decimal("10000000"), model, "bisect")
        assert price == SEARCH_CEILING
        assert affordable and capped

    def test_unknown_method(self, model):
        with pytest.raises(InvalidParameterError):
            max_affordable_price(Decimal("3000"), model, "newton")


def test_affordability_from_budget(model):
    result = affordability_from_budget(Decimal("3000"), model, "bisect")
    assert result.affordable
    assert result.down_payment == result.max_price * Decimal("0.1")
    assert result.loan_amount + result.down_payment == result.max_price
    assert result.resulting_monthly_cost <= Decimal("3000")


def test_unaffordable_budget_has_zero_price(model):
    result = affordability_from_budget(Decimal("5"), model)
    assert result.affordable is False
    assert result.max_price == 0
    assert result.loan_amount == 0


class TestDebtToIncome:
    def test_named_rules(self):
        assert dti_limits("28/36") == (Decimal("28"), Decimal("36"))
        assert dti_limits("31/43") == (Decimal("31"), Decimal("43"))
        assert dti_limits("41") == (Decimal("41"), Decimal("41"))

    def test_custom_limit(self):
        assert dti_limits("45%") == (Decimal("45"), Decimal("45"))

    @pytest.mark.parametrize("rule", ["abc", "0", "150"])
    def test_invalid_rules(self, rule):
        with pytest.raises(InvalidParameterError):
            dti_limits(rule)

    def test_front_end_binds(self):
        assert housing_payment_ceiling(Decimal("10000"), Decimal("500")) == Decimal("2800")

    def test_back_end_binds(self):
        assert housing_payment_ceiling(Decimal("10000"), Decimal("1000")) == Decimal("2600")

    def test_ceiling_never_negative(self):
        assert housing_payment_ceiling(Decimal("1000"), Decimal("5000")) == 0

    def test_income_search_uses_ceiling(self, model):
        by_income = affordability_from_income(Decimal("120000"), Decimal("500"), model, "28/36", "bisect")
        by_budget = affordability_from_budget(Decimal("2800"), model, "bisect")
        assert by_income.max_price == by_budget.max_price


class TestRequiredIncome:
    def test_front_end_ratio_decides_without_debts(self):
        result = required_income(Decimal("400000"), Decimal("80000"), Decimal("6.5"), 360, HousingCosts())
        assert result.loan_amount == Decimal("320000")
        assert result.required_monthly_income == result.breakdown.total / Decimal("0.28")
        assert result.required_annual_income == result.required_monthly_income * 12
        assert abs(result.front_end_ratio_percent - Decimal("28")) < Decimal("0.000001")
        assert result.ltv_percent == Decimal("80")
        assert result.down_payment_percent == Decimal("20")

    def test_back_end_ratio_decides_with_debts(self):
        result = required_income(
            Decimal("400000"),
            Decimal("80000"),
            Decimal("6.5"),
            360,
            HousingCosts(property_tax_annual=Decimal("4800"), insurance_annual=Decimal("1200")),
            monthly_debts=Decimal("2000"),
        )
        assert result.breakdown.property_tax == Decimal("400")
        assert abs(result.back_end_ratio_percent - Decimal("36")) < Decimal("0.000001")
        assert result.front_end_ratio_percent < Decimal("28")

    def test_flat_annual_pmi_is_spread_monthly(self):
        # 20 % down, so an LTV-based rule would charge nothing
        costs = HousingCosts(pmi_annual=Decimal("1200"))
        result = required_income(Decimal("400000"), Decimal("80000"), Decimal("6.5"), 360, costs)
        assert result.breakdown.pmi == Decimal("100")
        without = required_income(Decimal("400000"), Decimal("80000"), Decimal("6.5"), 360, HousingCosts())
        assert abs(result.breakdown.total - without.breakdown.total - Decimal("100")) < Decimal("0.000001")

    def test_down_payment_cannot_exceed_value(self):
        with pytest.raises(InvalidParameterError):
            required_income(Decimal("100000"), Decimal("150000"), Decimal("6"), 360, HousingCosts())
