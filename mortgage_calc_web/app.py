import logging
import os

from flask import Flask, jsonify, request

from mortgage_calc.affordability import (
    HousingCostModel,
    affordability_from_budget,
    affordability_from_income,
    required_income,
)
from mortgage_calc.comparison import analyze_refinance, compare_biweekly, compare_extra_payments
from mortgage_calc.costs import resolve_down_payment
from mortgage_calc.data_models import (
    Debt,
    HousingCosts,
    LoanOffer,
    LoanTerms,
    RateAdjustmentPolicy,
    RefinanceQuery,
    RentVsBuyQuery,
)
from mortgage_calc.engine import generate_schedule, summarize
from mortgage_calc.formatter import to_jsonable
from mortgage_calc.policies import build_policy
from mortgage_calc.scenarios import (
    analyze_arm,
    analyze_cash_out,
    analyze_debt_consolidation,
    analyze_piggyback,
    analyze_rent_vs_buy,
)
from mortgage_calc.utils import InvalidParameterError, parse_year_month, period_date

app = Flask(__name__)
app.secret_key = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
app.config["LOG_LEVEL"] = os.environ.get("MORTGAGE_CALC_LOG_LEVEL", "INFO").upper()
app.config["SCHEDULE_PREVIEW"] = int(os.environ.get("MORTGAGE_CALC_SCHEDULE_PREVIEW", "120"))
app.config["SEARCH_METHOD"] = os.environ.get("MORTGAGE_CALC_SEARCH_METHOD", "scan")
app.logger.setLevel(getattr(logging, app.config["LOG_LEVEL"], logging.INFO))


def _payload() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidParameterError("Request body must be a JSON object")
    return data


def _require(data: dict, name: str):
    value = data.get(name)
    if value is None or value == "":
        raise InvalidParameterError(f"Missing required field: {name}")
    return value


def _flag(data: dict, name: str) -> bool:
    value = data.get(name)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise InvalidParameterError(f"{name} must be true or false, got {value!r}")
    return value


def _loan_terms(data: dict) -> LoanTerms:
    return LoanTerms(
        _require(data, "principal"),
        _require(data, "annual_rate_percent"),
        data.get("term_months", 360),
    )


def _arm_adjustment(data: dict, rate) -> RateAdjustmentPolicy:
    return RateAdjustmentPolicy(
        initial_rate_percent=rate,
        fixed_period_months=data.get("fixed_period_months", 60),
        first_adjustment_delta_percent=data.get("first_adjustment_delta_percent", 1),
        subsequent_adjustment_delta_percent=data.get("subsequent_adjustment_delta_percent", "0.25"),
        adjustment_interval_months=data.get("adjustment_interval_months", 12),
        lifetime_cap_percent=data.get("lifetime_cap_percent", 5),
    )


def _loan_offer(data: dict) -> LoanOffer:
    if not isinstance(data, dict):
        raise InvalidParameterError("Loan offers must be JSON objects")
    return LoanOffer(
        annual_rate_percent=_require(data, "annual_rate_percent"),
        term_months=data.get("term_months", 360),
        discount_points_percent=data.get("discount_points_percent", 0),
        closing_costs=data.get("closing_costs", 0),
    )


def _cost_model(data: dict) -> HousingCostModel:
    return HousingCostModel(
        annual_rate_percent=_require(data, "annual_rate_percent"),
        term_months=data.get("term_months", 360),
        down_payment_percent=data.get("down_payment_percent", 20),
        property_tax_rate_percent=data.get("property_tax_rate_percent", 0),
        insurance_rate_percent=data.get("insurance_rate_percent", 0),
        hoa_annual=data.get("hoa_annual", 0),
        pmi_rate_percent=data.get("pmi_rate_percent", 0),
    )


def _serialize_schedule(entries, start_date=None, periods_per_year: int = 12):
    """Convert schedule entries into JSON-serialisable dictionaries for charts."""
    serialized = []
    for entry in entries:
        row = to_jsonable(entry)
        when = period_date(start_date, entry.period, periods_per_year)
        if when is not None:
            row["date"] = when.isoformat()
        serialized.append(row)
    return serialized


@app.errorhandler(InvalidParameterError)
def handle_invalid_parameter(exc):
    app.logger.info("Rejected request to %s: %s", request.path, exc)
    return jsonify({"error": str(exc)}), 400


@app.post("/api/payment")
def payment():
    terms = _loan_terms(_payload())
    policy = build_policy("fixed", terms)
    return jsonify({"monthly_payment": to_jsonable(policy.payment), "terms": to_jsonable(terms)})


@app.post("/api/schedule")
def schedule():
    data = _payload()
    terms = _loan_terms(data)
    kind = data.get("policy", "fixed")
    if isinstance(kind, str):
        kind = kind.lower()
    options = {}
    if kind == "arm":
        adjustment = _arm_adjustment(data, terms.annual_rate_percent)
        options = {
            "fixed_period_months": adjustment.fixed_period_months,
            "first_adjustment_delta_percent": adjustment.first_adjustment_delta_percent,
            "subsequent_adjustment_delta_percent": adjustment.subsequent_adjustment_delta_percent,
            "adjustment_interval_months": adjustment.adjustment_interval_months,
            "lifetime_cap_percent": adjustment.lifetime_cap_percent,
        }
    elif kind == "extra":
        options = {
            "monthly_extra": data.get("monthly_extra", 0),
            "initial_extra": data.get("initial_extra", 0),
        }
    policy = build_policy(kind, terms, **options)
    start_date = None
    if data.get("start_date"):
        try:
            start_date = parse_year_month(data["start_date"])
        except ValueError as exc:
            raise InvalidParameterError(str(exc)) from exc

    result = generate_schedule(terms.principal, policy)
    entries = result.entries
    preview = app.config["SCHEDULE_PREVIEW"]
    show_full = _flag(data, "show_full_schedule")
    body = {
        "policy": kind,
        "status": result.status.value,
        "stalled_period": result.stalled_period,
        "summary": to_jsonable(summarize(result)),
        "schedule": _serialize_schedule(
            entries if show_full else entries[:preview], start_date, result.periods_per_year
        ),
    }
    if not show_full and len(entries) > preview:
        body["truncated"] = len(entries) - preview
    return jsonify(body)


@app.post("/api/compare/biweekly")
def compare_biweekly_route():
    data = _payload()
    result = compare_biweekly(
        _loan_terms(data),
        data.get("federal_tax_rate_percent", 0),
        data.get("state_tax_rate_percent", 0),
    )
    return jsonify(to_jsonable(result))


@app.post("/api/compare/extra")
def compare_extra_route():
    data = _payload()
    result = compare_extra_payments(
        _loan_terms(data),
        initial_extra=data.get("initial_extra", 0),
        monthly_extra=data.get("monthly_extra", 0),
    )
    return jsonify(to_jsonable(result))


@app.post("/api/refinance")
def refinance():
    data = _payload()
    query = RefinanceQuery(
        original=_loan_terms(data),
        months_already_paid=data.get("months_already_paid", 0),
        new_rate_percent=_require(data, "new_rate_percent"),
        new_term_months=data.get("new_term_months", 360),
        horizon_months=data.get("horizon_months", 60),
        discount_points_percent=data.get("discount_points_percent", 0),
        origination_fee_percent=data.get("origination_fee_percent", 0),
        other_closing_costs=data.get("other_closing_costs", 0),
        federal_tax_rate_percent=data.get("federal_tax_rate_percent", 0),
        state_tax_rate_percent=data.get("state_tax_rate_percent", 0),
    )
    return jsonify(to_jsonable(analyze_refinance(query)))


@app.post("/api/arm")
def arm():
    data = _payload()
    terms = _loan_terms(data)
    outlook = analyze_arm(terms, _arm_adjustment(data, terms.annual_rate_percent))
    return jsonify(
        {
            "initial_payment": to_jsonable(outlook.initial_payment),
            "balance_after_fixed_period": to_jsonable(outlook.balance_after_fixed_period),
            "ceiling_rate_percent": to_jsonable(outlook.ceiling_rate_percent),
            "worst_case_payment": to_jsonable(outlook.worst_case_payment),
            "expected": to_jsonable(outlook.expected),
            "rate_path": [
                {"period": period, "rate_percent": to_jsonable(rate), "payment": to_jsonable(amount)}
                for period, rate, amount in outlook.rate_path
            ],
        }
    )


@app.post("/api/affordability")
def affordability():
    data = _payload()
    model = _cost_model(data)
    method = data.get("method", app.config["SEARCH_METHOD"])
    if data.get("monthly_budget") is not None:
        result = affordability_from_budget(data["monthly_budget"], model, method)
    else:
        result = affordability_from_income(
            _require(data, "annual_income"),
            data.get("monthly_debts", 0),
            model,
            str(data.get("dti_rule", "28/36")),
            method,
        )
    body = to_jsonable(result)
    body["resulting_monthly_cost"] = to_jsonable(result.resulting_monthly_cost)
    return jsonify(body)


@app.post("/api/qualification")
def qualification():
    data = _payload()
    home_value = _require(data, "home_value")
    down_amount, _ = resolve_down_payment(
        home_value, data.get("down_payment"), data.get("down_payment_percent")
    )
    result = required_income(
        home_value,
        down_amount,
        _require(data, "annual_rate_percent"),
        data.get("term_months", 360),
        HousingCosts(
            property_tax_annual=data.get("property_tax_annual", 0),
            insurance_annual=data.get("insurance_annual", 0),
            hoa_monthly=data.get("hoa_monthly", 0),
            pmi_rate_percent=data.get("pmi_rate_percent", 0),
            pmi_annual=data.get("pmi_annual", 0),
        ),
        monthly_debts=data.get("monthly_debts", 0),
        front_end_ratio_percent=data.get("front_end_ratio_percent", 28),
        back_end_ratio_percent=data.get("back_end_ratio_percent", 36),
    )
    return jsonify(to_jsonable(result))


@app.post("/api/rent-vs-buy")
def rent_vs_buy():
    data = _payload()
    query = RentVsBuyQuery(
        monthly_rent=_require(data, "monthly_rent"),
        annual_rent_increase_percent=data.get("annual_rent_increase_percent", 3),
        home_price=_require(data, "home_price"),
        annual_appreciation_percent=data.get("annual_appreciation_percent", 3),
        years=data.get("years", 7),
        selling_cost_percent=data.get("selling_cost_percent", 6),
        down_payment_percent=data.get("down_payment_percent", 20),
        annual_rate_percent=_require(data, "annual_rate_percent"),
        term_months=data.get("term_months", 360),
        pmi_rate_percent=data.get("pmi_rate_percent", 0),
        property_tax_rate_percent=data.get("property_tax_rate_percent", 0),
        insurance_rate_percent=data.get("insurance_rate_percent", 0),
        annual_maintenance=data.get("annual_maintenance", 0),
        income_tax_rate_percent=data.get("income_tax_rate_percent", 0),
    )
    return jsonify(to_jsonable(analyze_rent_vs_buy(query)))


@app.post("/api/debt-consolidation")
def debt_consolidation():
    data = _payload()
    raw_debts = _require(data, "debts")
    if not isinstance(raw_debts, list):
        raise InvalidParameterError("debts must be a list")
    if not all(isinstance(item, dict) for item in raw_debts):
        raise InvalidParameterError("Each debt must be a JSON object")
    debts = [
        Debt(
            name=str(item.get("name", f"Debt {index}")),
            balance=_require(item, "balance"),
            annual_rate_percent=_require(item, "annual_rate_percent"),
            monthly_payment=_require(item, "monthly_payment"),
        )
        for index, item in enumerate(raw_debts, start=1)
    ]
    result = analyze_debt_consolidation(
        debts,
        _require(data, "heloc_rate_percent"),
        data.get("heloc_term_months", 120),
        heloc_closing_costs=data.get("heloc_closing_costs", 0),
        federal_tax_rate_percent=data.get("federal_tax_rate_percent", 0),
    )
    return jsonify(to_jsonable(result))


@app.post("/api/piggyback")
def piggyback():
    data = _payload()
    result = analyze_piggyback(
        _require(data, "home_value"),
        _require(data, "down_payment"),
        single=_loan_offer(_require(data, "single_loan")),
        pmi_rate_percent=data.get("pmi_rate_percent", 0),
        first=_loan_offer(_require(data, "first_mortgage")),
        second=_loan_offer(_require(data, "second_mortgage")),
    )
    return jsonify(to_jsonable(result))


@app.post("/api/cash-out")
def cash_out():
    data = _payload()
    result = analyze_cash_out(
        _require(data, "home_value"),
        _require(data, "current_balance"),
        _require(data, "annual_rate_percent"),
        data.get("term_months", 360),
        _require(data, "desired_cash_out"),
        refinance_fees=data.get("refinance_fees", 0),
        roll_fees_into_loan=_flag(data, "roll_fees_into_loan"),
    )
    return jsonify(to_jsonable(result))


if __name__ == "__main__":
    print("Starting Mortgage Calculator API...")
    app.run(host="0.0.0.0", port=8710, debug=True)
