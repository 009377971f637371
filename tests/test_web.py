import pytest

from mortgage_calc_web.app import app


@pytest.fixture
def client():
    app.config["TESTING"] = True
    with app.test_client() as client:
        yield client


LOAN = {"principal": 320000, "annual_rate_percent": 6.5, "term_months": 360}


def test_payment(client):
    response = client.post("/api/payment", json=LOAN)
    assert response.status_code == 200
    assert round(response.get_json()["monthly_payment"], 2) == 2022.62


def test_missing_field_is_bad_request(client):
    response = client.post("/api/payment", json={"annual_rate_percent": 6.5})
    assert response.status_code == 400
    assert "principal" in response.get_json()["error"]


def test_non_json_body(client):
    response = client.post("/api/payment", data="principal=1", content_type="text/plain")
    assert response.status_code == 400


def test_invalid_value_is_bad_request(client):
    response = client.post("/api/payment", json={**LOAN, "term_months": 0})
    assert response.status_code == 400


def test_schedule_preview_is_truncated(client):
    response = client.post("/api/schedule", json={**LOAN, "start_date": "2025-01"})
    body = response.get_json()
    assert response.status_code == 200
    assert len(body["schedule"]) == 120
    assert body["truncated"] == 240
    assert body["schedule"][0]["date"] == "2025-01-01"
    assert body["summary"]["status"] == "complete"


def test_full_schedule(client):
    response = client.post("/api/schedule", json={**LOAN, "show_full_schedule": True})
    body = response.get_json()
    assert len(body["schedule"]) == 360
    assert "truncated" not in body


def test_arm_schedule(client):
    response = client.post("/api/schedule", json={**LOAN, "policy": "arm", "fixed_period_months": 84})
    body = response.get_json()
    assert response.status_code == 200
    assert body["schedule"][84]["rate_used_percent"] == 7.5


def test_unknown_policy(client):
    response = client.post("/api/schedule", json={**LOAN, "policy": "balloon"})
    assert response.status_code == 400


def test_compare_biweekly(client):
    response = client.post("/api/compare/biweekly", json={**LOAN, "federal_tax_rate_percent": 22})
    body = response.get_json()
    assert body["recommendation"] == "alternative"
    assert body["periods_saved"] > 0


def test_compare_extra(client):
    response = client.post("/api/compare/extra", json={**LOAN, "initial_extra": 10000})
    body = response.get_json()
    assert body["interest_saved"] > 0
    assert body["alternative"]["total_paid"] < body["baseline"]["total_paid"]


def test_refinance(client):
    payload = {
        "principal": 300000,
        "annual_rate_percent": 7,
        "months_already_paid": 60,
        "new_rate_percent": 5,
        "new_term_months": 300,
        "horizon_months": 84,
    }
    body = client.post("/api/refinance", json=payload).get_json()
    assert body["comparison"]["recommendation"] == "alternative"
    assert body["new_payment"] < body["original_payment"]


def test_arm_outlook(client):
    body = client.post("/api/arm", json=LOAN).get_json()
    assert body["ceiling_rate_percent"] == 11.5
    assert body["rate_path"][1]["period"] == 61


def test_affordability_by_budget(client):
    body = client.post(
        "/api/affordability",
        json={"annual_rate_percent": 6.5, "monthly_budget": 3000, "down_payment_percent": 20, "method": "bisect"},
    ).get_json()
    assert body["affordable"] is True
    assert body["resulting_monthly_cost"] <= 3000
    assert body["breakdown"]["total"] == body["resulting_monthly_cost"]


def test_affordability_by_income(client):
    body = client.post(
        "/api/affordability",
        json={"annual_rate_percent": 6.5, "annual_income": 120000, "monthly_debts": 500, "dti_rule": "28/36"},
    ).get_json()
    assert body["monthly_ceiling"] == 2800


def test_affordability_rejects_unknown_method(client):
    response = client.post("/api/affordability", json={"annual_rate_percent": 6.5, "monthly_budget": 3000, "method": "guess"})
    assert response.status_code == 400


def test_qualification(client):
    body = client.post(
        "/api/qualification",
        json={"home_value": 400000, "down_payment_percent": 20, "annual_rate_percent": 6.5},
    ).get_json()
    assert body["loan_amount"] == 320000
    assert body["ltv_percent"] == 80


def test_rent_vs_buy(client):
    body = client.post(
        "/api/rent-vs-buy",
        json={"monthly_rent": 2000, "home_price": 400000, "annual_rate_percent": 6.5, "years": 10},
    ).get_json()
    assert body["recommendation"] in ("baseline", "alternative")
    assert body["total_rent_paid"] > 0


def test_debt_consolidation(client):
    payload = {
        "debts": [
            {"name": "card", "balance": 10000, "annual_rate_percent": 24, "monthly_payment": 100},
            {"name": "auto", "balance": 5000, "annual_rate_percent": 6, "monthly_payment": 200},
        ],
        "heloc_rate_percent": 8,
        "heloc_term_months": 120,
    }
    body = client.post("/api/debt-consolidation", json=payload).get_json()
    assert body["unpayable_debts"] == ["card"]
    assert body["total_balance"] == 15000


def test_debt_consolidation_requires_debts(client):
    response = client.post("/api/debt-consolidation", json={"debts": [], "heloc_rate_percent": 8})
    assert response.status_code == 400


def test_piggyback(client):
    offer = {"annual_rate_percent": 6.5, "term_months": 360}
    payload = {
        "home_value": 500000,
        "down_payment": 50000,
        "pmi_rate_percent": 0.6,
        "single_loan": offer,
        "first_mortgage": offer,
        "second_mortgage": {"annual_rate_percent": 8.5, "term_months": 180},
    }
    body = client.post("/api/piggyback", json=payload).get_json()
    assert body["first_mortgage"]["loan_amount"] == 400000
    assert body["second_mortgage"]["loan_amount"] == 50000


def test_cash_out(client):
    payload = {
        "home_value": 500000,
        "current_balance": 300000,
        "annual_rate_percent": 6,
        "desired_cash_out": 150000,
    }
    body = client.post("/api/cash-out", json=payload).get_json()
    assert body["cash_out"] == 100000
    assert body["combined_ltv_percent"] == 80


@pytest.mark.parametrize("months_paid", ["abc", 12.9, -1])
def test_refinance_rejects_bad_months_paid(client, months_paid):
    payload = {"principal": 300000, "annual_rate_percent": 7, "months_already_paid": months_paid, "new_rate_percent": 5}
    response = client.post("/api/refinance", json=payload)
    assert response.status_code == 400
    assert "months_already_paid" in response.get_json()["error"]


def test_non_string_policy_is_bad_request(client):
    response = client.post("/api/schedule", json={**LOAN, "policy": 5})
    assert response.status_code == 400


def test_policy_name_is_case_insensitive(client):
    response = client.post("/api/schedule", json={**LOAN, "policy": "ARM", "fixed_period_months": 84})
    assert response.status_code == 200
    assert response.get_json()["schedule"][84]["rate_used_percent"] == 7.5


@pytest.mark.parametrize("flag", ["false", 1, "yes"])
def test_cash_out_flag_must_be_boolean(client, flag):
    payload = {
        "home_value": 500000,
        "current_balance": 300000,
        "annual_rate_percent": 6,
        "desired_cash_out": 50000,
        "refinance_fees": 5000,
        "roll_fees_into_loan": flag,
    }
    response = client.post("/api/cash-out", json=payload)
    assert response.status_code == 400
    assert "roll_fees_into_loan" in response.get_json()["error"]


def test_cash_out_rolls_fees_when_asked(client):
    payload = {
        "home_value": 500000,
        "current_balance": 300000,
        "annual_rate_percent": 6,
        "desired_cash_out": 50000,
        "refinance_fees": 5000,
        "roll_fees_into_loan": True,
    }
    body = client.post("/api/cash-out", json=payload).get_json()
    assert body["new_loan_balance"] == 355000
    assert body["net_cash_out"] == 50000


def test_show_full_schedule_must_be_boolean(client):
    response = client.post("/api/schedule", json={**LOAN, "show_full_schedule": "false"})
    assert response.status_code == 400


def test_qualification_with_flat_annual_pmi(client):
    payload = {"home_value": 400000, "down_payment_percent": 20, "annual_rate_percent": 6.5, "pmi_annual": 1200}
    body = client.post("/api/qualification", json=payload).get_json()
    assert body["breakdown"]["pmi"] == 100
