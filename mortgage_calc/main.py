"""Command‑line interface for the mortgage calculator.

This module uses the ``click`` library to implement a multi‑command
interface. Users can compute payments and amortization schedules, compare
bi-weekly or extra-principal strategies against the standard schedule,
evaluate a refinance or an adjustable-rate loan, search for the most
expensive affordable home and weigh renting against buying. Schedules can be
printed to the terminal or exported to JSON/CSV files.
"""

from __future__ import annotations

import csv
import json
import logging
from decimal import Decimal
from pathlib import Path
from typing import Optional, Sequence

import click

from .affordability import (
    DTI_RULES,
    SEARCH_METHODS,
    HousingCostModel,
    affordability_from_budget,
    affordability_from_income,
)
from .comparison import analyze_refinance, compare_biweekly, compare_extra_payments
from .data_models import (
    LoanTerms,
    PaymentScheduleEntry,
    RateAdjustmentPolicy,
    Recommendation,
    RefinanceQuery,
    RentVsBuyQuery,
    ScheduleSummary,
)
from .engine import generate_schedule, summarize
from .formatter import print_comparison, print_schedule, print_summary, to_jsonable
from .policies import build_policy
from .scenarios import analyze_arm, analyze_rent_vs_buy
from .utils import InvalidParameterError, parse_year_month, period_date, to_decimal

MAX_PREVIEW_ROWS = 120


def parse_amount(value: str) -> Decimal:
    """Parse a numeric string with optional suffixes.

    Accepts plain numbers ("500000"), thousands separators ("500,000") and
    shorthand with ``k``/``m`` suffixes (e.g., "500k" meaning 500_000).
    """
    value = value.strip().lower()
    value = value.replace(",", "")
    factor = Decimal(1)
    if value.endswith("k"):
        factor = Decimal(1_000)
        value = value[:-1]
    elif value.endswith("m"):
        factor = Decimal(1_000_000)
        value = value[:-1]
    try:
        return to_decimal(value, "amount") * factor
    except InvalidParameterError:
        raise click.BadParameter(f"Invalid amount: {value}")


def parse_percent(value: str) -> Decimal:
    """Parse a percentage string (e.g. "6.5" or "6.5%") into percent units."""
    value = value.strip()
    if value.endswith("%"):
        value = value[:-1]
    try:
        return to_decimal(value, "percent")
    except InvalidParameterError:
        raise click.BadParameter(f"Invalid percentage: {value}")


def _amount(ctx, param, value):
    if value is None:
        return None
    return parse_amount(value)


def _percent(ctx, param, value):
    if value is None:
        return None
    return parse_percent(value)


def _start_date(ctx, param, value):
    if not value:
        return None
    try:
        return parse_year_month(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc))


def _loan_terms(principal: Decimal, rate: Decimal, term: int) -> LoanTerms:
    try:
        return LoanTerms(principal, rate, term)
    except InvalidParameterError as exc:
        raise click.BadParameter(str(exc))


def loan_options(func):
    """Attach the principal/rate/term options every loan command shares."""
    func = click.option("--term", "-t", "term", type=int, default=360, show_default=True, help="Loan term in months")(func)
    func = click.option(
        "--rate", "-r", "rate", required=True, callback=_percent, help="Annual interest rate (percent)"
    )(func)
    func = click.option("--principal", "-p", "principal", required=True, callback=_amount, help="Loan amount")(func)
    return func


def arm_options(func):
    """Attach the adjustable-rate options shared by ``schedule`` and ``arm``."""
    options = [
        click.option("--fixed-months", "fixed_months", type=int, default=60, show_default=True, help="Months before the first adjustment"),
        click.option("--first-adjustment", "first_adjustment", default="1", callback=_percent, show_default=True, help="Rate change at the first adjustment (percent)"),
        click.option("--subsequent-adjustment", "subsequent_adjustment", default="0.25", callback=_percent, show_default=True, help="Rate change at later adjustments (percent)"),
        click.option("--adjustment-interval", "adjustment_interval", type=int, default=12, show_default=True, help="Months between adjustments"),
        click.option("--lifetime-cap", "lifetime_cap", default="5", callback=_percent, show_default=True, help="Maximum increase over the initial rate (percent)"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def export_to_json(path: Path, schedule: Sequence[PaymentScheduleEntry], summary: ScheduleSummary) -> None:
    """Export schedule and summary to a JSON file."""
    data = {"summary": to_jsonable(summary), "schedule": to_jsonable(list(schedule))}
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def export_to_csv(path: Path, schedule: Sequence[PaymentScheduleEntry], start_date=None, periods_per_year: int = 12) -> None:
    """Export schedule to a CSV file."""
    header = [
        "Period",
        "Date",
        "Rate",
        "Beginning_Balance",
        "Payment",
        "Principal",
        "Interest",
        "Extra_Principal",
        "Ending_Balance",
    ]
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for e in schedule:
            when = period_date(start_date, e.period, periods_per_year)
            writer.writerow(
                [
                    e.period,
                    when.isoformat() if when else "",
                    float(e.rate_used_percent),
                    float(e.beginning_balance),
                    float(e.total_payment),
                    float(e.principal_portion),
                    float(e.interest_portion),
                    float(e.extra_principal),
                    float(e.ending_balance),
                ]
            )


@click.group()
@click.option(
    "--log-level",
    "log_level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    help="Logging verbosity",
)
def cli(log_level: str) -> None:
    """A command‑line mortgage calculator for payments, schedules and scenarios."""
    logging.basicConfig(level=getattr(logging, log_level.upper()), format="%(levelname)s %(name)s: %(message)s")


@cli.command()
@loan_options
def payment(principal: Decimal, rate: Decimal, term: int) -> None:
    """Print the level monthly payment for a fixed-rate loan."""
    terms = _loan_terms(principal, rate, term)
    policy = build_policy("fixed", terms)
    click.echo(f"Monthly payment: {policy.payment:.2f}")


@cli.command()
@loan_options
@click.option(
    "--policy",
    "policy_kind",
    type=click.Choice(["fixed", "arm", "biweekly", "extra"]),
    default="fixed",
    show_default=True,
    help="Payment policy",
)
@arm_options
@click.option("--monthly-extra", "monthly_extra", default="0", callback=_amount, help="Extra principal every month (extra policy)")
@click.option("--initial-extra", "initial_extra", default="0", callback=_amount, help="One-time extra principal before the first payment (extra policy)")
@click.option("--start-date", "-s", "start_date", callback=_start_date, help="First payment date (YYYY-MM)")
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def schedule(
    principal: Decimal,
    rate: Decimal,
    term: int,
    policy_kind: str,
    fixed_months: int,
    first_adjustment: Decimal,
    subsequent_adjustment: Decimal,
    adjustment_interval: int,
    lifetime_cap: Decimal,
    monthly_extra: Decimal,
    initial_extra: Decimal,
    start_date,
    output: Optional[str],
) -> None:
    """Compute and print the full amortization schedule."""
    terms = _loan_terms(principal, rate, term)
    try:
        policy = build_policy(
            policy_kind,
            terms,
            fixed_period_months=fixed_months,
            first_adjustment_delta_percent=first_adjustment,
            subsequent_adjustment_delta_percent=subsequent_adjustment,
            adjustment_interval_months=adjustment_interval,
            lifetime_cap_percent=lifetime_cap,
            monthly_extra=monthly_extra,
            initial_extra=initial_extra,
        )
    except InvalidParameterError as exc:
        raise click.BadParameter(str(exc))
    result = generate_schedule(terms.principal, policy)
    summary = summarize(result)
    entries = result.entries
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, entries, summary)
            click.echo(f"Schedule exported to {path}")
        elif path.suffix.lower() == ".csv":
            export_to_csv(path, entries, start_date, result.periods_per_year)
            click.echo(f"Schedule exported to {path}")
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
    else:
        print_summary(summary, policy.payment if hasattr(policy, "payment") else None)
        # Limit schedule length printed to avoid flooding the terminal
        if len(entries) > MAX_PREVIEW_ROWS:
            click.echo(f"Schedule has {len(entries)} rows; showing first {MAX_PREVIEW_ROWS} rows.")
            entries = entries[:MAX_PREVIEW_ROWS]
        print_schedule(entries, start_date, result.periods_per_year)


@cli.command()
@loan_options
@click.option("--federal-tax", "federal_tax", default="0", callback=_percent, help="Federal marginal tax rate (percent)")
@click.option("--state-tax", "state_tax", default="0", callback=_percent, help="State marginal tax rate (percent)")
def biweekly(principal: Decimal, rate: Decimal, term: int, federal_tax: Decimal, state_tax: Decimal) -> None:
    """Compare monthly payments with half-payments every two weeks."""
    terms = _loan_terms(principal, rate, term)
    try:
        result = compare_biweekly(terms, federal_tax, state_tax)
    except InvalidParameterError as exc:
        raise click.BadParameter(str(exc))
    print_comparison(result, labels=("Monthly", "Bi-weekly"))


@cli.command()
@loan_options
@click.option("--monthly-extra", "monthly_extra", default="0", callback=_amount, help="Extra principal every month")
@click.option("--initial-extra", "initial_extra", default="0", callback=_amount, help="One-time extra principal up front")
def extra(principal: Decimal, rate: Decimal, term: int, monthly_extra: Decimal, initial_extra: Decimal) -> None:
    """Compare the standard schedule with extra principal payments."""
    terms = _loan_terms(principal, rate, term)
    try:
        result = compare_extra_payments(terms, initial_extra=initial_extra, monthly_extra=monthly_extra)
    except InvalidParameterError as exc:
        raise click.BadParameter(str(exc))
    print_comparison(result, labels=("Standard", "With extra"))


@cli.command()
@loan_options
@click.option("--months-paid", "months_paid", type=int, default=0, show_default=True, help="Payments already made on the current loan")
@click.option("--new-rate", "new_rate", required=True, callback=_percent, help="Rate of the new loan (percent)")
@click.option("--new-term", "new_term", type=int, default=360, show_default=True, help="Term of the new loan in months")
@click.option("--horizon", "horizon", type=int, default=60, show_default=True, help="Months until the home is sold")
@click.option("--points", "points", default="0", callback=_percent, help="Discount points (percent of the loan)")
@click.option("--origination", "origination", default="0", callback=_percent, help="Origination fee (percent of the loan)")
@click.option("--other-costs", "other_costs", default="0", callback=_amount, help="Other closing costs")
@click.option("--federal-tax", "federal_tax", default="0", callback=_percent, help="Federal marginal tax rate (percent)")
@click.option("--state-tax", "state_tax", default="0", callback=_percent, help="State marginal tax rate (percent)")
def refinance(
    principal: Decimal,
    rate: Decimal,
    term: int,
    months_paid: int,
    new_rate: Decimal,
    new_term: int,
    horizon: int,
    points: Decimal,
    origination: Decimal,
    other_costs: Decimal,
    federal_tax: Decimal,
    state_tax: Decimal,
) -> None:
    """Decide between keeping the current loan and refinancing it."""
    try:
        query = RefinanceQuery(
            original=LoanTerms(principal, rate, term),
            months_already_paid=months_paid,
            new_rate_percent=new_rate,
            new_term_months=new_term,
            horizon_months=horizon,
            discount_points_percent=points,
            origination_fee_percent=origination,
            other_closing_costs=other_costs,
            federal_tax_rate_percent=federal_tax,
            state_tax_rate_percent=state_tax,
        )
        result = analyze_refinance(query)
    except InvalidParameterError as exc:
        raise click.BadParameter(str(exc))
    click.echo(f"Remaining balance  : {result.remaining_balance:.2f}")
    click.echo(f"Current payment    : {result.original_payment:.2f}")
    click.echo(f"New payment        : {result.new_payment:.2f}")
    click.echo(f"Closing costs      : {result.closing_costs:.2f}")
    click.echo(f"Equity difference  : {result.equity_difference:.2f}")
    print_comparison(result.comparison, labels=("Keep", "Refinance"))


@cli.command()
@loan_options
@arm_options
def arm(
    principal: Decimal,
    rate: Decimal,
    term: int,
    fixed_months: int,
    first_adjustment: Decimal,
    subsequent_adjustment: Decimal,
    adjustment_interval: int,
    lifetime_cap: Decimal,
) -> None:
    """Show the payment outlook of an adjustable-rate mortgage."""
    try:
        adjustment = RateAdjustmentPolicy(
            initial_rate_percent=rate,
            fixed_period_months=fixed_months,
            first_adjustment_delta_percent=first_adjustment,
            subsequent_adjustment_delta_percent=subsequent_adjustment,
            adjustment_interval_months=adjustment_interval,
            lifetime_cap_percent=lifetime_cap,
        )
        outlook = analyze_arm(_loan_terms(principal, rate, term), adjustment)
    except InvalidParameterError as exc:
        raise click.BadParameter(str(exc))
    click.echo(f"Initial payment    : {outlook.initial_payment:.2f}")
    click.echo(f"Balance at reset   : {outlook.balance_after_fixed_period:.2f}")
    click.echo(f"Rate ceiling       : {outlook.ceiling_rate_percent:.3f}")
    click.echo(f"Worst-case payment : {outlook.worst_case_payment:.2f}")
    click.echo("Rate path")
    for period, path_rate, path_payment in outlook.rate_path:
        click.echo(f"  period {period:4d}: {path_rate:.3f}% -> {path_payment:.2f}")
    print_summary(outlook.expected)


@cli.command()
@click.option("--budget", "budget", callback=_amount, help="Monthly housing budget")
@click.option("--income", "income", callback=_amount, help="Gross annual income")
@click.option("--debts", "debts", default="0", callback=_amount, help="Other monthly debt payments")
@click.option("--dti", "dti", default="28/36", show_default=True, help=f"DTI rule ({', '.join(DTI_RULES)} or a single percentage)")
@click.option("--rate", "-r", "rate", required=True, callback=_percent, help="Annual interest rate (percent)")
@click.option("--term", "-t", "term", type=int, default=360, show_default=True, help="Loan term in months")
@click.option("--down-percent", "down_percent", default="20", callback=_percent, help="Down payment (percent of price)")
@click.option("--tax-rate", "tax_rate", default="0", callback=_percent, help="Property tax (percent of price per year)")
@click.option("--insurance-rate", "insurance_rate", default="0", callback=_percent, help="Insurance (percent of price per year)")
@click.option("--hoa", "hoa", default="0", callback=_amount, help="Annual HOA dues")
@click.option("--pmi-rate", "pmi_rate", default="0", callback=_percent, help="PMI (percent of the loan per year)")
@click.option("--method", "method", type=click.Choice(SEARCH_METHODS), default="scan", show_default=True, help="Search strategy")
def afford(
    budget: Optional[Decimal],
    income: Optional[Decimal],
    debts: Decimal,
    dti: str,
    rate: Decimal,
    term: int,
    down_percent: Decimal,
    tax_rate: Decimal,
    insurance_rate: Decimal,
    hoa: Decimal,
    pmi_rate: Decimal,
    method: str,
) -> None:
    """Find the most expensive home a budget or an income can carry."""
    if (budget is None) == (income is None):
        raise click.UsageError("Pass exactly one of --budget or --income")
    try:
        model = HousingCostModel(
            annual_rate_percent=rate,
            term_months=term,
            down_payment_percent=down_percent,
            property_tax_rate_percent=tax_rate,
            insurance_rate_percent=insurance_rate,
            hoa_annual=hoa,
            pmi_rate_percent=pmi_rate,
        )
        if budget is not None:
            result = affordability_from_budget(budget, model, method)
        else:
            result = affordability_from_income(income, debts, model, dti, method)
    except InvalidParameterError as exc:
        raise click.BadParameter(str(exc))
    if not result.affordable:
        click.echo(f"No home in the search range fits a monthly ceiling of {result.monthly_ceiling:.2f}")
        return
    click.echo(f"Monthly ceiling    : {result.monthly_ceiling:.2f}")
    click.echo(f"Maximum price      : {result.max_price:.2f}" + (" (search limit)" if result.capped else ""))
    click.echo(f"Loan amount        : {result.loan_amount:.2f}")
    click.echo(f"Down payment       : {result.down_payment:.2f}")
    click.echo(f"Monthly cost       : {result.resulting_monthly_cost:.2f}")
    b = result.breakdown
    click.echo(
        f"  P&I {b.principal_and_interest:.2f}, tax {b.property_tax:.2f}, "
        f"insurance {b.insurance:.2f}, HOA {b.hoa:.2f}, PMI {b.pmi:.2f}"
    )


@cli.command(name="rent-vs-buy")
@click.option("--rent", "rent", required=True, callback=_amount, help="Current monthly rent")
@click.option("--rent-increase", "rent_increase", default="3", callback=_percent, help="Annual rent increase (percent)")
@click.option("--price", "price", required=True, callback=_amount, help="Home price")
@click.option("--appreciation", "appreciation", default="3", callback=_percent, help="Annual home appreciation (percent)")
@click.option("--years", "years", type=int, default=7, show_default=True, help="Years until the home is sold")
@click.option("--selling-cost", "selling_cost", default="6", callback=_percent, help="Selling costs (percent of sale price)")
@click.option("--down-percent", "down_percent", default="20", callback=_percent, help="Down payment (percent of price)")
@click.option("--rate", "-r", "rate", required=True, callback=_percent, help="Annual interest rate (percent)")
@click.option("--term", "-t", "term", type=int, default=360, show_default=True, help="Loan term in months")
@click.option("--pmi-rate", "pmi_rate", default="0", callback=_percent, help="PMI (percent of the loan per year)")
@click.option("--tax-rate", "tax_rate", default="0", callback=_percent, help="Property tax (percent of price per year)")
@click.option("--insurance-rate", "insurance_rate", default="0", callback=_percent, help="Insurance (percent of price per year)")
@click.option("--maintenance", "maintenance", default="0", callback=_amount, help="Annual maintenance")
@click.option("--income-tax", "income_tax", default="0", callback=_percent, help="Marginal income tax rate (percent)")
def rent_vs_buy(
    rent: Decimal,
    rent_increase: Decimal,
    price: Decimal,
    appreciation: Decimal,
    years: int,
    selling_cost: Decimal,
    down_percent: Decimal,
    rate: Decimal,
    term: int,
    pmi_rate: Decimal,
    tax_rate: Decimal,
    insurance_rate: Decimal,
    maintenance: Decimal,
    income_tax: Decimal,
) -> None:
    """Compare renting with buying over a holding period."""
    try:
        result = analyze_rent_vs_buy(
            RentVsBuyQuery(
                monthly_rent=rent,
                annual_rent_increase_percent=rent_increase,
                home_price=price,
                annual_appreciation_percent=appreciation,
                years=years,
                selling_cost_percent=selling_cost,
                down_payment_percent=down_percent,
                annual_rate_percent=rate,
                term_months=term,
                pmi_rate_percent=pmi_rate,
                property_tax_rate_percent=tax_rate,
                insurance_rate_percent=insurance_rate,
                annual_maintenance=maintenance,
                income_tax_rate_percent=income_tax,
            )
        )
    except InvalidParameterError as exc:
        raise click.BadParameter(str(exc))
    click.echo(f"Total rent paid    : {result.total_rent_paid:.2f}")
    click.echo(f"Ownership payments : {result.total_ownership_payments:.2f}")
    click.echo(f"Interest paid      : {result.total_interest_paid:.2f}")
    click.echo(f"Tax savings        : {result.total_tax_savings:.2f}")
    click.echo(f"Home value at sale : {result.future_home_value:.2f}")
    click.echo(f"Equity gain        : {result.equity_gain:.2f}")
    click.echo(f"Net benefit of buy : {result.net_benefit_of_buying:.2f}")
    verdict = "Buy" if result.recommendation is Recommendation.ALTERNATIVE else "Rent"
    click.echo(f"Recommendation     : {verdict}")


if __name__ == "__main__":
    cli()
