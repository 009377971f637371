"""Output helpers for the mortgage calculator.

This module provides simple functions to render amortization schedules,
summaries and comparisons in a tabular text format. The engine keeps full
``Decimal`` precision; amounts are rounded to cents only here, at the edge.
"""

from __future__ import annotations

from dataclasses import fields, is_dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Iterable, Optional

from .data_models import (
    ComparisonResult,
    MonthlyCostBreakdown,
    PaymentScheduleEntry,
    Recommendation,
    ScheduleStatus,
    ScheduleSummary,
)
from .utils import period_date

STATUS_LABELS = {
    ScheduleStatus.COMPLETE: "paid off",
    ScheduleStatus.NON_AMORTIZING: "payment does not cover interest",
    ScheduleStatus.INCOMPLETE: "balance remaining",
}


def _years_months(months: int) -> str:
    years, rest = divmod(months, 12)
    return f"{years} yrs {rest} mo" if rest else f"{years} yrs"


def print_summary(summary: ScheduleSummary, payment: Optional[Decimal] = None) -> None:
    """Print a summary of loan metrics in a human‑readable format."""
    print("Summary")
    print("-" * 72)
    if payment is not None:
        print(f"Scheduled payment  : {payment:.2f}")
    print(f"Total paid         : {summary.total_paid:.2f}")
    print(f"Total interest     : {summary.total_interest:.2f}")
    print(f"Payments made      : {summary.total_periods}")
    print(f"Time to payoff     : {_years_months(summary.months_elapsed)}")
    print(f"Status             : {STATUS_LABELS[summary.status]}")
    if summary.status is not ScheduleStatus.COMPLETE:
        print(f"Balance remaining  : {summary.ending_balance:.2f}")
    print("-" * 72)


def print_schedule(
    schedule: Iterable[PaymentScheduleEntry],
    start_date: Optional[date] = None,
    periods_per_year: int = 12,
) -> None:
    """Print the amortization schedule as a simple table.

    Parameters
    ----------
    schedule: Iterable[PaymentScheduleEntry]
        The schedule entries to print.
    start_date: date, optional
        Date of the first payment. When given, a ``Date`` column is added.
    periods_per_year: int
        Payment frequency used to date the rows.
    """
    headers = ["Period", "Rate", "Payment", "Principal", "Interest", "Extra", "EndBal"]
    if start_date is not None:
        headers.insert(1, "Date")
    print("\t".join(headers))
    for entry in schedule:
        row = [
            str(entry.period),
            f"{entry.rate_used_percent:.3f}",
            f"{entry.total_payment:.2f}",
            f"{entry.principal_portion:.2f}",
            f"{entry.interest_portion:.2f}",
            f"{entry.extra_principal:.2f}",
            f"{entry.ending_balance:.2f}",
        ]
        if start_date is not None:
            row.insert(1, period_date(start_date, entry.period, periods_per_year).isoformat())
        print("\t".join(row))


def print_comparison(result: ComparisonResult, labels=("Baseline", "Alternative")) -> None:
    """Print a comparison of two schedule summaries side by side.

    The difference column is ``alternative - baseline``; a negative value
    means the alternative is cheaper or shorter.
    """
    print("Comparison")
    print("=" * 72)
    print(f"{'Metric':20s} {labels[0]:>15s} {labels[1]:>15s} {'Difference':>15s}")
    for key in ("total_paid", "total_interest", "months_elapsed"):
        v1 = getattr(result.baseline, key)
        v2 = getattr(result.alternative, key)
        print(f"{key:20s} {v1:15.2f} {v2:15.2f} {v2 - v1:15.2f}")
    print("=" * 72)
    print(f"Interest saved     : {result.interest_saved:.2f}")
    print(f"Time saved         : {_years_months(max(result.periods_saved, 0))}")
    if result.tax_shield_loss:
        print(f"Tax shield lost    : {result.tax_shield_loss:.2f}")
    if result.one_time_costs:
        print(f"One-time costs     : {result.one_time_costs:.2f}")
        if result.break_even_period is None:
            print("Break-even         : never")
        else:
            print(f"Break-even         : month {result.break_even_period}")
    print(f"Net benefit        : {result.net_benefit:.2f}")
    print(f"Recommendation     : {labels[0] if result.recommendation is Recommendation.BASELINE else labels[1]}")


def to_jsonable(value):
    """Convert engine results into JSON-serialisable structures.

    Dataclasses become dicts (including their computed ``total``), decimals
    become floats and enums their values.
    """
    if is_dataclass(value) and not isinstance(value, type):
        data = {f.name: to_jsonable(getattr(value, f.name)) for f in fields(value)}
        if isinstance(value, MonthlyCostBreakdown):
            data["total"] = to_jsonable(value.total)
        return data
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {k: to_jsonable(v) for k, v in value.items()}
    if isinstance(value, date):
        return value.isoformat()
    return value
