"""Simple daily interest on overdue store credit.

Interest grows linearly with whole calendar days past the due date and never
compounds:

    interest = principal * (daily_rate_percent / 100) * days_late

A ``datetime`` passed as ``as_of`` is reduced to its calendar date, so a debt
due today only starts accruing tomorrow.
"""
from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from crediario.domain.models import Customer


def as_calendar_date(as_of: date | datetime | None = None) -> date:
    if as_of is None:
        return date.today()
    if isinstance(as_of, datetime):
        return as_of.date()
    return as_of


def is_overdue(due_date: date, as_of: date | datetime | None = None) -> bool:
    return as_calendar_date(as_of) > due_date


def days_late(due_date: date, as_of: date | datetime | None = None) -> int:
    delta = (as_calendar_date(as_of) - due_date).days
    return delta if delta > 0 else 0


def compute_interest(customer: "Customer", as_of: Optional[date | datetime] = None) -> float:
    late = days_late(customer.due_date, as_of)
    if late == 0:
        return 0.0
    return float(customer.debt_amount) * (float(customer.daily_interest_rate) / 100) * late


def compute_total_owed(customer: "Customer", as_of: Optional[date | datetime] = None) -> float:
    return float(customer.debt_amount) + compute_interest(customer, as_of)
