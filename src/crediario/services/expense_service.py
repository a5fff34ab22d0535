from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from typing import Any, Optional

from crediario.domain.errors import ValidationError
from crediario.domain.models import Expense, ExpenseCategory, new_id
from crediario.logging_config import STORE_LOGGER
from crediario.repositories.record_store import RecordStore
from crediario.services.validators import check_fields, optional_text, require_text, to_amount, to_date

log = logging.getLogger(STORE_LOGGER)

_UPDATABLE = {"name", "category", "amount", "date", "note", "recurring"}
_IMMUTABLE = {"id"}


def _to_category(value: Any) -> ExpenseCategory:
    try:
        return ExpenseCategory(value)
    except ValueError:
        allowed = ", ".join(c.value for c in ExpenseCategory)
        raise ValidationError(f"Expense category must be one of: {allowed}.") from None


def _positive_amount(value: Any) -> float:
    amount = to_amount(value, "Amount")
    if amount <= 0:
        raise ValidationError("Amount must be > 0.")
    return amount


class ExpenseService:
    """Business expenses.

    Expenses are the single source for spending in reports: recording one does
    not create a matching outflow transaction.
    """

    def __init__(self, store: RecordStore[Expense]):
        self.store = store

    def list_expenses(self) -> list[Expense]:
        return self.store.all()

    def add_expense(
        self,
        name: str,
        category: Any,
        amount: Any,
        date: Any = None,
        note: Optional[str] = None,
        recurring: bool = False,
    ) -> Expense:
        expense = Expense(
            id=new_id(),
            name=require_text(name, "Name"),
            category=_to_category(category),
            amount=_positive_amount(amount),
            date=_today() if date in (None, "") else to_date(date, "Date"),
            note=optional_text(note),
            recurring=bool(recurring),
        )
        self.store.append(expense)
        log.info(
            "expense_added id=%s category=%s amount=%.2f date=%s",
            expense.id, expense.category.value, expense.amount, expense.date,
        )
        return expense

    def update_expense(self, expense_id: str, **changes: Any) -> None:
        expense = self.store.get(expense_id)
        if expense is None:
            log.debug("expense_update_skipped id=%s reason=not_found", expense_id)
            return
        if not changes:
            return
        check_fields(changes, _UPDATABLE, _IMMUTABLE, "Expense")

        normalized: dict = {}
        for key, value in changes.items():
            if key == "name":
                normalized[key] = require_text(value, "Name")
            elif key == "category":
                normalized[key] = _to_category(value)
            elif key == "amount":
                normalized[key] = _positive_amount(value)
            elif key == "date":
                normalized[key] = to_date(value, "Date")
            elif key == "recurring":
                normalized[key] = bool(value)
            else:
                normalized[key] = optional_text(value)

        self.store.replace(expense_id, replace(expense, **normalized))
        log.info("expense_updated id=%s fields=%s", expense_id, ",".join(sorted(changes)))

    def remove_expense(self, expense_id: str) -> None:
        if self.store.remove(expense_id):
            log.info("expense_removed id=%s", expense_id)
        else:
            log.debug("expense_remove_skipped id=%s reason=not_found", expense_id)


def _today() -> date:
    return date.today()
