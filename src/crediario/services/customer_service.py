from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime
from typing import Any, Optional

from crediario.domain.errors import DuplicateCustomerError, NotFoundError, ValidationError
from crediario.domain.models import Customer, CustomerStatus, new_id
from crediario.logging_config import STORE_LOGGER
from crediario.repositories.record_store import RecordStore
from crediario.services.validators import check_fields, optional_text, require_text, to_amount, to_date

log = logging.getLogger(STORE_LOGGER)

_UPDATABLE = {
    "name",
    "phone",
    "tax_id",
    "debt_amount",
    "due_date",
    "daily_interest_rate",
    "status",
    "address",
    "notes",
    "purchased_item",
}
_IMMUTABLE = {"id", "registered_at"}


class CustomerService:
    def __init__(self, store: RecordStore[Customer], config_service=None):
        self.store = store
        self.config = config_service

    def list_customers(self) -> list[Customer]:
        return self.store.all()

    def active_customers(self) -> list[Customer]:
        return [c for c in self.store.all() if c.is_active]

    def overdue_customers(self, as_of: date | datetime | None = None) -> list[Customer]:
        return [c for c in self.store.all() if c.is_overdue(as_of)]

    def get_customer(self, customer_id: str) -> Customer:
        customer = self.store.get(customer_id)
        if not customer:
            raise NotFoundError("Customer not found.")
        return customer

    def _default_rate(self) -> float:
        if self.config is None:
            return 2.0
        return float(self.config.get().default_daily_interest_rate)

    def add_customer(
        self,
        name: str,
        debt_amount: Any,
        due_date: Any,
        phone: str = "",
        tax_id: str = "",
        daily_interest_rate: Any = None,
        address: Optional[str] = None,
        notes: Optional[str] = None,
        purchased_item: Optional[str] = None,
    ) -> Customer:
        name = require_text(name, "Name")
        debt = to_amount(debt_amount, "Debt amount")
        if debt < 0:
            raise ValidationError("Debt amount must be >= 0.")
        due = to_date(due_date, "Due date")
        rate = self._default_rate() if daily_interest_rate in (None, "") else to_amount(daily_interest_rate, "Daily interest rate")
        if rate < 0:
            raise ValidationError("Daily interest rate must be >= 0.")
        if self.exists_by_exact_name(name):
            raise DuplicateCustomerError(f'Customer "{name}" is already registered.')

        customer = Customer(
            id=new_id(),
            name=name,
            phone=(phone or "").strip(),
            tax_id=(tax_id or "").strip(),
            debt_amount=debt,
            due_date=due,
            registered_at=datetime.now().replace(microsecond=0),
            daily_interest_rate=rate,
            status=CustomerStatus.ACTIVE,
            address=optional_text(address),
            notes=optional_text(notes),
            purchased_item=optional_text(purchased_item),
        )
        self.store.append(customer)
        log.info("customer_added id=%s name=%s debt=%.2f due=%s rate=%.2f", customer.id, name, debt, due, rate)
        return customer

    def _normalize(self, customer: Customer, changes: dict) -> dict:
        out: dict = {}
        for key, value in changes.items():
            if key == "name":
                out[key] = require_text(value, "Name")
            elif key == "debt_amount":
                out[key] = to_amount(value, "Debt amount")
                if out[key] < 0:
                    raise ValidationError("Debt amount must be >= 0.")
            elif key == "daily_interest_rate":
                out[key] = to_amount(value, "Daily interest rate")
                if out[key] < 0:
                    raise ValidationError("Daily interest rate must be >= 0.")
            elif key == "due_date":
                out[key] = to_date(value, "Due date")
            elif key == "status":
                try:
                    out[key] = CustomerStatus(value)
                except ValueError:
                    raise ValidationError("Status must be 'active' or 'paid'.") from None
            elif key in ("phone", "tax_id"):
                out[key] = (value or "").strip()
            else:
                out[key] = optional_text(value)

        name = out.get("name", customer.name)
        status = out.get("status", customer.status)
        renamed = name.lower() != customer.name.lower()
        if status is CustomerStatus.ACTIVE and (renamed or not customer.is_active):
            if self.exists_by_exact_name(name, exclude_id=customer.id):
                raise DuplicateCustomerError(f'Customer "{name}" is already registered.')
        return out

    def update_customer(self, customer_id: str, **changes: Any) -> None:
        """Shallow merge of ``changes`` onto the stored customer. Unknown ids are ignored."""
        customer = self.store.get(customer_id)
        if customer is None:
            log.debug("customer_update_skipped id=%s reason=not_found", customer_id)
            return
        if not changes:
            return
        check_fields(changes, _UPDATABLE, _IMMUTABLE, "Customer")

        updated = replace(customer, **self._normalize(customer, changes))
        self.store.replace(customer_id, updated)
        log.info("customer_updated id=%s fields=%s", customer_id, ",".join(sorted(changes)))

    def remove_customer(self, customer_id: str) -> None:
        if self.store.remove(customer_id):
            log.info("customer_removed id=%s", customer_id)
        else:
            log.debug("customer_remove_skipped id=%s reason=not_found", customer_id)

    def mark_as_paid(self, customer_id: str) -> None:
        self.update_customer(customer_id, status=CustomerStatus.PAID.value)

    def reactivate(self, customer_id: str) -> None:
        self.update_customer(customer_id, status=CustomerStatus.ACTIVE.value)

    def find_by_name(self, query: str) -> Optional[Customer]:
        """First active customer whose name contains ``query`` (case-insensitive)."""
        if not (query or "").strip():
            return None
        needle = query.lower()
        return next((c for c in self.store.all() if c.is_active and needle in c.name.lower()), None)

    def exists_by_exact_name(self, name: str, exclude_id: Optional[str] = None) -> bool:
        wanted = (name or "").strip().lower()
        return any(
            c.is_active and c.name.lower() == wanted and (not exclude_id or c.id != exclude_id)
            for c in self.store.all()
        )
