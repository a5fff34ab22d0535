from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Any, Optional

from crediario.domain.errors import ValidationError
from crediario.domain.models import Transaction, TransactionType, new_id
from crediario.logging_config import STORE_LOGGER
from crediario.repositories.record_store import RecordStore
from crediario.services.validators import check_fields, optional_text, require_text, to_amount

log = logging.getLogger(STORE_LOGGER)

_UPDATABLE = {"type", "amount", "description", "customer_id", "category"}
_IMMUTABLE = {"id", "occurred_at"}


def _to_type(value: Any) -> TransactionType:
    try:
        return TransactionType(value)
    except ValueError:
        raise ValidationError("Transaction type must be 'inflow' or 'outflow'.") from None


def _positive_amount(value: Any) -> float:
    amount = to_amount(value, "Amount")
    if amount <= 0:
        raise ValidationError("Amount must be > 0.")
    return amount


class TransactionService:
    def __init__(self, store: RecordStore[Transaction]):
        self.store = store

    def list_transactions(self) -> list[Transaction]:
        return self.store.all()

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        return self.store.get(transaction_id)

    def transactions_for_customer(self, customer_id: str) -> list[Transaction]:
        return [t for t in self.store.all() if t.customer_id == customer_id]

    def add_transaction(
        self,
        type: Any,
        amount: Any,
        description: str,
        customer_id: Optional[str] = None,
        category: Optional[str] = None,
    ) -> Transaction:
        tx = Transaction(
            id=new_id(),
            type=_to_type(type),
            amount=_positive_amount(amount),
            description=require_text(description, "Description"),
            occurred_at=datetime.now().replace(microsecond=0),
            customer_id=optional_text(customer_id),
            category=optional_text(category),
        )
        self.store.append(tx)
        log.info(
            "transaction_added id=%s type=%s amount=%.2f customer=%s",
            tx.id, tx.type.value, tx.amount, tx.customer_id,
        )
        return tx

    def update_transaction(self, transaction_id: str, **changes: Any) -> None:
        tx = self.store.get(transaction_id)
        if tx is None:
            log.debug("transaction_update_skipped id=%s reason=not_found", transaction_id)
            return
        if not changes:
            return
        check_fields(changes, _UPDATABLE, _IMMUTABLE, "Transaction")

        normalized: dict = {}
        for key, value in changes.items():
            if key == "type":
                normalized[key] = _to_type(value)
            elif key == "amount":
                normalized[key] = _positive_amount(value)
            elif key == "description":
                normalized[key] = require_text(value, "Description")
            else:
                normalized[key] = optional_text(value)

        self.store.replace(transaction_id, replace(tx, **normalized))
        log.info("transaction_updated id=%s fields=%s", transaction_id, ",".join(sorted(changes)))

    def remove_transaction(self, transaction_id: str) -> None:
        if self.store.remove(transaction_id):
            log.info("transaction_removed id=%s", transaction_id)
        else:
            log.debug("transaction_remove_skipped id=%s reason=not_found", transaction_id)
