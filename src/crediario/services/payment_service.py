from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional

from crediario.domain.accrual import compute_total_owed
from crediario.domain.errors import NotFoundError, ValidationError
from crediario.domain.models import CustomerStatus, Transaction, TransactionType
from crediario.logging_config import STORE_LOGGER

log = logging.getLogger(STORE_LOGGER)

PAYMENT_CATEGORY = "pagamento"


class PaymentService:
    def __init__(self, customer_service, transaction_service):
        self.customers = customer_service
        self.transactions = transaction_service

    def register_payment(self, customer_id: str, as_of: date | datetime | None = None) -> Optional[Transaction]:
        """
        Settles the customer's whole balance (principal + interest as of ``as_of``).

        Records an inflow for the amount owed and marks the customer paid.
        A customer owing nothing is only marked paid; no transaction is recorded.
        """
        customer = self.customers.get_customer(customer_id)
        if not customer.is_active:
            raise ValidationError(f'Customer "{customer.name}" has no outstanding debt.')

        amount = compute_total_owed(customer, as_of)
        tx = None
        if amount > 0:
            tx = self.transactions.add_transaction(
                TransactionType.INFLOW,
                amount,
                f"Pagamento de {customer.name}",
                customer_id=customer.id,
                category=PAYMENT_CATEGORY,
            )
        self.customers.mark_as_paid(customer.id)
        log.info("payment_registered customer=%s amount=%.2f tx=%s", customer.id, amount, tx.id if tx else None)
        return tx

    def undo_payment(self, transaction_id: str) -> bool:
        """Removes a customer payment and reactivates the customer. Unknown ids return False."""
        tx = self.transactions.get_transaction(transaction_id)
        if tx is None:
            log.debug("payment_undo_skipped tx=%s reason=not_found", transaction_id)
            return False
        if tx.type is not TransactionType.INFLOW or not tx.customer_id:
            raise ValidationError("Only customer payments can be undone.")

        try:
            customer = self.customers.get_customer(tx.customer_id)
        except NotFoundError:
            customer = None
        if customer is not None and customer.status is CustomerStatus.PAID:
            self.customers.reactivate(customer.id)

        self.transactions.remove_transaction(tx.id)
        log.info("payment_undone tx=%s customer=%s", tx.id, tx.customer_id)
        return True
