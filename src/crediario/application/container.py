from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from crediario.config import AppPaths, get_app_paths
from crediario.domain.models import Customer, Expense, Transaction
from crediario.logging_config import setup_logging
from crediario.repositories.change_notifier import ChangeNotifier
from crediario.repositories.contracts import CUSTOMERS_KEY, EXPENSES_KEY, TRANSACTIONS_KEY
from crediario.repositories.record_store import RecordStore
from crediario.repositories.sqlite_store import SqliteKeyValueStore
from crediario.services.config_service import ConfigService
from crediario.services.contacts_service import ContactsService
from crediario.services.customer_service import CustomerService
from crediario.services.expense_service import ExpenseService
from crediario.services.payment_service import PaymentService
from crediario.services.reporting_service import ReportingService
from crediario.services.transaction_service import TransactionService


@dataclass(frozen=True)
class AppContainer:
    store: SqliteKeyValueStore
    notifier: ChangeNotifier
    config: ConfigService
    customers: CustomerService
    transactions: TransactionService
    expenses: ExpenseService
    payments: PaymentService
    contacts: ContactsService
    reporting: ReportingService

    def close(self) -> None:
        """Stops listening for changes on every slot; the notifier may outlive the container."""
        self.config.close()
        for service in (self.customers, self.transactions, self.expenses):
            service.store.close()


def build_container(db_path: Path | str, notifier: ChangeNotifier | None = None) -> AppContainer:
    store = SqliteKeyValueStore(db_path)
    store.init_db()
    notifier = notifier or ChangeNotifier()

    config = ConfigService(store, notifier)
    customers = CustomerService(
        RecordStore(store, notifier, CUSTOMERS_KEY, Customer.from_dict, Customer.to_dict),
        config,
    )
    transactions = TransactionService(
        RecordStore(store, notifier, TRANSACTIONS_KEY, Transaction.from_dict, Transaction.to_dict)
    )
    expenses = ExpenseService(
        RecordStore(store, notifier, EXPENSES_KEY, Expense.from_dict, Expense.to_dict)
    )
    payments = PaymentService(customers, transactions)
    contacts = ContactsService(customers, config)
    reporting = ReportingService(customers, transactions, expenses, config)

    return AppContainer(
        store=store,
        notifier=notifier,
        config=config,
        customers=customers,
        transactions=transactions,
        expenses=expenses,
        payments=payments,
        contacts=contacts,
        reporting=reporting,
    )


def bootstrap(app_name: str = "CrediarioPro", level: int = logging.INFO) -> tuple[AppPaths, AppContainer]:
    paths = get_app_paths(app_name)
    setup_logging(paths.logs_dir, level=level)
    container = build_container(paths.db_path)
    logging.getLogger(__name__).info("app_started db=%s", paths.db_path)
    return paths, container
