from .customer_service import CustomerService
from .transaction_service import TransactionService
from .expense_service import ExpenseService
from .config_service import ConfigService
from .payment_service import PaymentService
from .contacts_service import ContactsService
from .reporting_service import ReportingService

__all__ = [
    "CustomerService",
    "TransactionService",
    "ExpenseService",
    "ConfigService",
    "PaymentService",
    "ContactsService",
    "ReportingService",
]
