from .models import (
    AppConfig,
    Customer,
    CustomerStatus,
    Expense,
    ExpenseCategory,
    MonthlyReport,
    Summary,
    Transaction,
    TransactionType,
)
from .errors import AppError, ValidationError, DuplicateCustomerError, NotFoundError, StorageError

__all__ = [
    "AppConfig",
    "Customer",
    "CustomerStatus",
    "Expense",
    "ExpenseCategory",
    "MonthlyReport",
    "Summary",
    "Transaction",
    "TransactionType",
    "AppError",
    "ValidationError",
    "DuplicateCustomerError",
    "NotFoundError",
    "StorageError",
]
