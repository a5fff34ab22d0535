from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, time
from enum import Enum
from typing import Any, Mapping, Optional

from crediario.domain.accrual import is_overdue

DEFAULT_COLLECTION_MESSAGE = (
    "Olá {nome}, estamos lembrando que sua dívida de {valor} venceu em {data}. "
    "Podemos agendar o pagamento?"
)

MONTH_NAMES = {
    1: "janeiro", 2: "fevereiro", 3: "março", 4: "abril",
    5: "maio", 6: "junho", 7: "julho", 8: "agosto",
    9: "setembro", 10: "outubro", 11: "novembro", 12: "dezembro",
}


def new_id() -> str:
    return uuid.uuid4().hex


def parse_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip()[:10])


def parse_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    return datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))


class CustomerStatus(str, Enum):
    ACTIVE = "active"
    PAID = "paid"

    @classmethod
    def parse(cls, value: Any) -> "CustomerStatus":
        # "overdue" is derived from the due date; older payloads may still carry it.
        if value == "overdue":
            return cls.ACTIVE
        return cls(value)


class TransactionType(str, Enum):
    INFLOW = "inflow"
    OUTFLOW = "outflow"


class ExpenseCategory(str, Enum):
    WATER = "water"
    ELECTRICITY = "electricity"
    VEHICLE = "vehicle"
    FOOD = "food"
    RENT = "rent"
    INTERNET = "internet"
    PHONE = "phone"
    OTHER = "other"

    @property
    def label(self) -> str:
        return EXPENSE_CATEGORY_LABELS[self]


EXPENSE_CATEGORY_LABELS = {
    ExpenseCategory.WATER: "Água",
    ExpenseCategory.ELECTRICITY: "Luz",
    ExpenseCategory.VEHICLE: "Carro",
    ExpenseCategory.FOOD: "Alimentação",
    ExpenseCategory.RENT: "Aluguel",
    ExpenseCategory.INTERNET: "Internet",
    ExpenseCategory.PHONE: "Telefone",
    ExpenseCategory.OTHER: "Outros",
}


@dataclass(frozen=True)
class Customer:
    id: str
    name: str
    phone: str
    tax_id: str
    debt_amount: float
    due_date: date
    registered_at: datetime
    daily_interest_rate: float
    status: CustomerStatus = CustomerStatus.ACTIVE
    address: Optional[str] = None
    notes: Optional[str] = None
    purchased_item: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status is CustomerStatus.ACTIVE

    def is_overdue(self, as_of: date | datetime | None = None) -> bool:
        """Active and past its due date. Never stored, always recomputed."""
        return self.is_active and is_overdue(self.due_date, as_of)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "tax_id": self.tax_id,
            "debt_amount": float(self.debt_amount),
            "due_date": self.due_date.isoformat(),
            "registered_at": self.registered_at.isoformat(),
            "daily_interest_rate": float(self.daily_interest_rate),
            "status": self.status.value,
            "address": self.address,
            "notes": self.notes,
            "purchased_item": self.purchased_item,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Customer":
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            phone=str(data.get("phone") or ""),
            tax_id=str(data.get("tax_id") or ""),
            debt_amount=float(data["debt_amount"]),
            due_date=parse_date(data["due_date"]),
            registered_at=parse_datetime(data["registered_at"]),
            daily_interest_rate=float(data["daily_interest_rate"]),
            status=CustomerStatus.parse(data.get("status", CustomerStatus.ACTIVE.value)),
            address=data.get("address"),
            notes=data.get("notes"),
            purchased_item=data.get("purchased_item"),
        )


@dataclass(frozen=True)
class Transaction:
    id: str
    type: TransactionType
    amount: float
    description: str
    occurred_at: datetime
    customer_id: Optional[str] = None
    category: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type.value,
            "amount": float(self.amount),
            "description": self.description,
            "occurred_at": self.occurred_at.isoformat(),
            "customer_id": self.customer_id,
            "category": self.category,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Transaction":
        return cls(
            id=str(data["id"]),
            type=TransactionType(data["type"]),
            amount=float(data["amount"]),
            description=str(data.get("description") or ""),
            occurred_at=parse_datetime(data["occurred_at"]),
            customer_id=data.get("customer_id"),
            category=data.get("category"),
        )


@dataclass(frozen=True)
class Expense:
    id: str
    name: str
    category: ExpenseCategory
    amount: float
    date: date
    note: Optional[str] = None
    recurring: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category.value,
            "amount": float(self.amount),
            "date": self.date.isoformat(),
            "note": self.note,
            "recurring": bool(self.recurring),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Expense":
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            category=ExpenseCategory(data["category"]),
            amount=float(data["amount"]),
            date=parse_date(data["date"]),
            note=data.get("note"),
            recurring=bool(data.get("recurring", False)),
        )


@dataclass(frozen=True)
class AppConfig:
    business_name: str = "Minha Loja"
    business_phone: str = ""
    collection_message_template: str = DEFAULT_COLLECTION_MESSAGE
    default_daily_interest_rate: float = 2.0
    notifications_enabled: bool = True

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AppConfig":
        """Stored values win; anything missing falls back to the defaults."""
        defaults = cls()
        return cls(
            business_name=str(data.get("business_name", defaults.business_name)),
            business_phone=str(data.get("business_phone", defaults.business_phone)),
            collection_message_template=str(
                data.get("collection_message_template", defaults.collection_message_template)
            ),
            default_daily_interest_rate=float(
                data.get("default_daily_interest_rate", defaults.default_daily_interest_rate)
            ),
            notifications_enabled=bool(data.get("notifications_enabled", defaults.notifications_enabled)),
        )


@dataclass(frozen=True)
class Summary:
    total_inflows: float
    total_outflows: float
    total_expense_outflows: float
    net_profit: float
    active_customer_count: int
    overdue_active_customer_count: int
    total_outstanding_credit: float
    expenses_by_category: dict[str, float] = field(default_factory=dict)

    def expense_shares(self) -> dict[str, float]:
        """Category -> percentage of all expenses. Empty when nothing was spent."""
        if not self.total_expense_outflows:
            return {}
        return {
            category: amount / self.total_expense_outflows * 100
            for category, amount in self.expenses_by_category.items()
        }

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class MonthlyReport:
    month: int
    year: int
    total_received: float
    total_expenses: float
    paying_customer_count: int
    total_outstanding_credit: float
    overdue_customer_count: int
    final_profit: float

    @property
    def month_name(self) -> str:
        return MONTH_NAMES[self.month]

    def to_dict(self) -> dict:
        payload = asdict(self)
        payload["month_name"] = self.month_name
        return payload
