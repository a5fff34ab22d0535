"""Brazilian (pt-BR) rendering of money, dates, CPF and phone numbers."""
from __future__ import annotations

import re
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Union

from crediario.domain.accrual import compute_total_owed
from crediario.domain.models import MONTH_NAMES, Customer, parse_date

_CPF_RE = re.compile(r"(\d{3})(\d{3})(\d{3})(\d{2})")
_MOBILE_RE = re.compile(r"(\d{2})(\d{5})(\d{4})")
_LANDLINE_RE = re.compile(r"(\d{2})(\d{4})(\d{4})")


def only_digits(value: str) -> str:
    return re.sub(r"\D", "", value or "")


def format_currency(value: Union[int, float, Decimal]) -> str:
    """1234.5 -> "R$ 1.234,50"; negatives keep the sign in front: "-R$ 10,00"."""
    amount = Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if amount < 0 else ""
    integer_part, decimal_part = f"{abs(amount):,.2f}".split(".")
    return f"{sign}R$ {integer_part.replace(',', '.')},{decimal_part}"


def format_date(value: Union[date, datetime, str]) -> str:
    return parse_date(value).strftime("%d/%m/%Y")


def format_cpf(cpf: str) -> str:
    return _CPF_RE.sub(r"\1.\2.\3-\4", only_digits(cpf), count=1)


def format_phone(phone: str) -> str:
    numbers = only_digits(phone)
    if len(numbers) == 11:
        return _MOBILE_RE.sub(r"(\1) \2-\3", numbers, count=1)
    return _LANDLINE_RE.sub(r"(\1) \2-\3", numbers, count=1)


def month_name(month: int) -> str:
    return MONTH_NAMES[month]


def render_collection_message(
    customer: Customer,
    template: str,
    as_of: date | datetime | None = None,
) -> str:
    # First occurrence of each token only; anything else stays verbatim.
    return (
        template.replace("{nome}", customer.name, 1)
        .replace("{valor}", format_currency(compute_total_owed(customer, as_of)), 1)
        .replace("{data}", format_date(customer.due_date), 1)
    )
