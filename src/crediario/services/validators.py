from __future__ import annotations

import math
import re
from datetime import date
from decimal import Decimal
from typing import Any

from crediario.domain.errors import ValidationError
from crediario.domain.models import parse_date

_THOUSANDS_ONLY = re.compile(r"^-?[1-9]\d{0,2}(\.\d{3})+$")


def to_amount(value: Any, label: str) -> float:
    """Accepts numbers and form strings such as "1.234,56", "R$ 1.234", "R$ 10" or "10.5".

    Dots grouping digits in threes ("1.234", "1.234.567") are thousands
    separators; any other lone dot is a decimal point.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{label} must be a number.")
    if isinstance(value, (int, float, Decimal)):
        amount = float(value)
    else:
        text = ("" if value is None else str(value)).replace("R$", "").strip()
        if "," in text:
            text = text.replace(".", "").replace(",", ".")
        elif _THOUSANDS_ONLY.match(text):
            text = text.replace(".", "")
        try:
            amount = float(text)
        except ValueError:
            raise ValidationError(f"{label} must be a number.") from None
    if math.isnan(amount) or math.isinf(amount):
        raise ValidationError(f"{label} must be a finite number.")
    return amount


def to_date(value: Any, label: str) -> date:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{label} is required.")
    try:
        return parse_date(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{label} must be a date (YYYY-MM-DD).") from None


def require_text(value: Any, label: str) -> str:
    text = str(value or "").strip()
    if not text:
        raise ValidationError(f"{label} is required.")
    return text


def optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def check_fields(changes: dict, allowed: set[str], immutable: set[str], entity: str) -> None:
    frozen = sorted(set(changes) & immutable)
    if frozen:
        raise ValidationError(f"{entity} field(s) cannot be changed: {', '.join(frozen)}.")
    unknown = sorted(set(changes) - allowed)
    if unknown:
        raise ValidationError(f"Unknown {entity.lower()} field(s): {', '.join(unknown)}.")
