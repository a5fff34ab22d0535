from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, Optional

from crediario.domain.errors import DuplicateCustomerError, ValidationError
from crediario.services.formatting import only_digits

log = logging.getLogger(__name__)

_PHONE_ONLY = re.compile(r"^[\d\s\-\(\)]+$")
_NAME_SEP_PHONE = re.compile(r"^(.+?)[\s\-:]+(\(?[\d\s\-\(\)]+\)?)$")
_PHONE_ANYWHERE = re.compile(r"(\(?[\d\s\-\(\)]{8,}\)?)")


@dataclass(frozen=True)
class ContactCandidate:
    index: int
    name: str
    phone: str
    original: str


def _split_line(line: str, index: int) -> tuple[str, str]:
    if _PHONE_ONLY.match(line):
        return f"Contato {index + 1}", line
    m = _NAME_SEP_PHONE.match(line)
    if m:
        return m.group(1).strip(), m.group(2).strip()
    if not re.search(r"\d", line):
        return line, ""
    phone = _PHONE_ANYWHERE.search(line)
    if phone:
        name = re.sub(r"[\-:]", "", line.replace(phone.group(1), "", 1)).strip()
        return name, phone.group(1)
    return line, ""


class ContactsService:
    """Bulk customer creation from pasted phone-book text.

    Accepted line shapes:
      Maria Silva - (11) 99999-9999
      Maria Silva: 11 99999 9999
      (11) 99999-9999          -> named "Contato N"
      Maria Silva              -> no phone
    """

    def __init__(self, customer_service, config_service=None, due_in_days: int = 30):
        self.customers = customer_service
        self.config = config_service
        self.due_in_days = due_in_days

    def parse_contacts(self, text: str) -> list[ContactCandidate]:
        if not (text or "").strip():
            raise ValidationError("Paste at least one contact.")

        lines = [line.strip() for line in text.splitlines() if line.strip()]
        candidates: list[ContactCandidate] = []
        for index, line in enumerate(lines):
            name, phone = _split_line(line, index)
            if not name and not phone:
                continue
            candidates.append(
                ContactCandidate(
                    index=index,
                    name=name or f"Contato {index + 1}",
                    phone=only_digits(phone),
                    original=line,
                )
            )
        return candidates

    def import_contacts(self, text: str, selected: Optional[Iterable[int]] = None) -> tuple[int, int]:
        """
        Adds every selected candidate as an active customer owing nothing.
        Returns (imported, duplicated); duplicates are active customers that
        already carry the same name.
        """
        candidates = self.parse_contacts(text)
        if selected is not None:
            wanted = set(selected)
            if not wanted:
                raise ValidationError("Select at least one contact to import.")
            candidates = [c for c in candidates if c.index in wanted]

        rate = self.config.get().default_daily_interest_rate if self.config is not None else None
        due = date.today() + timedelta(days=self.due_in_days)

        imported = 0
        duplicated = 0
        for c in candidates:
            try:
                self.customers.add_customer(
                    name=c.name,
                    phone=c.phone,
                    debt_amount=0.0,
                    due_date=due,
                    daily_interest_rate=rate,
                    notes=f"Importado de contatos - Original: {c.original}",
                )
                imported += 1
            except DuplicateCustomerError:
                duplicated += 1

        log.info("contacts_imported imported=%s duplicated=%s", imported, duplicated)
        return imported, duplicated
