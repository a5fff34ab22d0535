from __future__ import annotations

import calendar
import json
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Iterable, Optional

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.table import Table, TableStyleInfo

from crediario.domain.accrual import as_calendar_date, compute_interest, compute_total_owed
from crediario.domain.errors import ValidationError
from crediario.domain.models import (
    Customer,
    Expense,
    MonthlyReport,
    Summary,
    Transaction,
    TransactionType,
)
from crediario.logging_config import REPORTS_LOGGER

log = logging.getLogger(REPORTS_LOGGER)


def build_summary(
    customers: Iterable[Customer],
    transactions: Iterable[Transaction],
    expenses: Iterable[Expense],
    as_of: date | datetime | None = None,
) -> Summary:
    """
    Totals over everything recorded so far.

    Outflows are outflow transactions plus all expenses; both sources are
    summed independently.
    """
    today = as_calendar_date(as_of)
    customers = list(customers)
    transactions = list(transactions)
    expenses = list(expenses)

    total_inflows = sum((t.amount for t in transactions if t.type is TransactionType.INFLOW), 0.0)
    transaction_outflows = sum((t.amount for t in transactions if t.type is TransactionType.OUTFLOW), 0.0)
    total_expenses = sum((e.amount for e in expenses), 0.0)
    total_outflows = transaction_outflows + total_expenses

    active = [c for c in customers if c.is_active]

    by_category: dict[str, float] = {}
    for e in expenses:
        by_category[e.category.value] = by_category.get(e.category.value, 0.0) + e.amount

    return Summary(
        total_inflows=total_inflows,
        total_outflows=total_outflows,
        total_expense_outflows=total_expenses,
        net_profit=total_inflows - total_outflows,
        active_customer_count=len(active),
        overdue_active_customer_count=sum(1 for c in active if c.is_overdue(today)),
        total_outstanding_credit=sum((compute_total_owed(c, today) for c in active), 0.0),
        expenses_by_category=by_category,
    )


def month_bounds(month: int, year: int) -> tuple[date, date]:
    if not 1 <= int(month) <= 12:
        raise ValidationError("Month must be between 1 and 12.")
    last_day = calendar.monthrange(int(year), int(month))[1]
    return date(int(year), int(month), 1), date(int(year), int(month), last_day)


def build_monthly_report(
    customers: Iterable[Customer],
    transactions: Iterable[Transaction],
    expenses: Iterable[Expense],
    month: int,
    year: int,
    as_of: date | datetime | None = None,
) -> MonthlyReport:
    """
    Cash received and spent inside one calendar month.

    Outstanding credit and the overdue count are not month-scoped: they always
    describe the active customers as of ``as_of``.
    """
    start, end = month_bounds(month, year)
    today = as_calendar_date(as_of)
    customers = list(customers)

    month_tx = [t for t in transactions if start <= t.occurred_at.date() <= end]
    month_expenses = [e for e in expenses if start <= e.date <= end]

    received = sum((t.amount for t in month_tx if t.type is TransactionType.INFLOW), 0.0)
    spent = sum((e.amount for e in month_expenses), 0.0)
    payers = {t.customer_id for t in month_tx if t.type is TransactionType.INFLOW and t.customer_id}
    active = [c for c in customers if c.is_active]

    return MonthlyReport(
        month=int(month),
        year=int(year),
        total_received=received,
        total_expenses=spent,
        paying_customer_count=len(payers),
        total_outstanding_credit=sum((compute_total_owed(c, today) for c in active), 0.0),
        overdue_customer_count=sum(1 for c in active if c.is_overdue(today)),
        final_profit=received - spent,
    )


def default_export_filename(today: date, suffix: str = ".json") -> str:
    return f"relatorio-{today.isoformat()}{suffix}"


class ReportingService:
    def __init__(self, customer_service, transaction_service, expense_service, config_service=None):
        self.customers = customer_service
        self.transactions = transaction_service
        self.expenses = expense_service
        self.config = config_service

    def summary(self, as_of: date | datetime | None = None) -> Summary:
        return build_summary(
            self.customers.list_customers(),
            self.transactions.list_transactions(),
            self.expenses.list_expenses(),
            as_of,
        )

    def monthly_report(self, month: int, year: int, as_of: date | datetime | None = None) -> MonthlyReport:
        return build_monthly_report(
            self.customers.list_customers(),
            self.transactions.list_transactions(),
            self.expenses.list_expenses(),
            month,
            year,
            as_of,
        )

    def current_month_report(self, as_of: date | datetime | None = None) -> MonthlyReport:
        today = as_calendar_date(as_of)
        return self.monthly_report(today.month, today.year, today)

    def overdue_alert(self, as_of: date | datetime | None = None) -> Optional[str]:
        if self.config is not None and not self.config.get().notifications_enabled:
            return None
        overdue = len(self.customers.overdue_customers(as_of))
        if overdue == 0:
            return None
        return f"⚠️ {overdue} cliente(s) com pagamento em atraso!"

    def build_export_document(self, as_of: date | datetime | None = None) -> dict:
        today = as_calendar_date(as_of)
        return {
            "summary": self.summary(today).to_dict(),
            "monthly_report": self.current_month_report(today).to_dict(),
            "active_customers": [c.to_dict() for c in self.customers.active_customers()],
            "expenses": [e.to_dict() for e in self.expenses.list_expenses()],
            "exported_at": datetime.now().replace(microsecond=0).isoformat(),
        }

    def export_report_json(self, path: Path | str, as_of: date | datetime | None = None) -> Path:
        """Writes the export document. A directory ``path`` gets ``relatorio-YYYY-MM-DD.json``."""
        today = as_calendar_date(as_of)
        target = Path(path)
        if target.is_dir():
            target = target / default_export_filename(today)
        document = self.build_export_document(today)
        target.write_text(json.dumps(document, ensure_ascii=False, indent=2), encoding="utf-8")
        log.info("report_exported format=json path=%s", target)
        return target

    def export_report_excel(
        self,
        path: Path | str,
        month: int,
        year: int,
        as_of: date | datetime | None = None,
    ) -> Path:
        today = as_calendar_date(as_of)
        summary = self.summary(today)
        monthly = self.monthly_report(month, year, today)
        business = self.config.get().business_name if self.config is not None else ""

        wb = Workbook()

        def money(cell):
            cell.number_format = "#,##0.00"

        def pct(cell):
            cell.number_format = "0.0%"

        def bold_row(ws, r):
            for c in ws[r]:
                c.font = Font(bold=True)

        def set_widths(ws, widths: dict[str, int]):
            for col, w in widths.items():
                ws.column_dimensions[col].width = w

        def add_table(ws, name: str, start_row: int, start_col: int, end_row: int, end_col: int):
            ref = f"{get_column_letter(start_col)}{start_row}:{get_column_letter(end_col)}{end_row}"
            tab = Table(displayName=name, ref=ref)
            tab.tableStyleInfo = TableStyleInfo(
                name="TableStyleMedium9",
                showRowStripes=True,
                showColumnStripes=False,
            )
            ws.add_table(tab)

        def key_values(ws, start_row: int, rows: list[tuple[str, object, str]]):
            for i, (label, val, kind) in enumerate(rows):
                r = start_row + i
                ws[f"A{r}"] = label
                ws[f"B{r}"] = val
                if kind == "money":
                    money(ws[f"B{r}"])

        # -------- 1) Summary --------
        ws = wb.active
        ws.title = "Summary"
        ws["A1"] = f"Summary - {business}" if business else "Summary"
        ws["A1"].font = Font(bold=True, size=14)
        ws["A3"] = "As of"
        ws["B3"] = today.isoformat()

        key_values(ws, 5, [
            ("Total inflows", summary.total_inflows, "money"),
            ("Total outflows", summary.total_outflows, "money"),
            ("Expenses", summary.total_expense_outflows, "money"),
            ("Net profit", summary.net_profit, "money"),
            ("Active customers", summary.active_customer_count, "int"),
            ("Overdue customers", summary.overdue_active_customer_count, "int"),
            ("Outstanding credit", summary.total_outstanding_credit, "money"),
        ])

        ws["A13"] = "Expenses by category"
        ws["A13"].font = Font(bold=True)
        shares = summary.expense_shares()
        r = 14
        for category, amount in summary.expenses_by_category.items():
            ws[f"A{r}"] = category
            ws[f"B{r}"] = amount
            ws[f"C{r}"] = shares.get(category, 0.0) / 100
            money(ws[f"B{r}"])
            pct(ws[f"C{r}"])
            r += 1
        set_widths(ws, {"A": 28, "B": 18, "C": 10})

        # -------- 2) Monthly --------
        ws2 = wb.create_sheet("Monthly")
        ws2["A1"] = f"Monthly report - {monthly.month_name} {monthly.year}"
        ws2["A1"].font = Font(bold=True, size=14)
        key_values(ws2, 3, [
            ("Received", monthly.total_received, "money"),
            ("Expenses", monthly.total_expenses, "money"),
            ("Final profit", monthly.final_profit, "money"),
            ("Paying customers", monthly.paying_customer_count, "int"),
            ("Outstanding credit (all active)", monthly.total_outstanding_credit, "money"),
            ("Overdue customers (all active)", monthly.overdue_customer_count, "int"),
        ])
        set_widths(ws2, {"A": 34, "B": 18})

        # -------- 3) Customers --------
        ws3 = wb.create_sheet("Customers")
        ws3.append([
            "Name", "Phone", "CPF", "Status", "Due date",
            "Debt", "Rate %/day", "Interest", "Total owed", "Overdue",
        ])
        bold_row(ws3, 1)
        for c in self.customers.list_customers():
            ws3.append([
                c.name, c.phone, c.tax_id, c.status.value, c.due_date.isoformat(),
                float(c.debt_amount), float(c.daily_interest_rate),
                compute_interest(c, today), compute_total_owed(c, today),
                "yes" if c.is_overdue(today) else "no",
            ])
            for col in ("F", "H", "I"):
                money(ws3[f"{col}{ws3.max_row}"])
        ws3.freeze_panes = "A2"
        set_widths(ws3, {
            "A": 28, "B": 16, "C": 16, "D": 10, "E": 12,
            "F": 14, "G": 12, "H": 14, "I": 14, "J": 10,
        })
        if ws3.max_row >= 2:
            add_table(ws3, "CustomersDetail", 1, 1, ws3.max_row, 10)

        # -------- 4) Transactions --------
        ws4 = wb.create_sheet("Transactions")
        ws4.append(["Datetime", "Type", "Description", "Category", "Customer ID", "Amount"])
        bold_row(ws4, 1)
        for t in self.transactions.list_transactions():
            ws4.append([
                t.occurred_at.isoformat(sep=" "), t.type.value, t.description,
                t.category or "", t.customer_id or "", float(t.amount),
            ])
            money(ws4[f"F{ws4.max_row}"])
        ws4.freeze_panes = "A2"
        set_widths(ws4, {"A": 22, "B": 10, "C": 34, "D": 16, "E": 34, "F": 14})
        if ws4.max_row >= 2:
            add_table(ws4, "TransactionsDetail", 1, 1, ws4.max_row, 6)

        # -------- 5) Expenses --------
        ws5 = wb.create_sheet("Expenses")
        ws5.append(["Date", "Name", "Category", "Recurring", "Note", "Amount"])
        bold_row(ws5, 1)
        for e in self.expenses.list_expenses():
            ws5.append([
                e.date.isoformat(), e.name, e.category.label,
                "yes" if e.recurring else "no", e.note or "", float(e.amount),
            ])
            money(ws5[f"F{ws5.max_row}"])
        ws5.freeze_panes = "A2"
        set_widths(ws5, {"A": 12, "B": 28, "C": 16, "D": 10, "E": 30, "F": 14})
        if ws5.max_row >= 2:
            add_table(ws5, "ExpensesDetail", 1, 1, ws5.max_row, 6)

        target = Path(path)
        wb.save(target)
        log.info("report_exported format=xlsx path=%s month=%s year=%s", target, month, year)
        return target
