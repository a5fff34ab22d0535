from datetime import date, timedelta
from pathlib import Path

import pytest
from conftest import make_container

from crediario.domain.errors import NotFoundError, ValidationError
from crediario.domain.models import CustomerStatus, TransactionType
from crediario.services.payment_service import PAYMENT_CATEGORY

TODAY = date(2024, 3, 15)

PHONE_BOOK = """
Maria Silva - (11) 99999-9999

Joana: 11 98888 7777
(21) 3333-4444
Pedro
"""


def test_payment_settles_principal_plus_interest(tmp_path: Path):
    app = make_container(tmp_path)
    c = app.customers.add_customer("Maria", 100, TODAY - timedelta(days=10), daily_interest_rate=2)

    tx = app.payments.register_payment(c.id, as_of=TODAY)

    assert tx.type is TransactionType.INFLOW
    assert tx.amount == pytest.approx(120.0)
    assert tx.customer_id == c.id
    assert tx.category == PAYMENT_CATEGORY
    assert tx.description == "Pagamento de Maria"
    assert app.customers.get_customer(c.id).status is CustomerStatus.PAID
    summary = app.reporting.summary(TODAY)
    assert summary.total_inflows == pytest.approx(120.0)
    assert summary.active_customer_count == 0
    assert summary.total_outstanding_credit == 0


def test_payment_requires_an_active_customer(tmp_path: Path):
    app = make_container(tmp_path)
    c = app.customers.add_customer("Maria", 100, TODAY)
    app.payments.register_payment(c.id, as_of=TODAY)

    with pytest.raises(ValidationError):
        app.payments.register_payment(c.id, as_of=TODAY)
    with pytest.raises(NotFoundError):
        app.payments.register_payment("missing", as_of=TODAY)
    assert len(app.transactions.list_transactions()) == 1


def test_customer_owing_nothing_is_only_marked_paid(tmp_path: Path):
    app = make_container(tmp_path)
    c = app.customers.add_customer("Maria", 0, TODAY)

    assert app.payments.register_payment(c.id, as_of=TODAY) is None
    assert app.customers.get_customer(c.id).status is CustomerStatus.PAID
    assert app.transactions.list_transactions() == []


def test_undo_payment_reactivates_customer(tmp_path: Path):
    app = make_container(tmp_path)
    c = app.customers.add_customer("Maria", 100, TODAY)
    tx = app.payments.register_payment(c.id, as_of=TODAY)

    assert app.payments.undo_payment(tx.id) is True

    assert app.customers.get_customer(c.id).status is CustomerStatus.ACTIVE
    assert app.transactions.list_transactions() == []
    assert app.payments.undo_payment(tx.id) is False


def test_undo_rejects_non_payment_transactions(tmp_path: Path):
    app = make_container(tmp_path)
    outflow = app.transactions.add_transaction("outflow", 30, "Sacolas")
    loose = app.transactions.add_transaction("inflow", 30, "Venda avulsa")

    with pytest.raises(ValidationError):
        app.payments.undo_payment(outflow.id)
    with pytest.raises(ValidationError):
        app.payments.undo_payment(loose.id)
    assert len(app.transactions.list_transactions()) == 2


def test_transactions_validate_amount_type_and_description(tmp_path: Path):
    app = make_container(tmp_path)

    with pytest.raises(ValidationError):
        app.transactions.add_transaction("inflow", 0, "zero")
    with pytest.raises(ValidationError):
        app.transactions.add_transaction("refund", 10, "tipo")
    with pytest.raises(ValidationError):
        app.transactions.add_transaction("inflow", 10, "   ")

    tx = app.transactions.add_transaction("inflow", "10,5", "Venda", customer_id="c1")
    app.transactions.update_transaction(tx.id, amount=12, category="balcao")
    updated = app.transactions.get_transaction(tx.id)

    assert updated.amount == 12.0
    assert updated.category == "balcao"
    assert updated.occurred_at == tx.occurred_at
    assert app.transactions.transactions_for_customer("c1") == [updated]
    with pytest.raises(ValidationError):
        app.transactions.update_transaction(tx.id, occurred_at="2020-01-01T00:00:00")


def test_expenses_validate_and_update(tmp_path: Path):
    app = make_container(tmp_path)

    with pytest.raises(ValidationError):
        app.expenses.add_expense("Gasolina", "fuel", 50, TODAY)
    with pytest.raises(ValidationError):
        app.expenses.add_expense("Gasolina", "vehicle", -5, TODAY)

    e = app.expenses.add_expense("Gasolina", "vehicle", 50, TODAY, note="moto", recurring=True)
    undated = app.expenses.add_expense("Pão", "food", 8)
    app.expenses.update_expense(e.id, amount="55,00", recurring=False)
    app.expenses.remove_expense(undated.id)

    [stored] = app.expenses.list_expenses()
    assert stored.amount == 55.0
    assert stored.recurring is False
    assert stored.category.label == "Carro"
    assert undated.date == date.today()
    assert app.transactions.list_transactions() == []


def test_parse_contacts_recognises_line_shapes(tmp_path: Path):
    app = make_container(tmp_path)

    candidates = app.contacts.parse_contacts(PHONE_BOOK)

    assert [(c.index, c.name, c.phone) for c in candidates] == [
        (0, "Maria Silva", "11999999999"),
        (1, "Joana", "11988887777"),
        (2, "Contato 3", "2133334444"),
        (3, "Pedro", ""),
    ]
    assert candidates[0].original == "Maria Silva - (11) 99999-9999"


def test_parse_contacts_rejects_empty_text(tmp_path: Path):
    app = make_container(tmp_path)

    with pytest.raises(ValidationError):
        app.contacts.parse_contacts("  \n\n ")


def test_import_contacts_counts_duplicates(tmp_path: Path):
    app = make_container(tmp_path)
    app.config.update(default_daily_interest_rate=1.0)
    app.customers.add_customer("Pedro", 50, TODAY)

    imported, duplicated = app.contacts.import_contacts(PHONE_BOOK)

    assert (imported, duplicated) == (3, 1)
    maria = app.customers.find_by_name("Maria Silva")
    assert maria.debt_amount == 0
    assert maria.phone == "11999999999"
    assert maria.daily_interest_rate == 1.0
    assert maria.due_date == date.today() + timedelta(days=30)
    assert maria.notes == "Importado de contatos - Original: Maria Silva - (11) 99999-9999"


def test_import_only_selected_contacts(tmp_path: Path):
    app = make_container(tmp_path)

    assert app.contacts.import_contacts(PHONE_BOOK, selected=[1, 2]) == (2, 0)
    assert sorted(c.name for c in app.customers.list_customers()) == ["Contato 3", "Joana"]

    with pytest.raises(ValidationError):
        app.contacts.import_contacts(PHONE_BOOK, selected=[])
