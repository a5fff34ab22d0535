import json
from datetime import date
from pathlib import Path

import pytest
from conftest import make_container

from crediario.domain.errors import StorageError
from crediario.domain.models import Customer, CustomerStatus
from crediario.repositories.change_notifier import ChangeNotifier
from crediario.repositories.contracts import CONFIG_KEY, CUSTOMERS_KEY, EXPENSES_KEY, TRANSACTIONS_KEY
from crediario.repositories.record_store import RecordStore
from crediario.repositories.sqlite_store import SqliteKeyValueStore

TODAY = date(2024, 3, 15)


def _customer_payload(cid, name, **extra):
    payload = {
        "id": cid,
        "name": name,
        "phone": "",
        "tax_id": "",
        "debt_amount": 10.0,
        "due_date": "2024-03-01",
        "registered_at": "2024-01-01T09:00:00",
        "daily_interest_rate": 2.0,
        "status": "active",
    }
    payload.update(extra)
    return payload


def test_data_survives_reopening_the_database(tmp_path: Path):
    app = make_container(tmp_path)
    c = app.customers.add_customer("Maria", 100, TODAY)
    app.expenses.add_expense("Conta de luz", "electricity", 80, TODAY)
    app.transactions.add_transaction("outflow", 25, "Sacolas")

    reopened = make_container(tmp_path)

    assert reopened.customers.get_customer(c.id) == c
    assert len(reopened.expenses.list_expenses()) == 1
    assert reopened.transactions.list_transactions()[0].description == "Sacolas"


def test_views_sharing_a_notifier_see_each_others_writes(tmp_path: Path):
    notifier = ChangeNotifier()
    first = make_container(tmp_path, notifier=notifier)
    second = make_container(tmp_path, notifier=notifier)

    c = first.customers.add_customer("Maria", 100, TODAY)
    assert second.customers.get_customer(c.id) == c

    second.customers.mark_as_paid(c.id)
    assert first.customers.get_customer(c.id).status is CustomerStatus.PAID

    first.config.update(business_name="Loja da Esquina")
    assert second.config.get().business_name == "Loja da Esquina"


def test_corrupt_slot_loads_as_empty(tmp_path: Path):
    db = tmp_path / "corrupt.db"
    store = SqliteKeyValueStore(db)
    store.init_db()
    conn = store._conn()
    conn.execute(
        "INSERT INTO kv_slots (key, payload, updated_at) VALUES (?, ?, datetime('now'))",
        (CUSTOMERS_KEY, "{not json"),
    )
    conn.commit()
    conn.close()

    assert store.load_all(CUSTOMERS_KEY) is None

    app = make_container(tmp_path, name="corrupt.db")
    assert app.customers.list_customers() == []
    app.customers.add_customer("Maria", 10, TODAY)
    assert len(make_container(tmp_path, name="corrupt.db").customers.list_customers()) == 1


def test_undecodable_records_are_skipped(tmp_path: Path):
    store = SqliteKeyValueStore(tmp_path / "partial.db")
    store.init_db()
    store.save_all(
        CUSTOMERS_KEY,
        [
            _customer_payload("ok", "Maria"),
            {"id": "broken", "name": "Sem dados"},
            _customer_payload("legacy", "Joana", status="overdue"),
        ],
    )
    store.save_all(TRANSACTIONS_KEY, {"not": "a list"})

    app = make_container(tmp_path, name="partial.db")

    assert [c.id for c in app.customers.list_customers()] == ["ok", "legacy"]
    assert app.customers.get_customer("legacy").status is CustomerStatus.ACTIVE
    assert app.transactions.list_transactions() == []


def test_missing_slot_loads_as_none(tmp_path: Path):
    store = SqliteKeyValueStore(tmp_path / "empty.db")
    store.init_db()

    assert store.load_all(CUSTOMERS_KEY) is None
    assert store.save_all(CUSTOMERS_KEY, [1, 2]) is True
    assert store.load_all(CUSTOMERS_KEY) == [1, 2]


class FailingStore:
    def load_all(self, key):
        return None

    def save_all(self, key, value):
        return False


def test_failed_save_keeps_memory_and_publishes_nothing():
    notifier = ChangeNotifier()
    published = []
    notifier.subscribe(CUSTOMERS_KEY, lambda key, payload: published.append(payload))
    records = RecordStore(FailingStore(), notifier, CUSTOMERS_KEY, Customer.from_dict, Customer.to_dict)

    customer = Customer.from_dict(_customer_payload("c1", "Maria"))
    records.append(customer)

    assert records.all() == [customer]
    assert published == []


def test_unencodable_payload_is_not_saved(tmp_path: Path):
    store = SqliteKeyValueStore(tmp_path / "enc.db")
    store.init_db()

    assert store.save_all(CUSTOMERS_KEY, {"when": date(2024, 1, 1)}) is False
    assert store.load_all(CUSTOMERS_KEY) is None


def test_notifier_delivers_in_order_and_survives_failing_subscriber():
    notifier = ChangeNotifier()
    calls = []

    def boom(key, payload):
        raise RuntimeError("subscriber down")

    notifier.subscribe("k", lambda key, payload: calls.append(("first", payload)))
    notifier.subscribe("k", boom)
    unsubscribe = notifier.subscribe("k", lambda key, payload: calls.append(("third", payload)))

    notifier.publish("k", 1)
    assert calls == [("first", 1), ("third", 1)]
    assert notifier.subscriber_count("k") == 3

    unsubscribe()
    unsubscribe()
    notifier.publish("k", 2)
    notifier.publish("other", 3)

    assert calls == [("first", 1), ("third", 1), ("first", 2)]
    assert notifier.subscriber_count("k") == 2


def test_closed_container_stops_receiving_changes(tmp_path: Path):
    notifier = ChangeNotifier()
    closed = make_container(tmp_path, notifier=notifier)
    live = make_container(tmp_path, notifier=notifier)
    keys = (CUSTOMERS_KEY, TRANSACTIONS_KEY, EXPENSES_KEY, CONFIG_KEY)
    assert [notifier.subscriber_count(k) for k in keys] == [2, 2, 2, 2]

    closed.close()
    live.customers.add_customer("Maria", 10, TODAY)

    assert [notifier.subscriber_count(k) for k in keys] == [1, 1, 1, 1]
    assert closed.customers.list_customers() == []
    assert len(live.customers.list_customers()) == 1


def test_reopening_an_up_to_date_database_makes_no_backup(tmp_path: Path):
    app = make_container(tmp_path)
    app.customers.add_customer("Maria", 10, TODAY)

    make_container(tmp_path)
    make_container(tmp_path)

    assert list(tmp_path.glob("*.bak")) == []
    assert len(make_container(tmp_path).customers.list_customers()) == 1


def test_migration_failure_restores_db(tmp_path: Path):
    class BrokenMigrationStore(SqliteKeyValueStore):
        def _migration_v1_slots(self, cur):
            raise RuntimeError("forced migration failure")

    db = tmp_path / "mig.db"
    store = SqliteKeyValueStore(db)
    store.init_db()
    store.save_all(CUSTOMERS_KEY, [_customer_payload("c1", "Maria")])

    conn = store._conn()
    cur = conn.cursor()
    cur.execute("DELETE FROM schema_migrations WHERE version = 1")
    conn.commit()
    conn.close()

    broken = BrokenMigrationStore(db)
    with pytest.raises(StorageError, match="restored"):
        broken.run_migrations()
    assert len(list(tmp_path.glob("mig.pre_migration_*.bak"))) == 1

    conn = store._conn()
    cur = conn.cursor()
    cur.execute("SELECT COALESCE(MAX(version), 0) FROM schema_migrations")
    assert int(cur.fetchone()[0]) == 0
    cur.execute("SELECT payload FROM kv_slots WHERE key = ?", (CUSTOMERS_KEY,))
    assert json.loads(cur.fetchone()[0])[0]["name"] == "Maria"
    conn.close()
