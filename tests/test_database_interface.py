"""Tests for the Database interface across both storage backends."""

from datetime import date, datetime, timedelta, UTC
from decimal import Decimal

import pytest
from filelock import FileLock
from sqlalchemy import text

from chaibook.database.factories import create_document_database
from chaibook.domain import entities
from chaibook.domain.entities import StockTransactionType
from chaibook.domain.errors import StorageError
from chaibook.domain.stock import StockService


class TestDatabaseInterface:
    """Both backends return domain entities with the same semantics."""

    def test_cash_flow_returns_domain_model(self, any_db):
        entry_id = any_db.create_cash_flow(
            date(2024, 6, 1), cash_sales=Decimal("250.50"), notes="rainy day"
        )

        entry = any_db.get_cash_flow(date(2024, 6, 1))

        assert isinstance(entry, entities.CashFlowEntry)
        assert entry.id == entry_id
        assert entry.cash_sales == Decimal("250.50")
        assert entry.opening_cash == Decimal("0")
        assert entry.notes == "rainy day"
        assert entry.created_at.tzinfo is not None

    def test_duplicate_cash_flow_date_rejected(self, any_db):
        any_db.create_cash_flow(date(2024, 6, 1))

        with pytest.raises(StorageError):
            any_db.create_cash_flow(date(2024, 6, 1))

    def test_previous_cash_flow(self, any_db):
        any_db.create_cash_flow(date(2024, 5, 28), closing_cash=Decimal("100"))
        any_db.create_cash_flow(date(2024, 5, 30), closing_cash=Decimal("300"))
        any_db.create_cash_flow(date(2024, 6, 1), closing_cash=Decimal("500"))

        previous = any_db.get_previous_cash_flow(date(2024, 6, 1))

        assert previous.date == date(2024, 5, 30)
        assert any_db.get_previous_cash_flow(date(2024, 5, 28)) is None

    def test_list_cash_flows_newest_first_in_range(self, any_db):
        for day in (1, 2, 3, 4):
            any_db.create_cash_flow(date(2024, 6, day))

        entries = any_db.list_cash_flows(start_date=date(2024, 6, 2), end_date=date(2024, 6, 3))

        assert [e.date for e in entries] == [date(2024, 6, 3), date(2024, 6, 2)]

    def test_update_rejects_unknown_fields(self, any_db):
        entry_id = any_db.create_cash_flow(date(2024, 6, 1))

        with pytest.raises(ValueError, match="Unknown fields"):
            any_db.update_cash_flow(entry_id, tips=Decimal("5"))

    def test_delete_cash_flow_reports_absence(self, any_db):
        any_db.create_cash_flow(date(2024, 6, 1))

        assert any_db.delete_cash_flow(date(2024, 6, 1)) is True
        assert any_db.delete_cash_flow(date(2024, 6, 1)) is False

    def test_expense_returns_domain_model(self, any_db):
        expense_id = any_db.create_expense(
            date=date(2024, 6, 1),
            expense_type="Milk",
            amount=Decimal("120.25"),
            payment_method=entities.PaymentMethod.ONLINE,
            vendor_name="Amul",
        )

        expense = any_db.get_expense(expense_id)

        assert isinstance(expense, entities.Expense)
        assert expense.payment_method == entities.PaymentMethod.ONLINE
        assert expense.amount == Decimal("120.25")
        assert expense.is_salary_payment is False
        assert expense.salary_payment_id is None

    def test_list_expenses_orders_by_date_then_created(self, any_db):
        base = datetime(2024, 6, 1, 9, 0, tzinfo=UTC)
        first = any_db.create_expense(
            date=date(2024, 6, 1), expense_type="Milk", amount=Decimal("1"),
            payment_method=entities.PaymentMethod.CASH, created_at=base,
        )
        second = any_db.create_expense(
            date=date(2024, 6, 1), expense_type="Sugar", amount=Decimal("1"),
            payment_method=entities.PaymentMethod.CASH, created_at=base + timedelta(minutes=1),
        )
        older = any_db.create_expense(
            date=date(2024, 5, 31), expense_type="Gas", amount=Decimal("1"),
            payment_method=entities.PaymentMethod.CASH, created_at=base + timedelta(hours=1),
        )

        assert [e.id for e in any_db.list_expenses()] == [second, first, older]

    def test_salary_payment_filters(self, any_db):
        employee_id = any_db.create_employee("Ravi", "Helper", Decimal("9000"))
        for amount, month in (("500", "May"), ("750", "June"), ("500", "June")):
            any_db.create_salary_payment(
                employee_id=employee_id,
                amount=Decimal(amount),
                payment_type=entities.PaymentType.ADVANCE,
                payment_method=entities.PaymentMethod.CASH,
                month=month,
                year=2024,
            )

        payments = any_db.list_salary_payments(employee_id=employee_id, amount=Decimal("500"))
        june = any_db.list_salary_payments(month="June", year=2024)

        assert len(payments) == 2
        assert all(isinstance(p, entities.SalaryPayment) for p in payments)
        assert len(june) == 2
        assert len(any_db.list_salary_payments(limit=1)) == 1

    def test_stock_transactions_filtered_by_window(self, any_db):
        stock_id = any_db.create_stock(
            "Milk", "Dairy", "litre", Decimal("10"), Decimal("50"), Decimal("60"), Decimal("5")
        )
        base = datetime(2024, 6, 1, 8, 0, tzinfo=UTC)
        for hours, kind in ((0, entities.StockTransactionType.USE), (2, entities.StockTransactionType.PURCHASE), (4, entities.StockTransactionType.USE)):
            any_db.create_stock_transaction(
                stock_id, kind, Decimal("1"), created_at=base + timedelta(hours=hours)
            )

        uses = any_db.list_stock_transactions(
            stock_id=stock_id, transaction_type=entities.StockTransactionType.USE
        )
        window = any_db.list_stock_transactions(since=base + timedelta(hours=1))

        assert len(uses) == 2
        assert [t.created_at for t in window] == [base + timedelta(hours=4), base + timedelta(hours=2)]
        assert any_db.delete_stock_transactions(stock_id) == 3

    def test_transaction_rolls_back_on_error(self, any_db):
        with pytest.raises(RuntimeError):
            with any_db.transaction():
                any_db.create_employee("Ravi", "Helper", Decimal("9000"))
                raise RuntimeError("abort")

        assert any_db.list_employees() == []

    def test_nested_transaction_joins_outer(self, any_db):
        with pytest.raises(RuntimeError):
            with any_db.transaction():
                any_db.create_employee("Ravi", "Helper", Decimal("9000"))
                with any_db.transaction():
                    any_db.create_employee("Sita", "Tea Master", Decimal("12000"))
                raise RuntimeError("abort")

        assert any_db.list_employees() == []


class TestChangeFeed:
    """Committed writes are published to subscribers."""

    def test_subscriber_sees_insert_update_delete(self, any_db):
        events = []
        any_db.subscribe("expenses", lambda c, a, i: events.append((c, a, i)))

        expense_id = any_db.create_expense(
            date=date(2024, 6, 1), expense_type="Milk", amount=Decimal("5"),
            payment_method=entities.PaymentMethod.CASH,
        )
        any_db.update_expense(expense_id, notes="x")
        any_db.delete_expense(expense_id)

        assert events == [
            ("expenses", "insert", expense_id),
            ("expenses", "update", expense_id),
            ("expenses", "delete", expense_id),
        ]

    def test_events_held_until_commit_and_dropped_on_rollback(self, any_db):
        events = []
        any_db.subscribe("employees", lambda c, a, i: events.append(a))

        with any_db.transaction():
            any_db.create_employee("Ravi", "Helper", Decimal("9000"))
            assert events == []
        assert events == ["insert"]

        with pytest.raises(RuntimeError):
            with any_db.transaction():
                any_db.create_employee("Sita", "Tea Master", Decimal("12000"))
                raise RuntimeError("abort")
        assert events == ["insert"]

    def test_unsubscribe(self, any_db):
        events = []
        unsubscribe = any_db.subscribe("employees", lambda c, a, i: events.append(a))
        unsubscribe()

        any_db.create_employee("Ravi", "Helper", Decimal("9000"))

        assert events == []

    def test_salary_payment_delete_publishes_unlinked_expenses(self, any_db):
        employee_id = any_db.create_employee("Ravi", "Helper", Decimal("9000"))
        payment_id = any_db.create_salary_payment(
            employee_id, Decimal("9000"), entities.PaymentType.SALARY,
            entities.PaymentMethod.CASH, "June", 2024,
        )
        expense_id = any_db.create_expense(
            date=date(2024, 6, 1), expense_type="Salary", amount=Decimal("9000"),
            payment_method=entities.PaymentMethod.CASH, is_salary_payment=True,
            employee_id=employee_id, salary_payment_id=payment_id,
        )
        events = []
        any_db.subscribe("expenses", lambda c, a, i: events.append((c, a, i)))
        any_db.subscribe("salary_payments", lambda c, a, i: events.append((c, a, i)))

        any_db.delete_salary_payment(payment_id)

        assert ("salary_payments", "delete", payment_id) in events
        assert ("expenses", "update", expense_id) in events
        assert any_db.get_expense(expense_id).salary_payment_id is None

    def test_unknown_collection(self, any_db):
        with pytest.raises(ValueError, match="Unknown collection"):
            any_db.subscribe("accounts", lambda c, a, i: None)


class TestDocumentPersistence:
    """The document store survives a reconnect through its JSON file."""

    def test_reload_from_file(self, temp_document_db):
        employee_id = temp_document_db.create_employee("Ravi", "Helper", Decimal("9000.50"))
        temp_document_db.create_cash_flow(date(2024, 6, 1), cash_sales=Decimal("10"))
        temp_document_db.disconnect()

        reopened = create_document_database(temp_document_db.database_path)
        reopened.connect()

        employee = reopened.get_employee(employee_id)
        assert employee.monthly_salary == Decimal("9000.50")
        assert employee.created_at.tzinfo is not None
        assert reopened.get_cash_flow(date(2024, 6, 1)).cash_sales == Decimal("10")
        # IDs continue from the stored counters
        assert reopened.create_employee("Sita", "Tea Master", Decimal("1")) == employee_id + 1

    def test_rolled_back_transaction_not_written(self, temp_document_db):
        with pytest.raises(RuntimeError):
            with temp_document_db.transaction():
                temp_document_db.create_employee("Ravi", "Helper", Decimal("9000"))
                raise RuntimeError("abort")

        reopened = create_document_database(temp_document_db.database_path)
        reopened.connect()
        assert reopened.list_employees() == []

    def test_corrupt_file_raises_storage_error(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(StorageError, match="Could not read document store"):
            create_document_database(str(path)).connect()

    def test_memory_only_store(self):
        db = create_document_database()
        db.connect()
        db.initialize_schema()

        assert db.create_employee("Ravi", "Helper", Decimal("1")) == 1

    def test_two_handles_on_one_file_keep_each_others_writes(self, tmp_path):
        path = str(tmp_path / "shared.json")
        first = create_document_database(path)
        second = create_document_database(path)
        for db in (first, second):
            db.connect()
            db.initialize_schema()

        first_stock = StockService(first)
        second_stock = StockService(second)
        stock_id = first_stock.add_stock(
            "Tea Leaves", "Tea", "kg", Decimal("10"), Decimal("400"), Decimal("0")
        )
        first_stock.update_stock(stock_id, StockTransactionType.PURCHASE, Decimal("5"))
        first.create_expense(
            date=date(2024, 6, 1), expense_type="Milk", amount=Decimal("50"),
            payment_method=entities.PaymentMethod.CASH,
        )
        # second has not read the file since connecting
        second_stock.update_stock(stock_id, StockTransactionType.PURCHASE, Decimal("2"))

        reopened = create_document_database(path)
        reopened.connect()
        item = reopened.get_stock(stock_id)
        assert item.purchased_qty == Decimal("7")
        assert item.closing_stock == Decimal("17")
        assert len(reopened.list_stock_transactions(stock_id=stock_id)) == 2
        assert len(reopened.list_expenses()) == 1

    def test_reads_pick_up_other_handles_writes(self, tmp_path):
        path = str(tmp_path / "shared.json")
        first = create_document_database(path)
        second = create_document_database(path)
        for db in (first, second):
            db.connect()
            db.initialize_schema()

        employee_id = first.create_employee("Ravi", "Helper", Decimal("9000"))

        assert second.get_employee(employee_id).name == "Ravi"

    def test_write_waits_for_lock_then_fails(self, tmp_path):
        path = str(tmp_path / "shared.json")
        db = create_document_database(path, lock_timeout=0.1)
        db.connect()
        db.initialize_schema()

        with FileLock(path + ".lock"):
            with pytest.raises(StorageError, match="locked by another process"):
                db.create_employee("Ravi", "Helper", Decimal("9000"))

        assert db.list_employees() == []


class TestStorageErrors:
    """Driver failures reach callers as StorageError."""

    def test_sql_read_failure_wrapped(self, temp_db):
        temp_db._get_session().execute(text("DROP TABLE daily_cash_flow"))
        temp_db._get_session().commit()

        with pytest.raises(StorageError, match="get_cash_flow"):
            temp_db.get_cash_flow(date(2024, 6, 1))

    def test_session_usable_after_failed_read(self, temp_db):
        temp_db._get_session().execute(text("DROP TABLE daily_cash_flow"))
        temp_db._get_session().commit()

        with pytest.raises(StorageError):
            temp_db.list_cash_flows()

        assert temp_db.create_employee("Ravi", "Helper", Decimal("9000")) == 1
