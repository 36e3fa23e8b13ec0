"""Tests for database mappers."""

from datetime import date, datetime, UTC
from decimal import Decimal

from chaibook.database.mappers import (
    as_utc,
    cash_flow_to_domain,
    expense_from_document,
    expense_to_domain,
    salary_payment_to_domain,
    stock_from_document,
    stock_transaction_to_domain,
    supplier_from_document,
    supplier_to_domain,
)
from chaibook.database.models import (
    DailyCashFlow as ORMDailyCashFlow,
    Expense as ORMExpense,
    SalaryPayment as ORMSalaryPayment,
    StockTransaction as ORMStockTransaction,
    Supplier as ORMSupplier,
)
from chaibook.domain.entities import (
    CashFlowEntry,
    Expense,
    PaymentMethod,
    PaymentType,
    StockTransactionType,
)


def test_as_utc_marks_naive_values():
    naive = datetime(2024, 6, 1, 10, 0)

    assert as_utc(naive) == datetime(2024, 6, 1, 10, 0, tzinfo=UTC)
    assert as_utc(None) is None


def test_cash_flow_to_domain():
    created = datetime(2024, 6, 1, 21, 0)
    orm_entry = ORMDailyCashFlow(
        id=3,
        date=date(2024, 6, 1),
        opening_cash=Decimal("500.00"),
        cash_sales=Decimal("200.00"),
        online_sales=Decimal("0"),
        cash_expenses=Decimal("100.00"),
        online_expenses=Decimal("0"),
        total_expenses=Decimal("100.00"),
        closing_cash=Decimal("600.00"),
        daily_sales=Decimal("200.00"),
        daily_profit=Decimal("100.00"),
        expected_closing_cash=Decimal("600.00"),
        notes=None,
        created_at=created,
        updated_at=created,
    )

    entry = cash_flow_to_domain(orm_entry)

    assert isinstance(entry, CashFlowEntry)
    assert entry.expected_closing_cash == Decimal("600.00")
    assert entry.cash_mismatch is False
    assert entry.created_at.tzinfo is UTC


def test_expense_to_domain_converts_enums():
    orm_expense = ORMExpense(
        id=1,
        date=date(2024, 6, 1),
        expense_type="Salary",
        amount=Decimal("9000.00"),
        payment_method="Online",
        is_salary_payment=True,
        employee_id=2,
        salary_payment_id=5,
        created_at=datetime(2024, 6, 1, 9, 0, tzinfo=UTC),
    )

    expense = expense_to_domain(orm_expense)

    assert isinstance(expense, Expense)
    assert expense.payment_method == PaymentMethod.ONLINE
    assert expense.salary_payment_id == 5


def test_salary_payment_to_domain():
    orm_payment = ORMSalaryPayment(
        id=4,
        employee_id=2,
        amount=Decimal("500.00"),
        payment_type="Advance",
        payment_method="Cash",
        month="June",
        year=2024,
        created_at=datetime(2024, 6, 1, 9, 0),
    )

    payment = salary_payment_to_domain(orm_payment)

    assert payment.payment_type == PaymentType.ADVANCE
    assert payment.payment_method == PaymentMethod.CASH


def test_stock_transaction_to_domain():
    orm_txn = ORMStockTransaction(
        id=1,
        stock_id=7,
        transaction_type="use",
        quantity=Decimal("1.500"),
        created_at=datetime(2024, 6, 1, 9, 0),
    )

    txn = stock_transaction_to_domain(orm_txn)

    assert txn.transaction_type == StockTransactionType.USE
    assert txn.quantity == Decimal("1.5")


def test_expense_from_document():
    expense = expense_from_document(
        {
            "id": 1,
            "date": date(2024, 6, 1),
            "expense_type": "Milk",
            "amount": Decimal("120"),
            "payment_method": "Cash",
            "vendor_name": None,
            "notes": None,
            "is_salary_payment": False,
            "employee_id": None,
            "salary_payment_id": None,
            "created_at": datetime(2024, 6, 1, 9, 0, tzinfo=UTC),
        }
    )

    assert expense.payment_method == PaymentMethod.CASH


def test_supplier_to_domain():
    orm_supplier = ORMSupplier(
        id=3,
        name="Amul Dairy",
        contact_person=None,
        phone="98250 12345",
        email=None,
        address=None,
        notes=None,
        is_active=1,
        created_at=datetime(2024, 6, 1, 9, 0),
        updated_at=datetime(2024, 6, 2, 9, 0),
    )

    supplier = supplier_to_domain(orm_supplier)

    assert supplier.is_active is True
    assert supplier.updated_at == datetime(2024, 6, 2, 9, 0, tzinfo=UTC)


def test_supplier_from_document():
    supplier = supplier_from_document(
        {
            "id": 3,
            "name": "Amul Dairy",
            "contact_person": "Mr. Shah",
            "phone": None,
            "email": None,
            "address": None,
            "notes": None,
            "is_active": False,
            "created_at": datetime(2024, 6, 1, 9, 0, tzinfo=UTC),
            "updated_at": datetime(2024, 6, 1, 9, 0, tzinfo=UTC),
        }
    )

    assert supplier.contact_person == "Mr. Shah"
    assert supplier.is_active is False


def test_stock_document_without_supplier_link():
    item = stock_from_document(
        {
            "id": 1,
            "product_name": "Milk",
            "category": "Dairy",
            "vendor": "Amul",
            "unit": "litre",
            "opening_stock": Decimal("20"),
            "purchased_qty": Decimal("0"),
            "used_sold_qty": Decimal("0"),
            "closing_stock": Decimal("20"),
            "purchase_price": Decimal("56"),
            "selling_price": Decimal("0"),
            "low_stock_threshold": Decimal("5"),
            "expiry_date": None,
            "created_at": datetime(2024, 6, 1, 9, 0, tzinfo=UTC),
        }
    )

    assert item.supplier_id is None
    assert item.vendor == "Amul"
