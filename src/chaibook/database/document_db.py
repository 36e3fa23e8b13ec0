"""Document-collection database implementation.

Each collection is a mapping of integer IDs to plain dict documents. When a
path is given the store is shared through a single JSON file: every write,
and every outermost ``transaction()``, holds an inter-process file lock,
reloads the file, applies the change and writes the file back before the
lock is released. Reads reload the file when another process has replaced
it. ``transaction()`` also snapshots the collections so a failing block
leaves no trace.
"""

import copy
import json
import os
import threading
from contextlib import contextmanager
from datetime import date, datetime, UTC
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Iterator, Optional

from filelock import FileLock, Timeout

from chaibook.database.base import (
    CASH_FLOW,
    CASH_FLOW_FIELDS,
    COLLECTIONS,
    EMPLOYEE_FIELDS,
    EMPLOYEES,
    EXPENSE_FIELDS,
    EXPENSES,
    SALARY_PAYMENTS,
    STOCK,
    STOCK_FIELDS,
    STOCK_TRANSACTIONS,
    SUPPLIER_FIELDS,
    SUPPLIERS,
    Database,
    check_fields,
)
from chaibook.database.mappers import (
    as_utc,
    cash_flow_from_document,
    employee_from_document,
    expense_from_document,
    salary_payment_from_document,
    stock_from_document,
    stock_transaction_from_document,
    supplier_from_document,
)
from chaibook.domain.entities import (
    CashFlowEntry,
    Employee,
    Expense,
    PaymentMethod,
    PaymentType,
    SalaryPayment,
    StockItem,
    StockTransaction,
    StockTransactionType,
    Supplier,
)
from chaibook.domain.errors import StorageError

ZERO = Decimal("0")
DEFAULT_LOCK_TIMEOUT = 10.0
Document = dict[str, Any]


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _encode(value: Any) -> Any:
    """Tag values JSON cannot represent natively."""
    if isinstance(value, Decimal):
        return {"$decimal": str(value)}
    if isinstance(value, datetime):
        return {"$datetime": value.isoformat()}
    if isinstance(value, date):
        return {"$date": value.isoformat()}
    if isinstance(value, dict):
        return {k: _encode(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_encode(v) for v in value]
    return value


def _decode(value: Any) -> Any:
    if isinstance(value, dict):
        if "$decimal" in value:
            return Decimal(value["$decimal"])
        if "$datetime" in value:
            return as_utc(datetime.fromisoformat(value["$datetime"]))
        if "$date" in value:
            return date.fromisoformat(value["$date"])
        return {k: _decode(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_decode(v) for v in value]
    return value


class DocumentDatabase(Database):
    """Document-store implementation of Database interface."""

    def __init__(self, path: Optional[str] = None, lock_timeout: float = DEFAULT_LOCK_TIMEOUT):
        """Initialize document database.

        Args:
            path: JSON file backing the store. If None, the store lives only in
                memory for the life of the object.
            lock_timeout: Seconds to wait for another process to release the
                store before a write fails
        """
        super().__init__()
        self.path = path
        self.lock_timeout = lock_timeout
        self._lock = threading.RLock()
        self._file_lock = FileLock(path + ".lock") if path is not None else None
        self._write_depth = 0
        self._tx_depth = 0
        self._loaded_stamp: Optional[tuple[int, int]] = None
        self._collections: dict[str, dict[int, Document]] = {}
        self._counters: dict[str, int] = {}
        self._reset()

    def _reset(self) -> None:
        self._collections = {name: {} for name in COLLECTIONS}
        self._counters = {name: 0 for name in COLLECTIONS}

    def _stamp(self) -> Optional[tuple[int, int]]:
        try:
            stat = os.stat(self.path)
        except FileNotFoundError:
            return None
        return stat.st_mtime_ns, stat.st_size

    def _load(self) -> None:
        """Replace the in-memory collections with the file's contents."""
        stamp = self._stamp()
        if stamp is None:
            self._reset()
            self._loaded_stamp = None
            return
        try:
            with open(self.path, encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Could not read document store '{self.path}': {e}") from e
        self._reset()
        for name in COLLECTIONS:
            docs = raw.get("collections", {}).get(name, {})
            self._collections[name] = {int(k): _decode(v) for k, v in docs.items()}
            self._counters[name] = int(raw.get("counters", {}).get(name, 0))
        self._loaded_stamp = stamp

    def _refresh(self) -> None:
        """Pick up changes other processes wrote since the last load."""
        if self.path is None or self._write_depth:
            return
        if self._stamp() != self._loaded_stamp:
            self._load()

    @contextmanager
    def _writing(self) -> Iterator[None]:
        """Hold the store for a write, starting from the file's current contents."""
        with self._lock:
            outermost = self._write_depth == 0 and self._file_lock is not None
            if outermost:
                try:
                    self._file_lock.acquire(timeout=self.lock_timeout)
                except Timeout as e:
                    raise StorageError(
                        f"Document store '{self.path}' is locked by another process"
                    ) from e
            try:
                if outermost:
                    self._load()
                self._write_depth += 1
                try:
                    yield
                finally:
                    self._write_depth -= 1
            finally:
                if outermost:
                    self._file_lock.release()

    def connect(self) -> None:
        """Load the store from its file, if one exists."""
        if self.path is None:
            return
        with self._lock:
            self._load()

    def disconnect(self) -> None:
        """Nothing to release; every commit is already on disk."""
        pass

    def initialize_schema(self) -> None:
        """Collections are created on demand."""
        with self._lock:
            for name in COLLECTIONS:
                self._collections.setdefault(name, {})
                self._counters.setdefault(name, 0)

    def _flush(self) -> None:
        """Write the store to disk unless a transaction is still open."""
        if self.path is None or self._tx_depth:
            return
        raw = {
            "collections": {
                name: {str(k): _encode(v) for k, v in docs.items()}
                for name, docs in self._collections.items()
            },
            "counters": self._counters,
        }
        target = Path(self.path)
        tmp = target.with_name(target.name + ".tmp")
        try:
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(raw, f, indent=2)
            os.replace(tmp, target)
        except OSError as e:
            raise StorageError(f"Could not write document store '{self.path}': {e}") from e
        self._loaded_stamp = self._stamp()

    @property
    def supports_transactions(self) -> bool:
        return True

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Apply every write in the block, or none of them."""
        with self._writing():
            outermost = self._tx_depth == 0
            if outermost:
                snapshot = (copy.deepcopy(self._collections), dict(self._counters))
                self._hold_events()
            self._tx_depth += 1
            try:
                yield
            except Exception:
                self._tx_depth -= 1
                if outermost:
                    self._collections, self._counters = snapshot
                    self._drop_events()
                raise
            self._tx_depth -= 1
            if outermost:
                try:
                    self._flush()
                except StorageError:
                    self._collections, self._counters = snapshot
                    self._drop_events()
                    raise
        if outermost:
            self._release_events()

    # Generic document helpers
    def _insert(self, collection: str, doc: Document) -> int:
        with self._writing():
            self._counters[collection] += 1
            doc_id = self._counters[collection]
            self._collections[collection][doc_id] = {"id": doc_id, **doc}
            self._flush()
        self._publish(collection, "insert", doc_id)
        return doc_id

    def _patch(self, collection: str, doc_id: int, fields: Document, label: str) -> None:
        with self._writing():
            doc = self._collections[collection].get(doc_id)
            if doc is None:
                raise StorageError(f"{label} {doc_id} not found")
            doc.update({k: _plain(v) for k, v in fields.items()})
            self._flush()
        self._publish(collection, "update", doc_id)

    def _remove(self, collection: str, doc_id: int, label: str) -> None:
        with self._writing():
            if self._collections[collection].pop(doc_id, None) is None:
                raise StorageError(f"{label} {doc_id} not found")
            self._flush()
        self._publish(collection, "delete", doc_id)

    def _get(self, collection: str, doc_id: int) -> Optional[Document]:
        with self._lock:
            self._refresh()
            doc = self._collections[collection].get(doc_id)
            return dict(doc) if doc is not None else None

    def _find(
        self,
        collection: str,
        predicate: Callable[[Document], bool] = lambda doc: True,
    ) -> list[Document]:
        with self._lock:
            self._refresh()
            return [dict(doc) for doc in self._collections[collection].values() if predicate(doc)]

    # Daily cash flow operations
    def get_cash_flow(self, entry_date: date) -> Optional[CashFlowEntry]:
        """Get the daily entry for a date."""
        docs = self._find(CASH_FLOW, lambda d: d["date"] == entry_date)
        return cash_flow_from_document(docs[0]) if docs else None

    def get_previous_cash_flow(self, entry_date: date) -> Optional[CashFlowEntry]:
        """Get the latest daily entry strictly before a date."""
        docs = self._find(CASH_FLOW, lambda d: d["date"] < entry_date)
        if not docs:
            return None
        return cash_flow_from_document(max(docs, key=lambda d: d["date"]))

    def list_cash_flows(
        self, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> list[CashFlowEntry]:
        """List daily entries in a date range, newest first."""
        docs = self._find(
            CASH_FLOW,
            lambda d: (start_date is None or d["date"] >= start_date)
            and (end_date is None or d["date"] <= end_date),
        )
        docs.sort(key=lambda d: d["date"], reverse=True)
        return [cash_flow_from_document(d) for d in docs]

    def create_cash_flow(
        self, entry_date: date, created_at: Optional[datetime] = None, **fields: Any
    ) -> int:
        """Create a daily entry. Returns entry ID."""
        check_fields(fields, CASH_FLOW_FIELDS)
        with self._writing():
            if self._find(CASH_FLOW, lambda d: d["date"] == entry_date):
                raise StorageError(f"Daily entry for {entry_date} already exists")
            created_at = created_at or datetime.now(UTC)
            doc = {name: fields.get(name, ZERO) for name in CASH_FLOW_FIELDS - {"notes"}}
            doc.update(
                date=entry_date,
                notes=fields.get("notes"),
                created_at=created_at,
                updated_at=created_at,
            )
            return self._insert(CASH_FLOW, doc)

    def update_cash_flow(
        self, entry_id: int, updated_at: Optional[datetime] = None, **fields: Any
    ) -> None:
        """Partially update a daily entry."""
        check_fields(fields, CASH_FLOW_FIELDS)
        self._patch(
            CASH_FLOW,
            entry_id,
            {**fields, "updated_at": updated_at or datetime.now(UTC)},
            "Daily entry",
        )

    def delete_cash_flow(self, entry_date: date) -> bool:
        """Delete the daily entry for a date."""
        with self._writing():
            docs = self._find(CASH_FLOW, lambda d: d["date"] == entry_date)
            if not docs:
                return False
            self._remove(CASH_FLOW, docs[0]["id"], "Daily entry")
            return True

    # Expense operations
    def create_expense(
        self,
        date: date,
        expense_type: str,
        amount: Decimal,
        payment_method: PaymentMethod,
        vendor_name: Optional[str] = None,
        notes: Optional[str] = None,
        is_salary_payment: bool = False,
        employee_id: Optional[int] = None,
        salary_payment_id: Optional[int] = None,
        created_at: Optional[datetime] = None,
    ) -> int:
        """Create an expense. Returns expense ID."""
        return self._insert(
            EXPENSES,
            {
                "date": date,
                "expense_type": expense_type,
                "amount": amount,
                "payment_method": _plain(payment_method),
                "vendor_name": vendor_name,
                "notes": notes,
                "is_salary_payment": is_salary_payment,
                "employee_id": employee_id,
                "salary_payment_id": salary_payment_id,
                "created_at": created_at or datetime.now(UTC),
            },
        )

    def get_expense(self, expense_id: int) -> Optional[Expense]:
        """Get expense by ID."""
        doc = self._get(EXPENSES, expense_id)
        return expense_from_document(doc) if doc is not None else None

    def list_expenses(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[Expense]:
        """List expenses in a date range, newest first."""
        docs = self._find(
            EXPENSES,
            lambda d: (start_date is None or d["date"] >= start_date)
            and (end_date is None or d["date"] <= end_date),
        )
        docs.sort(key=lambda d: (d["date"], d["created_at"], d["id"]), reverse=True)
        return [expense_from_document(d) for d in docs]

    def update_expense(self, expense_id: int, **fields: Any) -> None:
        """Partially update an expense."""
        check_fields(fields, EXPENSE_FIELDS)
        self._patch(EXPENSES, expense_id, fields, "Expense")

    def delete_expense(self, expense_id: int) -> None:
        """Delete an expense."""
        self._remove(EXPENSES, expense_id, "Expense")

    # Employee operations
    def create_employee(
        self,
        name: str,
        role: str,
        monthly_salary: Decimal,
        created_at: Optional[datetime] = None,
    ) -> int:
        """Create an employee. Returns employee ID."""
        return self._insert(
            EMPLOYEES,
            {
                "name": name,
                "role": role,
                "monthly_salary": monthly_salary,
                "advance_given": ZERO,
                "is_active": True,
                "created_at": created_at or datetime.now(UTC),
            },
        )

    def get_employee(self, employee_id: int) -> Optional[Employee]:
        """Get employee by ID."""
        doc = self._get(EMPLOYEES, employee_id)
        return employee_from_document(doc) if doc is not None else None

    def list_employees(self, include_inactive: bool = True) -> list[Employee]:
        """List employees ordered by name."""
        docs = self._find(EMPLOYEES, lambda d: include_inactive or d["is_active"])
        docs.sort(key=lambda d: (d["name"], d["id"]))
        return [employee_from_document(d) for d in docs]

    def update_employee(self, employee_id: int, **fields: Any) -> None:
        """Partially update an employee."""
        check_fields(fields, EMPLOYEE_FIELDS)
        self._patch(EMPLOYEES, employee_id, fields, "Employee")

    # Salary payment operations
    def create_salary_payment(
        self,
        employee_id: int,
        amount: Decimal,
        payment_type: PaymentType,
        payment_method: PaymentMethod,
        month: str,
        year: int,
        notes: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> int:
        """Create a salary payment. Returns payment ID."""
        return self._insert(
            SALARY_PAYMENTS,
            {
                "employee_id": employee_id,
                "amount": amount,
                "payment_type": _plain(payment_type),
                "payment_method": _plain(payment_method),
                "month": month,
                "year": year,
                "notes": notes,
                "created_at": created_at or datetime.now(UTC),
            },
        )

    def get_salary_payment(self, payment_id: int) -> Optional[SalaryPayment]:
        """Get salary payment by ID."""
        doc = self._get(SALARY_PAYMENTS, payment_id)
        return salary_payment_from_document(doc) if doc is not None else None

    def list_salary_payments(
        self,
        employee_id: Optional[int] = None,
        amount: Optional[Decimal] = None,
        month: Optional[str] = None,
        year: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> list[SalaryPayment]:
        """List salary payments matching all given filters, newest first."""
        docs = self._find(
            SALARY_PAYMENTS,
            lambda d: (employee_id is None or d["employee_id"] == employee_id)
            and (amount is None or d["amount"] == amount)
            and (month is None or d["month"] == month)
            and (year is None or d["year"] == year),
        )
        docs.sort(key=lambda d: (d["created_at"], d["id"]), reverse=True)
        if limit is not None:
            docs = docs[:limit]
        return [salary_payment_from_document(d) for d in docs]

    def delete_salary_payment(self, payment_id: int) -> None:
        """Delete a salary payment and clear expense back-references to it."""
        with self._writing():
            if self._collections[SALARY_PAYMENTS].pop(payment_id, None) is None:
                raise StorageError(f"Salary payment {payment_id} not found")
            cleared = [
                doc_id
                for doc_id, doc in self._collections[EXPENSES].items()
                if doc.get("salary_payment_id") == payment_id
            ]
            for doc_id in cleared:
                self._collections[EXPENSES][doc_id]["salary_payment_id"] = None
            self._flush()
        self._publish(SALARY_PAYMENTS, "delete", payment_id)
        for doc_id in cleared:
            self._publish(EXPENSES, "update", doc_id)

    # Supplier operations
    def create_supplier(
        self,
        name: str,
        contact_person: Optional[str] = None,
        phone: Optional[str] = None,
        email: Optional[str] = None,
        address: Optional[str] = None,
        notes: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> int:
        """Create an active supplier. Returns supplier ID."""
        created_at = created_at or datetime.now(UTC)
        return self._insert(
            SUPPLIERS,
            {
                "name": name,
                "contact_person": contact_person,
                "phone": phone,
                "email": email,
                "address": address,
                "notes": notes,
                "is_active": True,
                "created_at": created_at,
                "updated_at": created_at,
            },
        )

    def get_supplier(self, supplier_id: int) -> Optional[Supplier]:
        """Get supplier by ID."""
        doc = self._get(SUPPLIERS, supplier_id)
        return supplier_from_document(doc) if doc is not None else None

    def list_suppliers(self, include_inactive: bool = True) -> list[Supplier]:
        """List suppliers ordered by name."""
        docs = self._find(SUPPLIERS, lambda d: include_inactive or d["is_active"])
        docs.sort(key=lambda d: (d["name"], d["id"]))
        return [supplier_from_document(d) for d in docs]

    def update_supplier(
        self, supplier_id: int, updated_at: Optional[datetime] = None, **fields: Any
    ) -> None:
        """Partially update a supplier."""
        check_fields(fields, SUPPLIER_FIELDS)
        self._patch(
            SUPPLIERS,
            supplier_id,
            {**fields, "updated_at": updated_at or datetime.now(UTC)},
            "Supplier",
        )

    # Stock operations
    def create_stock(
        self,
        product_name: str,
        category: str,
        unit: str,
        opening_stock: Decimal,
        purchase_price: Decimal,
        selling_price: Decimal,
        low_stock_threshold: Decimal,
        vendor: Optional[str] = None,
        expiry_date: Optional[date] = None,
        supplier_id: Optional[int] = None,
        created_at: Optional[datetime] = None,
    ) -> int:
        """Create a stock item. Returns stock ID."""
        return self._insert(
            STOCK,
            {
                "product_name": product_name,
                "category": category,
                "vendor": vendor,
                "supplier_id": supplier_id,
                "unit": unit,
                "opening_stock": opening_stock,
                "purchased_qty": ZERO,
                "used_sold_qty": ZERO,
                "closing_stock": opening_stock,
                "purchase_price": purchase_price,
                "selling_price": selling_price,
                "low_stock_threshold": low_stock_threshold,
                "expiry_date": expiry_date,
                "created_at": created_at or datetime.now(UTC),
            },
        )

    def get_stock(self, stock_id: int, for_update: bool = False) -> Optional[StockItem]:
        """Get stock item by ID.

        Row locking is implicit: transaction() holds the store's file lock.
        """
        doc = self._get(STOCK, stock_id)
        return stock_from_document(doc) if doc is not None else None

    def list_stock(self, supplier_id: Optional[int] = None) -> list[StockItem]:
        """List stock items ordered by category, then product name."""
        docs = self._find(
            STOCK, lambda d: supplier_id is None or d.get("supplier_id") == supplier_id
        )
        docs.sort(key=lambda d: (d["category"], d["product_name"], d["id"]))
        return [stock_from_document(d) for d in docs]

    def update_stock_fields(self, stock_id: int, **fields: Any) -> None:
        """Partially update a stock item."""
        check_fields(fields, STOCK_FIELDS)
        self._patch(STOCK, stock_id, fields, "Stock item")

    def delete_stock(self, stock_id: int) -> None:
        """Delete a stock item."""
        self._remove(STOCK, stock_id, "Stock item")

    # Stock transaction operations
    def create_stock_transaction(
        self,
        stock_id: int,
        transaction_type: StockTransactionType,
        quantity: Decimal,
        notes: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> int:
        """Append a stock transaction. Returns transaction ID."""
        return self._insert(
            STOCK_TRANSACTIONS,
            {
                "stock_id": stock_id,
                "transaction_type": _plain(transaction_type),
                "quantity": quantity,
                "notes": notes,
                "created_at": created_at or datetime.now(UTC),
            },
        )

    def list_stock_transactions(
        self,
        stock_id: Optional[int] = None,
        transaction_type: Optional[StockTransactionType] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> list[StockTransaction]:
        """List stock transactions matching all given filters, newest first."""
        wanted_type = _plain(transaction_type)
        docs = self._find(
            STOCK_TRANSACTIONS,
            lambda d: (stock_id is None or d["stock_id"] == stock_id)
            and (wanted_type is None or d["transaction_type"] == wanted_type)
            and (since is None or d["created_at"] >= since)
            and (until is None or d["created_at"] <= until),
        )
        docs.sort(key=lambda d: (d["created_at"], d["id"]), reverse=True)
        if limit is not None:
            docs = docs[:limit]
        return [stock_transaction_from_document(d) for d in docs]

    def delete_stock_transactions(self, stock_id: int) -> int:
        """Delete every transaction of a stock item in one batch."""
        with self._writing():
            ids = [
                doc_id
                for doc_id, doc in self._collections[STOCK_TRANSACTIONS].items()
                if doc["stock_id"] == stock_id
            ]
            for doc_id in ids:
                del self._collections[STOCK_TRANSACTIONS][doc_id]
            if ids:
                self._flush()
        for doc_id in ids:
            self._publish(STOCK_TRANSACTIONS, "delete", doc_id)
        return len(ids)
