"""Stock domain service."""

from collections import defaultdict
from datetime import date, datetime, timedelta, UTC
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Callable, Optional

from chaibook.config.logging import get_logger
from chaibook.database.base import Database
from chaibook.domain import cache as tags
from chaibook.domain.cache import QueryCache, cached, invalidate
from chaibook.domain.calculations import (
    ZERO,
    apply_stock_movement,
    closing_stock,
    local_date,
)
from chaibook.domain.entities import (
    StockAlert,
    StockAlertType,
    StockItem,
    StockTransaction,
    StockTransactionType,
    Supplier,
)
from chaibook.domain.errors import (
    NotFoundError,
    ValidationError,
    must_be_positive,
    stock_not_found,
    supplier_not_found,
)

logger = get_logger(__name__)

DEFAULT_LOW_STOCK_THRESHOLD = Decimal("10")
DEFAULT_EXPIRY_WARNING_DAYS = 7


class StockService:
    """Service for stock items, their movements and alerts."""

    def __init__(
        self,
        db: Database,
        cache: Optional[QueryCache] = None,
        clock: Optional[Callable[[], datetime]] = None,
        expiry_warning_days: int = DEFAULT_EXPIRY_WARNING_DAYS,
    ):
        """Initialize stock service.

        Args:
            db: Database instance
            cache: Optional shared query cache to invalidate on writes
            clock: Returns the current UTC time; defaults to the system clock
            expiry_warning_days: How far ahead an expiry date raises an alert
        """
        self.db = db
        self.cache = cache
        self.clock = clock or (lambda: datetime.now(UTC))
        self.expiry_warning_days = expiry_warning_days

    def add_stock(
        self,
        product_name: str,
        category: str,
        unit: str,
        opening_stock: Decimal,
        purchase_price: Decimal,
        selling_price: Decimal,
        low_stock_threshold: Decimal = DEFAULT_LOW_STOCK_THRESHOLD,
        vendor: Optional[str] = None,
        expiry_date: Optional[date] = None,
        supplier_id: Optional[int] = None,
    ) -> int:
        """Add a stock item with no movements yet.

        Returns:
            Stock item ID

        Raises:
            NotFoundError: If supplier_id names no supplier
            ValidationError: If the name is blank or a quantity or price is negative
        """
        if not product_name or not product_name.strip():
            raise ValidationError("Product name cannot be empty")
        for name, value in (
            ("Opening stock", opening_stock),
            ("Purchase price", purchase_price),
            ("Selling price", selling_price),
            ("Low stock threshold", low_stock_threshold),
        ):
            if value < 0:
                raise ValidationError(f"{name} cannot be negative")
        if supplier_id is not None:
            self._check_supplier(supplier_id)

        stock_id = self.db.create_stock(
            product_name=product_name.strip(),
            category=category,
            unit=unit,
            opening_stock=opening_stock,
            purchase_price=purchase_price,
            selling_price=selling_price,
            low_stock_threshold=low_stock_threshold,
            vendor=vendor or None,
            expiry_date=expiry_date,
            supplier_id=supplier_id,
            created_at=self.clock(),
        )
        logger.info("stock_added", stock_id=stock_id, product_name=product_name)
        invalidate(self.cache, tags.STOCK_TAGS)
        return stock_id

    def _check_supplier(self, supplier_id: int) -> None:
        supplier = self.db.get_supplier(supplier_id)
        if supplier is None:
            raise NotFoundError(supplier_not_found(supplier_id))
        if not supplier.is_active:
            raise ValidationError(f"Supplier {supplier_id} is inactive")

    def supplier_of(self, item: StockItem) -> Optional[Supplier]:
        """The item's linked supplier, if any."""
        if item.supplier_id is None:
            return None
        return self.db.get_supplier(item.supplier_id)

    def get_stock(self, stock_id: int) -> Optional[StockItem]:
        """Get stock item by ID."""
        return self.db.get_stock(stock_id)

    def require_stock(self, stock_id: int) -> StockItem:
        """Get stock item by ID or raise NotFoundError."""
        item = self.db.get_stock(stock_id)
        if item is None:
            raise NotFoundError(stock_not_found(stock_id))
        return item

    def list_stock(self) -> list[StockItem]:
        """List stock items ordered by category, then product name."""
        return cached(self.cache, (tags.STOCK,), self.db.list_stock)

    def edit_stock(self, stock_id: int, **fields: Any) -> StockItem:
        """Edit item details.

        Running quantities cannot be edited directly. Changing opening_stock
        re-derives closing_stock. A supplier_id of None unlinks the supplier.

        Raises:
            NotFoundError: If the item or the linked supplier does not exist
            ValidationError: If a running quantity is named
        """
        blocked = {"purchased_qty", "used_sold_qty", "closing_stock"} & set(fields)
        if blocked:
            raise ValidationError(
                f"{', '.join(sorted(blocked))} can only change through stock transactions"
            )
        item = self.require_stock(stock_id)
        if not fields:
            return item
        if fields.get("supplier_id") is not None:
            self._check_supplier(fields["supplier_id"])
        if "opening_stock" in fields:
            fields["closing_stock"] = closing_stock(
                fields["opening_stock"], item.purchased_qty, item.used_sold_qty
            )
        self.db.update_stock_fields(stock_id, **fields)
        invalidate(self.cache, tags.STOCK_TAGS)
        return self.require_stock(stock_id)

    def update_stock(
        self,
        stock_id: int,
        transaction_type: StockTransactionType,
        quantity: Decimal,
        notes: Optional[str] = None,
    ) -> StockItem:
        """Apply a purchase or use to an item and log it.

        The quantity update and the log append run in one store transaction
        where the backend supports it, so neither is lost or applied twice.

        Args:
            stock_id: Stock item ID
            transaction_type: purchase or use
            quantity: Quantity moved
            notes: Optional notes on the transaction

        Returns:
            The updated stock item

        Raises:
            NotFoundError: If the item does not exist
            ValidationError: If quantity is not positive
        """
        transaction_type = StockTransactionType(transaction_type)
        if quantity <= 0:
            raise ValidationError(must_be_positive("Quantity"))

        if self.db.supports_transactions:
            with self.db.transaction():
                item = self._apply_movement(stock_id, transaction_type, quantity, notes)
        else:
            item = self._apply_movement(stock_id, transaction_type, quantity, notes)

        if item.closing_stock < 0:
            logger.warning(
                "stock_negative",
                stock_id=stock_id,
                closing_stock=str(item.closing_stock),
            )
        logger.info(
            "stock_updated",
            stock_id=stock_id,
            transaction_type=transaction_type.value,
            quantity=str(quantity),
            closing_stock=str(item.closing_stock),
        )
        invalidate(self.cache, tags.STOCK_TAGS)
        return item

    def _apply_movement(
        self,
        stock_id: int,
        transaction_type: StockTransactionType,
        quantity: Decimal,
        notes: Optional[str],
    ) -> StockItem:
        current = self.db.get_stock(stock_id, for_update=True)
        if current is None:
            raise NotFoundError(stock_not_found(stock_id))

        purchased_qty, used_sold_qty = apply_stock_movement(
            current.purchased_qty, current.used_sold_qty, transaction_type, quantity
        )
        self.db.update_stock_fields(
            stock_id,
            purchased_qty=purchased_qty,
            used_sold_qty=used_sold_qty,
            closing_stock=closing_stock(current.opening_stock, purchased_qty, used_sold_qty),
        )
        self.db.create_stock_transaction(
            stock_id=stock_id,
            transaction_type=transaction_type,
            quantity=quantity,
            notes=notes or None,
            created_at=self.clock(),
        )
        return self.db.get_stock(stock_id)

    def delete_stock(self, stock_id: int) -> int:
        """Delete an item together with its transaction log.

        Returns:
            Number of transactions removed

        Raises:
            NotFoundError: If the item does not exist
        """
        self.require_stock(stock_id)
        if self.db.supports_transactions:
            with self.db.transaction():
                removed = self.db.delete_stock_transactions(stock_id)
                self.db.delete_stock(stock_id)
        else:
            removed = self.db.delete_stock_transactions(stock_id)
            self.db.delete_stock(stock_id)
        logger.info("stock_deleted", stock_id=stock_id, transactions_removed=removed)
        invalidate(self.cache, tags.STOCK_TAGS)
        return removed

    def list_transactions(self, stock_id: int, limit: int = 10) -> list[StockTransaction]:
        """Most recent transactions of an item, newest first."""
        self.require_stock(stock_id)
        return self.db.list_stock_transactions(stock_id=stock_id, limit=limit)

    def is_low(self, item: StockItem) -> bool:
        return item.closing_stock <= item.low_stock_threshold

    def is_expiring(self, item: StockItem, today: date) -> bool:
        """True when the expiry date falls before the warning horizon (expired included)."""
        if item.expiry_date is None:
            return False
        return item.expiry_date < today + timedelta(days=self.expiry_warning_days)

    def get_alerts(self, today: Optional[date] = None) -> list[StockAlert]:
        """Derive low-stock and expiry alerts from current stock."""
        today = today or local_date(self.clock())
        return cached(
            self.cache,
            (tags.STOCK_ALERTS, today),
            lambda: self._build_alerts(today),
        )

    def _build_alerts(self, today: date) -> list[StockAlert]:
        alerts = []
        for item in self.db.list_stock():
            if self.is_low(item):
                alerts.append(
                    StockAlert(
                        stock_id=item.id,
                        product_name=item.product_name,
                        alert_type=StockAlertType.LOW_STOCK,
                        message=(
                            f"{item.product_name}: {item.closing_stock} {item.unit} left "
                            f"(threshold {item.low_stock_threshold})"
                        ),
                    )
                )
            if self.is_expiring(item, today):
                verb = "expired on" if item.expiry_date < today else "expires on"
                alerts.append(
                    StockAlert(
                        stock_id=item.id,
                        product_name=item.product_name,
                        alert_type=StockAlertType.EXPIRING_SOON,
                        message=f"{item.product_name} {verb} {item.expiry_date.isoformat()}",
                    )
                )
        return alerts

    def run_expiry_check(self, today: Optional[date] = None) -> list[StockAlert]:
        """Scheduled job: report items that have expired or expire soon.

        Meant to be called by an external scheduler (cron, systemd timer).
        Each alert is logged at warning level and returned.
        """
        today = today or local_date(self.clock())
        expiring = [
            alert
            for alert in self._build_alerts(today)
            if alert.alert_type == StockAlertType.EXPIRING_SOON
        ]
        for alert in expiring:
            logger.warning("stock_expiring", stock_id=alert.stock_id, message=alert.message)
        logger.info("expiry_check_completed", date=today.isoformat(), alerts=len(expiring))
        return expiring

    def get_valuation(self) -> dict[str, Any]:
        """Value of closing stock at purchase and selling prices.

        Returns a dict with total_purchase_value, total_selling_value,
        potential_profit, profit_margin (percent, 2 places) and by_category,
        which maps category to purchase_value, selling_value and items.
        """
        total_purchase = ZERO
        total_selling = ZERO
        by_category: dict[str, dict[str, Any]] = defaultdict(
            lambda: {"purchase_value": ZERO, "selling_value": ZERO, "items": 0}
        )
        for item in self.db.list_stock():
            purchase_value = item.closing_stock * item.purchase_price
            selling_value = item.closing_stock * item.selling_price
            total_purchase += purchase_value
            total_selling += selling_value
            bucket = by_category[item.category]
            bucket["purchase_value"] += purchase_value
            bucket["selling_value"] += selling_value
            bucket["items"] += 1

        potential_profit = total_selling - total_purchase
        if total_purchase > 0:
            margin = (potential_profit / total_purchase * 100).quantize(
                Decimal("0.01"), rounding=ROUND_HALF_UP
            )
        else:
            margin = Decimal("0.00")

        return {
            "total_purchase_value": total_purchase,
            "total_selling_value": total_selling,
            "potential_profit": potential_profit,
            "profit_margin": margin,
            "by_category": dict(by_category),
        }
