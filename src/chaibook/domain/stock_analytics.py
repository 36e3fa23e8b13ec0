"""Read-only usage analytics over the stock transaction log."""

import math
from collections import defaultdict
from datetime import date, datetime, time, timedelta, UTC
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Optional

from chaibook.database.base import Database
from chaibook.domain import cache as tags
from chaibook.domain.cache import QueryCache, cached
from chaibook.domain.calculations import ZERO, local_date, month_start, week_start
from chaibook.domain.entities import (
    ProductUsage,
    ProductUsageSummary,
    StockTransactionType,
    UsagePeriod,
)
from chaibook.domain.errors import NotFoundError, stock_not_found


def _start_of(day: date) -> datetime:
    """Local midnight at the start of day, expressed in UTC like stored timestamps."""
    return datetime.combine(day, time.min).astimezone().astimezone(UTC)


def period_start(period: UsagePeriod, now: datetime) -> Optional[datetime]:
    """First instant of a usage period, or None for overall."""
    period = UsagePeriod(period)
    today = local_date(now)
    if period == UsagePeriod.TODAY:
        return _start_of(today)
    if period == UsagePeriod.WEEK:
        return _start_of(week_start(today))
    if period == UsagePeriod.MONTH:
        return _start_of(month_start(today))
    return None


class StockAnalyticsService:
    """Aggregates stock usage by product, category and day."""

    def __init__(
        self,
        db: Database,
        cache: Optional[QueryCache] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.db = db
        self.cache = cache
        self.clock = clock or (lambda: datetime.now(UTC))

    def usage_stats(
        self, period: UsagePeriod = UsagePeriod.TODAY, now: Optional[datetime] = None
    ) -> list[ProductUsage]:
        """Per-product usage within a period, most used first.

        Cost is use quantity times the item's current purchase price.
        """
        now = now or self.clock()
        period = UsagePeriod(period)
        return cached(
            self.cache,
            (tags.USAGE_STATS, "products", period, local_date(now)),
            lambda: self._usage_stats(period, now),
        )

    def _usage_stats(self, period: UsagePeriod, now: datetime) -> list[ProductUsage]:
        items = {item.id: item for item in self.db.list_stock()}
        transactions = self.db.list_stock_transactions(
            since=period_start(period, now), until=now
        )

        totals: dict[int, dict] = {}
        for tx in transactions:
            item = items.get(tx.stock_id)
            if item is None:
                continue
            row = totals.setdefault(
                tx.stock_id, {"used": ZERO, "purchased": ZERO, "count": 0, "cost": ZERO}
            )
            if tx.transaction_type == StockTransactionType.USE:
                row["used"] += tx.quantity
                row["cost"] += tx.quantity * item.purchase_price
            else:
                row["purchased"] += tx.quantity
            row["count"] += 1

        usage = [
            ProductUsage(
                stock_id=stock_id,
                product_name=items[stock_id].product_name,
                category=items[stock_id].category,
                unit=items[stock_id].unit,
                total_used=row["used"],
                total_purchased=row["purchased"],
                transaction_count=row["count"],
                cost=row["cost"],
            )
            for stock_id, row in totals.items()
        ]
        return sorted(usage, key=lambda u: (-u.total_used, u.product_name))

    def category_usage(
        self, period: UsagePeriod = UsagePeriod.MONTH, now: Optional[datetime] = None
    ) -> dict[str, dict[str, Decimal]]:
        """Used quantity and cost per category within a period."""
        now = now or self.clock()
        items = {item.id: item for item in self.db.list_stock()}
        transactions = self.db.list_stock_transactions(
            transaction_type=StockTransactionType.USE,
            since=period_start(period, now),
            until=now,
        )

        categories: dict[str, dict[str, Decimal]] = defaultdict(
            lambda: {"quantity": ZERO, "cost": ZERO}
        )
        for tx in transactions:
            item = items.get(tx.stock_id)
            if item is None:
                continue
            categories[item.category]["quantity"] += tx.quantity
            categories[item.category]["cost"] += tx.quantity * item.purchase_price
        return dict(categories)

    def product_usage_trend(
        self, stock_id: int, days: int = 7, now: Optional[datetime] = None
    ) -> list[tuple[date, Decimal]]:
        """Daily use quantity over the last ``days`` days, oldest first.

        Days without usage are reported as zero.

        Raises:
            NotFoundError: If the item does not exist
        """
        if self.db.get_stock(stock_id) is None:
            raise NotFoundError(stock_not_found(stock_id))
        now = now or self.clock()
        today = local_date(now)
        first_day = today - timedelta(days=days - 1)

        trend = {first_day + timedelta(days=i): ZERO for i in range(days)}
        transactions = self.db.list_stock_transactions(
            stock_id=stock_id,
            transaction_type=StockTransactionType.USE,
            since=_start_of(first_day),
            until=_start_of(today + timedelta(days=1)),
        )
        for tx in transactions:
            day = local_date(tx.created_at)
            if day in trend:
                trend[day] += tx.quantity
        return list(trend.items())

    def product_usage_summary(self, now: Optional[datetime] = None) -> list[ProductUsageSummary]:
        """Usage today, this week, this month and overall for every used product."""
        now = now or self.clock()
        today_start = period_start(UsagePeriod.TODAY, now)
        week_begin = period_start(UsagePeriod.WEEK, now)
        month_begin = period_start(UsagePeriod.MONTH, now)

        by_item = defaultdict(list)
        for tx in self.db.list_stock_transactions(transaction_type=StockTransactionType.USE):
            by_item[tx.stock_id].append(tx)

        summaries = []
        for item in self.db.list_stock():
            uses = by_item.get(item.id)
            if not uses:
                continue
            overall = sum((tx.quantity for tx in uses), ZERO)
            if overall <= 0:
                continue

            first_use = min(tx.created_at for tx in uses)
            elapsed_days = (now - first_use).total_seconds() / 86400
            days_active = max(1, math.ceil(elapsed_days))

            summaries.append(
                ProductUsageSummary(
                    stock_id=item.id,
                    product_name=item.product_name,
                    category=item.category,
                    unit=item.unit,
                    today_used=sum((tx.quantity for tx in uses if tx.created_at >= today_start), ZERO),
                    week_used=sum((tx.quantity for tx in uses if tx.created_at >= week_begin), ZERO),
                    month_used=sum((tx.quantity for tx in uses if tx.created_at >= month_begin), ZERO),
                    overall_used=overall,
                    average_daily=(overall / days_active).quantize(
                        Decimal("0.01"), rounding=ROUND_HALF_UP
                    ),
                    total_cost=overall * item.purchase_price,
                )
            )
        return summaries
