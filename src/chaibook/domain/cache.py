"""Tag-keyed cache for read models.

Read results are stored under a key tuple whose first element is a tag such
as ``"expenses"`` or ``"dashboard-stats"``. Mutations invalidate by tag, which
drops every key starting with that tag.
"""

from typing import Any, Callable, Hashable, Iterable

EXPENSES = "expenses"
EXPENSE_STATS = "expense-stats"
DAILY_CASH_FLOW = "daily-cash-flow"
DASHBOARD_STATS = "dashboard-stats"
EMPLOYEES = "employees"
SALARY_PAYMENTS = "salary-payments"
STOCK = "stock"
STOCK_ALERTS = "stock-alerts"
USAGE_STATS = "usage-stats"
SUPPLIERS = "suppliers"

EXPENSE_TAGS = (EXPENSES, EXPENSE_STATS, DAILY_CASH_FLOW, DASHBOARD_STATS)
SALARY_TAGS = EXPENSE_TAGS + (EMPLOYEES, SALARY_PAYMENTS)
CASH_FLOW_TAGS = (DAILY_CASH_FLOW, DASHBOARD_STATS)
STOCK_TAGS = (STOCK, STOCK_ALERTS, USAGE_STATS)
SUPPLIER_TAGS = (SUPPLIERS, STOCK)


class QueryCache:
    """In-process cache of query results, invalidated by tag."""

    def __init__(self) -> None:
        self._entries: dict[tuple[Hashable, ...], Any] = {}

    def get_or_load(self, key: tuple[Hashable, ...], loader: Callable[[], Any]) -> Any:
        """Return the cached value for key, calling loader on a miss."""
        if key not in self._entries:
            self._entries[key] = loader()
        return self._entries[key]

    def invalidate(self, tags: Iterable[str]) -> None:
        """Drop every cached key whose leading tag is in tags."""
        tags = set(tags)
        for key in [k for k in self._entries if k and k[0] in tags]:
            del self._entries[key]

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: tuple[Hashable, ...]) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


# Store collections whose changes stale each tag, for push invalidation
COLLECTION_TAGS = {
    "daily_cash_flow": (DAILY_CASH_FLOW, DASHBOARD_STATS),
    "expenses": (EXPENSES, EXPENSE_STATS),
    "employees": (EMPLOYEES,),
    "salary_payments": (SALARY_PAYMENTS,),
    "stock": (STOCK, STOCK_ALERTS, USAGE_STATS),
    "stock_transactions": (USAGE_STATS,),
    "suppliers": SUPPLIER_TAGS,
}


def attach(cache: QueryCache, db) -> Callable[[], None]:
    """Invalidate cache tags whenever the store reports a change.

    Returns a function that detaches every subscription.
    """
    unsubscribers = [
        db.subscribe(collection, lambda _c, _a, _id, tags=tags: cache.invalidate(tags))
        for collection, tags in COLLECTION_TAGS.items()
    ]

    def detach() -> None:
        for unsubscribe in unsubscribers:
            unsubscribe()

    return detach


def cached(cache: QueryCache | None, key: tuple[Hashable, ...], loader: Callable[[], Any]) -> Any:
    """Load through cache when one is configured."""
    if cache is None:
        return loader()
    return cache.get_or_load(key, loader)


def invalidate(cache: QueryCache | None, tags: Iterable[str]) -> None:
    if cache is not None:
        cache.invalidate(tags)
