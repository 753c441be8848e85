"""Order analytics for the admin dashboard.

Figures are computed from the order store on request. They are advisory:
concurrent writes may or may not be reflected, and nothing here mutates an
order.
"""

import calendar
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import UTC, datetime

from protean.utils.globals import current_domain

from ordering.order.order import Order, OrderStatus
from ordering.stock.port import StockLevels

DEFAULT_LOW_STOCK_THRESHOLD = 10
DEFAULT_WINDOW_MONTHS = 6


@dataclass(frozen=True)
class MonthlySales:
    month: str  # YYYY-MM
    total: float


@dataclass(frozen=True)
class AnalyticsReport:
    total_sales: float
    total_orders: int
    active_users: int
    low_stock_products: int
    monthly_sales: list[MonthlySales] = field(default_factory=list)


def months_before(moment: datetime, months: int) -> datetime:
    """Same day and time ``months`` calendar months earlier, clamped to month end."""
    month_index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC)


def _is_counted(order: Order) -> bool:
    return order.status != OrderStatus.CANCELLED.value


class OrderAnalytics:
    def __init__(
        self,
        stock_levels: StockLevels,
        low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD,
        window_months: int = DEFAULT_WINDOW_MONTHS,
    ) -> None:
        self.stock_levels = stock_levels
        self.low_stock_threshold = low_stock_threshold
        self.window_months = window_months

    def _orders(self) -> list[Order]:
        return current_domain.repository_for(Order).everything()

    def total_sales(self, orders=None) -> float:
        orders = self._orders() if orders is None else orders
        return float(sum(order.total_amount or 0.0 for order in orders if _is_counted(order)))

    def total_orders(self, orders=None) -> int:
        if orders is None:
            return current_domain.repository_for(Order).count()
        return len(orders)

    def active_users(self, orders=None) -> int:
        orders = self._orders() if orders is None else orders
        return len({str(order.user_id) for order in orders})

    def low_stock_products(self) -> int:
        return self.stock_levels.count_below(self.low_stock_threshold)

    def monthly_sales(self, orders=None, now: datetime | None = None) -> list[MonthlySales]:
        """Non-cancelled sales per calendar month (UTC) over the trailing window, oldest first."""
        orders = self._orders() if orders is None else orders
        since = months_before(_as_utc(now or datetime.now(UTC)), self.window_months)

        totals = defaultdict(float)
        for order in orders:
            if not _is_counted(order) or order.created_at is None:
                continue
            created_at = _as_utc(order.created_at)
            if created_at >= since:
                totals[created_at.strftime("%Y-%m")] += order.total_amount or 0.0

        return [MonthlySales(month=month, total=totals[month]) for month in sorted(totals)]

    def report(self, now: datetime | None = None) -> AnalyticsReport:
        orders = self._orders()
        return AnalyticsReport(
            total_sales=self.total_sales(orders),
            total_orders=self.total_orders(orders),
            active_users=self.active_users(orders),
            low_stock_products=self.low_stock_products(),
            monthly_sales=self.monthly_sales(orders, now=now),
        )
