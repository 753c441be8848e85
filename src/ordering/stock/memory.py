"""In-memory stock levels for development and testing."""

from ordering.stock.port import StockLevels


class InMemoryStockLevels(StockLevels):
    def __init__(self, stock: dict[str, int] | None = None) -> None:
        self.stock: dict[str, int] = dict(stock or {})

    def set_stock(self, product_id: str, quantity: int) -> None:
        self.stock[product_id] = quantity

    def count_below(self, threshold: int) -> int:
        return sum(1 for quantity in self.stock.values() if (quantity or 0) < threshold)
