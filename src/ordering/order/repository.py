"""Repository for the Order aggregate.

The base repository provides get/add. The queries here page through the
store explicitly, since a Protean query returns at most one page of results
unless asked otherwise.
"""

from ordering.domain import ordering
from ordering.order.order import Order

PAGE_SIZE = 100


@ordering.repository(part_of=Order)
class OrderRepository:
    def _query(self, **filters):
        query = self._dao.query
        if filters:
            query = query.filter(**filters)
        return query.order_by("-created_at")

    def _iterate(self, **filters):
        offset = 0
        while True:
            page = self._query(**filters).offset(offset).limit(PAGE_SIZE).all()
            yield from page.items
            if not page.has_next or not page.items:
                break
            offset += PAGE_SIZE

    def everything(self) -> list[Order]:
        """All orders, newest first."""
        return list(self._iterate())

    def for_user(self, user_id) -> list[Order]:
        """A customer's orders, newest first."""
        return list(self._iterate(user_id=str(user_id)))

    def page(self, number: int, size: int) -> list[Order]:
        """One page of all orders, newest first. Pages are numbered from 1."""
        return self._query().offset((number - 1) * size).limit(size).all().items

    def count(self) -> int:
        return self._dao.query.all().total

    def has_orders(self, user_id) -> bool:
        return self._dao.query.filter(user_id=str(user_id)).limit(1).all().total > 0

    def find_by_correlation(self, field: str, value: str) -> Order | None:
        """Find the order bound to a processor correlation id, if any."""
        results = self._dao.query.filter(**{field: value}).limit(1).all().items
        return results[0] if results else None
