"""Tests for the catalogue stock adapters."""

import httpx
import pytest
from ordering.stock.catalogue_service import CatalogueServiceStockLevels
from ordering.stock.memory import InMemoryStockLevels
from shared.errors import UpstreamServiceError


def _catalogue(handler):
    return CatalogueServiceStockLevels(
        "https://catalogue.test/api",
        client=httpx.Client(transport=httpx.MockTransport(handler)),
    )


class TestInMemoryStockLevels:
    def test_counts_products_below_threshold(self):
        stock = InMemoryStockLevels({"a": 1, "b": 10, "c": 4})
        assert stock.count_below(5) == 2

    def test_set_stock(self):
        stock = InMemoryStockLevels()
        stock.set_stock("a", 2)
        assert stock.count_below(10) == 1


class TestCatalogueServiceStockLevels:
    def test_reads_product_listing(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            return httpx.Response(
                200,
                json={"data": [{"_id": "1", "stock": 2}, {"_id": "2", "stock": 10}, {"_id": "3", "stock": 9.0}]},
            )

        assert _catalogue(handler).count_below(10) == 2
        assert seen["url"] == "https://catalogue.test/api/products"

    def test_products_without_stock_are_ignored(self):
        def handler(request):
            return httpx.Response(200, json={"data": [{"_id": "1"}, {"_id": "2", "stock": None}]})

        assert _catalogue(handler).count_below(10) == 0

    def test_service_error_raises(self):
        def handler(request):
            return httpx.Response(503, json={"message": "down"})

        with pytest.raises(UpstreamServiceError):
            _catalogue(handler).count_below(10)
