"""Stock levels read from the catalogue service over HTTP.

The catalogue lists products at ``GET /products`` as ``{"data": [...]}`` with
a ``stock`` count on each product.
"""

import httpx
import structlog

from ordering.stock.port import StockLevels
from shared.errors import UpstreamServiceError

logger = structlog.get_logger(__name__)


class CatalogueServiceStockLevels(StockLevels):
    def __init__(self, base_url: str, timeout: float = 10.0, client: httpx.Client | None = None) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.Client(timeout=timeout)

    def close(self) -> None:
        self._client.close()

    def _products(self) -> list[dict]:
        try:
            response = self._client.get(f"{self.base_url}/products")
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("catalogue_request_failed", error=str(exc))
            raise UpstreamServiceError("Catalogue service is unavailable") from exc

        body = response.json()
        products = body.get("data", []) if isinstance(body, dict) else body
        return products or []

    def count_below(self, threshold: int) -> int:
        low = 0
        for product in self._products():
            stock = product.get("stock")
            if isinstance(stock, (int, float)) and stock < threshold:
                low += 1
        return low
