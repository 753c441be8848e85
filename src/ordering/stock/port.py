"""Catalogue stock port.

The product catalogue lives outside the ordering context. Analytics only need
to know how many products are running low, so that is all the port asks for.
"""

from abc import ABC, abstractmethod


class StockLevels(ABC):
    """Abstract view of catalogue stock."""

    @abstractmethod
    def count_below(self, threshold: int) -> int:
        """Number of catalogue products whose stock is strictly below threshold."""
        ...

    def close(self) -> None:
        """Release any connections held by the adapter."""
