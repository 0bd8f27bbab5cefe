"""
Bounded price history (``allocation_kernel.domain.history``).

A fixed-capacity, most-recent-first sequence of unit prices.  Pushing onto
a full history evicts the oldest price and reports it, so the persistence
layer can delete exactly that row.
"""

from __future__ import annotations

from collections import deque
from typing import Iterable

DEFAULT_PRICE_HISTORY_CAPACITY = 10


class PriceHistory:
    """Most-recent-first ring buffer of prices."""

    def __init__(
        self,
        prices: Iterable[int] = (),
        capacity: int = DEFAULT_PRICE_HISTORY_CAPACITY,
    ):
        """
        Args:
            prices: Existing prices, most recent first.
            capacity: Maximum number of retained prices.
        """
        if capacity <= 0:
            raise ValueError("PriceHistory capacity must be positive")
        self._capacity = capacity
        self._prices: deque[int] = deque(maxlen=capacity)
        # deque(maxlen) drops from the opposite end of the append, so load
        # oldest-first with appendleft to keep the most recent entries.
        for price in reversed(list(prices)[:capacity]):
            self._prices.appendleft(price)

    @property
    def capacity(self) -> int:
        return self._capacity

    def push(self, price: int) -> int | None:
        """Record ``price`` as the most recent entry.

        Returns:
            The evicted oldest price, or None if nothing was evicted.
        """
        evicted = self._prices[-1] if len(self._prices) == self._capacity else None
        self._prices.appendleft(price)
        return evicted

    def latest(self) -> int | None:
        return self._prices[0] if self._prices else None

    def as_tuple(self) -> tuple[int, ...]:
        return tuple(self._prices)

    def __len__(self) -> int:
        return len(self._prices)

    def __iter__(self):
        return iter(self._prices)

    def __repr__(self) -> str:
        return f"PriceHistory({list(self._prices)!r}, capacity={self._capacity})"
