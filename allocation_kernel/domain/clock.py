"""
Clock -- Logical clock abstraction.

Responsibility:
    Provides an injectable source of the host ledger's logical time: a
    monotonically increasing integer height.  Domain and service code never
    read wall time directly; request submission, expiry and price-update
    timestamps are all heights obtained from a ``Clock``.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O (except SystemClock,
    which is the one sanctioned I/O boundary for time).

Failure modes:
    - SequentialClock raises ValueError on an empty or decreasing list.
    - DeterministicClock.set_height raises ValueError when moving backwards.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Iterator

# One block every ten minutes: 144 heights per day.
DEFAULT_BLOCK_INTERVAL_SECONDS = 600
DEFAULT_GENESIS = datetime(2024, 1, 1, tzinfo=timezone.utc)


class Clock(ABC):
    """
    Abstract logical clock.

    Contract:
        All services that need the current height receive a Clock instance
        via constructor injection.

    Guarantees:
        - ``now()`` returns a non-negative integer.
        - Successive calls never return a smaller value.
    """

    @abstractmethod
    def now(self) -> int:
        """Get the current logical height."""
        ...


class SystemClock(Clock):
    """
    Production clock deriving a height from wall time.

    height = (utc_now - genesis) // block_interval_seconds
    """

    def __init__(
        self,
        block_interval_seconds: int = DEFAULT_BLOCK_INTERVAL_SECONDS,
        genesis: datetime = DEFAULT_GENESIS,
    ):
        if block_interval_seconds <= 0:
            raise ValueError("block_interval_seconds must be positive")
        self._interval = block_interval_seconds
        self._genesis = genesis

    def now(self) -> int:
        elapsed = datetime.now(timezone.utc) - self._genesis
        return max(0, int(elapsed.total_seconds()) // self._interval)


class DeterministicClock(Clock):
    """
    Test clock with controlled height.

    Contract:
        Used in tests and replay scenarios for deterministic behavior.

    Guarantees:
        - ``now()`` returns the same value on repeated calls until
          ``advance()``, ``tick()`` or ``set_height()`` is called.
        - ``tick()`` advances by exactly one height and returns it.
    """

    def __init__(self, start_height: int = 1000):
        """
        Initialize with an optional starting height.

        Args:
            start_height: Height returned before any advance.
        """
        if start_height < 0:
            raise ValueError("start_height must be non-negative")
        self._height = start_height

    def now(self) -> int:
        return self._height

    def set_height(self, height: int) -> None:
        """Move the clock to a specific height (never backwards)."""
        if height < self._height:
            raise ValueError(
                f"Logical clock cannot move backwards: {self._height} -> {height}"
            )
        self._height = height

    def advance(self, blocks: int = 1) -> None:
        """Advance the clock by the specified number of heights."""
        if blocks < 0:
            raise ValueError("Logical clock cannot move backwards")
        self._height += blocks

    def tick(self) -> int:
        """Advance by one height and return the new height."""
        self.advance(1)
        return self._height


class SequentialClock(Clock):
    """
    Clock that returns heights from a predefined list.  Tests only.

    Every ``now()`` call consumes the next height, and a single ledger
    operation reads the clock more than once (the operation log context,
    then the service stamping the row).  Heights seen by one operation can
    therefore differ; use DeterministicClock where they must agree.

    After exhaustion, repeats the last value.
    """

    def __init__(self, heights: list[int]):
        if not heights:
            raise ValueError("SequentialClock requires at least one height")
        for earlier, later in zip(heights, heights[1:]):
            if later < earlier:
                raise ValueError(
                    f"Logical clock cannot move backwards: {earlier} -> {later}"
                )
        self._heights: Iterator[int] = iter(heights)
        self._last: int | None = None

    def now(self) -> int:
        try:
            self._last = next(self._heights)
        except StopIteration:
            pass
        return self._last
