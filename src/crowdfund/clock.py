"""Block-height clock.

The campaign never reads wall time. Every operation asks an injected
clock for the current height: a monotonically non-decreasing integer
supplied by the host (a ledger's block height in production, advanced
explicitly in tests and by the CLI).

Any zero-argument callable returning an int is a valid clock.
ManualClock is the reference implementation.
"""

from __future__ import annotations

from typing import Callable


Clock = Callable[[], int]


class ManualClock:
    """Explicitly advanced block-height clock.

    Usage:
        clock = ManualClock()
        clock.advance(3700)
        clock()  # 3700
    """

    def __init__(self, height: int = 0) -> None:
        if height < 0:
            raise ValueError("Clock height must be non-negative")
        self._height = height

    def __call__(self) -> int:
        return self._height

    @property
    def height(self) -> int:
        return self._height

    def advance(self, blocks: int) -> int:
        """Move the clock forward by ``blocks``. Returns the new height."""
        if blocks < 0:
            raise ValueError(f"Clock cannot move backwards (advance by {blocks})")
        self._height += blocks
        return self._height

    def set_height(self, height: int) -> int:
        """Jump to an absolute height. Must not be below the current one."""
        if height < self._height:
            raise ValueError(
                f"Clock cannot move backwards: {self._height} → {height}"
            )
        self._height = height
        return self._height
