"""
Height Counter

The execution environment supplies a monotonically increasing height that
ledgers compare against their launch-window expiry. ``HeightCounter`` is the
in-process stand-in: any zero-argument callable returning an ``int`` works
wherever a height source is expected.
"""

from typing import Callable

from .logger import get_logger

logger = get_logger(__name__)

HeightSource = Callable[[], int]


class HeightCounter:
    """Monotonic height counter. Call the instance to read the current height."""

    def __init__(self, start: int = 0):
        if start < 0:
            raise ValueError("Height cannot be negative")
        self._height = start

    def __call__(self) -> int:
        return self._height

    @property
    def height(self) -> int:
        return self._height

    def advance(self, blocks: int = 1) -> int:
        """Move the height forward by *blocks* and return the new height."""
        if blocks < 0:
            raise ValueError("Height can only move forward")
        self._height += blocks
        logger.debug(f"Height advanced to height={self._height}")
        return self._height

    def set(self, height: int) -> int:
        """Jump to *height*, which must not be below the current height."""
        if height < self._height:
            raise ValueError(
                f"Height must be monotonic: {height} < current {self._height}"
            )
        self._height = height
        return self._height

    def __repr__(self) -> str:
        return f"<HeightCounter height={self._height}>"
