"""Lock-guarded pixel accumulation buffer shared by all sampling workers.

Each cell holds the running, unnormalized sum of weighted path contributions.
Workers only ever add into cells; the display/export side only ever reads a
snapshot. A single coarse lock guards the whole buffer: writes are O(1) and
short, so per-cell locking would buy nothing.

Example:
    >>> from mltrace.core.accumulator import PixelBuffer
    >>> from mltrace.core.ray import color
    >>> buffer = PixelBuffer(4, 4)
    >>> buffer.add(1, 2, color(0.5, 0.5, 0.5))
    >>> image = buffer.snapshot()  # (height, width, 3) copy
"""

from __future__ import annotations

import threading

import numpy as np
import numpy.typing as npt

from mltrace.core.ray import Color

# Maximum supported image dimensions
MAX_IMAGE_WIDTH = 4096
MAX_IMAGE_HEIGHT = 4096


class PixelBuffer:
    """A 2D grid of accumulator colours with synchronized add-in-place.

    The array is laid out as (height, width, 3) with row 0 at the top of the
    image, matching NumPy/Pillow image conventions.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
    """

    def __init__(self, width: int, height: int) -> None:
        """Create a zeroed buffer.

        Raises:
            ValueError: If a dimension is not positive or exceeds the maximum.
        """
        if width <= 0 or height <= 0:
            raise ValueError(f"Image dimensions must be positive, got {width}x{height}")
        if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
            raise ValueError(
                f"Image dimensions ({width}x{height}) exceed maximum supported "
                f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
            )
        self._width = width
        self._height = height
        self._cells = np.zeros((height, width, 3), dtype=np.float64)
        self._lock = threading.Lock()

    @property
    def width(self) -> int:
        """Get the image width."""
        return self._width

    @property
    def height(self) -> int:
        """Get the image height."""
        return self._height

    def add(self, x: int, y: int, value: Color) -> None:
        """Atomically add a colour into cell (x, y).

        Args:
            x: Column index (0 = left).
            y: Row index (0 = top).
            value: RGB contribution to add.

        Raises:
            IndexError: If (x, y) lies outside the image.
        """
        if not (0 <= x < self._width and 0 <= y < self._height):
            raise IndexError(f"Pixel ({x}, {y}) outside {self._width}x{self._height} image")
        with self._lock:
            self._cells[y, x] += value

    def snapshot(self, blocking: bool = True) -> npt.NDArray[np.float64] | None:
        """Copy the current accumulated values.

        Args:
            blocking: When False, give up immediately instead of waiting for a
                worker to release the lock. Preview refreshes use this so that
                they never stall rendering.

        Returns:
            A (height, width, 3) float64 copy, or None if the lock was busy and
            blocking was False.
        """
        if not self._lock.acquire(blocking=blocking):
            return None
        try:
            return self._cells.copy()
        finally:
            self._lock.release()

    def clear(self) -> None:
        """Reset every cell to zero."""
        with self._lock:
            self._cells.fill(0.0)

    def total_energy(self) -> float:
        """Sum over all cells and channels; handy for sanity checks."""
        with self._lock:
            return float(self._cells.sum())

    def __repr__(self) -> str:
        return f"PixelBuffer(width={self._width}, height={self._height})"
