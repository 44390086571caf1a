"""Unit tests for the shared pixel buffer."""

import threading

import numpy as np
import pytest


class TestPixelBuffer:
    """Tests for PixelBuffer."""

    def test_starts_black(self):
        """Test a new buffer is all zeros with (height, width, 3) layout."""
        from mltrace.core.accumulator import PixelBuffer

        buffer = PixelBuffer(5, 3)
        image = buffer.snapshot()
        assert image.shape == (3, 5, 3)
        assert not np.any(image)

    @pytest.mark.parametrize("size", [(0, 4), (4, -1), (5000, 10), (10, 5000)])
    def test_invalid_dimensions_raise(self, size):
        """Test non-positive or oversized dimensions are rejected."""
        from mltrace.core.accumulator import PixelBuffer

        with pytest.raises(ValueError):
            PixelBuffer(*size)

    def test_add_accumulates(self):
        """Test repeated adds sum into the cell."""
        from mltrace.core.accumulator import PixelBuffer
        from mltrace.core.ray import color

        buffer = PixelBuffer(4, 4)
        buffer.add(1, 2, color(0.25, 0.5, 1.0))
        buffer.add(1, 2, color(0.25, 0.5, 1.0))
        image = buffer.snapshot()
        assert np.allclose(image[2, 1], [0.5, 1.0, 2.0])
        assert buffer.total_energy() == pytest.approx(3.5)

    def test_add_is_linear(self):
        """Test adding w1 * c then w2 * c equals adding (w1 + w2) * c."""
        from mltrace.core.accumulator import PixelBuffer
        from mltrace.core.ray import color

        c = color(0.3, 0.6, 0.9)
        a = PixelBuffer(2, 2)
        a.add(0, 0, 0.2 * c)
        a.add(0, 0, 0.7 * c)
        b = PixelBuffer(2, 2)
        b.add(0, 0, 0.9 * c)
        assert np.allclose(a.snapshot(), b.snapshot())

    @pytest.mark.parametrize("xy", [(-1, 0), (0, -1), (4, 0), (0, 3)])
    def test_out_of_bounds_raises(self, xy):
        """Test writes outside the image raise IndexError."""
        from mltrace.core.accumulator import PixelBuffer
        from mltrace.core.ray import color

        buffer = PixelBuffer(4, 3)
        with pytest.raises(IndexError):
            buffer.add(*xy, color(1, 1, 1))

    def test_snapshot_is_a_copy(self):
        """Test modifying a snapshot leaves the buffer unchanged."""
        from mltrace.core.accumulator import PixelBuffer
        from mltrace.core.ray import color

        buffer = PixelBuffer(2, 2)
        buffer.add(0, 0, color(1, 1, 1))
        image = buffer.snapshot()
        image[:] = 0.0
        assert buffer.total_energy() == pytest.approx(3.0)

    def test_non_blocking_snapshot_skips_when_busy(self):
        """Test a non-blocking snapshot gives up while the lock is held."""
        from mltrace.core.accumulator import PixelBuffer

        buffer = PixelBuffer(2, 2)
        with buffer._lock:
            assert buffer.snapshot(blocking=False) is None
        assert buffer.snapshot(blocking=False) is not None

    def test_clear(self):
        """Test clear resets every cell."""
        from mltrace.core.accumulator import PixelBuffer
        from mltrace.core.ray import color

        buffer = PixelBuffer(3, 3)
        buffer.add(2, 2, color(1, 2, 3))
        buffer.clear()
        assert buffer.total_energy() == 0.0

    def test_concurrent_adds_are_not_lost(self):
        """Test many threads adding into one cell lose no updates."""
        from mltrace.core.accumulator import PixelBuffer
        from mltrace.core.ray import color

        buffer = PixelBuffer(2, 2)
        one = color(1.0, 0.0, 0.0)

        def worker():
            for _ in range(2000):
                buffer.add(1, 1, one)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert buffer.snapshot()[1, 1, 0] == 16000.0
