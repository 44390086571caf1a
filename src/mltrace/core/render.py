"""Multi-worker Metropolis renderer.

The renderer owns the pixel buffer and schedules one Markov chain per
(pixel, light) pair on a fixed-size thread pool. Chains run independently to
completion; the pixel buffer is the only state they share. Every chain gets its
own numpy Generator, derived from the settings seed and the chain's index, so
no generator is ever shared between threads.

Chains are mostly pure-Python arithmetic, so on a standard (GIL) interpreter
the threads interleave rather than run in parallel and extra workers give
little or no speedup. The pool keeps the render off the caller's thread so a
preview can refresh while it runs, and only a bounded window of chains is
queued at once so memory does not grow with the image size.

Each recorded sample carries the weight

    contribution_budget / (num_lights * samples_per_pixel)

so a pixel's final value is an average over its chains rather than a sum that
grows with the sample budget.

Example:
    >>> from mltrace.core.render import MetropolisRenderer, RenderSettings
    >>> from mltrace.scene.spheres import create_sphere_scene
    >>>
    >>> settings = RenderSettings(width=128, height=128, samples_per_pixel=64)
    >>> renderer = MetropolisRenderer(create_sphere_scene(), settings)
    >>> renderer.render(callback=lambda done, total: print(f"{done}/{total}"))
    >>> renderer.save_image("spheres.png")
"""

from __future__ import annotations

import logging
import math
import os
from collections.abc import Callable, Generator, Iterator
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

from mltrace.camera.pinhole import pixel_to_plane
from mltrace.core.accumulator import MAX_IMAGE_HEIGHT, MAX_IMAGE_WIDTH, PixelBuffer
from mltrace.core.metropolis import ACCEPTANCE_SCALE, ChainStats, draw
from mltrace.scene.scene import Scene

logger = logging.getLogger(__name__)

# Type alias for progress callback
# Callback receives (completed_chains, total_chains)
ProgressCallback = Callable[[int, int], None]

# Default total energy spread over each pixel's samples
CONTRIBUTION_BUDGET = 10.0

# Chains queued or running per worker at any moment
CHAINS_IN_FLIGHT_PER_WORKER = 4


@dataclass
class RenderSettings:
    """Runtime configuration of a render.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        samples_per_pixel: Iterations of each chain.
        num_workers: Thread pool size (None uses the CPU count).
        contribution_budget: Total weight spread over a pixel's samples.
        acceptance_scale: Multiplier on the Metropolis acceptance ratio.
        seed: Root seed for the per-chain generators (None for fresh entropy).
        jitter: Start each chain at a random point inside its pixel instead of
            the pixel centre.
    """

    width: int = 256
    height: int = 256
    samples_per_pixel: int = 64
    num_workers: int | None = None
    contribution_budget: float = CONTRIBUTION_BUDGET
    acceptance_scale: float = ACCEPTANCE_SCALE
    seed: int | None = None
    jitter: bool = True

    def validate(self) -> None:
        """Check the settings.

        Raises:
            ValueError: If any value is out of range.
        """
        if self.width <= 0 or self.height <= 0:
            raise ValueError(
                f"Image dimensions must be positive, got {self.width}x{self.height}"
            )
        if self.width > MAX_IMAGE_WIDTH or self.height > MAX_IMAGE_HEIGHT:
            raise ValueError(
                f"Image dimensions ({self.width}x{self.height}) exceed maximum supported "
                f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
            )
        if self.samples_per_pixel <= 0:
            raise ValueError(f"samples_per_pixel must be positive, got {self.samples_per_pixel}")
        if self.num_workers is not None and self.num_workers <= 0:
            raise ValueError(f"num_workers must be positive, got {self.num_workers}")
        if not (math.isfinite(self.contribution_budget) and self.contribution_budget >= 0.0):
            raise ValueError(
                f"contribution_budget must be finite and non-negative, "
                f"got {self.contribution_budget}"
            )
        if not (math.isfinite(self.acceptance_scale) and self.acceptance_scale > 0.0):
            raise ValueError(
                f"acceptance_scale must be finite and positive, got {self.acceptance_scale}"
            )


class MetropolisRenderer:
    """Renders a scene by running one Metropolis chain per (pixel, light).

    Attributes:
        scene: The scene being rendered.
        settings: The validated render settings.
        image: The shared accumulation buffer.
    """

    def __init__(self, scene: Scene, settings: RenderSettings | None = None) -> None:
        """Validate the settings and allocate the pixel buffer.

        Raises:
            ValueError: If the settings are invalid.
        """
        if settings is None:
            settings = RenderSettings()
        settings.validate()
        self._scene = scene
        self._settings = settings
        self._image = PixelBuffer(settings.width, settings.height)
        self._stats = ChainStats()
        self._seed = np.random.SeedSequence(settings.seed)

    @property
    def scene(self) -> Scene:
        return self._scene

    @property
    def settings(self) -> RenderSettings:
        return self._settings

    @property
    def image(self) -> PixelBuffer:
        return self._image

    @property
    def width(self) -> int:
        """Get the image width."""
        return self._settings.width

    @property
    def height(self) -> int:
        """Get the image height."""
        return self._settings.height

    @property
    def weight(self) -> float:
        """Per-sample weight: budget / (lights * samples per pixel)."""
        return self._settings.contribution_budget / (
            len(self._scene.lights) * self._settings.samples_per_pixel
        )

    @property
    def total_chains(self) -> int:
        return self._settings.width * self._settings.height * len(self._scene.lights)

    @property
    def stats(self) -> ChainStats:
        """Counters accumulated over every chain run so far."""
        return self._stats

    def reset(self) -> None:
        """Clear the pixel buffer and counters for a fresh render."""
        self._image.clear()
        self._stats = ChainStats()

    # =========================================================================
    # Rendering
    # =========================================================================

    def _run_chain(self, index: int) -> ChainStats:
        settings = self._settings
        lights = self._scene.lights
        pixel, light_index = divmod(index, len(lights))
        py, px = divmod(pixel, settings.width)

        rng = np.random.default_rng(
            np.random.SeedSequence(self._seed.entropy, spawn_key=(index,))
        )
        if settings.jitter:
            jitter = (rng.random(), rng.random())
        else:
            jitter = (0.5, 0.5)
        plane_x, plane_y = pixel_to_plane(px, py, settings.width, settings.height, jitter)

        return draw(
            settings.samples_per_pixel,
            plane_x,
            plane_y,
            lights[light_index],
            self._scene,
            self._image,
            rng,
            self.weight,
            settings.acceptance_scale,
        )

    def _run(self) -> Iterator[int]:
        """Run every chain on the pool, yielding the completed count as they finish.

        At most ``workers * CHAINS_IN_FLIGHT_PER_WORKER`` chains are submitted
        at a time; the window is topped up as chains complete.
        """
        workers = self._settings.num_workers or os.cpu_count() or 1
        total = self.total_chains
        max_in_flight = workers * CHAINS_IN_FLIGHT_PER_WORKER
        logger.debug(
            "Rendering %dx%d with %d chains on %d workers (weight %.6g)",
            self.width,
            self.height,
            total,
            workers,
            self.weight,
        )
        completed = 0
        next_index = 0
        pending: set[Future[ChainStats]] = set()
        with ThreadPoolExecutor(max_workers=workers) as executor:
            while next_index < total or pending:
                while next_index < total and len(pending) < max_in_flight:
                    pending.add(executor.submit(self._run_chain, next_index))
                    next_index += 1
                done, pending = wait(pending, return_when=FIRST_COMPLETED)
                for future in done:
                    self._stats.merge(future.result())
                    completed += 1
                    yield completed
        logger.debug(
            "Finished %d chains: %d iterations, %d proposals, acceptance rate %.3f",
            total,
            self._stats.iterations,
            self._stats.proposals,
            self._stats.acceptance_rate,
        )

    def render(self, callback: ProgressCallback | None = None, batch_size: int = 1) -> None:
        """Run every chain to completion.

        Args:
            callback: Optional callback called after every ``batch_size``
                finished chains and once at the end. Receives
                (completed_chains, total_chains).
            batch_size: Chains to finish between callbacks.

        Example:
            >>> def progress(done, total):
            ...     print(f"Progress: {done}/{total} chains")
            >>> renderer.render(progress, batch_size=renderer.width)
        """
        for completed, total in self.render_progressive(batch_size):
            if callback is not None:
                callback(completed, total)

    def render_progressive(self, batch_size: int = 1) -> Generator[tuple[int, int], None, None]:
        """Run every chain, yielding progress after each batch of finished chains.

        This is a generator-based alternative to render() with callbacks, useful
        for refreshing a preview between batches.

        Args:
            batch_size: Chains to finish before each yield.

        Yields:
            Tuple of (completed_chains, total_chains). The last yield always
            reports completion.
        """
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        total = self.total_chains
        for completed in self._run():
            if completed % batch_size == 0 or completed == total:
                yield (completed, total)

    # =========================================================================
    # Output
    # =========================================================================

    def get_image_numpy(self) -> npt.NDArray[np.float64]:
        """Get a copy of the accumulated image.

        Returns:
            NumPy array of shape (height, width, 3) with unclamped linear values.
        """
        return self._image.snapshot()

    def save_image(self, filepath: str) -> None:
        """Save the accumulated image as a PNG (clamped, 8 bits per channel)."""
        from mltrace.preview.export import save_png

        save_png(self, filepath)

    def __repr__(self) -> str:
        return (
            f"MetropolisRenderer(width={self.width}, height={self.height}, "
            f"samples_per_pixel={self._settings.samples_per_pixel}, "
            f"lights={len(self._scene.lights)})"
        )
