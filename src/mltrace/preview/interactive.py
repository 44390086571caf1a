"""Live preview window using Taichi GGUI.

The window shows the pixel buffer while a render runs on a background thread.
Refreshes take a non-blocking snapshot of the buffer: when a worker holds the
lock the frame simply reuses the previous image instead of stalling the
render.

Example:
    >>> from mltrace.core.render import MetropolisRenderer, RenderSettings
    >>> from mltrace.preview.interactive import InteractivePreview
    >>> from mltrace.scene.spheres import create_sphere_scene
    >>>
    >>> renderer = MetropolisRenderer(create_sphere_scene(), RenderSettings(256, 256))
    >>> preview = InteractivePreview(256, 256)
    >>> preview.run_live(renderer)  # blocks until the window is closed
"""

from __future__ import annotations

import os
import threading
from datetime import datetime
from typing import TYPE_CHECKING

import numpy as np
import taichi as ti

from mltrace.preview.display import ToneMapMethod, process_image_for_display

if TYPE_CHECKING:
    import numpy.typing as npt

    from mltrace.core.accumulator import PixelBuffer
    from mltrace.core.render import MetropolisRenderer


class InteractivePreview:
    """Preview window backed by a Taichi display field.

    Attributes:
        width: Window width in pixels.
        height: Window height in pixels.
        display_image: Taichi field of shape (width, height) holding RGB floats.
    """

    def __init__(
        self,
        width: int,
        height: int,
        *,
        title: str = "Metropolis Light Transport - Live Preview",
        tone_map: ToneMapMethod = "clamp",
        gamma: float = 1.0,
    ) -> None:
        """Create the display field. The window itself opens lazily.

        Note:
            Taichi must already be initialized (``ti.init``).
        """
        self.width = width
        self.height = height
        self._title = title
        self._tone_map: ToneMapMethod = tone_map
        self._gamma = gamma

        self._window: ti.ui.Window | None = None
        self._canvas: ti.ui.Canvas | None = None

        self._progress = (0, 0)
        self._refreshes = 0
        self._skipped_refreshes = 0

        self.display_image: ti.MatrixField = ti.Vector.field(
            3, dtype=ti.f32, shape=(width, height)
        )

    def _initialize_window(self) -> None:
        if self._window is not None:
            return
        self._window = ti.ui.Window(
            name=self._title,
            res=(self.width, self.height),
            vsync=True,
        )
        self._canvas = self._window.get_canvas()

    @property
    def window(self) -> ti.ui.Window:
        """Get the Taichi GGUI window, initializing if needed."""
        if self._window is None:
            self._initialize_window()
        assert self._window is not None
        return self._window

    @property
    def canvas(self) -> ti.ui.Canvas:
        """Get the canvas for rendering."""
        if self._canvas is None:
            self._initialize_window()
        assert self._canvas is not None
        return self._canvas

    @property
    def skipped_refreshes(self) -> int:
        """Refreshes skipped because a worker held the buffer lock."""
        return self._skipped_refreshes

    @property
    def refreshes(self) -> int:
        return self._refreshes

    def update_image(self, image: npt.NDArray[np.float32]) -> None:
        """Update the display field from an image already mapped to [0, 1].

        Args:
            image: Array of shape (height, width, 3), row 0 at the top.

        Raises:
            ValueError: If the shape doesn't match (height, width, 3).
        """
        expected_shape = (self.height, self.width, 3)
        if image.shape != expected_shape:
            raise ValueError(
                f"Image shape {image.shape} doesn't match expected {expected_shape}"
            )

        # Taichi fields are indexed (x, y) with the origin at the bottom-left
        image_transposed = np.ascontiguousarray(
            np.transpose(np.flipud(image), (1, 0, 2)), dtype=np.float32
        )
        self.display_image.from_numpy(image_transposed)

    def refresh_from_buffer(self, buffer: PixelBuffer) -> bool:
        """Tone map a snapshot of the buffer into the display field.

        Returns:
            True if the display was updated, False if the buffer was busy and
            the refresh was skipped.
        """
        snapshot = buffer.snapshot(blocking=False)
        if snapshot is None:
            self._skipped_refreshes += 1
            return False
        self.update_image(
            process_image_for_display(snapshot, tone_map=self._tone_map, gamma=self._gamma)
        )
        self._refreshes += 1
        return True

    def is_running(self) -> bool:
        """Check if the window is still open."""
        return self.window.running

    def show_frame(self) -> None:
        """Present the current display field."""
        self.canvas.set_image(self.display_image)
        self.window.show()

    def run(self) -> None:
        """Show the current display field until the window is closed."""
        self._initialize_window()
        while self.is_running():
            self.show_frame()

    def run_live(self, renderer: MetropolisRenderer) -> None:
        """Render on a background thread while refreshing the window.

        The render cannot be cancelled. Closing the window stops the display
        loop only; the daemon render thread ends with the process.

        Args:
            renderer: Renderer whose buffer matches this window's size.

        Raises:
            ValueError: If the renderer's image size differs from the window's.
        """
        if (renderer.width, renderer.height) != (self.width, self.height):
            raise ValueError(
                f"Renderer size {renderer.width}x{renderer.height} doesn't match "
                f"preview size {self.width}x{self.height}"
            )
        self._initialize_window()
        self._progress = (0, renderer.total_chains)

        def _on_progress(done: int, total: int) -> None:
            self._progress = (done, total)

        worker = threading.Thread(
            target=renderer.render,
            kwargs={"callback": _on_progress, "batch_size": renderer.width},
            daemon=True,
        )
        worker.start()

        finished = False
        while self.is_running():
            if not finished:
                if not worker.is_alive():
                    # final frame must be complete, so wait for the lock
                    self.update_image(
                        process_image_for_display(
                            renderer.image.snapshot(),
                            tone_map=self._tone_map,
                            gamma=self._gamma,
                        )
                    )
                    finished = True
                else:
                    self.refresh_from_buffer(renderer.image)
            self._draw_gui_panel(renderer)
            self.show_frame()

    def _draw_gui_panel(self, renderer: MetropolisRenderer) -> None:
        done, total = self._progress
        with self.window.GUI.sub_window("Render", 0.02, 0.02, 0.3, 0.14) as gui:
            gui.text(f"Chains: {done}/{total}")
            gui.text(f"Acceptance: {renderer.stats.acceptance_rate:.3f}")
            if gui.button("Export PNG"):
                self._export_png(renderer)

    def _export_png(self, renderer: MetropolisRenderer) -> None:
        """Save the current buffer to a timestamped PNG in the working directory."""
        from mltrace.preview.export import save_png

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        filename = f"mltrace_{timestamp}.png"
        save_png(renderer, filename, tone_map=self._tone_map, gamma=self._gamma)
        done, total = self._progress
        print(f"Exported: {filename} ({done}/{total} chains)")

    def close(self) -> None:
        """Stop any active display loop."""
        if self._window is not None:
            self._window.running = False

    @staticmethod
    def is_display_available() -> bool:
        """Check if a display is available for GUI rendering.

        Returns:
            True if a display is available, False for headless environments.
        """
        display = os.environ.get("DISPLAY")
        wayland = os.environ.get("WAYLAND_DISPLAY")

        if os.name == "nt":
            return True

        # On macOS, display is available unless in SSH without X forwarding
        if os.uname().sysname == "Darwin":
            ssh_connection = os.environ.get("SSH_CONNECTION")
            return not (ssh_connection and not display)

        return bool(display or wayland)
