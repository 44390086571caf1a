"""PNG export of accumulated images via Pillow.

Images go through the display pipeline (tone mapping, optional gamma) and are
then quantized with ``to_display_levels``. With the defaults the written file
is the plain clamp-and-truncate mapping of the linear buffer.

Example:
    >>> from mltrace.preview.export import save_png
    >>> renderer.render()
    >>> save_png(renderer, "output.png", tone_map="reinhard")
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

from mltrace.preview.display import (
    ToneMapMethod,
    process_image_for_display,
    to_display_levels,
)

if TYPE_CHECKING:
    from mltrace.core.render import MetropolisRenderer


def image_to_uint8(
    image: npt.NDArray[np.floating],
    *,
    tone_map: ToneMapMethod = "clamp",
    gamma: float = 1.0,
    exposure: float = 1.0,
) -> npt.NDArray[np.uint8]:
    """Convert a linear float image to uint8 for display/export.

    Args:
        image: Linear image array of shape (H, W, 3).
        tone_map: Tone mapping method ("clamp", "reinhard" or "exposure").
        gamma: Gamma correction value (default 1.0, linear).
        exposure: Exposure value for exposure tone mapping.

    Returns:
        8-bit image array of shape (H, W, 3).
    """
    processed = process_image_for_display(
        image,
        tone_map=tone_map,
        gamma=gamma,
        exposure=exposure,
    )
    return to_display_levels(processed)


def save_png_from_array(
    image: npt.NDArray[np.floating],
    filepath: str,
    *,
    tone_map: ToneMapMethod = "clamp",
    gamma: float = 1.0,
    exposure: float = 1.0,
) -> None:
    """Save a linear image array as an 8-bit PNG.

    Raises:
        ValueError: If the array is not of shape (H, W, 3).
    """
    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f"Expected an (H, W, 3) image, got shape {image.shape}")
    image_uint8 = image_to_uint8(image, tone_map=tone_map, gamma=gamma, exposure=exposure)
    pil_image = PILImage.fromarray(image_uint8)
    pil_image.save(filepath)


def save_png(
    renderer: MetropolisRenderer,
    filepath: str,
    *,
    tone_map: ToneMapMethod = "clamp",
    gamma: float = 1.0,
    exposure: float = 1.0,
) -> None:
    """Save the renderer's current buffer as a PNG file.

    Args:
        renderer: The renderer to export.
        filepath: Output file path (should end in .png).
        tone_map: Tone mapping method ("clamp", "reinhard" or "exposure").
        gamma: Gamma correction value (default 1.0, linear).
        exposure: Exposure value for exposure tone mapping.
    """
    save_png_from_array(
        renderer.get_image_numpy(),
        filepath,
        tone_map=tone_map,
        gamma=gamma,
        exposure=exposure,
    )
