"""Tone mapping and Matplotlib preview for accumulated images.

The accumulated buffer holds unbounded linear values. Display code maps them to
a displayable range; the default ``"clamp"`` mapping sends negatives to 0,
values at or above 1 to full intensity and scales everything in between
linearly. Reinhard and exposure mappings are available for brighter scenes.

Example:
    >>> from mltrace.preview.display import show_preview
    >>> renderer.render()
    >>> show_preview(renderer, tone_map="reinhard")
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

import numpy as np
import numpy.typing as npt

if TYPE_CHECKING:
    from mltrace.core.render import MetropolisRenderer


# Type alias for tone mapping options
ToneMapMethod = Literal["clamp", "reinhard", "exposure"]

# Number of integer levels per channel in 8-bit output
DISPLAY_LEVELS = 256


def tone_map_clamp(
    image: npt.NDArray[np.floating],
) -> npt.NDArray[np.float32]:
    """Clamp to [0, 1]; non-finite values become 0."""
    image = np.nan_to_num(image, nan=0.0, posinf=1.0, neginf=0.0)
    return np.clip(image, 0.0, 1.0).astype(np.float32)


def tone_map_reinhard(
    image: npt.NDArray[np.floating],
) -> npt.NDArray[np.float32]:
    """Apply Reinhard tone mapping: L / (1 + L).

    Args:
        image: Linear HDR image array of shape (H, W, 3).

    Returns:
        Tone mapped image in [0, 1] range.
    """
    image = np.maximum(image, 0.0)
    result = image / (1.0 + image)
    return result.astype(np.float32)


def tone_map_exposure(
    image: npt.NDArray[np.floating],
    exposure: float = 1.0,
) -> npt.NDArray[np.float32]:
    """Apply exposure-based tone mapping: 1 - exp(-c * exposure).

    Args:
        image: Linear HDR image array of shape (H, W, 3).
        exposure: Exposure value (default 1.0). Higher values brighten the image.

    Returns:
        Tone mapped image in [0, 1] range.
    """
    image = np.maximum(image, 0.0)
    result = 1.0 - np.exp(-image * exposure)
    return result.astype(np.float32)


def apply_gamma(
    image: npt.NDArray[np.float32],
    gamma: float = 1.0,
) -> npt.NDArray[np.float32]:
    """Apply gamma encoding ``in ** (1 / gamma)``; gamma 1.0 is a no-op.

    Args:
        image: Image array of shape (H, W, 3) in [0, 1] range.
        gamma: Gamma value (2.2 for sRGB-like output).

    Returns:
        Gamma corrected image.
    """
    if gamma == 1.0:
        return image

    # Clamp to [0, 1] before gamma to avoid NaN from negative values
    image = np.clip(image, 0.0, 1.0)
    result = np.power(image, 1.0 / gamma)
    return result.astype(np.float32)


def process_image_for_display(
    image: npt.NDArray[np.floating],
    tone_map: ToneMapMethod = "clamp",
    gamma: float = 1.0,
    exposure: float = 1.0,
) -> npt.NDArray[np.float32]:
    """Run the display pipeline: tone mapping, gamma, final clamp.

    Args:
        image: Linear image array of shape (H, W, 3).
        tone_map: Tone mapping method ("clamp", "reinhard" or "exposure").
        gamma: Gamma correction value (default 1.0, linear).
        exposure: Exposure value for exposure tone mapping.

    Returns:
        Processed image in [0, 1] range.

    Raises:
        ValueError: For an unknown tone mapping method.
    """
    if tone_map == "clamp":
        result = tone_map_clamp(image)
    elif tone_map == "reinhard":
        result = tone_map_reinhard(np.nan_to_num(image))
    elif tone_map == "exposure":
        result = tone_map_exposure(np.nan_to_num(image), exposure)
    else:
        raise ValueError(f"Unknown tone mapping method: {tone_map}")

    result = apply_gamma(result, gamma)
    return np.clip(result, 0.0, 1.0).astype(np.float32)


def to_display_levels(image: npt.NDArray[np.floating]) -> npt.NDArray[np.uint8]:
    """Quantize channel values to 8-bit levels.

    Values below 0 map to 0, values at or above 1 to 255, and everything in
    between to ``trunc(c * 256)``. Non-finite values map to 0.
    """
    image = np.nan_to_num(np.asarray(image, dtype=np.float64), nan=0.0, posinf=1.0, neginf=0.0)
    levels = np.trunc(np.clip(image, 0.0, 1.0) * DISPLAY_LEVELS)
    return np.minimum(levels, DISPLAY_LEVELS - 1).astype(np.uint8)


def show_preview(
    renderer: MetropolisRenderer,
    *,
    tone_map: ToneMapMethod = "clamp",
    gamma: float = 1.0,
    exposure: float = 1.0,
    title: str | None = None,
    figsize: tuple[float, float] = (8, 8),
    block: bool = True,
) -> None:
    """Display the current render as a Matplotlib figure.

    Args:
        renderer: The renderer whose buffer to display.
        tone_map: Tone mapping method ("clamp", "reinhard" or "exposure").
        gamma: Gamma correction value.
        exposure: Exposure value for exposure tone mapping.
        title: Custom title (default shows the sample budget).
        figsize: Figure size in inches (width, height).
        block: Whether to block execution until the figure is closed.
    """
    import matplotlib.pyplot as plt

    display_image = process_image_for_display(
        renderer.get_image_numpy(),
        tone_map=tone_map,
        gamma=gamma,
        exposure=exposure,
    )

    fig, ax = plt.subplots(1, 1, figsize=figsize)
    ax.imshow(display_image)
    ax.axis("off")

    if title is None:
        spp = renderer.settings.samples_per_pixel
        title_text = f"Metropolis Preview - {spp} samples/pixel"
        if tone_map != "clamp":
            title_text += f" ({tone_map})"
    else:
        title_text = title

    ax.set_title(title_text)

    plt.tight_layout()
    plt.show(block=block)
