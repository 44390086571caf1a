"""Preview module for output and visualization.

Components:
    display: Tone mapping and Matplotlib-based static preview
    export: PNG export via Pillow
    interactive: Taichi GGUI live preview window

The accumulated buffer holds unbounded linear values. The default "clamp"
mapping sends negatives to 0 and values at or above 1 to full intensity;
Reinhard and exposure mappings compress brighter renders instead.

Example:
    >>> from mltrace.preview import save_png, show_preview
    >>> renderer.render()
    >>> show_preview(renderer)
    >>> save_png(renderer, "output.png")

For the live GGUI preview:
    >>> from mltrace.preview import InteractivePreview
    >>> preview = InteractivePreview(renderer.width, renderer.height)
    >>> preview.run_live(renderer)
"""

from mltrace.preview.display import (
    DISPLAY_LEVELS,
    ToneMapMethod,
    apply_gamma,
    process_image_for_display,
    show_preview,
    to_display_levels,
    tone_map_clamp,
    tone_map_exposure,
    tone_map_reinhard,
)
from mltrace.preview.export import (
    image_to_uint8,
    save_png,
    save_png_from_array,
)
from mltrace.preview.interactive import InteractivePreview

__all__ = [
    # Interactive preview
    "InteractivePreview",
    # Display functions
    "show_preview",
    # Tone mapping
    "tone_map_clamp",
    "tone_map_reinhard",
    "tone_map_exposure",
    "apply_gamma",
    "process_image_for_display",
    "to_display_levels",
    "ToneMapMethod",
    "DISPLAY_LEVELS",
    # Export functions
    "save_png",
    "save_png_from_array",
    "image_to_uint8",
]
