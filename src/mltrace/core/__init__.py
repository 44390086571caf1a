"""Core rendering module.

Components:
    ray: Vector helpers, the Ray type and direction sampling
    accumulator: Thread-safe pixel buffer shared by the render workers
    path: Light-to-camera paths, their measure and bidirectional mutation
    metropolis: Per-chain Metropolis sampling loop
    render: Multi-worker renderer driving one chain per (pixel, light)

The core module implements Metropolis light transport: every chain starts
from a bidirectionally constructed path, records the current path on each
iteration and accepts mutated candidates by the ratio of their measures.
"""

from .accumulator import MAX_IMAGE_HEIGHT, MAX_IMAGE_WIDTH, PixelBuffer
from .ray import (
    Ray,
    angle_between,
    as_vec3,
    build_onb_from_normal,
    color,
    cross,
    dot,
    is_finite,
    length,
    length_squared,
    local_to_world,
    luminance,
    near_zero,
    normalize,
    project_onto_plane,
    sample_hatbox_hemisphere,
    sample_uniform_sphere,
    vec3,
)

# Note: path, metropolis and render are NOT imported here to avoid circular imports.
# Import directly from mltrace.core.path, mltrace.core.metropolis or
# mltrace.core.render when needed.
#
# For rendering, use:
#   from mltrace.core.render import MetropolisRenderer, RenderSettings

__all__ = [
    "Ray",
    "vec3",
    "color",
    "as_vec3",
    "dot",
    "cross",
    "length",
    "length_squared",
    "normalize",
    "near_zero",
    "is_finite",
    "angle_between",
    "project_onto_plane",
    "luminance",
    "build_onb_from_normal",
    "local_to_world",
    "sample_hatbox_hemisphere",
    "sample_uniform_sphere",
    "PixelBuffer",
    "MAX_IMAGE_WIDTH",
    "MAX_IMAGE_HEIGHT",
]
