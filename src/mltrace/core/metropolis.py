"""Metropolis sampling loop for a single Markov chain.

One chain is anchored to one image-plane point and one light. It starts from a
bidirectionally constructed path and then, for a fixed number of iterations:

1. records the current path into the pixel buffer with the per-sample weight;
2. proposes a bidirectional mutation of the current path;
3. accepts or rejects the candidate.

A candidate replaces a blocked current path (measure exactly 0)
unconditionally. Otherwise the acceptance ratio is

    (measure(new) / measure(current)) * (old_probability / new_probability) * scale

and the candidate is accepted when a uniform draw falls below it. ``scale``
defaults to ACCEPTANCE_SCALE, an empirical constant carried over from the
working renderer. It has no derivation and is exposed so it can be tuned.

Example:
    >>> import numpy as np
    >>> from mltrace.core.accumulator import PixelBuffer
    >>> from mltrace.core.metropolis import draw
    >>> image = PixelBuffer(64, 64)
    >>> stats = draw(100, 0.0, 0.0, scene.lights[0], scene, image,
    ...              np.random.default_rng(0), weight=0.1)
    >>> stats.acceptance_rate
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from mltrace.core.accumulator import PixelBuffer
from mltrace.core.path import MutationKind, measure, mutate, propose_path

if TYPE_CHECKING:
    from mltrace.scene.scene import Light, Scene

# Empirical multiplier on the acceptance ratio (tunable)
ACCEPTANCE_SCALE = 10.0


def should_accept(
    current_measure: float,
    new_measure: float,
    old_probability: float,
    new_probability: float,
    u: float,
    scale: float = ACCEPTANCE_SCALE,
) -> bool:
    """Decide whether a mutated candidate replaces the current path.

    Args:
        current_measure: Measure of the current path.
        new_measure: Measure of the candidate.
        old_probability: Proposal density that produced the current path.
        new_probability: Proposal density that produced the candidate.
        u: Uniform draw in [0, 1).
        scale: Multiplier applied to the ratio.

    Returns:
        True to accept. A blocked current path always yields True; a candidate
        whose density is zero or whose ratio is not finite is rejected.
    """
    if current_measure == 0.0:
        return True
    if not new_probability > 0.0:
        return False
    accept = new_measure / current_measure * old_probability / new_probability * scale
    if math.isnan(accept):
        return False
    return u < accept


@dataclass
class ChainStats:
    """Counters collected while running chains.

    Attributes:
        iterations: Iterations run (each one records a sample).
        proposals: Mutations that produced a candidate path.
        accepted: Candidates that replaced the current path.
    """

    iterations: int = 0
    proposals: int = 0
    accepted: int = 0

    @property
    def acceptance_rate(self) -> float:
        if self.proposals == 0:
            return 0.0
        return self.accepted / self.proposals

    def merge(self, other: ChainStats) -> None:
        self.iterations += other.iterations
        self.proposals += other.proposals
        self.accepted += other.accepted


def draw(
    samples: int,
    plane_x: float,
    plane_y: float,
    light: Light,
    scene: Scene,
    image: PixelBuffer,
    rng: np.random.Generator,
    weight: float,
    acceptance_scale: float = ACCEPTANCE_SCALE,
) -> ChainStats:
    """Run one Markov chain for ``samples`` iterations.

    Args:
        samples: Number of iterations (and recorded samples).
        plane_x: Image-plane x of the initial camera ray, in [-1, 1).
        plane_y: Image-plane y of the initial camera ray, in (-1, 1].
        light: Light anchoring every path of this chain.
        scene: The scene.
        image: Shared pixel buffer receiving the recorded samples.
        rng: Generator owned by this chain's worker.
        weight: Per-sample weight passed to Camera.record_sample.
        acceptance_scale: Multiplier on the acceptance ratio.

    Returns:
        The chain's counters.
    """
    stats = ChainStats()
    camera = scene.camera
    old_probability, path = propose_path(plane_x, plane_y, light, scene, rng)
    current_measure = measure(path, scene)

    for _ in range(samples):
        camera.record_sample(path, scene, image, weight)
        stats.iterations += 1

        result = mutate(path, scene, rng, MutationKind.BIDIRECTIONAL)
        if result is None:
            continue
        stats.proposals += 1
        new_probability, new_path = result
        new_measure = measure(new_path, scene)

        if should_accept(
            current_measure,
            new_measure,
            old_probability,
            new_probability,
            rng.random(),
            acceptance_scale,
        ):
            path = new_path
            old_probability = new_probability
            current_measure = new_measure
            stats.accepted += 1

    return stats
