"""Metropolis light transport renderer for scenes of analytic surfaces.

This package estimates the radiance reaching a pinhole camera from point lights
by running one Markov chain of light paths per pixel, with support for:
- Bidirectional initial path construction (light chain + camera chain)
- Bidirectional segment mutation with Metropolis acceptance
- Angle-based scattering models (Lambertian, specular lobe, weighted mix)
- Thread-pool rendering into a lock-guarded accumulation buffer

Subpackages:
    core: Vector utilities, path model, Metropolis sampler and render driver
    geometry: Shape primitives and intersection algorithms
    materials: Scattering models
    scene: Lights, objects and nearest-hit casting
    camera: Pinhole projection and sample accumulation
    preview: Tone mapping, PNG export and the interactive preview window
"""

__version__ = "0.1.0"
