#!/usr/bin/env python3
"""Render the reference sphere scene with Metropolis light transport.

Runs one Markov chain per (pixel, light) on a thread pool and writes the
accumulated image as a PNG.

Usage:
    python -m examples.render_spheres [options]

Options:
    --width WIDTH         Image width in pixels (default: 256)
    --height HEIGHT       Image height in pixels (default: 256)
    --samples SAMPLES     Iterations per chain (default: 64)
    --workers WORKERS     Worker threads (default: CPU count)
    --seed SEED           Root random seed (default: fresh entropy)
    --floor               Add a floor plane under the spheres
    --glossiness G        Specular weight on the main sphere, 0..1 (default: 0)
    --tone-map METHOD     clamp, reinhard or exposure (default: clamp)
    --output OUTPUT       Output file path (default: spheres.png)
    --preview             Show a Matplotlib preview after rendering
    --verbose             Log chain statistics
    --quiet               Suppress progress output

Example:
    python -m examples.render_spheres --width 128 --height 128 --samples 32
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render the reference sphere scene.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--width",
        type=int,
        default=256,
        help="Image width in pixels (default: 256)",
    )
    parser.add_argument(
        "--height",
        type=int,
        default=256,
        help="Image height in pixels (default: 256)",
    )
    parser.add_argument(
        "--samples",
        type=int,
        default=64,
        help="Iterations per chain (default: 64)",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Worker threads (default: CPU count)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Root random seed (default: fresh entropy)",
    )
    parser.add_argument(
        "--floor",
        action="store_true",
        help="Add a floor plane under the spheres",
    )
    parser.add_argument(
        "--glossiness",
        type=float,
        default=0.0,
        help="Specular weight on the main sphere, 0..1 (default: 0)",
    )
    parser.add_argument(
        "--tone-map",
        choices=["clamp", "reinhard", "exposure"],
        default="clamp",
        help="Tone mapping method (default: clamp)",
    )
    parser.add_argument(
        "--output",
        type=str,
        default="spheres.png",
        help="Output file path (default: spheres.png)",
    )
    parser.add_argument(
        "--preview",
        action="store_true",
        help="Show a Matplotlib preview after rendering",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log chain statistics",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output",
    )
    return parser.parse_args()


def render_spheres(
    width: int = 256,
    height: int = 256,
    samples: int = 64,
    workers: int | None = None,
    seed: int | None = None,
    floor: bool = False,
    glossiness: float = 0.0,
    tone_map: str = "clamp",
    output_path: str = "spheres.png",
    preview: bool = False,
    quiet: bool = False,
) -> Path:
    """Render the sphere scene and save it to a PNG.

    Returns:
        Path to the saved image file.
    """
    from mltrace.core.render import MetropolisRenderer, RenderSettings
    from mltrace.preview.export import save_png
    from mltrace.scene.spheres import SphereSceneParams, create_sphere_scene

    if not quiet:
        print(f"Creating sphere scene ({width}x{height})...")

    scene = create_sphere_scene(SphereSceneParams(with_floor=floor, glossiness=glossiness))
    settings = RenderSettings(
        width=width,
        height=height,
        samples_per_pixel=samples,
        num_workers=workers,
        seed=seed,
    )
    renderer = MetropolisRenderer(scene, settings)

    if not quiet:
        print(f"Running {renderer.total_chains} chains of {samples} samples...")

    start_time = time.time()

    def progress_callback(current: int, target: int) -> None:
        if not quiet:
            elapsed = time.time() - start_time
            progress_pct = (current / target) * 100 if target > 0 else 0
            chains_per_sec = current / elapsed if elapsed > 0 else 0
            print(
                f"\r  Progress: {current}/{target} chains "
                f"({progress_pct:.1f}%) - {chains_per_sec:.1f} chains/s",
                end="",
                flush=True,
            )

    renderer.render(callback=progress_callback, batch_size=width)

    if not quiet:
        print()  # Newline after progress
        print(f"Acceptance rate: {renderer.stats.acceptance_rate:.3f}")

    output_file = Path(output_path)
    save_png(renderer, str(output_file), tone_map=tone_map)

    total_time = time.time() - start_time
    if not quiet:
        print(f"Saved to: {output_file.absolute()}")
        print(f"Total time: {total_time:.2f}s")

    if preview:
        from mltrace.preview.display import show_preview

        show_preview(renderer, tone_map=tone_map)

    return output_file


def main() -> int:
    """Main entry point."""
    args = parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    try:
        render_spheres(
            width=args.width,
            height=args.height,
            samples=args.samples,
            workers=args.workers,
            seed=args.seed,
            floor=args.floor,
            glossiness=args.glossiness,
            tone_map=args.tone_map,
            output_path=args.output,
            preview=args.preview,
            quiet=args.quiet,
        )
        return 0
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
