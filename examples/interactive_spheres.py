#!/usr/bin/env python3
"""Live preview of the sphere scene while it renders.

Opens a Taichi GGUI window and refreshes it from the pixel buffer while the
Metropolis chains run on a background thread.

Usage:
    python -m examples.interactive_spheres [--size SIZE] [--samples SAMPLES]

Controls:
    - Export PNG: Save the current buffer with a timestamped filename
    - Close the window to exit (the render stops with the process)
"""

from __future__ import annotations

import argparse
import platform
import sys
from pathlib import Path

# Ensure the project root is in the Python path for direct execution
_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

import taichi as ti  # noqa: E402


def initialize_taichi() -> str:
    """Initialize Taichi with the best available backend.

    On macOS, prefers Metal. Falls back to CPU if GPU is unavailable.

    Returns:
        Name of the backend being used.
    """
    if platform.system() == "Darwin":
        try:
            ti.init(arch=ti.metal)
            return "Metal (GPU)"
        except Exception:
            pass

    try:
        ti.init(arch=ti.gpu)
        return "GPU"
    except Exception:
        pass

    ti.init(arch=ti.cpu)
    return "CPU"


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(description="Live preview of the sphere scene.")
    parser.add_argument("--size", type=int, default=256, help="Window size in pixels (default: 256)")
    parser.add_argument("--samples", type=int, default=64, help="Iterations per chain (default: 64)")
    parser.add_argument("--floor", action="store_true", help="Add a floor plane")
    return parser.parse_args()


def main() -> int:
    """Main entry point for the live preview.

    Returns:
        Exit code (0 for success, non-zero for error).
    """
    args = parse_args()

    backend = initialize_taichi()
    print(f"Taichi backend: {backend}")

    from mltrace.core.render import MetropolisRenderer, RenderSettings
    from mltrace.preview.interactive import InteractivePreview
    from mltrace.scene.spheres import SphereSceneParams, create_sphere_scene

    if not InteractivePreview.is_display_available():
        print("Error: No display available. Cannot run interactive preview.")
        print("This script requires a graphical display environment.")
        return 1

    try:
        scene = create_sphere_scene(SphereSceneParams(with_floor=args.floor))
        renderer = MetropolisRenderer(
            scene,
            RenderSettings(width=args.size, height=args.size, samples_per_pixel=args.samples),
        )
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Creating live preview window ({args.size}x{args.size})...")
    preview = InteractivePreview(args.size, args.size)

    print("Starting render...")
    print("  - Click 'Export PNG' to save the current buffer")
    print("  - Close window to exit")
    print()

    try:
        preview.run_live(renderer)
    except KeyboardInterrupt:
        print("\nInterrupted by user.")
    finally:
        preview.close()
        print("Preview window closed.")

    return 0


if __name__ == "__main__":
    sys.exit(main())
