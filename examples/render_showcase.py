#!/usr/bin/env python3
"""Render the random spheres showcase scene.

This script builds the showcase scene, sets up the thin-lens camera and
renders it in batches, logging progress, then writes a PNG.

Usage:
    python -m examples.render_showcase [options]

Options:
    --width WIDTH       Image width in pixels (default: 400)
    --samples SAMPLES   Number of samples per pixel (default: 50)
    --max-depth DEPTH   Maximum path length (default: 50)
    --seed SEED         Seed for the scene and the sampler (default: 0)
    --workers N         CPU threads (default: all CPUs)
    --grid N            Small sphere grid half-extent (default: 8)
    --output OUTPUT     Output file path (default: showcase.png)
    --batch-size SIZE   Samples per progress update (default: 10)
    --verbose           Log per-batch progress

Example:
    python -m examples.render_showcase --width 200 --samples 16 --workers 4
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import taichi as ti

ASPECT_RATIO = 16.0 / 9.0

logger = logging.getLogger("render_showcase")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render the random spheres showcase scene.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--width", type=int, default=400, help="Image width in pixels (default: 400)"
    )
    parser.add_argument(
        "--samples", type=int, default=50, help="Number of samples per pixel (default: 50)"
    )
    parser.add_argument(
        "--max-depth", type=int, default=50, help="Maximum path length (default: 50)"
    )
    parser.add_argument(
        "--seed", type=int, default=0, help="Seed for the scene and the sampler (default: 0)"
    )
    parser.add_argument(
        "--workers", type=int, default=None, help="CPU threads (default: all CPUs)"
    )
    parser.add_argument(
        "--grid", type=int, default=8, help="Small sphere grid half-extent (default: 8)"
    )
    parser.add_argument(
        "--output", type=str, default="showcase.png", help="Output file path (default: showcase.png)"
    )
    parser.add_argument(
        "--batch-size", type=int, default=10, help="Samples per progress update (default: 10)"
    )
    parser.add_argument("--verbose", action="store_true", help="Log per-batch progress")
    return parser.parse_args(argv)


def render_showcase(
    width: int = 400,
    num_samples: int = 50,
    max_depth: int = 50,
    seed: int = 0,
    workers: int | None = None,
    grid: int = 8,
    output_path: str = "showcase.png",
    batch_size: int = 10,
) -> Path:
    """Render the showcase scene and save it to a file.

    Returns:
        Path to the saved image file.
    """
    # Lazy imports so Taichi is initialized first
    from pathtrace.camera.thin_lens import setup_camera
    from pathtrace.core.config import RenderConfig
    from pathtrace.core.progressive import ProgressiveRenderer
    from pathtrace.preview.export import save_png
    from pathtrace.scene.showcase import create_showcase_scene

    height = max(1, int(width / ASPECT_RATIO))
    config = RenderConfig(
        width=width,
        height=height,
        samples_per_pixel=num_samples,
        max_depth=max_depth,
        seed=seed,
        workers=workers,
    )

    _, camera = create_showcase_scene(seed=seed, grid=grid, aspect_ratio=config.aspect_ratio)
    setup_camera(camera)

    renderer = ProgressiveRenderer(config)

    def progress_callback(current: int, target: int) -> None:
        logger.info("%d/%d samples (%.0f%%)", current, target, 100.0 * current / target)

    renderer.render(batch_size=batch_size, callback=progress_callback)

    output_file = Path(output_path)
    save_png(renderer, str(output_file))
    return output_file


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Worker counts apply to the CPU backend
    ti.init(arch=ti.cpu)

    try:
        render_showcase(
            width=args.width,
            num_samples=args.samples,
            max_depth=args.max_depth,
            seed=args.seed,
            workers=args.workers,
            grid=args.grid,
            output_path=args.output,
            batch_size=args.batch_size,
        )
    except (ValueError, RuntimeError, OSError) as e:
        logger.error("Render failed: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
