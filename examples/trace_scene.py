#!/usr/bin/env python3
"""Trace a grid of camera rays through one of the preset scenes.

This script builds a preset scene, fires one ray per pixel from the preset's
camera position in a single batch query and prints hit statistics. For a
sample of the hit points it also evaluates the direct lighting.

Usage:
    python examples/trace_scene.py [options]

Options:
    --scene NAME        Preset scene: solid_color, sphere_grid, lambert_test,
                        cook_torrance (default: sphere_grid)
    --width WIDTH       Grid width in rays (default: 64)
    --height HEIGHT     Grid height in rays (default: 48)
    --lighting-samples N
                        Hit points to evaluate direct lighting at (default: 32)
    --ascii             Print the material index of every ray as a text image
    --save-json PATH    Also write the scene description to a JSON file
    --arch ARCH         Taichi backend (default: RAYCORE_ARCH or cpu)
    --quiet             Suppress progress output

Example:
    python examples/trace_scene.py --scene solid_color --width 40 --height 20 --ascii
"""

from __future__ import annotations

import argparse
import logging
import math
import sys
import time
from dataclasses import replace

import numpy as np

from raycore.config import TaichiConfig, init_taichi, setup_logging

logger = logging.getLogger("raycore.examples.trace_scene")

# Characters used by --ascii, indexed by material index
_ASCII_PALETTE = "0123456789abcdefghijklmnopqrstuvwxyz"


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Trace a grid of camera rays through a preset scene.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--scene",
        type=str,
        default="sphere_grid",
        choices=["solid_color", "sphere_grid", "lambert_test", "cook_torrance"],
        help="Preset scene (default: sphere_grid)",
    )
    parser.add_argument(
        "--width",
        type=int,
        default=64,
        help="Grid width in rays (default: 64)",
    )
    parser.add_argument(
        "--height",
        type=int,
        default=48,
        help="Grid height in rays (default: 48)",
    )
    parser.add_argument(
        "--lighting-samples",
        type=int,
        default=32,
        help="Hit points to evaluate direct lighting at (default: 32)",
    )
    parser.add_argument(
        "--ascii",
        action="store_true",
        help="Print the material index of every ray as a text image",
    )
    parser.add_argument(
        "--save-json",
        type=str,
        default=None,
        help="Also write the scene description to a JSON file",
    )
    parser.add_argument(
        "--arch",
        type=str,
        default=None,
        help="Taichi backend: cpu, gpu, cuda, vulkan or metal (default: RAYCORE_ARCH or cpu)",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output",
    )
    return parser.parse_args()


def camera_rays(
    origin: tuple[float, float, float],
    fov_degrees: float,
    width: int,
    height: int,
) -> tuple[np.ndarray, np.ndarray]:
    """Generate one ray per pixel for a camera looking along +Z.

    Returns:
        Tuple of (origins, directions), both (width * height, 3) float32
        arrays in row-major pixel order, top row first.
    """
    aspect = width / height
    scale = math.tan(math.radians(fov_degrees) / 2.0)
    xs = (2.0 * (np.arange(width) + 0.5) / width - 1.0) * aspect * scale
    ys = (1.0 - 2.0 * (np.arange(height) + 0.5) / height) * scale
    grid_x, grid_y = np.meshgrid(xs, ys)

    directions = np.stack([grid_x, grid_y, np.ones_like(grid_x)], axis=-1).reshape(-1, 3)
    directions /= np.linalg.norm(directions, axis=1, keepdims=True)
    origins = np.broadcast_to(np.asarray(origin, dtype=np.float64), directions.shape)
    return origins.astype(np.float32), directions.astype(np.float32)


def trace_scene(
    scene_name: str = "sphere_grid",
    width: int = 64,
    height: int = 48,
    lighting_samples: int = 32,
    ascii_art: bool = False,
    save_json: str | None = None,
    quiet: bool = False,
) -> dict[str, float]:
    """Trace a preset scene and print statistics.

    Args:
        scene_name: Key of raycore.scene.presets.PRESETS.
        width: Grid width in rays.
        height: Grid height in rays.
        lighting_samples: Number of hit points to evaluate direct lighting at.
        ascii_art: If True, print the material index grid.
        save_json: Optional path to write the scene description to.
        quiet: If True, suppress progress output.

    Returns:
        Dictionary with hit_fraction and mean_luminance.
    """
    # Lazy imports to allow Taichi initialization first
    from raycore.scene.presets import PRESETS

    scene, view = PRESETS[scene_name]()
    if save_json is not None:
        scene.save_scene_json(save_json)

    if not quiet:
        print(
            f"Scene '{scene_name}': {scene.get_sphere_count()} spheres, "
            f"{scene.get_plane_count()} planes, {scene.get_light_count()} lights"
        )

    origins, directions = camera_rays(view.origin, view.fov_degrees, width, height)

    start_time = time.time()
    hits = scene.closest_hit_batch(origins, directions)
    trace_time = time.time() - start_time

    hit_fraction = float(np.count_nonzero(hits.did_hit)) / len(hits)
    if not quiet:
        print(f"Traced {len(hits)} rays in {trace_time:.3f}s, {hit_fraction * 100:.1f}% hit")
        ids, counts = np.unique(hits.material_ids[hits.did_hit], return_counts=True)
        for material_id, count in zip(ids, counts):
            material = scene.get_material(int(material_id))
            print(f"  material {material_id} ({type(material).__name__}): {count} rays")

    # Direct lighting at an even sample of the hit points
    mean_luminance = 0.0
    hit_indices = np.flatnonzero(hits.did_hit)
    if scene.get_light_count() and len(hit_indices) and lighting_samples > 0:
        step = max(1, len(hit_indices) // lighting_samples)
        sampled = hit_indices[::step][:lighting_samples]
        luminances = []
        for i in sampled:
            r, g, b = scene.direct_lighting(hits.points[i], hits.normals[i])
            luminances.append(0.2126 * r + 0.7152 * g + 0.0722 * b)
        mean_luminance = float(np.mean(luminances))
        if not quiet:
            lit = sum(1 for value in luminances if value > 0.0)
            print(
                f"Direct lighting at {len(sampled)} points: {lit} lit, "
                f"mean luminance {mean_luminance:.4f}"
            )

    if ascii_art:
        image = np.where(hits.did_hit, hits.material_ids, -1).reshape(height, width)
        for row in image:
            print("".join(_ASCII_PALETTE[m % len(_ASCII_PALETTE)] if m >= 0 else "." for m in row))

    return {"hit_fraction": hit_fraction, "mean_luminance": mean_luminance}


def main() -> int:
    """Main entry point."""
    args = parse_args()
    setup_logging("WARNING" if args.quiet else None)

    config = TaichiConfig.from_env()
    if args.arch is not None:
        config = replace(config, arch=args.arch)

    try:
        init_taichi(config)
        trace_scene(
            scene_name=args.scene,
            width=args.width,
            height=args.height,
            lighting_samples=args.lighting_samples,
            ascii_art=args.ascii,
            save_json=args.save_json,
            quiet=args.quiet,
        )
        return 0
    except (OSError, RuntimeError, ValueError) as e:
        logger.error("Tracing failed: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
