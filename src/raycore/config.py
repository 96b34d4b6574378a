"""Runtime configuration for Taichi initialisation and logging.

Settings are read from environment variables with sensible defaults, so the
same code runs on a laptop CPU and a CUDA workstation without edits.

Environment variables:
    RAYCORE_ARCH: Taichi backend ("cpu", "gpu", "cuda", "vulkan", "metal").
    RAYCORE_DEBUG: Enable Taichi debug mode (bounds checks in kernels).
    RAYCORE_FAST_MATH: Allow Taichi fast-math optimisations.
    RAYCORE_SEED: Random seed passed to ti.init.
    RAYCORE_FP: Default floating point type ("f32" or "f64").
    RAYCORE_LOG_LEVEL: Logging level for the raycore logger.
    RAYCORE_LOG_FORMAT: Logging format string.

Example:
    >>> from raycore.config import TaichiConfig, init_taichi, setup_logging
    >>> setup_logging("DEBUG")
    >>> init_taichi(TaichiConfig(arch="cpu"))
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

import taichi as ti

logger = logging.getLogger(__name__)

LOG_LEVEL = os.getenv("RAYCORE_LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv(
    "RAYCORE_LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

_ARCHES = {
    "cpu": ti.cpu,
    "gpu": ti.gpu,
    "cuda": ti.cuda,
    "vulkan": ti.vulkan,
    "metal": ti.metal,
}

_FP_TYPES = {
    "f32": ti.f32,
    "f64": ti.f64,
}


def _env_flag(name: str, default: bool) -> bool:
    return os.getenv(name, str(default)).lower() in ("1", "true", "yes", "on")


@dataclass
class TaichiConfig:
    """Options forwarded to ti.init.

    Attributes:
        arch: Backend name, one of "cpu", "gpu", "cuda", "vulkan", "metal".
        debug: Enable Taichi debug mode.
        fast_math: Allow fast-math. Keep this off: the plane test depends on
            IEEE-754 comparisons of infinite and NaN distances for rays
            parallel to the plane.
        random_seed: Seed for Taichi's random number generator.
        default_fp: Default float type, "f32" or "f64".
    """

    arch: str = "cpu"
    debug: bool = False
    fast_math: bool = False
    random_seed: int = 0
    default_fp: str = "f32"

    @classmethod
    def from_env(cls) -> TaichiConfig:
        """Build a config from RAYCORE_* environment variables."""
        return cls(
            arch=os.getenv("RAYCORE_ARCH", "cpu").lower(),
            debug=_env_flag("RAYCORE_DEBUG", False),
            fast_math=_env_flag("RAYCORE_FAST_MATH", False),
            random_seed=int(os.getenv("RAYCORE_SEED", "0")),
            default_fp=os.getenv("RAYCORE_FP", "f32").lower(),
        )

    def init_kwargs(self) -> dict:
        """Translate the config into keyword arguments for ti.init.

        Raises:
            ValueError: If arch or default_fp is not recognised.
        """
        if self.arch not in _ARCHES:
            raise ValueError(f"Unknown Taichi arch: {self.arch!r}")
        if self.default_fp not in _FP_TYPES:
            raise ValueError(f"Unknown default_fp: {self.default_fp!r}")
        return {
            "arch": _ARCHES[self.arch],
            "debug": self.debug,
            "fast_math": self.fast_math,
            "random_seed": self.random_seed,
            "default_fp": _FP_TYPES[self.default_fp],
        }


def init_taichi(config: TaichiConfig | None = None) -> TaichiConfig:
    """Initialise the Taichi runtime.

    Must run before raycore.scene is imported.

    Args:
        config: Options to use. Defaults to TaichiConfig.from_env().

    Returns:
        The config that was applied.
    """
    if config is None:
        config = TaichiConfig.from_env()
    if config.fast_math:
        logger.warning("fast_math enabled; rays parallel to planes may report spurious hits")
    ti.init(**config.init_kwargs())
    logger.info("Taichi initialised (arch=%s, fp=%s)", config.arch, config.default_fp)
    return config


def setup_logging(level: str | None = None) -> logging.Logger:
    """Attach a console handler to the raycore logger.

    Calling this more than once only updates the level.

    Args:
        level: Level name such as "DEBUG". Defaults to RAYCORE_LOG_LEVEL.

    Returns:
        The configured "raycore" logger.
    """
    if level is None:
        level = LOG_LEVEL
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root = logging.getLogger("raycore")
    root.setLevel(numeric_level)

    if not any(getattr(h, "_raycore_handler", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._raycore_handler = True
        root.addHandler(handler)

    for handler in root.handlers:
        handler.setLevel(numeric_level)

    return root
