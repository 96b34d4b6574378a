"""Pytest configuration for raycore tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls which can cause
    segmentation faults due to Taichi runtime conflicts. Fast math stays off
    so infinite and NaN distances compare as IEEE-754 requires.
    """
    from raycore.config import TaichiConfig, init_taichi

    init_taichi(TaichiConfig(arch="cpu", random_seed=42, fast_math=False))
    yield


@pytest.fixture(autouse=True)
def clear_all_scene_data():
    """Clear the device scene storage before and after each test.

    This ensures tests are isolated from each other.
    """
    # Import here so Taichi is initialized before fields are allocated
    from raycore.scene.intersection import clear_scene

    clear_scene()
    yield
    clear_scene()
