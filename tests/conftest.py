"""Pytest configuration for renderer tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls which can cause
    segmentation faults due to Taichi runtime conflicts.
    """
    ti.init(arch=ti.cpu, random_seed=42)
    yield


@pytest.fixture(autouse=True)
def reset_render_state():
    """Reseed the calling thread's generator and clear the render target.

    This keeps Monte Carlo tests repeatable and isolated from each other.
    """
    from src.tracer.core.sampling import seed_rng

    def _reset():
        seed_rng(42)
        try:
            from src.tracer.core.integrator import clear_render_target

            clear_render_target()
        except (ImportError, RuntimeError):
            # Render target not set up yet
            pass

    _reset()
    yield
    _reset()


@pytest.fixture
def gray():
    """A mid-gray Lambertian material."""
    from src.tracer.materials import Lambertian

    return Lambertian((0.5, 0.5, 0.5))
