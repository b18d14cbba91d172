"""Thread-local random number generation for Monte Carlo sampling.

Every render worker owns its own ``numpy.random.Generator`` so tiles can be
traced concurrently without sharing generator state. ``seed_rng`` reseeds
the generator of the calling thread, which makes a tile repeatable for a
fixed seed.

Example:
    >>> from src.tracer.core.sampling import get_rng, seed_rng
    >>> seed_rng(42)
    >>> value = get_rng().random()
"""

import threading

import numpy as np

_local = threading.local()


def seed_rng(seed: int | None = None) -> np.random.Generator:
    """Reseed the generator owned by the calling thread.

    Args:
        seed: Seed for the generator. None draws fresh OS entropy.

    Returns:
        The new generator.
    """
    _local.rng = np.random.default_rng(seed)
    return _local.rng


def get_rng() -> np.random.Generator:
    """Get the generator owned by the calling thread, creating it lazily."""
    rng = getattr(_local, "rng", None)
    if rng is None:
        rng = seed_rng()
    return rng


def random_float(low: float = 0.0, high: float = 1.0) -> float:
    """Draw a uniform float in [low, high)."""
    return low + (high - low) * float(get_rng().random())


def random_int(low: int, high: int) -> int:
    """Draw a uniform integer in [low, high)."""
    return int(get_rng().integers(low, high))
