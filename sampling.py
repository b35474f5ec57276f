"""
sampling.py

Uniform sampling primitives used by every dynamical system: continuous draws
over an interval, inclusive integer draws (step counts), uniform draws over a
box of bounds and polar draws inside a disk (particle clouds around a state).
"""

from typing import Optional, Union

import numpy as np

SeedLike = Union[int, np.random.SeedSequence, None]


class UniformSampler:
    """
    Seedable source of uniform draws backed by a NumPy Generator.

    A sampler is not safe to share between threads. Parallel workers should
    each own one of the children returned by spawn().
    """

    def __init__(self, seed: SeedLike = None):
        if isinstance(seed, np.random.SeedSequence):
            self._seed_seq = seed
        else:
            self._seed_seq = np.random.SeedSequence(seed)
        self._rng = np.random.default_rng(self._seed_seq)

    def uniform_real(self, lo: float, hi: float) -> float:
        """Continuous draw from [lo, hi]. Returns lo when the interval is degenerate."""
        if lo == hi:
            return float(lo)
        return float(self._rng.uniform(lo, hi))

    def uniform_int(self, lo: int, hi: int) -> int:
        """Integer draw from the inclusive range [lo, hi]."""
        return int(self._rng.integers(lo, hi, endpoint=True))

    def spawn(self, n: int) -> list["UniformSampler"]:
        """Independent child samplers, one per worker."""
        return [UniformSampler(child) for child in self._seed_seq.spawn(n)]


def sample_box(sampler: UniformSampler, bounds: np.ndarray, out: Optional[np.ndarray] = None) -> np.ndarray:
    """
    Draw one point uniformly from an axis-aligned box.

    Parameters
    ----------
    sampler : UniformSampler
        Source of randomness.
    bounds : np.ndarray
        Array of shape (K, 2) with one (min, max) row per coordinate.
    out : np.ndarray or None
        Optional destination of length >= K; only the first K entries are written.

    Returns
    -------
    np.ndarray
        The destination array.
    """
    bounds = np.asarray(bounds, dtype=float)
    if out is None:
        out = np.empty(bounds.shape[0], dtype=float)
    for k, (lo, hi) in enumerate(bounds):
        out[k] = sampler.uniform_real(lo, hi)
    return out


def sample_disk(sampler: UniformSampler, center: np.ndarray, radius: float) -> tuple[float, float]:
    """
    Polar draw inside the disk of given radius around center[:2].

    The radius is drawn uniformly in [0, radius] and the angle uniformly in
    [-pi, pi], so samples concentrate towards the center.

    Returns
    -------
    tuple of float
        The sampled (x, y).
    """
    r = sampler.uniform_real(0.0, radius)
    theta = sampler.uniform_real(-np.pi, np.pi)
    return center[0] + r * np.cos(theta), center[1] + r * np.sin(theta)
