"""Seeded synthetic matrix generators for CUR experiments."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np
from numpy.typing import NDArray

FloatArray = NDArray[np.floating]


@dataclass
class GaussianMatrixSpec:
    """Dense i.i.d. standard normal ``(m, n)`` matrix."""

    m: int
    n: int
    seed: Optional[int] = None


@dataclass
class LowRankMatrixSpec:
    """Rank-``r`` matrix ``U diag(s) V^T`` with power-law spectrum plus optional noise.

    The singular values are ``s_i = (i + 1) ** -decay_exponent`` for
    ``i = 0..r-1``; ``noise_std`` adds i.i.d. Gaussian noise on top.
    """

    m: int
    n: int
    r: int
    decay_exponent: float = 1.0
    noise_std: float = 0.0
    seed: Optional[int] = None


def gaussian_matrix(spec: GaussianMatrixSpec) -> FloatArray:
    rng = np.random.default_rng(spec.seed)
    return rng.standard_normal(size=(spec.m, spec.n))


def low_rank_matrix(spec: LowRankMatrixSpec) -> FloatArray:
    """Generate a matrix following ``spec``.

    Raises
    ------
    ValueError
        If ``r`` is not in ``[1, min(m, n)]`` or ``noise_std`` is negative.
    """

    if not 1 <= spec.r <= min(spec.m, spec.n):
        raise ValueError("rank r must lie in [1, min(m, n)]")
    if spec.noise_std < 0.0:
        raise ValueError("noise_std must be non-negative")

    rng = np.random.default_rng(spec.seed)
    u, _ = np.linalg.qr(rng.standard_normal(size=(spec.m, spec.r)))
    v, _ = np.linalg.qr(rng.standard_normal(size=(spec.n, spec.r)))
    singulars = (np.arange(spec.r, dtype=np.float64) + 1.0) ** (-spec.decay_exponent)
    a = (u * singulars[np.newaxis, :]) @ v.T
    if spec.noise_std > 0.0:
        a = a + spec.noise_std * rng.standard_normal(size=a.shape)
    return a.astype(np.float64, copy=False)
