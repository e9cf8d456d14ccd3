"""Norms and reference errors for evaluating CUR reconstructions.

All functions here work purely on NumPy arrays and are side-effect free.
"""

from __future__ import annotations

from typing import NamedTuple, Optional

import numpy as np
from numpy.typing import NDArray
from scipy.sparse.linalg import ArpackError, ArpackNoConvergence, svds

from randomized_cur.common.errors import InvalidConfiguration, NumericalFailure

FloatArray = NDArray[np.floating]


class OptimalErrors(NamedTuple):
    """Errors of the best rank-k approximation (Eckart-Young)."""

    frobenius: float
    spectral: float


def frobenius_norm(residual: FloatArray) -> float:
    """Frobenius norm ``||residual||_F``."""

    return float(np.linalg.norm(residual, ord="fro"))


def spectral_norm(residual: FloatArray, rng: Optional[np.random.Generator] = None) -> float:
    """Largest singular value of ``residual`` via a top-1 ARPACK extraction.

    Parameters
    ----------
    residual:
        Two-dimensional array.
    rng:
        Generator used to draw the ARPACK start vector. Passing the trial's
        generator keeps seeded runs exactly reproducible.

    Returns
    -------
    float
        ``||residual||_2``.

    Raises
    ------
    NumericalFailure
        If ARPACK does not converge.
    """

    if residual.ndim != 2:
        raise ValueError("spectral_norm expects a 2D array")
    if min(residual.shape) == 1:
        # svds needs k < min(shape); a single row/column is just a vector.
        return float(np.linalg.norm(residual.ravel()))
    if not np.any(residual):
        # ARPACK cannot build a Lanczos factorization of the zero operator.
        return 0.0

    v0 = None
    if rng is not None:
        v0 = rng.standard_normal(min(residual.shape))
    try:
        s = svds(residual, k=1, v0=v0, return_singular_vectors=False)
    except (ArpackNoConvergence, ArpackError) as exc:
        raise NumericalFailure(f"top-1 singular value extraction failed: {exc}") from exc
    return float(s[0])


def best_rank_k_errors(a: FloatArray, k: int) -> OptimalErrors:
    """Optimal rank-``k`` errors of ``a`` from its exact singular values.

    ``||A - A_k||_F = sqrt(sum_{i>k} s_i^2)`` and ``||A - A_k||_2 = s_{k+1}``.
    """

    if a.ndim != 2:
        raise ValueError("best_rank_k_errors expects a 2D array")
    if not 1 <= k <= min(a.shape):
        raise InvalidConfiguration(f"k={k} must lie in [1, min(m, n)={min(a.shape)}]")

    try:
        s = np.linalg.svd(a, compute_uv=False)
    except np.linalg.LinAlgError as exc:
        raise NumericalFailure(f"SVD of A did not converge: {exc}") from exc
    tail = s[k:]
    frobenius = float(np.sqrt(np.sum(tail**2)))
    spectral = float(tail[0]) if tail.size else 0.0
    return OptimalErrors(frobenius=frobenius, spectral=spectral)


def error_ratio(error: float, optimal: float) -> float:
    """Ratio ``error / optimal``; 1.0 when both vanish, ``inf`` when only ``optimal`` does."""

    if optimal == 0.0:
        return 1.0 if error == 0.0 else float("inf")
    return float(error / optimal)
