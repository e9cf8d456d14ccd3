r"""Residual-based adaptive row selection.

Given an initial row subset ``R1 = A[seed_rows]``, the remaining rows are
scored by their squared distance to the row space of ``R1``:

.. math::

    p_i \propto \| a_i - a_i Q Q^T \|_2^2, \qquad Q = \mathrm{orth}(R_1^T),

and ``extra_count`` new rows are drawn from this distribution without
replacement. Rows that ``R1`` already explains well are rarely picked.
"""

from __future__ import annotations

from typing import Optional

import numpy as np
from numpy.typing import NDArray

from randomized_cur.common.errors import InvalidConfiguration, NumericalFailure

FloatArray = NDArray[np.floating]
IntArray = NDArray[np.integer]


def residual_row_weights(a: FloatArray, seed_rows: IntArray) -> FloatArray:
    """Squared norms of the rows of ``a`` after projecting out ``span(a[seed_rows])``."""

    try:
        q_mat, _ = np.linalg.qr(a[seed_rows, :].T, mode="reduced")  # (n, c)
    except np.linalg.LinAlgError as exc:
        raise NumericalFailure(f"QR of the seed rows failed: {exc}") from exc
    residual = a - (a @ q_mat) @ q_mat.T
    return np.einsum("ij,ij->i", residual, residual)


def residual_adaptive_select(
    a: FloatArray,
    seed_rows: IntArray,
    extra_count: int,
    rng: Optional[np.random.Generator] = None,
) -> IntArray:
    """Enlarge ``seed_rows`` by ``extra_count`` adaptively sampled rows.

    Parameters
    ----------
    a:
        Source matrix of shape ``(m, n)``.
    seed_rows:
        Distinct initial row indices.
    extra_count:
        Number of rows to add (``r - c``).
    rng:
        Random source; a fresh unseeded generator when omitted.

    Returns
    -------
    ndarray
        ``seed_rows`` followed by the ``extra_count`` new row indices.
    """

    seed_rows = np.asarray(seed_rows, dtype=np.intp)
    m = a.shape[0]
    if extra_count < 0:
        raise InvalidConfiguration(f"extra_count={extra_count} must be non-negative")
    if extra_count == 0:
        return seed_rows.copy()

    candidates = np.setdiff1d(np.arange(m), seed_rows)
    if extra_count > candidates.size:
        raise InvalidConfiguration(
            f"cannot add {extra_count} rows: only {candidates.size} rows lie outside the seed set"
        )

    if rng is None:
        rng = np.random.default_rng()

    weights = residual_row_weights(a, seed_rows)[candidates]
    positive = weights > 0.0
    n_positive = int(np.count_nonzero(positive))

    if n_positive >= extra_count:
        probabilities = weights / float(np.sum(weights))
        chosen = rng.choice(candidates, size=extra_count, replace=False, p=probabilities)
    else:
        # Not enough residual mass left: keep every informative row, fill the rest uniformly.
        filler = rng.choice(candidates[~positive], size=extra_count - n_positive, replace=False)
        chosen = np.concatenate([candidates[positive], filler])

    return np.concatenate([seed_rows, chosen.astype(np.intp)])
