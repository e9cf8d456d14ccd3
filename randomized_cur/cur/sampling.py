"""Uniform column/row sampling for CUR trials.

Column and row subsets are drawn without replacement as prefixes of uniform
random permutations. All randomness flows through an explicitly passed
``numpy.random.Generator``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np
from numpy.typing import NDArray

from randomized_cur.common.errors import InvalidConfiguration

FloatArray = NDArray[np.floating]
IntArray = NDArray[np.integer]

# adaptive_select(A, seed_rows, extra_count) -> rows
AdaptiveSelector = Callable[[FloatArray, IntArray, int], IntArray]


@dataclass
class SampledIndices:
    """Column and row index subsets chosen for one trial (0-based)."""

    columns: IntArray
    rows: IntArray


def sample_columns(n: int, c: int, rng: np.random.Generator) -> IntArray:
    """First ``c`` entries of a uniform random permutation of ``range(n)``."""

    if not 1 <= c <= n:
        raise InvalidConfiguration(f"cannot sample c={c} columns out of n={n}")
    return rng.permutation(n)[:c]


def sample_rows(
    a: FloatArray,
    c: int,
    r: int,
    rng: np.random.Generator,
    adaptive: bool = False,
    adaptive_select: Optional[AdaptiveSelector] = None,
) -> IntArray:
    """Draw ``c`` rows uniformly, then optionally grow them to ``r`` rows adaptively."""

    m = a.shape[0]
    if not 1 <= c <= m:
        raise InvalidConfiguration(f"cannot sample c={c} rows out of m={m}")

    initial = rng.permutation(m)[:c]
    if not adaptive:
        if r != c:
            raise InvalidConfiguration(f"non-adaptive sampling requires r == c, got c={c}, r={r}")
        return initial

    if not c <= r <= m:
        raise InvalidConfiguration(f"adaptive sampling requires c <= r <= m, got c={c}, r={r}, m={m}")
    if adaptive_select is None:
        raise InvalidConfiguration("adaptive sampling requested without an adaptive_select policy")
    return np.asarray(adaptive_select(a, initial, r - c), dtype=np.intp)


def sample_indices(
    a: FloatArray,
    c: int,
    r: int,
    rng: np.random.Generator,
    adaptive: bool = False,
    adaptive_select: Optional[AdaptiveSelector] = None,
) -> SampledIndices:
    """Sample the column subset, then the row subset, for a single trial.

    Parameters
    ----------
    a:
        Source matrix of shape ``(m, n)``.
    c:
        Number of columns (and of initially drawn rows).
    r:
        Final number of rows; equals ``c`` unless ``adaptive``.
    rng:
        Random source; the column permutation is drawn before the row one.
    adaptive, adaptive_select:
        When ``adaptive`` is set, ``adaptive_select(a, initial_rows, r - c)``
        produces the final row subset.

    Raises
    ------
    InvalidConfiguration
        If ``c`` exceeds ``n`` or ``m``, or ``r`` is inconsistent with ``m``
        and ``adaptive``.
    """

    if a.ndim != 2:
        raise InvalidConfiguration("sampling expects a 2D matrix")
    columns = sample_columns(a.shape[1], c, rng)
    rows = sample_rows(a, c, r, rng, adaptive=adaptive, adaptive_select=adaptive_select)
    return SampledIndices(columns=columns, rows=rows)
