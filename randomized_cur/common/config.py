"""Configuration dataclasses for CUR experiments.

``CurConfig`` is the single input record of a uniform-sampling run; it is
validated once, before any trial executes. ``CurSweepConfig`` parametrizes
the experiment sweeps in :mod:`randomized_cur.cur.experiments`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Tuple

import numpy as np
from numpy.typing import NDArray

from randomized_cur.common.errors import InvalidConfiguration

FloatArray = NDArray[np.floating]


class Metric(str, Enum):
    """Per-trial accuracy metrics that can be requested."""

    SIGMA_K = "sigma_k"
    FROERR = "froerr"
    FROERR_K = "froerr_k"
    SPECERR = "specerr"
    SPECERR_K = "specerr_k"


class MatrixFamily(str, Enum):
    """Synthetic matrix families used by the experiment sweeps."""

    GAUSSIAN = "gaussian"
    LOW_RANK = "low_rank"
    LOW_RANK_NOISY = "low_rank_noisy"


@dataclass(frozen=True)
class CurConfig:
    """Input record for :func:`randomized_cur.cur.trials.uniform_sampling`.

    Attributes
    ----------
    a:
        Dense source matrix of shape ``(m, n)``.
    k:
        Target rank of the truncated reconstruction.
    c:
        Number of columns to sample.
    r:
        Number of rows to sample. Must equal ``c`` unless ``adaptive`` is set,
        in which case ``c <= r <= m``.
    q:
        Number of independent trials.
    adaptive:
        Enlarge the ``c`` uniformly drawn rows to ``r`` rows with an adaptive
        selection policy.
    sigma_k, froerr, froerr_k, specerr, specerr_k:
        Which metrics to compute for every trial.
    """

    a: FloatArray = field(repr=False)
    k: int
    c: int
    r: int
    q: int = 1
    adaptive: bool = False
    sigma_k: bool = False
    froerr: bool = False
    froerr_k: bool = False
    specerr: bool = False
    specerr_k: bool = False

    @property
    def shape(self) -> Tuple[int, int]:
        return (int(self.a.shape[0]), int(self.a.shape[1]))

    @property
    def requested_metrics(self) -> Tuple[Metric, ...]:
        """Enabled metrics, in declaration order of :class:`Metric`."""

        return tuple(metric for metric in Metric if getattr(self, metric.value))

    def validate(self) -> None:
        """Check sizes and flags, raising :class:`InvalidConfiguration` on the first problem."""

        a = np.asarray(self.a)
        if a.ndim != 2:
            raise InvalidConfiguration(f"A must be a 2D array, got ndim={a.ndim}")
        m, n = a.shape
        if m == 0 or n == 0:
            raise InvalidConfiguration(f"A must be non-empty, got shape {a.shape}")
        if not np.all(np.isfinite(a)):
            raise InvalidConfiguration("A contains non-finite entries")
        if not 1 <= self.k <= min(m, n):
            raise InvalidConfiguration(f"k={self.k} must lie in [1, min(m, n)={min(m, n)}]")
        if not 1 <= self.c <= n:
            raise InvalidConfiguration(f"c={self.c} must lie in [1, n={n}]")
        if self.c > m:
            raise InvalidConfiguration(f"c={self.c} exceeds the number of rows m={m}")
        if self.q < 1:
            raise InvalidConfiguration(f"q={self.q} must be at least 1")
        if self.adaptive:
            if not self.c <= self.r <= m:
                raise InvalidConfiguration(
                    f"adaptive sampling requires c <= r <= m, got c={self.c}, r={self.r}, m={m}"
                )
        elif self.r != self.c:
            raise InvalidConfiguration(
                f"non-adaptive sampling requires r == c, got c={self.c}, r={self.r}"
            )


@dataclass
class CurSweepConfig:
    """Parameters of a sweep over the number of sampled columns."""

    column_counts: List[int]
    row_oversampling: int
    rank: int
    num_trials: int
    seed: int
