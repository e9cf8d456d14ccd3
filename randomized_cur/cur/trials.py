"""Trial driver for uniform-sampling CUR experiments.

Runs Sampler -> Reconstructor -> Metrics for ``q`` independent trials and
assembles the per-trial index sets, metrics and stage timings into a
:class:`CurOutput`.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np
from numpy.typing import NDArray

from randomized_cur.common.config import CurConfig, Metric
from randomized_cur.common.logging_utils import get_logger
from randomized_cur.common.timing import timer
from randomized_cur.cur.adaptive import residual_adaptive_select
from randomized_cur.cur.core import compute_metrics, reconstruct_from_slices
from randomized_cur.cur.sampling import AdaptiveSelector, sample_indices

FloatArray = NDArray[np.floating]
IntArray = NDArray[np.integer]

logger = get_logger(__name__)


@dataclass
class TrialResult:
    """Outcome of a single trial. Metrics that were not requested stay ``None``."""

    column_indices: IntArray
    row_indices: IntArray
    construct_time: float
    metric_computing_time: float
    sigma_k: Optional[float] = None
    froerr: Optional[float] = None
    froerr_k: Optional[float] = None
    specerr: Optional[float] = None
    specerr_k: Optional[float] = None

    def metric(self, metric: Metric) -> Optional[float]:
        return getattr(self, metric.value)


@dataclass
class CurOutput:
    """Aggregated results of ``q`` trials, indexed by trial.

    Attributes
    ----------
    cidx, ridx : list of ndarray
        Column and row index subsets of every trial.
    sigma_k, froerr, froerr_k, specerr, specerr_k : ndarray or None
        Length-``q`` metric arrays; ``None`` for metrics that were not
        requested.
    construct_time, metric_computing_time : ndarray
        Length-``q`` stage timings in seconds.
    """

    cidx: List[IntArray]
    ridx: List[IntArray]
    construct_time: FloatArray
    metric_computing_time: FloatArray
    sigma_k: Optional[FloatArray] = None
    froerr: Optional[FloatArray] = None
    froerr_k: Optional[FloatArray] = None
    specerr: Optional[FloatArray] = None
    specerr_k: Optional[FloatArray] = None
    trials: List[Optional[TrialResult]] = field(default_factory=list, repr=False)

    @classmethod
    def allocate(cls, q: int, metrics: Tuple[Metric, ...]) -> "CurOutput":
        """Empty output with one slot per trial and arrays only for ``metrics``."""

        out = cls(
            cidx=[np.empty(0, dtype=np.intp) for _ in range(q)],
            ridx=[np.empty(0, dtype=np.intp) for _ in range(q)],
            construct_time=np.zeros(q),
            metric_computing_time=np.zeros(q),
            trials=[None] * q,
        )
        for metric in metrics:
            setattr(out, metric.value, np.zeros(q))
        return out

    @property
    def num_trials(self) -> int:
        return len(self.cidx)

    def record(self, trial: int, result: TrialResult) -> None:
        """Store ``result`` in slot ``trial``."""

        self.cidx[trial] = result.column_indices
        self.ridx[trial] = result.row_indices
        self.construct_time[trial] = result.construct_time
        self.metric_computing_time[trial] = result.metric_computing_time
        for metric in Metric:
            values = getattr(self, metric.value)
            if values is not None:
                values[trial] = result.metric(metric)
        self.trials[trial] = result

    def metrics(self) -> Dict[Metric, FloatArray]:
        """Arrays of the metrics that were computed."""

        return {
            metric: getattr(self, metric.value)
            for metric in Metric
            if getattr(self, metric.value) is not None
        }


def run_trial(
    config: CurConfig,
    rng: np.random.Generator,
    adaptive_select: Optional[AdaptiveSelector] = None,
) -> TrialResult:
    """Run one Sampler -> Reconstructor -> Metrics pass.

    ``construct_time`` covers sampling and extraction of ``C`` and ``R``;
    ``metric_computing_time`` covers QR, the core SVD and the metrics.
    """

    a = config.a
    with timer() as construct:
        indices = sample_indices(
            a,
            config.c,
            config.r,
            rng,
            adaptive=config.adaptive,
            adaptive_select=adaptive_select,
        )
        c_mat = a[:, indices.columns]
        r_mat = a[indices.rows, :]

    with timer() as computing:
        reconstruction = reconstruct_from_slices(a, c_mat, r_mat, config.k)
        values = compute_metrics(a, reconstruction, config.requested_metrics, rng=rng)

    return TrialResult(
        column_indices=indices.columns,
        row_indices=indices.rows,
        construct_time=construct.seconds,
        metric_computing_time=computing.seconds,
        **{metric.value: value for metric, value in values.items()},
    )


def uniform_sampling(
    config: CurConfig,
    seed: Optional[int] = None,
    adaptive_select: Optional[AdaptiveSelector] = None,
) -> CurOutput:
    """Repeat the uniform-sampling CUR experiment ``config.q`` times.

    Parameters
    ----------
    config:
        Validated before any trial runs.
    seed:
        Seed of the root ``SeedSequence``; each trial gets its own spawned
        generator, so a fixed seed reproduces the run exactly.
    adaptive_select:
        Row-enlargement policy ``(A, seed_rows, extra_count) -> rows`` used
        when ``config.adaptive`` is set. Defaults to
        :func:`~randomized_cur.cur.adaptive.residual_adaptive_select` driven
        by the trial generator.

    Returns
    -------
    CurOutput
        Per-trial index sets, requested metrics and timings.

    Raises
    ------
    InvalidConfiguration, RankError, NumericalFailure
        Any failure aborts the whole run.
    """

    config.validate()
    metrics = config.requested_metrics
    out = CurOutput.allocate(config.q, metrics)
    m, n = config.shape
    logger.debug(
        "CUR uniform sampling: A=%dx%d k=%d c=%d r=%d q=%d adaptive=%s metrics=%s",
        m, n, config.k, config.c, config.r, config.q, config.adaptive,
        [metric.value for metric in metrics],
    )

    children = np.random.SeedSequence(seed).spawn(config.q)
    for trial, child in enumerate(children):
        rng = np.random.default_rng(child)
        selector = adaptive_select
        if config.adaptive and selector is None:
            selector = functools.partial(residual_adaptive_select, rng=rng)
        result = run_trial(config, rng, adaptive_select=selector)
        out.record(trial, result)
        logger.debug(
            "trial %d/%d: construct %.4fs, metrics %.4fs",
            trial + 1, config.q, result.construct_time, result.metric_computing_time,
        )

    logger.debug(
        "Completed %d CUR trials (c=%d, r=%d, k=%d) in %.3fs",
        config.q, config.c, config.r, config.k,
        float(np.sum(out.construct_time) + np.sum(out.metric_computing_time)),
    )
    return out
