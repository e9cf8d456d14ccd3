"""CUR sampling experiment runner.

Experiments implemented:
1) Column sweep: error and runtime of uniform vs adaptive row sampling as the
   number of sampled columns ``c`` grows, per matrix family.

Outputs under ``randomized_cur/results``:
- ``cur_column_sweep.csv`` (one row per trial)
- ``cur_column_sweep_trials.jsonl`` (per-trial records including index sets)
"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Dict, List

import numpy as np

from randomized_cur.common.config import CurConfig, CurSweepConfig, MatrixFamily, Metric
from randomized_cur.common.datasets import (
    GaussianMatrixSpec,
    LowRankMatrixSpec,
    gaussian_matrix,
    low_rank_matrix,
)
from randomized_cur.common.logging_utils import append_jsonl, get_logger
from randomized_cur.common.metrics import best_rank_k_errors, error_ratio
from randomized_cur.cur.trials import uniform_sampling

logger = get_logger(__name__)

DEFAULT_M = 600
DEFAULT_N = 400
DEFAULT_SWEEP = CurSweepConfig(
    column_counts=[10, 20, 40, 80, 160],
    row_oversampling=20,
    rank=10,
    num_trials=5,
    seed=1234,
)


def _write_csv(path: Path, rows: List[Dict]) -> None:
    """Write rows to CSV with a header derived from the first row."""

    path.parent.mkdir(parents=True, exist_ok=True)
    if not rows:
        return
    fieldnames = list(rows[0].keys())
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        writer.writerows(rows)
    logger.info("Wrote %d rows to %s", len(rows), path)


def generate_matrix(family: MatrixFamily, m: int, n: int, seed: int) -> np.ndarray:
    if family is MatrixFamily.GAUSSIAN:
        return gaussian_matrix(GaussianMatrixSpec(m=m, n=n, seed=seed))
    if family is MatrixFamily.LOW_RANK:
        return low_rank_matrix(LowRankMatrixSpec(m=m, n=n, r=min(m, n) // 10, decay_exponent=1.0, seed=seed))
    if family is MatrixFamily.LOW_RANK_NOISY:
        return low_rank_matrix(
            LowRankMatrixSpec(m=m, n=n, r=min(m, n) // 10, decay_exponent=1.0, noise_std=1e-3, seed=seed)
        )
    raise ValueError(f"unknown matrix family: {family}")


def run_column_sweep(
    output_dir: Path,
    sweep: CurSweepConfig = DEFAULT_SWEEP,
    m: int = DEFAULT_M,
    n: int = DEFAULT_N,
    families: List[MatrixFamily] | None = None,
) -> List[Dict]:
    """Sweep the number of sampled columns for uniform and adaptive row sampling.

    Returns the CSV rows that were written.
    """

    logger.info("Running CUR column sweep (m=%d, n=%d, k=%d)", m, n, sweep.rank)
    families = list(MatrixFamily) if families is None else families
    rng = np.random.default_rng(sweep.seed)
    rows: List[Dict] = []
    jsonl_path = output_dir / "cur_column_sweep_trials.jsonl"
    if jsonl_path.exists():
        jsonl_path.unlink()

    for family in families:
        logger.info("  Matrix family: %s", family.value)
        a = generate_matrix(family, m, n, int(rng.integers(0, 1_000_000)))
        optimal = best_rank_k_errors(a, sweep.rank)

        for c in sweep.column_counts:
            if c < sweep.rank or c > min(m, n):
                continue  # k <= c <= min(m, n) is required for every trial
            for sampling, adaptive, r in (
                ("uniform", False, c),
                ("adaptive", True, min(m, c + sweep.row_oversampling)),
            ):
                config = CurConfig(
                    a=a,
                    k=sweep.rank,
                    c=c,
                    r=r,
                    q=sweep.num_trials,
                    adaptive=adaptive,
                    sigma_k=True,
                    froerr=True,
                    froerr_k=True,
                    specerr=True,
                    specerr_k=True,
                )
                out = uniform_sampling(config, seed=int(rng.integers(0, 1_000_000)))
                for trial in range(out.num_trials):
                    row = {
                        "matrix_type": family.value,
                        "sampling": sampling,
                        "m": m,
                        "n": n,
                        "k": sweep.rank,
                        "c": c,
                        "r": r,
                        "trial": trial,
                    }
                    for metric, values in out.metrics().items():
                        row[metric.value] = float(values[trial])
                    row["froerr_k_ratio"] = error_ratio(row[Metric.FROERR_K.value], optimal.frobenius)
                    row["specerr_k_ratio"] = error_ratio(row[Metric.SPECERR_K.value], optimal.spectral)
                    row["construct_time"] = float(out.construct_time[trial])
                    row["metric_computing_time"] = float(out.metric_computing_time[trial])
                    rows.append(row)
                    append_jsonl(jsonl_path, {**row, "cidx": out.cidx[trial], "ridx": out.ridx[trial]})

    _write_csv(output_dir / "cur_column_sweep.csv", rows)
    return rows


def run_all(output_dir: Path | None = None) -> None:
    """Run all CUR experiments and emit CSVs."""

    base_dir = Path("randomized_cur/results") if output_dir is None else Path(output_dir)
    base_dir.mkdir(parents=True, exist_ok=True)

    run_column_sweep(base_dir)


if __name__ == "__main__":  # pragma: no cover - manual execution
    run_all()
