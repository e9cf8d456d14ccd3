"""Smoke tests for the CUR experiment runner and plots."""

from __future__ import annotations

import csv

import matplotlib

matplotlib.use("Agg")

from randomized_cur.common.config import CurSweepConfig, MatrixFamily  # noqa: E402
from randomized_cur.cur.experiments import run_column_sweep  # noqa: E402
from randomized_cur.plots.plot_cur import generate_all_plots  # noqa: E402

SMALL_SWEEP = CurSweepConfig(column_counts=[1, 4, 8], row_oversampling=4, rank=2, num_trials=2, seed=0)


def test_column_sweep_writes_csv_and_jsonl(tmp_path) -> None:
    rows = run_column_sweep(tmp_path, sweep=SMALL_SWEEP, m=60, n=40, families=[MatrixFamily.LOW_RANK])

    # c=1 < k is skipped; 2 column counts x 2 sampling modes x 2 trials remain
    assert len(rows) == 8
    with (tmp_path / "cur_column_sweep.csv").open(newline="", encoding="utf-8") as f:
        written = list(csv.DictReader(f))
    assert len(written) == 8
    assert {row["sampling"] for row in written} == {"uniform", "adaptive"}
    assert all(float(row["froerr_k_ratio"]) >= 1.0 - 1e-9 for row in written)
    assert {int(row["r"]) for row in written if row["sampling"] == "adaptive"} == {8, 12}

    jsonl = (tmp_path / "cur_column_sweep_trials.jsonl").read_text(encoding="utf-8").splitlines()
    assert len(jsonl) == 8


def test_plots_are_generated(tmp_path) -> None:
    run_column_sweep(tmp_path, sweep=SMALL_SWEEP, m=60, n=40, families=[MatrixFamily.LOW_RANK_NOISY])
    figures = tmp_path / "figures"
    generate_all_plots(tmp_path, figures)

    assert (figures / "cur_fig1_froerr_k_ratio.png").exists()
    assert (figures / "cur_fig2_specerr_k_ratio.png").exists()
    assert (figures / "cur_fig3_timings.png").exists()
