"""Plotting utilities for CUR sampling experiments.

Generates figures from ``cur_column_sweep.csv``:
- error ratio (vs. the optimal rank-k error) against the number of columns
- construction / metric-computing time against the number of columns
"""

from __future__ import annotations

import argparse
from pathlib import Path

import matplotlib.pyplot as plt
import pandas as pd

plt.rcParams.update({
    "font.size": 11,
    "axes.titlesize": 13,
    "axes.labelsize": 12,
    "legend.fontsize": 9,
    "lines.linewidth": 2,
    "lines.markersize": 7,
    "errorbar.capsize": 3,
})

SAMPLING_COLORS = {
    "uniform": "#4393c3",
    "adaptive": "#d6604d",
}

SAMPLING_MARKERS = {
    "uniform": "o",
    "adaptive": "s",
}


def load_sweep(csv_path: Path) -> pd.DataFrame:
    if not csv_path.exists():
        raise FileNotFoundError(f"CSV file not found: {csv_path}")
    return pd.read_csv(csv_path)


def plot_error_vs_columns(df: pd.DataFrame, output_path: Path, y_key: str = "froerr_k_ratio") -> None:
    """One panel per matrix family; mean +- std of ``y_key`` over trials."""

    families = sorted(df["matrix_type"].unique())
    fig, axes = plt.subplots(1, len(families), figsize=(6 * len(families), 5), squeeze=False)

    for ax, family in zip(axes[0], families):
        sub = df[df["matrix_type"] == family]
        for sampling, group in sub.groupby("sampling"):
            stats = group.groupby("c")[y_key].agg(["mean", "std"]).reset_index()
            ax.errorbar(
                stats["c"],
                stats["mean"],
                yerr=stats["std"].fillna(0.0),
                marker=SAMPLING_MARKERS.get(sampling, "o"),
                color=SAMPLING_COLORS.get(sampling, "#4d4d4d"),
                label=sampling,
            )
        ax.axhline(1.0, color="#4d4d4d", linestyle="--", linewidth=1, label="optimal rank-k")
        ax.set_xlabel("Sampled columns c")
        ax.set_title(family)
        ax.set_yscale("log")
        ax.grid(True, alpha=0.3, which="both")
        ax.legend(loc="upper right")

    axes[0][0].set_ylabel(y_key.replace("_", " "))
    fig.suptitle("CUR error relative to the best rank-k approximation")

    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(output_path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    print(f"Saved: {output_path}")


def plot_time_vs_columns(df: pd.DataFrame, output_path: Path) -> None:
    stats = df.groupby(["sampling", "c"])[["construct_time", "metric_computing_time"]].mean().reset_index()

    fig, ax = plt.subplots(figsize=(8, 5))
    for sampling, group in stats.groupby("sampling"):
        color = SAMPLING_COLORS.get(sampling, "#4d4d4d")
        ax.plot(group["c"], group["construct_time"], marker="o", color=color, label=f"{sampling}: construct")
        ax.plot(
            group["c"],
            group["metric_computing_time"],
            marker="s",
            linestyle="--",
            color=color,
            label=f"{sampling}: metrics",
        )
    ax.set_xlabel("Sampled columns c")
    ax.set_ylabel("Mean time per trial (s)")
    ax.set_yscale("log")
    ax.grid(True, alpha=0.3, which="both")
    ax.legend(loc="upper left")
    ax.set_title("CUR stage timings")

    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(output_path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    print(f"Saved: {output_path}")


def generate_all_plots(results_dir: Path, output_dir: Path) -> None:
    sweep_csv = results_dir / "cur_column_sweep.csv"
    if not sweep_csv.exists():
        print(f"Skipping: {sweep_csv} not found")
        return

    df = load_sweep(sweep_csv)
    plot_error_vs_columns(df, output_dir / "cur_fig1_froerr_k_ratio.png", y_key="froerr_k_ratio")
    plot_error_vs_columns(df, output_dir / "cur_fig2_specerr_k_ratio.png", y_key="specerr_k_ratio")
    plot_time_vs_columns(df, output_dir / "cur_fig3_timings.png")


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate CUR plots from experiment CSVs")
    parser.add_argument(
        "--results-dir",
        type=Path,
        default=Path("randomized_cur/results"),
        help="Directory containing CUR CSVs",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("randomized_cur/results/figures"),
        help="Directory to save plots",
    )
    args = parser.parse_args()
    generate_all_plots(args.results_dir, args.output_dir)


if __name__ == "__main__":  # pragma: no cover - plotting entrypoint
    main()
