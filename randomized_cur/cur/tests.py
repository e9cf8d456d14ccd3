"""CUR sampling tests: sampler, reconstruction, metrics and trial driver."""

from __future__ import annotations

import numpy as np
import pytest
from scipy.sparse.linalg import ArpackNoConvergence

import randomized_cur.common.metrics as metrics_module
from randomized_cur.common.config import CurConfig, Metric
from randomized_cur.common.errors import InvalidConfiguration, NumericalFailure, RankError
from randomized_cur.cur.adaptive import residual_adaptive_select
from randomized_cur.cur.core import CurReconstruction, compute_metrics, reconstruct
from randomized_cur.cur.sampling import sample_indices
from randomized_cur.cur.trials import uniform_sampling

ALL_METRICS = dict(sigma_k=True, froerr=True, froerr_k=True, specerr=True, specerr_k=True)


def _rank3_matrix(m: int = 10, n: int = 10, seed: int = 0) -> np.ndarray:
    rng = np.random.default_rng(seed)
    return rng.standard_normal(size=(m, 3)) @ rng.standard_normal(size=(3, n))


def _count_svds_calls(monkeypatch) -> list:
    calls = []
    original = metrics_module.svds

    def counting_svds(*args, **kwargs):
        calls.append(args[0].shape)
        return original(*args, **kwargs)

    monkeypatch.setattr(metrics_module, "svds", counting_svds)
    return calls


# ---------------------------------------------------------------------------
# Sampler
# ---------------------------------------------------------------------------

def test_index_subsets_have_expected_size_and_are_distinct() -> None:
    a = np.random.default_rng(1).standard_normal(size=(30, 20))
    out = uniform_sampling(CurConfig(a=a, k=2, c=5, r=5, q=4, froerr=True), seed=3)

    assert out.num_trials == 4
    for cols, rows in zip(out.cidx, out.ridx):
        assert cols.shape == (5,) and np.unique(cols).size == 5
        assert rows.shape == (5,) and np.unique(rows).size == 5
        assert cols.min() >= 0 and cols.max() < 20
        assert rows.min() >= 0 and rows.max() < 30


def test_adaptive_rows_have_size_r() -> None:
    a = np.random.default_rng(2).standard_normal(size=(30, 20))
    out = uniform_sampling(CurConfig(a=a, k=3, c=5, r=9, q=3, adaptive=True, froerr=True), seed=4)

    for cols, rows in zip(out.cidx, out.ridx):
        assert cols.shape == (5,)
        assert rows.shape == (9,) and np.unique(rows).size == 9
        assert rows.min() >= 0 and rows.max() < 30


def test_injected_adaptive_select_receives_seed_rows_and_extra_count() -> None:
    a = np.random.default_rng(3).standard_normal(size=(12, 8))
    calls = []

    def pick_last_rows(matrix, seed_rows, extra_count):
        calls.append((matrix.shape, len(seed_rows), extra_count))
        extra = [i for i in range(matrix.shape[0] - 1, -1, -1) if i not in set(seed_rows)][:extra_count]
        return list(seed_rows) + extra

    out = uniform_sampling(
        CurConfig(a=a, k=2, c=3, r=5, q=2, adaptive=True, froerr=True),
        seed=0,
        adaptive_select=pick_last_rows,
    )

    assert calls == [((12, 8), 3, 2), ((12, 8), 3, 2)]
    assert all(rows.shape == (5,) for rows in out.ridx)


def test_sampler_rejects_inconsistent_sizes() -> None:
    a = np.zeros((6, 4))
    rng = np.random.default_rng(0)
    with pytest.raises(InvalidConfiguration):
        sample_indices(a, c=5, r=5, rng=rng)  # c > n
    with pytest.raises(InvalidConfiguration):
        sample_indices(a, c=3, r=4, rng=rng)  # r != c without adaptivity
    with pytest.raises(InvalidConfiguration):
        sample_indices(a, c=3, r=7, rng=rng, adaptive=True, adaptive_select=residual_adaptive_select)
    with pytest.raises(InvalidConfiguration):
        sample_indices(a, c=3, r=4, rng=rng, adaptive=True)


def test_sampler_is_reproducible_for_a_fixed_generator() -> None:
    a = np.zeros((9, 7))
    first = sample_indices(a, c=4, r=4, rng=np.random.default_rng(11))
    second = sample_indices(a, c=4, r=4, rng=np.random.default_rng(11))
    assert np.array_equal(first.columns, second.columns)
    assert np.array_equal(first.rows, second.rows)


# ---------------------------------------------------------------------------
# Adaptive row selection
# ---------------------------------------------------------------------------

def test_residual_adaptive_select_prefers_unexplained_rows() -> None:
    rng = np.random.default_rng(5)
    a = np.zeros((10, 6))
    a[:8, :2] = rng.standard_normal(size=(8, 2))
    a[8, 5] = 1.0
    a[9, 4] = 1.0

    rows = residual_adaptive_select(a, np.array([0, 1]), 2, rng=rng)

    assert list(rows[:2]) == [0, 1]
    assert set(rows[2:]) == {8, 9}


def test_residual_adaptive_select_fills_uniformly_without_residual_mass() -> None:
    a = np.zeros((8, 5))
    rows = residual_adaptive_select(a, np.array([2, 5]), 4, rng=np.random.default_rng(0))

    assert rows.shape == (6,)
    assert np.unique(rows).size == 6
    assert list(rows[:2]) == [2, 5]


def test_residual_adaptive_select_edge_counts() -> None:
    a = np.random.default_rng(6).standard_normal(size=(5, 4))
    seed_rows = np.array([1, 3])
    assert np.array_equal(residual_adaptive_select(a, seed_rows, 0), seed_rows)
    with pytest.raises(InvalidConfiguration):
        residual_adaptive_select(a, seed_rows, 4)
    with pytest.raises(InvalidConfiguration):
        residual_adaptive_select(a, seed_rows, -1)


# ---------------------------------------------------------------------------
# Reconstruction
# ---------------------------------------------------------------------------

def test_sampling_everything_reproduces_a() -> None:
    a = np.random.default_rng(7).standard_normal(size=(7, 7))
    recon = reconstruct(a, np.arange(7), np.arange(7), k=3)
    assert np.allclose(recon.as_matrix(), a, atol=1e-10)

    out = uniform_sampling(CurConfig(a=a, k=3, c=7, r=7, q=2, froerr=True, specerr=True), seed=1)
    assert np.all(out.froerr < 1e-10)
    assert np.all(out.specerr < 1e-10)


def test_adaptive_sampling_of_all_rows_reproduces_a() -> None:
    a = np.random.default_rng(8).standard_normal(size=(8, 6))
    out = uniform_sampling(CurConfig(a=a, k=2, c=6, r=8, q=2, adaptive=True, froerr=True), seed=2)
    assert np.all(out.froerr < 1e-10)


def test_core_singular_values_are_descending_and_sigma_k_is_kth() -> None:
    a = np.random.default_rng(9).standard_normal(size=(20, 15))
    recon = reconstruct(a, np.arange(6), np.arange(2, 8), k=4)

    assert recon.rank == 4
    assert np.all(np.diff(recon.s) <= 0.0)
    expected = np.linalg.svd(recon.core, compute_uv=False)
    assert np.allclose(recon.s, expected[:4])
    assert recon.sigma_k == pytest.approx(expected[3])

    values = compute_metrics(a, recon, [Metric.SIGMA_K])
    assert values == {Metric.SIGMA_K: recon.sigma_k}


def test_truncated_reconstruction_has_rank_k() -> None:
    a = np.random.default_rng(10).standard_normal(size=(12, 9))
    recon = reconstruct(a, np.arange(5), np.arange(5), k=2)
    assert np.linalg.matrix_rank(recon.truncated_matrix()) == 2


def test_rank_above_core_size_raises_rank_error() -> None:
    a = _rank3_matrix()
    with pytest.raises(RankError):
        reconstruct(a, np.arange(4), np.arange(4), k=5)
    with pytest.raises(RankError):
        uniform_sampling(CurConfig(a=a, k=5, c=4, r=4, q=2, froerr=True), seed=0)


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------

def test_truncated_errors_dominate_full_errors() -> None:
    rng = np.random.default_rng(12)
    a = _rank3_matrix(40, 30, seed=12) + 1e-6 * rng.standard_normal(size=(40, 30))
    out = uniform_sampling(CurConfig(a=a, k=1, c=6, r=6, q=3, **ALL_METRICS), seed=5)

    assert np.all(out.froerr_k >= out.froerr)
    assert np.all(out.specerr_k >= out.specerr)
    assert np.all(out.specerr <= out.froerr + 1e-12)


def test_frobenius_monotonicity_on_gaussian_matrix() -> None:
    a = np.random.default_rng(13).standard_normal(size=(25, 20))
    out = uniform_sampling(CurConfig(a=a, k=3, c=8, r=8, q=4, froerr=True, froerr_k=True), seed=6)
    assert np.all(out.froerr_k >= out.froerr - 1e-12)


def test_disabled_metrics_are_absent_and_skip_svds(monkeypatch) -> None:
    calls = _count_svds_calls(monkeypatch)

    def fail_truncated(self):
        raise AssertionError("rank-k reconstruction should not be formed")

    monkeypatch.setattr(CurReconstruction, "truncated_matrix", fail_truncated)

    a = np.random.default_rng(14).standard_normal(size=(15, 12))
    out = uniform_sampling(CurConfig(a=a, k=2, c=4, r=4, q=3, froerr=True), seed=0)

    assert calls == []
    assert out.froerr is not None and out.froerr.shape == (3,)
    for name in ("sigma_k", "froerr_k", "specerr", "specerr_k"):
        assert getattr(out, name) is None
    assert set(out.metrics()) == {Metric.FROERR}
    assert all(trial.specerr is None for trial in out.trials)


def test_spectral_metrics_call_svds_once_per_trial_each(monkeypatch) -> None:
    calls = _count_svds_calls(monkeypatch)
    a = np.random.default_rng(15).standard_normal(size=(15, 12))

    uniform_sampling(CurConfig(a=a, k=2, c=4, r=4, q=3, specerr=True), seed=0)
    assert len(calls) == 3

    uniform_sampling(CurConfig(a=a, k=2, c=4, r=4, q=3, specerr=True, specerr_k=True), seed=0)
    assert len(calls) == 3 + 6
    assert all(shape == (15, 12) for shape in calls)


def test_spectral_failure_surfaces_as_numerical_failure(monkeypatch) -> None:
    def no_convergence(*args, **kwargs):
        raise ArpackNoConvergence("no convergence", np.array([]), np.array([]))

    monkeypatch.setattr(metrics_module, "svds", no_convergence)
    a = np.random.default_rng(16).standard_normal(size=(10, 8))
    with pytest.raises(NumericalFailure):
        uniform_sampling(CurConfig(a=a, k=2, c=3, r=3, q=2, specerr=True), seed=0)


def test_svd_failure_surfaces_as_numerical_failure(monkeypatch) -> None:
    def broken_svd(*args, **kwargs):
        raise np.linalg.LinAlgError("SVD did not converge")

    monkeypatch.setattr(np.linalg, "svd", broken_svd)
    a = np.random.default_rng(17).standard_normal(size=(10, 8))
    with pytest.raises(NumericalFailure):
        uniform_sampling(CurConfig(a=a, k=2, c=3, r=3, q=1, froerr=True), seed=0)


# ---------------------------------------------------------------------------
# Trial driver
# ---------------------------------------------------------------------------

def test_rank3_scenario_is_exact_and_reproducible() -> None:
    a = _rank3_matrix()
    config = CurConfig(a=a, k=3, c=4, r=4, q=5, froerr=True, froerr_k=True, sigma_k=True)

    first = uniform_sampling(config, seed=2024)
    second = uniform_sampling(config, seed=2024)

    assert np.all(first.froerr < 1e-10)
    assert np.all(first.froerr_k < 1e-10)
    assert np.all(first.sigma_k > 1e-8)
    for cols_a, cols_b, rows_a, rows_b in zip(first.cidx, second.cidx, first.ridx, second.ridx):
        assert np.array_equal(cols_a, cols_b)
        assert np.array_equal(rows_a, rows_b)
    assert np.array_equal(first.froerr, second.froerr)
    assert np.array_equal(first.sigma_k, second.sigma_k)


def test_timings_are_recorded_per_trial() -> None:
    a = np.random.default_rng(18).standard_normal(size=(20, 10))
    out = uniform_sampling(CurConfig(a=a, k=2, c=3, r=3, q=4, sigma_k=True), seed=0)

    assert out.construct_time.shape == (4,)
    assert out.metric_computing_time.shape == (4,)
    assert np.all(out.construct_time >= 0.0)
    assert np.all(out.metric_computing_time > 0.0)
    assert [trial.construct_time for trial in out.trials] == list(out.construct_time)


def test_more_columns_than_rows_to_sample_is_rejected() -> None:
    a = np.random.default_rng(19).standard_normal(size=(8, 5))
    with pytest.raises(InvalidConfiguration):
        uniform_sampling(CurConfig(a=a, k=2, c=5, r=3, q=1, froerr=True))
    with pytest.raises(InvalidConfiguration):
        uniform_sampling(CurConfig(a=a, k=2, c=5, r=3, q=1, adaptive=True, froerr=True))


def test_invalid_configuration_aborts_before_any_trial(monkeypatch) -> None:
    import randomized_cur.cur.trials as trials_module

    def fail_trial(*args, **kwargs):
        raise AssertionError("no trial should run")

    monkeypatch.setattr(trials_module, "run_trial", fail_trial)
    a = np.zeros((6, 6))
    with pytest.raises(InvalidConfiguration):
        uniform_sampling(CurConfig(a=a, k=2, c=3, r=3, q=0))
