"""Tests for configuration, metrics, datasets, timing and logging helpers."""

from __future__ import annotations

import json
import logging
import time

import numpy as np
import pytest

from randomized_cur.common.config import CurConfig, Metric
from randomized_cur.common.datasets import (
    GaussianMatrixSpec,
    LowRankMatrixSpec,
    gaussian_matrix,
    low_rank_matrix,
)
from randomized_cur.common.errors import CurError, InvalidConfiguration
from randomized_cur.common.logging_utils import append_jsonl, get_logger
from randomized_cur.common.metrics import (
    best_rank_k_errors,
    error_ratio,
    frobenius_norm,
    spectral_norm,
)
from randomized_cur.common.timing import timer


def _config(**overrides) -> CurConfig:
    params = dict(a=np.ones((6, 5)), k=2, c=3, r=3, q=2)
    params.update(overrides)
    return CurConfig(**params)


@pytest.mark.parametrize(
    "overrides",
    [
        dict(k=0),
        dict(k=6),
        dict(c=0, r=0),
        dict(c=6, r=6),
        dict(q=0),
        dict(r=4),
        dict(adaptive=True, r=2),
        dict(adaptive=True, r=7),
        dict(a=np.ones(5)),
        dict(a=np.full((6, 5), np.nan)),
        dict(a=np.ones((8, 3)), c=3, r=3, k=4),
    ],
)
def test_invalid_configurations_are_rejected(overrides) -> None:
    with pytest.raises(InvalidConfiguration):
        _config(**overrides).validate()


def test_c_larger_than_m_is_rejected() -> None:
    with pytest.raises(InvalidConfiguration, match="number of rows"):
        _config(a=np.ones((3, 8)), c=4, r=4).validate()


def test_valid_configurations_pass() -> None:
    _config().validate()
    _config(adaptive=True, r=6).validate()
    _config(adaptive=True, r=3).validate()


def test_requested_metrics_follow_flags() -> None:
    assert _config().requested_metrics == ()
    config = _config(specerr_k=True, sigma_k=True)
    assert config.requested_metrics == (Metric.SIGMA_K, Metric.SPECERR_K)


def test_errors_share_a_base_class() -> None:
    assert issubclass(InvalidConfiguration, CurError)
    assert issubclass(InvalidConfiguration, ValueError)


def test_norms_match_numpy() -> None:
    x = np.random.default_rng(0).standard_normal(size=(12, 9))
    assert frobenius_norm(x) == pytest.approx(np.linalg.norm(x, "fro"))
    assert spectral_norm(x, rng=np.random.default_rng(1)) == pytest.approx(np.linalg.norm(x, 2))
    assert spectral_norm(x) == pytest.approx(np.linalg.norm(x, 2))


def test_spectral_norm_of_a_single_column() -> None:
    x = np.array([[3.0], [4.0]])
    assert spectral_norm(x) == pytest.approx(5.0)


def test_best_rank_k_errors_of_diagonal_matrix() -> None:
    a = np.diag([4.0, 3.0, 2.0, 1.0])
    optimal = best_rank_k_errors(a, 2)
    assert optimal.spectral == pytest.approx(2.0)
    assert optimal.frobenius == pytest.approx(np.sqrt(5.0))
    assert best_rank_k_errors(a, 4).spectral == 0.0


def test_error_ratio() -> None:
    assert error_ratio(2.0, 1.0) == 2.0
    assert error_ratio(0.0, 0.0) == 1.0
    assert error_ratio(1.0, 0.0) == float("inf")


def test_low_rank_matrix_has_requested_rank_and_spectrum() -> None:
    a = low_rank_matrix(LowRankMatrixSpec(m=30, n=20, r=4, decay_exponent=2.0, seed=0))
    s = np.linalg.svd(a, compute_uv=False)
    assert np.allclose(s[:4], [1.0, 0.25, 1.0 / 9.0, 1.0 / 16.0])
    assert np.all(s[4:] < 1e-12)
    with pytest.raises(ValueError):
        low_rank_matrix(LowRankMatrixSpec(m=5, n=4, r=5))


def test_generators_are_seeded() -> None:
    spec = GaussianMatrixSpec(m=4, n=3, seed=9)
    assert np.array_equal(gaussian_matrix(spec), gaussian_matrix(spec))


def test_timer_measures_elapsed_time() -> None:
    with timer() as t:
        time.sleep(0.01)
    assert t.seconds >= 0.005


def test_append_jsonl_serializes_numpy_values(tmp_path) -> None:
    path = tmp_path / "nested" / "trials.jsonl"
    append_jsonl(path, {"cidx": np.array([3, 1]), "froerr": np.float64(0.5)})
    append_jsonl(path, {"cidx": np.array([0]), "froerr": 0.25})

    lines = path.read_text(encoding="utf-8").splitlines()
    assert [json.loads(line) for line in lines] == [
        {"cidx": [3, 1], "froerr": 0.5},
        {"cidx": [0], "froerr": 0.25},
    ]


def test_get_logger_attaches_a_single_handler() -> None:
    logger = get_logger("randomized_cur.tests")
    again = get_logger("randomized_cur.tests")
    assert logger is again
    assert len(logger.handlers) == 1
    assert logger.level == logging.INFO


def test_spectral_norm_of_zero_matrix() -> None:
    assert spectral_norm(np.zeros((5, 4))) == 0.0


def test_get_logger_level_is_set_on_first_configuration() -> None:
    logger = get_logger("randomized_cur.tests.debug", level=logging.DEBUG)
    assert logger.level == logging.DEBUG
    assert get_logger("randomized_cur.tests.debug", level=logging.WARNING).level == logging.DEBUG
