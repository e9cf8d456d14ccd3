"""CUR reconstruction from sampled columns and rows.

Implements the numerically stable reconstruction path:

- Orthonormal bases ``Qc = orth(C)`` and ``Qr = orth(R^T)`` via reduced QR
- Core matrix ``B = Qc^T A Qr`` (``c x r``)
- ``CUR = Qc B Qr^T`` and its rank-``k`` truncation from a small SVD of ``B``

No pseudoinverse of ``C`` or ``R`` is ever formed, and the SVD runs on the
small core matrix rather than on ``A``. Metrics are computed on demand so
that residuals nobody asked for are never materialized.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple

import numpy as np
from numpy.typing import NDArray

from randomized_cur.common.config import Metric
from randomized_cur.common.errors import NumericalFailure, RankError
from randomized_cur.common.metrics import frobenius_norm, spectral_norm

FloatArray = NDArray[np.floating]
IntArray = NDArray[np.integer]


@dataclass
class CurReconstruction:
    """Factored CUR approximation ``Qc B Qr^T`` and its rank-``k`` truncation.

    Attributes
    ----------
    qc : ndarray
        Orthonormal basis of the sampled columns, shape ``(m, c)``.
    qr : ndarray
        Orthonormal basis of the transposed sampled rows, shape ``(n, r)``.
    core : ndarray
        ``B = Qc^T A Qr``, shape ``(c, r)``.
    u, s, vt : ndarray
        Top-``k`` singular triplets of ``B`` with ``s`` in descending order.
    """

    qc: FloatArray
    qr: FloatArray
    core: FloatArray
    u: FloatArray
    s: FloatArray
    vt: FloatArray

    @property
    def rank(self) -> int:
        """Rank ``k`` of the truncated reconstruction."""

        return int(self.s.shape[0])

    @property
    def sigma_k(self) -> float:
        """Smallest retained singular value of the core matrix."""

        return float(self.s[-1])

    def truncated_core(self) -> FloatArray:
        """Rank-``k`` approximation ``Ub diag(Sb) Vb^T`` of the core matrix."""

        return (self.u * self.s[np.newaxis, :]) @ self.vt

    def as_matrix(self) -> FloatArray:
        """Full reconstruction ``CUR = Qc B Qr^T``."""

        return self.qc @ self.core @ self.qr.T

    def truncated_matrix(self) -> FloatArray:
        """Rank-``k`` reconstruction ``CUR_k = Qc B_k Qr^T``."""

        return self.qc @ self.truncated_core() @ self.qr.T


def orthonormal_basis(x: FloatArray) -> FloatArray:
    """Orthonormal basis of the column space of ``x`` via reduced QR."""

    try:
        q_mat, _ = np.linalg.qr(x, mode="reduced")
    except np.linalg.LinAlgError as exc:
        raise NumericalFailure(f"QR factorization failed: {exc}") from exc
    return q_mat


def top_k_svd(b: FloatArray, k: int) -> Tuple[FloatArray, FloatArray, FloatArray]:
    """Top-``k`` singular triplets of the (small) matrix ``b``.

    Raises
    ------
    RankError
        If ``k`` exceeds ``min(b.shape)``.
    NumericalFailure
        If the SVD does not converge.
    """

    if k < 1:
        raise RankError(f"target rank k={k} must be positive")
    if k > min(b.shape):
        raise RankError(
            f"target rank k={k} exceeds the rank attainable from a {b.shape[0]}x{b.shape[1]} core matrix"
        )
    try:
        u, s, vt = np.linalg.svd(b, full_matrices=False)
    except np.linalg.LinAlgError as exc:
        raise NumericalFailure(f"SVD of the core matrix did not converge: {exc}") from exc
    return u[:, :k], s[:k], vt[:k, :]


def reconstruct(
    a: FloatArray,
    column_indices: IntArray,
    row_indices: IntArray,
    k: int,
) -> CurReconstruction:
    """Build the CUR approximation of ``a`` from sampled columns and rows.

    Parameters
    ----------
    a:
        Source matrix of shape ``(m, n)``.
    column_indices:
        Sampled column indices (``c`` of them).
    row_indices:
        Sampled row indices (``r`` of them).
    k:
        Target rank of the truncated reconstruction (``k <= min(c, r)``).

    Returns
    -------
    CurReconstruction
        Factored reconstruction; call :meth:`CurReconstruction.as_matrix`
        or :meth:`CurReconstruction.truncated_matrix` for dense results.
    """

    c_mat = a[:, column_indices]  # (m, c)
    r_mat = a[row_indices, :]  # (r, n)
    return reconstruct_from_slices(a, c_mat, r_mat, k)


def reconstruct_from_slices(a: FloatArray, c_mat: FloatArray, r_mat: FloatArray, k: int) -> CurReconstruction:
    """Same as :func:`reconstruct`, for already extracted ``C`` and ``R``."""

    qc = orthonormal_basis(c_mat)  # (m, c)
    qr = orthonormal_basis(r_mat.T)  # (n, r)

    core = qc.T @ a @ qr  # (c, r)
    u, s, vt = top_k_svd(core, k)
    return CurReconstruction(qc=qc, qr=qr, core=core, u=u, s=s, vt=vt)


def compute_metrics(
    a: FloatArray,
    reconstruction: CurReconstruction,
    metrics: Iterable[Metric],
    rng: Optional[np.random.Generator] = None,
) -> Dict[Metric, float]:
    """Compute the requested accuracy metrics of a reconstruction.

    ``A - CUR`` is only formed when ``froerr`` or ``specerr`` is requested,
    and ``A - CUR_k`` only when ``froerr_k`` or ``specerr_k`` is.

    Parameters
    ----------
    a:
        Source matrix.
    reconstruction:
        Output of :func:`reconstruct`.
    metrics:
        Metrics to compute; all others are skipped.
    rng:
        Random source for the spectral-norm start vectors.

    Returns
    -------
    dict
        Mapping from each requested :class:`Metric` to its value.
    """

    wanted = set(metrics)
    values: Dict[Metric, float] = {}

    if Metric.SIGMA_K in wanted:
        values[Metric.SIGMA_K] = reconstruction.sigma_k

    if wanted & {Metric.FROERR, Metric.SPECERR}:
        residual = a - reconstruction.as_matrix()
        if Metric.FROERR in wanted:
            values[Metric.FROERR] = frobenius_norm(residual)
        if Metric.SPECERR in wanted:
            values[Metric.SPECERR] = spectral_norm(residual, rng=rng)

    if wanted & {Metric.FROERR_K, Metric.SPECERR_K}:
        residual_k = a - reconstruction.truncated_matrix()
        if Metric.FROERR_K in wanted:
            values[Metric.FROERR_K] = frobenius_norm(residual_k)
        if Metric.SPECERR_K in wanted:
            values[Metric.SPECERR_K] = spectral_norm(residual_k, rng=rng)

    return values
