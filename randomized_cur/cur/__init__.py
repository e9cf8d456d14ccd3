"""CUR decomposition by uniform (and adaptive) row/column sampling."""

from .adaptive import residual_adaptive_select
from .core import CurReconstruction, compute_metrics, reconstruct
from .sampling import SampledIndices, sample_indices
from .trials import CurOutput, TrialResult, run_trial, uniform_sampling

__all__ = [
    "CurOutput",
    "CurReconstruction",
    "SampledIndices",
    "TrialResult",
    "compute_metrics",
    "reconstruct",
    "residual_adaptive_select",
    "run_trial",
    "sample_indices",
    "uniform_sampling",
]
