"""Exception hierarchy for CUR sampling experiments."""

from __future__ import annotations


class CurError(Exception):
    """Base class for all errors raised by ``randomized_cur``."""


class InvalidConfiguration(CurError, ValueError):
    """Malformed sizes or flags (``c > n``, ``r != c`` without adaptivity, ...)."""


class RankError(CurError, ValueError):
    """Target rank ``k`` exceeds the rank attainable from the sampled core matrix."""


class NumericalFailure(CurError, RuntimeError):
    """A QR factorization or singular value extraction did not converge."""
