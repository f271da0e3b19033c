"""Token estimation."""

from askmd.tokens.estimator import TokenEstimator

__all__ = ["TokenEstimator"]
