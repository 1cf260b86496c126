from __future__ import annotations
from typing import Sequence

import numpy as np
from scipy.special import logsumexp


def burn_in_sample_count(burn_in: int, sample_interval: int) -> int:
    """Number of leading log-likelihood samples that fall inside the burn-in."""
    return burn_in // sample_interval


def harmonic_mean_loglik(samples: Sequence[float]) -> float:
    """
    Harmonic mean of likelihoods, in log space.

    Recentered on the median m: m - log(mean(exp(-(l_i - m)))). The mean of
    exponentials is evaluated as logsumexp(...) - log(n) so samples around
    -1e4 neither overflow nor underflow.
    """
    ll = np.asarray(samples, dtype=np.float64)
    if ll.ndim != 1 or ll.size == 0:
        raise ValueError("Need at least one log-likelihood sample.")
    if not np.all(np.isfinite(ll)):
        raise ValueError("Log-likelihood samples must be finite.")
    m = float(np.median(ll))
    log_mean = float(logsumexp(-(ll - m))) - float(np.log(ll.size))
    return m - log_mean
