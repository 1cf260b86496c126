import math

import numpy as np
import pytest

from topicsweep.core.topic_modeling.harmonic import (
    burn_in_sample_count,
    harmonic_mean_loglik,
)


def naive_harmonic_mean(samples):
    return -math.log(sum(math.exp(-x) for x in samples) / len(samples))


def test_single_sample_scores_to_itself():
    assert harmonic_mean_loglik([-1234.5]) == pytest.approx(-1234.5)


def test_matches_direct_formula_for_small_values():
    samples = [-3.0, -2.5, -4.0, -3.2]
    assert harmonic_mean_loglik(samples) == pytest.approx(naive_harmonic_mean(samples))


def test_large_negative_loglikelihoods_stay_finite():
    # exp(-l) overflows a double for l around -1e5
    samples = [-100500.0, -100010.0, -100250.0, -100900.0]
    score = harmonic_mean_loglik(samples)
    assert math.isfinite(score)
    assert min(samples) <= score <= max(samples)


def test_shift_moves_score_by_the_same_constant():
    samples = np.array([-8200.0, -8150.5, -8175.25, -8190.0, -8120.0])
    c = -3456.75
    assert harmonic_mean_loglik(samples + c) == pytest.approx(
        harmonic_mean_loglik(samples) + c, abs=1e-6
    )


def test_poor_sample_pulls_the_score_down():
    steady = [-1000.0, -1001.0, -999.0, -1000.5]
    with_outlier = steady + [-1030.0]
    assert harmonic_mean_loglik(with_outlier) < harmonic_mean_loglik(steady) - 20


def test_empty_or_non_finite_samples_are_rejected():
    with pytest.raises(ValueError):
        harmonic_mean_loglik([])
    with pytest.raises(ValueError):
        harmonic_mean_loglik([-10.0, float("nan")])


def test_burn_in_sample_count():
    assert burn_in_sample_count(100, 50) == 2
    assert burn_in_sample_count(120, 50) == 2
    assert burn_in_sample_count(10, 50) == 0
