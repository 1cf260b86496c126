import math
import threading

import numpy as np
import pytest
from scipy import sparse

from topicsweep.core.topic_modeling.base import FittedTopicModel, TopicSampler
from topicsweep.core.topic_modeling.config import TopicSelectionConfig
from topicsweep.core.topic_modeling.errors import (
    InsufficientSamplesError,
    InvalidCandidateError,
    ModelFitError,
    NoViableCandidateError,
)
from topicsweep.core.topic_modeling.gibbs_lda import GibbsLDASampler
from topicsweep.core.topic_modeling.matrix import DocumentTermMatrix
from topicsweep.core.topic_modeling.selector import (
    STATUS_FAILED,
    STATUS_NOT_EVALUATED,
    TopicCountSelector,
    score_candidate,
    select_topic_count,
)


class ScriptedSampler(TopicSampler):
    """Returns log-likelihood traces around a fixed level per k."""

    def __init__(self, levels, failing=()):
        self.levels = levels
        self.failing = set(failing)
        self.calls = []

    def fit(self, matrix, num_topics, *, iterations, sample_interval, random_seed=None):
        self.calls.append(num_topics)
        if num_topics in self.failing:
            raise np.linalg.LinAlgError("singular matrix")
        n = iterations // sample_interval
        base = self.levels[num_topics]
        trace = tuple(base + ((-1) ** i) * 0.5 for i in range(n))
        return FittedTopicModel(
            num_topics=num_topics,
            loglikelihoods=trace,
            sample_interval=sample_interval,
            topic_term=np.full((num_topics, matrix.n_terms), 1.0 / matrix.n_terms),
            doc_topic=np.full((matrix.n_documents, num_topics), 1.0 / num_topics),
            terms=matrix.terms,
            doc_ids=matrix.doc_ids,
        )


RELEASE = threading.Event()


class StallingSampler(ScriptedSampler):
    def __init__(self, levels, stalled):
        super().__init__(levels)
        self.stalled = set(stalled)

    def fit(self, matrix, num_topics, **kwargs):
        if num_topics in self.stalled:
            RELEASE.wait(timeout=10)
        return super().fit(matrix, num_topics, **kwargs)


def random_matrix(n_docs=20, n_terms=30, rate=0.3, seed=0) -> DocumentTermMatrix:
    rng = np.random.default_rng(seed)
    counts = rng.poisson(rate, size=(n_docs, n_terms))
    counts[:, 0] += 1  # no empty documents
    return DocumentTermMatrix(
        counts=sparse.csr_matrix(counts),
        terms=tuple(f"term{j}" for j in range(n_terms)),
        doc_ids=tuple(range(n_docs)),
    )


def run_scripted(sampler, candidates, **overrides):
    cfg = TopicSelectionConfig(
        candidates=tuple(candidates),
        burn_in=overrides.pop("burn_in", 100),
        iterations=overrides.pop("iterations", 500),
        sample_interval=overrides.pop("sample_interval", 50),
        executor="thread",
        max_workers=overrides.pop("max_workers", 4),
        **overrides,
    )
    return TopicCountSelector(sampler, cfg).run(random_matrix())


def test_one_score_per_candidate_in_input_order():
    sampler = ScriptedSampler({2: -900.0, 3: -800.0, 5: -850.0})
    report = run_scripted(sampler, [5, 2, 3, 2])
    assert report.candidates == (5, 2, 3, 2)
    assert [o.k for o in report.outcomes] == [5, 2, 3, 2]
    assert len(report.scores) == 4
    assert report.scores[1] == report.scores[3]
    assert report.scores[0] > report.scores[1]
    assert report.best_k == 3
    assert sorted(sampler.calls) == [2, 3, 5]  # duplicates fitted once


def test_ties_go_to_the_smallest_k():
    sampler = ScriptedSampler({2: -700.0, 3: -650.0, 4: -650.0})
    report = run_scripted(sampler, [4, 3, 2])
    assert report.best_k == 3


def test_single_candidate_is_always_best():
    sampler = ScriptedSampler({7: -99999.0})
    best_k, scores = select_topic_count(
        random_matrix(), [7], 100, 500, 50, sampler=sampler, executor="thread"
    )
    assert best_k == 7
    assert len(scores) == 1 and math.isfinite(scores[0])


def test_appending_an_inferior_candidate_keeps_best_k():
    levels = {2: -900.0, 3: -800.0, 4: -850.0, 6: -5000.0}
    first = run_scripted(ScriptedSampler(levels), [2, 3, 4])
    second = run_scripted(ScriptedSampler(levels), [2, 3, 4, 6])
    assert first.best_k == second.best_k == 3


def test_burn_in_covering_every_sample_fails_each_candidate():
    sampler = ScriptedSampler({2: -900.0})
    with pytest.raises(NoViableCandidateError) as exc_info:
        run_scripted(sampler, [2], burn_in=500, iterations=500)
    assert exc_info.value.failures == {2: "insufficient_samples"}
    assert sampler.calls == []  # nothing fitted for a hopeless schedule

    with pytest.raises(InsufficientSamplesError) as direct:
        score_candidate(
            sampler,
            random_matrix(),
            2,
            burn_in=600,
            iterations=500,
            sample_interval=50,
        )
    assert direct.value.k == 2


def test_fit_failures_are_recorded_and_the_batch_continues():
    sampler = ScriptedSampler({2: -900.0, 3: -800.0, 4: -850.0}, failing=[3])
    report = run_scripted(sampler, [2, 3, 4])
    assert report.best_k == 4
    failed = report.failed
    assert [o.k for o in failed] == [3]
    assert failed[0].status == STATUS_FAILED
    assert failed[0].error_kind == "model_fit_error"
    assert "singular matrix" in failed[0].message
    assert math.isnan(report.scores[1])


def test_score_candidate_wraps_sampler_errors():
    sampler = ScriptedSampler({3: -1.0}, failing=[3])
    with pytest.raises(ModelFitError) as exc_info:
        score_candidate(
            sampler, random_matrix(), 3, burn_in=10, iterations=100, sample_interval=10
        )
    assert exc_info.value.k == 3
    assert isinstance(exc_info.value.__cause__, np.linalg.LinAlgError)


def test_every_candidate_failing_raises():
    sampler = ScriptedSampler({2: -1.0, 3: -1.0}, failing=[2, 3])
    with pytest.raises(NoViableCandidateError) as exc_info:
        run_scripted(sampler, [2, 3])
    assert exc_info.value.failures == {2: "model_fit_error", 3: "model_fit_error"}


@pytest.mark.parametrize("candidates", [[], [0, 2], [2, 20], [2, 25], [2.5]])
def test_invalid_candidates_are_fatal_before_fitting(candidates):
    sampler = ScriptedSampler({2: -1.0})
    with pytest.raises(InvalidCandidateError):
        run_scripted(sampler, candidates)  # random_matrix has 20 documents
    assert sampler.calls == []


def test_schedule_must_be_positive():
    with pytest.raises(ValueError):
        TopicSelectionConfig(candidates=(2,), burn_in=0)
    with pytest.raises(ValueError):
        TopicSelectionConfig(candidates=(2,), sample_interval=-5)


def test_time_budget_marks_unfinished_candidates_not_evaluated():
    RELEASE.clear()
    sampler = StallingSampler({2: -900.0, 3: -800.0, 4: -700.0}, stalled=[4])
    try:
        report = run_scripted(sampler, [2, 3, 4], time_budget_seconds=1.0)
    finally:
        RELEASE.set()
    assert report.best_k == 3
    assert [o.k for o in report.not_evaluated] == [4]
    assert report.outcomes[2].status == STATUS_NOT_EVALUATED
    assert math.isnan(report.scores[2])


def test_report_frame_has_one_row_per_candidate():
    report = run_scripted(ScriptedSampler({2: -9.0, 3: -8.0}), [2, 3])
    frame = report.to_frame()
    assert frame["k"].tolist() == [2, 3]
    assert set(frame["status"]) == {"ok"}


def test_fixed_seed_reproduces_scores_bit_for_bit():
    matrix = random_matrix(n_docs=12, n_terms=15, rate=0.4, seed=5)
    kwargs = dict(
        random_seed=11, sampler=GibbsLDASampler(), executor="thread", max_workers=2
    )
    first = select_topic_count(matrix, [2, 3], 10, 40, 10, **kwargs)
    second = select_topic_count(matrix, [2, 3], 10, 40, 10, **kwargs)
    assert first == second


def test_end_to_end_sweep_on_a_50_by_200_matrix():
    matrix = random_matrix(n_docs=50, n_terms=200, rate=0.1, seed=2016)
    assert (matrix.n_documents, matrix.n_terms) == (50, 200)
    best_k, scores = select_topic_count(
        matrix,
        [2, 5, 10],
        burn_in=100,
        iterations=500,
        sample_interval=50,
        random_seed=2016,
        max_workers=3,
    )
    assert len(scores) == 3
    assert all(math.isfinite(s) for s in scores)
    assert best_k in {2, 5, 10}
