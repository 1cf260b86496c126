from __future__ import annotations
from concurrent.futures import (
    Executor,
    Future,
    ProcessPoolExecutor,
    ThreadPoolExecutor,
    TimeoutError as FuturesTimeoutError,
    as_completed,
)
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple
import logging
import math
import numbers

import pandas as pd

from topicsweep.core.topic_modeling.base import TopicSampler
from topicsweep.core.topic_modeling.config import (
    GibbsSamplerConfig,
    TopicSelectionConfig,
)
from topicsweep.core.topic_modeling.errors import (
    InsufficientSamplesError,
    InvalidCandidateError,
    ModelFitError,
    NoViableCandidateError,
    TopicSelectionError,
)
from topicsweep.core.topic_modeling.gibbs_lda import GibbsLDASampler
from topicsweep.core.topic_modeling.harmonic import (
    burn_in_sample_count,
    harmonic_mean_loglik,
)
from topicsweep.core.topic_modeling.matrix import DocumentTermMatrix
from topicsweep.utils.telemetry import step

logger = logging.getLogger(__name__)

STATUS_OK = "ok"
STATUS_FAILED = "failed"
STATUS_NOT_EVALUATED = "not_evaluated"


@dataclass(frozen=True)
class CandidateOutcome:
    k: int
    status: str
    score: float = math.nan
    n_samples: int = 0
    error_kind: Optional[str] = None
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == STATUS_OK


@dataclass(frozen=True)
class SelectionReport:
    candidates: Tuple[int, ...]
    outcomes: Tuple[CandidateOutcome, ...]  # aligned with candidates
    best_k: int

    @property
    def scores(self) -> List[float]:
        return [o.score for o in self.outcomes]

    @property
    def failed(self) -> List[CandidateOutcome]:
        return [o for o in self.outcomes if o.status == STATUS_FAILED]

    @property
    def not_evaluated(self) -> List[CandidateOutcome]:
        return [o for o in self.outcomes if o.status == STATUS_NOT_EVALUATED]

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            [
                {
                    "k": o.k,
                    "score": o.score,
                    "status": o.status,
                    "n_samples": o.n_samples,
                    "error_kind": o.error_kind,
                    "message": o.message,
                }
                for o in self.outcomes
            ]
        )


def validate_candidates(
    candidates: Sequence[int], n_documents: int
) -> Tuple[int, ...]:
    ks = tuple(candidates)
    if not ks:
        raise InvalidCandidateError("At least one candidate topic count is required.")
    for k in ks:
        if isinstance(k, bool) or not isinstance(k, numbers.Integral):
            raise InvalidCandidateError(f"Candidate {k!r} is not an integer.")
        if k < 1 or k >= n_documents:
            raise InvalidCandidateError(
                f"Candidate k={k} must satisfy 1 <= k < {n_documents} (document count).",
                k=k,
            )
    return tuple(int(k) for k in ks)


def score_candidate(
    sampler: TopicSampler,
    matrix: DocumentTermMatrix,
    k: int,
    *,
    burn_in: int,
    iterations: int,
    sample_interval: int,
    random_seed: Optional[int] = None,
) -> Tuple[float, int]:
    """
    Fit one model and score it. Returns (harmonic-mean score, retained samples).

    Raises InsufficientSamplesError when burn-in leaves no sample and
    ModelFitError when the sampler itself fails.
    """
    expected = iterations // sample_interval - burn_in_sample_count(
        burn_in, sample_interval
    )
    if expected < 1:
        raise InsufficientSamplesError(
            k, max(expected, 0), burn_in, iterations, sample_interval
        )

    with step("topic_count.fit", k=k, iterations=iterations):
        try:
            model = sampler.fit(
                matrix,
                k,
                iterations=iterations,
                sample_interval=sample_interval,
                random_seed=random_seed,
            )
        except Exception as e:
            raise ModelFitError(k, f"{type(e).__name__}: {e}") from e

    retained = model.retained_loglikelihoods(burn_in)
    if not retained:
        raise InsufficientSamplesError(k, 0, burn_in, iterations, sample_interval)
    return harmonic_mean_loglik(retained), len(retained)


def _evaluate(
    sampler: TopicSampler,
    matrix: DocumentTermMatrix,
    k: int,
    burn_in: int,
    iterations: int,
    sample_interval: int,
    random_seed: Optional[int],
) -> CandidateOutcome:
    # pool task: failures become outcomes so one k never sinks the batch
    try:
        score, n = score_candidate(
            sampler,
            matrix,
            k,
            burn_in=burn_in,
            iterations=iterations,
            sample_interval=sample_interval,
            random_seed=random_seed,
        )
    except TopicSelectionError as e:
        return CandidateOutcome(
            k=k, status=STATUS_FAILED, error_kind=e.kind, message=str(e)
        )
    return CandidateOutcome(k=k, status=STATUS_OK, score=score, n_samples=n)


class TopicCountSelector:
    """
    Fit-all, score-all, argmax over candidate topic counts.

    - One pool task per distinct k; results are keyed by k, not by completion order
    - Per-candidate failures are recorded, the batch continues
    - With a time budget, unfinished candidates are reported as not evaluated
    """

    def __init__(
        self,
        sampler: TopicSampler | None = None,
        cfg: TopicSelectionConfig | None = None,
    ):
        self.sampler = sampler or GibbsLDASampler(GibbsSamplerConfig())
        self.cfg = cfg or TopicSelectionConfig()

    def _executor(self) -> Executor:
        if self.cfg.executor == "thread":
            return ThreadPoolExecutor(max_workers=self.cfg.max_workers)
        return ProcessPoolExecutor(max_workers=self.cfg.max_workers)

    def _collect(self, matrix: DocumentTermMatrix, ks: List[int]) -> Dict[int, CandidateOutcome]:
        cfg = self.cfg
        results: Dict[int, CandidateOutcome] = {}
        pool = self._executor()
        timed_out = False
        try:
            futures: Dict[Future, int] = {
                pool.submit(
                    _evaluate,
                    self.sampler,
                    matrix,
                    k,
                    cfg.burn_in,
                    cfg.iterations,
                    cfg.sample_interval,
                    cfg.random_seed,
                ): k
                for k in ks
            }
            try:
                for fut in as_completed(futures, timeout=cfg.time_budget_seconds):
                    k = futures[fut]
                    exc = fut.exception()
                    if exc is not None:
                        # worker crash or unpicklable task
                        logger.error("k=%d: pool task failed: %r", k, exc)
                        err = ModelFitError(k, f"{type(exc).__name__}: {exc}")
                        results[k] = CandidateOutcome(
                            k=k,
                            status=STATUS_FAILED,
                            error_kind=err.kind,
                            message=str(err),
                        )
                        continue
                    outcome = fut.result()
                    results[k] = outcome
                    if outcome.ok:
                        logger.info(
                            "k=%d scored %.3f over %d samples",
                            k,
                            outcome.score,
                            outcome.n_samples,
                        )
                    else:
                        logger.warning("k=%d failed: %s", k, outcome.message)
            except FuturesTimeoutError:
                timed_out = True
                logger.warning(
                    "Time budget of %.1fs exhausted; %d/%d candidates finished",
                    cfg.time_budget_seconds,
                    len(results),
                    len(ks),
                )
        finally:
            pool.shutdown(wait=not timed_out, cancel_futures=True)
        return results

    def run(self, matrix: DocumentTermMatrix) -> SelectionReport:
        candidates = validate_candidates(self.cfg.candidates, matrix.n_documents)
        ks = list(dict.fromkeys(candidates))

        with step(
            "topic_count.select",
            candidates=len(ks),
            n_documents=matrix.n_documents,
            n_terms=matrix.n_terms,
        ):
            results = self._collect(matrix, ks)

        outcomes = tuple(
            results.get(k)
            or CandidateOutcome(
                k=k,
                status=STATUS_NOT_EVALUATED,
                error_kind=STATUS_NOT_EVALUATED,
                message="Time budget exhausted before this candidate finished.",
            )
            for k in candidates
        )
        succeeded = [results[k] for k in ks if k in results and results[k].ok]
        if not succeeded:
            failures = {o.k: o.error_kind for o in outcomes}
            raise NoViableCandidateError(failures)

        # max score, ties -> smallest k
        best = max(succeeded, key=lambda o: (o.score, -o.k))
        logger.info("Selected k=%d (score %.3f)", best.k, best.score)
        return SelectionReport(candidates=candidates, outcomes=outcomes, best_k=best.k)


def select_topic_count(
    matrix: DocumentTermMatrix,
    candidates: Sequence[int],
    burn_in: int,
    iterations: int,
    sample_interval: int,
    *,
    random_seed: Optional[int] = None,
    sampler: TopicSampler | None = None,
    max_workers: Optional[int] = None,
    time_budget_seconds: Optional[float] = None,
    executor: str = "process",
) -> Tuple[int, List[float]]:
    """Returns (best_k, scores) with scores aligned to `candidates`."""
    cfg = TopicSelectionConfig(
        candidates=tuple(candidates),
        burn_in=burn_in,
        iterations=iterations,
        sample_interval=sample_interval,
        random_seed=random_seed,
        max_workers=max_workers,
        time_budget_seconds=time_budget_seconds,
        executor=executor,
    )
    report = TopicCountSelector(sampler, cfg).run(matrix)
    return report.best_k, report.scores
