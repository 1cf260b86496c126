from __future__ import annotations
from typing import Dict, Optional


class TopicSelectionError(Exception):
    """Base error for topic-count selection."""

    kind: str = "topic_selection_error"


class InvalidCandidateError(TopicSelectionError, ValueError):
    kind = "invalid_candidate"

    def __init__(self, message: str, k: Optional[int] = None):
        super().__init__(message, k)
        self.message = message
        self.k = k

    def __str__(self) -> str:
        return self.message


class InsufficientSamplesError(TopicSelectionError):
    kind = "insufficient_samples"

    def __init__(
        self,
        k: int,
        retained: int,
        burn_in: int,
        iterations: int,
        sample_interval: int,
    ):
        super().__init__(k, retained, burn_in, iterations, sample_interval)
        self.k = k
        self.retained = retained
        self.burn_in = burn_in
        self.iterations = iterations
        self.sample_interval = sample_interval

    def __str__(self) -> str:
        return (
            f"k={self.k}: {self.retained} log-likelihood samples left after burn-in "
            f"(burn_in={self.burn_in}, iterations={self.iterations}, "
            f"sample_interval={self.sample_interval})"
        )


class ModelFitError(TopicSelectionError):
    kind = "model_fit_error"

    def __init__(self, k: int, reason: str):
        super().__init__(k, reason)
        self.k = k
        self.reason = reason

    def __str__(self) -> str:
        return f"k={self.k}: model fit failed: {self.reason}"


class NoViableCandidateError(TopicSelectionError):
    """Raised when every candidate failed or was not evaluated."""

    kind = "no_viable_candidate"

    def __init__(self, failures: Dict[int, str]):
        super().__init__(failures)
        self.failures = failures  # k -> error kind

    def __str__(self) -> str:
        detail = ", ".join(f"k={k} ({kind})" for k, kind in self.failures.items())
        return f"No candidate topic count could be scored: {detail}"
