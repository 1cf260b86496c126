from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional, Tuple
import numpy as np

from topicsweep.core.topic_modeling.harmonic import burn_in_sample_count
from topicsweep.core.topic_modeling.matrix import DocumentTermMatrix


@dataclass(frozen=True)
class FittedTopicModel:
    num_topics: int
    loglikelihoods: Tuple[float, ...]  # one per sample_interval sweeps
    sample_interval: int
    topic_term: np.ndarray  # shape: (num_topics, n_terms)
    doc_topic: np.ndarray  # shape: (n_documents, num_topics)
    terms: Tuple[str, ...]
    doc_ids: Tuple[Any, ...]

    def retained_loglikelihoods(self, burn_in: int) -> Tuple[float, ...]:
        return self.loglikelihoods[burn_in_sample_count(burn_in, self.sample_interval) :]

    def dominant_topics(self) -> list[int]:
        return self.doc_topic.argmax(axis=1).tolist()

    def top_terms(self, topic: int, topn: int) -> list[str]:
        top_idx = self.topic_term[topic].argsort()[-topn:][::-1]
        return [self.terms[j] for j in top_idx]


class TopicSampler(ABC):
    @abstractmethod
    def fit(
        self,
        matrix: DocumentTermMatrix,
        num_topics: int,
        *,
        iterations: int,
        sample_interval: int,
        random_seed: Optional[int] = None,
    ) -> FittedTopicModel:
        """
        Runs `iterations` sampling sweeps and records the log-likelihood
        after every `sample_interval`-th sweep.
        """
        ...
