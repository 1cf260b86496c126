from __future__ import annotations
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Union
import logging

import pandas as pd

from topicsweep.core.topic_modeling.base import FittedTopicModel, TopicSampler
from topicsweep.core.topic_modeling.config import (
    GibbsSamplerConfig,
    TopicSelectionConfig,
)
from topicsweep.core.topic_modeling.gibbs_lda import GibbsLDASampler
from topicsweep.core.topic_modeling.matrix import (
    DocumentTermMatrix,
    apply_tfidf_cutoff,
)
from topicsweep.core.topic_modeling.selector import SelectionReport, TopicCountSelector
from topicsweep.core.topic_modeling.utils import ensure_token_list
from topicsweep.utils.telemetry import step

logger = logging.getLogger(__name__)

TfidfCutoff = Union[None, str, float]  # None | "median" | explicit threshold


@dataclass(frozen=True)
class TopicFitResult:
    model: FittedTopicModel
    topics: list[dict]  # [{topic_id, keywords, label}, ...]
    dominant_topics: list[int]
    doc_topic: pd.DataFrame  # index: doc_ids, columns: topic ids
    topic_term: pd.DataFrame  # index: topic ids, columns: terms

    @property
    def num_topics(self) -> int:
        return self.model.num_topics


class TopicSelectionService:
    """
    - Builds the document-term matrix (optionally with the tf-idf median cutoff)
    - Runs the topic-count sweep
    - Refits the chosen k once with a fixed seed for reporting
    - Cross-tabulates dominant topics against subject headings
    """

    def __init__(self, sampler: TopicSampler | None = None):
        self.sampler = sampler or GibbsLDASampler(GibbsSamplerConfig())

    def build_matrix(
        self,
        documents: Sequence[Any],
        doc_ids: Optional[Sequence[Any]] = None,
        tfidf_cutoff: TfidfCutoff = None,
    ) -> DocumentTermMatrix:
        matrix = DocumentTermMatrix.from_token_lists(documents, doc_ids=doc_ids)
        if tfidf_cutoff is None or tfidf_cutoff == "none":
            return matrix
        if tfidf_cutoff == "median":
            return apply_tfidf_cutoff(matrix)
        return apply_tfidf_cutoff(matrix, threshold=float(tfidf_cutoff))

    def select(
        self, matrix: DocumentTermMatrix, cfg: TopicSelectionConfig
    ) -> SelectionReport:
        logger.info(
            "Selecting k over %d candidates (%d docs x %d terms, %d tokens)",
            len(cfg.candidates),
            matrix.n_documents,
            matrix.n_terms,
            matrix.n_tokens,
        )
        return TopicCountSelector(self.sampler, cfg).run(matrix)

    def fit(
        self,
        matrix: DocumentTermMatrix,
        num_topics: int,
        *,
        iterations: int,
        sample_interval: int,
        random_seed: Optional[int],
        topn_words: int = 10,
    ) -> TopicFitResult:
        with step("topic_model.fit", k=num_topics, iterations=iterations):
            model = self.sampler.fit(
                matrix,
                num_topics,
                iterations=iterations,
                sample_interval=sample_interval,
                random_seed=random_seed,
            )

        topn = min(topn_words, matrix.n_terms)
        topics: List[dict] = []
        for i in range(num_topics):
            topics.append(
                {
                    "topic_id": str(i),
                    "keywords": ", ".join(model.top_terms(i, topn)),
                    "label": f"Topic {i}",
                }
            )

        topic_ids = list(range(num_topics))
        return TopicFitResult(
            model=model,
            topics=topics,
            dominant_topics=model.dominant_topics(),
            doc_topic=pd.DataFrame(
                model.doc_topic, index=list(model.doc_ids), columns=topic_ids
            ),
            topic_term=pd.DataFrame(
                model.topic_term, index=topic_ids, columns=list(model.terms)
            ),
        )

    @staticmethod
    def compare_with_headings(
        result: TopicFitResult, headings: Sequence[Any]
    ) -> pd.DataFrame:
        """
        Rows: subject headings, columns: dominant topic, cells: document counts.
        `headings` is aligned with the fitted documents; each entry may hold
        several headings (list, JSON list string or "; "-separated string).
        """
        if len(headings) != len(result.dominant_topics):
            raise ValueError(
                f"Got {len(headings)} heading entries for "
                f"{len(result.dominant_topics)} documents."
            )
        df = pd.DataFrame(
            {
                "topic": result.dominant_topics,
                "heading": [
                    h if isinstance(h, (list, tuple)) else _heading_list(h)
                    for h in headings
                ],
            }
        ).explode("heading", ignore_index=True)
        df = df.dropna(subset=["heading"])
        return pd.crosstab(df["heading"], df["topic"])


def _heading_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str) and not value.strip().startswith("["):
        # "Humans; Neoplasms" style exports
        return [h.strip() for h in value.split(";") if h.strip()]
    return ensure_token_list(value)
