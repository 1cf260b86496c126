from __future__ import annotations
from typing import List, Optional, Tuple
import logging

import numpy as np
from scipy.special import gammaln

from topicsweep.core.topic_modeling.base import FittedTopicModel, TopicSampler
from topicsweep.core.topic_modeling.config import GibbsSamplerConfig
from topicsweep.core.topic_modeling.matrix import DocumentTermMatrix

logger = logging.getLogger(__name__)


def expand_tokens(matrix: DocumentTermMatrix) -> Tuple[np.ndarray, np.ndarray]:
    """One (document, term) pair per token occurrence, document-major."""
    coo = matrix.counts.tocoo()
    reps = coo.data.astype(np.int64)
    return np.repeat(coo.row, reps), np.repeat(coo.col, reps)


class GibbsLDASampler(TopicSampler):
    """
    Collapsed Gibbs sampler for LDA with symmetric priors.

    Count tables:
      - ndz: (n_documents, k) tokens per document-topic pair
      - nwz: (n_terms, k) tokens per term-topic pair
      - nz: (k,) tokens per topic
    """

    def __init__(self, cfg: GibbsSamplerConfig | None = None):
        self.cfg = cfg or GibbsSamplerConfig()

    def _loglikelihood(self, nwz: np.ndarray, nz: np.ndarray) -> float:
        # log p(w | z), topics integrated out
        n_terms, k = nwz.shape
        eta = self.cfg.eta
        return float(
            k * (gammaln(n_terms * eta) - n_terms * gammaln(eta))
            + gammaln(nwz + eta).sum()
            - gammaln(nz + n_terms * eta).sum()
        )

    def fit(
        self,
        matrix: DocumentTermMatrix,
        num_topics: int,
        *,
        iterations: int,
        sample_interval: int,
        random_seed: Optional[int] = None,
    ) -> FittedTopicModel:
        if num_topics < 1:
            raise ValueError(f"num_topics must be >= 1, got {num_topics}")
        if iterations < 1 or sample_interval < 1:
            raise ValueError("iterations and sample_interval must be >= 1")

        docs, words = expand_tokens(matrix)
        n_tokens = docs.size
        if n_tokens == 0:
            raise ValueError("Document-term matrix holds no tokens.")

        k = num_topics
        n_docs, n_terms = matrix.n_documents, matrix.n_terms
        alpha = self.cfg.alpha_for(k)
        eta = self.cfg.eta
        eta_sum = n_terms * eta

        rng = np.random.default_rng(random_seed)
        z = rng.integers(k, size=n_tokens)
        ndz = np.zeros((n_docs, k), dtype=np.int64)
        nwz = np.zeros((n_terms, k), dtype=np.int64)
        np.add.at(ndz, (docs, z), 1)
        np.add.at(nwz, (words, z), 1)
        nz = nwz.sum(axis=0)

        doc_list = docs.tolist()
        word_list = words.tolist()
        z_list = z.tolist()
        loglikelihoods: List[float] = []

        for it in range(1, iterations + 1):
            uniforms = rng.random(n_tokens)
            for i in range(n_tokens):
                d, w, t = doc_list[i], word_list[i], z_list[i]
                ndz[d, t] -= 1
                nwz[w, t] -= 1
                nz[t] -= 1

                p = (ndz[d] + alpha) * (nwz[w] + eta) / (nz + eta_sum)
                cum = np.cumsum(p)
                t = int(np.searchsorted(cum, uniforms[i] * cum[-1], side="right"))
                if t >= k:  # u * total rounding onto the last edge
                    t = k - 1

                z_list[i] = t
                ndz[d, t] += 1
                nwz[w, t] += 1
                nz[t] += 1

            if it % sample_interval == 0:
                ll = self._loglikelihood(nwz, nz)
                loglikelihoods.append(ll)
                logger.debug("k=%d <%d> log likelihood: %.1f", k, it, ll)

        topic_term = (nwz.T + eta) / (nz[:, None] + eta_sum)
        doc_len = ndz.sum(axis=1)
        doc_topic = (ndz + alpha) / (doc_len[:, None] + k * alpha)

        return FittedTopicModel(
            num_topics=k,
            loglikelihoods=tuple(loglikelihoods),
            sample_interval=sample_interval,
            topic_term=topic_term,
            doc_topic=doc_topic,
            terms=matrix.terms,
            doc_ids=matrix.doc_ids,
        )
