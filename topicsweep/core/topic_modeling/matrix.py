from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Sequence, Tuple
import logging

import numpy as np
import pandas as pd
from scipy import sparse
from sklearn.feature_extraction.text import CountVectorizer

from topicsweep.core.topic_modeling.utils import ensure_token_list

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DocumentTermMatrix:
    """
    Immutable document-term count matrix.

    - counts: CSR matrix, shape (n_documents, n_terms), non-negative integers
    - terms: vocabulary, one entry per column
    - doc_ids: one identifier per row
    """

    counts: sparse.csr_matrix
    terms: Tuple[str, ...]
    doc_ids: Tuple[Any, ...]

    def __post_init__(self):
        counts = sparse.csr_matrix(self.counts, dtype=np.int64, copy=True)
        n_docs, n_terms = counts.shape
        if n_docs < 1 or n_terms < 1:
            raise ValueError(
                "Document-term matrix needs at least one document and one term."
            )
        if counts.nnz and counts.data.min() < 0:
            raise ValueError("Document-term counts must be non-negative.")
        if len(self.terms) != n_terms:
            raise ValueError(
                f"Got {len(self.terms)} terms for a matrix with {n_terms} columns."
            )
        if len(self.doc_ids) != n_docs:
            raise ValueError(
                f"Got {len(self.doc_ids)} doc_ids for a matrix with {n_docs} rows."
            )
        counts.eliminate_zeros()
        counts.sort_indices()
        for buf in (counts.data, counts.indices, counts.indptr):
            buf.flags.writeable = False
        object.__setattr__(self, "counts", counts)
        object.__setattr__(self, "terms", tuple(str(t) for t in self.terms))
        object.__setattr__(self, "doc_ids", tuple(self.doc_ids))

    def __getstate__(self):
        return {"counts": self.counts, "terms": self.terms, "doc_ids": self.doc_ids}

    def __setstate__(self, state):
        # pickling drops the read-only flags; rebuild through __post_init__
        for key, value in state.items():
            object.__setattr__(self, key, value)
        self.__post_init__()

    @classmethod
    def from_token_lists(
        cls,
        documents: Iterable[Any],
        doc_ids: Optional[Sequence[Any]] = None,
    ) -> "DocumentTermMatrix":
        docs = list(documents)
        vect = CountVectorizer(analyzer=ensure_token_list)
        try:
            X = vect.fit_transform(docs)
        except ValueError as e:  # sklearn: "empty vocabulary"
            raise ValueError(f"Cannot build document-term matrix: {e}") from e
        ids = tuple(doc_ids) if doc_ids is not None else tuple(range(len(docs)))
        return cls(counts=X, terms=tuple(vect.get_feature_names_out()), doc_ids=ids)

    @property
    def n_documents(self) -> int:
        return self.counts.shape[0]

    @property
    def n_terms(self) -> int:
        return self.counts.shape[1]

    @property
    def n_tokens(self) -> int:
        return int(self.counts.sum())

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame.sparse.from_spmatrix(
            self.counts, index=list(self.doc_ids), columns=list(self.terms)
        )


def term_tfidf_scores(matrix: DocumentTermMatrix) -> np.ndarray:
    """Mean within-document relative frequency of each term, times log2 idf."""
    counts = matrix.counts.astype(np.float64)
    row_sums = np.asarray(counts.sum(axis=1)).ravel()
    row_sums[row_sums == 0] = 1.0
    rel = sparse.diags(1.0 / row_sums) @ counts
    rel = sparse.csc_matrix(rel)
    doc_freq = np.diff(rel.indptr)
    totals = np.asarray(rel.sum(axis=0)).ravel()
    scores = np.zeros(matrix.n_terms)
    seen = doc_freq > 0
    scores[seen] = (totals[seen] / doc_freq[seen]) * np.log2(
        matrix.n_documents / doc_freq[seen]
    )
    return scores


def apply_tfidf_cutoff(
    matrix: DocumentTermMatrix, threshold: Optional[float] = None
) -> DocumentTermMatrix:
    """
    Keep terms whose tf-idf score is >= threshold (default: the median score),
    then drop documents that no longer hold any token.
    """
    scores = term_tfidf_scores(matrix)
    cutoff = float(np.median(scores)) if threshold is None else float(threshold)
    keep_terms = np.flatnonzero(scores >= cutoff)
    if keep_terms.size == 0:
        raise ValueError(f"tf-idf cutoff {cutoff:.6g} removed every term.")
    counts = matrix.counts[:, keep_terms]
    keep_docs = np.flatnonzero(np.asarray(counts.sum(axis=1)).ravel() > 0)
    if keep_docs.size == 0:
        raise ValueError(f"tf-idf cutoff {cutoff:.6g} removed every document.")
    logger.info(
        "tf-idf cutoff %.6g kept %d/%d terms and %d/%d documents",
        cutoff,
        keep_terms.size,
        matrix.n_terms,
        keep_docs.size,
        matrix.n_documents,
    )
    return DocumentTermMatrix(
        counts=counts[keep_docs],
        terms=tuple(matrix.terms[j] for j in keep_terms),
        doc_ids=tuple(matrix.doc_ids[i] for i in keep_docs),
    )
