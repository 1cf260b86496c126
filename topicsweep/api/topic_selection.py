# topicsweep/api/topic_selection.py

from typing import Any, List, Optional, Sequence
from fastapi import APIRouter
import logging

from topicsweep.core.config import settings
from topicsweep.core.topic_modeling.config import TopicSelectionConfig
from topicsweep.core.topic_modeling.errors import (
    InvalidCandidateError,
    NoViableCandidateError,
)
from topicsweep.core.topic_modeling.matrix import DocumentTermMatrix
from topicsweep.messages.topic_messages import (
    DOC_IDS_MISMATCH,
    EMPTY_CORPUS,
    HEADINGS_MISMATCH,
    INVALID_CANDIDATE,
    MODEL_FIT_FAILED,
    NO_VIABLE_CANDIDATE,
    SELECTION_FAILED,
    TOO_MANY_DOCUMENTS,
    TOPIC_COUNT_SELECTED,
    TOPIC_COUNT_SELECTED_PARTIAL,
    TOPIC_MODEL_FITTED,
)
from topicsweep.schemas.topic import (
    TopicCountSelectRequest,
    TopicCountSelectResponse,
    TopicFitRequest,
    TopicFitResponse,
    outcome_payload,
)
from topicsweep.services.topic_selection_service import (
    TfidfCutoff,
    TopicSelectionService,
)
from topicsweep.utils.exceptions import (
    BadRequestError,
    ServerError,
    UnprocessableError,
)
from topicsweep.utils.response_builder import success_response

router = APIRouter(prefix="/api/topic", tags=["Topic Count Selection"])
logger = logging.getLogger(__name__)


def _service() -> TopicSelectionService:
    return TopicSelectionService()


def _check_documents(documents: Sequence[Any], doc_ids: Optional[List[Any]]) -> None:
    if len(documents) > settings.MAX_DOCUMENTS:
        raise BadRequestError(code="TOO_MANY_DOCUMENTS", message=TOO_MANY_DOCUMENTS)
    if doc_ids is not None and len(doc_ids) != len(documents):
        raise BadRequestError(code="DOC_IDS_MISMATCH", message=DOC_IDS_MISMATCH)


def _build_matrix(
    service: TopicSelectionService,
    documents: Sequence[Any],
    doc_ids: Optional[List[Any]],
    tfidf_cutoff: TfidfCutoff,
) -> DocumentTermMatrix:
    _check_documents(documents, doc_ids)
    try:
        return service.build_matrix(documents, doc_ids=doc_ids, tfidf_cutoff=tfidf_cutoff)
    except ValueError as e:
        logger.warning(f"⚠️ Could not build document-term matrix: {e}")
        raise BadRequestError(code="EMPTY_CORPUS", message=f"{EMPTY_CORPUS} {e}")


@router.post("/select", response_model=TopicCountSelectResponse)
def select_topic_count(req: TopicCountSelectRequest):
    """
    Sweep the candidate topic counts and pick the one with the highest
    harmonic-mean log-likelihood.
    - Failed candidates are reported with their error kind; the call only
      fails when no candidate could be scored.
    - With time_budget_seconds, unfinished candidates come back as not_evaluated.
    """
    service = _service()
    matrix = _build_matrix(service, req.documents, req.doc_ids, req.tfidf_cutoff)

    try:
        cfg = TopicSelectionConfig(
            candidates=tuple(req.candidates),
            burn_in=req.burn_in,
            iterations=req.iterations,
            sample_interval=req.sample_interval,
            random_seed=(
                req.random_seed
                if req.random_seed is not None
                else settings.DEFAULT_RANDOM_SEED
            ),
            max_workers=settings.SELECTION_MAX_WORKERS,
            time_budget_seconds=(
                req.time_budget_seconds or settings.SELECTION_TIME_BUDGET_SECONDS
            ),
            executor=settings.SELECTION_EXECUTOR,
        )
        report = service.select(matrix, cfg)
    except InvalidCandidateError as e:
        raise BadRequestError(code="INVALID_CANDIDATE", message=f"{INVALID_CANDIDATE} {e}")
    except NoViableCandidateError as e:
        logger.warning(f"⚠️ {e}")
        raise UnprocessableError(
            code="NO_VIABLE_CANDIDATE",
            message=NO_VIABLE_CANDIDATE,
            extra={"failures": {str(k): kind for k, kind in e.failures.items()}},
        )
    except Exception as e:
        logger.exception(f"❌ Topic count selection failed: {e}")
        raise ServerError(code="SELECTION_FAILED", message=SELECTION_FAILED)

    partial = bool(report.failed or report.not_evaluated)
    return success_response(
        message=TOPIC_COUNT_SELECTED_PARTIAL if partial else TOPIC_COUNT_SELECTED,
        data={
            "best_k": report.best_k,
            "candidates": list(report.candidates),
            "scores": report.scores,
            "outcomes": [outcome_payload(o) for o in report.outcomes],
            "n_documents": matrix.n_documents,
            "n_terms": matrix.n_terms,
        },
    )


@router.post("/fit", response_model=TopicFitResponse)
def fit_topic_model(req: TopicFitRequest):
    """Single fit with a fixed seed; returns topic keywords and dominant topics."""
    service = _service()
    if req.headings is not None and len(req.headings) != len(req.documents):
        raise BadRequestError(code="HEADINGS_MISMATCH", message=HEADINGS_MISMATCH)
    _check_documents(req.documents, req.doc_ids)
    # rows are keyed by input position; doc_ids need not be unique
    positions = list(range(len(req.documents)))
    matrix = _build_matrix(service, req.documents, positions, req.tfidf_cutoff)

    try:
        result = service.fit(
            matrix,
            req.num_topics,
            iterations=req.iterations,
            sample_interval=req.sample_interval,
            random_seed=(
                req.random_seed
                if req.random_seed is not None
                else settings.DEFAULT_RANDOM_SEED
            ),
            topn_words=req.topn_words,
        )
    except Exception as e:
        logger.exception(f"❌ Topic model fit failed: {e}")
        raise ServerError(code="MODEL_FIT_FAILED", message=MODEL_FIT_FAILED)

    # the tf-idf cutoff may have dropped rows
    kept = list(result.model.doc_ids)
    ids = req.doc_ids if req.doc_ids is not None else positions
    crosstab = None
    if req.headings is not None:
        table = service.compare_with_headings(result, [req.headings[i] for i in kept])
        crosstab = {
            str(heading): {str(topic): int(n) for topic, n in row.items()}
            for heading, row in table.iterrows()
        }

    return success_response(
        message=TOPIC_MODEL_FITTED,
        data={
            "num_topics": result.num_topics,
            "topics": result.topics,
            "doc_ids": [ids[i] for i in kept],
            "dominant_topics": result.dominant_topics,
            "loglikelihoods": list(result.model.loglikelihoods),
            "heading_crosstab": crosstab,
        },
    )
