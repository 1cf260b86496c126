from pydantic import BaseModel, Field
from typing import Any, Dict, List, Literal, Optional, Union

from topicsweep.schemas.common import BaseResponse

Document = Union[List[str], str]  # token list or whitespace-joined tokens
TfidfCutoffOption = Optional[Union[Literal["median", "none"], float]]


class TopicCountSelectRequest(BaseModel):
    documents: List[Document] = Field(..., min_length=1)
    doc_ids: Optional[List[Union[str, int]]] = None
    candidates: List[int] = Field(..., min_length=1)
    burn_in: int = Field(1000, ge=1)
    iterations: int = Field(2000, ge=1)
    sample_interval: int = Field(50, ge=1)
    random_seed: Optional[int] = None
    tfidf_cutoff: TfidfCutoffOption = None
    time_budget_seconds: Optional[float] = Field(None, gt=0)


class CandidateOutcomeData(BaseModel):
    k: int
    status: str
    score: Optional[float] = None  # None when not scored
    n_samples: int = 0
    error_kind: Optional[str] = None
    message: Optional[str] = None


class TopicCountSelectResponseData(BaseModel):
    best_k: int
    candidates: List[int]
    scores: List[Optional[float]]
    outcomes: List[CandidateOutcomeData]
    n_documents: int
    n_terms: int


class TopicCountSelectResponse(BaseResponse):
    data: TopicCountSelectResponseData


class TopicFitRequest(BaseModel):
    documents: List[Document] = Field(..., min_length=1)
    doc_ids: Optional[List[Union[str, int]]] = None
    num_topics: int = Field(..., ge=1)
    iterations: int = Field(2000, ge=1)
    sample_interval: int = Field(50, ge=1)
    random_seed: Optional[int] = None
    topn_words: int = Field(10, ge=1)
    tfidf_cutoff: TfidfCutoffOption = None
    headings: Optional[List[Union[List[str], str, None]]] = None


class TopicSummary(BaseModel):
    topic_id: str
    keywords: str
    label: str


class TopicFitResponseData(BaseModel):
    num_topics: int
    topics: List[TopicSummary]
    doc_ids: List[Union[str, int]]
    dominant_topics: List[int]
    loglikelihoods: List[float]
    heading_crosstab: Optional[Dict[str, Dict[str, int]]] = None


class TopicFitResponse(BaseResponse):
    data: TopicFitResponseData


def outcome_payload(outcome: Any) -> Dict[str, Any]:
    return CandidateOutcomeData(
        k=outcome.k,
        status=outcome.status,
        score=outcome.score if outcome.ok else None,
        n_samples=outcome.n_samples,
        error_kind=outcome.error_kind,
        message=outcome.message,
    ).model_dump()
