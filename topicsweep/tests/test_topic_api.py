import pytest
from fastapi.testclient import TestClient

from topicsweep.core.config import settings
from topicsweep.main import app
from topicsweep.services.topic_selection_service import TopicSelectionService

client = TestClient(app)

GENETICS = ["gene", "allele", "genome", "mutation", "sequencing"]
CARDIOLOGY = ["heart", "artery", "cardiac", "valve", "infarction"]


def corpus():
    docs = [GENETICS * 3 for _ in range(6)] + [CARDIOLOGY * 3 for _ in range(6)]
    headings = [["Genetics"]] * 6 + [["Cardiology", "Humans"]] * 6
    return docs, headings


@pytest.fixture(autouse=True)
def thread_pool(monkeypatch):
    monkeypatch.setattr(settings, "SELECTION_EXECUTOR", "thread")


def select_payload(**overrides):
    docs, _ = corpus()
    payload = {
        "documents": docs,
        "candidates": [2, 3],
        "burn_in": 10,
        "iterations": 40,
        "sample_interval": 10,
        "random_seed": 1,
    }
    payload.update(overrides)
    return payload


# -------------------------------------
# ✅ Topic-count sweep
# -------------------------------------
def test_select_returns_scores_aligned_with_candidates():
    response = client.post("/api/topic/select", json=select_payload())

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "success"
    data = body["data"]
    assert data["candidates"] == [2, 3]
    assert len(data["scores"]) == 2
    assert all(isinstance(s, float) for s in data["scores"])
    assert data["best_k"] in (2, 3)
    assert [o["status"] for o in data["outcomes"]] == ["ok", "ok"]
    assert data["n_documents"] == 12
    assert data["n_terms"] == 10


def test_select_is_reproducible_with_a_seed():
    first = client.post("/api/topic/select", json=select_payload()).json()["data"]
    second = client.post("/api/topic/select", json=select_payload()).json()["data"]
    assert first["scores"] == second["scores"]


def test_select_accepts_whitespace_joined_documents():
    docs, _ = corpus()
    payload = select_payload(documents=[" ".join(d) for d in docs], candidates=[2])
    response = client.post("/api/topic/select", json=payload)
    assert response.status_code == 200
    assert response.json()["data"]["best_k"] == 2


# -------------------------------------
# ❌ Invalid candidate (k >= document count)
# -------------------------------------
def test_select_rejects_candidate_not_below_document_count():
    response = client.post("/api/topic/select", json=select_payload(candidates=[2, 12]))
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_CANDIDATE"


# -------------------------------------
# ❌ Burn-in swallows every sample
# -------------------------------------
def test_select_reports_no_viable_candidate():
    response = client.post(
        "/api/topic/select", json=select_payload(burn_in=40, candidates=[2])
    )
    assert response.status_code == 422
    error = response.json()["error"]
    assert error["code"] == "NO_VIABLE_CANDIDATE"
    assert error["failures"] == {"2": "insufficient_samples"}


# -------------------------------------
# ❌ Nothing to count
# -------------------------------------
def test_select_rejects_empty_corpus():
    response = client.post(
        "/api/topic/select", json=select_payload(documents=[[], []], candidates=[1])
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "EMPTY_CORPUS"


def test_select_requires_candidates():
    response = client.post("/api/topic/select", json=select_payload(candidates=[]))
    assert response.status_code == 422


def test_select_rejects_mismatched_doc_ids():
    response = client.post("/api/topic/select", json=select_payload(doc_ids=["a"]))
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "DOC_IDS_MISMATCH"


# -------------------------------------
# ✅ Final fit + subject heading comparison
# -------------------------------------
def test_fit_returns_topics_and_heading_crosstab():
    docs, headings = corpus()
    response = client.post(
        "/api/topic/fit",
        json={
            "documents": docs,
            "doc_ids": [f"pmid{i}" for i in range(len(docs))],
            "num_topics": 2,
            "iterations": 30,
            "sample_interval": 10,
            "random_seed": 2016,
            "topn_words": 3,
            "headings": headings,
        },
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["num_topics"] == 2
    assert len(data["topics"]) == 2
    assert all(len(t["keywords"].split(", ")) == 3 for t in data["topics"])
    assert data["doc_ids"][0] == "pmid0"
    assert len(data["dominant_topics"]) == 12
    assert len(data["loglikelihoods"]) == 3

    crosstab = data["heading_crosstab"]
    assert set(crosstab) == {"Cardiology", "Genetics", "Humans"}
    assert sum(crosstab["Genetics"].values()) == 6
    assert sum(crosstab["Humans"].values()) == 6


def test_fit_rejects_mismatched_headings():
    docs, headings = corpus()
    response = client.post(
        "/api/topic/fit",
        json={"documents": docs, "num_topics": 2, "headings": headings[:3]},
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "HEADINGS_MISMATCH"


# -------------------------------------
# Probes and headers
# -------------------------------------
def test_health_and_security_headers():
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert response.headers["X-Content-Type-Options"] == "nosniff"


def test_fit_aligns_headings_by_position_when_doc_ids_repeat():
    response = client.post(
        "/api/topic/fit",
        json={
            "documents": [GENETICS * 3, GENETICS * 3, CARDIOLOGY * 3, CARDIOLOGY * 3],
            "doc_ids": ["x", "x", "y", "y"],
            "num_topics": 2,
            "iterations": 30,
            "sample_interval": 10,
            "random_seed": 5,
            "headings": [["Genetics"], ["Genetics"], ["Cardiology"], ["Other"]],
        },
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["doc_ids"] == ["x", "x", "y", "y"]
    crosstab = data["heading_crosstab"]
    assert set(crosstab) == {"Cardiology", "Genetics", "Other"}
    assert sum(crosstab["Genetics"].values()) == 2
    assert sum(crosstab["Cardiology"].values()) == 1
    assert sum(crosstab["Other"].values()) == 1


def test_fit_with_tfidf_cutoff_keeps_headings_on_surviving_documents():
    docs, headings = corpus()
    response = client.post(
        "/api/topic/fit",
        json={
            "documents": docs,
            "num_topics": 2,
            "iterations": 30,
            "sample_interval": 10,
            "tfidf_cutoff": "median",
            "headings": headings,
        },
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["doc_ids"] == list(range(12))
    assert sum(data["heading_crosstab"]["Humans"].values()) == 6


# -------------------------------------
# ❌ Unexpected service failures
# -------------------------------------
def test_select_unexpected_failure_returns_server_error(monkeypatch):
    def broken(*args, **kwargs):
        raise RuntimeError("simulated failure")

    monkeypatch.setattr(TopicSelectionService, "select", broken)
    response = client.post("/api/topic/select", json=select_payload())
    assert response.status_code == 500
    assert response.json()["error"]["code"] == "SELECTION_FAILED"


def test_fit_unexpected_failure_returns_server_error(monkeypatch):
    def broken(*args, **kwargs):
        raise RuntimeError("simulated failure")

    monkeypatch.setattr(TopicSelectionService, "fit", broken)
    docs, _ = corpus()
    response = client.post("/api/topic/fit", json={"documents": docs, "num_topics": 2})
    assert response.status_code == 500
    assert response.json()["error"]["code"] == "MODEL_FIT_FAILED"
