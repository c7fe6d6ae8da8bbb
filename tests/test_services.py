"""Services over in-memory repositories."""
import asyncio
import pytest
from pydantic import ValidationError
from redis.exceptions import RedisError
import service.document_service as document_service
from core.consensus import ConsensusSettings
from core.entities import ExtractionPayload, MatchResult, Ok
from core.pdf_text import IndexedPdf
from core.reviewers import ReviewerConfig, ReviewerPool
from model.api import (
    BatchValidateRequest,
    RecommendationsRequest,
    RunExtractionRequest,
    ValidateCitationRequest,
)
from service.citation_service import CitationService
from service.document_service import DocumentService
from service.extraction_service import ExtractionService, clip_lines, target_chunks
from util.errors import AppError
from helpers import (
    FakeConsensus,
    FakeDocuments,
    FakeExtractions,
    FakeReviews,
    chunk,
    record,
)

SETTINGS = ConsensusSettings(threshold_even=0.80, threshold_odd=0.75)

DOC = [
    chunk(0, "A trial of something.", section="title"),
    chunk(1, "Methods", section="methods"),
    chunk(2, "We enrolled 120 patients.", section="methods"),
    chunk(3, "Results", page=2, section="results"),
    chunk(4, "Mortality was 12%.", page=2, section="results"),
]


class _Upload:
    def __init__(self, data: bytes) -> None:
        self._data = data

    async def read(self, size: int = -1) -> bytes:
        return self._data

    async def seek(self, offset: int) -> None:
        return None


def _status(exc_info) -> int:
    return exc_info.value.status_code


# documents


def test_upload_stores_indexed_chunks(monkeypatch):
    monkeypatch.setattr(
        document_service, "index_pdf", lambda data: IndexedPdf(page_count=2, chunks=DOC)
    )
    docs = FakeDocuments()
    out = asyncio.run(DocumentService(docs).create_document(_Upload(b"%PDF"), "doc-9"))
    assert out.documentId == "doc-9"
    assert (out.pageCount, out.chunkCount) == (2, 5)
    assert docs.docs["doc-9"] == DOC


def test_upload_rejects_unreadable_pdf(monkeypatch):
    monkeypatch.setattr(
        document_service, "index_pdf", lambda data: IndexedPdf(page_count=0, chunks=[])
    )
    with pytest.raises(AppError) as e:
        asyncio.run(DocumentService(FakeDocuments()).create_document(_Upload(b"junk")))
    assert _status(e) == 422


def test_upload_storage_failure_is_502(monkeypatch):
    monkeypatch.setattr(
        document_service, "index_pdf", lambda data: IndexedPdf(page_count=1, chunks=DOC)
    )

    class _Down(FakeDocuments):
        async def put_chunks(self, document_id, chunks):
            raise RedisError("connection refused")

    with pytest.raises(AppError) as e:
        asyncio.run(DocumentService(_Down()).create_document(_Upload(b"%PDF")))
    assert _status(e) == 502


def test_citable_document_by_section():
    svc = DocumentService(FakeDocuments({"doc-1": DOC}))
    out = asyncio.run(svc.citable("doc-1", "results"))
    assert out.text == "[3] Results\n[4] Mortality was 12%."
    assert out.chunkCount == 2
    with pytest.raises(AppError) as e:
        asyncio.run(svc.citable("nope"))
    assert _status(e) == 404


# extraction


def test_target_chunks_falls_back_to_whole_document():
    assert [c.chunk_index for c in target_chunks(DOC, ["methods"])] == [1, 2]
    assert target_chunks(DOC, ["discussion"]) == DOC


def test_clip_lines_keeps_whole_lines():
    text = "[0] aaaa\n[1] bbbb\n[2] cccc"
    assert clip_lines(text, 100) == text
    assert clip_lines(text, 19) == "[0] aaaa\n[1] bbbb"
    assert clip_lines(text, 3) == "[0] aaaa"


def _pool(enabled=True):
    return ReviewerPool(
        [
            ReviewerConfig(id=f"r{i}", name=f"R{i}", priority=i, enabled=enabled)
            for i in range(3)
        ],
        min_reviewers=2,
        max_reviewers=8,
        default_reviewers=3,
    )


def _extraction_service(pool, extract, documents=None):
    repos = {
        "documents": documents or FakeDocuments({"doc-1": DOC}),
        "extractions": FakeExtractions(),
        "consensus": FakeConsensus(),
        "reviews": FakeReviews(),
    }
    svc = ExtractionService(
        **repos,
        pool=pool,
        consensus_settings=SETTINGS,
        extract=extract,
        reviewer_timeout=5,
        max_target_chars=8000,
    )
    return svc, repos


def test_run_extraction_end_to_end():
    seen_text = []

    async def extract(reviewer, schema, text):
        seen_text.append(text)
        data = {name: None for name in schema}
        data["totalN"] = 120
        return Ok(
            ExtractionPayload(
                data=data, confidence=90.0, reasoning="methods", source_text="[2]"
            )
        )

    svc, repos = _extraction_service(_pool(), extract)
    out = asyncio.run(
        svc.run(RunExtractionRequest(documentId="doc-1", stepNumber=3, extractionId="ex-1"))
    )
    assert out.extractionId == "ex-1"
    assert out.summary.successfulReviewers == 3
    assert out.consensus["totalN"].agreementLevel == 100.0
    assert out.consensus["ageMean"].value is None
    assert out.conflicts == []

    assert "[2] We enrolled 120 patients." in seen_text[0]
    assert "[4]" not in seen_text[0]

    (rec,) = out.extractions
    assert rec.id == "ex-1:totalN"
    assert rec.source_citations.chunk_indices == [2]
    assert repos["extractions"].records["ex-1:totalN"] == rec
    assert set(repos["consensus"].rows["ex-1"]) == set(out.consensus)
    assert [r.reviewer_id for r in repos["reviews"].rows["ex-1"]] == ["r0", "r1", "r2"]


def test_rerun_replaces_records_of_the_extraction():
    totals = iter([120, None])

    async def extract(reviewer, schema, text):
        data = {name: None for name in schema}
        data["totalN"] = current
        return Ok(
            ExtractionPayload(data=data, confidence=90.0, reasoning="", source_text="[2]")
        )

    svc, repos = _extraction_service(_pool(), extract)
    req = RunExtractionRequest(documentId="doc-1", stepNumber=3, extractionId="ex-1")

    current = next(totals)
    asyncio.run(svc.run(req))
    assert "ex-1:totalN" in repos["extractions"].records

    current = next(totals)
    out = asyncio.run(svc.run(req))
    assert out.consensus["totalN"].value is None
    assert out.extractions == []
    assert "ex-1:totalN" not in repos["extractions"].records

    citations = CitationService(
        repos["documents"], repos["extractions"], _exact, validator_timeout=5
    )
    batch = asyncio.run(citations.validate_batch(BatchValidateRequest(documentId="doc-1")))
    assert batch.validated == 0


def test_run_extraction_requires_document_and_reviewers():
    async def extract(reviewer, schema, text):
        raise AssertionError("not called")

    svc, _ = _extraction_service(_pool(), extract)
    with pytest.raises(AppError) as e:
        asyncio.run(svc.run(RunExtractionRequest(documentId="missing")))
    assert _status(e) == 404

    svc, _ = _extraction_service(_pool(enabled=False), extract)
    with pytest.raises(AppError) as e:
        asyncio.run(svc.run(RunExtractionRequest(documentId="doc-1")))
    assert _status(e) == 400


def test_oversized_reviewer_request_is_clamped_by_pool():
    async def extract(reviewer, schema, text):
        data = {name: None for name in schema}
        return Ok(ExtractionPayload(data=data, confidence=80.0, reasoning="", source_text=""))

    svc, repos = _extraction_service(_pool(), extract)
    out = asyncio.run(svc.run(RunExtractionRequest(documentId="doc-1", numReviewers=20)))
    assert out.summary.totalReviewers == 3
    assert len(repos["reviews"].rows[out.extractionId]) == 3

    with pytest.raises(ValidationError):
        RunExtractionRequest(documentId="doc-1", numReviewers=0)


# citations


def _citation_service(records, match):
    docs = FakeDocuments({"doc-1": DOC})
    extractions = FakeExtractions(records)
    return CitationService(docs, extractions, match, validator_timeout=5), extractions


async def _exact(extracted, source, field):
    return Ok(MatchResult(is_valid=True, confidence=92.0, match_type="exact", reasoning="ok"))


def test_validate_one_persists_verdict():
    svc, store = _citation_service([record("e1", [2])], _exact)
    out = asyncio.run(svc.validate_one(ValidateCitationRequest(extractionId="e1")))
    assert out.result.isValid
    assert out.extraction.validation_status == "validated"
    assert out.extraction.confidence_score == pytest.approx(0.92)
    assert out.confidenceBadge == "High"
    assert store.records["e1"].source_citations.validated is True


def test_validate_one_error_paths():
    svc, store = _citation_service(
        [record("bare", []), record("gone", [42])], _exact
    )
    with pytest.raises(AppError) as e:
        asyncio.run(svc.validate_one(ValidateCitationRequest(extractionId="missing")))
    assert _status(e) == 404
    with pytest.raises(AppError) as e:
        asyncio.run(svc.validate_one(ValidateCitationRequest(extractionId="bare")))
    assert _status(e) == 400

    out = asyncio.run(svc.validate_one(ValidateCitationRequest(extractionId="gone")))
    assert out.result.matchType == "no-match"
    assert out.result.issues
    assert store.writes == []


def test_validate_batch_by_document_and_by_ids():
    records = [record("e2", [4], text="12%"), record("e1", [2]), record("e3", [])]
    svc, store = _citation_service(records, _exact)

    out = asyncio.run(svc.validate_batch(BatchValidateRequest(documentId="doc-1")))
    assert out.validated == 2
    assert [r.extraction_id for r in out.results] == ["e1", "e2"]
    assert out.summary.total == 2 and out.summary.valid == 2
    assert sorted(r.id for r in store.writes) == ["e1", "e2"]

    out = asyncio.run(svc.validate_batch(BatchValidateRequest(extractionIds=["e2", "nope"])))
    assert out.validated == 1

    with pytest.raises(AppError) as e:
        asyncio.run(svc.validate_batch(BatchValidateRequest(documentId="missing")))
    assert _status(e) == 404


def test_batch_request_needs_a_selector():
    with pytest.raises(ValidationError):
        BatchValidateRequest()


def test_recommendations_for_document():
    records = [record("e1", [2]), record("e2", [4], validated=True, confidence_score=0.95)]
    svc, _ = _citation_service(records, _exact)
    out = asyncio.run(svc.recommendations(RecommendationsRequest(documentId="doc-1")))
    assert out.shouldRevalidate
    assert out.extractionIds == ["e1"]
