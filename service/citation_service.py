# service/citation_service.py
import logging
from typing import Dict, List
from core.chunk_indexer import build_citation_map
from core.citation_finder import suggest_citations
from core.citation_validation import (
    MatchFn,
    apply_validation,
    batch_validate,
    revalidation_recommendations,
    validate_extraction,
)
from core.entities import CitationMap, MatchResult
from model.api import (
    BatchResultOut,
    BatchSummaryOut,
    BatchValidateRequest,
    BatchValidateResponse,
    CitationSuggestion,
    MatchOut,
    RecommendationsRequest,
    RecommendationsResponse,
    SuggestCitationsRequest,
    SuggestCitationsResponse,
    ValidateCitationRequest,
    ValidateCitationResponse,
)
from model.extraction import ExtractionRecord
from repository.document_repository import DocumentRepository
from repository.extraction_repository import ExtractionRepository
from util.enums import ErrorMessage
from util.errors import AppError, CitationError
from util.functions import confidence_badge

logger = logging.getLogger(__name__)


def _match_out(m: MatchResult) -> MatchOut:
    return MatchOut(
        isValid=m.is_valid,
        confidence=m.confidence,
        matchType=m.match_type,
        reasoning=m.reasoning,
        issues=list(m.issues),
    )


class CitationService:
    def __init__(
        self,
        documents: DocumentRepository,
        extractions: ExtractionRepository,
        match: MatchFn,
        *,
        validator_timeout: float = 45.0,
    ) -> None:
        self._documents = documents
        self._extractions = extractions
        self._match = match
        self._timeout = validator_timeout

    async def _citation_map(self, document_id: str) -> CitationMap:
        chunks = await self._documents.get_chunks(document_id)
        if chunks is None:
            raise AppError.of(ErrorMessage.DOCUMENT_NOT_FOUND, document_id)
        return build_citation_map(chunks)

    async def validate_one(self, req: ValidateCitationRequest) -> ValidateCitationResponse:
        """
        Validate one extraction against the chunks it cites and store the
        verdict. A check that could not run is reported as a no-match and
        leaves the stored record untouched.
        """
        record = await self._extractions.get(req.extractionId)
        if record is None:
            raise AppError.of(ErrorMessage.EXTRACTION_NOT_FOUND, req.extractionId)
        if not record.has_citations:
            raise AppError.of(
                ErrorMessage.INVALID_REQUEST, "Extraction has no source citations"
            )
        citation_map = await self._citation_map(record.document_id)

        try:
            result = await validate_extraction(
                record, citation_map, self._match, timeout=self._timeout
            )
        except CitationError as e:
            logger.warning("validate.failed extraction=%s reason=%s", record.id, e)
            result = MatchResult.no_match(f"Validation error: {e}", issues=[str(e)])
            return ValidateCitationResponse(
                extraction=record,
                result=_match_out(result),
                confidenceBadge=confidence_badge(record.confidence_score),
            )

        updated = apply_validation(record, result)
        await self._extractions.put(updated)
        logger.info(
            "validate.ok extraction=%s status=%s conf=%.0f",
            updated.id,
            updated.validation_status,
            result.confidence,
        )
        return ValidateCitationResponse(
            extraction=updated,
            result=_match_out(result),
            confidenceBadge=confidence_badge(updated.confidence_score),
        )

    async def _select(self, req: BatchValidateRequest) -> List[ExtractionRecord]:
        if req.extractionIds:
            return await self._extractions.get_many(req.extractionIds)
        document_id = req.documentId or ""
        if await self._documents.get_chunks(document_id) is None:
            raise AppError.of(ErrorMessage.DOCUMENT_NOT_FOUND, document_id)
        return await self._extractions.for_document(document_id)

    async def validate_batch(self, req: BatchValidateRequest) -> BatchValidateResponse:
        records = await self._select(req)

        citation_maps: Dict[str, CitationMap] = {}
        for doc_id in sorted({r.document_id for r in records if r.has_citations}):
            chunks = await self._documents.get_chunks(doc_id)
            # Missing documents surface per record inside the batch.
            if chunks is not None:
                citation_maps[doc_id] = build_citation_map(chunks)

        report = await batch_validate(
            records,
            citation_maps,
            self._match,
            timeout=self._timeout,
            persist=self._extractions.put,
        )
        return BatchValidateResponse(
            validated=len(report.results),
            results=[BatchResultOut.of(i) for i in report.results],
            summary=BatchSummaryOut.of(report.summary),
        )

    async def suggest(self, req: SuggestCitationsRequest) -> SuggestCitationsResponse:
        chunks = await self._documents.get_chunks(req.documentId)
        if chunks is None:
            raise AppError.of(ErrorMessage.DOCUMENT_NOT_FOUND, req.documentId)
        by_index = {c.chunk_index: c for c in chunks}
        hits = suggest_citations(req.text, chunks, k=req.k)
        return SuggestCitationsResponse(
            suggestions=[
                CitationSuggestion(
                    chunkIndex=idx,
                    score=score,
                    pageNum=by_index[idx].page_num,
                    text=by_index[idx].text,
                )
                for idx, score in hits
            ]
        )

    async def recommendations(self, req: RecommendationsRequest) -> RecommendationsResponse:
        records = await self._extractions.for_document(req.documentId)
        reasons, targeted = revalidation_recommendations(records)
        logger.info(
            "validate.recommend document=%s reasons=%d targeted=%d",
            req.documentId,
            len(reasons),
            len(targeted),
        )
        return RecommendationsResponse(
            shouldRevalidate=bool(reasons),
            reasons=reasons,
            extractionIds=[r.id for r in targeted],
        )
