# service/extraction_service.py
import logging
from typing import List
from uuid import uuid4
from core.chunk_indexer import build_citation_map, create_citable_document
from core.consensus import ConsensusSettings
from core.entities import TextChunk
from core.extraction_steps import schema_for_step, sections_for_step
from core.provenance import record_id, records_from_run
from core.review_runner import ExtractFn, ExtractionTask, run_reviews
from core.reviewers import ReviewerPool
from model.api import RunExtractionRequest, RunExtractionResponse
from model.consensus import ConsensusRow, ReviewRow
from repository.consensus_repository import ConsensusRepository, ReviewRepository
from repository.document_repository import DocumentRepository
from repository.extraction_repository import ExtractionRepository
from util.enums import ErrorMessage
from util.errors import AppError

logger = logging.getLogger(__name__)


def target_chunks(chunks: List[TextChunk], sections: List[str]) -> List[TextChunk]:
    """
    Chunks of the sections a step reads from; the whole document when none of
    those sections were detected.
    """
    wanted = set(sections)
    picked = [c for c in chunks if c.section_name in wanted]
    return picked or list(chunks)


def clip_lines(text: str, max_chars: int) -> str:
    """Keep whole lines of a citable document up to `max_chars`."""
    if len(text) <= max_chars:
        return text
    kept: List[str] = []
    size = 0
    for line in text.split("\n"):
        if size + len(line) + 1 > max_chars and kept:
            break
        kept.append(line)
        size += len(line) + 1
    return "\n".join(kept)


class ExtractionService:
    def __init__(
        self,
        *,
        documents: DocumentRepository,
        extractions: ExtractionRepository,
        consensus: ConsensusRepository,
        reviews: ReviewRepository,
        pool: ReviewerPool,
        consensus_settings: ConsensusSettings,
        extract: ExtractFn,
        reviewer_timeout: float,
        max_target_chars: int,
    ) -> None:
        self._documents = documents
        self._extractions = extractions
        self._consensus = consensus
        self._reviews = reviews
        self._pool = pool
        self._consensus_settings = consensus_settings
        self._extract = extract
        self._reviewer_timeout = reviewer_timeout
        self._max_target_chars = max_target_chars

    async def run(self, req: RunExtractionRequest) -> RunExtractionResponse:
        """
        Multi-reviewer extraction for one form step:
          1) pick reviewers by priority
          2) render the step's sections as a citable document
          3) fan out, reduce to consensus, classify conflicts
          4) persist reviews, consensus rows and pending extraction records
        """
        chunks = await self._documents.get_chunks(req.documentId)
        if chunks is None:
            raise AppError.of(ErrorMessage.DOCUMENT_NOT_FOUND, req.documentId)

        reviewers = self._pool.select(req.numReviewers)
        if not reviewers:
            raise AppError.of(ErrorMessage.NO_REVIEWERS)

        extraction_id = req.extractionId or str(uuid4())
        schema = schema_for_step(req.stepNumber)
        relevant = target_chunks(chunks, sections_for_step(req.stepNumber))
        target_text = clip_lines(create_citable_document(relevant), self._max_target_chars)
        logger.info(
            "extract.start extraction=%s step=%d reviewers=%d chunks=%d",
            extraction_id,
            req.stepNumber,
            len(reviewers),
            len(relevant),
        )

        run = await run_reviews(
            ExtractionTask(field_schema=schema, target_text=target_text),
            reviewers,
            self._extract,
            self._consensus_settings,
            timeout=self._reviewer_timeout,
        )

        records = records_from_run(
            document_id=req.documentId,
            extraction_id=extraction_id,
            run=run,
            citation_map=build_citation_map(chunks),
        )
        await self._reviews.replace(
            extraction_id, [ReviewRow.from_result(extraction_id, r) for r in run.reviews]
        )
        await self._consensus.upsert(
            extraction_id,
            [ConsensusRow.from_record(extraction_id, c) for c in run.consensus.values()],
        )
        # Fields that lost their value on this run drop their old record.
        kept = {r.id for r in records}
        stale = [
            rid for rid in (record_id(extraction_id, name) for name in schema) if rid not in kept
        ]
        await self._extractions.delete_many(req.documentId, stale)
        for record in records:
            await self._extractions.put(record)

        logger.info(
            "extract.ok extraction=%s ok=%d/%d records=%d",
            extraction_id,
            run.summary.successful_reviewers,
            run.summary.total_reviewers,
            len(records),
        )
        return RunExtractionResponse.of(extraction_id, run, records)
