# core/citation_validation.py
import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Iterable, List, Literal, Mapping, Optional, Sequence
from core.entities import CitationMap, Err, MatchResult, Result
from model.extraction import CitationValidation, ExtractionRecord
import logging
from util.errors import CitationError
from util.timing import timed
from util.types import ValidationStatus

logger = logging.getLogger(__name__)

# (extracted_text, source_text, field_context) -> classifier verdict
MatchFn = Callable[[str, str, str], Awaitable[Result[MatchResult]]]
PersistFn = Callable[[ExtractionRecord], Awaitable[None]]

Bucket = Literal["valid", "questionable", "invalid"]

LOW_CONFIDENCE_SCORE = 0.6


@dataclass(frozen=True)
class BatchItem:
    extraction_id: str
    field_name: str
    result: MatchResult


@dataclass(frozen=True)
class BatchSummary:
    total: int
    valid: int
    questionable: int
    invalid: int
    avg_confidence: float


@dataclass
class BatchReport:
    results: List[BatchItem] = field(default_factory=list)
    updated: List[ExtractionRecord] = field(default_factory=list)

    @property
    def summary(self) -> BatchSummary:
        return summarize_batch(self.results)


def reconstruct_source_text(chunk_indices: Iterable[int], citation_map: CitationMap) -> str:
    """
    Cited text in reading order: chunks sorted by index, not by citation order.
    """
    wanted = sorted(set(chunk_indices))
    missing = [i for i in wanted if i not in citation_map]
    if missing:
        raise CitationError(f"Cited chunks not found: {missing}")
    return " ".join(citation_map[i].text for i in wanted)


def validation_status(match: MatchResult) -> ValidationStatus:
    if match.is_valid:
        return "validated"
    if match.confidence > 50:
        return "questionable"
    return "pending"


def bucket(match: MatchResult) -> Bucket:
    if match.is_valid:
        return "valid"
    if match.confidence > 50:
        return "questionable"
    return "invalid"


def apply_validation(record: ExtractionRecord, match: MatchResult) -> ExtractionRecord:
    """
    New record carrying the verdict. confidence_score (0-1) and the citation's
    confidence (0-100) are written together from the same number.
    """
    citation = record.source_citations
    if citation is None:
        raise CitationError(f"Extraction {record.id} has no citation")
    new_citation = citation.model_copy(
        update={
            "confidence": match.confidence,
            "validated": True,
            "validation_result": CitationValidation(
                isValid=match.is_valid,
                matchType=match.match_type,
                reasoning=match.reasoning,
                issues=list(match.issues),
            ),
        }
    )
    return record.model_copy(
        update={
            "source_citations": new_citation,
            "confidence_score": match.confidence / 100,
            "validation_status": validation_status(match),
        }
    )


async def validate_extraction(
    record: ExtractionRecord,
    citation_map: CitationMap,
    match: MatchFn,
    *,
    timeout: float = 45.0,
) -> MatchResult:
    """
    Check that the chunks an extraction cites actually support its value.
    Raises CitationError when the check could not be carried out.
    """
    if not record.has_citations:
        raise CitationError(f"Extraction {record.id} has no chunk indices")
    source_text = reconstruct_source_text(
        record.source_citations.chunk_indices, citation_map  # type: ignore[union-attr]
    )
    try:
        outcome = await asyncio.wait_for(
            match(record.text, source_text, record.field_name), timeout
        )
    except asyncio.TimeoutError as e:
        raise CitationError(f"Validator timed out after {timeout:g}s") from e
    if isinstance(outcome, Err):
        raise CitationError(outcome.reason)
    return outcome.value


def summarize_batch(results: Sequence[BatchItem]) -> BatchSummary:
    counts = {"valid": 0, "questionable": 0, "invalid": 0}
    for item in results:
        counts[bucket(item.result)] += 1
    total = len(results)
    avg = sum(i.result.confidence for i in results) / total if total else 0.0
    return BatchSummary(
        total=total,
        valid=counts["valid"],
        questionable=counts["questionable"],
        invalid=counts["invalid"],
        avg_confidence=avg,
    )


async def batch_validate(
    records: Sequence[ExtractionRecord],
    citation_maps: Mapping[str, CitationMap],
    match: MatchFn,
    *,
    timeout: float = 45.0,
    persist: Optional[PersistFn] = None,
) -> BatchReport:
    """
    Validate every cited extraction one after another, in extraction-id order.

    Records without chunk indices are skipped and do not appear in the report.
    A failure on one record becomes a no-match entry carrying the error in
    `issues`; the loop always continues.
    """
    eligible = sorted((r for r in records if r.has_citations), key=lambda r: r.id)
    skipped = len(records) - len(eligible)
    report = BatchReport()
    logger.info("validate.batch.start eligible=%d skipped=%d", len(eligible), skipped)

    with timed(logger, "validate.batch", n=len(eligible)):
        for record in eligible:
            try:
                citation_map = citation_maps.get(record.document_id)
                if citation_map is None:
                    raise CitationError(f"No chunks for document {record.document_id}")
                result = await validate_extraction(
                    record, citation_map, match, timeout=timeout
                )
                updated = apply_validation(record, result)
                if persist is not None:
                    await persist(updated)
                report.updated.append(updated)
                logger.info(
                    "validate.ok extraction=%s conf=%.0f match=%s",
                    record.id,
                    result.confidence,
                    result.match_type,
                )
            except CitationError as e:
                logger.warning("validate.failed extraction=%s reason=%s", record.id, e)
                result = MatchResult.no_match(f"Validation error: {e}", issues=[str(e)])
            except Exception as e:
                logger.error("validate.error extraction=%s", record.id, exc_info=True)
                reason = str(e) or type(e).__name__
                result = MatchResult.no_match(f"Validation error: {reason}", issues=[reason])
            report.results.append(BatchItem(record.id, record.field_name, result))

    summary = report.summary
    logger.info(
        "validate.batch.summary total=%d valid=%d questionable=%d invalid=%d",
        summary.total,
        summary.valid,
        summary.questionable,
        summary.invalid,
    )
    return report


def revalidation_recommendations(
    records: Sequence[ExtractionRecord],
) -> tuple[List[str], List[ExtractionRecord]]:
    """
    Reasons to re-run validation and the records they target (each once):
    unvalidated citations, validated but low confidence, or open issues.
    """
    cited = [r for r in records if r.has_citations]
    unvalidated = [r for r in cited if not r.source_citations.validated]  # type: ignore[union-attr]
    low = [
        r
        for r in cited
        if r.source_citations.validated  # type: ignore[union-attr]
        and r.confidence_score < LOW_CONFIDENCE_SCORE
    ]
    with_issues = [
        r
        for r in cited
        if r.source_citations.validation_result is not None  # type: ignore[union-attr]
        and r.source_citations.validation_result.issues  # type: ignore[union-attr]
    ]

    reasons: List[str] = []
    if unvalidated:
        reasons.append(f"{len(unvalidated)} extractions have unvalidated citations")
    if low:
        reasons.append(f"{len(low)} extractions have low confidence scores")
    if with_issues:
        reasons.append(f"{len(with_issues)} extractions have validation issues")

    seen: set[str] = set()
    targeted: List[ExtractionRecord] = []
    for r in unvalidated + low + with_issues:
        if r.id not in seen:
            seen.add(r.id)
            targeted.append(r)
    return reasons, targeted
