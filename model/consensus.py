# model/consensus.py
from typing import Any, List, Optional
from pydantic import BaseModel
from core.entities import ConsensusRecord, ReviewResult
from util.types import ConflictType, Parity


class ConsensusRow(BaseModel):
    """Persisted consensus, one per (extraction_id, field_name)."""

    extraction_id: str
    field_name: str
    consensus_value: Any = None
    agreement_level: float
    agreeing_reviewers: int
    total_reviewers: int
    conflict_detected: bool
    conflict_types: List[ConflictType] = []
    requires_human_review: bool
    threshold: float
    reviewer_parity: Parity
    conflict_reason: Optional[str] = None

    @classmethod
    def from_record(cls, extraction_id: str, record: ConsensusRecord) -> "ConsensusRow":
        return cls(
            extraction_id=extraction_id,
            field_name=record.field_name,
            consensus_value=record.value,
            agreement_level=record.agreement_level,
            agreeing_reviewers=record.agreeing_count,
            total_reviewers=record.total_count,
            conflict_detected=record.has_conflict,
            conflict_types=list(record.conflict_types),
            requires_human_review=record.requires_human_review,
            threshold=record.threshold,
            reviewer_parity=record.reviewer_parity,
            conflict_reason=record.conflict_reason,
        )


class ReviewRow(BaseModel):
    """Persisted answer of one reviewer for one run."""

    extraction_id: str
    reviewer_id: str
    reviewer_name: str
    extracted_value: Optional[dict] = None
    confidence_score: float = 0.0
    reasoning: str = ""
    source_text: str = ""
    processing_time_ms: int = 0
    error: Optional[str] = None

    @classmethod
    def from_result(cls, extraction_id: str, review: ReviewResult) -> "ReviewRow":
        return cls(
            extraction_id=extraction_id,
            reviewer_id=review.reviewer_id,
            reviewer_name=review.reviewer_name,
            extracted_value=review.data,
            confidence_score=review.confidence,
            reasoning=review.reasoning,
            source_text=review.source_text,
            processing_time_ms=review.processing_time_ms,
            error=review.error,
        )
