# model/api.py
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, model_validator
from core.citation_validation import BatchItem, BatchSummary
from core.entities import ConflictRecord, ConsensusRecord, ReviewResult, ReviewRun
from model.extraction import ExtractionRecord
from util.types import ConflictType, MatchType, Parity, Severity


class UploadDocumentResponse(BaseModel):
    documentId: str
    pageCount: int
    chunkCount: int


class CitableDocumentResponse(BaseModel):
    documentId: str
    section: Optional[str] = None
    chunkCount: int
    text: str


class RunExtractionRequest(BaseModel):
    documentId: str = Field(min_length=1)
    stepNumber: int = Field(default=1, ge=1)
    extractionId: Optional[str] = None
    numReviewers: Optional[int] = Field(default=None, ge=1)


class ReviewOut(BaseModel):
    reviewerId: str
    reviewerName: str
    data: Optional[Dict[str, Any]] = None
    confidence: float
    reasoning: str = ""
    sourceText: str = ""
    processingTime: int
    error: Optional[str] = None

    @classmethod
    def of(cls, r: ReviewResult) -> "ReviewOut":
        return cls(
            reviewerId=r.reviewer_id,
            reviewerName=r.reviewer_name,
            data=r.data,
            confidence=r.confidence,
            reasoning=r.reasoning,
            sourceText=r.source_text,
            processingTime=r.processing_time_ms,
            error=r.error,
        )


class ConsensusOut(BaseModel):
    value: Any = None
    agreementLevel: float
    agreeingCount: int
    totalCount: int
    hasConflict: bool
    conflictTypes: List[ConflictType] = []
    requiresHumanReview: bool
    threshold: float
    reviewerParity: Parity
    conflictReason: Optional[str] = None
    allValues: List[Any] = []
    confidences: List[float] = []

    @classmethod
    def of(cls, c: ConsensusRecord) -> "ConsensusOut":
        return cls(
            value=c.value,
            agreementLevel=c.agreement_level,
            agreeingCount=c.agreeing_count,
            totalCount=c.total_count,
            hasConflict=c.has_conflict,
            conflictTypes=list(c.conflict_types),
            requiresHumanReview=c.requires_human_review,
            threshold=c.threshold,
            reviewerParity=c.reviewer_parity,
            conflictReason=c.conflict_reason,
            allValues=list(c.all_values),
            confidences=list(c.confidences),
        )


class ConflictOut(BaseModel):
    fieldName: str
    conflictTypes: List[ConflictType]
    severity: Severity
    agreementLevel: float
    values: List[Any]
    requiresHumanReview: bool

    @classmethod
    def of(cls, c: ConflictRecord) -> "ConflictOut":
        return cls(
            fieldName=c.field_name,
            conflictTypes=list(c.conflict_types),
            severity=c.severity,
            agreementLevel=c.agreement_level,
            values=list(c.values),
            requiresHumanReview=c.requires_human_review,
        )


class RunSummaryOut(BaseModel):
    totalReviewers: int
    successfulReviewers: int
    averageConfidence: float
    conflictsDetected: int
    requiresHumanReview: bool


class RunExtractionResponse(BaseModel):
    success: bool = True
    extractionId: str
    reviews: List[ReviewOut]
    consensus: Dict[str, ConsensusOut]
    conflicts: List[ConflictOut]
    summary: RunSummaryOut
    extractions: List[ExtractionRecord] = []

    @classmethod
    def of(
        cls, extraction_id: str, run: ReviewRun, records: List[ExtractionRecord]
    ) -> "RunExtractionResponse":
        s = run.summary
        return cls(
            extractionId=extraction_id,
            reviews=[ReviewOut.of(r) for r in run.reviews],
            consensus={k: ConsensusOut.of(v) for k, v in run.consensus.items()},
            conflicts=[ConflictOut.of(c) for c in run.conflicts],
            summary=RunSummaryOut(
                totalReviewers=s.total_reviewers,
                successfulReviewers=s.successful_reviewers,
                averageConfidence=s.average_confidence,
                conflictsDetected=s.conflicts_detected,
                requiresHumanReview=s.requires_human_review,
            ),
            extractions=records,
        )


class ValidateCitationRequest(BaseModel):
    extractionId: str = Field(min_length=1)


class MatchOut(BaseModel):
    isValid: bool
    confidence: float
    matchType: MatchType
    reasoning: str
    issues: List[str] = []


class ValidateCitationResponse(BaseModel):
    extraction: ExtractionRecord
    result: MatchOut
    confidenceBadge: str


class BatchValidateRequest(BaseModel):
    documentId: Optional[str] = None
    extractionIds: Optional[List[str]] = None

    @model_validator(mode="after")
    def _one_selector(self) -> "BatchValidateRequest":
        if not self.extractionIds and not self.documentId:
            raise ValueError("Must provide either documentId or extractionIds")
        return self


class BatchResultOut(BaseModel):
    extraction_id: str
    field_name: str
    isValid: bool
    confidence: float
    matchType: MatchType
    reasoning: str
    issues: List[str] = []

    @classmethod
    def of(cls, item: BatchItem) -> "BatchResultOut":
        r = item.result
        return cls(
            extraction_id=item.extraction_id,
            field_name=item.field_name,
            isValid=r.is_valid,
            confidence=r.confidence,
            matchType=r.match_type,
            reasoning=r.reasoning,
            issues=list(r.issues),
        )


class BatchSummaryOut(BaseModel):
    total: int
    valid: int
    questionable: int
    invalid: int
    avgConfidence: float

    @classmethod
    def of(cls, s: BatchSummary) -> "BatchSummaryOut":
        return cls(
            total=s.total,
            valid=s.valid,
            questionable=s.questionable,
            invalid=s.invalid,
            avgConfidence=s.avg_confidence,
        )


class BatchValidateResponse(BaseModel):
    success: bool = True
    validated: int
    results: List[BatchResultOut]
    summary: BatchSummaryOut


class SuggestCitationsRequest(BaseModel):
    documentId: str = Field(min_length=1)
    text: str = Field(min_length=1, max_length=10000)
    k: int = Field(default=3, ge=1, le=20)


class CitationSuggestion(BaseModel):
    chunkIndex: int
    score: float
    pageNum: int
    text: str


class SuggestCitationsResponse(BaseModel):
    suggestions: List[CitationSuggestion]


class RecommendationsRequest(BaseModel):
    documentId: str = Field(min_length=1)


class RecommendationsResponse(BaseModel):
    shouldRevalidate: bool
    reasons: List[str]
    extractionIds: List[str]
