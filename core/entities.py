# core/entities.py
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Optional, Sequence, TypeVar, Union
import numpy as np
from util.types import ConflictType, MatchType, Parity, Severity

T = TypeVar("T")

# Closed value type reviewers may return for a field.
FieldValue = Union[str, int, float, bool, None, List[Any], Dict[str, Any]]


@dataclass(frozen=True)
class BBox:
    """Top-down page rectangle (origin top-left), PDF points."""

    x: float
    y: float
    width: float
    height: float

    @classmethod
    def empty(cls) -> "BBox":
        return cls(0.0, 0.0, 0.0, 0.0)


@dataclass(frozen=True)
class TextFragment:
    """
    One positioned run of text as a PDF text layer reports it.

    transform is the 6-element text matrix [a, b, c, d, tx, ty] in PDF user
    space (origin bottom-left). Geometry may be missing on malformed input.
    """

    text: str
    transform: Optional[Sequence[float]] = None
    width: Optional[float] = None
    height: Optional[float] = None
    font_name: str = ""


@dataclass(frozen=True)
class TextChunk:
    chunk_index: int
    text: str
    page_num: int  # 1-based
    bbox: BBox
    font_name: str
    font_size: float
    is_heading: bool
    is_bold: bool
    char_start: int
    char_end: int
    confidence: float = 1.0
    section_name: Optional[str] = None


@dataclass(frozen=True)
class CitationEntry:
    text: str
    page_num: int
    bbox: BBox
    confidence: float


CitationMap = Dict[int, CitationEntry]


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    reason: str


Result = Union[Ok[T], Err]


@dataclass(frozen=True)
class ExtractionPayload:
    """Parsed answer of the extraction capability for one reviewer."""

    data: Dict[str, FieldValue]
    confidence: float  # 0-100
    reasoning: str = ""
    source_text: str = ""


@dataclass(frozen=True)
class MatchResult:
    """Semantic-match capability answer, already normalized."""

    is_valid: bool
    confidence: float  # 0-100
    match_type: MatchType
    reasoning: str
    issues: List[str] = field(default_factory=list)

    @classmethod
    def no_match(cls, reason: str, issues: Optional[List[str]] = None) -> "MatchResult":
        return cls(
            is_valid=False,
            confidence=0.0,
            match_type="no-match",
            reasoning=reason,
            issues=list(issues or []),
        )


@dataclass
class ReviewResult:
    reviewer_id: str
    reviewer_name: str
    data: Optional[Dict[str, FieldValue]] = None
    confidence: float = 0.0
    reasoning: str = ""
    source_text: str = ""
    processing_time_ms: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class ConsensusRecord:
    field_name: str
    value: FieldValue
    agreement_level: float
    agreeing_count: int
    total_count: int
    has_conflict: bool
    requires_human_review: bool
    threshold: float  # percent, 0-100
    reviewer_parity: Parity
    conflict_reason: Optional[str] = None
    conflict_types: List[ConflictType] = field(default_factory=list)
    all_values: List[FieldValue] = field(default_factory=list)
    confidences: List[float] = field(default_factory=list)


@dataclass(frozen=True)
class ConflictRecord:
    field_name: str
    conflict_types: List[ConflictType]
    severity: Severity
    agreement_level: float
    values: List[FieldValue]
    requires_human_review: bool


@dataclass(frozen=True)
class RunSummary:
    total_reviewers: int
    successful_reviewers: int
    average_confidence: float
    conflicts_detected: int
    requires_human_review: bool


@dataclass(frozen=True)
class ReviewRun:
    reviews: List[ReviewResult]
    consensus: Dict[str, ConsensusRecord]
    conflicts: List[ConflictRecord]
    summary: RunSummary


@dataclass
class EmbeddingIndex:
    """
    L2-normalized embedding matrix for cosine similarity search.
    """

    embeddings: np.ndarray  # (n, d) float32
