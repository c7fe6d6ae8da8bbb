# model/extraction.py
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator
from util.types import MatchType, ValidationStatus


class CitationValidation(BaseModel):
    isValid: bool
    matchType: MatchType
    reasoning: str
    issues: List[str] = Field(default_factory=list)


class SourceCitation(BaseModel):
    chunk_indices: List[int] = Field(default_factory=list)
    confidence: float = Field(default=0.0, ge=0.0, le=100.0)  # 0-100
    validated: bool = False
    validation_result: Optional[CitationValidation] = None

    @field_validator("chunk_indices")
    @classmethod
    def _ordered_set(cls, v: List[int]) -> List[int]:
        # Keep first occurrence order, drop repeats.
        seen: set[int] = set()
        out: List[int] = []
        for idx in v:
            if idx < 0:
                raise ValueError("chunk indices must be non-negative")
            if idx not in seen:
                seen.add(idx)
                out.append(idx)
        return out


class ExtractionRecord(BaseModel):
    """One extracted field as the surrounding store persists it."""

    id: str
    document_id: str
    field_name: str
    text: str
    page: Optional[int] = None
    method: str = "ai"
    source_citations: Optional[SourceCitation] = None
    confidence_score: float = Field(default=0.0, ge=0.0, le=1.0)  # 0-1
    validation_status: ValidationStatus = "pending"

    @property
    def has_citations(self) -> bool:
        return bool(self.source_citations and self.source_citations.chunk_indices)
