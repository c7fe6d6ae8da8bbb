# core/reviewers.py
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, TypeAdapter
import logging

logger = logging.getLogger(__name__)


class ReviewerConfig(BaseModel):
    """One independently configured extractor identity."""

    id: str
    name: str
    model: Optional[str] = None  # falls back to the service default model
    system_prompt: Optional[str] = None  # falls back to the default extract prompt
    temperature: float = Field(default=0.0, ge=0.0, le=1.0)
    max_tokens: int = 2000
    priority: int = 100
    enabled: bool = True
    custom_parameters: Dict[str, Any] = Field(default_factory=dict)


_REVIEWER_LIST = TypeAdapter(List[ReviewerConfig])


class ReviewerPool:
    """
    Immutable set of reviewer identities for one run. Built explicitly and passed
    in; nothing here is process-global.
    """

    def __init__(
        self,
        reviewers: List[ReviewerConfig],
        *,
        min_reviewers: int = 1,
        max_reviewers: int = 8,
        default_reviewers: int = 3,
    ) -> None:
        self._reviewers = list(reviewers)
        self.min_reviewers = min_reviewers
        self.max_reviewers = max_reviewers
        self.default_reviewers = default_reviewers

    @classmethod
    def from_json(cls, raw: str, **limits: int) -> "ReviewerPool":
        return cls(_REVIEWER_LIST.validate_json(raw), **limits)

    @property
    def enabled(self) -> List[ReviewerConfig]:
        # sorted() is stable: equal priorities keep their configured order
        return sorted((r for r in self._reviewers if r.enabled), key=lambda r: r.priority)

    def select(self, requested: Optional[int] = None) -> List[ReviewerConfig]:
        """
        First `requested` enabled reviewers by priority. The request is clamped
        to [min_reviewers, max_reviewers] and to what is available.
        """
        active = self.enabled
        want = requested or self.default_reviewers
        want = max(self.min_reviewers, min(self.max_reviewers, want))
        chosen = active[: min(want, len(active))]
        logger.info(
            "reviewers.select requested=%s using=%d available=%d",
            requested,
            len(chosen),
            len(active),
        )
        return chosen
