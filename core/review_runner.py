# core/review_runner.py
import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Sequence
from core.consensus import (
    ConsensusSettings,
    calculate_consensus,
    detect_conflicts,
    summarize,
)
from core.entities import Err, ExtractionPayload, Result, ReviewResult, ReviewRun
from core.extraction_steps import FieldSchema
from core.reviewers import ReviewerConfig
import logging
from util.timing import timed

logger = logging.getLogger(__name__)

ExtractFn = Callable[
    [ReviewerConfig, FieldSchema, str], Awaitable[Result[ExtractionPayload]]
]


@dataclass(frozen=True)
class ExtractionTask:
    field_schema: FieldSchema
    target_text: str


async def _run_one(
    reviewer: ReviewerConfig,
    task: ExtractionTask,
    extract: ExtractFn,
    timeout: float,
) -> ReviewResult:
    """
    One reviewer call with its own timeout. Writes only to the result it returns.
    """
    outcome: Result[ExtractionPayload]
    with timed(logger, "review.call", reviewer=reviewer.id) as sw:
        try:
            outcome = await asyncio.wait_for(
                extract(reviewer, task.field_schema, task.target_text), timeout
            )
        except asyncio.TimeoutError:
            outcome = Err(f"Timed out after {timeout:g}s")
        except Exception as e:
            logger.error("review.call.error reviewer=%s", reviewer.id, exc_info=True)
            outcome = Err(str(e) or type(e).__name__)

    if isinstance(outcome, Err):
        logger.warning("review.failed reviewer=%s reason=%s", reviewer.id, outcome.reason)
        return ReviewResult(
            reviewer_id=reviewer.id,
            reviewer_name=reviewer.name,
            processing_time_ms=sw.ms,
            error=outcome.reason,
        )

    payload = outcome.value
    logger.info(
        "review.ok reviewer=%s conf=%.0f ms=%d", reviewer.id, payload.confidence, sw.ms
    )
    return ReviewResult(
        reviewer_id=reviewer.id,
        reviewer_name=reviewer.name,
        data=dict(payload.data),
        confidence=payload.confidence,
        reasoning=payload.reasoning,
        source_text=payload.source_text,
        processing_time_ms=sw.ms,
    )


async def run_reviews(
    task: ExtractionTask,
    reviewers: Sequence[ReviewerConfig],
    extract: ExtractFn,
    settings: ConsensusSettings,
    *,
    timeout: float = 60.0,
) -> ReviewRun:
    """
    Fan the task out to every reviewer at once, wait for all of them to settle,
    then reduce to per-field consensus.

    Results keep the order of `reviewers` (priority order), whatever order the
    calls finish in. Cancelling the run cancels every outstanding call and
    produces no consensus.
    """
    tasks: List[asyncio.Task] = [
        asyncio.create_task(_run_one(r, task, extract, timeout)) for r in reviewers
    ]
    try:
        with timed(logger, "review.run", reviewers=len(tasks)):
            reviews: List[ReviewResult] = list(await asyncio.gather(*tasks))
    except asyncio.CancelledError:
        pending = [t for t in tasks if not t.done()]
        for t in pending:
            t.cancel()
        logger.warning("review.run.cancelled pending=%d", len(pending))
        raise

    consensus = calculate_consensus(reviews, task.field_schema.keys(), settings)
    conflicts = detect_conflicts(consensus)
    summary = summarize(reviews, conflicts)
    logger.info(
        "review.run.summary ok=%d/%d conflicts=%d human=%s",
        summary.successful_reviewers,
        summary.total_reviewers,
        summary.conflicts_detected,
        summary.requires_human_review,
    )
    return ReviewRun(
        reviews=reviews, consensus=consensus, conflicts=conflicts, summary=summary
    )
