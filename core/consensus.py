# core/consensus.py
import math
from dataclasses import dataclass
from typing import Any, Dict, Hashable, Iterable, List, Sequence, Tuple
from core.entities import (
    ConflictRecord,
    ConsensusRecord,
    FieldValue,
    ReviewResult,
    RunSummary,
)
from util.constants import (
    CONFIDENCE_VARIANCE_LIMIT,
    HIGH_AGREEMENT_LEVEL,
    MAX_DISTINCT_VALUES,
    SPLIT_VOTE_LEVEL,
)
from util.types import ConflictType, Parity, Severity
import logging

logger = logging.getLogger(__name__)

_SEVERITY_RANK: Dict[str, int] = {"low": 0, "medium": 1, "high": 2}


@dataclass(frozen=True)
class ConsensusSettings:
    """
    Agreement-ratio cut-offs (0-1). Even reviewer counts get their own cut-off
    because an even split cannot be broken by majority.
    """

    threshold_even: float
    threshold_odd: float

    def threshold_for(self, reviewer_count: int) -> Tuple[float, Parity]:
        if reviewer_count % 2 == 0:
            return self.threshold_even, "even"
        return self.threshold_odd, "odd"


def vote_key(value: Any) -> Hashable:
    """
    Structural identity of a reviewer answer. Numbers compare by value
    (35 == 35.0), booleans stay distinct from numbers, lists compare element-wise
    in order and mappings compare by sorted items.
    """
    if value is None:
        return ("null",)
    if isinstance(value, bool):
        return ("bool", value)
    if isinstance(value, (int, float)):
        num = float(value)
        return ("num", num) if math.isfinite(num) else ("num", repr(num))
    if isinstance(value, str):
        return ("str", value)
    if isinstance(value, (list, tuple)):
        return ("list", tuple(vote_key(v) for v in value))
    if isinstance(value, dict):
        return ("map", tuple(sorted((str(k), vote_key(v)) for k, v in value.items())))
    return ("other", repr(value))


def _tally(values: Sequence[FieldValue]) -> List[Tuple[FieldValue, int]]:
    """Distinct values with their counts, in first-seen order."""
    counts: Dict[Hashable, List[Any]] = {}
    for v in values:
        key = vote_key(v)
        if key in counts:
            counts[key][1] += 1
        else:
            counts[key] = [v, 1]
    return [(v, n) for v, n in counts.values()]


def _population_variance(xs: Sequence[float]) -> float:
    if not xs:
        return 0.0
    mean = sum(xs) / len(xs)
    return sum((x - mean) ** 2 for x in xs) / len(xs)


def classify_conflict(
    agreement_level: float, distinct_values: int, confidences: Sequence[float]
) -> Tuple[List[ConflictType], Severity]:
    types: List[ConflictType] = []
    severity: Severity = "low"

    def _raise_to(level: Severity) -> None:
        nonlocal severity
        if _SEVERITY_RANK[level] > _SEVERITY_RANK[severity]:
            severity = level

    if distinct_values > MAX_DISTINCT_VALUES:
        types.append("value_disagreement")
        _raise_to("medium")
    if _population_variance(confidences) > CONFIDENCE_VARIANCE_LIMIT:
        types.append("confidence_variance")
        _raise_to("high")
    if agreement_level < SPLIT_VOTE_LEVEL:
        types.append("split_vote")
        _raise_to("high")
    return types, severity


def _field_consensus(
    field_name: str,
    successful: Sequence[ReviewResult],
    threshold: float,
    parity: Parity,
) -> ConsensusRecord:
    values: List[FieldValue] = []
    confidences: List[float] = []
    for review in successful:
        value = (review.data or {}).get(field_name)
        if value is None:
            continue
        values.append(value)
        confidences.append(review.confidence)

    if not values:
        return ConsensusRecord(
            field_name=field_name,
            value=None,
            agreement_level=0.0,
            agreeing_count=0,
            total_count=0,
            has_conflict=False,
            requires_human_review=False,
            threshold=threshold * 100,
            reviewer_parity=parity,
            conflict_reason="No reviewer returned a value",
        )

    tally = _tally(values)
    winner, winning_count = tally[0]
    for value, count in tally[1:]:
        if count > winning_count:
            winner, winning_count = value, count

    total = len(values)
    ratio = winning_count / total
    agreement_level = ratio * 100
    requires_review = ratio < threshold

    conflict_reason = None
    if len(successful) == 2 and winning_count < 2:
        requires_review = True
        conflict_reason = "Two reviewers disagree - human review required"
    elif requires_review:
        conflict_reason = (
            f"Low concordance for {parity} number of reviewers "
            f"(need >{threshold * 100:.0f}%)"
        )

    has_conflict = (
        agreement_level < HIGH_AGREEMENT_LEVEL
        or len(tally) > MAX_DISTINCT_VALUES
        or requires_review
    )
    conflict_types: List[ConflictType] = []
    if has_conflict:
        conflict_types, _ = classify_conflict(agreement_level, len(tally), confidences)

    return ConsensusRecord(
        field_name=field_name,
        value=winner,
        agreement_level=agreement_level,
        agreeing_count=winning_count,
        total_count=total,
        has_conflict=has_conflict,
        requires_human_review=requires_review,
        threshold=threshold * 100,
        reviewer_parity=parity,
        conflict_reason=conflict_reason,
        conflict_types=conflict_types,
        all_values=[v for v, _ in tally],
        confidences=confidences,
    )


def calculate_consensus(
    reviews: Sequence[ReviewResult],
    field_names: Iterable[str],
    settings: ConsensusSettings,
) -> Dict[str, ConsensusRecord]:
    """
    Reduce per-reviewer answers to one record per field.

    `reviews` must be in reviewer-priority order: ties between equally common
    values go to the one seen first. Failed reviews are ignored; abstaining
    (null) reviewers drop out of the agreement denominator.
    """
    successful = [r for r in reviews if r.ok]
    threshold, parity = settings.threshold_for(len(successful))
    out = {
        name: _field_consensus(name, successful, threshold, parity)
        for name in field_names
    }
    logger.info(
        "consensus.done reviewers=%d parity=%s fields=%d conflicts=%d",
        len(successful),
        parity,
        len(out),
        sum(1 for c in out.values() if c.has_conflict),
    )
    return out


def detect_conflicts(consensus: Dict[str, ConsensusRecord]) -> List[ConflictRecord]:
    conflicts: List[ConflictRecord] = []
    for name, record in consensus.items():
        if not record.has_conflict:
            continue
        types, severity = classify_conflict(
            record.agreement_level, len(record.all_values), record.confidences
        )
        conflicts.append(
            ConflictRecord(
                field_name=name,
                conflict_types=types,
                severity=severity,
                agreement_level=record.agreement_level,
                values=list(record.all_values),
                requires_human_review=severity == "high",
            )
        )
    return conflicts


def summarize(
    reviews: Sequence[ReviewResult], conflicts: Sequence[ConflictRecord]
) -> RunSummary:
    successful = [r for r in reviews if r.ok]
    avg = (
        sum(r.confidence for r in successful) / len(successful) if successful else 0.0
    )
    return RunSummary(
        total_reviewers=len(reviews),
        successful_reviewers=len(successful),
        average_confidence=avg,
        conflicts_detected=len(conflicts),
        requires_human_review=any(c.severity == "high" for c in conflicts),
    )
