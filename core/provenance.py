# core/provenance.py
import json
from typing import Dict, List, Sequence
from core.chunk_indexer import parse_citation_markers
from core.consensus import vote_key
from core.entities import CitationMap, ConsensusRecord, FieldValue, ReviewResult, ReviewRun
from model.extraction import ExtractionRecord, SourceCitation

CONSENSUS_METHOD = "multi_reviewer_consensus"


def record_id(extraction_id: str, field_name: str) -> str:
    return f"{extraction_id}:{field_name}"


def value_text(value: FieldValue) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, dict)):
        return json.dumps(value, ensure_ascii=False, sort_keys=True)
    return str(value)


def agreeing_reviews(record: ConsensusRecord, reviews: Sequence[ReviewResult]) -> List[ReviewResult]:
    if record.value is None:
        return []
    key = vote_key(record.value)
    return [
        r
        for r in reviews
        if r.ok and vote_key((r.data or {}).get(record.field_name)) == key
    ]


def winning_citation(
    record: ConsensusRecord,
    reviews: Sequence[ReviewResult],
    citation_map: CitationMap,
) -> List[int]:
    """
    Chunk indices quoted by the reviewers that voted for the consensus value,
    limited to chunks the document actually has.
    """
    out: Dict[int, None] = {}
    for review in agreeing_reviews(record, reviews):
        for idx in parse_citation_markers(review.source_text):
            if idx in citation_map:
                out.setdefault(idx)
    return list(out)


def records_from_run(
    *,
    document_id: str,
    extraction_id: str,
    run: ReviewRun,
    citation_map: CitationMap,
) -> List[ExtractionRecord]:
    """
    One pending extraction record per resolved field, carrying the consensus
    value and the citation its supporters gave.
    """
    records: List[ExtractionRecord] = []
    for name, record in run.consensus.items():
        if record.value is None:
            continue
        supporters = agreeing_reviews(record, run.reviews)
        indices = winning_citation(record, run.reviews, citation_map)
        avg = sum(r.confidence for r in supporters) / len(supporters) if supporters else 0.0
        records.append(
            ExtractionRecord(
                id=record_id(extraction_id, name),
                document_id=document_id,
                field_name=name,
                text=value_text(record.value),
                page=citation_map[min(indices)].page_num if indices else None,
                method=CONSENSUS_METHOD,
                source_citations=SourceCitation(chunk_indices=indices, confidence=avg),
                confidence_score=avg / 100,
                validation_status="pending",
            )
        )
    return records
