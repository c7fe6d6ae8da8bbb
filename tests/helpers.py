from typing import Dict, List, Optional
from core.entities import BBox, TextChunk, TextFragment
from model.consensus import ConsensusRow, ReviewRow
from model.extraction import ExtractionRecord, SourceCitation


def frag(text: str, x: float = 10.0, y: float = 700.0, size: float = 10.0, width: float = 50.0, font: str = "Times-Roman") -> TextFragment:
    return TextFragment(
        text=text,
        transform=(size, 0.0, 0.0, size, x, y),
        width=width,
        height=size,
        font_name=font,
    )


def chunk(index: int, text: str, page: int = 1, section: Optional[str] = None, start: int = 0) -> TextChunk:
    return TextChunk(
        chunk_index=index,
        text=text,
        page_num=page,
        bbox=BBox(10.0, 20.0, 100.0, 12.0),
        font_name="Times-Roman",
        font_size=10.0,
        is_heading=False,
        is_bold=False,
        char_start=start,
        char_end=start + len(text),
        section_name=section,
    )


def record(
    rid: str,
    indices: List[int],
    *,
    document_id: str = "doc-1",
    field_name: str = "totalN",
    text: str = "120",
    validated: bool = False,
    confidence_score: float = 0.9,
) -> ExtractionRecord:
    return ExtractionRecord(
        id=rid,
        document_id=document_id,
        field_name=field_name,
        text=text,
        source_citations=SourceCitation(chunk_indices=indices, validated=validated),
        confidence_score=confidence_score,
    )


class FakeDocuments:
    def __init__(self, docs: Optional[Dict[str, List[TextChunk]]] = None) -> None:
        self.docs: Dict[str, List[TextChunk]] = dict(docs or {})

    async def put_chunks(self, document_id: str, chunks: List[TextChunk]) -> None:
        self.docs[document_id] = list(chunks)

    async def get_chunks(self, document_id: str) -> Optional[List[TextChunk]]:
        chunks = self.docs.get(document_id)
        return list(chunks) if chunks is not None else None


class FakeExtractions:
    def __init__(self, records: Optional[List[ExtractionRecord]] = None) -> None:
        self.records: Dict[str, ExtractionRecord] = {r.id: r for r in records or []}
        self.writes: List[ExtractionRecord] = []

    async def put(self, rec: ExtractionRecord) -> None:
        self.records[rec.id] = rec
        self.writes.append(rec)

    async def get(self, extraction_id: str) -> Optional[ExtractionRecord]:
        return self.records.get(extraction_id)

    async def delete_many(self, document_id: str, extraction_ids) -> None:
        for i in extraction_ids:
            self.records.pop(i, None)

    async def get_many(self, ids) -> List[ExtractionRecord]:
        return [self.records[i] for i in dict.fromkeys(ids) if i in self.records]

    async def for_document(self, document_id: str) -> List[ExtractionRecord]:
        return sorted(
            (r for r in self.records.values() if r.document_id == document_id),
            key=lambda r: r.id,
        )


class FakeConsensus:
    def __init__(self) -> None:
        self.rows: Dict[str, Dict[str, ConsensusRow]] = {}

    async def upsert(self, extraction_id: str, rows: List[ConsensusRow]) -> None:
        self.rows.setdefault(extraction_id, {}).update({r.field_name: r for r in rows})


class FakeReviews:
    def __init__(self) -> None:
        self.rows: Dict[str, List[ReviewRow]] = {}

    async def replace(self, extraction_id: str, rows: List[ReviewRow]) -> None:
        self.rows[extraction_id] = list(rows)
