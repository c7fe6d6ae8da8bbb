# core/chunk_indexer.py
import math
import re
from typing import Iterable, List, Optional, Sequence, Tuple
from core.entities import BBox, CitationEntry, CitationMap, TextChunk, TextFragment
from util.constants import HEADING_FONT_SIZE
import logging

logger = logging.getLogger(__name__)

_SENTENCE_END = re.compile(r"[.!?]\s*$")


def _num(value: object) -> Optional[float]:
    """Finite float or None; geometry from PDF text layers is not trusted."""
    if isinstance(value, bool) or value is None:
        return None
    try:
        out = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    return out if math.isfinite(out) else None


def _origin(fragment: TextFragment) -> Optional[Tuple[float, float]]:
    t = fragment.transform
    if t is None or len(t) < 6:
        return None
    tx, ty = _num(t[4]), _num(t[5])
    if tx is None or ty is None:
        return None
    return tx, ty


def _font_size(fragment: TextFragment) -> float:
    t = fragment.transform
    if t is None or len(t) < 2:
        return 0.0
    a, b = _num(t[0]) or 0.0, _num(t[1]) or 0.0
    return math.hypot(a, b)


def _envelope(fragments: Sequence[TextFragment], page_height: float) -> BBox:
    """
    Min/max envelope of the fragments, flipped to top-down coordinates.
    Fragments without a usable origin are left out; nothing usable -> empty box.
    """
    min_x = min_y = math.inf
    max_x = max_y = -math.inf
    for frag in fragments:
        origin = _origin(frag)
        if origin is None:
            continue
        x = origin[0]
        y = page_height - origin[1]
        width = _num(frag.width) or 0.0
        height = _num(frag.height) or 0.0
        min_x = min(min_x, x)
        min_y = min(min_y, y - height)
        max_x = max(max_x, x + width)
        max_y = max(max_y, y)
    if min_x == math.inf:
        return BBox.empty()
    return BBox(x=min_x, y=min_y, width=max_x - min_x, height=max_y - min_y)


def _make_chunk(
    fragments: Sequence[TextFragment],
    text: str,
    *,
    chunk_index: int,
    page_num: int,
    page_height: float,
    char_start: int,
    section_name: Optional[str],
) -> TextChunk:
    first = fragments[0] if fragments else TextFragment(text=text)
    font_name = first.font_name or ""
    font_size = _font_size(first)
    lowered = font_name.lower()
    return TextChunk(
        chunk_index=chunk_index,
        text=text,
        page_num=page_num,
        bbox=_envelope(fragments, page_height),
        font_name=font_name,
        font_size=font_size,
        is_heading=font_size > HEADING_FONT_SIZE or "heading" in lowered,
        is_bold="bold" in lowered,
        char_start=char_start,
        char_end=char_start + len(text),
        section_name=section_name,
    )


def extract_page_chunks(
    fragments: Iterable[TextFragment],
    *,
    page_num: int,
    page_height: float,
    char_offset: int = 0,
    start_index: int = 0,
    section_name: Optional[str] = None,
) -> List[TextChunk]:
    """
    Group one page's text fragments into sentence chunks.

    A sentence ends on a fragment whose text ends in . ! or ? (trailing
    whitespace allowed) or at the end of the page stream. Whitespace-only
    fragments join the text buffer but never close a sentence or add geometry.
    Chunk indices count up from `start_index`; character ranges count up from
    `char_offset` and are contiguous (char_end of one chunk is char_start of
    the next).
    """
    height = _num(page_height) or 0.0
    chunks: List[TextChunk] = []
    buf: List[TextFragment] = []
    text = ""
    cursor = char_offset

    def _flush() -> None:
        nonlocal buf, text, cursor
        trimmed = text.strip()
        if trimmed:
            chunk = _make_chunk(
                buf,
                trimmed,
                chunk_index=start_index + len(chunks),
                page_num=page_num,
                page_height=height,
                char_start=cursor,
                section_name=section_name,
            )
            chunks.append(chunk)
            cursor = chunk.char_end
        buf = []
        text = ""

    for frag in fragments:
        raw = frag.text or ""
        text += raw
        if not raw.strip():
            continue
        buf.append(frag)
        if _SENTENCE_END.search(raw):
            _flush()

    _flush()
    logger.debug("index.page page=%d chunks=%d", page_num, len(chunks))
    return chunks


class DocumentIndexer:
    """
    Threads the running chunk counter and character offset across the pages of
    one document. Pages must arrive in increasing page order.
    """

    def __init__(self, start_index: int = 0, char_offset: int = 0) -> None:
        self._next_index = start_index
        self._char_offset = char_offset
        self._last_page = 0
        self._chunks: List[TextChunk] = []

    @property
    def chunks(self) -> List[TextChunk]:
        return list(self._chunks)

    @property
    def char_offset(self) -> int:
        return self._char_offset

    def add_page(
        self,
        page_num: int,
        page_height: float,
        fragments: Iterable[TextFragment],
        *,
        section_name: Optional[str] = None,
    ) -> List[TextChunk]:
        if page_num <= self._last_page:
            raise ValueError(
                f"page {page_num} received after page {self._last_page}; "
                "pages must be indexed in order"
            )
        page_chunks = extract_page_chunks(
            fragments,
            page_num=page_num,
            page_height=page_height,
            char_offset=self._char_offset,
            start_index=self._next_index,
            section_name=section_name,
        )
        self._last_page = page_num
        if page_chunks:
            self._next_index = page_chunks[-1].chunk_index + 1
            self._char_offset = page_chunks[-1].char_end
            self._chunks.extend(page_chunks)
        return page_chunks


def build_citation_map(chunks: Iterable[TextChunk]) -> CitationMap:
    return {
        ch.chunk_index: CitationEntry(
            text=ch.text, page_num=ch.page_num, bbox=ch.bbox, confidence=ch.confidence
        )
        for ch in chunks
    }


def create_citable_document(chunks: Iterable[TextChunk]) -> str:
    """Render "[index] text" per chunk, one per line, in chunk order."""
    return "\n".join(f"[{ch.chunk_index}] {ch.text}" for ch in chunks)


def chunks_for_section(chunks: Iterable[TextChunk], section_name: str) -> List[TextChunk]:
    return [ch for ch in chunks if ch.section_name == section_name]


def chunks_in_range(
    chunks: Iterable[TextChunk], char_start: int, char_end: int
) -> List[TextChunk]:
    """Chunks overlapping the half-open character range [char_start, char_end)."""
    return [ch for ch in chunks if ch.char_start < char_end and ch.char_end > char_start]


def citation_boxes(
    chunk_indices: Iterable[int],
    citation_map: CitationMap,
    page_num: int,
    scale: float = 1.0,
) -> List[Tuple[int, BBox]]:
    """
    Pixel rectangles for the cited chunks that sit on `page_num` of a page
    rendered at `scale`. Unknown indices and other pages are skipped.
    """
    out: List[Tuple[int, BBox]] = []
    for idx in chunk_indices:
        entry = citation_map.get(idx)
        if entry is None or entry.page_num != page_num:
            continue
        b = entry.bbox
        out.append(
            (idx, BBox(x=b.x * scale, y=b.y * scale, width=b.width * scale, height=b.height * scale))
        )
    return out


_MARKER = re.compile(r"\[(\d+)\]")


def parse_citation_markers(text: str) -> List[int]:
    """
    Chunk indices referenced as [N] markers in model output, first occurrence
    order, repeats dropped.
    """
    return list(dict.fromkeys(int(m) for m in _MARKER.findall(text or "")))
