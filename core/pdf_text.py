# core/pdf_text.py
from dataclasses import dataclass
from typing import List
import fitz
from core.chunk_indexer import DocumentIndexer
from core.entities import TextChunk, TextFragment
from core.sections import assign_sections
from util.timing import timed
import logging

logger = logging.getLogger(__name__)


@dataclass
class PageFragments:
    page_num: int  # 1-based
    page_height: float
    fragments: List[TextFragment]


def _span_fragment(span: dict, page_height: float) -> TextFragment:
    """
    PyMuPDF reports top-down span boxes; the indexer expects PDF user space
    (bottom-up), so the baseline is flipped back here.
    """
    x0, _y0, x1, _y1 = span.get("bbox", (0.0, 0.0, 0.0, 0.0))
    ox, oy = span.get("origin", (x0, 0.0))
    size = float(span.get("size") or 0.0)
    return TextFragment(
        text=span.get("text") or "",
        transform=(size, 0.0, 0.0, size, float(ox), page_height - float(oy)),
        width=float(x1) - float(x0),
        height=size,
        font_name=span.get("font") or "",
    )


def extract_page_fragments(file_bytes: bytes) -> List[PageFragments]:
    """
    Return positioned text fragments for every page of the PDF, in page order.
    Each text line is closed with a whitespace fragment so words across line
    breaks stay separated. If parsing fails, returns [].
    """
    try:
        out: List[PageFragments] = []
        with timed(logger, "pdf.open"):
            with fitz.open(stream=file_bytes, filetype="pdf") as doc:
                pages = doc.page_count
                with timed(logger, "pdf.spans", pages=pages):
                    for i in range(pages):
                        page = doc.load_page(i)
                        height = float(page.rect.height)
                        frags: List[TextFragment] = []
                        layout = page.get_text("dict") or {}
                        for block in layout.get("blocks", []):
                            if block.get("type", 0) != 0:
                                continue
                            for line in block.get("lines", []):
                                for span in line.get("spans", []):
                                    frags.append(_span_fragment(span, height))
                                frags.append(TextFragment(text=" "))
                        out.append(PageFragments(i + 1, height, frags))
        logger.info("pdf.pages count=%d", len(out))
        return out
    except Exception:
        # do not log payloads
        logger.error("pdf.parse.error", exc_info=True)
        return []


@dataclass
class IndexedPdf:
    page_count: int
    chunks: List[TextChunk]


def index_pdf(file_bytes: bytes) -> IndexedPdf:
    """
    Page-ordered sentence chunking of a whole PDF with global chunk indices,
    tagged with the section each chunk falls under. page_count is 0 when the
    PDF could not be parsed.
    """
    pages = extract_page_fragments(file_bytes)
    indexer = DocumentIndexer()
    with timed(logger, "pdf.index", pages=len(pages)):
        for page in pages:
            indexer.add_page(page.page_num, page.page_height, page.fragments)
    chunks = assign_sections(indexer.chunks)
    logger.info("pdf.chunks count=%d chars=%d", len(chunks), indexer.char_offset)
    return IndexedPdf(page_count=len(pages), chunks=chunks)
