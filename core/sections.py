# core/sections.py
import re
from dataclasses import replace
from typing import Dict, List, Optional, Sequence
from core.entities import TextChunk

_HEADINGS: Dict[str, str] = {
    "abstract": "abstract",
    "summary": "abstract",
    "introduction": "introduction",
    "background": "introduction",
    "methods": "methods",
    "method": "methods",
    "materials and methods": "methods",
    "patients and methods": "methods",
    "methodology": "methods",
    "results": "results",
    "discussion": "discussion",
    "conclusion": "discussion",
    "conclusions": "discussion",
    "references": "references",
}

_HEADING_RE = re.compile(
    r"^\s*(?:\d+(?:\.\d+)*\.?\s*)?("
    + "|".join(sorted((re.escape(k) for k in _HEADINGS), key=len, reverse=True))
    + r")\b",
    re.IGNORECASE,
)

_HEADING_TAIL = " \t.:"


def section_of(chunk: TextChunk) -> Optional[str]:
    """Section type a chunk opens, or None when it is not a section heading."""
    m = _HEADING_RE.match(chunk.text)
    if not m:
        return None
    # Unstyled text only counts when it is the bare heading word.
    if not (chunk.is_heading or chunk.is_bold) and chunk.text[m.end():].strip(_HEADING_TAIL):
        return None
    return _HEADINGS[m.group(1).lower()]


def assign_sections(chunks: Sequence[TextChunk]) -> List[TextChunk]:
    """
    Tag chunks with the section they fall under. Text on the first page before
    any recognised heading is treated as the title block.
    """
    out: List[TextChunk] = []
    current: Optional[str] = None
    for ch in chunks:
        opened = section_of(ch)
        if opened is not None:
            current = opened
        label = current
        if label is None and ch.page_num == 1:
            label = "title"
        out.append(replace(ch, section_name=label) if label != ch.section_name else ch)
    return out
